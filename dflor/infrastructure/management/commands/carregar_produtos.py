from decimal import Decimal

from django.core.management.base import BaseCommand

from dflor.catalog.models import Produto

UNSPLASH = "https://images.unsplash.com"

PRODUTOS = [
    {
        'nome': 'Camiseta Básica Premium',
        'descricao': 'Camiseta de algodão premium com corte moderno. Tecido macio que não deforma após lavagens.',
        'preco': Decimal('89.90'),
        'preco_original': Decimal('129.90'),
        'imagem_url': f'{UNSPLASH}/photo-1521572163474-6864f9cf17ab?w=500',
        'tamanhos': ['P', 'M', 'G', 'GG'],
        'cores': [{'name': 'Branco', 'hex': '#FFFFFF'}, {'name': 'Preto', 'hex': '#000000'}],
        'categoria': 'Camisetas',
        'estoque': 50,
        'em_destaque': True,
    },
    {
        'nome': 'Calça Jeans Slim Fit',
        'descricao': 'Calça jeans com elastano e modelagem slim fit.',
        'preco': Decimal('199.90'),
        'preco_original': Decimal('259.90'),
        'imagem_url': f'{UNSPLASH}/photo-1542272604-787c3835535d?w=500',
        'tamanhos': ['38', '40', '42', '44', '46'],
        'cores': [{'name': 'Azul Escuro', 'hex': '#1E3A5F'}, {'name': 'Azul Claro', 'hex': '#5B8DB8'}],
        'categoria': 'Calças',
        'estoque': 30,
        'em_destaque': True,
        'peso_kg': Decimal('0.600'),
    },
    {
        'nome': 'Vestido Midi Elegante',
        'descricao': 'Vestido midi de tecido fluido com amarração na cintura.',
        'preco': Decimal('249.90'),
        'imagem_url': f'{UNSPLASH}/photo-1595777457583-95e059d581b8?w=500',
        'tamanhos': ['P', 'M', 'G'],
        'cores': [{'name': 'Vinho', 'hex': '#7B1E3A'}, {'name': 'Preto', 'hex': '#000000'}],
        'categoria': 'Vestidos',
        'estoque': 20,
        'em_destaque': True,
        'peso_kg': Decimal('0.450'),
    },
    {
        'nome': 'Blusa de Seda Off-White',
        'descricao': 'Blusa de seda com gola laço.',
        'preco': Decimal('159.90'),
        'imagem_url': f'{UNSPLASH}/photo-1564257631407-4deb1f99d992?w=500',
        'tamanhos': ['P', 'M', 'G'],
        'cores': [{'name': 'Off-White', 'hex': '#F5F0E6'}],
        'categoria': 'Blusas',
        'estoque': 15,
        'em_destaque': False,
    },
]


class Command(BaseCommand):
    help = 'Carrega o catálogo inicial de produtos'

    def handle(self, *args, **kwargs):
        self.stdout.write('Criando produtos iniciais...')

        for dados in PRODUTOS:
            dados = dict(dados)
            nome = dados.pop('nome')
            dados.setdefault('imagens', [dados['imagem_url']])
            produto, created = Produto.objects.get_or_create(nome=nome, defaults=dados)
            if created:
                self.stdout.write(self.style.SUCCESS(f'Criado produto "{produto.nome}"'))
            else:
                self.stdout.write(f'Produto "{produto.nome}" já existe')

        self.stdout.write(self.style.SUCCESS('Catálogo carregado com sucesso!'))
