"""
Management command para expirar pedidos cuja cobrança venceu.
Feito para rodar periodicamente (cron).
"""
from django.core.management.base import BaseCommand

from dflor.core.dependency_injection import get_expirar_pedidos_use_case


class Command(BaseCommand):
    help = 'Expira pedidos aguardando pagamento após o prazo da cobrança'

    def handle(self, *args, **options):
        self.stdout.write('Verificando pedidos pendentes...')
        expirados = get_expirar_pedidos_use_case().executar()
        self.stdout.write(self.style.SUCCESS(f'{expirados} pedido(s) expirado(s).'))
