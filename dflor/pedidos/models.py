import uuid

from django.core.exceptions import ValidationError
from django.db import models

from dflor.catalog.models import Produto
from dflor.core.status import LABELS, StatusPedido


class Pedido(models.Model):
    """
    Modelo para pedidos de compra.
    Dados do cliente e do endereço são cópias do momento da compra.
    """
    STATUS_CHOICES = [(status.value, LABELS[status]) for status in StatusPedido]

    PROVEDOR_CHOICES = [
        ('mercadopago', 'Mercado Pago'),
        ('stripe', 'Stripe'),
        ('pagseguro', 'PagSeguro'),
        ('openpix', 'OpenPix'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    numero_pedido = models.CharField(max_length=32, unique=True, verbose_name="Número do Pedido")

    # Cliente (Snapshot)
    nome_cliente = models.CharField(max_length=200, verbose_name="Nome do Cliente")
    email_cliente = models.EmailField(db_index=True, verbose_name="E-mail do Cliente")
    telefone_cliente = models.CharField(max_length=20, blank=True, verbose_name="Telefone")
    cpf_cliente = models.CharField(max_length=14, blank=True, null=True, verbose_name="CPF")

    # Endereço (Snapshot): rua, numero, complemento, bairro, cidade, estado, cep
    endereco_entrega = models.JSONField(verbose_name="Endereço de Entrega", help_text="Cópia do endereço no momento do pedido")

    # Valores
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Subtotal")
    frete = models.DecimalField(max_digits=10, decimal_places=2, default=0, verbose_name="Valor do Frete")
    desconto = models.DecimalField(max_digits=10, decimal_places=2, default=0, verbose_name="Desconto")
    total = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Total")

    # Envio
    metodo_envio = models.CharField(max_length=20, verbose_name="Método de Envio")
    prazo_envio = models.PositiveIntegerField(verbose_name="Prazo de Entrega (dias)")
    codigo_rastreio = models.CharField(max_length=50, blank=True, null=True, verbose_name="Código de Rastreio")

    # Status e Pagamento
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=StatusPedido.AGUARDANDO_PAGAMENTO.value,
        db_index=True, verbose_name="Status",
    )
    status_pagamento = models.CharField(max_length=50, blank=True, null=True, help_text="Status bruto informado pelo provedor", verbose_name="Status do Pagamento")
    metodo_pagamento = models.CharField(max_length=20, verbose_name="Método de Pagamento")
    provedor_pagamento = models.CharField(max_length=20, choices=PROVEDOR_CHOICES, verbose_name="Provedor de Pagamento")
    referencia_provedor = models.CharField(max_length=255, blank=True, null=True, db_index=True, help_text="ID da preferência/sessão/checkout/cobrança no provedor", verbose_name="Referência no Provedor")
    motivo_falha = models.CharField(max_length=255, blank=True, null=True, verbose_name="Motivo da Falha")

    # Datas
    data_criacao = models.DateTimeField(auto_now_add=True, verbose_name="Data do Pedido")
    data_pagamento = models.DateTimeField(null=True, blank=True, verbose_name="Data do Pagamento")
    data_envio = models.DateTimeField(null=True, blank=True, verbose_name="Data de Envio")
    data_entrega = models.DateTimeField(null=True, blank=True, verbose_name="Data de Entrega")

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        ordering = ['-data_criacao']
        db_table = 'orders'
        constraints = [
            models.CheckConstraint(condition=models.Q(subtotal__gte=0), name='orders_subtotal_nao_negativo'),
            models.CheckConstraint(condition=models.Q(frete__gte=0), name='orders_frete_nao_negativo'),
            models.CheckConstraint(condition=models.Q(desconto__gte=0), name='orders_desconto_nao_negativo'),
        ]

    def __str__(self):
        return f"Pedido {self.numero_pedido} - {self.nome_cliente} - {self.status}"

    def save(self, *args, **kwargs):
        # total = subtotal + frete - desconto
        if self.total != self.subtotal + self.frete - self.desconto:
            raise ValidationError("O total do pedido não confere com subtotal + frete - desconto.")
        super().save(*args, **kwargs)


class ItemPedido(models.Model):
    """
    Modelo para os itens contidos em um pedido.
    """
    pedido = models.ForeignKey(Pedido, on_delete=models.CASCADE, related_name='itens')

    # Referência fraca ao produto original (usada na baixa de estoque)
    produto = models.ForeignKey(
        Produto,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='itens_pedido',
        verbose_name="Produto Original"
    )

    # Snapshots (Cópia dos dados do produto no momento da compra, para histórico)
    nome_produto = models.CharField(max_length=255, verbose_name="Nome do Produto")
    imagem_url = models.URLField(max_length=500, blank=True, verbose_name="Imagem")
    preco_unitario = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Preço Unitário na Compra")

    quantidade = models.PositiveIntegerField(verbose_name="Quantidade")
    preco_total = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Preço Total")
    tamanho = models.CharField(max_length=20, blank=True, null=True, verbose_name="Tamanho")
    cor = models.CharField(max_length=50, blank=True, null=True, verbose_name="Cor")

    class Meta:
        verbose_name = 'Item do Pedido'
        verbose_name_plural = 'Itens do Pedido'
        db_table = 'order_items'
        constraints = [
            models.CheckConstraint(condition=models.Q(quantidade__gt=0), name='order_items_quantidade_positiva'),
        ]

    def __str__(self):
        return f"{self.quantidade}x {self.nome_produto} (Pedido {self.pedido.numero_pedido})"

    def save(self, *args, **kwargs):
        # Atualiza o preço total automaticamente antes de salvar
        self.preco_total = self.quantidade * self.preco_unitario
        super().save(*args, **kwargs)
