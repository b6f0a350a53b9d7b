# Generated manually - Initial migration for pedidos app
import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Pedido",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("numero_pedido", models.CharField(max_length=32, unique=True, verbose_name="Número do Pedido")),
                ("nome_cliente", models.CharField(max_length=200, verbose_name="Nome do Cliente")),
                ("email_cliente", models.EmailField(db_index=True, max_length=254, verbose_name="E-mail do Cliente")),
                ("telefone_cliente", models.CharField(blank=True, max_length=20, verbose_name="Telefone")),
                ("cpf_cliente", models.CharField(blank=True, max_length=14, null=True, verbose_name="CPF")),
                (
                    "endereco_entrega",
                    models.JSONField(help_text="Cópia do endereço no momento do pedido", verbose_name="Endereço de Entrega"),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Subtotal")),
                ("frete", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="Valor do Frete")),
                ("desconto", models.DecimalField(decimal_places=2, default=0, max_digits=10, verbose_name="Desconto")),
                ("total", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Total")),
                ("metodo_envio", models.CharField(max_length=20, verbose_name="Método de Envio")),
                ("prazo_envio", models.PositiveIntegerField(verbose_name="Prazo de Entrega (dias)")),
                ("codigo_rastreio", models.CharField(blank=True, max_length=50, null=True, verbose_name="Código de Rastreio")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending_payment", "Aguardando Pagamento"),
                            ("paid", "Pago"),
                            ("preparing", "Em Preparo"),
                            ("shipped", "Enviado"),
                            ("delivered", "Entregue"),
                            ("cancelled", "Cancelado"),
                            ("payment_failed", "Pagamento Recusado"),
                            ("expired", "Expirado"),
                            ("refunded", "Estornado"),
                        ],
                        db_index=True,
                        default="pending_payment",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "status_pagamento",
                    models.CharField(blank=True, help_text="Status bruto informado pelo provedor", max_length=50, null=True, verbose_name="Status do Pagamento"),
                ),
                ("metodo_pagamento", models.CharField(max_length=20, verbose_name="Método de Pagamento")),
                (
                    "provedor_pagamento",
                    models.CharField(
                        choices=[
                            ("mercadopago", "Mercado Pago"),
                            ("stripe", "Stripe"),
                            ("pagseguro", "PagSeguro"),
                            ("openpix", "OpenPix"),
                        ],
                        max_length=20,
                        verbose_name="Provedor de Pagamento",
                    ),
                ),
                (
                    "referencia_provedor",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="ID da preferência/sessão/checkout/cobrança no provedor",
                        max_length=255,
                        null=True,
                        verbose_name="Referência no Provedor",
                    ),
                ),
                ("motivo_falha", models.CharField(blank=True, max_length=255, null=True, verbose_name="Motivo da Falha")),
                ("data_criacao", models.DateTimeField(auto_now_add=True, verbose_name="Data do Pedido")),
                ("data_pagamento", models.DateTimeField(blank=True, null=True, verbose_name="Data do Pagamento")),
                ("data_envio", models.DateTimeField(blank=True, null=True, verbose_name="Data de Envio")),
                ("data_entrega", models.DateTimeField(blank=True, null=True, verbose_name="Data de Entrega")),
            ],
            options={
                "verbose_name": "Pedido",
                "verbose_name_plural": "Pedidos",
                "db_table": "orders",
                "ordering": ["-data_criacao"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("subtotal__gte", 0)), name="orders_subtotal_nao_negativo"),
                    models.CheckConstraint(condition=models.Q(("frete__gte", 0)), name="orders_frete_nao_negativo"),
                    models.CheckConstraint(condition=models.Q(("desconto__gte", 0)), name="orders_desconto_nao_negativo"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ItemPedido",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nome_produto", models.CharField(max_length=255, verbose_name="Nome do Produto")),
                ("imagem_url", models.URLField(blank=True, max_length=500, verbose_name="Imagem")),
                ("preco_unitario", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Preço Unitário na Compra")),
                ("quantidade", models.PositiveIntegerField(verbose_name="Quantidade")),
                ("preco_total", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Preço Total")),
                ("tamanho", models.CharField(blank=True, max_length=20, null=True, verbose_name="Tamanho")),
                ("cor", models.CharField(blank=True, max_length=50, null=True, verbose_name="Cor")),
                (
                    "pedido",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="itens",
                        to="pedidos.pedido",
                    ),
                ),
                (
                    "produto",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="itens_pedido",
                        to="catalog.produto",
                        verbose_name="Produto Original",
                    ),
                ),
            ],
            options={
                "verbose_name": "Item do Pedido",
                "verbose_name_plural": "Itens do Pedido",
                "db_table": "order_items",
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantidade__gt", 0)), name="order_items_quantidade_positiva"),
                ],
            },
        ),
    ]
