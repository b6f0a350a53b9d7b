# Generated manually - Initial migration for catalog app
import uuid
from decimal import Decimal

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Produto",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("nome", models.CharField(max_length=200, verbose_name="Nome")),
                ("descricao", models.TextField(blank=True, verbose_name="Descrição")),
                (
                    "preco",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                        verbose_name="Preço",
                    ),
                ),
                (
                    "preco_original",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name="Preço Original"),
                ),
                ("imagem_url", models.URLField(blank=True, max_length=500, verbose_name="Imagem Principal")),
                ("imagens", models.JSONField(blank=True, default=list, verbose_name="Galeria de Imagens")),
                ("tamanhos", models.JSONField(blank=True, default=list, verbose_name="Tamanhos")),
                (
                    "cores",
                    models.JSONField(blank=True, default=list, help_text='Lista de {"name": ..., "hex": ...}', verbose_name="Cores"),
                ),
                (
                    "categoria",
                    models.CharField(
                        db_index=True,
                        max_length=50,
                        verbose_name="Categoria",
                    ),
                ),
                ("estoque", models.IntegerField(default=0, verbose_name="Estoque")),
                (
                    "peso_kg",
                    models.DecimalField(decimal_places=3, default=Decimal("0.300"), max_digits=6, verbose_name="Peso (kg)"),
                ),
                ("em_destaque", models.BooleanField(default=False, verbose_name="Em Destaque")),
                ("data_criacao", models.DateTimeField(auto_now_add=True)),
                ("data_atualizacao", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Produto",
                "verbose_name_plural": "Produtos",
                "db_table": "products",
                "ordering": ["-data_criacao"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("estoque__gte", 0)), name="products_estoque_nao_negativo"),
                ],
            },
        ),
    ]
