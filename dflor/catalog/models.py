import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

# ====================================================================
# Produto
# ====================================================================

class Produto(models.Model):
    """Modelo para representar uma peça (vestido, blusa, conjunto...) no catálogo."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    nome = models.CharField(max_length=200, verbose_name="Nome")
    descricao = models.TextField(blank=True, verbose_name="Descrição")

    preco = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name="Preço",
    )
    # Preço "de" exibido riscado; quando presente deve ser >= preco.
    preco_original = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, verbose_name="Preço Original"
    )

    imagem_url = models.URLField(max_length=500, blank=True, verbose_name="Imagem Principal")
    imagens = models.JSONField(default=list, blank=True, verbose_name="Galeria de Imagens")
    tamanhos = models.JSONField(default=list, blank=True, verbose_name="Tamanhos")
    cores = models.JSONField(default=list, blank=True, help_text='Lista de {"name": ..., "hex": ...}', verbose_name="Cores")

    categoria = models.CharField(max_length=50, db_index=True, verbose_name="Categoria")
    estoque = models.IntegerField(default=0, verbose_name="Estoque")
    peso_kg = models.DecimalField(max_digits=6, decimal_places=3, default=Decimal('0.300'), verbose_name="Peso (kg)")
    em_destaque = models.BooleanField(default=False, verbose_name="Em Destaque")

    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Produto"
        verbose_name_plural = "Produtos"
        db_table = 'products'
        ordering = ['-data_criacao']
        constraints = [
            models.CheckConstraint(condition=models.Q(estoque__gte=0), name='products_estoque_nao_negativo'),
        ]

    def __str__(self):
        return self.nome

    def clean(self):
        if self.preco_original is not None and self.preco is not None and self.preco_original < self.preco:
            raise ValidationError({'preco_original': "O preço original deve ser maior ou igual ao preço."})
