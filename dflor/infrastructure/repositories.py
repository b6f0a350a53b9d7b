"""
Camada de Infraestrutura: Implementação dos Repositórios.

Esta camada traduz as operações abstratas definidas nas Interfaces da Core
em chamadas concretas ao Django ORM.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from django.apps import apps
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import DateTimeField, F, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from dflor.core.entities import Pedido, Produto
from dflor.core.exceptions import DadosInvalidosError, ProdutoNaoEncontradoError
from dflor.core.ports import IEstoqueRepository, IPedidoRepository, IProdutoRepository
from dflor.core.status import CAMPO_DATA_POR_STATUS, StatusPedido

from .mappers import ItemPedidoMapper, PedidoMapper, ProdutoMapper

logger = logging.getLogger(__name__)


# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# 1. CATÁLOGO
# ====================================================================

class ProdutoRepositoryDjango(IProdutoRepository):
    """Implementação do ProdutoRepository usando o Django ORM."""

    @property
    def ProdutoModel(self):
        return get_model('catalog', 'Produto')

    def buscar_por_id(self, produto_id: str) -> Optional[Produto]:
        try:
            return ProdutoMapper.to_entity(self.ProdutoModel.objects.get(pk=produto_id))
        except (self.ProdutoModel.DoesNotExist, ValidationError, ValueError):
            # ValidationError/ValueError: id que não é um UUID válido
            return None


# ====================================================================
# 2. LIVRO DE ESTOQUE
# ====================================================================

class EstoqueRepositoryDjango(IEstoqueRepository):
    """Baixa de estoque por UPDATE atômico com expressão F."""

    @property
    def ProdutoModel(self):
        return get_model('catalog', 'Produto')

    def decrementar(self, produto_id: str, quantidade: int) -> int:
        if quantidade is None or quantidade <= 0:
            raise DadosInvalidosError("A quantidade a baixar do estoque deve ser maior que zero.")

        # UPDATE único; venda acima do disponível limita em zero.
        atualizados = self.ProdutoModel.objects.filter(pk=produto_id).update(
            estoque=Greatest(F('estoque') - quantidade, Value(0))
        )
        if not atualizados:
            raise ProdutoNaoEncontradoError(f"Produto {produto_id} não encontrado para baixa de estoque.")

        restante = self.ProdutoModel.objects.filter(pk=produto_id).values_list('estoque', flat=True).first()
        if restante == 0:
            logger.warning(
                "Produto %s esgotado após baixa de %d unidade(s).", produto_id, quantidade,
            )
        return restante


# ====================================================================
# 3. PEDIDOS
# ====================================================================

class PedidoRepositoryDjango(IPedidoRepository):
    """Implementação do PedidoRepository usando o Django ORM."""

    @property
    def PedidoModel(self):
        return get_model('pedidos', 'Pedido')

    @property
    def ItemPedidoModel(self):
        return get_model('pedidos', 'ItemPedido')

    def _queryset(self):
        return self.PedidoModel.objects.prefetch_related('itens')

    @transaction.atomic
    def criar(self, pedido: Pedido) -> Pedido:
        """Grava o pedido e seus itens numa única transação."""
        model = PedidoMapper.to_model(pedido)
        model.save(force_insert=True)

        item_models = [ItemPedidoMapper.to_model(item, pedido_id=model.id) for item in pedido.itens]
        self.ItemPedidoModel.objects.bulk_create(item_models)

        return PedidoMapper.to_entity(self._queryset().get(pk=model.pk))

    @transaction.atomic
    def excluir(self, pedido_id: str):
        """Remoção compensatória (itens saem em cascata)."""
        self.PedidoModel.objects.filter(pk=pedido_id).delete()

    def definir_referencia_provedor(self, pedido_id: str, referencia: str):
        self.PedidoModel.objects.filter(pk=pedido_id).update(referencia_provedor=referencia)

    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]:
        try:
            return PedidoMapper.to_entity(self._queryset().get(pk=pedido_id))
        except (self.PedidoModel.DoesNotExist, ValidationError, ValueError):
            return None

    def buscar_por_numero(self, numero_pedido: str) -> Optional[Pedido]:
        model = self._queryset().filter(numero_pedido=numero_pedido).first()
        return PedidoMapper.to_entity(model)

    def listar(self, status: Optional[StatusPedido] = None) -> List[Pedido]:
        qs = self._queryset().order_by('-data_criacao')
        if status:
            qs = qs.filter(status=status.value)
        return [PedidoMapper.to_entity(model) for model in qs]

    def listar_por_email(self, email: str) -> List[Pedido]:
        qs = self._queryset().filter(email_cliente__iexact=email).order_by('-data_criacao')
        return [PedidoMapper.to_entity(model) for model in qs]

    def listar_pendentes_criados_antes(self, provedor: str, limite: datetime) -> List[Pedido]:
        qs = self._queryset().filter(
            provedor_pagamento=provedor,
            status__in=[StatusPedido.AGUARDANDO_PAGAMENTO.value, StatusPedido.PAGAMENTO_FALHOU.value],
            data_criacao__lt=limite,
        )
        return [PedidoMapper.to_entity(model) for model in qs]

    def transicionar(
        self,
        pedido_id: str,
        status_esperado: StatusPedido,
        novo_status: StatusPedido,
        campos: Optional[Dict[str, object]] = None,
    ) -> bool:
        valores = dict(campos or {})
        valores['status'] = novo_status.value

        campo_data = CAMPO_DATA_POR_STATUS.get(novo_status)
        if campo_data:
            # Data gravada uma única vez: mantém a existente se já houver.
            valores[campo_data] = Coalesce(F(campo_data), Value(timezone.now(), output_field=DateTimeField()))

        atualizados = self.PedidoModel.objects.filter(
            pk=pedido_id, status=status_esperado.value
        ).update(**valores)
        return atualizados == 1

    def atualizar_campos(self, pedido_id: str, campos: Dict[str, object]):
        # Status só muda via transicionar().
        campos = {chave: valor for chave, valor in campos.items() if chave != 'status'}
        if campos:
            self.PedidoModel.objects.filter(pk=pedido_id).update(**campos)
