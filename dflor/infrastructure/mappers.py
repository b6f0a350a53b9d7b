"""
Mapeadores (Mappers) para converter entre:
1. Modelos do Django ORM
2. Entidades de Domínio (dflor.core.entities)
"""
from decimal import Decimal
from typing import Any, Optional, Type

from django.apps import apps
from django.db import models

from dflor.core.entities import (
    Cliente,
    Cor,
    EnderecoEntrega,
    ItemPedido as ItemPedidoEntity,
    Pedido as PedidoEntity,
    Produto as ProdutoEntity,
    SelecaoFrete,
)
from dflor.core.status import StatusPedido


# ====================================================================
# Uso de apps.get_model para evitar dependências circulares
# ====================================================================

def get_model(app_label: str, model_name: str):
    """Retorna um modelo do Django de forma segura (lazy loading)."""
    return apps.get_model(app_label, model_name)


# ====================================================================
# MAPPER DO CATÁLOGO
# ====================================================================

class ProdutoMapper:
    """Mapeador para Produto."""

    @classmethod
    def model_class(cls) -> Type[models.Model]:
        return get_model('catalog', 'Produto')

    @staticmethod
    def to_entity(model: Any) -> Optional[ProdutoEntity]:
        """Converte Produto Model para Produto Entity."""
        if not model: return None
        return ProdutoEntity(
            id=str(model.id),
            nome=model.nome,
            descricao=model.descricao,
            preco=model.preco,
            preco_original=model.preco_original,
            estoque=model.estoque,
            categoria=model.categoria,
            imagem_url=model.imagem_url,
            imagens=list(model.imagens or []),
            tamanhos=list(model.tamanhos or []),
            cores=[Cor(nome=c.get('name', ''), hex=c.get('hex', '')) for c in (model.cores or [])],
            em_destaque=model.em_destaque,
            peso_kg=model.peso_kg if model.peso_kg is not None else Decimal('0'),
        )


# ====================================================================
# MAPPERS DE PEDIDO
# ====================================================================

class ItemPedidoMapper:
    """Mapeador para o Item do Pedido."""

    @classmethod
    def model_class(cls) -> Type[models.Model]:
        return get_model('pedidos', 'ItemPedido')

    @staticmethod
    def to_entity(model: Any) -> Optional[ItemPedidoEntity]:
        if not model: return None
        return ItemPedidoEntity(
            id=str(model.id),
            produto_id=str(model.produto_id) if model.produto_id else None,
            nome_produto=model.nome_produto,
            imagem_url=model.imagem_url,
            quantidade=model.quantidade,
            preco_unitario=model.preco_unitario,
            tamanho=model.tamanho,
            cor=model.cor,
        )

    @classmethod
    def to_model(cls, entity: ItemPedidoEntity, pedido_id) -> Any:
        return cls.model_class()(
            pedido_id=pedido_id,
            produto_id=entity.produto_id,
            nome_produto=entity.nome_produto,
            imagem_url=entity.imagem_url or "",
            quantidade=entity.quantidade,
            preco_unitario=entity.preco_unitario,
            preco_total=entity.preco_total,
            tamanho=entity.tamanho,
            cor=entity.cor,
        )


class PedidoMapper:
    """Mapeador para Pedido (cabeçalho + itens)."""

    @classmethod
    def model_class(cls) -> Type[models.Model]:
        return get_model('pedidos', 'Pedido')

    @staticmethod
    def to_entity(model: Any) -> Optional[PedidoEntity]:
        """Converte Pedido Model (com itens pré-carregados) para Pedido Entity."""
        if not model: return None
        endereco = model.endereco_entrega or {}
        return PedidoEntity(
            id=str(model.id),
            numero_pedido=model.numero_pedido,
            cliente=Cliente(
                nome=model.nome_cliente,
                email=model.email_cliente,
                telefone=model.telefone_cliente,
                cpf=model.cpf_cliente,
            ),
            endereco=EnderecoEntrega(
                rua=endereco.get('rua', ''),
                numero=endereco.get('numero', ''),
                complemento=endereco.get('complemento'),
                bairro=endereco.get('bairro', ''),
                cidade=endereco.get('cidade', ''),
                estado=endereco.get('estado', ''),
                cep=endereco.get('cep', ''),
            ),
            frete=SelecaoFrete(metodo=model.metodo_envio, preco=model.frete, prazo_dias=model.prazo_envio),
            itens=[ItemPedidoMapper.to_entity(item) for item in model.itens.all()],
            subtotal=model.subtotal,
            desconto=model.desconto,
            total=model.total,
            status=StatusPedido(model.status),
            status_pagamento=model.status_pagamento,
            metodo_pagamento=model.metodo_pagamento,
            provedor_pagamento=model.provedor_pagamento,
            referencia_provedor=model.referencia_provedor,
            motivo_falha=model.motivo_falha,
            codigo_rastreio=model.codigo_rastreio,
            data_criacao=model.data_criacao,
            data_pagamento=model.data_pagamento,
            data_envio=model.data_envio,
            data_entrega=model.data_entrega,
        )

    @classmethod
    def to_model(cls, entity: PedidoEntity) -> Any:
        """Converte Pedido Entity para um novo Pedido Model (sem itens)."""
        return cls.model_class()(
            id=entity.id,
            numero_pedido=entity.numero_pedido,
            nome_cliente=entity.cliente.nome,
            email_cliente=entity.cliente.email,
            telefone_cliente=entity.cliente.telefone or "",
            cpf_cliente=entity.cliente.cpf,
            endereco_entrega=entity.endereco.to_dict(),
            subtotal=entity.subtotal,
            frete=entity.frete.preco,
            desconto=entity.desconto,
            total=entity.total,
            metodo_envio=entity.frete.metodo,
            prazo_envio=entity.frete.prazo_dias,
            codigo_rastreio=entity.codigo_rastreio,
            status=entity.status.value,
            status_pagamento=entity.status_pagamento,
            metodo_pagamento=entity.metodo_pagamento,
            provedor_pagamento=entity.provedor_pagamento,
            referencia_provedor=entity.referencia_provedor,
        )
