# dflor/core/status.py
"""
Máquina de estados do Pedido.

Define os status canônicos e as transições permitidas. Toda mudança de status
(webhook, consulta ao provedor ou ação do admin) passa por `pode_transicionar`.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional


class StatusPedido(str, Enum):
    AGUARDANDO_PAGAMENTO = "pending_payment"
    PAGO = "paid"
    EM_PREPARO = "preparing"
    ENVIADO = "shipped"
    ENTREGUE = "delivered"
    CANCELADO = "cancelled"
    PAGAMENTO_FALHOU = "payment_failed"
    EXPIRADO = "expired"
    ESTORNADO = "refunded"

    def __str__(self):
        return self.value


TRANSICOES: Dict[StatusPedido, FrozenSet[StatusPedido]] = {
    StatusPedido.AGUARDANDO_PAGAMENTO: frozenset({
        StatusPedido.PAGO,
        StatusPedido.CANCELADO,
        StatusPedido.EXPIRADO,
        StatusPedido.PAGAMENTO_FALHOU,
    }),
    StatusPedido.PAGAMENTO_FALHOU: frozenset({
        StatusPedido.PAGO,
        StatusPedido.CANCELADO,
        StatusPedido.EXPIRADO,
    }),
    StatusPedido.PAGO: frozenset({
        StatusPedido.EM_PREPARO,
        StatusPedido.ENVIADO,
        StatusPedido.CANCELADO,
        StatusPedido.ESTORNADO,
    }),
    StatusPedido.EM_PREPARO: frozenset({
        StatusPedido.ENVIADO,
        StatusPedido.CANCELADO,
        StatusPedido.ESTORNADO,
    }),
    StatusPedido.ENVIADO: frozenset({StatusPedido.ENTREGUE, StatusPedido.ESTORNADO}),
    StatusPedido.ENTREGUE: frozenset({StatusPedido.ESTORNADO}),
    StatusPedido.CANCELADO: frozenset(),
    StatusPedido.EXPIRADO: frozenset(),
    StatusPedido.ESTORNADO: frozenset(),
}

# Origens aceitas para eventos de provedor. Cancelar pedido já pago é ação do admin.
_EM_ABERTO = frozenset({StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGAMENTO_FALHOU})

ORIGENS_EVENTO_PROVEDOR: Dict[StatusPedido, FrozenSet[StatusPedido]] = {
    StatusPedido.PAGO: _EM_ABERTO,
    StatusPedido.PAGAMENTO_FALHOU: _EM_ABERTO,
    StatusPedido.CANCELADO: _EM_ABERTO,
    StatusPedido.EXPIRADO: _EM_ABERTO,
    StatusPedido.ESTORNADO: frozenset({
        StatusPedido.PAGO,
        StatusPedido.EM_PREPARO,
        StatusPedido.ENVIADO,
        StatusPedido.ENTREGUE,
    }),
}

# Campo de data preenchido (uma única vez) ao entrar no status.
CAMPO_DATA_POR_STATUS: Dict[StatusPedido, str] = {
    StatusPedido.PAGO: "data_pagamento",
    StatusPedido.ENVIADO: "data_envio",
    StatusPedido.ENTREGUE: "data_entrega",
}

LABELS = {
    StatusPedido.AGUARDANDO_PAGAMENTO: "Aguardando Pagamento",
    StatusPedido.PAGO: "Pago",
    StatusPedido.EM_PREPARO: "Em Preparo",
    StatusPedido.ENVIADO: "Enviado",
    StatusPedido.ENTREGUE: "Entregue",
    StatusPedido.CANCELADO: "Cancelado",
    StatusPedido.PAGAMENTO_FALHOU: "Pagamento Recusado",
    StatusPedido.EXPIRADO: "Expirado",
    StatusPedido.ESTORNADO: "Estornado",
}


def parse_status(valor) -> Optional[StatusPedido]:
    """Converte uma string para StatusPedido; retorna None se desconhecida."""
    if isinstance(valor, StatusPedido):
        return valor
    try:
        return StatusPedido(valor)
    except ValueError:
        return None


def pode_transicionar(atual: StatusPedido, destino: StatusPedido) -> bool:
    return destino in TRANSICOES.get(atual, frozenset())


def is_terminal(status: StatusPedido) -> bool:
    return not TRANSICOES.get(status)


def evento_provedor_permitido(atual: StatusPedido, destino: StatusPedido) -> bool:
    """Transição disparada por webhook ou consulta ao provedor (nunca pelo admin)."""
    return atual in ORIGENS_EVENTO_PROVEDOR.get(destino, frozenset()) and pode_transicionar(atual, destino)
