# dflor/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositórios, Gateways)
DEVE seguir para se conectar à camada Core (Casos de Uso).
"""

from typing import Protocol, List, Optional, Dict, Mapping
from abc import abstractmethod
from datetime import datetime, timedelta

from dflor.core.entities import (
    Produto, Pedido, CobrancaCriada, NotificacaoPagamento
)
from dflor.core.status import StatusPedido


# ====================================================================
# 1. REPOSITÓRIOS (Portas de Persistência)
# ====================================================================

class IProdutoRepository(Protocol):
    """Protocolo para leitura do catálogo."""

    @abstractmethod
    def buscar_por_id(self, produto_id: str) -> Optional[Produto]: ...


class IEstoqueRepository(Protocol):
    """Protocolo do livro de estoque."""

    @abstractmethod
    def decrementar(self, produto_id: str, quantidade: int) -> int:
        """Decrementa atomicamente; retorna o estoque resultante."""
        ...


class IPedidoRepository(Protocol):
    """Protocolo para a persistência de Pedidos."""

    @abstractmethod
    def criar(self, pedido: Pedido) -> Pedido: ...

    @abstractmethod
    def excluir(self, pedido_id: str): ...

    @abstractmethod
    def definir_referencia_provedor(self, pedido_id: str, referencia: str): ...

    @abstractmethod
    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]: ...

    @abstractmethod
    def buscar_por_numero(self, numero_pedido: str) -> Optional[Pedido]: ...

    @abstractmethod
    def listar(self, status: Optional[StatusPedido] = None) -> List[Pedido]: ...

    @abstractmethod
    def listar_por_email(self, email: str) -> List[Pedido]: ...

    @abstractmethod
    def listar_pendentes_criados_antes(self, provedor: str, limite: datetime) -> List[Pedido]: ...

    @abstractmethod
    def transicionar(
        self,
        pedido_id: str,
        status_esperado: StatusPedido,
        novo_status: StatusPedido,
        campos: Optional[Dict[str, object]] = None,
    ) -> bool:
        """
        Atualização condicional (compare-and-swap): só grava se o status
        armazenado ainda for `status_esperado`. Retorna True se venceu.
        """
        ...

    @abstractmethod
    def atualizar_campos(self, pedido_id: str, campos: Dict[str, object]): ...


# ====================================================================
# 2. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IProvedorPagamento(Protocol):
    """Protocolo comum aos provedores de pagamento."""

    nome: str
    metodo_pagamento: str
    prazo_expiracao: timedelta

    @abstractmethod
    def verificar_configuracao(self):
        """Levanta ProvedorNaoConfiguradoError se faltar credencial."""
        ...

    @abstractmethod
    def criar_cobranca(self, pedido: Pedido) -> CobrancaCriada: ...

    @abstractmethod
    def mapear_status(self, status_bruto: str) -> Optional[StatusPedido]: ...

    @abstractmethod
    def verificar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]): ...

    @abstractmethod
    def interpretar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]) -> Optional[NotificacaoPagamento]: ...

    @abstractmethod
    def consultar_status(self, pedido: Pedido) -> Optional[NotificacaoPagamento]: ...


class IConsultaCep(Protocol):
    """Consulta de endereço por CEP (melhor esforço)."""

    @abstractmethod
    def buscar(self, cep: str) -> Optional[Dict[str, str]]: ...
