from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import List, Optional, Dict
import uuid

from dflor.core.status import StatusPedido

# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros.
# ====================================================================

@dataclass
class Cor:
    """Cor disponível de um produto (nome + hexadecimal)."""
    nome: str
    hex: str

@dataclass
class Produto:
    """Entidade do Produto do catálogo."""
    nome: str
    descricao: str
    preco: Decimal
    estoque: int
    categoria: str
    preco_original: Optional[Decimal] = None
    imagem_url: str = ""
    imagens: List[str] = field(default_factory=list)
    tamanhos: List[str] = field(default_factory=list)
    cores: List[Cor] = field(default_factory=list)
    em_destaque: bool = False
    peso_kg: Decimal = Decimal("0.30")
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


# ====================================================================
# ENTIDADES DE PEDIDO
# ====================================================================

@dataclass
class EnderecoEntrega:
    """Snapshot do endereço de entrega no momento da compra."""
    rua: str
    numero: str
    bairro: str
    cidade: str
    estado: str
    cep: str
    complemento: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "rua": self.rua,
            "numero": self.numero,
            "complemento": self.complemento,
            "bairro": self.bairro,
            "cidade": self.cidade,
            "estado": self.estado,
            "cep": self.cep,
        }

@dataclass
class Cliente:
    """Snapshot dos dados do comprador."""
    nome: str
    email: str
    telefone: str = ""
    cpf: Optional[str] = None

@dataclass
class SelecaoFrete:
    """Método de envio escolhido pelo cliente."""
    metodo: str
    preco: Decimal
    prazo_dias: int

@dataclass
class ItemPedido:
    """Item de um pedido com preço congelado."""
    produto_id: Optional[str]
    nome_produto: str
    quantidade: int
    preco_unitario: Decimal
    imagem_url: str = ""
    tamanho: Optional[str] = None
    cor: Optional[str] = None
    id: Optional[str] = None
    preco_total: Decimal = field(init=False)

    def __post_init__(self):
        self.preco_total = self.preco_unitario * self.quantidade

@dataclass
class Pedido:
    """Entidade principal do Pedido."""
    numero_pedido: str
    cliente: Cliente
    endereco: EnderecoEntrega
    frete: SelecaoFrete
    itens: List[ItemPedido]
    subtotal: Decimal
    desconto: Decimal
    total: Decimal
    provedor_pagamento: str
    metodo_pagamento: str
    status: StatusPedido = StatusPedido.AGUARDANDO_PAGAMENTO
    status_pagamento: Optional[str] = None
    referencia_provedor: Optional[str] = None
    motivo_falha: Optional[str] = None
    codigo_rastreio: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    data_criacao: Optional[datetime] = None
    data_pagamento: Optional[datetime] = None
    data_envio: Optional[datetime] = None
    data_entrega: Optional[datetime] = None


# ====================================================================
# ENTIDADES DE CHECKOUT / PAGAMENTO
# ====================================================================

@dataclass
class ItemCheckout:
    """Linha do carrinho enviada pelo cliente no checkout."""
    produto_id: str
    quantidade: int
    tamanho: Optional[str] = None
    cor: Optional[str] = None

@dataclass
class CobrancaCriada:
    """Handle devolvido pelo provedor ao criar a cobrança."""
    referencia: str
    url_redirecionamento: Optional[str] = None
    client_secret: Optional[str] = None
    pix_copia_cola: Optional[str] = None
    qr_code_imagem: Optional[str] = None
    expira_em_segundos: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        dados = {
            "referencia": self.referencia,
            "url_redirecionamento": self.url_redirecionamento,
            "client_secret": self.client_secret,
            "pix_copia_cola": self.pix_copia_cola,
            "qr_code_imagem": self.qr_code_imagem,
            "expira_em_segundos": self.expira_em_segundos,
        }
        return {chave: valor for chave, valor in dados.items() if valor is not None}

@dataclass
class NotificacaoPagamento:
    """
    Evento de pagamento normalizado a partir do vocabulário de um provedor.
    `status` None significa que o evento não altera o pedido.
    """
    provedor: str
    numero_pedido: Optional[str]
    status_bruto: str
    status: Optional[StatusPedido]
    motivo_falha: Optional[str] = None

@dataclass
class ResultadoReconciliacao:
    """Resultado da aplicação de uma notificação sobre um pedido."""
    numero_pedido: Optional[str]
    aplicado: bool
    status_anterior: Optional[StatusPedido] = None
    status_atual: Optional[StatusPedido] = None
    motivo: str = ""

@dataclass
class OpcaoFrete:
    """Oferta de frete calculada pelo estimador."""
    codigo: str
    nome: str
    preco: Decimal
    prazo_dias: int

@dataclass
class ResultadoCheckout:
    numero_pedido: str
    total: Decimal
    cobranca: CobrancaCriada
