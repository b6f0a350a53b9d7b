import hashlib
import hmac
import json
import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional

import requests
import stripe

from dflor.core.entities import CobrancaCriada, NotificacaoPagamento, Pedido
from dflor.core.exceptions import (
    AssinaturaInvalidaError,
    ErroProvedorPagamento,
    PayloadInvalidoError,
    ProvedorNaoConfiguradoError,
)
from dflor.core.ports import IConsultaCep, IProvedorPagamento
from dflor.core.status import StatusPedido

logger = logging.getLogger(__name__)

NOME_LOJA = "D'Flor Elegance"


def _centavos(valor: Decimal) -> int:
    return int((Decimal(valor) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Cliente HTTP do SDK do Stripe: um por timeout, instalado uma única vez.
_CLIENTES_HTTP_STRIPE: Dict[float, Any] = {}


def _cliente_http_stripe(timeout: float):
    if timeout not in _CLIENTES_HTTP_STRIPE:
        _CLIENTES_HTTP_STRIPE[timeout] = stripe.RequestsClient(timeout=timeout)
    return _CLIENTES_HTTP_STRIPE[timeout]


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class ProvedorPagamentoBase(IProvedorPagamento):
    """
    Comportamento comum aos provedores: mapa de status, leitura de
    cabeçalhos, parse do corpo e chamadas HTTP com timeout.
    """
    nome = ""
    metodo_pagamento = ""
    prazo_expiracao = timedelta(hours=24)

    # Status bruto do provedor -> status do pedido (None = sem mudança)
    _STATUS_MAP: Dict[str, Optional[StatusPedido]] = {}

    def __init__(self, base_url: str = "", timeout: float = 5):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout

    # --- CONTRATO ---

    def verificar_configuracao(self):
        raise NotImplementedError

    def mapear_status(self, status_bruto: str) -> Optional[StatusPedido]:
        return self._STATUS_MAP.get(status_bruto)

    # --- AUXILIARES ---

    @staticmethod
    def _cabecalho(cabecalhos: Mapping[str, str], nome: str) -> Optional[str]:
        valor = cabecalhos.get(nome)
        if valor is None:
            for chave, candidato in cabecalhos.items():
                if chave.lower() == nome.lower():
                    return candidato
        return valor

    @staticmethod
    def _ler_json(corpo: bytes) -> Dict[str, Any]:
        try:
            dados = json.loads(corpo or b"")
        except (TypeError, ValueError) as e:
            raise PayloadInvalidoError(f"Corpo do webhook não é um JSON válido: {e}")
        if not isinstance(dados, dict):
            raise PayloadInvalidoError("Corpo do webhook deve ser um objeto JSON.")
        return dados

    def _requisicao(self, metodo: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = requests.request(metodo, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            corpo = e.response.text[:300] if e.response is not None else ""
            raise ErroProvedorPagamento(self.nome, f"HTTP {getattr(e.response, 'status_code', '?')}: {corpo}")
        except requests.exceptions.RequestException as e:
            raise ErroProvedorPagamento(self.nome, f"Erro de conexão: {e}")
        except ValueError:
            raise ErroProvedorPagamento(self.nome, "Resposta não é um JSON válido.")

    def _aviso_sem_segredo(self):
        logger.warning(
            "Webhook %s aceito sem verificação de assinatura: segredo não configurado.", self.nome
        )

    def _notificacao(self, numero_pedido: Optional[str], status_bruto: str, motivo_falha: Optional[str] = None) -> NotificacaoPagamento:
        return NotificacaoPagamento(
            provedor=self.nome,
            numero_pedido=numero_pedido or None,
            status_bruto=status_bruto or "",
            status=self.mapear_status(status_bruto),
            motivo_falha=motivo_falha,
        )


# --------------------------------------------------------------------
# MERCADO PAGO (Checkout Pro)
# --------------------------------------------------------------------

class MercadoPagoGateway(ProvedorPagamentoBase):
    """
    Gateway para a API do Mercado Pago.
    Cria uma preferência de Checkout Pro e correlaciona pagamentos pelo
    `external_reference` (número do pedido).
    """
    nome = "mercadopago"
    metodo_pagamento = "mercadopago"
    prazo_expiracao = timedelta(hours=24)
    api_base_url = "https://api.mercadopago.com"

    _STATUS_MAP = {
        "approved": StatusPedido.PAGO,
        "pending": None,
        "in_process": None,
        "authorized": None,
        "rejected": StatusPedido.CANCELADO,
        "cancelled": StatusPedido.CANCELADO,
        "refunded": StatusPedido.ESTORNADO,
        "charged_back": StatusPedido.ESTORNADO,
    }

    def __init__(self, access_token: str = "", webhook_secret: str = "", **kwargs):
        super().__init__(**kwargs)
        self.access_token = access_token
        self.webhook_secret = webhook_secret

    def verificar_configuracao(self):
        if not self.access_token:
            raise ProvedorNaoConfiguradoError(self.nome)

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def criar_cobranca(self, pedido: Pedido) -> CobrancaCriada:
        self.verificar_configuracao()

        frete = {"cost": float(pedido.frete.preco), "mode": "not_specified"}
        if pedido.desconto > 0:
            # Preferência não aceita item negativo: cobra o total (frete incluso) como item único.
            itens = [{
                "id": pedido.numero_pedido,
                "title": f"Pedido {pedido.numero_pedido} - {NOME_LOJA}",
                "quantity": 1,
                "unit_price": float(pedido.total),
                "currency_id": "BRL",
            }]
            frete = None
        else:
            itens = [{
                "id": item.produto_id or "",
                "title": item.nome_produto,
                "quantity": item.quantidade,
                "unit_price": float(item.preco_unitario),
                "currency_id": "BRL",
                "picture_url": item.imagem_url or None,
            } for item in pedido.itens]

        payload = {
            "items": itens,
            "payer": {
                "name": pedido.cliente.nome,
                "email": pedido.cliente.email,
            },
            "external_reference": pedido.numero_pedido,
            "statement_descriptor": "DFLOR",
            "back_urls": {
                "success": f"{self.base_url}/checkout/success?pedido={pedido.numero_pedido}",
                "pending": f"{self.base_url}/checkout/pending?pedido={pedido.numero_pedido}",
                "failure": f"{self.base_url}/checkout/failure?pedido={pedido.numero_pedido}",
            },
            "auto_return": "approved",
            "notification_url": f"{self.base_url}/api/webhooks/{self.nome}/",
        }
        if frete:
            payload["shipments"] = frete
        if pedido.cliente.cpf:
            payload["payer"]["identification"] = {"type": "CPF", "number": re.sub(r"\D", "", pedido.cliente.cpf)}

        data = self._requisicao("POST", f"{self.api_base_url}/checkout/preferences", json=payload, headers=self._headers)
        if not data.get("id") or not data.get("init_point"):
            raise ErroProvedorPagamento(self.nome, "Preferência criada sem id ou init_point.")

        return CobrancaCriada(referencia=str(data["id"]), url_redirecionamento=data["init_point"])

    def verificar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]):
        if not self.webhook_secret:
            self._aviso_sem_segredo()
            return

        assinatura = self._cabecalho(cabecalhos, "x-signature") or ""
        partes = dict(
            parte.strip().split("=", 1) for parte in assinatura.split(",") if "=" in parte
        )
        ts, v1 = partes.get("ts"), partes.get("v1")
        if not ts or not v1:
            raise AssinaturaInvalidaError("Cabeçalho x-signature ausente ou incompleto.")

        dados = self._ler_json(corpo)
        data_id = str((dados.get("data") or {}).get("id", ""))
        if data_id.isalnum():
            data_id = data_id.lower()
        request_id = self._cabecalho(cabecalhos, "x-request-id")

        manifesto = ""
        if data_id:
            manifesto += f"id:{data_id};"
        if request_id:
            manifesto += f"request-id:{request_id};"
        manifesto += f"ts:{ts};"

        esperado = hmac.new(self.webhook_secret.encode(), manifesto.encode(), hashlib.sha256).hexdigest()
        if not hmac.compare_digest(esperado, v1):
            raise AssinaturaInvalidaError()

    def interpretar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]) -> Optional[NotificacaoPagamento]:
        dados = self._ler_json(corpo)
        if (dados.get("type") or dados.get("topic")) != "payment":
            return None

        pagamento_id = (dados.get("data") or {}).get("id")
        if not pagamento_id:
            raise PayloadInvalidoError("Notificação de pagamento sem data.id.")

        self.verificar_configuracao()
        pagamento = self._requisicao("GET", f"{self.api_base_url}/v1/payments/{pagamento_id}", headers=self._headers)
        return self._notificacao_de_pagamento(pagamento)

    def consultar_status(self, pedido: Pedido) -> Optional[NotificacaoPagamento]:
        self.verificar_configuracao()
        data = self._requisicao(
            "GET",
            f"{self.api_base_url}/v1/payments/search",
            params={"external_reference": pedido.numero_pedido, "sort": "date_created", "criteria": "desc"},
            headers=self._headers,
        )
        resultados = data.get("results") or []
        if not resultados:
            return None
        return self._notificacao_de_pagamento(resultados[0])

    def _notificacao_de_pagamento(self, pagamento: Dict[str, Any]) -> NotificacaoPagamento:
        status_bruto = pagamento.get("status") or ""
        motivo = pagamento.get("status_detail") if status_bruto in ("rejected", "cancelled") else None
        return self._notificacao(pagamento.get("external_reference"), status_bruto, motivo)


# --------------------------------------------------------------------
# STRIPE (Checkout Session embutido)
# --------------------------------------------------------------------

class StripeGateway(ProvedorPagamentoBase):
    """
    Gateway para o Stripe via SDK oficial.
    O número do pedido viaja em `metadata.order_number` da sessão e do PaymentIntent.
    """
    nome = "stripe"
    metodo_pagamento = "card"
    prazo_expiracao = timedelta(hours=24)

    # Eventos -> status do pedido. checkout.session.completed depende do payment_status.
    _STATUS_MAP = {
        "payment_intent.succeeded": StatusPedido.PAGO,
        "checkout.session.async_payment_succeeded": StatusPedido.PAGO,
        "payment_intent.payment_failed": StatusPedido.PAGAMENTO_FALHOU,
        "checkout.session.async_payment_failed": StatusPedido.PAGAMENTO_FALHOU,
        "payment_intent.canceled": StatusPedido.CANCELADO,
        "checkout.session.expired": StatusPedido.EXPIRADO,
        "charge.refunded": StatusPedido.ESTORNADO,
    }

    def __init__(self, secret_key: str = "", webhook_secret: str = "", **kwargs):
        super().__init__(**kwargs)
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        cliente_http = _cliente_http_stripe(self.timeout)
        if stripe.default_http_client is not cliente_http:
            stripe.default_http_client = cliente_http

    def verificar_configuracao(self):
        if not self.secret_key:
            raise ProvedorNaoConfiguradoError(self.nome)

    def criar_cobranca(self, pedido: Pedido) -> CobrancaCriada:
        self.verificar_configuracao()

        line_items = [{
            "price_data": {
                "currency": "brl",
                "product_data": {"name": item.nome_produto, **({"images": [item.imagem_url]} if item.imagem_url else {})},
                "unit_amount": _centavos(item.preco_unitario),
            },
            "quantity": item.quantidade,
        } for item in pedido.itens]
        if pedido.frete.preco > 0:
            line_items.append({
                "price_data": {
                    "currency": "brl",
                    "product_data": {"name": f"Frete ({pedido.frete.metodo})"},
                    "unit_amount": _centavos(pedido.frete.preco),
                },
                "quantity": 1,
            })

        params = {
            "ui_mode": "embedded",
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": line_items,
            "customer_email": pedido.cliente.email,
            "client_reference_id": pedido.numero_pedido,
            "metadata": {"order_number": pedido.numero_pedido},
            "payment_intent_data": {"metadata": {"order_number": pedido.numero_pedido}},
            "return_url": f"{self.base_url}/checkout/success?pedido={pedido.numero_pedido}&session_id={{CHECKOUT_SESSION_ID}}",
        }
        if pedido.desconto > 0:
            cupom = self._stripe(
                stripe.Coupon.create,
                amount_off=_centavos(pedido.desconto), currency="brl", duration="once",
            )
            params["discounts"] = [{"coupon": cupom["id"]}]

        sessao = self._stripe(stripe.checkout.Session.create, **params)
        return CobrancaCriada(referencia=sessao["id"], client_secret=sessao["client_secret"])

    def _stripe(self, operacao, *args, **kwargs):
        try:
            return operacao(*args, api_key=self.secret_key, **kwargs)
        except stripe.StripeError as e:
            raise ErroProvedorPagamento(self.nome, getattr(e, "user_message", None) or str(e))

    def verificar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]):
        if not self.webhook_secret:
            self._aviso_sem_segredo()
            return
        assinatura = self._cabecalho(cabecalhos, "stripe-signature")
        if not assinatura:
            raise AssinaturaInvalidaError("Cabeçalho stripe-signature ausente.")
        try:
            stripe.Webhook.construct_event(corpo, assinatura, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise AssinaturaInvalidaError()
        except ValueError:
            raise PayloadInvalidoError()

    def interpretar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]) -> Optional[NotificacaoPagamento]:
        evento = self._ler_json(corpo)
        tipo = evento.get("type") or ""
        objeto = ((evento.get("data") or {}).get("object")) or {}

        if tipo == "checkout.session.completed":
            status_pagamento = objeto.get("payment_status")
            status = StatusPedido.PAGO if status_pagamento == "paid" else None
            return NotificacaoPagamento(
                provedor=self.nome,
                numero_pedido=self._numero_pedido(objeto),
                status_bruto=f"{tipo}:{status_pagamento}",
                status=status,
            )

        if tipo not in self._STATUS_MAP:
            return None

        if tipo == "charge.refunded":
            numero = self._numero_pedido(objeto) or self._numero_pelo_payment_intent(objeto.get("payment_intent"))
            return self._notificacao(numero, tipo)

        motivo = None
        if tipo == "payment_intent.payment_failed":
            motivo = (objeto.get("last_payment_error") or {}).get("message")
        return self._notificacao(self._numero_pedido(objeto), tipo, motivo)

    def consultar_status(self, pedido: Pedido) -> Optional[NotificacaoPagamento]:
        self.verificar_configuracao()
        sessao = self._stripe(stripe.checkout.Session.retrieve, pedido.referencia_provedor)
        if sessao["payment_status"] == "paid":
            status = StatusPedido.PAGO
        elif sessao["status"] == "expired":
            status = StatusPedido.EXPIRADO
        else:
            status = None
        return NotificacaoPagamento(
            provedor=self.nome,
            numero_pedido=pedido.numero_pedido,
            status_bruto=f"session:{sessao['status']}:{sessao['payment_status']}",
            status=status,
        )

    @staticmethod
    def _numero_pedido(objeto: Dict[str, Any]) -> Optional[str]:
        metadata = objeto.get("metadata") or {}
        return metadata.get("order_number") or objeto.get("client_reference_id")

    def _numero_pelo_payment_intent(self, payment_intent_id: Optional[str]) -> Optional[str]:
        if not payment_intent_id:
            return None
        self.verificar_configuracao()
        intent = self._stripe(stripe.PaymentIntent.retrieve, payment_intent_id)
        try:
            return intent["metadata"]["order_number"]
        except (KeyError, TypeError):
            return None


# --------------------------------------------------------------------
# PAGSEGURO (Checkout API, somente PIX)
# --------------------------------------------------------------------

class PagSeguroGateway(ProvedorPagamentoBase):
    """Gateway para a API de Checkout do PagSeguro."""
    nome = "pagseguro"
    metodo_pagamento = "pix"
    prazo_expiracao = timedelta(hours=24)

    _STATUS_MAP = {
        "PAID": StatusPedido.PAGO,
        "AUTHORIZED": None,
        "IN_ANALYSIS": None,
        "WAITING": None,
        "DECLINED": StatusPedido.CANCELADO,
        "CANCELED": StatusPedido.CANCELADO,
    }

    def __init__(self, token: str = "", sandbox: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.token = token
        self.api_base_url = "https://sandbox.api.pagseguro.com" if sandbox else "https://api.pagseguro.com"

    def verificar_configuracao(self):
        if not self.token:
            raise ProvedorNaoConfiguradoError(self.nome)

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "x-api-version": "4.0",
        }

    def criar_cobranca(self, pedido: Pedido) -> CobrancaCriada:
        self.verificar_configuracao()

        cliente: Dict[str, Any] = {"name": pedido.cliente.nome, "email": pedido.cliente.email}
        if pedido.cliente.cpf:
            cliente["tax_id"] = re.sub(r"\D", "", pedido.cliente.cpf)
        telefone = re.sub(r"\D", "", pedido.cliente.telefone or "")
        if len(telefone) >= 10:
            cliente["phone"] = {"country": "+55", "area": telefone[:2], "number": telefone[2:]}

        payload = {
            "reference_id": pedido.numero_pedido,
            "customer": cliente,
            "items": [{
                "reference_id": item.produto_id or "",
                "name": item.nome_produto,
                "quantity": item.quantidade,
                "unit_amount": _centavos(item.preco_unitario),
            } for item in pedido.itens],
            "shipping": {"type": "FIXED", "amount": _centavos(pedido.frete.preco)},
            "payment_methods": [{"type": "PIX"}],
            "redirect_url": f"{self.base_url}/checkout/success?pedido={pedido.numero_pedido}",
            "notification_urls": [f"{self.base_url}/api/webhooks/{self.nome}/"],
            "payment_notification_urls": [f"{self.base_url}/api/webhooks/{self.nome}/"],
            "expiration_date": (datetime.now(timezone.utc) + self.prazo_expiracao).isoformat(timespec="seconds"),
        }
        if pedido.desconto > 0:
            payload["discount_amount"] = _centavos(pedido.desconto)

        data = self._requisicao("POST", f"{self.api_base_url}/checkouts", json=payload, headers=self._headers)
        link = next(
            (item.get("href") for item in data.get("links") or [] if item.get("rel") == "PAY"),
            None,
        )
        if not data.get("id") or not link:
            raise ErroProvedorPagamento(self.nome, "Checkout criado sem id ou link de pagamento.")
        return CobrancaCriada(referencia=data["id"], url_redirecionamento=link)

    def verificar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]):
        if not self.token:
            self._aviso_sem_segredo()
            return
        assinatura = self._cabecalho(cabecalhos, "x-authenticity-token")
        if not assinatura:
            raise AssinaturaInvalidaError("Cabeçalho x-authenticity-token ausente.")
        texto = corpo.decode("utf-8") if isinstance(corpo, bytes) else str(corpo)
        esperado = hashlib.sha256(f"{self.token}-{texto}".encode("utf-8")).hexdigest()
        if not hmac.compare_digest(esperado, assinatura):
            raise AssinaturaInvalidaError()

    def interpretar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]) -> Optional[NotificacaoPagamento]:
        dados = self._ler_json(corpo)
        return self._notificacao_de_pedido(dados)

    def consultar_status(self, pedido: Pedido) -> Optional[NotificacaoPagamento]:
        self.verificar_configuracao()
        checkout = self._requisicao(
            "GET", f"{self.api_base_url}/checkouts/{pedido.referencia_provedor}", headers=self._headers
        )
        pedidos_ps = checkout.get("orders") or []
        if not pedidos_ps:
            return None
        ordem = self._requisicao(
            "GET", f"{self.api_base_url}/orders/{pedidos_ps[0].get('id')}", headers=self._headers
        )
        notificacao = self._notificacao_de_pedido(ordem)
        if notificacao is not None and not notificacao.numero_pedido:
            notificacao.numero_pedido = pedido.numero_pedido
        return notificacao

    def _notificacao_de_pedido(self, dados: Dict[str, Any]) -> Optional[NotificacaoPagamento]:
        cobrancas = dados.get("charges") or []
        if not cobrancas:
            return None
        cobranca = cobrancas[0]
        status_bruto = cobranca.get("status") or ""
        motivo = None
        if status_bruto in ("DECLINED", "CANCELED"):
            motivo = (cobranca.get("payment_response") or {}).get("message")
        return self._notificacao(dados.get("reference_id"), status_bruto, motivo)


# --------------------------------------------------------------------
# OPENPIX (cobrança PIX)
# --------------------------------------------------------------------

class OpenPixGateway(ProvedorPagamentoBase):
    """Gateway para a API de cobranças PIX da OpenPix."""
    nome = "openpix"
    metodo_pagamento = "pix"
    prazo_expiracao = timedelta(hours=1)
    api_base_url = "https://api.openpix.com.br/api/v1"

    EXPIRACAO_SEGUNDOS = 3600

    _EVENTOS = {
        "OPENPIX:CHARGE_COMPLETED": StatusPedido.PAGO,
        "OPENPIX:TRANSACTION_RECEIVED": StatusPedido.PAGO,
        "OPENPIX:CHARGE_EXPIRED": StatusPedido.EXPIRADO,
        "OPENPIX:TRANSACTION_REFUND_RECEIVED": StatusPedido.ESTORNADO,
    }
    # Status da cobrança (consulta)
    _STATUS_MAP = {
        "ACTIVE": None,
        "COMPLETED": StatusPedido.PAGO,
        "EXPIRED": StatusPedido.EXPIRADO,
    }

    def __init__(self, app_id: str = "", webhook_secret: str = "", **kwargs):
        super().__init__(**kwargs)
        self.app_id = app_id
        self.webhook_secret = webhook_secret

    def verificar_configuracao(self):
        if not self.app_id:
            raise ProvedorNaoConfiguradoError(self.nome)

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": self.app_id, "Content-Type": "application/json"}

    def criar_cobranca(self, pedido: Pedido) -> CobrancaCriada:
        self.verificar_configuracao()

        payload: Dict[str, Any] = {
            "value": _centavos(pedido.total),
            "correlationID": pedido.numero_pedido,
            "comment": f"Pedido {pedido.numero_pedido} - {NOME_LOJA}",
            "expiresIn": self.EXPIRACAO_SEGUNDOS,
        }
        cliente: Dict[str, str] = {"name": pedido.cliente.nome, "email": pedido.cliente.email}
        telefone = re.sub(r"\D", "", pedido.cliente.telefone or "")
        if telefone:
            cliente["phone"] = telefone if telefone.startswith("55") else f"55{telefone}"
        if pedido.cliente.cpf:
            cliente["taxID"] = re.sub(r"\D", "", pedido.cliente.cpf)
        payload["customer"] = cliente

        data = self._requisicao("POST", f"{self.api_base_url}/charge", json=payload, headers=self._headers)
        cobranca = data.get("charge") or {}
        if not cobranca.get("brCode"):
            raise ErroProvedorPagamento(self.nome, "Cobrança criada sem código PIX.")

        return CobrancaCriada(
            referencia=cobranca.get("identifier") or cobranca.get("correlationID") or pedido.numero_pedido,
            url_redirecionamento=cobranca.get("paymentLinkUrl"),
            pix_copia_cola=cobranca["brCode"],
            qr_code_imagem=cobranca.get("qrCodeImage"),
            expira_em_segundos=cobranca.get("expiresIn") or self.EXPIRACAO_SEGUNDOS,
        )

    def verificar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]):
        if not self.webhook_secret:
            self._aviso_sem_segredo()
            return
        assinatura = self._cabecalho(cabecalhos, "x-webhook-signature")
        if not assinatura:
            raise AssinaturaInvalidaError("Cabeçalho x-webhook-signature ausente.")
        esperado = hmac.new(self.webhook_secret.encode(), corpo, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(esperado, assinatura):
            raise AssinaturaInvalidaError()

    def interpretar_webhook(self, corpo: bytes, cabecalhos: Mapping[str, str]) -> Optional[NotificacaoPagamento]:
        dados = self._ler_json(corpo)
        evento = dados.get("event") or ""
        if evento not in self._EVENTOS:
            return None

        cobranca = dados.get("charge") or {}
        if evento == "OPENPIX:TRANSACTION_RECEIVED":
            cobranca = ((dados.get("pix") or {}).get("charge")) or cobranca
            numero = cobranca.get("correlationID")
        elif evento == "OPENPIX:TRANSACTION_REFUND_RECEIVED":
            numero = (dados.get("refund") or {}).get("correlationID") or cobranca.get("correlationID")
        else:
            numero = cobranca.get("correlationID")

        return NotificacaoPagamento(
            provedor=self.nome,
            numero_pedido=numero or None,
            status_bruto=evento,
            status=self._EVENTOS[evento],
        )

    def consultar_status(self, pedido: Pedido) -> Optional[NotificacaoPagamento]:
        self.verificar_configuracao()
        data = self._requisicao(
            "GET", f"{self.api_base_url}/charge/{pedido.referencia_provedor}", headers=self._headers
        )
        cobranca = data.get("charge") or {}
        if not cobranca:
            return None
        return self._notificacao(cobranca.get("correlationID") or pedido.numero_pedido, cobranca.get("status") or "")


# ====================================================================
# CONSULTA DE CEP (ViaCEP)
# ====================================================================

class ViaCepGateway(IConsultaCep):
    """Consulta de endereço por CEP. Melhor esforço: falhas retornam None."""

    def __init__(self, base_url: str = "https://viacep.com.br/ws", timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def buscar(self, cep: str) -> Optional[Dict[str, str]]:
        digitos = re.sub(r"\D", "", cep or "")
        if len(digitos) != 8:
            return None
        try:
            response = requests.get(f"{self.base_url}/{digitos}/json/", timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Consulta ViaCEP para %s falhou: %s", digitos, e)
            return None

        if data.get("erro"):
            return None
        return {
            "cep": digitos,
            "rua": data.get("logradouro", ""),
            "complemento": data.get("complemento", ""),
            "bairro": data.get("bairro", ""),
            "cidade": data.get("localidade", ""),
            "estado": data.get("uf", ""),
        }
