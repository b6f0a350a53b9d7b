import hashlib
import hmac
import json
from decimal import Decimal
from io import StringIO
from unittest.mock import Mock, patch

import requests
import stripe
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase

from dflor.catalog.models import Produto as ProdutoModel
from dflor.core.entities import (
    Cliente, EnderecoEntrega, ItemPedido, Pedido, SelecaoFrete,
)
from dflor.core.exceptions import (
    AssinaturaInvalidaError,
    DadosInvalidosError,
    ErroProvedorPagamento,
    PayloadInvalidoError,
    ProdutoNaoEncontradoError,
    ProvedorNaoConfiguradoError,
)
from dflor.core.status import StatusPedido
from dflor.core.use_cases import ReconciliarPagamentoUseCase
from dflor.infrastructure.gateways import (
    MercadoPagoGateway,
    OpenPixGateway,
    PagSeguroGateway,
    StripeGateway,
    ViaCepGateway,
)
from dflor.infrastructure.repositories import (
    EstoqueRepositoryDjango,
    PedidoRepositoryDjango,
    ProdutoRepositoryDjango,
)


def resposta_http(dados, status_code=200):
    """Simula um requests.Response com corpo JSON."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = dados
    response.text = json.dumps(dados)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


def pedido_entidade(produto_id=None, numero="DFINFRA0001", **kwargs):
    dados = dict(
        numero_pedido=numero,
        cliente=Cliente(nome="Ana Souza", email="ana@example.com", telefone="(11) 98888-7777", cpf="529.982.247-25"),
        endereco=EnderecoEntrega(rua="Rua das Flores", numero="12", bairro="Centro",
                                 cidade="São Paulo", estado="SP", cep="01001000"),
        frete=SelecaoFrete(metodo="PAC", preco=Decimal("19.90"), prazo_dias=5),
        itens=[ItemPedido(produto_id=produto_id, nome_produto="Vestido Midi", quantidade=2,
                          preco_unitario=Decimal("100.00"), tamanho="M")],
        subtotal=Decimal("200.00"),
        desconto=Decimal("0.00"),
        total=Decimal("219.90"),
        provedor_pagamento="openpix",
        metodo_pagamento="pix",
    )
    dados.update(kwargs)
    return Pedido(**dados)


# ====================================================================
# REPOSITÓRIOS
# ====================================================================

class EstoqueRepositoryDjangoTest(TestCase):

    def setUp(self):
        self.produto = ProdutoModel.objects.create(
            nome="Vestido Midi", descricao="Vestido floral", preco=Decimal("100.00"),
            categoria="Vestidos", estoque=5,
        )
        self.repo = EstoqueRepositoryDjango()

    def test_decrementa_estoque(self):
        self.assertEqual(self.repo.decrementar(str(self.produto.id), 2), 3)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    def test_estoque_insuficiente_zera_sem_ficar_negativo(self):
        with self.assertLogs('dflor.infrastructure.repositories', level='WARNING'):
            resultado = self.repo.decrementar(str(self.produto.id), 8)
        self.assertEqual(resultado, 0)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 0)

    def test_baixa_em_um_unico_update(self):
        # UPDATE com limite em zero + leitura do saldo
        with self.assertNumQueries(2):
            resultado = self.repo.decrementar(str(self.produto.id), 9)
        self.assertEqual(resultado, 0)

    def test_produto_inexistente(self):
        with self.assertRaises(ProdutoNaoEncontradoError):
            self.repo.decrementar("6f1c2c1e-0000-4000-8000-000000000000", 1)

    def test_quantidade_invalida(self):
        with self.assertRaises(DadosInvalidosError):
            self.repo.decrementar(str(self.produto.id), 0)


class ProdutoRepositoryDjangoTest(TestCase):

    def test_buscar_por_id(self):
        vestido = ProdutoModel.objects.create(
            nome="Vestido", descricao="", preco=Decimal("150.00"), categoria="Vestidos", estoque=1,
            em_destaque=True, cores=[{"name": "Rosa", "hex": "#FFC0CB"}],
        )
        repo = ProdutoRepositoryDjango()

        entidade = repo.buscar_por_id(str(vestido.id))
        self.assertEqual(entidade.nome, "Vestido")
        self.assertEqual(entidade.cores[0].hex, "#FFC0CB")
        self.assertIsNone(repo.buscar_por_id("nao-e-uuid"))


class PedidoRepositoryDjangoTest(TestCase):

    def setUp(self):
        self.produto = ProdutoModel.objects.create(
            nome="Vestido Midi", descricao="", preco=Decimal("100.00"), categoria="Vestidos", estoque=5,
        )
        self.repo = PedidoRepositoryDjango()
        self.pedido = self.repo.criar(pedido_entidade(produto_id=str(self.produto.id)))

    def test_criar_grava_itens_e_snapshot(self):
        pedido = self.repo.buscar_por_numero("DFINFRA0001")
        self.assertEqual(pedido.status, StatusPedido.AGUARDANDO_PAGAMENTO)
        self.assertEqual(len(pedido.itens), 1)
        self.assertEqual(pedido.itens[0].preco_total, Decimal("200.00"))
        self.assertEqual(pedido.endereco.cep, "01001000")
        self.assertEqual(pedido.frete.metodo, "PAC")
        self.assertIsNotNone(pedido.data_criacao)

    def test_referencia_do_provedor(self):
        self.repo.definir_referencia_provedor(self.pedido.id, "cob-xyz")
        self.assertEqual(self.repo.buscar_por_numero("DFINFRA0001").referencia_provedor, "cob-xyz")

    def test_transicao_condicional_so_vence_uma_vez(self):
        """
        Cenário: duas transições a partir do mesmo status observado; a segunda perde.
        """
        primeira = self.repo.transicionar(self.pedido.id, StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGO)
        segunda = self.repo.transicionar(self.pedido.id, StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGO)

        self.assertTrue(primeira)
        self.assertFalse(segunda)
        pedido = self.repo.buscar_por_id(self.pedido.id)
        self.assertEqual(pedido.status, StatusPedido.PAGO)
        self.assertIsNotNone(pedido.data_pagamento)

    def test_data_de_pagamento_gravada_uma_unica_vez(self):
        self.repo.transicionar(self.pedido.id, StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGO)
        data_pagamento = self.repo.buscar_por_id(self.pedido.id).data_pagamento

        self.repo.transicionar(self.pedido.id, StatusPedido.PAGO, StatusPedido.ENVIADO)
        self.repo.transicionar(self.pedido.id, StatusPedido.ENVIADO, StatusPedido.ENTREGUE)
        self.repo.transicionar(self.pedido.id, StatusPedido.ENTREGUE, StatusPedido.ESTORNADO)

        pedido = self.repo.buscar_por_id(self.pedido.id)
        self.assertEqual(pedido.data_pagamento, data_pagamento)
        self.assertIsNotNone(pedido.data_envio)
        self.assertIsNotNone(pedido.data_entrega)

    def test_atualizar_campos_nao_altera_status(self):
        self.repo.atualizar_campos(self.pedido.id, {"status": "paid", "codigo_rastreio": "BR1"})
        pedido = self.repo.buscar_por_id(self.pedido.id)
        self.assertEqual(pedido.status, StatusPedido.AGUARDANDO_PAGAMENTO)
        self.assertEqual(pedido.codigo_rastreio, "BR1")

    def test_excluir_remove_itens(self):
        self.repo.excluir(self.pedido.id)
        self.assertIsNone(self.repo.buscar_por_numero("DFINFRA0001"))
        self.assertFalse(self.produto.itens_pedido.exists())

    def test_listagens(self):
        outro = pedido_entidade(numero="DFINFRA0002", cliente=Cliente(nome="Bia", email="bia@example.com"))
        self.repo.criar(outro)
        self.repo.transicionar(outro.id, StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.CANCELADO)

        self.assertEqual(len(self.repo.listar()), 2)
        self.assertEqual([p.numero_pedido for p in self.repo.listar(StatusPedido.CANCELADO)], ["DFINFRA0002"])
        self.assertEqual([p.numero_pedido for p in self.repo.listar_por_email("ANA@example.com")], ["DFINFRA0001"])

    def test_total_inconsistente_e_rejeitado(self):
        with self.assertRaises(ValidationError):
            self.repo.criar(pedido_entidade(numero="DFINFRA0003", total=Decimal("1.00")))


class ReconciliacaoComBancoTest(TestCase):
    """Reconciliação de ponta a ponta com os repositórios reais."""

    def setUp(self):
        self.produto = ProdutoModel.objects.create(
            nome="Vestido Midi", descricao="", preco=Decimal("100.00"), categoria="Vestidos", estoque=5,
        )
        self.pedido_repo = PedidoRepositoryDjango()
        self.pedido_repo.criar(pedido_entidade(produto_id=str(self.produto.id)))
        self.use_case = ReconciliarPagamentoUseCase(self.pedido_repo, EstoqueRepositoryDjango(), {})

    def test_pagamento_repetido_baixa_estoque_uma_vez(self):
        gateway = OpenPixGateway(app_id="app")
        corpo = json.dumps({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": "DFINFRA0001"}}).encode()

        primeiro = self.use_case.aplicar(gateway.interpretar_webhook(corpo, {}))
        segundo = self.use_case.aplicar(gateway.interpretar_webhook(corpo, {}))

        self.assertTrue(primeiro.aplicado)
        self.assertFalse(segundo.aplicado)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_recusa_apos_aprovacao_mantem_pedido_pago(self, mock_request):
        """
        Cenário: o Mercado Pago entrega a recusa de uma tentativa anterior depois da aprovação.
        """
        gateway = MercadoPagoGateway(access_token="TEST-token")
        corpo = json.dumps({"type": "payment", "data": {"id": "123"}}).encode()
        mock_request.side_effect = [
            resposta_http({"status": "approved", "external_reference": "DFINFRA0001"}),
            resposta_http({"status": "rejected", "status_detail": "cc_rejected_other_reason",
                           "external_reference": "DFINFRA0001"}),
        ]

        aprovado = self.use_case.aplicar(gateway.interpretar_webhook(corpo, {}))
        recusado = self.use_case.aplicar(gateway.interpretar_webhook(corpo, {}))

        self.assertTrue(aprovado.aplicado)
        self.assertFalse(recusado.aplicado)
        pedido = self.pedido_repo.buscar_por_numero("DFINFRA0001")
        self.assertEqual(pedido.status, StatusPedido.PAGO)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    def test_produto_removido_nao_impede_pagamento(self):
        self.produto.delete()
        gateway = OpenPixGateway(app_id="app")
        corpo = json.dumps({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": "DFINFRA0001"}}).encode()

        resultado = self.use_case.aplicar(gateway.interpretar_webhook(corpo, {}))

        self.assertTrue(resultado.aplicado)
        self.assertEqual(self.pedido_repo.buscar_por_numero("DFINFRA0001").status, StatusPedido.PAGO)


# ====================================================================
# GATEWAYS DE PAGAMENTO
# ====================================================================

class MercadoPagoGatewayTest(TestCase):

    def setUp(self):
        self.gateway = MercadoPagoGateway(access_token="TEST-token", webhook_secret="segredo",
                                          base_url="https://loja.example.com")

    def _assinatura(self, data_id, request_id, ts="1700000000"):
        manifesto = f"id:{data_id};request-id:{request_id};ts:{ts};"
        v1 = hmac.new(b"segredo", manifesto.encode(), hashlib.sha256).hexdigest()
        return {"x-signature": f"ts={ts},v1={v1}", "x-request-id": request_id}

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_criar_preferencia(self, mock_request):
        mock_request.return_value = resposta_http({"id": "pref-1", "init_point": "https://mp.example/pay"})

        cobranca = self.gateway.criar_cobranca(pedido_entidade())

        self.assertEqual(cobranca.referencia, "pref-1")
        self.assertEqual(cobranca.url_redirecionamento, "https://mp.example/pay")
        payload = mock_request.call_args.kwargs["json"]
        self.assertEqual(payload["external_reference"], "DFINFRA0001")
        self.assertEqual(payload["shipments"]["cost"], 19.9)
        self.assertEqual(payload["payer"]["identification"]["number"], "52998224725")
        self.assertEqual(payload["notification_url"], "https://loja.example.com/api/webhooks/mercadopago/")

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_desconto_maior_que_subtotal_cobra_o_total(self, mock_request):
        """
        Cenário: cupom cobre todo o subtotal e parte do frete; cobra-se o total como item único.
        """
        mock_request.return_value = resposta_http({"id": "pref-2", "init_point": "https://mp.example/pay"})
        pedido = pedido_entidade(desconto=Decimal("210.00"), total=Decimal("9.90"))

        self.gateway.criar_cobranca(pedido)

        payload = mock_request.call_args.kwargs["json"]
        self.assertEqual(len(payload["items"]), 1)
        self.assertEqual(payload["items"][0]["unit_price"], 9.9)
        self.assertNotIn("shipments", payload)

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_falha_http_vira_erro_do_provedor(self, mock_request):
        mock_request.return_value = resposta_http({"message": "invalid"}, status_code=400)
        with self.assertRaises(ErroProvedorPagamento):
            self.gateway.criar_cobranca(pedido_entidade())

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_timeout_vira_erro_do_provedor(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout("timeout")
        with self.assertRaises(ErroProvedorPagamento):
            self.gateway.criar_cobranca(pedido_entidade())

    def test_sem_credencial(self):
        with self.assertRaises(ProvedorNaoConfiguradoError):
            MercadoPagoGateway().criar_cobranca(pedido_entidade())

    def test_assinatura_valida_e_invalida(self):
        corpo = json.dumps({"type": "payment", "data": {"id": "123"}}).encode()
        self.gateway.verificar_webhook(corpo, self._assinatura("123", "req-1"))

        cabecalhos = self._assinatura("123", "req-1")
        cabecalhos["x-request-id"] = "req-2"
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(corpo, cabecalhos)
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(corpo, {})

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_interpretar_pagamento_aprovado(self, mock_request):
        mock_request.return_value = resposta_http({"status": "approved", "external_reference": "DFINFRA0001"})
        corpo = json.dumps({"type": "payment", "data": {"id": "123"}}).encode()

        notificacao = self.gateway.interpretar_webhook(corpo, {})

        self.assertEqual(notificacao.numero_pedido, "DFINFRA0001")
        self.assertEqual(notificacao.status, StatusPedido.PAGO)
        self.assertTrue(mock_request.call_args.args[1].endswith("/v1/payments/123"))

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_pagamento_rejeitado_traz_motivo(self, mock_request):
        mock_request.return_value = resposta_http({
            "status": "rejected", "status_detail": "cc_rejected_insufficient_amount", "external_reference": "DFINFRA0001",
        })
        notificacao = self.gateway.interpretar_webhook(json.dumps({"topic": "payment", "data": {"id": "9"}}).encode(), {})
        self.assertEqual(notificacao.status, StatusPedido.CANCELADO)
        self.assertEqual(notificacao.motivo_falha, "cc_rejected_insufficient_amount")

    def test_pending_nao_altera_pedido(self):
        self.assertIsNone(self.gateway.mapear_status("in_process"))
        self.assertEqual(self.gateway.mapear_status("charged_back"), StatusPedido.ESTORNADO)

    def test_evento_que_nao_e_pagamento(self):
        corpo = json.dumps({"type": "merchant_order", "data": {"id": "1"}}).encode()
        self.assertIsNone(self.gateway.interpretar_webhook(corpo, {}))

    def test_payload_invalido(self):
        with self.assertRaises(PayloadInvalidoError):
            self.gateway.interpretar_webhook(b"nao-e-json", {})
        with self.assertRaises(PayloadInvalidoError):
            self.gateway.interpretar_webhook(json.dumps({"type": "payment", "data": {}}).encode(), {})


class StripeGatewayTest(TestCase):

    def setUp(self):
        self.gateway = StripeGateway(secret_key="sk_test_123", webhook_secret="whsec_123")

    def _evento(self, tipo, objeto):
        return json.dumps({"type": tipo, "data": {"object": objeto}}).encode()

    def test_cliente_http_instalado_uma_vez(self):
        cliente = stripe.default_http_client

        StripeGateway(secret_key="sk_test_123")

        self.assertIs(stripe.default_http_client, cliente)
        self.assertIsInstance(cliente, stripe.RequestsClient)

    @patch('dflor.infrastructure.gateways.stripe.checkout.Session.create')
    def test_criar_sessao_embutida(self, mock_create):
        mock_create.return_value = {"id": "cs_test_1", "client_secret": "cs_secret"}

        cobranca = self.gateway.criar_cobranca(pedido_entidade())

        self.assertEqual(cobranca.referencia, "cs_test_1")
        self.assertEqual(cobranca.client_secret, "cs_secret")
        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk_test_123")
        self.assertEqual(kwargs["ui_mode"], "embedded")
        self.assertEqual(kwargs["metadata"], {"order_number": "DFINFRA0001"})
        self.assertEqual(kwargs["line_items"][0]["price_data"]["unit_amount"], 10000)
        self.assertEqual(kwargs["line_items"][1]["price_data"]["unit_amount"], 1990)

    @patch('dflor.infrastructure.gateways.stripe.checkout.Session.create')
    @patch('dflor.infrastructure.gateways.stripe.Coupon.create')
    def test_desconto_vira_cupom(self, mock_coupon, mock_create):
        mock_coupon.return_value = {"id": "cupom_1"}
        mock_create.return_value = {"id": "cs_test_2", "client_secret": "s"}

        self.gateway.criar_cobranca(pedido_entidade(desconto=Decimal("10.00"), total=Decimal("209.90")))

        self.assertEqual(mock_coupon.call_args.kwargs["amount_off"], 1000)
        self.assertEqual(mock_create.call_args.kwargs["discounts"], [{"coupon": "cupom_1"}])

    @patch('dflor.infrastructure.gateways.stripe.checkout.Session.create')
    def test_erro_do_sdk_vira_erro_do_provedor(self, mock_create):
        mock_create.side_effect = stripe.APIConnectionError("sem rede")
        with self.assertRaises(ErroProvedorPagamento):
            self.gateway.criar_cobranca(pedido_entidade())

    @patch('dflor.infrastructure.gateways.stripe.Webhook.construct_event')
    def test_assinatura_invalida(self, mock_construct):
        mock_construct.side_effect = stripe.SignatureVerificationError("assinatura", "t=1,v1=x")
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(b"{}", {"Stripe-Signature": "t=1,v1=x"})
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(b"{}", {})

    def test_sessao_concluida_paga_e_nao_paga(self):
        pago = self.gateway.interpretar_webhook(
            self._evento("checkout.session.completed", {"payment_status": "paid", "metadata": {"order_number": "DF1"}}), {}
        )
        self.assertEqual((pago.numero_pedido, pago.status), ("DF1", StatusPedido.PAGO))

        aguardando = self.gateway.interpretar_webhook(
            self._evento("checkout.session.completed", {"payment_status": "unpaid", "client_reference_id": "DF2"}), {}
        )
        self.assertEqual(aguardando.numero_pedido, "DF2")
        self.assertIsNone(aguardando.status)

    def test_pagamento_recusado(self):
        notificacao = self.gateway.interpretar_webhook(self._evento("payment_intent.payment_failed", {
            "metadata": {"order_number": "DF3"}, "last_payment_error": {"message": "Cartão recusado"},
        }), {})
        self.assertEqual(notificacao.status, StatusPedido.PAGAMENTO_FALHOU)
        self.assertEqual(notificacao.motivo_falha, "Cartão recusado")

    @patch('dflor.infrastructure.gateways.stripe.PaymentIntent.retrieve')
    def test_estorno_resolve_pedido_pelo_payment_intent(self, mock_retrieve):
        mock_retrieve.return_value = {"metadata": {"order_number": "DF4"}}

        notificacao = self.gateway.interpretar_webhook(
            self._evento("charge.refunded", {"payment_intent": "pi_1", "metadata": {}}), {}
        )

        self.assertEqual(notificacao.numero_pedido, "DF4")
        self.assertEqual(notificacao.status, StatusPedido.ESTORNADO)
        mock_retrieve.assert_called_once_with("pi_1", api_key="sk_test_123")

    def test_evento_desconhecido(self):
        self.assertIsNone(self.gateway.interpretar_webhook(self._evento("customer.created", {}), {}))

    @patch('dflor.infrastructure.gateways.stripe.checkout.Session.retrieve')
    def test_consulta_de_sessao_expirada(self, mock_retrieve):
        mock_retrieve.return_value = {"status": "expired", "payment_status": "unpaid"}
        notificacao = self.gateway.consultar_status(pedido_entidade(referencia_provedor="cs_1"))
        self.assertEqual(notificacao.status, StatusPedido.EXPIRADO)


class PagSeguroGatewayTest(TestCase):

    def setUp(self):
        self.gateway = PagSeguroGateway(token="ps-token", base_url="https://loja.example.com")

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_criar_checkout_pix(self, mock_request):
        mock_request.return_value = resposta_http({
            "id": "CHEC_1", "links": [{"rel": "SELF", "href": "x"}, {"rel": "PAY", "href": "https://pag.example/pay"}],
        })

        cobranca = self.gateway.criar_cobranca(pedido_entidade())

        self.assertEqual(cobranca.referencia, "CHEC_1")
        self.assertEqual(cobranca.url_redirecionamento, "https://pag.example/pay")
        payload = mock_request.call_args.kwargs["json"]
        self.assertEqual(payload["payment_methods"], [{"type": "PIX"}])
        self.assertEqual(payload["shipping"]["amount"], 1990)
        self.assertEqual(payload["customer"]["phone"]["area"], "11")
        self.assertTrue(mock_request.call_args.args[1].startswith("https://sandbox.api.pagseguro.com"))

    def test_assinatura(self):
        corpo = b'{"reference_id": "DF1"}'
        assinatura = hashlib.sha256(b"ps-token-" + corpo).hexdigest()
        self.gateway.verificar_webhook(corpo, {"x-authenticity-token": assinatura})
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(corpo, {"x-authenticity-token": "0" * 64})

    def test_interpretar_status_da_cobranca(self):
        pago = self.gateway.interpretar_webhook(
            json.dumps({"reference_id": "DF1", "charges": [{"status": "PAID"}]}).encode(), {}
        )
        self.assertEqual((pago.numero_pedido, pago.status), ("DF1", StatusPedido.PAGO))

        recusado = self.gateway.interpretar_webhook(json.dumps({
            "reference_id": "DF1", "charges": [{"status": "DECLINED", "payment_response": {"message": "NEGADO"}}],
        }).encode(), {})
        self.assertEqual(recusado.status, StatusPedido.CANCELADO)
        self.assertEqual(recusado.motivo_falha, "NEGADO")

        self.assertIsNone(self.gateway.interpretar_webhook(b'{"reference_id": "DF1", "charges": []}', {}))


class OpenPixGatewayTest(TestCase):

    def setUp(self):
        self.gateway = OpenPixGateway(app_id="app-id", webhook_secret="segredo")

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_criar_cobranca_pix(self, mock_request):
        mock_request.return_value = resposta_http({"charge": {
            "identifier": "id-1", "correlationID": "DFINFRA0001", "brCode": "000201...",
            "qrCodeImage": "https://openpix.example/qr.png", "paymentLinkUrl": "https://openpix.example/pay",
        }})

        cobranca = self.gateway.criar_cobranca(pedido_entidade())

        self.assertEqual(cobranca.pix_copia_cola, "000201...")
        self.assertEqual(cobranca.expira_em_segundos, 3600)
        payload = mock_request.call_args.kwargs["json"]
        self.assertEqual(payload["value"], 21990)
        self.assertEqual(payload["correlationID"], "DFINFRA0001")
        self.assertEqual(payload["customer"]["phone"], "5511988887777")
        self.assertEqual(payload["customer"]["taxID"], "52998224725")

    def test_assinatura(self):
        corpo = b'{"event": "OPENPIX:CHARGE_COMPLETED"}'
        assinatura = hmac.new(b"segredo", corpo, hashlib.sha256).hexdigest()
        self.gateway.verificar_webhook(corpo, {"X-Webhook-Signature": assinatura})
        with self.assertRaises(AssinaturaInvalidaError):
            self.gateway.verificar_webhook(corpo, {"x-webhook-signature": "errada"})

    def test_eventos(self):
        recebido = self.gateway.interpretar_webhook(json.dumps({
            "event": "OPENPIX:TRANSACTION_RECEIVED", "pix": {"charge": {"correlationID": "DF1"}},
        }).encode(), {})
        self.assertEqual((recebido.numero_pedido, recebido.status), ("DF1", StatusPedido.PAGO))

        estorno = self.gateway.interpretar_webhook(json.dumps({
            "event": "OPENPIX:TRANSACTION_REFUND_RECEIVED", "refund": {"correlationID": "DF2"},
        }).encode(), {})
        self.assertEqual((estorno.numero_pedido, estorno.status), ("DF2", StatusPedido.ESTORNADO))

        expirado = self.gateway.interpretar_webhook(json.dumps({
            "event": "OPENPIX:CHARGE_EXPIRED", "charge": {"correlationID": "DF3"},
        }).encode(), {})
        self.assertEqual(expirado.status, StatusPedido.EXPIRADO)

        self.assertIsNone(self.gateway.interpretar_webhook(b'{"event": "teste_webhook"}', {}))

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_consulta_cobranca_ativa(self, mock_request):
        mock_request.return_value = resposta_http({"charge": {"status": "ACTIVE", "correlationID": "DF1"}})
        notificacao = self.gateway.consultar_status(pedido_entidade(referencia_provedor="id-1"))
        self.assertIsNone(notificacao.status)
        self.assertEqual(notificacao.status_bruto, "ACTIVE")


class ViaCepGatewayTest(TestCase):

    @patch('dflor.infrastructure.gateways.requests.get')
    def test_endereco_encontrado(self, mock_get):
        mock_get.return_value = resposta_http({
            "cep": "01001-000", "logradouro": "Praça da Sé", "complemento": "lado ímpar",
            "bairro": "Sé", "localidade": "São Paulo", "uf": "SP",
        })
        endereco = ViaCepGateway().buscar("01001-000")
        self.assertEqual(endereco["rua"], "Praça da Sé")
        self.assertEqual(endereco["estado"], "SP")

    @patch('dflor.infrastructure.gateways.requests.get')
    def test_falhas_retornam_none(self, mock_get):
        mock_get.return_value = resposta_http({"erro": True})
        self.assertIsNone(ViaCepGateway().buscar("99999999"))

        mock_get.side_effect = requests.exceptions.ConnectionError("offline")
        self.assertIsNone(ViaCepGateway().buscar("01001000"))
        self.assertIsNone(ViaCepGateway().buscar("123"))


# ====================================================================
# COMANDOS DE GERENCIAMENTO
# ====================================================================

class ComandosTest(TestCase):

    def test_carregar_produtos_nao_duplica(self):
        call_command('carregar_produtos', stdout=StringIO())
        call_command('carregar_produtos', stdout=StringIO())
        self.assertEqual(ProdutoModel.objects.count(), 4)

    def test_expirar_pedidos_sem_pendentes(self):
        saida = StringIO()
        call_command('expirar_pedidos', stdout=saida)
        self.assertIn('0 pedido(s) expirado(s).', saida.getvalue())
