# dflor/core/testes.py

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock

from dflor.core.entities import (
    Cliente, CobrancaCriada, EnderecoEntrega, ItemCheckout, ItemPedido,
    NotificacaoPagamento, Pedido, Produto, SelecaoFrete,
)
from dflor.core.exceptions import (
    AssinaturaInvalidaError,
    CarrinhoVazioError,
    CepInvalidoError,
    DadosInvalidosError,
    ErroProvedorPagamento,
    EstoqueInsuficienteError,
    PagamentoFalhouError,
    PedidoNaoEncontradoError,
    ProdutoNaoEncontradoError,
    ProvedorDesconhecidoError,
    ProvedorNaoConfiguradoError,
    StatusInvalidoError,
    TransicaoInvalidaError,
)
from dflor.core.frete import estimar_frete, selecionar_opcao
from dflor.core.numero_pedido import cpf_valido, gerar_numero_pedido
from dflor.core.status import (
    StatusPedido, evento_provedor_permitido, is_terminal, parse_status, pode_transicionar,
)
from dflor.core.use_cases import (
    AtualizarPedidoAdminUseCase,
    ConsultarPedidosUseCase,
    ConsultarStatusPagamentoUseCase,
    CriarPedidoUseCase,
    ExpirarPedidosPendentesUseCase,
    ReconciliarPagamentoUseCase,
)


def criar_pedido_entidade(status=StatusPedido.AGUARDANDO_PAGAMENTO, itens=None, **kwargs):
    """Monta um Pedido de teste com dois itens."""
    if itens is None:
        itens = [
            ItemPedido(produto_id="prod-1", nome_produto="Vestido Midi", quantidade=2, preco_unitario=Decimal("100.00")),
            ItemPedido(produto_id="prod-2", nome_produto="Blusa de Seda", quantidade=1, preco_unitario=Decimal("50.00")),
        ]
    dados = dict(
        numero_pedido="DFTESTE0001",
        cliente=Cliente(nome="Maria Silva", email="maria@example.com"),
        endereco=EnderecoEntrega(rua="Av. Paulista", numero="1000", bairro="Bela Vista",
                                 cidade="São Paulo", estado="SP", cep="01310100"),
        frete=SelecaoFrete(metodo="PAC", preco=Decimal("19.90"), prazo_dias=5),
        itens=itens,
        subtotal=Decimal("250.00"),
        desconto=Decimal("0.00"),
        total=Decimal("269.90"),
        provedor_pagamento="fake",
        metodo_pagamento="pix",
        status=status,
        referencia_provedor="ref-123",
    )
    dados.update(kwargs)
    return Pedido(**dados)


# ====================================================================
# MÁQUINA DE ESTADOS
# ====================================================================

class TestMaquinaDeEstados(unittest.TestCase):

    def test_transicoes_permitidas_a_partir_de_pending(self):
        """
        Cenário: pedido aguardando pagamento pode ser pago, cancelado, expirado ou recusado.
        """
        atual = StatusPedido.AGUARDANDO_PAGAMENTO
        for destino in (StatusPedido.PAGO, StatusPedido.CANCELADO, StatusPedido.EXPIRADO, StatusPedido.PAGAMENTO_FALHOU):
            self.assertTrue(pode_transicionar(atual, destino), destino)
        self.assertFalse(pode_transicionar(atual, StatusPedido.ENVIADO))
        self.assertFalse(pode_transicionar(atual, StatusPedido.ESTORNADO))

    def test_pagamento_recusado_ainda_pode_ser_pago(self):
        self.assertTrue(pode_transicionar(StatusPedido.PAGAMENTO_FALHOU, StatusPedido.PAGO))
        self.assertFalse(pode_transicionar(StatusPedido.PAGAMENTO_FALHOU, StatusPedido.ESTORNADO))

    def test_fluxo_de_entrega(self):
        self.assertTrue(pode_transicionar(StatusPedido.PAGO, StatusPedido.EM_PREPARO))
        self.assertTrue(pode_transicionar(StatusPedido.PAGO, StatusPedido.ENVIADO))
        self.assertTrue(pode_transicionar(StatusPedido.EM_PREPARO, StatusPedido.ENVIADO))
        self.assertTrue(pode_transicionar(StatusPedido.ENVIADO, StatusPedido.ENTREGUE))
        self.assertTrue(pode_transicionar(StatusPedido.ENTREGUE, StatusPedido.ESTORNADO))
        self.assertFalse(pode_transicionar(StatusPedido.ENVIADO, StatusPedido.CANCELADO))
        self.assertFalse(pode_transicionar(StatusPedido.PAGO, StatusPedido.AGUARDANDO_PAGAMENTO))

    def test_status_terminais(self):
        for status in (StatusPedido.CANCELADO, StatusPedido.EXPIRADO, StatusPedido.ESTORNADO):
            self.assertTrue(is_terminal(status))
            for destino in StatusPedido:
                self.assertFalse(pode_transicionar(status, destino))
        self.assertFalse(is_terminal(StatusPedido.ENTREGUE))

    def test_eventos_de_provedor_nao_cancelam_pedido_pago(self):
        """
        Cenário: cancelar pedido pago é permitido ao admin, mas não a um evento do provedor.
        """
        for atual in (StatusPedido.PAGO, StatusPedido.EM_PREPARO):
            self.assertTrue(pode_transicionar(atual, StatusPedido.CANCELADO))
            for destino in (StatusPedido.CANCELADO, StatusPedido.PAGAMENTO_FALHOU, StatusPedido.EXPIRADO):
                self.assertFalse(evento_provedor_permitido(atual, destino), (atual, destino))
        self.assertTrue(evento_provedor_permitido(StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.CANCELADO))
        self.assertTrue(evento_provedor_permitido(StatusPedido.PAGAMENTO_FALHOU, StatusPedido.PAGO))
        self.assertTrue(evento_provedor_permitido(StatusPedido.ENVIADO, StatusPedido.ESTORNADO))

    def test_parse_status(self):
        self.assertEqual(parse_status("paid"), StatusPedido.PAGO)
        self.assertEqual(parse_status(StatusPedido.ENVIADO), StatusPedido.ENVIADO)
        self.assertIsNone(parse_status("pago"))


# ====================================================================
# FRETE, NÚMERO DO PEDIDO E CPF
# ====================================================================

class TestEstimadorFrete(unittest.TestCase):

    def test_mesma_regiao_capital(self):
        pac, sedex = estimar_frete("01310-100", "01001-000")
        self.assertEqual((pac.codigo, pac.preco, pac.prazo_dias), ("PAC", Decimal("19.90"), 5))
        self.assertEqual((sedex.codigo, sedex.preco, sedex.prazo_dias), ("SEDEX", Decimal("29.90"), 2))

    def test_regiao_vizinha_interior_soma_dias(self):
        pac, sedex = estimar_frete("01310100", "13083970")
        self.assertEqual((pac.preco, pac.prazo_dias), (Decimal("24.90"), 9))
        self.assertEqual((sedex.preco, sedex.prazo_dias), (Decimal("39.90"), 4))

    def test_regiao_distante(self):
        pac, sedex = estimar_frete("01310100", "69000000")
        self.assertEqual((pac.preco, pac.prazo_dias), (Decimal("34.90"), 12))
        self.assertEqual((sedex.preco, sedex.prazo_dias), (Decimal("54.90"), 5))

    def test_adicional_por_peso_acima_de_um_kg(self):
        pac, sedex = estimar_frete("01310100", "01001000", Decimal("2.5"))
        self.assertEqual(pac.preco, Decimal("24.90"))
        self.assertEqual(sedex.preco, Decimal("37.90"))

    def test_cep_invalido(self):
        with self.assertRaises(CepInvalidoError):
            estimar_frete("01310100", "1234")
        with self.assertRaises(CepInvalidoError):
            estimar_frete("", "01001000")

    def test_deterministico(self):
        self.assertEqual(estimar_frete("30130000", "80010000"), estimar_frete("30130000", "80010000"))

    def test_selecionar_opcao_inexistente(self):
        opcoes = estimar_frete("01310100", "01001000")
        self.assertEqual(selecionar_opcao(opcoes, "sedex").codigo, "SEDEX")
        with self.assertRaises(DadosInvalidosError):
            selecionar_opcao(opcoes, "MOTOBOY")


class TestNumeroPedidoECpf(unittest.TestCase):

    def test_formato_do_numero(self):
        numero = gerar_numero_pedido(agora_ms=36)
        self.assertTrue(numero.startswith("DF10"))
        self.assertEqual(len(numero), 8)
        self.assertEqual(numero, numero.upper())

    def test_numeros_distintos(self):
        self.assertNotEqual(gerar_numero_pedido(), gerar_numero_pedido())

    def test_cpf(self):
        self.assertTrue(cpf_valido("529.982.247-25"))
        self.assertFalse(cpf_valido("529.982.247-24"))
        self.assertFalse(cpf_valido("111.111.111-11"))
        self.assertFalse(cpf_valido("123"))


# ====================================================================
# CHECKOUT
# ====================================================================

class TestCriarPedidoUseCase(unittest.TestCase):

    def setUp(self):
        """
        Prepara repositórios e provedor simulados (Mock).
        """
        self.pedido_repo_mock = Mock()
        self.pedido_repo_mock.criar.side_effect = lambda pedido: pedido
        self.produto_repo_mock = Mock()
        self.provedor_mock = Mock()
        self.provedor_mock.nome = "fake"
        self.provedor_mock.metodo_pagamento = "pix"
        self.provedor_mock.criar_cobranca.return_value = CobrancaCriada(
            referencia="cob-1", pix_copia_cola="000201..."
        )

        self.produto = Produto(
            id="prod-1", nome="Vestido Midi", descricao="", preco=Decimal("100.00"),
            estoque=3, categoria="Vestidos", tamanhos=["P", "M"], peso_kg=Decimal("0.4"),
        )
        self.produto_repo_mock.buscar_por_id.return_value = self.produto

        self.use_case = CriarPedidoUseCase(
            pedido_repo=self.pedido_repo_mock,
            produto_repo=self.produto_repo_mock,
            provedores={"fake": self.provedor_mock},
            cep_origem="01310100",
        )
        self.cliente = Cliente(nome="Maria Silva", email="maria@example.com", cpf="529.982.247-25")
        self.endereco = EnderecoEntrega(rua="Rua A", numero="10", bairro="Centro",
                                        cidade="São Paulo", estado="SP", cep="01001-000")

    def _executar(self, itens=None, **kwargs):
        dados = dict(
            provedor="fake",
            itens=itens if itens is not None else [ItemCheckout(produto_id="prod-1", quantidade=2, tamanho="M")],
            cliente=self.cliente,
            endereco=self.endereco,
            metodo_envio="PAC",
        )
        dados.update(kwargs)
        return self.use_case.executar(**dados)

    def test_criar_pedido_com_sucesso(self):
        """
        Cenário: carrinho válido gera pedido pendente e cobrança no provedor.
        """
        # ACT
        resultado = self._executar()

        # ASSERT
        self.assertTrue(resultado.numero_pedido.startswith("DF"))
        self.assertEqual(resultado.total, Decimal("219.90"))
        self.assertEqual(resultado.cobranca.referencia, "cob-1")

        pedido_gravado = self.pedido_repo_mock.criar.call_args[0][0]
        self.assertEqual(pedido_gravado.status, StatusPedido.AGUARDANDO_PAGAMENTO)
        self.assertEqual(pedido_gravado.subtotal, Decimal("200.00"))
        self.assertEqual(pedido_gravado.frete.preco, Decimal("19.90"))
        self.assertEqual(pedido_gravado.itens[0].preco_total, Decimal("200.00"))
        self.assertEqual(pedido_gravado.endereco.cep, "01001000")
        self.pedido_repo_mock.definir_referencia_provedor.assert_called_once_with(pedido_gravado.id, "cob-1")
        self.pedido_repo_mock.excluir.assert_not_called()

    def test_desconto_reduz_total(self):
        resultado = self._executar(desconto=Decimal("19.90"))
        self.assertEqual(resultado.total, Decimal("200.00"))

    def test_desconto_maior_que_o_pedido(self):
        with self.assertRaises(DadosInvalidosError):
            self._executar(desconto=Decimal("500.00"))
        self.pedido_repo_mock.criar.assert_not_called()

    def test_carrinho_vazio(self):
        with self.assertRaises(CarrinhoVazioError):
            self._executar(itens=[])
        self.pedido_repo_mock.criar.assert_not_called()

    def test_estoque_insuficiente_somando_linhas(self):
        """
        Cenário: duas linhas do mesmo produto somam mais que o estoque.
        """
        itens = [
            ItemCheckout(produto_id="prod-1", quantidade=2, tamanho="P"),
            ItemCheckout(produto_id="prod-1", quantidade=2, tamanho="M"),
        ]
        with self.assertRaises(EstoqueInsuficienteError):
            self._executar(itens=itens)
        self.pedido_repo_mock.criar.assert_not_called()

    def test_tamanho_inexistente(self):
        with self.assertRaises(DadosInvalidosError):
            self._executar(itens=[ItemCheckout(produto_id="prod-1", quantidade=1, tamanho="GG")])

    def test_quantidade_zero(self):
        with self.assertRaises(DadosInvalidosError):
            self._executar(itens=[ItemCheckout(produto_id="prod-1", quantidade=0)])

    def test_produto_inexistente(self):
        self.produto_repo_mock.buscar_por_id.return_value = None
        with self.assertRaises(ProdutoNaoEncontradoError):
            self._executar()

    def test_cpf_invalido(self):
        self.cliente.cpf = "111.111.111-11"
        with self.assertRaises(DadosInvalidosError):
            self._executar()

    def test_provedor_desconhecido(self):
        with self.assertRaises(ProvedorDesconhecidoError):
            self._executar(provedor="paypal")

    def test_provedor_nao_configurado_nao_grava_nada(self):
        self.provedor_mock.verificar_configuracao.side_effect = ProvedorNaoConfiguradoError("fake")
        with self.assertRaises(ProvedorNaoConfiguradoError):
            self._executar()
        self.pedido_repo_mock.criar.assert_not_called()

    def test_falha_no_provedor_remove_pedido(self):
        """
        Cenário: o provedor falha ao criar a cobrança; o pedido é removido.
        """
        self.provedor_mock.criar_cobranca.side_effect = ErroProvedorPagamento("fake", "timeout")

        with self.assertRaises(PagamentoFalhouError):
            self._executar()

        pedido_gravado = self.pedido_repo_mock.criar.call_args[0][0]
        self.pedido_repo_mock.excluir.assert_called_once_with(pedido_gravado.id)
        self.pedido_repo_mock.definir_referencia_provedor.assert_not_called()


# ====================================================================
# RECONCILIAÇÃO
# ====================================================================

class TestReconciliarPagamentoUseCase(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.estoque_repo_mock = Mock()
        self.provedor_mock = Mock()
        self.provedor_mock.nome = "fake"
        self.use_case = ReconciliarPagamentoUseCase(
            pedido_repo=self.pedido_repo_mock,
            estoque_repo=self.estoque_repo_mock,
            provedores={"fake": self.provedor_mock},
        )

    def _notificacao(self, status, bruto="approved", numero="DFTESTE0001"):
        return NotificacaoPagamento(provedor="fake", numero_pedido=numero, status_bruto=bruto, status=status)

    def test_pagamento_aprovado_baixa_estoque_uma_vez_por_item(self):
        """
        Cenário: webhook 'pago' num pedido pendente vence o CAS e baixa o estoque.
        """
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido
        self.pedido_repo_mock.transicionar.return_value = True

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO))

        self.assertTrue(resultado.aplicado)
        self.assertEqual(resultado.status_atual, StatusPedido.PAGO)
        self.pedido_repo_mock.transicionar.assert_called_once_with(
            pedido.id, StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGO, {"status_pagamento": "approved"}
        )
        self.assertEqual(self.estoque_repo_mock.decrementar.call_count, 2)
        self.estoque_repo_mock.decrementar.assert_any_call("prod-1", 2)
        self.estoque_repo_mock.decrementar.assert_any_call("prod-2", 1)

    def test_perdedor_da_corrida_nao_baixa_estoque(self):
        """
        Cenário: dois webhooks 'pago' concorrentes; o segundo perde o CAS.
        """
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade()
        self.pedido_repo_mock.transicionar.return_value = False

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO))

        self.assertFalse(resultado.aplicado)
        self.assertEqual(resultado.motivo, "concorrencia")
        self.estoque_repo_mock.decrementar.assert_not_called()

    def test_evento_repetido_e_noop(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade(status=StatusPedido.PAGO)

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO))

        self.assertFalse(resultado.aplicado)
        self.pedido_repo_mock.transicionar.assert_not_called()
        self.estoque_repo_mock.decrementar.assert_not_called()

    def test_pending_atrasado_nao_regride_pedido_pago(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade(status=StatusPedido.PAGO)

        resultado = self.use_case.aplicar(self._notificacao(None, bruto="pending"))

        self.assertFalse(resultado.aplicado)
        self.pedido_repo_mock.transicionar.assert_not_called()
        self.pedido_repo_mock.atualizar_campos.assert_not_called()

    def test_pending_em_pedido_pendente_registra_status_bruto(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido

        self.use_case.aplicar(self._notificacao(None, bruto="in_process"))

        self.pedido_repo_mock.atualizar_campos.assert_called_once_with(pedido.id, {"status_pagamento": "in_process"})
        self.pedido_repo_mock.transicionar.assert_not_called()

    def test_transicao_nao_permitida_e_ignorada(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade(status=StatusPedido.CANCELADO)

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO))

        self.assertFalse(resultado.aplicado)
        self.assertEqual(resultado.motivo, "transicao_nao_permitida")
        self.pedido_repo_mock.transicionar.assert_not_called()

    def test_recusa_atrasada_nao_cancela_pedido_pago(self):
        """
        Cenário: a recusa de uma tentativa anterior chega depois da aprovação.
        """
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade(status=StatusPedido.PAGO)

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.CANCELADO, bruto="rejected"))

        self.assertFalse(resultado.aplicado)
        self.assertEqual(resultado.status_atual, StatusPedido.PAGO)
        self.assertEqual(resultado.motivo, "transicao_nao_permitida")
        self.pedido_repo_mock.transicionar.assert_not_called()

    def test_estorno_do_provedor_em_pedido_enviado(self):
        pedido = criar_pedido_entidade(status=StatusPedido.ENVIADO)
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido
        self.pedido_repo_mock.transicionar.return_value = True

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.ESTORNADO, bruto="refunded"))

        self.assertTrue(resultado.aplicado)
        self.estoque_repo_mock.decrementar.assert_not_called()

    def test_pedido_inexistente(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = None

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO, numero="DFNAOEXISTE"))

        self.assertFalse(resultado.aplicado)
        self.assertEqual(resultado.motivo, "pedido_nao_encontrado")

    def test_sem_numero_de_pedido(self):
        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO, numero=None))
        self.assertEqual(resultado.motivo, "sem_correlacao")
        self.pedido_repo_mock.buscar_por_numero.assert_not_called()

    def test_falha_em_um_item_nao_bloqueia_os_demais(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade()
        self.pedido_repo_mock.transicionar.return_value = True
        self.estoque_repo_mock.decrementar.side_effect = [ProdutoNaoEncontradoError(), 10]

        resultado = self.use_case.aplicar(self._notificacao(StatusPedido.PAGO))

        self.assertTrue(resultado.aplicado)
        self.assertEqual(self.estoque_repo_mock.decrementar.call_count, 2)

    def test_motivo_de_falha_e_gravado(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido
        self.pedido_repo_mock.transicionar.return_value = True
        notificacao = NotificacaoPagamento(
            provedor="fake", numero_pedido=pedido.numero_pedido, status_bruto="payment_intent.payment_failed",
            status=StatusPedido.PAGAMENTO_FALHOU, motivo_falha="Cartão recusado",
        )

        self.use_case.aplicar(notificacao)

        campos = self.pedido_repo_mock.transicionar.call_args[0][3]
        self.assertEqual(campos["motivo_falha"], "Cartão recusado")
        self.estoque_repo_mock.decrementar.assert_not_called()

    def test_webhook_evento_desconhecido(self):
        self.provedor_mock.interpretar_webhook.return_value = None

        resultado = self.use_case.processar_webhook("fake", b"{}", {})

        self.assertEqual(resultado.motivo, "evento_ignorado")
        self.pedido_repo_mock.buscar_por_numero.assert_not_called()

    def test_webhook_assinatura_invalida_propaga(self):
        self.provedor_mock.verificar_webhook.side_effect = AssinaturaInvalidaError()

        with self.assertRaises(AssinaturaInvalidaError):
            self.use_case.processar_webhook("fake", b"{}", {})
        self.provedor_mock.interpretar_webhook.assert_not_called()


class TestConsultarStatusPagamentoUseCase(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.provedor_mock = Mock()
        self.reconciliador_mock = Mock()
        self.use_case = ConsultarStatusPagamentoUseCase(
            self.pedido_repo_mock, {"fake": self.provedor_mock}, self.reconciliador_mock
        )

    def test_pedido_inexistente(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = None
        with self.assertRaises(PedidoNaoEncontradoError):
            self.use_case.executar("DFNAOEXISTE")

    def test_pendente_consulta_provedor_e_reconcilia(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido
        notificacao = NotificacaoPagamento("fake", None, "COMPLETED", StatusPedido.PAGO)
        self.provedor_mock.consultar_status.return_value = notificacao

        self.use_case.executar(pedido.numero_pedido)

        self.assertEqual(notificacao.numero_pedido, pedido.numero_pedido)
        self.reconciliador_mock.aplicar.assert_called_once_with(notificacao)

    def test_pedido_pago_nao_consulta_provedor(self):
        self.pedido_repo_mock.buscar_por_numero.return_value = criar_pedido_entidade(status=StatusPedido.PAGO)
        self.use_case.executar("DFTESTE0001")
        self.provedor_mock.consultar_status.assert_not_called()

    def test_falha_do_provedor_retorna_status_armazenado(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.buscar_por_numero.return_value = pedido
        self.provedor_mock.consultar_status.side_effect = ErroProvedorPagamento("fake")

        self.assertIs(self.use_case.executar(pedido.numero_pedido), pedido)
        self.reconciliador_mock.aplicar.assert_not_called()


class TestExpirarPedidosPendentesUseCase(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.provedor_mock = Mock()
        self.provedor_mock.prazo_expiracao = timedelta(hours=1)
        self.reconciliador_mock = Mock()
        self.agora = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)
        self.use_case = ExpirarPedidosPendentesUseCase(
            self.pedido_repo_mock, {"fake": self.provedor_mock}, self.reconciliador_mock,
            relogio=lambda: self.agora,
        )

    def test_expira_pedido_nao_pago(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.listar_pendentes_criados_antes.return_value = [pedido]
        self.provedor_mock.consultar_status.return_value = None
        self.reconciliador_mock.transicionar.return_value = Mock(aplicado=True)

        self.assertEqual(self.use_case.executar(), 1)

        self.pedido_repo_mock.listar_pendentes_criados_antes.assert_called_once_with(
            "fake", self.agora - timedelta(hours=1)
        )
        self.reconciliador_mock.transicionar.assert_called_once_with(pedido, StatusPedido.EXPIRADO)

    def test_pedido_pago_no_provedor_nao_expira(self):
        pedido = criar_pedido_entidade()
        self.pedido_repo_mock.listar_pendentes_criados_antes.return_value = [pedido]
        self.provedor_mock.consultar_status.return_value = NotificacaoPagamento(
            "fake", pedido.numero_pedido, "COMPLETED", StatusPedido.PAGO
        )
        self.reconciliador_mock.aplicar.return_value = Mock(aplicado=True)

        self.assertEqual(self.use_case.executar(), 0)
        self.reconciliador_mock.transicionar.assert_not_called()


# ====================================================================
# ADMIN
# ====================================================================

class TestAtualizarPedidoAdminUseCase(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.reconciliador_mock = Mock()
        self.reconciliador_mock.transicionar.return_value = Mock(aplicado=True)
        self.use_case = AtualizarPedidoAdminUseCase(self.pedido_repo_mock, self.reconciliador_mock)

    def test_status_invalido(self):
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido_entidade()
        with self.assertRaises(StatusInvalidoError):
            self.use_case.executar("id-1", novo_status="pago")

    def test_transicao_nao_permitida(self):
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido_entidade(status=StatusPedido.ENTREGUE)
        with self.assertRaises(TransicaoInvalidaError):
            self.use_case.executar("id-1", novo_status="pending_payment")

    def test_codigo_rastreio_envia_pedido_pago(self):
        pedido = criar_pedido_entidade(status=StatusPedido.PAGO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido

        self.use_case.executar(pedido.id, codigo_rastreio="BR123456789BR")

        self.reconciliador_mock.transicionar.assert_called_once_with(
            pedido, StatusPedido.ENVIADO, campos_extras={"codigo_rastreio": "BR123456789BR"}
        )
        self.pedido_repo_mock.atualizar_campos.assert_not_called()

    def test_transicao_recusada_nao_grava_codigo_rastreio(self):
        """
        Cenário: PATCH com status inválido para o pedido não deixa escrita parcial.
        """
        pedido = criar_pedido_entidade(status=StatusPedido.PAGO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido

        with self.assertRaises(TransicaoInvalidaError):
            self.use_case.executar(pedido.id, novo_status="delivered", codigo_rastreio="BR123")

        self.pedido_repo_mock.atualizar_campos.assert_not_called()
        self.reconciliador_mock.transicionar.assert_not_called()

    def test_corrida_perdida_nao_grava_codigo_rastreio(self):
        pedido = criar_pedido_entidade(status=StatusPedido.PAGO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido
        self.reconciliador_mock.transicionar.return_value = Mock(aplicado=False)

        with self.assertRaises(StatusInvalidoError):
            self.use_case.executar(pedido.id, codigo_rastreio="BR123")

        self.pedido_repo_mock.atualizar_campos.assert_not_called()

    def test_codigo_rastreio_sem_mudanca_de_status(self):
        pedido = criar_pedido_entidade(status=StatusPedido.ENVIADO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido

        self.use_case.executar(pedido.id, codigo_rastreio="BR999")

        self.pedido_repo_mock.atualizar_campos.assert_called_once_with(pedido.id, {"codigo_rastreio": "BR999"})
        self.reconciliador_mock.transicionar.assert_not_called()

    def test_mesmo_status_e_noop(self):
        pedido = criar_pedido_entidade(status=StatusPedido.EM_PREPARO)
        self.pedido_repo_mock.buscar_por_id.return_value = pedido
        self.use_case.executar(pedido.id, novo_status="preparing")
        self.reconciliador_mock.transicionar.assert_not_called()

    def test_pedido_inexistente(self):
        self.pedido_repo_mock.buscar_por_id.return_value = None
        with self.assertRaises(PedidoNaoEncontradoError):
            self.use_case.executar("id-x", novo_status="paid")

    def test_sem_dados(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar("id-1")


class TestConsultarPedidosUseCase(unittest.TestCase):

    def test_filtro_de_status_invalido(self):
        use_case = ConsultarPedidosUseCase(Mock())
        with self.assertRaises(StatusInvalidoError):
            use_case.listar("qualquer")

    def test_listar_do_cliente_sem_email(self):
        repo = Mock()
        self.assertEqual(ConsultarPedidosUseCase(repo).listar_do_cliente(""), [])
        repo.listar_por_email.assert_not_called()


if __name__ == '__main__':
    unittest.main()
