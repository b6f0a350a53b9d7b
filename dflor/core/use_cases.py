# dflor/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core,
garantindo o isolamento da lógica de negócio.
"""
import logging
from typing import Callable, Dict, List, Mapping, Optional
from decimal import Decimal
from datetime import datetime, timezone

from dflor.core.entities import (
    Cliente, CobrancaCriada, EnderecoEntrega, ItemCheckout, ItemPedido,
    NotificacaoPagamento, Pedido, ResultadoCheckout, ResultadoReconciliacao,
    SelecaoFrete, OpcaoFrete
)
from dflor.core.exceptions import (
    BaseErroCore,
    CarrinhoVazioError,
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
from dflor.core.frete import estimar_frete, normalizar_cep, selecionar_opcao
from dflor.core.numero_pedido import cpf_valido, gerar_numero_pedido
from dflor.core.ports import (
    IEstoqueRepository,
    IPedidoRepository,
    IProdutoRepository,
    IProvedorPagamento,
)
from dflor.core.status import StatusPedido, evento_provedor_permitido, parse_status, pode_transicionar

logger = logging.getLogger(__name__)


def _agora() -> datetime:
    return datetime.now(timezone.utc)


def _obter_provedor(provedores: Mapping[str, IProvedorPagamento], nome: str) -> IProvedorPagamento:
    provedor = provedores.get((nome or "").lower())
    if provedor is None:
        raise ProvedorDesconhecidoError(nome)
    return provedor


# ====================================================================
# 1. CASOS DE USO DE FRETE
# ====================================================================

class CalcularFreteUseCase:
    """Calcula as ofertas de frete a partir do CEP de origem da loja."""
    def __init__(self, cep_origem: str):
        self.cep_origem = cep_origem

    def executar(self, cep_destino: str, peso_kg=Decimal("0")) -> List[OpcaoFrete]:
        return estimar_frete(self.cep_origem, cep_destino, peso_kg)


# ====================================================================
# 2. CASOS DE USO DE CHECKOUT
# ====================================================================

class CriarPedidoUseCase:
    """
    Valida o carrinho, grava o pedido (status pending_payment) e cria a
    cobrança no provedor escolhido. Se o provedor falhar, o pedido é removido.
    """
    def __init__(
        self,
        pedido_repo: IPedidoRepository,
        produto_repo: IProdutoRepository,
        provedores: Mapping[str, IProvedorPagamento],
        cep_origem: str,
    ):
        self.pedido_repo = pedido_repo
        self.produto_repo = produto_repo
        self.provedores = provedores
        self.cep_origem = cep_origem

    def executar(
        self,
        provedor: str,
        itens: List[ItemCheckout],
        cliente: Cliente,
        endereco: EnderecoEntrega,
        metodo_envio: str,
        desconto: Decimal = Decimal("0.00"),
    ) -> ResultadoCheckout:
        gateway = _obter_provedor(self.provedores, provedor)
        # Falta de credencial é erro de configuração: nada é gravado.
        gateway.verificar_configuracao()

        self._validar_cliente(cliente)
        itens_pedido, peso_total = self._montar_itens(itens)

        endereco.cep = normalizar_cep(endereco.cep)
        opcoes = estimar_frete(self.cep_origem, endereco.cep, peso_total)
        frete = selecionar_opcao(opcoes, metodo_envio)

        subtotal = sum((item.preco_total for item in itens_pedido), Decimal("0.00"))
        desconto = Decimal(str(desconto or "0.00"))
        if desconto < 0 or desconto > subtotal + frete.preco:
            raise DadosInvalidosError("Desconto inválido para este pedido.")
        total = subtotal + frete.preco - desconto

        pedido = Pedido(
            numero_pedido=gerar_numero_pedido(),
            cliente=cliente,
            endereco=endereco,
            frete=SelecaoFrete(metodo=frete.codigo, preco=frete.preco, prazo_dias=frete.prazo_dias),
            itens=itens_pedido,
            subtotal=subtotal,
            desconto=desconto,
            total=total,
            provedor_pagamento=gateway.nome,
            metodo_pagamento=gateway.metodo_pagamento,
        )
        pedido = self.pedido_repo.criar(pedido)

        cobranca = self._criar_cobranca(gateway, pedido)

        self.pedido_repo.definir_referencia_provedor(pedido.id, cobranca.referencia)
        pedido.referencia_provedor = cobranca.referencia
        logger.info(
            "Pedido %s criado via %s (total %s, referência %s).",
            pedido.numero_pedido, gateway.nome, total, cobranca.referencia,
        )
        return ResultadoCheckout(numero_pedido=pedido.numero_pedido, total=total, cobranca=cobranca)

    def _criar_cobranca(self, gateway: IProvedorPagamento, pedido: Pedido) -> CobrancaCriada:
        try:
            return gateway.criar_cobranca(pedido)
        except (ErroProvedorPagamento, PagamentoFalhouError) as e:
            logger.error("Falha ao criar cobrança do pedido %s: %s", pedido.numero_pedido, e)
            self.pedido_repo.excluir(pedido.id)
            raise PagamentoFalhouError(f"Não foi possível iniciar o pagamento: {e}") from e
        except Exception:
            logger.exception("Erro inesperado ao criar cobrança do pedido %s.", pedido.numero_pedido)
            self.pedido_repo.excluir(pedido.id)
            raise

    def _validar_cliente(self, cliente: Cliente):
        if not (cliente.nome or "").strip():
            raise DadosInvalidosError("O nome do comprador é obrigatório.")
        if not (cliente.email or "").strip() or "@" not in cliente.email:
            raise DadosInvalidosError("Um e-mail válido é obrigatório.")
        if cliente.cpf and not cpf_valido(cliente.cpf):
            raise DadosInvalidosError("CPF inválido.")

    def _montar_itens(self, itens: List[ItemCheckout]):
        if not itens:
            raise CarrinhoVazioError()

        itens_pedido: List[ItemPedido] = []
        quantidade_por_produto: Dict[str, int] = {}
        peso_total = Decimal("0")

        for item in itens:
            if item.quantidade is None or item.quantidade <= 0:
                raise DadosInvalidosError("A quantidade de cada item deve ser maior que zero.")

            produto = self.produto_repo.buscar_por_id(item.produto_id)
            if produto is None:
                raise ProdutoNaoEncontradoError(f"Produto {item.produto_id} não encontrado.")

            if item.tamanho and produto.tamanhos and item.tamanho not in produto.tamanhos:
                raise DadosInvalidosError(
                    f"Tamanho '{item.tamanho}' indisponível para {produto.nome}."
                )

            quantidade_total = quantidade_por_produto.get(produto.id, 0) + item.quantidade
            if quantidade_total > produto.estoque:
                raise EstoqueInsuficienteError(produto.id, produto.estoque, quantidade_total)
            quantidade_por_produto[produto.id] = quantidade_total

            peso_total += produto.peso_kg * item.quantidade
            itens_pedido.append(ItemPedido(
                produto_id=produto.id,
                nome_produto=produto.nome,
                quantidade=item.quantidade,
                preco_unitario=produto.preco,
                imagem_url=produto.imagem_url,
                tamanho=item.tamanho,
                cor=item.cor,
            ))

        return itens_pedido, peso_total


# ====================================================================
# 3. CASOS DE USO DE RECONCILIAÇÃO DE PAGAMENTO
# ====================================================================

class ReconciliarPagamentoUseCase:
    """
    Aplica eventos de pagamento sobre os pedidos.

    A transição é uma escrita condicional sobre o status observado: em
    entregas duplicadas ou concorrentes só uma vence, e só a vencedora
    dispara os efeitos colaterais (baixa de estoque ao entrar em `paid`).
    """
    def __init__(
        self,
        pedido_repo: IPedidoRepository,
        estoque_repo: IEstoqueRepository,
        provedores: Mapping[str, IProvedorPagamento],
    ):
        self.pedido_repo = pedido_repo
        self.estoque_repo = estoque_repo
        self.provedores = provedores

    def processar_webhook(self, provedor: str, corpo: bytes, cabecalhos: Mapping[str, str]) -> ResultadoReconciliacao:
        gateway = _obter_provedor(self.provedores, provedor)
        gateway.verificar_webhook(corpo, cabecalhos)

        notificacao = gateway.interpretar_webhook(corpo, cabecalhos)
        if notificacao is None:
            logger.info("Webhook %s ignorado: evento sem efeito sobre pedidos.", gateway.nome)
            return ResultadoReconciliacao(numero_pedido=None, aplicado=False, motivo="evento_ignorado")

        return self.aplicar(notificacao)

    def aplicar(self, notificacao: NotificacaoPagamento) -> ResultadoReconciliacao:
        if not notificacao.numero_pedido:
            logger.warning(
                "Notificação %s (%s) sem número de pedido; ignorada.",
                notificacao.provedor, notificacao.status_bruto,
            )
            return ResultadoReconciliacao(numero_pedido=None, aplicado=False, motivo="sem_correlacao")

        pedido = self.pedido_repo.buscar_por_numero(notificacao.numero_pedido)
        if pedido is None:
            logger.warning(
                "Notificação %s para pedido inexistente %s; ignorada.",
                notificacao.provedor, notificacao.numero_pedido,
            )
            return ResultadoReconciliacao(
                numero_pedido=notificacao.numero_pedido, aplicado=False, motivo="pedido_nao_encontrado"
            )

        if notificacao.status is None:
            # Status intermediário (pending, in_process, WAITING...): só registra o bruto.
            if (pedido.status == StatusPedido.AGUARDANDO_PAGAMENTO
                    and notificacao.status_bruto
                    and notificacao.status_bruto != pedido.status_pagamento):
                self.pedido_repo.atualizar_campos(pedido.id, {"status_pagamento": notificacao.status_bruto})
            return ResultadoReconciliacao(
                numero_pedido=pedido.numero_pedido, aplicado=False,
                status_anterior=pedido.status, status_atual=pedido.status, motivo="sem_mudanca",
            )

        if notificacao.status != pedido.status and not evento_provedor_permitido(pedido.status, notificacao.status):
            # Ex.: recusa de uma tentativa anterior entregue depois da aprovação.
            logger.info(
                "Pedido %s: evento %s (%s) não se aplica ao status %s; ignorado.",
                pedido.numero_pedido, notificacao.provedor, notificacao.status_bruto, pedido.status,
            )
            return ResultadoReconciliacao(
                numero_pedido=pedido.numero_pedido, aplicado=False,
                status_anterior=pedido.status, status_atual=pedido.status, motivo="transicao_nao_permitida",
            )

        return self.transicionar(
            pedido,
            notificacao.status,
            status_pagamento=notificacao.status_bruto,
            motivo_falha=notificacao.motivo_falha,
        )

    def transicionar(
        self,
        pedido: Pedido,
        destino: StatusPedido,
        status_pagamento: Optional[str] = None,
        motivo_falha: Optional[str] = None,
        campos_extras: Optional[Dict[str, object]] = None,
    ) -> ResultadoReconciliacao:
        atual = pedido.status
        if atual == destino:
            return ResultadoReconciliacao(
                numero_pedido=pedido.numero_pedido, aplicado=False,
                status_anterior=atual, status_atual=atual, motivo="status_repetido",
            )
        if not pode_transicionar(atual, destino):
            logger.info(
                "Pedido %s: transição %s -> %s não permitida; evento ignorado.",
                pedido.numero_pedido, atual, destino,
            )
            return ResultadoReconciliacao(
                numero_pedido=pedido.numero_pedido, aplicado=False,
                status_anterior=atual, status_atual=atual, motivo="transicao_nao_permitida",
            )

        campos: Dict[str, object] = dict(campos_extras or {})
        if status_pagamento:
            campos["status_pagamento"] = status_pagamento
        if motivo_falha:
            campos["motivo_falha"] = motivo_falha

        venceu = self.pedido_repo.transicionar(pedido.id, atual, destino, campos)
        if not venceu:
            logger.info(
                "Pedido %s: status alterado por outra operação antes de %s -> %s.",
                pedido.numero_pedido, atual, destino,
            )
            return ResultadoReconciliacao(
                numero_pedido=pedido.numero_pedido, aplicado=False,
                status_anterior=atual, motivo="concorrencia",
            )

        logger.info("Pedido %s: %s -> %s.", pedido.numero_pedido, atual, destino)
        if destino == StatusPedido.PAGO:
            self._baixar_estoque(pedido)

        pedido.status = destino
        return ResultadoReconciliacao(
            numero_pedido=pedido.numero_pedido, aplicado=True,
            status_anterior=atual, status_atual=destino, motivo="aplicado",
        )

    def _baixar_estoque(self, pedido: Pedido):
        for item in pedido.itens:
            if not item.produto_id:
                logger.warning(
                    "Pedido %s: item '%s' sem produto vinculado; estoque não baixado.",
                    pedido.numero_pedido, item.nome_produto,
                )
                continue
            try:
                self.estoque_repo.decrementar(item.produto_id, item.quantidade)
            except Exception:
                # Falha de um item não impede a baixa dos demais.
                logger.exception(
                    "Pedido %s: falha ao baixar estoque do produto %s.",
                    pedido.numero_pedido, item.produto_id,
                )


class ConsultarStatusPagamentoUseCase:
    """
    Consulta o status de um pedido pelo número público. Se ainda aguarda
    pagamento, pergunta ao provedor e reconcilia a resposta.
    """
    def __init__(
        self,
        pedido_repo: IPedidoRepository,
        provedores: Mapping[str, IProvedorPagamento],
        reconciliador: ReconciliarPagamentoUseCase,
    ):
        self.pedido_repo = pedido_repo
        self.provedores = provedores
        self.reconciliador = reconciliador

    def executar(self, numero_pedido: str) -> Pedido:
        pedido = self.pedido_repo.buscar_por_numero(numero_pedido)
        if pedido is None:
            raise PedidoNaoEncontradoError(f"Pedido {numero_pedido} não encontrado.")

        if pedido.status not in (StatusPedido.AGUARDANDO_PAGAMENTO, StatusPedido.PAGAMENTO_FALHOU):
            return pedido

        provedor = self.provedores.get(pedido.provedor_pagamento)
        if provedor is None or not pedido.referencia_provedor:
            return pedido

        try:
            notificacao = provedor.consultar_status(pedido)
        except (ErroProvedorPagamento, ProvedorNaoConfiguradoError) as e:
            logger.warning("Consulta de status do pedido %s falhou: %s", numero_pedido, e)
            return pedido

        if notificacao is None:
            return pedido

        if not notificacao.numero_pedido:
            notificacao.numero_pedido = pedido.numero_pedido
        self.reconciliador.aplicar(notificacao)
        return self.pedido_repo.buscar_por_numero(numero_pedido)


class ExpirarPedidosPendentesUseCase:
    """
    Expira pedidos cuja cobrança passou do prazo de validade do provedor.
    Antes de expirar, confirma no provedor que o pagamento não foi feito.
    """
    def __init__(
        self,
        pedido_repo: IPedidoRepository,
        provedores: Mapping[str, IProvedorPagamento],
        reconciliador: ReconciliarPagamentoUseCase,
        relogio: Callable[[], datetime] = _agora,
    ):
        self.pedido_repo = pedido_repo
        self.provedores = provedores
        self.reconciliador = reconciliador
        self.relogio = relogio

    def executar(self) -> int:
        expirados = 0
        for nome, provedor in self.provedores.items():
            limite = self.relogio() - provedor.prazo_expiracao
            for pedido in self.pedido_repo.listar_pendentes_criados_antes(nome, limite):
                if self._resolvido_no_provedor(provedor, pedido):
                    continue
                resultado = self.reconciliador.transicionar(pedido, StatusPedido.EXPIRADO)
                if resultado.aplicado:
                    expirados += 1
        logger.info("%d pedido(s) expirado(s).", expirados)
        return expirados

    def _resolvido_no_provedor(self, provedor: IProvedorPagamento, pedido: Pedido) -> bool:
        if not pedido.referencia_provedor:
            return False
        try:
            notificacao = provedor.consultar_status(pedido)
        except BaseErroCore as e:
            logger.warning("Pedido %s não expirado: consulta ao provedor falhou (%s).", pedido.numero_pedido, e)
            return True
        if notificacao is None or notificacao.status is None:
            return False
        if not notificacao.numero_pedido:
            notificacao.numero_pedido = pedido.numero_pedido
        resultado = self.reconciliador.aplicar(notificacao)
        return resultado.aplicado or notificacao.status == StatusPedido.PAGO


# ====================================================================
# 4. CASOS DE USO ADMINISTRATIVOS E DE CONSULTA
# ====================================================================

class AtualizarPedidoAdminUseCase:
    """Atualiza status e/ou código de rastreio de um pedido (painel admin)."""
    def __init__(self, pedido_repo: IPedidoRepository, reconciliador: ReconciliarPagamentoUseCase):
        self.pedido_repo = pedido_repo
        self.reconciliador = reconciliador

    def executar(self, pedido_id: str, novo_status: Optional[str] = None, codigo_rastreio: Optional[str] = None) -> Pedido:
        if novo_status is None and not codigo_rastreio:
            raise DadosInvalidosError("Informe um novo status ou um código de rastreio.")

        pedido = self.pedido_repo.buscar_por_id(pedido_id)
        if pedido is None:
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não encontrado.")

        destino = None
        if novo_status is not None:
            destino = parse_status(novo_status)
            if destino is None:
                raise StatusInvalidoError(f"Status '{novo_status}' não é válido.")

        if codigo_rastreio and destino is None and pedido.status in (StatusPedido.PAGO, StatusPedido.EM_PREPARO):
            destino = StatusPedido.ENVIADO

        if destino is not None and destino != pedido.status:
            if not pode_transicionar(pedido.status, destino):
                raise TransicaoInvalidaError(pedido.status.value, destino.value)
            # Rastreio vai na mesma escrita condicional do status.
            extras = {"codigo_rastreio": codigo_rastreio} if codigo_rastreio else None
            resultado = self.reconciliador.transicionar(pedido, destino, campos_extras=extras)
            if not resultado.aplicado:
                raise StatusInvalidoError("O pedido foi alterado por outra operação. Tente novamente.")
        elif codigo_rastreio:
            self.pedido_repo.atualizar_campos(pedido.id, {"codigo_rastreio": codigo_rastreio})

        return self.pedido_repo.buscar_por_id(pedido.id)


class ConsultarPedidosUseCase:
    """Listagem e detalhe de pedidos para o admin e para o cliente."""
    def __init__(self, pedido_repo: IPedidoRepository):
        self.pedido_repo = pedido_repo

    def listar(self, status: Optional[str] = None) -> List[Pedido]:
        filtro = None
        if status:
            filtro = parse_status(status)
            if filtro is None:
                raise StatusInvalidoError(f"Status '{status}' não é válido.")
        return self.pedido_repo.listar(filtro)

    def detalhar(self, pedido_id: str) -> Pedido:
        pedido = self.pedido_repo.buscar_por_id(pedido_id)
        if pedido is None:
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não encontrado.")
        return pedido

    def listar_do_cliente(self, email: str) -> List[Pedido]:
        if not email:
            return []
        return self.pedido_repo.listar_por_email(email)
