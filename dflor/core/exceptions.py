class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    pass

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    def __init__(self, message="Os dados fornecidos são inválidos."):
        self.message = message
        super().__init__(self.message)

class CepInvalidoError(DadosInvalidosError):
    """CEP que não possui exatamente 8 dígitos."""
    def __init__(self, cep: str = "", message=None):
        self.cep = cep
        super().__init__(message or f"CEP inválido: '{cep}'. Informe 8 dígitos.")

# ===============================================
# ERROS DE PERSISTÊNCIA E ENTIDADE
# ===============================================

class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    def __init__(self, message="O item solicitado não foi encontrado."):
        self.message = message
        super().__init__(self.message)

class ProdutoNaoEncontradoError(ItemNaoEncontradoError):
    """Erro levantado quando um produto do catálogo não é encontrado."""
    def __init__(self, message="O produto solicitado não foi encontrado."):
        super().__init__(message)

class PedidoNaoEncontradoError(ItemNaoEncontradoError):
    """Erro específico para Pedidos não encontrados."""
    def __init__(self, message="O pedido solicitado não foi encontrado."):
        super().__init__(message)

class EstoqueInsuficienteError(BaseErroCore):
    """Erro levantado quando a quantidade solicitada excede o estoque."""
    def __init__(self, produto_id: str, estoque_atual: int, quantidade_solicitada: int, message=None):
        self.produto_id = produto_id
        self.estoque_atual = estoque_atual
        self.quantidade_solicitada = quantidade_solicitada
        if message is None:
            message = (f"Estoque insuficiente para o produto {produto_id}. "
                       f"Disponível: {estoque_atual}, Solicitado: {quantidade_solicitada}.")
        self.message = message
        super().__init__(message)

# ===============================================
# ERROS DE FLUXO DE COMPRA E PAGAMENTO
# ===============================================

class CarrinhoVazioError(BaseErroCore):
    """Erro levantado ao tentar fazer checkout com carrinho vazio."""
    def __init__(self, message="O carrinho de compras está vazio."):
        self.message = message
        super().__init__(self.message)

class PagamentoFalhouError(BaseErroCore):
    """Erro levantado quando a cobrança não pôde ser criada no provedor."""
    def __init__(self, message="A transação de pagamento foi rejeitada ou falhou."):
        self.message = message
        super().__init__(self.message)

class ErroProvedorPagamento(BaseErroCore):
    """Falha de comunicação ou resposta inesperada da API de um provedor."""
    def __init__(self, provedor: str, message="Falha na comunicação com o provedor de pagamento."):
        self.provedor = provedor
        self.message = message
        super().__init__(f"[{provedor}] {message}")

class ProvedorNaoConfiguradoError(BaseErroCore):
    """Credenciais do provedor ausentes nas configurações."""
    def __init__(self, provedor: str, message=None):
        self.provedor = provedor
        self.message = message or f"Provedor de pagamento '{provedor}' não está configurado."
        super().__init__(self.message)

class ProvedorDesconhecidoError(ItemNaoEncontradoError):
    """Nome de provedor de pagamento que não existe."""
    def __init__(self, provedor: str):
        self.provedor = provedor
        super().__init__(f"Provedor de pagamento desconhecido: '{provedor}'.")

class AssinaturaInvalidaError(BaseErroCore):
    """Assinatura do webhook ausente ou inválida."""
    def __init__(self, message="Assinatura do webhook inválida."):
        self.message = message
        super().__init__(self.message)

class PayloadInvalidoError(BaseErroCore):
    """Corpo do webhook malformado."""
    def __init__(self, message="Payload do webhook malformado."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# ERROS DE STATUS
# ===============================================

class StatusInvalidoError(BaseErroCore):
    """Erro levantado ao tentar definir um status de pedido inválido."""
    def __init__(self, message="O status fornecido não é válido para um pedido."):
        self.message = message
        super().__init__(self.message)

class TransicaoInvalidaError(StatusInvalidoError):
    """Transição de status não permitida a partir do status atual."""
    def __init__(self, atual: str, destino: str, message=None):
        self.atual = atual
        self.destino = destino
        super().__init__(message or f"Transição de '{atual}' para '{destino}' não é permitida.")
