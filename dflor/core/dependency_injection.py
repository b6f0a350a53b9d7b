# dflor/core/dependency_injection.py
"""
Módulo de Injeção de Dependência (DI).
Responsável por instanciar os Use Cases com suas dependências de Repositórios/Gateways
concretos da camada de Infraestrutura.
"""
from typing import Dict

from django.conf import settings

from dflor.core.ports import IProvedorPagamento
from dflor.core.use_cases import (
    AtualizarPedidoAdminUseCase,
    CalcularFreteUseCase,
    ConsultarPedidosUseCase,
    ConsultarStatusPagamentoUseCase,
    CriarPedidoUseCase,
    ExpirarPedidosPendentesUseCase,
    ReconciliarPagamentoUseCase,
)
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

# Repositórios Concretos (sem estado)
pedido_repo = PedidoRepositoryDjango()
produto_repo = ProdutoRepositoryDjango()
estoque_repo = EstoqueRepositoryDjango()


# ====================================================================
# Gateways (credenciais lidas do settings a cada chamada)
# ====================================================================

def get_provedores() -> Dict[str, IProvedorPagamento]:
    comum = {"base_url": settings.BASE_URL, "timeout": settings.PROVEDOR_TIMEOUT}
    provedores = [
        MercadoPagoGateway(
            access_token=settings.MERCADOPAGO_ACCESS_TOKEN,
            webhook_secret=settings.MERCADOPAGO_WEBHOOK_SECRET,
            **comum,
        ),
        StripeGateway(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            **comum,
        ),
        PagSeguroGateway(
            token=settings.PAGSEGURO_TOKEN,
            sandbox=settings.PAGSEGURO_SANDBOX,
            **comum,
        ),
        OpenPixGateway(
            app_id=settings.OPENPIX_APP_ID,
            webhook_secret=settings.OPENPIX_WEBHOOK_SECRET,
            **comum,
        ),
    ]
    return {provedor.nome: provedor for provedor in provedores}

def get_consulta_cep() -> ViaCepGateway:
    return ViaCepGateway(timeout=settings.PROVEDOR_TIMEOUT)


# ====================================================================
# Use Cases
# ====================================================================

def get_calcular_frete_use_case() -> CalcularFreteUseCase:
    return CalcularFreteUseCase(cep_origem=settings.CEP_ORIGEM)

def get_criar_pedido_use_case() -> CriarPedidoUseCase:
    return CriarPedidoUseCase(pedido_repo, produto_repo, get_provedores(), cep_origem=settings.CEP_ORIGEM)

def get_reconciliar_pagamento_use_case() -> ReconciliarPagamentoUseCase:
    return ReconciliarPagamentoUseCase(pedido_repo, estoque_repo, get_provedores())

def get_consultar_status_use_case() -> ConsultarStatusPagamentoUseCase:
    reconciliador = get_reconciliar_pagamento_use_case()
    return ConsultarStatusPagamentoUseCase(pedido_repo, reconciliador.provedores, reconciliador)

def get_expirar_pedidos_use_case() -> ExpirarPedidosPendentesUseCase:
    reconciliador = get_reconciliar_pagamento_use_case()
    return ExpirarPedidosPendentesUseCase(pedido_repo, reconciliador.provedores, reconciliador)

def get_atualizar_pedido_admin_use_case() -> AtualizarPedidoAdminUseCase:
    return AtualizarPedidoAdminUseCase(pedido_repo, get_reconciliar_pagamento_use_case())

def get_consultar_pedidos_use_case() -> ConsultarPedidosUseCase:
    return ConsultarPedidosUseCase(pedido_repo)
