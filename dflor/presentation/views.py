"""
Views da API (Django REST Framework).

As views só traduzem HTTP <-> Casos de Uso; a regra de negócio vive em
dflor.core.use_cases e as dependências vêm de dflor.core.dependency_injection.
"""
import logging

from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from dflor.catalog.models import Produto as ProdutoModel
from dflor.core import dependency_injection as di
from dflor.core.exceptions import (
    AssinaturaInvalidaError,
    BaseErroCore,
    ErroProvedorPagamento,
    ItemNaoEncontradoError,
    PagamentoFalhouError,
    PayloadInvalidoError,
    ProvedorNaoConfiguradoError,
    TransicaoInvalidaError,
)
from dflor.presentation.permissions import IsAdminToken, gerar_token_admin, senha_admin_confere
from dflor.presentation.serializers import (
    AdminLoginSerializer,
    AtualizarPedidoSerializer,
    CheckoutSerializer,
    FreteSerializer,
    OpcaoFreteSerializer,
    PedidoSerializer,
    PedidoStatusSerializer,
    ProdutoSerializer,
)

logger = logging.getLogger(__name__)


# Ordem importa: subclasses antes das classes base.
_STATUS_HTTP_POR_ERRO = (
    (AssinaturaInvalidaError, status.HTTP_401_UNAUTHORIZED),
    (PayloadInvalidoError, status.HTTP_400_BAD_REQUEST),
    (TransicaoInvalidaError, status.HTTP_409_CONFLICT),
    (ItemNaoEncontradoError, status.HTTP_404_NOT_FOUND),
    (ProvedorNaoConfiguradoError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ErroProvedorPagamento, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (PagamentoFalhouError, status.HTTP_502_BAD_GATEWAY),
    (BaseErroCore, status.HTTP_400_BAD_REQUEST),
)


def resposta_de_erro(erro: BaseErroCore) -> Response:
    """Converte uma exceção do Core na resposta HTTP correspondente."""
    for classe, codigo in _STATUS_HTTP_POR_ERRO:
        if isinstance(erro, classe):
            if codigo >= 500:
                logger.error("Erro %s: %s", type(erro).__name__, erro)
            return Response({'message': str(erro)}, status=codigo)
    return Response({'message': str(erro)}, status=status.HTTP_400_BAD_REQUEST)


# ====================================================================
# CATÁLOGO
# ====================================================================

class ProdutoViewSet(viewsets.ModelViewSet):
    """
    Catálogo de produtos: leitura pública, escrita somente com token admin.
    Filtros opcionais: ?categoria=...&destaque=true
    """
    serializer_class = ProdutoSerializer

    def get_queryset(self):
        qs = ProdutoModel.objects.all()
        categoria = self.request.query_params.get('categoria')
        if categoria:
            qs = qs.filter(categoria__iexact=categoria)
        destaque = self.request.query_params.get('destaque')
        if destaque is not None:
            qs = qs.filter(em_destaque=destaque.lower() in ('1', 'true', 'sim'))
        return qs

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            self.permission_classes = [AllowAny]
        else:
            self.permission_classes = [IsAdminToken]
        return [permission() for permission in self.permission_classes]

    def get_authenticators(self):
        # Escrita no catálogo usa o token admin, não JWT/sessão.
        return []


# ====================================================================
# FRETE E CEP
# ====================================================================

class FreteAPIView(APIView):
    """Calcula as opções de frete (PAC/SEDEX) para um CEP de destino."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = FreteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            opcoes = di.get_calcular_frete_use_case().executar(
                serializer.validated_data['cep'], serializer.validated_data['peso_kg']
            )
        except BaseErroCore as e:
            return resposta_de_erro(e)
        return Response({'opcoes': OpcaoFreteSerializer(opcoes, many=True).data})


class CepAPIView(APIView):
    """Consulta de endereço por CEP (ViaCEP). Sem resultado => 404."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, cep):
        endereco = di.get_consulta_cep().buscar(cep)
        if endereco is None:
            return Response({'message': 'CEP não encontrado.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(endereco)


# ====================================================================
# CHECKOUT E PAGAMENTO
# ====================================================================

class CheckoutAPIView(APIView):
    """
    Cria o pedido e a cobrança no provedor escolhido
    (mercadopago, stripe, pagseguro ou openpix).
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, provedor):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        itens, cliente, endereco = serializer.to_entities()
        try:
            resultado = di.get_criar_pedido_use_case().executar(
                provedor=provedor,
                itens=itens,
                cliente=cliente,
                endereco=endereco,
                metodo_envio=serializer.validated_data['metodo_envio'],
                desconto=serializer.validated_data['desconto'],
            )
        except BaseErroCore as e:
            return resposta_de_erro(e)

        return Response({
            'numero_pedido': resultado.numero_pedido,
            'total': str(resultado.total),
            'pagamento': resultado.cobranca.to_dict(),
        }, status=status.HTTP_201_CREATED)


class WebhookPagamentoAPIView(APIView):
    """
    Recebe as notificações dos provedores de pagamento.
    Pedido não correlacionado ou evento desconhecido => 200 (sem retentativa).
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, provedor):
        return Response({'status': 'ok', 'provedor': provedor})

    def post(self, request, provedor):
        try:
            resultado = di.get_reconciliar_pagamento_use_case().processar_webhook(
                provedor, request.body, request.headers
            )
        except BaseErroCore as e:
            if isinstance(e, AssinaturaInvalidaError):
                logger.warning("Webhook %s rejeitado: %s", provedor, e)
            return resposta_de_erro(e)

        return Response({
            'received': True,
            'numero_pedido': resultado.numero_pedido,
            'aplicado': resultado.aplicado,
            'motivo': resultado.motivo,
        }, status=status.HTTP_200_OK)


class PedidoStatusAPIView(APIView):
    """Consulta pública do status do pedido pelo número (polling das páginas de retorno)."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, numero_pedido):
        try:
            pedido = di.get_consultar_status_use_case().executar(numero_pedido)
        except BaseErroCore as e:
            return resposta_de_erro(e)
        return Response(PedidoStatusSerializer(pedido).data)


# ====================================================================
# ÁREA DO CLIENTE
# ====================================================================

class MeusPedidosAPIView(APIView):
    """Histórico de pedidos do cliente autenticado (JWT), pelo e-mail da conta."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        pedidos = di.get_consultar_pedidos_use_case().listar_do_cliente(request.user.email)
        return Response(PedidoSerializer(pedidos, many=True).data)


# ====================================================================
# PAINEL ADMINISTRATIVO
# ====================================================================

class AdminLoginAPIView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = AdminLoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        if not senha_admin_confere(serializer.validated_data['senha']):
            logger.warning("Tentativa de login administrativo com senha incorreta.")
            return Response({'message': 'Senha incorreta.'}, status=status.HTTP_401_UNAUTHORIZED)
        return Response({'token': gerar_token_admin()})


class AdminPedidosAPIView(APIView):
    """Lista os pedidos (mais recentes primeiro). Filtro opcional ?status=..."""
    permission_classes = [IsAdminToken]
    authentication_classes = []

    def get(self, request):
        try:
            pedidos = di.get_consultar_pedidos_use_case().listar(request.query_params.get('status'))
        except BaseErroCore as e:
            return resposta_de_erro(e)
        return Response(PedidoSerializer(pedidos, many=True).data)


class AdminPedidoDetalheAPIView(APIView):
    permission_classes = [IsAdminToken]
    authentication_classes = []

    def get(self, request, pedido_id):
        try:
            pedido = di.get_consultar_pedidos_use_case().detalhar(str(pedido_id))
        except BaseErroCore as e:
            return resposta_de_erro(e)
        return Response(PedidoSerializer(pedido).data)

    def patch(self, request, pedido_id):
        serializer = AtualizarPedidoSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            pedido = di.get_atualizar_pedido_admin_use_case().executar(
                pedido_id=str(pedido_id),
                novo_status=serializer.validated_data.get('status') or None,
                codigo_rastreio=serializer.validated_data.get('codigo_rastreio') or None,
            )
        except BaseErroCore as e:
            return resposta_de_erro(e)
        return Response(PedidoSerializer(pedido).data)
