from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'produtos', views.ProdutoViewSet, basename='produto')

urlpatterns = [
    # Catálogo
    path('', include(router.urls)),

    # Frete e CEP
    path('frete/', views.FreteAPIView.as_view(), name='api_frete'),
    path('cep/<str:cep>/', views.CepAPIView.as_view(), name='api_cep'),

    # Checkout, webhooks e consulta de status
    path('checkout/<str:provedor>/', views.CheckoutAPIView.as_view(), name='api_checkout'),
    path('webhooks/<str:provedor>/', views.WebhookPagamentoAPIView.as_view(), name='api_webhook'),
    path('pedidos/<str:numero_pedido>/status/', views.PedidoStatusAPIView.as_view(), name='api_pedido_status'),

    # Área do cliente (JWT)
    path('minha-conta/pedidos/', views.MeusPedidosAPIView.as_view(), name='api_meus_pedidos'),

    # Painel administrativo
    path('admin/login/', views.AdminLoginAPIView.as_view(), name='api_admin_login'),
    path('admin/pedidos/', views.AdminPedidosAPIView.as_view(), name='api_admin_pedidos'),
    path('admin/pedidos/<uuid:pedido_id>/', views.AdminPedidoDetalheAPIView.as_view(), name='api_admin_pedido_detalhe'),
]
