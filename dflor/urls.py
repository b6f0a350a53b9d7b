# dflor/urls.py
"""
Configuração principal de URL do projeto D'Flor.

Este arquivo centraliza o roteamento, incluindo:
1. Rotas da API da loja (dflor.presentation)
2. Rotas de autenticação JWT dos clientes
3. Rotas da Documentação da API (Swagger/Redoc)
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


urlpatterns = [
    # API da loja
    path('api/', include('dflor.presentation.urls')),

    # ====================================================================
    # AUTENTICAÇÃO JWT (área do cliente)
    # ====================================================================
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # ====================================================================
    # ROTAS DE DOCUMENTAÇÃO DA API (DRF SPECTACULAR)
    # ====================================================================
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/docs/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
