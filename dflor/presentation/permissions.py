"""
Autenticação do painel administrativo.

A senha compartilhada (settings.ADMIN_PASSWORD) é trocada por um token
assinado e com validade; cada requisição admin apresenta o token no
cabeçalho X-Admin-Token e ele é validado a cada chamada.
"""
import logging

from django.conf import settings
from django.core import signing
from django.utils.crypto import constant_time_compare
from rest_framework.permissions import BasePermission

logger = logging.getLogger(__name__)

SALT_ADMIN = 'dflor.admin'
CABECALHO_TOKEN = 'X-Admin-Token'


def senha_admin_confere(senha: str) -> bool:
    if not settings.ADMIN_PASSWORD:
        logger.error("ADMIN_PASSWORD não configurada; login administrativo desabilitado.")
        return False
    return constant_time_compare(senha or '', settings.ADMIN_PASSWORD)


def gerar_token_admin() -> str:
    return signing.dumps({'admin': True}, salt=SALT_ADMIN)


def token_admin_valido(token: str) -> bool:
    if not token:
        return False
    try:
        dados = signing.loads(token, salt=SALT_ADMIN, max_age=settings.ADMIN_TOKEN_MAX_AGE)
    except signing.SignatureExpired:
        logger.info("Token administrativo expirado.")
        return False
    except signing.BadSignature:
        logger.warning("Token administrativo com assinatura inválida.")
        return False
    return bool(dados.get('admin'))


class IsAdminToken(BasePermission):
    """Exige um token administrativo válido em X-Admin-Token."""
    message = 'Token administrativo ausente, inválido ou expirado.'

    def has_permission(self, request, view):
        return token_admin_valido(request.headers.get(CABECALHO_TOKEN))
