import hashlib
import hmac
import json
from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from dflor.catalog.models import Produto as ProdutoModel
from dflor.pedidos.models import Pedido as PedidoModel
from dflor.presentation.permissions import CABECALHO_TOKEN, gerar_token_admin

SEGREDO_OPENPIX = 'segredo-openpix'


def resposta_openpix(correlation_id):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"charge": {
        "identifier": "cob-openpix-1",
        "correlationID": correlation_id,
        "brCode": "00020126580014br.gov.bcb.pix",
        "qrCodeImage": "https://openpix.example/qr.png",
        "expiresIn": 3600,
    }}
    return response


def assinar_openpix(corpo: bytes) -> str:
    return hmac.new(SEGREDO_OPENPIX.encode(), corpo, hashlib.sha256).hexdigest()


@override_settings(
    OPENPIX_APP_ID='app-id-teste',
    OPENPIX_WEBHOOK_SECRET=SEGREDO_OPENPIX,
    MERCADOPAGO_ACCESS_TOKEN='',
    ADMIN_PASSWORD='senha-forte',
    CEP_ORIGEM='01310100',
)
class BaseAPITest(APITestCase):

    def setUp(self):
        self.produto = ProdutoModel.objects.create(
            nome="Vestido Midi Floral", descricao="Vestido de viscose", preco=Decimal("100.00"),
            categoria="Vestidos", estoque=5, tamanhos=["P", "M", "G"],
            cores=[{"name": "Rosa", "hex": "#FFC0CB"}],
        )

    def dados_checkout(self, **kwargs):
        dados = {
            "itens": [{"produto_id": str(self.produto.id), "quantidade": 2, "tamanho": "M"}],
            "cliente": {"nome": "Ana Souza", "email": "ana@example.com", "telefone": "11988887777"},
            "endereco": {
                "rua": "Praça da Sé", "numero": "100", "bairro": "Sé",
                "cidade": "São Paulo", "estado": "SP", "cep": "01001-000",
            },
            "metodo_envio": "PAC",
        }
        dados.update(kwargs)
        return dados

    @patch('dflor.infrastructure.gateways.requests.request')
    def criar_pedido(self, mock_request):
        """Faz um checkout via OpenPix e devolve o número do pedido."""
        mock_request.side_effect = lambda metodo, url, **kw: resposta_openpix(kw["json"]["correlationID"])
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}), self.dados_checkout(), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data['numero_pedido']

    def enviar_webhook(self, evento: dict, assinatura=None):
        corpo = json.dumps(evento).encode()
        return self.client.post(
            reverse('api_webhook', kwargs={'provedor': 'openpix'}),
            data=corpo,
            content_type='application/json',
            HTTP_X_WEBHOOK_SIGNATURE=assinatura if assinatura is not None else assinar_openpix(corpo),
        )


# ====================================================================
# CHECKOUT
# ====================================================================

class CheckoutAPITest(BaseAPITest):

    def test_checkout_cria_pedido_pendente(self):
        """
        Cenário: checkout válido grava o pedido pendente com a referência da cobrança.
        """
        # ACT
        numero = self.criar_pedido()

        # ASSERT
        pedido = PedidoModel.objects.get(numero_pedido=numero)
        self.assertTrue(numero.startswith("DF"))
        self.assertEqual(pedido.status, "pending_payment")
        self.assertEqual(pedido.total, Decimal("219.90"))
        self.assertEqual(pedido.referencia_provedor, "cob-openpix-1")
        self.assertEqual(pedido.itens.count(), 1)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 5)

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_resposta_traz_dados_do_pix(self, mock_request):
        mock_request.side_effect = lambda metodo, url, **kw: resposta_openpix(kw["json"]["correlationID"])

        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}), self.dados_checkout(), format='json'
        )

        self.assertEqual(response.data['total'], "219.90")
        self.assertEqual(response.data['pagamento']['pix_copia_cola'], "00020126580014br.gov.bcb.pix")
        self.assertNotIn('client_secret', response.data['pagamento'])

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_falha_no_provedor_nao_deixa_pedido(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError("offline")

        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}), self.dados_checkout(), format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertFalse(PedidoModel.objects.exists())

    def test_provedor_nao_configurado(self):
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'mercadopago'}), self.dados_checkout(), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(PedidoModel.objects.exists())

    def test_provedor_desconhecido(self):
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'paypal'}), self.dados_checkout(), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_carrinho_vazio(self):
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}), self.dados_checkout(itens=[]), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_estoque_insuficiente(self):
        itens = [{"produto_id": str(self.produto.id), "quantidade": 6}]
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}), self.dados_checkout(itens=itens), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PedidoModel.objects.exists())

    def test_metodo_de_envio_invalido(self):
        response = self.client.post(
            reverse('api_checkout', kwargs={'provedor': 'openpix'}),
            self.dados_checkout(metodo_envio="MOTOBOY"), format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


# ====================================================================
# WEBHOOKS E STATUS
# ====================================================================

class WebhookAPITest(BaseAPITest):

    def test_pagamento_confirmado_baixa_estoque_uma_vez(self):
        """
        Cenário: o provedor reenvia a confirmação; o estoque só baixa na primeira.
        """
        numero = self.criar_pedido()
        evento = {"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": numero}}

        primeira = self.enviar_webhook(evento)
        segunda = self.enviar_webhook(evento)

        self.assertEqual(primeira.status_code, status.HTTP_200_OK)
        self.assertTrue(primeira.data['aplicado'])
        self.assertEqual(segunda.status_code, status.HTTP_200_OK)
        self.assertFalse(segunda.data['aplicado'])

        pedido = PedidoModel.objects.get(numero_pedido=numero)
        self.assertEqual(pedido.status, "paid")
        self.assertIsNotNone(pedido.data_pagamento)
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    def test_assinatura_invalida(self):
        numero = self.criar_pedido()
        response = self.enviar_webhook(
            {"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": numero}}, assinatura="falsa"
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(PedidoModel.objects.get(numero_pedido=numero).status, "pending_payment")

    def test_corpo_invalido(self):
        corpo = b"isto nao e json"
        response = self.client.post(
            reverse('api_webhook', kwargs={'provedor': 'openpix'}), data=corpo,
            content_type='application/json', HTTP_X_WEBHOOK_SIGNATURE=assinar_openpix(corpo),
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pedido_desconhecido_responde_200(self):
        response = self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": "DFNAOEXISTE"}})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['aplicado'])

    def test_evento_desconhecido_responde_200(self):
        response = self.enviar_webhook({"evento": "teste_webhook"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['motivo'], "evento_ignorado")

    def test_expiracao_nao_regride_pedido_pago(self):
        numero = self.criar_pedido()
        self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": numero}})

        response = self.enviar_webhook({"event": "OPENPIX:CHARGE_EXPIRED", "charge": {"correlationID": numero}})

        self.assertFalse(response.data['aplicado'])
        self.assertEqual(PedidoModel.objects.get(numero_pedido=numero).status, "paid")

    def test_health_check(self):
        response = self.client.get(reverse('api_webhook', kwargs={'provedor': 'openpix'}))
        self.assertEqual(response.data, {'status': 'ok', 'provedor': 'openpix'})

    @patch('dflor.infrastructure.gateways.requests.request')
    def test_consulta_de_status_reconcilia_com_provedor(self, mock_request):
        numero = self.criar_pedido()
        mock_request.return_value = Mock(**{
            'raise_for_status.return_value': None,
            'json.return_value': {"charge": {"status": "COMPLETED", "correlationID": numero}},
        })

        response = self.client.get(reverse('api_pedido_status', kwargs={'numero_pedido': numero}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], "paid")
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 3)

    def test_status_de_pedido_inexistente(self):
        response = self.client.get(reverse('api_pedido_status', kwargs={'numero_pedido': 'DFNAOEXISTE'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


# ====================================================================
# PAINEL ADMINISTRATIVO
# ====================================================================

class AdminAPITest(BaseAPITest):

    def setUp(self):
        super().setUp()
        self.numero = self.criar_pedido()
        self.pedido = PedidoModel.objects.get(numero_pedido=self.numero)
        self.url_detalhe = reverse('api_admin_pedido_detalhe', kwargs={'pedido_id': self.pedido.id})
        self.cabecalho = {f"HTTP_{CABECALHO_TOKEN.upper().replace('-', '_')}": gerar_token_admin()}

    def test_login(self):
        errado = self.client.post(reverse('api_admin_login'), {"senha": "errada"}, format='json')
        certo = self.client.post(reverse('api_admin_login'), {"senha": "senha-forte"}, format='json')

        self.assertEqual(errado.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(certo.status_code, status.HTTP_200_OK)
        self.assertIn('token', certo.data)

    @override_settings(ADMIN_PASSWORD='')
    def test_login_sem_senha_configurada(self):
        response = self.client.post(reverse('api_admin_login'), {"senha": ""}, format='json')
        self.assertNotEqual(response.status_code, status.HTTP_200_OK)

    def test_listagem_exige_token(self):
        self.assertEqual(self.client.get(reverse('api_admin_pedidos')).status_code, status.HTTP_403_FORBIDDEN)
        invalido = self.client.get(reverse('api_admin_pedidos'), HTTP_X_ADMIN_TOKEN="forjado")
        self.assertEqual(invalido.status_code, status.HTTP_403_FORBIDDEN)

    def test_listagem_com_filtro(self):
        response = self.client.get(reverse('api_admin_pedidos'), {"status": "pending_payment"}, **self.cabecalho)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['numero_pedido'] for p in response.data], [self.numero])

        vazia = self.client.get(reverse('api_admin_pedidos'), {"status": "shipped"}, **self.cabecalho)
        self.assertEqual(vazia.data, [])

        invalida = self.client.get(reverse('api_admin_pedidos'), {"status": "enviado"}, **self.cabecalho)
        self.assertEqual(invalida.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transicao_invalida_retorna_409(self):
        response = self.client.patch(self.url_detalhe, {"status": "shipped"}, format='json', **self.cabecalho)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.pedido.refresh_from_db()
        self.assertEqual(self.pedido.status, "pending_payment")

    def test_cancelar_e_depois_tentar_pagar(self):
        cancelado = self.client.patch(self.url_detalhe, {"status": "cancelled"}, format='json', **self.cabecalho)
        self.assertEqual(cancelado.status_code, status.HTTP_200_OK)

        webhook = self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": self.numero}})

        self.assertFalse(webhook.data['aplicado'])
        self.pedido.refresh_from_db()
        self.assertEqual(self.pedido.status, "cancelled")
        self.produto.refresh_from_db()
        self.assertEqual(self.produto.estoque, 5)

    def test_codigo_de_rastreio_envia_pedido_pago(self):
        self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": self.numero}})

        response = self.client.patch(
            self.url_detalhe, {"codigo_rastreio": "BR123456789BR"}, format='json', **self.cabecalho
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], "shipped")
        self.assertEqual(response.data['codigo_rastreio'], "BR123456789BR")
        self.assertIsNotNone(response.data['data_envio'])

    def test_patch_recusado_nao_altera_pedido(self):
        """
        Cenário: status de destino inválido junto com rastreio; nada é gravado.
        """
        self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": self.numero}})

        response = self.client.patch(
            self.url_detalhe, {"status": "delivered", "codigo_rastreio": "BR123"}, format='json', **self.cabecalho
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.pedido.refresh_from_db()
        self.assertEqual(self.pedido.status, "paid")
        self.assertIsNone(self.pedido.codigo_rastreio)

    def test_admin_pode_cancelar_pedido_pago(self):
        self.enviar_webhook({"event": "OPENPIX:CHARGE_COMPLETED", "charge": {"correlationID": self.numero}})

        response = self.client.patch(self.url_detalhe, {"status": "cancelled"}, format='json', **self.cabecalho)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], "cancelled")

    def test_detalhe(self):
        response = self.client.get(self.url_detalhe, **self.cabecalho)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['itens'][0]['quantidade'], 2)
        self.assertEqual(response.data['endereco']['cep'], "01001000")


# ====================================================================
# CATÁLOGO, FRETE E ÁREA DO CLIENTE
# ====================================================================

class ProdutoAPITest(BaseAPITest):

    def test_listagem_publica(self):
        response = self.client.get(reverse('produto-list'), {"categoria": "vestidos"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_escrita_exige_token(self):
        dados = {"nome": "Blusa", "preco": "80.00", "categoria": "Blusas", "estoque": 3}
        sem_token = self.client.post(reverse('produto-list'), dados, format='json')
        self.assertEqual(sem_token.status_code, status.HTTP_403_FORBIDDEN)

        com_token = self.client.post(
            reverse('produto-list'), dados, format='json',
            HTTP_X_ADMIN_TOKEN=gerar_token_admin(),
        )
        self.assertEqual(com_token.status_code, status.HTTP_201_CREATED)

    def test_validacoes_de_produto(self):
        cabecalho = {"HTTP_X_ADMIN_TOKEN": gerar_token_admin()}
        preco_original_menor = self.client.post(reverse('produto-list'), {
            "nome": "Saia", "preco": "90.00", "preco_original": "50.00", "categoria": "Saias", "estoque": 1,
        }, format='json', **cabecalho)
        self.assertEqual(preco_original_menor.status_code, status.HTTP_400_BAD_REQUEST)

        estoque_negativo = self.client.post(reverse('produto-list'), {
            "nome": "Saia", "preco": "90.00", "categoria": "Saias", "estoque": -1,
        }, format='json', **cabecalho)
        self.assertEqual(estoque_negativo.status_code, status.HTTP_400_BAD_REQUEST)

        cor_invalida = self.client.post(reverse('produto-list'), {
            "nome": "Saia", "preco": "90.00", "categoria": "Saias", "estoque": 1,
            "cores": [{"name": "Azul", "hex": "azul"}],
        }, format='json', **cabecalho)
        self.assertEqual(cor_invalida.status_code, status.HTTP_400_BAD_REQUEST)


class FreteAPITest(BaseAPITest):

    def test_opcoes_de_frete(self):
        response = self.client.post(reverse('api_frete'), {"cep": "69000-000"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['codigo'] for o in response.data['opcoes']], ["PAC", "SEDEX"])
        self.assertEqual(response.data['opcoes'][0]['preco'], "34.90")

    def test_cep_invalido(self):
        response = self.client.post(reverse('api_frete'), {"cep": "123"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('dflor.infrastructure.gateways.requests.get')
    def test_consulta_cep_nao_encontrado(self, mock_get):
        mock_get.return_value = Mock(**{'raise_for_status.return_value': None, 'json.return_value': {"erro": True}})
        response = self.client.get(reverse('api_cep', kwargs={'cep': '99999999'}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class MeusPedidosAPITest(BaseAPITest):

    def setUp(self):
        super().setUp()
        self.numero = self.criar_pedido()
        self.usuario = get_user_model().objects.create_user(
            username="ana", email="ana@example.com", password="senha-da-ana"
        )

    def test_exige_autenticacao(self):
        response = self.client.get(reverse('api_meus_pedidos'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_lista_pedidos_do_cliente_com_jwt(self):
        token = self.client.post(
            reverse('token_obtain_pair'), {"username": "ana", "password": "senha-da-ana"}, format='json'
        ).data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.client.get(reverse('api_meus_pedidos'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['numero_pedido'] for p in response.data], [self.numero])

    def test_nao_lista_pedidos_de_outro_email(self):
        outro = get_user_model().objects.create_user(username="bia", email="bia@example.com", password="x")
        self.client.force_authenticate(outro)
        self.assertEqual(self.client.get(reverse('api_meus_pedidos')).data, [])
