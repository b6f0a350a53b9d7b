import re

from rest_framework import serializers

from dflor.catalog.models import Produto as ProdutoModel
from dflor.core.entities import Cliente, EnderecoEntrega, ItemCheckout
from dflor.core.frete import CODIGO_PAC, CODIGO_SEDEX


# ====================================================================
# SERIALIZERS DO CATÁLOGO
# ====================================================================

class ProdutoSerializer(serializers.ModelSerializer):
    cores = serializers.ListField(child=serializers.DictField(), required=False)
    tamanhos = serializers.ListField(child=serializers.CharField(max_length=20), required=False)
    imagens = serializers.ListField(child=serializers.URLField(), required=False)

    class Meta:
        model = ProdutoModel
        fields = [
            'id', 'nome', 'descricao', 'preco', 'preco_original', 'imagem_url', 'imagens',
            'tamanhos', 'cores', 'categoria', 'estoque', 'peso_kg', 'em_destaque',
            'data_criacao', 'data_atualizacao',
        ]
        read_only_fields = ['id', 'data_criacao', 'data_atualizacao']

    def validate_cores(self, value):
        for cor in value:
            if not cor.get("name") or not re.match(r"^#[0-9A-Fa-f]{6}$", cor.get("hex") or ""):
                raise serializers.ValidationError("Cada cor precisa de 'name' e 'hex' (#RRGGBB).")
        return [{"name": cor["name"], "hex": cor["hex"]} for cor in value]

    def validate_estoque(self, value):
        if value < 0:
            raise serializers.ValidationError("O estoque não pode ser negativo.")
        return value

    def validate(self, attrs):
        preco = attrs.get('preco', getattr(self.instance, 'preco', None))
        preco_original = attrs.get('preco_original', getattr(self.instance, 'preco_original', None))
        if preco_original is not None and preco is not None and preco_original < preco:
            raise serializers.ValidationError({'preco_original': "O preço original deve ser maior ou igual ao preço."})
        return attrs


# ====================================================================
# SERIALIZERS DE CHECKOUT
# ====================================================================

class EnderecoSerializer(serializers.Serializer):
    rua = serializers.CharField(max_length=255)
    numero = serializers.CharField(max_length=20)
    complemento = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    bairro = serializers.CharField(max_length=100)
    cidade = serializers.CharField(max_length=100)
    estado = serializers.CharField(max_length=2)
    cep = serializers.CharField(max_length=9)


class ClienteSerializer(serializers.Serializer):
    nome = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    telefone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    cpf = serializers.CharField(max_length=14, required=False, allow_blank=True, allow_null=True)


class ItemCheckoutSerializer(serializers.Serializer):
    produto_id = serializers.CharField(max_length=64)
    quantidade = serializers.IntegerField(min_value=1)
    tamanho = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    cor = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)


class CheckoutSerializer(serializers.Serializer):
    """
    Serializer para a validação dos dados de checkout.
    Preço e nome dos itens vêm do catálogo, não do cliente.
    """
    itens = ItemCheckoutSerializer(many=True, allow_empty=False)
    cliente = ClienteSerializer()
    endereco = EnderecoSerializer()
    metodo_envio = serializers.ChoiceField(choices=[CODIGO_PAC, CODIGO_SEDEX])
    desconto = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, default=0)

    def to_entities(self):
        dados = self.validated_data
        itens = [
            ItemCheckout(
                produto_id=item['produto_id'],
                quantidade=item['quantidade'],
                tamanho=item.get('tamanho') or None,
                cor=item.get('cor') or None,
            )
            for item in dados['itens']
        ]
        cliente = Cliente(
            nome=dados['cliente']['nome'],
            email=dados['cliente']['email'],
            telefone=dados['cliente'].get('telefone') or "",
            cpf=dados['cliente'].get('cpf') or None,
        )
        endereco = EnderecoEntrega(**dados['endereco'])
        return itens, cliente, endereco


class FreteSerializer(serializers.Serializer):
    cep = serializers.CharField(max_length=9)
    peso_kg = serializers.DecimalField(max_digits=6, decimal_places=3, min_value=0, required=False, default=0)


class OpcaoFreteSerializer(serializers.Serializer):
    codigo = serializers.CharField()
    nome = serializers.CharField()
    preco = serializers.DecimalField(max_digits=10, decimal_places=2)
    prazo_dias = serializers.IntegerField()


# ====================================================================
# SERIALIZERS DE PEDIDO (a partir das Entidades)
# ====================================================================

class ItemPedidoSerializer(serializers.Serializer):
    produto_id = serializers.CharField(allow_null=True)
    nome_produto = serializers.CharField()
    imagem_url = serializers.CharField()
    quantidade = serializers.IntegerField()
    preco_unitario = serializers.DecimalField(max_digits=10, decimal_places=2)
    preco_total = serializers.DecimalField(max_digits=10, decimal_places=2)
    tamanho = serializers.CharField(allow_null=True)
    cor = serializers.CharField(allow_null=True)


class PedidoStatusSerializer(serializers.Serializer):
    """Visão pública do pedido (páginas de sucesso/pendente)."""
    numero_pedido = serializers.CharField()
    status = serializers.CharField(source='status.value')
    status_pagamento = serializers.CharField(allow_null=True)
    provedor_pagamento = serializers.CharField()
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    codigo_rastreio = serializers.CharField(allow_null=True)
    data_pagamento = serializers.DateTimeField(allow_null=True)


class PedidoSerializer(PedidoStatusSerializer):
    id = serializers.CharField()
    cliente = serializers.SerializerMethodField()
    endereco = serializers.SerializerMethodField()
    itens = ItemPedidoSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2)
    frete = serializers.DecimalField(max_digits=10, decimal_places=2, source='frete.preco')
    metodo_envio = serializers.CharField(source='frete.metodo')
    prazo_envio = serializers.IntegerField(source='frete.prazo_dias')
    desconto = serializers.DecimalField(max_digits=10, decimal_places=2)
    metodo_pagamento = serializers.CharField()
    referencia_provedor = serializers.CharField(allow_null=True)
    motivo_falha = serializers.CharField(allow_null=True)
    data_criacao = serializers.DateTimeField(allow_null=True)
    data_envio = serializers.DateTimeField(allow_null=True)
    data_entrega = serializers.DateTimeField(allow_null=True)

    def get_cliente(self, obj):
        return {
            'nome': obj.cliente.nome,
            'email': obj.cliente.email,
            'telefone': obj.cliente.telefone,
            'cpf': obj.cliente.cpf,
        }

    def get_endereco(self, obj):
        return obj.endereco.to_dict()


class AtualizarPedidoSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20, required=False)
    codigo_rastreio = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('status') and not attrs.get('codigo_rastreio'):
            raise serializers.ValidationError("Informe 'status' e/ou 'codigo_rastreio'.")
        return attrs


class AdminLoginSerializer(serializers.Serializer):
    senha = serializers.CharField(max_length=128, trim_whitespace=False)
