"""Geração do número público do pedido e validação de CPF."""
import re
import secrets
import time

ALFABETO_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
PREFIXO = "DF"


def _base36(numero: int) -> str:
    if numero == 0:
        return "0"
    digitos = []
    while numero:
        numero, resto = divmod(numero, 36)
        digitos.append(ALFABETO_BASE36[resto])
    return "".join(reversed(digitos))


def gerar_numero_pedido(agora_ms: int = None) -> str:
    """
    Formato: "DF" + timestamp em milissegundos na base 36 + 4 caracteres aleatórios.
    Não há checagem de unicidade prévia; o índice único do banco rejeita colisões.
    """
    if agora_ms is None:
        agora_ms = int(time.time() * 1000)
    sufixo = "".join(secrets.choice(ALFABETO_BASE36) for _ in range(4))
    return f"{PREFIXO}{_base36(agora_ms)}{sufixo}"


def cpf_valido(cpf: str) -> bool:
    """Valida os dígitos verificadores de um CPF (com ou sem máscara)."""
    digitos = re.sub(r"\D", "", cpf or "")
    if len(digitos) != 11 or digitos == digitos[0] * 11:
        return False

    for posicao in (9, 10):
        soma = sum(int(digitos[i]) * (posicao + 1 - i) for i in range(posicao))
        verificador = (soma * 10) % 11
        if verificador == 10:
            verificador = 0
        if verificador != int(digitos[posicao]):
            return False
    return True
