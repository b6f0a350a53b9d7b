# dflor/core/frete.py
"""
Estimador de frete por região de CEP.

Não integra com transportadoras: o preço e o prazo saem de uma tabela por
proximidade entre a região de origem e a de destino (primeiro dígito do CEP).
"""
import math
import re
from decimal import Decimal
from typing import Dict, List, Tuple

from dflor.core.entities import OpcaoFrete
from dflor.core.exceptions import CepInvalidoError, DadosInvalidosError


REGIOES_VIZINHAS: Dict[int, Tuple[int, ...]] = {
    0: (1, 2, 3),
    1: (0, 2, 3, 8),
    2: (0, 1, 3),
    3: (0, 1, 2, 4, 7),
    4: (3, 5, 7),
    5: (4, 6),
    6: (5, 7),
    7: (3, 4, 6, 8, 9),
    8: (1, 7, 9),
    9: (7, 8),
}

# (preco, prazo_dias) por faixa de distância
TABELA_PAC = {
    "mesma_regiao": (Decimal("19.90"), 5),
    "vizinha": (Decimal("24.90"), 7),
    "distante": (Decimal("34.90"), 12),
}
TABELA_SEDEX = {
    "mesma_regiao": (Decimal("29.90"), 2),
    "vizinha": (Decimal("39.90"), 3),
    "distante": (Decimal("54.90"), 5),
}

ADICIONAL_INTERIOR_PAC = 2
ADICIONAL_INTERIOR_SEDEX = 1

# Valor cobrado por kg iniciado acima de 1 kg
ADICIONAL_PESO_PAC = Decimal("2.50")
ADICIONAL_PESO_SEDEX = Decimal("4.00")

CODIGO_PAC = "PAC"
CODIGO_SEDEX = "SEDEX"


def normalizar_cep(cep) -> str:
    """Remove tudo que não for dígito; levanta CepInvalidoError se não sobrarem 8."""
    digitos = re.sub(r"\D", "", str(cep or ""))
    if len(digitos) != 8:
        raise CepInvalidoError(str(cep or ""))
    return digitos


def _faixa(regiao_origem: int, regiao_destino: int) -> str:
    if regiao_origem == regiao_destino:
        return "mesma_regiao"
    if regiao_destino in REGIOES_VIZINHAS.get(regiao_origem, ()):
        return "vizinha"
    return "distante"


def _is_capital(cep: str) -> bool:
    # Heurística: CEPs de capitais terminam em faixas baixas (ex.: 01310-000).
    return int(cep[-3:]) < 100


def _adicional_peso(peso_kg: Decimal, valor_por_kg: Decimal) -> Decimal:
    excedente = peso_kg - Decimal("1")
    if excedente <= 0:
        return Decimal("0.00")
    return valor_por_kg * math.ceil(excedente)


def estimar_frete(cep_origem: str, cep_destino: str, peso_kg=Decimal("0")) -> List[OpcaoFrete]:
    """
    Retorna as ofertas PAC (econômica) e SEDEX (expressa) para o par de CEPs.

    Função pura: mesma entrada, mesma saída.
    """
    origem = normalizar_cep(cep_origem)
    destino = normalizar_cep(cep_destino)
    peso = Decimal(str(peso_kg or 0))
    if peso < 0:
        peso = Decimal("0")

    faixa = _faixa(int(origem[0]), int(destino[0]))
    preco_pac, prazo_pac = TABELA_PAC[faixa]
    preco_sedex, prazo_sedex = TABELA_SEDEX[faixa]

    if not _is_capital(destino):
        prazo_pac += ADICIONAL_INTERIOR_PAC
        prazo_sedex += ADICIONAL_INTERIOR_SEDEX

    preco_pac += _adicional_peso(peso, ADICIONAL_PESO_PAC)
    preco_sedex += _adicional_peso(peso, ADICIONAL_PESO_SEDEX)

    return [
        OpcaoFrete(codigo=CODIGO_PAC, nome="PAC", preco=preco_pac, prazo_dias=prazo_pac),
        OpcaoFrete(codigo=CODIGO_SEDEX, nome="SEDEX", preco=preco_sedex, prazo_dias=prazo_sedex),
    ]


def selecionar_opcao(opcoes: List[OpcaoFrete], codigo: str) -> OpcaoFrete:
    for opcao in opcoes:
        if opcao.codigo == (codigo or "").upper():
            return opcao
    raise DadosInvalidosError(f"Método de envio '{codigo}' indisponível para o CEP informado.")
