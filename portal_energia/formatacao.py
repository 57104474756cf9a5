import math

from portal_energia.constantes import MESES_ABREV


def formatar_moeda(valor: float) -> str:
    """1234.56 → 'R$ 1.234,56'"""
    if valor < 0:
        return f"-R$ {_formatar_numero_br(abs(valor))}"
    return f"R$ {_formatar_numero_br(valor)}"


def formatar_percentual(valor: float) -> str:
    """0.2534 → '25,34%' | -0.05 → '-5,00%'"""
    sinal = "-" if valor < 0 else ""
    return f"{sinal}{_formatar_numero_br(abs(valor) * 100)}%"


def formatar_numero(valor: float, casas: int = 2) -> str:
    """1234.5 → '1.234,50' (casas=2) | 0.91234 → '0,9123' (casas=4)"""
    texto = f"{abs(valor):,.{casas}f}"
    texto = texto.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"-{texto}" if valor < 0 else texto


def formatar_rotulo(ano: int, mes: int) -> str:
    """(2024, 8) → 'ago/24'"""
    return f"{MESES_ABREV[mes - 1]}/{ano % 100:02d}"


def numero(valor, padrao: float = 0.0) -> float:
    """Lenient coercion of stored values: None, '', NaN and junk → padrao."""
    if valor is None or isinstance(valor, bool):
        return padrao
    try:
        convertido = float(valor)
    except (TypeError, ValueError):
        return padrao
    if math.isnan(convertido) or convertido == 0:
        return padrao
    return convertido


def _formatar_numero_br(valor: float) -> str:
    """1234.56 → '1.234,56'"""
    return formatar_numero(valor, 2)
