"""Billing formulas of the monthly energy spreadsheet.

Every function is pure. Rounding and truncation run on ``Decimal`` so that
chained steps (a tax base computed from an already rounded rate) carry no
binary floating-point drift; the public functions still return ``float``.
"""

import logging
import math
from decimal import ROUND_DOWN, ROUND_FLOOR, ROUND_HALF_UP, Decimal, getcontext, localcontext
from typing import Optional, Union

from portal_energia.configuracao import obter_configuracao

logger = logging.getLogger(__name__)

Numero = Union[int, float, Decimal]

_UM = Decimal(1)
_MEIO = Decimal("0.5")
_CENTAVO = Decimal("0.01")


def _dec(valor: Numero) -> Decimal:
    """0.1 → Decimal('0.1') (shortest repr, not the binary expansion).

    Infinities and NaN become 0, so no formula raises on them.
    """
    convertido = valor if isinstance(valor, Decimal) else Decimal(str(valor))
    if not convertido.is_finite():
        return Decimal(0)
    return convertido


def _precisao(valor: Decimal, casas: int) -> int:
    # Enough digits to keep every integer digit plus ``casas`` decimals
    return max(getcontext().prec, valor.adjusted() + casas + 2)


def _arredondar_dec(valor: Decimal, casas: int) -> Decimal:
    # Ties go toward +inf, like the spreadsheet's ROUND on positive values
    with localcontext() as ctx:
        ctx.prec = _precisao(valor, casas)
        escala = Decimal(10) ** casas
        inteiro = (valor * escala + _MEIO).to_integral_value(rounding=ROUND_FLOOR)
        return inteiro / escala


def _quantizar(valor: Decimal, passo: Decimal, arredondamento: str) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _precisao(valor, -passo.as_tuple().exponent)
        return valor.quantize(passo, rounding=arredondamento)


def _trunc2_dec(valor: Decimal) -> Decimal:
    return _quantizar(valor, _CENTAVO, ROUND_DOWN)


def arredondar(x: Numero, casas: int) -> float:
    return float(_arredondar_dec(_dec(x), casas))


def round4(x: Numero) -> float:
    """0.12345 → 0.1235 (round half up at the 4th decimal)."""
    return arredondar(x, 4)


def trunc2(x: Numero) -> float:
    """1.239 → 1.23 | -1.239 → -1.23 (TRUNCAR, toward zero)."""
    return float(_trunc2_dec(_dec(x)))


def calc_icms_energia(compra_energia: Numero, icms_rate: Numero, rdb_rate: Numero) -> float:
    """ICMS over purchased energy.

    Spreadsheet: =TRUNCAR((TRUNCAR(J/(1-ARRED(V-(V*W);4));2))*ARRED(V-(V*W);4);2)
    where J is the energy purchase, V the ICMS rate and W the RDB rebate.
    """
    icms = _dec(icms_rate)
    efetiva = _arredondar_dec(icms - icms * _dec(rdb_rate), 4)

    divisor = _UM - efetiva
    if divisor == 0:
        logger.warning(
            "Alíquota efetiva de ICMS igual a 100%% (icms=%s, rdb=%s); "
            "base de cálculo assumida igual à compra de energia",
            icms_rate, rdb_rate,
        )
        divisor = _UM

    base = _trunc2_dec(_dec(compra_energia) / divisor)
    return float(_trunc2_dec(base * efetiva))


def calc_economia_liquida(
    *,
    fatura_geral: Numero,
    fatura_livre: Numero,
    compra_energia: Numero,
    icms_energia: Numero,
    encargos: Numero,
    banco_trianon: Numero,
    gestao_cco: Numero,
    gestao_parceiro: Numero,
) -> float:
    """Net savings: = D - (F + J + L + M + N + O + P), truncated to cents."""
    custos = sum(
        (
            _dec(fatura_livre),
            _dec(compra_energia),
            _dec(icms_energia),
            _dec(encargos),
            _dec(banco_trianon),
            _dec(gestao_cco),
            _dec(gestao_parceiro),
        ),
        Decimal(0),
    )
    return float(_trunc2_dec(_dec(fatura_geral) - custos))


def calc_pct_economia(economia: Numero, fatura_geral: Numero) -> float:
    """Savings over the general invoice, 5 decimals. 0 when there is no invoice."""
    fatura = _dec(fatura_geral)
    if fatura == 0:
        return 0.0
    razao = _dec(economia) / fatura
    return float(_quantizar(razao, Decimal("0.00001"), ROUND_HALF_UP))


def calc_reativo_excedente(
    total_energia: float,
    total_reativo: float,
    limite: Optional[float] = None,
) -> float:
    """kvarh above the allowed fraction of active energy."""
    if limite is None:
        limite = obter_configuracao().limite_reativo
    reativo_permitido = total_energia * limite
    return max(0.0, total_reativo - reativo_permitido)


def calc_fator_potencia(total_energia: float, total_reativo: float) -> float:
    aparente = math.hypot(total_energia, total_reativo)
    return total_energia / aparente if aparente > 0 else 0.0


def _fp_razao(energia: float, reativo: float) -> Optional[float]:
    if energia <= 0:
        return None
    return 1 / math.hypot(1, reativo / energia)


def calc_fator_potencia_periodo(energia: float, reativo: float) -> Optional[float]:
    """Power factor of one tariff post. None when no energy was consumed."""
    return _fp_razao(energia, reativo)


def calc_fator_potencia_global(total_energia: float, total_reativo: float) -> Optional[float]:
    """Power factor over all posts. None when no energy was consumed."""
    return _fp_razao(total_energia, total_reativo)


def _limitar_unitario(valor: float) -> float:
    return min(1.0, max(0.0, valor))


def calc_kvar_corrigir_por_demanda(
    fp_global: Optional[float],
    demanda_maxima: float,
    fp_meta: float,
) -> float:
    """kVAr needed to raise the power factor from fp_global to fp_meta."""
    if fp_global is None or fp_global <= 0 or demanda_maxima <= 0:
        return 0.0

    tan_atual = math.tan(math.acos(_limitar_unitario(fp_global)))
    tan_meta = math.tan(math.acos(_limitar_unitario(fp_meta)))

    return max(0.0, demanda_maxima * (tan_atual - tan_meta))
