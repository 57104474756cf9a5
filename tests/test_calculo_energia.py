"""Billing formulas checked against values taken from the monthly spreadsheet."""

import logging
import math

import pytest

from portal_energia.calculo_energia import (
    arredondar,
    calc_economia_liquida,
    calc_fator_potencia,
    calc_fator_potencia_global,
    calc_fator_potencia_periodo,
    calc_icms_energia,
    calc_kvar_corrigir_por_demanda,
    calc_pct_economia,
    calc_reativo_excedente,
    round4,
    trunc2,
)
from portal_energia.configuracao import obter_configuracao


# =============================================================================
# Rounding helpers
# =============================================================================

def test_trunc2_truncates_toward_zero() -> None:
    assert trunc2(1.239) == 1.23
    assert trunc2(-1.239) == -1.23
    assert trunc2(2.0) == 2.0


def test_trunc2_has_no_float_drift() -> None:
    # 0.29 * 100 == 28.999999999999996 in binary floating point
    assert trunc2(0.29) == 0.29
    assert trunc2(1.005) == 1.0


def test_round4_half_up() -> None:
    assert round4(0.12345) == 0.1235
    assert round4(0.12344) == 0.1234
    assert round4(0.162975) == 0.163


def test_round4_negative_ties_go_up() -> None:
    assert round4(-0.00005) == 0.0


@pytest.mark.parametrize("valor", [0.0, 1.23, -7.5, 123456.789, 0.1234])
def test_rounding_is_idempotent(valor: float) -> None:
    assert trunc2(trunc2(valor)) == trunc2(valor)
    assert round4(round4(valor)) == round4(valor)


def test_arredondar_two_places() -> None:
    assert arredondar(80.005, 2) == 80.01
    assert arredondar(80.004, 2) == 80.0


# =============================================================================
# ICMS over purchased energy
# =============================================================================

def test_icms_without_rebate() -> None:
    # eff = 0.18, base = trunc2(1000 / 0.82) = 1219.51, result = trunc2(219.5118)
    assert calc_icms_energia(1000, 0.18, 0) == 219.51


def test_icms_with_rebate() -> None:
    # eff = round4(0.205 - 0.205 * 0.205) = 0.163
    # base = trunc2(55000 / 0.837) = 65710.87
    assert calc_icms_energia(55000, 0.205, 0.205) == 10710.87


def test_icms_zero_purchase() -> None:
    assert calc_icms_energia(0, 0.18, 0) == 0.0


def test_icms_full_rate_falls_back_to_unit_divisor(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="portal_energia.calculo_energia"):
        resultado = calc_icms_energia(1234.567, 1, 0)
    assert resultado == 1234.56
    assert "100%" in caplog.text


# =============================================================================
# Net savings
# =============================================================================

def test_economia_liquida() -> None:
    economia = calc_economia_liquida(
        fatura_geral=100000,
        fatura_livre=60000,
        compra_energia=55000,
        icms_energia=10710.87,
        encargos=500,
        banco_trianon=0,
        gestao_cco=800,
        gestao_parceiro=1200,
    )
    assert economia == -28210.87


def test_economia_liquida_positive() -> None:
    economia = calc_economia_liquida(
        fatura_geral=50000.10,
        fatura_livre=20000,
        compra_energia=10000,
        icms_energia=2000.05,
        encargos=100,
        banco_trianon=50,
        gestao_cco=0,
        gestao_parceiro=0,
    )
    assert economia == 17850.05


def test_pct_economia_five_places() -> None:
    assert calc_pct_economia(-28210.87, 100000) == -0.28211
    assert calc_pct_economia(1, 3) == 0.33333


def test_pct_economia_without_invoice() -> None:
    assert calc_pct_economia(0, 0) == 0.0
    assert calc_pct_economia(500, 0) == 0.0


# =============================================================================
# Reactive energy and power factor
# =============================================================================

def test_reativo_excedente() -> None:
    assert calc_reativo_excedente(1000, 700, 0.62) == pytest.approx(80.0)


def test_reativo_excedente_never_negative() -> None:
    assert calc_reativo_excedente(1000, 100, 0.62) == 0.0
    assert calc_reativo_excedente(0, 0, 0.62) == 0.0


def test_reativo_excedente_uses_configured_limit() -> None:
    limite = obter_configuracao().limite_reativo
    assert calc_reativo_excedente(1000, 1000) == pytest.approx(1000 - 1000 * limite)


def test_fator_potencia() -> None:
    assert calc_fator_potencia(3, 4) == pytest.approx(0.6)
    assert calc_fator_potencia(1000, 0) == 1.0


def test_fator_potencia_without_energy_is_zero() -> None:
    assert calc_fator_potencia(0, 0) == 0.0


def test_fator_potencia_periodo_and_global_are_optional() -> None:
    assert calc_fator_potencia_periodo(0, 50) is None
    assert calc_fator_potencia_global(0, 100) is None
    assert calc_fator_potencia_periodo(-10, 5) is None


def test_fator_potencia_formulas_agree_with_energy() -> None:
    assert calc_fator_potencia_global(3, 4) == pytest.approx(calc_fator_potencia(3, 4))
    assert calc_fator_potencia_periodo(150000, 72000) == pytest.approx(
        calc_fator_potencia(150000, 72000)
    )


# =============================================================================
# kVAr to correct by maximum demand
# =============================================================================

def test_kvar_corrigir() -> None:
    fp = 0.8
    esperado = 400 * (math.tan(math.acos(0.8)) - math.tan(math.acos(0.92)))
    assert calc_kvar_corrigir_por_demanda(fp, 400, 0.92) == pytest.approx(esperado)
    assert esperado == pytest.approx(129.6, abs=0.1)


def test_kvar_corrigir_already_above_target() -> None:
    assert calc_kvar_corrigir_por_demanda(0.98, 400, 0.92) == 0.0


@pytest.mark.parametrize(
    "fp, demanda",
    [(None, 400), (0, 400), (-0.5, 400), (0.8, 0), (0.8, -10)],
)
def test_kvar_corrigir_without_inputs(fp, demanda) -> None:
    assert calc_kvar_corrigir_por_demanda(fp, demanda, 0.92) == 0.0


def test_kvar_corrigir_clamps_power_factor() -> None:
    # fp above 1 is treated as 1 (tan 0), so nothing needs correcting
    assert calc_kvar_corrigir_por_demanda(1.2, 400, 0.92) == 0.0


# =============================================================================
# Extreme inputs never raise
# =============================================================================

def test_trunc2_and_round4_huge_values() -> None:
    assert trunc2(1e27) == 1e27
    assert round4(1e27) == 1e27
    assert trunc2(-1.5e300) == -1.5e300


@pytest.mark.parametrize("valor", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_values_become_zero(valor: float) -> None:
    assert trunc2(valor) == 0.0
    assert round4(valor) == 0.0
    assert calc_icms_energia(valor, 0.18, 0) == 0.0


def test_icms_huge_purchase() -> None:
    # base = trunc2(1e27 / 0.82), then * 0.18
    assert calc_icms_energia(1e27, 0.18, 0) == pytest.approx(1e27 / 0.82 * 0.18)


def test_economia_and_pct_huge_values() -> None:
    economia = calc_economia_liquida(
        fatura_geral=1e30,
        fatura_livre=0,
        compra_energia=0,
        icms_energia=0,
        encargos=0,
        banco_trianon=0,
        gestao_cco=0,
        gestao_parceiro=0,
    )
    assert economia == 1e30
    assert calc_pct_economia(1e30, 1e-3) == pytest.approx(1e33)


def test_fator_potencia_tiny_energy() -> None:
    assert calc_fator_potencia_periodo(1e-160, 1.0) == pytest.approx(1e-160)
    assert calc_fator_potencia_global(1e-300, 1e300) == 0.0


def test_fator_potencia_huge_inputs() -> None:
    assert calc_fator_potencia(1e200, 0) == 1.0
    assert calc_fator_potencia(3e200, 4e200) == pytest.approx(0.6)
