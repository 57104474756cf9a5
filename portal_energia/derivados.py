"""Recalculation of the derived fields of a monthly record.

Mirrors the spreadsheet columns that the admin form fills automatically
whenever an input column changes.
"""

from typing import Any, Mapping, Optional

from portal_energia.calculo_energia import (
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
from portal_energia.configuracao import ConfiguracaoRegulatoria, obter_configuracao
from portal_energia.formatacao import numero


def _round4_opcional(valor: Optional[float]) -> Optional[float]:
    return round4(valor) if valor is not None else None


def totais_energia(registro: Mapping[str, Any]) -> tuple[float, float]:
    """(kWh, kvarh) summed over ponta, fora and reservado."""
    energia = (
        numero(registro.get("energia_kwh_ponta"))
        + numero(registro.get("energia_kwh_fora"))
        + numero(registro.get("energia_kwh_reservado"))
    )
    reativo = (
        numero(registro.get("reativo_kvarh_ponta"))
        + numero(registro.get("reativo_kvarh_fora"))
        + numero(registro.get("reativo_kvarh_reservado"))
    )
    return energia, reativo


def recalcular_financeiro(registro: Mapping[str, Any]) -> dict:
    icms_energia = calc_icms_energia(
        numero(registro.get("compra_energia_rs")),
        numero(registro.get("icms_rate")),
        numero(registro.get("rdb_rate")),
    )
    fatura_geral = numero(registro.get("fatura_geral_rs"))
    economia = calc_economia_liquida(
        fatura_geral=fatura_geral,
        fatura_livre=numero(registro.get("fatura_livre_rs")),
        compra_energia=numero(registro.get("compra_energia_rs")),
        icms_energia=icms_energia,
        encargos=numero(registro.get("encargos_rs")),
        banco_trianon=numero(registro.get("banco_trianon_rs")),
        gestao_cco=numero(registro.get("gestao_cco_rs")),
        gestao_parceiro=numero(registro.get("gestao_parceiro_rs")),
    )
    return {
        "icms_energia_rs": icms_energia,
        "economia_liquida_rs": economia,
        "economia_liquida_pct": calc_pct_economia(economia, fatura_geral),
    }


def recalcular_eletrico(
    registro: Mapping[str, Any],
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> dict:
    configuracao = configuracao or obter_configuracao()
    total_energia, total_reativo = totais_energia(registro)
    limite = numero(registro.get("reativo_limite_rate"), configuracao.limite_reativo)

    fp_global = calc_fator_potencia_global(total_energia, total_reativo)
    demanda_maxima = numero(registro.get("demanda_maxima_kw"))
    meta_min = numero(registro.get("fp_param_min"), configuracao.fp_meta_min)
    meta_max = numero(registro.get("fp_param_max"), configuracao.fp_meta_max)

    return {
        "mwh_total_gerador": round4(total_energia / 1000),
        "reativo_excedente_kvarh": round4(
            calc_reativo_excedente(total_energia, total_reativo, limite)
        ),
        "fator_potencia": round4(calc_fator_potencia(total_energia, total_reativo)),
        "fp_ponta": _round4_opcional(calc_fator_potencia_periodo(
            numero(registro.get("energia_kwh_ponta")),
            numero(registro.get("reativo_kvarh_ponta")),
        )),
        "fp_fora": _round4_opcional(calc_fator_potencia_periodo(
            numero(registro.get("energia_kwh_fora")),
            numero(registro.get("reativo_kvarh_fora")),
        )),
        "fp_res": _round4_opcional(calc_fator_potencia_periodo(
            numero(registro.get("energia_kwh_reservado")),
            numero(registro.get("reativo_kvarh_reservado")),
        )),
        "fp_global": _round4_opcional(fp_global),
        # kVAr uses the unrounded global factor, as the spreadsheet does
        "kvar_corrigir_min": trunc2(
            calc_kvar_corrigir_por_demanda(fp_global, demanda_maxima, meta_min)
        ),
        "kvar_corrigir_max": trunc2(
            calc_kvar_corrigir_por_demanda(fp_global, demanda_maxima, meta_max)
        ),
    }


def recalcular_campos(
    registro: Mapping[str, Any],
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> dict:
    """All derived fields of ``registro`` (a dict or a model dump)."""
    campos = recalcular_financeiro(registro)
    campos.update(recalcular_eletrico(registro, configuracao))
    return campos


def aplicar_campos_derivados(
    registro: Mapping[str, Any],
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> dict:
    """Copy of ``registro`` with its derived fields overwritten."""
    atualizado = dict(registro)
    atualizado.update(recalcular_campos(registro, configuracao))
    return atualizado
