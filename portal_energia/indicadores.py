from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

from portal_energia.calculo_energia import calc_fator_potencia_global, calc_reativo_excedente
from portal_energia.constantes import LIMITE_REATIVO_PADRAO
from portal_energia.derivados import totais_energia
from portal_energia.formatacao import numero
from portal_energia.periodo import comparar_rotulos

COLUNAS_SERIE = [
    "reference_label",
    "mwh_ponta", "mwh_fora", "mwh_res",
    "demanda_faturada_kw_ponta", "demanda_faturada_kw_fora", "demanda_faturada_kw_reservado",
    "compra_energia_rs", "icms_energia_rs", "encargos_rs",
    "banco_trianon_rs", "gestao_cco_rs", "gestao_parceiro_rs",
    "economia_liquida_rs",
    "total_kvarh", "limite_kvarh", "reativo_excedente_kvarh", "fator_potencia",
]

_COLUNAS_DEMANDA = [
    "demanda_faturada_kw_ponta", "demanda_faturada_kw_fora", "demanda_faturada_kw_reservado",
]


@dataclass(frozen=True)
class IndicadoresEnergia:
    economia_total: float
    economia_pct_ponderada: float    # total savings / total invoices
    economia_pct_media: float        # simple mean of the monthly ratios
    consumo_mwh: float
    melhor_mes: Mapping[str, Any]
    pior_mes: Mapping[str, Any]


def ordenar_por_rotulo(linhas: Sequence[Mapping[str, Any]]) -> list:
    chave = cmp_to_key(comparar_rotulos)
    return sorted(linhas, key=lambda linha: chave(linha["reference_label"]))


def _consumo_mwh(linha: Mapping[str, Any]) -> float:
    mwh = numero(linha.get("mwh_total_gerador"))
    if mwh:
        return mwh
    kwh, _ = totais_energia(linha)
    return kwh / 1000


def calcular_indicadores(linhas: Sequence[Mapping[str, Any]]) -> Optional[IndicadoresEnergia]:
    """KPI card values for the rows of the selected period. None without rows."""
    if not linhas:
        return None

    economia_total = sum(numero(linha.get("economia_liquida_rs")) for linha in linhas)
    fatura_total = sum(numero(linha.get("fatura_geral_rs")) for linha in linhas)

    razoes_mensais = [
        numero(linha.get("economia_liquida_rs")) / numero(linha.get("fatura_geral_rs"))
        for linha in linhas
        if numero(linha.get("fatura_geral_rs"))
    ]

    def _economia(linha):
        return numero(linha.get("economia_liquida_rs"))

    return IndicadoresEnergia(
        economia_total=economia_total,
        economia_pct_ponderada=economia_total / fatura_total if fatura_total else 0.0,
        economia_pct_media=(
            sum(razoes_mensais) / len(razoes_mensais) if razoes_mensais else 0.0
        ),
        consumo_mwh=sum(_consumo_mwh(linha) for linha in linhas),
        melhor_mes=max(linhas, key=_economia),
        pior_mes=min(linhas, key=_economia),
    )


def serie_mensal(linhas: Sequence[Mapping[str, Any]]) -> pd.DataFrame:
    """Chronological chart data: MWh and demand per post, costs and reactive."""
    registros = []
    for linha in ordenar_por_rotulo(linhas):
        total_kwh, total_kvarh = totais_energia(linha)
        limite_rate = numero(linha.get("reativo_limite_rate"), LIMITE_REATIVO_PADRAO)
        fp = calc_fator_potencia_global(total_kwh, total_kvarh)

        registro = {
            "reference_label": linha["reference_label"],
            "mwh_ponta": numero(linha.get("energia_kwh_ponta")) / 1000,
            "mwh_fora": numero(linha.get("energia_kwh_fora")) / 1000,
            "mwh_res": numero(linha.get("energia_kwh_reservado")) / 1000,
            "total_kvarh": total_kvarh,
            "limite_kvarh": limite_rate * total_kwh,
            "reativo_excedente_kvarh": calc_reativo_excedente(total_kwh, total_kvarh, limite_rate),
            "fator_potencia": fp,
        }
        for campo in COLUNAS_SERIE:
            if campo not in registro:
                registro[campo] = numero(linha.get(campo))
        registros.append(registro)

    return pd.DataFrame(registros, columns=COLUNAS_SERIE)


def demandas_zeradas(serie: pd.DataFrame) -> bool:
    """True when no month billed any demand (the demand chart is then hidden)."""
    if serie.empty:
        return False
    return bool((serie[_COLUNAS_DEMANDA] == 0).all().all())
