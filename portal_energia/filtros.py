"""Unit, distributor and supplier filters plus per-month aggregation.

Rows are plain dicts as returned by the data layer (``reference_label``,
``unit_id``, ``distribuidora`` and the numeric metric columns).
"""

import re
from typing import Any, Iterable, Mapping, Optional

from portal_energia.calculo_energia import (
    arredondar,
    calc_fator_potencia,
    calc_fator_potencia_global,
    calc_fator_potencia_periodo,
    calc_pct_economia,
    calc_reativo_excedente,
    round4,
)
from portal_energia.constantes import (
    CAMPOS_FP,
    CAMPOS_SOMA_AGREGACAO,
    CAMPOS_TAXA_PRIMEIRO,
    LIMITE_REATIVO_PADRAO,
    MULTIPLAS,
    TODAS,
)
from portal_energia.derivados import totais_energia
from portal_energia.formatacao import numero
from portal_energia.models import Unidade

Linha = dict[str, Any]

# Columns coerced to numbers at the end of the pipeline, and their fallback
_COERCAO_NUMERICA = {campo: 0.0 for campo in CAMPOS_SOMA_AGREGACAO}
_COERCAO_NUMERICA["reativo_limite_rate"] = LIMITE_REATIVO_PADRAO


def _texto(valor: Optional[str]) -> str:
    return valor.strip() if isinstance(valor, str) else ""


def distribuidoras_unicas(linhas: Iterable[Mapping], unidades: Iterable[Unidade]) -> list[str]:
    """Sorted distributor names, from the units first and the rows as fallback."""
    nomes = {_texto(u.distribuidora) for u in unidades}
    nomes.update(_texto(linha.get("distribuidora")) for linha in linhas)
    nomes.discard("")
    return sorted(nomes)


def fornecedoras_unicas(unidades: Iterable[Unidade]) -> list[str]:
    nomes = {_texto(u.fornecedora_energia) for u in unidades}
    nomes.discard("")
    return sorted(nomes)


def unidades_das_linhas(linhas: Iterable[Mapping]) -> list[Unidade]:
    """One Unidade per distinct ``unit_id`` of imported rows, sorted by id.

    The first non-empty distributor seen for a unit is kept.
    """
    unidades: dict[str, Unidade] = {}
    for linha in linhas:
        unidade_id = _texto(linha.get("unit_id"))
        if not unidade_id:
            continue
        distribuidora = _texto(linha.get("distribuidora")) or None
        atual = unidades.get(unidade_id)
        if atual is None:
            unidades[unidade_id] = Unidade(id=unidade_id, code=unidade_id, distribuidora=distribuidora)
        elif atual.distribuidora is None and distribuidora:
            unidades[unidade_id] = atual.model_copy(update={"distribuidora": distribuidora})
    return [unidades[chave] for chave in sorted(unidades)]


def indexar_unidades(unidades: Iterable[Unidade]) -> dict[str, Unidade]:
    return {u.id: u for u in unidades}


def distribuidora_da_unidade(unidade_id: str, unidades: Iterable[Unidade]) -> Optional[str]:
    for unidade in unidades:
        if unidade.id == unidade_id:
            return unidade.distribuidora
    return None


def filtrar_por_unidade(linhas: list[Linha], unidade_id: str) -> list[Linha]:
    if unidade_id == TODAS:
        return linhas
    return [linha for linha in linhas if linha.get("unit_id") == unidade_id]


def filtrar_por_distribuidora(
    linhas: list[Linha],
    distribuidora: str,
    unidades_por_id: Mapping[str, Unidade],
) -> list[Linha]:
    """Row's own distributor wins; otherwise the one registered for its unit."""
    if distribuidora == TODAS:
        return linhas

    def _da_linha(linha: Linha) -> Optional[str]:
        if linha.get("distribuidora"):
            return linha["distribuidora"]
        unidade = unidades_por_id.get(linha.get("unit_id") or "")
        return unidade.distribuidora if unidade else None

    return [linha for linha in linhas if _da_linha(linha) == distribuidora]


def filtrar_por_fornecedora(
    linhas: list[Linha],
    fornecedora: str,
    unidades_por_id: Mapping[str, Unidade],
) -> list[Linha]:
    if fornecedora == TODAS:
        return linhas

    def _da_linha(linha: Linha) -> Optional[str]:
        unidade = unidades_por_id.get(linha.get("unit_id") or "")
        return unidade.fornecedora_energia if unidade else None

    return [linha for linha in linhas if _da_linha(linha) == fornecedora]


def _acumular(acumulado: Linha, linha: Linha) -> None:
    energia_atual, _ = totais_energia(acumulado)
    energia_linha, _ = totais_energia(linha)

    for campo in CAMPOS_SOMA_AGREGACAO:
        acumulado[campo] = numero(acumulado.get(campo)) + numero(linha.get(campo))

    # Reactive limit weighted by active energy; energy before this row is energia_atual
    if energia_linha > 0:
        taxa_atual = numero(acumulado.get("reativo_limite_rate"), LIMITE_REATIVO_PADRAO)
        taxa_linha = numero(linha.get("reativo_limite_rate"), LIMITE_REATIVO_PADRAO)
        energia_nova = energia_atual + energia_linha
        acumulado["reativo_limite_rate"] = (
            taxa_atual * energia_atual + taxa_linha * energia_linha
        ) / energia_nova

    for campo in CAMPOS_TAXA_PRIMEIRO:
        if not acumulado.get(campo) and linha.get(campo):
            acumulado[campo] = linha[campo]

    if acumulado.get("distribuidora") != linha.get("distribuidora"):
        acumulado["distribuidora"] = MULTIPLAS


def _recalcular_agregado(linha: Linha) -> Linha:
    total_kwh, total_kvarh = totais_energia(linha)
    limite = numero(linha.get("reativo_limite_rate"), LIMITE_REATIVO_PADRAO)

    fps = {
        "fp_ponta": calc_fator_potencia_periodo(
            numero(linha.get("energia_kwh_ponta")), numero(linha.get("reativo_kvarh_ponta"))
        ),
        "fp_fora": calc_fator_potencia_periodo(
            numero(linha.get("energia_kwh_fora")), numero(linha.get("reativo_kvarh_fora"))
        ),
        "fp_res": calc_fator_potencia_periodo(
            numero(linha.get("energia_kwh_reservado")), numero(linha.get("reativo_kvarh_reservado"))
        ),
        # From the totals; summing per-unit factors is meaningless
        "fp_global": calc_fator_potencia_global(total_kwh, total_kvarh),
    }

    recalculada = dict(linha)
    recalculada["reativo_excedente_kvarh"] = arredondar(
        calc_reativo_excedente(total_kwh, total_kvarh, limite), 2
    )
    recalculada["fator_potencia"] = round4(calc_fator_potencia(total_kwh, total_kvarh))
    recalculada["economia_liquida_pct"] = calc_pct_economia(
        numero(linha.get("economia_liquida_rs")), numero(linha.get("fatura_geral_rs"))
    )
    for campo in CAMPOS_FP:
        valor = fps[campo]
        recalculada[campo] = round4(valor) if valor is not None else None
    return recalculada


def agregar_por_mes(linhas: Iterable[Linha]) -> list[Linha]:
    """One row per reference_label, summing all units that reported it."""
    agrupado: dict[str, Linha] = {}
    for linha in linhas:
        rotulo = linha.get("reference_label")
        if rotulo not in agrupado:
            agrupado[rotulo] = dict(linha)
        else:
            _acumular(agrupado[rotulo], linha)

    return [_recalcular_agregado(linha) for linha in agrupado.values()]


def _coagir_numeros(linha: Linha) -> Linha:
    coagida = dict(linha)
    for campo, padrao in _COERCAO_NUMERICA.items():
        coagida[campo] = numero(linha.get(campo), padrao)
    for campo in CAMPOS_FP:
        valor = linha.get(campo)
        coagida[campo] = float(valor) if valor is not None else None
    return coagida


def processar_dados_energia(
    linhas: list[Linha],
    unidade_id: str,
    distribuidora: str,
    fornecedora: str,
    unidades: list[Unidade],
) -> list[Linha]:
    """Full dashboard pipeline: unit filter → distributor/supplier filters
    (only for "todas") → per-month aggregation (only for "todas") → numbers.
    """
    unidades_por_id = indexar_unidades(unidades)

    filtradas = filtrar_por_unidade(linhas, unidade_id)

    if unidade_id == TODAS:
        filtradas = filtrar_por_distribuidora(filtradas, distribuidora, unidades_por_id)
        filtradas = filtrar_por_fornecedora(filtradas, fornecedora, unidades_por_id)
        filtradas = agregar_por_mes(filtradas)

    return [_coagir_numeros(linha) for linha in filtradas]


def _slug(texto: str) -> str:
    return re.sub(r"\s+", "_", texto)


def nome_arquivo_exportacao(
    unidade_id: str,
    distribuidora: str,
    fornecedora: str,
    periodo: str,
    nome_cliente: Optional[str] = None,
    unidades: Optional[list[Unidade]] = None,
) -> str:
    """→ 'energia_<cliente>_<unidade>_<distribuidora>_<fornecedora>_<periodo>.csv'"""
    prefixo = f"energia_{_slug(nome_cliente)}" if nome_cliente else "energia"

    if unidade_id == TODAS:
        parte_unidade = TODAS
    else:
        unidade = indexar_unidades(unidades or []).get(unidade_id)
        parte_unidade = unidade.code if unidade else "unidade"

    parte_distribuidora = TODAS if distribuidora == TODAS else _slug(distribuidora)
    parte_fornecedora = TODAS if fornecedora == TODAS else _slug(fornecedora)

    return (
        f"{prefixo}_{parte_unidade}_{parte_distribuidora}_"
        f"{parte_fornecedora}_{periodo.lower()}.csv"
    )
