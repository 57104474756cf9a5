from datetime import date

import pandas as pd
import pytest

from portal_energia.configuracao import ConfiguracaoRegulatoria
from portal_energia.filtros import (
    distribuidoras_unicas,
    nome_arquivo_exportacao,
    processar_dados_energia,
    unidades_das_linhas,
)
from portal_energia.importacao import (
    MODELO_CABECALHOS,
    gerar_modelo_csv,
    gerar_modelo_excel,
    importar_linhas,
    importar_planilha,
    mapear_cabecalhos,
    montar_registro,
    normalizar_cabecalho,
    normalizar_rotulo,
    parse_numero,
    parse_percentual,
)
from portal_energia.models import RegistroEnergiaMensal

# =============================================================================
# Value parsing
# =============================================================================


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("R$ 12.345,67", 12345.67),
        ("12,345.67", 12345.67),
        ("1.234", 1.234),
        ("1234", 1234.0),
        ("-1.500,25", -1500.25),
        ("", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (42, 42.0),
        ("abc", 0.0),
    ],
)
def test_parse_numero(entrada, esperado) -> None:
    assert parse_numero(entrada) == pytest.approx(esperado)


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("20,5%", 0.205),
        ("20,5", 0.205),
        ("0,205", 0.205),
        (0.18, 0.18),
        (18, 0.18),
        ("0,65%", 0.0065),
        ("", 0.0),
    ],
)
def test_parse_percentual(entrada, esperado) -> None:
    assert parse_percentual(entrada) == pytest.approx(esperado)


@pytest.mark.parametrize(
    "entrada, esperado",
    [
        ("ago/24", "ago/24"),
        ("AGO/24", "ago/24"),
        ("2024-08", "ago/24"),
        ("2024/8", "ago/24"),
        ("08/2024", "ago/24"),
        ("ago/2024", "ago/24"),
        ("Ago 2024", "ago/24"),
        (date(2024, 8, 1), "ago/24"),
        (pd.Timestamp("2024-08-01"), "ago/24"),
        (None, ""),
        ("  ", ""),
        ("agosto", "agosto"),
        ("2024-13", "2024-13"),
    ],
)
def test_normalizar_rotulo(entrada, esperado) -> None:
    assert normalizar_rotulo(entrada) == esperado


# =============================================================================
# Header mapping
# =============================================================================

def test_normalizar_cabecalho() -> None:
    assert normalizar_cabecalho(" Gestão  CCO (R$) ") == "GESTAO CCO (R$)"
    assert normalizar_cabecalho(None) == ""


def test_template_headers_are_all_recognised() -> None:
    mapeamento = mapear_cabecalhos(MODELO_CABECALHOS)
    assert len(mapeamento) == len(MODELO_CABECALHOS)
    assert mapeamento["reference_label"] == "Mes Referencia"
    assert mapeamento["distribuidora"] == "Distribuidora"
    assert mapeamento["fatura_geral_rs"] == "Fatura GERAL COELBA (R$)"
    assert mapeamento["fatura_livre_rs"] == "Fatura COELBA-LIVRE (R$)"
    assert mapeamento["demanda_contratada_kw_fora"] == "Demanda Contratada Fora (kW)"


def test_fora_ponta_is_not_ponta() -> None:
    mapeamento = mapear_cabecalhos(["Energia Fora Ponta (kWh)", "Energia Ponta (kWh)"])
    assert mapeamento == {
        "energia_kwh_fora": "Energia Fora Ponta (kWh)",
        "energia_kwh_ponta": "Energia Ponta (kWh)",
    }


def test_price_columns_are_not_quantities() -> None:
    mapeamento = mapear_cabecalhos([
        "Preço kWh Ponta (R$/kWh)",
        "Energia Reservado (kWh)",
        "Tarifa kW Fora",
        "Reativo Ponta (kvarh)",
    ])
    assert mapeamento == {
        "preco_kwh_ponta": "Preço kWh Ponta (R$/kWh)",
        "energia_kwh_reservado": "Energia Reservado (kWh)",
        "preco_kw_fora": "Tarifa kW Fora",
        "reativo_kvarh_ponta": "Reativo Ponta (kvarh)",
    }


def test_unknown_headers_are_ignored() -> None:
    assert mapear_cabecalhos(["Observações", "", None]) == {}


# =============================================================================
# Record building
# =============================================================================

def test_montar_registro_recomputes_financial_fields() -> None:
    linha = {
        "Mes Referencia": "2024-08",
        "Fatura GERAL COELBA (R$)": "100.000,00",
        "Compra de Energia (R$)": "55.000,00",
        "ICMS": "20,5%",
        "RDB": "0,205",
        "ICMS Energia (R$)": "999",
    }
    registro = montar_registro(linha, mapear_cabecalhos(linha), ConfiguracaoRegulatoria())
    assert registro["reference_label"] == "ago/24"
    assert registro["icms_energia_rs"] == 10710.87
    assert registro["economia_liquida_rs"] == 34289.13
    assert registro["icms_rate"] == pytest.approx(0.205)


def test_montar_registro_reads_unit_and_distributor() -> None:
    linha = {"COD INSTAL": " 7001 ", "Distribuidora": "Neoenergia Coelba", "Mes Referencia": "jan/24"}
    registro = montar_registro(linha, mapear_cabecalhos(linha), ConfiguracaoRegulatoria())
    assert registro["unit_id"] == "7001"
    assert registro["cod_instal"] == "7001"
    assert registro["distribuidora"] == "Neoenergia Coelba"


def test_montar_registro_without_unit_columns() -> None:
    registro = montar_registro({"Mes Referencia": "jan/24"}, {"reference_label": "Mes Referencia"}, ConfiguracaoRegulatoria())
    assert registro["unit_id"] is None
    assert registro["distribuidora"] is None


def test_montar_registro_defaults_from_configuration() -> None:
    configuracao = ConfiguracaoRegulatoria(limite_reativo=0.5, fp_meta_min=0.9, fp_meta_max=0.95)
    registro = montar_registro({"Mes Referencia": "jan/24"}, {"reference_label": "Mes Referencia"}, configuracao)
    assert registro["reativo_limite_rate"] == 0.5
    assert registro["fp_param_min"] == 0.9
    assert registro["fp_param_max"] == 0.95
    assert registro["fp_global"] is None


def test_montar_registro_recomputes_electrical_fields_with_energy() -> None:
    linha = {
        "Mes Referencia": "jan/24",
        "Energia Fora (kWh)": "2000",
        "Reativo Fora (kvarh)": "1500",
        "MWh Total (Gerador)": "2,5",
        "Demanda Maxima (kW)": "100",
    }
    registro = montar_registro(linha, mapear_cabecalhos(linha), ConfiguracaoRegulatoria())
    assert registro["fp_global"] == 0.8
    assert registro["fp_fora"] == 0.8
    assert registro["reativo_excedente_kvarh"] == 260.0
    # informed MWh is kept
    assert registro["mwh_total_gerador"] == 2.5
    assert registro["kvar_corrigir_min"] > 0


def test_montar_registro_keeps_power_factor_without_energy() -> None:
    linha = {"Mes Referencia": "jan/24", "FP Global": "0,91", "Fator Potencia": "0,9"}
    registro = montar_registro(linha, mapear_cabecalhos(linha), ConfiguracaoRegulatoria())
    assert registro["fp_global"] == 0.91
    assert registro["fator_potencia"] == 0.9


# =============================================================================
# Row import
# =============================================================================

def test_importar_linhas_skips_invalid_rows(caplog: pytest.LogCaptureFixture) -> None:
    linhas = [
        {"Mes Referencia": "ago/24", "Fatura GERAL COELBA (R$)": "1000", "ICMS": ""},
        {"Mes Referencia": "", "Fatura GERAL COELBA (R$)": "1000", "ICMS": ""},
        {"Mes Referencia": "agosto", "Fatura GERAL COELBA (R$)": "1000", "ICMS": ""},
        {"Mes Referencia": "set/24", "Fatura GERAL COELBA (R$)": "1000", "ICMS": "150%"},
    ]
    resultado = importar_linhas(linhas, configuracao=ConfiguracaoRegulatoria())

    assert resultado.rotulos == ["ago/24"]
    assert [ignorada.indice for ignorada in resultado.ignorados] == [2, 3, 4]
    assert resultado.ignorados[0].motivo == "reference_label ausente"
    assert resultado.ignorados[1].motivo == "reference_label inválido: 'agosto'"
    assert "icms_rate" in resultado.ignorados[2].motivo
    assert "3 de 4 linhas ignoradas" in caplog.text


def test_importar_linhas_empty() -> None:
    resultado = importar_linhas([])
    assert resultado.registros == []
    assert resultado.ignorados == []


def test_como_linhas_returns_dicts() -> None:
    resultado = importar_linhas([{"Mes Referencia": "AGO/24"}], configuracao=ConfiguracaoRegulatoria())
    (linha,) = resultado.como_linhas()
    assert linha["reference_label"] == "ago/24"
    assert linha["fatura_geral_rs"] == 0.0


# =============================================================================
# Spreadsheet files
# =============================================================================

def _confere_registro_modelo(registro: RegistroEnergiaMensal) -> None:
    assert registro.reference_label == "ago/24"
    assert registro.cod_instal == "12345"
    assert registro.n_relatorio == "RPT-2024-08"
    assert registro.distribuidora == "COELBA"
    assert registro.unit_id == "12345"
    assert registro.fatura_geral_rs == 100000.0
    assert registro.pis_rate == pytest.approx(0.0065)
    assert registro.icms_rate == pytest.approx(0.205)
    assert registro.rdb_rate == pytest.approx(0.205)
    assert registro.icms_energia_rs == 10710.87
    assert registro.economia_liquida_rs == -28210.87
    assert registro.economia_liquida_pct == -0.28211
    assert registro.mwh_total_gerador == 100.0
    assert registro.demanda_contratada_kw_reservado == 80.0


def test_template_csv_imports_cleanly() -> None:
    resultado = importar_planilha(gerar_modelo_csv(), "modelo.csv", ConfiguracaoRegulatoria())
    assert resultado.ignorados == []
    (registro,) = resultado.registros
    _confere_registro_modelo(registro)


def test_template_excel_imports_cleanly() -> None:
    resultado = importar_planilha(gerar_modelo_excel(), "modelo.xlsx", ConfiguracaoRegulatoria())
    assert resultado.ignorados == []
    (registro,) = resultado.registros
    _confere_registro_modelo(registro)


def test_gerar_modelo_csv_layout() -> None:
    linhas = gerar_modelo_csv().decode("utf-8").splitlines()
    assert len(linhas) == 2
    assert linhas[0].split(";") == MODELO_CABECALHOS


def test_imported_rows_drive_unit_and_distributor_filters() -> None:
    linhas = importar_planilha(gerar_modelo_csv(), "modelo.csv", ConfiguracaoRegulatoria()).como_linhas()
    unidades = unidades_das_linhas(linhas)
    assert distribuidoras_unicas(linhas, unidades) == ["COELBA"]

    por_distribuidora = processar_dados_energia(linhas, "todas", "COELBA", "todas", unidades)
    assert [linha["fatura_geral_rs"] for linha in por_distribuidora] == [100000.0]

    por_unidade = processar_dados_energia(linhas, "12345", "todas", "todas", unidades)
    assert [linha["reference_label"] for linha in por_unidade] == ["ago/24"]
    assert nome_arquivo_exportacao("12345", "todas", "todas", "ultimos12", unidades=unidades) == (
        "energia_12345_todas_todas_ultimos12.csv"
    )
