from datetime import date

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from portal_energia.configuracao import obter_configuracao
from portal_energia.constantes import TODAS
from portal_energia.erros import RotuloReferenciaInvalido
from portal_energia.filtros import (
    distribuidoras_unicas,
    nome_arquivo_exportacao,
    processar_dados_energia,
    unidades_das_linhas,
)
from portal_energia.formatacao import formatar_moeda, formatar_numero, formatar_percentual
from portal_energia.grafico import (
    criar_grafico_consumo,
    criar_grafico_custos,
    criar_grafico_economia,
    criar_grafico_fator_potencia,
    criar_grafico_reativo,
)
from portal_energia.importacao import gerar_modelo_csv, importar_planilha
from portal_energia.indicadores import (
    calcular_indicadores,
    demandas_zeradas,
    ordenar_por_rotulo,
    serie_mensal,
)
from portal_energia.periodo import (
    AnoAnterior,
    AnoAtual,
    Personalizado,
    Ultimos12,
    descrever_seletor,
    filtrar_por_periodo,
    rotulos_disponiveis,
)

st.set_page_config(page_title="Painel Energia", page_icon="⚡", layout="wide")
st.title("⚡ Painel de Energia")

configuracao = obter_configuracao()

# ---------------------------------------------------------------------------
# Spreadsheet upload
# ---------------------------------------------------------------------------
c1, c2 = st.columns([3, 1])
with c1:
    arquivo = st.file_uploader("Planilha mensal (CSV ou Excel)", type=["csv", "xlsx", "xls"])
with c2:
    st.download_button(
        "📥 Baixar modelo CSV",
        data=gerar_modelo_csv(),
        file_name="modelo_energy_metrics.csv",
        mime="text/csv",
        use_container_width=True,
    )

if arquivo is None:
    st.info("Envie a planilha mensal para visualizar os indicadores.")
    st.stop()

resultado = importar_planilha(arquivo.getvalue(), arquivo.name)

if resultado.ignorados:
    with st.expander(f"{len(resultado.ignorados)} linha(s) ignorada(s)"):
        for linha in resultado.ignorados:
            st.write(f"Linha {linha.indice}: {linha.motivo}")

linhas = resultado.como_linhas()
if not linhas:
    st.warning("Nenhuma linha válida encontrada na planilha.")
    st.stop()

# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------
unidades = unidades_das_linhas(linhas)

f0, f1, f2, f3 = st.columns([1, 1, 1, 2])
with f0:
    unidade_id = st.selectbox("Unidade", [TODAS] + [u.id for u in unidades])
with f1:
    opcoes_distribuidora = [TODAS] + distribuidoras_unicas(linhas, unidades)
    distribuidora = st.selectbox(
        "Distribuidora", opcoes_distribuidora, disabled=unidade_id != TODAS
    )
with f2:
    modo = st.selectbox(
        "Período",
        ["Últimos 12 meses", "Ano atual", "Ano anterior", "Personalizado"],
    )
with f3:
    seletor = Ultimos12()
    if modo == "Ano atual":
        seletor = AnoAtual()
    elif modo == "Ano anterior":
        seletor = AnoAnterior()
    elif modo == "Personalizado":
        hoje = date.today()
        rotulos = [""] + rotulos_disponiveis(hoje.year - 5, hoje.year)
        p1, p2 = st.columns(2)
        inicio = p1.selectbox("Início (MMM/AA)", rotulos)
        fim = p2.selectbox("Fim (MMM/AA)", rotulos)
        try:
            seletor = Personalizado(inicio=inicio or None, fim=fim or None)
        except ValidationError as e:
            st.error(f"Período inválido: {e.errors()[0]['msg']}")
            st.stop()

try:
    no_periodo = filtrar_por_periodo(linhas, seletor)
except RotuloReferenciaInvalido as e:
    st.error(str(e))
    st.stop()

dados = processar_dados_energia(no_periodo, unidade_id, distribuidora, TODAS, unidades)
descricao_periodo = descrever_seletor(seletor)

if not dados:
    st.warning(f"Sem dados para o período: {descricao_periodo}.")
    st.stop()

# ---------------------------------------------------------------------------
# KPIs
# ---------------------------------------------------------------------------
indicadores = calcular_indicadores(dados)
st.subheader(f"KPIs de Energia ({descricao_periodo})")
k1, k2, k3, k4 = st.columns(4)
k1.metric("Economia Líquida", formatar_moeda(indicadores.economia_total))
k2.metric(
    "Economia % (ponderada)",
    formatar_percentual(indicadores.economia_pct_ponderada),
    help=f"Média simples mensal: {formatar_percentual(indicadores.economia_pct_media)}",
)
k3.metric("Consumo total (MWh)", formatar_numero(indicadores.consumo_mwh))
k4.metric(
    "Melhor mês",
    indicadores.melhor_mes["reference_label"],
    help=f"Pior mês: {indicadores.pior_mes['reference_label']}",
)

# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------
serie = serie_mensal(dados)

g1, g2 = st.columns(2)
with g1:
    st.plotly_chart(criar_grafico_economia(serie), use_container_width=True)
with g2:
    st.plotly_chart(criar_grafico_custos(serie), use_container_width=True)

st.plotly_chart(criar_grafico_consumo(serie), use_container_width=True)

g3, g4 = st.columns(2)
with g3:
    st.plotly_chart(
        criar_grafico_fator_potencia(serie, configuracao.fp_meta_min),
        use_container_width=True,
    )
with g4:
    st.plotly_chart(criar_grafico_reativo(serie), use_container_width=True)

if demandas_zeradas(serie):
    st.caption("Nenhuma demanda faturada no período.")

# ---------------------------------------------------------------------------
# Table + export
# ---------------------------------------------------------------------------
st.subheader("Dados Mensais")
tabela = pd.DataFrame(ordenar_por_rotulo(dados))
st.dataframe(tabela, use_container_width=True, hide_index=True)

st.download_button(
    "📥 Exportar CSV",
    data=tabela.to_csv(index=False, sep=";", decimal=",").encode("utf-8-sig"),
    file_name=nome_arquivo_exportacao(
        unidade_id, distribuidora, TODAS, seletor.modo, unidades=unidades
    ),
    mime="text/csv",
)
