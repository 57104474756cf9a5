import streamlit as st

st.set_page_config(
    page_title="Portal de Energia",
    page_icon="⚡",
    layout="wide",
)

st.title("⚡ Portal de Gestão de Energia")

st.markdown(
    """
    Acompanhe os relatórios mensais de gestão de energia no mercado livre:
    economia líquida frente à fatura cativa, ICMS sobre a energia comprada,
    consumo por posto tarifário, energia reativa excedente e correção do
    fator de potência.
    """
)

st.divider()

st.subheader("Páginas do Portal")

st.markdown(
    """
    - **Painel Energia** — Importe a planilha mensal (CSV ou Excel), escolha o
      período (últimos 12 meses, ano atual, ano anterior ou personalizado) e
      veja os indicadores, gráficos e a tabela filtrada para exportação.
    - **Fator de Potência** — Preencha os dados de um mês e obtenha os campos
      calculados da planilha: ICMS, economia, fatores de potência por posto e
      kVAr de correção por demanda.
    """
)
