import streamlit as st
from pydantic import ValidationError

from portal_energia.configuracao import obter_configuracao
from portal_energia.derivados import recalcular_campos
from portal_energia.formatacao import formatar_moeda, formatar_numero, formatar_percentual
from portal_energia.importacao import traduzir_erro_validacao
from portal_energia.models import RegistroEnergiaMensal

st.set_page_config(page_title="Fator de Potência", page_icon="⚡", layout="wide")
st.title("⚡ Campos Calculados do Mês")

configuracao = obter_configuracao()

col_form, col_result = st.columns([1, 1.2])

with col_form:
    with st.form("form_mes"):
        rotulo = st.text_input("Mês referência (MMM/AA)", value="ago/24")

        st.markdown("**Fatura e Custos (R$)**")
        c1, c2 = st.columns(2)
        with c1:
            fatura_geral = st.number_input("Fatura Geral", min_value=0.0, value=100000.0, step=100.0)
            compra_energia = st.number_input("Compra de Energia", min_value=0.0, value=55000.0, step=100.0)
            banco_trianon = st.number_input("Banco Trianon", min_value=0.0, value=0.0, step=10.0)
            gestao_parceiro = st.number_input("Gestão Parceiro", min_value=0.0, value=1200.0, step=10.0)
        with c2:
            fatura_livre = st.number_input("Fatura Livre", min_value=0.0, value=60000.0, step=100.0)
            encargos = st.number_input("Encargos", min_value=0.0, value=500.0, step=10.0)
            gestao_cco = st.number_input("Gestão CCO", min_value=0.0, value=800.0, step=10.0)

        st.markdown("**Alíquotas (fração)**")
        a1, a2 = st.columns(2)
        icms_rate = a1.number_input("ICMS", min_value=0.0, max_value=1.0, value=0.205, step=0.005, format="%.4f")
        rdb_rate = a2.number_input("RDB", min_value=0.0, max_value=1.0, value=0.205, step=0.005, format="%.4f")

        st.divider()

        st.markdown("**Energia por Posto**")
        e1, e2, e3 = st.columns(3)
        kwh_ponta = e1.number_input("kWh Ponta", min_value=0.0, value=30000.0, step=100.0)
        kwh_fora = e2.number_input("kWh Fora", min_value=0.0, value=120000.0, step=100.0)
        kwh_res = e3.number_input("kWh Reservado", min_value=0.0, value=0.0, step=100.0)
        kvarh_ponta = e1.number_input("kvarh Ponta", min_value=0.0, value=12000.0, step=100.0)
        kvarh_fora = e2.number_input("kvarh Fora", min_value=0.0, value=60000.0, step=100.0)
        kvarh_res = e3.number_input("kvarh Reservado", min_value=0.0, value=0.0, step=100.0)

        st.markdown("**Correção por Demanda**")
        d1, d2, d3 = st.columns(3)
        demanda_maxima = d1.number_input("Demanda Máxima (kW)", min_value=0.0, value=400.0, step=10.0)
        fp_min = d2.number_input("FP Meta Mín", min_value=0.01, max_value=1.0, value=configuracao.fp_meta_min)
        fp_max = d3.number_input("FP Meta Máx", min_value=0.01, max_value=1.0, value=configuracao.fp_meta_max)
        limite = st.number_input(
            "Limite Reativo (kvarh/kWh)", min_value=0.0, max_value=1.0,
            value=configuracao.limite_reativo, step=0.01,
        )

        submitted = st.form_submit_button("⚡ Calcular", use_container_width=True)

with col_result:
    if submitted:
        try:
            registro = RegistroEnergiaMensal(
                reference_label=rotulo,
                fatura_geral_rs=fatura_geral,
                fatura_livre_rs=fatura_livre,
                compra_energia_rs=compra_energia,
                encargos_rs=encargos,
                banco_trianon_rs=banco_trianon,
                gestao_cco_rs=gestao_cco,
                gestao_parceiro_rs=gestao_parceiro,
                icms_rate=icms_rate,
                rdb_rate=rdb_rate,
                energia_kwh_ponta=kwh_ponta,
                energia_kwh_fora=kwh_fora,
                energia_kwh_reservado=kwh_res,
                reativo_kvarh_ponta=kvarh_ponta,
                reativo_kvarh_fora=kvarh_fora,
                reativo_kvarh_reservado=kvarh_res,
                reativo_limite_rate=limite,
                demanda_maxima_kw=demanda_maxima,
                fp_param_min=fp_min,
                fp_param_max=fp_max,
            )
        except ValidationError as e:
            st.error(traduzir_erro_validacao(e))
            st.stop()

        campos = recalcular_campos(registro.model_dump(), configuracao)

        def _fp(valor):
            return formatar_numero(valor, 4) if valor is not None else "—"

        st.subheader(f"Resultados ({registro.reference_label})")
        m1, m2, m3 = st.columns(3)
        m1.metric("ICMS Energia", formatar_moeda(campos["icms_energia_rs"]))
        m2.metric("Economia Líquida", formatar_moeda(campos["economia_liquida_rs"]))
        m3.metric("Economia %", formatar_percentual(campos["economia_liquida_pct"]))

        st.divider()

        r1, r2, r3 = st.columns(3)
        r1.metric("MWh Total", formatar_numero(campos["mwh_total_gerador"], 4))
        r2.metric("Reativo Excedente (kvarh)", formatar_numero(campos["reativo_excedente_kvarh"], 4))
        r3.metric("Fator de Potência", _fp(campos["fator_potencia"]))

        p1, p2, p3, p4 = st.columns(4)
        p1.metric("FP Ponta", _fp(campos["fp_ponta"]))
        p2.metric("FP Fora", _fp(campos["fp_fora"]))
        p3.metric("FP Reservado", _fp(campos["fp_res"]))
        p4.metric("FP Global", _fp(campos["fp_global"]))

        k1, k2 = st.columns(2)
        k1.metric(f"kVAr p/ FP {formatar_numero(fp_min, 2)}", formatar_numero(campos["kvar_corrigir_min"]))
        k2.metric(f"kVAr p/ FP {formatar_numero(fp_max, 2)}", formatar_numero(campos["kvar_corrigir_max"]))
