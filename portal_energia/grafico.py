import pandas as pd
import plotly.graph_objects as go

from portal_energia.formatacao import formatar_moeda, formatar_numero

VERDE_ESCURO = "#148c73"
VERDE_CLARO = "#80c739"
VERDE_MEDIO = "#20c9a5"
VERMELHO = "#d9534f"


def criar_grafico_consumo(serie: pd.DataFrame) -> go.Figure:
    """Stacked bars: MWh per tariff post (ponta, fora ponta, reservado)."""
    fig = go.Figure()

    postos = [
        ("mwh_ponta", "Ponta", VERDE_ESCURO),
        ("mwh_fora", "Fora Ponta", VERDE_CLARO),
        ("mwh_res", "Reservado", VERDE_MEDIO),
    ]
    for coluna, nome, cor in postos:
        fig.add_trace(go.Bar(
            name=nome,
            x=serie["reference_label"],
            y=serie[coluna],
            marker_color=cor,
            hovertemplate=f"{nome}: %{{customdata}} MWh<extra></extra>",
            customdata=[formatar_numero(v, 3) for v in serie[coluna]],
        ))

    fig.update_layout(
        barmode="stack",
        title="Consumo por Posto Tarifário",
        xaxis_title="Mês",
        yaxis_title="MWh",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        plot_bgcolor="white",
        height=400,
    )

    return fig


def criar_grafico_economia(serie: pd.DataFrame) -> go.Figure:
    """Bars of monthly net savings; negative months in red."""
    valores = serie["economia_liquida_rs"]

    fig = go.Figure(go.Bar(
        name="Economia Líquida",
        x=serie["reference_label"],
        y=valores,
        marker_color=[VERDE_ESCURO if v >= 0 else VERMELHO for v in valores],
        text=[formatar_moeda(v) for v in valores],
        textposition="outside",
        hovertemplate="Economia: %{customdata}<extra></extra>",
        customdata=[formatar_moeda(v) for v in valores],
    ))

    fig.update_layout(
        title="Economia Líquida Mensal",
        xaxis_title="Mês",
        yaxis_title="R$",
        yaxis_tickprefix="R$ ",
        yaxis_tickformat=",.0f",
        yaxis_separatethousands=True,
        plot_bgcolor="white",
        height=450,
    )

    return fig


def criar_grafico_fator_potencia(serie: pd.DataFrame, fp_meta: float) -> go.Figure:
    """Line: global power factor per month against the target."""
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        name="Fator de Potência",
        x=serie["reference_label"],
        y=serie["fator_potencia"],
        mode="lines+markers",
        line=dict(color=VERDE_ESCURO, width=2),
        marker=dict(size=6),
        hovertemplate="Mês: %{x}<br>FP: %{y:.4f}<extra></extra>",
    ))

    fig.add_hline(
        y=fp_meta,
        line_dash="dash",
        line_color=VERMELHO,
        annotation_text=f"Meta {formatar_numero(fp_meta, 2)}",
    )

    fig.update_layout(
        title="Fator de Potência Global",
        xaxis_title="Mês",
        yaxis_title="FP",
        yaxis_range=[min(0.8, fp_meta - 0.05), 1.0],
        plot_bgcolor="white",
        height=400,
    )

    return fig


def criar_grafico_reativo(serie: pd.DataFrame) -> go.Figure:
    """Grouped bars: reactive energy measured vs allowed, with the excess."""
    fig = go.Figure()

    fig.add_trace(go.Bar(
        name="Reativo Total",
        x=serie["reference_label"],
        y=serie["total_kvarh"],
        marker_color=VERDE_ESCURO,
    ))
    fig.add_trace(go.Bar(
        name="Limite Permitido",
        x=serie["reference_label"],
        y=serie["limite_kvarh"],
        marker_color=VERDE_CLARO,
    ))
    fig.add_trace(go.Scatter(
        name="Excedente",
        x=serie["reference_label"],
        y=serie["reativo_excedente_kvarh"],
        mode="lines+markers",
        line=dict(color=VERMELHO, width=2),
    ))

    fig.update_layout(
        barmode="group",
        title="Energia Reativa (kvarh)",
        xaxis_title="Mês",
        yaxis_title="kvarh",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        plot_bgcolor="white",
        height=400,
    )

    return fig


def criar_grafico_custos(serie: pd.DataFrame) -> go.Figure:
    """Donut chart: free-market cost breakdown over the period."""
    componentes = [
        ("compra_energia_rs", "Compra de Energia"),
        ("icms_energia_rs", "ICMS Energia"),
        ("encargos_rs", "Encargos"),
        ("banco_trianon_rs", "Banco Trianon"),
        ("gestao_cco_rs", "Gestão CCO"),
        ("gestao_parceiro_rs", "Gestão Parceiro"),
    ]
    labels = [nome for _, nome in componentes]
    values = [float(serie[coluna].sum()) for coluna, _ in componentes]

    colors = ["#148c73", "#1aad8e", "#20c9a5", "#80c739", "#a3d96b", "#c4ea9c"]

    fig = go.Figure(go.Pie(
        labels=labels,
        values=values,
        hole=0.4,
        marker=dict(colors=colors),
        textinfo="label+percent",
        hovertemplate="%{label}: %{customdata}<br>%{percent}<extra></extra>",
        customdata=[formatar_moeda(v) for v in values],
    ))

    fig.update_layout(
        title="Composição dos Custos no Mercado Livre",
        height=450,
    )

    return fig
