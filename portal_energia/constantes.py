MESES_ABREV = ['jan', 'fev', 'mar', 'abr', 'mai', 'jun',
               'jul', 'ago', 'set', 'out', 'nov', 'dez']

ANO_BASE_ROTULO = 2000  # "ago/24" → 2024

# Open-ended bounds of a custom period (PeriodKey = ano * 100 + mes)
CHAVE_INICIO_ABERTO = 0
CHAVE_FIM_ABERTO = 999999

LIMITE_REATIVO_PADRAO = 0.62   # kvarh permitido por kWh (regulatório)
FP_META_MIN_PADRAO = 0.92
FP_META_MAX_PADRAO = 0.94

TODAS = "todas"
MULTIPLAS = "Múltiplas"

# Fields summed when several units report the same month
CAMPOS_SOMA_AGREGACAO = [
    'fatura_geral_rs', 'fatura_livre_rs', 'economia_liquida_rs', 'economia_liquida_pct',
    'mwh_total_gerador', 'compra_energia_rs', 'icms_energia_rs', 'encargos_rs',
    'banco_trianon_rs', 'gestao_cco_rs', 'gestao_parceiro_rs',
    'energia_kwh_ponta', 'energia_kwh_fora', 'energia_kwh_reservado',
    'demanda_contratada_kw_ponta', 'demanda_contratada_kw_fora', 'demanda_contratada_kw_reservado',
    'demanda_faturada_kw_ponta', 'demanda_faturada_kw_fora', 'demanda_faturada_kw_reservado',
    'reativo_kvarh_ponta', 'reativo_kvarh_fora', 'reativo_kvarh_reservado',
    'preco_kw_ponta', 'preco_kw_fora', 'preco_kw_reservado',
    'preco_kwh_ponta', 'preco_kwh_fora', 'preco_kwh_reservado',
    'preco_kvarh_ponta', 'preco_kvarh_fora', 'preco_kvarh_reservado', 'preco_kvarh_excedente',
    'demanda_maxima_kw', 'kvar_corrigir_min', 'kvar_corrigir_max',
]

# Rates kept from the first unit that reports a non-zero value
CAMPOS_TAXA_PRIMEIRO = ['desconto_fonte', 'pis_rate', 'cofins_rate', 'icms_rate', 'rdb_rate']

CAMPOS_FP = ['fp_ponta', 'fp_fora', 'fp_res', 'fp_global']
