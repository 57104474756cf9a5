from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from portal_energia.constantes import LIMITE_REATIVO_PADRAO
from portal_energia.periodo import parse_rotulo_referencia


class RegistroEnergiaMensal(BaseModel):
    """One unit's monthly metrics, as stored in energy_monthly_metrics."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    reference_label: str                       # "ago/24"
    unit_id: Optional[str] = None
    distribuidora: Optional[str] = None
    cod_instal: Optional[str] = None
    n_relatorio: Optional[str] = None

    # Fatura (R$)
    fatura_geral_rs: float = 0.0
    bandeiras_rs: float = 0.0
    fatura_livre_rs: float = 0.0
    proinfa_rs: float = 0.0
    compra_energia_rs: float = 0.0
    icms_energia_rs: float = 0.0
    encargos_rs: float = 0.0
    banco_trianon_rs: float = 0.0
    gestao_cco_rs: float = 0.0
    gestao_parceiro_rs: float = 0.0
    economia_liquida_rs: float = 0.0
    economia_liquida_pct: float = 0.0
    mwh_total_gerador: float = Field(default=0.0, ge=0)
    tarifa_energia_rs_mwh: float = 0.0

    # Alíquotas (fração)
    pis_rate: float = Field(default=0.0, ge=0, le=1)
    cofins_rate: float = Field(default=0.0, ge=0, le=1)
    icms_rate: float = Field(default=0.0, ge=0, le=1)
    rdb_rate: float = Field(default=0.0, ge=0, le=1)

    # Energia ativa (kWh) e reativa (kvarh) por posto
    energia_kwh_ponta: float = Field(default=0.0, ge=0)
    energia_kwh_fora: float = Field(default=0.0, ge=0)
    energia_kwh_reservado: float = Field(default=0.0, ge=0)
    reativo_kvarh_ponta: float = Field(default=0.0, ge=0)
    reativo_kvarh_fora: float = Field(default=0.0, ge=0)
    reativo_kvarh_reservado: float = Field(default=0.0, ge=0)
    reativo_limite_rate: float = Field(default=LIMITE_REATIVO_PADRAO, ge=0, le=1)
    reativo_excedente_kvarh: float = 0.0
    preco_kvarh_excedente: float = 0.0
    fator_potencia: float = 0.0

    # Demanda (kW)
    demanda_contratada_kw_ponta: float = Field(default=0.0, ge=0)
    demanda_contratada_kw_fora: float = Field(default=0.0, ge=0)
    demanda_contratada_kw_reservado: float = Field(default=0.0, ge=0)
    demanda_faturada_kw_ponta: float = Field(default=0.0, ge=0)
    demanda_faturada_kw_fora: float = Field(default=0.0, ge=0)
    demanda_faturada_kw_reservado: float = Field(default=0.0, ge=0)
    demanda_maxima_kw: float = Field(default=0.0, ge=0)

    # Preços unitários
    preco_kwh_ponta: float = 0.0
    preco_kwh_fora: float = 0.0
    preco_kwh_reservado: float = 0.0
    preco_kw_ponta: float = 0.0
    preco_kw_fora: float = 0.0
    preco_kw_reservado: float = 0.0
    preco_kvarh_ponta: float = 0.0
    preco_kvarh_fora: float = 0.0
    preco_kvarh_reservado: float = 0.0

    # Fator de potência (planilha)
    fp_param_min: Optional[float] = Field(default=None, gt=0, le=1)
    fp_param_max: Optional[float] = Field(default=None, gt=0, le=1)
    fp_ponta: Optional[float] = None
    fp_fora: Optional[float] = None
    fp_res: Optional[float] = None
    fp_global: Optional[float] = None
    kvar_corrigir_min: float = 0.0
    kvar_corrigir_max: float = 0.0

    @field_validator("reference_label")
    @classmethod
    def _rotulo_valido(cls, valor: str) -> str:
        parse_rotulo_referencia(valor)
        return valor.strip().lower()


class Unidade(BaseModel):
    id: str
    code: str
    nickname: Optional[str] = None
    distribuidora: Optional[str] = None
    fornecedora_energia: Optional[str] = None
