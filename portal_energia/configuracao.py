from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from portal_energia.constantes import (
    FP_META_MAX_PADRAO,
    FP_META_MIN_PADRAO,
    LIMITE_REATIVO_PADRAO,
)


class ConfiguracaoRegulatoria(BaseSettings):
    """Regulatory thresholds used by the calculation engine.

    Read from environment variables prefixed with PORTAL_ENERGIA_
    (e.g. PORTAL_ENERGIA_LIMITE_REATIVO=0.62) or from a local .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PORTAL_ENERGIA_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    limite_reativo: float = Field(default=LIMITE_REATIVO_PADRAO, ge=0, le=1)
    fp_meta_min: float = Field(default=FP_META_MIN_PADRAO, gt=0, le=1)
    fp_meta_max: float = Field(default=FP_META_MAX_PADRAO, gt=0, le=1)

    @model_validator(mode="after")
    def _metas_ordenadas(self):
        if self.fp_meta_min > self.fp_meta_max:
            raise ValueError("fp_meta_min deve ser <= fp_meta_max")
        return self


@lru_cache
def obter_configuracao() -> ConfiguracaoRegulatoria:
    return ConfiguracaoRegulatoria()
