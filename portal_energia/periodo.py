"""Reference labels ("ago/24") and period selection.

A label decodes to ``ReferenciaMes(ano, mes)`` and, for comparisons, to an
integer key ``ano * 100 + mes``. A period selector resolves to an inclusive
key range that filters monthly rows.
"""

import re
from datetime import date
from functools import cmp_to_key
from typing import Annotated, Any, Iterable, Literal, Mapping, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from portal_energia.constantes import (
    ANO_BASE_ROTULO,
    CHAVE_FIM_ABERTO,
    CHAVE_INICIO_ABERTO,
    MESES_ABREV,
)
from portal_energia.erros import RotuloReferenciaInvalido

CAMPO_ROTULO = "reference_label"

_ANO_DOIS_DIGITOS = re.compile(r"\d{2}")


class ReferenciaMes(NamedTuple):
    ano: int
    mes: int

    @property
    def chave(self) -> int:
        return self.ano * 100 + self.mes

    @property
    def rotulo(self) -> str:
        return f"{MESES_ABREV[self.mes - 1]}/{self.ano % 100:02d}"


class IntervaloPeriodo(NamedTuple):
    inicio: int
    fim: int

    def contem(self, chave: int) -> bool:
        return self.inicio <= chave <= self.fim


def parse_rotulo_referencia(rotulo: str) -> ReferenciaMes:
    """'ago/24' → ReferenciaMes(ano=2024, mes=8). Case-insensitive.

    Raises RotuloReferenciaInvalido for anything that is not 'mmm/aa'.
    """
    if not isinstance(rotulo, str):
        raise RotuloReferenciaInvalido(rotulo, "não é texto")

    partes = rotulo.strip().lower().split("/")
    if len(partes) != 2:
        raise RotuloReferenciaInvalido(rotulo, "formato esperado mmm/aa")

    token_mes, token_ano = (p.strip() for p in partes)
    if token_mes not in MESES_ABREV:
        raise RotuloReferenciaInvalido(rotulo, f"mês desconhecido '{token_mes}'")
    if not _ANO_DOIS_DIGITOS.fullmatch(token_ano):
        raise RotuloReferenciaInvalido(rotulo, f"ano deve ter 2 dígitos, recebido '{token_ano}'")

    return ReferenciaMes(
        ano=ANO_BASE_ROTULO + int(token_ano),
        mes=MESES_ABREV.index(token_mes) + 1,
    )


def tentar_parse_rotulo(rotulo: Any) -> Optional[ReferenciaMes]:
    try:
        return parse_rotulo_referencia(rotulo)
    except RotuloReferenciaInvalido:
        return None


def chave_periodo(rotulo: str) -> int:
    return parse_rotulo_referencia(rotulo).chave


def comparar_rotulos(a: str, b: str) -> int:
    """Comparator for sorted(key=cmp_to_key(...)): year first, then month."""
    ref_a = parse_rotulo_referencia(a)
    ref_b = parse_rotulo_referencia(b)
    if ref_a < ref_b:
        return -1
    if ref_a > ref_b:
        return 1
    return 0


def ordenar_rotulos(rotulos: Iterable[str]) -> list[str]:
    return sorted(rotulos, key=cmp_to_key(comparar_rotulos))


# ---------------------------------------------------------------------------
# Period selector: one model per mode, discriminated by ``modo``
# ---------------------------------------------------------------------------

class _Seletor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Ultimos12(_Seletor):
    modo: Literal["ultimos12"] = "ultimos12"


class AnoAtual(_Seletor):
    modo: Literal["ano_atual"] = "ano_atual"


class AnoAnterior(_Seletor):
    modo: Literal["ano_anterior"] = "ano_anterior"


class Personalizado(_Seletor):
    """Custom range; bounds are optional and may come in either order."""

    modo: Literal["personalizado"] = "personalizado"
    inicio: Optional[str] = None
    fim: Optional[str] = None

    @field_validator("inicio", "fim", mode="before")
    @classmethod
    def _normalizar_rotulo(cls, valor):
        if valor is None:
            return None
        if isinstance(valor, str) and not valor.strip():
            return None
        parse_rotulo_referencia(valor)
        return valor.strip().lower()


SeletorPeriodo = Annotated[
    Union[Ultimos12, AnoAtual, AnoAnterior, Personalizado],
    Field(discriminator="modo"),
]

_adaptador_seletor = TypeAdapter(SeletorPeriodo)

_OPCOES_LEGADO = {
    "ultimos12": Ultimos12,
    "anoAtual": AnoAtual,
    "anoAnterior": AnoAnterior,
}


def seletor_de_dict(dados: Mapping[str, Any]) -> SeletorPeriodo:
    """{'modo': 'personalizado', 'inicio': 'jan/24'} → Personalizado(...)."""
    return _adaptador_seletor.validate_python(dict(dados))


def seletor_de_opcao(
    opcao: str,
    inicio: Optional[str] = None,
    fim: Optional[str] = None,
) -> SeletorPeriodo:
    """Old dropdown values ('ultimos12', 'anoAtual', 'anoAnterior', 'custom')."""
    if opcao == "custom":
        return Personalizado(inicio=inicio, fim=fim)
    return _OPCOES_LEGADO.get(opcao, Ultimos12)()


def descrever_seletor(seletor: SeletorPeriodo) -> str:
    if isinstance(seletor, AnoAtual):
        return "Ano atual"
    if isinstance(seletor, AnoAnterior):
        return "Ano anterior"
    if isinstance(seletor, Personalizado):
        inicio = seletor.inicio or "início"
        fim = seletor.fim or "atual"
        return f"{inicio} a {fim}"
    return "Últimos 12 meses"


def resolver_intervalo(seletor: SeletorPeriodo, agora: Optional[date] = None) -> IntervaloPeriodo:
    """Inclusive PeriodKey bounds of a selector relative to ``agora``."""
    agora = agora or date.today()
    ano, mes = agora.year, agora.month

    if isinstance(seletor, AnoAtual):
        return IntervaloPeriodo(ano * 100 + 1, ano * 100 + 12)

    if isinstance(seletor, AnoAnterior):
        return IntervaloPeriodo((ano - 1) * 100 + 1, (ano - 1) * 100 + 12)

    if isinstance(seletor, Personalizado):
        inicio = chave_periodo(seletor.inicio) if seletor.inicio else CHAVE_INICIO_ABERTO
        fim = chave_periodo(seletor.fim) if seletor.fim else CHAVE_FIM_ABERTO
        return IntervaloPeriodo(min(inicio, fim), max(inicio, fim))

    # Ultimos12: current month plus the 11 before it
    meses_corridos = ano * 12 + (mes - 1) - 11
    inicio = ReferenciaMes(meses_corridos // 12, meses_corridos % 12 + 1)
    return IntervaloPeriodo(inicio.chave, ano * 100 + mes)


def _rotulo_da_linha(linha: Any) -> Optional[str]:
    if isinstance(linha, Mapping):
        return linha.get(CAMPO_ROTULO)
    return getattr(linha, CAMPO_ROTULO, None)


def filtrar_por_periodo(
    linhas: Iterable[Any],
    seletor: SeletorPeriodo,
    agora: Optional[date] = None,
) -> list:
    """Rows whose reference label falls inside the selector's range.

    Rows are dicts or objects exposing ``reference_label``; rows without a
    label are dropped, malformed labels raise RotuloReferenciaInvalido.
    """
    intervalo = resolver_intervalo(seletor, agora)
    selecionadas = []
    for linha in linhas:
        rotulo = _rotulo_da_linha(linha)
        if not rotulo:
            continue
        if intervalo.contem(chave_periodo(rotulo)):
            selecionadas.append(linha)
    return selecionadas


def rotulos_disponiveis(ano_inicio: int, ano_fim: int) -> list[str]:
    """All labels from jan/ano_inicio to dez/ano_fim, for the custom range pickers."""
    return [
        ReferenciaMes(ano, mes).rotulo
        for ano in range(ano_inicio, ano_fim + 1)
        for mes in range(1, 13)
    ]
