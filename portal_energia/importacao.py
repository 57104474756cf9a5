"""Import of monthly metrics from the operations spreadsheet (CSV or XLSX).

Headers are matched by pattern, values are parsed leniently (Brazilian or
US number formats, percentages as '20,5%' or fractions), the reference
month is normalised to 'mmm/aa' and every row is validated into a
RegistroEnergiaMensal with its derived fields recalculated.
"""

import logging
import math
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from io import BytesIO
from typing import Any, Callable, Iterable, Mapping, Optional

import pandas as pd
from pydantic import ValidationError

from portal_energia.configuracao import ConfiguracaoRegulatoria, obter_configuracao
from portal_energia.constantes import MESES_ABREV
from portal_energia.derivados import recalcular_eletrico, recalcular_financeiro, totais_energia
from portal_energia.formatacao import formatar_rotulo
from portal_energia.models import RegistroEnergiaMensal
from portal_energia.periodo import tentar_parse_rotulo

logger = logging.getLogger(__name__)

CAMPOS_TEXTO = ["cod_instal", "n_relatorio", "distribuidora", "reference_label"]
CAMPOS_PERCENTUAL = ["pis_rate", "cofins_rate", "icms_rate", "rdb_rate"]

MODELO_CABECALHOS = [
    "COD INSTAL",
    "N RELATORIO",
    "Distribuidora",
    "Mes Referencia",
    "Fatura GERAL COELBA (R$)",
    "Bandeiras",
    "Fatura COELBA-LIVRE (R$)",
    "PROINFA (R$)",
    "MWh Total (Gerador)",
    "Tarifa Energia Faturada (R$/MWh)",
    "Compra de Energia (R$)",
    "ENCARGOS (R$)",
    "BANCO TRIANON",
    "GESTAO CCO (R$)",
    "GESTAO PARCEIRO (R$)",
    "PIS",
    "COFINS",
    "ICMS",
    "RDB",
    "Demanda Contratada Ponta (kW)",
    "Demanda Contratada Fora (kW)",
    "Demanda Contratada Reservado (kW)",
]

MODELO_EXEMPLO = [
    "12345", "RPT-2024-08", "COELBA", "ago/24", "100000,00", "0,00", "60000,00", "0,00",
    "100,0", "350,00", "55000,00", "500,00", "0,00", "800,00", "1200,00",
    "0,65%", "3,00%", "20,50%", "0,205", "120,00", "100,00", "80,00",
]


def _regra(*obrigatorios: str, proibido: Optional[str] = None) -> Callable[[str], bool]:
    padroes = [re.compile(p) for p in obrigatorios]
    bloqueio = re.compile(proibido) if proibido else None

    def _testar(cabecalho: str) -> bool:
        if bloqueio is not None and bloqueio.search(cabecalho):
            return False
        return all(p.search(cabecalho) for p in padroes)

    return _testar


def _regras_por_posto(campo: str, *obrigatorios: str, quantidade: bool = True) -> list:
    """Rules for the ponta / fora / reservado columns of one measure.

    Quantity columns (kWh, kW, kvarh) must not look like a price column.
    """
    bloqueios = [r"R\$", "PRECO", "TARIFA"] if quantidade else []
    bloqueio_posto = "|".join(bloqueios) or None
    return [
        (f"{campo}_ponta", _regra(*obrigatorios, "PONTA", proibido="|".join(bloqueios + ["FORA"]))),
        (f"{campo}_fora", _regra(*obrigatorios, "FORA", proibido=bloqueio_posto)),
        (f"{campo}_reservado", _regra(*obrigatorios, "RESERVADO", proibido=bloqueio_posto)),
    ]


# First matching rule wins, so more specific headers come first
REGRAS_CABECALHO: list[tuple[str, Callable[[str], bool]]] = [
    ("cod_instal", _regra(r"\bCOD\s*INSTAL\b")),
    ("n_relatorio", _regra(r"\bN\s*RELATORIO\b")),
    ("distribuidora", _regra(r"^DISTRIBUIDORA\b")),
    ("reference_label", _regra(r"\bMES\s*REFERENCIA\b")),
    ("fatura_geral_rs", _regra(r"FATURA\s+GERAL.*\(R\$\)")),
    ("bandeiras_rs", _regra(r"^BANDEIRAS\b")),
    ("fatura_livre_rs", _regra(r"FATURA.*LIVRE.*\(R\$\)")),
    ("proinfa_rs", _regra(r"\bPROINFA\b.*\(R\$\)")),
    ("mwh_total_gerador", _regra(r"MWH\s+TOTAL.*GERADOR")),
    ("tarifa_energia_rs_mwh", _regra(r"TARIFA.*ENERGIA.*\(R\$/MWH\)")),
    ("compra_energia_rs", _regra(r"COMPRA\s+DE\s+ENERGIA.*\(R\$\)")),
    ("encargos_rs", _regra(r"\bENCARGOS\b.*\(R\$\)")),
    ("banco_trianon_rs", _regra(r"\bBANCO\s+TRIANON\b")),
    ("gestao_cco_rs", _regra(r"GESTAO\s+CCO.*\(R\$\)")),
    ("gestao_parceiro_rs", _regra(r"(GESTAO\s+PARCEIRO|GESTAO\s+LUDFOR).*\(R\$\)")),
    # Derived columns, recalculated after reading; matched so they don't fall into the rates
    ("icms_energia_rs", _regra(r"^ICMS\s+ENERGIA\b")),
    ("economia_liquida_pct", _regra(r"^ECONOMIA\b", r"%")),
    ("economia_liquida_rs", _regra(r"^ECONOMIA\b")),
    ("pis_rate", _regra(r"^PIS\b")),
    ("cofins_rate", _regra(r"^COFINS\b")),
    ("icms_rate", _regra(r"^ICMS\b")),
    ("rdb_rate", _regra(r"^RDB\b")),
    *_regras_por_posto("energia_kwh", r"KWH"),
    *_regras_por_posto("preco_kwh", r"(R\$/KWH|PRECO\s*KWH|TARIFA\s*KWH)", quantidade=False),
    *_regras_por_posto("demanda_contratada_kw", r"KW", r"CONTRAT"),
    *_regras_por_posto("demanda_faturada_kw", r"KW", r"FATUR"),
    *_regras_por_posto("preco_kw", r"(R\$/KW|PRECO\s*KW|TARIFA\s*KW)", quantidade=False),
    *_regras_por_posto("reativo_kvarh", r"KVARH"),
    *_regras_por_posto("preco_kvarh", r"(R\$/KVARH|PRECO\s*KVARH|TARIFA\s*KVARH)", quantidade=False),
    ("reativo_limite_rate", _regra(r"LIMITE\s*REATIVO")),
    ("preco_kvarh_excedente", lambda h: bool(
        re.search(r"PRECO\s*REATIVO", h)
        or (re.search(r"PRECO.*EXCEDENTE", h) and "KVARH" in h)
    )),
    ("reativo_excedente_kvarh", _regra(r"EXCEDENTE.*REATIVO|REATIVO.*EXCEDENTE")),
    ("fator_potencia", _regra(r"FATOR\s*POTENCIA")),
    ("demanda_maxima_kw", _regra(r"DEMANDA\s*MAXIMA")),
    ("fp_param_min", _regra(r"FP\s*PARAM\s*MIN")),
    ("fp_param_max", _regra(r"FP\s*PARAM\s*MAX")),
    ("fp_ponta", _regra(r"FP\s*PONTA")),
    ("fp_fora", _regra(r"FP\s*FORA")),
    ("fp_res", _regra(r"FP\s*RES")),
    ("fp_global", _regra(r"FP\s*GLOBAL")),
    ("kvar_corrigir_min", _regra(r"KVAR\s*CORRIGIR\s*MIN")),
    ("kvar_corrigir_max", _regra(r"KVAR\s*CORRIGIR\s*MAX")),
]

CAMPOS_ALVO = [campo for campo, _ in REGRAS_CABECALHO]


@dataclass(frozen=True)
class LinhaIgnorada:
    indice: int      # 1-based, as shown in the spreadsheet body
    motivo: str


@dataclass
class ResultadoImportacao:
    registros: list[RegistroEnergiaMensal] = field(default_factory=list)
    ignorados: list[LinhaIgnorada] = field(default_factory=list)

    @property
    def rotulos(self) -> list[str]:
        return sorted({r.reference_label for r in self.registros})

    def como_linhas(self) -> list[dict]:
        return [r.model_dump() for r in self.registros]


def remover_acentos(texto: str) -> str:
    decomposto = unicodedata.normalize("NFD", texto)
    return "".join(c for c in decomposto if not unicodedata.combining(c))


def normalizar_cabecalho(cabecalho: Any) -> str:
    """' Gestão  CCO (R$) ' → 'GESTAO CCO (R$)'"""
    texto = re.sub(r"\s+", " ", str(cabecalho or "").strip().upper())
    return remover_acentos(texto)


def mapear_cabecalhos(cabecalhos: Iterable[Any]) -> dict[str, Any]:
    """{campo: cabeçalho original} for every header some rule recognises."""
    mapeamento = {}
    for original in cabecalhos:
        normalizado = normalizar_cabecalho(original)
        for campo, testar in REGRAS_CABECALHO:
            if testar(normalizado):
                mapeamento[campo] = original
                break
    return mapeamento


def _vazio(valor: Any) -> bool:
    if valor is None:
        return True
    if isinstance(valor, float) and math.isnan(valor):
        return True
    return isinstance(valor, str) and not valor.strip()


def parse_numero(valor: Any) -> float:
    """'R$ 12.345,67' → 12345.67 | '12,345.67' → 12345.67 | '' → 0.0

    The last ',' or '.' is the decimal separator; the others are dropped.
    """
    if _vazio(valor):
        return 0.0
    if isinstance(valor, (int, float)) and not isinstance(valor, bool):
        return float(valor)

    texto = re.sub(r"R\$|\s", "", str(valor))
    texto = re.sub(r"[^0-9,.\-]", "", texto)

    ultimo_separador = max(texto.rfind(","), texto.rfind("."))
    if ultimo_separador >= 0:
        inteiro = re.sub(r"[^0-9\-]", "", texto[:ultimo_separador])
        fracao = re.sub(r"[^0-9]", "", texto[ultimo_separador + 1:])
        sinal = "-" if inteiro.startswith("-") else ""
        inteiro_abs = inteiro.replace("-", "") or "0"
        return float(f"{sinal}{inteiro_abs}.{fracao or '0'}")

    digitos = re.sub(r"[^0-9\-]", "", texto)
    try:
        return float(digitos or "0")
    except ValueError:
        return 0.0


def parse_percentual(valor: Any) -> float:
    """'20,5%' → 0.205 | '20,5' → 0.205 | 0.205 → 0.205"""
    if _vazio(valor):
        return 0.0
    numero_lido = parse_numero(valor)
    if isinstance(valor, str) and "%" in valor:
        return numero_lido / 100
    # Bare values above 1.5 can only be percentages
    return numero_lido / 100 if numero_lido > 1.5 else numero_lido


def normalizar_rotulo(entrada: Any) -> str:
    """'2024-08' | '08/2024' | 'ago/2024' | date(2024, 8, 1) → 'ago/24'.

    Unrecognised input is returned lower-cased so the caller can reject it.
    """
    if isinstance(entrada, date):
        return formatar_rotulo(entrada.year, entrada.month)
    if _vazio(entrada):
        return ""

    texto = str(entrada).strip().lower().replace("\\", "/")
    if re.fullmatch(r"(jan|fev|mar|abr|mai|jun|jul|ago|set|out|nov|dez)/\d{2}", texto):
        return texto

    ano = mes = None
    casamento = re.fullmatch(r"(\d{4})[-/]?(\d{1,2})", texto)
    if casamento:
        ano, mes = int(casamento.group(1)), int(casamento.group(2))

    if mes is None:
        casamento = re.fullmatch(r"(\d{1,2})[-/]?(\d{4})", texto)
        if casamento:
            mes, ano = int(casamento.group(1)), int(casamento.group(2))

    if mes is None:
        casamento = re.fullmatch(r"([a-z]{3})[\s/-]?(\d{4})", texto)
        if casamento and casamento.group(1) in MESES_ABREV:
            mes = MESES_ABREV.index(casamento.group(1)) + 1
            ano = int(casamento.group(2))

    if mes is not None and ano is not None and 1 <= mes <= 12:
        return formatar_rotulo(ano, mes)

    return texto


def _texto_ou_nulo(valor: Any) -> Optional[str]:
    if _vazio(valor):
        return None
    return str(valor).strip()


def montar_registro(
    linha: Mapping[str, Any],
    mapeamento: Mapping[str, Any],
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> dict:
    """Raw spreadsheet row → record dict with derived fields filled in."""
    configuracao = configuracao or obter_configuracao()

    def _lido(campo):
        coluna = mapeamento.get(campo)
        return linha.get(coluna) if coluna is not None else None

    cod_instal = _texto_ou_nulo(_lido("cod_instal"))
    registro: dict[str, Any] = {
        "unit_id": cod_instal,
        "cod_instal": cod_instal,
        "n_relatorio": _texto_ou_nulo(_lido("n_relatorio")),
        "distribuidora": _texto_ou_nulo(_lido("distribuidora")),
        "reference_label": normalizar_rotulo(_lido("reference_label")),
    }
    for campo in CAMPOS_ALVO:
        if campo in CAMPOS_TEXTO:
            continue
        if campo in CAMPOS_PERCENTUAL:
            registro[campo] = parse_percentual(_lido(campo))
        else:
            registro[campo] = parse_numero(_lido(campo))

    registro["reativo_limite_rate"] = registro["reativo_limite_rate"] or configuracao.limite_reativo
    registro["fp_param_min"] = registro["fp_param_min"] or configuracao.fp_meta_min
    registro["fp_param_max"] = registro["fp_param_max"] or configuracao.fp_meta_max
    for campo in ("fp_ponta", "fp_fora", "fp_res", "fp_global"):
        registro[campo] = registro[campo] or None

    registro.update(recalcular_financeiro(registro))

    # Without metered energy the spreadsheet's own power-factor columns are kept
    total_energia, _ = totais_energia(registro)
    if total_energia > 0:
        mwh_informado = registro["mwh_total_gerador"]
        registro.update(recalcular_eletrico(registro, configuracao))
        if mwh_informado:
            registro["mwh_total_gerador"] = mwh_informado

    return registro


def traduzir_erro_validacao(e: ValidationError) -> str:
    """Convert Pydantic ValidationError to a Portuguese message."""
    mensagens = []
    for err in e.errors():
        campo = " > ".join(str(loc) for loc in err["loc"])
        tipo = err["type"]
        if "greater_than_equal" in tipo:
            mensagens.append(f"Campo '{campo}': valor deve ser >= {err.get('ctx', {}).get('ge', 0)}")
        elif "less_than_equal" in tipo:
            mensagens.append(f"Campo '{campo}': valor deve ser <= {err.get('ctx', {}).get('le', 0)}")
        elif "missing" in tipo:
            mensagens.append(f"Campo '{campo}': obrigatório, mas não foi preenchido")
        else:
            mensagens.append(f"Campo '{campo}': {err['msg']}")
    return "; ".join(mensagens)


def importar_linhas(
    linhas: Iterable[Mapping[str, Any]],
    mapeamento: Optional[Mapping[str, Any]] = None,
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> ResultadoImportacao:
    linhas = list(linhas)
    if mapeamento is None:
        mapeamento = mapear_cabecalhos(linhas[0].keys()) if linhas else {}

    resultado = ResultadoImportacao()
    for indice, linha in enumerate(linhas, start=1):
        registro = montar_registro(linha, mapeamento, configuracao)
        rotulo = registro["reference_label"]

        if not rotulo:
            resultado.ignorados.append(LinhaIgnorada(indice, "reference_label ausente"))
            continue
        if tentar_parse_rotulo(rotulo) is None:
            resultado.ignorados.append(
                LinhaIgnorada(indice, f"reference_label inválido: '{rotulo}'")
            )
            continue

        try:
            resultado.registros.append(RegistroEnergiaMensal(**registro))
        except ValidationError as e:
            resultado.ignorados.append(LinhaIgnorada(indice, traduzir_erro_validacao(e)))

    if resultado.ignorados:
        logger.warning(
            "%d de %d linhas ignoradas na importação",
            len(resultado.ignorados), len(linhas),
        )
    return resultado


def ler_planilha(arquivo: bytes, nome_arquivo: str) -> pd.DataFrame:
    """XLSX/XLS by extension, otherwise CSV with the delimiter sniffed."""
    nome = nome_arquivo.lower()
    if nome.endswith((".xlsx", ".xls")):
        return pd.read_excel(BytesIO(arquivo))
    return pd.read_csv(
        BytesIO(arquivo),
        sep=None,
        engine="python",
        dtype=str,
        keep_default_na=False,
        encoding="utf-8-sig",
    )


def importar_planilha(
    arquivo: bytes,
    nome_arquivo: str,
    configuracao: Optional[ConfiguracaoRegulatoria] = None,
) -> ResultadoImportacao:
    df = ler_planilha(arquivo, nome_arquivo)
    mapeamento = mapear_cabecalhos(df.columns)
    logger.info("Colunas reconhecidas: %s", ", ".join(sorted(mapeamento)))
    return importar_linhas(df.to_dict("records"), mapeamento, configuracao)


def gerar_modelo_csv() -> bytes:
    """Template with headers + 1 example row, ';'-separated."""
    conteudo = ";".join(MODELO_CABECALHOS) + "\n" + ";".join(MODELO_EXEMPLO) + "\n"
    return conteudo.encode("utf-8")


def gerar_modelo_excel() -> bytes:
    """Same template as gerar_modelo_csv, as .xlsx bytes."""
    buf = BytesIO()
    df = pd.DataFrame([MODELO_EXEMPLO], columns=MODELO_CABECALHOS)
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name="Energia")
    return buf.getvalue()
