"""
Espelho de ocorrências: tabela CRBM -> cidade -> coluna fixa de natureza, com totais.

Cada registro traz a natureza em texto livre (grupo, nome, abreviação). As colunas do
layout fixo são primeiro vinculadas aos códigos de natureza presentes nos dados e depois
cada registro é resolvido para uma coluna pela mesma cadeia de correspondência.
Registros que não casam com nenhuma coluna ficam fora do espelho (contados em `dropped`).
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import TaxonomyError
from .text_utils import normalize, normalize_display, sort_key

logger = logging.getLogger(__name__)

CRBM_PADRAO = "OUTROS"
CIDADE_PADRAO = "Não informado"


@dataclass(frozen=True)
class ColumnDef:
    """Coluna do layout fixo (grupo, subgrupo, abreviação exibida)."""
    grupo: str
    subgrupo: str
    abreviacao: str


DEFAULT_ESPELHO_LAYOUT: Sequence[ColumnDef] = (
    ColumnDef("Resgate", "Resgate - Salvamento em Emergências", "RESGATE"),
    ColumnDef("Incêndio", "Vegetação", "INC. VEG"),
    ColumnDef("Incêndio", "Edificações", "INC. EDIF"),
    ColumnDef("Incêndio", "Outros", "INC. OUT."),
    ColumnDef("Busca e Salvamento", "Cadáver", "B. CADÁV."),
    ColumnDef("Busca e Salvamento", "Diversos", "B. SALV."),
    ColumnDef("Ações Preventivas", "Palestras", "AP. PAL"),
    ColumnDef("Ações Preventivas", "Eventos", "AP. EVE"),
    ColumnDef("Ações Preventivas", "Folders/Panfletos", "AP. FOL"),
    ColumnDef("Ações Preventivas", "Outros", "AP. OUT"),
    ColumnDef("Atividades Técnicas", "Inspeções", "AT. INS"),
    ColumnDef("Atividades Técnicas", "Análise de Projetos", "AN. PROJ"),
    ColumnDef("Produtos Perigosos", "Vazamentos", "PPV"),
    ColumnDef("Produtos Perigosos", "Outros / Diversos", "PPO"),
    ColumnDef("Defesa Civil", "Preventiva", "DC PREV."),
    ColumnDef("Defesa Civil", "De Resposta", "DC RESP."),
)

OBITOS_ORDER = (
    "ACIDENTE DE TRÂNSITO",
    "ACIDENTES COM VIATURAS",
    "AFOGAMENTO OU CADÁVER",
    "ARMA DE FOGO/BRANCA/AGRESSÃO",
    "AUTO EXTERMÍNIO",
    "MAL SÚBITO",
    "OUTROS",
)


@dataclass
class IncidentRecord:
    """Registro de ocorrência vindo do sistema externo (somente leitura)."""
    crbm: Optional[str] = None
    cidade: Optional[str] = None
    grupo: Optional[str] = None
    nome: Optional[str] = None
    abreviacao: Optional[str] = None
    natureza_id: Optional[Any] = None
    quantidade: Any = 1  # ausente = 1 ocorrência; None/inválido = 0
    vitimas: Any = None
    data: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "IncidentRecord":
        """Aceita tanto os nomes curtos quanto os do sistema de ocorrências (natureza_*, *_nome)."""
        def pick(*keys, default=None):
            for key in keys:
                if key in payload:
                    return payload[key]
            return default

        return cls(
            crbm=pick("crbm", "crbm_nome"),
            cidade=pick("cidade", "cidade_nome"),
            grupo=pick("grupo", "natureza_grupo"),
            nome=pick("nome", "natureza_nome"),
            abreviacao=pick("abreviacao", "natureza_abreviacao"),
            natureza_id=pick("natureza_id"),
            quantidade=pick("quantidade", default=1),
            vitimas=pick("vitimas", "quantidade_vitimas"),
            data=pick("data", "data_ocorrencia"),
        )


@dataclass(frozen=True)
class BaseLocation:
    crbm: Optional[str]
    cidade: Optional[str]


@dataclass(frozen=True)
class EspelhoColumn:
    codigo: str
    grupo: str
    subgrupo: str
    abreviacao: str


@dataclass
class EspelhoTotals:
    counts: Dict[str, int]
    total: int = 0


@dataclass
class EspelhoRow:
    cidade: str
    counts: Dict[str, int]
    total: int = 0


@dataclass
class EspelhoGroup:
    crbm: str
    rows: List[EspelhoRow]
    subtotal: EspelhoTotals


@dataclass
class EspelhoMatrix:
    columns: List[EspelhoColumn]
    groups: List[EspelhoGroup]
    grand_total: EspelhoTotals
    dropped: int = 0

    @property
    def crbms(self) -> List[str]:
        return [group.crbm for group in self.groups]

    def labeled(self, counts: Mapping[str, int]) -> Dict[str, int]:
        """Contagens por abreviação da coluna, na ordem do layout."""
        return {col.abreviacao: counts.get(col.codigo, 0) for col in self.columns}


@dataclass
class ObitoBucket:
    label: str
    quantidade: int = 0
    registros: List[IncidentRecord] = field(default_factory=list)


# --- Cadeia de correspondência ---

@dataclass(frozen=True)
class _Keys:
    codigo: Optional[str]
    grupo: str
    subgrupo: str
    abreviacao: str


@dataclass
class _Index:
    codigo: Dict[str, str] = field(default_factory=dict)
    grupo_sub: Dict[str, str] = field(default_factory=dict)
    sub: Dict[str, str] = field(default_factory=dict)
    abreviacao: Dict[str, str] = field(default_factory=dict)

    def add(self, keys: _Keys, value: str) -> None:
        # primeira ocorrência vence: o resultado não depende de ordem de hash
        self.codigo.setdefault(value, value)
        if keys.grupo and keys.subgrupo:
            self.grupo_sub.setdefault(f"{keys.grupo}|{keys.subgrupo}", value)
        if keys.subgrupo:
            self.sub.setdefault(keys.subgrupo, value)
        if keys.abreviacao:
            self.abreviacao.setdefault(keys.abreviacao, value)


Matcher = Callable[[_Keys, _Index], Optional[str]]


def match_codigo(keys: _Keys, index: _Index) -> Optional[str]:
    if keys.codigo is not None:
        return index.codigo.get(keys.codigo)
    return None


def match_grupo_subgrupo(keys: _Keys, index: _Index) -> Optional[str]:
    if keys.grupo and keys.subgrupo:
        return index.grupo_sub.get(f"{keys.grupo}|{keys.subgrupo}")
    return None


def match_subgrupo(keys: _Keys, index: _Index) -> Optional[str]:
    if keys.subgrupo:
        return index.sub.get(keys.subgrupo)
    return None


def match_abreviacao(keys: _Keys, index: _Index) -> Optional[str]:
    if keys.abreviacao:
        return index.abreviacao.get(keys.abreviacao)
    return None


BINDING_CHAIN: Sequence[Matcher] = (match_grupo_subgrupo, match_subgrupo, match_abreviacao)
RESOLUTION_CHAIN: Sequence[Matcher] = (match_codigo, match_grupo_subgrupo, match_subgrupo, match_abreviacao)


def _column_keys(col: ColumnDef) -> _Keys:
    return _Keys(None, normalize(col.grupo), normalize(col.subgrupo), normalize(col.abreviacao))


def _record_keys(record: IncidentRecord) -> _Keys:
    codigo = str(record.natureza_id) if record.natureza_id is not None else None
    return _Keys(codigo, normalize(record.grupo), normalize(record.nome), normalize(record.abreviacao))


def _coerce_quantidade(value: Any) -> int:
    """Contagem não negativa; None, texto inválido, NaN ou negativo viram 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return number if number > 0 else 0


# --- Layout ---

def validate_layout(columns: Sequence[ColumnDef]) -> None:
    """Falha cedo (na inicialização) para layout vazio ou com colunas repetidas."""
    if not columns:
        raise TaxonomyError("Layout do espelho sem colunas.")
    seen_pairs = set()
    seen_abrev = set()
    for col in columns:
        keys = _column_keys(col)
        pair = f"{keys.grupo}|{keys.subgrupo}"
        if not keys.grupo or not keys.subgrupo:
            raise TaxonomyError(f"Coluna sem grupo/subgrupo: {col!r}")
        if pair in seen_pairs:
            raise TaxonomyError(f"Coluna repetida no layout: {col.grupo} / {col.subgrupo}")
        if keys.abreviacao and keys.abreviacao in seen_abrev:
            raise TaxonomyError(f"Abreviação repetida no layout: {col.abreviacao}")
        seen_pairs.add(pair)
        seen_abrev.add(keys.abreviacao)


def bind_columns(columns: Sequence[ColumnDef], records: Iterable[IncidentRecord]) -> List[EspelhoColumn]:
    """
    Vincula cada coluna a um código de natureza presente nos dados. Um código usado
    por uma coluna sai do conjunto de candidatos; sem candidato, a coluna recebe a
    chave sintética "grupo|subgrupo" (existe no espelho, mas nunca recebe dados).
    """
    index = _Index()
    for record in records:
        if record.natureza_id is None:
            continue
        index.add(_record_keys(record), str(record.natureza_id))

    used = set()
    bound: List[EspelhoColumn] = []
    for col in columns:
        keys = _column_keys(col)
        codigo = None
        for matcher in BINDING_CHAIN:
            candidate = matcher(keys, index)
            if candidate is not None and candidate not in used:
                codigo = candidate
                break
        if codigo is None:
            codigo = f"{keys.grupo}|{keys.subgrupo}"
        if codigo in used:
            raise TaxonomyError(f"Código {codigo!r} vinculado a mais de uma coluna ({col.abreviacao}).")
        used.add(codigo)
        bound.append(EspelhoColumn(codigo, col.grupo, col.subgrupo, col.abreviacao))
    return bound


def _column_index(columns: Sequence[EspelhoColumn]) -> _Index:
    index = _Index()
    for col in columns:
        keys = _Keys(None, normalize(col.grupo), normalize(col.subgrupo), normalize(col.abreviacao))
        index.add(keys, col.codigo)
    return index


def resolve_column(record: IncidentRecord, index: _Index) -> Optional[str]:
    keys = _record_keys(record)
    for matcher in RESOLUTION_CHAIN:
        codigo = matcher(keys, index)
        if codigo is not None:
            return codigo
    return None


# --- Montagem ---

def _empty_counts(columns: Sequence[EspelhoColumn]) -> Dict[str, int]:
    return {col.codigo: 0 for col in columns}


def build_espelho(
    columns: Sequence[ColumnDef],
    records: Iterable[IncidentRecord],
    base: Iterable[BaseLocation] = (),
) -> EspelhoMatrix:
    """Monta o espelho completo. Nunca falha por conteúdo dos registros."""
    records = list(records)
    bound = bind_columns(columns, records)
    index = _column_index(bound)

    groups: Dict[str, Dict[str, Any]] = {}

    def ensure_row(crbm: Optional[str], cidade: Optional[str]):
        crbm = (crbm or "").strip() or CRBM_PADRAO
        cidade = (cidade or "").strip() or CIDADE_PADRAO
        group = groups.get(crbm)
        if group is None:
            group = {"rows": {}, "subtotal": EspelhoTotals(_empty_counts(bound))}
            groups[crbm] = group
        if cidade not in group["rows"]:
            group["rows"][cidade] = EspelhoRow(cidade, _empty_counts(bound))
        return group, group["rows"][cidade]

    for location in base:
        ensure_row(location.crbm, location.cidade)

    grand = EspelhoTotals(_empty_counts(bound))
    dropped = 0
    for record in records:
        codigo = resolve_column(record, index)
        if codigo is None:
            dropped += 1
            continue
        quantidade = _coerce_quantidade(record.quantidade)
        group, row = ensure_row(record.crbm, record.cidade)
        subtotal = group["subtotal"]

        row.counts[codigo] += quantidade
        row.total += quantidade
        subtotal.counts[codigo] += quantidade
        subtotal.total += quantidade
        grand.counts[codigo] += quantidade
        grand.total += quantidade

    if dropped:
        logger.info(f"Espelho: {dropped} registro(s) sem coluna correspondente ficaram fora da tabela")

    ordered = [
        EspelhoGroup(
            crbm=crbm,
            rows=sorted(group["rows"].values(), key=lambda r: sort_key(r.cidade)),
            subtotal=group["subtotal"],
        )
        for crbm, group in sorted(groups.items(), key=lambda item: sort_key(item[0]))
    ]
    return EspelhoMatrix(columns=bound, groups=ordered, grand_total=grand, dropped=dropped)


def filter_crbm(matrix: EspelhoMatrix, crbm: Optional[str]) -> EspelhoMatrix:
    """Restringe a um CRBM sem reagregar; o total geral passa a ser o dos grupos mantidos."""
    key = normalize(crbm)
    if not key or key == "todos":
        return matrix
    kept = [group for group in matrix.groups if normalize(group.crbm) == key]
    grand = EspelhoTotals(_empty_counts(matrix.columns))
    for group in kept:
        for codigo, value in group.subtotal.counts.items():
            grand.counts[codigo] += value
        grand.total += group.subtotal.total
    return replace(matrix, groups=kept, grand_total=grand)


def summarize_obitos(records: Iterable[IncidentRecord]) -> List[ObitoBucket]:
    """Óbitos por categoria fixa; natureza desconhecida ou vazia vai para OUTROS."""
    buckets = {label: ObitoBucket(label) for label in OBITOS_ORDER}
    by_key = {normalize_display(label): label for label in OBITOS_ORDER}
    for record in records:
        label = by_key.get(normalize_display(record.nome), "OUTROS")
        bucket = buckets[label]
        bucket.quantidade += _coerce_quantidade(record.vitimas)
        bucket.registros.append(record)
    return [buckets[label] for label in OBITOS_ORDER]
