"""Schemas Pydantic para request/response."""
import enum
from pydantic import BaseModel, Field
from typing import Annotated, Dict, Literal, Optional, List, Union
from datetime import date, datetime, time


class Turno(str, enum.Enum):
    DIURNO = "diurno"  # 7h-19h
    NOTURNO = "noturno"  # 19h-7h


class StatusAeronave(str, enum.Enum):
    ATIVA = "ativa"
    BAIXADA = "baixada"
    MANUTENCAO = "manutencao"


class PersonDeletedPolicy(str, enum.Enum):
    """O que acontece com escalas que referenciam uma pessoa excluída."""

    CASCADE = "cascade"
    ORPHAN_WITH_TOMBSTONE = "orphan_with_tombstone"


# --- Pessoa (referência polimórfica) ---
# Um ou outro, nunca os dois nem nenhum.
class MilitarRef(BaseModel):
    kind: Literal["militar"] = "militar"
    id: int

    class Config:
        frozen = True


class CivilRef(BaseModel):
    kind: Literal["civil"] = "civil"
    id: int

    class Config:
        frozen = True


PessoaRef = Annotated[Union[MilitarRef, CivilRef], Field(discriminator="kind")]


# --- Cadastros de apoio ---
class ObmCreate(BaseModel):
    nome: str = Field(..., min_length=1, max_length=255)
    abreviatura: str = Field(..., min_length=1, max_length=50)
    crbm: Optional[str] = None
    cidade: Optional[str] = None


class ObmResponse(BaseModel):
    id: int
    nome: str
    abreviatura: str
    crbm: Optional[str]
    cidade: Optional[str]

    class Config:
        from_attributes = True


class ViaturaCreate(BaseModel):
    prefixo: str = Field(..., min_length=1, max_length=50)
    obm_id: Optional[int] = None


class ViaturaResponse(BaseModel):
    id: int
    prefixo: str
    obm_id: Optional[int]
    ativa: bool

    class Config:
        from_attributes = True


class AeronaveCreate(BaseModel):
    prefixo: str = Field(..., min_length=1, max_length=50)
    tipo_asa: Literal["fixa", "rotativa"] = "rotativa"


class AeronaveResponse(BaseModel):
    id: int
    prefixo: str
    tipo_asa: str
    ativa: bool

    class Config:
        from_attributes = True


class MilitarCreate(BaseModel):
    matricula: str = Field(..., min_length=1, max_length=30)
    nome_completo: str = Field(..., min_length=1, max_length=255)
    nome_guerra: Optional[str] = Field(None, max_length=100)
    posto_graduacao: Optional[str] = Field(None, max_length=50)


class MilitarResponse(BaseModel):
    id: int
    matricula: str
    nome_completo: str
    nome_guerra: Optional[str]
    posto_graduacao: Optional[str]
    ativo: bool

    class Config:
        from_attributes = True


class CivilCreate(BaseModel):
    nome_completo: str = Field(..., min_length=1, max_length=255)
    funcao: Optional[str] = Field(None, max_length=100)


class CivilResponse(BaseModel):
    id: int
    nome_completo: str
    funcao: Optional[str]
    ativo: bool

    class Config:
        from_attributes = True


class PersonDeletedResponse(BaseModel):
    pessoa: PessoaRef
    policy: PersonDeletedPolicy
    guarnicoes: int
    servicos_dia: int
    escalas_codec: int
    escalas_aeronave: int


# --- Plantão / guarnição ---
class GuarnicaoItem(BaseModel):
    militar_id: int
    funcao: Optional[str] = Field(None, max_length=100)


class PlantaoCreate(BaseModel):
    data_plantao: date
    viatura_id: int
    obm_id: Optional[int] = None
    observacoes: Optional[str] = None
    hora_inicio: Optional[time] = None
    hora_fim: Optional[time] = None
    guarnicao: List[GuarnicaoItem] = []


class PlantaoUpdate(BaseModel):
    data_plantao: Optional[date] = None
    viatura_id: Optional[int] = None
    obm_id: Optional[int] = None
    observacoes: Optional[str] = None
    hora_inicio: Optional[time] = None
    hora_fim: Optional[time] = None
    guarnicao: Optional[List[GuarnicaoItem]] = None  # None = mantém a guarnição atual


class GuarnicaoResponse(BaseModel):
    id: int
    plantao_id: int
    militar_id: Optional[int]
    funcao: Optional[str]
    nome: str


class PlantaoResponse(BaseModel):
    id: int
    nome: str
    data_plantao: date
    viatura_id: int
    obm_id: int
    observacoes: Optional[str]
    hora_inicio: Optional[time]
    hora_fim: Optional[time]
    guarnicao: List[GuarnicaoResponse] = []


# --- Serviço de dia ---
class ServicoDiaUpsert(BaseModel):
    pessoa: PessoaRef
    funcao: str = Field(..., min_length=1, max_length=100)
    data_inicio: datetime
    data_fim: datetime


class ServicoDiaItem(BaseModel):
    pessoa: PessoaRef
    funcao: str = Field(..., min_length=1, max_length=100)


class ServicoDiaSave(BaseModel):
    data_inicio: datetime
    data_fim: datetime
    servicos: List[ServicoDiaItem]


class ServicoDiaResponse(BaseModel):
    id: int
    funcao: str
    pessoa_type: Literal["militar", "civil"]
    pessoa_id: int
    nome: str
    pessoa_removida: bool
    data_inicio: datetime
    data_fim: datetime


class ServicoDiaUpsertResponse(BaseModel):
    mode: Literal["replace", "append", "noop"]
    servico: ServicoDiaResponse


# --- CODEC ---
class CodecSlotCreate(BaseModel):
    data: date
    turno: Turno
    ordem_plantonista: int = Field(..., ge=1)
    militar_id: int


class CodecPlantonistaInput(BaseModel):
    militar_id: int
    ordem_plantonista: Optional[int] = Field(None, ge=1)  # None = posição na lista


class CodecDaySave(BaseModel):
    data: date
    diurno: List[CodecPlantonistaInput] = []
    noturno: List[CodecPlantonistaInput] = []


class CodecSlotResponse(BaseModel):
    id: int
    data: date
    turno: Turno
    ordem_plantonista: int
    militar_id: Optional[int]
    nome: str


class CodecDayResponse(BaseModel):
    data: date
    diurno: List[CodecSlotResponse]
    noturno: List[CodecSlotResponse]


# --- Aeronaves ---
class EscalaAeronaveCreate(BaseModel):
    data: date
    aeronave_id: int
    comandante_id: Optional[int] = None
    copiloto_id: Optional[int] = None
    tripulante_id: Optional[int] = None
    status: StatusAeronave = StatusAeronave.ATIVA
    em_servico: bool = True


class EscalaAeronaveUpdate(BaseModel):
    data: Optional[date] = None
    aeronave_id: Optional[int] = None
    comandante_id: Optional[int] = None
    copiloto_id: Optional[int] = None
    tripulante_id: Optional[int] = None
    status: Optional[StatusAeronave] = None
    em_servico: Optional[bool] = None


class EscalaAeronaveResponse(BaseModel):
    id: int
    data: date
    aeronave_id: int
    comandante_id: Optional[int]
    copiloto_id: Optional[int]
    tripulante_id: Optional[int]
    status: StatusAeronave
    em_servico: bool

    class Config:
        from_attributes = True


# --- Espelho ---
class IncidentRecordIn(BaseModel):
    crbm: Optional[str] = None
    cidade: Optional[str] = None
    grupo: Optional[str] = None
    nome: Optional[str] = None
    abreviacao: Optional[str] = None
    natureza_id: Optional[Union[int, str]] = None
    quantidade: Optional[Union[int, float, str]] = 1
    vitimas: Optional[Union[int, float, str]] = None
    data: Optional[str] = None


class BaseLocationIn(BaseModel):
    crbm: Optional[str] = None
    cidade: Optional[str] = None


class ObitoRecordIn(BaseModel):
    natureza_nome: Optional[str] = None
    quantidade_vitimas: Optional[Union[int, float, str]] = None


class EspelhoRequest(BaseModel):
    registros: List[IncidentRecordIn] = []
    base: List[BaseLocationIn] = []
    obitos: List[ObitoRecordIn] = []
    crbm: Optional[str] = None


class EspelhoColumnOut(BaseModel):
    codigo: str
    grupo: str
    subgrupo: str
    abreviacao: str


class EspelhoTotalsOut(BaseModel):
    counts: Dict[str, int]
    total: int


class EspelhoRowOut(BaseModel):
    cidade: str
    counts: Dict[str, int]
    total: int


class EspelhoGroupOut(BaseModel):
    crbm: str
    rows: List[EspelhoRowOut]
    subtotal: EspelhoTotalsOut


class ObitoBucketOut(BaseModel):
    label: str
    quantidade: int


class EspelhoResponse(BaseModel):
    data: Optional[str] = None
    columns: List[EspelhoColumnOut]
    groups: List[EspelhoGroupOut]
    grand_total: EspelhoTotalsOut
    crbms: List[str]
    dropped: int
    obitos: List[ObitoBucketOut] = []
    warning: Optional[str] = None
