"""
Regras de unicidade das escalas, como predicados puros.

Recebem as linhas já carregadas (ORM ou qualquer objeto com os mesmos atributos)
e não tocam no banco. O RosterService consulta só as linhas relevantes e usa
estas funções antes de gravar; as constraints do banco continuam sendo a garantia
final contra escritas concorrentes.
"""
import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Optional


class SlotMode(str, enum.Enum):
    """Como gravar uma entrada do serviço de dia."""

    REPLACE = "replace"
    APPEND = "append"
    NOOP = "noop"


@dataclass(frozen=True)
class JanelaServico:
    """Janela semiaberta [inicio, fim)."""

    inicio: datetime
    fim: datetime

    def overlaps(self, inicio: datetime, fim: datetime) -> bool:
        return self.inicio < fim and inicio < self.fim


@dataclass(frozen=True)
class CodecConflict:
    """Os dois testes do CODEC são independentes e sempre avaliados."""

    ordem_ocupada: bool
    militar_no_turno: bool
    ordem_slot_id: Optional[int] = None
    militar_slot_id: Optional[int] = None

    @property
    def any(self) -> bool:
        return self.ordem_ocupada or self.militar_no_turno


# --- Plantão ---

def find_shift_conflict(
    data_plantao: date, viatura_id: int, existing: Iterable[Any], ignore_id: Optional[int] = None
) -> Optional[Any]:
    for row in existing:
        if ignore_id is not None and row.id == ignore_id:
            continue
        if row.data_plantao == data_plantao and row.viatura_id == viatura_id:
            return row
    return None


def has_shift_conflict(
    data_plantao: date, viatura_id: int, existing: Iterable[Any], ignore_id: Optional[int] = None
) -> bool:
    return find_shift_conflict(data_plantao, viatura_id, existing, ignore_id) is not None


# --- Guarnição ---

def find_crew_conflict(plantao_id: int, militar_id: int, existing: Iterable[Any]) -> Optional[Any]:
    for row in existing:
        if row.plantao_id == plantao_id and row.militar_id == militar_id:
            return row
    return None


def has_crew_conflict(plantao_id: int, militar_id: int, existing: Iterable[Any]) -> bool:
    return find_crew_conflict(plantao_id, militar_id, existing) is not None


# --- Serviço de dia ---

def _same_subject(row: Any, pessoa_type: str, pessoa_id: int) -> bool:
    return row.pessoa_type == pessoa_type and row.pessoa_id == pessoa_id


def _holders(funcao: str, janela: JanelaServico, existing: Iterable[Any]) -> List[Any]:
    return [
        row for row in existing
        if row.funcao == funcao and janela.overlaps(row.data_inicio, row.data_fim)
    ]


def resolve_service_slot(
    funcao: str,
    janela: JanelaServico,
    pessoa_type: str,
    pessoa_id: int,
    existing: Iterable[Any],
    multi_holder: bool,
) -> SlotMode:
    """
    NOOP se a tupla (data_inicio, pessoa, funcao) já existe. Função de titular único
    substitui quem a ocupa na janela; função múltipla acrescenta, a menos que a
    mesma pessoa já esteja nela com outra janela sobreposta (aí substitui a própria linha).
    """
    holders = _holders(funcao, janela, existing)
    for row in holders:
        if row.data_inicio == janela.inicio and _same_subject(row, pessoa_type, pessoa_id):
            return SlotMode.NOOP
    if multi_holder:
        if any(_same_subject(row, pessoa_type, pessoa_id) for row in holders):
            return SlotMode.REPLACE
        return SlotMode.APPEND
    return SlotMode.REPLACE if holders else SlotMode.APPEND


def replacement_targets(
    funcao: str,
    janela: JanelaServico,
    pessoa_type: str,
    pessoa_id: int,
    existing: Iterable[Any],
    multi_holder: bool,
) -> List[Any]:
    """Linhas removidas quando resolve_service_slot devolve REPLACE."""
    holders = _holders(funcao, janela, existing)
    if multi_holder:
        return [row for row in holders if _same_subject(row, pessoa_type, pessoa_id)]
    return holders


# --- CODEC ---

def has_codec_conflict(
    data: date,
    turno: str,
    ordem: int,
    militar_id: int,
    existing: Iterable[Any],
    ignore_id: Optional[int] = None,
) -> CodecConflict:
    ordem_slot = None
    militar_slot = None
    for row in existing:
        if ignore_id is not None and row.id == ignore_id:
            continue
        if row.data != data or row.turno != turno:
            continue
        if ordem_slot is None and row.ordem_plantonista == ordem:
            ordem_slot = row
        if militar_slot is None and militar_id is not None and row.militar_id == militar_id:
            militar_slot = row
    return CodecConflict(
        ordem_ocupada=ordem_slot is not None,
        militar_no_turno=militar_slot is not None,
        ordem_slot_id=ordem_slot.id if ordem_slot is not None else None,
        militar_slot_id=militar_slot.id if militar_slot is not None else None,
    )


# --- Aeronaves ---

def find_aircraft_conflict(
    data: date, aeronave_id: int, existing: Iterable[Any], ignore_id: Optional[int] = None
) -> Optional[Any]:
    for row in existing:
        if ignore_id is not None and row.id == ignore_id:
            continue
        if row.data == data and row.aeronave_id == aeronave_id:
            return row
    return None


def has_aircraft_conflict(
    data: date, aeronave_id: int, existing: Iterable[Any], ignore_id: Optional[int] = None
) -> bool:
    return find_aircraft_conflict(data, aeronave_id, existing, ignore_id) is not None


def repeated_crew_member(*militar_ids: Optional[int]) -> Optional[int]:
    """Primeiro militar repetido entre os papéis da tripulação (None se não há)."""
    seen = set()
    for militar_id in militar_ids:
        if militar_id is None:
            continue
        if militar_id in seen:
            return militar_id
        seen.add(militar_id)
    return None
