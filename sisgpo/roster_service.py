"""
Escalas: plantões e guarnições, serviço de dia, CODEC e aeronaves.

Cada operação roda dentro da transação da requisição (get_db faz commit/rollback).
As regras de unicidade são checadas antes da escrita com os predicados de
validators.py, para devolver um erro preciso; as constraints do banco continuam
sendo a garantia final, e um IntegrityError vindo delas (corrida perdida entre
dois operadores) vira o mesmo ConflictError.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import validators
from .config import Settings, get_settings
from .database import flush_or_conflict, violated_constraint
from .errors import ConflictError, NotFoundError, ValidationError
from .models import (
    Aeronave,
    Civil,
    EscalaAeronave,
    EscalaCodec,
    Guarnicao,
    Militar,
    Obm,
    Plantao,
    ServicoDia,
    Viatura,
)
from .schemas import PersonDeletedPolicy, Turno
from .text_utils import slug_token
from .validators import JanelaServico, SlotMode

logger = logging.getLogger(__name__)

PESSOA_REMOVIDA = "Pessoa removida"

MSG_PLANTAO = "Já existe um plantão cadastrado para esta viatura nesta data."
MSG_GUARNICAO = "Militar já está na guarnição deste plantão."
MSG_SERVICO = "Esta pessoa já está escalada nesta função para este início de serviço."
MSG_CODEC_ORDEM = "Posição de plantonista já ocupada neste turno."
MSG_CODEC_MILITAR = "Militar já escalado neste turno do CODEC."
MSG_AERONAVE = "Já existe uma escala para esta aeronave nesta data."

_AIRCRAFT_ROLES = ("comandante_id", "copiloto_id", "tripulante_id")


def build_plantao_nome(prefixo: Optional[str], data_plantao: date, viatura_id: int) -> str:
    token = slug_token(prefixo) or slug_token(f"VTR-{viatura_id}")
    return f"PLANTAO-{token}-{data_plantao.isoformat()}"


def removed_label(snapshot: Optional[str]) -> str:
    """Rótulo exibido para referência órfã (pessoa excluída)."""
    return f"{PESSOA_REMOVIDA} ({snapshot})" if snapshot else PESSOA_REMOVIDA


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _janela(data_inicio: datetime, data_fim: datetime) -> JanelaServico:
    inicio, fim = _naive_utc(data_inicio), _naive_utc(data_fim)
    if fim <= inicio:
        raise ValidationError("data_fim", "A data de fim deve ser posterior à data de início.")
    return JanelaServico(inicio, fim)


def prepare_plantonistas(data: date, turno: str, entradas: Iterable[Any]) -> List[EscalaCodec]:
    """Linhas do CODEC de um turno: ordem padrão = posição na lista; militar repetido é ignorado."""
    linhas: List[EscalaCodec] = []
    vistos = set()
    for posicao, entrada in enumerate(entradas, start=1):
        if entrada.militar_id is None or entrada.militar_id in vistos:
            continue
        vistos.add(entrada.militar_id)
        ordem = entrada.ordem_plantonista if entrada.ordem_plantonista is not None else posicao
        linhas.append(EscalaCodec(data=data, turno=turno, ordem_plantonista=ordem, militar_id=entrada.militar_id))
    return linhas


class RosterService:
    """Escrita e leitura das escalas sobre uma AsyncSession."""

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # --- Helpers ---

    async def _get(self, model, id: int, entity_type: str):
        obj = await self.db.get(model, id)
        if obj is None:
            raise NotFoundError(entity_type, id)
        return obj

    async def _flush_or_conflict(
        self, kind: str, message: str, conflicting_id: Optional[int] = None
    ) -> None:
        await flush_or_conflict(self.db, kind, message, conflicting_id)

    async def _ensure_militares(self, ids: Iterable[Optional[int]]) -> Dict[int, Militar]:
        wanted = {i for i in ids if i is not None}
        if not wanted:
            return {}
        result = await self.db.execute(select(Militar).where(Militar.id.in_(wanted)))
        found = {m.id: m for m in result.scalars().all()}
        for militar_id in sorted(wanted):
            if militar_id not in found:
                raise NotFoundError("militar", militar_id)
        return found

    async def _ensure_civis(self, ids: Iterable[int]) -> Dict[int, Civil]:
        wanted = set(ids)
        if not wanted:
            return {}
        result = await self.db.execute(select(Civil).where(Civil.id.in_(wanted)))
        found = {c.id: c for c in result.scalars().all()}
        for civil_id in sorted(wanted):
            if civil_id not in found:
                raise NotFoundError("civil", civil_id)
        return found

    async def get_subject(self, pessoa):
        if pessoa.kind == "militar":
            return await self._get(Militar, pessoa.id, "militar")
        return await self._get(Civil, pessoa.id, "civil")

    async def _resolve_obm(self, viatura: Viatura, obm_id: Optional[int]) -> int:
        if obm_id:
            await self._get(Obm, obm_id, "obm")
            return obm_id
        if viatura.obm_id:
            return viatura.obm_id
        raise ValidationError(
            "obm_id",
            f"Não foi possível identificar a OBM da viatura {viatura.prefixo}. Informe obm_id.",
        )

    # --- Plantões ---

    async def create_shift(
        self,
        data_plantao: date,
        viatura_id: int,
        obm_id: Optional[int] = None,
        observacoes: Optional[str] = None,
        hora_inicio: Optional[time] = None,
        hora_fim: Optional[time] = None,
        guarnicao: Sequence[Any] = (),
    ) -> Plantao:
        viatura = await self._get(Viatura, viatura_id, "viatura")
        resolved_obm = await self._resolve_obm(viatura, obm_id)

        existing = (await self.db.execute(
            select(Plantao).where(Plantao.data_plantao == data_plantao, Plantao.viatura_id == viatura_id)
        )).scalars().all()
        conflict = validators.find_shift_conflict(data_plantao, viatura_id, existing)
        if conflict is not None:
            raise ConflictError("plantao", MSG_PLANTAO, conflict.id)

        plantao = Plantao(
            nome=build_plantao_nome(viatura.prefixo, data_plantao, viatura_id),
            data_plantao=data_plantao,
            viatura_id=viatura_id,
            obm_id=resolved_obm,
            observacoes=observacoes or None,
            hora_inicio=hora_inicio,
            hora_fim=hora_fim,
        )
        self.db.add(plantao)
        await self._flush_or_conflict("plantao", MSG_PLANTAO)
        if guarnicao:
            await self._write_crew(plantao.id, guarnicao)
        logger.info(f"Plantão {plantao.nome} criado")
        return plantao

    async def get_shift(self, plantao_id: int) -> Plantao:
        return await self._get(Plantao, plantao_id, "plantao")

    async def update_shift(self, plantao_id: int, guarnicao: Optional[Sequence[Any]] = None, **changes) -> Plantao:
        plantao = await self._get(Plantao, plantao_id, "plantao")
        data_plantao = changes.get("data_plantao") or plantao.data_plantao
        viatura_id = changes.get("viatura_id") or plantao.viatura_id

        if data_plantao != plantao.data_plantao or viatura_id != plantao.viatura_id:
            existing = (await self.db.execute(
                select(Plantao).where(Plantao.data_plantao == data_plantao, Plantao.viatura_id == viatura_id)
            )).scalars().all()
            conflict = validators.find_shift_conflict(data_plantao, viatura_id, existing, ignore_id=plantao.id)
            if conflict is not None:
                raise ConflictError("plantao", MSG_PLANTAO, conflict.id)

        if viatura_id != plantao.viatura_id or changes.get("obm_id"):
            viatura = await self._get(Viatura, viatura_id, "viatura")
            plantao.obm_id = await self._resolve_obm(viatura, changes.get("obm_id"))
            plantao.nome = build_plantao_nome(viatura.prefixo, data_plantao, viatura_id)
        elif data_plantao != plantao.data_plantao:
            viatura = await self._get(Viatura, viatura_id, "viatura")
            plantao.nome = build_plantao_nome(viatura.prefixo, data_plantao, viatura_id)

        plantao.data_plantao = data_plantao
        plantao.viatura_id = viatura_id
        for field in ("observacoes", "hora_inicio", "hora_fim"):
            if field in changes:
                setattr(plantao, field, changes[field])

        await self._flush_or_conflict("plantao", MSG_PLANTAO)
        if guarnicao is not None:
            await self._write_crew(plantao.id, guarnicao, replace=True)
        return plantao

    async def delete_shift(self, plantao_id: int) -> None:
        """Remove o plantão; a guarnição vai junto (ON DELETE CASCADE)."""
        plantao = await self._get(Plantao, plantao_id, "plantao")
        await self.db.delete(plantao)
        await self.db.flush()

    async def _write_crew(self, plantao_id: int, itens: Sequence[Any], replace: bool = False) -> List[Guarnicao]:
        if replace:
            await self.db.execute(delete(Guarnicao).where(Guarnicao.plantao_id == plantao_id))
        await self._ensure_militares(item.militar_id for item in itens)
        pending: List[Guarnicao] = []
        for item in itens:
            conflict = validators.find_crew_conflict(plantao_id, item.militar_id, pending)
            if conflict is not None:
                raise ConflictError("guarnicao", MSG_GUARNICAO, item.militar_id)
            row = Guarnicao(plantao_id=plantao_id, militar_id=item.militar_id, funcao=item.funcao)
            self.db.add(row)
            pending.append(row)
        await self._flush_or_conflict("guarnicao", MSG_GUARNICAO)
        return pending

    async def assign_crew(self, plantao_id: int, militar_id: int, funcao: Optional[str] = None) -> Guarnicao:
        await self._get(Plantao, plantao_id, "plantao")
        await self._get(Militar, militar_id, "militar")
        existing = (await self.db.execute(
            select(Guarnicao).where(Guarnicao.plantao_id == plantao_id, Guarnicao.militar_id == militar_id)
        )).scalars().all()
        conflict = validators.find_crew_conflict(plantao_id, militar_id, existing)
        if conflict is not None:
            raise ConflictError("guarnicao", MSG_GUARNICAO, conflict.id)
        row = Guarnicao(plantao_id=plantao_id, militar_id=militar_id, funcao=funcao)
        self.db.add(row)
        await self._flush_or_conflict("guarnicao", MSG_GUARNICAO)
        return row

    async def remove_crew(self, plantao_id: int, militar_id: int) -> None:
        result = await self.db.execute(
            delete(Guarnicao).where(Guarnicao.plantao_id == plantao_id, Guarnicao.militar_id == militar_id)
        )
        if result.rowcount == 0:
            raise NotFoundError("guarnicao", militar_id, "Militar não está na guarnição deste plantão.")

    async def shift_crew(self, plantao_id: int) -> List[Dict[str, Any]]:
        q = (
            select(Guarnicao, Militar)
            .outerjoin(Militar, Guarnicao.militar_id == Militar.id)
            .where(Guarnicao.plantao_id == plantao_id)
            .order_by(Guarnicao.id)
        )
        rows = (await self.db.execute(q)).all()
        return [
            {
                "id": g.id,
                "plantao_id": g.plantao_id,
                "militar_id": g.militar_id,
                "funcao": g.funcao,
                "nome": m.display_name if m is not None else removed_label(g.militar_removido_nome),
            }
            for g, m in rows
        ]

    # --- Serviço de dia ---

    def is_multi_holder(self, funcao: str) -> bool:
        return funcao in self.settings.funcoes_multiplas

    def _check_funcao(self, pessoa, funcao: str) -> None:
        if funcao in self.settings.funcoes_civis and pessoa.kind != "civil":
            raise ValidationError("pessoa", f"A função {funcao} é ocupada por civil.")

    async def upsert_service_of_day(
        self, pessoa, funcao: str, data_inicio: datetime, data_fim: datetime
    ) -> Tuple[ServicoDia, SlotMode]:
        janela = _janela(data_inicio, data_fim)
        self._check_funcao(pessoa, funcao)
        await self.get_subject(pessoa)
        existing = (await self.db.execute(
            select(ServicoDia).where(
                ServicoDia.funcao == funcao,
                ServicoDia.data_inicio < janela.fim,
                ServicoDia.data_fim > janela.inicio,
            )
        )).scalars().all()
        multi = self.is_multi_holder(funcao)
        mode = validators.resolve_service_slot(funcao, janela, pessoa.kind, pessoa.id, existing, multi)

        if mode is SlotMode.NOOP:
            for row in existing:
                if (row.data_inicio == janela.inicio and row.pessoa_type == pessoa.kind
                        and row.pessoa_id == pessoa.id):
                    return row, mode

        if mode is SlotMode.REPLACE:
            for row in validators.replacement_targets(funcao, janela, pessoa.kind, pessoa.id, existing, multi):
                await self.db.delete(row)
            await self.db.flush()

        row = ServicoDia(
            pessoa_type=pessoa.kind,
            pessoa_id=pessoa.id,
            funcao=funcao,
            data_inicio=janela.inicio,
            data_fim=janela.fim,
        )
        self.db.add(row)
        await self._flush_or_conflict("servico_dia", MSG_SERVICO)
        return row, mode

    async def save_service_day(self, data_inicio: datetime, data_fim: datetime, itens: Sequence[Any]) -> List[ServicoDia]:
        """Substitui toda a escala que começa em data_inicio (mesma transação)."""
        janela = _janela(data_inicio, data_fim)

        unicos = []
        vistos = set()
        for item in itens:
            self._check_funcao(item.pessoa, item.funcao)
            key = (item.pessoa.kind, item.pessoa.id, item.funcao)
            if key not in vistos:
                vistos.add(key)
                unicos.append(item)

        por_funcao: Dict[str, int] = {}
        for item in unicos:
            por_funcao[item.funcao] = por_funcao.get(item.funcao, 0) + 1
        for funcao, total in por_funcao.items():
            if total > 1 and not self.is_multi_holder(funcao):
                raise ConflictError("servico_dia", f"A função {funcao} aceita apenas um titular.")

        await self._ensure_militares(i.pessoa.id for i in unicos if i.pessoa.kind == "militar")
        await self._ensure_civis(i.pessoa.id for i in unicos if i.pessoa.kind == "civil")

        await self.db.execute(delete(ServicoDia).where(ServicoDia.data_inicio == janela.inicio))
        rows = [
            ServicoDia(
                pessoa_type=item.pessoa.kind,
                pessoa_id=item.pessoa.id,
                funcao=item.funcao,
                data_inicio=janela.inicio,
                data_fim=janela.fim,
            )
            for item in unicos
        ]
        self.db.add_all(rows)
        await self._flush_or_conflict("servico_dia", MSG_SERVICO)
        return rows

    async def _current_service_start(self, instant: datetime) -> Optional[datetime]:
        instant = _naive_utc(instant)
        q = (
            select(ServicoDia.data_inicio)
            .where(ServicoDia.data_inicio <= instant, ServicoDia.data_fim > instant)
            .order_by(ServicoDia.data_inicio.desc())
            .limit(1)
        )
        return (await self.db.execute(q)).scalar_one_or_none()

    async def service_day_at(self, instant: datetime) -> List[Dict[str, Any]]:
        """Escala cuja janela contém o instante (a de início mais recente), com nomes resolvidos."""
        inicio = await self._current_service_start(instant)
        if inicio is None:
            return []
        rows = (await self.db.execute(
            select(ServicoDia).where(ServicoDia.data_inicio == inicio).order_by(ServicoDia.funcao, ServicoDia.id)
        )).scalars().all()

        militar_ids = {r.pessoa_id for r in rows if r.pessoa_type == "militar" and not r.pessoa_removida}
        civil_ids = {r.pessoa_id for r in rows if r.pessoa_type == "civil" and not r.pessoa_removida}
        militares = {}
        civis = {}
        if militar_ids:
            result = await self.db.execute(select(Militar).where(Militar.id.in_(militar_ids)))
            militares = {m.id: m for m in result.scalars().all()}
        if civil_ids:
            result = await self.db.execute(select(Civil).where(Civil.id.in_(civil_ids)))
            civis = {c.id: c for c in result.scalars().all()}

        resultado = []
        for row in rows:
            pessoas = militares if row.pessoa_type == "militar" else civis
            pessoa = None if row.pessoa_removida else pessoas.get(row.pessoa_id)
            resultado.append(self.service_row_dict(row, pessoa))
        return resultado

    @staticmethod
    def service_row_dict(row: ServicoDia, pessoa=None) -> Dict[str, Any]:
        if pessoa is not None:
            nome = pessoa.display_name
        else:
            nome = removed_label(row.pessoa_nome_snapshot)
        return {
            "id": row.id,
            "funcao": row.funcao,
            "pessoa_type": row.pessoa_type,
            "pessoa_id": row.pessoa_id,
            "nome": nome,
            "pessoa_removida": bool(row.pessoa_removida) or pessoa is None,
            "data_inicio": row.data_inicio,
            "data_fim": row.data_fim,
        }

    async def clear_service_day(self, instant: datetime) -> int:
        inicio = await self._current_service_start(instant)
        if inicio is None:
            return 0
        result = await self.db.execute(delete(ServicoDia).where(ServicoDia.data_inicio == inicio))
        return result.rowcount

    # --- CODEC ---

    async def assign_codec_slot(self, data: date, turno: Turno, ordem: int, militar_id: int) -> EscalaCodec:
        turno = Turno(turno).value
        if ordem < 1:
            raise ValidationError("ordem_plantonista", "A ordem do plantonista começa em 1.")
        await self._get(Militar, militar_id, "militar")
        existing = (await self.db.execute(
            select(EscalaCodec).where(EscalaCodec.data == data, EscalaCodec.turno == turno)
        )).scalars().all()
        conflict = validators.has_codec_conflict(data, turno, ordem, militar_id, existing)
        if conflict.ordem_ocupada and conflict.militar_no_turno:
            raise ConflictError(
                "codec_ordem_militar",
                f"{MSG_CODEC_ORDEM} {MSG_CODEC_MILITAR}",
                conflict.ordem_slot_id,
            )
        if conflict.ordem_ocupada:
            raise ConflictError("codec_ordem", MSG_CODEC_ORDEM, conflict.ordem_slot_id)
        if conflict.militar_no_turno:
            raise ConflictError("codec_militar", MSG_CODEC_MILITAR, conflict.militar_slot_id)

        row = EscalaCodec(data=data, turno=turno, ordem_plantonista=ordem, militar_id=militar_id)
        self.db.add(row)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            if violated_constraint(exc, EscalaCodec.__table__) == "uniq_codec_data_turno_militar":
                kind, message = "codec_militar", MSG_CODEC_MILITAR
            else:
                kind, message = "codec_ordem", MSG_CODEC_ORDEM
            logger.info(f"Constraint do banco barrou escrita ({kind}): {exc.orig}")
            raise ConflictError(kind, message) from exc
        return row

    async def save_codec_day(self, data: date, diurno: Sequence[Any] = (), noturno: Sequence[Any] = ()) -> List[EscalaCodec]:
        """Substitui a escala do CODEC do dia inteiro (os dois turnos)."""
        rows = prepare_plantonistas(data, Turno.DIURNO.value, diurno) + prepare_plantonistas(data, Turno.NOTURNO.value, noturno)
        await self._ensure_militares(r.militar_id for r in rows)

        checked: List[EscalaCodec] = []
        for row in rows:
            if row.ordem_plantonista < 1:
                raise ValidationError("ordem_plantonista", "A ordem do plantonista começa em 1.")
            conflict = validators.has_codec_conflict(data, row.turno, row.ordem_plantonista, row.militar_id, checked)
            if conflict.ordem_ocupada:
                raise ConflictError("codec_ordem", MSG_CODEC_ORDEM)
            checked.append(row)

        await self.db.execute(delete(EscalaCodec).where(EscalaCodec.data == data))
        self.db.add_all(rows)
        await self._flush_or_conflict("codec_ordem", MSG_CODEC_ORDEM)
        return rows

    async def codec_day(self, data: date) -> Dict[str, Any]:
        q = (
            select(EscalaCodec, Militar)
            .outerjoin(Militar, EscalaCodec.militar_id == Militar.id)
            .where(EscalaCodec.data == data)
            .order_by(EscalaCodec.turno, EscalaCodec.ordem_plantonista)
        )
        resultado: Dict[str, Any] = {"data": data, "diurno": [], "noturno": []}
        for slot, militar in (await self.db.execute(q)).all():
            resultado[slot.turno].append({
                "id": slot.id,
                "data": slot.data,
                "turno": slot.turno,
                "ordem_plantonista": slot.ordem_plantonista,
                "militar_id": slot.militar_id,
                "nome": militar.display_name if militar is not None else removed_label(slot.militar_removido_nome),
            })
        return resultado

    async def delete_codec_slot(self, slot_id: int) -> None:
        slot = await self._get(EscalaCodec, slot_id, "escala_codec")
        await self.db.delete(slot)
        await self.db.flush()

    # --- Aeronaves ---

    async def _check_aircraft_crew(self, comandante_id, copiloto_id, tripulante_id) -> None:
        repetido = validators.repeated_crew_member(comandante_id, copiloto_id, tripulante_id)
        if repetido is not None:
            raise ValidationError("tripulacao", f"Militar {repetido} ocupa mais de uma função na mesma aeronave.")
        await self._ensure_militares((comandante_id, copiloto_id, tripulante_id))

    async def _check_aircraft_conflict(self, data: date, aeronave_id: int, ignore_id: Optional[int] = None) -> None:
        existing = (await self.db.execute(
            select(EscalaAeronave).where(EscalaAeronave.data == data, EscalaAeronave.aeronave_id == aeronave_id)
        )).scalars().all()
        conflict = validators.find_aircraft_conflict(data, aeronave_id, existing, ignore_id=ignore_id)
        if conflict is not None:
            raise ConflictError("escala_aeronave", MSG_AERONAVE, conflict.id)

    async def create_aircraft_shift(
        self,
        data: date,
        aeronave_id: int,
        comandante_id: Optional[int] = None,
        copiloto_id: Optional[int] = None,
        tripulante_id: Optional[int] = None,
        status: str = "ativa",
        em_servico: bool = True,
    ) -> EscalaAeronave:
        await self._get(Aeronave, aeronave_id, "aeronave")
        await self._check_aircraft_crew(comandante_id, copiloto_id, tripulante_id)
        await self._check_aircraft_conflict(data, aeronave_id)
        escala = EscalaAeronave(
            data=data,
            aeronave_id=aeronave_id,
            comandante_id=comandante_id,
            copiloto_id=copiloto_id,
            tripulante_id=tripulante_id,
            status=getattr(status, "value", status),
            em_servico=em_servico,
        )
        self.db.add(escala)
        await self._flush_or_conflict("escala_aeronave", MSG_AERONAVE)
        return escala

    async def update_aircraft_shift(self, escala_id: int, **changes) -> EscalaAeronave:
        escala = await self._get(EscalaAeronave, escala_id, "escala_aeronave")
        data = changes.get("data") or escala.data
        aeronave_id = changes.get("aeronave_id") or escala.aeronave_id
        if aeronave_id != escala.aeronave_id:
            await self._get(Aeronave, aeronave_id, "aeronave")

        roles = {role: changes.get(role, getattr(escala, role)) for role in _AIRCRAFT_ROLES}
        await self._check_aircraft_crew(*roles.values())
        if data != escala.data or aeronave_id != escala.aeronave_id:
            await self._check_aircraft_conflict(data, aeronave_id, ignore_id=escala.id)

        escala.data = data
        escala.aeronave_id = aeronave_id
        for role, value in roles.items():
            setattr(escala, role, value)
        if changes.get("status") is not None:
            escala.status = getattr(changes["status"], "value", changes["status"])
        if changes.get("em_servico") is not None:
            escala.em_servico = changes["em_servico"]
        await self._flush_or_conflict("escala_aeronave", MSG_AERONAVE)
        return escala

    async def list_aircraft_shifts(
        self, data_inicio: Optional[date] = None, data_fim: Optional[date] = None
    ) -> List[EscalaAeronave]:
        q = select(EscalaAeronave).order_by(EscalaAeronave.data.desc(), EscalaAeronave.id)
        if data_inicio:
            q = q.where(EscalaAeronave.data >= data_inicio)
        if data_fim:
            q = q.where(EscalaAeronave.data <= data_fim)
        return list((await self.db.execute(q)).scalars().all())

    async def delete_aircraft_shift(self, escala_id: int) -> None:
        escala = await self._get(EscalaAeronave, escala_id, "escala_aeronave")
        await self.db.delete(escala)
        await self.db.flush()

    # --- Exclusão de pessoas ---

    async def delete_person(self, pessoa, policy: Optional[PersonDeletedPolicy] = None) -> Dict[str, int]:
        """
        Exclui militar/civil aplicando a política às escalas que o referenciam:
        CASCADE apaga guarnições, serviço de dia e CODEC da pessoa;
        ORPHAN_WITH_TOMBSTONE mantém as linhas, sem a referência e com o nome guardado.
        Papéis de tripulação de aeronave sempre ficam nulos (a linha é da aeronave).
        """
        policy = PersonDeletedPolicy(policy or self.settings.person_deleted_policy)
        person = await self.get_subject(pessoa)
        nome = person.display_name
        cascade = policy is PersonDeletedPolicy.CASCADE
        counts = {"guarnicoes": 0, "servicos_dia": 0, "escalas_codec": 0, "escalas_aeronave": 0}

        if pessoa.kind == "militar":
            for model, key in ((Guarnicao, "guarnicoes"), (EscalaCodec, "escalas_codec")):
                if cascade:
                    stmt = delete(model).where(model.militar_id == person.id)
                else:
                    stmt = (
                        update(model)
                        .where(model.militar_id == person.id)
                        .values(militar_id=None, militar_removido_nome=nome)
                    )
                counts[key] = (await self.db.execute(stmt)).rowcount
            for role in _AIRCRAFT_ROLES:
                column = getattr(EscalaAeronave, role)
                result = await self.db.execute(
                    update(EscalaAeronave).where(column == person.id).values({role: None})
                )
                counts["escalas_aeronave"] += result.rowcount

        servico_filter = (ServicoDia.pessoa_type == pessoa.kind, ServicoDia.pessoa_id == person.id)
        if cascade:
            stmt = delete(ServicoDia).where(*servico_filter)
        else:
            stmt = (
                update(ServicoDia)
                .where(*servico_filter, ServicoDia.pessoa_removida.is_(False))
                .values(pessoa_removida=True, pessoa_nome_snapshot=nome)
            )
        counts["servicos_dia"] = (await self.db.execute(stmt)).rowcount

        await self.db.delete(person)
        await self.db.flush()
        logger.info(f"{pessoa.kind} {person.id} excluído (política {policy.value}): {counts}")
        return counts
