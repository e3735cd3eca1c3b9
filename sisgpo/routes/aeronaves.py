"""CRUD de aeronaves e escala diária de tripulação."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from sisgpo.database import flush_or_conflict, get_db
from sisgpo.errors import ConflictError, NotFoundError
from sisgpo.models import Aeronave
from sisgpo.roster_service import RosterService
from sisgpo.schemas import (
    AeronaveCreate,
    AeronaveResponse,
    EscalaAeronaveCreate,
    EscalaAeronaveResponse,
    EscalaAeronaveUpdate,
)

router = APIRouter(prefix="/aeronaves", tags=["Aeronaves"])
escala_router = APIRouter(prefix="/escala-aeronaves", tags=["Escala de aeronaves"])


@router.post("", response_model=AeronaveResponse, status_code=201)
async def create_aeronave(data: AeronaveCreate, db: AsyncSession = Depends(get_db)):
    prefixo = data.prefixo.upper().strip()
    existing = (await db.execute(select(Aeronave).where(Aeronave.prefixo == prefixo))).scalar_one_or_none()
    if existing:
        raise ConflictError("aeronave", "Prefixo de aeronave já cadastrado.", existing.id)
    aeronave = Aeronave(prefixo=prefixo, tipo_asa=data.tipo_asa)
    db.add(aeronave)
    await flush_or_conflict(db, "aeronave", "Prefixo de aeronave já cadastrado.")
    return aeronave


@router.get("", response_model=list[AeronaveResponse])
async def list_aeronaves(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Aeronave).order_by(Aeronave.prefixo))
    return list(result.scalars().all())


@router.delete("/{aeronave_id}", status_code=204)
async def delete_aeronave(aeronave_id: int, db: AsyncSession = Depends(get_db)):
    """Exclui a aeronave e, em cascata, as escalas dela."""
    aeronave = await db.get(Aeronave, aeronave_id)
    if aeronave is None:
        raise NotFoundError("aeronave", aeronave_id, "Aeronave não encontrada.")
    await db.delete(aeronave)
    await db.flush()
    return None


@escala_router.post("", response_model=EscalaAeronaveResponse, status_code=201)
async def create_escala(data: EscalaAeronaveCreate, db: AsyncSession = Depends(get_db)):
    return await RosterService(db).create_aircraft_shift(**data.model_dump())


@escala_router.get("", response_model=list[EscalaAeronaveResponse])
async def list_escalas(
    data_inicio: Optional[date] = Query(None),
    data_fim: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await RosterService(db).list_aircraft_shifts(data_inicio, data_fim)


@escala_router.put("/{escala_id}", response_model=EscalaAeronaveResponse)
async def update_escala(escala_id: int, data: EscalaAeronaveUpdate, db: AsyncSession = Depends(get_db)):
    return await RosterService(db).update_aircraft_shift(escala_id, **data.model_dump(exclude_unset=True))


@escala_router.delete("/{escala_id}", status_code=204)
async def delete_escala(escala_id: int, db: AsyncSession = Depends(get_db)):
    await RosterService(db).delete_aircraft_shift(escala_id)
    return None
