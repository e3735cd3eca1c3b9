"""Plantões de viatura e guarnição."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from sisgpo.database import get_db
from sisgpo.models import Plantao
from sisgpo.roster_service import RosterService
from sisgpo.schemas import (
    GuarnicaoItem,
    GuarnicaoResponse,
    PlantaoCreate,
    PlantaoResponse,
    PlantaoUpdate,
)

router = APIRouter(prefix="/plantoes", tags=["Plantões"])


async def _response(service: RosterService, plantao: Plantao) -> PlantaoResponse:
    return PlantaoResponse(
        id=plantao.id,
        nome=plantao.nome,
        data_plantao=plantao.data_plantao,
        viatura_id=plantao.viatura_id,
        obm_id=plantao.obm_id,
        observacoes=plantao.observacoes,
        hora_inicio=plantao.hora_inicio,
        hora_fim=plantao.hora_fim,
        guarnicao=await service.shift_crew(plantao.id),
    )


@router.post("", response_model=PlantaoResponse, status_code=201)
async def create_plantao(data: PlantaoCreate, db: AsyncSession = Depends(get_db)):
    """Cria o plantão (um por viatura por dia) já com a guarnição, se informada."""
    service = RosterService(db)
    plantao = await service.create_shift(**data.model_dump(exclude={"guarnicao"}), guarnicao=data.guarnicao)
    return await _response(service, plantao)


@router.get("", response_model=list[PlantaoResponse])
async def list_plantoes(
    data_inicio: Optional[date] = Query(None),
    data_fim: Optional[date] = Query(None),
    obm_id: Optional[int] = Query(None),
    viatura_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    q = select(Plantao).order_by(Plantao.data_plantao.desc(), Plantao.id)
    if data_inicio:
        q = q.where(Plantao.data_plantao >= data_inicio)
    if data_fim:
        q = q.where(Plantao.data_plantao <= data_fim)
    if obm_id is not None:
        q = q.where(Plantao.obm_id == obm_id)
    if viatura_id is not None:
        q = q.where(Plantao.viatura_id == viatura_id)
    service = RosterService(db)
    plantoes = (await db.execute(q)).scalars().all()
    return [await _response(service, p) for p in plantoes]


@router.get("/{plantao_id}", response_model=PlantaoResponse)
async def get_plantao(plantao_id: int, db: AsyncSession = Depends(get_db)):
    service = RosterService(db)
    return await _response(service, await service.get_shift(plantao_id))


@router.put("/{plantao_id}", response_model=PlantaoResponse)
async def update_plantao(plantao_id: int, data: PlantaoUpdate, db: AsyncSession = Depends(get_db)):
    """Campos omitidos ficam como estão; guarnicao informada substitui a atual."""
    service = RosterService(db)
    changes = data.model_dump(exclude_unset=True, exclude={"guarnicao"})
    plantao = await service.update_shift(plantao_id, guarnicao=data.guarnicao, **changes)
    return await _response(service, plantao)


@router.delete("/{plantao_id}", status_code=204)
async def delete_plantao(plantao_id: int, db: AsyncSession = Depends(get_db)):
    """Exclui o plantão e, em cascata, a guarnição."""
    await RosterService(db).delete_shift(plantao_id)
    return None


@router.post("/{plantao_id}/guarnicao", response_model=GuarnicaoResponse, status_code=201)
async def add_guarnicao(plantao_id: int, data: GuarnicaoItem, db: AsyncSession = Depends(get_db)):
    service = RosterService(db)
    row = await service.assign_crew(plantao_id, data.militar_id, data.funcao)
    crew = await service.shift_crew(plantao_id)
    return next(item for item in crew if item["id"] == row.id)


@router.delete("/{plantao_id}/guarnicao/{militar_id}", status_code=204)
async def remove_guarnicao(plantao_id: int, militar_id: int, db: AsyncSession = Depends(get_db)):
    await RosterService(db).remove_crew(plantao_id, militar_id)
    return None
