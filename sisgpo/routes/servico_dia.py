"""Serviço de dia: quem ocupa cada função na janela de serviço."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sisgpo.database import get_db
from sisgpo.roster_service import RosterService
from sisgpo.schemas import (
    ServicoDiaResponse,
    ServicoDiaSave,
    ServicoDiaUpsert,
    ServicoDiaUpsertResponse,
)

router = APIRouter(prefix="/servico-dia", tags=["Serviço de dia"])


def _instant(value: Optional[datetime]) -> datetime:
    return value or datetime.utcnow()


@router.get("", response_model=list[ServicoDiaResponse])
async def get_servico_dia(
    instante: Optional[datetime] = Query(None, description="Momento consultado (padrão: agora, UTC)"),
    db: AsyncSession = Depends(get_db),
):
    return await RosterService(db).service_day_at(_instant(instante))


@router.post("", response_model=ServicoDiaUpsertResponse)
async def upsert_servico(data: ServicoDiaUpsert, db: AsyncSession = Depends(get_db)):
    """Grava uma entrada: substitui, acrescenta ou não faz nada (mode na resposta)."""
    service = RosterService(db)
    row, mode = await service.upsert_service_of_day(data.pessoa, data.funcao, data.data_inicio, data.data_fim)
    pessoa = await service.get_subject(data.pessoa)
    return ServicoDiaUpsertResponse(mode=mode.value, servico=service.service_row_dict(row, pessoa))


@router.put("", response_model=list[ServicoDiaResponse])
async def save_servico_dia(data: ServicoDiaSave, db: AsyncSession = Depends(get_db)):
    """Substitui toda a escala que começa em data_inicio."""
    service = RosterService(db)
    await service.save_service_day(data.data_inicio, data.data_fim, data.servicos)
    return await service.service_day_at(data.data_inicio)


@router.delete("")
async def clear_servico_dia(
    instante: Optional[datetime] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    removidos = await RosterService(db).clear_service_day(_instant(instante))
    return {"removidos": removidos}
