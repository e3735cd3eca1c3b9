"""Escala do CODEC: plantonistas ordenados por turno."""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sisgpo.database import get_db
from sisgpo.roster_service import RosterService
from sisgpo.schemas import CodecDayResponse, CodecDaySave, CodecSlotCreate, CodecSlotResponse

router = APIRouter(prefix="/escala-codec", tags=["CODEC"])


@router.get("", response_model=CodecDayResponse)
async def get_codec_day(data: date, db: AsyncSession = Depends(get_db)):
    return await RosterService(db).codec_day(data)


@router.post("", response_model=CodecSlotResponse, status_code=201)
async def assign_slot(payload: CodecSlotCreate, db: AsyncSession = Depends(get_db)):
    """Uma posição por turno e um militar por turno; as duas regras são checadas juntas."""
    service = RosterService(db)
    slot = await service.assign_codec_slot(payload.data, payload.turno, payload.ordem_plantonista, payload.militar_id)
    day = await service.codec_day(payload.data)
    return next(item for item in day[slot.turno] if item["id"] == slot.id)


@router.put("", response_model=CodecDayResponse)
async def save_day(payload: CodecDaySave, db: AsyncSession = Depends(get_db)):
    service = RosterService(db)
    await service.save_codec_day(payload.data, payload.diurno, payload.noturno)
    return await service.codec_day(payload.data)


@router.delete("/{slot_id}", status_code=204)
async def delete_slot(slot_id: int, db: AsyncSession = Depends(get_db)):
    await RosterService(db).delete_codec_slot(slot_id)
    return None
