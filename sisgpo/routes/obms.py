"""CRUD de OBMs (unidades) e viaturas."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from sisgpo.database import flush_or_conflict, get_db
from sisgpo.errors import ConflictError, NotFoundError
from sisgpo.models import Obm, Viatura
from sisgpo.schemas import ObmCreate, ObmResponse, ViaturaCreate, ViaturaResponse

router = APIRouter(prefix="/obms", tags=["OBMs"])
viaturas_router = APIRouter(prefix="/viaturas", tags=["Viaturas"])


@router.post("", response_model=ObmResponse, status_code=201)
async def create_obm(data: ObmCreate, db: AsyncSession = Depends(get_db)):
    abreviatura = data.abreviatura.strip().upper()
    existing = (await db.execute(select(Obm).where(Obm.abreviatura == abreviatura))).scalar_one_or_none()
    if existing:
        raise ConflictError("obm", "Abreviatura de OBM já cadastrada.", existing.id)
    obm = Obm(nome=data.nome.strip(), abreviatura=abreviatura, crbm=data.crbm, cidade=data.cidade)
    db.add(obm)
    await flush_or_conflict(db, "obm", "Abreviatura de OBM já cadastrada.")
    return obm


@router.get("", response_model=list[ObmResponse])
async def list_obms(
    crbm: Optional[str] = Query(None, description="Filtra pelo CRBM"),
    db: AsyncSession = Depends(get_db),
):
    q = select(Obm).order_by(Obm.nome)
    if crbm:
        q = q.where(Obm.crbm == crbm)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{obm_id}", response_model=ObmResponse)
async def get_obm(obm_id: int, db: AsyncSession = Depends(get_db)):
    obm = await db.get(Obm, obm_id)
    if obm is None:
        raise NotFoundError("obm", obm_id, "OBM não encontrada.")
    return obm


@router.delete("/{obm_id}", status_code=204)
async def delete_obm(obm_id: int, db: AsyncSession = Depends(get_db)):
    """Recusa (409) se ainda houver plantão apontando para a OBM."""
    obm = await db.get(Obm, obm_id)
    if obm is None:
        raise NotFoundError("obm", obm_id, "OBM não encontrada.")
    await db.delete(obm)
    await flush_or_conflict(db, "obm", "OBM possui plantões vinculados.", obm_id)
    return None


@viaturas_router.post("", response_model=ViaturaResponse, status_code=201)
async def create_viatura(data: ViaturaCreate, db: AsyncSession = Depends(get_db)):
    prefixo = data.prefixo.upper().strip()
    existing = (await db.execute(select(Viatura).where(Viatura.prefixo == prefixo))).scalar_one_or_none()
    if existing:
        raise ConflictError("viatura", "Prefixo de viatura já cadastrado.", existing.id)
    if data.obm_id is not None and await db.get(Obm, data.obm_id) is None:
        raise NotFoundError("obm", data.obm_id, "OBM não encontrada.")
    viatura = Viatura(prefixo=prefixo, obm_id=data.obm_id)
    db.add(viatura)
    await flush_or_conflict(db, "viatura", "Prefixo de viatura já cadastrado.")
    return viatura


@viaturas_router.get("", response_model=list[ViaturaResponse])
async def list_viaturas(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    active_only: bool = Query(True, description="Se True, lista só viaturas ativas"),
    obm_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    q = select(Viatura).offset(skip).limit(limit).order_by(Viatura.prefixo)
    if active_only:
        q = q.where(Viatura.ativa == True)
    if obm_id is not None:
        q = q.where(Viatura.obm_id == obm_id)
    result = await db.execute(q)
    return list(result.scalars().all())


@viaturas_router.get("/{viatura_id}", response_model=ViaturaResponse)
async def get_viatura(viatura_id: int, db: AsyncSession = Depends(get_db)):
    viatura = await db.get(Viatura, viatura_id)
    if viatura is None:
        raise NotFoundError("viatura", viatura_id, "Viatura não encontrada.")
    return viatura


@viaturas_router.delete("/{viatura_id}", status_code=204)
async def delete_viatura(viatura_id: int, db: AsyncSession = Depends(get_db)):
    viatura = await db.get(Viatura, viatura_id)
    if viatura is None:
        raise NotFoundError("viatura", viatura_id, "Viatura não encontrada.")
    await db.delete(viatura)
    await flush_or_conflict(db, "viatura", "Viatura possui plantões vinculados.", viatura_id)
    return None
