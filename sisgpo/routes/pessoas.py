"""CRUD de militares e civis escaláveis."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, select

from sisgpo.database import flush_or_conflict, get_db
from sisgpo.errors import ConflictError, NotFoundError
from sisgpo.models import Civil, Militar
from sisgpo.roster_service import RosterService
from sisgpo.schemas import (
    CivilCreate,
    CivilRef,
    CivilResponse,
    MilitarCreate,
    MilitarRef,
    MilitarResponse,
    PersonDeletedPolicy,
    PersonDeletedResponse,
)

router = APIRouter(prefix="/militares", tags=["Militares"])
civis_router = APIRouter(prefix="/civis", tags=["Civis"])

POLICY_QUERY = Query(
    None,
    description="cascade apaga as escalas da pessoa; orphan_with_tombstone mantém as linhas marcadas como 'Pessoa removida'. Padrão: configuração.",
)


async def _delete_person(db: AsyncSession, pessoa, policy: Optional[PersonDeletedPolicy]) -> PersonDeletedResponse:
    service = RosterService(db)
    policy = PersonDeletedPolicy(policy or service.settings.person_deleted_policy)
    counts = await service.delete_person(pessoa, policy)
    return PersonDeletedResponse(pessoa=pessoa, policy=policy, **counts)


@router.post("", response_model=MilitarResponse, status_code=201)
async def create_militar(data: MilitarCreate, db: AsyncSession = Depends(get_db)):
    matricula = data.matricula.strip()
    existing = (await db.execute(select(Militar).where(Militar.matricula == matricula))).scalar_one_or_none()
    if existing:
        raise ConflictError("militar", "Matrícula já cadastrada.", existing.id)
    militar = Militar(
        matricula=matricula,
        nome_completo=data.nome_completo.strip(),
        nome_guerra=data.nome_guerra,
        posto_graduacao=data.posto_graduacao,
    )
    db.add(militar)
    await flush_or_conflict(db, "militar", "Matrícula já cadastrada.")
    return militar


@router.get("", response_model=list[MilitarResponse])
async def list_militares(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    q: Optional[str] = Query(None, description="Busca por nome, nome de guerra ou matrícula"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Militar).offset(skip).limit(limit).order_by(Militar.nome_completo)
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(or_(
            Militar.nome_completo.ilike(like),
            Militar.nome_guerra.ilike(like),
            Militar.matricula.ilike(like),
        ))
    result = await db.execute(stmt)
    return list(result.scalars().all())


@router.get("/{militar_id}", response_model=MilitarResponse)
async def get_militar(militar_id: int, db: AsyncSession = Depends(get_db)):
    militar = await db.get(Militar, militar_id)
    if militar is None:
        raise NotFoundError("militar", militar_id, "Militar não encontrado.")
    return militar


@router.delete("/{militar_id}", response_model=PersonDeletedResponse)
async def delete_militar(
    militar_id: int,
    policy: Optional[PersonDeletedPolicy] = POLICY_QUERY,
    db: AsyncSession = Depends(get_db),
):
    """Exclui o militar e aplica a política às guarnições, serviço de dia, CODEC e aeronaves."""
    return await _delete_person(db, MilitarRef(id=militar_id), policy)


@civis_router.post("", response_model=CivilResponse, status_code=201)
async def create_civil(data: CivilCreate, db: AsyncSession = Depends(get_db)):
    civil = Civil(nome_completo=data.nome_completo.strip(), funcao=data.funcao)
    db.add(civil)
    await db.flush()
    return civil


@civis_router.get("", response_model=list[CivilResponse])
async def list_civis(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Civil).order_by(Civil.nome_completo))
    return list(result.scalars().all())


@civis_router.get("/{civil_id}", response_model=CivilResponse)
async def get_civil(civil_id: int, db: AsyncSession = Depends(get_db)):
    civil = await db.get(Civil, civil_id)
    if civil is None:
        raise NotFoundError("civil", civil_id, "Civil não encontrado.")
    return civil


@civis_router.delete("/{civil_id}", response_model=PersonDeletedResponse)
async def delete_civil(
    civil_id: int,
    policy: Optional[PersonDeletedPolicy] = POLICY_QUERY,
    db: AsyncSession = Depends(get_db),
):
    return await _delete_person(db, CivilRef(id=civil_id), policy)
