"""Sessão e inicialização do banco de dados."""
import logging
import re
from typing import Optional

from sqlalchemy import Table, UniqueConstraint, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from .config import get_settings
from .errors import ConflictError

logger = logging.getLogger(__name__)

settings = get_settings()
_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    # SQLite (testes/dev): conexão por uso, sem pool preso a um event loop
    **({"poolclass": NullPool} if _is_sqlite else {}),
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        # Sem isso o SQLite ignora ON DELETE CASCADE / SET NULL
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    from . import models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def flush_or_conflict(db: AsyncSession, kind: str, message: str, conflicting_id=None) -> None:
    """flush; constraint violada no banco vira ConflictError (mesmo formato da checagem prévia)."""
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.info(f"Constraint do banco barrou escrita ({kind}): {exc.orig}")
        raise ConflictError(kind, message, conflicting_id) from exc


_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (.+)$")


def violated_constraint(exc: IntegrityError, table: Table) -> Optional[str]:
    """
    Nome da constraint violada. PostgreSQL (asyncpg/psycopg) informa o nome;
    o SQLite só lista as colunas, que são casadas com as UniqueConstraint da tabela.
    """
    orig = exc.orig
    for source in (orig, getattr(orig, "__cause__", None), getattr(orig, "diag", None)):
        name = getattr(source, "constraint_name", None)
        if name:
            return name
    match = _SQLITE_UNIQUE_RE.search(str(orig))
    if not match:
        return None
    columns = {part.strip().rsplit(".", 1)[-1] for part in match.group(1).split(",")}
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint) and {c.name for c in constraint.columns} == columns:
            return constraint.name
    return None
