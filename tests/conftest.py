"""
SISGPO - infraestrutura de testes
=================================
  - Banco SQLite de teste (sisgpo_test.db) recriado a cada teste
  - TestClient do FastAPI
  - Sessão assíncrona para testes do RosterService (anyio)
  - Dados base: OBM, viaturas, militares, civil
"""

import asyncio
import os

import pytest

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEST_DB_PATH = os.path.join(ROOT_DIR, "sisgpo_test.db")

# Antes de importar sisgpo: get_settings() é cacheado
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["OCORRENCIAS_API_URL"] = "http://ocorrencias.test"

from sisgpo.database import AsyncSessionLocal, Base, engine  # noqa: E402
from sisgpo import models  # noqa: E402,F401


async def reset_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_db():
    yield
    try:
        if os.path.exists(TEST_DB_PATH):
            os.remove(TEST_DB_PATH)
    except OSError:
        pass


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def client():
    """TestClient com banco limpo."""
    from starlette.testclient import TestClient
    from sisgpo.main import app

    asyncio.run(reset_db())
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def db(anyio_backend):
    await reset_db()
    async with AsyncSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seed(db):
    """Cadastros mínimos para escalar."""
    obm = models.Obm(nome="1º Batalhão", abreviatura="1BBM", crbm="1º CRBM", cidade="Goiânia")
    db.add(obm)
    await db.flush()
    vtr1 = models.Viatura(prefixo="ABT-01", obm_id=obm.id)
    vtr2 = models.Viatura(prefixo="UR-02", obm_id=obm.id)
    sem_obm = models.Viatura(prefixo="ASA-03")
    m1 = models.Militar(matricula="1001", nome_completo="João da Silva", nome_guerra="SILVA", posto_graduacao="SD")
    m2 = models.Militar(matricula="1002", nome_completo="Maria Souza", nome_guerra="SOUZA", posto_graduacao="CB")
    m3 = models.Militar(matricula="1003", nome_completo="Pedro Lima", nome_guerra="LIMA", posto_graduacao="SGT")
    civil = models.Civil(nome_completo="Ana Reguladora", funcao="Regulador")
    aeronave = models.Aeronave(prefixo="PR-BMG", tipo_asa="rotativa")
    db.add_all([vtr1, vtr2, sem_obm, m1, m2, m3, civil, aeronave])
    await db.flush()
    return {
        "obm": obm,
        "vtr1": vtr1,
        "vtr2": vtr2,
        "sem_obm": sem_obm,
        "m1": m1,
        "m2": m2,
        "m3": m3,
        "civil": civil,
        "aeronave": aeronave,
    }


@pytest.fixture
def cadastros(client):
    """Mesmos cadastros via API; devolve os ids."""
    obm = client.post("/obms", json={"nome": "1º Batalhão", "abreviatura": "1bbm", "crbm": "1º CRBM"}).json()
    vtr = client.post("/viaturas", json={"prefixo": "abt-01", "obm_id": obm["id"]}).json()
    m1 = client.post("/militares", json={"matricula": "1001", "nome_completo": "João da Silva",
                                         "nome_guerra": "SILVA", "posto_graduacao": "SD"}).json()
    m2 = client.post("/militares", json={"matricula": "1002", "nome_completo": "Maria Souza",
                                         "nome_guerra": "SOUZA", "posto_graduacao": "CB"}).json()
    civil = client.post("/civis", json={"nome_completo": "Ana Reguladora", "funcao": "Regulador"}).json()
    return {"obm": obm["id"], "vtr": vtr["id"], "m1": m1["id"], "m2": m2["id"], "civil": civil["id"]}
