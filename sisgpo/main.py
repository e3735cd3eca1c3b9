"""
SISGPO - Escalas operacionais e espelho de ocorrências.
Plantões de viatura, serviço de dia, CODEC, aeronaves e o espelho CRBM x natureza.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sisgpo.config import get_settings
from sisgpo.database import engine, init_db
from sisgpo.errors import SisgpoError
from sisgpo.espelho import DEFAULT_ESPELHO_LAYOUT, validate_layout
from sisgpo.routes import (
    obms_router,
    viaturas_router,
    aeronaves_router,
    escala_aeronaves_router,
    militares_router,
    civis_router,
    plantoes_router,
    servico_dia_router,
    escala_codec_router,
    dashboard_router,
)

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Layout do espelho malformado é erro de configuração: não sobe
    validate_layout(DEFAULT_ESPELHO_LAYOUT)
    await init_db()
    logger.info(f"{settings.app_name} iniciado")
    yield
    await engine.dispose()


app = FastAPI(
    title="SISGPO - Escalas",
    description="API de escalas operacionais (plantões, serviço de dia, CODEC, aeronaves) e espelho de ocorrências.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SisgpoError)
async def sisgpo_error_handler(request: Request, exc: SisgpoError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(obms_router)
app.include_router(viaturas_router)
app.include_router(aeronaves_router)
app.include_router(escala_aeronaves_router)
app.include_router(militares_router)
app.include_router(civis_router)
app.include_router(plantoes_router)
app.include_router(servico_dia_router)
app.include_router(escala_codec_router)
app.include_router(dashboard_router)


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health():
    return {"status": "ok"}
