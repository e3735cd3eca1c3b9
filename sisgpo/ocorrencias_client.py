"""
Cliente do sistema de ocorrências (fonte externa do espelho).

Busca em paralelo as ocorrências do dia, a base de CRBM/cidades e os óbitos do
relatório completo. Endpoint que falha vira lista vazia e entra no aviso; o
espelho é montado mesmo assim.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)

ESPELHO_PATH = "/api/external/estatisticas-por-intervalo"
ESPELHO_BASE_PATH = "/api/external/espelho-base"
RELATORIO_PATH = "/api/external/relatorio-completo"


@dataclass
class OcorrenciasPayload:
    data: str
    espelho: List[Any] = field(default_factory=list)
    espelho_base: List[Any] = field(default_factory=list)
    obitos: List[Any] = field(default_factory=list)
    warning: Optional[str] = None


def _as_list(body: Any) -> List[Any]:
    # aceita lista pura ou {"data": [...]}
    if isinstance(body, dict):
        body = body.get("data")
    return body if isinstance(body, list) else []


def _obitos(body: Any) -> List[Any]:
    """Óbitos do relatório completo: {"estatisticas": [...], "obitos": [...]}."""
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        body = body["data"]
    if not isinstance(body, dict):
        return []
    obitos = body.get("obitos")
    return obitos if isinstance(obitos, list) else []


class OcorrenciasClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.ocorrencias_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.ocorrencias_timeout
        self._transport = transport

    async def _get_json(self, client: httpx.AsyncClient, path: str, params=None) -> Any:
        r = await client.get(path, params=params)
        r.raise_for_status()
        return r.json()

    async def fetch_day(self, dia: Optional[date] = None) -> OcorrenciasPayload:
        target = (dia or date.today()).isoformat()
        payload = OcorrenciasPayload(data=target)
        endpoints = [
            ("espelho", ESPELHO_PATH, {"data": target}),
            ("espelhoBase", ESPELHO_BASE_PATH, None),
            ("relatorio", RELATORIO_PATH, {"data_inicio": target, "data_fim": target}),
        ]
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            results = await asyncio.gather(
                *(self._get_json(client, path, params) for _, path, params in endpoints),
                return_exceptions=True,
            )

        errors = []
        for (key, path, _), result in zip(endpoints, results):
            if isinstance(result, Exception):
                errors.append(key)
                logger.warning(f"Falha ao carregar {key} ({self.base_url}{path}): {result!r}")
                continue
            if key == "espelho":
                payload.espelho = _as_list(result)
            elif key == "espelhoBase":
                payload.espelho_base = _as_list(result)
            else:
                payload.obitos = _obitos(result)

        if len(errors) == len(endpoints):
            payload.warning = "Sistema de ocorrências indisponível; exibindo dados vazios."
        elif errors:
            payload.warning = f"Alguns dados não foram carregados: {', '.join(errors)}."
        return payload
