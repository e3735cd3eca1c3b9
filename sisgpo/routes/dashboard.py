"""Espelho de ocorrências (CRBM x cidade x natureza) e óbitos do dia."""
from dataclasses import asdict
from datetime import date
from typing import Iterable, List, Optional

from fastapi import APIRouter, Query

from sisgpo.espelho import (
    DEFAULT_ESPELHO_LAYOUT,
    BaseLocation,
    EspelhoMatrix,
    IncidentRecord,
    build_espelho,
    filter_crbm,
    summarize_obitos,
)
from sisgpo.ocorrencias_client import OcorrenciasClient
from sisgpo.schemas import EspelhoRequest, EspelhoResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _serialize(
    matrix: EspelhoMatrix,
    crbm: Optional[str],
    obitos: List[IncidentRecord],
    data: Optional[str] = None,
    warning: Optional[str] = None,
) -> EspelhoResponse:
    filtered = filter_crbm(matrix, crbm)
    return EspelhoResponse(
        data=data,
        columns=[asdict(col) for col in filtered.columns],
        groups=[
            {
                "crbm": group.crbm,
                "rows": [
                    {"cidade": row.cidade, "counts": filtered.labeled(row.counts), "total": row.total}
                    for row in group.rows
                ],
                "subtotal": {"counts": filtered.labeled(group.subtotal.counts), "total": group.subtotal.total},
            }
            for group in filtered.groups
        ],
        grand_total={"counts": filtered.labeled(filtered.grand_total.counts), "total": filtered.grand_total.total},
        crbms=matrix.crbms,
        dropped=matrix.dropped,
        obitos=[{"label": b.label, "quantidade": b.quantidade} for b in summarize_obitos(obitos)],
        warning=warning,
    )


def _base(items: Iterable) -> List[BaseLocation]:
    return [BaseLocation(crbm=item.get("crbm") or item.get("crbm_nome"), cidade=item.get("cidade") or item.get("cidade_nome"))
            for item in items if isinstance(item, dict)]


@router.get("/espelho", response_model=EspelhoResponse)
async def get_espelho(
    data: Optional[date] = Query(None, description="Dia consultado (padrão: hoje)"),
    crbm: Optional[str] = Query(None, description="Filtra um CRBM; 'todos' ou vazio = todos"),
):
    """Monta o espelho com os dados do sistema de ocorrências. Fonte fora do ar: espelho vazio + warning."""
    payload = await OcorrenciasClient().fetch_day(data)
    records = [IncidentRecord.from_payload(item) for item in payload.espelho if isinstance(item, dict)]
    matrix = build_espelho(DEFAULT_ESPELHO_LAYOUT, records, _base(payload.espelho_base))
    obitos = [IncidentRecord.from_payload(item) for item in payload.obitos if isinstance(item, dict)]
    return _serialize(matrix, crbm, obitos, data=payload.data, warning=payload.warning)


@router.post("/espelho", response_model=EspelhoResponse)
async def post_espelho(body: EspelhoRequest):
    """Monta o espelho a partir dos registros enviados (importação/conferência offline)."""
    records = [IncidentRecord(**item.model_dump()) for item in body.registros]
    base = [BaseLocation(crbm=b.crbm, cidade=b.cidade) for b in body.base]
    matrix = build_espelho(DEFAULT_ESPELHO_LAYOUT, records, base)
    obitos = [IncidentRecord.from_payload(item.model_dump()) for item in body.obitos]
    return _serialize(matrix, body.crbm, obitos)
