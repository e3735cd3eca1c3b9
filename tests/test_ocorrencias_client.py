"""Cliente do sistema de ocorrências com transporte simulado."""
from datetime import date

import httpx
import pytest

from sisgpo.ocorrencias_client import OcorrenciasClient

pytestmark = pytest.mark.anyio


async def test_fetch_day_sends_date_and_reads_all_lists():
    seen = []

    def handler(request):
        params = request.url.params
        seen.append((request.url.path, params.get("data") or params.get("data_inicio"), params.get("data_fim")))
        if request.url.path.endswith("estatisticas-por-intervalo"):
            return httpx.Response(200, json={"data": [{"natureza_nome": "Vegetação", "quantidade": 2}]})
        if request.url.path.endswith("relatorio-completo"):
            return httpx.Response(200, json={
                "estatisticas": [],
                "obitos": [{"natureza_nome": "ACIDENTE DE TRÂNSITO", "quantidade_vitimas": 1}],
            })
        return httpx.Response(200, json=[{"crbm": "1º CRBM", "cidade": "Goiânia"}])

    client = OcorrenciasClient(base_url="http://ocorrencias.test/", transport=httpx.MockTransport(handler))
    payload = await client.fetch_day(date(2025, 3, 10))

    assert payload.data == "2025-03-10"
    assert payload.espelho == [{"natureza_nome": "Vegetação", "quantidade": 2}]
    assert payload.espelho_base == [{"crbm": "1º CRBM", "cidade": "Goiânia"}]
    assert payload.obitos == [{"natureza_nome": "ACIDENTE DE TRÂNSITO", "quantidade_vitimas": 1}]
    assert payload.warning is None
    assert ("/api/external/estatisticas-por-intervalo", "2025-03-10", None) in seen
    assert ("/api/external/espelho-base", None, None) in seen
    assert ("/api/external/relatorio-completo", "2025-03-10", "2025-03-10") in seen


async def test_relatorio_wrapped_in_data_and_missing_obitos():
    def handler(request):
        if request.url.path.endswith("relatorio-completo"):
            return httpx.Response(200, json={"data": {"obitos": [{"natureza_nome": "OUTROS"}]}})
        return httpx.Response(200, json=[])

    payload = await OcorrenciasClient(transport=httpx.MockTransport(handler)).fetch_day(date(2025, 3, 10))
    assert payload.obitos == [{"natureza_nome": "OUTROS"}]

    def handler_sem_obitos(request):
        if request.url.path.endswith("relatorio-completo"):
            return httpx.Response(200, json={"estatisticas": []})
        return httpx.Response(200, json=[])

    payload = await OcorrenciasClient(transport=httpx.MockTransport(handler_sem_obitos)).fetch_day(date(2025, 3, 10))
    assert payload.obitos == []
    assert payload.warning is None


async def test_relatorio_down_is_listed_in_warning():
    def handler(request):
        if request.url.path.endswith("relatorio-completo"):
            raise httpx.ConnectError("recusado", request=request)
        return httpx.Response(200, json=[])

    payload = await OcorrenciasClient(transport=httpx.MockTransport(handler)).fetch_day(date(2025, 3, 10))
    assert payload.obitos == []
    assert payload.warning == "Alguns dados não foram carregados: relatorio."


async def test_everything_down_gives_empty_payload_and_warning():
    def handler(request):
        raise httpx.ConnectError("recusado", request=request)

    payload = await OcorrenciasClient(transport=httpx.MockTransport(handler)).fetch_day(date(2025, 3, 10))
    assert payload.espelho == [] and payload.espelho_base == [] and payload.obitos == []
    assert payload.warning == "Sistema de ocorrências indisponível; exibindo dados vazios."
