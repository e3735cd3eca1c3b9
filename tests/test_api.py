"""
Testes HTTP: cadastros, plantões, serviço de dia, CODEC, aeronaves, exclusão de pessoas, espelho.
"""
import httpx

from sisgpo.ocorrencias_client import OcorrenciasClient
from sisgpo.routes import dashboard

DIA = "2025-03-10"
INICIO = "2025-03-10T07:00:00"
FIM = "2025-03-11T07:00:00"


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_cadastros_normalize_codes(client, cadastros):
    r = client.get(f"/viaturas/{cadastros['vtr']}")
    assert r.json()["prefixo"] == "ABT-01"
    r = client.post("/viaturas", json={"prefixo": "ABT-01"})
    assert r.status_code == 409
    assert r.json()["kind"] == "viatura"
    assert client.get("/militares", params={"q": "souza"}).json()[0]["matricula"] == "1002"


def test_not_found_body(client):
    r = client.get("/obms/999")
    assert r.status_code == 404
    assert r.json()["entity_type"] == "obm"


def test_plantao_unique_per_vehicle_and_day(client, cadastros):
    body = {
        "data_plantao": DIA,
        "viatura_id": cadastros["vtr"],
        "observacoes": "original",
        "guarnicao": [{"militar_id": cadastros["m1"], "funcao": "Motorista"}],
    }
    r = client.post("/plantoes", json=body)
    assert r.status_code == 201, r.text
    plantao = r.json()
    assert plantao["obm_id"] == cadastros["obm"]
    assert plantao["guarnicao"][0]["nome"] == "SD SILVA"

    r = client.post("/plantoes", json={**body, "observacoes": "duplicado", "guarnicao": []})
    assert r.status_code == 409
    assert r.json()["kind"] == "plantao"
    assert r.json()["conflicting_entity_id"] == plantao["id"]

    r = client.get(f"/plantoes/{plantao['id']}")
    assert r.json()["observacoes"] == "original"
    assert len(client.get("/plantoes").json()) == 1


def test_guarnicao_add_twice_and_remove(client, cadastros):
    plantao = client.post("/plantoes", json={"data_plantao": DIA, "viatura_id": cadastros["vtr"]}).json()
    url = f"/plantoes/{plantao['id']}/guarnicao"
    assert client.post(url, json={"militar_id": cadastros["m2"], "funcao": "Chefe"}).status_code == 201
    r = client.post(url, json={"militar_id": cadastros["m2"]})
    assert r.status_code == 409
    assert r.json()["kind"] == "guarnicao"
    assert client.delete(f"{url}/{cadastros['m2']}").status_code == 204
    assert client.delete(f"{url}/{cadastros['m2']}").status_code == 404


def test_delete_plantao_cascades(client, cadastros):
    plantao = client.post("/plantoes", json={
        "data_plantao": DIA,
        "viatura_id": cadastros["vtr"],
        "guarnicao": [{"militar_id": cadastros["m1"]}, {"militar_id": cadastros["m2"]}],
    }).json()
    assert client.delete(f"/plantoes/{plantao['id']}").status_code == 204
    assert client.get(f"/plantoes/{plantao['id']}").status_code == 404
    # viatura liberada para um novo plantão no mesmo dia
    assert client.post("/plantoes", json={"data_plantao": DIA, "viatura_id": cadastros["vtr"]}).status_code == 201


def test_obm_with_plantao_cannot_be_deleted(client, cadastros):
    client.post("/plantoes", json={"data_plantao": DIA, "viatura_id": cadastros["vtr"]})
    r = client.delete(f"/obms/{cadastros['obm']}")
    assert r.status_code == 409


def test_servico_dia_upsert_modes(client, cadastros):
    entrada = {"pessoa": {"kind": "militar", "id": cadastros["m1"]}, "funcao": "Oficial de Dia",
               "data_inicio": INICIO, "data_fim": FIM}
    assert client.post("/servico-dia", json=entrada).json()["mode"] == "append"
    assert client.post("/servico-dia", json=entrada).json()["mode"] == "noop"
    r = client.post("/servico-dia", json={**entrada, "pessoa": {"kind": "militar", "id": cadastros["m2"]}})
    assert r.json()["mode"] == "replace"
    assert r.json()["servico"]["nome"] == "CB SOUZA"

    atual = client.get("/servico-dia", params={"instante": "2025-03-10T12:00:00"}).json()
    assert [s["pessoa_id"] for s in atual] == [cadastros["m2"]]


def test_servico_dia_rejects_bad_subject(client, cadastros):
    r = client.post("/servico-dia", json={"pessoa": {"kind": "bombeiro", "id": 1}, "funcao": "X",
                                          "data_inicio": INICIO, "data_fim": FIM})
    assert r.status_code == 422
    r = client.post("/servico-dia", json={"pessoa": {"kind": "civil", "id": 999}, "funcao": "Regulador",
                                          "data_inicio": INICIO, "data_fim": FIM})
    assert r.status_code == 404


def test_servico_dia_batch_save_and_clear(client, cadastros):
    r = client.put("/servico-dia", json={
        "data_inicio": INICIO,
        "data_fim": FIM,
        "servicos": [
            {"pessoa": {"kind": "militar", "id": cadastros["m1"]}, "funcao": "Oficial de Dia"},
            {"pessoa": {"kind": "civil", "id": cadastros["civil"]}, "funcao": "Regulador"},
        ],
    })
    assert r.status_code == 200, r.text
    assert len(r.json()) == 2
    r = client.delete("/servico-dia", params={"instante": "2025-03-10T08:00:00"})
    assert r.json() == {"removidos": 2}


def test_codec_conflicts(client, cadastros):
    base = {"data": DIA, "turno": "diurno"}
    r = client.post("/escala-codec", json={**base, "ordem_plantonista": 1, "militar_id": cadastros["m1"]})
    assert r.status_code == 201
    assert r.json()["nome"] == "SD SILVA"

    r = client.post("/escala-codec", json={**base, "ordem_plantonista": 1, "militar_id": cadastros["m2"]})
    assert (r.status_code, r.json()["kind"]) == (409, "codec_ordem")
    r = client.post("/escala-codec", json={**base, "ordem_plantonista": 2, "militar_id": cadastros["m1"]})
    assert (r.status_code, r.json()["kind"]) == (409, "codec_militar")
    r = client.post("/escala-codec", json={**base, "ordem_plantonista": 0, "militar_id": cadastros["m2"]})
    assert r.status_code == 422

    day = client.get("/escala-codec", params={"data": DIA}).json()
    assert len(day["diurno"]) == 1 and day["noturno"] == []


def test_escala_aeronave(client, cadastros):
    aeronave = client.post("/aeronaves", json={"prefixo": "pr-bmg"}).json()
    body = {"data": DIA, "aeronave_id": aeronave["id"], "comandante_id": cadastros["m1"], "copiloto_id": cadastros["m1"]}
    assert client.post("/escala-aeronaves", json=body).status_code == 422
    body["copiloto_id"] = cadastros["m2"]
    escala = client.post("/escala-aeronaves", json=body)
    assert escala.status_code == 201
    assert client.post("/escala-aeronaves", json=body).status_code == 409
    r = client.put(f"/escala-aeronaves/{escala.json()['id']}", json={"status": "baixada"})
    assert r.json()["status"] == "baixada"
    assert len(client.get("/escala-aeronaves", params={"data_inicio": DIA, "data_fim": DIA}).json()) == 1


def test_delete_militar_orphan_policy(client, cadastros):
    plantao = client.post("/plantoes", json={
        "data_plantao": DIA, "viatura_id": cadastros["vtr"], "guarnicao": [{"militar_id": cadastros["m1"]}],
    }).json()
    r = client.delete(f"/militares/{cadastros['m1']}", params={"policy": "orphan_with_tombstone"})
    assert r.status_code == 200
    assert r.json()["guarnicoes"] == 1
    crew = client.get(f"/plantoes/{plantao['id']}").json()["guarnicao"]
    assert crew[0]["militar_id"] is None
    assert crew[0]["nome"].startswith("Pessoa removida")


def test_delete_militar_cascade_policy(client, cadastros):
    plantao = client.post("/plantoes", json={
        "data_plantao": DIA, "viatura_id": cadastros["vtr"], "guarnicao": [{"militar_id": cadastros["m1"]}],
    }).json()
    r = client.delete(f"/militares/{cadastros['m1']}", params={"policy": "cascade"})
    assert r.json()["policy"] == "cascade"
    assert client.get(f"/plantoes/{plantao['id']}").json()["guarnicao"] == []
    assert client.get(f"/militares/{cadastros['m1']}").status_code == 404


def test_post_espelho(client):
    r = client.post("/dashboard/espelho", json={
        "registros": [
            {"grupo": "incendio", "nome": "vegetação", "crbm": "1º CRBM", "cidade": "Goiânia"},
            {"grupo": "Incêndio", "nome": "Vegetação", "crbm": "2º CRBM", "cidade": "Anápolis", "quantidade": 4},
            {"grupo": "Desconhecido", "nome": "Sem coluna", "crbm": "2º CRBM", "cidade": "Anápolis"},
        ],
        "base": [{"crbm": "1º CRBM", "cidade": "Trindade"}],
        "crbm": "1º CRBM",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["crbms"] == ["1º CRBM", "2º CRBM"]
    assert [g["crbm"] for g in body["groups"]] == ["1º CRBM"]
    rows = body["groups"][0]["rows"]
    assert [row["cidade"] for row in rows] == ["Goiânia", "Trindade"]
    assert rows[0]["counts"]["INC. VEG"] == 1
    assert rows[1]["total"] == 0
    assert body["grand_total"]["total"] == 1
    assert body["dropped"] == 1
    assert len(body["columns"]) == 16


def test_get_espelho_with_source_down(client, monkeypatch):
    def handler(request):
        if request.url.path.endswith("espelho-base"):
            return httpx.Response(200, json=[{"crbm_nome": "1º CRBM", "cidade_nome": "Goiânia"}])
        return httpx.Response(503)

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(dashboard, "OcorrenciasClient", lambda: OcorrenciasClient(transport=transport))
    r = client.get("/dashboard/espelho", params={"data": DIA})
    assert r.status_code == 200
    body = r.json()
    assert body["data"] == DIA
    assert "espelho" in body["warning"]
    assert body["groups"][0]["rows"][0]["cidade"] == "Goiânia"
    assert body["grand_total"]["total"] == 0


def test_get_espelho_obitos_come_from_relatorio(client, monkeypatch):
    seen = {}

    def handler(request):
        seen[request.url.path] = dict(request.url.params)
        if request.url.path.endswith("espelho-base"):
            return httpx.Response(200, json=[{"crbm_nome": "1º CRBM", "cidade_nome": "Goiânia"}])
        if request.url.path.endswith("relatorio-completo"):
            return httpx.Response(200, json={
                "estatisticas": [],
                "obitos": [
                    {"natureza_nome": "Acidente de trânsito", "quantidade_vitimas": 2},
                    {"natureza_nome": "Natureza nova", "quantidade_vitimas": "1"},
                ],
            })
        # linhas do espelho não entram na contagem de óbitos
        return httpx.Response(200, json={"data": [
            {"natureza_nome": "ACIDENTE DE TRÂNSITO", "crbm": "1º CRBM", "cidade": "Goiânia", "quantidade": 5},
        ]})

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(dashboard, "OcorrenciasClient", lambda: OcorrenciasClient(transport=transport))
    r = client.get("/dashboard/espelho", params={"data": DIA})
    assert r.status_code == 200
    body = r.json()
    assert body["warning"] is None
    obitos = {b["label"]: b["quantidade"] for b in body["obitos"]}
    assert obitos["ACIDENTE DE TRÂNSITO"] == 2
    assert obitos["OUTROS"] == 1
    assert seen["/api/external/relatorio-completo"] == {"data_inicio": DIA, "data_fim": DIA}


def test_get_espelho_relatorio_down_keeps_obitos_empty(client, monkeypatch):
    def handler(request):
        if request.url.path.endswith("relatorio-completo"):
            return httpx.Response(500)
        if request.url.path.endswith("espelho-base"):
            return httpx.Response(200, json=[])
        return httpx.Response(200, json={"data": []})

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(dashboard, "OcorrenciasClient", lambda: OcorrenciasClient(transport=transport))
    body = client.get("/dashboard/espelho", params={"data": DIA}).json()
    assert body["warning"] == "Alguns dados não foram carregados: relatorio."
    assert all(b["quantidade"] == 0 for b in body["obitos"])


def test_post_espelho_obitos(client):
    r = client.post("/dashboard/espelho", json={
        "registros": [{"grupo": "Incêndio", "nome": "Vegetação", "crbm": "1º CRBM", "cidade": "Goiânia"}],
        "obitos": [{"natureza_nome": "ACIDENTE DE TRÂNSITO", "quantidade_vitimas": 3}],
    })
    assert r.status_code == 200
    obitos = {b["label"]: b["quantidade"] for b in r.json()["obitos"]}
    assert obitos["ACIDENTE DE TRÂNSITO"] == 3
    assert sum(obitos.values()) == 3


def test_post_espelho_crbm_filter_tolerates_spacing(client):
    r = client.post("/dashboard/espelho", json={
        "registros": [
            {"grupo": "Incêndio", "nome": "Vegetação", "crbm": "1º CRBM", "cidade": "Goiânia"},
            {"grupo": "Incêndio", "nome": "Vegetação", "crbm": "2º CRBM", "cidade": "Anápolis"},
        ],
        "crbm": " 1º crbm ",
    })
    assert [g["crbm"] for g in r.json()["groups"]] == ["1º CRBM"]
