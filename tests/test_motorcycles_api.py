"""Testes dos endpoints /api/motorcycles."""

import base64
import json
import os

import pytest
from fastapi.testclient import TestClient

from conftest import make_image, make_noisy_jpeg
from motocatalog import repository
from motocatalog.routers import motorcycles as motorcycle_routes


# Maior que o INTEGER do SQLite
HUGE_ID = 99999999999999999999


def post_form(client, images=None, **overrides):
    fields = {
        "name": "Test",
        "description": "D",
        "price": "1000",
        "isSold": "false",
        "colors": json.dumps([{"name": "Red", "hex": "#FF0000"}]),
    }
    fields.update(overrides)
    if images is None:
        images = [("moto.jpg", make_image("JPEG"), "image/jpeg")]
    files = [("images", image) for image in images]
    return client.post("/api/motorcycles", data=fields, files=files)


def post_json(client, **overrides):
    body = {
        "name": "DCX 250cc Adventure",
        "description": "Moto aventureira para todos os terrenos.",
        "price": 18990,
        "isSold": False,
        "colors": [{"name": "Verde", "hex": "#008000"}, {"name": "Azul", "hex": "#0000FF"}],
        "images": [{
            "base64": base64.b64encode(make_image("PNG")).decode(),
            "type": "image/png",
            "name": "aventura.png",
        }],
    }
    body.update(overrides)
    return client.post("/api/motorcycles", json=body)


# =============================================================================
# Cenário completo: criar, vender, apagar
# =============================================================================

def test_create_patch_delete_scenario(client, uploaded_files):
    response = post_form(client, images=[("moto.jpg", make_noisy_jpeg(), "image/jpeg")])

    assert response.status_code == 201
    created = response.json()
    assert created["name"] == "Test"
    assert created["price"] == 1000
    assert created["isSold"] is False
    assert len(created["colors"]) == 1
    assert created["colors"][0] == {
        "id": created["colors"][0]["id"], "name": "Red", "hex": "#FF0000", "motorcycleId": created["id"],
    }
    assert len(created["images"]) == 1
    assert len(uploaded_files()) == 1

    response = client.patch(f"/api/motorcycles/{created['id']}", json={"isSold": True})

    assert response.status_code == 200
    patched = response.json()
    assert patched["isSold"] is True
    assert patched["images"] == created["images"]
    assert patched["colors"] == created["colors"]

    response = client.delete(f"/api/motorcycles/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    ids = [m["id"] for m in client.get("/api/motorcycles").json()]
    assert created["id"] not in ids
    assert client.get(f"/api/motorcycles/{created['id']}").status_code == 404
    assert uploaded_files() == []


# =============================================================================
# Criação
# =============================================================================

class TestCreate:

    def test_image_and_color_counts_match_submission(self, client):
        response = post_form(
            client,
            images=[
                ("a.jpg", make_image("JPEG"), "image/jpeg"),
                ("b.png", make_image("PNG"), "image/png"),
                ("c.webp", make_image("WEBP"), "image/webp"),
            ],
            colors=json.dumps([
                {"name": "Vermelho", "hex": "#FF0000"},
                {"name": "Preto", "hex": "#000000"},
            ]),
        )

        assert response.status_code == 201
        body = response.json()
        assert len(body["images"]) == 3
        assert len(body["colors"]) == 2
        assert all(image["url"].endswith(".webp") for image in body["images"])

    def test_json_body_with_base64_and_url(self, client):
        response = post_json(client, images=[
            {"base64": base64.b64encode(make_image("JPEG")).decode(), "type": "image/jpeg", "name": "a.jpg"},
            {"url": "https://cdn.example.com/motos/b.jpg"},
            "https://cdn.example.com/motos/c.jpg",
        ])

        assert response.status_code == 201
        urls = [image["url"] for image in response.json()["images"]]
        assert urls[0].startswith("/uploads/motorcycles/")
        assert urls[1:] == ["https://cdn.example.com/motos/b.jpg", "https://cdn.example.com/motos/c.jpg"]

    def test_uploaded_file_is_served(self, client):
        url = post_form(client).json()["images"][0]["url"]

        response = client.get(url)

        assert response.status_code == 200
        assert response.content[:4] == b"RIFF"

    @pytest.mark.parametrize("overrides,message", [
        ({"name": "  "}, "Nome é obrigatório"),
        ({"description": ""}, "Descrição é obrigatória"),
        ({"price": "abc"}, "Preço deve ser um número válido maior que zero"),
        ({"price": "0"}, "Preço deve ser um número válido maior que zero"),
        ({"price": "-10"}, "Preço deve ser um número válido maior que zero"),
        ({"price": "0.001"}, "Preço deve ser um número válido maior que zero"),
        ({"colors": "[]"}, "Pelo menos uma cor é necessária"),
        ({"colors": "não é json"}, "Formato de cores inválido"),
        ({"colors": json.dumps([{"name": "Vermelho", "hex": "vermelho"}])}, "Formato de cores inválido"),
        ({"colors": json.dumps([{"name": "Vermelho"}])}, "Formato de cores inválido"),
    ])
    def test_validation_errors(self, client, overrides, message):
        response = post_form(client, **overrides)

        assert response.status_code == 400
        assert response.json() == {"error": message}
        assert client.get("/api/motorcycles").json() == []

    def test_requires_at_least_one_image(self, client):
        response = post_form(client, images=[])

        assert response.status_code == 400
        assert response.json() == {"error": "Pelo menos uma imagem é necessária"}

    def test_first_validation_failure_wins(self, client):
        response = post_form(client, images=[], name="", price="abc")

        assert response.json() == {"error": "Nome é obrigatório"}

    def test_disallowed_mime_type_creates_nothing(self, client, uploaded_files):
        response = post_form(client, images=[
            ("a.jpg", make_image("JPEG"), "image/jpeg"),
            ("b.gif", make_image("GIF"), "image/gif"),
        ])

        assert response.status_code == 400
        assert response.json()["error"].startswith("Imagem 2:")
        assert client.get("/api/motorcycles").json() == []
        assert uploaded_files() == []

    def test_oversized_image_creates_nothing(self, client, uploaded_files):
        too_big = b"\xff\xd8" + b"\x00" * (5 * 1024 * 1024)

        response = post_form(client, images=[("grande.jpg", too_big, "image/jpeg")])

        assert response.status_code == 400
        assert response.json() == {"error": "Imagem 1: Imagem muito grande (máximo 5MB)"}
        assert client.get("/api/motorcycles").json() == []
        assert uploaded_files() == []

    def test_unsupported_content_type(self, client):
        response = client.post("/api/motorcycles", content=b"name=x", headers={"content-type": "text/plain"})

        assert response.status_code == 400
        assert response.json() == {"error": "Formato de requisição não suportado"}

    def test_invalid_json(self, client):
        response = client.post(
            "/api/motorcycles", content=b"{nope", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "JSON inválido"}

    def test_database_failure_returns_generic_500_and_cleans_files(self, client, monkeypatch, uploaded_files):
        def boom(*args, **kwargs):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(repository, "create_motorcycle", boom)

        response = post_form(client)

        assert response.status_code == 500
        assert response.json() == {"error": "Erro ao criar motocicleta"}
        assert uploaded_files() == []

    def test_response_failure_after_commit_keeps_files(self, app, monkeypatch, uploaded_files):
        class BrokenOut:
            @staticmethod
            def model_validate(obj):
                raise RuntimeError("serialização falhou")

        monkeypatch.setattr(motorcycle_routes, "MotorcycleOut", BrokenOut)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = post_form(client)
            monkeypatch.undo()
            motorcycles = client.get("/api/motorcycles").json()

        assert response.status_code == 500
        assert len(motorcycles) == 1
        assert len(uploaded_files()) == 1


# =============================================================================
# Leitura e paginação
# =============================================================================

class TestList:

    def test_without_page_returns_bare_array(self, client):
        post_json(client, name="Primeira")
        post_json(client, name="Segunda")

        response = client.get("/api/motorcycles")

        assert response.status_code == 200
        assert [m["name"] for m in response.json()] == ["Segunda", "Primeira"]

    def test_paginated_envelope(self, client):
        for i in range(12):
            post_json(client, name=f"Moto {i}", images=["https://cdn.example.com/a.jpg"])

        first = client.get("/api/motorcycles", params={"page": 1}).json()
        second = client.get("/api/motorcycles", params={"page": 2}).json()

        assert first["total"] == 12
        assert first["totalPages"] == 2
        assert first["currentPage"] == 1
        assert first["pageSize"] == 10
        assert len(first["motorcycles"]) == 10
        assert len(second["motorcycles"]) == 2
        assert first["motorcycles"][0]["name"] == "Moto 11"

    def test_empty_catalog_page(self, client):
        body = client.get("/api/motorcycles", params={"page": 1}).json()

        assert body["motorcycles"] == []
        assert body["total"] == 0
        assert body["totalPages"] == 0

    @pytest.mark.parametrize("page", ["0", "-1", "abc"])
    def test_invalid_page(self, client, page):
        response = client.get("/api/motorcycles", params={"page": page})

        assert response.status_code == 400
        assert "error" in response.json()

    def test_show_unknown_returns_404(self, client):
        response = client.get("/api/motorcycles/12345")

        assert response.status_code == 404
        assert response.json() == {"error": "Motocicleta não encontrada"}

    def test_page_beyond_integer_range_is_empty(self, client):
        post_json(client)

        response = client.get("/api/motorcycles", params={"page": 10 ** 19})

        assert response.status_code == 200
        body = response.json()
        assert body["motorcycles"] == []
        assert body["total"] == 1

    @pytest.mark.parametrize("method,kwargs", [
        ("get", {}),
        ("put", {"json": {
            "name": "X", "description": "Y", "price": 10,
            "colors": [{"name": "Roxo", "hex": "#800080"}],
        }}),
        ("patch", {"json": {"isSold": True}}),
        ("delete", {}),
    ])
    def test_id_beyond_integer_range_returns_404(self, client, method, kwargs):
        response = client.request(method, f"/api/motorcycles/{HUGE_ID}", **kwargs)

        assert response.status_code == 404
        assert response.json() == {"error": "Motocicleta não encontrada"}


# =============================================================================
# Atualização
# =============================================================================

class TestUpdate:

    def test_put_replaces_colors_and_keeps_images_by_default(self, client):
        created = post_form(client).json()

        response = client.put(
            f"/api/motorcycles/{created['id']}",
            data={
                "name": "Test 2",
                "description": "Nova descrição",
                "price": "1500.50",
                "isSold": "true",
                "colors": json.dumps([{"name": "Azul", "hex": "#0000ff"}]),
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Test 2"
        assert body["price"] == 1500.5
        assert body["isSold"] is True
        assert [(c["name"], c["hex"]) for c in body["colors"]] == [("Azul", "#0000FF")]
        assert [i["url"] for i in body["images"]] == [i["url"] for i in created["images"]]

    def test_put_drops_images_not_listed_and_removes_files(self, client, uploaded_files):
        created = post_form(client, images=[
            ("a.jpg", make_image("JPEG"), "image/jpeg"),
            ("b.jpg", make_image("JPEG"), "image/jpeg"),
        ]).json()
        keep = created["images"][0]["url"]

        response = client.put(
            f"/api/motorcycles/{created['id']}",
            data={
                "name": "Test",
                "description": "D",
                "price": "1000",
                "colors": json.dumps([{"name": "Red", "hex": "#FF0000"}]),
                "existingImages": json.dumps([keep]),
            },
            files=[("images", ("c.png", make_image("PNG"), "image/png"))],
        )

        assert response.status_code == 200
        urls = [i["url"] for i in response.json()["images"]]
        assert urls[0] == keep
        assert len(urls) == 2
        assert created["images"][1]["url"] not in urls
        assert len(uploaded_files()) == 2

    def test_put_leaves_no_trace_of_previous_colors(self, client):
        created = post_json(client).json()

        client.put(f"/api/motorcycles/{created['id']}", json={
            "name": created["name"],
            "description": created["description"],
            "price": created["price"],
            "colors": [{"name": "Roxo", "hex": "#800080"}],
        })

        colors = client.get(f"/api/motorcycles/{created['id']}").json()["colors"]
        assert [c["name"] for c in colors] == ["Roxo"]

    def test_put_rejects_foreign_existing_image(self, client):
        created = post_json(client).json()

        response = client.put(f"/api/motorcycles/{created['id']}", json={
            "name": "X", "description": "Y", "price": 10,
            "colors": [{"name": "Roxo", "hex": "#800080"}],
            "existingImages": ["/uploads/motorcycles/de-outra-moto.webp"],
        })

        assert response.status_code == 400

    def test_put_requires_some_image(self, client):
        created = post_json(client).json()

        response = client.put(f"/api/motorcycles/{created['id']}", json={
            "name": "X", "description": "Y", "price": 10,
            "colors": [{"name": "Roxo", "hex": "#800080"}],
            "existingImages": [],
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Pelo menos uma imagem é necessária"}

    def test_put_rejects_existing_images_sent_as_file(self, client):
        created = post_form(client).json()

        response = client.put(
            f"/api/motorcycles/{created['id']}",
            data={
                "name": "Test",
                "description": "D",
                "price": "1000",
                "colors": json.dumps([{"name": "Red", "hex": "#FF0000"}]),
            },
            files=[("existingImages", ("x.txt", b"[]", "text/plain"))],
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Formato de existingImages inválido"}
        assert client.get(f"/api/motorcycles/{created['id']}").json()["images"] == created["images"]

    def test_put_unknown_returns_404(self, client):
        response = client.put("/api/motorcycles/999", json={
            "name": "X", "description": "Y", "price": 10,
            "colors": [{"name": "Roxo", "hex": "#800080"}],
        })

        assert response.status_code == 404

    def test_put_with_bad_image_keeps_record_untouched(self, client):
        created = post_json(client).json()

        response = client.put(f"/api/motorcycles/{created['id']}", json={
            "name": "Mudou", "description": "Y", "price": 10,
            "colors": [{"name": "Roxo", "hex": "#800080"}],
            "images": [{"base64": "AAAA", "type": "image/bmp"}],
        })

        assert response.status_code == 400
        current = client.get(f"/api/motorcycles/{created['id']}").json()
        assert current["name"] == created["name"]


# =============================================================================
# PATCH e DELETE
# =============================================================================

class TestPatchAndDelete:

    def test_patch_with_form_field(self, client):
        created = post_json(client).json()

        response = client.patch(f"/api/motorcycles/{created['id']}", data={"isSold": "true"})

        assert response.json()["isSold"] is True

    def test_patch_requires_flag(self, client):
        created = post_json(client).json()

        response = client.patch(f"/api/motorcycles/{created['id']}", json={"name": "outro"})

        assert response.status_code == 400
        assert response.json() == {"error": "isSold é obrigatório"}

    def test_patch_rejects_non_boolean(self, client):
        created = post_json(client).json()

        response = client.patch(f"/api/motorcycles/{created['id']}", json={"isSold": "talvez"})

        assert response.status_code == 400

    def test_patch_unknown_returns_404(self, client):
        response = client.patch("/api/motorcycles/999", json={"isSold": True})

        assert response.status_code == 404

    def test_delete_unknown_returns_404(self, client):
        response = client.delete("/api/motorcycles/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Motocicleta não encontrada"}

    def test_delete_survives_missing_file(self, client, settings, uploaded_files):
        created = post_form(client).json()
        for name in uploaded_files():
            os.remove(os.path.join(settings.UPLOAD_DIR, "motorcycles", name))

        response = client.delete(f"/api/motorcycles/{created['id']}")

        assert response.status_code == 200
        assert client.get(f"/api/motorcycles/{created['id']}").status_code == 404
