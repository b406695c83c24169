import json

import pytest
from litestar.testing import TestClient

from main import create_app
from services.card_normalizer import normalize_card
from services.character_card_processor import load_png_document


@pytest.fixture
def client():
    with TestClient(app=create_app()) as test_client:
        yield test_client


def test_health(client: TestClient):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_import_png_upload(client: TestClient, aria_png: bytes):
    response = client.post(
        "/api/characters/import", files={"data": ("aria.png", aria_png, "image/png")}
    )

    assert response.status_code == 200
    assert response.json()["data"] == {
        "name": "Aria",
        "persona": "A cat girl.\n\nPersonality: playful\n\nScenario: a cafe\n\nFirst greeting: Hi!",
        "userNickname": "{{user}}",
        "sourceFormat": "tavern-v2",
    }


def test_import_json_upload(client: TestClient):
    content = json.dumps({"name": "Aria", "char_persona": "cheerful"}).encode("utf-8")

    response = client.post(
        "/api/characters/import", files={"data": ("aria.json", content, "application/json")}
    )

    assert response.status_code == 200
    assert response.json()["data"]["persona"] == "cheerful"


def test_import_unsupported_extension(client: TestClient):
    response = client.post(
        "/api/characters/import", files={"data": ("aria.gif", b"GIF89a", "image/gif")}
    )

    assert response.status_code == 415
    assert "Unsupported file format: .gif" in response.json()["detail"]


def test_import_png_without_card(client: TestClient, card_png):
    data = card_png([("text", "Comment", "no card")])

    response = client.post(
        "/api/characters/import", files={"data": ("plain.png", data, "image/png")}
    )

    assert response.status_code == 400
    assert '"chara"' in response.json()["detail"]


def test_import_not_a_png(client: TestClient):
    response = client.post(
        "/api/characters/import", files={"data": ("fake.png", b"not a png", "image/png")}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Not a valid PNG file"


def test_import_from_url(client: TestClient, tmp_path, aria_png: bytes):
    card_path = tmp_path / "aria.png"
    card_path.write_bytes(aria_png)

    response = client.post("/api/characters/import-url", json={"url": str(card_path)})

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Aria"


def test_import_from_missing_path(client: TestClient, tmp_path):
    response = client.post(
        "/api/characters/import-url", json={"url": str(tmp_path / "missing.json")}
    )

    assert response.status_code == 400
    assert "Local file not found" in response.json()["detail"]


def test_export_card(client: TestClient):
    record = {
        "name": "Nova",
        "persona": "A starship AI.",
        "userNickname": "{{user}}",
        "sourceFormat": "tavern-v3",
    }

    response = client.post("/api/characters/export", json=record)

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert 'filename="Nova.png"' in response.headers["content-disposition"]
    assert normalize_card(load_png_document(response.content)).to_record() == record


def test_export_rejects_unknown_source_format(client: TestClient):
    response = client.post(
        "/api/characters/export",
        json={"name": "Nova", "persona": "", "sourceFormat": "tavern-v9"},
    )

    assert response.status_code == 400
