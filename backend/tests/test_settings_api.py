from fastapi.testclient import TestClient

from conftest import ADMIN_TOKEN
from payvote.core.settings import Settings
from payvote.main import create_app

AUTH = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


def test_settings_defaults(client, settings):
    r = client.get("/api/settings")
    assert r.status_code == 200
    assert r.json() == {
        "question": "Is this week's answer YES?",
        "glow": "#00ffff",
        "instagram": settings.instagram_url,
    }


def test_admin_update_requires_token(client):
    r = client.post("/api/admin/settings", json={"question": "New?"})
    assert r.status_code == 401
    assert r.json()["error"] == "unauthorized"
    assert client.get("/api/settings").json()["question"] == "Is this week's answer YES?"


def test_admin_update_rejects_wrong_token(client):
    r = client.post("/api/admin/settings", json={"question": "New?"}, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    r = client.post("/api/admin/settings", json={"question": "New?"}, headers={"Authorization": ADMIN_TOKEN})
    assert r.status_code == 401


def test_admin_partial_update_keeps_other_fields(client):
    r = client.post("/api/admin/settings", json={"question": "Pineapple on pizza?"}, headers=AUTH)
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert client.get("/api/settings").json()["question"] == "Pineapple on pizza?"
    assert client.get("/api/settings").json()["glow"] == "#00ffff"

    r = client.post("/api/admin/settings", json={"glow": "#FF00AA"}, headers=AUTH)
    assert r.status_code == 200
    body = client.get("/api/settings").json()
    assert body["question"] == "Pineapple on pizza?"
    assert body["glow"] == "#ff00aa"


def test_admin_update_validates_fields(client):
    assert client.post("/api/admin/settings", json={"glow": "red"}, headers=AUTH).status_code == 422
    assert client.post("/api/admin/settings", json={"question": "   "}, headers=AUTH).status_code == 422
    assert client.post("/api/admin/settings", json={"question": "x" * 281}, headers=AUTH).status_code == 422


def test_admin_disabled_without_server_token(tmp_path, provider):
    settings = Settings(db_path=str(tmp_path / "noadmin.db"), log_file=None, admin_token="")
    with TestClient(create_app(settings, provider=provider)) as c:
        r = c.post("/api/admin/settings", json={"question": "x"}, headers={"Authorization": "Bearer "})
        assert r.status_code == 401
        r = c.post("/api/admin/settings", json={"question": "x"}, headers={"Authorization": "Bearer anything"})
        assert r.status_code == 401
