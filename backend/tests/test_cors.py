# backend/tests/test_cors.py
import pytest


def _acao(res):
    return {k.lower(): v for k, v in res.headers.items()}.get("access-control-allow-origin")


@pytest.mark.parametrize(
    "origin",
    [
        "http://localhost:5173",
        "https://payvote-web.onrender.com",
        "https://fuzzy-space-xyz-5173.app.github.dev",
    ],
)
def test_cors_preflight_allowed_origin(client, origin):
    headers = {
        "Origin": origin,
        "Access-Control-Request-Method": "POST",
    }
    res = client.options("/api/create-checkout-session", headers=headers)
    assert res.status_code in (200, 204)
    assert _acao(res) == origin
    assert res.headers.get("access-control-allow-credentials") == "true"
    allow_methods = res.headers.get("access-control-allow-methods", "").upper()
    assert "GET" in allow_methods and "POST" in allow_methods and "OPTIONS" in allow_methods


def test_frontend_url_is_allowed(tmp_path, provider):
    from fastapi.testclient import TestClient

    from payvote.core.settings import Settings
    from payvote.main import create_app

    settings = Settings(db_path=str(tmp_path / "cors.db"), log_file=None, frontend_url="https://vote.example.com/")
    with TestClient(create_app(settings, provider=provider)) as c:
        res = c.get("/api/health", headers={"Origin": "https://vote.example.com"})
    assert _acao(res) == "https://vote.example.com"


def test_cors_preflight_disallowed_origin(client):
    headers = {
        "Origin": "https://evil.com",
        "Access-Control-Request-Method": "POST",
    }
    res = client.options("/api/create-checkout-session", headers=headers)
    # Starlette rejects disallowed preflights with 400; either way no ACAO header.
    assert res.status_code in (400, 200, 204)
    if res.status_code != 400:
        assert _acao(res) is None


def test_simple_get_disallowed_origin_omits_acao(client):
    res = client.get("/api/tally", headers={"Origin": "https://evil.onrender.com.attacker.io"})
    assert res.status_code == 200
    assert _acao(res) is None
