from payvote.main import SECURITY_HEADERS, STRICT_TRANSPORT_SECURITY


def test_health(client):
    for path in ("/health", "/api/health"):
        r = client.get(path)
        assert r.status_code == 200
        assert r.json() == {"ok": True}


def test_root_is_plain_text(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.text.startswith("Backend up")


def test_security_headers_present(client):
    response = client.get("/health")
    for header, value in SECURITY_HEADERS.items():
        assert response.headers.get(header) == value
    assert response.headers.get("Strict-Transport-Security") == STRICT_TRANSPORT_SECURITY


def test_put_and_delete_are_blocked(client):
    assert client.put("/api/tally").status_code == 405
    r = client.delete("/api/tally")
    assert r.status_code == 405
    assert r.headers.get("Allow") == "GET, POST, OPTIONS"


def test_post_requires_json_content_type(client):
    r = client.post(
        "/api/create-checkout-session",
        content="candidateId=1",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )
    assert r.status_code == 415
