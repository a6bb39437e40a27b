# tests/test_health.py
from deepbug.core.security import get_csp_header


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client) -> None:
    body = client.get("/").json()

    assert body["docs"] == "/docs"
    assert body["name"].endswith("API")


def test_security_headers_on_every_response(client) -> None:
    for path in ("/health", "/api/v1/articles/404"):
        response = client.get(path)
        assert response.headers["Content-Security-Policy"] == get_csp_header()
        assert response.headers["X-Content-Type-Options"] == "nosniff"
