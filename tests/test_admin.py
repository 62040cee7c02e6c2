from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def test_admin_reload():
    r = client.post("/admin/reload")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["count"] == 10
