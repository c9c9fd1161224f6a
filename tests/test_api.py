"""
HTTP 接口测试
"""
import pytest
from fastapi.testclient import TestClient

from gateway.core.config import DatabaseSettings, SecuritySettings, Settings
from gateway.main import create_app
from gateway.services.saves_service import MemorySavesStore

from tests.fakes import FakeDriver, fake_factory, mount


@pytest.fixture
def client():
    settings = Settings(
        database=DatabaseSettings(DB_URL="memory://"),
        security=SecuritySettings(ADMIN_USERNAME="admin", ADMIN_PASSWORD="secret"),
    )
    app = create_app(settings, store=MemorySavesStore(), factory=fake_factory())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "secret"})
    return {"Authorization": f"Bearer {response.json()['data']['session_id']}"}


def test_health(client):
    response = client.get("/api/system/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_catalog_is_public(client):
    response = client.get("/api/mount/catalog")

    assert response.status_code == 200
    body = response.json()
    assert body["flag"] is True
    assert body["data"][0]["name"] == "Fake"
    assert body["data"][0]["fields"][0]["key"] == "token"


def test_requires_login(client):
    for url in ("/api/mount/select", "/api/files/list"):
        response = client.post(url, json={"source": "/"})
        assert response.status_code == 401
        assert response.json() == {"flag": False, "text": "请先登录"}


def test_login(client):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["flag"] is False

    response = client.post("/api/auth/login", json={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    assert response.json()["data"]["user"] == "admin"

    # 登录后 Cookie 生效
    assert client.get("/api/auth/check").json()["data"]["user"] == "admin"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/check").status_code == 401


def test_mount_lifecycle(client, auth):
    response = client.post("/api/mount/create", json=mount("/a"), headers=auth)
    body = response.json()
    assert body["flag"] is True
    assert body["text"] == "Mount Created"
    assert body["data"]["reload"] == {"flag": True, "text": "Login Success"}

    response = client.post("/api/mount/create", json=mount("/a"), headers=auth)
    assert response.json() == {"flag": False, "text": "Mount Path Already Exists"}

    selected = client.post("/api/mount/select", json={"mount_path": "/a"}, headers=auth).json()["data"]
    assert selected[0]["mount_path"] == "/a"
    assert selected[0]["version"] == 2
    assert "drive_save" not in selected[0]

    response = client.post("/api/mount/config", json={"mount_path": "/a", "remarks": "demo"}, headers=auth)
    assert response.json()["data"]["remarks"] == "demo"

    response = client.post("/api/mount/reload", json={}, headers=auth)
    assert response.json() == {"flag": False, "text": "Mount Path Required"}

    response = client.post("/api/mount/remove", json={"mount_path": "/a"}, headers=auth)
    assert response.json() == {"flag": True, "text": "Mount Removed"}

    response = client.post("/api/mount/unknown", json={}, headers=auth)
    assert response.status_code == 400


def test_file_actions(client, auth):
    client.post("/api/mount/create", json=mount("/a"), headers=auth)
    client.post("/api/mount/create", json=mount("/a/b", order_number=1), headers=auth)

    response = client.post("/api/files/list", json={"source": "/a"}, headers=auth)
    assert response.status_code == 200
    names = [item["name"] for item in response.json()["data"]["files"]]
    assert names == ["file.txt", "b"]

    response = client.post("/api/files/link", json={"source": "/a/b/x.mkv"}, headers=auth)
    assert response.json()["data"][0]["direct"] == "https://fake.example/x.mkv"

    response = client.post("/api/files/list", json={"source": "/nowhere"}, headers=auth)
    assert response.status_code == 404
    assert response.json() == {"flag": False, "text": "404 NOT FOUND"}

    response = client.post("/api/files/rename", json={"source": "/a"}, headers=auth)
    assert response.status_code == 400
    assert response.json()["text"] == "Invalid Action"

    response = client.post("/api/files/create", json={"source": "/a", "target": "notes.txt", "content": "hi"}, headers=auth)
    assert response.json()["text"] == "Upload Completed"
    assert FakeDriver.calls[-1][1:4] == ("/a", "/", "notes.txt")
    assert FakeDriver.calls[-1][5] == b"hi"


def test_multipart_upload(client, auth):
    client.post("/api/mount/create", json=mount("/a"), headers=auth)

    response = client.post(
        "/api/files/upload",
        data={"source": "/a/docs"},
        files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth,
    )

    assert response.status_code == 200
    assert response.json()["text"] == "Upload Completed"
    assert FakeDriver.calls[-1][1:4] == ("/a", "/docs", "report.pdf")
    assert FakeDriver.calls[-1][5] == b"%PDF-1.4"
