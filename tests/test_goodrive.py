"""
Google Drive 驱动测试：刷新令牌、列表分页、直链请求头
"""
import json
import time
from urllib.parse import parse_qs

import httpx

from drivekit.core.models import FileType, Status
from drivekit.providers.goodrive import GoodriveConf, GoodriveSave, ProviderGoodrive, default_config

FOLDER = default_config.FOLDER_MIME_TYPE


def make_driver(client, saving=None, **conf) -> ProviderGoodrive:
    values = {"refresh_token": "rt", "client_id": "cid", "client_secret": "secret"}
    values.update(conf)
    return ProviderGoodrive("/gd", GoodriveConf(**values), saving, client=client)


def token_handler(requests):
    def handler(request):
        requests.append(request)
        assert request.url == default_config.TOKEN_URL
        return httpx.Response(200, json={"access_token": "new", "expires_in": 3599, "token_type": "Bearer"})
    return handler


class TestSession:

    async def test_near_expiry_token_refreshed(self, mock_client):
        requests = []
        saving = GoodriveSave(access_token="old", refresh_token="rt-saved", expires_at=time.time() + 60)
        driver = make_driver(mock_client(token_handler(requests)), saving)

        result = await driver.load()

        assert result.flag
        assert result.text == "Session Refreshed"
        assert result.data.dirty
        assert result.data.session.access_token == "new"
        assert result.data.session.refresh_token == "rt-saved"
        body = {k: v[0] for k, v in parse_qs(requests[0].content.decode()).items()}
        assert body == {
            "grant_type": "refresh_token",
            "refresh_token": "rt-saved",
            "client_id": "cid",
            "client_secret": "secret",
        }

    async def test_valid_token_not_refreshed(self, mock_client):
        requests = []
        saving = GoodriveSave(access_token="old", expires_at=time.time() + 3600)
        driver = make_driver(mock_client(token_handler(requests)), saving)

        result = await driver.load()

        assert result.text == "Session Loaded"
        assert not result.data.dirty
        assert requests == []

    async def test_init_failure(self, mock_client):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        driver = make_driver(mock_client(handler))
        result = await driver.init()

        assert not result.flag
        assert result.text.startswith("Login Failed: ")

    async def test_online_api(self, mock_client):
        def handler(request):
            assert request.url.host == "renew.example.com"
            assert request.url.params["refresh_ui"] == "rt"
            return httpx.Response(200, json={"access_token": "online", "refresh_token": "rt2", "expires_in": 3600})

        driver = make_driver(
            mock_client(handler),
            use_online_api=True,
            url_online_api="https://renew.example.com/renewapi",
        )
        result = await driver.init()

        assert result.flag
        assert result.data.session.access_token == "online"
        assert result.data.session.refresh_token == "rt2"

    async def test_online_api_returning_array(self, mock_client):
        def handler(request):
            return httpx.Response(200, json=[])

        driver = make_driver(
            mock_client(handler),
            use_online_api=True,
            url_online_api="https://renew.example.com/renewapi",
        )
        result = await driver.init()

        assert not result.flag
        assert result.text.startswith("Login Failed: Unexpected response")

    async def test_malformed_expiry(self, mock_client):
        def handler(request):
            return httpx.Response(200, json={"access_token": "new", "expires_in": "soon"})

        saving = GoodriveSave(access_token="old", expires_at=0)
        driver = make_driver(mock_client(handler), saving)
        result = await driver.load()

        assert not result.flag
        assert result.text == "Refresh Failed: Invalid duration: 'soon'"


class TestFiles:

    @staticmethod
    def saving():
        return GoodriveSave(access_token="at", expires_at=time.time() + 3600)

    async def test_list_pages_and_link_header(self, mock_client):
        def handler(request):
            assert request.headers["Authorization"] == "Bearer at"
            params = request.url.params
            assert params["q"] == "'root' in parents and trashed = false"
            if "pageToken" not in params:
                return httpx.Response(200, json={"nextPageToken": "p2", "files": [
                    {"id": "f1", "name": "a.mp4", "mimeType": "video/mp4", "size": "10",
                     "md5Checksum": "m", "parents": ["root"], "modifiedTime": "2024-01-01T00:00:00.000Z"},
                ]})
            return httpx.Response(200, json={"files": [
                {"id": "d1", "name": "dir", "mimeType": FOLDER, "parents": ["root"]},
            ]})

        driver = make_driver(mock_client(handler), self.saving())
        result = await driver.list("/")

        assert result.flag
        files = {f.name: f for f in result.data.files}
        assert files["a.mp4"].size == 10
        assert files["a.mp4"].hash_type == "md5"
        assert files["a.mp4"].modified_at == 1704067200.0
        assert files["dir"].type == FileType.DIR

        links = await driver.download_link("/a.mp4")
        assert links.data[0].header == {"Authorization": "Bearer at"}
        assert "/files/f1?" in links.data[0].direct
        assert "alt=media" in links.data[0].direct

    async def test_move_replaces_parents(self, mock_client):
        patches = []

        def handler(request):
            if request.method == "PATCH":
                patches.append(request)
                return httpx.Response(200, json={"id": "f1"})
            return httpx.Response(200, json={"files": [
                {"id": "f1", "name": "a.mp4", "mimeType": "video/mp4", "parents": ["root"]},
                {"id": "d1", "name": "dir", "mimeType": FOLDER, "parents": ["root"]},
            ]})

        driver = make_driver(mock_client(handler), self.saving())
        task = await driver.move("/a.mp4", "/dir")

        assert task.status == Status.SUCCESSFUL
        params = patches[0].url.params
        assert params["addParents"] == "d1"
        assert params["removeParents"] == "root"

    async def test_create_folder_and_upload(self, mock_client):
        bodies = []

        def handler(request):
            bodies.append(request)
            if request.url.path.startswith("/upload/"):
                return httpx.Response(200, json={"id": "u1", "name": "a.txt"})
            return httpx.Response(200, json={"id": "d2", "name": "new", "mimeType": FOLDER})

        driver = make_driver(mock_client(handler), self.saving())

        result = await driver.create("/", "new", FileType.DIR)
        assert result.text == "Folder Created"
        assert json.loads(bodies[0].content) == {"name": "new", "mimeType": FOLDER, "parents": ["root"]}

        result = await driver.create("/", "a.txt", FileType.FILE, b"hello")
        assert result.text == "Upload Completed"
        upload = bodies[1]
        assert upload.url.params["uploadType"] == "multipart"
        assert upload.headers["Content-Type"].startswith("multipart/related; boundary=")
        assert b"hello" in upload.content

    async def test_not_logged_in(self, mock_client):
        def handler(request):
            raise AssertionError("no request expected")

        driver = make_driver(mock_client(handler))
        result = await driver.list("/")
        assert not result.flag
