"""
挂载服务测试
"""
import time

from gateway.models.mount import MOUNT_TABLE
from gateway.services.resolver import ResolveMode

from tests.fakes import FakeDriver, mount


async def stored(store, path):
    return (await store.find(MOUNT_TABLE, {"mount_path": path}))[0]


class TestCreate:

    async def test_create_reloads_and_persists_session(self, mounts, store):
        result = await mounts.create(mount("/cloud/"))

        assert result.flag
        assert result.text == "Mount Created"
        assert result.data == {"mount_path": "/cloud", "reload": {"flag": True, "text": "Login Success"}}

        row = await stored(store, "/cloud")
        assert row["drive_save"]["access_token"] == "tok-t"
        assert row["drive_logs"] == "Login Success"
        assert row["version"] == 2

    async def test_duplicate_path_rejected(self, mounts):
        assert (await mounts.create(mount("/cloud"))).flag
        result = await mounts.create(mount("/cloud/"))
        assert not result.flag
        assert result.text == "Mount Path Already Exists"

    async def test_invalid_drive_conf(self, mounts, store):
        result = await mounts.create(mount("/cloud", drive_conf={}))
        assert not result.flag
        assert result.text.startswith("Invalid Mount Config: ")
        assert await store.find(MOUNT_TABLE) == []

    async def test_unknown_provider(self, mounts):
        result = await mounts.create(mount("/cloud", mount_type="dropbox"))
        assert not result.flag
        assert result.text.startswith("Invalid Mount Config: ")

    async def test_failed_login_keeps_mount(self, mounts, store):
        result = await mounts.create(mount("/cloud", drive_conf={"token": "t", "fail_login": True}))

        assert result.flag
        assert result.data["reload"] == {"flag": False, "text": "Login Failed: bad token"}
        row = await stored(store, "/cloud")
        assert row["drive_logs"] == "Login Failed: bad token"
        assert row["drive_save"] == {"access_token": None, "expires_at": None}

    async def test_driver_crash_during_login_keeps_mount(self, mounts, store):
        result = await mounts.create(mount("/cloud", drive_conf={"token": "t", "crash": True}))

        assert result.flag
        assert result.data["reload"] == {"flag": False, "text": "Login Failed: malformed response"}
        row = await stored(store, "/cloud")
        assert row["drive_logs"] == "Login Failed: malformed response"


class TestReload:

    async def test_missing_mount_writes_nothing(self, mounts, store):
        result = await mounts.reload("/missing")
        assert not result.flag
        assert result.text == "Mount Path Not Found"
        assert store.writes == []

    async def test_reload_increments_version(self, mounts, store):
        await mounts.create(mount("/cloud"))
        result = await mounts.reload("/cloud")
        assert result.flag
        assert (await stored(store, "/cloud"))["version"] == 3


class TestLoad:

    async def test_expired_session_refreshed_and_persisted(self, mounts, store):
        await mounts.create(mount("/cloud"))
        await store.save(MOUNT_TABLE, {"mount_path": "/cloud"}, {
            "drive_save": {"access_token": "old", "expires_at": time.time() - 10},
        })

        driver = await mounts.load("/cloud/docs")

        assert isinstance(driver, FakeDriver)
        assert driver.saving.access_token == "refreshed"
        row = await stored(store, "/cloud")
        assert row["drive_save"]["access_token"] == "refreshed"
        assert row["drive_logs"] == "Session Refreshed"

    async def test_valid_session_not_written(self, mounts, store):
        await mounts.create(mount("/cloud"))
        writes = len(store.writes)

        driver = await mounts.load("/cloud")

        assert driver is not None
        assert len(store.writes) == writes

    async def test_write_back_keeps_concurrent_config(self, mounts, store):
        await mounts.create(mount("/cloud"))
        await store.save(MOUNT_TABLE, {"mount_path": "/cloud"}, {
            "drive_save": {"access_token": "old", "expires_at": 0},
        })
        await mounts.config({"mount_path": "/cloud", "remarks": "edited"})

        await mounts.load("/cloud")

        row = await stored(store, "/cloud")
        assert row["remarks"] == "edited"
        assert row["drive_save"]["access_token"] == "refreshed"

    async def test_failed_load_writes_logs(self, mounts, store):
        await mounts.create(mount("/cloud"))
        await store.save(MOUNT_TABLE, {"mount_path": "/cloud"}, {
            "drive_conf": {"token": "t", "fail_login": True},
            "drive_save": {},
        })

        assert await mounts.load("/cloud") is None
        assert (await stored(store, "/cloud"))["drive_logs"] == "Refresh Failed: bad token"

    async def test_driver_crash_during_load_writes_logs(self, mounts, store):
        await mounts.create(mount("/cloud"))
        await store.save(MOUNT_TABLE, {"mount_path": "/cloud"}, {"drive_conf": {"token": "t", "crash": True}})

        assert await mounts.load("/cloud/a") is None
        assert (await stored(store, "/cloud"))["drive_logs"] == "Load Failed: malformed response"

    async def test_no_mount(self, mounts):
        await mounts.create(mount("/cloud"))
        assert await mounts.load("/other") is None

    async def test_disabled_mount(self, mounts):
        await mounts.create(mount("/cloud", is_enabled=False))
        assert await mounts.load("/cloud/a") is None


class TestResolve:

    async def test_single_and_union(self, mounts):
        for path in ("/", "/sub", "/sub/temp", "/sub/temp/deep"):
            await mounts.create(mount(path))

        driver = await mounts.resolve("/sub/x")
        assert driver.mount_path == "/sub"

        drivers = await mounts.resolve("/sub/", ResolveMode.UNION)
        assert [d.mount_path for d in drivers] == ["/sub", "/sub/temp"]

    async def test_single_mode_falls_back_to_descendant(self, mounts):
        await mounts.create(mount("/a/b"))

        driver = await mounts.resolve("/a")

        assert driver.mount_path == "/a/b"
        assert await mounts.owner("/a") is None
        assert await mounts.load("/a") is None

    async def test_drivers_built_per_call(self, mounts):
        await mounts.create(mount("/cloud"))
        first = await mounts.resolve("/cloud")
        second = await mounts.resolve("/cloud")
        assert first is not second

    async def test_no_mount(self, mounts):
        assert await mounts.resolve("/x") is None
        assert await mounts.resolve("/x", ResolveMode.UNION) == []


class TestConfigAndRemove:

    async def test_partial_update(self, mounts, store):
        await mounts.create(mount("/cloud"))
        result = await mounts.config({"mount_path": "/cloud/", "remarks": "hi", "order_number": 2})

        assert result.flag
        assert "drive_save" not in result.data
        row = await stored(store, "/cloud")
        assert row["remarks"] == "hi"
        assert row["order_number"] == 2
        assert row["drive_conf"] == {"token": "t"}
        assert row["drive_save"]["access_token"] == "tok-t"
        assert row["version"] == 3

    async def test_invalid_update_rejected(self, mounts, store):
        await mounts.create(mount("/cloud"))
        result = await mounts.config({"mount_path": "/cloud", "drive_conf": {"token": ""}})

        assert not result.flag
        assert result.text.startswith("Invalid Mount Config: ")
        assert (await stored(store, "/cloud"))["drive_conf"] == {"token": "t"}

    async def test_config_inserts_missing_mount(self, mounts, store):
        result = await mounts.config(mount("/new/", remarks="fresh"))

        assert result.flag
        assert result.text == "Mount Updated"
        assert result.data["mount_path"] == "/new"
        row = await stored(store, "/new")
        assert row["version"] == 1
        assert row["remarks"] == "fresh"
        # 只保存配置，不登录
        assert row["drive_save"] == {}
        assert row.get("drive_logs", "") == ""

    async def test_config_rejects_incomplete_insert(self, mounts, store):
        result = await mounts.config({"mount_path": "/nope", "remarks": "x"})

        assert not result.flag
        assert result.text.startswith("Invalid Mount Config: ")
        assert await store.find(MOUNT_TABLE) == []
        assert "/nope" not in mounts._locks

    async def test_remove(self, mounts):
        await mounts.create(mount("/cloud"))
        assert (await mounts.remove("/cloud/")).flag
        assert (await mounts.select()).data == []

        result = await mounts.remove("/cloud")
        assert not result.flag
        assert result.text == "Mount Path Not Found"

    async def test_missing_paths_leave_no_locks(self, mounts):
        await mounts.create(mount("/cloud"))

        for path in ("/missing/1", "/missing/2", "/missing/3"):
            await mounts.remove(path)
            await mounts.reload(path)
        await mounts.remove("/cloud")

        assert mounts._locks == {}

    async def test_select(self, mounts):
        await mounts.create(mount("/a"))
        await mounts.create(mount("/b"))

        assert [m.mount_path for m in (await mounts.select()).data] == ["/a", "/b"]
        assert [m.mount_path for m in (await mounts.select("/b/")).data] == ["/b"]
        assert (await mounts.select("/c")).data == []


def test_catalog(mounts):
    catalog = mounts.catalog()
    assert catalog == [{
        "key": "cloud189",
        "name": "Fake",
        "description": "测试驱动",
        "fields": [{"key": "token", "label": "令牌", "type": "password", "required": True}],
    }]
