"""
持久化存储测试（内存 / Tortoise SQLite）
"""
import pytest
from tortoise import Tortoise

from gateway.models.mount import MOUNT_TABLE, MountConfig
from gateway.services.saves_service import (
    MemorySavesStore,
    TortoiseSavesStore,
    get_store,
    record_key,
)


@pytest.fixture(params=["memory", "tortoise"])
async def backend(request):
    if request.param == "memory":
        yield MemorySavesStore()
        return
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["gateway.models"]})
    await Tortoise.generate_schemas()
    yield TortoiseSavesStore()
    await Tortoise.close_connections()


async def test_save_then_find_returns_same_fields(backend):
    config = MountConfig(
        mount_path="/cloud",
        mount_type="goodrive",
        drive_conf={"refresh_token": "rt"},
        drive_save={"access_token": "at", "expires_at": 1700000000.0},
        order_number=3,
        remarks="备注",
    )
    record = config.model_dump(mode="json")
    result = await backend.save(MOUNT_TABLE, config.keys(), record)
    assert result.flag

    found = await backend.find(MOUNT_TABLE, {"mount_path": "/cloud"})
    assert len(found) == 1
    for key, value in record.items():
        assert found[0][key] == value
    assert MountConfig.model_validate(found[0]) == config


async def test_save_merges_existing_record(backend):
    keys = {"mount_path": "/a"}
    await backend.save(MOUNT_TABLE, keys, {"remarks": "x", "order_number": 1})
    await backend.save(MOUNT_TABLE, keys, {"remarks": "y"})

    found = await backend.find(MOUNT_TABLE, keys)
    assert found[0] == {"mount_path": "/a", "remarks": "y", "order_number": 1}


async def test_find_all_and_tables_isolated(backend):
    await backend.save(MOUNT_TABLE, {"mount_path": "/a"}, {"mount_type": "cloud115"})
    await backend.save(MOUNT_TABLE, {"mount_path": "/b"}, {"mount_type": "cloud189"})
    await backend.save("other", {"mount_path": "/c"}, {})

    assert [r["mount_path"] for r in await backend.find(MOUNT_TABLE)] == ["/a", "/b"]
    assert [r["mount_path"] for r in await backend.find("other", {})] == ["/c"]


async def test_fuzzy_find(backend):
    await backend.save(MOUNT_TABLE, {"mount_path": "/a"}, {"mount_type": "cloud115"})
    await backend.save(MOUNT_TABLE, {"mount_path": "/b"}, {"mount_type": "cloud189"})
    await backend.save(MOUNT_TABLE, {"mount_path": "/c"}, {"mount_type": "cloud115"})

    found = await backend.find(MOUNT_TABLE, {"mount_type": "cloud115"}, fuzzy=True)
    assert [r["mount_path"] for r in found] == ["/a", "/c"]
    # 非模糊查询按主键精确匹配
    assert await backend.find(MOUNT_TABLE, {"mount_type": "cloud115"}) == []


async def test_kill(backend):
    keys = {"mount_path": "/a"}
    await backend.save(MOUNT_TABLE, keys, {})

    assert (await backend.kill(MOUNT_TABLE, keys)).flag
    assert await backend.find(MOUNT_TABLE, keys) == []
    assert await backend.find(MOUNT_TABLE) == []
    assert not (await backend.kill(MOUNT_TABLE, keys)).flag


async def test_memory_store_keeps_index_list():
    backend = MemorySavesStore()
    await backend.save(MOUNT_TABLE, {"mount_path": "/a"}, {})
    await backend.save(MOUNT_TABLE, {"mount_path": "/b"}, {})
    await backend.save(MOUNT_TABLE, {"mount_path": "/a"}, {"remarks": "again"})

    assert backend._data["@mounts/@maps"] == ["@mounts/mount_path=/a", "@mounts/mount_path=/b"]
    await backend.kill(MOUNT_TABLE, {"mount_path": "/a"})
    assert backend._data["@mounts/@maps"] == ["@mounts/mount_path=/b"]


async def test_memory_store_returns_copies():
    backend = MemorySavesStore()
    await backend.save(MOUNT_TABLE, {"mount_path": "/a"}, {"drive_conf": {"k": "v"}})
    found = await backend.find(MOUNT_TABLE)
    found[0]["drive_conf"]["k"] = "changed"
    assert (await backend.find(MOUNT_TABLE))[0]["drive_conf"] == {"k": "v"}


def test_record_key_sorted():
    assert record_key({"b": 2, "a": 1}) == "a=1&b=2"


def test_get_store():
    assert isinstance(get_store("memory://"), MemorySavesStore)
    assert isinstance(get_store("sqlite://:memory:"), TortoiseSavesStore)
