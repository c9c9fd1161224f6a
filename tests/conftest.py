"""
测试公共夹具
"""
import httpx
import pytest

from gateway.services.file_service import FileService
from gateway.services.mount_service import MountService
from gateway.services.saves_service import MemorySavesStore

from tests.fakes import FakeDriver, fake_factory


class RecordingStore(MemorySavesStore):
    """记录写入次数的内存存储"""

    def __init__(self):
        super().__init__()
        self.writes = []

    async def save(self, table, keys, record):
        self.writes.append((table, dict(keys), dict(record)))
        return await super().save(table, keys, record)


@pytest.fixture(autouse=True)
def reset_fake_calls():
    FakeDriver.calls.clear()
    yield
    FakeDriver.calls.clear()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def mounts(store):
    return MountService(store, factory=fake_factory())


@pytest.fixture
def files(mounts):
    return FileService(mounts)


@pytest.fixture
async def mock_client():
    """根据处理函数构造带 MockTransport 的异步客户端"""
    clients = []

    def build(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield build
    for client in clients:
        await client.aclose()
