"""
持久化服务

挂载注册表只通过 save / find / kill 三个操作访问存储，
提供 Tortoise ORM 和内存两种实现
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from drivekit.core.models import Result

from gateway.models.record import Record

logger = logging.getLogger(__name__)


def record_key(keys: Dict[str, Any]) -> str:
    """把主键字段拼接为记录键（按字段名排序）"""
    return "&".join(f"{k}={keys[k]}" for k in sorted(keys))


def matches(data: Dict[str, Any], keys: Dict[str, Any]) -> bool:
    """记录是否包含全部给定字段"""
    return all(k in data and data[k] == v for k, v in keys.items())


class SavesStore(ABC):
    """文档存储接口"""

    @abstractmethod
    async def save(self, table: str, keys: Dict[str, Any], record: Dict[str, Any]) -> Result:
        """按主键写入记录，已存在时合并字段"""

    @abstractmethod
    async def find(
        self,
        table: str,
        keys: Optional[Dict[str, Any]] = None,
        fuzzy: bool = False
    ) -> List[Dict[str, Any]]:
        """查询记录

        Args:
            table: 逻辑表名
            keys: 主键字段，为空时返回整张表
            fuzzy: 为 True 时返回包含给定字段的所有记录
        """

    @abstractmethod
    async def kill(self, table: str, keys: Dict[str, Any]) -> Result:
        """删除记录"""


class TortoiseSavesStore(SavesStore):
    """基于 Tortoise ORM 的存储（SQLite / MySQL）"""

    async def save(self, table: str, keys: Dict[str, Any], record: Dict[str, Any]) -> Result:
        key = record_key(keys)
        row = await Record.get_or_none(table_name=table, record_key=key)
        if row is None:
            row = Record(table_name=table, record_key=key, data={})
        row.data = {**(row.data or {}), **record, **keys}
        await row.save()
        return Result.ok("Saved", data=copy.deepcopy(row.data))

    async def find(
        self,
        table: str,
        keys: Optional[Dict[str, Any]] = None,
        fuzzy: bool = False
    ) -> List[Dict[str, Any]]:
        if keys and not fuzzy:
            row = await Record.get_or_none(table_name=table, record_key=record_key(keys))
            return [row.data] if row else []
        rows = await Record.filter(table_name=table).order_by("id")
        return [row.data for row in rows if matches(row.data or {}, keys or {})]

    async def kill(self, table: str, keys: Dict[str, Any]) -> Result:
        deleted = await Record.filter(table_name=table, record_key=record_key(keys)).delete()
        if not deleted:
            return Result.fail("Record Not Found")
        return Result.ok("Deleted")


class MemorySavesStore(SavesStore):
    """内存存储

    记录键格式为 @table/k=v，每张表额外维护一个 @table/@maps 索引列表
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}

    @staticmethod
    def _key(table: str, keys: Dict[str, Any]) -> str:
        return f"@{table}/{record_key(keys)}"

    @staticmethod
    def _maps(table: str) -> str:
        return f"@{table}/@maps"

    async def save(self, table: str, keys: Dict[str, Any], record: Dict[str, Any]) -> Result:
        key = self._key(table, keys)
        index: List[str] = self._data.setdefault(self._maps(table), [])
        if key not in index:
            index.append(key)
        data = {**self._data.get(key, {}), **copy.deepcopy(record), **keys}
        self._data[key] = data
        return Result.ok("Saved", data=copy.deepcopy(data))

    async def find(
        self,
        table: str,
        keys: Optional[Dict[str, Any]] = None,
        fuzzy: bool = False
    ) -> List[Dict[str, Any]]:
        if keys and not fuzzy:
            data = self._data.get(self._key(table, keys))
            return [copy.deepcopy(data)] if data is not None else []
        return [
            copy.deepcopy(self._data[key])
            for key in self._data.get(self._maps(table), [])
            if matches(self._data[key], keys or {})
        ]

    async def kill(self, table: str, keys: Dict[str, Any]) -> Result:
        key = self._key(table, keys)
        if key not in self._data:
            return Result.fail("Record Not Found")
        del self._data[key]
        self._data[self._maps(table)].remove(key)
        return Result.ok("Deleted")


def get_store(database_url: str) -> SavesStore:
    """按数据库 URL 选择存储实现，memory:// 使用内存存储"""
    if database_url.startswith("memory://"):
        logger.info("Using in-memory saves store")
        return MemorySavesStore()
    return TortoiseSavesStore()
