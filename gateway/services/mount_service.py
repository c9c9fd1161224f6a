"""
挂载服务

挂载注册表：管理挂载配置、按路径解析驱动、维护驱动会话的持久化
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from drivekit.core.driver import CloudDriver
from drivekit.core.exceptions import CloudStorageError, ConfigurationError
from drivekit.core.models import Result
from drivekit.providers.factory import DriverFactory, format_errors, driver_factory

from gateway.models.mount import MOUNT_TABLE, MountConfig, normalize_mount_path
from gateway.services.resolver import ResolveMode, select_owner, select_top, select_union
from gateway.services.saves_service import SavesStore

logger = logging.getLogger(__name__)


async def close_driver(driver: Optional[CloudDriver]):
    """释放驱动自行创建的 HTTP 客户端"""
    aclose = getattr(driver, "aclose", None)
    if aclose is not None:
        await aclose()


class MountService:
    """挂载服务

    驱动实例每次调用时按配置重新创建，不跨请求缓存；
    跨请求的状态只有持久化的 drive_conf / drive_save
    """

    def __init__(
        self,
        store: SavesStore,
        factory: DriverFactory = driver_factory,
        client: Optional[httpx.AsyncClient] = None,
        retry_attempts: int = 3,
        upload_concurrency: int = 1
    ):
        self.store = store
        self.factory = factory
        self.client = client
        self.retry_attempts = retry_attempts
        self.upload_concurrency = upload_concurrency
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, mount_path: str) -> asyncio.Lock:
        return self._locks.setdefault(mount_path, asyncio.Lock())

    def _release(self, mount_path: str):
        """挂载不存在时丢弃它的锁，锁表只保留已登记的挂载"""
        lock = self._locks.get(mount_path)
        if lock is not None and not lock.locked():
            del self._locks[mount_path]

    # ==================== 查询 ====================

    async def _find(self, mount_path: str) -> Optional[MountConfig]:
        rows = await self.store.find(MOUNT_TABLE, {"mount_path": mount_path})
        return MountConfig.model_validate(rows[0]) if rows else None

    async def _all(self) -> List[MountConfig]:
        mounts = []
        for row in await self.store.find(MOUNT_TABLE):
            try:
                mounts.append(MountConfig.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skip invalid mount {row.get('mount_path')}: {format_errors(e)}")
        return mounts

    async def select(self, path: Optional[str] = None) -> Result[List[MountConfig]]:
        """查询挂载点，path 为空时返回全部"""
        if path is None:
            return Result.ok(data=await self._all())
        mount = await self._find(normalize_mount_path(path))
        return Result.ok(data=[mount] if mount else [])

    async def owner(self, path: str, enabled_only: bool = True) -> Optional[MountConfig]:
        """返回拥有该路径的挂载配置"""
        return select_owner(await self._all(), path, enabled_only)

    def build(self, mount: MountConfig) -> CloudDriver:
        """按挂载配置创建驱动

        Raises:
            ConfigurationError: 网盘类型不支持或配置不合法
        """
        return self.factory.create(
            mount.mount_type,
            mount.mount_path,
            mount.drive_conf,
            mount.drive_save,
            client=self.client,
            retry_attempts=self.retry_attempts,
            upload_concurrency=self.upload_concurrency,
        )

    def _try_build(self, mount: MountConfig) -> Optional[CloudDriver]:
        try:
            return self.build(mount)
        except ConfigurationError as e:
            logger.error(f"Cannot build driver for {mount.mount_path}: {e}")
            return None

    async def resolve(
        self,
        path: str,
        mode: ResolveMode = ResolveMode.SINGLE,
        enabled_only: bool = True
    ) -> Union[CloudDriver, List[CloudDriver], None]:
        """按路径解析驱动

        Returns:
            单一模式返回排名第一的挂载（含下级挂载）的驱动，无匹配时为 None；合并模式返回拥有者加直接下级挂载的驱动列表
        """
        mounts = await self._all()
        if mode == ResolveMode.UNION:
            drivers = [self._try_build(mount) for mount in select_union(mounts, path, enabled_only)]
            return [driver for driver in drivers if driver is not None]

        top = select_top(mounts, path, enabled_only)
        if top is None:
            logger.debug(f"No mount found for {path}")
            return None
        return self._try_build(top)

    # ==================== 写入 ====================

    def _check(self, data: Dict[str, Any]) -> MountConfig:
        """校验挂载配置和驱动配置

        Raises:
            ConfigurationError: 配置不合法
        """
        try:
            mount = MountConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(format_errors(e)) from e
        self.factory.validate(mount.mount_type, mount.drive_conf)
        return mount

    async def _write(self, mount_path: str, **values) -> bool:
        """在挂载锁内更新部分字段并递增版本号，挂载已被删除时返回 False"""
        async with self._lock(mount_path):
            current = await self._find(mount_path)
            if current is not None:
                values["version"] = current.version + 1
                await self.store.save(MOUNT_TABLE, {"mount_path": mount_path}, values)
        if current is None:
            self._release(mount_path)
            return False
        return True

    async def create(self, config: Union[MountConfig, Dict[str, Any]]) -> Result:
        """新建挂载点，保存后立即 reload 完成首次登录"""
        data = config.model_dump() if isinstance(config, MountConfig) else dict(config)
        try:
            mount = self._check(data)
        except ConfigurationError as e:
            return Result.fail(f"Invalid Mount Config: {e}")

        async with self._lock(mount.mount_path):
            if await self._find(mount.mount_path) is not None:
                return Result.fail("Mount Path Already Exists")
            record = mount.model_dump(mode="json")
            record.update(version=1, drive_logs="")
            await self.store.save(MOUNT_TABLE, mount.keys(), record)
        logger.info(f"Mount created: {mount.mount_path} ({mount.mount_type.value})")

        reload = await self.reload(mount.mount_path)
        return Result.ok("Mount Created", data={
            "mount_path": mount.mount_path,
            "reload": {"flag": reload.flag, "text": reload.text},
        })

    async def remove(self, path: str) -> Result:
        """删除挂载点"""
        mount_path = normalize_mount_path(path)
        async with self._lock(mount_path):
            result = await self.store.kill(MOUNT_TABLE, {"mount_path": mount_path})
        self._release(mount_path)
        if not result.flag:
            return Result.fail("Mount Path Not Found")
        logger.info(f"Mount removed: {mount_path}")
        return Result.ok("Mount Removed")

    async def config(self, update: Dict[str, Any]) -> Result:
        """按 mount_path 保存挂载配置

        已存在时把 update 合并到原记录上再校验；不存在时 update 须是完整配置，按新记录写入（version=1），
        两种情况都不会触发 reload
        """
        if not update.get("mount_path"):
            return Result.fail("Invalid Mount Config: mount_path: Field required")
        mount_path = normalize_mount_path(update["mount_path"])

        async with self._lock(mount_path):
            current = await self._find(mount_path)
            base = current.model_dump() if current is not None else {}
            try:
                mount = self._check({**base, **update, "mount_path": mount_path})
            except ConfigurationError as e:
                mount = None
                error = e
            if mount is not None:
                record = mount.model_dump(mode="json")
                record["version"] = current.version + 1 if current is not None else 1
                await self.store.save(MOUNT_TABLE, mount.keys(), record)

        if mount is None:
            if current is None:
                self._release(mount_path)
            return Result.fail(f"Invalid Mount Config: {error}")
        if current is None:
            logger.info(f"Mount inserted by config: {mount_path} ({mount.mount_type.value})")
        return Result.ok("Mount Updated", data=mount.public_dict())

    # ==================== 会话 ====================

    async def reload(self, path: str) -> Result:
        """重新登录挂载点，无论成功与否都写回 drive_save 和 drive_logs"""
        mount = await self._find(normalize_mount_path(path))
        if mount is None:
            return Result.fail("Mount Path Not Found")

        try:
            driver = self.build(mount)
        except ConfigurationError as e:
            text = f"Invalid Mount Config: {e}"
            await self._write(mount.mount_path, drive_logs=text)
            return Result.fail(text)

        try:
            result = await driver.init()
        except CloudStorageError as e:
            result = Result.fail(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error while reloading {mount.mount_path}")
            result = Result.fail(f"Login Failed: {str(e) or e.__class__.__name__}")
        finally:
            await close_driver(driver)

        if result.flag and result.data is not None:
            saving = result.data.session
        else:
            saving = driver.saving
        await self._write(
            mount.mount_path,
            drive_save=saving.model_dump(mode="json"),
            drive_logs=result.text,
        )
        if result.flag:
            logger.info(f"Mount reloaded: {mount.mount_path}")
        else:
            logger.warning(f"Mount reload failed: {mount.mount_path}: {result.text}")
        return Result(result.flag, result.text)

    async def load(self, path: str) -> Optional[CloudDriver]:
        """解析路径并恢复驱动会话，会话变更时写回 drive_save

        Returns:
            CloudDriver: 可用的驱动；无挂载或会话恢复失败时返回 None
        """
        mount = await self.owner(path)
        if mount is None:
            return None
        return await self.activate(mount)

    async def activate(self, mount: MountConfig) -> Optional[CloudDriver]:
        """创建驱动并恢复会话"""
        try:
            driver = self.build(mount)
        except ConfigurationError as e:
            await self._write(mount.mount_path, drive_logs=f"Invalid Mount Config: {e}")
            return None

        try:
            result = await driver.load()
        except CloudStorageError as e:
            result = Result.fail(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error while loading {mount.mount_path}")
            result = Result.fail(f"Load Failed: {str(e) or e.__class__.__name__}")

        if not result.flag:
            await close_driver(driver)
            await self._write(mount.mount_path, drive_logs=result.text)
            logger.warning(f"Mount load failed: {mount.mount_path}: {result.text}")
            return None

        if result.data is not None and result.data.dirty:
            await self._write(
                mount.mount_path,
                drive_save=result.data.session.model_dump(mode="json"),
                drive_logs=result.text,
            )
        return driver

    def catalog(self) -> List[Dict[str, Any]]:
        """可用网盘类型及配置项"""
        return self.factory.catalog()
