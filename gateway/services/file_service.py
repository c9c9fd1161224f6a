"""
文件操作路由

按虚拟路径找到挂载点，去掉挂载前缀后分派到驱动契约方法
"""
import logging
import posixpath
from typing import Dict, List, Optional

from drivekit.core.driver import CloudDriver
from drivekit.core.models import FileInfo, FileTask, FileType, PathInfo, Result

from gateway.services.mount_service import MountService, close_driver
from gateway.services.resolver import (
    Relation,
    ResolveMode,
    classify,
    normalize,
    strip_mount,
)

logger = logging.getLogger(__name__)

NOT_FOUND = "404 NOT FOUND"
INVALID_ACTION = "Invalid Action"
CROSS_MOUNT = "Cross Mount Operation Not Supported"

# 动作别名
ALIASES: Dict[str, str] = {"remove": "delete"}

ACTIONS = ("list", "link", "copy", "move", "create", "delete", "upload")


def to_virtual(mount_path: str, path: str) -> str:
    """网盘内路径加上挂载前缀"""
    return normalize(posixpath.join(normalize(mount_path), path.lstrip("/"))) or "/"


def task_result(task: FileTask) -> Result[FileTask]:
    return Result(task.ok, task.message, task)


class FileService:
    """文件操作路由（无状态）"""

    def __init__(self, mounts: MountService):
        self.mounts = mounts

    async def execute(
        self,
        verb: str,
        source: str,
        target: Optional[str] = None,
        payload: Optional[bytes] = None
    ) -> Result:
        """执行文件操作

        Args:
            verb: list / link / copy / move / create / delete(remove) / upload
            source: 虚拟路径，create / upload 时为父目录
            target: copy / move 的目标目录，create / upload 的名称
            payload: upload 的文件内容
        """
        action = ALIASES.get((verb or "").lower(), (verb or "").lower())
        if action not in ACTIONS:
            return Result.fail(INVALID_ACTION)

        if action == "list":
            return await self._list(source)

        mount = await self.mounts.owner(source)
        if mount is None:
            return Result.fail(NOT_FOUND)

        if action in ("copy", "move"):
            if not target:
                return Result.fail("Target Path Required")
            target_mount = await self.mounts.owner(target)
            if target_mount is None:
                return Result.fail(NOT_FOUND)
            if target_mount.mount_path != mount.mount_path:
                return Result.fail(CROSS_MOUNT)
        elif action in ("create", "upload") and not (target or "").strip("/"):
            return Result.fail("Target Name Required")

        if action == "upload" and payload is None:
            return Result.fail("Upload Payload Required")

        driver = await self.mounts.activate(mount)
        if driver is None:
            return Result.fail("Mount Load Failed")
        try:
            return await self._dispatch(driver, action, strip_mount(mount.mount_path, source), target, payload)
        finally:
            await close_driver(driver)

    async def _dispatch(
        self,
        driver: CloudDriver,
        action: str,
        path: str,
        target: Optional[str],
        payload: Optional[bytes]
    ) -> Result:
        logger.debug(f"{action} {driver.mount_path} {path}")
        if action == "link":
            return await driver.download_link(path)
        if action == "delete":
            return task_result(await driver.delete(path))
        if action == "copy":
            return task_result(await driver.copy(path, strip_mount(driver.mount_path, target)))
        if action == "move":
            return task_result(await driver.move(path, strip_mount(driver.mount_path, target)))
        if action == "create":
            # 名称以 / 结尾表示创建目录
            kind = FileType.DIR if target.endswith("/") else FileType.FILE
            return await driver.create(path, target.strip("/"), kind, payload)
        return await driver.create(path, target.strip("/"), FileType.FILE, payload)

    async def _list(self, source: str) -> Result[PathInfo]:
        """合并列表：拥有者的目录内容加上直接下级挂载形成的虚拟目录"""
        drivers = await self.mounts.resolve(source, ResolveMode.UNION)
        try:
            owner = next(
                (d for d in drivers if classify(d.mount_path, source) != Relation.DESCENDANT),
                None
            )
            children = [d for d in drivers if d is not owner]
            if owner is None and not children:
                return Result.fail(NOT_FOUND)

            files: List[FileInfo] = []
            if owner is not None:
                result = await self._list_owner(source)
                if result.flag:
                    files = result.data.files
                elif not children:
                    return result
                else:
                    # 拥有者的网盘里可能没有这一层目录，下级挂载仍然要能浏览到
                    logger.warning(f"List {source} on {owner.mount_path} failed, showing mounts only: {result.text}")

            names = {item.name for item in files}
            virtual = normalize(source)
            for child in children:
                name = normalize(child.mount_path).rsplit("/", 1)[-1]
                if name in names:
                    continue
                files.append(FileInfo(
                    path=f"{virtual}/{name}",
                    name=name,
                    size=0,
                    type=FileType.DIR,
                    extra={"mount": True},
                ))
            return Result.ok(data=PathInfo(path=virtual or "/", files=files))
        finally:
            for driver in drivers:
                await close_driver(driver)

    async def _list_owner(self, source: str) -> Result[PathInfo]:
        driver = await self.mounts.load(source)
        if driver is None:
            return Result.fail("Mount Load Failed")
        try:
            result = await driver.list(strip_mount(driver.mount_path, source))
        finally:
            await close_driver(driver)
        if result.flag:
            for item in result.data.files:
                item.path = to_virtual(driver.mount_path, item.path)
        return result
