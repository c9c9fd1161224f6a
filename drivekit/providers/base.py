"""
驱动基类

在少量网盘原语之上实现统一契约：路径到 ID 的逐级解析、异常到结果信封的转换
"""
import logging
import posixpath
from abc import abstractmethod
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel

from ..core.driver import CloudDriver
from ..core.exceptions import (
    AuthenticationError,
    CloudStorageError,
    NetworkError,
    PathNotFoundError,
    PermissionDeniedError,
)
from ..core.http import call_idempotent, client_factory
from ..core.models import (
    Action,
    FileInfo,
    FileLink,
    FileTask,
    FileType,
    PathInfo,
    Result,
    Status,
)

logger = logging.getLogger(__name__)


def normalize_path(path: Optional[str]) -> str:
    """规范化网盘内路径：以 / 开头，不以 / 结尾（根目录为 /）"""
    parts = [part for part in (path or "").replace("\\", "/").split("/") if part]
    return "/" + "/".join(parts)


def task_status(error: Exception) -> Status:
    """把异常映射为任务状态"""
    if isinstance(error, NetworkError):
        return Status.NETWORKING_ERR
    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return Status.PERMISSION_ERR
    if isinstance(error, CloudStorageError):
        return Status.FILESYSTEM_ERR
    return Status.UNDETECTED_ERR


class BaseDriver(CloudDriver):
    """驱动基类

    子类只需实现会话方法和以下网盘原语：
    list_children / fetch_links / copy_node / move_node / delete_node / make_dir / upload_file
    """

    def __init__(
        self,
        mount_path: str,
        config: BaseModel,
        saving: Optional[BaseModel] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_attempts: int = 3,
        upload_concurrency: int = 1
    ):
        super().__init__(mount_path, config, saving)
        self._client = client
        self._owns_client = client is None
        self.retry_attempts = retry_attempts
        self.upload_concurrency = max(1, upload_concurrency)
        self._nodes: Dict[str, FileInfo] = {}

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = client_factory()
        return self._client

    async def aclose(self):
        """关闭自行创建的 HTTP 客户端"""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    @property
    @abstractmethod
    def root_id(self) -> str:
        """网盘根目录 ID"""

    # ==================== 网盘原语 ====================

    @abstractmethod
    async def list_children(self, folder: FileInfo) -> List[FileInfo]:
        """列出目录的直接子项，子项的 path 需基于 folder.path 拼接"""

    @abstractmethod
    async def fetch_links(self, node: FileInfo) -> List[FileLink]:
        """获取文件直链"""

    @abstractmethod
    async def copy_node(self, node: FileInfo, dest: FileInfo):
        """把 node 复制到目录 dest"""

    @abstractmethod
    async def move_node(self, node: FileInfo, dest: FileInfo):
        """把 node 移动到目录 dest"""

    @abstractmethod
    async def delete_node(self, node: FileInfo):
        """删除 node"""

    @abstractmethod
    async def make_dir(self, parent: FileInfo, name: str) -> FileInfo:
        """在 parent 下创建目录"""

    @abstractmethod
    async def upload_file(self, parent: FileInfo, name: str, content: bytes) -> str:
        """上传文件内容，返回结果描述"""

    # ==================== 路径解析 ====================

    def root_node(self) -> FileInfo:
        return FileInfo(path="/", name="", size=0, type=FileType.DIR, uuid=self.root_id)

    async def resolve_node(self, path: str) -> FileInfo:
        """逐级列目录匹配名称，把路径解析为网盘节点

        Raises:
            PathNotFoundError: 任意一级不存在
        """
        path = normalize_path(path)
        if path == "/":
            return self.root_node()
        if path in self._nodes:
            return self._nodes[path]

        current = self.root_node()
        for part in path.strip("/").split("/"):
            child_path = posixpath.join(current.path, part)
            cached = self._nodes.get(child_path)
            if cached is None:
                if not current.is_folder:
                    raise PathNotFoundError(f"Not a directory: {current.path}")
                children = await call_idempotent(
                    self.list_children, current, attempts=self.retry_attempts
                )
                for child in children:
                    self._nodes[child.path] = child
                cached = self._nodes.get(child_path)
            if cached is None:
                raise PathNotFoundError(f"Path not found: {child_path}")
            current = cached
        return current

    async def resolve_id(self, path: str) -> str:
        """把路径解析为网盘 ID"""
        return (await self.resolve_node(path)).uuid

    def forget(self, path: Optional[str] = None):
        """使路径缓存失效，写操作后调用"""
        if path is None:
            self._nodes.clear()
            return
        path = normalize_path(path)
        for key in list(self._nodes):
            if key == path or key.startswith(path + "/"):
                del self._nodes[key]

    async def resolve_folder(self, path: str) -> FileInfo:
        node = await self.resolve_node(path)
        if not node.is_folder:
            raise PathNotFoundError(f"Not a directory: {node.path}")
        return node

    # ==================== 契约实现 ====================

    def _fail(self, operation: str, path: str, error: Exception) -> Result:
        if isinstance(error, CloudStorageError):
            logger.error(f"[{self.kind}] {operation} {self.mount_path}{path} failed: {error}")
        else:
            logger.exception(f"[{self.kind}] {operation} {self.mount_path}{path} unexpected error")
        return Result.fail(str(error) or error.__class__.__name__)

    def _task_fail(self, action: Action, path: str, error: Exception) -> FileTask:
        result = self._fail(action.name.lower(), path, error)
        return FileTask(action=action, status=task_status(error), message=result.text)

    async def list(self, path: str) -> Result[PathInfo]:
        try:
            folder = await self.resolve_folder(path)
            children = await call_idempotent(
                self.list_children, folder, attempts=self.retry_attempts
            )
            return Result.ok(data=PathInfo(path=folder.path, files=children))
        except Exception as e:
            return self._fail("list", path, e)

    async def download_link(self, path: str) -> Result[List[FileLink]]:
        try:
            node = await self.resolve_node(path)
            if node.is_folder:
                raise PathNotFoundError(f"Not a file: {node.path}")
            links = await call_idempotent(self.fetch_links, node, attempts=self.retry_attempts)
            return Result.ok(data=links)
        except Exception as e:
            return self._fail("link", path, e)

    async def copy(self, src: str, dest: str) -> FileTask:
        try:
            node = await self.resolve_node(src)
            folder = await self.resolve_folder(dest)
            await self.copy_node(node, folder)
            self.forget(folder.path)
            return FileTask(Action.COPYTO, Status.SUCCESSFUL, "Success")
        except Exception as e:
            return self._task_fail(Action.COPYTO, src, e)

    async def move(self, src: str, dest: str) -> FileTask:
        try:
            node = await self.resolve_node(src)
            folder = await self.resolve_folder(dest)
            if node.path == "/":
                raise PermissionDeniedError("Cannot move root directory")
            await self.move_node(node, folder)
            self.forget(node.path)
            self.forget(folder.path)
            return FileTask(Action.MOVETO, Status.SUCCESSFUL, "Success")
        except Exception as e:
            return self._task_fail(Action.MOVETO, src, e)

    async def delete(self, path: str) -> FileTask:
        try:
            node = await self.resolve_node(path)
            if node.path == "/":
                raise PermissionDeniedError("Cannot delete root directory")
            await self.delete_node(node)
            self.forget(node.path)
            return FileTask(Action.DELETE, Status.SUCCESSFUL, "Success")
        except Exception as e:
            return self._task_fail(Action.DELETE, path, e)

    async def create(
        self,
        parent: str,
        name: str,
        type: FileType,
        content: Optional[bytes] = None
    ) -> Result[FileInfo]:
        name = name.strip("/")
        if not name:
            return Result.fail("Invalid Name")
        try:
            folder = await self.resolve_folder(parent)
            if type == FileType.DIR:
                info = await self.make_dir(folder, name)
                self.forget(folder.path)
                return Result.ok("Folder Created", data=info)
            text = await self.upload_file(folder, name, content or b"")
            self.forget(folder.path)
            return Result.ok(text)
        except Exception as e:
            return self._fail("create", posixpath.join(normalize_path(parent), name), e)
