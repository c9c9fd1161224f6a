"""
网盘驱动接口

定义每个网盘驱动都必须实现的统一能力契约
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel

from .models import DriveSession, FileInfo, FileLink, FileTask, FileType, PathInfo, Result


@dataclass
class ConfigField:
    """驱动配置项描述（仅元数据，用于生成配置表单）"""
    key: str
    label: str
    type: str = "text"               # text / password / textarea / boolean
    required: bool = False
    default: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.default is not None:
            data["default"] = self.default
        return data


class CloudDriver(ABC):
    """网盘驱动接口

    所有操作都以网盘内的相对路径寻址，失败以结果信封返回，不向外抛出异常
    """

    # 驱动元数据，由子类声明
    kind: ClassVar[str]
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    fields: ClassVar[List[ConfigField]] = []

    # drive_conf / drive_save 的类型
    conf_model: ClassVar[Type[BaseModel]]
    save_model: ClassVar[Type[BaseModel]]

    def __init__(self, mount_path: str, config: BaseModel, saving: Optional[BaseModel] = None):
        """
        Args:
            mount_path: 挂载路径
            config: 已校验的驱动配置（drive_conf）
            saving: 已校验的会话状态（drive_save），首次挂载时为空
        """
        self.mount_path = mount_path
        self.config = config
        self.saving = saving if saving is not None else self.save_model()

    # ==================== 会话 ====================

    @abstractmethod
    async def init(self) -> Result[DriveSession]:
        """首次登录，建立全新会话

        Returns:
            Result[DriveSession]: 成功时 data 为新会话（dirty=True）
        """

    @abstractmethod
    async def load(self) -> Result[DriveSession]:
        """恢复已保存的会话，过期或即将过期时自动刷新

        Returns:
            Result[DriveSession]: 会话发生变化时 dirty=True
        """

    # ==================== 文件操作 ====================

    @abstractmethod
    async def list(self, path: str) -> Result[PathInfo]:
        """列出目录内容

        Args:
            path: 网盘内目录路径
        """

    @abstractmethod
    async def download_link(self, path: str) -> Result[List[FileLink]]:
        """获取文件直链及其所需请求头

        Args:
            path: 网盘内文件路径
        """

    @abstractmethod
    async def copy(self, src: str, dest: str) -> FileTask:
        """服务端复制

        Args:
            src: 源路径
            dest: 目标目录路径
        """

    @abstractmethod
    async def move(self, src: str, dest: str) -> FileTask:
        """服务端移动

        Args:
            src: 源路径
            dest: 目标目录路径
        """

    @abstractmethod
    async def delete(self, path: str) -> FileTask:
        """删除文件或目录"""

    @abstractmethod
    async def create(
        self,
        parent: str,
        name: str,
        type: FileType,
        content: Optional[bytes] = None
    ) -> Result[FileInfo]:
        """创建目录或上传文件

        Args:
            parent: 父目录路径
            name: 名称
            type: FileType.DIR 创建目录，FileType.FILE 上传内容
            content: 文件内容

        Returns:
            Result: 上传时 text 会注明是否秒传
        """
