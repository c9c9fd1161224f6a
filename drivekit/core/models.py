"""
通用数据模型

定义跨网盘的统一数据结构和结果信封
"""

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class FileType(IntEnum):
    """文件类型枚举"""
    FILE = 0
    DIR = 1


class Action(IntEnum):
    """文件任务动作"""
    CREATE = 0
    DELETE = 1
    UPLOAD = 2
    MOVETO = 3
    COPYTO = 4


class Status(IntEnum):
    """文件任务状态"""
    SUCCESSFUL = 0       # 成功处理提交事务
    PROCESSING = 1       # 正在处理提交事务
    NETWORKING_ERR = 2   # 网络原因失败
    PERMISSION_ERR = 3   # 权限原因失败
    FILESYSTEM_ERR = 4   # 文件原因失败
    UNDETECTED_ERR = 9   # 未知原因失败


def to_jsonable(value: Any) -> Any:
    """把数据类、pydantic 模型、枚举递归转换为可 JSON 序列化的结构"""
    if value is None or isinstance(value, (str, int, float, bool)) and not isinstance(value, Enum):
        return value
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if is_dataclass(value):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return str(value)


@dataclass
class FileInfo:
    """统一文件项模型"""
    # 核心字段
    path: str                            # 网盘内完整路径
    name: str                            # 文件名
    size: int                            # 文件大小（字节）
    type: FileType                       # 文件类型

    # 可选字段
    uuid: Optional[str] = None           # 网盘内部标识
    hash: Optional[str] = None           # 内容哈希
    hash_type: Optional[str] = None      # 哈希算法（md5/sha1）
    modified_at: Optional[float] = None  # 修改时间（Unix 时间戳）
    created_at: Optional[float] = None   # 创建时间

    # 扩展字段（下载标识等）
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        """是否是文件夹"""
        return self.type == FileType.DIR

    def to_dict(self) -> Dict[str, Any]:
        data = to_jsonable(self)
        data.pop("extra", None)
        return data


@dataclass
class PathInfo:
    """目录列表"""
    path: str
    files: List[FileInfo] = field(default_factory=list)
    page_num: int = 1
    page_size: int = 0

    def __post_init__(self):
        if not self.page_size:
            self.page_size = len(self.files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "page_num": self.page_num,
            "page_size": self.page_size,
            "files": [item.to_dict() for item in self.files],
        }


@dataclass
class FileTask:
    """文件任务结果"""
    action: Action
    status: Status
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (Status.SUCCESSFUL, Status.PROCESSING)


@dataclass
class FileLink:
    """下载链接，部分网盘的直链需要附带请求头"""
    direct: str
    header: Dict[str, str] = field(default_factory=dict)
    expires_at: Optional[float] = None


@dataclass
class Result(Generic[T]):
    """统一结果信封 {flag, text, data}"""
    flag: bool
    text: str = ""
    data: Optional[T] = None

    @classmethod
    def ok(cls, text: str = "Success", data: Optional[T] = None) -> "Result[T]":
        return cls(True, text, data)

    @classmethod
    def fail(cls, text: str, data: Optional[T] = None) -> "Result[T]":
        return cls(False, text, data)

    def to_dict(self) -> Dict[str, Any]:
        result = {"flag": self.flag, "text": self.text}
        if self.data is not None:
            data = self.data
            result["data"] = data.to_dict() if hasattr(data, "to_dict") else to_jsonable(data)
        return result


@dataclass
class DriveSession(Generic[T]):
    """驱动会话状态

    init()/load() 显式返回会话和是否变更，注册表据此决定是否回写 drive_save
    """
    session: T
    dirty: bool = False
