"""
核心模块：驱动契约、通用模型和异常
"""

from .driver import CloudDriver, ConfigField
from .exceptions import (
    AuthenticationError,
    CaptchaRequiredError,
    CloudStorageError,
    ConfigurationError,
    NetworkError,
    NoMountFoundError,
    PathNotFoundError,
    PermissionDeniedError,
    ProtocolError,
    ProviderNotSupportedError,
    ResolutionError,
    TokenExpiredError,
    TransferError,
)
from .models import (
    Action,
    DriveSession,
    FileInfo,
    FileLink,
    FileTask,
    FileType,
    PathInfo,
    Result,
    Status,
)
