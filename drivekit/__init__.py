"""
drivekit - 多网盘统一驱动库

统一的驱动契约 + 天翼云盘 / 115 / Google Drive 驱动实现
"""

__version__ = "1.0.0"

from .core import (
    Action,
    CloudDriver,
    CloudStorageError,
    ConfigField,
    DriveSession,
    FileInfo,
    FileLink,
    FileTask,
    FileType,
    PathInfo,
    Result,
    Status,
)
from .providers import BaseDriver, DriverFactory, ProviderKind, driver_factory

__all__ = [
    "Action",
    "CloudDriver",
    "CloudStorageError",
    "ConfigField",
    "DriveSession",
    "FileInfo",
    "FileLink",
    "FileTask",
    "FileType",
    "PathInfo",
    "Result",
    "Status",
    "BaseDriver",
    "DriverFactory",
    "ProviderKind",
    "driver_factory",
]
