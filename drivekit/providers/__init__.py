"""
Providers 包

导出驱动工厂和基类，导入各网盘子包完成注册
"""

from .factory import DriverFactory, ProviderKind, driver_factory
from .base import BaseDriver, normalize_path
from . import cloud189, cloud115, goodrive

__all__ = [
    "DriverFactory",
    "ProviderKind",
    "driver_factory",
    "BaseDriver",
    "normalize_path",
]
