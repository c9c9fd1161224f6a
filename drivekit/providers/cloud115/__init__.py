"""
115 网盘驱动

导出 Provider115 并自动注册到工厂
"""
from .provider import Provider115
from .auth import Auth115
from .client import Client115
from .config import Cloud115Conf, Cloud115Save, Config115, calculate_part_size, default_config
from .oss import OssUploader
from ..factory import ProviderKind, driver_factory

# 自动注册到工厂
driver_factory.register(ProviderKind.CLOUD115, Provider115)

__all__ = [
    "Provider115",
    "Auth115",
    "Client115",
    "Cloud115Conf",
    "Cloud115Save",
    "Config115",
    "OssUploader",
    "calculate_part_size",
    "default_config",
]
