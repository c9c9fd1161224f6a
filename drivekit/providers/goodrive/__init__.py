"""
Google Drive 驱动

导出 ProviderGoodrive 并自动注册到工厂
"""
from .provider import ProviderGoodrive
from .auth import AuthGoodrive
from .client import ClientGoodrive
from .config import ConfigGoodrive, GoodriveConf, GoodriveSave, default_config
from ..factory import ProviderKind, driver_factory

# 自动注册到工厂
driver_factory.register(ProviderKind.GOODRIVE, ProviderGoodrive)

__all__ = [
    "ProviderGoodrive",
    "AuthGoodrive",
    "ClientGoodrive",
    "ConfigGoodrive",
    "GoodriveConf",
    "GoodriveSave",
    "default_config",
]
