"""
天翼云盘驱动

导出 Provider189 并自动注册到工厂
"""
from .provider import Provider189
from .auth import Auth189, parse_session_xml, rsa_encrypt
from .client import Client189
from .config import Cloud189Conf, Cloud189Save, Config189, default_config
from ..factory import ProviderKind, driver_factory

# 自动注册到工厂
driver_factory.register(ProviderKind.CLOUD189, Provider189)

__all__ = [
    "Provider189",
    "Auth189",
    "Client189",
    "Cloud189Conf",
    "Cloud189Save",
    "Config189",
    "parse_session_xml",
    "rsa_encrypt",
    "default_config",
]
