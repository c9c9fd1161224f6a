"""
驱动工厂

按网盘类型（封闭集合）创建驱动实例，并负责 drive_conf / drive_save 的类型校验
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ..core.driver import CloudDriver
from ..core.exceptions import ConfigurationError, ProviderNotSupportedError

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    """支持的网盘类型"""
    CLOUD189 = "cloud189"
    GOODRIVE = "goodrive"
    CLOUD115 = "cloud115"


class DriverFactory:
    """驱动工厂类"""

    def __init__(self):
        self._drivers: Dict[ProviderKind, Type[CloudDriver]] = {}

    def register(self, kind: ProviderKind, driver_class: Type[CloudDriver]):
        """注册驱动

        Args:
            kind: 网盘类型
            driver_class: 驱动类
        """
        self._drivers[ProviderKind(kind)] = driver_class

    def get(self, kind: Any) -> Type[CloudDriver]:
        """获取驱动类

        Raises:
            ProviderNotSupportedError: 不支持的网盘类型
        """
        try:
            driver_class = self._drivers.get(ProviderKind(kind))
        except ValueError:
            driver_class = None
        if driver_class is None:
            raise ProviderNotSupportedError(
                f"Provider type '{kind}' is not supported. "
                f"Available types: {self.get_supported_types()}"
            )
        return driver_class

    def validate(
        self,
        kind: Any,
        conf: Optional[Dict[str, Any]],
        save: Optional[Dict[str, Any]] = None
    ) -> tuple:
        """按网盘类型校验配置和会话

        Returns:
            (conf_model, save_model)

        Raises:
            ConfigurationError: 配置不合法
        """
        driver_class = self.get(kind)
        try:
            config = driver_class.conf_model.model_validate(conf or {})
        except ValidationError as e:
            raise ConfigurationError(format_errors(e)) from e
        try:
            saving = driver_class.save_model.model_validate(save or {})
        except ValidationError as e:
            # 会话损坏时丢弃，下次 reload 会重新登录
            logger.warning(f"Discard invalid drive_save for {kind}: {format_errors(e)}")
            saving = driver_class.save_model()
        return config, saving

    def create(
        self,
        kind: Any,
        mount_path: str,
        conf: Optional[Dict[str, Any]],
        save: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> CloudDriver:
        """创建驱动实例

        Args:
            kind: 网盘类型
            mount_path: 挂载路径
            conf: drive_conf
            save: drive_save
            **kwargs: 传给驱动的额外参数（client、重试次数等）

        Returns:
            CloudDriver: 驱动实例

        Raises:
            ProviderNotSupportedError: 不支持的网盘类型
            ConfigurationError: 配置不合法
        """
        config, saving = self.validate(kind, conf, save)
        return self.get(kind)(mount_path, config, saving, **kwargs)

    def get_supported_types(self) -> List[str]:
        """获取已注册的网盘类型"""
        return [kind.value for kind in self._drivers]

    def catalog(self) -> List[Dict[str, Any]]:
        """可用驱动及其配置项"""
        return [
            {
                "key": kind.value,
                "name": driver_class.name,
                "description": driver_class.description,
                "fields": [item.to_dict() for item in driver_class.fields],
            }
            for kind, driver_class in self._drivers.items()
        ]


def format_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in item['loc']) or 'conf'}: {item['msg']}"
        for item in error.errors()
    )


# 工厂单例
driver_factory = DriverFactory()
