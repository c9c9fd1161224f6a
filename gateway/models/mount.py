"""
挂载配置模型

挂载配置以文档形式存放在 mounts 表中，mount_path 为主键
"""
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from drivekit.providers.factory import ProviderKind

# 挂载配置所在的逻辑表
MOUNT_TABLE = "mounts"


def normalize_mount_path(path: str) -> str:
    """挂载路径以 / 开头、不以 / 结尾，根目录为 /"""
    parts = [part for part in (path or "").replace("\\", "/").split("/") if part]
    return "/" + "/".join(parts)


class MountConfig(BaseModel):
    """挂载点配置"""

    mount_path: str = Field(..., description="挂载路径（唯一）")
    mount_type: ProviderKind = Field(..., description="网盘类型")
    is_enabled: bool = Field(default=True, description="是否启用")

    # 驱动配置和会话，结构由 mount_type 决定
    drive_conf: Dict[str, Any] = Field(default_factory=dict, description="驱动配置")
    drive_save: Dict[str, Any] = Field(default_factory=dict, description="驱动会话")

    cache_time: int = Field(default=0, ge=0, description="缓存时间(秒)")
    order_number: int = Field(default=0, description="排序")
    proxy_mode: bool = Field(default=False, description="是否代理下载")
    proxy_url: str = Field(default="", description="代理地址")
    remarks: str = Field(default="", description="备注")

    # 最近一次操作结果
    drive_logs: str = Field(default="", description="驱动日志")

    # 每次写入递增
    version: int = Field(default=0, ge=0, description="版本号")

    @field_validator("mount_path")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_mount_path(value)

    def keys(self) -> Dict[str, str]:
        return {"mount_path": self.mount_path}

    def public_dict(self) -> Dict[str, Any]:
        """对外展示用，不含会话令牌"""
        data = self.model_dump(mode="json")
        data.pop("drive_save", None)
        return data
