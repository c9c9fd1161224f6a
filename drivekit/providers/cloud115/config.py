"""
115 网盘特定配置
"""
import time
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

MB = 1024 * 1024
GB = 1024 * MB
TB = 1024 * GB


@dataclass
class Config115:
    """115 网盘配置"""

    # API 端点
    FILE_LIST_API_URL: str = "https://proapi.115.com/open/ufile/files"
    DOWNLOAD_API_URL: str = "https://proapi.115.com/open/ufile/downurl"
    ADD_FOLDER_API_URL: str = "https://proapi.115.com/open/folder/add"
    MOVE_API_URL: str = "https://proapi.115.com/open/ufile/move"
    COPY_API_URL: str = "https://proapi.115.com/open/ufile/copy"
    DELETE_FILE_API_URL: str = "https://proapi.115.com/open/ufile/delete"
    USER_INFO_API_URL: str = "https://proapi.115.com/open/user/info"

    # 上传端点
    UPLOAD_INIT_API_URL: str = "https://proapi.115.com/open/upload/init"
    UPLOAD_TOKEN_API_URL: str = "https://proapi.115.com/open/upload/get_token"

    # 认证端点
    REFRESH_TOKEN_URL: str = "https://passportapi.115.com/open/refreshToken"

    # 网络配置
    USER_AGENT: str = "Infuse/8.3.5433"
    REFERER_DOMAIN: str = "https://proapi.115.com/"
    API_RPS_LIMIT: int = 2

    # 分页配置
    API_FETCH_LIMIT: int = 1150

    # 上传配置
    SMALL_FILE_THRESHOLD: int = 20 * MB
    PRE_HASH_SIZE: int = 128 * 1024

    # 访问令牌提前刷新时间（秒）
    EXPIRY_BUFFER: int = 300


# 默认配置实例
default_config = Config115()


def calculate_part_size(file_size: int) -> int:
    """按文件大小计算分块大小，保证分块数量不超过 OSS 上限"""
    part_size = 20 * MB
    if file_size > part_size:
        if file_size > 1 * TB:
            part_size = 5 * GB
        elif file_size > 768 * GB:
            part_size = int(104.8576 * MB)
        elif file_size > 512 * GB:
            part_size = int(78.6432 * MB)
        elif file_size > 384 * GB:
            part_size = int(52.4288 * MB)
        elif file_size > 256 * GB:
            part_size = int(39.3216 * MB)
        elif file_size > 128 * GB:
            part_size = int(26.2144 * MB)
    return part_size


class Cloud115Conf(BaseModel):
    """115 挂载配置（drive_conf）"""
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    root_folder_id: str = "0"
    order_by: str = "file_name"
    order_direction: str = "asc"
    limit_rate: float = 2


class Cloud115Save(BaseModel):
    """115 会话（drive_save）"""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    def is_expired(self, buffer_seconds: int = default_config.EXPIRY_BUFFER) -> bool:
        if not self.access_token:
            return True
        if self.expires_at is None:
            return False
        return time.time() >= (self.expires_at - buffer_seconds)
