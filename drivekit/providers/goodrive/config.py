"""
Google Drive 特定配置
"""
import time
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


@dataclass
class ConfigGoodrive:
    """Google Drive API 端点和常量"""

    # API 端点
    TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    API_URL: str = "https://www.googleapis.com/drive/v3"
    UPLOAD_URL: str = "https://www.googleapis.com/upload/drive/v3/files"
    ONLINE_API_URL: str = "https://api.oplist.org/googleui/renewapi"

    FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"
    FILE_FIELDS: str = (
        "id,name,mimeType,size,parents,modifiedTime,createdTime,"
        "md5Checksum,sha1Checksum,sha256Checksum"
    )

    # 分页/上传
    PAGE_SIZE: int = 1000
    RESUMABLE_THRESHOLD: int = 5 * 1024 * 1024
    RESUMABLE_CHUNK_SIZE: int = 8 * 1024 * 1024   # 必须是 256KB 的整数倍

    # 访问令牌提前刷新时间（秒）
    EXPIRY_BUFFER: int = 300


default_config = ConfigGoodrive()


class GoodriveConf(BaseModel):
    """Google Drive 挂载配置（drive_conf）"""
    refresh_token: str = Field(min_length=1)
    client_id: str = ""
    client_secret: str = ""
    use_online_api: bool = False
    url_online_api: str = ""
    root_folder_id: str = "root"


class GoodriveSave(BaseModel):
    """Google Drive 会话（drive_save）"""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None
    token_type: str = "Bearer"

    def is_expired(self, buffer_seconds: int = default_config.EXPIRY_BUFFER) -> bool:
        """访问令牌缺失、已过期或即将过期"""
        if not self.access_token:
            return True
        if self.expires_at is None:
            return False
        return time.time() >= (self.expires_at - buffer_seconds)
