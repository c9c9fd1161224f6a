"""
天翼云盘特定配置
"""
import time
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


@dataclass
class Config189:
    """天翼云盘配置"""

    # 站点
    WEB_URL: str = "https://cloud.189.cn"
    AUTH_URL: str = "https://open.e.189.cn"
    API_URL: str = "https://api.cloud.189.cn"

    # 客户端标识
    APP_ID: str = "8025431004"
    CLIENT_TYPE: str = "10020"
    ACCOUNT_TYPE: str = "02"
    RETURN_URL: str = "https://m.cloud.189.cn/zhuanti/2020/loginErrorPc/index.html"
    PC_CLIENT_TYPE: str = "TELEPC"
    VERSION: str = "6.2"
    CHANNEL_ID: str = "web_cloud.189.cn"

    # 会话有效期（秒），超过后用 accessToken 重新换取会话
    SESSION_LIFETIME: int = 6 * 3600

    # 分页配置
    PAGE_SIZE: int = 1000


default_config = Config189()


class Cloud189Conf(BaseModel):
    """天翼云盘挂载配置（drive_conf）"""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    validate_code: str = ""
    root_folder_id: str = "-11"
    order_by: str = "filename"
    order_direction: str = "asc"


class Cloud189Save(BaseModel):
    """天翼云盘会话（drive_save）"""
    session_key: Optional[str] = None
    session_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    login_name: Optional[str] = None
    created_at: Optional[float] = None

    def is_expired(self, lifetime: int = default_config.SESSION_LIFETIME) -> bool:
        if not self.session_key or not self.session_secret:
            return True
        if self.created_at is None:
            return False
        return time.time() >= self.created_at + lifetime
