"""
115 网盘认证实现

开放平台 access_token / refresh_token 续期
"""
import logging
import time

import httpx

from ...core.exceptions import AuthenticationError
from ...core.http import parse_json, parse_seconds, send
from .config import Cloud115Save, Config115, default_config

logger = logging.getLogger(__name__)


class Auth115:
    """115 网盘令牌管理"""

    def __init__(self, client: httpx.AsyncClient, config: Config115 = None):
        self.client = client
        self.config = config or default_config

    async def refresh(self, refresh_token: str, saving: Cloud115Save) -> Cloud115Save:
        """刷新访问令牌

        Raises:
            AuthenticationError: 刷新失败
        """
        if not refresh_token:
            raise AuthenticationError("refresh_token is required")

        response = await send(
            self.client, "POST", self.config.REFRESH_TOKEN_URL,
            data={"refresh_token": refresh_token},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        result = parse_json(response)
        data = result.get("data") if isinstance(result, dict) else None
        if not isinstance(data, dict) or not data.get("access_token"):
            message = result.get("message") if isinstance(result, dict) else result
            logger.error(f"115 token refresh failed: {message}")
            raise AuthenticationError(f"Token refresh failed: {message}")

        return saving.model_copy(update={
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token") or refresh_token,
            "expires_at": time.time() + parse_seconds(data.get("expires_in"), 7200),
        })
