"""
Google Drive 认证实现

OAuth2 refresh_token 换取 access_token，支持通过在线 API 续期
"""
import logging
import time

import httpx

from ...core.exceptions import AuthenticationError, ProtocolError
from ...core.http import parse_object, parse_seconds, send
from .config import ConfigGoodrive, GoodriveConf, GoodriveSave, default_config

logger = logging.getLogger(__name__)


class AuthGoodrive:
    """Google Drive 令牌刷新"""

    def __init__(self, client: httpx.AsyncClient, conf: GoodriveConf, config: ConfigGoodrive = None):
        self.client = client
        self.conf = conf
        self.config = config or default_config

    async def refresh(self, refresh_token: str) -> GoodriveSave:
        """用 refresh_token 换取新的访问令牌

        Raises:
            AuthenticationError: 刷新失败
        """
        if not refresh_token:
            raise AuthenticationError("refresh_token is required")
        if self.conf.use_online_api:
            return await self._refresh_online(refresh_token)
        if not self.conf.client_id or not self.conf.client_secret:
            raise AuthenticationError("client_id and client_secret are required")

        try:
            response = await send(
                self.client, "POST", self.config.TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self.conf.client_id,
                    "client_secret": self.conf.client_secret,
                },
            )
        except ProtocolError as e:
            logger.error(f"Google token refresh rejected: {e}")
            raise AuthenticationError(f"Token refresh failed: {e}") from e

        data = parse_object(response)
        return self._to_session(data, refresh_token)

    async def _refresh_online(self, refresh_token: str) -> GoodriveSave:
        url = self.conf.url_online_api or self.config.ONLINE_API_URL
        try:
            response = await send(
                self.client, "GET", url,
                params={
                    "refresh_ui": refresh_token,
                    "server_use": "true",
                    "driver_txt": "googleui_go",
                },
            )
        except ProtocolError as e:
            raise AuthenticationError(f"Online token refresh failed: {e}") from e

        data = parse_object(response)
        if data.get("text"):
            raise AuthenticationError(f"Online token refresh failed: {data['text']}")
        return self._to_session(data, refresh_token)

    def _to_session(self, data: dict, refresh_token: str) -> GoodriveSave:
        access_token = data.get("access_token")
        if not access_token:
            raise AuthenticationError(
                f"Token refresh failed: {data.get('error_description') or data.get('error') or data}"
            )
        expires_in = parse_seconds(data.get("expires_in"), 3600)
        return GoodriveSave(
            access_token=access_token,
            # Google 通常不返回新的 refresh_token，沿用旧值
            refresh_token=data.get("refresh_token") or refresh_token,
            expires_at=time.time() + expires_in,
            token_type=data.get("token_type") or "Bearer",
        )
