"""
115 网盘 API 客户端

封装 115 API 调用细节，不涉及认证逻辑
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from ...core.exceptions import AuthenticationError, ProtocolError
from ...core.http import send
from .config import Config115, default_config

logger = logging.getLogger(__name__)


class RateLimiter:
    """API 请求速率限制器"""

    def __init__(self, rps: float):
        self.interval = 1.0 / rps if rps and rps > 0 else 0.0
        self.last_call = 0.0
        self.lock = asyncio.Lock()

    async def acquire(self):
        if not self.interval:
            return
        async with self.lock:
            elapsed = time.monotonic() - self.last_call
            if elapsed < self.interval:
                await asyncio.sleep(self.interval - elapsed)
            self.last_call = time.monotonic()


class Client115:
    """115 网盘 API 客户端（纯 API 调用层）

    不包含认证逻辑，由调用方提供 access_token
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        config: Config115 = None,
        rps: Optional[float] = None
    ):
        self.client = client
        self.access_token = access_token
        self.config = config or default_config
        self._rate_limiter = RateLimiter(self.config.API_RPS_LIMIT if rps is None else rps)

    async def request(
        self,
        url: str,
        method: str = "GET",
        params: Dict = None,
        data: Dict = None
    ) -> Dict:
        """发送 API 请求

        Raises:
            AuthenticationError: 返回登录页面
            ProtocolError: state 为 false 或响应不是 JSON
        """
        await self._rate_limiter.acquire()
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "User-Agent": self.config.USER_AGENT,
            "Referer": self.config.REFERER_DOMAIN,
        }
        if data:
            data = {k: v for k, v in data.items() if v is not None}

        response = await send(self.client, method, url, params=params, data=data, headers=headers)

        try:
            result = response.json()
        except ValueError:
            text = response.text
            if "登录" in text or "login" in text.lower() or "未授权" in text:
                logger.error(f"115 API {url} returned a login page")
                raise AuthenticationError("Authentication failed, please login again")
            raise ProtocolError(f"Non-JSON response from {url}: {text[:200]}")

        if not isinstance(result, dict):
            raise ProtocolError(f"Unexpected response from {url}")
        if result.get("state") is False:
            message = result.get("message") or result.get("error") or "Request failed"
            logger.error(f"115 API error {url}: {message}")
            if result.get("code") in (40140116, 40140119, 40140125, 40140126):
                raise AuthenticationError(message)
            raise ProtocolError(message)
        return result

    # ==================== 用户信息 API ====================

    async def get_user_info(self) -> Dict:
        result = await self.request(self.config.USER_INFO_API_URL)
        data = result.get("data") or {}
        if not isinstance(data, dict):
            raise ProtocolError("User info response has no data object")
        return data

    # ==================== 文件列表 API ====================

    async def list_files(
        self,
        cid: str,
        order_by: str = "file_name",
        asc: bool = True
    ) -> List[Dict]:
        """获取目录下的所有文件（自动分页）"""
        items: List[Dict] = []
        offset = 0
        while True:
            result = await self.request(self.config.FILE_LIST_API_URL, params={
                "cid": cid,
                "limit": self.config.API_FETCH_LIMIT,
                "offset": offset,
                "asc": 1 if asc else 0,
                "o": order_by,
                "show_dir": 1,
            })
            page = result.get("data")
            if not isinstance(page, list) or not page:
                return items
            items.extend(page)
            if len(items) >= int(result.get("count") or 0):
                return items
            offset += len(page)

    # ==================== 下载链接 API ====================

    async def get_download_url(self, pick_code: str) -> str:
        """获取文件下载链接"""
        result = await self.request(
            self.config.DOWNLOAD_API_URL, "POST", data={"pick_code": pick_code}
        )
        payload = result.get("data")
        if isinstance(payload, dict):
            for item in payload.values():
                if isinstance(item, dict) and isinstance(item.get("url"), dict):
                    if item["url"].get("url"):
                        return item["url"]["url"]
        raise ProtocolError(f"Could not extract download URL for pick_code: {pick_code}")

    # ==================== 文件操作 API ====================

    async def create_folder(self, parent_id: str, folder_name: str) -> Dict:
        result = await self.request(
            self.config.ADD_FOLDER_API_URL, "POST",
            data={"pid": parent_id, "file_name": folder_name}
        )
        return result.get("data") or {}

    async def copy(self, file_id: str, to_cid: str):
        await self.request(
            self.config.COPY_API_URL, "POST",
            data={"file_id": file_id, "pid": to_cid, "nodupli": 1}
        )

    async def move(self, file_id: str, to_cid: str):
        await self.request(
            self.config.MOVE_API_URL, "POST",
            data={"file_ids": file_id, "to_cid": to_cid}
        )

    async def delete(self, file_id: str, parent_id: Optional[str] = None):
        await self.request(
            self.config.DELETE_FILE_API_URL, "POST",
            data={"file_ids": file_id, "parent_id": parent_id}
        )

    # ==================== 上传 API ====================

    async def upload_init(
        self,
        target: str,
        file_name: str,
        file_size: int,
        file_sha1: str,
        pre_sha1: str,
        sign_key: Optional[str] = None,
        sign_val: Optional[str] = None
    ) -> Dict[str, Any]:
        """初始化上传，服务端已有相同内容时直接完成（秒传）"""
        result = await self.request(self.config.UPLOAD_INIT_API_URL, "POST", data={
            "file_name": file_name,
            "file_size": file_size,
            "target": f"U_1_{target}",
            "fileid": file_sha1,
            "preid": pre_sha1,
            "sign_key": sign_key,
            "sign_val": sign_val,
        })
        data = result.get("data")
        if not isinstance(data, dict):
            raise ProtocolError("Upload init returned no data")
        return data

    async def get_upload_token(self) -> Dict[str, Any]:
        """获取 OSS 临时凭证"""
        result = await self.request(self.config.UPLOAD_TOKEN_API_URL)
        data = result.get("data")
        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or not data.get("AccessKeyId"):
            raise ProtocolError("Upload token response missing credentials")
        return data
