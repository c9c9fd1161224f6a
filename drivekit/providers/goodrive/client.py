"""
Google Drive API 客户端

封装 Drive v3 REST 调用，不涉及令牌刷新
"""
import json
import logging
import uuid
from typing import Dict, List, Optional

import httpx

from ...core.exceptions import ProtocolError, TransferError
from ...core.http import TRANSFER_TIMEOUT, parse_json, send
from .config import ConfigGoodrive, default_config

logger = logging.getLogger(__name__)


class ClientGoodrive:
    """Google Drive API 客户端（纯 API 调用层）"""

    def __init__(self, client: httpx.AsyncClient, access_token: str, config: ConfigGoodrive = None):
        self.client = client
        self.access_token = access_token
        self.config = config or default_config

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def request(self, method: str, path: str, **kwargs) -> Optional[Dict]:
        """发送 API 请求，返回 JSON（204 时返回 None）"""
        params = {"supportsAllDrives": "true", **kwargs.pop("params", {})}
        response = await send(
            self.client, method, f"{self.config.API_URL}{path}",
            params=params, headers=self.headers, **kwargs
        )
        if response.status_code == 204 or not response.content:
            return None
        return parse_json(response)

    # ==================== 文件列表 API ====================

    async def list_files(self, folder_id: str) -> List[Dict]:
        """获取目录下的所有文件（自动分页）"""
        items: List[Dict] = []
        page_token = None
        while True:
            params = {
                "q": f"'{folder_id}' in parents and trashed = false",
                "fields": f"nextPageToken,files({self.config.FILE_FIELDS})",
                "pageSize": self.config.PAGE_SIZE,
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token
            data = await self.request("GET", "/files", params=params) or {}
            items.extend(data.get("files") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    def download_url(self, file_id: str) -> str:
        return (
            f"{self.config.API_URL}/files/{file_id}"
            "?includeItemsFromAllDrives=true&supportsAllDrives=true&alt=media&acknowledgeAbuse=true"
        )

    # ==================== 文件操作 API ====================

    async def copy(self, file_id: str, parent_id: str) -> Dict:
        return await self.request(
            "POST", f"/files/{file_id}/copy",
            params={"fields": self.config.FILE_FIELDS},
            json={"parents": [parent_id]},
        )

    async def move(self, file_id: str, parent_id: str, old_parents: List[str]) -> Dict:
        params = {"addParents": parent_id, "fields": self.config.FILE_FIELDS}
        if old_parents:
            params["removeParents"] = ",".join(old_parents)
        return await self.request("PATCH", f"/files/{file_id}", params=params, json={})

    async def delete(self, file_id: str):
        await self.request("DELETE", f"/files/{file_id}")

    async def create_folder(self, parent_id: str, name: str) -> Dict:
        return await self.request(
            "POST", "/files",
            params={"fields": self.config.FILE_FIELDS},
            json={"name": name, "mimeType": self.config.FOLDER_MIME_TYPE, "parents": [parent_id]},
        )

    # ==================== 上传 API ====================

    async def upload_multipart(self, parent_id: str, name: str, content: bytes) -> Dict:
        """multipart/related 单次上传"""
        boundary = uuid.uuid4().hex
        metadata = json.dumps({"name": name, "parents": [parent_id]})
        body = b"".join([
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            f"\r\n--{boundary}\r\n".encode(),
            b"Content-Type: application/octet-stream\r\n\r\n",
            content,
            f"\r\n--{boundary}--".encode(),
        ])
        response = await send(
            self.client, "POST", self.config.UPLOAD_URL,
            params={"uploadType": "multipart", "supportsAllDrives": "true", "fields": self.config.FILE_FIELDS},
            headers={**self.headers, "Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
            timeout=TRANSFER_TIMEOUT,
        )
        return parse_json(response)

    async def upload_resumable(self, parent_id: str, name: str, content: bytes) -> Dict:
        """可恢复上传：先申请会话地址，再按块 PUT"""
        response = await send(
            self.client, "POST", self.config.UPLOAD_URL,
            params={"uploadType": "resumable", "supportsAllDrives": "true", "fields": self.config.FILE_FIELDS},
            headers={
                **self.headers,
                "X-Upload-Content-Type": "application/octet-stream",
                "X-Upload-Content-Length": str(len(content)),
            },
            json={"name": name, "parents": [parent_id]},
        )
        session_url = response.headers.get("Location")
        if not session_url:
            raise ProtocolError("Resumable upload session URL missing")

        total = len(content)
        chunk_size = self.config.RESUMABLE_CHUNK_SIZE
        offset = 0
        while offset < total:
            end = min(offset + chunk_size, total)
            response = await send(
                self.client, "PUT", session_url,
                headers={"Content-Range": f"bytes {offset}-{end - 1}/{total}"},
                content=content[offset:end],
                timeout=TRANSFER_TIMEOUT,
                follow_redirects=False,
            )
            if response.status_code == 308:
                # Range: bytes=0-N 表示服务端已收到的字节
                received = response.headers.get("Range")
                next_offset = int(received.rsplit("-", 1)[1]) + 1 if received else 0
                if next_offset <= offset:
                    raise TransferError(f"Upload of {name} stalled at byte {offset}")
                offset = next_offset
                continue
            return parse_json(response)
        raise TransferError(f"Resumable upload of {name} ended without completion")
