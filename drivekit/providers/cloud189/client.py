"""
天翼云盘 API 客户端

请求使用 sessionKey/sessionSecret 做 HMAC 签名
"""
import hashlib
import hmac
import logging
import time
import uuid
from email.utils import formatdate
from typing import Any, Dict, List
from urllib.parse import urlparse

import httpx

from ...core.exceptions import AuthenticationError, ProtocolError
from ...core.http import TRANSFER_TIMEOUT, parse_json, send
from .config import Config189, default_config

logger = logging.getLogger(__name__)


def pick(data: Dict, *keys: str, default: Any = None) -> Any:
    """兼容大小写不同的字段名"""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


class Client189:
    """天翼云盘 API 客户端（纯 API 调用层）"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        session_key: str,
        session_secret: str,
        config: Config189 = None
    ):
        self.client = client
        self.session_key = session_key
        self.session_secret = session_secret
        self.config = config or default_config

    def signature_headers(self, method: str, url: str) -> Dict[str, str]:
        date = formatdate(usegmt=True)
        text = (
            f"SessionKey={self.session_key}&Operate={method}"
            f"&RequestURI={urlparse(url).path}&Date={date}"
        )
        signature = hmac.new(
            (self.session_secret or "").encode("utf-8"), text.encode("utf-8"), hashlib.sha1
        ).hexdigest().upper()
        return {
            "Date": date,
            "SessionKey": self.session_key,
            "X-Request-ID": uuid.uuid4().hex,
            "Signature": signature,
            "Accept": "application/json;charset=UTF-8",
        }

    async def request(
        self,
        method: str,
        path: str,
        params: Dict = None,
        data: Dict = None
    ) -> Dict:
        """发送 API 请求

        Raises:
            AuthenticationError: 会话失效
            ProtocolError: res_code 非 0
        """
        url = f"{self.config.API_URL}{path}"
        query = {
            "clientType": self.config.PC_CLIENT_TYPE,
            "version": self.config.VERSION,
            "channelId": self.config.CHANNEL_ID,
            "rand": str(int(time.time() * 1000)),
            **(params or {}),
        }
        response = await send(
            self.client, method, url,
            params=query, data=data, headers=self.signature_headers(method, url)
        )
        result = parse_json(response)
        if not isinstance(result, dict):
            raise ProtocolError(f"Unexpected response from {path}")
        code = pick(result, "res_code", "ResCode", default=0)
        if str(code) != "0":
            message = pick(result, "res_message", "ResMessage", "errorMsg", default=str(code))
            logger.error(f"189 API error {path}: {message}")
            if str(code) in ("InvalidSessionKey", "InvalidAccessToken"):
                raise AuthenticationError(message)
            raise ProtocolError(message)
        return result

    # ==================== 文件列表 API ====================

    async def list_files(self, folder_id: str, order_by: str = "filename", asc: bool = True) -> List[Dict]:
        """获取目录下的所有文件和文件夹（自动分页）"""
        items: List[Dict] = []
        page_num = 1
        while True:
            result = await self.request("GET", "/listFiles.action", params={
                "folderId": folder_id,
                "fileType": "0",
                "mediaAttr": "0",
                "iconOption": "5",
                "pageNum": str(page_num),
                "pageSize": str(self.config.PAGE_SIZE),
                "recursive": "0",
                "orderBy": order_by,
                "descending": "false" if asc else "true",
            })
            listing = pick(result, "fileListAO", "FileListAO", default={})
            folders = pick(listing, "folderList", "FolderList", default=[])
            files = pick(listing, "fileList", "FileList", default=[])
            for folder in folders:
                folder["isFolder"] = True
            items.extend(folders)
            items.extend(files)
            count = int(pick(listing, "count", "Count", default=0))
            if not folders and not files or len(items) >= count:
                return items
            page_num += 1

    # ==================== 下载链接 API ====================

    async def get_download_url(self, file_id: str) -> str:
        result = await self.request("GET", "/getFileDownloadUrl.action", params={"fileId": file_id})
        url = pick(result, "fileDownloadUrl", "FileDownloadUrl")
        if not url:
            raise ProtocolError(f"No download url for file {file_id}")
        return url.replace("&amp;", "&").replace("http://", "https://", 1)

    # ==================== 文件操作 API ====================

    async def copy(self, file_id: str, target_folder_id: str):
        await self.request("POST", "/batchCopyFile.action", data={
            "fileIdList": file_id,
            "targetFolderId": target_folder_id,
        })

    async def move(self, file_id: str, target_folder_id: str):
        await self.request("POST", "/batchMoveFile.action", data={
            "fileIdList": file_id,
            "targetFolderId": target_folder_id,
        })

    async def delete(self, file_id: str):
        await self.request("POST", "/batchDeleteFile.action", data={"fileIdList": file_id})

    async def create_folder(self, parent_id: str, name: str) -> Dict:
        return await self.request("POST", "/createFolder.action", data={
            "parentFolderId": parent_id,
            "folderName": name,
        })

    # ==================== 上传 API ====================

    async def create_upload(self, parent_id: str, name: str, size: int, md5: str) -> Dict:
        """申请上传，fileDataExists=1 时服务端已有相同内容"""
        return await self.request("POST", "/createUploadFile.action", data={
            "parentFolderId": parent_id,
            "baseFileId": "",
            "fileName": name,
            "size": str(size),
            "md5": md5,
            "lastWrite": "",
            "localPath": "",
            "opertype": "1",
            "flag": "1",
            "resumePolicy": "1",
            "isLog": "0",
        })

    async def put_data(self, upload_url: str, upload_file_id: str, content: bytes):
        headers = self.signature_headers("PUT", upload_url)
        headers.update({
            "Content-Type": "application/octet-stream",
            "ResumePolicy": "1",
            "Edrive-UploadFileId": str(upload_file_id),
            "Edrive-UploadFileRange": f"0-{len(content)}",
        })
        await send(self.client, "PUT", upload_url, headers=headers, content=content, timeout=TRANSFER_TIMEOUT)

    async def commit_upload(self, commit_url: str, upload_file_id: str):
        await send(
            self.client, "POST", commit_url,
            data={"uploadFileId": str(upload_file_id), "opertype": "1", "isLog": "0", "ResumePolicy": "1"},
            headers=self.signature_headers("POST", commit_url),
        )
