"""
115 上传使用的阿里云 OSS 传输

小文件单次 PUT，大文件分块上传；请求使用临时凭证做 OSS V1 签名
"""
import asyncio
import base64
import hashlib
import hmac
import json
import logging
import re
from email.utils import formatdate
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ...core.exceptions import CloudStorageError, ProtocolError, TransferError
from ...core.http import TRANSFER_TIMEOUT, send
from .config import calculate_part_size

logger = logging.getLogger(__name__)


def encode_callback(callback: Any) -> Dict[str, str]:
    """构造 x-oss-callback 请求头

    115 返回 {"callback": ..., "callback_var": ...} 时分别编码，否则整体 JSON 编码
    """
    def b64(value: Any) -> str:
        text = value if isinstance(value, str) else json.dumps(value)
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    if isinstance(callback, dict) and "callback" in callback:
        headers = {"x-oss-callback": b64(callback["callback"])}
        if callback.get("callback_var"):
            headers["x-oss-callback-var"] = b64(callback["callback_var"])
        return headers
    return {"x-oss-callback": b64(callback or {})}


class OssUploader:
    """OSS 对象上传"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: Dict[str, Any],
        bucket: str,
        object_key: str,
        concurrency: int = 1
    ):
        self.client = client
        self.access_key_id = token["AccessKeyId"]
        self.access_key_secret = token.get("AccessKeySecret", "")
        self.security_token = token.get("SecurityToken", "")
        endpoint = str(token.get("endpoint") or "oss-cn-shenzhen.aliyuncs.com")
        self.host = re.sub(r"^https?://", "", endpoint).rstrip("/")
        self.bucket = bucket
        self.object_key = object_key.lstrip("/")
        self.concurrency = max(1, concurrency)

    @property
    def url(self) -> str:
        return f"https://{self.bucket}.{self.host}/{self.object_key}"

    def sign(
        self,
        method: str,
        headers: Dict[str, str],
        sub_resource: str = ""
    ) -> Dict[str, str]:
        """OSS V1 签名，返回补全 Date/Authorization 后的请求头"""
        headers = dict(headers)
        headers["Date"] = formatdate(usegmt=True)
        if self.security_token:
            headers["x-oss-security-token"] = self.security_token

        oss_headers = sorted(
            (k.lower(), v) for k, v in headers.items() if k.lower().startswith("x-oss-")
        )
        canonical_headers = "".join(f"{k}:{v}\n" for k, v in oss_headers)
        resource = f"/{self.bucket}/{self.object_key}{sub_resource}"
        string_to_sign = "\n".join([
            method,
            headers.get("Content-MD5", ""),
            headers.get("Content-Type", ""),
            headers["Date"],
            canonical_headers + resource,
        ])
        digest = hmac.new(
            self.access_key_secret.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        headers["Authorization"] = f"OSS {self.access_key_id}:{base64.b64encode(digest).decode()}"
        return headers

    async def put_object(self, content: bytes, callback: Any) -> httpx.Response:
        """小文件单次上传"""
        headers = self.sign("PUT", {
            "Content-Type": "application/octet-stream",
            **encode_callback(callback),
        })
        return await send(
            self.client, "PUT", self.url,
            headers=headers, content=content, timeout=TRANSFER_TIMEOUT
        )

    async def multipart_upload(self, content: bytes, callback: Any) -> httpx.Response:
        """分块上传：初始化 → 并发受限的分块 PUT → 完成（携带回调）"""
        upload_id = await self._initiate()
        part_size = calculate_part_size(len(content))
        ranges = [
            (number, offset, min(offset + part_size, len(content)))
            for number, offset in enumerate(range(0, len(content), part_size), start=1)
        ]
        logger.info(f"OSS multipart upload {self.object_key}: {len(ranges)} parts, id {upload_id}")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def upload(part: Tuple[int, int, int]) -> Tuple[int, str]:
            number, start, end = part
            async with semaphore:
                return number, await self._upload_part(upload_id, number, content[start:end])

        tasks = [asyncio.ensure_future(upload(part)) for part in ranges]
        try:
            parts = await asyncio.gather(*tasks)
        except Exception as e:
            # 其余分块仍在进行，取消并等待结束后再放弃整个上传
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self._abort(upload_id)
            if isinstance(e, TransferError):
                raise
            raise TransferError(f"Multipart upload of {self.object_key} failed: {e}") from e
        return await self._complete(upload_id, sorted(parts), callback)

    async def _abort(self, upload_id: str):
        sub_resource = f"?uploadId={upload_id}"
        headers = self.sign("DELETE", {}, sub_resource)
        try:
            await send(self.client, "DELETE", f"{self.url}{sub_resource}", headers=headers)
            logger.info(f"OSS multipart upload {upload_id} aborted")
        except CloudStorageError as e:
            logger.warning(f"Failed to abort OSS multipart upload {upload_id}: {e}")

    async def _initiate(self) -> str:
        headers = self.sign("POST", {"Content-Type": "application/octet-stream"}, "?uploads")
        response = await send(self.client, "POST", f"{self.url}?uploads", headers=headers)
        match = re.search(r"<UploadId>(.*?)</UploadId>", response.text)
        if not match:
            raise ProtocolError("Failed to get upload ID")
        return match.group(1)

    async def _upload_part(self, upload_id: str, number: int, chunk: bytes) -> str:
        sub_resource = f"?partNumber={number}&uploadId={upload_id}"
        headers = self.sign("PUT", {"Content-Type": "application/octet-stream"}, sub_resource)
        response = await send(
            self.client, "PUT", f"{self.url}{sub_resource}",
            headers=headers, content=chunk, timeout=TRANSFER_TIMEOUT
        )
        etag = response.headers.get("ETag")
        if not etag:
            raise TransferError(f"Part {number} returned no ETag")
        return etag

    async def _complete(
        self,
        upload_id: str,
        parts: List[Tuple[int, str]],
        callback: Optional[Any]
    ) -> httpx.Response:
        body = "<CompleteMultipartUpload>" + "".join(
            f"<Part><PartNumber>{number}</PartNumber><ETag>{etag}</ETag></Part>"
            for number, etag in parts
        ) + "</CompleteMultipartUpload>"
        sub_resource = f"?uploadId={upload_id}"
        headers = self.sign("POST", {
            "Content-Type": "application/xml",
            **encode_callback(callback),
        }, sub_resource)
        return await send(
            self.client, "POST", f"{self.url}{sub_resource}",
            headers=headers, content=body.encode("utf-8"), timeout=TRANSFER_TIMEOUT
        )
