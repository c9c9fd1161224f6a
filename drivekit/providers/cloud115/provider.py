"""
115 网盘驱动实现

开放平台令牌认证，上传前先按内容哈希尝试秒传
"""
import hashlib
import logging
from typing import List, Optional

from ...core.driver import ConfigField
from ...core.exceptions import AuthenticationError, CloudStorageError, ProtocolError
from ...core.models import DriveSession, FileInfo, FileLink, FileType, Result
from ..base import BaseDriver
from ..factory import ProviderKind
from .auth import Auth115
from .client import Client115
from .config import Cloud115Conf, Cloud115Save, default_config
from .models import convert_to_file_infos
from .oss import OssUploader

logger = logging.getLogger(__name__)

# upload/init 返回的状态
UPLOAD_STATUS_DONE = 2
UPLOAD_STATUS_SIGN_CHECK = (6, 7, 8)


def sha1_hex(data: bytes) -> str:
    """SHA1 大写十六进制"""
    return hashlib.sha1(data).hexdigest().upper()


class Provider115(BaseDriver):
    """115 网盘驱动"""

    kind = ProviderKind.CLOUD115
    name = "115网盘"
    description = "115 网盘（开放平台令牌，支持秒传）"
    fields = [
        ConfigField("access_token", "访问令牌", "textarea", required=True),
        ConfigField("refresh_token", "刷新令牌", "textarea", required=True),
        ConfigField("root_folder_id", "根目录ID", "text", default="0"),
        ConfigField("order_by", "排序方式", "text", default="file_name"),
        ConfigField("order_direction", "排序方向", "text", default="asc"),
        ConfigField("limit_rate", "每秒请求数", "text", default=2),
    ]
    conf_model = Cloud115Conf
    save_model = Cloud115Save

    config: Cloud115Conf
    saving: Cloud115Save

    @property
    def root_id(self) -> str:
        return self.config.root_folder_id or "0"

    _api: Optional[Client115] = None

    @property
    def api(self) -> Client115:
        token = self.saving.access_token or self.config.access_token
        if not token:
            raise AuthenticationError("Not logged in, please reload the mount")
        # 复用同一个客户端以共享限速器，令牌变化时重建
        if self._api is None or self._api.access_token != token:
            self._api = Client115(self.client, token, default_config, rps=self.config.limit_rate)
        return self._api

    # ==================== 会话 ====================

    async def init(self) -> Result[DriveSession]:
        """用配置中的令牌验证身份并获取用户信息"""
        try:
            self.saving = Cloud115Save(
                access_token=self.config.access_token,
                refresh_token=self.config.refresh_token,
            )
            try:
                user = await self.api.get_user_info()
            except AuthenticationError:
                # 配置中的 access_token 已失效，用 refresh_token 续期后重试
                self.saving = await Auth115(self.client).refresh(self.config.refresh_token, self.saving)
                user = await self.api.get_user_info()
            self.saving = self.saving.model_copy(update={
                "user_id": str(user.get("user_id") or ""),
                "user_name": user.get("user_name") or "",
            })
            logger.info(f"115 {self.mount_path} logged in as {self.saving.user_name}")
            return Result.ok("Login Success", DriveSession(self.saving, dirty=True))
        except CloudStorageError as e:
            logger.error(f"115 {self.mount_path} login failed: {e}")
            return Result.fail(f"Login Failed: {e}")
        except Exception as e:
            logger.exception(f"115 {self.mount_path} login failed unexpectedly")
            return Result.fail(f"Login Failed: {str(e) or e.__class__.__name__}")

    async def load(self) -> Result[DriveSession]:
        if not self.saving.access_token:
            return await self.init()
        if not self.saving.is_expired():
            return Result.ok("Session Loaded", DriveSession(self.saving, dirty=False))
        try:
            refresh_token = self.saving.refresh_token or self.config.refresh_token
            self.saving = await Auth115(self.client).refresh(refresh_token, self.saving)
            logger.info(f"115 {self.mount_path} access token refreshed")
            return Result.ok("Session Refreshed", DriveSession(self.saving, dirty=True))
        except CloudStorageError as e:
            logger.error(f"115 {self.mount_path} token refresh failed: {e}")
            return Result.fail(f"Refresh Failed: {e}")
        except Exception as e:
            logger.exception(f"115 {self.mount_path} token refresh failed unexpectedly")
            return Result.fail(f"Refresh Failed: {str(e) or e.__class__.__name__}")

    # ==================== 网盘原语 ====================

    async def list_children(self, folder: FileInfo) -> List[FileInfo]:
        items = await self.api.list_files(
            folder.uuid,
            order_by=self.config.order_by,
            asc=self.config.order_direction != "desc",
        )
        return convert_to_file_infos(items, folder.path)

    async def fetch_links(self, node: FileInfo) -> List[FileLink]:
        pick_code = node.extra.get("pick_code")
        if not pick_code:
            raise ProtocolError(f"File {node.path} has no pick_code")
        url = await self.api.get_download_url(pick_code)
        return [FileLink(direct=url, header={"User-Agent": default_config.USER_AGENT})]

    async def copy_node(self, node: FileInfo, dest: FileInfo):
        await self.api.copy(node.uuid, dest.uuid)

    async def move_node(self, node: FileInfo, dest: FileInfo):
        await self.api.move(node.uuid, dest.uuid)

    async def delete_node(self, node: FileInfo):
        await self.api.delete(node.uuid, node.extra.get("parent_id") or None)

    async def make_dir(self, parent: FileInfo, name: str) -> FileInfo:
        data = await self.api.create_folder(parent.uuid, name)
        return FileInfo(
            path=f"{parent.path.rstrip('/')}/{name}",
            name=data.get("file_name") or name,
            size=0,
            type=FileType.DIR,
            uuid=str(data.get("file_id") or ""),
        )

    # ==================== 上传 ====================

    async def upload_file(self, parent: FileInfo, name: str, content: bytes) -> str:
        """秒传优先，失败后按大小选择单次上传或分块上传"""
        api = self.api
        file_sha1 = sha1_hex(content)
        pre_sha1 = sha1_hex(content[:default_config.PRE_HASH_SIZE])

        init = await api.upload_init(parent.uuid, name, len(content), file_sha1, pre_sha1)
        if init.get("status") == UPLOAD_STATUS_DONE:
            logger.info(f"115 rapid upload hit: {name} ({file_sha1})")
            return "Upload Completed (rapid)"

        if init.get("status") in UPLOAD_STATUS_SIGN_CHECK and init.get("sign_check"):
            # 二次校验：对指定字节区间（含两端）计算哈希后重新提交
            start, end = (int(x) for x in str(init["sign_check"]).split("-"))
            sign_val = sha1_hex(content[start:end + 1])
            init = await api.upload_init(
                parent.uuid, name, len(content), file_sha1, pre_sha1,
                sign_key=init.get("sign_key"), sign_val=sign_val
            )
            if init.get("status") == UPLOAD_STATUS_DONE:
                logger.info(f"115 rapid upload hit after sign check: {name}")
                return "Upload Completed (rapid)"

        if not init.get("bucket") or not init.get("object"):
            raise ProtocolError(f"Upload init returned no OSS target: status {init.get('status')}")

        token = await api.get_upload_token()
        uploader = OssUploader(
            self.client, token, init["bucket"], init["object"],
            concurrency=self.upload_concurrency,
        )
        if len(content) <= default_config.SMALL_FILE_THRESHOLD:
            await uploader.put_object(content, init.get("callback"))
        else:
            await uploader.multipart_upload(content, init.get("callback"))
        logger.info(f"115 upload completed: {name} ({len(content)} bytes)")
        return "Upload Completed"
