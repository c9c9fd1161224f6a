"""
天翼云盘驱动实现

RSA 密码登录，会话过期后用 accessToken 续期，续期失败时重新登录
"""
import hashlib
import logging
from typing import List

from ...core.driver import ConfigField
from ...core.exceptions import AuthenticationError, CaptchaRequiredError, CloudStorageError, ProtocolError
from ...core.models import DriveSession, FileInfo, FileLink, FileType, Result
from ..base import BaseDriver
from ..factory import ProviderKind
from .auth import Auth189
from .client import Client189, pick
from .config import Cloud189Conf, Cloud189Save, default_config
from .models import convert_to_file_infos

logger = logging.getLogger(__name__)


class Provider189(BaseDriver):
    """天翼云盘驱动"""

    kind = ProviderKind.CLOUD189
    name = "天翼云盘"
    description = "天翼云盘个人云（账号密码登录）"
    fields = [
        ConfigField("username", "用户名", "text", required=True),
        ConfigField("password", "密码", "password", required=True),
        ConfigField("validate_code", "验证码", "text"),
        ConfigField("root_folder_id", "根目录ID", "text", default="-11"),
        ConfigField("order_by", "排序方式", "text", default="filename"),
        ConfigField("order_direction", "排序方向", "text", default="asc"),
    ]
    conf_model = Cloud189Conf
    save_model = Cloud189Save

    config: Cloud189Conf
    saving: Cloud189Save

    @property
    def root_id(self) -> str:
        return self.config.root_folder_id or "-11"

    @property
    def api(self) -> Client189:
        if not self.saving.session_key:
            raise AuthenticationError("Not logged in, please reload the mount")
        return Client189(self.client, self.saving.session_key, self.saving.session_secret, default_config)

    # ==================== 会话 ====================

    async def init(self) -> Result[DriveSession]:
        try:
            self.saving = await Auth189(self.client, self.config).login()
            logger.info(f"189 {self.mount_path} logged in as {self.saving.login_name}")
            return Result.ok("Login Success", DriveSession(self.saving, dirty=True))
        except CaptchaRequiredError as e:
            logger.warning(f"189 {self.mount_path} needs captcha: {e}")
            return Result.fail(f"Captcha Required: {e}")
        except CloudStorageError as e:
            logger.error(f"189 {self.mount_path} login failed: {e}")
            return Result.fail(f"Login Failed: {e}")
        except Exception as e:
            logger.exception(f"189 {self.mount_path} login failed unexpectedly")
            return Result.fail(f"Login Failed: {str(e) or e.__class__.__name__}")

    async def load(self) -> Result[DriveSession]:
        if not self.saving.is_expired():
            return Result.ok("Session Loaded", DriveSession(self.saving, dirty=False))
        if self.saving.access_token:
            try:
                self.saving = await Auth189(self.client, self.config).refresh(self.saving)
                logger.info(f"189 {self.mount_path} session refreshed")
                return Result.ok("Session Refreshed", DriveSession(self.saving, dirty=True))
            except Exception as e:
                logger.warning(f"189 {self.mount_path} session refresh failed, login again: {e!r}")
        return await self.init()

    # ==================== 网盘原语 ====================

    async def list_children(self, folder: FileInfo) -> List[FileInfo]:
        items = await self.api.list_files(
            folder.uuid,
            order_by=self.config.order_by,
            asc=self.config.order_direction != "desc",
        )
        return convert_to_file_infos(items, folder.path)

    async def fetch_links(self, node: FileInfo) -> List[FileLink]:
        url = await self.api.get_download_url(node.uuid)
        return [FileLink(direct=url)]

    async def copy_node(self, node: FileInfo, dest: FileInfo):
        await self.api.copy(node.uuid, dest.uuid)

    async def move_node(self, node: FileInfo, dest: FileInfo):
        await self.api.move(node.uuid, dest.uuid)

    async def delete_node(self, node: FileInfo):
        await self.api.delete(node.uuid)

    async def make_dir(self, parent: FileInfo, name: str) -> FileInfo:
        data = await self.api.create_folder(parent.uuid, name)
        return FileInfo(
            path=f"{parent.path.rstrip('/')}/{name}",
            name=pick(data, "name", "folderName", default=name),
            size=0,
            type=FileType.DIR,
            uuid=str(pick(data, "id", "FolderId", "folderId", default="")),
        )

    async def upload_file(self, parent: FileInfo, name: str, content: bytes) -> str:
        """申请上传，服务端已有相同 MD5 时直接提交"""
        api = self.api
        md5 = hashlib.md5(content).hexdigest().upper()
        upload = await api.create_upload(parent.uuid, name, len(content), md5)
        upload_id = pick(upload, "uploadFileId", "UploadFileId")
        commit_url = pick(upload, "fileCommitUrl", "FileCommitUrl")
        if not upload_id or not commit_url:
            raise ProtocolError("Upload session response missing uploadFileId")

        rapid = str(pick(upload, "fileDataExists", "FileDataExists", default=0)) == "1"
        if not rapid:
            upload_url = pick(upload, "fileUploadUrl", "FileUploadUrl")
            if not upload_url:
                raise ProtocolError("Upload session response missing fileUploadUrl")
            await api.put_data(upload_url, upload_id, content)
        await api.commit_upload(commit_url, upload_id)
        return "Upload Completed (rapid)" if rapid else "Upload Completed"
