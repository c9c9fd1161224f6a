"""
Google Drive 驱动实现

OAuth2 refresh_token 流程：load() 在每次调用前检查访问令牌，临近过期自动刷新
"""
import logging
from typing import List

from ...core.driver import ConfigField
from ...core.exceptions import AuthenticationError, CloudStorageError
from ...core.models import DriveSession, FileInfo, FileLink, Result
from ..base import BaseDriver
from ..factory import ProviderKind
from .auth import AuthGoodrive
from .client import ClientGoodrive
from .config import GoodriveConf, GoodriveSave, default_config
from .models import convert_to_file_info, convert_to_file_infos

logger = logging.getLogger(__name__)


class ProviderGoodrive(BaseDriver):
    """Google Drive 驱动"""

    kind = ProviderKind.GOODRIVE
    name = "Google Drive"
    description = "Google Drive 网盘（OAuth2 刷新令牌）"
    fields = [
        ConfigField("refresh_token", "刷新令牌", "textarea", required=True),
        ConfigField("use_online_api", "使用在线API", "boolean", default=False),
        ConfigField("url_online_api", "在线API地址", "text"),
        ConfigField("client_id", "客户端ID", "text"),
        ConfigField("client_secret", "客户端密钥", "password"),
        ConfigField("root_folder_id", "根目录ID", "text", default="root"),
    ]
    conf_model = GoodriveConf
    save_model = GoodriveSave

    config: GoodriveConf
    saving: GoodriveSave

    @property
    def root_id(self) -> str:
        return self.config.root_folder_id or "root"

    @property
    def api(self) -> ClientGoodrive:
        if not self.saving.access_token:
            raise AuthenticationError("Not logged in, please reload the mount")
        return ClientGoodrive(self.client, self.saving.access_token, default_config)

    # ==================== 会话 ====================

    async def init(self) -> Result[DriveSession]:
        """用配置中的 refresh_token 获取访问令牌"""
        try:
            auth = AuthGoodrive(self.client, self.config)
            self.saving = await auth.refresh(self.config.refresh_token)
            logger.info(f"Google Drive {self.mount_path} logged in")
            return Result.ok("Login Success", DriveSession(self.saving, dirty=True))
        except CloudStorageError as e:
            logger.error(f"Google Drive {self.mount_path} login failed: {e}")
            return Result.fail(f"Login Failed: {e}")
        except Exception as e:
            logger.exception(f"Google Drive {self.mount_path} login failed unexpectedly")
            return Result.fail(f"Login Failed: {str(e) or e.__class__.__name__}")

    async def load(self) -> Result[DriveSession]:
        """访问令牌缺失或即将过期时刷新"""
        if not self.saving.is_expired():
            return Result.ok("Session Loaded", DriveSession(self.saving, dirty=False))
        try:
            auth = AuthGoodrive(self.client, self.config)
            refresh_token = self.saving.refresh_token or self.config.refresh_token
            self.saving = await auth.refresh(refresh_token)
            logger.info(f"Google Drive {self.mount_path} access token refreshed")
            return Result.ok("Session Refreshed", DriveSession(self.saving, dirty=True))
        except CloudStorageError as e:
            logger.error(f"Google Drive {self.mount_path} token refresh failed: {e}")
            return Result.fail(f"Refresh Failed: {e}")
        except Exception as e:
            logger.exception(f"Google Drive {self.mount_path} token refresh failed unexpectedly")
            return Result.fail(f"Refresh Failed: {str(e) or e.__class__.__name__}")

    # ==================== 网盘原语 ====================

    async def list_children(self, folder: FileInfo) -> List[FileInfo]:
        items = await self.api.list_files(folder.uuid)
        return convert_to_file_infos(items, folder.path)

    async def fetch_links(self, node: FileInfo) -> List[FileLink]:
        api = self.api
        return [FileLink(
            direct=api.download_url(node.uuid),
            header={"Authorization": f"Bearer {api.access_token}"},
            expires_at=self.saving.expires_at,
        )]

    async def copy_node(self, node: FileInfo, dest: FileInfo):
        await self.api.copy(node.uuid, dest.uuid)

    async def move_node(self, node: FileInfo, dest: FileInfo):
        await self.api.move(node.uuid, dest.uuid, node.extra.get("parents") or [])

    async def delete_node(self, node: FileInfo):
        await self.api.delete(node.uuid)

    async def make_dir(self, parent: FileInfo, name: str) -> FileInfo:
        item = await self.api.create_folder(parent.uuid, name)
        return convert_to_file_info(item, parent.path)

    async def upload_file(self, parent: FileInfo, name: str, content: bytes) -> str:
        if len(content) > default_config.RESUMABLE_THRESHOLD:
            await self.api.upload_resumable(parent.uuid, name, content)
            return "Upload Completed (resumable)"
        await self.api.upload_multipart(parent.uuid, name, content)
        return "Upload Completed"
