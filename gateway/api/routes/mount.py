"""
挂载管理 API 路由

POST /api/mount/{action}，action: select / create / remove / config / reload
GET /api/mount/catalog 无需登录
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from drivekit.core.models import Result

from gateway.api.deps import envelope, get_mount_service
from gateway.core.security import require_auth
from gateway.services.file_service import INVALID_ACTION
from gateway.services.mount_service import MountService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/mount", tags=["挂载管理"])


@router.get("/catalog")
async def catalog(mounts: MountService = Depends(get_mount_service)):
    """可用网盘类型及其配置项"""
    return envelope(Result.ok(data=mounts.catalog()))


@router.post("/{action}", dependencies=[Depends(require_auth)])
async def mount_action(
    action: str,
    body: Optional[Dict[str, Any]] = Body(None),
    mounts: MountService = Depends(get_mount_service)
):
    """挂载管理操作"""
    body = body or {}
    mount_path = body.get("mount_path")

    if action == "select":
        result = await mounts.select(mount_path)
        return envelope(Result.ok(data=[mount.public_dict() for mount in result.data]))
    if action == "catalog":
        return envelope(Result.ok(data=mounts.catalog()))
    if action == "create":
        return envelope(await mounts.create(body))
    if action == "config":
        return envelope(await mounts.config(body))
    if action in ("remove", "reload"):
        if not mount_path:
            return envelope(Result.fail("Mount Path Required"))
        if action == "remove":
            return envelope(await mounts.remove(mount_path))
        return envelope(await mounts.reload(mount_path))
    return envelope(Result.fail(INVALID_ACTION))
