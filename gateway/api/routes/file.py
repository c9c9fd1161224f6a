"""
文件操作 API 路由

POST /api/files/{action}，action: list / link / copy / move / create / remove / upload
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from gateway.api.deps import envelope, get_file_service
from gateway.api.schemas import FileActionRequest
from gateway.core.security import require_auth
from gateway.services.file_service import FileService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/files", tags=["文件操作"], dependencies=[Depends(require_auth)])


@router.post("/upload")
async def upload(
    source: str = Form(..., description="父目录"),
    target: Optional[str] = Form(None, description="文件名，默认使用上传文件名"),
    file: UploadFile = File(...),
    files: FileService = Depends(get_file_service)
):
    """上传文件"""
    payload = await file.read()
    name = target or file.filename
    logger.info(f"Upload {name} ({len(payload)} bytes) to {source}")
    return envelope(await files.execute("upload", source, name, payload))


@router.post("/{action}")
async def file_action(
    action: str,
    body: FileActionRequest,
    files: FileService = Depends(get_file_service)
):
    """文件操作"""
    payload = body.content.encode("utf-8") if body.content is not None else None
    return envelope(await files.execute(action, body.source, body.target, payload))
