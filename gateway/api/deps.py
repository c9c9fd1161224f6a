"""
API 依赖注入模块
"""
from fastapi import Request
from fastapi.responses import JSONResponse

from drivekit.core.models import Result

from gateway.services.file_service import INVALID_ACTION, NOT_FOUND, FileService
from gateway.services.mount_service import MountService


def get_mount_service(request: Request) -> MountService:
    """获取 MountService 依赖"""
    return request.app.state.mount_service


def get_file_service(request: Request) -> FileService:
    """获取 FileService 依赖"""
    return FileService(request.app.state.mount_service)


def envelope(result: Result) -> JSONResponse:
    """结果信封转 JSON 响应，404 / 无效动作映射为对应状态码"""
    status_code = 200
    if not result.flag and result.text == NOT_FOUND:
        status_code = 404
    elif not result.flag and result.text == INVALID_ACTION:
        status_code = 400
    return JSONResponse(status_code=status_code, content=result.to_dict())
