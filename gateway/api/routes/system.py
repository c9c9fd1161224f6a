"""
系统 API 路由
"""
from datetime import datetime

from fastapi import APIRouter

from gateway import __version__

router = APIRouter(prefix="/system", tags=["系统"])


@router.get("/health")
async def health_check():
    """健康检查"""
    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "version": __version__
    }
