"""
API 数据模型 (Pydantic)
"""
from typing import Optional

from pydantic import BaseModel, Field


# ==================== 认证相关 ====================

class LoginRequest(BaseModel):
    """登录请求"""
    username: str = Field(..., min_length=1, description="用户名")
    password: str = Field(..., min_length=1, description="密码")


# ==================== 文件相关 ====================

class FileActionRequest(BaseModel):
    """文件操作请求"""
    source: str = Field(..., description="源路径（create 时为父目录）")
    target: Optional[str] = Field(None, description="目标目录或新建名称，以 / 结尾表示目录")
    content: Optional[str] = Field(None, description="create 文件时的文本内容")
