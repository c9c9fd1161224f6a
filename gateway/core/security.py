"""
安全认证工具模块

管理员账号 + 内存 session，对外只暴露 check_auth(request)
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

# 全局存储管理员凭据
_admin_username: str = "admin"
_admin_password: str = ""


@dataclass
class AuthResult:
    """认证结果 {flag, text, user}"""
    flag: bool
    text: str
    user: Optional[str] = None


def generate_random_password(length: int = 12) -> str:
    """生成随机密码"""
    alphabet = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def verify_credentials(username: str, password: str) -> bool:
    """验证用户名密码"""
    return (
        secrets.compare_digest(username, _admin_username)
        and bool(_admin_password)
        and secrets.compare_digest(password, _admin_password)
    )


def initialize_security(username: str, password: Optional[str]) -> tuple[str, str]:
    """
    初始化安全配置
    返回: (username, password)
    """
    global _admin_username, _admin_password

    _admin_username = username

    if not password:
        password = generate_random_password()
        logger.info("=" * 60)
        logger.info("安全警告: 未配置管理员密码，已生成随机密码")
        logger.info(f"用户名: {username}")
        logger.info(f"密码: {password}")
        logger.info("=" * 60)

    _admin_password = password
    return _admin_username, _admin_password


# 简单的 session 存储（内存中）：session_id -> 用户名
_sessions: dict = {}


def create_session(username: str) -> str:
    """创建 session"""
    session_id = secrets.token_urlsafe(32)
    _sessions[session_id] = username
    return session_id


def verify_session(session_id: Optional[str]) -> Optional[str]:
    """验证 session，返回用户名"""
    if not session_id:
        return None
    return _sessions.get(session_id)


def delete_session(session_id: str):
    """删除 session"""
    _sessions.pop(session_id, None)


def check_auth(request: Request) -> AuthResult:
    """检查请求是否已登录

    支持 session_id Cookie 或 Authorization: Bearer <session_id>
    """
    session_id = request.cookies.get("session_id")
    if not session_id:
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            session_id = authorization[len("Bearer "):].strip()

    user = verify_session(session_id)
    if not user:
        return AuthResult(flag=False, text="Unauthorized")
    return AuthResult(flag=True, text="OK", user=user)


async def require_auth(request: Request) -> str:
    """路由依赖：未登录时返回 401"""
    result = check_auth(request)
    if not result.flag:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="请先登录"
        )
    return result.user
