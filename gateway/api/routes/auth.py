"""
登录认证 API 路由
"""
import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from gateway.api.schemas import LoginRequest
from gateway.core.security import check_auth, create_session, delete_session, verify_credentials

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/login")
async def login(body: LoginRequest):
    """管理员登录，成功后写入 session_id Cookie"""
    if not verify_credentials(body.username, body.password):
        logger.warning(f"Login failed for {body.username}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"flag": False, "text": "用户名或密码错误"}
        )

    session_id = create_session(body.username)
    response = JSONResponse(content={
        "flag": True,
        "text": "Login Success",
        "data": {"session_id": session_id, "user": body.username},
    })
    response.set_cookie("session_id", session_id, httponly=True, samesite="lax")
    return response


@router.post("/logout")
async def logout(request: Request):
    """退出登录"""
    session_id = request.cookies.get("session_id")
    if session_id:
        delete_session(session_id)
    response = JSONResponse(content={"flag": True, "text": "Logout Success"})
    response.delete_cookie("session_id")
    return response


@router.get("/check")
async def check(request: Request):
    """检查登录状态"""
    result = check_auth(request)
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.flag else status.HTTP_401_UNAUTHORIZED,
        content={"flag": result.flag, "text": result.text, "data": {"user": result.user}},
    )
