"""
FastAPI 主应用入口

多网盘统一路径网关
基于 FastAPI + Tortoise ORM + httpx 构建
"""
import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from tortoise import Tortoise

from drivekit.core.http import build_timeout, client_factory
from drivekit.providers.factory import DriverFactory, driver_factory

from gateway import __version__
from gateway.api.routes import auth, file, mount, system
from gateway.core.config import Settings, get_settings
from gateway.core.security import initialize_security
from gateway.services.mount_service import MountService
from gateway.services.saves_service import SavesStore, get_store

logger = logging.getLogger(__name__)


def setup_logging(settings: Settings):
    """配置日志：控制台 + 滚动文件"""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        settings.data_dir / "gateway.log",
        maxBytes=10*1024*1024,  # 10MB
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(settings.log.format))

    logging.basicConfig(
        level=getattr(logging, settings.log.level.upper()),
        format=settings.log.format,
        handlers=[
            logging.StreamHandler(),
            file_handler
        ]
    )


def database_url(settings: Settings) -> str:
    """处理 SQLite 路径中的 ~"""
    url = settings.database.url
    if url.startswith("sqlite://"):
        db_path = url.replace("sqlite://", "")
        if db_path.startswith("~/"):
            db_path = os.path.expanduser(db_path)
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
        url = f"sqlite://{db_path}"
    return url


async def init_tortoise(settings: Settings):
    """初始化 Tortoise ORM"""
    await Tortoise.init(
        db_url=database_url(settings),
        modules={"models": ["gateway.models"]}
    )

    if settings.database.generate_schemas:
        await Tortoise.generate_schemas()

    logger.info("Tortoise ORM initialized")


async def close_tortoise():
    """关闭 Tortoise ORM"""
    await Tortoise.close_connections()
    logger.info("Tortoise ORM closed")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SavesStore] = None,
    factory: DriverFactory = driver_factory
) -> FastAPI:
    """
    创建 FastAPI 应用

    Args:
        settings: 配置，默认读取环境变量
        store: 持久化存储，默认按数据库 URL 选择
        factory: 驱动工厂

    Returns:
        FastAPI 应用实例
    """
    settings = settings or get_settings()
    store = store or get_store(settings.database.url)
    use_orm = not settings.database.in_memory

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        应用生命周期管理
        """
        logger.info("Starting Union Drive Gateway...")

        initialize_security(settings.security.username, settings.security.password)

        if use_orm:
            await init_tortoise(settings)

        # 所有驱动共用一个带超时的 HTTP 客户端
        client = client_factory(build_timeout(
            connect=settings.http.connect_timeout,
            read=settings.http.read_timeout,
            write=settings.http.write_timeout,
        ))
        app.state.mount_service = MountService(
            store,
            factory=factory,
            client=client,
            retry_attempts=settings.http.retry_attempts,
            upload_concurrency=settings.http.upload_concurrency,
        )

        logger.info("Union Drive Gateway started successfully")

        yield

        logger.info("Shutting down Union Drive Gateway...")
        await client.aclose()
        if use_orm:
            await close_tortoise()
        logger.info("Union Drive Gateway shut down successfully")

    app = FastAPI(
        title="多网盘统一网关",
        description="把多个网盘挂载到同一虚拟路径空间，统一列表、直链、复制、移动、创建、删除、上传",
        version=__version__,
        lifespan=lifespan
    )

    # CORS 中间件
    if settings.gateway.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.gateway.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"flag": False, "text": str(exc.detail)},
            headers=exc.headers,
        )

    # 注册路由
    app.include_router(auth.router, prefix="/api")
    app.include_router(mount.router, prefix="/api")
    app.include_router(file.router, prefix="/api")
    app.include_router(system.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": "多网盘统一网关",
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "health": "/api/system/health",
                "auth": "/api/auth",
                "mount": "/api/mount/{action}",
                "files": "/api/files/{action}",
            }
        }

    return app


# 创建应用实例
app = create_app()


def main():
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        "gateway.main:app",
        host=settings.gateway.host,
        port=settings.gateway.port,
        reload=settings.gateway.debug,
        log_level=settings.log.level.lower()
    )


if __name__ == "__main__":
    main()
