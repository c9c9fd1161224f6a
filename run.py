#!/usr/bin/env python3
"""
多网盘统一网关启动脚本

    python run.py                        # 读取 ./config.yaml 后启动
    python run.py -c /etc/gateway.yaml   # 指定配置文件
    python run.py --db-url memory://     # 不落盘，调试挂载配置
    python run.py --debug --reload       # 开发模式

config.yaml 按分组书写，分组和键名与环境变量一一对应：

    gateway:  {host: 0.0.0.0, port: 8189}
    database: {url: "sqlite://~/.union_drive/gateway.db"}
    http:     {read_timeout: 30, retry_attempts: 3, upload_concurrency: 4}
    security: {username: admin, password: change-me}

优先级：命令行 > 环境变量 > config.yaml > 默认值
"""
import argparse
import json
import os
import sys
from typing import Any, Dict, List

import yaml

# config.yaml 分组 -> {键名: 环境变量}
CONFIG_KEYS: Dict[str, Dict[str, str]] = {
    "gateway": {
        "host": "GATEWAY_HOST",
        "port": "GATEWAY_PORT",
        "debug": "GATEWAY_DEBUG",
        "enable_cors": "ENABLE_CORS",
        "cors_origins": "CORS_ORIGINS",
    },
    "database": {
        "url": "DB_URL",
        "generate_schemas": "DB_GENERATE_SCHEMAS",
    },
    "http": {
        "connect_timeout": "HTTP_CONNECT_TIMEOUT",
        "read_timeout": "HTTP_READ_TIMEOUT",
        "write_timeout": "HTTP_WRITE_TIMEOUT",
        "retry_attempts": "HTTP_RETRY_ATTEMPTS",
        "upload_concurrency": "HTTP_UPLOAD_CONCURRENCY",
    },
    "log": {
        "level": "LOG_LEVEL",
        "format": "LOG_FORMAT",
    },
    "security": {
        "username": "ADMIN_USERNAME",
        "password": "ADMIN_PASSWORD",
    },
}


def env_text(value: Any) -> str:
    """YAML 值转为 pydantic-settings 能解析的环境变量文本"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def apply_config_file(path: str) -> List[str]:
    """把 config.yaml 写入环境变量，已存在的环境变量不覆盖

    Returns:
        实际写入的环境变量名
    """
    if not os.path.isfile(path):
        return []
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise SystemExit(f"配置文件格式错误: {path}")

    pairs = [("DATA_DIR", data.get("data_dir"))]
    for group, keys in CONFIG_KEYS.items():
        section = data.get(group) or {}
        pairs.extend((env_key, section.get(key)) for key, env_key in keys.items())

    applied = []
    for env_key, value in pairs:
        if value is None or env_key in os.environ:
            continue
        os.environ[env_key] = env_text(value)
        applied.append(env_key)
    return applied


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="多网盘统一网关",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("-c", "--config", default=None, help="配置文件路径 (默认: 脚本目录下 config.yaml)")
    parser.add_argument("--host", default=None, help="监听地址")
    parser.add_argument("--port", type=int, default=None, help="监听端口")
    parser.add_argument("--db-url", default=None, help="数据库 URL，memory:// 表示内存存储")
    parser.add_argument("--log-level", default=None, help="日志级别")
    parser.add_argument("--debug", action="store_true", help="调试模式（DEBUG 日志 + 热重载）")
    parser.add_argument("--reload", action="store_true", help="代码变更时自动重载")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config_path = args.config or os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")
    applied = apply_config_file(config_path)

    overrides = {
        "GATEWAY_HOST": args.host,
        "GATEWAY_PORT": args.port,
        "DB_URL": args.db_url,
        "LOG_LEVEL": "DEBUG" if args.debug else args.log_level,
        "GATEWAY_DEBUG": True if args.debug else None,
    }
    for env_key, value in overrides.items():
        if value is not None:
            os.environ[env_key] = env_text(value)

    # 配置依赖环境变量，必须在写入之后导入
    from gateway import __version__
    from gateway.core.config import get_settings
    from gateway.main import setup_logging

    settings = get_settings()
    setup_logging(settings)

    base = f"http://{settings.gateway.host}:{settings.gateway.port}"
    print(f"Union Drive Gateway {__version__} (Python {sys.version.split()[0]})")
    print(f"  config:   {config_path if applied else '未使用配置文件'}")
    print(f"  database: {settings.database.url}")
    print(f"  docs:     {base}/docs")
    print(f"  health:   {base}/api/system/health")

    import uvicorn

    uvicorn.run(
        "gateway.main:app",
        host=settings.gateway.host,
        port=settings.gateway.port,
        reload=args.reload or settings.gateway.debug,
        log_level=settings.log.level.lower()
    )


if __name__ == "__main__":
    main()
