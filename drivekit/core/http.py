"""
HTTP 请求工具

统一超时、网络异常转换和幂等请求重试
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .exceptions import AuthenticationError, NetworkError, PermissionDeniedError, ProtocolError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 默认超时（秒）：每个外部请求都必须带超时
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

# 上传分块等大请求使用的超时
TRANSFER_TIMEOUT = httpx.Timeout(300.0, connect=10.0)


def build_timeout(connect: float = 10.0, read: float = 30.0, write: float = 30.0) -> httpx.Timeout:
    """根据配置构造 httpx 超时"""
    return httpx.Timeout(read, connect=connect, read=read, write=write)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any
) -> httpx.Response:
    """发送请求，把传输层异常和 HTTP 状态码转换为网盘异常

    Raises:
        NetworkError: 连接失败、超时、5xx
        AuthenticationError: 401
        PermissionDeniedError: 403
        ProtocolError: 其他 4xx
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.warning(f"Request to {url} timed out")
        raise NetworkError(f"Request timed out: {url}") from e
    except httpx.TransportError as e:
        logger.warning(f"Network error during call to {url}: {e}")
        raise NetworkError(f"Network error: {e}") from e

    if response.status_code == 401:
        raise AuthenticationError(f"Unauthorized: {url}")
    if response.status_code == 403:
        raise PermissionDeniedError(f"Forbidden: {url}")
    if response.status_code >= 500:
        raise NetworkError(f"Server error {response.status_code}: {url}")
    if response.status_code >= 400:
        raise ProtocolError(f"HTTP {response.status_code}: {response.text[:200]}")
    return response


def parse_json(response: httpx.Response) -> Any:
    """解析 JSON 响应"""
    try:
        return response.json()
    except ValueError as e:
        raise ProtocolError(f"Invalid JSON response from {response.request.url}") from e


def parse_object(response: httpx.Response) -> Dict[str, Any]:
    """解析 JSON 对象响应，数组或标量视为协议错误"""
    data = parse_json(response)
    if not isinstance(data, dict):
        raise ProtocolError(f"Unexpected response from {response.request.url}: {str(data)[:200]}")
    return data


def parse_seconds(value: Any, default: int) -> int:
    """解析 expires_in 之类的秒数字段"""
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid duration: {value!r}") from e


async def call_idempotent(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: int = 3,
    **kwargs: Any
) -> T:
    """对幂等请求（列表、直链）做有限次数的退避重试

    只重试 NetworkError，其他异常直接抛出
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type(NetworkError),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await func(*args, **kwargs)


def client_factory(timeout: Optional[httpx.Timeout] = None) -> httpx.AsyncClient:
    """创建带默认超时的异步客户端"""
    return httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT, follow_redirects=True)
