"""
通用异常定义

驱动内部抛出异常，在驱动契约边界统一转换为结果信封
"""


class CloudStorageError(Exception):
    """云存储基础异常"""

    retryable: bool = False

    def __init__(self, message: str = "", *, data=None):
        super().__init__(message)
        self.message = message
        self.data = data


# ==================== 配置错误 ====================

class ConfigurationError(CloudStorageError):
    """配置错误（挂载路径重复/缺失、配置格式错误）"""
    pass


class ProviderNotSupportedError(ConfigurationError):
    """不支持的 Provider 异常"""
    pass


# ==================== 解析错误 ====================

class ResolutionError(CloudStorageError):
    """路径解析失败"""
    pass


class NoMountFoundError(ResolutionError):
    """没有挂载点覆盖该路径"""
    pass


class PathNotFoundError(ResolutionError):
    """网盘内路径不存在"""
    pass


# ==================== 认证错误 ====================

class AuthenticationError(CloudStorageError):
    """认证失败异常（登录或刷新失败）"""
    pass


class CaptchaRequiredError(AuthenticationError):
    """需要人工输入验证码，不可自动重试"""
    pass


class TokenExpiredError(AuthenticationError):
    """令牌过期异常"""
    pass


class PermissionDeniedError(CloudStorageError):
    """权限不足异常"""
    pass


# ==================== 协议/传输错误 ====================

class ProtocolError(CloudStorageError):
    """网盘响应格式不符合预期"""
    pass


class TransferError(CloudStorageError):
    """上传/下载中途失败"""
    pass


class NetworkError(TransferError):
    """网络错误异常（连接失败、超时），可重试"""

    retryable = True
