"""
union-drive-gateway

多网盘统一路径网关：挂载注册表 + 路径解析 + 操作路由
"""

__version__ = "1.0.0"
