"""
Tortoise ORM 数据模型
"""
from .record import Record

__all__ = ["Record"]
