"""
业务服务模块
"""
from .file_service import FileService
from .mount_service import MountService
from .saves_service import MemorySavesStore, SavesStore, TortoiseSavesStore, get_store

__all__ = [
    "FileService",
    "MountService",
    "SavesStore",
    "MemorySavesStore",
    "TortoiseSavesStore",
    "get_store",
]
