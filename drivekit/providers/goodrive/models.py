"""
Google Drive 数据模型转换器
"""
import posixpath
from datetime import datetime
from typing import Dict, List, Optional

from ...core.models import FileInfo, FileType
from .config import default_config


def parse_time(value: Optional[str]) -> Optional[float]:
    """RFC3339 时间转 Unix 时间戳"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def convert_to_file_info(item: Dict, parent_path: str) -> FileInfo:
    """将 Drive 文件资源转换为 FileInfo"""
    is_folder = item.get("mimeType") == default_config.FOLDER_MIME_TYPE
    hash_value, hash_type = None, None
    for key, name in (("sha256Checksum", "sha256"), ("sha1Checksum", "sha1"), ("md5Checksum", "md5")):
        if item.get(key):
            hash_value, hash_type = item[key], name
            break

    return FileInfo(
        path=posixpath.join(parent_path, item.get("name", "")),
        name=item.get("name", ""),
        size=int(item.get("size") or 0),
        type=FileType.DIR if is_folder else FileType.FILE,
        uuid=item.get("id"),
        hash=hash_value,
        hash_type=hash_type,
        modified_at=parse_time(item.get("modifiedTime")),
        created_at=parse_time(item.get("createdTime")),
        extra={"parents": item.get("parents") or [], "mime_type": item.get("mimeType")},
    )


def convert_to_file_infos(items: List[Dict], parent_path: str) -> List[FileInfo]:
    return [convert_to_file_info(item, parent_path) for item in items]
