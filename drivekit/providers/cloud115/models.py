"""
115 网盘数据模型转换器

将 115 API 返回的数据转换为统一的核心模型
"""
import posixpath
from typing import Dict, List, Optional

from ...core.models import FileInfo, FileType


def _timestamp(value) -> Optional[float]:
    try:
        return float(value) if value else None
    except (TypeError, ValueError):
        return None


def convert_to_file_info(item_115: Dict, parent_path: str) -> FileInfo:
    """将 115 文件项转换为 FileInfo

    Args:
        item_115: 115 API 返回的文件项
        parent_path: 所在目录路径
    """
    # fc: 0=文件夹, 1=文件
    fc = item_115.get("fc", item_115.get("file_category"))
    is_folder = str(fc) == "0"
    name = item_115.get("fn") or item_115.get("file_name") or item_115.get("n", "")
    sha1 = item_115.get("sha1") or item_115.get("sha")

    return FileInfo(
        path=posixpath.join(parent_path, name),
        name=name,
        size=int(item_115.get("fs") or item_115.get("file_size") or 0),
        type=FileType.DIR if is_folder else FileType.FILE,
        uuid=str(item_115.get("fid") or item_115.get("file_id") or item_115.get("cid", "")),
        hash=None if is_folder else sha1,
        hash_type=None if is_folder or not sha1 else "sha1",
        modified_at=_timestamp(item_115.get("upt") or item_115.get("te")),
        created_at=_timestamp(item_115.get("uppt") or item_115.get("ct")),
        extra={
            "pick_code": item_115.get("pc") or item_115.get("pick_code"),
            "parent_id": str(item_115.get("pid") or ""),
        },
    )


def convert_to_file_infos(items_115: List[Dict], parent_path: str) -> List[FileInfo]:
    """批量转换文件项"""
    return [convert_to_file_info(item, parent_path) for item in items_115]
