"""
天翼云盘数据模型转换器
"""
import posixpath
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ...core.models import FileInfo, FileType
from .client import pick

# 天翼云盘返回北京时间
_CST = timezone(timedelta(hours=8))


def parse_time(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S").replace(tzinfo=_CST).timestamp()
    except (TypeError, ValueError):
        return None


def convert_to_file_info(item: Dict, parent_path: str) -> FileInfo:
    """将天翼云盘文件项转换为 FileInfo"""
    is_folder = bool(item.get("isFolder"))
    name = pick(item, "name", "fileName", default="")
    md5 = None if is_folder else item.get("md5")

    return FileInfo(
        path=posixpath.join(parent_path, name),
        name=name,
        size=int(pick(item, "size", "fileSize", default=0) or 0),
        type=FileType.DIR if is_folder else FileType.FILE,
        uuid=str(pick(item, "id", "fileId", default="")),
        hash=md5,
        hash_type="md5" if md5 else None,
        modified_at=parse_time(item.get("lastOpTime")),
        created_at=parse_time(pick(item, "createDate", "createTime")),
    )


def convert_to_file_infos(items: List[Dict], parent_path: str) -> List[FileInfo]:
    return [convert_to_file_info(item, parent_path) for item in items]
