"""
挂载路径解析

根据虚拟路径找到负责它的挂载点：
- exact: 挂载路径与查询路径相同
- ancestor: 挂载路径是查询路径的上级（根挂载是所有路径的上级）
- descendant: 挂载路径在查询路径之下

精确匹配优先，其次是更长的上级挂载，最后是下级挂载；剩余平局按 order_number、mount_path 升序。
单一模式解析返回排名第一的挂载（可能是下级挂载）；文件操作只交给拥有者，
即排名最高的精确或上级挂载，下级挂载在列表中作为虚拟目录出现
"""
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from drivekit.core.exceptions import NoMountFoundError

from gateway.models.mount import MountConfig


class Relation(str, Enum):
    EXACT = "exact"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"


class ResolveMode(str, Enum):
    SINGLE = "single"
    UNION = "union"


_RELATION_RANK = {Relation.EXACT: 0, Relation.ANCESTOR: 1, Relation.DESCENDANT: 2}


def normalize(path: Optional[str]) -> str:
    """以 / 开头、合并重复 /、去掉末尾 /，根目录为空串"""
    parts = [part for part in (path or "").replace("\\", "/").split("/") if part]
    return "".join("/" + part for part in parts)


def depth(path: str) -> int:
    """规范化路径的层级数，根目录为 0"""
    return path.count("/")


def classify(mount_path: str, path: str) -> Optional[Relation]:
    """判断挂载点与查询路径的关系，无关时返回 None"""
    m, p = normalize(mount_path), normalize(path)
    if m == p:
        return Relation.EXACT
    if m == "" or p.startswith(m + "/"):
        return Relation.ANCESTOR
    if p == "" or m.startswith(p + "/"):
        return Relation.DESCENDANT
    return None


def _rank(item: Tuple[Relation, MountConfig]):
    relation, mount = item
    return (
        _RELATION_RANK[relation],
        -len(normalize(mount.mount_path)),
        mount.order_number,
        mount.mount_path,
    )


def match_mounts(
    mounts: Iterable[MountConfig],
    path: str,
    enabled_only: bool = True
) -> List[Tuple[Relation, MountConfig]]:
    """返回所有与路径相关的挂载点，按优先级排序"""
    matched = []
    for mount in mounts:
        if enabled_only and not mount.is_enabled:
            continue
        relation = classify(mount.mount_path, path)
        if relation is not None:
            matched.append((relation, mount))
    return sorted(matched, key=_rank)


def select_top(
    mounts: Iterable[MountConfig],
    path: str,
    enabled_only: bool = True
) -> Optional[MountConfig]:
    """单一模式：返回排名第一的匹配，没有任何匹配时返回 None"""
    matched = match_mounts(mounts, path, enabled_only)
    return matched[0][1] if matched else None


def select_owner(
    mounts: Iterable[MountConfig],
    path: str,
    enabled_only: bool = True
) -> Optional[MountConfig]:
    """返回拥有该路径的挂载点（精确或上级），只有下级挂载时返回 None"""
    for relation, mount in match_mounts(mounts, path, enabled_only):
        if relation != Relation.DESCENDANT:
            return mount
    return None


def select_union(
    mounts: Iterable[MountConfig],
    path: str,
    enabled_only: bool = True
) -> List[MountConfig]:
    """合并模式：拥有者（如有）加上所有直接下级挂载"""
    matched = match_mounts(mounts, path, enabled_only)
    target_depth = depth(normalize(path)) + 1

    selected: List[MountConfig] = []
    for relation, mount in matched:
        if relation != Relation.DESCENDANT:
            selected.append(mount)
            break
    children = [
        mount for relation, mount in matched
        if relation == Relation.DESCENDANT and depth(normalize(mount.mount_path)) == target_depth
    ]
    selected.extend(sorted(children, key=lambda m: (m.order_number, m.mount_path)))
    return selected


def strip_mount(mount_path: str, path: str) -> str:
    """去掉挂载前缀，得到网盘内路径

    Raises:
        NoMountFoundError: 路径不在该挂载点之下
    """
    m, p = normalize(mount_path), normalize(path)
    if m == "":
        return p or "/"
    if p == m:
        return "/"
    if p.startswith(m + "/"):
        return p[len(m):]
    raise NoMountFoundError(f"Path {path} is not under mount {mount_path}")
