"""
挂载路径解析测试
"""
import pytest

from drivekit.core.exceptions import NoMountFoundError
from gateway.models.mount import MountConfig
from gateway.services.resolver import (
    Relation,
    classify,
    match_mounts,
    normalize,
    select_owner,
    select_top,
    select_union,
    strip_mount,
)


def mk(path, enabled=True, order=0, remarks=""):
    return MountConfig(
        mount_path=path,
        mount_type="cloud189",
        is_enabled=enabled,
        order_number=order,
        remarks=remarks,
    )


def paths(mounts):
    return [m.mount_path for m in mounts]


class TestNormalize:

    def test_collapse_and_strip(self):
        assert normalize("//a///b/") == "/a/b"
        assert normalize("a/b") == "/a/b"

    def test_root_is_empty(self):
        assert normalize("/") == ""
        assert normalize("") == ""
        assert normalize(None) == ""

    def test_mount_path_keeps_root_slash(self):
        assert mk("/").mount_path == "/"
        assert mk("/a/").mount_path == "/a"


class TestClassify:

    def test_relations(self):
        assert classify("/a", "/a/") == Relation.EXACT
        assert classify("/", "/x/y") == Relation.ANCESTOR
        assert classify("/a", "/a/b") == Relation.ANCESTOR
        assert classify("/a/b", "/a") == Relation.DESCENDANT
        assert classify("/a", "/") == Relation.DESCENDANT

    def test_prefix_without_separator_is_unrelated(self):
        assert classify("/drive", "/driveX") is None
        assert classify("/driveX", "/drive") is None


class TestSingleMode:

    def test_most_specific_ancestor_wins(self):
        mounts = [mk("/"), mk("/a/"), mk("/a/b")]
        assert select_owner(mounts, "/a/b/c").mount_path == "/a/b"

    def test_exact_beats_root(self):
        mounts = [mk("/"), mk("/a")]
        assert select_owner(mounts, "/a").mount_path == "/a"

    def test_root_owns_unmounted_paths(self):
        mounts = [mk("/"), mk("/a")]
        assert select_owner(mounts, "/b/c").mount_path == "/"

    def test_no_match(self):
        assert select_owner([mk("/a")], "/b") is None
        assert select_owner([], "/") is None

    def test_descendant_never_owns_parent(self):
        mounts = [mk("/x/a"), mk("/x/b")]
        assert select_owner(mounts, "/x") is None
        assert select_top(mounts, "/x").mount_path == "/x/a"

    def test_top_prefers_owner_over_descendant(self):
        mounts = [mk("/x/a"), mk("/")]
        assert select_top(mounts, "/x").mount_path == "/"
        assert select_top([mk("/y")], "/x") is None

    def test_disabled_mount_skipped(self):
        mounts = [mk("/a", enabled=False)]
        assert select_owner(mounts, "/a/b") is None
        assert select_owner(mounts, "/a/b", enabled_only=False).mount_path == "/a"

    def test_disabled_mount_falls_back_to_root(self):
        mounts = [mk("/"), mk("/a", enabled=False)]
        assert select_owner(mounts, "/a/b").mount_path == "/"

    def test_tie_broken_by_order_number_then_path(self):
        # 同一路径重复登记时（绕过注册表直接构造），order_number 小的优先
        mounts = [mk("/a", order=5, remarks="late"), mk("/a/", order=1, remarks="early")]
        assert select_owner(mounts, "/a/b").remarks == "early"

        mounts = [mk("/a", order=1, remarks="first"), mk("/a", order=1, remarks="second")]
        assert select_owner(mounts, "/a").remarks == "first"

    def test_ranking_order(self):
        mounts = [mk("/"), mk("/a"), mk("/a/b"), mk("/a/b/c/d")]
        ranked = match_mounts(mounts, "/a/b")
        assert [(r, m.mount_path) for r, m in ranked] == [
            (Relation.EXACT, "/a/b"),
            (Relation.ANCESTOR, "/a"),
            (Relation.ANCESTOR, "/"),
            (Relation.DESCENDANT, "/a/b/c/d"),
        ]


class TestUnionMode:

    def test_owner_plus_direct_children(self):
        mounts = [mk("/"), mk("/sub/"), mk("/sub/temp"), mk("/sub/temp/deep")]
        assert paths(select_union(mounts, "/sub/")) == ["/sub", "/sub/temp"]

    def test_root_union(self):
        mounts = [mk("/"), mk("/a"), mk("/a/b")]
        assert paths(select_union(mounts, "/")) == ["/", "/a"]

    def test_children_without_owner(self):
        mounts = [mk("/x/a"), mk("/x/b"), mk("/x/b/c")]
        assert paths(select_union(mounts, "/x")) == ["/x/a", "/x/b"]

    def test_children_ordered_by_order_number(self):
        mounts = [mk("/m/b", order=2), mk("/m/a", order=2), mk("/m/c", order=1)]
        assert paths(select_union(mounts, "/m")) == ["/m/c", "/m/a", "/m/b"]

    def test_disabled_child_excluded(self):
        mounts = [mk("/"), mk("/a", enabled=False), mk("/b")]
        assert paths(select_union(mounts, "/")) == ["/", "/b"]

    def test_nothing_matches(self):
        assert select_union([mk("/a")], "/b") == []


class TestStripMount:

    def test_root_mount_is_noop(self):
        assert strip_mount("/", "/x/y") == "/x/y"
        assert strip_mount("/", "/") == "/"

    def test_strip_prefix(self):
        assert strip_mount("/drive", "/drive/a/b") == "/a/b"
        assert strip_mount("/drive/", "/drive/a/") == "/a"

    def test_mount_itself_becomes_root(self):
        assert strip_mount("/drive", "/drive") == "/"

    def test_path_outside_mount(self):
        with pytest.raises(NoMountFoundError):
            strip_mount("/drive", "/driveX/a")
