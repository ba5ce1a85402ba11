import logging

import pytest

from app.models import FileDebtRecord, TreeNode
from app.services.hierarchy import build_hierarchy, count_leaves, split_path


def _record(path: str, loc: int = 10, score: float = 0.5) -> FileDebtRecord:
    return FileDebtRecord(path=path, lines_of_code=loc, sprawl_score=score)


def test_empty_input_builds_empty_root() -> None:
    root = build_hierarchy([])

    assert root.name == "root"
    assert root.children == []
    assert not root.is_leaf


def test_children_keep_first_seen_order() -> None:
    root = build_hierarchy([_record("a/x.ts"), _record("a/y.ts"), _record("b/z.ts")])

    assert [c.name for c in root.children] == ["a", "b"]
    a = root.children[0]
    assert not a.is_leaf
    assert [c.name for c in a.children] == ["x.ts", "y.ts"]
    assert all(c.is_leaf for c in a.children)
    assert [c.name for c in root.children[1].children] == ["z.ts"]


def test_backslashes_are_path_separators() -> None:
    back = build_hierarchy([_record("a\\x.ts")])
    forward = build_hierarchy([_record("a/x.ts")])

    assert back == forward
    assert back.children[0].name == "a"
    assert back.children[0].children[0].name == "x.ts"


def test_empty_segments_are_ignored() -> None:
    root = build_hierarchy([_record("/src//lib/util.py/")])

    src = root.children[0]
    assert src.name == "src"
    assert src.children[0].name == "lib"
    assert src.children[0].children[0].name == "util.py"


def test_leaf_carries_clamped_size_and_scaled_score() -> None:
    root = build_hierarchy([_record("src/a.ts", loc=10, score=0.5), _record("src/b.ts", loc=0, score=1.9)])

    a, b = root.children[0].children
    assert a.size == 10
    assert a.score == pytest.approx(25.0)
    # Zero-line files still get a visible area.
    assert b.size == 1
    assert b.score == pytest.approx(95.0)


def test_duplicate_paths_produce_separate_leaves() -> None:
    root = build_hierarchy([_record("pkg/mod.py"), _record("pkg/mod.py", score=1.0)])

    pkg = root.children[0]
    assert [c.name for c in pkg.children] == ["mod.py", "mod.py"]
    assert count_leaves(root) == 2


def test_malformed_paths_are_skipped(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        root = build_hierarchy([_record("///"), _record("ok.py"), _record("\\")])

    assert [c.name for c in root.children] == ["ok.py"]
    assert "malformed path" in caplog.text


def test_top_level_files_attach_to_root() -> None:
    root = build_hierarchy([_record("README.md", loc=5)])

    assert root.children == [TreeNode.leaf("README.md", size=5, score=25.0)]


def test_split_path() -> None:
    assert split_path("a\\b/c") == ["a", "b", "c"]
    assert split_path("") == []


def test_tree_node_rejects_mixed_variants() -> None:
    with pytest.raises(ValueError):
        TreeNode(name="bad", children=[], size=1, score=1.0)
    with pytest.raises(ValueError):
        TreeNode(name="half", size=1)


def test_folder_under_existing_file_name_is_skipped(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        root = build_hierarchy([_record("a"), _record("a/x.ts")])

    assert root.children == [TreeNode.leaf("a", size=10, score=25.0)]
    assert "clashes" in caplog.text


def test_file_named_like_existing_folder_is_skipped() -> None:
    root = build_hierarchy([_record("a/x.ts"), _record("a"), _record("a/y.ts")])

    assert [c.name for c in root.children] == ["a"]
    assert [c.name for c in root.children[0].children] == ["x.ts", "y.ts"]


def test_interior_children_have_unique_names() -> None:
    root = build_hierarchy(
        [
            _record("lib/a.py"),
            _record("lib"),
            _record("lib/sub/b.py"),
            _record("lib/sub"),
            _record("x/y"),
        ]
    )

    names = [c.name for c in root.children]
    assert names == ["lib", "x"]
    lib_names = [c.name for c in root.children[0].children]
    assert len(lib_names) == len(set(lib_names))
