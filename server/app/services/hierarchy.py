import logging
from typing import Dict, Iterable, List, Set, Tuple

from app.config import SCORE_SCALE
from app.models import FileDebtRecord, TreeNode

logger = logging.getLogger(__name__)

ROOT_NAME = "root"


def split_path(path: str) -> List[str]:
    """Split a file path into segments, accepting either slash style."""
    return [part for part in path.replace("\\", "/").split("/") if part]


def build_hierarchy(records: Iterable[FileDebtRecord]) -> TreeNode:
    """
    Group flat file records into a directory tree.

    Directories become interior nodes and each record becomes one leaf under
    its directory, so duplicate paths produce duplicate leaves. Children keep
    the order in which records were first seen; feeding score-sorted records
    therefore puts the heaviest items first.

    Records that cannot be placed are skipped with a warning: paths with no
    segments, and paths where a file and a folder would share a name under
    the same parent.
    """
    root = TreeNode.interior(ROOT_NAME)
    # Folders and files seen so far, keyed by their segments below the root.
    folders: Dict[Tuple[str, ...], TreeNode] = {(): root}
    files: Set[Tuple[str, ...]] = set()
    skipped = 0

    for record in records:
        parts = split_path(record.path)
        if not parts:
            skipped += 1
            logger.warning(f"Skipping record with malformed path: {record.path!r}")
            continue

        key = tuple(parts)
        clash = key in folders or any(key[:i] in files for i in range(1, len(key)))
        if clash:
            skipped += 1
            logger.warning(f"Skipping record whose path clashes with a file or folder: {record.path!r}")
            continue

        current = root
        for i, part in enumerate(parts[:-1], start=1):
            child = folders.get(key[:i])
            if child is None:
                child = TreeNode.interior(part)
                current.children.append(child)
                folders[key[:i]] = child
            current = child

        current.children.append(
            TreeNode.leaf(
                name=parts[-1],
                size=max(record.lines_of_code, 1),
                score=record.sprawl_score * SCORE_SCALE,
            )
        )
        files.add(key)

    if skipped:
        logger.info(f"Built hierarchy with {skipped} record(s) skipped")
    return root


def count_leaves(node: TreeNode) -> int:
    if node.is_leaf:
        return 1
    return sum(count_leaves(child) for child in node.children)
