from typing import List

from app.config import SEVERE_SCORE, SEVERE_SURVIVOR_CAP
from app.models import TreeNode


def importance(node: TreeNode) -> float:
    """Ranking weight of a node: score times size, with missing values as 0."""
    return (node.score or 0.0) * (node.size or 0)


def prune_tree(root: TreeNode, limit: int) -> TreeNode:
    """
    Bound the number of direct children of `root` to roughly `limit`.

    The `limit` most important children are kept, followed by up to
    SEVERE_SURVIVOR_CAP of the remaining children whose score is above
    SEVERE_SCORE so that small but very bad files stay visible. Deeper
    levels are left as they are. The input tree is never modified; a copy
    is returned in every case.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")

    pruned = root.model_copy(deep=True)
    if pruned.is_leaf or len(pruned.children) <= limit:
        return pruned

    # sorted() is stable, so equal weights keep their original order.
    ranked = sorted(pruned.children, key=importance, reverse=True)
    top_items = ranked[:limit]
    severe_survivors: List[TreeNode] = [
        child for child in ranked[limit:] if (child.score or 0.0) > SEVERE_SCORE
    ][:SEVERE_SURVIVOR_CAP]

    pruned.children = top_items + severe_survivors
    return pruned


def hidden_children(original: TreeNode, pruned: TreeNode) -> int:
    if original.is_leaf:
        return 0
    return len(original.children) - len(pruned.children)
