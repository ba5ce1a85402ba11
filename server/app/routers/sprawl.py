from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from app.config import DEFAULT_TREE_LIMIT
from app.models import FileDebtRecord, ScanSummary, TreeNode
from app.services.hierarchy import build_hierarchy, count_leaves
from app.services.metrics import aggregate, rank_by_score
from app.services.pruning import hidden_children, prune_tree

router = APIRouter(prefix="/api/sprawl", tags=["sprawl"])


class TreeResponse(BaseModel):
    tree: TreeNode
    hidden_count: int
    hidden_children: int
    total_children: int


@router.post("/summary", response_model=ScanSummary)
async def summarize(records: List[FileDebtRecord]):
    """
    Aggregate a batch of per-file records into a summary.
    """
    return aggregate(records)


@router.post("/tree", response_model=TreeResponse, response_model_exclude_none=True)
async def get_tree(
    records: List[FileDebtRecord],
    limit: int = Query(DEFAULT_TREE_LIMIT, gt=0, description="Maximum top-level items"),
):
    """
    Build the directory tree for a batch of records and bound its top level.

    `hidden_count` is the number of files left out and `hidden_children`
    the number of top-level items, for the client's "items hidden" notice.
    """
    tree = build_hierarchy(records)
    pruned = prune_tree(tree, limit)
    return TreeResponse(
        tree=pruned,
        hidden_count=count_leaves(tree) - count_leaves(pruned),
        hidden_children=hidden_children(tree, pruned),
        total_children=len(tree.children),
    )


@router.post("/files", response_model=List[FileDebtRecord])
async def rank_files(
    records: List[FileDebtRecord],
    limit: Optional[int] = Query(None, gt=0, description="Only return the worst N files"),
):
    """
    List files by sprawl score, worst first.
    """
    ranked = rank_by_score(records)
    return ranked[:limit] if limit else ranked
