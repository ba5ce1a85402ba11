from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

SprawlLevel = Literal["clean", "mild", "high", "severe"]


class ScanStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)


class DebtDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    has_long_functions: Optional[bool] = Field(default=None, alias="hasLongFunctions")
    has_deep_nesting: Optional[bool] = Field(default=None, alias="hasDeepNesting")
    has_repetitive_patterns: Optional[bool] = Field(default=None, alias="hasRepetitivePatterns")
    has_high_coupling: Optional[bool] = Field(default=None, alias="hasHighCoupling")
    has_too_many_responsibilities: Optional[bool] = Field(
        default=None, alias="hasTooManyResponsibilities"
    )


class FileDebtRecord(BaseModel):
    """
    One measured source file as reported by the scanner.

    The five dimension scores are independently normalized ratios and are
    not bounded above. `sprawl_level` is the scanner's own classification
    and is trusted as-is.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    path: str = Field(alias="filePath")
    lines_of_code: int = Field(default=0, ge=0, alias="loc")
    normalized_loc: float = Field(default=0.0, ge=0, alias="normalizedLOC")
    complexity_score: float = Field(default=0.0, ge=0, alias="complexityScore")
    duplication_ratio: float = Field(default=0.0, ge=0, alias="duplicationRatio")
    responsibility_score: float = Field(default=0.0, ge=0, alias="responsibilityScore")
    coupling_score: float = Field(default=0.0, ge=0, alias="couplingScore")
    sprawl_score: float = Field(default=0.0, alias="sprawlScore")
    sprawl_level: SprawlLevel = Field(default="clean", alias="sprawlLevel")

    # Passthrough fields the scanner also reports.
    id: Optional[int] = None
    cyclomatic_complexity: Optional[float] = Field(default=None, alias="cyclomaticComplexity")
    duplicated_logic_score: Optional[float] = Field(default=None, alias="duplicatedLogicScore")
    ai_entropy_score: Optional[float] = Field(default=None, alias="aiEntropyScore")
    total_debt_score: Optional[float] = Field(default=None, alias="totalDebtScore")
    details: Optional[DebtDetails] = None


class FormulaBreakdown(BaseModel):
    dimension: str
    symbol: str
    name: str
    average_value: float = 0.0


class ScanSummary(BaseModel):
    file_count: int = 0
    average_score: float = 0.0
    overall_level: SprawlLevel = "clean"
    clean_count: int = 0
    problematic_count: int = 0
    breakdown: List[FormulaBreakdown] = Field(default_factory=list)
    # Share of the score gauge to fill, 0-1.
    gauge_fraction: float = 0.0


class TreeNode(BaseModel):
    """
    A node of the sprawl hierarchy.

    Interior nodes carry `children` and nothing else; leaves carry `size`
    (lines of code) and `score` (pre-scaled sprawl score) and no children.
    """

    name: str
    children: Optional[List["TreeNode"]] = None
    size: Optional[int] = None
    score: Optional[float] = None

    @model_validator(mode="after")
    def _check_variant(self) -> "TreeNode":
        if self.children is not None:
            if self.size is not None or self.score is not None:
                raise ValueError(f"interior node {self.name!r} cannot carry size or score")
        elif self.size is None or self.score is None:
            raise ValueError(f"leaf node {self.name!r} needs both size and score")
        return self

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    @classmethod
    def interior(cls, name: str) -> "TreeNode":
        return cls(name=name, children=[])

    @classmethod
    def leaf(cls, name: str, size: int, score: float) -> "TreeNode":
        return cls(name=name, size=size, score=score)


class ScanJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    status: ScanStatus
    repository_id: Optional[int] = Field(default=None, alias="repositoryId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    total_files: Optional[int] = Field(default=None, alias="totalFiles")
    analyzed_files: Optional[int] = Field(default=None, alias="analyzedFiles")
    avg_sprawl_score: Optional[float] = Field(default=None, alias="avgSprawlScore")
    avg_complexity: Optional[float] = Field(default=None, alias="avgComplexity")


class ScanStarted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scan_id: int = Field(alias="scanId")
    status: str = ScanStatus.PENDING.value


class ScanResults(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scan_id: int = Field(alias="scanId")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    metrics: List[FileDebtRecord] = Field(default_factory=list)


class Repository(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    owner: Optional[str] = None
    html_url: Optional[str] = Field(default=None, alias="htmlUrl")
    # Newest first when returned by the repository details endpoint.
    scans: List[ScanJob] = Field(default_factory=list)


class ErrorInfo(BaseModel):
    kind: Literal["transport", "scan_failed", "results_fetch"]
    message: str


class ScanOutcome(BaseModel):
    """Everything the consumer gets to see about one tracked scan."""

    repository_id: int
    scan_id: Optional[int] = None
    job: Optional[ScanJob] = None
    summary: Optional[ScanSummary] = None
    tree: Optional[TreeNode] = None
    pruned_tree: Optional[TreeNode] = None
    # Files and top-level items left out of `pruned_tree`.
    hidden_count: int = 0
    hidden_children: int = 0
    # Worst files first.
    files: List[FileDebtRecord] = Field(default_factory=list)
    error: Optional[ErrorInfo] = None

    @property
    def is_ready(self) -> bool:
        return self.summary is not None and self.tree is not None
