from typing import List, Sequence

from app.config import LEVEL_THRESHOLDS
from app.models import FileDebtRecord, FormulaBreakdown, ScanSummary, SprawlLevel

# (attribute, symbol, display name) in formula order: S = w1N + w2C + w3D + w4R + w5K
FORMULA_DIMENSIONS = (
    ("normalized_loc", "N", "Normalized LOC"),
    ("complexity_score", "C", "Complexity"),
    ("duplication_ratio", "D", "Duplication"),
    ("responsibility_score", "R", "Responsibility"),
    ("coupling_score", "K", "Coupling"),
)

PROBLEMATIC_LEVELS = ("high", "severe")


def classify_score(score: float) -> SprawlLevel:
    """
    Map a sprawl score onto its level band.

    Each band includes its lower bound and excludes its upper bound; the
    severe band is unbounded above.
    """
    mild, high, severe = LEVEL_THRESHOLDS
    if score < mild:
        return "clean"
    if score < high:
        return "mild"
    if score < severe:
        return "high"
    return "severe"


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def formula_breakdown(records: Sequence[FileDebtRecord]) -> List[FormulaBreakdown]:
    return [
        FormulaBreakdown(
            dimension=attr,
            symbol=symbol,
            name=name,
            average_value=_mean([getattr(r, attr) for r in records]),
        )
        for attr, symbol, name in FORMULA_DIMENSIONS
    ]


def aggregate(records: Sequence[FileDebtRecord]) -> ScanSummary:
    """
    Roll per-file records up into a scan summary.

    The average score is the plain mean of each file's sprawl score, not a
    recombination of the dimension means. Clean and problematic counts use
    the scanner's per-file level, while the overall level is classified
    here from the average.
    """
    records = list(records)
    average = _mean([r.sprawl_score for r in records])

    return ScanSummary(
        file_count=len(records),
        average_score=average,
        overall_level=classify_score(average),
        clean_count=sum(1 for r in records if r.sprawl_level == "clean"),
        problematic_count=sum(1 for r in records if r.sprawl_level in PROBLEMATIC_LEVELS),
        breakdown=formula_breakdown(records),
        gauge_fraction=gauge_fraction(average),
    )


def rank_by_score(records: Sequence[FileDebtRecord]) -> List[FileDebtRecord]:
    return sorted(records, key=lambda r: r.sprawl_score, reverse=True)


def gauge_fraction(score: float) -> float:
    # The gauge tops out at a score of 2.0.
    return max(0.0, min(score / 2.0, 1.0))
