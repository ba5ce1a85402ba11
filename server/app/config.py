import os
from typing import Optional, Tuple

SCANNER_API_URL: str = os.environ.get(
    "SPRAWL_SCANNER_API_URL", "http://localhost:3000/api"
).rstrip("/")

# Opaque credential forwarded to the scanner; never inspected here.
SCANNER_API_TOKEN: Optional[str] = os.environ.get("SPRAWL_SCANNER_API_TOKEN") or None

POLL_INTERVAL_SECONDS: float = float(os.environ.get("SPRAWL_POLL_INTERVAL", "2.0"))

REQUEST_TIMEOUT_SECONDS: float = 10.0

# Lower bounds of the mild, high and severe bands.
LEVEL_THRESHOLDS: Tuple[float, float, float] = (0.8, 1.2, 1.6)

# Maps typical sprawl scores (0-2) onto the renderer's 0-100 color domain.
SCORE_SCALE: float = 50.0

SEVERE_SCORE: float = 80.0
SEVERE_SURVIVOR_CAP: int = 50

DEFAULT_TREE_LIMIT: int = 100
