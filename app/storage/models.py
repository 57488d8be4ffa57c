from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class Artifact:
    """Generated output file available for download until evicted."""

    name: str
    path: Path
    size: int
    created_at: datetime
