from dataclasses import dataclass
from pathlib import Path

from app.storage.models import Artifact


@dataclass(frozen=True)
class CompressionAttempt:
    """Candidate output of one preset run, alive only during a search."""

    preset: str
    size: int
    path: Path


@dataclass(frozen=True)
class CompressionResult:
    """Promoted compression output."""

    artifact: Artifact
    original_size: int
    preset: str | None = None
    warning: str | None = None
    message: str | None = None
