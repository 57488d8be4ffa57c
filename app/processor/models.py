from dataclasses import dataclass
from enum import Enum

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class InputDocument:
    """One uploaded file as handed over by the request layer."""

    data: bytes
    media_type: str = PDF_MEDIA_TYPE
    filename: str = "document.pdf"

    @property
    def size(self) -> int:
        return len(self.data)


class ValidationStatus(str, Enum):
    READY = "READY"
    RISKY = "RISKY"
    INVALID = "INVALID"


@dataclass(frozen=True)
class ValidationReport:
    """Submission-readiness verdict for a single file."""

    status: ValidationStatus
    size: int
    page_count: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class ResultDescriptor:
    """Normalized outcome of a successful operation."""

    filename: str
    size: int
    artifact_ref: str | None = None
    original_size: int | None = None
    page_count: int | None = None
    warning: str | None = None
    message: str | None = None
    status: str | None = None

    @property
    def url(self) -> str | None:
        if self.artifact_ref is None:
            return None
        return f"/download/{self.artifact_ref}"

    def to_payload(self) -> dict[str, object]:
        """Client-facing JSON shape; unset fields are omitted."""
        payload: dict[str, object | None] = {
            "url": self.url,
            "filename": self.filename,
            "size": self.size,
            "originalSize": self.original_size,
            "pageCount": self.page_count,
            "warning": self.warning,
            "message": self.message,
            "status": self.status,
        }
        return {key: value for key, value in payload.items() if value is not None}
