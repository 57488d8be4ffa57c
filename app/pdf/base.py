from abc import ABC, abstractmethod
from typing import Any, Generic, Protocol, TypeVar

from app.pdf.models import DocumentMetadata


class DocumentHandle(Protocol):
    """Engine-specific open document. Callers close handles with `with`."""

    def __enter__(self) -> Any: ...

    def __exit__(self, *exc_info: object) -> Any: ...


DocumentT = TypeVar("DocumentT", bound=DocumentHandle)


class BaseDocumentModel(ABC, Generic[DocumentT]):
    """Contract for in-process PDF structure manipulation adapters."""

    @abstractmethod
    def load(self, data: bytes, allow_encrypted: bool = False) -> DocumentT:
        """Parse PDF bytes into a document handle.

        Args:
            data: Raw PDF file content.
            allow_encrypted: Accept password-protected files (for inspection).

        Returns:
            An open document handle.

        Raises:
            DocumentLoadError: if the bytes are corrupt, truncated, not a PDF,
                have no pages, or are password-protected while
                allow_encrypted is False.
        """

    @abstractmethod
    def create(self) -> DocumentT:
        """Return a new empty document."""

    @abstractmethod
    def merge(self, docs: list[DocumentT]) -> DocumentT:
        """Concatenate documents into a new one, pages in exact input order.

        Raises:
            DocumentLoadError: if a source document is damaged.
        """

    @abstractmethod
    def extract_pages(self, doc: DocumentT, indices: list[int]) -> DocumentT:
        """Copy the pages at the given 0-based indices, in the given order.

        Duplicated indices yield duplicated pages.

        Raises:
            ValueError: if an index is outside the document.
            DocumentLoadError: if the source document is damaged.
        """

    @abstractmethod
    def embed_raster_page(self, doc: DocumentT, image_bytes: bytes, mime_type: str) -> bool:
        """Append one page showing the image at its native pixel size.

        Returns:
            True if a page was added, False if the image was skipped because
            its type is unsupported or it could not be decoded.
        """

    @abstractmethod
    def rotate(self, doc: DocumentT, rotation_map: dict[int, int]) -> None:
        """Add degree deltas to the rotation of 1-based pages.

        Resulting rotations are normalized to [0, 360). Pages outside the
        document and deltas that are not multiples of 90 are ignored.
        """

    @abstractmethod
    def set_metadata(self, doc: DocumentT, metadata: DocumentMetadata) -> None:
        """Overwrite the supplied metadata fields and stamp the producer tag."""

    @abstractmethod
    def is_encrypted(self, doc: DocumentT) -> bool:
        """Whether the document carries an encryption dictionary."""

    @abstractmethod
    def page_count(self, doc: DocumentT) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def save(self, doc: DocumentT) -> bytes:
        """Serialize the document to PDF bytes.

        Raises:
            DocumentLoadError: if the document cannot be written out.
        """

    @abstractmethod
    def optimize(self, data: bytes) -> bytes:
        """Structurally resave PDF bytes without resampling images.

        Raises:
            DocumentLoadError: if the bytes cannot be loaded.
        """
