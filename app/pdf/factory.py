from collections.abc import Callable

from app.config.settings import Settings
from app.pdf.base import BaseDocumentModel
from app.pdf.pymupdf_adapter import PyMuPdfDocumentModel


class DocumentModelFactory:
    """Creates the document model adapter named by settings."""

    ADAPTERS: dict[str, Callable[[Settings], BaseDocumentModel]] = {
        "pymupdf": lambda settings: PyMuPdfDocumentModel(producer_tag=settings.producer_tag),
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentModel:
        engine = settings.document_engine.lower()
        builder = cls.ADAPTERS.get(engine)
        if builder is None:
            raise ValueError(
                f"Unknown document engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return builder(settings)
