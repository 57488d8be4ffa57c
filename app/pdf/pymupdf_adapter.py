import pymupdf

from app.logging.logger import Log
from app.pdf.base import BaseDocumentModel
from app.pdf.exceptions import DocumentLoadError
from app.pdf.models import SUPPORTED_IMAGE_TYPES, DocumentMetadata

# MuPDF reports damaged object graphs as RuntimeError or ValueError
MUPDF_ERRORS = (RuntimeError, ValueError)


class PyMuPdfDocumentModel(BaseDocumentModel[pymupdf.Document]):
    """Loads, edits and saves PDFs in-process using PyMuPDF."""

    def __init__(self, producer_tag: str) -> None:
        self._producer_tag = producer_tag

    def load(self, data: bytes, allow_encrypted: bool = False) -> pymupdf.Document:
        try:
            doc = pymupdf.open(stream=data, filetype="pdf")  # type: ignore[no-untyped-call]
        except Exception as exc:
            raise DocumentLoadError(f"pymupdf could not open document: {exc}") from exc
        if doc.needs_pass:
            if allow_encrypted:
                return doc
            doc.close()
            raise DocumentLoadError("Document is password protected")
        if doc.page_count == 0:
            doc.close()
            raise DocumentLoadError("Document has no pages")
        if doc.is_repaired:
            self._check_repaired(doc)
        return doc

    def _check_repaired(self, doc: pymupdf.Document) -> None:
        # Repair can recover a page tree whose objects are missing
        # (truncated upload); copying every page touches them all.
        Log.warning("Document needed repair on open, checking its objects")
        try:
            with pymupdf.open() as scratch:  # type: ignore[no-untyped-call]
                scratch.insert_pdf(doc)
        except Exception as exc:
            doc.close()
            raise DocumentLoadError(f"Document is damaged beyond repair: {exc}") from exc

    def create(self) -> pymupdf.Document:
        return pymupdf.open()  # type: ignore[no-untyped-call]

    def merge(self, docs: list[pymupdf.Document]) -> pymupdf.Document:
        merged = self.create()
        try:
            for doc in docs:
                merged.insert_pdf(doc)
        except MUPDF_ERRORS as exc:
            merged.close()
            raise DocumentLoadError(f"Could not copy pages while merging: {exc}") from exc
        return merged

    def extract_pages(self, doc: pymupdf.Document, indices: list[int]) -> pymupdf.Document:
        for index in indices:
            if not 0 <= index < doc.page_count:
                raise ValueError(f"Page index {index} outside document of {doc.page_count} pages")
        extracted = self.create()
        try:
            for index in indices:
                extracted.insert_pdf(doc, from_page=index, to_page=index)
        except MUPDF_ERRORS as exc:
            extracted.close()
            raise DocumentLoadError(f"Could not copy page {index + 1}: {exc}") from exc
        return extracted

    def embed_raster_page(
        self, doc: pymupdf.Document, image_bytes: bytes, mime_type: str
    ) -> bool:
        if mime_type.lower() not in SUPPORTED_IMAGE_TYPES:
            Log.warning(f"Skipping image of unsupported type '{mime_type}'")
            return False
        try:
            pixmap = pymupdf.Pixmap(image_bytes)
        except Exception as exc:
            Log.warning(f"Skipping undecodable {mime_type} image: {exc}")
            return False
        page = doc.new_page(width=pixmap.width, height=pixmap.height)
        try:
            page.insert_image(page.rect, stream=image_bytes)
        except Exception as exc:
            doc.delete_page(page.number)
            Log.warning(f"Skipping {mime_type} image that could not be embedded: {exc}")
            return False
        return True

    def rotate(self, doc: pymupdf.Document, rotation_map: dict[int, int]) -> None:
        for page_number, delta in rotation_map.items():
            index = page_number - 1
            if not 0 <= index < doc.page_count:
                continue
            if delta % 90 != 0:
                Log.warning(f"Ignoring rotation of {delta} degrees for page {page_number}")
                continue
            page = doc[index]
            page.set_rotation((page.rotation + delta) % 360)

    def set_metadata(self, doc: pymupdf.Document, metadata: DocumentMetadata) -> None:
        fields = metadata.supplied()
        if "keywords" in fields:
            fields["keywords"] = _normalize_keywords(fields["keywords"])
        # producer goes last so it always wins
        fields["producer"] = self._producer_tag
        doc.set_metadata(fields)

    def is_encrypted(self, doc: pymupdf.Document) -> bool:
        if doc.needs_pass:
            return True
        return bool((doc.metadata or {}).get("encryption"))

    def page_count(self, doc: pymupdf.Document) -> int:
        return doc.page_count

    def save(self, doc: pymupdf.Document) -> bytes:
        try:
            return doc.tobytes(garbage=3, deflate=True)
        except MUPDF_ERRORS as exc:
            raise DocumentLoadError(f"Could not write document: {exc}") from exc

    def optimize(self, data: bytes) -> bytes:
        with self.load(data) as doc:
            try:
                return doc.tobytes(garbage=4, deflate=True, clean=True)
            except MUPDF_ERRORS as exc:
                raise DocumentLoadError(f"Could not optimize document: {exc}") from exc


def _normalize_keywords(keywords: str) -> str:
    return ", ".join(part.strip() for part in keywords.split(",") if part.strip())
