import json
import re
import tempfile
from contextlib import ExitStack
from pathlib import Path

from app.compression.engine import CompressionEngine
from app.logging.logger import Log
from app.pdf.base import BaseDocumentModel
from app.pdf.exceptions import DocumentLoadError
from app.pdf.models import DocumentMetadata
from app.processor.exceptions import RequestError, ServiceUnavailable
from app.processor.models import (
    InputDocument,
    ResultDescriptor,
    ValidationReport,
    ValidationStatus,
)
from app.processor.pipeline import Operation, OperationContext
from app.ranges import selector
from app.storage.artifact_store import ArtifactStore, sanitize_suffix
from app.storage.models import Artifact
from app.tools.adapter import ExternalToolAdapter
from app.tools.exceptions import ToolUnavailable

RENAME_UNSAFE_PATTERN = re.compile(r"[^a-zA-Z0-9_.-]")


def _parse_int(value: object) -> int | None:
    """Lenient integer parsing for client-supplied numbers like "90" or 90.0."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def _artifact_descriptor(
    artifact: Artifact,
    filename: str | None = None,
    **extra: object,
) -> ResultDescriptor:
    return ResultDescriptor(
        artifact_ref=artifact.name,
        filename=filename or artifact.name,
        size=artifact.size,
        **extra,  # type: ignore[arg-type]
    )


class CompressOperation(Operation):
    name = "compress"
    failure_message = "Server error during compression"

    def __init__(self, engine: CompressionEngine) -> None:
        self._engine = engine

    def validate(self, context: OperationContext) -> None:
        super().validate(context)
        raw = context.param("targetSize")
        if raw is not None and _parse_int(raw) is None:
            raise RequestError("targetSize must be a whole number of bytes")

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        raw = context.param("targetSize")
        target_size = _parse_int(raw) if raw is not None else None
        result = self._engine.compress(doc, target_size)
        return _artifact_descriptor(
            result.artifact,
            original_size=result.original_size,
            warning=result.warning,
            message=result.message,
        )


class MergeOperation(Operation):
    name = "merge"
    failure_message = "Merge failed"
    missing_input_message = "At least 2 files required"
    min_inputs = 2
    max_inputs = None

    def __init__(self, documents: BaseDocumentModel, store: ArtifactStore) -> None:
        self._documents = documents
        self._store = store

    def execute(self, context: OperationContext) -> ResultDescriptor:
        with ExitStack() as stack:
            sources = [
                stack.enter_context(self._documents.load(doc.data)) for doc in context.inputs
            ]
            merged = stack.enter_context(self._documents.merge(sources))
            page_count = self._documents.page_count(merged)
            artifact = self._store.put(self._documents.save(merged), "merged.pdf")
        Log.info(f"Merged {len(sources)} documents into {page_count} pages")
        return _artifact_descriptor(artifact, page_count=page_count)


class _PageSelectionOperation(Operation):
    """Copies a parsed set of pages into a new document."""

    range_param: str
    preserve_order: bool
    output_prefix: str
    empty_selection_message: str

    def __init__(self, documents: BaseDocumentModel, store: ArtifactStore) -> None:
        self._documents = documents
        self._store = store

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        ranges = context.param(self.range_param) or ""
        with self._documents.load(doc.data) as source:
            pages = selector.parse(
                ranges,
                self._documents.page_count(source),
                preserve_order=self.preserve_order,
            )
            if not pages:
                raise RequestError(self.empty_selection_message)
            with self._documents.extract_pages(source, selector.to_zero_based(pages)) as output:
                page_count = self._documents.page_count(output)
                data = self._documents.save(output)
        artifact = self._store.put(data, f"{self.output_prefix}_{doc.filename}")
        Log.info(f"{self.name}: kept pages {pages}")
        return _artifact_descriptor(artifact, original_size=doc.size, page_count=page_count)


class SplitOperation(_PageSelectionOperation):
    name = "split"
    failure_message = "Failed to split PDF"
    required_params = {"pages": "Page range required"}
    range_param = "pages"
    preserve_order = False
    output_prefix = "split"
    empty_selection_message = "No valid pages selected"


class OrganiseOperation(_PageSelectionOperation):
    name = "organise"
    failure_message = "Failed to organise PDF"
    required_params = {"pageOrder": "Page order required"}
    range_param = "pageOrder"
    preserve_order = True
    output_prefix = "organised"
    empty_selection_message = "Invalid page order"


class RotateOperation(Operation):
    name = "rotate"
    failure_message = "Failed to rotate PDF"
    required_params = {"rotations": "Rotation data required"}

    def __init__(self, documents: BaseDocumentModel, store: ArtifactStore) -> None:
        self._documents = documents
        self._store = store

    def validate(self, context: OperationContext) -> None:
        super().validate(context)
        self.parse_rotations(context.param("rotations") or "")

    @staticmethod
    def parse_rotations(raw: str) -> dict[int, int]:
        """Decode a JSON object of page number -> degree delta.

        Entries whose key or value is not an integer are dropped.

        Raises:
            RequestError: if the value is not a JSON object.
        """
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RequestError("Rotation data must be valid JSON") from exc
        if not isinstance(decoded, dict):
            raise RequestError("Rotation data must be a JSON object")
        rotations: dict[int, int] = {}
        for key, value in decoded.items():
            page, delta = _parse_int(key), _parse_int(value)
            if page is None or delta is None:
                continue
            rotations[page] = delta
        return rotations

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        rotations = self.parse_rotations(context.param("rotations") or "")
        with self._documents.load(doc.data) as pdf:
            self._documents.rotate(pdf, rotations)
            page_count = self._documents.page_count(pdf)
            data = self._documents.save(pdf)
        artifact = self._store.put(data, f"rotated_{doc.filename}")
        return _artifact_descriptor(artifact, original_size=doc.size, page_count=page_count)


class ImageToPdfOperation(Operation):
    name = "image-to-pdf"
    failure_message = "Image conversion failed"
    missing_input_message = "No images uploaded"
    max_inputs = None

    def __init__(self, documents: BaseDocumentModel, store: ArtifactStore) -> None:
        self._documents = documents
        self._store = store

    def execute(self, context: OperationContext) -> ResultDescriptor:
        with self._documents.create() as pdf:
            added = sum(
                self._documents.embed_raster_page(pdf, image.data, image.media_type)
                for image in context.inputs
            )
            if added == 0:
                raise RequestError("No supported images uploaded (JPEG or PNG)")
            page_count = self._documents.page_count(pdf)
            data = self._documents.save(pdf)
        Log.info(f"Converted {added} of {len(context.inputs)} images to PDF pages")
        artifact = self._store.put(data, "converted.pdf")
        return _artifact_descriptor(artifact, page_count=page_count)


class MetadataOperation(Operation):
    name = "metadata"
    failure_message = "Metadata update failed"
    missing_input_message = "No PDF uploaded"

    def __init__(self, documents: BaseDocumentModel, store: ArtifactStore) -> None:
        self._documents = documents
        self._store = store

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        metadata = DocumentMetadata(
            title=context.param("title"),
            author=context.param("author"),
            subject=context.param("subject"),
            keywords=context.param("keywords"),
        )
        with self._documents.load(doc.data) as pdf:
            self._documents.set_metadata(pdf, metadata)
            data = self._documents.save(pdf)
        artifact = self._store.put(data, f"meta_{doc.filename}")
        return _artifact_descriptor(artifact, filename=doc.filename)


class ValidateOperation(Operation):
    name = "validate"
    failure_message = "Validation failed"

    def __init__(self, documents: BaseDocumentModel, risky_bytes: int) -> None:
        self._documents = documents
        self._risky_bytes = risky_bytes

    def inspect(self, doc: InputDocument) -> ValidationReport:
        """Classify a file as READY, RISKY or INVALID for submission."""
        try:
            pdf = self._documents.load(doc.data, allow_encrypted=True)
        except DocumentLoadError:
            return ValidationReport(
                status=ValidationStatus.INVALID,
                size=doc.size,
                message="Corrupted or not a valid PDF",
            )
        with pdf:
            if self._documents.is_encrypted(pdf):
                return ValidationReport(
                    status=ValidationStatus.INVALID,
                    size=doc.size,
                    message="PDF is password protected",
                )
            page_count = self._documents.page_count(pdf)
        if page_count == 0:
            return ValidationReport(
                status=ValidationStatus.INVALID,
                size=doc.size,
                page_count=0,
                message="PDF has no pages",
            )
        status = ValidationStatus.RISKY if doc.size > self._risky_bytes else ValidationStatus.READY
        return ValidationReport(status=status, size=doc.size, page_count=page_count)

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        report = self.inspect(doc)
        Log.info(f"Validated {doc.filename}: {report.status.value}")
        return ResultDescriptor(
            filename=doc.filename,
            size=report.size,
            page_count=report.page_count,
            status=report.status.value,
            message=report.message,
        )


class RenameOperation(Operation):
    name = "rename"
    failure_message = "Rename failed"
    required_params = {
        "rollNo": "Roll number required",
        "subject": "Subject required",
        "type": "Submission type required",
        "date": "Date required",
    }

    def __init__(self, store: ArtifactStore) -> None:
        self._store = store

    @staticmethod
    def submission_name(roll_no: str, subject: str, kind: str, date: str) -> str:
        """Build `<roll>_<subject>_<type>_<date>.pdf` with unsafe characters removed."""
        return RENAME_UNSAFE_PATTERN.sub("", f"{roll_no}_{subject}_{kind}_{date}.pdf")

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        filename = self.submission_name(
            context.param("rollNo") or "",
            context.param("subject") or "",
            context.param("type") or "",
            context.param("date") or "",
        )
        artifact = self._store.put(doc.data, filename)
        return _artifact_descriptor(artifact, filename=filename, original_size=doc.size)


class PdfToWordOperation(Operation):
    name = "pdf-to-word"
    failure_message = "Conversion failed. Service might be busy or file is too complex."
    target_format = "docx"

    def __init__(self, tools: ExternalToolAdapter, store: ArtifactStore) -> None:
        self._tools = tools
        self._store = store

    def execute(self, context: OperationContext) -> ResultDescriptor:
        doc = context.inputs[0]
        stem = Path(sanitize_suffix(doc.filename, fallback="document")).stem or "document"
        with tempfile.TemporaryDirectory(prefix="convert-") as scratch:
            scratch_dir = Path(scratch)
            source = scratch_dir / f"{stem}.pdf"
            source.write_bytes(doc.data)
            try:
                converted = self._tools.convert(source, scratch_dir, self.target_format)
            except ToolUnavailable as exc:
                raise ServiceUnavailable("Document conversion is not available") from exc
            artifact = self._store.promote(converted, converted.name)
        return _artifact_descriptor(artifact, filename=converted.name)
