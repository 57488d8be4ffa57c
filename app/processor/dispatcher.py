from collections.abc import Iterable, Mapping
from pathlib import Path

from app.compression import CompressionEngine, CompressionFailure
from app.config.settings import Settings
from app.logging.logger import Log
from app.pdf.exceptions import DocumentLoadError
from app.pdf.factory import DocumentModelFactory
from app.processor.exceptions import OperationError, PayloadTooLarge, RequestError
from app.processor.models import InputDocument, ResultDescriptor
from app.processor.operations import (
    CompressOperation,
    ImageToPdfOperation,
    MergeOperation,
    MetadataOperation,
    OrganiseOperation,
    PdfToWordOperation,
    RenameOperation,
    RotateOperation,
    SplitOperation,
    ValidateOperation,
)
from app.processor.pipeline import Operation, OperationContext, RequestState
from app.storage.artifact_store import ArtifactStore
from app.storage.exceptions import ArtifactNotFound
from app.tools.adapter import ExternalToolAdapter
from app.tools.base import CommandRunner
from app.tools.exceptions import ToolError, ToolExecutionError, ToolTimeout, ToolUnavailable
from app.tools.subprocess_runner import SubprocessRunner

# Typed failures that pass through dispatch() unchanged
COMPONENT_FAILURES: tuple[type[Exception], ...] = (
    OperationError,
    DocumentLoadError,
    CompressionFailure,
    ToolError,
)

NOT_FOUND_MESSAGE = "File not found or expired"


class Dispatcher:
    """Routes one operation request to its handler and normalizes the outcome.

    Request lifecycle: received -> validated -> executing -> succeeded/failed.
    A failed request is never retried; the client resubmits.
    """

    def __init__(
        self,
        operations: Iterable[Operation],
        store: ArtifactStore,
        max_upload_bytes: int,
        tools: ExternalToolAdapter | None = None,
    ) -> None:
        self._operations = {operation.name: operation for operation in operations}
        self._store = store
        self._max_upload_bytes = max_upload_bytes
        self._tools = tools

    @property
    def operations(self) -> list[str]:
        return list(self._operations)

    @property
    def store(self) -> ArtifactStore:
        return self._store

    def warm_up(self) -> None:
        """Look up the external binaries once so the first request does not pay for it."""
        if self._tools is None:
            return
        self._tools.compression_binary()
        self._tools.conversion_binary()

    def dispatch(
        self,
        operation: str,
        inputs: list[InputDocument],
        params: Mapping[str, str] | None = None,
    ) -> ResultDescriptor:
        """Validate and execute one operation.

        Raises:
            RequestError: for missing/invalid inputs, before any component runs.
            DocumentLoadError, CompressionFailure, ToolError: component failures.
            OperationError: for any other failure.
        """
        context = OperationContext(
            operation=operation,
            inputs=list(inputs),
            params={key: str(value) for key, value in (params or {}).items()},
        )
        Log.info(
            f"Received {operation} request with {len(context.inputs)} file(s)",
            operation=operation,
            upload_bytes=context.input_size,
        )
        handler = self._operations.get(operation)
        try:
            if handler is None:
                raise RequestError(f"Unknown operation '{operation}'")
            self._check_upload_size(context)
            handler.validate(context)
            context.advance(RequestState.VALIDATED)

            context.advance(RequestState.EXECUTING)
            context.descriptor = handler.execute(context)
            context.advance(RequestState.SUCCEEDED)
        except COMPONENT_FAILURES as exc:
            self._fail(context, exc)
            raise
        except Exception as exc:
            self._fail(context, exc)
            Log.exception(f"Unexpected failure in {operation}", operation=operation)
            message = handler.failure_message if handler is not None else "Operation failed"
            raise OperationError(message) from exc

        Log.info(
            f"{operation} succeeded: {context.descriptor.filename}",
            operation=operation,
            artifact=context.descriptor.artifact_ref,
        )
        return context.descriptor

    def respond(
        self,
        operation: str,
        inputs: list[InputDocument],
        params: Mapping[str, str] | None = None,
    ) -> tuple[int, dict[str, object]]:
        """Dispatch and map the outcome to (status code, JSON-ready payload)."""
        try:
            descriptor = self.dispatch(operation, inputs, params)
        except Exception as exc:
            return error_response(exc)
        return 200, descriptor.to_payload()

    def download(self, name: str) -> bytes:
        """Return an artifact's bytes.

        Raises:
            ArtifactNotFound: if the artifact does not exist or was evicted.
        """
        return self._store.get(name)

    def retrieve(self, name: str) -> tuple[int, bytes | dict[str, object]]:
        """Download with not-found mapped to a 404 payload."""
        try:
            return 200, self.download(name)
        except ArtifactNotFound:
            return 404, {"error": NOT_FOUND_MESSAGE}

    def _check_upload_size(self, context: OperationContext) -> None:
        if context.input_size > self._max_upload_bytes:
            raise PayloadTooLarge(
                f"Upload exceeds the {self._max_upload_bytes // (1024 * 1024)}MB limit"
            )

    def _fail(self, context: OperationContext, exc: Exception) -> None:
        context.error_message = str(exc)
        context.advance(RequestState.FAILED)
        Log.error(
            f"{context.operation} failed: {context.error_message}",
            operation=context.operation,
            error_type=type(exc).__name__,
        )


def error_response(exc: Exception) -> tuple[int, dict[str, object]]:
    """Map a failure to a client payload without internal paths or traces."""
    if isinstance(exc, OperationError):
        return exc.status_code, {"error": str(exc)}
    if isinstance(exc, DocumentLoadError):
        return 422, {"error": "Corrupted, password protected or not a valid PDF"}
    if isinstance(exc, CompressionFailure):
        return 500, {"error": "Could not compress file"}
    if isinstance(exc, ToolTimeout):
        return 504, {"error": "Processing took too long and was stopped"}
    if isinstance(exc, ToolUnavailable):
        return 503, {"error": "A required processing tool is not installed"}
    if isinstance(exc, ToolExecutionError):
        return 500, {"error": "Processing tool failed"}
    if isinstance(exc, ArtifactNotFound):
        return 404, {"error": NOT_FOUND_MESSAGE}
    return 500, {"error": "Operation failed"}


def build_dispatcher(
    settings: Settings,
    runner: CommandRunner | None = None,
    store: ArtifactStore | None = None,
) -> Dispatcher:
    """Build a Dispatcher with all required adapters."""
    store = store if store is not None else ArtifactStore(Path(settings.artifact_dir))
    documents = DocumentModelFactory.create(settings)
    tools = ExternalToolAdapter(
        runner=runner if runner is not None else SubprocessRunner(),
        compression_binaries=settings.compression_binaries,
        conversion_binaries=settings.conversion_binaries,
        timeout_seconds=settings.tool_timeout_seconds,
    )
    engine = CompressionEngine(tools=tools, documents=documents, store=store)
    operations: list[Operation] = [
        CompressOperation(engine),
        MergeOperation(documents, store),
        SplitOperation(documents, store),
        OrganiseOperation(documents, store),
        RotateOperation(documents, store),
        ImageToPdfOperation(documents, store),
        MetadataOperation(documents, store),
        ValidateOperation(documents, settings.validation_risky_bytes),
        RenameOperation(store),
        PdfToWordOperation(tools, store),
    ]
    return Dispatcher(
        operations=operations,
        store=store,
        max_upload_bytes=settings.max_upload_bytes,
        tools=tools,
    )
