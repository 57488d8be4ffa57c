import tempfile
import uuid
from pathlib import Path

from app.compression.exceptions import CompressionFailure
from app.compression.models import CompressionAttempt, CompressionResult
from app.logging.logger import Log
from app.pdf.base import BaseDocumentModel
from app.processor.models import InputDocument
from app.storage.artifact_store import ArtifactStore
from app.tools.adapter import ExternalToolAdapter
from app.tools.exceptions import ToolExecutionError, ToolUnavailable

# Descending quality: each preset is expected to be smaller than the previous
PRESETS = ("/prepress", "/printer", "/ebook", "/screen")
DEFAULT_PRESET = "/ebook"

ALREADY_SMALL_MESSAGE = "File was already under target size (Original Quality Preserved)"
FALLBACK_WARNING = "Basic optimization only. Install Ghostscript for max compression."


class CompressionEngine:
    """Finds the best-quality output that fits a size target.

    Search order with a target: try presets from highest to lowest quality
    and keep the first candidate that fits. If none fits, keep the smallest.
    Without a target only the balanced default preset runs. When no
    quality-reduction binary is installed the document is structurally
    resaved in-process instead.
    """

    def __init__(
        self,
        tools: ExternalToolAdapter,
        documents: BaseDocumentModel,
        store: ArtifactStore,
        presets: tuple[str, ...] = PRESETS,
        default_preset: str = DEFAULT_PRESET,
    ) -> None:
        self._tools = tools
        self._documents = documents
        self._store = store
        self._presets = presets
        self._default_preset = default_preset

    def compress(self, doc: InputDocument, target_size: int | None = None) -> CompressionResult:
        """Produce one compressed artifact for the document.

        Args:
            doc: PDF to compress.
            target_size: Desired maximum size in bytes. Values <= 0 are never
                met, so every preset runs and the smallest output wins.

        Raises:
            CompressionFailure: if every preset invocation failed.
            DocumentLoadError: if the fallback path cannot load the document.
            ToolTimeout: if a preset run exceeds the tool timeout.
        """
        output_name = f"compressed_{doc.filename}"

        if _meets_target(doc.size, target_size):
            Log.info(f"Skipping compression: {doc.size} <= {target_size}")
            artifact = self._store.put(doc.data, output_name)
            return CompressionResult(
                artifact=artifact,
                original_size=doc.size,
                message=ALREADY_SMALL_MESSAGE,
            )

        if self._tools.compression_binary() is None:
            return self._fallback(doc, output_name)

        presets = self._presets if target_size is not None else (self._default_preset,)
        with tempfile.TemporaryDirectory(prefix="compress-") as scratch:
            scratch_dir = Path(scratch)
            source = scratch_dir / "input.pdf"
            source.write_bytes(doc.data)

            best = self._search(source, scratch_dir, presets, target_size)
            if best is None:
                raise CompressionFailure("Could not compress file")
            artifact = self._store.promote(best.path, output_name)

        Log.info(
            f"Compressed {doc.size} -> {artifact.size} bytes with preset {best.preset}"
        )
        return CompressionResult(
            artifact=artifact,
            original_size=doc.size,
            preset=best.preset,
        )

    def _search(
        self,
        source: Path,
        scratch_dir: Path,
        presets: tuple[str, ...],
        target_size: int | None,
    ) -> CompressionAttempt | None:
        best: CompressionAttempt | None = None
        for preset in presets:
            attempt = self._attempt(source, scratch_dir, preset)
            if attempt is None:
                continue
            if _meets_target(attempt.size, target_size):
                _discard(best)
                Log.info(f"Preset {preset} met target {target_size} ({attempt.size} bytes)")
                return attempt
            if best is None or attempt.size < best.size:
                _discard(best)
                best = attempt
            else:
                _discard(attempt)
        return best

    def _attempt(
        self, source: Path, scratch_dir: Path, preset: str
    ) -> CompressionAttempt | None:
        output = scratch_dir / f"comp_{preset.lstrip('/')}_{uuid.uuid4().hex}.pdf"
        try:
            size = self._tools.reduce_quality(source, output, preset)
        except (ToolExecutionError, ToolUnavailable) as exc:
            Log.error(f"Compression step {preset} failed: {exc}")
            output.unlink(missing_ok=True)
            return None
        return CompressionAttempt(preset=preset, size=size, path=output)

    def _fallback(self, doc: InputDocument, output_name: str) -> CompressionResult:
        Log.warning("Ghostscript not found. Using in-process structural optimization.")
        artifact = self._store.put(self._documents.optimize(doc.data), output_name)
        return CompressionResult(
            artifact=artifact,
            original_size=doc.size,
            warning=FALLBACK_WARNING,
        )


def _discard(attempt: CompressionAttempt | None) -> None:
    if attempt is not None:
        attempt.path.unlink(missing_ok=True)


def _meets_target(size: int, target_size: int | None) -> bool:
    return target_size is not None and 0 < target_size and size <= target_size
