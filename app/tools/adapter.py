import threading
from pathlib import Path

from app.logging.logger import Log
from app.tools.base import CommandRunner
from app.tools.exceptions import (
    ToolExecutionError,
    ToolTimeout,
    ToolUnavailable,
)

GHOSTSCRIPT_PRESETS = ("/prepress", "/printer", "/ebook", "/screen", "/default")

DETECT_TIMEOUT_SECONDS = 10.0
STDERR_LOG_LIMIT = 300


def safe_path(path: Path) -> str:
    """Absolute, forward-slash form of a path for use as a command argument."""
    return Path(path).resolve().as_posix()


class ExternalToolAdapter:
    """Single entry point for the quality-reduction and conversion binaries.

    Which binary is installed is detected on first use and remembered for the
    lifetime of the adapter, including a negative result. reset() forgets it.
    """

    COMPRESSION = "compression"
    CONVERSION = "conversion"

    def __init__(
        self,
        runner: CommandRunner,
        compression_binaries: list[str],
        conversion_binaries: list[str],
        timeout_seconds: float,
    ) -> None:
        self._runner = runner
        self._candidates = {
            self.COMPRESSION: list(compression_binaries),
            self.CONVERSION: list(conversion_binaries),
        }
        self._timeout_seconds = timeout_seconds
        self._located: dict[str, str | None] = {}
        self._lock = threading.Lock()

    def compression_binary(self) -> str | None:
        """Name of the first working quality-reduction binary, or None."""
        return self._locate(self.COMPRESSION)

    def conversion_binary(self) -> str | None:
        """Name of the first working document-conversion binary, or None."""
        return self._locate(self.CONVERSION)

    def reset(self) -> None:
        with self._lock:
            self._located.clear()

    def reduce_quality(self, input_path: Path, output_path: Path, preset: str) -> int:
        """Rewrite a PDF with a Ghostscript quality preset.

        Returns:
            Size in bytes of the written output.

        Raises:
            ValueError: if the preset is not a known PDFSETTINGS value.
            ToolUnavailable: if no compression binary is installed.
            ToolTimeout: if the binary exceeds the timeout.
            ToolExecutionError: on a non-zero exit or missing output.
        """
        if preset not in GHOSTSCRIPT_PRESETS:
            raise ValueError(f"Unknown preset '{preset}'. Choose from: {list(GHOSTSCRIPT_PRESETS)}")
        binary = self._require(self.COMPRESSION)
        args = [
            binary,
            "-sDEVICE=pdfwrite",
            "-dCompatibilityLevel=1.4",
            f"-dPDFSETTINGS={preset}",
            "-dSAFER",
            "-dNOPAUSE",
            "-dQUIET",
            "-dBATCH",
            f"-sOutputFile={safe_path(output_path)}",
            safe_path(input_path),
        ]
        Log.debug(f"Executing {' '.join(args)}")
        result = self._runner.run(args, timeout=self._timeout_seconds)
        if not result.ok:
            raise ToolExecutionError(
                f"{binary} exited with code {result.returncode}: "
                f"{result.stderr[:STDERR_LOG_LIMIT]}"
            )
        if not output_path.exists():
            raise ToolExecutionError(f"{binary} reported success but wrote no output")
        size = output_path.stat().st_size
        Log.info(f"Preset {preset} produced {size / 1024:.2f}KB")
        return size

    def convert(self, input_path: Path, output_dir: Path, target_format: str) -> Path:
        """Convert a document with the headless office suite.

        The converter's exit code is unreliable, so success is judged by the
        expected output file existing.

        Raises:
            ToolUnavailable: if no conversion binary is installed.
            ToolTimeout: if the binary exceeds the timeout.
            ToolExecutionError: if no output file was produced.
        """
        binary = self._require(self.CONVERSION)
        args = [
            binary,
            "--headless",
            "--infilter=writer_pdf_import",
            "--convert-to",
            target_format,
            "--outdir",
            safe_path(output_dir),
            safe_path(input_path),
        ]
        Log.debug(f"Executing {' '.join(args)}")
        result = self._runner.run(args, timeout=self._timeout_seconds)
        expected = output_dir / f"{input_path.stem}.{target_format}"
        if not expected.exists():
            raise ToolExecutionError(
                f"{binary} produced no {target_format} output "
                f"(exit code {result.returncode}): {result.stderr[:STDERR_LOG_LIMIT]}"
            )
        if not result.ok:
            Log.warning(f"{binary} exited with code {result.returncode} but wrote output")
        return expected

    def _require(self, kind: str) -> str:
        binary = self._locate(kind)
        if binary is None:
            raise ToolUnavailable(f"No {kind} binary found among {self._candidates[kind]}")
        return binary

    def _locate(self, kind: str) -> str | None:
        with self._lock:
            if kind not in self._located:
                self._located[kind] = self._find_binary(self._candidates[kind])
                if self._located[kind] is None:
                    Log.warning(f"No {kind} binary found among {self._candidates[kind]}")
                else:
                    Log.info(f"Using {kind} binary: {self._located[kind]}")
            return self._located[kind]

    def _find_binary(self, candidates: list[str]) -> str | None:
        timeout = min(DETECT_TIMEOUT_SECONDS, self._timeout_seconds)
        for name in candidates:
            try:
                result = self._runner.run([name, "--version"], timeout=timeout)
            except (ToolUnavailable, ToolTimeout):
                continue
            if result.ok:
                return name
        return None
