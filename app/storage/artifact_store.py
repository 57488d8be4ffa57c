import re
import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from app.logging.logger import Log
from app.storage.exceptions import ArtifactNotFound
from app.storage.models import Artifact

# Allows alphanumerics, dots, underscores and hyphens
SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")
ARTIFACT_NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")

MAX_SUFFIX_LENGTH = 120


def sanitize_suffix(suggested_name: str, fallback: str = "artifact") -> str:
    """Reduce a user-supplied file name to a filesystem-safe suffix.

    Example:
        >>> sanitize_suffix("../../etc/passwd")
        "passwd"
        >>> sanitize_suffix("My Report (final).pdf")
        "My-Report-final-.pdf"
    """
    cleaned = SANITIZE_PATTERN.sub("-", Path(suggested_name).name.strip())
    cleaned = cleaned.strip("-_.")[-MAX_SUFFIX_LENGTH:]
    return cleaned or fallback


class ArtifactStore:
    """Keeps generated files on ephemeral disk under collision-free names.

    Names are `<random token>_<sanitized suffix>`. Anyone holding a name can
    read the artifact until it is discarded or swept.
    """

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def put(self, data: bytes, suggested_name: str) -> Artifact:
        """Write bytes as a new artifact."""
        path = self._new_path(suggested_name)
        path.write_bytes(data)
        Log.debug(f"Stored artifact {path.name} ({len(data)} bytes)", artifact=path.name)
        return self._describe(path)

    def promote(self, source: Path, suggested_name: str) -> Artifact:
        """Move an existing scratch file into the store as a new artifact."""
        path = self._new_path(suggested_name)
        shutil.move(str(source), str(path))
        Log.debug(f"Promoted {source.name} to artifact {path.name}", artifact=path.name)
        return self._describe(path)

    def get(self, name: str) -> bytes:
        """Read an artifact's bytes.

        Raises:
            ArtifactNotFound: if the name is unsafe, unknown or already evicted.
        """
        path = self._resolve(name)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise ArtifactNotFound(name) from exc

    def discard(self, name: str) -> None:
        """Delete an artifact; unknown names are ignored."""
        try:
            self._resolve(name).unlink(missing_ok=True)
        except ArtifactNotFound:
            return

    def sweep(self, max_age: float, now: float | None = None) -> list[str]:
        """Delete every artifact whose modification time is older than max_age seconds.

        Errors on individual entries are logged and skipped.

        Returns:
            Names of the deleted artifacts.
        """
        now = time.time() if now is None else now
        removed: list[str] = []
        for entry in self._root.iterdir():
            try:
                if not entry.is_file():
                    continue
                if now - entry.stat().st_mtime <= max_age:
                    continue
                entry.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                Log.error(f"Failed to delete expired artifact {entry.name}: {exc}")
                continue
            removed.append(entry.name)
            Log.info(f"Deleted expired artifact {entry.name}")
        return removed

    def _new_path(self, suggested_name: str) -> Path:
        return self._root / f"{uuid.uuid4().hex}_{sanitize_suffix(suggested_name)}"

    def _resolve(self, name: str) -> Path:
        if not ARTIFACT_NAME_PATTERN.fullmatch(name):
            raise ArtifactNotFound(name)
        path = self._root / name
        if not path.is_file():
            raise ArtifactNotFound(name)
        return path

    def _describe(self, path: Path) -> Artifact:
        stat = path.stat()
        return Artifact(
            name=path.name,
            path=path,
            size=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
