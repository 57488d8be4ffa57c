class StorageError(Exception):
    """Base exception for artifact storage errors."""


class ArtifactNotFound(StorageError):
    """Raised when an artifact name does not resolve to a stored file."""
