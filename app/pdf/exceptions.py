class DocumentModelError(Exception):
    """Base exception for in-process document manipulation errors."""


class DocumentLoadError(DocumentModelError):
    """Raised when input bytes are not a loadable, unlocked PDF."""
