from dataclasses import dataclass

SUPPORTED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})


@dataclass(frozen=True)
class DocumentMetadata:
    """Info-dictionary fields a client may overwrite. None means leave as-is."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None

    def supplied(self) -> dict[str, str]:
        """Return only the non-empty fields, keyed by PDF metadata name."""
        fields = {
            "title": self.title,
            "author": self.author,
            "subject": self.subject,
            "keywords": self.keywords,
        }
        return {key: value for key, value in fields.items() if value}
