class CompressionFailure(Exception):
    """Raised when no compression preset produced a candidate file."""
