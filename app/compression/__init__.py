from app.compression.engine import CompressionEngine
from app.compression.exceptions import CompressionFailure
from app.compression.models import CompressionResult

__all__ = ["CompressionEngine", "CompressionFailure", "CompressionResult"]
