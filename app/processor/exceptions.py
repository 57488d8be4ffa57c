class OperationError(Exception):
    """Base exception for a failed operation; the message is client-safe."""

    status_code = 500


class RequestError(OperationError):
    """Raised when inputs or parameters are missing or invalid."""

    status_code = 400


class PayloadTooLarge(RequestError):
    """Raised when the uploaded files exceed the per-request ceiling."""

    status_code = 413


class ServiceUnavailable(OperationError):
    """Raised when an operation needs a tool that is not installed."""

    status_code = 503
