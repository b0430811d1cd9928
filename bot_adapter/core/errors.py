"""Error taxonomy shared by the fetch layer, the timeout wrapper and the facade."""
from __future__ import annotations


class AdapterError(Exception):
    """Base class for every failure raised by this package."""


class ServiceUnavailable(AdapterError):
    """A required external service was not resolvable at startup."""

    def __init__(self, service: str, hint: str | None = None) -> None:
        message = f"{service} service not available"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)
        self.service = service


class TimeoutExceeded(AdapterError, TimeoutError):
    def __init__(self, timeout_ms: int, message: str | None = None) -> None:
        super().__init__(message or f"Operation timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms


class FetchError(AdapterError):
    """Remote bytes could not be retrieved or fully read."""

    def __init__(self, message: str, *, source: str = "<bytes>", status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class MalformedServiceResult(AdapterError):
    def __init__(self, service: str, raw: object) -> None:
        super().__init__(f"{service} returned an unexpected result: {type(raw).__name__}")
        self.service = service
        self.raw = raw
