"""Error types raised by the polling pipeline.

Transport failures carry their kind directly so retry and logging code never
has to dig through wrapped causes.
"""

from __future__ import annotations

from enum import Enum


class ReviewistError(Exception):
    """Base class for all reviewist errors."""


class TransportErrorKind(str, Enum):
    CONNECTION_RESET = "connection_reset"
    TIMEOUT = "timeout"
    OTHER = "other"


class TransportError(ReviewistError):
    """The request never produced an HTTP response."""

    def __init__(self, kind: TransportErrorKind, url: str, message: str = ""):
        self.kind = kind
        self.url = url
        super().__init__(f"{kind.value} while requesting {url}" + (f": {message}" if message else ""))


class ParseError(ReviewistError):
    """A response body could not be decoded into the expected shape."""


class UnrecognizedStatusError(ReviewistError):
    def __init__(self, status: int, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(f"Unrecognized response status {status}" + (f" for {url}" if url else ""))


class ConfigError(ReviewistError):
    """Required configuration is missing. Fatal at startup."""


RETRYABLE_ERRORS: tuple[type[Exception], ...] = (TransportError, UnrecognizedStatusError)
