"""Errors - The single error type raised by fluent_request.

Every fallible operation (URL parsing, sending, reading a response body,
loading configuration) raises Error. Underlying failures from the standard
library and httpx are converted with Error.wrap(), which keeps the original
exception chained as __cause__ but exposes only a description string.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx

# Failure types that convert into Error without call-site boilerplate.
CONVERTIBLE_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    UnicodeError,
    httpx.HTTPError,
    httpx.StreamError,
    httpx.InvalidURL,
)

UNKNOWN_ERROR_MESSAGE = "Unknown error"


class Error(Exception):
    """Unified error wrapping any underlying failure cause."""

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self._description = description

    @property
    def description(self) -> str:
        """Human-readable description derived from the wrapped cause."""
        return self._description

    def __str__(self) -> str:
        return self._description

    def __repr__(self) -> str:
        return f"Error({self._description!r})"

    @classmethod
    def wrap(cls, cause: Any) -> Error:
        """Convert a failure value into an Error.

        Strings become the description. Exceptions of a recognized type
        (I/O, transport, malformed URL, decoding) are described by their
        message, falling back to the exception class name when the message
        is empty. Anything else is a programming error and raises TypeError.
        """
        if isinstance(cause, Error):
            return cause
        if isinstance(cause, str):
            return cls(cause)
        if isinstance(cause, CONVERTIBLE_ERRORS):
            error = cls(str(cause) or type(cause).__name__)
            error.__cause__ = cause
            return error
        raise TypeError(f"Cannot convert {type(cause).__name__} into Error")


@contextmanager
def converting_errors() -> Iterator[None]:
    """Re-raise recognized failures inside the block as Error.

    Usage:
        with converting_errors():
            response = client.send(request)
    """
    try:
        yield
    except Error:
        raise
    except CONVERTIBLE_ERRORS as e:
        raise Error.wrap(e) from e
