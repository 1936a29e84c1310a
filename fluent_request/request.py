"""Request - Single-use builder for one HTTP exchange.

Builder methods return a new Request and consume the receiver, so a stale
intermediate builder cannot be sent by accident. Two terminal operations
exist, with different failure semantics:

    send()      Buffered-body policy. Raises Error for non-2xx statuses
                (description = response body text, or "Unknown error").
                Returns the whole body as bytes for 2xx statuses.
    send_raw()  Raw-response policy. No status check, no buffering. Returns a
                RawResponse; the caller checks the status and reads the body.

Both raise Error for transport failures. Nothing is retried.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Iterator
from typing import Any
from urllib.parse import urlencode

import httpx

from fluent_request.errors import UNKNOWN_ERROR_MESSAGE, Error, converting_errors
from fluent_request.models import Body

logger = logging.getLogger(__name__)

# Largest Content-Length trusted for pre-sizing the body buffer.
MAX_PRESIZE_BYTES = 1 << 20


class Request:
    """Accumulates path, query, headers and body, then sends once.

    Created by Connection.request(). The client is shared with the
    originating Connection; url and headers are this request's own copies.
    """

    def __init__(
        self,
        client: httpx.Client,
        url: httpx.URL,
        method: str,
        headers: httpx.Headers | None = None,
        body: Body | None = None,
    ) -> None:
        self._client = client
        self._url = url
        self._method = method
        self._headers = headers
        self._body = body
        self._consumed = False

    @property
    def url(self) -> httpx.URL:
        return self._url

    @property
    def method(self) -> str:
        return self._method

    @property
    def headers(self) -> httpx.Headers | None:
        return self._headers

    @property
    def body(self) -> Body | None:
        return self._body

    @property
    def consumed(self) -> bool:
        """True once a builder method or terminal operation has used this request."""
        return self._consumed

    # -------------------------------------------------------------------------
    # Builder methods
    # -------------------------------------------------------------------------

    def with_path(self, path: str) -> Request:
        """Replace the URL path. Calling twice keeps only the last path."""
        if not path.startswith("/"):
            path = "/" + path
        with converting_errors():
            url = self._url.copy_with(path=path)
        return self._derive(url=url)

    def with_query(self, pairs: Iterable[tuple[str, str]]) -> Request:
        """Append query parameters in order, keeping duplicates and existing parameters.

        Pairs are form-urlencoded (spaces become '+').
        """
        encoded = urlencode(list(pairs)).encode("ascii")
        if not encoded:
            return self._derive()

        existing = self._url.query
        query = existing + b"&" + encoded if existing else encoded
        with converting_errors():
            url = self._url.copy_with(query=query)
        return self._derive(url=url)

    def with_header(self, name: str, value: str) -> Request:
        """Add one header value. Existing values for the same name are kept."""
        items: list[tuple[bytes | str, bytes | str]] = (
            list(self._headers.raw) if self._headers is not None else []
        )
        items.append((name, value))
        return self._derive(headers=httpx.Headers(items))

    def with_headers(self, headers: Any) -> Request:
        """Merge a header set into this request's headers.

        Names present in headers replace all existing values for that name.
        """
        merged = httpx.Headers(self._headers)
        merged.update(headers)
        return self._derive(headers=merged)

    def with_body(self, data: bytes | bytearray | memoryview | Body, *, owned: bool = False) -> Request:
        """Set the request body.

        By default the caller's buffer is borrowed without copying, and must
        not change until the request is sent. Pass owned=True to store an
        independent copy instead. A Body is stored as given.
        """
        if isinstance(data, Body):
            body = data
        elif owned:
            body = Body.owned(data)
        else:
            body = Body.borrowed(data)
        return self._derive(body=body)

    # -------------------------------------------------------------------------
    # Terminal operations
    # -------------------------------------------------------------------------

    def send(self) -> bytes:
        """Send the request and return the full response body.

        Redirects are not followed (httpx default), so a 3xx status is a
        failure like any other non-2xx status.

        Raises:
            Error: On transport failure, on a read failure, or when the status
                is not 2xx (description is the response body text).
        """
        response = self._dispatch()
        try:
            if not response.is_success:
                raise Error(_failure_message(response))
            return _read_body(response)
        finally:
            response.close()

    def send_raw(self) -> RawResponse:
        """Send the request and return the unread response.

        The caller must close the returned RawResponse (or use it as a
        context manager) once done with the body.

        Raises:
            Error: On transport failure only.
        """
        return RawResponse(self._dispatch())

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _ensure_usable(self) -> None:
        if self._consumed:
            raise Error("Request has already been consumed")

    def _derive(self, **changes: Any) -> Request:
        """Return a copy with the given fields replaced and consume self."""
        self._ensure_usable()
        derived = copy.copy(self)
        for name, value in changes.items():
            setattr(derived, f"_{name}", value)
        self._consumed = True
        return derived

    def _dispatch(self) -> httpx.Response:
        self._ensure_usable()
        self._consumed = True

        content = self._body.to_bytes() if self._body is not None else None
        logger.debug("Sending %s %s", self._method, self._url)
        with converting_errors():
            request = self._client.build_request(
                self._method,
                self._url,
                headers=self._headers,
                content=content,
            )
            response = self._client.send(request, stream=True)
        logger.debug("Received %d for %s %s", response.status_code, self._method, self._url)
        return response

    def __repr__(self) -> str:
        return f"<Request {self._method} {self._url}>"


class RawResponse:
    """Live response handle returned by Request.send_raw().

    Status and headers are available immediately; the body stream is unread.
    Read failures are raised as Error.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def is_success(self) -> bool:
        return self._response.is_success

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> httpx.URL:
        return self._response.url

    def iter_bytes(self, chunk_size: int | None = None) -> Iterator[bytes]:
        """Stream the body in chunks."""
        with converting_errors():
            yield from self._response.iter_bytes(chunk_size)

    def read(self) -> bytes:
        """Read the remaining body in full."""
        with converting_errors():
            return self._response.read()

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> RawResponse:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<RawResponse [{self.status_code}]>"


def _content_length(response: httpx.Response) -> int:
    """Buffer size hint from Content-Length.

    0 when the header is absent, invalid, or above MAX_PRESIZE_BYTES. The
    header is server-controlled, so it only sizes the initial allocation.
    """
    value = response.headers.get("content-length")
    if value is None:
        return 0
    try:
        declared = int(value)
    except ValueError:
        return 0
    if declared < 0 or declared > MAX_PRESIZE_BYTES:
        return 0
    return declared


def _read_body(response: httpx.Response) -> bytes:
    """Read the whole body into a buffer pre-sized from Content-Length."""
    buffer = bytearray(_content_length(response))
    filled = 0
    with converting_errors():
        for chunk in response.iter_bytes():
            # Slice assignment grows the buffer if the body outruns Content-Length.
            buffer[filled:filled + len(chunk)] = chunk
            filled += len(chunk)
    del buffer[filled:]
    logger.debug("Read %d body bytes", filled)
    return bytes(buffer)


def _failure_message(response: httpx.Response) -> str:
    """Best-effort body text for a failed status, or the placeholder message."""
    try:
        message = response.read().decode("utf-8")
    except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError):
        message = ""
    return message or UNKNOWN_ERROR_MESSAGE
