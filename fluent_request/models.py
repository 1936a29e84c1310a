"""Data models for fluent_request.

HTTP methods and request bodies are plain Python types; configuration
models use Pydantic v2.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# HTTP Models
# =============================================================================


class Method(str, Enum):
    """Standard HTTP verbs."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


def method_name(method: Method | str) -> str:
    """Return the wire name of a method. Extension methods pass through uppercased."""
    if isinstance(method, Method):
        return method.value
    return str(method).upper()


class BodyKind(str, Enum):
    """How a request body holds its bytes."""

    BORROWED = "borrowed"
    OWNED = "owned"


@dataclass(frozen=True)
class Body:
    """Request payload, either borrowed from the caller or an owned copy.

    A borrowed body references the caller's buffer: immutable bytes are kept
    as-is, mutable buffers are viewed through a memoryview. The caller must
    keep a borrowed buffer unchanged until the request is sent. An owned body
    is a bytes snapshot taken when the body was created.
    """

    kind: BodyKind
    data: bytes | memoryview

    @classmethod
    def borrowed(cls, data: bytes | bytearray | memoryview) -> Body:
        if isinstance(data, bytes):
            return cls(BodyKind.BORROWED, data)
        return cls(BodyKind.BORROWED, memoryview(data).cast("B"))

    @classmethod
    def owned(cls, data: bytes | bytearray | memoryview) -> Body:
        return cls(BodyKind.OWNED, bytes(data))

    @property
    def is_borrowed(self) -> bool:
        return self.kind == BodyKind.BORROWED

    def __len__(self) -> int:
        if isinstance(self.data, memoryview):
            return self.data.nbytes
        return len(self.data)

    def to_bytes(self) -> bytes:
        """Bytes to transmit. Copies only when the body views a mutable buffer."""
        if isinstance(self.data, memoryview):
            return self.data.tobytes()
        return self.data


# =============================================================================
# Configuration Models
# =============================================================================


_ABSOLUTE_URL_PATTERN = re.compile(r"^https?://[^/?#]+", re.IGNORECASE)
_HEADER_ENV_REFERENCE = re.compile(r"\$\{(\w+)\}")


def _expand_header_value(name: str, value: str) -> str:
    """Replace ${VAR} references in a header value with environment values."""
    missing = [var for var in _HEADER_ENV_REFERENCE.findall(value) if var not in os.environ]
    if missing:
        raise ValueError(
            f"header '{name}' references unset environment variable(s): {', '.join(missing)}"
        )
    return _HEADER_ENV_REFERENCE.sub(lambda m: os.environ[m.group(1)], value)


class ConnectionConfig(BaseModel):
    """Configuration for a single connection profile.

    Header values may reference environment variables as ${VAR}, so secrets
    such as tokens stay out of the file. The base URL is taken literally.
    """

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(description="Base URL every request starts from")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Default headers; values expand ${VAR} from the environment",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not _ABSOLUTE_URL_PATTERN.match(v):
            raise ValueError("base_url must be an absolute http(s) URL")
        return v

    @field_validator("headers")
    @classmethod
    def expand_header_values(cls, v: dict[str, str]) -> dict[str, str]:
        return {name: _expand_header_value(name, value) for name, value in v.items()}


class ConnectionsFile(BaseModel):
    """Top-level connection profiles file structure."""

    model_config = ConfigDict(extra="forbid")

    connections: dict[str, ConnectionConfig] = Field(
        description="Profile name -> connection config mapping"
    )
