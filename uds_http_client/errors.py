from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class UnixHttpError(Exception):
    """Base class for everything raised by this package."""


class TransportError(UnixHttpError):
    """The byte stream to the server could not be opened or broke mid-call."""


class SocketConnectionError(TransportError):
    def __init__(self, message: str, *, socket_path: str) -> None:
        super().__init__(message)
        self.socket_path = socket_path


class SendError(TransportError):
    pass


class ConfigurationError(UnixHttpError, ValueError):
    """No usable client settings were found."""


class RequestBuildError(UnixHttpError):
    pass


@dataclass(eq=False)
class ResponseUnsuccessful(UnixHttpError):
    """A full response arrived with a non-2xx status.

    This is an application-level outcome, not a transport fault: the raw body
    is kept so callers can inspect what the server said.
    """

    status: int
    body: bytes

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body[:200]!r}"


@dataclass(eq=False)
class ResponseUnsuccessfulJson(UnixHttpError):
    status: int
    body: Any

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body!r}"


class JsonError(UnixHttpError):
    pass


class JsonSerializeError(JsonError):
    pass


class JsonDeserializeError(JsonError):
    # The HTTP exchange completed; only local parsing of the body failed.
    def __init__(self, message: str, *, status: int, body: bytes) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
