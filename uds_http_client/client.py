from __future__ import annotations

import asyncio
import os
import re
import time
from collections.abc import Sequence
from http import HTTPMethod
from typing import Any, Self, TypeVar

import h11
import httpcore
import httpx
from loguru import logger

from uds_http_client.config import get_socket_path
from uds_http_client.connection import ConnectionManager
from uds_http_client.constants import (
    UNIX_SOCKET_AUTHORITY,
    UNIX_SOCKET_SCHEME,
    is_success_status,
)
from uds_http_client.errors import (
    ConfigurationError,
    RequestBuildError,
    ResponseUnsuccessful,
    SendError,
)
from uds_http_client.json_adapter import send_request_json
from uds_http_client.models import Header, JsonResponse, RawResponse
from uds_http_client.utils.retry import no_delay_s, retry_async

SuccessT = TypeVar("SuccessT")
ErrorT = TypeVar("ErrorT")

# RFC 9110 token, the grammar for both methods and header names.
_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_FORBIDDEN_VALUE_CHARS = ("\r", "\n", "\0")

_TRANSPORT_FAULTS = (
    httpcore.NetworkError,
    httpcore.RemoteProtocolError,
    httpcore.ConnectionNotAvailable,
    httpcore.TimeoutException,
)

# Initial attempt plus a single retry on a fresh connection.
_MAX_ATTEMPTS = 2


def build_request(
    path: str,
    method: str | HTTPMethod,
    headers: Sequence[Header] = (),
    body: bytes | bytearray | memoryview | None = None,
) -> httpcore.Request:
    if not isinstance(path, str) or not path.startswith("/"):
        raise RequestBuildError(f"Request path must start with '/': {path!r}")

    method_name = str(method).upper()
    if not isinstance(method, str) or not _TOKEN_RE.fullmatch(method_name):
        raise RequestBuildError(f"Invalid HTTP method: {method!r}")

    headers = list(headers)
    for name, value in headers:
        if not isinstance(name, str) or not _TOKEN_RE.fullmatch(name):
            raise RequestBuildError(f"Invalid header name: {name!r}")
        if not isinstance(value, str) or any(
            c in value for c in _FORBIDDEN_VALUE_CHARS
        ):
            raise RequestBuildError(f"Invalid value for header {name!r}: {value!r}")

    if body is not None and not isinstance(body, bytes | bytearray | memoryview):
        raise RequestBuildError(
            f"Request body must be bytes, got {type(body).__name__}"
        )

    # Framing is derived from the body; a caller-supplied length must agree.
    body_length = len(body) if body is not None else 0
    for name, value in headers:
        lowered = name.lower()
        if lowered == "transfer-encoding":
            raise RequestBuildError(
                "Transfer-Encoding is not supported, send a complete body"
            )
        if lowered == "content-length" and value.strip() != str(body_length):
            raise RequestBuildError(
                f"Content-Length {value!r} does not match body length {body_length}"
            )

    try:
        request = httpx.Request(
            method_name,
            f"{UNIX_SOCKET_SCHEME}://{UNIX_SOCKET_AUTHORITY}{path}",
            headers=headers,
            content=bytes(body) if body is not None else None,
        )
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise RequestBuildError(f"Cannot build request for {path!r}: {exc}") from exc

    return httpcore.Request(
        method=request.method,
        url=httpcore.URL(
            scheme=request.url.raw_scheme,
            host=request.url.raw_host,
            port=request.url.port,
            target=request.url.raw_path,
        ),
        headers=request.headers.raw,
        content=request.content,
    )


class UnixClient:
    """HTTP/1.1 client speaking to a local server over a Unix domain socket.

    One persistent connection is reused across calls. When it turns out to be
    dead the client reconnects once and replays the request before giving up.

    Calls on a single client are serialized: a call made while another is in
    flight waits for it to finish.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._lock = asyncio.Lock()

    @classmethod
    async def try_new(
        cls,
        socket_path: str | os.PathLike[str],
        *,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> Self:
        """Create a client and connect right away.

        Raises ``SocketConnectionError`` if nothing is listening on
        ``socket_path``. No retry is attempted.
        """
        manager = ConnectionManager(socket_path, backend=backend)
        await manager.establish()
        return cls(manager)

    @classmethod
    async def from_config(
        cls, *, backend: httpcore.AsyncNetworkBackend | None = None
    ) -> Self:
        socket_path = get_socket_path()
        if not socket_path:
            raise ConfigurationError(
                "No unix socket configured: set client.socket_path in config.json "
                "or the UDS_HTTP_SOCKET environment variable"
            )
        return await cls.try_new(socket_path, backend=backend)

    @property
    def socket_path(self) -> str:
        return self._manager.socket_path

    @property
    def is_connected(self) -> bool:
        return self._manager.is_usable()

    async def reconnect(self) -> None:
        async with self._lock:
            await self._manager.establish()

    async def aclose(self) -> None:
        async with self._lock:
            await self._manager.invalidate()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def send_request(
        self,
        path: str,
        method: str | HTTPMethod = HTTPMethod.GET,
        headers: Sequence[Header] = (),
        body: bytes | bytearray | memoryview | None = None,
    ) -> RawResponse:
        """Send one request and return the buffered 2xx response.

        Raises ``ResponseUnsuccessful`` for any other status, with the body.
        """
        request = build_request(path, method, headers, body)
        method_name = request.method.decode("ascii")

        async with self._lock:
            logger.debug(
                f"Making {method_name} request to {path} on {self.socket_path}"
            )
            start_time = time.time()
            try:
                status, content = await retry_async(
                    lambda: self._attempt(request),
                    max_retries=_MAX_ATTEMPTS,
                    should_retry=lambda exc: isinstance(exc, _TRANSPORT_FAULTS),
                    get_delay_s=no_delay_s,
                    on_retry=self._on_transport_fault,
                )
            except (httpcore.LocalProtocolError, h11.LocalProtocolError) as exc:
                await self._manager.invalidate()
                raise RequestBuildError(
                    f"Cannot encode {method_name} {path}: {exc}"
                ) from exc
            except _TRANSPORT_FAULTS as exc:
                await self._manager.invalidate()
                raise SendError(
                    f"{method_name} {path} failed on {self.socket_path} "
                    f"after reconnecting: {exc}"
                ) from exc
            elapsed = time.time() - start_time

        if not is_success_status(status):
            logger.warning(
                f"HTTP {status} response for {method_name} {path} after {elapsed:.2f}s"
            )
            raise ResponseUnsuccessful(status, content)

        logger.debug(
            f"HTTP {status} response for {method_name} {path} after {elapsed:.2f}s"
        )
        return RawResponse(status, content)

    async def send_request_json(
        self,
        path: str,
        method: str | HTTPMethod = HTTPMethod.GET,
        headers: Sequence[Header] = (),
        body: Any = None,
        *,
        response_type: type[SuccessT] | Any = Any,
        error_type: type[ErrorT] | Any = Any,
    ) -> JsonResponse[SuccessT]:
        return await send_request_json(
            self,
            path,
            method,
            headers,
            body,
            response_type=response_type,
            error_type=error_type,
        )

    async def _attempt(self, request: httpcore.Request) -> tuple[int, bytes]:
        if not self._manager.is_usable():
            if self._manager.connection is not None:
                logger.info(f"Connection to {self.socket_path} is dead, reconnecting")
            await self._manager.establish()

        conn = self._manager.connection
        assert conn is not None
        response = await conn.handle_async_request(request)
        try:
            content = await response.aread()
        finally:
            await response.aclose()
        return response.status, content

    async def _on_transport_fault(
        self, attempt: int, exc: Exception, delay_s: float
    ) -> None:
        logger.warning(
            f"Transport error talking to {self.socket_path}: {exc!r}; "
            "retrying on a new connection"
        )
        await self._manager.invalidate()
