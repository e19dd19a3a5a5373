from __future__ import annotations

import os

import httpcore
from loguru import logger

from uds_http_client.constants import (
    UNIX_SOCKET_AUTHORITY,
    UNIX_SOCKET_PORT,
    UNIX_SOCKET_SCHEME,
)
from uds_http_client.errors import SocketConnectionError

UNIX_SOCKET_ORIGIN = httpcore.Origin(
    scheme=UNIX_SOCKET_SCHEME.encode("ascii"),
    host=UNIX_SOCKET_AUTHORITY.encode("ascii"),
    port=UNIX_SOCKET_PORT,
)


class ConnectionManager:
    """Owns the socket path and the single live HTTP/1.1 connection on it.

    The slot holds either nothing or one connection. A broken connection is
    never repaired: ``invalidate`` empties the slot and ``establish`` fills it
    with a brand new one.
    """

    def __init__(
        self,
        socket_path: str | os.PathLike[str],
        *,
        backend: httpcore.AsyncNetworkBackend | None = None,
    ) -> None:
        self._socket_path = os.fspath(socket_path)
        self._backend = backend or httpcore.AnyIOBackend()
        self._connection: httpcore.AsyncHTTP11Connection | None = None

    @property
    def socket_path(self) -> str:
        return self._socket_path

    @property
    def connection(self) -> httpcore.AsyncHTTP11Connection | None:
        return self._connection

    async def establish(self) -> httpcore.AsyncHTTP11Connection:
        """Open a fresh connection and make it the current one.

        Any previous connection is closed first.
        """
        if self._connection is not None:
            await self.invalidate()

        try:
            stream = await self._backend.connect_unix_socket(self._socket_path)
        except (httpcore.ConnectError, httpcore.ConnectTimeout, OSError) as exc:
            raise SocketConnectionError(
                f"Cannot connect to unix socket {self._socket_path}: {exc}",
                socket_path=self._socket_path,
            ) from exc

        self._connection = httpcore.AsyncHTTP11Connection(
            origin=UNIX_SOCKET_ORIGIN, stream=stream
        )
        logger.debug(f"Connected to unix socket {self._socket_path}")
        return self._connection

    def is_usable(self) -> bool:
        conn = self._connection
        if conn is None:
            return False
        # Expired covers a peer that closed the socket while we were idle.
        return not (conn.is_closed() or conn.has_expired())

    async def invalidate(self) -> None:
        conn, self._connection = self._connection, None
        if conn is None:
            return
        try:
            await conn.aclose()
        except (httpcore.NetworkError, OSError) as exc:
            logger.debug(f"Failed to close connection to {self._socket_path}: {exc}")
