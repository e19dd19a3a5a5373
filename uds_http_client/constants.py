from __future__ import annotations

from typing import Final

# Requests are addressed to a placeholder authority; the socket path decides
# where bytes actually go.
UNIX_SOCKET_SCHEME: Final[str] = "http"
UNIX_SOCKET_AUTHORITY: Final[str] = "unix.socket"
UNIX_SOCKET_PORT: Final[int] = 80

JSON_CONTENT_TYPE: Final[str] = "application/json"

SUCCESS_STATUS_MIN: Final[int] = 200
SUCCESS_STATUS_MAX: Final[int] = 299

# Environment
SOCKET_PATH_ENV: Final[str] = "UDS_HTTP_SOCKET"


def is_success_status(status: int) -> bool:
    return SUCCESS_STATUS_MIN <= status <= SUCCESS_STATUS_MAX
