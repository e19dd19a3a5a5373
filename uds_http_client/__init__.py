__version__ = "0.1.0"

from uds_http_client.client import UnixClient, build_request
from uds_http_client.connection import ConnectionManager
from uds_http_client.errors import (
    ConfigurationError,
    JsonDeserializeError,
    JsonError,
    JsonSerializeError,
    RequestBuildError,
    ResponseUnsuccessful,
    ResponseUnsuccessfulJson,
    SendError,
    SocketConnectionError,
    TransportError,
    UnixHttpError,
)
from uds_http_client.json_adapter import send_request_json
from uds_http_client.models import Header, JsonResponse, RawResponse

__all__ = [
    "__version__",
    "UnixClient",
    "ConnectionManager",
    "build_request",
    "send_request_json",
    "Header",
    "RawResponse",
    "JsonResponse",
    "UnixHttpError",
    "ConfigurationError",
    "TransportError",
    "SocketConnectionError",
    "SendError",
    "RequestBuildError",
    "ResponseUnsuccessful",
    "ResponseUnsuccessfulJson",
    "JsonError",
    "JsonSerializeError",
    "JsonDeserializeError",
]
