from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from http import HTTPMethod
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from uds_http_client.constants import JSON_CONTENT_TYPE
from uds_http_client.errors import (
    JsonDeserializeError,
    JsonSerializeError,
    ResponseUnsuccessful,
    ResponseUnsuccessfulJson,
)
from uds_http_client.models import Header, JsonResponse

if TYPE_CHECKING:
    from uds_http_client.client import UnixClient

SuccessT = TypeVar("SuccessT")
ErrorT = TypeVar("ErrorT")


@lru_cache(maxsize=256)
def _cached_type_adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def _type_adapter(tp: Any) -> TypeAdapter[Any]:
    try:
        return _cached_type_adapter(tp)
    except TypeError:
        # Unhashable annotations (e.g. Annotated with dict metadata) skip the cache.
        return TypeAdapter(tp)


def encode_json_body(body: Any) -> bytes:
    try:
        return to_json(body)
    except PydanticSerializationError as exc:
        raise JsonSerializeError(
            f"Cannot serialize {type(body).__name__} request body to JSON: {exc}"
        ) from exc


def with_json_content_type(headers: Sequence[Header]) -> list[Header]:
    return [*headers, ("Content-Type", JSON_CONTENT_TYPE)]


def decode_json_body(body: bytes, tp: Any, *, status: int) -> Any:
    try:
        return _type_adapter(tp).validate_json(body)
    except ValidationError as exc:
        raise JsonDeserializeError(
            f"Cannot parse HTTP {status} response body: {exc}",
            status=status,
            body=body,
        ) from exc


async def send_request_json(
    client: UnixClient,
    path: str,
    method: str | HTTPMethod = HTTPMethod.GET,
    headers: Sequence[Header] = (),
    body: Any = None,
    *,
    response_type: type[SuccessT] | Any = Any,
    error_type: type[ErrorT] | Any = Any,
) -> JsonResponse[SuccessT]:
    """Send ``body`` as JSON and parse the reply into a typed value.

    A 2xx body is validated against ``response_type``. Any other status raises
    ``ResponseUnsuccessfulJson`` whose ``body`` was validated against
    ``error_type``, since servers usually shape errors differently. A body that
    fails validation raises ``JsonDeserializeError`` on either path.

    ``body=None`` sends no body and no ``Content-Type`` header. Transport and
    request-building errors from ``send_request`` pass through untouched.
    """
    raw_body: bytes | None = None
    if body is not None:
        raw_body = encode_json_body(body)
        headers = with_json_content_type(headers)

    try:
        status, content = await client.send_request(path, method, headers, raw_body)
    except ResponseUnsuccessful as exc:
        error_body = decode_json_body(exc.body, error_type, status=exc.status)
        raise ResponseUnsuccessfulJson(exc.status, error_body) from exc

    return JsonResponse(status, decode_json_body(content, response_type, status=status))
