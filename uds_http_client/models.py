from __future__ import annotations

from typing import Generic, NamedTuple, TypeVar

T = TypeVar("T")

# Header lists keep order and may repeat a name.
Header = tuple[str, str]


class RawResponse(NamedTuple):
    status: int
    body: bytes


class JsonResponse(NamedTuple, Generic[T]):
    status: int
    data: T
