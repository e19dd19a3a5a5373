from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")


def no_delay_s(attempt: int, exc: Exception) -> float:
    return 0.0


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 2,
    should_retry: Callable[[Exception], bool] | None = None,
    get_delay_s: Callable[[int, Exception], float] = no_delay_s,
    on_retry: Callable[[int, Exception, float], Awaitable[None] | None] | None = None,
) -> T:
    """Call ``fn`` up to ``max_retries`` times in total.

    ``on_retry`` runs between attempts and may be a coroutine function; it is
    awaited before the next attempt starts. Exceptions it raises propagate
    and end the loop.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be >= 1")

    for attempt in range(max_retries):
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            if attempt >= max_retries - 1:
                raise
            if should_retry is not None and not should_retry(exc):
                raise

            delay_s = get_delay_s(attempt, exc)
            if on_retry is not None:
                result = on_retry(attempt, exc, delay_s)
                if inspect.isawaitable(result):
                    await result
            if delay_s > 0:
                await asyncio.sleep(delay_s)

    raise RuntimeError("retry_async exhausted retries")
