from __future__ import annotations

import pytest

from uds_http_client.utils.retry import no_delay_s, retry_async


class _Flaky:
    def __init__(self, failures: int, exc: type[Exception] = OSError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return "ok"


@pytest.mark.asyncio
async def test_retry_async_succeeds_after_failures() -> None:
    fn = _Flaky(failures=2)

    assert await retry_async(fn, max_retries=3, get_delay_s=no_delay_s) == "ok"
    assert fn.calls == 3


@pytest.mark.asyncio
async def test_retry_async_reraises_last_error() -> None:
    fn = _Flaky(failures=5)

    with pytest.raises(OSError, match="failure 2"):
        await retry_async(fn, max_retries=2, get_delay_s=no_delay_s)
    assert fn.calls == 2


@pytest.mark.asyncio
async def test_retry_async_should_retry_stops_early() -> None:
    fn = _Flaky(failures=1, exc=KeyError)

    with pytest.raises(KeyError):
        await retry_async(
            fn, max_retries=3, should_retry=lambda exc: isinstance(exc, OSError)
        )
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_retry_async_awaits_async_on_retry() -> None:
    fn = _Flaky(failures=1)
    seen: list[tuple[int, str, float]] = []

    async def on_retry(attempt: int, exc: Exception, delay_s: float) -> None:
        seen.append((attempt, str(exc), delay_s))

    assert await retry_async(fn, max_retries=2, get_delay_s=no_delay_s, on_retry=on_retry) == "ok"
    assert seen == [(0, "failure 1", 0.0)]


@pytest.mark.asyncio
async def test_retry_async_accepts_sync_on_retry() -> None:
    fn = _Flaky(failures=1)
    seen: list[int] = []

    await retry_async(
        fn,
        max_retries=2,
        get_delay_s=no_delay_s,
        on_retry=lambda attempt, exc, delay_s: seen.append(attempt),
    )
    assert seen == [0]


@pytest.mark.asyncio
async def test_retry_async_on_retry_error_propagates() -> None:
    fn = _Flaky(failures=1)

    async def on_retry(attempt: int, exc: Exception, delay_s: float) -> None:
        raise RuntimeError("cannot recover")

    with pytest.raises(RuntimeError, match="cannot recover"):
        await retry_async(fn, max_retries=3, get_delay_s=no_delay_s, on_retry=on_retry)
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_retry_async_rejects_zero_retries() -> None:
    with pytest.raises(ValueError):
        await retry_async(_Flaky(failures=0), max_retries=0)


@pytest.mark.asyncio
async def test_retry_async_uses_delay_from_callback(monkeypatch) -> None:
    slept: list[float] = []

    async def fake_sleep(delay_s: float) -> None:
        slept.append(delay_s)

    monkeypatch.setattr("uds_http_client.utils.retry.asyncio.sleep", fake_sleep)
    fn = _Flaky(failures=2)

    assert await retry_async(fn, max_retries=3) == "ok"
    assert slept == []

    fn = _Flaky(failures=1)
    assert await retry_async(fn, max_retries=2, get_delay_s=lambda a, e: 0.5) == "ok"
    assert slept == [0.5]
