import asyncio
import sqlite3

import pytest

from neurocore.errors import StoreUnavailableError
from neurocore.utils.retry import linear_backoff, with_retry


class _Flaky:
    def __init__(self, failures: int, exc: BaseException | None = None) -> None:
        self.failures = failures
        self.calls = 0
        self.exc = exc or sqlite3.OperationalError("database is locked")

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


def _recording_sleep(delays: list[float]):
    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    return sleep


def test_linear_backoff():
    backoff = linear_backoff(0.5)
    assert [backoff(n) for n in (1, 2, 3)] == [0.5, 1.0, 1.5]


def test_retry_succeeds_after_transient_failures():
    async def scenario() -> None:
        delays: list[float] = []
        op = _Flaky(failures=2)
        result = await with_retry(op, name="insert", attempts=3, sleep=_recording_sleep(delays))
        assert result == "ok"
        assert op.calls == 3
        assert delays == [0.5, 1.0]

    asyncio.run(scenario())


def test_retry_exhaustion_raises_store_unavailable():
    async def scenario() -> None:
        delays: list[float] = []
        op = _Flaky(failures=10)
        with pytest.raises(StoreUnavailableError) as info:
            await with_retry(
                op,
                name="save_skill_state",
                attempts=3,
                backoff=linear_backoff(0.1),
                sleep=_recording_sleep(delays),
            )
        assert op.calls == 3
        assert info.value.operation == "save_skill_state"
        assert info.value.attempts == 3
        assert isinstance(info.value.__cause__, sqlite3.OperationalError)
        assert delays == pytest.approx([0.1, 0.2])

    asyncio.run(scenario())


def test_non_transient_errors_propagate_immediately():
    async def scenario() -> None:
        op = _Flaky(failures=1, exc=ValueError("bad input"))
        with pytest.raises(ValueError):
            await with_retry(op, name="insert", sleep=_recording_sleep([]))
        assert op.calls == 1

    asyncio.run(scenario())
