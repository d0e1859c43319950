import asyncio

import pytest

from worker.app.utils.retry import linear_backoff, retry_async


class Boom(Exception):
    pass


class Fatal(Exception):
    pass


def _run(fn, sleeper, max_attempts=3, retryable=lambda e: isinstance(e, Boom), **kw):
    return asyncio.run(
        retry_async(
            fn,
            max_attempts=max_attempts,
            backoff=linear_backoff(0.5),
            retryable=retryable,
            sleep=sleeper,
            **kw,
        )
    )


def test_linear_backoff():
    delay = linear_backoff(2.0)
    assert [delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 6.0]


def test_first_success_wins(sleeper):
    attempts = []

    async def fn(n):
        attempts.append(n)
        return "ok"

    assert _run(fn, sleeper) == "ok"
    assert attempts == [1]
    assert sleeper.delays == []


def test_retries_then_succeeds(sleeper):
    async def fn(n):
        if n < 3:
            raise Boom(n)
        return n

    assert _run(fn, sleeper) == 3
    assert sleeper.delays == [0.5, 1.0]


def test_always_failing_stops_at_max_attempts(sleeper):
    attempts = []
    failures = []

    async def fn(n):
        attempts.append(n)
        raise Boom(n)

    with pytest.raises(Boom):
        _run(fn, sleeper, on_failure=lambda n, e: failures.append(n))
    assert attempts == [1, 2, 3]
    assert failures == [1, 2, 3]
    assert sleeper.delays == [0.5, 1.0]


def test_non_retryable_propagates_immediately(sleeper):
    attempts = []

    async def fn(n):
        attempts.append(n)
        raise Fatal("nope")

    with pytest.raises(Fatal):
        _run(fn, sleeper)
    assert attempts == [1]


def test_invalid_max_attempts(sleeper):
    async def fn(n):
        return n

    with pytest.raises(ValueError):
        _run(fn, sleeper, max_attempts=0)
