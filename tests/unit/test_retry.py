"""Unit tests for activkiosk.retry: bounded attempts with a fixed delay."""
import asyncio

import pytest
from structlog.testing import capture_logs

from activkiosk.retry import (
    AttemptResult,
    Outcome,
    PhaseExhaustedError,
    run_phase,
)


def _scripted(results):
    """Attempt function returning/raising the given items in order."""
    calls = []

    async def attempt():
        item = results[len(calls)]
        calls.append(item)
        if isinstance(item, BaseException):
            raise item
        return item

    return attempt, calls


@pytest.mark.parametrize("max_attempts", [1, 2, 5])
async def test_all_failures_runs_exactly_n_attempts(max_attempts, sleep):
    attempt, calls = _scripted([AttemptResult.failure("nope")] * max_attempts)
    with pytest.raises(PhaseExhaustedError) as excinfo:
        await run_phase("login", attempt, max_attempts, 5.0, sleep=sleep)
    assert len(calls) == max_attempts
    assert sleep.delays == [5.0] * (max_attempts - 1)
    assert excinfo.value.attempts == max_attempts
    assert excinfo.value.phase == "login"
    assert excinfo.value.result.outcome is Outcome.EXHAUSTED


async def test_success_first_attempt_has_no_delay(sleep):
    attempt, calls = _scripted([AttemptResult.success("ok")])
    result = await run_phase("dashboard", attempt, 5, 5.0, sleep=sleep)
    assert result.outcome is Outcome.SUCCESS
    assert result.attempts == 1
    assert result.detail == "ok"
    assert sleep.delays == []


async def test_exceptions_are_counted_as_failed_attempts(sleep):
    attempt, calls = _scripted([
        RuntimeError("selector missing"),
        AttemptResult.failure("wrong page"),
        AttemptResult.success(),
    ])
    result = await run_phase("login", attempt, 5, 2.5, sleep=sleep)
    assert result.attempts == 3
    assert sleep.delays == [2.5, 2.5]


async def test_exhaustion_carries_last_error(sleep):
    attempt, _ = _scripted([AttemptResult.failure("first"), ValueError("boom")])
    with pytest.raises(PhaseExhaustedError, match="boom") as excinfo:
        await run_phase("login", attempt, 2, 0, sleep=sleep)
    assert "ValueError" in excinfo.value.last_detail


async def test_cancellation_is_not_swallowed(sleep):
    attempt, calls = _scripted([asyncio.CancelledError()])
    with pytest.raises(asyncio.CancelledError):
        await run_phase("login", attempt, 3, 0, sleep=sleep)
    assert len(calls) == 1


async def test_every_failure_is_logged(sleep):
    attempt, _ = _scripted([RuntimeError("a"), RuntimeError("b")])
    with capture_logs() as logs:
        with pytest.raises(PhaseExhaustedError):
            await run_phase("login", attempt, 2, 0, sleep=sleep)
    failures = [e for e in logs if e["event"] == "attempt failed"]
    assert [e["attempt"] for e in failures] == [1, 2]
    assert any(e["event"] == "phase exhausted" and e["log_level"] == "error" for e in logs)


@pytest.mark.parametrize("max_attempts, delay", [(0, 1.0), (-1, 1.0), (1, -0.5)])
async def test_invalid_bounds_rejected(max_attempts, delay, sleep):
    attempt, calls = _scripted([AttemptResult.success()])
    with pytest.raises(ValueError):
        await run_phase("login", attempt, max_attempts, delay, sleep=sleep)
    assert calls == []
