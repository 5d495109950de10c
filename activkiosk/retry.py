"""Bounded retry for driving a flaky external UI to a known state.

A phase is one unit of work (login, dashboard navigation, a page reload)
retried up to ``max_attempts`` times with a fixed delay between failures.
Each attempt reports a typed :class:`AttemptResult`; exceptions raised by
an attempt are caught at the attempt boundary and counted as failures.
Only exhausting the budget escalates, as :class:`PhaseExhaustedError`.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import structlog

log = structlog.get_logger(__name__)


class Outcome(str, Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AttemptResult:
    outcome: Outcome
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def success(cls, detail: str = "") -> AttemptResult:
        return cls(Outcome.SUCCESS, detail)

    @classmethod
    def failure(cls, detail: str) -> AttemptResult:
        return cls(Outcome.TRANSIENT_FAILURE, detail)


@dataclass(frozen=True)
class PhaseResult:
    phase: str
    outcome: Outcome
    attempts: int
    detail: str = ""


class PhaseExhaustedError(RuntimeError):
    """A phase used every allotted attempt without succeeding."""

    def __init__(self, phase: str, attempts: int, last_detail: str = "") -> None:
        self.phase = phase
        self.attempts = attempts
        self.last_detail = last_detail
        message = f"Max {phase} attempts reached ({attempts})"
        if last_detail:
            message = f"{message}: {last_detail}"
        super().__init__(message)

    @property
    def result(self) -> PhaseResult:
        return PhaseResult(self.phase, Outcome.EXHAUSTED, self.attempts, self.last_detail)


AttemptFn = Callable[[], Awaitable[AttemptResult]]
SleepFn = Callable[[float], Awaitable[object]]


async def run_phase(
    phase: str,
    attempt: AttemptFn,
    max_attempts: int,
    retry_delay: float,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> PhaseResult:
    """Run ``attempt`` until it succeeds or ``max_attempts`` is used up.

    Sleeps ``retry_delay`` seconds between failed attempts, never after
    the last one.

    Raises:
        PhaseExhaustedError: every attempt failed.
        ValueError: ``max_attempts`` < 1 or ``retry_delay`` < 0.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if retry_delay < 0:
        raise ValueError(f"retry_delay must be >= 0, got {retry_delay}")

    last_detail = ""
    for number in range(1, max_attempts + 1):
        try:
            result = await attempt()
        except Exception as e:
            last_detail = f"{type(e).__name__}: {e}"
        else:
            if result.ok:
                log.info("phase succeeded", phase=phase, attempt=number)
                return PhaseResult(phase, Outcome.SUCCESS, number, result.detail)
            last_detail = result.detail

        log.warning(
            "attempt failed",
            phase=phase,
            attempt=number,
            max_attempts=max_attempts,
            error=last_detail,
        )
        if number < max_attempts:
            await sleep(retry_delay)

    log.error(
        "phase exhausted",
        phase=phase,
        attempts=max_attempts,
        error=last_detail,
    )
    raise PhaseExhaustedError(phase, max_attempts, last_detail)
