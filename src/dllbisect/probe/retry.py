"""Retry-with-backoff around another probe."""

from __future__ import annotations

import time
from collections.abc import Callable

from dllbisect.core.log import logger
from dllbisect.probe.base import Probe, Verdict
from dllbisect.target.handle import TargetHandle


class RetryingProbe:
    """Re-run the wrapped probe while it reports ERROR.

    Only infrastructure errors are retried. A functional FAIL is a
    real answer and is returned on the first attempt.
    """

    def __init__(
        self,
        inner: Probe,
        attempts: int = 3,
        backoff: float = 5.0,
        factor: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.inner = inner
        self.attempts = attempts
        self.backoff = backoff
        self.factor = factor
        self.sleep = sleep

    def probe(self, target: TargetHandle) -> Verdict:
        delay = self.backoff
        for attempt in range(1, self.attempts + 1):
            verdict = self.inner.probe(target)
            if verdict != Verdict.ERROR:
                return verdict
            if attempt < self.attempts:
                logger.warn(
                    "Probe infrastructure error, retrying",
                    attempt=attempt,
                    attempts=self.attempts,
                    delay=delay,
                )
                self.sleep(delay)
                delay *= self.factor
        return Verdict.ERROR
