"""
Generation Policy - Bounded retries with backoff, then a deterministic fallback.

The external generator is the only slow call in the engine. Each call is
abandoned after the timeout, the number of calls is capped, and when every
call fails (error, timeout or a response that does not validate) the
fallback factory builds the exam instead. The caller always receives a
usable question list.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from .generation_request import GenerationRequest
from .models import Question
from .template_exam import build_template_exam

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Generator output was unusable."""


# (request, timeout seconds) -> raw question records
Generator = Callable[..., Any]
# (raw records, request) -> validated questions, raises GenerationError
Validator = Callable[[Any, GenerationRequest], List[Question]]
FallbackFactory = Callable[[GenerationRequest], List[Question]]


@dataclass
class GenerationOutcome:
    questions: List[Question]
    used_fallback: bool
    attempts: int
    error: Optional[str] = None


class GenerationPolicy:
    """
    Retry/backoff/fallback as data.

    Args:
        max_attempts: Total generator calls before falling back
        backoff: Seconds to wait before the 2nd, 3rd, ... call; the last
            value repeats if there are more attempts than entries
        timeout: Per-call timeout passed to the generator
        fallback_factory: Builds the exam when every attempt failed
        sleep: Injected for tests
    """

    def __init__(self, max_attempts: int = 3, backoff: Tuple[float, ...] = (1.0, 2.0),
                 timeout: float = 30.0, fallback_factory: FallbackFactory = build_template_exam,
                 sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.max_attempts = max_attempts
        self.backoff = tuple(backoff)
        self.timeout = timeout
        self.fallback_factory = fallback_factory
        self.sleep = sleep

    def delay_before(self, attempt: int) -> float:
        """Backoff before the given 1-based attempt (0 for the first)."""
        if attempt <= 1 or not self.backoff:
            return 0.0
        return self.backoff[min(attempt - 2, len(self.backoff) - 1)]

    def call(self, generator: Generator, request: GenerationRequest) -> Any:
        """
        One generator call, abandoned once the timeout passes.

        The timeout is also handed to the generator so a well-behaved client
        can cancel its own request; a generator that ignores it is left to
        finish in its worker thread while the policy moves on.
        """
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(generator, request, timeout=self.timeout)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            raise GenerationError(f"generator exceeded {self.timeout}s timeout") from None
        finally:
            executor.shutdown(wait=False)

    def execute(self, request: GenerationRequest, generator: Generator,
                validate: Validator, context: str = "") -> GenerationOutcome:
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            delay = self.delay_before(attempt)
            if delay:
                self.sleep(delay)
            try:
                raw = self.call(generator, request)
                questions = validate(raw, request)
                return GenerationOutcome(questions, used_fallback=False, attempts=attempt)
            except Exception as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning("Generation attempt %d/%d failed (%s): %s",
                               attempt, self.max_attempts, context, last_error)

        logger.warning("Generation exhausted %d attempts (%s); using template exam",
                       self.max_attempts, context)
        return GenerationOutcome(
            self.fallback_factory(request),
            used_fallback=True,
            attempts=self.max_attempts,
            error=last_error,
        )
