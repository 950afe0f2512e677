"""Validating retry controller around an extraction client.

The controller is an explicit loop over :class:`ControllerState`::

    IDLE -> ATTEMPTING -> VALIDATING -> SUCCEEDED
                       |             -> BACKING_OFF (empty/non-object answer)
                       |             -> FAILED      (well-formed but invalid)
                       -> BACKING_OFF (transient error, attempts left)
                       -> FAILED      (fatal error, or transient on last attempt)
    BACKING_OFF -> ATTEMPTING

Attempts for one call are strictly sequential. The sleep function is
injected so the state machine can be driven without a real clock.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .schemas import ValidationResult, is_empty_shape
from .vision import ClientError, Err, ExtractionClient, ImagePayload, Ok

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0

_TRANSIENT_CODES = {429, 503, 529}
_TRANSIENT_CODE_RE = re.compile(r"\b(429|503|529)\b")
_TRANSIENT_PHRASES = (
    "rate limit",
    "too many requests",
    "resource exhausted",
    "service unavailable",
    "model is overloaded",
    "overloaded",
)

EXHAUSTED_MESSAGE = (
    "AI processing failed after multiple retries. The AI service might be "
    "temporarily unavailable. Please try again later."
)


class ControllerState(Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    VALIDATING = "validating"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorClass(Enum):
    NONE = "none"
    TRANSIENT = "transient"
    FATAL = "fatal"


class FailureKind(str, Enum):
    INPUT = "input"
    FATAL = "fatal"
    VALIDATION = "validation"
    RETRY_EXHAUSTED = "retry_exhausted"


def classify_error(error: ClientError) -> ErrorClass:
    """Rate limiting and temporary unavailability are transient; all else is fatal."""
    if error.input_error:
        return ErrorClass.FATAL
    if error.rate_limited or error.status_code in _TRANSIENT_CODES:
        return ErrorClass.TRANSIENT
    if _TRANSIENT_CODE_RE.search(error.message):
        return ErrorClass.TRANSIENT
    lowered = error.message.lower()
    if any(phrase in lowered for phrase in _TRANSIENT_PHRASES):
        return ErrorClass.TRANSIENT
    return ErrorClass.FATAL


def backoff_delay(attempt_number: int, base: float = DEFAULT_BASE_DELAY) -> float:
    """Delay before 1-based attempt ``attempt_number``; zero before the first."""
    if attempt_number < 2:
        return 0.0
    return base * 2 ** (attempt_number - 2)


@dataclass
class ExtractionFailure:
    kind: FailureKind
    message: str
    attempts: int
    cause: str = ""
    fields: list[str] = field(default_factory=list)


@dataclass
class ExtractionAttempt:
    """Run-state of one :meth:`RetryController.run` call. Never persisted."""

    index: int = 0
    state: ControllerState = ControllerState.IDLE
    last_error: ErrorClass = ErrorClass.NONE
    delay: float = 0.0
    waited: float = 0.0
    raw: Any = None
    value: Any = None
    failure: ExtractionFailure | None = None
    history: list[ControllerState] = field(default_factory=list)

    @property
    def attempts(self) -> int:
        return self.index + 1

    def transition(self, state: ControllerState) -> None:
        logger.debug("Attempt %d: %s -> %s", self.attempts, self.state.value, state.value)
        self.history.append(state)
        self.state = state


@dataclass
class ExtractionOutcome(Generic[T]):
    value: T | None = None
    failure: ExtractionFailure | None = None
    attempts: int = 0
    history: list[ControllerState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None


class RetryController:
    """Drives extraction attempts until a validated result or a terminal failure."""

    def __init__(
        self,
        client: ExtractionClient,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self._client = client
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._sleep = sleep

    async def run(
        self,
        payload: ImagePayload,
        instruction: str,
        validator: Callable[[Any], ValidationResult[T]],
    ) -> ExtractionOutcome[T]:
        run = ExtractionAttempt()
        run.transition(ControllerState.ATTEMPTING)

        while True:
            match run.state:
                case ControllerState.ATTEMPTING:
                    await self._attempt(run, payload, instruction)
                case ControllerState.VALIDATING:
                    self._validate(run, validator)
                case ControllerState.BACKING_OFF:
                    run.delay = backoff_delay(run.attempts + 1, self._base_delay)
                    logger.warning(
                        "Retrying extraction in %.1fs (attempt %d of %d)",
                        run.delay,
                        run.attempts + 1,
                        self._max_attempts,
                    )
                    await self._sleep(run.delay)
                    run.waited += run.delay
                    run.index += 1
                    run.transition(ControllerState.ATTEMPTING)
                case ControllerState.SUCCEEDED:
                    logger.info("Extraction succeeded after %d attempt(s)", run.attempts)
                    return ExtractionOutcome(
                        value=run.value, attempts=run.attempts, history=run.history
                    )
                case ControllerState.FAILED:
                    logger.error(
                        "Extraction failed after %d attempt(s): %s",
                        run.attempts,
                        run.failure.cause or run.failure.message,
                    )
                    return ExtractionOutcome(
                        failure=run.failure, attempts=run.attempts, history=run.history
                    )
                case _:
                    raise RuntimeError(f"Unexpected controller state: {run.state}")

    def _attempts_left(self, run: ExtractionAttempt) -> bool:
        return run.attempts < self._max_attempts

    async def _attempt(
        self, run: ExtractionAttempt, payload: ImagePayload, instruction: str
    ) -> None:
        logger.info("Extraction attempt %d of %d", run.attempts, self._max_attempts)
        result = await self._client.extract(payload, instruction)

        match result:
            case Ok(value=raw):
                run.raw = raw
                run.transition(ControllerState.VALIDATING)
            case Err(error=error):
                run.last_error = classify_error(error)
                if run.last_error is ErrorClass.TRANSIENT:
                    logger.warning("Transient provider error: %s", error.message)
                    if self._attempts_left(run):
                        run.transition(ControllerState.BACKING_OFF)
                        return
                    run.failure = ExtractionFailure(
                        FailureKind.RETRY_EXHAUSTED,
                        EXHAUSTED_MESSAGE,
                        run.attempts,
                        cause=error.message,
                    )
                else:
                    kind = FailureKind.INPUT if error.input_error else FailureKind.FATAL
                    run.failure = ExtractionFailure(
                        kind, error.message, run.attempts, cause=error.message
                    )
                run.transition(ControllerState.FAILED)

    def _validate(
        self, run: ExtractionAttempt, validator: Callable[[Any], ValidationResult[T]]
    ) -> None:
        checked = validator(run.raw)
        if checked.ok:
            run.last_error = ErrorClass.NONE
            run.value = checked.value
            run.transition(ControllerState.SUCCEEDED)
            return

        if is_empty_shape(run.raw):
            # Empty or non-object answers count as transient shape failures.
            run.last_error = ErrorClass.TRANSIENT
            logger.warning(
                "Provider returned no usable object (%s)", type(run.raw).__name__
            )
            if self._attempts_left(run):
                run.transition(ControllerState.BACKING_OFF)
                return
            run.failure = ExtractionFailure(
                FailureKind.RETRY_EXHAUSTED,
                EXHAUSTED_MESSAGE,
                run.attempts,
                cause="provider returned an empty or non-object response",
            )
        else:
            run.last_error = ErrorClass.FATAL
            run.failure = ExtractionFailure(
                FailureKind.VALIDATION,
                f"AI output validation failed: {checked.error}",
                run.attempts,
                fields=checked.error.fields,
            )
        run.transition(ControllerState.FAILED)
