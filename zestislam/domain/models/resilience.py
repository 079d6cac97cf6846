"""Domain models for resilient remote invocation.

Includes the retry policy value object, the classification produced for a
failed attempt, and the per-attempt record kept for the lifetime of one call.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class FailureKind(str, Enum):
    """Outcome of classifying a failed attempt."""
    TRANSIENT = "transient"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ErrorClassification:
    """How the invoker should react to one failure."""
    kind: FailureKind
    rotate_credential: bool = False
    reason: str = ""

    @property
    def transient(self) -> bool:
        return self.kind is FailureKind.TRANSIENT


TRANSIENT_ROTATE = ErrorClassification(FailureKind.TRANSIENT, rotate_credential=True, reason="quota/rate limit")
TERMINAL = ErrorClassification(FailureKind.TERMINAL, rotate_credential=False, reason="terminal")

Classifier = Callable[[BaseException], ErrorClassification]


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration shared by one or more call sites.

    Attributes:
        max_attempts: Total attempts including the first one.
        initial_delay_s: Delay before the second attempt.
        backoff_multiplier: delay_{n+1} = delay_n * backoff_multiplier.
        classifier: Error classifier; the invoker's default is used when None.
        deadline_s: Optional wall-clock ceiling across all attempts.
    """
    max_attempts: int = 4
    initial_delay_s: float = 1.0
    backoff_multiplier: float = 2.0
    classifier: Optional[Classifier] = None
    deadline_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("initial_delay_s must be >= 0")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if self.deadline_s is not None and self.deadline_s <= 0:
            raise ValueError("deadline_s must be > 0")

    def delays(self) -> list:
        """Backoff delays between consecutive attempts (length max_attempts - 1)."""
        result = []
        delay = self.initial_delay_s
        for _ in range(self.max_attempts - 1):
            result.append(delay)
            delay *= self.backoff_multiplier
        return result


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass
class InvocationAttempt:
    """Transient record of one attempt; lives only for the duration of a call."""
    attempt_number: int
    error: Optional[BaseException] = None
    classification: Optional[ErrorClassification] = None
    delay_before_next_s: Optional[float] = None
