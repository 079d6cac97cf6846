"""Domain Events related to remote calls and resilience.

Examples include events for when calls start, fail, are retried, rotate
to another credential, or are answered by a fallback value.
"""

from dataclasses import dataclass, field
import time
from typing import Any, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an attempt is about to be made."""
    operation: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an attempt succeeds."""
    operation: str
    attempt_number: int
    latency_ms: float
    response_summary: Optional[Any] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (terminal or budget exhausted)."""
    operation: str
    attempts: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed attempt."""
    operation: str
    attempt_number: int
    delay_seconds: float
    reason: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class CredentialRotated(DomainEvent):
    """Event triggered when the invoker advances the credential pool."""
    operation: str
    attempt_number: int
    pool_size: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class FallbackUsed(DomainEvent):
    """Event triggered when a fallback value replaces a failed call."""
    operation: str
    attempts: int
    error_type: str
    timestamp: float = field(default_factory=time.time)
