"""Service for executing remote calls with retries, credential rotation and fallbacks.

Implements exponential backoff for transient errors like rate limits (429)
or temporary unavailability (5xx). On every failure classified as
credential-related the shared CredentialPool is rotated so the next attempt
uses a different key. When the attempt budget is exhausted, or a terminal
error occurs, a caller-supplied fallback value is returned instead of the
error if one was given.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from zestislam.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    CredentialRotated,
    DomainEvent,
    FallbackUsed,
    RetryScheduled,
)
from zestislam.domain.models.errors import CredentialPoolEmpty, InvocationCancelled
from zestislam.domain.models.resilience import (
    Classifier,
    DEFAULT_RETRY_POLICY,
    InvocationAttempt,
    RetryPolicy,
)
from zestislam.infrastructure.credentials.credential_pool import CredentialPool
from zestislam.infrastructure.resilience.error_classifier import DEFAULT_CLASSIFIER

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[Any]]
EventListener = Callable[[DomainEvent], None]


class _NoFallback:
    """Sentinel: no fallback configured, errors propagate. (None is a valid fallback.)"""

    def __repr__(self) -> str:
        return "NO_FALLBACK"


NO_FALLBACK: Any = _NoFallback()


class ResilientInvoker:
    """Runs zero-argument async operations with retry, backoff, rotation and fallback."""

    def __init__(
        self,
        credential_pool: Optional[CredentialPool] = None,
        default_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        classifier: Classifier = DEFAULT_CLASSIFIER,
        sleep: SleepFunc = asyncio.sleep,
        event_listener: Optional[EventListener] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the ResilientInvoker.

        Args:
            credential_pool: Pool rotated on credential-related failures. None for
                keyless services (public REST APIs); nothing is rotated then.
            default_policy: Policy used when a call does not pass its own.
            classifier: Default error classifier (a policy's classifier overrides it).
            sleep: Awaitable used for backoff delays; injectable for tests.
            event_listener: Optional callback receiving domain events.
            clock: Monotonic clock used for the optional deadline.
        """
        self.credential_pool = credential_pool
        self.default_policy = default_policy
        self.classifier = classifier
        self._sleep = sleep
        self._event_listener = event_listener
        self._clock = clock

        pool_name = credential_pool.provider if credential_pool is not None else "none"
        logger.debug(
            f"ResilientInvoker initialized: pool='{pool_name}', max_attempts={default_policy.max_attempts}, "
            f"initial_delay={default_policy.initial_delay_s}s, multiplier={default_policy.backoff_multiplier}"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_listener is None:
            return
        try:
            self._event_listener(event)
        except Exception as e:
            logger.error(f"Event listener failed for {type(event).__name__}: {e}", exc_info=True)

    async def with_resilience(
        self,
        operation: Operation,
        policy: Optional[RetryPolicy] = None,
        fallback: Any = NO_FALLBACK,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        operation_name: Optional[str] = None,
    ) -> Any:
        """Executes an async operation with retries, rotation and an optional fallback.

        Args:
            operation: Zero-argument coroutine function performing the remote call.
            policy: Retry policy for this call (defaults to the invoker's policy).
            fallback: Value returned instead of raising once the call has failed
                definitively. NO_FALLBACK means the last error propagates.
            cancel_event: When set, no further attempt starts and a pending
                backoff ends immediately.
            operation_name: Name used in logs and events.

        Returns:
            The operation's result, or the fallback.

        Raises:
            CredentialPoolEmpty: No credential is configured (never replaced by a fallback).
            InvocationCancelled: cancel_event was set before the call completed.
            Exception: The terminal or last transient error when no fallback was given.
        """
        effective_policy = policy or self.default_policy
        classify = effective_policy.classifier or self.classifier
        name = operation_name or getattr(operation, "__name__", "operation")
        max_attempts = effective_policy.max_attempts
        current_delay = effective_policy.initial_delay_s
        started_at = self._clock()
        attempts: List[InvocationAttempt] = []
        last_error: Optional[BaseException] = None

        for attempt_number in range(1, max_attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Invocation of {name} cancelled before attempt {attempt_number}.")
                raise InvocationCancelled(len(attempts))

            self._dispatch(ApiCallInitiated(operation=name, attempt_number=attempt_number))
            start_time = time.perf_counter()
            try:
                result = await operation()
            except CredentialPoolEmpty:
                logger.error(f"{name}: no API credential configured; not retrying.")
                raise
            except Exception as e:
                last_error = e
                classification = classify(e)
                record = InvocationAttempt(attempt_number=attempt_number, error=e, classification=classification)
                attempts.append(record)

                if not classification.transient:
                    logger.error(
                        f"Terminal error calling {name} on attempt {attempt_number}/{max_attempts}: "
                        f"{type(e).__name__}: {e}"
                    )
                    break

                if classification.rotate_credential and self.credential_pool is not None:
                    self.credential_pool.rotate()
                    self._dispatch(CredentialRotated(
                        operation=name, attempt_number=attempt_number, pool_size=self.credential_pool.size
                    ))

                if attempt_number >= max_attempts:
                    logger.error(
                        f"Max attempts ({max_attempts}) reached for {name}. Last error: {type(e).__name__}: {e}"
                    )
                    break

                deadline = effective_policy.deadline_s
                if deadline is not None and (self._clock() - started_at) + current_delay > deadline:
                    logger.error(
                        f"Deadline of {deadline:.2f}s would be exceeded by the next retry of {name}; giving up "
                        f"after {attempt_number} attempt(s)."
                    )
                    break

                record.delay_before_next_s = current_delay
                logger.warning(
                    f"Transient error calling {name} on attempt {attempt_number}/{max_attempts} "
                    f"({classification.reason}): {type(e).__name__}. Waiting {current_delay:.2f}s..."
                )
                self._dispatch(RetryScheduled(
                    operation=name, attempt_number=attempt_number,
                    delay_seconds=current_delay, reason=classification.reason,
                ))
                await self._backoff(current_delay, cancel_event, len(attempts))
                current_delay *= effective_policy.backoff_multiplier
            else:
                latency_ms = (time.perf_counter() - start_time) * 1000
                self._dispatch(ApiCallSucceeded(
                    operation=name, attempt_number=attempt_number, latency_ms=latency_ms,
                    response_summary=getattr(result, 'token_usage', None),
                ))
                if attempts:
                    logger.info(f"{name} succeeded on attempt {attempt_number} after {len(attempts)} failure(s).")
                return result

        return self._give_up(name, attempts, last_error, fallback)

    async def _backoff(self, delay: float, cancel_event: Optional[asyncio.Event], attempts_made: int) -> None:
        """Waits for the backoff delay, waking early if the call is cancelled."""
        if cancel_event is None:
            await self._sleep(delay)
            return
        sleeper = asyncio.ensure_future(self._sleep(delay))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, waiter, return_exceptions=True)
        if not cancel_event.is_set():
            return
        logger.info(f"Backoff interrupted by cancellation after {attempts_made} attempt(s).")
        raise InvocationCancelled(attempts_made)

    def _give_up(
        self,
        name: str,
        attempts: List[InvocationAttempt],
        last_error: Optional[BaseException],
        fallback: Any,
    ) -> Any:
        final_error = last_error or RuntimeError(f"{name} failed without an error")
        self._dispatch(ApiCallFailed(
            operation=name, attempts=len(attempts),
            error_type=type(final_error).__name__, error_message=str(final_error),
        ))
        if fallback is not NO_FALLBACK:
            logger.warning(f"{name} failed after {len(attempts)} attempt(s); returning fallback value.")
            self._dispatch(FallbackUsed(operation=name, attempts=len(attempts), error_type=type(final_error).__name__))
            return fallback
        raise final_error
