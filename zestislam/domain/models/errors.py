"""Error taxonomy for credential handling and remote invocation.

Every error raised by the project derives from ZestIslamError so that the
CLI boundary can catch one type and degrade gracefully.
"""

from typing import Optional


class ZestIslamError(Exception):
    """Base class for all project errors."""


class CredentialPoolEmpty(ZestIslamError):
    """No credential is configured for a provider.

    Fatal to any operation that needs a credential and never retried.
    """

    def __init__(self, source_names: Optional[list] = None):
        self.source_names = list(source_names or [])
        names = ", ".join(self.source_names) or "<none>"
        super().__init__(f"No API credential configured (checked: {names})")


class RemoteInvocationError(ZestIslamError):
    """A remote operation failed; carries the HTTP-like status when known."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message


class TransientRemoteFailure(RemoteInvocationError):
    """Rate limiting, quota exhaustion or temporary unavailability.

    rotate_credential is False for failures another key cannot fix (timeouts).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, rotate_credential: bool = True):
        super().__init__(message, status_code=status_code)
        self.rotate_credential = rotate_credential


class TerminalRemoteFailure(RemoteInvocationError):
    """Bad request shape, permanent auth rejection or any non-recoverable failure."""


class StructuredDecodeFailure(ZestIslamError):
    """Structured output from a remote service could not be decoded."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.raw_text = raw_text
        super().__init__(message)


class InvocationCancelled(ZestIslamError):
    """The caller cancelled a resilient invocation before it completed."""

    def __init__(self, attempts_made: int):
        self.attempts_made = attempts_made
        super().__init__(f"Invocation cancelled after {attempts_made} attempt(s)")
