"""Classification of remote-call failures.

Remote clients do not share a typed error taxonomy, so classification is a
best-effort inspection of status codes, message substrings and exception
type names. All of that matching lives in one ordered rule table so it can
be audited, tested and swapped per integration.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from zestislam.domain.models.errors import (
    CredentialPoolEmpty,
    InvocationCancelled,
    TerminalRemoteFailure,
    TransientRemoteFailure,
)
from zestislam.domain.models.resilience import (
    ErrorClassification,
    FailureKind,
    TERMINAL,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the classification table.

    A rule matches when the error's status is in `statuses`, or its message
    contains one of `substrings` (case-insensitive), or its type name (or a
    base class name) is in `type_names`.
    """
    name: str
    classification: ErrorClassification
    statuses: FrozenSet[int] = field(default_factory=frozenset)
    substrings: Tuple[str, ...] = ()
    type_names: FrozenSet[str] = field(default_factory=frozenset)

    def matches(self, status: Optional[int], message: str, type_names: Sequence[str]) -> bool:
        if status is not None and status in self.statuses:
            return True
        lowered = message.lower()
        if any(s in lowered for s in self.substrings):
            return True
        return any(t in self.type_names for t in type_names)


def _transient(reason: str, rotate: bool) -> ErrorClassification:
    return ErrorClassification(FailureKind.TRANSIENT, rotate_credential=rotate, reason=reason)


DEFAULT_RULES: List[ClassificationRule] = [
    ClassificationRule(
        name="quota",
        classification=_transient("rate limit / quota exhausted", rotate=True),
        statuses=frozenset({429}),
        substrings=("429", "quota", "exhausted", "rate limit", "rate_limit", "too many requests"),
        type_names=frozenset({"RateLimitError"}),
    ),
    ClassificationRule(
        name="overloaded",
        classification=_transient("service overloaded / unavailable", rotate=True),
        statuses=frozenset({500, 502, 503, 504}),
        substrings=("overloaded", "unavailable"),
        type_names=frozenset({"InternalServerError"}),
    ),
    ClassificationRule(
        name="stale-routing",
        classification=_transient("entity not found (stale routing)", rotate=True),
        substrings=("requested entity was not found",),
    ),
    ClassificationRule(
        name="network",
        classification=_transient("timeout / connection failure", rotate=False),
        type_names=frozenset({
            "TimeoutException", "ConnectError", "ReadTimeout", "ConnectTimeout",
            "APIConnectionError", "APITimeoutError", "TimeoutError",
        }),
    ),
]


def extract_status(error: BaseException) -> Optional[int]:
    """Best-effort numeric status from an arbitrary exception.

    Checks `status_code`, `status` and `code` on the error, then on an attached
    `response` object.
    """
    candidates = [error, getattr(error, "response", None)]
    for obj in candidates:
        if obj is None:
            continue
        for attr in ("status_code", "status", "code"):
            value = getattr(obj, attr, None)
            if isinstance(value, bool):
                continue
            if isinstance(value, int):
                return value
            if isinstance(value, str) and value.isdigit():
                return int(value)
    return None


def _type_names(error: BaseException) -> List[str]:
    return [cls.__name__ for cls in type(error).__mro__]


class ErrorClassifier:
    """Ordered table of ClassificationRule; the first matching rule wins."""

    def __init__(self, rules: Optional[Iterable[ClassificationRule]] = None):
        self.rules: List[ClassificationRule] = list(rules if rules is not None else DEFAULT_RULES)

    def classify(self, error: BaseException) -> ErrorClassification:
        # Explicit markers take precedence over the table
        if isinstance(error, (CredentialPoolEmpty, InvocationCancelled, TerminalRemoteFailure)):
            return TERMINAL
        if isinstance(error, TransientRemoteFailure):
            return _transient("marked transient", rotate=getattr(error, "rotate_credential", True))

        status = extract_status(error)
        message = str(error) or ""
        names = _type_names(error)
        for rule in self.rules:
            if rule.matches(status, message, names):
                logger.debug(f"Error {names[0]} (status={status}) matched rule '{rule.name}'.")
                return rule.classification
        return TERMINAL

    __call__ = classify

    def with_rules(self, extra: Iterable[ClassificationRule], prepend: bool = True) -> "ErrorClassifier":
        """Returns a new classifier with extra rules added before (or after) the current ones."""
        extra = list(extra)
        return ErrorClassifier(extra + self.rules if prepend else self.rules + extra)


DEFAULT_CLASSIFIER = ErrorClassifier()
