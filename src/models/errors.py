"""Error taxonomy for the recipe recommendation pipeline.

Every failure surfaced to callers is a RecipeServiceError carrying one of a
closed set of kinds. The kind decides whether the retry executor may try again.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    NETWORK_UNREACHABLE = "network-unreachable"
    UPSTREAM_ERROR = "upstream-error"
    RATE_LIMIT_EXCEEDED = "rate-limit-exceeded"
    INVALID_INPUT = "invalid-input"
    INVALID_RESPONSE = "invalid-response"


RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK_UNREACHABLE, ErrorKind.UPSTREAM_ERROR})

# Shown to end users; never includes backend details such as response bodies
_USER_MESSAGES = {
    ErrorKind.NETWORK_UNREACHABLE: "Network error occurred. Check your connection and try again.",
    ErrorKind.UPSTREAM_ERROR: "The recipe service is having trouble right now. Please try again later.",
    ErrorKind.RATE_LIMIT_EXCEEDED: "API usage limit reached. Please try again later.",
    ErrorKind.INVALID_INPUT: "Invalid input provided.",
    ErrorKind.INVALID_RESPONSE: "Invalid response from the recipe service.",
}


class RecipeServiceError(Exception):
    """Failure raised by the recipe pipeline.

    Args:
        kind: Failure kind from ErrorKind.
        detail: Optional free-text detail for logs (not meant for end users).
    """

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = ErrorKind(kind)
        self.detail = detail
        super().__init__(f"{self.kind.value}: {detail}" if detail else self.kind.value)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self.kind]

    def __repr__(self) -> str:
        return f"RecipeServiceError(kind={self.kind.value!r}, detail={self.detail!r})"


def is_retryable_error(error: BaseException) -> bool:
    """Return True only for pipeline errors whose kind is transient."""
    return isinstance(error, RecipeServiceError) and error.retryable
