"""Error taxonomy for remote-service and local challenge failures.

Remote errors carry a `kind` discriminant and a `retryable` flag; the
dispatch loop in the analysis client switches on those, not on class
identity. Local challenge errors are lookup failures and never retried.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVER = "server"
    HTTP = "http"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"
    NOT_CONFIGURED = "not_configured"


class SkillServiceError(Exception):
    """Base class for every analysis-service failure."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.HTTP,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.retryable = retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"


class ValidationError(SkillServiceError):
    """Malformed or missing caller input. Never retried."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.VALIDATION, 400, retryable=False)


class AuthenticationError(SkillServiceError):
    """Bad or expired credential. Never retried; prompts reconfiguration."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.AUTHENTICATION, 401, retryable=False)


class RateLimitError(SkillServiceError):
    """Local or remote quota exceeded."""

    def __init__(self, message: str, retry_after: float):
        super().__init__(message, ErrorKind.RATE_LIMIT, 429, retryable=True)
        self.retry_after = retry_after


class ServiceTimeoutError(SkillServiceError):
    def __init__(self, message: str = "Request timeout"):
        super().__init__(message, ErrorKind.TIMEOUT, 408, retryable=True)


class NetworkError(SkillServiceError):
    def __init__(self, message: str):
        super().__init__(message, ErrorKind.NETWORK, None, retryable=True)


class ServerError(SkillServiceError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message, ErrorKind.SERVER, status_code, retryable=True)


class HttpError(SkillServiceError):
    """Unexpected HTTP status. Not retried."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message, ErrorKind.HTTP, status_code, retryable=False)


class MaxRetriesExceededError(SkillServiceError):
    """Terminal failure after the attempt ceiling; wraps the last cause."""

    def __init__(self, attempts: int, cause: Optional[BaseException]):
        detail = str(cause) if cause is not None else "Unknown error"
        super().__init__(
            f"Request failed after {attempts} attempts: {detail}",
            ErrorKind.MAX_RETRIES_EXCEEDED,
            getattr(cause, "status_code", None),
            retryable=False,
        )
        self.attempts = attempts
        self.cause = cause


class ServiceNotConfiguredError(SkillServiceError):
    """Neither the environment nor the local store provides a configuration."""

    def __init__(self, message: str = "Analysis service is not configured"):
        super().__init__(message, ErrorKind.NOT_CONFIGURED, None, retryable=False)


# ─── Local challenge errors ──────────────────────────────────────────────────


class ChallengeLookupError(LookupError):
    """A challenge or template could not be found. Indicates a configuration gap."""


class ChallengeNotFoundError(ChallengeLookupError):
    def __init__(self, challenge_id: str):
        super().__init__(f"Challenge {challenge_id} not found")
        self.challenge_id = challenge_id


class TemplateNotFoundError(ChallengeLookupError):
    def __init__(self, category: str, difficulty: str):
        super().__init__(f"No challenge template found for {category} at {difficulty} level")
        self.category = category
        self.difficulty = difficulty


class ExecutionError(Exception):
    """A code executor could not produce output for a test case."""
