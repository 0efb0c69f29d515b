from __future__ import annotations


class InvalidInput(ValueError):
    """Caller supplied a missing or malformed theme/action. No state is touched."""


class SessionNotFound(LookupError):
    """Unknown or expired session id."""


class GenerationError(RuntimeError):
    """The narrative generator failed or returned something we can't use.

    `retryable` marks failures (timeouts, upstream 5xx) where re-issuing the same
    action is reasonable. The engine itself never retries these.
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ContinuationExpired(GenerationError):
    """The generator no longer recognizes the session's continuation token."""
