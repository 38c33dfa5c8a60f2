from __future__ import annotations


class TrenchesError(Exception):
    """Base error for Trenches & Dragons domain exceptions."""


class CorruptStateError(TrenchesError):
    """Raised when persisted game state is missing required fields or fails validation."""


class StateNotFound(TrenchesError):
    """Raised when no persisted state exists for the requested key."""


class ConflictError(TrenchesError):
    """Raised when a compare-and-swap write loses against a concurrent writer.

    Callers may reload and retry the whole action.
    """

    retryable = True

    def __init__(self, key: str, expected: int | None, actual: int | None) -> None:
        super().__init__(f"Version conflict on {key!r}: expected {expected}, found {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual


class SettingsError(TrenchesError):
    """Raised when configuration values are invalid."""


class SessionError(TrenchesError):
    """Base class for solo session lifecycle errors."""


class SessionNotFound(SessionError):
    """Raised when a session id is unknown to the ledger."""


class SessionMismatch(SessionError):
    """Raised when a token does not bind to the requested session or player."""


class SessionNotActive(SessionError):
    """Raised when an operation requires an active session."""


class ClaimRejected(TrenchesError):
    """Raised when a reward claim cannot be created.

    ``reason`` is one of ``active``, ``claimed``, ``expired``, ``ledger_failure``.
    """

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class InvalidSessionToken(SessionError):
    """Raised when a session token fails verification or has expired."""
