"""Solo session lifecycle.

A session is opened once the entry oracle has authorized a payment signature,
handed a seed and a signed token, and closed by submitting a final score.
Payment verification and storage are collaborators behind small protocols so
the lifecycle rules can be exercised without a database or a chain.
"""

from __future__ import annotations

import base64
import dataclasses
import hmac
import json
import logging
import secrets
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from hashlib import sha256
from typing import Callable, Dict, List, Optional, Protocol

from ..config.settings import SessionSettings
from ..errors import (
    InvalidSessionToken,
    SessionError,
    SessionMismatch,
    SessionNotActive,
    SessionNotFound,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 1_000_000

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def issue_seed() -> str:
    """Opaque hex seed handed to the client with a new session."""
    return secrets.token_hex(16)


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CLAIMED = "claimed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionRecord:
    id: str
    player: str
    seed: str
    entry_sig: str
    started_at: datetime
    expires_at: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    score: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class ClaimRecord:
    id: str
    player: str
    session_id: str
    amount: int
    status: str = "pending"
    claim_sig: Optional[str] = None


@dataclass(frozen=True)
class SessionToken:
    session_id: str
    player: str
    seed: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    session: SessionRecord
    token: str
    message: str


class EntryOracle(Protocol):
    def is_authorized(self, signature: str) -> bool: ...


class TokenIssuer(Protocol):
    def issue(self, token: SessionToken) -> str: ...

    def verify(self, token: str) -> Optional[SessionToken]: ...


class SessionLedger(Protocol):
    """Row store for sessions and claims."""

    def get_session(self, session_id: str) -> Optional[SessionRecord]: ...

    def get_session_by_entry_sig(self, signature: str) -> Optional[SessionRecord]: ...

    def create_session(self, record: SessionRecord) -> Optional[SessionRecord]: ...

    def update_session(self, record: SessionRecord) -> Optional[SessionRecord]: ...

    def create_claim(self, claim: ClaimRecord) -> Optional[ClaimRecord]: ...

    def mark_session_claimed(self, session_id: str) -> None: ...


class HmacTokenIssuer:
    """Signs session tokens as ``<base64 payload>.<hmac-sha256 hex>``.

    Binds a session to a player. Not an anti-cheat measure.
    """

    def __init__(self, key: bytes, clock: Clock = utc_now) -> None:
        if not key:
            raise ValueError("HmacTokenIssuer requires a non-empty key")
        self.key = key
        self.clock = clock

    def _sign(self, payload: bytes) -> str:
        return hmac.new(self.key, payload, sha256).hexdigest()

    def issue(self, token: SessionToken) -> str:
        body = json.dumps(
            {
                "sessionId": token.session_id,
                "player": token.player,
                "seed": token.seed,
                "exp": int(token.expires_at.timestamp()),
            },
            sort_keys=True,
        ).encode("utf-8")
        return base64.urlsafe_b64encode(body).decode("ascii") + "." + self._sign(body)

    def verify(self, token: str) -> Optional[SessionToken]:
        encoded, _, digest = token.partition(".")
        try:
            body = base64.urlsafe_b64decode(encoded.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            return None
        if not hmac.compare_digest(self._sign(body).encode("ascii"), digest.encode("utf-8")):
            return None
        claims = json.loads(body)
        expires_at = datetime.fromtimestamp(claims["exp"], timezone.utc)
        if self.clock() >= expires_at:
            return None
        return SessionToken(claims["sessionId"], claims["player"], claims["seed"], expires_at)


class InMemorySessionLedger:
    def __init__(self) -> None:
        self.sessions: Dict[str, SessionRecord] = {}
        self.claims: List[ClaimRecord] = []
        self.lock = threading.RLock()

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self.lock:
            return self.sessions.get(session_id)

    def get_session_by_entry_sig(self, signature: str) -> Optional[SessionRecord]:
        with self.lock:
            for record in self.sessions.values():
                if record.entry_sig == signature:
                    return record
            return None

    def create_session(self, record: SessionRecord) -> Optional[SessionRecord]:
        with self.lock:
            if record.id in self.sessions:
                return None
            self.sessions[record.id] = record
            return record

    def update_session(self, record: SessionRecord) -> Optional[SessionRecord]:
        with self.lock:
            if record.id not in self.sessions:
                return None
            self.sessions[record.id] = record
            return record

    def create_claim(self, claim: ClaimRecord) -> Optional[ClaimRecord]:
        with self.lock:
            self.claims.append(claim)
            return claim

    def mark_session_claimed(self, session_id: str) -> None:
        with self.lock:
            record = self.sessions[session_id]
            self.sessions[session_id] = dataclasses.replace(record, status=SessionStatus.CLAIMED)


def authenticate(tokens: TokenIssuer, ledger: SessionLedger, token: str, session_id: str) -> SessionRecord:
    """Resolve ``session_id`` for the bearer of ``token``.

    Raises InvalidSessionToken, SessionMismatch or SessionNotFound.
    """
    payload = tokens.verify(token)
    if payload is None:
        raise InvalidSessionToken("Invalid or expired session token")
    if payload.session_id != session_id:
        raise SessionMismatch("Session ID mismatch")
    record = ledger.get_session(session_id)
    if record is None:
        raise SessionNotFound(f"Session not found: {session_id}")
    if record.player != payload.player:
        raise SessionMismatch("Player mismatch")
    return record


class SessionService:
    def __init__(
        self,
        ledger: SessionLedger,
        oracle: EntryOracle,
        tokens: TokenIssuer,
        settings: Optional[SessionSettings] = None,
        clock: Clock = utc_now,
        seed_factory: Callable[[], str] = issue_seed,
    ) -> None:
        self.ledger = ledger
        self.oracle = oracle
        self.tokens = tokens
        self.settings = settings or SessionSettings()
        self.clock = clock
        self.seed_factory = seed_factory

    def _token_for(self, record: SessionRecord) -> str:
        return self.tokens.issue(SessionToken(record.id, record.player, record.seed, record.expires_at))

    def create_session(self, player: str, signature: str) -> IssuedSession:
        """Open a session for an authorized entry payment.

        Re-submitting the signature of a still-running session returns that
        session with a fresh token; any other reuse is refused.
        """
        if not self.oracle.is_authorized(signature):
            logger.warning("Entry not authorized for player %s", player)
            raise SessionError("Payment not verified. Please verify payment first.")

        now = self.clock()
        existing = self.ledger.get_session_by_entry_sig(signature)
        if existing is not None:
            if existing.status is SessionStatus.ACTIVE and not existing.is_expired(now):
                return IssuedSession(existing, self._token_for(existing), "Returning existing active session")
            logger.warning("Entry signature reused for session %s", existing.id)
            raise SessionError("Session for this payment has already been used")

        record = SessionRecord(
            id=str(uuid.uuid4()),
            player=player,
            seed=self.seed_factory(),
            entry_sig=signature,
            started_at=now,
            expires_at=now + timedelta(minutes=self.settings.ttl_minutes),
        )
        if self.ledger.create_session(record) is None:
            raise SessionError("Failed to create session")
        logger.info("Opened session %s for %s", record.id, player)
        return IssuedSession(record, self._token_for(record), "Session created successfully. The gates open...")

    def complete_session(self, token: str, session_id: str, score: int) -> SessionRecord:
        """Record the final score and close the session."""
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= MAX_SCORE:
            raise ValueError(f"score must be an integer in [0, {MAX_SCORE}]")
        record = authenticate(self.tokens, self.ledger, token, session_id)
        if record.status is SessionStatus.ACTIVE and record.is_expired(self.clock()):
            record = self._expire(record)
        if record.status is not SessionStatus.ACTIVE:
            raise SessionNotActive(f"Session is already {record.status.value}")

        updated = dataclasses.replace(record, status=SessionStatus.COMPLETED, score=score)
        if self.ledger.update_session(updated) is None:
            raise SessionError("Failed to update session")
        logger.info("Session %s completed with score %d", session_id, score)
        return updated

    def expire_stale(self, sessions: List[SessionRecord]) -> int:
        """Mark every active session past its expiry as expired."""
        now = self.clock()
        count = 0
        for record in sessions:
            if record.status is SessionStatus.ACTIVE and record.is_expired(now):
                self._expire(record)
                count += 1
        return count

    def _expire(self, record: SessionRecord) -> SessionRecord:
        expired = dataclasses.replace(record, status=SessionStatus.EXPIRED)
        self.ledger.update_session(expired)
        logger.info("Session %s expired", record.id)
        return expired


__all__ = [
    "ClaimRecord",
    "EntryOracle",
    "HmacTokenIssuer",
    "InMemorySessionLedger",
    "IssuedSession",
    "MAX_SCORE",
    "SessionLedger",
    "SessionRecord",
    "SessionService",
    "SessionStatus",
    "SessionToken",
    "TokenIssuer",
    "authenticate",
    "issue_seed",
]
