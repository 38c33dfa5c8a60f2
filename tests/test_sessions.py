import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from trenches.errors import InvalidSessionToken, SessionError, SessionMismatch, SessionNotActive
from trenches.economy.sessions import (
    HmacTokenIssuer,
    InMemorySessionLedger,
    SessionService,
    SessionStatus,
    SessionToken,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class Oracle:
    def __init__(self, *authorized):
        self.authorized = set(authorized)

    def is_authorized(self, signature):
        return signature in self.authorized


@pytest.fixture
def clock(utc_clock):
    return utc_clock


@pytest.fixture
def ledger():
    return InMemorySessionLedger()


@pytest.fixture
def tokens(clock):
    return HmacTokenIssuer(b"test-key", clock=clock)


@pytest.fixture
def sessions(ledger, tokens, clock):
    return SessionService(ledger, Oracle("sig-1", "sig-2"), tokens, clock=clock, seed_factory=lambda: "ab" * 16)


def test_create_session_needs_authorized_entry(sessions):
    with pytest.raises(SessionError):
        sessions.create_session("player-1", "sig-unpaid")


def test_create_session_issues_seed_token_and_expiry(sessions, tokens):
    issued = sessions.create_session("player-1", "sig-1")
    record = issued.session
    assert record.seed == "ab" * 16
    assert record.status is SessionStatus.ACTIVE
    assert record.expires_at == T0 + timedelta(minutes=30)
    payload = tokens.verify(issued.token)
    assert (payload.session_id, payload.player, payload.seed) == (record.id, "player-1", record.seed)


def test_resubmitting_an_active_signature_returns_the_session(sessions):
    first = sessions.create_session("player-1", "sig-1")
    again = sessions.create_session("player-1", "sig-1")
    assert again.session.id == first.session.id
    assert again.message == "Returning existing active session"


def test_used_signature_is_refused(sessions):
    issued = sessions.create_session("player-1", "sig-1")
    sessions.complete_session(issued.token, issued.session.id, 10)
    with pytest.raises(SessionError):
        sessions.create_session("player-1", "sig-1")


def test_complete_session_records_score(sessions, ledger):
    issued = sessions.create_session("player-1", "sig-1")
    done = sessions.complete_session(issued.token, issued.session.id, 1234)
    assert done.status is SessionStatus.COMPLETED
    assert ledger.get_session(issued.session.id).score == 1234
    with pytest.raises(SessionNotActive):
        sessions.complete_session(issued.token, issued.session.id, 1)


@pytest.mark.parametrize("score", [-1, 1_000_001, 2.5, True])
def test_score_must_be_in_range(sessions, score):
    issued = sessions.create_session("player-1", "sig-1")
    with pytest.raises(ValueError):
        sessions.complete_session(issued.token, issued.session.id, score)


def test_token_must_bind_session_and_player(sessions, tokens, ledger):
    mine = sessions.create_session("player-1", "sig-1")
    theirs = sessions.create_session("player-2", "sig-2")
    with pytest.raises(SessionMismatch):
        sessions.complete_session(mine.token, theirs.session.id, 5)
    forged = tokens.issue(SessionToken(theirs.session.id, "player-1", "x", T0 + timedelta(minutes=5)))
    with pytest.raises(SessionMismatch):
        sessions.complete_session(forged, theirs.session.id, 5)


def test_tampered_token_is_invalid(sessions):
    issued = sessions.create_session("player-1", "sig-1")
    body, _, digest = issued.token.partition(".")
    with pytest.raises(InvalidSessionToken):
        sessions.complete_session(body + "." + digest[::-1], issued.session.id, 5)
    other_key = HmacTokenIssuer(b"other-key")
    assert other_key.verify(issued.token) is None


def test_expired_session_cannot_complete(sessions, ledger, clock):
    issued = sessions.create_session("player-1", "sig-1")
    # Keep the token valid while the session itself runs out
    ledger.update_session(dataclasses.replace(issued.session, expires_at=T0 + timedelta(minutes=1)))
    clock.now = T0 + timedelta(minutes=2)
    with pytest.raises(SessionNotActive):
        sessions.complete_session(issued.token, issued.session.id, 5)
    assert ledger.get_session(issued.session.id).status is SessionStatus.EXPIRED


def test_token_expires_with_the_clock(sessions, clock):
    issued = sessions.create_session("player-1", "sig-1")
    clock.now = T0 + timedelta(minutes=31)
    with pytest.raises(InvalidSessionToken):
        sessions.complete_session(issued.token, issued.session.id, 5)


def test_expire_stale(sessions, ledger, clock):
    sessions.create_session("player-1", "sig-1")
    clock.now = T0 + timedelta(hours=1)
    assert sessions.expire_stale(list(ledger.sessions.values())) == 1
    assert all(s.status is SessionStatus.EXPIRED for s in ledger.sessions.values())
