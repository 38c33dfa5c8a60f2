from __future__ import annotations

import logging
import math
import uuid
from typing import Callable, Optional, Protocol

from ..config.settings import RewardSettings
from ..errors import ClaimRejected
from .sessions import ClaimRecord, SessionLedger, SessionStatus, TokenIssuer, authenticate

logger = logging.getLogger(__name__)

REWARD_AMOUNT_KEY = "rewardAmount"

# status -> message for sessions that cannot be claimed
_UNCLAIMABLE = {
    SessionStatus.ACTIVE: "Session is still active. Complete the game first.",
    SessionStatus.CLAIMED: "Reward has already been claimed for this session",
    SessionStatus.EXPIRED: "Session has expired",
}


def score_multiplier(score: int, max_multiplier: float = 2.0, score_divisor: int = 10_000) -> float:
    return min(max_multiplier, 1 + score / score_divisor)


def calculate_reward(
    base_amount: int, score: int, max_multiplier: float = 2.0, score_divisor: int = 10_000
) -> int:
    """Reward owed for a completed session.

    Grows linearly with score and caps at ``max_multiplier`` times the base
    (reached at a score of ``score_divisor``).
    """
    return math.floor(base_amount * score_multiplier(score, max_multiplier, score_divisor))


class KeyValueSettings(Protocol):
    def get(self, key: str) -> Optional[str]: ...


class RewardSettingsProvider:
    """Base reward amount, overridable at runtime through a key-value store."""

    def __init__(self, settings: Optional[RewardSettings] = None, store: Optional[KeyValueSettings] = None) -> None:
        self.settings = settings or RewardSettings()
        self.store = store

    def base_amount(self) -> int:
        if self.store is None:
            return self.settings.base_amount
        raw = self.store.get(REWARD_AMOUNT_KEY)
        if raw is None:
            return self.settings.base_amount
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s=%r; using %d", REWARD_AMOUNT_KEY, raw, self.settings.base_amount)
            return self.settings.base_amount

    def reward_for(self, score: int) -> int:
        return calculate_reward(
            self.base_amount(), score, self.settings.max_multiplier, self.settings.score_divisor
        )


class ClaimService:
    def __init__(
        self,
        ledger: SessionLedger,
        tokens: TokenIssuer,
        rewards: Optional[RewardSettingsProvider] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.ledger = ledger
        self.tokens = tokens
        self.rewards = rewards or RewardSettingsProvider()
        self.id_factory = id_factory

    def claim(self, token: str, session_id: str) -> ClaimRecord:
        """Record a pending reward claim for a completed session.

        Raises:
            InvalidSessionToken, SessionMismatch, SessionNotFound when the
            bearer does not own the session.
            ClaimRejected with ``reason`` set to the blocking session status,
            or ``ledger_failure`` when the ledger refuses the claim.
        """
        record = authenticate(self.tokens, self.ledger, token, session_id)
        if record.status in _UNCLAIMABLE:
            logger.warning("Claim rejected for session %s: %s", session_id, record.status.value)
            raise ClaimRejected(record.status.value, _UNCLAIMABLE[record.status])

        claim = ClaimRecord(
            id=self.id_factory(),
            player=record.player,
            session_id=session_id,
            amount=self.rewards.reward_for(record.score),
        )
        created = self.ledger.create_claim(claim)
        if created is None:
            logger.warning("Ledger refused claim for session %s", session_id)
            raise ClaimRejected("ledger_failure", "Failed to create claim")
        self.ledger.mark_session_claimed(session_id)
        logger.info("Claim %s recorded: %d for %s (score %d)", created.id, created.amount, created.player, record.score)
        return created


__all__ = [
    "ClaimService",
    "KeyValueSettings",
    "REWARD_AMOUNT_KEY",
    "RewardSettingsProvider",
    "calculate_reward",
    "score_multiplier",
]
