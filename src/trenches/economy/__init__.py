from .rewards import ClaimService, RewardSettingsProvider, calculate_reward
from .sessions import (
    ClaimRecord,
    HmacTokenIssuer,
    InMemorySessionLedger,
    SessionRecord,
    SessionService,
    SessionStatus,
    SessionToken,
)

__all__ = [
    "ClaimRecord",
    "ClaimService",
    "HmacTokenIssuer",
    "InMemorySessionLedger",
    "RewardSettingsProvider",
    "SessionRecord",
    "SessionService",
    "SessionStatus",
    "SessionToken",
    "calculate_reward",
]
