"""
Trenches & Dragons game engine.

Headless, deterministic game logic:
- SeededRNG shared by server and clients
- Solo encounter generation and resolution
- Multiplayer party turn engine with versioned persistence
- Session lifecycle and reward claims

Transport layers (HTTP routes, websockets) should import and compose these services.
"""
from .core.rng import SeededRNG
from .errors import (
    ClaimRejected,
    ConflictError,
    CorruptStateError,
    InvalidSessionToken,
    SessionError,
    SessionMismatch,
    SessionNotActive,
    SessionNotFound,
    SettingsError,
    StateNotFound,
    TrenchesError,
)

__version__ = "0.1.0"

__all__ = [
    "ClaimRejected",
    "ConflictError",
    "CorruptStateError",
    "InvalidSessionToken",
    "SeededRNG",
    "SessionError",
    "SessionMismatch",
    "SessionNotActive",
    "SessionNotFound",
    "SettingsError",
    "StateNotFound",
    "TrenchesError",
]
