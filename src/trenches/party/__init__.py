from .actions import ActionRequest, NewGameRequest, NewPlayer, PartyAction
from .engine import ActionResult, TurnEngine
from .models import (
    ActionLogEntry,
    CombatState,
    EncounterOption,
    EncounterState,
    EnemyState,
    MultiplayerGameState,
    PlayerState,
)
from .service import PartyGameService

__all__ = [
    "ActionLogEntry",
    "ActionRequest",
    "ActionResult",
    "CombatState",
    "EncounterOption",
    "EncounterState",
    "EnemyState",
    "MultiplayerGameState",
    "NewGameRequest",
    "NewPlayer",
    "PartyAction",
    "PartyGameService",
    "PlayerState",
    "TurnEngine",
]
