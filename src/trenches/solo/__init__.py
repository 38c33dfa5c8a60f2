from .encounters import generate_encounter
from .models import CombatEncounter, GameState, RestEncounter, TrapEncounter, TreasureEncounter
from .resolver import (
    Resolution,
    calculate_final_score,
    check_victory,
    process_combat_action,
    process_rest,
    process_trap,
    process_treasure,
)
from .run import SoloRun

__all__ = [
    "CombatEncounter",
    "GameState",
    "Resolution",
    "RestEncounter",
    "SoloRun",
    "TrapEncounter",
    "TreasureEncounter",
    "calculate_final_score",
    "check_victory",
    "generate_encounter",
    "process_combat_action",
    "process_rest",
    "process_trap",
    "process_treasure",
]
