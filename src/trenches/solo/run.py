from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from ..config import SoloSettings
from ..core.rng import DiceSource, SeededRNG
from .encounters import DOOR_BIAS, generate_encounter
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

logger = logging.getLogger(__name__)

# Which actions each encounter kind accepts.
ENCOUNTER_ACTIONS = {
    CombatEncounter.type: ("attack", "defend", "escape"),
    TreasureEncounter.type: ("take", "leave"),
    RestEncounter.type: ("rest",),
    TrapEncounter.type: ("endure",),
}


class SoloRun:
    """Drive a single-player run from a seed.

    Steps are plain strings so a run can be recorded and replayed:
    ``"door:left"``/``"door:right"`` opens the next door, every other step is
    an action against the pending encounter (see ``ENCOUNTER_ACTIONS``).
    Clearing an encounter without dying advances the stage; victory is
    checked after every stage advance.
    """

    def __init__(
        self,
        seed: str,
        settings: Optional[SoloSettings] = None,
        rng: Optional[DiceSource] = None,
        state: Optional[GameState] = None,
    ) -> None:
        self.seed = seed
        self.settings = settings or SoloSettings()
        self.rng = rng if rng is not None else SeededRNG(seed)
        self.state = state or GameState.new(self.settings.max_health)
        self.history: List[str] = []

    @property
    def final_score(self) -> int:
        return calculate_final_score(self.state)

    def enter_door(self, choice: str) -> Resolution:
        state = self.state
        if state.is_complete:
            return Resolution(state, "The run is already over", applied=False)
        if state.current_encounter is not None:
            return Resolution(state, "Resolve the current encounter first", applied=False)
        if choice not in DOOR_BIAS:
            return Resolution(state, f"Unknown door: {choice}", applied=False)

        encounter = generate_encounter(self.rng, state.stage, choice)  # type: ignore[arg-type]
        self.state = replace(state, current_encounter=encounter, log=state.log + (encounter.description,))
        self.history.append(f"door:{choice}")
        logger.debug("Stage %d: %s door -> %s", state.stage, choice, encounter.type)
        return Resolution(self.state, encounter.description)

    def act(self, action: str) -> Resolution:
        state = self.state
        encounter = state.current_encounter
        if state.is_complete:
            return Resolution(state, "The run is already over", applied=False)
        if encounter is None:
            return Resolution(state, "Choose a door first", applied=False)
        if action not in ENCOUNTER_ACTIONS[encounter.type]:
            return Resolution(state, f"Cannot {action} during a {encounter.type} encounter", applied=False)

        if isinstance(encounter, CombatEncounter):
            result = process_combat_action(state, action, self.rng)  # type: ignore[arg-type]
        elif isinstance(encounter, TreasureEncounter):
            result = process_treasure(state, action)  # type: ignore[arg-type]
        elif isinstance(encounter, RestEncounter):
            result = process_rest(state)
        else:
            result = process_trap(state)

        if not result.applied:
            return result
        self.history.append(action)
        new_state = result.state
        if new_state.current_encounter is None and not new_state.is_complete:
            new_state = check_victory(replace(new_state, stage=new_state.stage + 1), self.settings.total_stages)
        self.state = new_state
        return Resolution(new_state, result.message)

    def step(self, step: str) -> Resolution:
        if step.startswith("door:"):
            return self.enter_door(step.split(":", 1)[1])
        return self.act(step)

    @classmethod
    def replay(cls, seed: str, steps: Iterable[str], settings: Optional[SoloSettings] = None) -> "SoloRun":
        """Rebuild a run from its seed and recorded steps."""
        run = cls(seed, settings=settings)
        for step in steps:
            run.step(step)
        return run


__all__ = ["ENCOUNTER_ACTIONS", "SoloRun"]
