"""Pure state transitions for the solo adventure.

Every function takes a :class:`GameState` snapshot and returns a
:class:`Resolution` holding the next snapshot and the narrative line that was
appended to its log. Invalid requests (wrong encounter type, no encounter,
finished run, unknown action) return the input state untouched together with
an explanation; nothing here raises for expected control flow.

RNG draw order is part of the replay contract. A combat action always draws
the player's d20 and then the enemy's d20 before any damage dice.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Literal

from ..core.rng import DiceSource
from .models import CombatEncounter, GameState, RestEncounter, TrapEncounter, TreasureEncounter

logger = logging.getLogger(__name__)

CombatAction = Literal["attack", "defend", "escape"]
LootChoice = Literal["take", "leave"]

ESCAPE_DC = 12
DEFEND_DAMAGE_FACTOR = 0.3
ESCAPE_PENALTY_FACTOR = 1.2
DEFAULT_TOTAL_STAGES = 5


@dataclass(frozen=True)
class Resolution:
    state: GameState
    message: str
    applied: bool = True


def _rejected(state: GameState, message: str) -> Resolution:
    logger.warning("Solo action rejected: %s", message)
    return Resolution(state=state, message=message, applied=False)


def _finished(state: GameState) -> Resolution:
    return _rejected(state, "The run is already over")


def _with_death_check(state: GameState, health: int, message: str) -> tuple[GameState, str]:
    if health <= 0:
        logger.info("Player fell at stage %d", state.stage)
        return replace(state, health=0, is_complete=True, victory=False), message + " You have fallen in the trenches..."
    return replace(state, health=health), message


def process_combat_action(state: GameState, action: CombatAction, rng: DiceSource) -> Resolution:
    """Resolve one attack/defend/escape against the current combat encounter."""
    if state.is_complete:
        return _finished(state)
    encounter = state.current_encounter
    if not isinstance(encounter, CombatEncounter):
        return _rejected(state, "No combat encounter active")
    if action not in ("attack", "defend", "escape"):
        return _rejected(state, f"Unknown combat action: {action}")

    player_roll = rng.roll_d20()
    enemy_roll = rng.roll_d20()
    logger.debug("Combat rolls action=%s player=%d enemy=%d", action, player_roll, enemy_roll)

    name = encounter.name
    stage = state.stage
    health = state.health
    gold = state.gold
    score = state.score
    enemy_health = encounter.enemy_health
    cleared = False

    if action == "attack":
        damage = rng.roll_dice(2, 6) + player_roll // 4
        enemy_health -= damage
        message = f"You attack for {damage} damage! (Rolled {player_roll})"
        if enemy_health > 0:
            enemy_damage = max(0, encounter.enemy_damage - enemy_roll // 5)
            health -= enemy_damage
            message += f" The {name} strikes back for {enemy_damage} damage!"
        else:
            gold_reward = rng.next_int(10, 30) + stage * 5
            score_reward = 100 + stage * 25
            gold += gold_reward
            score += score_reward
            cleared = True
            message += f" The {name} is defeated! +{gold_reward} gold, +{score_reward} score"
    elif action == "defend":
        counter = rng.roll_dice(1, 4)
        enemy_health -= counter
        message = f"You brace yourself and counter for {counter} damage!"
        reduced = max(0, math.floor(encounter.enemy_damage * DEFEND_DAMAGE_FACTOR))
        health -= reduced
        message += f" Blocked most of the {name}'s attack, taking only {reduced} damage."
        if enemy_health <= 0:
            gold_reward = rng.next_int(10, 25) + stage * 5
            score_reward = 75 + stage * 20
            gold += gold_reward
            score += score_reward
            cleared = True
            message += f" The {name} falls! +{gold_reward} gold, +{score_reward} score"
    else:
        if player_roll >= ESCAPE_DC:
            cleared = True
            score += 25
            message = f"You successfully flee from the {name}! (Rolled {player_roll})"
        else:
            penalty = math.floor(encounter.enemy_damage * ESCAPE_PENALTY_FACTOR)
            health -= penalty
            message = f"Failed to escape! (Rolled {player_roll}) The {name} strikes for {penalty} damage!"

    next_encounter = None if cleared else replace(encounter, enemy_health=enemy_health)
    interim = replace(state, gold=gold, score=score, current_encounter=next_encounter, health=max(0, health))
    new_state, message = _with_death_check(interim, health, message)
    new_state = replace(new_state, log=state.log + (message,))
    return Resolution(state=new_state, message=message)


def process_trap(state: GameState) -> Resolution:
    if state.is_complete:
        return _finished(state)
    encounter = state.current_encounter
    if not isinstance(encounter, TrapEncounter):
        return _rejected(state, "No trap encounter active")

    message = f"The {encounter.name} deals {encounter.damage} damage!"
    interim = replace(state, current_encounter=None, health=max(0, state.health - encounter.damage))
    new_state, message = _with_death_check(interim, state.health - encounter.damage, message)
    new_state = replace(new_state, log=state.log + (message,))
    return Resolution(state=new_state, message=message)


def process_rest(state: GameState) -> Resolution:
    if state.is_complete:
        return _finished(state)
    encounter = state.current_encounter
    if not isinstance(encounter, RestEncounter):
        return _rejected(state, "No rest encounter active")

    new_health = min(state.max_health, state.health + encounter.heal_amount)
    healed = new_health - state.health
    message = f"You rest and recover {healed} health. +50 score"
    new_state = replace(
        state,
        health=new_health,
        score=state.score + 50,
        current_encounter=None,
        log=state.log + (message,),
    )
    return Resolution(state=new_state, message=message)


def process_treasure(state: GameState, choice: LootChoice) -> Resolution:
    if state.is_complete:
        return _finished(state)
    encounter = state.current_encounter
    if not isinstance(encounter, TreasureEncounter):
        return _rejected(state, "No treasure encounter active")

    if choice == "take":
        gold = encounter.gold
        message = f"You collect {gold} gold from the {encounter.name}! +{gold} score"
        new_state = replace(state, gold=state.gold + gold, score=state.score + gold)
    elif choice == "leave":
        message = "You leave the treasure behind. Better safe than sorry. +25 score"
        new_state = replace(state, score=state.score + 25)
    else:
        return _rejected(state, f"Unknown loot choice: {choice}")
    new_state = replace(new_state, current_encounter=None, log=state.log + (message,))
    return Resolution(state=new_state, message=message)


def check_victory(state: GameState, total_stages: int = DEFAULT_TOTAL_STAGES) -> GameState:
    """Finish the run once every stage is cleared and nothing is pending."""
    if state.is_complete or state.stage < total_stages or state.current_encounter is not None:
        return state
    message = f"Victory! You escaped the trenches with {state.health} health and {state.gold} gold!"
    logger.info("Run won at stage %d with %d health and %d gold", state.stage, state.health, state.gold)
    return replace(
        state,
        is_complete=True,
        victory=True,
        score=state.score + state.health * 2 + state.gold,
        log=state.log + (message,),
    )


def calculate_final_score(state: GameState) -> int:
    score = state.score
    if state.victory:
        score += 500
        score += state.health * 3
        score += state.gold
    return score


__all__ = [
    "CombatAction",
    "LootChoice",
    "Resolution",
    "calculate_final_score",
    "check_victory",
    "process_combat_action",
    "process_rest",
    "process_trap",
    "process_treasure",
]
