from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal, Tuple

from ..core.rng import DiceSource
from .models import CombatEncounter, Encounter, RestEncounter, TrapEncounter, TreasureEncounter

logger = logging.getLogger(__name__)

Choice = Literal["left", "right"]


@dataclass(frozen=True)
class EnemyTemplate:
    name: str
    health: int
    damage: int


@dataclass(frozen=True)
class TreasureTemplate:
    name: str
    gold: int


@dataclass(frozen=True)
class TrapTemplate:
    name: str
    damage: int


# Table order is part of the replay contract: pick() indexes into these.
ENEMIES: Tuple[EnemyTemplate, ...] = (
    EnemyTemplate("Goblin Scout", 15, 5),
    EnemyTemplate("Skeleton Warrior", 20, 8),
    EnemyTemplate("Cave Spider", 12, 6),
    EnemyTemplate("Orc Grunt", 25, 10),
    EnemyTemplate("Dark Cultist", 18, 7),
    EnemyTemplate("Ghoul", 22, 9),
    EnemyTemplate("Bandit", 16, 6),
    EnemyTemplate("Giant Rat", 10, 4),
)

TREASURES: Tuple[TreasureTemplate, ...] = (
    TreasureTemplate("Small Chest", 50),
    TreasureTemplate("Gold Pile", 75),
    TreasureTemplate("Ancient Coffer", 100),
    TreasureTemplate("Jeweled Box", 150),
)

TRAPS: Tuple[TrapTemplate, ...] = (
    TrapTemplate("Spike Pit", 10),
    TrapTemplate("Poison Dart", 8),
    TrapTemplate("Falling Rocks", 15),
    TrapTemplate("Flame Jet", 12),
)

DOOR_BIAS = {"left": 0.1, "right": -0.1}

# Upper bounds of the half-open bands, checked in order; anything past the
# last bound (including a biased roll >= 1.0) is a rest.
TYPE_BANDS: Tuple[Tuple[float, str], ...] = (
    (0.5, "combat"),
    (0.7, "treasure"),
    (0.85, "trap"),
)


def difficulty_multiplier(stage: int) -> float:
    return 1 + stage * 0.15


def treasure_multiplier(stage: int) -> float:
    return 1 + stage * 0.1


def classify_roll(adjusted_roll: float) -> str:
    for bound, kind in TYPE_BANDS:
        if adjusted_roll < bound:
            return kind
    return "rest"


def generate_encounter(rng: DiceSource, stage: int, choice: Choice) -> Encounter:
    """Generate the encounter behind the chosen door.

    Consumes exactly one uniform draw for the encounter type, then one pick
    from the relevant template table (rest consumes nothing further).
    """
    if choice not in DOOR_BIAS:
        raise ValueError(f"Unknown door choice: {choice!r}")
    if stage < 0:
        raise ValueError("stage must be non-negative")

    roll = rng.next()
    adjusted = roll + DOOR_BIAS[choice]
    kind = classify_roll(adjusted)
    logger.debug("Encounter roll stage=%d choice=%s roll=%.6f adjusted=%.6f -> %s", stage, choice, roll, adjusted, kind)

    multiplier = difficulty_multiplier(stage)
    if kind == "combat":
        enemy = rng.pick(ENEMIES)
        health = math.floor(enemy.health * multiplier)
        return CombatEncounter(
            name=enemy.name,
            description=f"A {enemy.name} blocks your path!",
            enemy_health=health,
            enemy_max_health=health,
            enemy_damage=math.floor(enemy.damage * multiplier),
        )
    if kind == "treasure":
        treasure = rng.pick(TREASURES)
        return TreasureEncounter(
            name=treasure.name,
            description=f"You discover a {treasure.name}!",
            gold=math.floor(treasure.gold * treasure_multiplier(stage)),
        )
    if kind == "trap":
        trap = rng.pick(TRAPS)
        return TrapEncounter(
            name=trap.name,
            description=f"You triggered a {trap.name}!",
            damage=math.floor(trap.damage * multiplier),
        )
    return RestEncounter(
        name="Safe Haven",
        description="You find a quiet corner to rest...",
        heal_amount=20 + stage * 5,
    )


__all__ = [
    "Choice",
    "ENEMIES",
    "TRAPS",
    "TREASURES",
    "classify_roll",
    "difficulty_multiplier",
    "generate_encounter",
]
