from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from ..core.rng import DiceSource
from .models import ENEMY_ID_PREFIX, EncounterOption, EncounterState, EnemyState

logger = logging.getLogger(__name__)

ENCOUNTER_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("combat", 0.4),
    ("treasure", 0.2),
    ("trap", 0.15),
    ("rest", 0.1),
    ("dialogue", 0.15),
)

MAX_ENEMIES = 3
BOSS_ID = f"{ENEMY_ID_PREFIX}boss"


@dataclass(frozen=True)
class EnemyTemplate:
    name: str
    health: int
    damage: int
    icon: str


ENEMY_TEMPLATES: Tuple[EnemyTemplate, ...] = (
    EnemyTemplate("Goblin", 30, 8, "goblin"),
    EnemyTemplate("Skeleton", 25, 10, "skull"),
    EnemyTemplate("Rat Swarm", 20, 6, "rat"),
    EnemyTemplate("Orc", 50, 12, "orc"),
)


def enemy_count(floor: int) -> int:
    return min(1 + floor // 2, MAX_ENEMIES)


def generate_enemies(rng: DiceSource, floor: int) -> List[EnemyState]:
    """Floor-scaled enemies, one template pick per enemy."""
    enemies = []
    for i in range(enemy_count(floor)):
        template = rng.pick(ENEMY_TEMPLATES)
        health = template.health + floor * 5
        enemies.append(
            EnemyState(
                id=f"{ENEMY_ID_PREFIX}{i}",
                name=template.name,
                health=health,
                max_health=health,
                damage=template.damage + floor * 2,
                defense=2 + floor,
                icon=template.icon,
            )
        )
    return enemies


def boss_encounter(floor: int, room: int) -> EncounterState:
    health = 80 + floor * 20
    boss = EnemyState(
        id=BOSS_ID,
        name="Goblin Chief" if floor == 1 else "Dark Knight",
        health=health,
        max_health=health,
        damage=15 + floor * 5,
        defense=5,
        icon="boss",
    )
    return EncounterState(
        id=f"boss-{floor}-{room}",
        type="combat",
        title="Boss Chamber!",
        description="A powerful enemy blocks your path!",
        options=[EncounterOption("attack", "Fight!"), EncounterOption("flee", "Try to flee")],
        enemies=[boss],
    )


def roll_encounter_type(rng: DiceSource) -> str:
    roll = rng.next()
    cumulative = 0.0
    for kind, weight in ENCOUNTER_WEIGHTS:
        cumulative += weight
        if roll < cumulative:
            return kind
    # Float rounding can leave the cumulative sum a hair under 1.0
    return ENCOUNTER_WEIGHTS[0][0]


def generate_party_encounter(rng: DiceSource, floor: int, room: int, boss_interval: int = 5) -> EncounterState:
    """Encounter for ``room`` (the room being left) on ``floor``.

    Every ``boss_interval``-th room is a boss chamber and consumes no draws.
    Otherwise one draw picks the room type and combat rooms pick one template
    per enemy.
    """
    if room > 0 and room % boss_interval == 0:
        logger.debug("Boss chamber at floor=%d room=%d", floor, room)
        return boss_encounter(floor, room)

    kind = roll_encounter_type(rng)
    logger.debug("Party encounter floor=%d room=%d -> %s", floor, room, kind)
    if kind == "combat":
        return EncounterState(
            id=f"combat-{floor}-{room}",
            type="combat",
            title="Enemies Approach!",
            description="Monsters block your path. Prepare for battle!",
            options=[EncounterOption("attack", "Attack!"), EncounterOption("flee", "Try to flee")],
            enemies=generate_enemies(rng, floor),
        )
    if kind == "treasure":
        return EncounterState(
            id=f"treasure-{floor}-{room}",
            type="treasure",
            title="Treasure Found!",
            description="A chest glimmers in the darkness...",
            options=[EncounterOption("treasure", "Open the chest"), EncounterOption("continue", "Leave it (trap?)")],
        )
    if kind == "trap":
        return EncounterState(
            id=f"trap-{floor}-{room}",
            type="dialogue",
            title="Trap!",
            description="The floor gives way! Everyone takes 10 damage.",
            options=[EncounterOption("continue", "Continue carefully")],
        )
    if kind == "rest":
        return EncounterState(
            id=f"rest-{floor}-{room}",
            type="dialogue",
            title="Safe Room",
            description="A peaceful chamber. You can rest here.",
            options=[EncounterOption("rest", "Rest and heal"), EncounterOption("continue", "Keep moving")],
        )
    return EncounterState(
        id=f"dialogue-{floor}-{room}",
        type="dialogue",
        title="Crossroads",
        description="Two paths lie before you...",
        options=[
            EncounterOption("continue", "Take the left path"),
            EncounterOption("continue", "Take the right path"),
        ],
    )


def entrance_encounter() -> EncounterState:
    return EncounterState(
        id="intro",
        type="dialogue",
        title="The Dungeon Entrance",
        description=(
            "Your party stands at the entrance of the ancient dungeon. Darkness awaits within, "
            "but so does treasure and glory. Work together to survive!"
        ),
        options=[
            EncounterOption("enter", "Enter the dungeon together"),
            EncounterOption("prepare", "Check equipment first"),
        ],
    )


def loot_encounter(gold: int, score: int) -> EncounterState:
    return EncounterState(
        id="loot",
        type="loot",
        title="Victory!",
        description="You have defeated the enemies! Collect your rewards.",
        options=[EncounterOption("continue", "Continue deeper")],
        rewards={"gold": gold, "score": score},
    )


def escaped_encounter() -> EncounterState:
    return EncounterState(
        id="fled",
        type="dialogue",
        title="Escaped!",
        description="You managed to escape the danger... for now.",
        options=[EncounterOption("continue", "Continue carefully")],
    )


__all__ = [
    "BOSS_ID",
    "ENCOUNTER_WEIGHTS",
    "ENEMY_TEMPLATES",
    "entrance_encounter",
    "escaped_encounter",
    "generate_enemies",
    "generate_party_encounter",
    "loot_encounter",
]
