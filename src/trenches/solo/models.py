from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple, Type, Union

from ..errors import CorruptStateError


@dataclass(frozen=True)
class CombatEncounter:
    """An enemy blocking the path; the only encounter that takes several actions."""

    type: ClassVar[str] = "combat"

    name: str
    description: str
    enemy_health: int
    enemy_max_health: int
    enemy_damage: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "enemyHealth": self.enemy_health,
            "enemyMaxHealth": self.enemy_max_health,
            "enemyDamage": self.enemy_damage,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CombatEncounter":
        return CombatEncounter(
            name=str(data["name"]),
            description=str(data.get("description", "")),
            enemy_health=int(data["enemyHealth"]),
            enemy_max_health=int(data["enemyMaxHealth"]),
            enemy_damage=int(data["enemyDamage"]),
        )


@dataclass(frozen=True)
class TreasureEncounter:
    type: ClassVar[str] = "treasure"

    name: str
    description: str
    gold: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "name": self.name, "description": self.description, "treasureGold": self.gold}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "TreasureEncounter":
        return TreasureEncounter(
            name=str(data["name"]), description=str(data.get("description", "")), gold=int(data["treasureGold"])
        )


@dataclass(frozen=True)
class TrapEncounter:
    type: ClassVar[str] = "trap"

    name: str
    description: str
    damage: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "name": self.name, "description": self.description, "trapDamage": self.damage}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "TrapEncounter":
        return TrapEncounter(
            name=str(data["name"]), description=str(data.get("description", "")), damage=int(data["trapDamage"])
        )


@dataclass(frozen=True)
class RestEncounter:
    type: ClassVar[str] = "rest"

    name: str
    description: str
    heal_amount: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "name": self.name, "description": self.description, "healAmount": self.heal_amount}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "RestEncounter":
        return RestEncounter(
            name=str(data["name"]), description=str(data.get("description", "")), heal_amount=int(data["healAmount"])
        )


Encounter = Union[CombatEncounter, TreasureEncounter, TrapEncounter, RestEncounter]

ENCOUNTER_TYPES: Dict[str, Type[Any]] = {
    cls.type: cls for cls in (CombatEncounter, TreasureEncounter, TrapEncounter, RestEncounter)
}


def encounter_from_dict(data: Optional[Dict[str, Any]]) -> Optional[Encounter]:
    if data is None:
        return None
    try:
        cls = ENCOUNTER_TYPES[data["type"]]
        return cls.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptStateError(f"Invalid encounter record: {data!r}") from e


@dataclass(frozen=True)
class GameState:
    """Snapshot of a solo run.

    Instances are never mutated; the resolver returns a new snapshot for every
    transition and the caller persists it.
    """

    stage: int = 0
    health: int = 100
    max_health: int = 100
    gold: int = 0
    score: int = 0
    current_encounter: Optional[Encounter] = None
    log: Tuple[str, ...] = field(default_factory=tuple)
    is_complete: bool = False
    victory: bool = False

    def __post_init__(self) -> None:
        if self.max_health <= 0:
            raise ValueError("max_health must be positive")
        if not (0 <= self.health <= self.max_health):
            raise ValueError(f"health {self.health} outside [0, {self.max_health}]")
        if self.stage < 0 or self.gold < 0 or self.score < 0:
            raise ValueError("stage, gold and score must be non-negative")

    @classmethod
    def new(cls, max_health: int = 100) -> "GameState":
        return cls(health=max_health, max_health=max_health, log=("You descend into the trenches...",))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "health": self.health,
            "maxHealth": self.max_health,
            "gold": self.gold,
            "score": self.score,
            "currentEncounter": self.current_encounter.to_dict() if self.current_encounter else None,
            "log": list(self.log),
            "isComplete": self.is_complete,
            "victory": self.victory,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "GameState":
        try:
            return GameState(
                stage=int(data["stage"]),
                health=int(data["health"]),
                max_health=int(data["maxHealth"]),
                gold=int(data["gold"]),
                score=int(data["score"]),
                current_encounter=encounter_from_dict(data.get("currentEncounter")),
                log=tuple(str(line) for line in data.get("log", [])),
                is_complete=bool(data.get("isComplete", False)),
                victory=bool(data.get("victory", False)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptStateError(f"Invalid solo game state: {e}") from e


__all__ = [
    "CombatEncounter",
    "Encounter",
    "GameState",
    "RestEncounter",
    "TrapEncounter",
    "TreasureEncounter",
    "encounter_from_dict",
]
