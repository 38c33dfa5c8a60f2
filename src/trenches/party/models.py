from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import CorruptStateError

TURN_PHASES = ("exploration", "combat", "dialogue", "loot", "waiting")
GAME_STATUSES = ("active", "victory", "defeat", "abandoned")
CHARACTER_CLASSES = ("warrior", "mage", "rogue")

SYSTEM_PLAYER = "system"
ENEMY_ID_PREFIX = "enemy-"


@dataclass
class PlayerState:
    address: str
    name: str
    character_class: str
    health: int
    max_health: int
    mana: int
    max_mana: int
    gold: int = 0
    score: int = 0
    items: List[Any] = field(default_factory=list)
    is_ready: bool = True
    is_alive: bool = True
    is_defending: bool = False

    def take_damage(self, amount: int) -> int:
        """Apply a hit, halving it (and consuming the stance) when defending.

        Returns the damage actually dealt.
        """
        if self.is_defending:
            amount = amount // 2
            self.is_defending = False
        self.health = max(0, self.health - amount)
        if self.health == 0:
            self.is_alive = False
        return amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "characterClass": self.character_class,
            "health": self.health,
            "maxHealth": self.max_health,
            "mana": self.mana,
            "maxMana": self.max_mana,
            "gold": self.gold,
            "score": self.score,
            "items": list(self.items),
            "isReady": self.is_ready,
            "isAlive": self.is_alive,
            "isDefending": self.is_defending,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "PlayerState":
        return PlayerState(
            address=str(data["address"]),
            name=str(data["name"]),
            character_class=str(data["characterClass"]),
            health=int(data["health"]),
            max_health=int(data["maxHealth"]),
            mana=int(data.get("mana", 0)),
            max_mana=int(data.get("maxMana", 0)),
            gold=int(data.get("gold", 0)),
            score=int(data.get("score", 0)),
            items=list(data.get("items", [])),
            is_ready=bool(data.get("isReady", True)),
            is_alive=bool(data["isAlive"]),
            is_defending=bool(data.get("isDefending", False)),
        )


@dataclass
class EnemyState:
    id: str
    name: str
    health: int
    max_health: int
    damage: int
    defense: int
    icon: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "health": self.health,
            "maxHealth": self.max_health,
            "damage": self.damage,
            "defense": self.defense,
            "icon": self.icon,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EnemyState":
        return EnemyState(
            id=str(data["id"]),
            name=str(data["name"]),
            health=int(data["health"]),
            max_health=int(data["maxHealth"]),
            damage=int(data["damage"]),
            defense=int(data.get("defense", 0)),
            icon=str(data.get("icon", "")),
        )


@dataclass
class EncounterOption:
    id: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EncounterOption":
        return EncounterOption(id=str(data["id"]), text=str(data.get("text", "")))


@dataclass
class EncounterState:
    """A room the party is facing: combat, treasure, dialogue or loot."""

    id: str
    type: str
    title: str
    description: str
    options: List[EncounterOption] = field(default_factory=list)
    enemies: List[EnemyState] = field(default_factory=list)
    rewards: Optional[Dict[str, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "options": [o.to_dict() for o in self.options],
        }
        if self.enemies:
            data["enemies"] = [e.to_dict() for e in self.enemies]
        if self.rewards is not None:
            data["rewards"] = dict(self.rewards)
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EncounterState":
        return EncounterState(
            id=str(data["id"]),
            type=str(data["type"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            options=[EncounterOption.from_dict(o) for o in data.get("options", [])],
            enemies=[EnemyState.from_dict(e) for e in data.get("enemies", [])],
            rewards=dict(data["rewards"]) if data.get("rewards") is not None else None,
        )


@dataclass
class CombatState:
    """Live combat bookkeeping.

    ``turn_order`` is fixed when combat starts (living players, then enemies).
    Dead enemies leave ``enemies`` but stay in ``turn_order``; readers filter
    against the live set.
    """

    enemies: List[EnemyState]
    turn_order: List[str]
    current_turn_index: int = 0
    round_number: int = 1

    def enemy(self, enemy_id: Optional[str]) -> Optional[EnemyState]:
        for e in self.enemies:
            if e.id == enemy_id:
                return e
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enemies": [e.to_dict() for e in self.enemies],
            "turnOrder": list(self.turn_order),
            "currentTurnIndex": self.current_turn_index,
            "roundNumber": self.round_number,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CombatState":
        return CombatState(
            enemies=[EnemyState.from_dict(e) for e in data["enemies"]],
            turn_order=[str(t) for t in data["turnOrder"]],
            current_turn_index=int(data.get("currentTurnIndex", 0)),
            round_number=int(data.get("roundNumber", 1)),
        )


@dataclass
class ActionLogEntry:
    id: str
    player: str
    action: str
    result: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player": self.player,
            "action": self.action,
            "result": self.result,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ActionLogEntry":
        return ActionLogEntry(
            id=str(data["id"]),
            player=str(data["player"]),
            action=str(data["action"]),
            result=str(data["result"]),
            timestamp=int(data["timestamp"]),
        )


def is_enemy_id(participant_id: str) -> bool:
    return participant_id.startswith(ENEMY_ID_PREFIX)


@dataclass
class MultiplayerGameState:
    """Authoritative shared state for one party's dungeon run."""

    party_id: str
    dungeon_seed: str
    rng_state: int
    players_state: List[PlayerState]
    current_floor: int = 1
    current_room: int = 0
    current_turn_player: Optional[str] = None
    turn_number: int = 1
    turn_phase: str = "dialogue"
    current_encounter: Optional[EncounterState] = None
    combat_state: Optional[CombatState] = None
    action_log: List[ActionLogEntry] = field(default_factory=list)
    status: str = "active"

    def __post_init__(self) -> None:
        if self.turn_phase not in TURN_PHASES:
            raise ValueError(f"Unknown turn phase: {self.turn_phase}")
        if self.status not in GAME_STATUSES:
            raise ValueError(f"Unknown game status: {self.status}")
        addresses = [p.address for p in self.players_state]
        if len(set(addresses)) != len(addresses):
            raise ValueError("Player addresses must be unique within a party")

    @property
    def is_terminal(self) -> bool:
        return self.status != "active"

    def player(self, address: str) -> Optional[PlayerState]:
        for p in self.players_state:
            if p.address == address:
                return p
        return None

    def living_players(self) -> List[PlayerState]:
        return [p for p in self.players_state if p.is_alive]

    def copy(self) -> "MultiplayerGameState":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partyId": self.party_id,
            "currentFloor": self.current_floor,
            "currentRoom": self.current_room,
            "dungeonSeed": self.dungeon_seed,
            "rngState": self.rng_state,
            "currentTurnPlayer": self.current_turn_player,
            "turnNumber": self.turn_number,
            "turnPhase": self.turn_phase,
            "playersState": [p.to_dict() for p in self.players_state],
            "currentEncounter": self.current_encounter.to_dict() if self.current_encounter else None,
            "combatState": self.combat_state.to_dict() if self.combat_state else None,
            "actionLog": [a.to_dict() for a in self.action_log],
            "status": self.status,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "MultiplayerGameState":
        try:
            encounter = data.get("currentEncounter")
            combat = data.get("combatState")
            return MultiplayerGameState(
                party_id=str(data["partyId"]),
                current_floor=int(data["currentFloor"]),
                current_room=int(data["currentRoom"]),
                dungeon_seed=str(data["dungeonSeed"]),
                rng_state=int(data["rngState"]),
                current_turn_player=data.get("currentTurnPlayer"),
                turn_number=int(data["turnNumber"]),
                turn_phase=str(data["turnPhase"]),
                players_state=[PlayerState.from_dict(p) for p in data["playersState"]],
                current_encounter=EncounterState.from_dict(encounter) if encounter else None,
                combat_state=CombatState.from_dict(combat) if combat else None,
                action_log=[ActionLogEntry.from_dict(a) for a in data.get("actionLog", [])],
                status=str(data["status"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptStateError(f"Invalid party game state: {e}") from e


__all__ = [
    "ActionLogEntry",
    "CHARACTER_CLASSES",
    "CombatState",
    "ENEMY_ID_PREFIX",
    "EncounterOption",
    "EncounterState",
    "EnemyState",
    "MultiplayerGameState",
    "PlayerState",
    "SYSTEM_PLAYER",
    "is_enemy_id",
]
