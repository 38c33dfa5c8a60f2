"""Multiplayer turn engine.

The engine is pure with respect to its inputs: it takes a game state, the
acting player and an action, and returns a new state. The input state is never
mutated, so a rejected action leaves the caller holding exactly what it loaded.
All randomness flows through a SeededRNG resumed from ``rng_state`` and the
advanced state is written back, which keeps a party's history replayable.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..config.settings import PartySettings
from ..core.rng import SeededRNG
from .actions import PartyAction
from .encounters import escaped_encounter, generate_party_encounter, loot_encounter
from .models import ActionLogEntry, MultiplayerGameState, PlayerState
from .turns import initialize_combat, next_turn, run_enemy_phase

logger = logging.getLogger(__name__)

CLASS_BASE_DAMAGE: Dict[str, int] = {"warrior": 15, "mage": 20, "rogue": 12}
KILL_SCORE = 75
VICTORY_GOLD = 50
VICTORY_SCORE = 100
REST_HEAL = 20
TREASURE_BASE_GOLD = 50
TREASURE_SPREAD = 50

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def log_entry_id(party_id: str, turn_number: int) -> str:
    """Stable id for the log entry written on ``turn_number``."""
    digest = hashlib.blake2b(f"{party_id}:{turn_number}".encode("utf-8"), digest_size=8)
    return digest.hexdigest()


@dataclass
class ActionResult:
    accepted: bool
    message: str
    state: Optional[MultiplayerGameState]

    @property
    def next_turn(self) -> Optional[str]:
        return self.state.current_turn_player if self.state is not None else None


class _Rejected(Exception):
    """Raised inside a handler to abort the action without touching state."""


class TurnEngine:
    def __init__(self, settings: Optional[PartySettings] = None, clock: Clock = wall_clock_ms) -> None:
        self.settings = settings or PartySettings()
        self.clock = clock

    def process_action(
        self, state: MultiplayerGameState, player_address: str, action: PartyAction
    ) -> ActionResult:
        """Validate and apply one action, returning the resulting state."""
        if state.is_terminal:
            return self._reject(state, player_address, "Game is not active")
        player = state.player(player_address)
        if player is None:
            return self._reject(state, player_address, "Player not in this party")
        if not player.is_alive:
            return self._reject(state, player_address, "Fallen heroes cannot act")
        if state.turn_phase == "combat" and state.current_turn_player != player_address:
            return self._reject(state, player_address, "Not your turn!")

        new_state = state.copy()
        actor = new_state.player(player_address)
        assert actor is not None
        rng = SeededRNG.from_state(new_state.rng_state)
        handler = getattr(self, f"_on_{action.type}", self._on_other)
        try:
            message = handler(new_state, actor, action, rng)
        except _Rejected as e:
            return self._reject(state, player_address, str(e))

        new_state.rng_state = rng.state
        new_state.turn_number += 1
        self._append_log(new_state, player_address, action.type, message)
        logger.debug("Turn %d: %s %s -> %s", new_state.turn_number, actor.name, action.type, message)
        return ActionResult(accepted=True, message=message, state=new_state)

    def _reject(self, state: MultiplayerGameState, player_address: str, message: str) -> ActionResult:
        logger.warning("Rejected action from %s in party %s: %s", player_address, state.party_id, message)
        return ActionResult(accepted=False, message=message, state=state)

    def _append_log(self, state: MultiplayerGameState, player: str, action: str, result: str) -> None:
        entry = ActionLogEntry(
            id=log_entry_id(state.party_id, state.turn_number),
            player=player,
            action=action,
            result=result,
            timestamp=self.clock(),
        )
        state.action_log.insert(0, entry)
        del state.action_log[self.settings.action_log_limit :]

    # Handlers -----------------------------------------------------------

    def _on_choice(self, state: MultiplayerGameState, actor: PlayerState, action: PartyAction, rng: SeededRNG) -> str:
        if state.turn_phase == "combat":
            raise _Rejected("Finish the fight first")
        choice = action.choice_id
        if choice in ("enter", "continue"):
            return self._advance_room(state, rng)
        if choice == "attack":
            encounter = state.current_encounter
            if encounter is not None and encounter.type == "combat":
                self._start_combat(state)
                return f"{actor.name} chose: attack. Battle is joined!"
            return f"{actor.name} chose: attack"
        if choice == "rest":
            # Heals the fallen too, but healing does not revive them
            for p in state.players_state:
                p.health = min(p.health + REST_HEAL, p.max_health)
            return f"The party rests and recovers {REST_HEAL} health each."
        if choice == "treasure":
            gold = TREASURE_BASE_GOLD + rng.next_int(0, TREASURE_SPREAD)
            logger.debug("Treasure roll: %d gold", gold)
            for p in state.players_state:
                p.gold += gold
                p.score += gold
            return f"Found {gold} gold!"
        return f"{actor.name} chose: {choice}"

    def _advance_room(self, state: MultiplayerGameState, rng: SeededRNG) -> str:
        encounter = generate_party_encounter(
            rng, state.current_floor, state.current_room, self.settings.boss_interval
        )
        state.current_room += 1
        state.current_encounter = encounter
        state.combat_state = None
        message = f"The party advances to room {state.current_room}..."
        if encounter.type == "combat":
            self._start_combat(state)
            return message
        # Trap rooms are narrative only; nobody is hurt on entry
        state.turn_phase = "dialogue"
        return message

    def _start_combat(self, state: MultiplayerGameState) -> None:
        assert state.current_encounter is not None
        state.turn_phase = "combat"
        state.combat_state = initialize_combat(state.players_state, state.current_encounter.enemies)
        state.current_turn_player = state.combat_state.turn_order[0]
        state.combat_state.current_turn_index = 0

    def _on_attack(self, state: MultiplayerGameState, actor: PlayerState, action: PartyAction, rng: SeededRNG) -> str:
        combat = state.combat_state
        if combat is None:
            raise _Rejected("Not in combat")
        target = combat.enemy(action.target)
        if target is None:
            raise _Rejected("Invalid target")

        damage = CLASS_BASE_DAMAGE.get(actor.character_class, CLASS_BASE_DAMAGE["warrior"]) + rng.next_int(0, 10)
        logger.debug("%s rolls %d damage against %s", actor.name, damage, target.name)
        target.health = max(0, target.health - damage)
        message = f"{actor.name} deals {damage} damage to {target.name}!"
        if target.health == 0:
            combat.enemies.remove(target)
            actor.score += KILL_SCORE
            message += f" {target.name} is defeated!"

        if not combat.enemies:
            for p in state.players_state:
                p.gold += VICTORY_GOLD
                p.score += VICTORY_SCORE
            state.turn_phase = "loot"
            state.combat_state = None
            state.current_encounter = loot_encounter(VICTORY_GOLD, VICTORY_SCORE)
            logger.info("Party %s cleared the encounter", state.party_id)
            return message + " Victory!"
        return message + self._advance_turn(state, actor.address, rng)

    def _on_defend(self, state: MultiplayerGameState, actor: PlayerState, action: PartyAction, rng: SeededRNG) -> str:
        actor.is_defending = True
        message = f"{actor.name} takes a defensive stance."
        if state.combat_state is not None:
            message += self._advance_turn(state, actor.address, rng)
        return message

    def _on_flee(self, state: MultiplayerGameState, actor: PlayerState, action: PartyAction, rng: SeededRNG) -> str:
        if state.combat_state is None:
            raise _Rejected("Nothing to flee from")
        if rng.next() > 0.5:
            state.combat_state = None
            state.turn_phase = "exploration"
            state.current_encounter = escaped_encounter()
            return "The party successfully fled!"
        return "Failed to escape!" + self._advance_turn(state, actor.address, rng)

    def _on_other(self, state: MultiplayerGameState, actor: PlayerState, action: PartyAction, rng: SeededRNG) -> str:
        return f"{actor.name} performed an action."

    # Turn flow ----------------------------------------------------------

    def _advance_turn(self, state: MultiplayerGameState, acting: str, rng: SeededRNG) -> str:
        """Hand the turn on, resolving an enemy round if one comes up."""
        combat = state.combat_state
        assert combat is not None
        advance = next_turn(combat, acting, state.players_state)
        message = ""
        if advance.enemy_phase:
            narration, holder = run_enemy_phase(state.players_state, combat.enemies, rng)
            combat.round_number += 1
            state.current_turn_player = holder
            if narration:
                message = " " + " ".join(narration)
            message += self._check_wipe(state)
        else:
            state.current_turn_player = advance.next_player
        if state.current_turn_player in combat.turn_order:
            combat.current_turn_index = combat.turn_order.index(state.current_turn_player)
        return message

    def _check_wipe(self, state: MultiplayerGameState) -> str:
        if state.living_players():
            return ""
        state.status = "defeat"
        logger.info("Party %s has been wiped out", state.party_id)
        return " The party has been defeated!"


__all__ = ["ActionResult", "CLASS_BASE_DAMAGE", "TurnEngine", "log_entry_id", "wall_clock_ms"]
