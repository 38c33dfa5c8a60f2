from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..core.rng import DiceSource
from .models import CombatState, EnemyState, PlayerState, is_enemy_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnAdvance:
    """Where control goes after a player's turn.

    ``enemy_phase`` means an enemy slot came up and the engine must resolve
    the whole enemy round before handing control back to a player.
    """

    next_player: Optional[str]
    enemy_phase: bool


def initialize_combat(players: Iterable[PlayerState], enemies: Iterable[EnemyState]) -> CombatState:
    """Build combat state with turn order: living players in list order, then enemies."""
    enemy_list = [copy.deepcopy(e) for e in enemies]
    turn_order = [p.address for p in players if p.is_alive] + [e.id for e in enemy_list]
    logger.debug("Combat initialised, turn order: %s", turn_order)
    return CombatState(enemies=enemy_list, turn_order=turn_order, current_turn_index=0, round_number=1)


def next_turn(combat: CombatState, current_player: Optional[str], players: List[PlayerState]) -> TurnAdvance:
    """Walk the fixed turn order forward from ``current_player``'s slot.

    Dead players and enemies that are no longer in ``combat.enemies`` are
    skipped. The first live enemy slot reached triggers the enemy phase.
    """
    order = combat.turn_order
    if not order:
        return TurnAdvance(next_player=None, enemy_phase=False)
    start = order.index(current_player) if current_player in order else -1
    alive = {p.address for p in players if p.is_alive}
    for step in range(1, len(order) + 1):
        participant = order[(start + step) % len(order)]
        if is_enemy_id(participant):
            if combat.enemy(participant) is not None:
                return TurnAdvance(next_player=None, enemy_phase=True)
            continue
        if participant in alive:
            return TurnAdvance(next_player=participant, enemy_phase=False)
    return TurnAdvance(next_player=None, enemy_phase=False)


def first_living_player(players: List[PlayerState]) -> Optional[str]:
    """Address that holds the turn after an enemy round.

    Falls back to the first listed player even when everyone is dead, so the
    turn never points at nobody. A wiped party is terminal anyway.
    """
    for p in players:
        if p.is_alive:
            return p.address
    return players[0].address if players else None


def run_enemy_phase(
    players: List[PlayerState], enemies: List[EnemyState], rng: DiceSource
) -> Tuple[List[str], Optional[str]]:
    """Every live enemy, in list order, hits one random living player.

    Mutates ``players`` in place. Returns the narration and the address that
    holds the turn afterwards.
    """
    messages: List[str] = []
    for enemy in enemies:
        alive = [p for p in players if p.is_alive]
        if not alive:
            break
        target = rng.pick(alive)
        dealt = target.take_damage(enemy.damage)
        logger.debug("%s hits %s for %d (hp=%d)", enemy.name, target.name, dealt, target.health)
        if target.is_alive:
            messages.append(f"{enemy.name} attacks {target.name} for {dealt} damage!")
        else:
            messages.append(f"{enemy.name} defeats {target.name}!")
    return messages, first_living_player(players)


__all__ = ["TurnAdvance", "first_living_player", "initialize_combat", "next_turn", "run_enemy_phase"]
