from __future__ import annotations

import logging
import secrets
import threading
import weakref
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from ..config.settings import PartySettings
from ..core.rng import SeededRNG
from ..errors import StateNotFound
from ..persistence.schema import validate_party_document
from ..persistence.store import StateStore
from .actions import ActionRequest, NewGameRequest
from .encounters import entrance_encounter
from .engine import ActionResult, Clock, TurnEngine, log_entry_id, wall_clock_ms
from .models import SYSTEM_PLAYER, ActionLogEntry, MultiplayerGameState, PlayerState

logger = logging.getLogger(__name__)

# class -> (health, mana)
CLASS_DEFAULTS: Dict[str, tuple] = {
    "warrior": (120, 30),
    "mage": (70, 100),
    "rogue": (90, 50),
}


def party_key(party_id: str) -> str:
    return f"party:{party_id}"


def issue_dungeon_seed() -> str:
    return secrets.token_hex(16)


class _PartyLock:
    """Mutex for one party. Dropped from the registry once no caller holds it."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_PartyLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._lock.release()


class PartyGameService:
    """Load, process and persist party actions with one writer per party.

    Each party id gets its own lock, so actions for one party are applied one
    at a time while different parties proceed in parallel. The store's
    compare-and-swap catches writers outside this process; a lost race
    surfaces as ConflictError for the caller to retry.
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[PartySettings] = None,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self.store = store
        self.settings = settings or PartySettings()
        self.clock = clock
        self.engine = TurnEngine(self.settings, clock)
        self._locks: "weakref.WeakValueDictionary[str, _PartyLock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, party_id: str) -> "_PartyLock":
        with self._registry_lock:
            lock = self._locks.get(party_id)
            if lock is None:
                lock = self._locks[party_id] = _PartyLock()
            return lock

    def create_game(
        self, request: Union[NewGameRequest, Mapping[str, Any]], seed: Optional[str] = None
    ) -> MultiplayerGameState:
        """Create the party's game, or return the one that already exists.

        The dungeon seed is issued here rather than by the engine; pass
        ``seed`` to pin it.
        """
        if not isinstance(request, NewGameRequest):
            request = NewGameRequest.model_validate(request)
        key = party_key(request.party_id)
        with self._lock_for(request.party_id):
            if self.store.exists(key):
                logger.info("Game for party %s already exists", request.party_id)
                return self._load(key)[0]

            dungeon_seed = seed or issue_dungeon_seed()
            players = []
            for i, p in enumerate(request.players, start=1):
                health, mana = CLASS_DEFAULTS[p.character_class]
                players.append(
                    PlayerState(
                        address=p.address,
                        name=p.name or f"Player {i}",
                        character_class=p.character_class,
                        health=health,
                        max_health=health,
                        mana=mana,
                        max_mana=mana,
                    )
                )
            state = MultiplayerGameState(
                party_id=request.party_id,
                dungeon_seed=dungeon_seed,
                rng_state=SeededRNG(dungeon_seed).state,
                players_state=players,
                current_floor=self.settings.starting_floor,
                current_turn_player=players[0].address,
                current_encounter=entrance_encounter(),
            )
            state.action_log.append(
                ActionLogEntry(
                    id=log_entry_id(state.party_id, 0),
                    player=SYSTEM_PLAYER,
                    action="game_start",
                    result="The adventure begins!",
                    timestamp=self.clock(),
                )
            )
            self.store.save(key, state.to_dict(), expected_version=None)
            logger.info("Created game for party %s with %d players", state.party_id, len(players))
            return state

    def get_game(self, party_id: str) -> MultiplayerGameState:
        """Raises StateNotFound when the party has no game."""
        return self._load(party_key(party_id))[0]

    def submit_action(self, payload: Union[ActionRequest, Mapping[str, Any]]) -> ActionResult:
        """Apply one player action inside the party's critical section.

        Malformed payloads and missing games come back as rejected results.
        ConflictError propagates when another writer saved first.
        """
        if not isinstance(payload, ActionRequest):
            try:
                payload = ActionRequest.model_validate(payload)
            except ValidationError as e:
                reason = e.errors()[0]["msg"]
                logger.warning("Rejected malformed action payload: %s", reason)
                return ActionResult(accepted=False, message=f"Invalid action: {reason}", state=None)

        key = party_key(payload.party_id)
        with self._lock_for(payload.party_id):
            try:
                state, version = self._load(key)
            except StateNotFound:
                logger.warning("Action for unknown party %s", payload.party_id)
                return ActionResult(accepted=False, message="Game not found", state=None)
            result = self.engine.process_action(state, payload.player_address, payload.action)
            if result.accepted:
                self.store.save(key, result.state.to_dict(), expected_version=version)
            return result

    def _load(self, key: str) -> tuple:
        doc = self.store.load(key)
        validate_party_document(doc.data)
        return MultiplayerGameState.from_dict(doc.data), doc.version


__all__ = ["CLASS_DEFAULTS", "PartyGameService", "issue_dungeon_seed", "party_key"]
