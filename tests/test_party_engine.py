import pytest

from trenches.config import PartySettings
from trenches.core.rng import SeededRNG
from trenches.party.actions import PartyAction
from trenches.party.encounters import BOSS_ID, entrance_encounter, generate_party_encounter
from trenches.party.engine import TurnEngine, log_entry_id
from trenches.party.models import EncounterState, EnemyState, MultiplayerGameState, PlayerState
from trenches.party.turns import initialize_combat


def hero(address, cls="warrior", health=None, **kw):
    max_health = {"warrior": 120, "mage": 70, "rogue": 90}[cls]
    return PlayerState(address, address.title(), cls, health if health is not None else max_health, max_health, 30, 30, **kw)


def make_state(players=None, seed="dungeon", **kw):
    players = players or [hero("alice"), hero("bob", "mage")]
    kw.setdefault("current_turn_player", players[0].address)
    kw.setdefault("current_encounter", entrance_encounter())
    return MultiplayerGameState(
        party_id="p1",
        dungeon_seed=seed,
        rng_state=SeededRNG(seed).state,
        players_state=players,
        **kw,
    )


def goblin(enemy_id="enemy-0", health=100, damage=8):
    return EnemyState(enemy_id, "Goblin", health, health, damage, 3)


def in_combat(players=None, enemies=None, **kw):
    state = make_state(players, **kw)
    enemies = enemies or [goblin()]
    state.current_encounter = EncounterState("combat-1-0", "combat", "Enemies Approach!", "", enemies=enemies)
    state.turn_phase = "combat"
    state.combat_state = initialize_combat(state.players_state, enemies)
    state.current_turn_player = state.combat_state.turn_order[0]
    return state


def act(kind, target=None, **data):
    return PartyAction(type=kind, target=target, data=data)


def choice(choice_id):
    return act("choice", choiceId=choice_id)


@pytest.fixture
def engine(fixed_ms_clock):
    return TurnEngine(PartySettings(), clock=fixed_ms_clock)


def state_where(predicate):
    """First RNG state, from a well spread sweep, whose draws satisfy predicate."""
    for i in range(1, 2000):
        state = SeededRNG.from_state(i * 0x9E3779B1).state
        if predicate(SeededRNG.from_state(state)):
            return state
    raise AssertionError("no rng state found")


def with_rng(state, rng_state):
    state.rng_state = rng_state
    return state


def test_entering_generates_room_and_logs(engine):
    state = make_state()
    expected = generate_party_encounter(SeededRNG.from_state(state.rng_state), 1, 0)
    res = engine.process_action(state, "alice", choice("enter"))
    assert res.accepted
    new = res.state
    assert new.current_room == 1
    assert new.current_encounter.id == expected.id
    assert new.turn_number == 2
    assert new.rng_state != state.rng_state
    entry = new.action_log[0]
    assert (entry.player, entry.action, entry.result) == ("alice", "choice", res.message)
    assert entry.id == log_entry_id("p1", 2)
    assert entry.timestamp == 1_700_000_000_000


def test_input_state_is_not_mutated(engine):
    state = make_state()
    before = state.to_dict()
    engine.process_action(state, "alice", choice("enter"))
    assert state.to_dict() == before


def test_entering_a_combat_room_starts_combat(engine):
    rng_state = state_where(lambda rng: generate_party_encounter(rng, 1, 0).type == "combat")
    res = engine.process_action(with_rng(make_state(), rng_state), "bob", choice("enter"))
    new = res.state
    assert new.turn_phase == "combat"
    assert new.combat_state.turn_order[:2] == ["alice", "bob"]
    assert new.combat_state.turn_order[2].startswith("enemy-")
    assert new.current_turn_player == "alice"


def test_trap_room_is_narrative_only(engine):
    rng_state = state_where(lambda rng: generate_party_encounter(rng, 1, 0).id.startswith("trap-"))
    players = [hero("alice", health=5), hero("bob", "mage"), hero("cleo", "rogue", health=0, is_alive=False)]
    res = engine.process_action(with_rng(make_state(players), rng_state), "alice", choice("enter"))
    assert res.accepted
    assert res.state.current_encounter.title == "Trap!"
    assert [p.health for p in res.state.players_state] == [5, 70, 0]
    assert res.state.status == "active"
    assert res.state.turn_phase == "dialogue"


def test_boss_room_uses_enemy_prefixed_id(engine):
    state = make_state([hero("alice")], current_room=5)
    res = engine.process_action(state, "alice", choice("continue"))
    assert res.state.combat_state.turn_order == ["alice", BOSS_ID]
    # The boss slot must trigger the enemy phase rather than stall the turn
    attacked = engine.process_action(res.state, "alice", act("attack", BOSS_ID))
    assert attacked.state.combat_state.round_number == 2
    assert attacked.state.current_turn_player == "alice"
    assert attacked.state.players_state[0].health == 120 - 20


@pytest.mark.parametrize("cls, base", [("warrior", 15), ("mage", 20), ("rogue", 12)])
def test_attack_damage_is_class_base_plus_d10(engine, cls, base):
    state = in_combat([hero("alice", cls), hero("bob")])
    roll = SeededRNG.from_state(state.rng_state).next_int(0, 10)
    res = engine.process_action(state, "alice", act("attack", "enemy-0"))
    assert res.accepted
    assert res.state.combat_state.enemies[0].health == 100 - (base + roll)
    assert res.state.current_turn_player == "bob"
    assert res.state.combat_state.current_turn_index == 1


def test_killing_the_last_enemy_ends_combat_with_loot(engine):
    state = in_combat(enemies=[goblin(health=1)])
    res = engine.process_action(state, "alice", act("attack", "enemy-0"))
    new = res.state
    assert new.turn_phase == "loot"
    assert new.combat_state is None
    assert new.current_encounter.id == "loot"
    assert new.current_encounter.rewards == {"gold": 50, "score": 100}
    alice, bob = new.players_state
    assert (alice.gold, alice.score) == (50, 175)
    assert (bob.gold, bob.score) == (50, 100)


def test_killing_one_of_two_removes_it_and_passes_the_turn(engine):
    state = in_combat(enemies=[goblin("enemy-0", health=1), goblin("enemy-1")])
    res = engine.process_action(state, "alice", act("attack", "enemy-0"))
    combat = res.state.combat_state
    assert [e.id for e in combat.enemies] == ["enemy-1"]
    assert "enemy-0" in combat.turn_order
    assert res.state.players_state[0].score == 75
    assert res.state.current_turn_player == "bob"


def test_last_player_hands_over_to_the_enemy_phase(engine):
    state = in_combat()
    state.current_turn_player = "bob"
    res = engine.process_action(state, "bob", act("attack", "enemy-0"))
    new = res.state
    assert new.combat_state.round_number == 2
    assert new.current_turn_player == "alice"
    lost = (120 - new.players_state[0].health) + (70 - new.players_state[1].health)
    assert lost == 8


def test_defend_halves_the_next_hit(engine):
    state = in_combat([hero("alice")])
    res = engine.process_action(state, "alice", act("defend"))
    alice = res.state.players_state[0]
    assert alice.health == 116
    assert not alice.is_defending
    assert res.state.combat_state.round_number == 2


def test_dead_players_are_skipped(engine):
    state = in_combat([hero("alice"), hero("bob"), hero("cleo", "rogue")])
    state.players_state[1].health = 0
    state.players_state[1].is_alive = False
    res = engine.process_action(state, "alice", act("attack", "enemy-0"))
    assert res.state.current_turn_player == "cleo"


def test_party_wipe_is_defeat_and_turn_falls_back_to_first_player(engine):
    state = in_combat([hero("alice", health=8)], enemies=[goblin(health=500)])
    res = engine.process_action(state, "alice", act("attack", "enemy-0"))
    assert res.accepted
    assert res.state.status == "defeat"
    assert "The party has been defeated!" in res.message
    assert res.state.current_turn_player == "alice"
    again = engine.process_action(res.state, "alice", act("defend"))
    assert not again.accepted
    assert again.message == "Game is not active"


def test_flee_outcomes(engine):
    success = state_where(lambda rng: rng.next() > 0.5)
    failure = state_where(lambda rng: rng.next() <= 0.5)

    fled = engine.process_action(with_rng(in_combat(), success), "alice", act("flee"))
    assert fled.state.combat_state is None
    assert fled.state.turn_phase == "exploration"
    assert fled.state.current_encounter.id == "fled"

    stuck = engine.process_action(with_rng(in_combat(), failure), "alice", act("flee"))
    assert stuck.message.startswith("Failed to escape!")
    assert stuck.state.combat_state is not None
    assert stuck.state.current_turn_player == "bob"


def test_rest_heals_every_player_up_to_max(engine):
    players = [hero("alice", health=110), hero("bob", "mage", health=10), hero("cleo", "rogue", health=0, is_alive=False)]
    res = engine.process_action(make_state(players), "bob", choice("rest"))
    assert res.message == "The party rests and recovers 20 health each."
    assert [p.health for p in res.state.players_state] == [120, 30, 20]
    assert not res.state.players_state[2].is_alive


def test_treasure_is_shared(engine):
    state = make_state()
    gold = 50 + SeededRNG.from_state(state.rng_state).next_int(0, 50)
    res = engine.process_action(state, "alice", choice("treasure"))
    assert res.message == f"Found {gold} gold!"
    assert all(p.gold == gold and p.score == gold for p in res.state.players_state)


@pytest.mark.parametrize("kind", ["move", "skill", "item"])
def test_unimplemented_kinds_only_narrate(engine, kind):
    state = make_state()
    res = engine.process_action(state, "bob", act(kind))
    assert res.accepted
    assert res.message == "Bob performed an action."
    assert res.state.turn_number == 2
    assert res.state.rng_state == state.rng_state


@pytest.mark.parametrize(
    "player, action, message",
    [
        ("mallory", act("defend"), "Player not in this party"),
        ("bob", act("attack", "enemy-0"), "Not your turn!"),
        ("alice", act("attack", "enemy-9"), "Invalid target"),
        ("alice", choice("continue"), "Finish the fight first"),
    ],
)
def test_rejections_in_combat(engine, player, action, message):
    state = in_combat()
    res = engine.process_action(state, player, action)
    assert not res.accepted
    assert res.message == message
    assert res.state is state


def test_rejections_outside_combat(engine):
    state = make_state([hero("alice"), hero("bob", health=0, is_alive=False)])
    assert engine.process_action(state, "alice", act("attack", "enemy-0")).message == "Not in combat"
    assert engine.process_action(state, "alice", act("flee")).message == "Nothing to flee from"
    assert engine.process_action(state, "bob", act("defend")).message == "Fallen heroes cannot act"


def test_action_log_is_bounded_newest_first(fixed_ms_clock):
    engine = TurnEngine(PartySettings(action_log_limit=3), clock=fixed_ms_clock)
    state = make_state()
    for _ in range(5):
        state = engine.process_action(state, "alice", act("item")).state
    assert len(state.action_log) == 3
    assert [e.id for e in state.action_log] == [log_entry_id("p1", n) for n in (6, 5, 4)]


def test_same_actions_same_outcome(engine):
    script = [("alice", choice("enter")), ("bob", choice("continue")), ("alice", choice("continue"))]

    def play():
        state = make_state(seed="replayable")
        for player, action in script:
            res = engine.process_action(state, player, action)
            if res.accepted:
                state = res.state
        return state.to_dict()

    assert play() == play()
