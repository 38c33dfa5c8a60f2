import pytest

from trenches.errors import CorruptStateError
from trenches.party.actions import PartyAction
from trenches.party.engine import TurnEngine
from trenches.party.models import MultiplayerGameState
from trenches.party.service import PartyGameService
from trenches.persistence import MemoryStateStore, validate_party_document


@pytest.fixture
def document():
    service = PartyGameService(MemoryStateStore())
    state = service.create_game({"partyId": "p1", "players": [{"address": "a"}, {"address": "b"}]}, seed="schema")
    return state.to_dict()


def test_fresh_game_is_valid(document):
    validate_party_document(document)


def test_game_in_combat_is_valid(document):
    state = MultiplayerGameState.from_dict(document)
    state.current_room = 5
    res = TurnEngine().process_action(state, "a", PartyAction(type="choice", data={"choiceId": "continue"}))
    validate_party_document(res.state.to_dict())


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.pop("rngState"),
        lambda d: d.update(turnPhase="napping"),
        lambda d: d.update(playersState=[]),
        lambda d: d["playersState"][0].update(characterClass="bard"),
        lambda d: d.update(combatState={"enemies": [{"id": "boss-1", "name": "B", "health": 1, "maxHealth": 1, "damage": 1}], "turnOrder": []}),
    ],
)
def test_violations_raise_corrupt_state(document, mutate):
    mutate(document)
    with pytest.raises(CorruptStateError):
        validate_party_document(document)
