from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import CHARACTER_CLASSES

ActionType = Literal["move", "attack", "defend", "skill", "item", "flee", "choice"]


class PartyAction(BaseModel):
    """One player action. ``type`` is a closed set; anything else fails validation."""

    type: ActionType = Field(..., description="Action kind")
    target: Optional[str] = Field(default=None, description="Enemy id for attacks")
    data: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific payload")

    @property
    def choice_id(self) -> Optional[str]:
        value = self.data.get("choiceId")
        return str(value) if value is not None else None


class ActionRequest(BaseModel):
    """Wire shape of an action submission."""

    model_config = ConfigDict(populate_by_name=True)

    party_id: str = Field(..., alias="partyId", min_length=1)
    player_address: str = Field(..., alias="playerAddress", min_length=1)
    action: PartyAction


class NewPlayer(BaseModel):
    """A party member joining a new game."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None)
    character_class: str = Field(default="warrior", alias="characterClass")

    @field_validator("character_class", mode="before")
    @classmethod
    def default_unknown_class(cls, v: Any) -> str:
        # Unknown or missing classes fall back to warrior
        return v if v in CHARACTER_CLASSES else "warrior"


class NewGameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    party_id: str = Field(..., alias="partyId", min_length=1)
    players: List[NewPlayer] = Field(..., min_length=1)

    @field_validator("players")
    @classmethod
    def unique_addresses(cls, v: List[NewPlayer]) -> List[NewPlayer]:
        addresses = [p.address for p in v]
        if len(set(addresses)) != len(addresses):
            raise ValueError("player addresses must be unique")
        return v


__all__ = ["ActionRequest", "ActionType", "NewGameRequest", "NewPlayer", "PartyAction"]
