from .settings import (
    PartySettings,
    RewardSettings,
    SessionSettings,
    Settings,
    SoloSettings,
    default_user_settings_path,
)

__all__ = [
    "PartySettings",
    "RewardSettings",
    "SessionSettings",
    "Settings",
    "SoloSettings",
    "default_user_settings_path",
]
