from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from platformdirs import user_config_dir

from ..errors import SettingsError

logger = logging.getLogger(__name__)

APP_NAME = "trenches"


@dataclass
class SoloSettings:
    total_stages: int = 5
    max_health: int = 100


@dataclass
class PartySettings:
    action_log_limit: int = 20
    boss_interval: int = 5
    starting_floor: int = 1


@dataclass
class RewardSettings:
    base_amount: int = 500_000
    max_multiplier: float = 2.0
    score_divisor: int = 10_000


@dataclass
class SessionSettings:
    ttl_minutes: int = 30


def default_user_settings_path() -> Path:
    """Location of the optional user override file in the platform config dir."""
    return Path(user_config_dir(APP_NAME)) / "settings.yaml"


@dataclass
class Settings:
    solo: SoloSettings = field(default_factory=SoloSettings)
    party: PartySettings = field(default_factory=PartySettings)
    rewards: RewardSettings = field(default_factory=RewardSettings)
    session: SessionSettings = field(default_factory=SessionSettings)

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        if not isinstance(data, dict):
            raise SettingsError(f"Settings must be a mapping, got {type(data).__name__}")
        try:
            settings = Settings(
                solo=SoloSettings(**data.get("solo", {})),
                party=PartySettings(**data.get("party", {})),
                rewards=RewardSettings(**data.get("rewards", {})),
                session=SessionSettings(**data.get("session", {})),
            )
        except TypeError as e:
            raise SettingsError(f"Unknown settings key: {e}") from e
        settings.validate()
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def _check_types(self) -> None:
        for section_name, section in vars(self).items():
            for f in dataclasses.fields(section):
                value = getattr(section, f.name)
                allowed = (int, float) if f.type == "float" else (int,)
                if isinstance(value, bool) or not isinstance(value, allowed):
                    raise SettingsError(f"{section_name}.{f.name} must be a number, got {value!r}")

    def validate(self) -> None:
        self._check_types()
        if self.solo.total_stages < 1:
            raise SettingsError("solo.total_stages must be at least 1")
        if self.solo.max_health < 1:
            raise SettingsError("solo.max_health must be positive")
        if self.party.action_log_limit < 1:
            raise SettingsError("party.action_log_limit must be at least 1")
        if self.party.boss_interval < 1:
            raise SettingsError("party.boss_interval must be at least 1")
        if self.party.starting_floor < 1:
            raise SettingsError("party.starting_floor must be at least 1")
        if self.rewards.base_amount < 0:
            raise SettingsError("rewards.base_amount cannot be negative")
        if self.rewards.max_multiplier < 1:
            raise SettingsError("rewards.max_multiplier must be at least 1")
        if self.rewards.score_divisor < 1:
            raise SettingsError("rewards.score_divisor must be positive")
        if self.session.ttl_minutes < 1:
            raise SettingsError("session.ttl_minutes must be positive")

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults and optional user override file.

        If user_path is provided and exists, overlay values onto defaults.
        """
        try:
            with resources.files("trenches.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = dataclasses.asdict(Settings())

        user_data = {}
        if user_path is not None:
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                if not isinstance(user_data, dict):
                    raise SettingsError(f"User settings must be a mapping: {user_path}")
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        settings = cls.from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
