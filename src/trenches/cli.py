import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from .config import Settings, default_user_settings_path
from .errors import SettingsError
from .logging_config import configure_logging
from .solo import SoloRun

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="trenches",
        description="Trenches & Dragons - deterministic dungeon engine tools",
    )
    parser.add_argument(
        "--settings",
        dest="settings_path",
        type=Path,
        default=None,
        help="Path to a user settings YAML file to load/override defaults.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay a solo run from its seed and recorded steps.")
    replay.add_argument("--seed", required=True, help="Seed issued at session creation.")
    replay.add_argument(
        "--step",
        dest="steps",
        action="append",
        default=[],
        help="Recorded step, e.g. door:left or attack. Repeat in order.",
    )
    replay.add_argument("--json", action="store_true", help="Print the final state as JSON.")

    sub.add_parser("settings", help="Print the effective merged settings as YAML.")
    return parser.parse_args(argv)


def _replay(args, settings: Settings) -> int:
    run = SoloRun.replay(args.seed, args.steps, settings=settings.solo)
    if args.json:
        print(json.dumps(run.state.to_dict(), indent=2))
    else:
        for line in run.state.log:
            print(line)
        print(f"Stage {run.state.stage}/{settings.solo.total_stages}  Health {run.state.health}/{run.state.max_health}  Gold {run.state.gold}")
        print(f"Final score: {run.final_score}")
    if len(run.history) != len(args.steps):
        logger.warning("%d of %d steps were rejected", len(args.steps) - len(run.history), len(args.steps))
        return 1
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(default_level=logging.DEBUG if args.debug else logging.INFO)

    try:
        user_path = args.settings_path
        if user_path is None and default_user_settings_path().exists():
            user_path = default_user_settings_path()
        settings = Settings.load(user_path=user_path)
    except SettingsError as e:
        logger.error("Invalid settings: %s", e)
        return 2

    if args.command == "replay":
        return _replay(args, settings)
    yaml.safe_dump(settings.to_dict(), sys.stdout, sort_keys=False)
    return 0
