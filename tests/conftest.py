import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


class ScriptedDice:
    """DiceSource double: every method pops the next queued result.

    Running out of a queue raises IndexError, which makes an unexpected extra
    draw fail the test loudly.
    """

    def __init__(self, d20=(), dice=(), ints=(), floats=(), picks=()):
        self.d20 = list(d20)
        self.dice = list(dice)
        self.ints = list(ints)
        self.floats = list(floats)
        self.picks = list(picks)

    def roll_d20(self):
        return self.d20.pop(0)

    def roll_dice(self, count, sides):
        return self.dice.pop(0)

    def next_int(self, min_value, max_value):
        return self.ints.pop(0)

    def next(self):
        return self.floats.pop(0)

    def pick(self, items):
        return items[self.picks.pop(0)]

    def exhausted(self):
        return not (self.d20 or self.dice or self.ints or self.floats or self.picks)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def dice():
    return ScriptedDice


@pytest.fixture
def fixed_ms_clock():
    return FakeClock(1_700_000_000_000)


@pytest.fixture
def utc_clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
