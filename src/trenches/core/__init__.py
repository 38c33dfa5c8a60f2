from .rng import SeededRNG, DiceSource

__all__ = ["SeededRNG", "DiceSource"]
