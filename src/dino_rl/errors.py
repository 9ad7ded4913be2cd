"""Exception taxonomy for dino_rl.

Only ``GameEnvironmentError`` is fatal to a training session.
Optimization and persistence failures are logged by the training loop
and the session carries on with its in-memory state.
"""

from __future__ import annotations

from dataclasses import dataclass


class DinoRLError(Exception):
    """Base class for all dino_rl errors."""


class GameEnvironmentError(DinoRLError):
    """The game is unreachable or returned a malformed state."""


class InsufficientDataError(DinoRLError):
    """A replay buffer was asked for more samples than it holds."""


class OptimizationError(DinoRLError):
    """A fit step failed numerically or on input shapes."""


class PersistenceError(DinoRLError):
    """A model checkpoint could not be written or read."""


@dataclass(frozen=True)
class TimingAnomaly:
    """An inter-state delta outside the accepted window.

    Not an exception: the training loop discards the step and, unless the
    episode just ended, logs a warning.
    """

    delta_ms: float
    min_ms: float
    max_ms: float
    done: bool = False

    def __str__(self) -> str:
        return (
            f"Time delta {self.delta_ms:g} ms outside "
            f"[{self.min_ms:g}, {self.max_ms:g}] ms"
        )
