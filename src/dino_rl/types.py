"""Core type definitions for dino_rl.

Raw game observations are immutable NamedTuples.  ``State.from_dict``
is the single place where the page-side snapshot (camelCase keys, as
produced by the game's ``Runner`` instance) is turned into typed data.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, NamedTuple, TypeAlias

import chex

from dino_rl.errors import GameEnvironmentError

# ---------------------------------------------------------------------------
# Scalar / array type aliases
# ---------------------------------------------------------------------------
Action: TypeAlias = int  # 0 = keep running, 1 = jump
FeatureVector: TypeAlias = chex.ArrayNumpy
Weights: TypeAlias = list[chex.Array]

NO_JUMP: Action = 0
JUMP: Action = 1
N_ACTIONS = 2

# At most this many upcoming obstacles are observed.
MAX_OBSTACLES = 2


# ---------------------------------------------------------------------------
# Observation containers
# ---------------------------------------------------------------------------
class Obstacle(NamedTuple):
    """One upcoming obstacle, in game pixels (y grows downwards)."""

    x_pos: float
    y_pos: float
    width: float
    height: float

    @staticmethod
    def from_dict(raw: Any) -> Obstacle | None:
        """Parse a page-side obstacle; return ``None`` if it is malformed.

        The game reports the obstacle height under ``size``; ``height`` is
        accepted as well.
        """
        if not isinstance(raw, Mapping):
            return None
        try:
            height = raw["height"] if "height" in raw else raw["size"]
            values = (
                float(raw["xPos"]),
                float(raw["yPos"]),
                float(raw["width"]),
                float(height),
            )
        except (KeyError, TypeError, ValueError):
            return None
        if not all(math.isfinite(v) for v in values):
            return None
        return Obstacle(*values)


class State(NamedTuple):
    """A single snapshot of the running game.

    Fields:
        obstacles: Up to ``MAX_OBSTACLES`` upcoming obstacles, nearest
                   first.  ``None`` marks an entry that failed to parse.
        jumping:   Whether the agent is currently airborne.
        y_pos:     Agent vertical position.
        time:      Monotonic game time in milliseconds.
        done:      Terminal flag (the agent crashed).
    """

    obstacles: tuple[Obstacle | None, ...]
    jumping: bool
    y_pos: float
    time: float
    done: bool

    @staticmethod
    def from_dict(raw: Any) -> State:
        """Build a ``State`` from the page snapshot dict.

        Raises:
            GameEnvironmentError: if a required top-level field is missing
                or not numeric.
        """
        if not isinstance(raw, Mapping):
            raise GameEnvironmentError(
                f"Expected a state mapping, got {type(raw).__name__}"
            )
        try:
            time = float(raw["time"])
            y_pos = float(raw["ypos"])
        except (KeyError, TypeError, ValueError) as exc:
            raise GameEnvironmentError(f"Malformed game state: {raw!r}") from exc
        if not math.isfinite(time):
            raise GameEnvironmentError(f"Non-finite game time: {time}")

        raw_obstacles = raw.get("obstacles") or []
        if not isinstance(raw_obstacles, (list, tuple)):
            raw_obstacles = []
        obstacles = tuple(
            Obstacle.from_dict(o) for o in raw_obstacles[:MAX_OBSTACLES]
        )
        return State(
            obstacles=obstacles,
            jumping=bool(raw.get("jumping", False)),
            y_pos=y_pos,
            time=time,
            done=bool(raw.get("done", False)),
        )
