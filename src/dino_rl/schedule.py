"""Exploration schedules.

All schedules follow the signature ``schedule(episode) -> value``.

Usage::

    from dino_rl.schedule import exponential_schedule

    schedule = exponential_schedule(start=1.0, end=0.01, decay=200)
    eps = schedule(episode)
"""

from __future__ import annotations

import math
from collections.abc import Callable

Schedule = Callable[[int], float]


def exponential_schedule(
    start: float,
    end: float,
    decay: float,
) -> Schedule:
    """Return ``episode -> end + (start - end) * exp(-episode / decay)``.

    Parameters
    ----------
    start:
        Value at episode 0.
    end:
        Asymptotic value as the episode index grows.
    decay:
        Time constant in episodes; after *decay* episodes the distance to
        *end* has shrunk by a factor of e.

    Returns
    -------
    A callable ``(episode: int) -> float``.
    """
    if decay <= 0:
        raise ValueError(f"decay must be positive, got {decay}")

    def _schedule(episode: int) -> float:
        return end + (start - end) * math.exp(-episode / decay)

    return _schedule
