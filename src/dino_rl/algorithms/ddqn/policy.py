"""Epsilon-greedy action selection."""

from __future__ import annotations

import chex
import numpy as np

from dino_rl.algorithms.ddqn.model import Model
from dino_rl.types import N_ACTIONS, Action


def greedy_action(model: Model, features: chex.Array) -> Action:
    """Highest-valued action for a single feature vector.

    Ties resolve to the lowest action index (``np.argmax`` returns the
    first maximum), so a model with equal values never jumps.
    """
    q_values = np.asarray(model.apply(np.asarray(features)[None, :]))[0]
    return int(np.argmax(q_values))


def select_action(
    model: Model,
    features: chex.Array,
    epsilon: float,
    rng: np.random.Generator,
) -> Action:
    """With probability *epsilon* pick a uniform random action, else act greedily.

    Stateless: the exploration rate is owned by the training session and
    the generator is passed in, so identical seeds replay identical
    decisions.
    """
    if rng.random() < epsilon:
        return int(rng.integers(0, N_ACTIONS))
    return greedy_action(model, features)
