"""Shared fixtures for dino_rl tests."""

from __future__ import annotations

import jax.numpy as jnp
import numpy as np
import pytest

from dino_rl.types import N_ACTIONS, Obstacle, State


class FixedModel:
    """Model stub returning preset Q-values, keyed by the first feature."""

    def __init__(self, table=None, default=(0.0, 0.0)):
        self.table = dict(table or {})
        self.default = default
        self.weights = [np.zeros(2, dtype=np.float32)]
        self.fit_calls = []

    def compile(self, optimizer, loss_fn=None):
        pass

    def apply(self, features):
        x = np.atleast_2d(np.asarray(features))
        rows = [self.table.get(float(row[0]), self.default) for row in x]
        return jnp.asarray(rows, dtype=jnp.float32).reshape(-1, N_ACTIONS)

    def fit(self, inputs, targets, *, epochs=1, batch_size=32, shuffle=True):
        self.fit_calls.append((np.asarray(inputs), np.asarray(targets)))
        return {"loss": [0.0]}

    def get_weights(self):
        return [w.copy() for w in self.weights]

    def set_weights(self, weights):
        self.weights = [np.asarray(w).copy() for w in weights]

    def sync_from(self, other):
        self.set_weights(other.get_weights())

    def save(self, path):
        return path


def make_state(
    time: float,
    *,
    done: bool = False,
    x_pos: float = 300.0,
    jumping: bool = False,
    y_pos: float = 93.0,
) -> State:
    return State(
        obstacles=(Obstacle(x_pos, 105.0, 17.0, 35.0),),
        jumping=jumping,
        y_pos=y_pos,
        time=time,
        done=done,
    )


@pytest.fixture
def np_rng():
    return np.random.default_rng(0)
