"""Replay memory for off-policy Double-DQN training.

Storage is a ``Transition`` of preallocated numpy columns; ``sample``
converts the gathered rows to jax arrays.  The buffer lives in the
Python training loop and only the sampled batch crosses into the
jitted learner::

    buffer = ReplayBuffer(capacity=40_000, rng=np.random.default_rng(0))
    buffer.push(obs, action, reward, next_obs, done)
    if len(buffer) >= batch_size:
        batch = buffer.sample(batch_size)  # Transition of jax arrays
"""

from __future__ import annotations

import jax.numpy as jnp
import numpy as np

from dino_rl.dataprotocol.transition import Transition
from dino_rl.encoding import FEATURE_DIM
from dino_rl.errors import InsufficientDataError


class ReplayBuffer:
    """Ring buffer of transitions with uniform sampling.

    Once *capacity* transitions are stored, each push overwrites the
    oldest one.  Sampling draws indices independently (with
    replacement) and never removes entries.

    Parameters
    ----------
    capacity:
        Maximum number of stored transitions.
    obs_shape:
        Shape of one encoded state.
    rng:
        Generator for sample indices; seeds the buffer's randomness
        together with the rest of the run.
    """

    def __init__(
        self,
        capacity: int,
        obs_shape: tuple[int, ...] = (FEATURE_DIM,),
        rng: np.random.Generator | None = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._rng = rng if rng is not None else np.random.default_rng()
        self._storage = Transition(
            obs=np.zeros((capacity, *obs_shape), dtype=np.float32),
            action=np.zeros(capacity, dtype=np.int32),
            reward=np.zeros(capacity, dtype=np.float32),
            next_obs=np.zeros((capacity, *obs_shape), dtype=np.float32),
            done=np.zeros(capacity, dtype=np.bool_),
        )
        self._next = 0
        self._size = 0

    def push(
        self,
        obs: np.ndarray,
        action: int | np.ndarray,
        reward: float,
        next_obs: np.ndarray,
        done: bool,
    ) -> None:
        """Store one transition, evicting the oldest when full."""
        for column, value in zip(self._storage, (obs, action, reward, next_obs, done)):
            column[self._next] = value
        self._next = (self._next + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)

    def sample(self, batch_size: int) -> Transition:
        """Draw *batch_size* stored transitions as a batched ``Transition``.

        Raises:
            InsufficientDataError: if fewer than *batch_size* transitions
                are stored.
        """
        if self._size < batch_size:
            raise InsufficientDataError(
                f"Cannot sample {batch_size} transitions from a buffer "
                f"holding {self._size}"
            )
        indices = self._rng.integers(0, self._size, size=batch_size)
        return Transition(*(jnp.asarray(column[indices]) for column in self._storage))

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"ReplayBuffer(size={self._size}, capacity={self.capacity})"
