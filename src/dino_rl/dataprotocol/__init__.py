"""Data structures for replayed experience.

Core types:
    - Transition: immutable NamedTuple experience container
    - ReplayBuffer: numpy-backed ring buffer with jax.Array sampling
"""

from dino_rl.dataprotocol.replay_buffer import ReplayBuffer
from dino_rl.dataprotocol.transition import Batch, Transition

__all__ = [
    "Transition",
    "Batch",
    "ReplayBuffer",
]
