"""Transition container for replayed experience.

A single Transition holds one encoded step.  A *batched* Transition
(fields with a leading batch dim) serves as the Batch type, so the
learner consumes exactly what ``ReplayBuffer.sample`` returns.
"""

from __future__ import annotations

from typing import NamedTuple

from jax import Array


class Transition(NamedTuple):
    """A single (s, a, r, s', done) experience tuple.

    Fields:
        obs:      Encoded state.        scalar: (88,)  batched: (B, 88)
        action:   Action taken (0/1).   scalar: ()     batched: (B,)
        reward:   Shaped reward.        scalar: ()     batched: (B,)
        next_obs: Encoded next state.   scalar: (88,)  batched: (B, 88)
        done:     Crash flag.           scalar: ()     batched: (B,)
    """

    obs: Array
    action: Array
    reward: Array
    next_obs: Array
    done: Array


# A "Batch" is a Transition whose fields have a leading batch dimension.
Batch = Transition

