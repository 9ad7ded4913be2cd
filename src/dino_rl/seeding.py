"""PRNG helpers.

JAX keys drive network initialization and minibatch shuffling; a numpy
``Generator`` drives host-side randomness (exploration, replay
sampling).  Both are derived from one integer seed so a run is
reproducible end to end.

Usage::

    from dino_rl.seeding import make_rng, make_np_rng, split_key

    key = make_rng(42)
    key, init_key = split_key(key)
    np_rng = make_np_rng(42)
"""

from __future__ import annotations

import jax
import numpy as np


def make_rng(seed: int) -> jax.Array:
    """Create a JAX PRNG key from an integer seed."""
    return jax.random.PRNGKey(seed)


def make_np_rng(seed: int) -> np.random.Generator:
    """Create the numpy generator used for exploration and replay."""
    return np.random.default_rng(seed)


def split_key(rng: jax.Array) -> tuple[jax.Array, jax.Array]:
    """Split *rng* into two keys: ``(new_rng, subkey)``.

    Convenience wrapper around ``jax.random.split`` that unpacks the
    result into a 2-tuple for the common pattern::

        rng, subkey = split_key(rng)
    """
    return tuple(jax.random.split(rng))  # type: ignore[return-value]
