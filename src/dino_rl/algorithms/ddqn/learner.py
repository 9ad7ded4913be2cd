"""Double-DQN optimization step.

Vanilla DQN bootstraps from ``max_a Q_target(s', a)``, which uses the
same (noisy) estimates both to pick the next action and to value it,
biasing targets upwards.  Double DQN splits the two roles:

- the **online** model selects ``a* = argmax_a Q_online(s', a)``,
- the **target** model values it: ``y = r + gamma * Q_target(s', a*)``.

Terminal transitions use ``y = r`` with no bootstrap.

The regression target for each sample is the online model's own
prediction with only the taken action's entry replaced by ``y``, so
the untaken action contributes zero error.  All reads of the online
model happen on one weight snapshot, before the fit step.
"""

from __future__ import annotations

import math

import chex
import jax
import jax.numpy as jnp

from dino_rl.algorithms.ddqn.model import Model
from dino_rl.dataprotocol.transition import Batch
from dino_rl.errors import OptimizationError


@jax.jit
def double_dqn_targets(
    q: chex.Array,
    next_q_online: chex.Array,
    next_q_target: chex.Array,
    action: chex.Array,
    reward: chex.Array,
    done: chex.Array,
    gamma: float | chex.Array,
) -> chex.Array:
    """Build the ``(B, n_actions)`` regression target matrix.

    Args:
        q: Online predictions for the sampled states, ``(B, A)``.
        next_q_online: Online predictions for the next states, ``(B, A)``.
        next_q_target: Target predictions for the next states, ``(B, A)``.
        action: Taken actions, ``(B,)``.
        reward: Rewards, ``(B,)``.
        done: Terminal flags, ``(B,)``.
        gamma: Discount factor.

    Returns:
        ``q`` with ``targets[i, action[i]]`` replaced by the Double-DQN
        target for sample ``i``.
    """
    chex.assert_equal_shape([q, next_q_online, next_q_target])
    rows = jnp.arange(q.shape[0])
    action = action.astype(jnp.int32)

    next_action = jnp.argmax(next_q_online, axis=-1)
    next_value = next_q_target[rows, next_action]
    bootstrap = reward + gamma * next_value
    y = jnp.where(done.astype(jnp.bool_), reward, bootstrap)
    return q.at[rows, action].set(y.astype(q.dtype))


def compute_targets(
    online: Model,
    target: Model,
    batch: Batch,
    gamma: float,
) -> chex.Array:
    """Evaluate both models on *batch* and return the target matrix."""
    q = online.apply(batch.obs)
    next_q_online = online.apply(batch.next_obs)
    next_q_target = target.apply(batch.next_obs)
    return double_dqn_targets(
        q,
        next_q_online,
        next_q_target,
        jnp.asarray(batch.action),
        jnp.asarray(batch.reward, dtype=jnp.float32),
        jnp.asarray(batch.done),
        gamma,
    )


def optimize(
    online: Model,
    target: Model,
    batch: Batch,
    gamma: float,
    *,
    batch_size: int | None = None,
) -> float:
    """One Double-DQN fit step on *batch*; returns the epoch loss.

    Raises:
        OptimizationError: on shape/type failures, runtime (XLA) failures
            or a non-finite loss.
            The online model may already have been updated when the loss
            turns out non-finite.
    """
    n = int(jnp.shape(batch.obs)[0])
    try:
        targets = compute_targets(online, target, batch, gamma)
        history = online.fit(
            batch.obs,
            targets,
            epochs=1,
            batch_size=batch_size or n,
            shuffle=True,
        )
    except (
        ValueError,
        TypeError,
        AssertionError,
        RuntimeError,
        FloatingPointError,
    ) as exc:
        raise OptimizationError(f"Fit step failed: {exc}") from exc

    loss = float(history["loss"][0])
    if not math.isfinite(loss):
        raise OptimizationError(f"Non-finite training loss: {loss}")
    return loss
