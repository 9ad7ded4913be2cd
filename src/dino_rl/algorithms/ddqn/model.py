"""The ``Model`` capability and its Equinox implementation.

The training loop never touches network internals.  Everything it needs
from a function approximator is captured by the :class:`Model`
protocol: batched evaluation, a supervised fit step, weight transfer
and persistence.  :class:`QModel` satisfies it with an Equinox MLP and
an Optax optimizer; the online and target networks are two independent
``QModel`` instances.

Usage::

    online = QModel.create(config, key=make_rng(0))
    target = QModel.create(config, key=make_rng(0))
    target.sync_from(online)

    q = online.apply(features)                      # (B, 2)
    history = online.fit(features, targets, batch_size=64)
    online.save(run.model_dir("main"))
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import chex
import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import optax

from dino_rl.algorithms.ddqn.config import DDQNConfig
from dino_rl.checkpoint import load_checkpoint, load_metadata, save_checkpoint
from dino_rl.encoding import FEATURE_DIM
from dino_rl.errors import PersistenceError
from dino_rl.seeding import split_key
from dino_rl.types import N_ACTIONS, Weights

LossFn = Callable[[chex.Array, chex.Array], chex.Array]


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Model(Protocol):
    """Structural contract for an action-value function approximator."""

    def compile(self, optimizer: optax.GradientTransformation, loss_fn: LossFn = ...) -> None:
        """Attach an optimizer and loss before the first ``fit``."""
        ...

    def apply(self, features: chex.Array) -> chex.Array:
        """Map a ``(B, obs_dim)`` matrix to ``(B, n_actions)`` values."""
        ...

    def fit(
        self,
        inputs: chex.Array,
        targets: chex.Array,
        *,
        epochs: int = 1,
        batch_size: int = 32,
        shuffle: bool = True,
    ) -> dict[str, list[float]]:
        """Regress ``apply(inputs)`` toward *targets*; return a loss history."""
        ...

    def get_weights(self) -> Weights: ...

    def set_weights(self, weights: Weights) -> None: ...

    def sync_from(self, other: Model) -> None: ...

    def save(self, path: str | Path) -> Path: ...


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


class QNetwork(eqx.Module):
    """ReLU MLP with a linear head producing one value per action."""

    hidden: list
    head: eqx.nn.Linear

    def __init__(
        self,
        obs_dim: int,
        n_actions: int,
        hidden_sizes: tuple[int, ...],
        *,
        key: jax.Array,
    ) -> None:
        keys = jax.random.split(key, len(hidden_sizes) + 1)
        sizes = [obs_dim, *hidden_sizes]
        self.hidden = [
            eqx.nn.Linear(d_in, d_out, key=k)
            for d_in, d_out, k in zip(sizes[:-1], sizes[1:], keys[:-1])
        ]
        self.head = eqx.nn.Linear(sizes[-1], n_actions, key=keys[-1])

    def __call__(self, x: jax.Array) -> jax.Array:
        for layer in self.hidden:
            x = jax.nn.relu(layer(x))
        return self.head(x)


def mean_squared_error(pred: chex.Array, target: chex.Array) -> chex.Array:
    return jnp.mean((pred - target) ** 2)


@eqx.filter_jit
def _forward(network: QNetwork, x: jax.Array) -> jax.Array:
    return jax.vmap(network)(x)


@eqx.filter_jit
def _fit_step(
    network: QNetwork,
    opt_state: optax.OptState,
    optimizer: optax.GradientTransformation,
    loss_fn: LossFn,
    x: jax.Array,
    y: jax.Array,
) -> tuple[QNetwork, optax.OptState, jax.Array]:
    def compute_loss(net: QNetwork) -> jax.Array:
        return loss_fn(jax.vmap(net)(x), y)

    loss, grads = eqx.filter_value_and_grad(compute_loss)(network)
    updates, opt_state = optimizer.update(
        grads, opt_state, eqx.filter(network, eqx.is_array)
    )
    network = eqx.apply_updates(network, updates)
    return network, opt_state, loss


# ---------------------------------------------------------------------------
# QModel
# ---------------------------------------------------------------------------


class QModel:
    """Stateful wrapper around a :class:`QNetwork` and its optimizer.

    Parameters
    ----------
    network:
        The Equinox network holding the current weights.
    key:
        PRNG key consumed for minibatch shuffling in :meth:`fit`.
    hidden_sizes:
        Recorded in checkpoint metadata so :meth:`load` can rebuild the
        network skeleton.
    """

    def __init__(
        self,
        network: QNetwork,
        *,
        key: jax.Array,
        obs_dim: int = FEATURE_DIM,
        n_actions: int = N_ACTIONS,
        hidden_sizes: tuple[int, ...] = (32, 32),
    ) -> None:
        self.network = network
        self.obs_dim = obs_dim
        self.n_actions = n_actions
        self.hidden_sizes = tuple(hidden_sizes)
        self._key = key
        self._optimizer: optax.GradientTransformation | None = None
        self._opt_state: optax.OptState | None = None
        self._loss_fn: LossFn = mean_squared_error

    @classmethod
    def create(
        cls,
        config: DDQNConfig,
        *,
        key: jax.Array,
        obs_dim: int = FEATURE_DIM,
        n_actions: int = N_ACTIONS,
    ) -> QModel:
        """Build a freshly initialized, compiled model."""
        key, init_key = split_key(key)
        network = QNetwork(obs_dim, n_actions, config.hidden_sizes, key=init_key)
        model = cls(
            network,
            key=key,
            obs_dim=obs_dim,
            n_actions=n_actions,
            hidden_sizes=config.hidden_sizes,
        )
        model.compile(make_optimizer(config))
        return model

    @classmethod
    def load(cls, path: str | Path, config: DDQNConfig, *, key: jax.Array) -> QModel:
        """Restore a model saved with :meth:`save` and compile it.

        Raises:
            PersistenceError: if the checkpoint is missing or unreadable.
        """
        try:
            meta = load_metadata(path) or {}
            obs_dim = int(meta.get("obs_dim", FEATURE_DIM))
            n_actions = int(meta.get("n_actions", N_ACTIONS))
            hidden_sizes = tuple(meta.get("hidden_sizes", config.hidden_sizes))
            key, init_key = split_key(key)
            skeleton = QNetwork(obs_dim, n_actions, hidden_sizes, key=init_key)
            network = load_checkpoint(path, skeleton)
        except Exception as exc:
            raise PersistenceError(f"Failed to load model from {path}: {exc}") from exc
        model = cls(
            network,
            key=key,
            obs_dim=obs_dim,
            n_actions=n_actions,
            hidden_sizes=hidden_sizes,
        )
        model.compile(make_optimizer(config))
        return model

    # ------------------------------------------------------------------
    # Model protocol
    # ------------------------------------------------------------------

    def compile(
        self,
        optimizer: optax.GradientTransformation,
        loss_fn: LossFn = mean_squared_error,
    ) -> None:
        """Attach an optimizer and loss; resets the optimizer state."""
        self._optimizer = optimizer
        self._loss_fn = loss_fn
        self._opt_state = optimizer.init(eqx.filter(self.network, eqx.is_array))

    def apply(self, features: chex.Array) -> jax.Array:
        x = jnp.asarray(features, dtype=jnp.float32)
        if x.ndim == 1:
            x = x[None, :]
        return _forward(self.network, x)

    def fit(
        self,
        inputs: chex.Array,
        targets: chex.Array,
        *,
        epochs: int = 1,
        batch_size: int = 32,
        shuffle: bool = True,
    ) -> dict[str, list[float]]:
        """Run *epochs* passes of minibatch gradient descent.

        Returns a Keras-style history ``{"loss": [epoch_mean, ...]}``.
        """
        if self._optimizer is None:
            raise RuntimeError("Model must be compiled before fit()")
        x = jnp.asarray(inputs, dtype=jnp.float32)
        y = jnp.asarray(targets, dtype=jnp.float32)
        if x.shape[0] != y.shape[0]:
            raise ValueError(
                f"inputs and targets disagree on batch size: {x.shape} vs {y.shape}"
            )
        n = x.shape[0]
        batch_size = max(1, min(batch_size, n))

        losses: list[float] = []
        for _ in range(epochs):
            if shuffle:
                self._key, perm_key = split_key(self._key)
                order = jax.random.permutation(perm_key, n)
            else:
                order = jnp.arange(n)
            total = 0.0
            for start in range(0, n, batch_size):
                idx = order[start : start + batch_size]
                self.network, self._opt_state, loss = _fit_step(
                    self.network,
                    self._opt_state,
                    self._optimizer,
                    self._loss_fn,
                    x[idx],
                    y[idx],
                )
                total += float(loss) * int(idx.shape[0])
            losses.append(total / n)
        return {"loss": losses}

    def get_weights(self) -> Weights:
        return jax.tree.leaves(eqx.filter(self.network, eqx.is_array))

    def set_weights(self, weights: Weights) -> None:
        params, static = eqx.partition(self.network, eqx.is_array)
        leaves, treedef = jax.tree.flatten(params)
        weights = list(weights)
        if len(weights) != len(leaves):
            raise ValueError(
                f"Expected {len(leaves)} weight arrays, got {len(weights)}"
            )
        for i, (old, new) in enumerate(zip(leaves, weights)):
            if old.shape != jnp.shape(new):
                raise ValueError(
                    f"Weight {i} has shape {jnp.shape(new)}, expected {old.shape}"
                )
        new_params = jax.tree.unflatten(
            treedef, [jnp.asarray(w, dtype=old.dtype) for w, old in zip(weights, leaves)]
        )
        self.network = eqx.combine(new_params, static)

    def sync_from(self, other: Model) -> None:
        """Copy *other*'s weights into this model (optimizer state untouched)."""
        self.set_weights(other.get_weights())

    def save(self, path: str | Path) -> Path:
        """Commit the network weights and shape metadata as a new checkpoint step.

        Returns the checkpoint directory, which :meth:`load` accepts.

        Raises:
            PersistenceError: if the checkpoint cannot be written.  The
                previously committed step is left in place.
        """
        try:
            save_checkpoint(path, self.network, metadata=self.metadata())
        except Exception as exc:
            raise PersistenceError(f"Failed to save model to {path}: {exc}") from exc
        return Path(path)

    # ------------------------------------------------------------------

    def metadata(self) -> dict[str, Any]:
        return {
            "obs_dim": self.obs_dim,
            "n_actions": self.n_actions,
            "hidden_sizes": list(self.hidden_sizes),
        }

    def __repr__(self) -> str:
        return (
            f"QModel(obs_dim={self.obs_dim}, n_actions={self.n_actions}, "
            f"hidden_sizes={self.hidden_sizes})"
        )


def make_optimizer(config: DDQNConfig) -> optax.GradientTransformation:
    return optax.chain(
        optax.clip_by_global_norm(config.max_grad_norm),
        optax.adam(config.lr),
    )


def weights_equal(a: Model, b: Model) -> bool:
    """Whether two models hold bit-identical weights."""
    wa, wb = a.get_weights(), b.get_weights()
    return len(wa) == len(wb) and all(
        np.array_equal(np.asarray(x), np.asarray(y)) for x, y in zip(wa, wb)
    )
