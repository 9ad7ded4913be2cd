"""Orbax-based checkpointing for Equinox Q-networks.

Each model namespace (``models/main``, ``models/target``) is an Orbax
checkpoint directory holding numbered steps.  Orbax writes every step
into a temporary directory and renames it into place once complete;
with ``max_to_keep=1`` the previous step is pruned only after the new
one is committed.  A failed or interrupted save therefore leaves the
last good checkpoint loadable.

The network's array leaves and a small JSON metadata record (layer
sizes) are saved together as one composite step.

Usage::

    from dino_rl.checkpoint import save_checkpoint, load_checkpoint

    save_checkpoint(run.model_dir("main"), network, metadata={"hidden_sizes": [32, 32]})
    meta = load_metadata(run.model_dir("main"))
    restored = load_checkpoint(run.model_dir("main"), skeleton)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import equinox as eqx
import jax
import orbax.checkpoint as ocp

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Composite item names inside a step directory
STATE_ITEM = "state"
INFO_ITEM = "model_info"


# ---------------------------------------------------------------------------
# CheckpointManager
# ---------------------------------------------------------------------------


class CheckpointManager:
    """Thin wrapper over Orbax's ``CheckpointManager`` for Equinox modules.

    Only array leaves are stored; static structure comes from the
    ``like`` template passed to :meth:`restore`.

    Parameters
    ----------
    directory:
        Checkpoint root for one model namespace.
    max_to_keep:
        Number of committed steps to retain.
    async_timeout_secs:
        Timeout for background writes.  ``None`` saves synchronously,
        so :meth:`save` returns only once the step is committed.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        max_to_keep: int = 1,
        async_timeout_secs: int | None = None,
    ) -> None:
        self._directory = Path(directory).resolve()
        self._directory.mkdir(parents=True, exist_ok=True)
        self._max_to_keep = max_to_keep

        async_options = None
        if async_timeout_secs is not None:
            async_options = ocp.AsyncOptions(timeout_secs=async_timeout_secs)

        options = ocp.CheckpointManagerOptions(
            max_to_keep=max_to_keep,
            enable_async_checkpointing=async_timeout_secs is not None,
            async_options=async_options,
        )
        self._mgr = ocp.CheckpointManager(self._directory, options=options)

    @property
    def directory(self) -> Path:
        return self._directory

    def save(
        self,
        step: int,
        pytree: Any,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Save the array leaves of *pytree* (plus *metadata*) as *step*.

        Returns ``True`` if Orbax wrote the step.
        """
        params = eqx.filter(pytree, eqx.is_array)
        leaves = jax.tree.leaves(params)
        state_dict = {f"leaf_{i}": a for i, a in enumerate(leaves)}
        return self._mgr.save(
            step,
            args=ocp.args.Composite(
                **{
                    STATE_ITEM: ocp.args.StandardSave(state_dict),
                    INFO_ITEM: ocp.args.JsonSave(metadata or {}),
                }
            ),
        )

    def restore(self, step: int | None, like: T) -> T:
        """Restore *step* (latest if ``None``) into the structure of *like*."""
        step = self._resolve_step(step)
        params, static = eqx.partition(like, eqx.is_array)
        leaves, treedef = jax.tree.flatten(params)
        sharding = jax.sharding.SingleDeviceSharding(jax.devices()[0])
        abstract = {
            f"leaf_{i}": jax.ShapeDtypeStruct(a.shape, a.dtype, sharding=sharding)
            for i, a in enumerate(leaves)
        }
        restored = self._mgr.restore(
            step,
            args=ocp.args.Composite(**{STATE_ITEM: ocp.args.StandardRestore(abstract)}),
        )
        state_dict = restored[STATE_ITEM]
        new_leaves = [state_dict[f"leaf_{i}"] for i in range(len(leaves))]
        return eqx.combine(jax.tree.unflatten(treedef, new_leaves), static)

    def restore_metadata(self, step: int | None = None) -> dict[str, Any]:
        step = self._resolve_step(step)
        restored = self._mgr.restore(
            step,
            args=ocp.args.Composite(**{INFO_ITEM: ocp.args.JsonRestore()}),
        )
        return dict(restored[INFO_ITEM] or {})

    def latest_step(self) -> int | None:
        return self._mgr.latest_step()

    def all_steps(self) -> list[int]:
        return sorted(self._mgr.all_steps())

    def wait(self) -> None:
        """Block until any background save has been committed."""
        self._mgr.wait_until_finished()

    def close(self) -> None:
        self._mgr.wait_until_finished()
        self._mgr.close()

    def _resolve_step(self, step: int | None) -> int:
        if step is None:
            step = self._mgr.latest_step()
            if step is None:
                raise FileNotFoundError(f"No checkpoints found in {self._directory}")
        return step

    def __enter__(self) -> CheckpointManager:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CheckpointManager({self._directory}, max_to_keep={self._max_to_keep})"


# ---------------------------------------------------------------------------
# One-shot helpers for a model namespace
# ---------------------------------------------------------------------------


def save_checkpoint(
    directory: str | Path,
    pytree: Any,
    *,
    metadata: dict[str, Any] | None = None,
) -> Path:
    """Commit *pytree* as the next step of *directory*, pruning older steps.

    Returns
    -------
    Path to the committed step directory.
    """
    step = (latest_step(directory) or 0) + 1
    with CheckpointManager(directory) as mgr:
        mgr.save(step, pytree, metadata=metadata)
        mgr.wait()
        d = mgr.directory / str(step)
    logger.debug("Saved checkpoint to %s", d)
    return d


def load_checkpoint(directory: str | Path, like: T) -> T:
    """Load the latest committed step of *directory* into *like*.

    Raises
    ------
    FileNotFoundError:
        If no committed step exists.
    """
    if not has_checkpoint(directory):
        raise FileNotFoundError(f"No checkpoint found at {directory}")
    with CheckpointManager(directory) as mgr:
        return mgr.restore(None, like)


def load_metadata(directory: str | Path) -> dict[str, Any] | None:
    """Metadata of the latest committed step; ``None`` without a checkpoint."""
    if not has_checkpoint(directory):
        return None
    with CheckpointManager(directory) as mgr:
        return mgr.restore_metadata()


def latest_step(directory: str | Path) -> int | None:
    """Highest committed step under *directory*, without opening a manager.

    Orbax renames a step to its bare number only once it is complete;
    in-progress ``<step>.orbax-checkpoint-tmp-*`` directories are skipped.
    """
    d = Path(directory)
    if not d.is_dir():
        return None
    steps = [int(p.name) for p in d.iterdir() if p.is_dir() and p.name.isdigit()]
    return max(steps, default=None)


def has_checkpoint(directory: str | Path) -> bool:
    """Whether a committed checkpoint exists at *directory*."""
    return latest_step(directory) is not None
