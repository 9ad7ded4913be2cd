"""Target-network synchronization and model persistence."""

from __future__ import annotations

import logging

from dino_rl.algorithms.ddqn.model import Model
from dino_rl.errors import PersistenceError
from dino_rl.run_dir import MAIN, TARGET, RunDir

logger = logging.getLogger(__name__)


def save_models(online: Model, target: Model, run_dir: RunDir) -> bool:
    """Persist both models under their namespaces.

    A failed save is logged and reported through the return value; the
    previous checkpoint stays in place and training continues.
    """
    ok = True
    for namespace, model in ((MAIN, online), (TARGET, target)):
        try:
            model.save(run_dir.model_dir(namespace))
        except PersistenceError as exc:
            logger.error("Could not save %s model: %s", namespace, exc)
            ok = False
    return ok


def sync_target(online: Model, target: Model, run_dir: RunDir | None = None) -> bool:
    """Copy online weights into *target*, then checkpoint both.

    Returns ``False`` only if persistence failed.
    """
    target.sync_from(online)
    logger.debug("Synchronized target network")
    if run_dir is None:
        return True
    return save_models(online, target, run_dir)
