"""Training session state and model bootstrap.

The session holds every piece of mutable loop state (exploration rate,
reward accumulator, counters) in one explicit object instead of module
globals, so it can be checkpointed next to the models and restored to
continue the epsilon schedule where it stopped.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

import jax

from dino_rl.algorithms.ddqn.config import DDQNConfig
from dino_rl.algorithms.ddqn.model import QModel
from dino_rl.errors import PersistenceError
from dino_rl.run_dir import MAIN, TARGET, RunDir
from dino_rl.seeding import split_key

logger = logging.getLogger(__name__)


@dataclass
class TrainingSession:
    """Mutable state of one training run.

    Fields:
        epsilon: Current exploration rate.
        episode: Completed episodes (also the 0-based index of the
                 episode being played).
        episode_reward: Reward accumulated in the current episode.
        accepted_steps / discarded_steps: Transitions stored vs. dropped
                 by the timing window.
        optimization_steps / failed_optimizations: Learner calls that
                 succeeded vs. raised ``OptimizationError``.
    """

    epsilon: float
    episode: int = 0
    episode_reward: float = 0.0
    accepted_steps: int = 0
    discarded_steps: int = 0
    optimization_steps: int = 0
    failed_optimizations: int = 0

    @classmethod
    def start(cls, config: DDQNConfig) -> TrainingSession:
        return cls(epsilon=config.epsilon_start)

    @classmethod
    def from_dict(cls, data: dict[str, Any], config: DDQNConfig) -> TrainingSession:
        """Restore a session; unknown keys are ignored, the accumulator resets."""
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in names}
        kwargs.setdefault("epsilon", config.epsilon_start)
        kwargs["episode_reward"] = 0.0
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def load_session(run_dir: RunDir, config: DDQNConfig, *, resume: bool = True) -> TrainingSession:
    """Resume the saved session of *run_dir*, or start a new one."""
    data = run_dir.load_session() if resume else None
    if data is None:
        return TrainingSession.start(config)
    session = TrainingSession.from_dict(data, config)
    logger.info(
        "Resuming session at episode %d (epsilon=%.4f)", session.episode, session.epsilon
    )
    return session


def load_models(
    run_dir: RunDir,
    config: DDQNConfig,
    *,
    key: jax.Array,
    resume: bool = True,
) -> tuple[QModel, QModel]:
    """Build the online and target models for a run.

    The online model is loaded from ``models/main`` when present.  The
    target model resolves ``models/target`` → ``models/main`` → a weight
    copy of the online model, so the first sync window starts from the
    same weights on either side.
    """
    key, online_key = split_key(key)
    key, target_key = split_key(key)

    online = _try_load(run_dir, MAIN, config, online_key) if resume else None
    if online is None:
        logger.info("No saved model found, creating a new one")
        online = QModel.create(config, key=online_key)
    else:
        logger.info("Loaded saved model from %s", run_dir.model_dir(MAIN))

    target = None
    if resume:
        target = _try_load(run_dir, TARGET, config, target_key)
        if target is None:
            target = _try_load(run_dir, MAIN, config, target_key)
            if target is not None:
                logger.info("No target model found, starting target from main")
    if target is None:
        target = QModel.create(config, key=target_key)
        target.sync_from(online)
    return online, target


def _try_load(
    run_dir: RunDir,
    namespace: str,
    config: DDQNConfig,
    key: jax.Array,
) -> QModel | None:
    if not run_dir.has_model(namespace):
        return None
    try:
        return QModel.load(run_dir.model_dir(namespace), config, key=key)
    except PersistenceError as exc:
        logger.warning("Ignoring unreadable %s checkpoint: %s", namespace, exc)
        return None
