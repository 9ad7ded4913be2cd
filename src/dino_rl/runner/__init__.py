"""Training runner for live Double-DQN.

A Python/asyncio outer loop drives the game, the replay buffer and
logging; the learner's forward/backward passes are jitted.  ``train``
is the entry point; ``train_ddqn`` and ``run_episode`` are the layers
underneath it for callers that manage models and directories
themselves.
"""

from dino_rl.runner.config import RunnerConfig
from dino_rl.runner.session import TrainingSession, load_models, load_session
from dino_rl.runner.train_ddqn import (
    DDQNTrainResult,
    EpisodeResult,
    check_timing,
    compute_reward,
    run_episode,
    train,
    train_ddqn,
    wait_for_next_state,
)

__all__ = [
    # Config
    "RunnerConfig",
    # Session
    "TrainingSession",
    "load_models",
    "load_session",
    # Loop
    "DDQNTrainResult",
    "EpisodeResult",
    "check_timing",
    "compute_reward",
    "run_episode",
    "train",
    "train_ddqn",
    "wait_for_next_state",
]
