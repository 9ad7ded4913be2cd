"""dino_rl — Double-DQN for endless-runner games with JAX."""

from dino_rl.algorithms.ddqn import DDQNConfig, QModel
from dino_rl.checkpoint import CheckpointManager, load_checkpoint, save_checkpoint
from dino_rl.encoding import FEATURE_DIM, encode_state
from dino_rl.env import GameEnvironment, make
from dino_rl.errors import (
    DinoRLError,
    GameEnvironmentError,
    InsufficientDataError,
    OptimizationError,
    PersistenceError,
    TimingAnomaly,
)
from dino_rl.metrics import EpisodeLog, MetricsLogger, setup_logging
from dino_rl.run_dir import RunDir
from dino_rl.schedule import exponential_schedule
from dino_rl.seeding import make_np_rng, make_rng, split_key
from dino_rl.types import Action, Obstacle, State

__all__ = [
    "CheckpointManager",
    "FEATURE_DIM",
    "Action",
    "DDQNConfig",
    "DinoRLError",
    "EpisodeLog",
    "GameEnvironment",
    "GameEnvironmentError",
    "InsufficientDataError",
    "MetricsLogger",
    "Obstacle",
    "OptimizationError",
    "PersistenceError",
    "QModel",
    "RunDir",
    "State",
    "TimingAnomaly",
    "encode_state",
    "exponential_schedule",
    "load_checkpoint",
    "make",
    "make_np_rng",
    "make_rng",
    "save_checkpoint",
    "setup_logging",
    "split_key",
]
