from dino_rl.algorithms.ddqn.config import DDQNConfig
from dino_rl.algorithms.ddqn.learner import compute_targets, double_dqn_targets, optimize
from dino_rl.algorithms.ddqn.model import Model, QModel, QNetwork, weights_equal
from dino_rl.algorithms.ddqn.policy import greedy_action, select_action
from dino_rl.algorithms.ddqn.sync import save_models, sync_target

__all__ = [
    "DDQNConfig",
    "Model",
    "QModel",
    "QNetwork",
    "compute_targets",
    "double_dqn_targets",
    "greedy_action",
    "optimize",
    "save_models",
    "select_action",
    "sync_target",
    "weights_equal",
]
