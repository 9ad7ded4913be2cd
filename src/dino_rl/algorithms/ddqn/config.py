"""Double-DQN hyperparameters."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DDQNConfig:
    """All Double-DQN hyperparameters in one place.

    Frozen dataclass, so it can be snapshotted to ``config.json`` and
    exposed on the CLI via tyro.
    """

    # Network
    hidden_sizes: tuple[int, ...] = (32, 32)

    # Optimization
    lr: float = 1e-4
    gamma: float = 0.9
    batch_size: int = 64
    max_grad_norm: float = 10.0

    # Target network (completed episodes between syncs)
    target_update_freq: int = 10

    # Exploration: epsilon = end + (start - end) * exp(-episode / decay)
    epsilon_start: float = 1.0
    epsilon_end: float = 0.01
    epsilon_decay: float = 200.0
