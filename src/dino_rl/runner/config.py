"""Runner configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunnerConfig:
    """Outer-loop settings for live training.

    Algorithm hyperparameters live in ``DDQNConfig``; this holds the
    episode budget, replay capacity, environment timing window, reward
    shaping and output locations.
    """

    # Training budget (episodes played in this session)
    episodes: int = 10_000

    # Replay memory
    memory_capacity: int = 40_000

    # Accepted game-time window between consecutive states, in ms.  The
    # next state is polled until at least the minimum has elapsed so the
    # action's effect is visible; longer gaps indicate a stall.
    min_state_interval_ms: float = 40.0
    max_state_interval_ms: float = 60.0
    poll_interval_ms: float = 5.0
    state_timeout_s: float = 10.0  # wall-clock limit for the game clock to advance

    # Reward shaping
    crash_reward: float = -1.0
    jump_reward: float = 0.0  # non-positive to discourage gratuitous jumps
    alive_reward: float = 0.1

    # Seeding
    seed: int = 0

    # Output / resume
    base_dir: str = "runs"
    run_id: str | None = "default"  # None = fresh timestamped run
    resume: bool = True  # load models and session from an existing run

    # Console progress line every N episodes
    log_interval: int = 10
