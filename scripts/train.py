#!/usr/bin/env python3
"""Train Double-DQN via CLI.

Usage::

    python scripts/train.py --help
    python scripts/train.py --env-id SimRunner-v0 --runner.episodes 500
    python scripts/train.py --ddqn.lr 5e-4 --ddqn.batch-size 128
    python scripts/train.py --env-id mypkg.browser:ChromeDino --runner.run-id dino

Ctrl-C (or SIGTERM) stops after the current step; both models and the
session are saved before the process exits.
"""

from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass

import tyro

from dino_rl.algorithms.ddqn.config import DDQNConfig
from dino_rl.env import make
from dino_rl.metrics import setup_logging
from dino_rl.runner import RunnerConfig, train


@dataclass(frozen=True)
class TrainArgs:
    """Double-DQN training configuration."""

    # Environment: registry name or "module:attr"
    env_id: str = "SimRunner-v0"

    # Algorithm hyperparameters
    ddqn: DDQNConfig = DDQNConfig()

    # Runner / outer-loop settings
    runner: RunnerConfig = RunnerConfig()


async def _run(args: TrainArgs) -> None:
    env = make(args.env_id)
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        result = await train(
            env,
            ddqn_config=args.ddqn,
            runner_config=args.runner,
            stop=stop,
        )
    finally:
        await env.close()

    n_episodes = len(result.episode_returns)
    last_returns = result.episode_returns[-10:]
    mean_return = sum(last_returns) / len(last_returns) if last_returns else 0.0
    print(
        f"Training {'stopped' if result.stopped else 'complete'} | "
        f"episodes={n_episodes} | "
        f"epsilon={result.session.epsilon:.4f} | "
        f"mean_return(last 10)={mean_return:.2f}"
    )


def main(args: TrainArgs) -> None:
    setup_logging()
    asyncio.run(_run(args))


if __name__ == "__main__":
    main(tyro.cli(TrainArgs))
