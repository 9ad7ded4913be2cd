"""Online Double-DQN training loop against a live game.

The game keeps running while the agent thinks, so one control step is:

1. encode the current state and pick an action (epsilon-greedy),
2. dispatch the action without waiting for it,
3. while the game advances, spend the time on one learner step,
4. poll until at least ``min_state_interval_ms`` of game time has passed
   (or the episode ended),
5. accept the step only if the game-time delta lies inside the window;
   otherwise drop it rather than attribute a crash to the wrong action.

Everything runs in one asyncio task.  Environment calls are awaited in
sequence and the learner step runs synchronously between the dispatch
and the poll, so the replay buffer and both models only ever have one
writer.

Usage::

    from dino_rl.algorithms.ddqn import DDQNConfig
    from dino_rl.env import make
    from dino_rl.runner import RunnerConfig, train

    env = make("SimRunner-v0")
    result = asyncio.run(
        train(env, ddqn_config=DDQNConfig(), runner_config=RunnerConfig(episodes=100))
    )
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, NamedTuple

import numpy as np

from dino_rl.algorithms.ddqn.config import DDQNConfig
from dino_rl.algorithms.ddqn.learner import optimize
from dino_rl.algorithms.ddqn.model import Model
from dino_rl.algorithms.ddqn.policy import select_action
from dino_rl.algorithms.ddqn.sync import save_models, sync_target
from dino_rl.dataprotocol.replay_buffer import ReplayBuffer
from dino_rl.encoding import encode_state
from dino_rl.env.base import GameEnvironment
from dino_rl.errors import GameEnvironmentError, OptimizationError, TimingAnomaly
from dino_rl.metrics import EpisodeLog, MetricsLogger, log_episode_progress
from dino_rl.run_dir import RunDir
from dino_rl.runner.config import RunnerConfig
from dino_rl.runner.session import TrainingSession, load_models, load_session
from dino_rl.schedule import exponential_schedule
from dino_rl.seeding import make_np_rng, make_rng
from dino_rl.types import JUMP, Action, State

logger = logging.getLogger(__name__)


class EpisodeResult(NamedTuple):
    """Summary of one completed episode."""

    episode: int  # 1-based count of completed episodes
    reward: float
    epsilon: float
    accepted_steps: int
    discarded_steps: int
    loss: float | None  # mean learner loss, None if no step ran


class DDQNTrainResult(NamedTuple):
    """Return value from ``train_ddqn`` / ``train``."""

    session: TrainingSession
    episode_returns: list[float]
    metrics_log: list[dict[str, Any]]
    stopped: bool


# ---------------------------------------------------------------------------
# Step policies
# ---------------------------------------------------------------------------


def compute_reward(done: bool, action: Action, config: RunnerConfig) -> float:
    """Crash, jump and survival rewards, in that priority."""
    if done:
        return config.crash_reward
    if action == JUMP:
        return config.jump_reward
    return config.alive_reward


def check_timing(
    delta_ms: float,
    config: RunnerConfig,
    *,
    done: bool = False,
) -> TimingAnomaly | None:
    """Return a ``TimingAnomaly`` if *delta_ms* is outside the accepted window."""
    if config.min_state_interval_ms <= delta_ms <= config.max_state_interval_ms:
        return None
    return TimingAnomaly(
        delta_ms=delta_ms,
        min_ms=config.min_state_interval_ms,
        max_ms=config.max_state_interval_ms,
        done=done,
    )


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


async def _read_state(env: GameEnvironment) -> State:
    state = await env.state()
    if not isinstance(state, State):
        raise GameEnvironmentError(f"Environment returned {type(state).__name__}, not State")
    return state


async def wait_for_next_state(
    env: GameEnvironment,
    state: State,
    config: RunnerConfig,
) -> State:
    """Poll until the episode ends or ``min_state_interval_ms`` has elapsed.

    Raises:
        GameEnvironmentError: if the game clock does not advance within
            ``state_timeout_s`` of wall time.
    """
    deadline = time.monotonic() + config.state_timeout_s
    next_state = await _read_state(env)
    while not next_state.done and next_state.time - state.time < config.min_state_interval_ms:
        if time.monotonic() > deadline:
            raise GameEnvironmentError(
                f"Game clock stalled at {next_state.time} ms "
                f"for {config.state_timeout_s} s"
            )
        await asyncio.sleep(config.poll_interval_ms / 1000)
        next_state = await _read_state(env)
    return next_state


# ---------------------------------------------------------------------------
# Episode driver
# ---------------------------------------------------------------------------


def _learner_step(
    online: Model,
    target: Model,
    memory: ReplayBuffer,
    session: TrainingSession,
    config: DDQNConfig,
) -> float | None:
    batch = memory.sample(config.batch_size)
    try:
        loss = optimize(online, target, batch, config.gamma, batch_size=config.batch_size)
    except OptimizationError as exc:
        session.failed_optimizations += 1
        logger.warning("Optimization step skipped: %s", exc)
        return None
    session.optimization_steps += 1
    return loss


async def run_episode(
    env: GameEnvironment,
    online: Model,
    target: Model,
    memory: ReplayBuffer,
    session: TrainingSession,
    *,
    ddqn_config: DDQNConfig,
    runner_config: RunnerConfig,
    rng: np.random.Generator,
    stop: asyncio.Event | None = None,
) -> EpisodeResult | None:
    """Play one episode, storing accepted transitions and learning as it goes.

    Returns ``None`` if *stop* was set before the episode finished; the
    partial episode is then neither counted nor logged.
    """
    schedule = exponential_schedule(
        ddqn_config.epsilon_start, ddqn_config.epsilon_end, ddqn_config.epsilon_decay
    )
    episode_index = session.episode
    accepted = discarded = 0
    losses: list[float] = []

    await env.restart()
    state = await _read_state(env)
    features = encode_state(state)

    while not state.done:
        if stop is not None and stop.is_set():
            session.episode_reward = 0.0
            return None

        action = select_action(online, features, session.epsilon, rng)
        env.perform_action(action)
        # Let the dispatch leave before the learner step blocks the loop.
        await asyncio.sleep(0)

        if len(memory) >= ddqn_config.batch_size:
            loss = _learner_step(online, target, memory, session, ddqn_config)
            if loss is not None:
                losses.append(loss)

        next_state = await wait_for_next_state(env, state, runner_config)
        next_features = encode_state(next_state)
        delta = next_state.time - state.time

        anomaly = check_timing(delta, runner_config, done=next_state.done)
        if anomaly is not None:
            discarded += 1
            session.discarded_steps += 1
            # Terminal states often arrive early; only warn on live steps.
            if not next_state.done:
                logger.warning("%s; step discarded", anomaly)
        else:
            reward = compute_reward(next_state.done, action, runner_config)
            session.episode_reward += reward
            memory.push(features, action, reward, next_features, next_state.done)
            session.epsilon = schedule(episode_index)
            accepted += 1
            session.accepted_steps += 1

        state, features = next_state, next_features

    session.episode += 1
    result = EpisodeResult(
        episode=session.episode,
        reward=session.episode_reward,
        epsilon=session.epsilon,
        accepted_steps=accepted,
        discarded_steps=discarded,
        loss=float(np.mean(losses)) if losses else None,
    )
    session.episode_reward = 0.0
    return result


# ---------------------------------------------------------------------------
# Training loop
# ---------------------------------------------------------------------------


async def train_ddqn(
    env: GameEnvironment,
    online: Model,
    target: Model,
    memory: ReplayBuffer,
    session: TrainingSession,
    *,
    ddqn_config: DDQNConfig,
    runner_config: RunnerConfig,
    rng: np.random.Generator,
    run_dir: RunDir | None = None,
    stop: asyncio.Event | None = None,
    episode_log: EpisodeLog | None = None,
    metrics: MetricsLogger | None = None,
    callback: Callable[[int, dict[str, Any]], None] | None = None,
) -> DDQNTrainResult:
    """Play ``runner_config.episodes`` episodes, syncing the target on schedule.

    Args:
        env: Game environment.
        online: Model updated by every learner step.
        target: Model updated only at sync points.
        memory: Replay buffer shared across episodes.
        session: Mutable session state (mutated in place).
        ddqn_config: Algorithm hyperparameters.
        runner_config: Outer-loop settings.
        rng: Generator for exploration.
        run_dir: Where sync points checkpoint the models and session.
            ``None`` syncs weights without persisting.
        stop: Cooperative cancellation token, checked between steps.
        episode_log: Receives one line per completed episode.
        metrics: Receives one JSONL record per completed episode.
        callback: Optional ``callback(episode, record)`` after each episode.

    Returns:
        ``DDQNTrainResult`` with the session, episode returns, per-episode
        records and whether training was stopped early.
    """
    episode_returns: list[float] = []
    metrics_log: list[dict[str, Any]] = []
    stopped = False

    for played in range(1, runner_config.episodes + 1):
        if stop is not None and stop.is_set():
            stopped = True
            break
        result = await run_episode(
            env,
            online,
            target,
            memory,
            session,
            ddqn_config=ddqn_config,
            runner_config=runner_config,
            rng=rng,
            stop=stop,
        )
        if result is None:
            stopped = True
            break

        episode_returns.append(result.reward)
        if episode_log is not None:
            episode_log.write(result.episode, result.epsilon, result.reward)

        record = {
            "episode": result.episode,
            "reward": result.reward,
            "epsilon": result.epsilon,
            "accepted_steps": result.accepted_steps,
            "discarded_steps": result.discarded_steps,
            "loss": result.loss,
            "memory_size": len(memory),
        }
        metrics_log.append(record)
        if metrics is not None:
            metrics.write(record)
        if played % runner_config.log_interval == 0:
            log_episode_progress(played, runner_config.episodes, record)

        if result.episode % ddqn_config.target_update_freq == 0:
            sync_target(online, target, run_dir)
            if run_dir is not None:
                _save_session(run_dir, session)

        if callback is not None:
            callback(result.episode, record)

    if stopped:
        logger.info("Stop requested; ending training after %d episodes", session.episode)

    return DDQNTrainResult(
        session=session,
        episode_returns=episode_returns,
        metrics_log=metrics_log,
        stopped=stopped,
    )


async def train(
    env: GameEnvironment,
    *,
    ddqn_config: DDQNConfig,
    runner_config: RunnerConfig,
    stop: asyncio.Event | None = None,
    run_dir: RunDir | None = None,
    callback: Callable[[int, dict[str, Any]], None] | None = None,
) -> DDQNTrainResult:
    """Bootstrap a run directory and train, always checkpointing on exit.

    Loads (or creates) both models and the session from the run
    directory, then runs :func:`train_ddqn`.  Whether training finishes,
    is stopped, or fails, both models and the session are saved before
    returning.  Environment failures are re-raised after that save.
    """
    run = run_dir if run_dir is not None else RunDir(
        runner_config.run_id, base_dir=runner_config.base_dir
    )
    run.save_config({"ddqn": ddqn_config, "runner": runner_config})
    episode_log = EpisodeLog(run.log_path("episodes.txt"))
    episode_log.start_session()

    online, target = load_models(
        run, ddqn_config, key=make_rng(runner_config.seed), resume=runner_config.resume
    )
    session = load_session(run, ddqn_config, resume=runner_config.resume)
    np_rng = make_np_rng(runner_config.seed)
    memory = ReplayBuffer(runner_config.memory_capacity, rng=np_rng)

    logger.info(
        "Training %s for %d episodes in %s", env.name, runner_config.episodes, run.root
    )
    try:
        with MetricsLogger(run.log_path("metrics.jsonl")) as metrics:
            return await train_ddqn(
                env,
                online,
                target,
                memory,
                session,
                ddqn_config=ddqn_config,
                runner_config=runner_config,
                rng=np_rng,
                run_dir=run,
                stop=stop,
                episode_log=episode_log,
                metrics=metrics,
                callback=callback,
            )
    except GameEnvironmentError as exc:
        logger.error("Training aborted by environment failure: %s", exc)
        raise
    finally:
        logger.info("Saving models before exit")
        save_models(online, target, run)
        _save_session(run, session)


def _save_session(run_dir: RunDir, session: TrainingSession) -> None:
    try:
        run_dir.save_session(session)
    except OSError as exc:
        logger.error("Could not save session state: %s", exc)
