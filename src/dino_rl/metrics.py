"""Training logs: console formatting, the episode log and JSONL metrics.

Three sinks, all append-only:

- the ``dino_rl`` console logger (see :func:`setup_logging`),
- ``logs/episodes.txt``: the human-readable one-line-per-episode log,
  with a separator at the start of every session (:class:`EpisodeLog`),
- ``logs/metrics.jsonl``: one JSON object per episode
  (:class:`MetricsLogger`).

The two file sinks never raise on a failed write; a lost log line is
reported on the console and training carries on.

Usage::

    from dino_rl.metrics import EpisodeLog, MetricsLogger, setup_logging

    setup_logging()
    episodes = EpisodeLog(run.log_path("episodes.txt"))
    episodes.start_session()
    episodes.write(episode=1, epsilon=0.99, reward=3.2)

    with MetricsLogger(run.log_path("metrics.jsonl")) as metrics:
        metrics.write({"episode": 1, "reward": 3.2, "loss": 0.01})
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import IO, Any

import numpy as np

logger = logging.getLogger(__name__)

SESSION_SEPARATOR = "\n\n" + "-" * 66 + "\n\n"

# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

# "I 2026-02-15 14:30:22.123 [dino_rl.runner.train_ddqn] episode 12/10000 | reward=1.3"
_CONSOLE_FORMAT = "%(levelname).1s %(asctime)s.%(msecs)03d [%(name)s] %(message)s"
_CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.INFO) -> None:
    """Route the ``dino_rl`` logger hierarchy to stderr in compact form.

    Idempotent: handlers from a previous call are replaced.
    """
    pkg_logger = logging.getLogger("dino_rl")
    pkg_logger.setLevel(level)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, _CONSOLE_DATEFMT))
    pkg_logger.addHandler(handler)
    pkg_logger.propagate = False


def _format_value(value: Any) -> str:
    value = _to_python(value)
    return f"{value:.4g}" if isinstance(value, float) else str(value)


def log_episode_progress(
    episode: int,
    total_episodes: int,
    metrics: dict[str, Any] | None = None,
    logger_name: str = "dino_rl",
) -> None:
    """Log ``episode N/total (pct) | key=value ...``.

    ``None`` values and the ``episode`` / ``wall_time`` keys are left out.
    """
    pct = 100.0 * episode / total_episodes if total_episodes > 0 else 0.0
    line = f"episode {episode}/{total_episodes} ({pct:.1f}%)"
    fields = [
        f"{key}={_format_value(value)}"
        for key, value in (metrics or {}).items()
        if value is not None and key not in ("episode", "wall_time")
    ]
    if fields:
        line += " | " + " ".join(fields)
    logging.getLogger(logger_name).info(line)


# ---------------------------------------------------------------------------
# Episode log (plain text)
# ---------------------------------------------------------------------------


def format_episode_line(episode: int, epsilon: float, reward: float) -> str:
    return f"Episode: {episode}, Epsilon: {epsilon}, Total Reward: {reward}"


class EpisodeLog:
    """Text log with one ``Episode: ..., Epsilon: ..., Total Reward: ...`` line
    per completed episode.

    The file is opened per write, so a log rotated or removed while
    training simply starts over.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def start_session(self) -> None:
        """Append the separator marking a new training session."""
        self._append(SESSION_SEPARATOR)

    def write(self, episode: int, epsilon: float, reward: float) -> None:
        self._append(format_episode_line(episode, epsilon, reward) + "\n")

    def _append(self, text: str) -> None:
        try:
            with self.path.open("a") as f:
                f.write(text)
        except OSError as exc:
            logger.error("Failed to write to %s: %s", self.path, exc)

    def __repr__(self) -> str:
        return f"EpisodeLog({self.path})"


# ---------------------------------------------------------------------------
# JSONL metrics
# ---------------------------------------------------------------------------


class MetricsLogger:
    """Per-episode JSONL records, stamped with ``wall_time``.

    Parameters
    ----------
    path:
        JSONL file, appended to.  Parent directories are created.

    ``wall_time`` is seconds since the logger was opened, unless the
    record already carries one.  numpy / JAX scalars are written as
    plain numbers.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file: IO[str] = self.path.open("a")  # noqa: SIM115
        self._opened_at = time.monotonic()

    def write(self, record: dict[str, Any]) -> None:
        row = {"wall_time": round(time.monotonic() - self._opened_at, 3), **record}
        try:
            self._file.write(json.dumps(row, default=_json_default) + "\n")
            self._file.flush()
        except OSError as exc:
            logger.error("Failed to write metrics to %s: %s", self.path, exc)

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> MetricsLogger:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"MetricsLogger({self.path})"


def read_metrics(path: str | Path) -> list[dict[str, Any]]:
    """All records of a JSONL metrics file; ``[]`` if it does not exist."""
    path = Path(path)
    if not path.exists():
        return []
    with path.open() as f:
        return [json.loads(line) for line in f if line.strip()]


def _to_python(value: Any) -> Any:
    """Unwrap numpy / JAX scalars; anything else passes through."""
    if isinstance(value, (np.ndarray, np.generic)) or hasattr(value, "item"):
        return value.item()
    return value


def _json_default(value: Any) -> Any:
    if hasattr(value, "item"):
        return value.item()
    return str(value)
