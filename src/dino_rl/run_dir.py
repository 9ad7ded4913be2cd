"""On-disk layout of one training run.

::

    runs/
    └── default/
        ├── config.json        hyperparameters of the latest session
        ├── session.json       episode counter, epsilon, step counters
        ├── models/
        │   ├── main/          online network
        │   └── target/        target network
        └── logs/
            ├── episodes.txt
            └── metrics.jsonl

Reusing a run directory resumes it, which is why the default run id is
a fixed name rather than a timestamp.

Usage::

    run = RunDir("default", base_dir="runs")
    run.save_config({"ddqn": ddqn_config, "runner": runner_config})
    online.save(run.model_dir(MAIN))
    EpisodeLog(run.log_path("episodes.txt"))
"""

from __future__ import annotations

import dataclasses
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dino_rl.checkpoint import has_checkpoint

# Model namespaces under models/
MAIN = "main"
TARGET = "target"

SESSION_FILE = "session.json"


class RunDir:
    """Paths and JSON snapshots for a single run.

    ``models/`` and ``logs/`` are created on construction; model
    directories themselves are created by the Orbax checkpoint manager.

    Parameters
    ----------
    run_id:
        Directory name under *base_dir*.  ``None`` picks a fresh
        ``run_<UTC timestamp>``.
    base_dir:
        Parent of all runs.
    """

    def __init__(self, run_id: str | None = "default", base_dir: str | Path = "runs") -> None:
        if run_id is None:
            run_id = "run_" + datetime.now(tz=UTC).strftime("%Y%m%d_%H%M%S")
        self.root = Path(base_dir) / run_id
        self.models = self.root / "models"
        self.logs = self.root / "logs"
        self.models.mkdir(parents=True, exist_ok=True)
        self.logs.mkdir(parents=True, exist_ok=True)

    @property
    def session_path(self) -> Path:
        return self.root / SESSION_FILE

    def model_dir(self, namespace: str) -> Path:
        return self.models / namespace

    def has_model(self, namespace: str) -> bool:
        return has_checkpoint(self.model_dir(namespace))

    def log_path(self, filename: str = "metrics.jsonl") -> Path:
        return self.logs / filename

    # ------------------------------------------------------------------
    # JSON snapshots
    # ------------------------------------------------------------------

    def save_config(self, config: Any, filename: str = "config.json") -> Path:
        """Write *config* (dataclasses, dicts of them, ...) as JSON."""
        return _write_json(self.root / filename, _to_jsonable(config))

    def load_config(self, filename: str = "config.json") -> dict[str, Any]:
        return json.loads((self.root / filename).read_text())

    def save_session(self, session: Any) -> Path:
        """Replace ``session.json`` atomically."""
        return _write_json(self.session_path, _to_jsonable(session))

    def load_session(self) -> dict[str, Any] | None:
        """The saved session, or ``None`` for a fresh run."""
        if not self.session_path.is_file():
            return None
        return json.loads(self.session_path.read_text())

    def __repr__(self) -> str:
        return f"RunDir({self.root})"

    def __fspath__(self) -> str:
        return str(self.root)


def _write_json(path: Path, data: Any) -> Path:
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, default=str) + "\n")
    tmp.replace(path)
    return path


def _to_jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        obj = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {key: _to_jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(value) for value in obj]
    return obj
