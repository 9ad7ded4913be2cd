"""Game environments.

Quick start::

    from dino_rl.env import make

    env = make("SimRunner-v0", seed=0)
    await env.restart()
    state = await env.state()

``make`` also accepts a ``"package.module:attr"`` path to any callable
returning a :class:`GameEnvironment`, which is how a browser-backed
environment is plugged in.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any

from dino_rl.env.base import GameEnvironment
from dino_rl.env.scripted import ScriptedEnvironment
from dino_rl.env.simulated import SimulatedRunner, SimulatedRunnerParams

# ---- Registry ----

_REGISTRY: dict[str, Callable[..., GameEnvironment]] = {
    "SimRunner-v0": SimulatedRunner,
}


def register(name: str, factory: Callable[..., GameEnvironment]) -> None:
    """Register an environment factory under *name*."""
    _REGISTRY[name] = factory


def make(name: str, **kwargs: Any) -> GameEnvironment:
    """Create an environment by registry name or ``module:attr`` path."""
    if name in _REGISTRY:
        factory = _REGISTRY[name]
    elif ":" in name:
        module_name, _, attr = name.partition(":")
        factory = getattr(importlib.import_module(module_name), attr)
    else:
        raise ValueError(
            f"Unknown environment {name!r}. Available: {sorted(_REGISTRY)}"
        )
    env = factory(**kwargs)
    if not isinstance(env, GameEnvironment):
        raise TypeError(f"{name!r} did not produce a GameEnvironment: {env!r}")
    return env


__all__ = [
    "GameEnvironment",
    "ScriptedEnvironment",
    "SimulatedRunner",
    "SimulatedRunnerParams",
    "make",
    "register",
]
