"""A small deterministic runner game on a virtual clock.

Mimics the geometry of the browser game closely enough to smoke-test
training offline: cacti scroll in from x = 625 at constant speed, the
agent stands on the ground at y = 93 and crashes when an obstacle
reaches its column while it is too low.  Every ``state()`` call
advances the game clock by ``tick_ms``, so polling cadence, not wall
time, drives the simulation.

Observation: ``State`` with up to two upcoming obstacles.
Actions: ``0`` (keep running) or ``1`` (jump, ignored while airborne).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dino_rl.env.base import GameEnvironment
from dino_rl.types import JUMP, MAX_OBSTACLES, Action, Obstacle, State


@dataclass(frozen=True)
class SimulatedRunnerParams:
    """Geometry and physics, in game pixels and milliseconds."""

    tick_ms: float = 10.0
    speed: float = 0.4  # px / ms
    ground_y: float = 93.0
    agent_height: float = 47.0
    crash_x: float = 19.0
    jump_velocity: float = -0.6  # px / ms, negative is up
    gravity: float = 0.0036  # px / ms^2
    spawn_x: float = 625.0
    min_gap: float = 220.0
    max_gap: float = 520.0
    obstacle_y: float = 105.0
    obstacle_height: float = 35.0
    obstacle_widths: tuple[float, ...] = (17.0, 34.0, 51.0)


class SimulatedRunner(GameEnvironment):
    """Seeded, pure-Python stand-in for the browser game."""

    def __init__(
        self,
        params: SimulatedRunnerParams | None = None,
        *,
        seed: int = 0,
    ) -> None:
        self.params = params if params is not None else SimulatedRunnerParams()
        self._rng = np.random.default_rng(seed)
        # Game time keeps running across restarts, like the page's clock.
        self._time = 0.0
        self._reset_episode()

    def _reset_episode(self) -> None:
        self._y = self.params.ground_y
        self._vy = 0.0
        self._jumping = False
        self._done = False
        self._obstacles: list[list[float]] = []
        self._next_spawn_x = self.params.spawn_x

    async def restart(self) -> None:
        self._reset_episode()
        self._spawn()

    async def state(self) -> State:
        if not self._done:
            self._advance(self.params.tick_ms)
        self._time += self.params.tick_ms
        return self._snapshot()

    def perform_action(self, action: Action) -> None:
        if action == JUMP and not self._jumping and not self._done:
            self._jumping = True
            self._vy = self.params.jump_velocity

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def _spawn(self) -> None:
        p = self.params
        width = float(self._rng.choice(p.obstacle_widths))
        self._obstacles.append([self._next_spawn_x, width])
        gap = float(self._rng.uniform(p.min_gap, p.max_gap))
        self._next_spawn_x = self._next_spawn_x + gap

    def _advance(self, dt: float) -> None:
        p = self.params
        if self._jumping:
            self._y += self._vy * dt + 0.5 * p.gravity * dt * dt
            self._vy += p.gravity * dt
            if self._y >= p.ground_y:
                self._y = p.ground_y
                self._vy = 0.0
                self._jumping = False

        shift = p.speed * dt
        for obstacle in self._obstacles:
            obstacle[0] -= shift
        self._next_spawn_x -= shift
        self._obstacles = [o for o in self._obstacles if o[0] + o[1] >= 0.0]
        if self._next_spawn_x <= p.spawn_x:
            self._spawn()

        bottom = self._y + p.agent_height
        for x, width in self._obstacles:
            if x <= p.crash_x and x + width >= 0.0 and bottom > p.obstacle_y:
                self._done = True
                break

    def _snapshot(self) -> State:
        p = self.params
        upcoming = sorted(self._obstacles)[:MAX_OBSTACLES]
        return State(
            obstacles=tuple(
                Obstacle(x, p.obstacle_y, width, p.obstacle_height)
                for x, width in upcoming
            ),
            jumping=self._jumping,
            y_pos=self._y,
            time=self._time,
            done=self._done,
        )
