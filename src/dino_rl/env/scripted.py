"""Replay fixed state sequences as an environment.

Each call to ``state()`` returns the next scripted snapshot of the
current episode; once the script runs out the last snapshot repeats.
Actions are recorded rather than applied.  Useful for exercising the
training loop deterministically, and for dry runs against recorded
page snapshots.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from dino_rl.env.base import GameEnvironment
from dino_rl.errors import GameEnvironmentError
from dino_rl.types import Action, State


class ScriptedEnvironment(GameEnvironment):
    """Environment driven by per-episode lists of states.

    Parameters
    ----------
    episodes:
        One sequence per episode.  Entries may be ``State`` instances or
        raw page snapshots (parsed with ``State.from_dict``).
    repeat:
        Cycle through *episodes* when restarted more often than there are
        scripts.  Otherwise an extra restart raises
        ``GameEnvironmentError``.
    """

    def __init__(
        self,
        episodes: Sequence[Sequence[State | Mapping[str, Any]]],
        *,
        repeat: bool = True,
    ) -> None:
        if not episodes:
            raise ValueError("ScriptedEnvironment needs at least one episode")
        self._episodes = [[_as_state(s) for s in ep] for ep in episodes]
        self._repeat = repeat
        self._episode: int | None = None
        self._cursor = 0
        self.restarts = 0
        self.actions: list[Action] = []

    async def restart(self) -> None:
        if self.restarts >= len(self._episodes) and not self._repeat:
            raise GameEnvironmentError(
                f"Script exhausted after {len(self._episodes)} episodes"
            )
        self._episode = self.restarts % len(self._episodes)
        self._cursor = 0
        self.restarts += 1

    async def state(self) -> State:
        if self._episode is None:
            raise GameEnvironmentError("state() called before restart()")
        script = self._episodes[self._episode]
        if not script:
            raise GameEnvironmentError(f"Episode {self._episode} has no states")
        state = script[min(self._cursor, len(script) - 1)]
        self._cursor += 1
        return state

    def perform_action(self, action: Action) -> None:
        self.actions.append(int(action))


def _as_state(entry: State | Mapping[str, Any]) -> State:
    if isinstance(entry, State):
        return entry
    return State.from_dict(entry)
