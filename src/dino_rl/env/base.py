"""Asynchronous game environment interface.

The live game runs in a browser page and is observed by polling, so the
interface is split the same way the page is driven:

- ``await env.restart()`` starts a fresh episode,
- ``await env.state()`` returns a non-blocking snapshot of the game,
- ``env.perform_action(action)`` dispatches a control input and returns
  immediately (fire-and-forget).

Game time comes from ``State.time``, never from the wall clock, so a
slow poll shows up as a large inter-state delta rather than as skew.

Core pattern::

    await env.restart()
    state = await env.state()
    while not state.done:
        env.perform_action(action)
        state = await env.state()
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from dino_rl.types import Action, State


class GameEnvironment(ABC):
    """Abstract base for runner-game environments.

    Subclasses implement ``restart``, ``state`` and ``perform_action``.
    Calls are never issued concurrently: the training loop awaits each
    one before making the next.
    """

    @abstractmethod
    async def restart(self) -> None:
        """Begin a fresh episode."""
        ...

    @abstractmethod
    async def state(self) -> State:
        """Return the current game snapshot.

        Raises:
            GameEnvironmentError: if the game is unreachable or the
                snapshot is malformed.
        """
        ...

    @abstractmethod
    def perform_action(self, action: Action) -> None:
        """Dispatch *action* without waiting for its effect."""
        ...

    async def close(self) -> None:
        """Release any resources held by the environment."""

    @property
    def name(self) -> str:
        return self.__class__.__name__
