"""
Relay event listeners.

A small listener registry used by relay clients to notify subscribers of
readiness and failure. Listeners are plain callables; coroutine functions
are scheduled on the running loop instead of being awaited, so emitting an
event never blocks the emitter.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Set

from ..schemas.bases import RelayState

logger = logging.getLogger(__name__)

RelayListener = Callable[..., Any]


class ListenerRegistry:
    """Listener registry keyed by relay state."""

    def __init__(self) -> None:
        self._listeners: Dict[RelayState, List[RelayListener]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, state: RelayState, listener: RelayListener) -> None:
        """
        Register a listener for the given state transition.

        Args:
            state: The relay state to listen for.
            listener: Callable invoked with the event payload (if any).

        Raises:
            TypeError: If listener is not callable.
        """
        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener).__name__}")

        self._listeners.setdefault(state, []).append(listener)

    def unsubscribe(self, listener: RelayListener) -> None:
        """Remove ``listener`` from every state it is registered for."""
        for listeners in self._listeners.values():
            while listener in listeners:
                listeners.remove(listener)

    def listeners(self, state: RelayState) -> List[RelayListener]:
        return list(self._listeners.get(state, []))

    def emit(self, state: RelayState, *payload: Any) -> None:
        """
        Invoke every listener registered for ``state``.

        The listener list is copied first so listeners may unsubscribe
        themselves (or each other) while the event is being delivered. A
        listener that raises is logged and skipped; the rest still run.
        """
        delivered = self.listeners(state)
        for listener in delivered:
            try:
                result = listener(*payload)
            except Exception:
                logger.exception(f"Listener {listener!r} failed on {state.value} event")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        logger.debug(f"Delivered {state.value} event to {len(delivered)} listeners")
