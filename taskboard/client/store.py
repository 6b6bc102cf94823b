from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel

S = TypeVar("S", bound=BaseModel)

Listener = Callable[[BaseModel], None]


class Store(Generic[S]):
    """State container. All mutation goes through ``_set``; subscribers see every new state."""

    def __init__(self, state: S):
        self._state = state
        self._listeners: list[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(state)`` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> None:
        # Replace, never mutate: earlier state objects stay valid snapshots.
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self._state)
