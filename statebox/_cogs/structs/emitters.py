"""
Ordered sets of listeners, which are notified all at once.

The listeners are identified by equality, as in the sets: the same callable
added twice is registered only once, and is removed with either of the
unsubscribers. This includes the bound methods, which are re-created
on every attribute access, but are equal for the same object and function.
The notification order is the order of the first registration.
"""
from typing import Any, Callable, Dict, Generic, TypeVar

_L = TypeVar('_L', bound=Callable[..., Any])


class Emitter(Generic[_L]):

    def __init__(self) -> None:
        super().__init__()
        self._listeners: Dict[_L, _L] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def listen(self, listener: _L) -> Callable[[], None]:
        """ Add a listener and return a function to remove it (idempotent). """
        self._listeners.setdefault(listener, listener)

        def unlisten() -> None:
            self._listeners.pop(listener, None)

        return unlisten

    def emit(self, *args: Any) -> None:
        """
        Notify all the listeners registered so far.

        The list of listeners is fixed before the first one is called:
        the listeners added during the notification are called only in the next
        notification. The listeners removed during it are not called anymore.
        """
        for listener in list(self._listeners.values()):
            if self._listeners.get(listener) is listener:
                listener(*args)

    def clear(self) -> None:
        self._listeners.clear()
