"""
The stores: boxed states with the change notifications.

A store holds exactly one current state at any moment. The state is replaced
on every change (never mutated in place), and all the store's listeners are
notified synchronously right after it is replaced, with the new & previous
states. There is no locking: the stores are not designed for concurrent
changes from multiple threads; the callers must serialize the changes.

The stores are created from the initializers: the functions that get
the store's setter, getter, and the store itself, and return the initial state.
The middlewares (e.g. :func:`statebox.persist`) wrap the initializers
and augment the stores with extra capabilities, e.g. ``store.persist``::

    store = statebox.create_store(
        statebox.subscribe_with_selector(
            statebox.persist(
                lambda set_state, get_state, store: {'count': 0},
                name='counter',
            ),
        ),
    )

The outermost middleware sees the store first, the innermost one sees it last.
"""
import collections.abc
import logging
from typing import Callable, Optional, Union, overload

from typing_extensions import Protocol

from statebox._cogs.helpers import typedefs
from statebox._cogs.structs import emitters, equality

logger = logging.getLogger(__name__)

SetState = Callable[..., None]
GetState = Callable[[], typedefs.State]


class Initializer(Protocol):
    def __call__(
            self,
            set_state: SetState,
            get_state: GetState,
            store: "Store",
    ) -> typedefs.State: ...


class Store:
    """
    A container of the current state with the change notifications.

    The bound methods can be replaced on the store instance by the middlewares,
    so they are never called via ``self`` internally. As a result, the methods
    can be passed around as standalone functions (e.g. to UI bindings).
    """

    def __init__(self, initializer: Initializer) -> None:
        super().__init__()
        self._state: typedefs.State = None
        self._listeners: emitters.Emitter[typedefs.Listener] = emitters.Emitter()
        self._destroyed = False

        # The initializer can use the setter & getter, but the listeners cannot exist yet.
        state = initializer(self.set_state, self.get_state, self)
        self._state = self._initial_state = state

    def get_state(self) -> typedefs.State:
        return self._state

    def get_initial_state(self) -> typedefs.State:
        return self._initial_state

    def set_state(
            self,
            partial: Union[typedefs.State, Callable[[typedefs.State], typedefs.State]],
            replace: bool = False,
    ) -> None:
        """
        Change the state and notify the listeners.

        The change is either a value or a function to calculate the value
        from the previous state. If the value is a dict, it is merged
        into the previous state (one level deep), unless the whole state
        is requested to be replaced. Other values always replace the state.

        The same value as the current state changes nothing and notifies nobody.
        """
        previous = self._state
        produced = partial(previous) if callable(partial) else partial
        if equality.same(produced, previous):
            return

        if replace or not isinstance(produced, collections.abc.Mapping):
            state = produced
        elif isinstance(previous, collections.abc.Mapping):
            state = {**previous, **produced}
        else:
            state = dict(produced)

        self._state = state
        if not self._destroyed:
            self._listeners.emit(state, previous)

    def subscribe(self, listener: typedefs.Listener) -> typedefs.Unsubscribe:
        """
        Register a listener of all the changes of the state.

        The listener is called with the new & previous states after each change.
        The returned function unsubscribes exactly this listener (idempotently).
        """
        return self._listeners.listen(listener)

    def destroy(self) -> None:
        """
        Forget all the listeners.

        The store remains usable: the state can be changed, but nobody is notified.
        This prevents the errors in the late writers after the consumers are gone.
        """
        if not self._destroyed:
            logger.debug(f"Destroying a store with {len(self._listeners)} listener(s).")
        self._destroyed = True
        self._listeners.clear()

    @property
    def destroyed(self) -> bool:
        return self._destroyed


@overload
def create_store(initializer: Initializer) -> Store: ...


@overload
def create_store(initializer: None = None) -> Callable[[Initializer], Store]: ...


def create_store(
        initializer: Optional[Initializer] = None,
) -> Union[Store, Callable[[Initializer], Store]]:
    """
    Create a store from an initializer.

    Can be used as a decorator of the initializers, both with and without
    the parentheses (the latter is useful to separate the typed declaration).
    """
    if initializer is None:
        return create_store
    return Store(initializer)