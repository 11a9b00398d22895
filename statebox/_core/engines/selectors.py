"""
Subscriptions to the selected slices of the state.

Usually, a consumer is interested not in the whole state, but in a part of it,
e.g. in one field. Such consumers should not be notified when the other fields
are changed. For this, the store's ``subscribe()`` is extended to accept
a selector of the slice and a listener of the slice changes::

    store = statebox.create_store(statebox.subscribe_with_selector(initializer))
    store.subscribe(lambda state: state['count'], lambda new, old: print(new, old))

The slices are compared shallowly by default (see :func:`statebox.shallow`),
so the selectors can return new dicts/lists/tuples of the same values.
"""
import functools
from typing import Any, Callable, Optional

from statebox._cogs.helpers import typedefs
from statebox._cogs.structs import equality
from statebox._core.engines import stores

Selector = Callable[[typedefs.State], Any]
EqualityFn = Callable[[Any, Any], bool]


class SelectorListener:
    """
    A regular store's listener, which tracks one slice of the state.

    The last selected slice is remembered after every notification,
    so that the slice listener gets both the new and the previous slices.
    """

    def __init__(
            self,
            *,
            selector: Selector,
            listener: typedefs.Listener,
            equality_fn: EqualityFn,
            current_slice: Any,
    ) -> None:
        super().__init__()
        self.selector = selector
        self.listener = listener
        self.equality_fn = equality_fn
        self.current_slice = current_slice

    def __call__(self, state: typedefs.State, previous_state: typedefs.State) -> None:
        next_slice = self.selector(state)
        if not self.equality_fn(self.current_slice, next_slice):
            previous_slice, self.current_slice = self.current_slice, next_slice
            self.listener(next_slice, previous_slice)


def subscribe_with_selector(initializer: stores.Initializer) -> stores.Initializer:
    """
    A middleware to extend the store's ``subscribe()`` with the selectors.

    The plain listeners (with no selectors) are supported as before.
    """

    @functools.wraps(initializer)
    def initialize(
            set_state: stores.SetState,
            get_state: stores.GetState,
            store: stores.Store,
    ) -> typedefs.State:
        subscribe = store.subscribe

        def subscribe_selected(
                selector_or_listener: Callable[..., Any],
                listener: Optional[typedefs.Listener] = None,
                *,
                equality_fn: EqualityFn = equality.shallow,
                fire_immediately: bool = False,
        ) -> typedefs.Unsubscribe:
            if listener is None:
                return subscribe(selector_or_listener)

            selector = selector_or_listener
            current_slice = selector(store.get_state())
            selector_listener = SelectorListener(
                selector=selector,
                listener=listener,
                equality_fn=equality_fn,
                current_slice=current_slice,
            )
            if fire_immediately:
                listener(current_slice, current_slice)
            return subscribe(selector_listener)

        store.subscribe = subscribe_selected  # type: ignore[assignment]
        return initializer(set_state, get_state, store)

    return initialize
