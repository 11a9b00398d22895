"""
Persistence of the stores' states in the key-value storages.

The persistence is a middleware: it wraps the store's initializer and
intercepts all the changes of the state to write them to the storage.
When the store is created, the persisted state is read from the storage
and merged into the initial state. This is called a hydration::

    store = statebox.create_store(statebox.persist(
        lambda set_state, get_state, store: {'count': 0, 'step': 1},
        name='counter',
        partialize=lambda state: {'count': state['count']},
        version=2,
        migrate=lambda state, version: {'count': state['cnt']},
    ))
    store.persist.has_hydrated()  # True with the synchronous storages.

The storages, serializers, and migrators can be either sync or async.
The persistence does not distinguish them: all the steps are chained via
the thenables (see :mod:`statebox._cogs.aiokits.aiothenables`).
With all-sync steps, the hydration is finished before the store is created.
With some async steps, it continues in the running event loop.

The failures of the persistence are not propagated to the store's users,
but are logged instead, with one exception: the synchronous failures
of the writes (e.g. unserializable states) are raised from ``set_state()``
after the state is changed in memory and the listeners are notified.
The asynchronous failures of the writes are logged when they happen,
and are raised from ``store.persist.flush()``, if awaited.
"""
import collections.abc
import dataclasses
import functools
from typing import Any, Callable, List, Optional, Set

from statebox._cogs.aiokits import aiothenables
from statebox._cogs.configs import options as options_
from statebox._cogs.configs import serializers, storages
from statebox._cogs.helpers import errors, typedefs
from statebox._cogs.structs import emitters
from statebox._core.engines import loggers, stores

HydrationListener = Callable[[typedefs.State], None]

_UNSET = object()


class Persistence:
    """
    The persistence of one store: its options, storage, and hydration status.

    It is exposed as ``store.persist`` of the persisted stores,
    with the public methods meant to be used by the stores' users.
    """

    def __init__(
            self,
            *,
            options: options_.PersistOptions,
            parent_set: stores.SetState,
            parent_get: stores.GetState,
    ) -> None:
        super().__init__()
        self._options = options
        self._parent_set = parent_set
        self._parent_get = parent_get
        self._storage = resolve_storage(options)
        self._hydrated = False
        self._hydrated_state: Any = _UNSET
        self._initial_state: typedefs.State = None
        self._hydration_emitter: emitters.Emitter[HydrationListener] = emitters.Emitter()
        self._finish_hydration_emitter: emitters.Emitter[HydrationListener] = emitters.Emitter()
        self._writes: Set[aiothenables.Deferred[Any]] = set()
        self._write_error: Optional[Exception] = None

    @property
    def logger(self) -> loggers.StoreLogger:
        return loggers.StoreLogger(name=self._options.name)

    @property
    def storage(self) -> Optional[storages.KeyValueStorage]:
        return self._storage

    def set_options(self, **kwargs: Any) -> None:
        """
        Update some of the options, keeping the others as they are.

        If a new storage factory is provided, the storage is replaced immediately.
        """
        self._options = dataclasses.replace(self._options, **kwargs)
        if 'get_storage' in kwargs:
            self._storage = self._options.get_storage()

    def get_options(self) -> options_.PersistOptions:
        return dataclasses.replace(self._options)

    def initialize(self, initializer: stores.Initializer, store: stores.Store) -> typedefs.State:
        """
        Create the initial state with the persisting setter, and hydrate it.

        If the hydration is finished synchronously, the hydrated state
        becomes the initial state of the store. Otherwise, the initializer's one
        does, and the hydrated state replaces it later.
        """
        self._initial_state = initializer(self.persisting(self._parent_set), self._parent_get, store)
        self.rehydrate()
        return self._initial_state if self._hydrated_state is _UNSET else self._hydrated_state

    def has_hydrated(self) -> bool:
        return self._hydrated

    def on_hydrate(self, listener: HydrationListener) -> typedefs.Unsubscribe:
        """ Listen for the beginnings of the hydrations (with the current state). """
        return self._hydration_emitter.listen(listener)

    def on_finish_hydration(self, listener: HydrationListener) -> typedefs.Unsubscribe:
        """ Listen for the successful ends of the hydrations (with the hydrated state). """
        return self._finish_hydration_emitter.listen(listener)

    def clear_storage(self) -> aiothenables.Thenable[None]:
        """ Remove the persisted state from the storage. The in-memory state is intact. """
        storage = self._storage
        if storage is None:
            raise errors.StorageUnavailableError(f"Unable to remove the item {self._options.name!r}: "
                                                 f"the storage is currently unavailable.")
        return aiothenables.thenablify(storage.remove_item, throw_immediately=True)(self._options.name)

    def flush(self) -> aiothenables.Thenable[None]:
        """
        Wait until all the pending asynchronous writes are finished.

        The first failure of the writes since the previous flush (if any)
        is raised. All of them are also logged when they happen, regardless
        of this method. The synchronous writes are never pending.
        """
        writes = list(self._writes)
        error, self._write_error = self._write_error, None
        self._writes.clear()
        if not writes:
            return aiothenables.Fulfilled(None) if error is None else aiothenables.Rejected(error)

        async def wait_for_writes() -> None:
            failures: List[Exception] = [] if error is None else [error]
            for write in writes:
                try:
                    await write
                except Exception as e:
                    failures.append(e)
            if failures:
                raise failures[0]

        return aiothenables.thenablify(wait_for_writes)()

    def rehydrate(self) -> aiothenables.Thenable[None]:
        """
        Read the persisted state from the storage and merge it into the store.

        The result is a thenable, which can be awaited for the asynchronous storages.
        It never fails: the failures are logged and reported to the callback
        of ``on_rehydrate_storage`` (if configured) as its second argument.
        This includes the failures of the hydration listeners and callbacks.
        """
        callbacks: List[options_.PostRehydrationCallback] = []
        return (
            aiothenables.thenablify(self._begin)(callbacks)
            .then(self._read)
            .then(self._deserialize)
            .then(self._migrate)
            .then(self._apply)
            .then(functools.partial(self._succeed, callbacks))
            .catch(functools.partial(self._fail, callbacks))
        )

    def _begin(self, callbacks: List[options_.PostRehydrationCallback]) -> None:
        self._hydrated = False
        self._hydration_emitter.emit(self._parent_get())
        if self._options.on_rehydrate_storage is not None:
            callback = self._options.on_rehydrate_storage(self._parent_get())
            if callback is not None:
                callbacks.append(callback)

    def _read(self, _: None) -> typedefs.SyncOrAsync[Optional[str]]:
        storage = self._storage
        if storage is None:
            raise errors.StorageUnavailableError(f"Unable to read the item {self._options.name!r}: "
                                                 f"the storage is currently unavailable.")
        return storage.get_item(self._options.name)

    def _deserialize(self, serialized: Optional[str]) -> Any:
        return None if serialized is None else self._options.deserialize(serialized)

    def _migrate(self, envelope: Optional[serializers.Envelope]) -> Any:
        if envelope is None:
            return None
        version = envelope.get('version')
        if version is None or version == self._options.version:
            return envelope['state']
        if self._options.migrate is None:
            self.logger.error(f"The state of version {version} loaded from the storage "
                              f"could not be migrated to version {self._options.version} "
                              f"since no migrate function was provided.")
            return None
        self.logger.debug(f"Migrating the state from version {version} "
                          f"to version {self._options.version}.")
        return self._options.migrate(envelope['state'], version)

    def _apply(self, migrated: Any) -> aiothenables.Thenable[None]:
        self._hydrated_state = self._options.merge(migrated, self._initial_state)
        self._parent_set(self._hydrated_state, True)
        return self.update_storage()

    def _succeed(self, callbacks: List[options_.PostRehydrationCallback], _: Any) -> None:
        self._hydrated = True
        self._finish_hydration_emitter.emit(self._hydrated_state)
        for callback in callbacks:
            callback(self._hydrated_state, None)

    def _fail(self, callbacks: List[options_.PostRehydrationCallback], error: Exception) -> None:
        self.logger.error(f"Failed to rehydrate the state: {error}", exc_info=error)
        for callback in callbacks:
            try:
                callback(None, error)
            except Exception as e:
                self.logger.error(f"The rehydration callback failed: {e}", exc_info=e)

    def update_storage(self) -> aiothenables.Thenable[None]:
        """
        Write the current state to the storage (its persisted part only).

        The synchronous failures are raised immediately. The asynchronous ones
        are left in the returned thenable for the awaiters (if any).
        """
        storage = self._storage
        name = self._options.name
        if storage is None:
            self.logger.warning(f"Unable to update the item {name!r}: "
                                f"the storage is currently unavailable.")
            return aiothenables.Fulfilled(None)

        state = self._parent_get()
        state = dict(state) if isinstance(state, collections.abc.Mapping) else state
        envelope = serializers.Envelope(state=self._options.partialize(state),
                                        version=self._options.version)
        return (
            aiothenables.thenablify(self._options.serialize, throw_immediately=True)(envelope)
            .then(functools.partial(storage.set_item, name))
        )

    def persisting(self, set_state: stores.SetState) -> stores.SetState:
        """ Wrap a setter to write the state to the storage after every change. """

        @functools.wraps(set_state)
        def set_and_persist(*args: Any, **kwargs: Any) -> None:
            set_state(*args, **kwargs)
            self._track(self.update_storage())

        return set_and_persist

    def _track(self, write: aiothenables.Thenable[None]) -> None:
        if isinstance(write, aiothenables.Deferred) and not write.done():
            self._writes.add(write)
            write.add_done_callback(functools.partial(self._settle, write))

    def _settle(self, write: aiothenables.Deferred[None], future: typedefs.Future) -> None:
        unflushed = write in self._writes
        self._writes.discard(write)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            # Only the first failure is kept for flush(); the writes themselves are not.
            self.logger.error(f"Failed to persist the state: {error}", exc_info=error)
            if unflushed and self._write_error is None:
                self._write_error = error


def resolve_storage(options: options_.PersistOptions) -> Optional[storages.KeyValueStorage]:
    try:
        return options.get_storage()
    except Exception as e:
        loggers.StoreLogger(name=options.name).debug(f"The storage could not be created: {e}")
        return None


def unpersisted(set_state: stores.SetState, *, name: str) -> stores.SetState:
    """ Wrap a setter to warn about the unavailable storage on every change. """

    @functools.wraps(set_state)
    def set_and_warn(*args: Any, **kwargs: Any) -> None:
        loggers.StoreLogger(name=name).warning(f"Unable to update the item {name!r}: "
                                               f"the storage is currently unavailable.")
        set_state(*args, **kwargs)

    return set_and_warn


def persist(initializer: stores.Initializer, *, name: str, **kwargs: Any) -> stores.Initializer:
    """
    A middleware to persist the store's state in a storage.

    The keyword arguments are the options: see :class:`PersistOptions`.
    The options are validated immediately, but the storage is created only
    when the store is created (and once per store, if used for many stores).
    """
    base_options = options_.PersistOptions(name=name, **kwargs)

    @functools.wraps(initializer)
    def initialize(
            set_state: stores.SetState,
            get_state: stores.GetState,
            store: stores.Store,
    ) -> typedefs.State:
        options = dataclasses.replace(base_options)
        persistence = Persistence(options=options, parent_set=set_state, parent_get=get_state)

        # With no storage, work as an in-memory store, but complain on every change.
        if persistence.storage is None:
            store.set_state = unpersisted(store.set_state, name=options.name)  # type: ignore[method-assign]
            return initializer(unpersisted(set_state, name=options.name), get_state, store)

        store.set_state = persistence.persisting(store.set_state)  # type: ignore[method-assign]
        store.persist = persistence  # type: ignore[attr-defined]

        return persistence.initialize(initializer, store)

    return initialize
