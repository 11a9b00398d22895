"""
All the options of the persisted stores.

The options are resolved against the defaults once, when the store is created,
and can be partially updated later (see ``store.persist.set_options()``).
Only the name is mandatory; all other options have reasonable defaults.

The callable options can be either sync or async functions, unless mentioned
otherwise: the persistence pipelines support both and do not distinguish them.
"""
import collections.abc
import dataclasses
from typing import Any, Callable, Mapping, Optional

from statebox._cogs.configs import serializers, storages
from statebox._cogs.helpers import typedefs

PostRehydrationCallback = Callable[[Optional[typedefs.State], Optional[Exception]], None]
PreRehydrationCallback = Callable[[typedefs.State], Optional[PostRehydrationCallback]]


def identity(state: typedefs.State) -> Any:
    return state


def shallow_merge(persisted: Any, current: typedefs.State) -> typedefs.State:
    """
    Overlay the persisted fields over the current ones (one level deep).

    The absent persisted state (e.g. empty storage or a failed migration)
    leaves the current state as is (but as a copy).
    """
    current_fields: Mapping[Any, Any] = current if isinstance(current, collections.abc.Mapping) else {}
    persisted_fields: Mapping[Any, Any] = persisted if isinstance(persisted, collections.abc.Mapping) else {}
    return {**current_fields, **persisted_fields}


@dataclasses.dataclass
class PersistOptions:

    name: str
    """
    The name of the persisted record in the storage. Must be unique
    across all the stores using the same storage, unless intentionally shared.
    """

    get_storage: Callable[[], Optional[storages.KeyValueStorage]] = storages.get_default_storage
    """
    A factory of the storage (see :class:`storages.KeyValueStorage`).

    It is called once when the store is created, and once on every change
    of this option. If it fails or returns ``None``, the store continues
    with no persistence at all (and warns on every change of the state).

    The default is a process-wide in-memory storage.
    """

    serialize: Callable[[serializers.Envelope], typedefs.SyncOrAsync[str]] = serializers.dump_json
    """ Convert an envelope to a string for the storage. JSON by default. """

    deserialize: Callable[[str], typedefs.SyncOrAsync[serializers.Envelope]] = serializers.load_json
    """ Convert a stored string back to an envelope. JSON by default. """

    partialize: Callable[[typedefs.State], Any] = identity
    """
    Select the part of the state to persist (must be sync).
    The whole state is persisted by default.
    """

    on_rehydrate_storage: Optional[PreRehydrationCallback] = None
    """
    A function to be called before every hydration with the current state
    (must be sync). It can return another function to be called after the
    hydration with either the hydrated state or an error (as a second arg).
    """

    version: int = 0
    """
    The schema version of the persisted state. The stored states of other
    versions are migrated with ``migrate``, if configured, or are ignored.
    The stored states with no version at all are used as is.
    """

    migrate: Optional[Callable[[Any, int], typedefs.SyncOrAsync[Any]]] = None
    """
    A function to convert the stored state of an older (or newer) version
    to the current version. It gets the stored state and its version.
    """

    merge: Callable[[Any, typedefs.State], typedefs.State] = shallow_merge
    """
    A function to combine the stored (and migrated) state with the initial one
    when hydrating (must be sync). A shallow overlay of the fields by default.
    """

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError(f"The persisted store's name must be a non-empty string: {self.name!r}")
