"""
The main statebox module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the library's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from statebox._cogs.aiokits.aiothenables import (
    Thenable,
    Fulfilled,
    Rejected,
    Deferred,
    thenablify,
)
from statebox._cogs.configs.options import (
    PersistOptions,
    PreRehydrationCallback,
    PostRehydrationCallback,
    shallow_merge,
)
from statebox._cogs.configs.serializers import (
    Envelope,
    dump_json,
    load_json,
    dump_yaml,
    load_yaml,
)
from statebox._cogs.configs.storages import (
    KeyValueStorage,
    MemoryStorage,
    AsyncMemoryStorage,
    FileStorage,
    SQLiteStorage,
    get_default_storage,
)
from statebox._cogs.helpers.errors import (
    StateboxError,
    PersistenceError,
    StorageUnavailableError,
)
from statebox._cogs.helpers.versions import (
    version as __version__,
)
from statebox._cogs.structs.equality import (
    shallow,
)
from statebox._core.engines.loggers import (
    LogFormat,
    configure,
)
from statebox._core.engines.persistence import (
    Persistence,
    persist,
)
from statebox._core.engines.selectors import (
    subscribe_with_selector,
)
from statebox._core.engines.stores import (
    Initializer,
    Store,
    create_store,
)

__all__ = [
    'Thenable', 'Fulfilled', 'Rejected', 'Deferred', 'thenablify',
    'PersistOptions', 'PreRehydrationCallback', 'PostRehydrationCallback', 'shallow_merge',
    'Envelope', 'dump_json', 'load_json', 'dump_yaml', 'load_yaml',
    'KeyValueStorage', 'MemoryStorage', 'AsyncMemoryStorage', 'FileStorage', 'SQLiteStorage',
    'get_default_storage',
    'StateboxError', 'PersistenceError', 'StorageUnavailableError',
    'shallow',
    'LogFormat', 'configure',
    'Persistence', 'persist',
    'subscribe_with_selector',
    'Initializer', 'Store', 'create_store',
]
