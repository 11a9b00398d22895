"""
Key-value storages for the persisted states.

A storage keeps the serialized envelopes (strings) by their names.
It knows nothing about the states, their versions, or their serialization.

Any object with ``get_item()``, ``set_item()``, ``remove_item()`` methods
is a storage: either sync or async: the persistence pipelines support both.
The storages provided here are the basic ones, and can be used as examples:

* :class:`MemoryStorage` keeps the values in the process memory only.
* :class:`AsyncMemoryStorage` does the same, but with the async methods.
* :class:`FileStorage` keeps every value in a file in a directory.
* :class:`SQLiteStorage` keeps all values in one table of an SQLite database.

The file & SQLite storages are synchronous: they are fast enough for the small
states of the stores, and are used with the synchronous stores in most cases.
For the async applications, wrap them into async methods if needed.
"""
import os
import pathlib
import sqlite3
import tempfile
import threading
from typing import Dict, List, Optional, Union

from typing_extensions import Protocol

from statebox._cogs.helpers import typedefs


class KeyValueStorage(Protocol):
    """
    The protocol for all storages, both sync & async.

    The async storages return awaitables instead of the values.
    Absent values are reported as ``None``, not as errors.
    """

    def get_item(self, name: str) -> typedefs.SyncOrAsync[Optional[str]]: ...

    def set_item(self, name: str, value: str) -> typedefs.SyncOrAsync[None]: ...

    def remove_item(self, name: str) -> typedefs.SyncOrAsync[None]: ...


class MemoryStorage:
    """
    A storage in the process memory, for the lifetime of the process.

    It is the default storage of the persisted stores. Its main purpose is
    to survive re-creations of the stores, e.g. in tests or on reloads.
    """

    def __init__(self, items: Optional[Dict[str, str]] = None) -> None:
        super().__init__()
        self._items: Dict[str, str] = dict(items or {})

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._items!r})'

    def keys(self) -> List[str]:
        return list(self._items)

    def get_item(self, name: str) -> Optional[str]:
        return self._items.get(name)

    def set_item(self, name: str, value: str) -> None:
        self._items[name] = value

    def remove_item(self, name: str) -> None:
        self._items.pop(name, None)


class AsyncMemoryStorage(MemoryStorage):
    """
    The same as :class:`MemoryStorage`, but with the async methods.

    Mostly used to test and to demonstrate the asynchronous hydration.
    """

    async def get_item(self, name: str) -> Optional[str]:  # type: ignore[override]
        return super().get_item(name)

    async def set_item(self, name: str, value: str) -> None:  # type: ignore[override]
        super().set_item(name, value)

    async def remove_item(self, name: str) -> None:  # type: ignore[override]
        super().remove_item(name)


class FileStorage:
    """
    A storage in a directory with one file per name.

    The writes are atomic: the content is first written to a temporary file
    in the same directory, and then the file is renamed to the target name.
    So, the readers never see partially written content.

    The names are used as file names as is, so they must be file-system-safe.
    """

    def __init__(
            self,
            path: Union[str, "os.PathLike[str]"],
            *,
            suffix: str = '.json',
            encoding: str = 'utf-8',
    ) -> None:
        super().__init__()
        self._path = pathlib.Path(path)
        self.suffix = suffix
        self.encoding = encoding

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({str(self._path)!r})'

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def _build_filename(self, name: str) -> pathlib.Path:
        if not name or os.sep in name or (os.altsep and os.altsep in name) or name in {'.', '..'}:
            raise ValueError(f"The name is not usable as a file name: {name!r}")
        return self._path / f'{name}{self.suffix}'

    def keys(self) -> List[str]:
        if not self._path.is_dir():
            return []
        return sorted(
            filepath.name[:-len(self.suffix)] if self.suffix else filepath.name
            for filepath in self._path.iterdir()
            if filepath.is_file() and filepath.name.endswith(self.suffix)
            and not filepath.name.startswith('.')
        )

    def get_item(self, name: str) -> Optional[str]:
        filepath = self._build_filename(name)
        try:
            return filepath.read_text(encoding=self.encoding)
        except FileNotFoundError:
            return None

    def set_item(self, name: str, value: str) -> None:
        filepath = self._build_filename(name)
        self._path.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=self._path, prefix=f'.{name}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding=self.encoding) as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_name, filepath)
        finally:
            if os.path.exists(temp_name):
                os.remove(temp_name)

    def remove_item(self, name: str) -> None:
        filepath = self._build_filename(name)
        try:
            filepath.unlink()
        except FileNotFoundError:
            pass


class SQLiteStorage:
    """
    A storage in a single key-value table of an SQLite database.

    The connection is opened lazily on the first use, and can be shared
    across threads (guarded by a lock); use :meth:`close` to release it.
    The table is created if it does not exist yet.
    """

    def __init__(
            self,
            path: Union[str, "os.PathLike[str]"],
            *,
            table: str = 'statebox',
    ) -> None:
        super().__init__()
        if not table.isidentifier():
            raise ValueError(f"The table name is not a valid identifier: {table!r}")
        self._path = str(path)
        self._table = table
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._path!r}, table={self._table!r})'

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
            with self._conn:
                self._conn.execute(
                    f'CREATE TABLE IF NOT EXISTS {self._table} '
                    f'(name TEXT PRIMARY KEY, value TEXT NOT NULL)'
                )
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def keys(self) -> List[str]:
        with self._lock:
            conn = self._connect()
            rows = conn.execute(f'SELECT name FROM {self._table} ORDER BY name').fetchall()
        return [row[0] for row in rows]

    def get_item(self, name: str) -> Optional[str]:
        with self._lock:
            conn = self._connect()
            row = conn.execute(f'SELECT value FROM {self._table} WHERE name = ?', (name,)).fetchone()
        return None if row is None else str(row[0])

    def set_item(self, name: str, value: str) -> None:
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(
                    f'INSERT INTO {self._table} (name, value) VALUES (?, ?) '
                    f'ON CONFLICT(name) DO UPDATE SET value = excluded.value',
                    (name, value),
                )

    def remove_item(self, name: str) -> None:
        with self._lock:
            conn = self._connect()
            with conn:
                conn.execute(f'DELETE FROM {self._table} WHERE name = ?', (name,))


# The process-wide storage of the persisted stores unless configured otherwise.
# It is not used directly by the stores, only via `PersistOptions.get_storage`.
_default_storage = MemoryStorage()


def get_default_storage() -> KeyValueStorage:
    return _default_storage
