"""
Common type definitions used across the codebase.

Some standard classes are generics only in the type stubs, but not at runtime
on the older interpreters (e.g. ``asyncio.Future``, ``logging.LoggerAdapter``):
they are parametrized only for the type checkers and are used bare at runtime.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
    Future = asyncio.Future[Any]
else:
    LoggerAdapter = logging.LoggerAdapter
    Future = asyncio.Future

# A value that is either returned directly, or via an awaitable (a coroutine, a future, a task).
# Storages, serializers, and migrators can be of either kind; the pipelines do not care.
_R = TypeVar('_R')
SyncOrAsync = Union[_R, Awaitable[_R]]

# A store's state is opaque to the library. Usually, it is a dict.
State = Any

# Listeners are notified with the new & previous states (or slices).
Listener = Callable[[Any, Any], None]
Unsubscribe = Callable[[], None]
