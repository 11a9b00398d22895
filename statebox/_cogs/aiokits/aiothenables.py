"""
Thenables: a uniform chaining of sync & async results.

The storages, serializers, and migrators can be either sync or async functions.
The persistence pipelines are written only once for both kinds of them:
every step is wrapped with :func:`thenablify`, and the steps are chained
with :meth:`Thenable.then` & :meth:`Thenable.catch`.

If all the steps of a chain are synchronous, the whole chain is executed
immediately, in the call stack of the caller, and never touches the event loop.
This is important for the synchronous stores, which can be used with no asyncio
at all (e.g. in scripts or in threads).

Once any step returns an awaitable, the rest of the chain is deferred:
it is scheduled as asyncio tasks in the currently running event loop
and executes when the loop gets control. Every thenable is also awaitable,
so the callers can wait for the completion of the chain regardless of its kind.
"""
import abc
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generator, Generic, TypeVar

from statebox._cogs.helpers import typedefs

_T = TypeVar('_T')


class Thenable(Generic[_T], metaclass=abc.ABCMeta):
    """
    A result of an operation, either already realized or yet to be realized.

    A rejected thenable skips all ``then()`` continuations until the first
    ``catch()``; a fulfilled thenable skips all ``catch()`` continuations.
    """

    @abc.abstractmethod
    def then(self, on_fulfilled: Callable[[_T], Any]) -> "Thenable[Any]":
        raise NotImplementedError

    @abc.abstractmethod
    def catch(self, on_rejected: Callable[[Exception], Any]) -> "Thenable[Any]":
        raise NotImplementedError

    @abc.abstractmethod
    def done(self) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def result(self) -> _T:
        """
        Get the realized value or raise the error without waiting.

        For the not yet realized results, raise :class:`asyncio.InvalidStateError`.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def __await__(self) -> Generator[Any, None, _T]:
        raise NotImplementedError


class Fulfilled(Thenable[_T]):

    def __init__(self, value: _T, *, throw_immediately: bool = False) -> None:
        super().__init__()
        self._value = value
        self._throw_immediately = throw_immediately

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._value!r}>'

    def then(self, on_fulfilled: Callable[[_T], Any]) -> Thenable[Any]:
        return thenablify(on_fulfilled, throw_immediately=self._throw_immediately)(self._value)

    def catch(self, on_rejected: Callable[[Exception], Any]) -> Thenable[Any]:
        return self

    def done(self) -> bool:
        return True

    def result(self) -> _T:
        return self._value

    def __await__(self) -> Generator[Any, None, _T]:
        return _fulfil(self._value).__await__()


class Rejected(Thenable[Any]):

    def __init__(self, error: Exception) -> None:
        super().__init__()
        self._error = error

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._error!r}>'

    def then(self, on_fulfilled: Callable[[Any], Any]) -> Thenable[Any]:
        return self

    def catch(self, on_rejected: Callable[[Exception], Any]) -> Thenable[Any]:
        return thenablify(on_rejected)(self._error)

    def done(self) -> bool:
        return True

    def result(self) -> Any:
        raise self._error

    def __await__(self) -> Generator[Any, None, Any]:
        return _reject(self._error).__await__()


class Deferred(Thenable[_T]):
    """
    A result of an awaitable, which is executed as a task in the event loop.

    The continuations are also executed as tasks, but only after this one.
    The errors in the continuations are not raised immediately, even if
    requested, since there is nobody in the call stack to raise them to;
    they remain in the tasks, from where they are taken by the awaiters.
    """

    def __init__(self, awaitable: Awaitable[_T]) -> None:
        super().__init__()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()  # prevent the "never awaited" warnings
            raise RuntimeError("An asynchronous storage, serializer, or migrator was used "
                               "outside of a running event loop.") from None
        self._future: typedefs.Future = asyncio.ensure_future(awaitable, loop=loop)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._future!r}>'

    def then(self, on_fulfilled: Callable[[_T], Any]) -> Thenable[Any]:
        future = self._future

        async def fulfil() -> Any:
            value = await future
            return await thenablify(on_fulfilled)(value)

        return Deferred(fulfil())

    def catch(self, on_rejected: Callable[[Exception], Any]) -> Thenable[Any]:
        future = self._future

        async def reject() -> Any:
            try:
                return await future
            except Exception as e:
                return await thenablify(on_rejected)(e)

        return Deferred(reject())

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> _T:
        result: _T = self._future.result()
        return result

    def add_done_callback(self, fn: Callable[[typedefs.Future], None]) -> None:
        self._future.add_done_callback(fn)

    def __await__(self) -> Generator[Any, None, _T]:
        return self._future.__await__()


def thenablify(
        fn: Callable[..., Any],
        *,
        throw_immediately: bool = False,
) -> Callable[..., Thenable[Any]]:
    """
    Wrap a sync-or-async function to return thenables instead of raw results.

    The function is executed immediately when the wrapper is called.
    Its errors are either captured to be handled later in ``catch()``,
    or are raised immediately in the throw-immediately mode, e.g. for the
    final steps of the chains, where nobody would ever ``catch()`` them.

    The fulfilled thenables returned by the function continue in the mode
    of this wrapper, not of the chain that produced them.
    """

    def wrapper(*args: Any, **kwargs: Any) -> Thenable[Any]:
        try:
            result = fn(*args, **kwargs)
            if isinstance(result, Fulfilled):
                return Fulfilled(result.result(), throw_immediately=throw_immediately)
            elif isinstance(result, Thenable):
                return result
            elif inspect.isawaitable(result):
                return Deferred(result)
            else:
                return Fulfilled(result, throw_immediately=throw_immediately)
        except Exception as e:
            if throw_immediately:
                raise
            return Rejected(e)

    return wrapper


async def _fulfil(value: _T) -> _T:
    return value


async def _reject(error: Exception) -> Any:
    raise error
