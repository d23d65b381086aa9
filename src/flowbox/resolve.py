"""Resolution engine shared by every box combinator.

resolve() decides, for one value, whether to call the success continuation
now, to suspend until an awaitable settles, or to skip the continuation and
hand the value to the bad/error continuation instead. Every combinator is a
different on_success body passed through this one function.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from inspect import isawaitable
from typing import Any, Generic, TypeVar

from .classify import identity

T = TypeVar("T")

Continuation = Callable[[Any], Any]
BadCheck = Callable[[Any], bool]


async def adopt(value: Any) -> Any:
    """Await value until it is no longer awaitable."""
    while isawaitable(value):
        value = await value
    return value


def resolve(
    value: Any,
    on_success: Continuation,
    is_bad: BadCheck,
    on_error: Continuation = identity,
    on_bad: Continuation = identity,
) -> Any:
    """Dispatch a value to one of three continuations.

    Args:
        value: A plain value or an awaitable
        on_success: Called with a good value
        is_bad: Classifier for bad values
        on_error: Called with any exception raised along the way
        on_bad: Called with a bad value

    Returns:
        The continuation's result, or a coroutine that produces it once
        the awaitable settles
    """
    try:
        if isawaitable(value):
            return settle(value, on_success, is_bad, on_error, on_bad)
        if is_bad(value):
            return on_bad(value)
        return on_success(value)
    except Exception as exc:
        return on_error(exc)


def resolve_thunk(
    producer: Callable[[], Any],
    on_success: Continuation,
    is_bad: BadCheck,
    on_error: Continuation = identity,
    on_bad: Continuation = identity,
) -> Any:
    """Evaluate producer under the same guard, then resolve its value."""
    try:
        value = producer()
    except Exception as exc:
        return on_error(exc)
    return resolve(value, on_success, is_bad, on_error, on_bad)


async def settle(
    awaitable: Awaitable[Any],
    on_success: Continuation,
    is_bad: BadCheck,
    on_error: Continuation = identity,
    on_bad: Continuation = identity,
) -> Any:
    """Suspended branch of resolve().

    An awaitable result of a continuation is adopted, so the coroutine
    never settles to another pending value.
    """
    try:
        value = await adopt(awaitable)
    except Exception as exc:
        return await adopt(on_error(exc))
    return await adopt(resolve(value, on_success, is_bad, on_error, on_bad))


class Memoized(Generic[T]):
    """Awaitable that evaluates the wrapped awaitable at most once.

    Every await after the first one sees the same value or the same
    exception.
    """

    def __init__(self, awaitable: Awaitable[T]) -> None:
        self._awaitable = awaitable
        self._future: asyncio.Future[T] | None = None

    def __await__(self) -> Generator[Any, None, T]:
        return self._wait().__await__()

    async def _wait(self) -> T:
        if self._future is None:
            self._future = asyncio.ensure_future(adopt(self._awaitable))
        if self._future.done():
            return self._future.result()
        return await self._future

    def __repr__(self) -> str:
        state = "pending" if self._future is None or not self._future.done() else "done"
        return f"Memoized({state})"
