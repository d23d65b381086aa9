"""Box - a lazy container with bad-value and async aware combinators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from inspect import isawaitable
from typing import Any, Generic, TypeVar

from .classify import classify, identity, is_bad_value, is_error
from .config import BoxConfig, get_default_config
from .errors import UnwrapDepthError
from .resolve import Memoized, adopt, resolve, resolve_thunk
from .shapes import Shape

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Producer = Callable[[], T]
ConfigLike = BoxConfig | Mapping[str, Any] | None


def is_box(value: Any) -> bool:
    return isinstance(value, Box)


def _as_config(config: ConfigLike) -> BoxConfig:
    if config is None:
        return get_default_config()
    if isinstance(config, BoxConfig):
        return config
    return get_default_config().merge(config)


def unpack(value: Any) -> Any:
    """Unwrap exactly one level of Box, waiting on an awaitable first."""
    if is_box(value):
        return value.run()
    if isawaitable(value):
        return _unpack_settled(value)
    return value


async def _unpack_settled(awaitable: Any) -> Any:
    return await adopt(unpack(await adopt(awaitable)))


def unpack_deep(value: Any, max_depth: int) -> Any:
    """Unwrap nested boxes and awaitables until a plain value is reached.

    Gives up with an UnwrapDepthError value after max_depth levels, which
    also bounds self-referential box graphs.
    """
    for _ in range(max_depth):
        if is_box(value):
            value = value.run()
        elif isawaitable(value):
            return _unpack_deep_settled(value, max_depth)
        else:
            return value
    logger.debug("Gave up unwrapping after %d levels", max_depth)
    return UnwrapDepthError(max_depth)


async def _unpack_deep_settled(value: Any, max_depth: int) -> Any:
    for _ in range(max_depth):
        if is_box(value):
            value = value.run()
        elif isawaitable(value):
            value = await value
        else:
            return value
    logger.debug("Gave up unwrapping after %d levels", max_depth)
    return UnwrapDepthError(max_depth)


async def _gather(items: list[Any], return_exceptions: bool) -> list[Any]:
    results = await asyncio.gather(
        *(adopt(item) for item in items),
        return_exceptions=return_exceptions,
    )
    return list(results)


async def _keep_when(verdict: Any, value: Any) -> Any:
    return value if await adopt(verdict) else None


@dataclass(frozen=True, eq=False)
class Box(Generic[T]):
    """Lazy container for a value or a zero-argument producer of one.

    Nothing is evaluated until a terminal runner (run, unwrap, fold,
    collect) is called. Every combinator returns a new Box whose producer
    closes over this one.

    Combinators skip their callback when the value is bad (per the box
    configuration) or an error, and transparently wait on awaitables.

    Example:
        >>> Box.of(5).map(lambda x: x + 1).run()
        6
        >>> Box.of(None).map(lambda x: x + 1).run() is None
        True
    """

    producer: Producer[T]
    configuration: BoxConfig = field(default_factory=get_default_config)

    # Construction

    @staticmethod
    def of(value: U, config: ConfigLike = None) -> Box[U]:
        """Wrap a plain value."""
        return Box(lambda: value, _as_config(config))

    @staticmethod
    def from_producer(producer: Producer[U], config: ConfigLike = None) -> Box[U]:
        """Wrap an existing producer; it runs once per terminal call."""
        return Box(producer, _as_config(config))

    @staticmethod
    def is_box(value: Any) -> bool:
        return is_box(value)

    # Configuration

    def with_configuration(self, partial: ConfigLike = None, **changes: Any) -> Box[T]:
        """Return a Box over the same producer with a merged configuration.

        Boxes derived from the result inherit the new configuration; boxes
        derived from self are unaffected.
        """
        return Box(self.producer, self.configuration.merge(partial, **changes))

    def restore_default_configuration(self) -> Box[T]:
        """Return a Box over the same producer bound to the current default."""
        return Box(self.producer, get_default_config())

    # Internals

    def _derive(self, producer: Producer[Any]) -> Box[Any]:
        return Box(producer, self.configuration)

    def _is_bad(self, value: Any) -> bool:
        # Rules only see plain values; a nested Box is unwrapped, not classified
        return not is_box(value) and is_bad_value(value, self.configuration.bad_values)

    def _resolve(
        self,
        value: Any,
        on_success: Callable[[Any], Any],
        on_error: Callable[[Any], Any] = identity,
        on_bad: Callable[[Any], Any] = identity,
    ) -> Any:
        return resolve(value, on_success, self._is_bad, on_error, on_bad)

    def _then(self, on_success: Callable[[Any], Any]) -> Box[Any]:
        return self._derive(lambda: resolve_thunk(self.producer, on_success, self._is_bad))

    def _unpack_deep(self, value: Any) -> Any:
        return unpack_deep(value, self.configuration.max_unwrap_depth)

    def _shape(self, value: Any) -> Shape:
        return Shape.of(value, opaque=is_box)

    def _rescue(self, fn: Callable[[Any], Any], matches: Callable[[Any], bool]) -> Box[Any]:
        async def settled(awaitable: Any) -> Any:
            try:
                value = await adopt(awaitable)
            except Exception as exc:
                return await adopt(fn(exc))
            return await adopt(fn(value)) if matches(value) else value

        def producer() -> Any:
            try:
                value = self.producer()
            except Exception as exc:
                return fn(exc)
            if isawaitable(value):
                return settled(value)
            return fn(value) if matches(value) else value

        return self._derive(producer)

    # Transformations

    def map(self, fn: Callable[[T], U]) -> Box[U]:
        """Apply fn to the value.

        fn is skipped for bad values and errors. If fn raises, the
        exception becomes the value of the next stage.
        """
        return self._then(fn)

    def filter(self, predicate: Callable[[T], Any]) -> Box[T | None]:
        """Keep the value when predicate(value) is truthy, otherwise None.

        The predicate may return an awaitable. Its result is coerced with
        bool() and is never checked against the bad-value rules.
        """

        def keep(value: Any) -> Any:
            verdict = predicate(value)
            if isawaitable(verdict):
                return _keep_when(verdict, value)
            return value if verdict else None

        return self._then(keep)

    def flat_map(self, fn: Callable[[T], Any]) -> Box[Any]:
        """Apply fn and unwrap one level if it returned a Box."""
        return self._then(lambda value: self._resolve(fn(value), unpack))

    def chain(self, fn: Callable[[T], Any]) -> Box[Any]:
        """Alias for flat_map."""
        return self.flat_map(fn)

    def flat(self) -> Box[Any]:
        """Unwrap one level if the value is a Box, otherwise pass it through."""
        return self._then(unpack)

    def ap(self, other: Any) -> Box[Any]:
        """Apply the function held by this Box to the value held by other.

        other may be a Box, an awaitable or a plain value. A non-callable
        value in this Box is passed through unchanged. A bad value on
        either side short-circuits without calling the function.
        """

        def apply(fn: Any) -> Any:
            if not callable(fn):
                return fn
            return self._resolve(unpack(other), fn)

        return self._then(apply)

    def mutate(self, fn: Callable[[Any], U]) -> Box[U]:
        """Apply fn to the raw value, bypassing bad-value and async handling.

        A raised exception becomes the value; it is never re-raised.
        """

        def producer() -> Any:
            try:
                return fn(self.producer())
            except Exception as exc:
                return exc

        return self._derive(producer)

    def recover(self, fn: Callable[[Any], U]) -> Box[T | U]:
        """Replace any bad value, including errors, with fn(value)."""
        return self._rescue(fn, lambda value: is_error(value) or self._is_bad(value))

    def catch(self, fn: Callable[[Exception], U]) -> Box[T | U]:
        """Replace error values with fn(error); other bad values pass through."""
        return self._rescue(fn, is_error)

    # Collections

    def traverse(self, fn: Callable[[Any], Any]) -> Box[Any]:
        """Apply fn to every element of a collection, keeping its shape.

        Elements that are Boxes or awaitables are unwrapped before fn sees
        them, and whatever fn returns is unwrapped as well. Bad elements
        keep their position with their bad value.

        Example:
            >>> Box.of({"a": 1, "b": 2}).traverse(lambda x: x + 1).run()
            {'a': 2, 'b': 3}
        """

        def each(element: Any) -> Any:
            return self._unpack_deep(self._resolve(self._unpack_deep(element), fn))

        return self._then(lambda collection: self._shape(collection).map(each))

    def sequence(self) -> Box[Any]:
        """Turn a collection of Boxes into a collection of their values."""
        return self._then(lambda collection: self._shape(collection).map(self._unpack_deep))

    def distribute(self) -> Box[Any]:
        """Wrap every element that is not already a Box in its own Box."""

        def wrap(element: Any) -> Any:
            return element if is_box(element) else Box.of(element, self.configuration)

        return self._then(lambda collection: self._shape(collection).map(wrap))

    def gather(self) -> Box[Any]:
        """Await every element together; the value settles to a list.

        A failing element makes the whole value fail.
        """
        return self._then(lambda collection: _gather(self._shape(collection).values, False))

    def gather_settled(self) -> Box[Any]:
        """Like gather, but failed elements settle to their exception."""
        return self._then(lambda collection: _gather(self._shape(collection).values, True))

    # Runners

    def run(self) -> Any:
        """Evaluate the chain.

        Returns:
            The value, an awaitable of it, or the exception that was raised
        """
        try:
            return self.producer()
        except Exception as exc:
            return exc

    def unwrap(self) -> Any:
        """Evaluate the chain and raise if the value is an error.

        Awaitables are returned as they are; awaiting one may raise.
        """
        value = self.producer()
        if is_error(value):
            raise value
        return value

    def fold(
        self,
        on_error: Callable[[Exception], U],
        on_bad: Callable[[Any], U],
        on_success: Callable[[Any], U],
        on_finally: Callable[[], Any] | None = None,
    ) -> Any:
        """Evaluate the chain and dispatch on how the value resolved.

        Exactly one of on_error, on_bad, on_success is called; if on_bad or
        on_success raises, on_error receives that exception. on_finally runs
        once afterwards. For an awaitable value a coroutine is returned and
        dispatch happens when it is awaited.
        """
        rules = self.configuration.bad_values

        def dispatch(value: Any) -> Any:
            outcome = classify(value, rules)
            if outcome.kind == "error":
                return on_error(outcome.value)
            try:
                if outcome.kind == "bad":
                    return on_bad(outcome.value)
                return on_success(outcome.value)
            except Exception as exc:
                return on_error(exc)

        def finish() -> None:
            if on_finally is not None:
                on_finally()

        async def settled(awaitable: Any) -> Any:
            try:
                try:
                    value = await adopt(awaitable)
                except Exception as exc:
                    value = exc
                try:
                    return await adopt(dispatch(value))
                except Exception as exc:
                    return await adopt(on_error(exc))
            finally:
                finish()

        value = self.run()
        if isawaitable(value):
            return settled(value)
        try:
            return dispatch(value)
        finally:
            finish()

    def collect(self) -> Box[T]:
        """Evaluate now and return a Box holding the result as a constant.

        Later stages no longer re-run the stages before this point. An
        awaitable result is memoized so it can be awaited repeatedly.
        """
        value = self.run()
        if isawaitable(value):
            value = Memoized(value)
        return Box.of(value, self.configuration)

    # Debugging

    def inspect(self, tag: str = "") -> Box[T]:
        """Log the value at DEBUG level and pass it on."""
        label = f"Box - {tag}" if tag else "Box"

        def producer() -> Any:
            value = self.producer()
            logger.debug("%s - value: %r", label, value)
            return value

        return self._derive(producer)

    def tap(self, fn: Callable[[Box[T]], Any]) -> Box[T]:
        """Call fn with this Box for side effects; the value passes through."""

        def producer() -> Any:
            value = self.producer()
            try:
                fn(self)
            except Exception:
                logger.warning("Box.tap callback raised", exc_info=True)
            return value

        return self._derive(producer)

    def peek(self, fn: Callable[[T, BoxConfig], Any]) -> Box[T]:
        """Call fn with the value and configuration; the value passes through."""

        def producer() -> Any:
            value = self.producer()
            try:
                fn(value, self.configuration)
            except Exception:
                logger.warning("Box.peek callback raised", exc_info=True)
            return value

        return self._derive(producer)
