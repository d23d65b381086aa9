"""Collection adapter used by traverse(), sequence() and distribute().

A Shape flattens a value into ordered (key, element) pairs and can rebuild
a value of the same kind from transformed elements.
"""

from __future__ import annotations

import dataclasses
from collections import OrderedDict
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from inspect import isawaitable
from typing import Any, Literal

from pydantic import BaseModel

ShapeKind = Literal[
    "list",
    "tuple",
    "namedtuple",
    "set",
    "frozenset",
    "mapping",
    "record",
    "scalar",
]

_TEXT_TYPES = (str, bytes, bytearray, memoryview)


def _is_record(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _record_fields(value: Any) -> list[str]:
    if isinstance(value, BaseModel):
        return list(type(value).model_fields)
    return [f.name for f in dataclasses.fields(value) if f.init]


@dataclass(frozen=True)
class Shape:
    """Enumerated view of a collection.

    Attributes:
        kind: Which container the value came from
        pairs: Ordered (key, element) pairs; indices for sequences and sets,
            keys for mappings, field names for records, None for scalars
        origin: The original value, used to rebuild records and typed containers
    """

    kind: ShapeKind
    pairs: tuple[tuple[Hashable, Any], ...]
    origin: Any = None

    @staticmethod
    def of(value: Any, opaque: Callable[[Any], bool] | None = None) -> Shape:
        """Enumerate value.

        Args:
            value: Any value; non-collections become a single scalar pair
            opaque: Predicate for values that must never be enumerated
        """
        if (
            (opaque is not None and opaque(value))
            or isawaitable(value)
            or isinstance(value, _TEXT_TYPES)
        ):
            return Shape("scalar", ((None, value),), value)
        if isinstance(value, Mapping):
            return Shape("mapping", tuple(value.items()), value)
        if _is_record(value):
            pairs = tuple((name, getattr(value, name)) for name in _record_fields(value))
            return Shape("record", pairs, value)
        if isinstance(value, tuple):
            kind: ShapeKind = "namedtuple" if hasattr(type(value), "_fields") else "tuple"
            return Shape(kind, tuple(enumerate(value)), value)
        if isinstance(value, frozenset):
            return Shape("frozenset", tuple(enumerate(value)), value)
        if isinstance(value, set):
            return Shape("set", tuple(enumerate(value)), value)
        if isinstance(value, Iterable):
            return Shape("list", tuple(enumerate(value)), value)
        return Shape("scalar", ((None, value),), value)

    @property
    def keys(self) -> list[Hashable]:
        return [key for key, _ in self.pairs]

    @property
    def values(self) -> list[Any]:
        return [element for _, element in self.pairs]

    @property
    def is_collection(self) -> bool:
        return self.kind != "scalar"

    def rebuild(self, elements: Sequence[Any]) -> Any:
        """Rebuild a value of the original kind from new elements.

        Elements are matched to keys by position.

        Raises:
            ValueError: If the number of elements differs from the number of pairs
        """
        if len(elements) != len(self.pairs):
            raise ValueError(
                f"Expected {len(self.pairs)} elements to rebuild {self.kind}, got {len(elements)}"
            )
        items = list(zip(self.keys, elements))

        if self.kind == "scalar":
            return elements[0]
        if self.kind == "list":
            return list(elements)
        if self.kind == "tuple":
            return tuple(elements)
        if self.kind == "namedtuple":
            return type(self.origin)._make(elements)
        if self.kind == "set":
            return set(elements)
        if self.kind == "frozenset":
            return frozenset(elements)
        if self.kind == "mapping":
            if type(self.origin) is OrderedDict:
                return OrderedDict(items)
            return dict(items)
        # record
        updates = {str(key): element for key, element in items}
        if isinstance(self.origin, BaseModel):
            return self.origin.model_copy(update=updates)
        return dataclasses.replace(self.origin, **updates)

    def map(self, fn: Callable[[Any], Any]) -> Any:
        """Apply fn to every element and rebuild the original kind."""
        return self.rebuild([fn(element) for element in self.values])
