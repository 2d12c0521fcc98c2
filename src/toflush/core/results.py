"""
Tagged results of a flush transformation.

A transformation may return a single value, a list of values, a generator,
or an awaitable that resolves to any of those. `resolve_result` settles the
awaitable part and `classify_result` turns what is left into either a
`Single` or a `Many`, so the stage only has to emit `result.values`.
"""
from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from typing import Any, Tuple, Union


@dataclass(frozen=True)
class Single:
    """One value, emitted downstream as one item (even when it is `None`)."""

    value: Any

    @property
    def values(self) -> Tuple[Any, ...]:
        return (self.value,)


@dataclass(frozen=True)
class Many:
    """An ordered collection, emitted downstream one element at a time."""

    items: Tuple[Any, ...]

    @property
    def values(self) -> Tuple[Any, ...]:
        return self.items


Result = Union[Single, Many]


def classify_result(result: Any) -> Result:
    """
    Tags a settled transformation result.

    Lists and generators are collections; generators are drained here, so an
    exception raised while generating surfaces before anything is emitted.
    Every other value, tuples included, is a single item.
    """
    if isinstance(result, list):
        return Many(tuple(result))
    if isinstance(result, types.GeneratorType):
        return Many(tuple(result))
    return Single(result)


async def resolve_result(result: Any) -> Result:
    """Awaits an awaitable result or drains an async generator, then classifies it."""
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, types.AsyncGeneratorType):
        return Many(tuple([item async for item in result]))
    return classify_result(result)
