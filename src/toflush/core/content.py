"""
The content-stream capability items may expose.

An item is stream-backed when its content is a live, not-yet-read source
instead of bytes held in memory. Stages only ever ask the question through
`is_stream_backed`; items that do not implement `ContentStreamCapable` are
never stream-backed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

_MATERIALIZED = (bytes, bytearray, memoryview, str)


@runtime_checkable
class ContentStreamCapable(Protocol):
    """Items that can report whether their content is a live stream."""

    def is_stream(self) -> bool:
        ...


def is_stream_backed(item: Any) -> bool:
    """Returns True if `item` reports that it carries an embedded content stream."""
    predicate = getattr(item, "is_stream", None)
    if not callable(predicate):
        return False
    return bool(predicate())


@dataclass
class ContentItem:
    """
    A file-like record flowing through a pipeline.

    Attributes:
        path: Where the item came from, or where it should end up.
        contents: Materialized bytes or text, a live stream (any readable or iterable
            object), or None when the content was not read.
        metadata: Free-form annotations added by stages.
    """

    path: str
    contents: Optional[Any] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_stream(self) -> bool:
        return self.contents is not None and not isinstance(self.contents, _MATERIALIZED)

    def is_buffer(self) -> bool:
        return isinstance(self.contents, _MATERIALIZED)
