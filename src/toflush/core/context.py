from __future__ import annotations

from typing import Any, Dict, Optional

from .log import get_logger
from ..config import Config


class Context:
    """
    A dict-like context for sharing state across the stages of one run.

    Stages and their callbacks all run on the event-loop thread, so the
    context needs no locking.
    """

    def __init__(
        self,
        initial_data: Optional[Dict[str, Any]] = None,
        config: Optional[Config] = None,
        *,
        pipeline_name: Optional[str] = None,
    ):
        self.logger = get_logger("toflush.context")
        self.config = config or Config({})
        self.pipeline_name = pipeline_name
        self._data: Dict[str, Any] = {}

        if initial_data:
            self.update(initial_data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def update(self, other: Dict[str, Any]) -> None:
        self._data.update(other)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def inc(self, key: str, amount: int = 1) -> int:
        new_value = int(self._data.get(key, 0)) + amount
        self._data[key] = new_value
        return new_value

    def __repr__(self) -> str:
        return f"Context(pipeline_name={self.pipeline_name!r}, data={self.to_dict()})"
