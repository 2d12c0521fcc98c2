"""
This module provides the `toflush` component: a stage that collects every
item of its input and hands them, as one list, to a single transformation
once the input has ended. Whatever the transformation returns is emitted
downstream.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, fields
from typing import Any, Callable, List, Mapping, Optional, Union

from typeguard import TypeCheckError, check_type

from ..config import Config
from ..core.content import is_stream_backed
from ..core.errors import (
    ContentStreamsNotEnabledError,
    InvalidCallbackError,
    InvalidOptionsError,
    wrap_failure,
)
from ..core.hooks import Hooks
from ..core.results import resolve_result
from ..core.stage import Stage
from ..core.utils import accepts_context, callable_name

DEFAULT_NAME = "toflush"


@dataclass(frozen=True)
class FlushOptions:
    """
    Configuration of a flush stage, fixed when the stage is built.

    Attributes:
        callback: The transformation. It receives the list of all buffered
            items and returns a value, a list of values, or an awaitable that
            resolves to either.
        name: The name used to prefix error messages. Defaults to the
            callback's own name, then to ``"toflush"``.
        stream: Whether items backed by a live content stream are accepted.
            Such items must then be consumed by the callback itself.
        hooks: Observation callbacks for the stage.
    """

    callback: Callable[..., Any]
    name: Optional[str] = None
    stream: bool = False
    hooks: Optional[Hooks] = None

    def __post_init__(self):
        if not callable(self.callback):
            raise InvalidCallbackError("callback must be a function")
        try:
            check_type(self.name, Optional[str])
            check_type(self.stream, bool)
            check_type(self.hooks, Optional[Hooks])
        except TypeCheckError as e:
            raise InvalidOptionsError(f"Invalid toflush options: {e}") from e

    @classmethod
    def from_value(
        cls, value: Union[Callable[..., Any], Mapping[str, Any], "FlushOptions"]
    ) -> "FlushOptions":
        """Builds options from a bare callback, a mapping, or existing options."""
        if isinstance(value, FlushOptions):
            return value

        if isinstance(value, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = sorted(set(value) - known)
            if unknown:
                raise InvalidOptionsError(
                    f"Unknown toflush options {unknown}, expected some of {sorted(known)}"
                )
            if not callable(value.get("callback")):
                raise InvalidCallbackError("callback must be a function")
            return cls(**{k: v for k, v in value.items() if v is not None})

        if callable(value):
            return cls(callback=value)

        raise InvalidCallbackError("callback must be a function")

    @classmethod
    def from_config(
        cls,
        callback: Callable[..., Any],
        config: Config,
        section: str = DEFAULT_NAME,
        *,
        hooks: Optional[Hooks] = None,
    ) -> "FlushOptions":
        """
        Builds options for `callback` from one section of a run configuration.

        Only the ``name`` and ``stream`` keys of the section are read. Other
        keys are left for the callback, which can reach them through
        ``context.config``.

        Example:
            .. code-block:: yaml

                bundle:
                  name: create-zip
                  stream: true
                  archive: dist/source.zip
        """
        values = config.section(section)
        return cls.from_value({
            "callback": callback,
            "name": values.get("name"),
            "stream": values.get("stream"),
            "hooks": hooks,
        })

    @property
    def diagnostic_name(self) -> str:
        return self.name or callable_name(self.callback) or DEFAULT_NAME


class FlushStage(Stage):
    """A stage that buffers its whole input and transforms it in one call.

    Items are kept in arrival order until the end of input is signalled.
    The transformation is then called exactly once with the list of all of
    them. A list (or generator) result is emitted element by element, any
    other result is emitted as a single item.

    A raised exception and a failing awaitable are reported the same way: the
    error is relabelled as ``"<name>: <message>"`` and delivered on the
    stage's ``error`` channel.

    Attributes:
        options: The `FlushOptions` the stage was built with.
        callback: The transformation.
        allow_streams: Whether stream-backed items are accepted.
    """

    def __init__(self, options: FlushOptions):
        super().__init__(options.diagnostic_name, hooks=options.hooks)
        self.options = options
        self.callback = options.callback
        self.allow_streams = options.stream
        self._inject_context = accepts_context(options.callback)
        self._pending: Optional[List[Any]] = []

    @property
    def pending_count(self) -> int:
        """Number of items buffered so far; zero once the buffer was handed off."""
        return len(self._pending) if self._pending is not None else 0

    def _accept(self, item: Any) -> bool:
        if is_stream_backed(item) and not self.allow_streams:
            self._fail(ContentStreamsNotEnabledError(self.name))
            self._pending = None
            self.logger.error("content_stream_rejected", item_in=self.metrics["items_in"])
            return False

        self._pending.append(item)
        return True

    def _invoke(self, items: List[Any]) -> Any:
        if self._inject_context:
            return self.callback(self.context, items)
        return self.callback(items)

    async def _flush(self) -> None:
        items, self._pending = self._pending, None
        self.logger.info("flush_started", items_in=len(items))
        flush_start = time.perf_counter()

        try:
            self._stream_ended()
            result = await resolve_result(self._invoke(items))
        except Exception as e:
            error = wrap_failure(self.name, e)
            self.logger.error(
                "flush_error",
                error=str(error),
                duration=round(time.perf_counter() - flush_start, 4),
            )
            self._fail(error)
            return

        for value in result.values:
            self._push(value)

        self.logger.info(
            "flush_finished",
            items_out=len(result.values),
            duration=round(time.perf_counter() - flush_start, 4),
        )
        self._complete()


def toflush(
    options: Union[Callable[..., Any], Mapping[str, Any], FlushOptions],
) -> FlushStage:
    """
    Creates a stage that transforms its entire input in one go.

    Example:
        .. code-block:: python

            def concat(files):
                return ContentItem("all.txt", b"".join(f.contents for f in files))

            pipeline = toflush(concat) | stage(write_out)

            # Options form: explicit name, accept live content streams.
            toflush({"callback": make_zip, "name": "create-zip", "stream": True})

    Args:
        options: Either the transformation itself, a mapping with a
            ``callback`` key and optional ``name``, ``stream`` and ``hooks``
            keys, or a `FlushOptions` instance.

    Returns:
        A new, single-use `FlushStage`.

    Raises:
        InvalidCallbackError: If no callable transformation was given.
        InvalidOptionsError: If the options are malformed.
    """
    return FlushStage(FlushOptions.from_value(options))
