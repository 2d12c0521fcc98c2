"""
This module defines the `Stage` contract shared by every pipeline stage, the
item-wise `ItemStage`, and the `@stage` decorator.

A stage is a small duplex state machine. Upstream hands it items one at a
time with `write()` and signals the end of its input with `await end()`.
The stage reports what it produces through three listener channels:

- ``data``: called with every item the stage emits downstream.
- ``end``: called once, after the last item, when the stage completed.
- ``error``: called with the error when the stage failed.

Stages must be driven from inside a running asyncio event loop: failures are
delivered on the loop, one tick after they were caught.
"""
from __future__ import annotations

import asyncio
import enum
import inspect
import time
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Union,
)

from typeguard import typechecked

from .context import Context
from .errors import StageStateError
from .hooks import Hooks
from .log import get_logger
from .utils import accepts_context, callable_name, ensure_iterable

if TYPE_CHECKING:
    from .pipeline import Pipeline


class StageState(enum.Enum):
    """Lifecycle of a stage. Transitions only ever move forward."""

    ACCEPTING = "accepting"
    TRANSFORMING = "transforming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StageState.COMPLETED, StageState.FAILED)


STAGE_EVENTS = ("data", "end", "error")


class Stage:
    """Base class for a single-use pipeline stage.

    Subclasses implement `_accept` (per-item work) and `_flush` (end-of-input
    work). The base class owns the lifecycle, the listener channels, metrics
    and logging.

    Attributes:
        name: The name of the stage, used for logging and error messages.
        hooks: Observation callbacks for the stage's lifecycle.
        context: The `Context` of the run the stage belongs to.
        metrics: Counters for items in, items out, errors and elapsed time.
    """

    def __init__(self, name: str, *, hooks: Optional[Hooks] = None):
        self.name = name
        self.logger = get_logger(f"toflush.stage.{self.name}")
        self.hooks = hooks or Hooks()
        self.context = Context()
        self.metrics: Dict[str, Any] = {
            "items_in": 0, "items_out": 0, "errors": 0, "time_total": 0.0,
        }
        self._state = StageState.ACCEPTING
        self._listeners: Dict[str, List[Callable[..., Any]]] = {
            event: [] for event in STAGE_EVENTS
        }
        self._start_time: Optional[float] = None

    @property
    def state(self) -> StageState:
        return self._state

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name='{self.name}', state='{self._state.value}')"

    def __or__(self, other: Union["Stage", "Pipeline"]) -> "Pipeline":
        """Composes this stage with another using the `|` operator."""
        from .pipeline import Pipeline
        return Pipeline([self]) | other

    def __rshift__(self, other: Union["Stage", "Pipeline"]) -> "Pipeline":
        """Provides an alternative `>>` operator for composition."""
        return self.__or__(other)

    def on(self, event: str, listener: Callable[..., Any]) -> "Stage":
        """Registers a listener on one of the ``data``, ``end`` or ``error`` channels.

        Returns:
            The stage itself, so registrations can be chained.

        Raises:
            ValueError: If `event` is not one of the stage's channels.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown stage event '{event}', expected one of {list(STAGE_EVENTS)}")
        self._listeners[event].append(listener)
        return self

    def bind(self, context: Context) -> "Stage":
        """Attaches the context of the run this stage takes part in."""
        self.context = context
        return self

    def write(self, item: Any) -> bool:
        """Hands one item to the stage.

        Returns:
            True if the item was accepted, False if the stage has failed and
            no longer accepts input.

        Raises:
            StageStateError: If the end of input was already signalled.
        """
        if self._state is StageState.FAILED:
            return False
        if self._state is not StageState.ACCEPTING:
            raise StageStateError(f"{self.name}: write after end of input")

        self._mark_started()
        self.metrics["items_in"] += 1
        return self._accept(item)

    async def end(self) -> None:
        """Signals the end of input and runs the stage's end-of-input work.

        Ending a failed stage does nothing; its failure was already delivered.

        Raises:
            StageStateError: If the end of input was already signalled.
        """
        if self._state is StageState.FAILED:
            return
        if self._state is not StageState.ACCEPTING:
            raise StageStateError(f"{self.name}: end of input signalled twice")

        self._mark_started()
        self._state = StageState.TRANSFORMING
        await self._flush()

    def _accept(self, item: Any) -> bool:
        raise NotImplementedError

    async def _flush(self) -> None:
        """End-of-input work. Implementations finish with `_complete` or `_fail`."""
        raise NotImplementedError

    def _mark_started(self) -> None:
        if self._start_time is None:
            self._start_time = time.perf_counter()
            self.logger.info("stream_started")

    def _stream_ended(self) -> None:
        if self.hooks.on_stream_end:
            self.hooks.on_stream_end(self.context)

    def _elapsed(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.perf_counter() - self._start_time

    def _push(self, value: Any) -> None:
        self.metrics["items_out"] += 1
        for listener in list(self._listeners["data"]):
            listener(value)

    def _complete(self) -> None:
        self._state = StageState.COMPLETED
        duration = self._elapsed()
        self.metrics["time_total"] += duration
        self.logger.info(
            "stream_finished",
            items_in=self.metrics["items_in"],
            items_out=self.metrics["items_out"],
            errors=self.metrics["errors"],
            duration=round(duration, 4),
        )
        self._run_hook("after_flush", self.hooks.after_flush, self.metrics["items_out"], duration)
        for listener in list(self._listeners["end"]):
            listener()

    def _fail(self, error: BaseException) -> None:
        loop = asyncio.get_running_loop()
        self._state = StageState.FAILED
        self.metrics["errors"] += 1
        self.metrics["time_total"] += self._elapsed()
        # Delivered on a later loop iteration, never from inside the handler
        # that caught the failure.
        loop.call_soon(self._deliver_error, error)
        self._run_hook("on_error", self.hooks.on_error, error)

    def _run_hook(self, hook_name: str, hook: Optional[Callable[..., Any]], *args: Any) -> None:
        """Calls an observation hook. A failing hook is logged and does not alter the outcome."""
        if hook is None:
            return
        try:
            hook(self, self.context, *args)
        except Exception as e:
            self.logger.error("hook_error", hook=hook_name, error=str(e))

    def _deliver_error(self, error: BaseException) -> None:
        listeners = list(self._listeners["error"])
        if not listeners:
            # Unobserved: the event loop's exception handler decides.
            raise error
        for listener in listeners:
            listener(error)


class ItemStage(Stage):
    """A stage that applies a synchronous function to every item as it arrives.

    Each return value is expanded: `None` emits nothing, a list or generator
    emits each of its elements, and any other value is emitted as one item.
    If the function takes a `context` parameter, the run's `Context` is passed
    as its first argument.

    Attributes:
        func: The per-item function.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: Optional[str] = None,
        hooks: Optional[Hooks] = None,
    ):
        if inspect.iscoroutinefunction(func) or inspect.isasyncgenfunction(func):
            raise TypeError(
                "Item stages run synchronously; use toflush() for an awaitable transformation."
            )
        super().__init__(name or callable_name(func) or "Stage", hooks=hooks)
        self.func = func
        self._inject_context = accepts_context(func)

    def _invoke(self, item: Any) -> Any:
        if self._inject_context:
            original_logger = self.context.logger
            self.context.logger = self.logger
            try:
                return self.func(self.context, item)
            finally:
                self.context.logger = original_logger
        return self.func(item)

    def _accept(self, item: Any) -> bool:
        try:
            results = list(ensure_iterable(self._invoke(item)))
        except Exception as e:
            self.logger.warning("item_error", item_in=self.metrics["items_in"], error=str(e))
            self._fail(e)
            return False

        for res in results:
            self._push(res)
        return True

    async def _flush(self) -> None:
        try:
            self._stream_ended()
        except Exception as e:
            self._fail(e)
            return
        self._complete()


def stage(
    _func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    hooks: Optional[Hooks] = None,
) -> Union[ItemStage, Callable[[Callable[..., Any]], ItemStage]]:
    """A decorator to create an item-wise pipeline stage from a function.

    It can be used with or without arguments. The function is wrapped with
    typeguard's `typechecked`, so annotated arguments and return values are
    checked at call time.

    Example:
        .. code-block:: python

            @stage
            def add_header(item: ContentItem) -> ContentItem:
                item.contents = b"# generated\\n" + item.contents
                return item

            @stage(name="drop-empty")
            def drop_empty(item):
                return item if item.contents else None

    Args:
        name: A custom name for the stage. If not provided, the function's
            name is used.
        hooks: Observation callbacks for the stage.

    Returns:
        An `ItemStage` if used as `@stage`, or a decorator that returns one if
        used as `@stage(...)`.
    """
    def wrapper(func: Callable[..., Any]) -> ItemStage:
        return ItemStage(
            typechecked(func),
            name=name or callable_name(func) or None,
            hooks=hooks,
        )

    if _func is not None:
        return wrapper(_func)
    return wrapper
