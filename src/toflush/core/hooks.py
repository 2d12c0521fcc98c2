from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from .stage import Stage
    from .context import Context


@dataclass(frozen=True)
class Hooks:
    """
    A collection of hook functions to observe a stage's lifecycle.

    Hooks are for monitoring only; the failure channel is still the place
    where a stage's errors are delivered.

    Attributes:
        on_stream_end: Called once after the input stream has ended, before
                       the stage's end-of-input work starts. Ideal for reading
                       final context values written by upstream stages.
        after_flush: Called after a stage has emitted all of its output, with
                     the number of items emitted and the elapsed seconds.
        on_error: Called when a stage fails, with the error that is about to
                  be delivered on the failure channel.
    """
    on_stream_end: Optional[Callable[["Context"], None]] = None
    after_flush: Optional[Callable[["Stage", "Context", int, float], None]] = None
    on_error: Optional[Callable[["Stage", "Context", BaseException], Any]] = None
