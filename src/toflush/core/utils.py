import inspect
import types
from typing import Any, AsyncIterator, Callable, Iterable, Union


def ensure_iterable(obj: Any) -> Iterable[Any]:
    """
    Ensures that the given object is an iterable.
    If it's a list or a generator, it's returned as is.
    If it's another type (including a tuple), it's wrapped in a list.
    `None` is treated as an empty list.
    """
    if obj is None:
        return []
    if isinstance(obj, (list, types.GeneratorType)):
        return obj
    return [obj]


async def to_async(data: Union[Iterable[Any], AsyncIterator[Any]]) -> AsyncIterator[Any]:
    """Yields from a sync or async iterable as an async iterator."""
    if hasattr(data, "__aiter__"):
        async for item in data:
            yield item
    else:
        for item in data:
            yield item


def accepts_context(func: Callable[..., Any]) -> bool:
    """Returns True if `func` declares a parameter named `context`."""
    try:
        return "context" in inspect.signature(func).parameters
    except (TypeError, ValueError):
        # Some builtins expose no signature; they never take a context.
        return False


def callable_name(func: Callable[..., Any]) -> str:
    """Returns the declared name of `func`, or '' for lambdas and nameless callables."""
    name = getattr(func, "__name__", "")
    if not isinstance(name, str) or name == "<lambda>":
        return ""
    return name
