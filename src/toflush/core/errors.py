from __future__ import annotations


class ToflushError(Exception):
    """Base class for all exceptions raised by the toflush package."""

    pass


class InvalidCallbackError(ToflushError, TypeError):
    """Raised at construction time when no callable transformation is given."""

    pass


class InvalidOptionsError(ToflushError, TypeError):
    """Raised at construction time when stage options are malformed."""

    pass


class ContentStreamsNotEnabledError(ToflushError):
    """Raised when a stream-backed item reaches a stage that does not allow it."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        super().__init__(f"{stage_name}: content streams are not enabled")


class TransformError(ToflushError):
    """Carries a transformation failure that could not be re-labelled in place."""

    pass


class StageStateError(ToflushError):
    """Raised when a stage is written to or ended outside of its lifecycle."""

    pass


def wrap_failure(name: str, failure: object) -> BaseException:
    """
    Normalizes a transformation failure into an exception labelled with `name`.

    An exception is reused with its message replaced by
    ``"<name>: <original message>"``, which keeps its type and traceback
    intact for listeners. An exception with an empty message is labelled with
    its class name instead. Any other value becomes a new `TransformError`
    whose message carries the value as text.

    Some exception types render their message from attributes rather than from
    their arguments (``KeyError`` quotes it, ``OSError`` prefers ``strerror``).
    For those a `TransformError` is returned instead, chained to the original
    failure.
    """
    if not isinstance(failure, BaseException):
        return TransformError(f"{name}: {failure}")

    original = str(failure) or type(failure).__name__
    message = f"{name}: {original}"

    original_args = failure.args
    failure.args = (message,)
    if str(failure) == message:
        return failure

    failure.args = original_args
    error = TransformError(message)
    error.__cause__ = failure
    return error
