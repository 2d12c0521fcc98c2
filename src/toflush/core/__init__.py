# toflush.core
# This package contains the core classes of toflush, such as Stage,
# Pipeline and Context.

from .pipeline import Pipeline
from .stage import stage, Stage, StageState, ItemStage
from .context import Context
from .content import ContentItem, ContentStreamCapable, is_stream_backed
from .errors import (
    ToflushError,
    InvalidCallbackError,
    InvalidOptionsError,
    ContentStreamsNotEnabledError,
    TransformError,
    StageStateError,
    wrap_failure,
)
from .hooks import Hooks
from .results import Single, Many

__all__ = [
    "Pipeline",
    "stage",
    "Stage",
    "StageState",
    "ItemStage",
    "Context",
    "ContentItem",
    "ContentStreamCapable",
    "is_stream_backed",
    "ToflushError",
    "InvalidCallbackError",
    "InvalidOptionsError",
    "ContentStreamsNotEnabledError",
    "TransformError",
    "StageStateError",
    "wrap_failure",
    "Hooks",
    "Single",
    "Many",
]
