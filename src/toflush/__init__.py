# toflush: collect a whole stream, transform it in one go.

from .core.pipeline import Pipeline
from .core.stage import Stage, StageState, ItemStage, stage
from .core.context import Context
from .core.content import ContentItem, ContentStreamCapable
from .core.errors import (
    ToflushError,
    InvalidCallbackError,
    InvalidOptionsError,
    ContentStreamsNotEnabledError,
    TransformError,
    StageStateError,
)
from .core.hooks import Hooks
from .components.flush import toflush, FlushOptions, FlushStage
from .config import Config, load_config

__all__ = [
    # Core API
    "Pipeline",
    "Stage",
    "StageState",
    "ItemStage",
    "stage",
    "Context",
    "ContentItem",
    "ContentStreamCapable",
    "Hooks",
    "Config",
    "load_config",

    # Errors
    "ToflushError",
    "InvalidCallbackError",
    "InvalidOptionsError",
    "ContentStreamsNotEnabledError",
    "TransformError",
    "StageStateError",

    # Components
    "toflush",
    "FlushOptions",
    "FlushStage",
]

__version__ = "0.1.0"
