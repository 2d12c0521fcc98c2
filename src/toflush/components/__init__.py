from .flush import toflush, FlushOptions, FlushStage

__all__ = [
    "toflush",
    "FlushOptions",
    "FlushStage",
]
