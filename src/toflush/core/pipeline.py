"""
This module defines the Pipeline class, which feeds data through a chain of
stages and collects what comes out of the last one.

The pipeline drives each stage in turn: it writes every input item, signals
the end of input, and waits until the stage has either completed or failed.
The items a stage emitted become the input of the next stage.
"""

from __future__ import annotations
from typing import (
    Any,
    AsyncIterable,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)
import asyncio
import time

from .context import Context
from .log import get_logger
from .stage import Stage, StageState
from .utils import to_async
from ..config import Config, load_config


class Pipeline:
    """A sequence of stages that process data.

    Stages are single-use, so a pipeline can be run once.

    Attributes:
        stages: A list of Stage objects that make up the pipeline.
        name: The name of the pipeline, used for logging.
        logger: A logger instance for the pipeline.
    """

    def __init__(
        self, stages: Optional[List[Stage]] = None, *, name: Optional[str] = None
    ):
        """Initializes a new Pipeline.

        Args:
            stages: A list of initial stages for the pipeline.
            name: An optional name for the pipeline. If not provided, a default
                name will be used.
        """
        self.stages: List[Stage] = list(stages or [])
        self.name = name or "Pipeline"
        self.logger = get_logger(f"toflush.pipeline.{self.name}")

    def __or__(self, other: Any) -> "Pipeline":
        """Composes this pipeline with a stage or another pipeline using `|`.

        Returns:
            A new `Pipeline` instance representing the composition.

        Raises:
            TypeError: If the object being added is not a `Stage` or `Pipeline`.
        """
        if isinstance(other, Stage):
            return Pipeline(self.stages + [other], name=self.name)
        if isinstance(other, Pipeline):
            return Pipeline(self.stages + other.stages, name=self.name)
        raise TypeError(f"Unsupported type for pipeline composition: {type(other)}")

    def __rshift__(self, other: Union[Stage, "Pipeline"]) -> "Pipeline":
        """Provides an alternative `>>` operator for pipeline composition."""
        return self.__or__(other)

    def _build_context(self, config: Optional[Config] = None) -> Context:
        return Context(config=config, pipeline_name=self.name)

    async def run_async(
        self,
        data: Union[Iterable[Any], AsyncIterable[Any]],
        *,
        config_path: Optional[str] = None,
    ) -> Tuple[List[Any], Context]:
        """Runs the pipeline and collects the output of its last stage.

        Args:
            data: An iterable or async iterable of input items.
            config_path: The path to a YAML configuration file to be loaded into
                the run's context.

        Returns:
            A tuple of the items emitted by the last stage and the run's
            `Context`.

        Raises:
            Exception: The error of the first stage that failed.
        """
        self.logger.info("pipeline_started", stages=len(self.stages))
        start_time = time.perf_counter()
        context = self._build_context(load_config(config_path))

        stream: Union[Iterable[Any], AsyncIterable[Any]] = data
        try:
            for stage_obj in self.stages:
                stage_obj.bind(context)
                stream = await self._drive(stage_obj, stream)
            return [item async for item in to_async(stream)], context
        finally:
            self.logger.info(
                "pipeline_finished",
                duration=round(time.perf_counter() - start_time, 4),
            )

    def run(
        self,
        data: Union[Iterable[Any], AsyncIterable[Any]],
        *,
        config_path: Optional[str] = None,
    ) -> Tuple[List[Any], Context]:
        """Runs the pipeline to completion from synchronous code.

        This starts a new event loop, so it cannot be called while one is
        already running. Use `run_async` there instead.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run_async(data, config_path=config_path))
        raise RuntimeError(
            "Pipeline.run() cannot be called from a running event loop; "
            "await Pipeline.run_async() instead."
        )

    async def _drive(
        self, stage_obj: Stage, stream: Union[Iterable[Any], AsyncIterable[Any]]
    ) -> List[Any]:
        """Feeds `stream` through one stage and returns what it emitted."""
        loop = asyncio.get_running_loop()
        finished: asyncio.Future = loop.create_future()
        outputs: List[Any] = []

        def _on_end() -> None:
            if not finished.done():
                finished.set_result(None)

        def _on_error(error: BaseException) -> None:
            if not finished.done():
                finished.set_exception(error)

        stage_obj.on("data", outputs.append)
        stage_obj.on("end", _on_end)
        stage_obj.on("error", _on_error)

        async for item in to_async(stream):
            if not stage_obj.write(item):
                break

        if stage_obj.state is StageState.ACCEPTING:
            await stage_obj.end()

        try:
            await finished
        except Exception as e:
            self.logger.error("stage_failed", stage=stage_obj.name, error=str(e))
            raise
        return outputs

    @property
    def metrics(self) -> Dict[str, Any]:
        """A dictionary containing metrics for each stage in the pipeline."""
        return {"stages": {s.name: s.metrics for s in self.stages}}

    def __repr__(self) -> str:
        stage_names = " | ".join(s.name for s in self.stages)
        return f"Pipeline(name='{self.name}', stages=[{stage_names}])"
