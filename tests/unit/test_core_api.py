import asyncio

import pytest

from toflush import (
    Context,
    ItemStage,
    Pipeline,
    Stage,
    StageState,
    stage,
    toflush,
)
from tests.helpers.stage_driver import drive


@stage
def double(x: int) -> int:
    return x * 2


@stage(name="explode")
def explode(x):
    return [x, x]


@stage
def drop_odd(x):
    return x if x % 2 == 0 else None


@stage
def fail_on_two(x):
    if x == 2:
        raise ValueError("I failed on 2!")
    return x


@stage
def tag_with_pipeline(context: Context, item):
    return f"{context.pipeline_name}:{item}"


# --- Stage creation ---

def test_stage_decorator_creates_item_stage():
    assert isinstance(double, ItemStage)
    assert double.name == "double"
    assert explode.name == "explode"
    assert double.state is StageState.ACCEPTING


def test_stage_from_lambda_uses_default_name():
    assert ItemStage(lambda x: x).name == "Stage"


def test_item_stage_rejects_coroutine_functions():
    async def fetch(item):
        return item

    with pytest.raises(TypeError, match="synchronously"):
        ItemStage(fetch)


def test_unknown_event_is_rejected():
    with pytest.raises(ValueError, match="Unknown stage event"):
        ItemStage(lambda x: x).on("finish", print)


def test_repr_shows_name_and_state():
    assert repr(ItemStage(lambda x: x, name="noop")) == "ItemStage(name='noop', state='accepting')"


# --- Item stages ---

@pytest.mark.asyncio
async def test_item_stage_expands_results():
    outputs, _ = await drive(ItemStage(lambda x: [x, x]), [1, 2])
    assert outputs == [1, 1, 2, 2]

    outputs, _ = await drive(ItemStage(lambda x: x if x > 1 else None), [1, 2, 3])
    assert outputs == [2, 3]


@pytest.mark.asyncio
async def test_item_stage_emits_as_items_arrive():
    s = ItemStage(lambda x: x + 1)
    seen = []
    s.on("data", seen.append)

    s.write(1)
    assert seen == [2]
    s.write(2)
    assert seen == [2, 3]


@pytest.mark.asyncio
async def test_item_stage_failure_is_delivered_unchanged():
    def fail(x):
        raise KeyError("nope")

    s = ItemStage(fail)
    outputs, error = await drive(s, [1, 2])

    assert outputs == []
    assert isinstance(error, KeyError)
    assert s.state is StageState.FAILED
    assert s.metrics["items_in"] == 1


@pytest.mark.asyncio
async def test_item_stage_completes():
    s = ItemStage(lambda x: x)
    ended = []
    s.on("end", lambda: ended.append(True))
    await s.end()
    assert ended == [True]
    assert s.state is StageState.COMPLETED


# --- Composition ---

def test_pipe_operator_builds_pipeline():
    flush = toflush(lambda items: items)
    pipeline = flush | ItemStage(lambda x: x, name="after")

    assert isinstance(pipeline, Pipeline)
    assert [s.name for s in pipeline.stages] == ["toflush", "after"]


def test_pipelines_compose_with_pipelines():
    first = Pipeline([ItemStage(lambda x: x, name="a")], name="outer")
    second = Pipeline([ItemStage(lambda x: x, name="b")])
    combined = first >> second

    assert [s.name for s in combined.stages] == ["a", "b"]
    assert combined.name == "outer"
    assert repr(combined) == "Pipeline(name='outer', stages=[a | b])"


def test_composing_with_unsupported_type_fails():
    with pytest.raises(TypeError, match="Unsupported type"):
        Pipeline() | "not a stage"


# --- Context ---

def test_context_operations():
    context = Context(initial_data={"a": 1}, pipeline_name="p")
    context.set("b", 2)
    context.update({"c": 3})

    assert context.get("a") == 1
    assert context.get("missing", "default") == "default"
    assert context.inc("a") == 2
    assert context.inc("new", 5) == 5
    assert context.to_dict() == {"a": 2, "b": 2, "c": 3, "new": 5}
    assert context.config.get("anything") is None


# --- Pipelines with decorated stages ---

@pytest.mark.asyncio
async def test_pipeline_with_item_and_flush_stages():
    pipeline = Pipeline(
        [ItemStage(lambda x: x * 2, name="double"), toflush(sorted), ItemStage(lambda x: [x, x], name="explode")]
    )
    results, _ = await pipeline.run_async([3, 1, 2])
    assert results == [2, 2, 4, 4, 6, 6]


@pytest.mark.asyncio
async def test_decorated_stages_run_in_pipeline():
    pipeline = double | drop_odd | toflush(sum)
    results, _ = await pipeline.run_async(range(4))
    assert results == [12]


@pytest.mark.asyncio
async def test_decorated_stage_receives_context():
    pipeline = Pipeline([tag_with_pipeline], name="tagger")
    results, _ = await pipeline.run_async(["x"])
    assert results == ["tagger:x"]


@pytest.mark.asyncio
async def test_item_stage_failure_stops_pipeline():
    pipeline = Pipeline([fail_on_two, toflush(lambda items: items)])
    with pytest.raises(ValueError, match="I failed on 2!"):
        await pipeline.run_async([1, 2, 3])
    assert pipeline.stages[1].state is StageState.ACCEPTING


def test_base_stage_requires_subclass_work():
    s = Stage("abstract")
    with pytest.raises(NotImplementedError):
        s.write(1)
    with pytest.raises(NotImplementedError):
        asyncio.run(s.end())
