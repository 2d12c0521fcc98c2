import asyncio
import io

import pytest

from toflush import (
    ContentItem,
    ContentStreamsNotEnabledError,
    Context,
    ItemStage,
    Pipeline,
    StageStateError,
    toflush,
)


def concat_files(files):
    return ContentItem("all.txt", b"".join(f.contents for f in files))


def test_concat_files_end_to_end():
    files = [ContentItem(f"{i}.txt", f"line {i}\n".encode()) for i in range(3)]
    pipeline = Pipeline([toflush(concat_files)], name="concat")

    results, context = pipeline.run(files)

    assert results == [ContentItem("all.txt", b"line 0\nline 1\nline 2\n")]
    assert context.pipeline_name == "concat"


def test_reduce_to_single_object():
    pipeline = Pipeline([toflush(lambda items: {"values": [i["value"] for i in items]})])
    results, _ = pipeline.run([{"value": i} for i in range(4)])
    assert results == [{"values": [0, 1, 2, 3]}]


def test_filter_even_values():
    pipeline = Pipeline([toflush(lambda items: [i for i in items if i["value"] % 2 == 0])])
    results, _ = pipeline.run([{"value": i} for i in range(1, 6)])
    assert results == [{"value": 2}, {"value": 4}]


def test_empty_collection_result_still_completes():
    flush = toflush(lambda items: [])
    after = ItemStage(lambda x: x, name="after")

    results, _ = (flush | after).run([1, 2, 3])

    assert results == []
    assert after.metrics["items_in"] == 0


def test_transformation_failure_is_raised_from_run():
    def explode(items):
        raise RuntimeError("cannot concat")

    pipeline = Pipeline([toflush({"callback": explode, "name": "concat"})])
    with pytest.raises(RuntimeError, match="^concat: cannot concat$"):
        pipeline.run([1])


def test_content_stream_rejected_in_pipeline():
    files = [
        ContentItem("a.txt", b"a"),
        ContentItem("b.txt", io.BytesIO(b"b")),
        ContentItem("c.txt", b"c"),
    ]
    flush = toflush({"callback": lambda items: items, "name": "gather"})

    with pytest.raises(ContentStreamsNotEnabledError, match="gather: content streams are not enabled"):
        Pipeline([flush]).run(files)
    assert flush.metrics["items_in"] == 2


def test_content_streams_allowed_when_enabled():
    def read_all(files):
        return [ContentItem(f.path, f.contents.read() if f.is_stream() else f.contents) for f in files]

    files = [ContentItem("a.txt", io.BytesIO(b"alpha")), ContentItem("b.txt", b"beta")]
    results, _ = Pipeline([toflush({"callback": read_all, "stream": True})]).run(files)

    assert [r.contents for r in results] == [b"alpha", b"beta"]


def test_output_stream_items_are_not_revalidated():
    live = io.BytesIO(b"zip bytes")
    flush = toflush({"callback": lambda files: ContentItem("source.zip", live), "stream": True})

    results, _ = Pipeline([flush]).run([ContentItem("a.js", b"a")])

    assert results[0].is_stream()
    assert results[0].contents is live


def test_config_is_available_to_context_callbacks(tmp_path):
    config_file = tmp_path / "run.yml"
    config_file.write_text("headers:\n  copyright: '// copyright 2018'\n")

    def add_header(context: Context, files):
        header = context.config.get("headers.copyright").encode() + b"\n"
        for f in files:
            f.contents = header + f.contents
        return files

    results, context = Pipeline([toflush(add_header)]).run(
        [ContentItem("a.js", b"a();\n")], config_path=str(config_file)
    )

    assert results[0].contents == b"// copyright 2018\na();\n"
    assert context.config.get("headers.copyright") == "// copyright 2018"


def test_pipeline_is_single_use():
    pipeline = Pipeline([toflush(lambda items: items)])
    pipeline.run([1])
    with pytest.raises(StageStateError):
        pipeline.run([1])


def test_metrics_per_stage():
    pipeline = ItemStage(lambda x: [x, x], name="dup") | toflush({"callback": len, "name": "count"})
    results, _ = pipeline.run([1, 2, 3])

    assert results == [6]
    assert pipeline.metrics["stages"]["dup"]["items_out"] == 6
    assert pipeline.metrics["stages"]["count"]["items_in"] == 6
    assert pipeline.metrics["stages"]["count"]["items_out"] == 1


@pytest.mark.asyncio
async def test_run_async_with_async_source():
    async def source():
        for i in range(3):
            await asyncio.sleep(0)
            yield i

    async def total(items):
        await asyncio.sleep(0)
        return sum(items)

    results, _ = await Pipeline([toflush(total)]).run_async(source())
    assert results == [3]


@pytest.mark.asyncio
async def test_async_failure_is_raised_from_run_async():
    async def reject(items):
        raise ValueError("test rejection")

    with pytest.raises(ValueError, match="^toflush: test rejection$"):
        await Pipeline([toflush(lambda items: reject(items))]).run_async([1])


@pytest.mark.asyncio
async def test_sync_run_refuses_running_loop():
    pipeline = Pipeline([toflush(lambda items: items)])
    with pytest.raises(RuntimeError, match="run_async"):
        pipeline.run([1])


def test_empty_pipeline_passes_data_through():
    results, _ = Pipeline().run(iter([1, 2]))
    assert results == [1, 2]
