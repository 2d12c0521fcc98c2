"""
Concatenates every file flowing through a pipeline into a single file.

The `toflush` stage waits for the whole input, then hands all files to the
transformation at once. Its single return value becomes the only output item.
"""
from toflush import ContentItem, Pipeline, stage, toflush


@stage
def add_newline(item: ContentItem) -> ContentItem:
    """Makes sure every file ends with a newline before it is concatenated."""
    if not item.contents.endswith(b"\n"):
        item.contents += b"\n"
    return item


def concat(files):
    return ContentItem("all.txt", b"".join(f.contents for f in files))


pipeline: Pipeline = add_newline | toflush(concat)


def main():
    files = [
        ContentItem("a.txt", b"first file"),
        ContentItem("b.txt", b"second file\n"),
        ContentItem("c.txt", b"third file"),
    ]

    results, _ = pipeline.run(files)

    print("--- Concatenated ---")
    for result in results:
        print(result.path)
        print(result.contents.decode(), end="")


if __name__ == "__main__":
    main()
