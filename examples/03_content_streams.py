"""
Items whose contents are live streams are refused unless the stage opts in.

With ``stream: True`` the transformation receives the items untouched and is
responsible for reading their streams itself.
"""
import io

from toflush import ContentItem, ContentStreamsNotEnabledError, Pipeline, toflush


def bundle(files):
    body = b"".join(f.path.encode() + b": " + f.contents.read() for f in files)
    return ContentItem("bundle.txt", body)


def make_files():
    return [
        ContentItem("x.txt", io.BytesIO(b"streamed x\n")),
        ContentItem("y.txt", io.BytesIO(b"streamed y\n")),
    ]


def main():
    print("--- Without the stream option ---")
    try:
        Pipeline([toflush({"callback": bundle, "name": "bundle"})]).run(make_files())
    except ContentStreamsNotEnabledError as e:
        print(f"Refused: {e}")

    print("--- With the stream option ---")
    results, _ = Pipeline([toflush({"callback": bundle, "stream": True})]).run(make_files())
    print(results[0].contents.decode(), end="")


if __name__ == "__main__":
    main()
