"""
Uses an async transformation, and shows how its failures are reported.

The transformation may be a coroutine function; the stage waits for it before
emitting. If it raises, the error reaches the caller prefixed with the
stage's name.
"""
import asyncio

from toflush import Pipeline, toflush


async def fake_download(name: str) -> bytes:
    # pretend this is read from the network
    await asyncio.sleep(0.01)
    return f"contents of {name}".encode()


async def download_all(names):
    bodies = await asyncio.gather(*(fake_download(n) for n in names))
    return [{"name": n, "size": len(b)} for n, b in zip(names, bodies)]


async def refuse(names):
    await asyncio.sleep(0)
    raise ConnectionError(f"{len(names)} downloads refused")


async def main():
    results, _ = await Pipeline([toflush(download_all)]).run_async(["a.js", "bb.js"])
    print("--- Downloaded ---")
    for result in results:
        print(result)

    print("--- Failure ---")
    try:
        await Pipeline([toflush({"callback": refuse, "name": "fetch"})]).run_async(["a.js"])
    except ConnectionError as e:
        print(f"Caught: {e}")


if __name__ == "__main__":
    asyncio.run(main())
