from __future__ import annotations
import asyncio
from contextlib import aclosing
from typing import AsyncIterator, Callable, TypeVar

from .errors import NoMatchError

T = TypeVar("T")
U = TypeVar("U")


async def flat_map(
    source: AsyncIterator[T], fn: Callable[[T], AsyncIterator[U]]
) -> AsyncIterator[U]:
    """
    sourceの各要素をfnで内側ストリームに変換し、順番に連結する。
    どこかで例外/キャンセルが起きたら、開いている内側/外側のストリームを全部閉じる。
    """
    async with aclosing(source) as outer:
        async for item in outer:
            async with aclosing(fn(item)) as inner:
                async for out in inner:
                    yield out


async def take_first(source: AsyncIterator[T], what: str = "element") -> AsyncIterator[T]:
    """先頭1件だけ流して残りは閉じる（=以降の抽出はしない）。0件なら NoMatchError"""
    async with aclosing(source) as it:
        async for item in it:
            yield item
            return
    raise NoMatchError(f"no {what} found")


async def never() -> AsyncIterator[T]:
    # 何も流さず、終わらず、失敗もしない。キャンセルされるまで待ち続ける
    await asyncio.get_running_loop().create_future()
    return
    yield  # async generatorにするため


async def iter_queue(queue: asyncio.Queue[T]) -> AsyncIterator[T]:
    while True:
        yield await queue.get()
