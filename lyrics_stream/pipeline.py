from __future__ import annotations
import asyncio
from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Optional

from .extractor import DocumentExtractor
from .interfaces import PageFetcher, TextSink
from .models import SiteAdapter
from .streams import flat_map, never, take_first

from logging import getLogger

logger = getLogger(__name__)


class LyricsPipeline:
    """
    query -> 検索ページ -> 先頭の結果リンク -> 歌詞ページ -> 歌詞の断片
    各段の出力を次の段に flat_map でつなぐ。どの段の例外も途中で握りつぶさない。
    """

    def __init__(
        self,
        *,
        site: SiteAdapter,
        fetcher: PageFetcher,
        extractor: DocumentExtractor = DocumentExtractor(),
    ) -> None:
        self._site = site
        self._fetcher = fetcher
        self._extractor = extractor

    def search_request(self, query: str) -> AsyncIterator[str]:
        return self._fetcher.fetch(self._site.search_endpoint, {"q": query})

    def get_search_results(self, html: str) -> AsyncIterator[str]:
        # 関連度は見ない。文書順で最初のリンクを採用
        return take_first(
            self._extractor.extract(html, self._site.search_results),
            what="search result",
        )

    def request(self, uri: str) -> AsyncIterator[str]:
        logger.info(f"lyrics page: {uri}")
        return self._fetcher.fetch(uri, {})

    def get_lyrics(self, html: str) -> AsyncIterator[str]:
        return self._extractor.extract(html, self._site.lyrics)

    def run(self, query: str) -> AsyncIterator[str]:
        """エラーをそのまま投げる版（1回きりの呼び出し用）"""
        links = flat_map(self.search_request(query), self.get_search_results)
        pages = flat_map(links, self.request)
        return flat_map(pages, self.get_lyrics)

    async def handle_error(self, error: Exception) -> AsyncIterator[str]:
        # 完了させると購読側の扱いが変わるので、沈黙するだけ
        logger.error(f"lyrics lookup failed: {error!r}")
        async with aclosing(never()) as silent:
            async for fragment in silent:
                yield fragment

    async def stream(self, query: str) -> AsyncIterator[str]:
        try:
            async with aclosing(self.run(query)) as fragments:
                async for fragment in fragments:
                    yield fragment
        except Exception as e:
            async with aclosing(self.handle_error(e)) as fallback:
                async for fragment in fallback:
                    yield fragment


class LatestRunSupervisor:
    """
    新しいqueryが来たら前の実行をキャンセルし（終了を待ってから）新しく実行する。
    sinkに書けるのは常に最新の実行だけ。
    """

    def __init__(self, pipeline: LyricsPipeline, sink: TextSink) -> None:
        self._pipeline = pipeline
        self._sink = sink
        self._current: Optional[asyncio.Task] = None

    async def _run_into_sink(self, query: str) -> None:
        async with aclosing(self._pipeline.stream(query)) as fragments:
            async for fragment in fragments:
                await self._sink.update(fragment)

    async def _cancel_current(self) -> None:
        task, self._current = self._current, None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"run ended with error: {task.exception()!r}")
            return
        task.cancel()
        # 自分自身のキャンセルは伝えたいので suppress ではなく wait
        await asyncio.wait({task})

    async def drive(self, queries: AsyncIterable[str]) -> None:
        try:
            async for query in queries:
                if self._current is not None and not self._current.done():
                    logger.info(f"superseded by {query!r}")
                await self._cancel_current()
                self._current = asyncio.create_task(self._run_into_sink(query))
            # 入力が終わったら最後の実行を待つ（失敗して沈黙中なら止められるまで待つ）
            if self._current is not None:
                last, self._current = self._current, None
                await last
        finally:
            await self._cancel_current()
