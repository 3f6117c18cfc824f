from __future__ import annotations
import asyncio
from typing import AsyncIterable, Optional

import httpx

from .config import LyricsSettings
from .debounce import InputDebouncer
from .fetchers import HttpxFetcher
from .interfaces import TextSink
from .pipeline import LatestRunSupervisor, LyricsPipeline

from logging import getLogger

logger = getLogger(__name__)


class LyricsSession:
    """
    入力イベント -> debounce -> pipeline -> sink の購読1本分。
    start()/stop() か async with で寿命を明示する。
    clientを渡さなければ自前で作り、stop()で閉じる。
    """

    def __init__(
        self,
        events: AsyncIterable[str],
        sink: TextSink,
        settings: LyricsSettings = LyricsSettings(),
        *,
        client: Optional[httpx.AsyncClient] = None,
        pipeline: Optional[LyricsPipeline] = None,
    ) -> None:
        self._events = events
        self._sink = sink
        self._settings = settings
        self._client = client
        self._owns_client = client is None and pipeline is None
        self._pipeline = pipeline
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("session already started")
        if self._pipeline is None:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=None)
            self._pipeline = LyricsPipeline(
                site=self._settings.site,
                fetcher=HttpxFetcher(self._client, policy=self._settings.fetch),
            )
        debouncer = InputDebouncer(self._settings.debounce)
        supervisor = LatestRunSupervisor(self._pipeline, self._sink)
        self._task = asyncio.create_task(
            supervisor.drive(debouncer.shape(self._events))
        )
        logger.info(f"session started ({self._settings.site.name})")

    async def wait(self) -> None:
        """入力が終わり、最後の実行が終わるまで待つ"""
        if self._task is None:
            raise RuntimeError("session not started")
        await self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        try:
            if task is not None and not task.done():
                task.cancel()
                await asyncio.wait({task})
            elif task is not None and not task.cancelled() and task.exception():
                logger.error(f"session ended with error: {task.exception()!r}")
        finally:
            if self._owns_client and self._client is not None:
                await self._client.aclose()
                self._client = None
        logger.info("session stopped")

    async def __aenter__(self) -> "LyricsSession":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
