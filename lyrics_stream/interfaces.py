from __future__ import annotations
from typing import AsyncIterator, Mapping, Optional, Protocol


class PageFetcher(Protocol):
    def fetch(
        self, url: str, params: Optional[Mapping[str, str]] = None
    ) -> AsyncIterator[str]:
        """GETを1回だけ行い、成功ならbodyを1回yieldして終わる"""
        ...


class TextSink(Protocol):
    async def update(self, text: str) -> None: ...
