from __future__ import annotations
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Optional

import httpx

from .errors import TransportError
from .interfaces import PageFetcher

from logging import getLogger

logger = getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


@dataclass(frozen=True)
class FetchPolicy:
    # None = clientの設定に従う（LyricsSession/serverが作るclientはタイムアウトなし）
    timeout_s: Optional[float] = None
    # 2xx以外は TransportError 扱い（エラーページをHTMLとして解析しない）
    require_success: bool = True
    follow_redirects: bool = True


class HttpxFetcher(PageFetcher):
    """
    1回だけGETするfetcher。リトライはしない。
    呼び出し側のタスクがキャンセルされると client.get もキャンセルされ、通信は中断される。
    """

    def __init__(
        self, client: httpx.AsyncClient, policy: FetchPolicy = FetchPolicy()
    ) -> None:
        self._client = client
        self._policy = policy

    async def fetch(
        self, url: str, params: Optional[Mapping[str, str]] = None
    ) -> AsyncIterator[str]:
        logger.debug(f"GET {url} params={dict(params or {})}")
        try:
            r = await self._client.get(
                url,
                params=dict(params) if params else None,
                headers=_DEFAULT_HEADERS,
                follow_redirects=self._policy.follow_redirects,
                timeout=(
                    httpx.USE_CLIENT_DEFAULT
                    if self._policy.timeout_s is None
                    else self._policy.timeout_s
                ),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"GET {url} failed: {e!r}") from e

        if self._policy.require_success and not r.is_success:
            raise TransportError(f"GET {r.url} returned {r.status_code}")

        logger.debug(f"{r.status_code}: {r.url} ({len(r.text)} chars)")
        yield r.text
