from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional

from logging import getLogger

logger = getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class DebounceConfig:
    # この文字数以下の入力では検索しない
    max_ignored_chars: int = 4
    # 最後の入力からこの秒数だけ静かなら流す
    quiet_s: float = 0.4


class InputDebouncer:
    """
    入力イベント列を 長さフィルタ -> debounce -> 直前と同じ値を除外 の順に整形する。
    入力側が終わらない限りこのストリームも終わらない。
    入力側が終わった場合は保留中の値を流してから終わる。
    """

    def __init__(self, cfg: DebounceConfig = DebounceConfig()) -> None:
        self._cfg = cfg

    async def shape(self, events: AsyncIterable[str]) -> AsyncIterator[str]:
        loop = asyncio.get_running_loop()
        it = events.__aiter__()
        pending: Optional[str] = None
        deadline = 0.0
        last_sent: object = _UNSET
        next_event: Optional[asyncio.Future] = None
        try:
            while True:
                if next_event is None:
                    next_event = asyncio.ensure_future(it.__anext__())
                # 保留中の値があるときだけタイマーを張る。期限は採用した入力でだけ延びる
                timeout = None
                if pending is not None:
                    timeout = max(0.0, deadline - loop.time())
                done, _ = await asyncio.wait({next_event}, timeout=timeout)

                if not done:
                    value, pending = pending, None
                    if value != last_sent:
                        last_sent = value
                        yield value
                    else:
                        logger.debug(f"unchanged input skipped: {value!r}")
                    continue

                fut, next_event = next_event, None
                try:
                    text = fut.result()
                except StopAsyncIteration:
                    break
                if len(text) <= self._cfg.max_ignored_chars:
                    continue
                pending = text
                deadline = loop.time() + self._cfg.quiet_s

            if pending is not None and pending != last_sent:
                yield pending
        finally:
            if next_event is not None and not next_event.done():
                next_event.cancel()
