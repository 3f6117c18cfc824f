from __future__ import annotations

import asyncio
from contextlib import aclosing
from typing import List

import httpx
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from lyrics_stream.config import LyricsSettings
from lyrics_stream.errors import NoMatchError, ParseError, TransportError
from lyrics_stream.fetchers import HttpxFetcher
from lyrics_stream.pipeline import LyricsPipeline
from lyrics_stream.session import LyricsSession
from lyrics_stream.streams import iter_queue

from logging import getLogger

logger = getLogger("lyrics_stream.server")


# -----------------------
# Request / Response
# -----------------------


class LyricsRequest(BaseModel):
    q: str = Field(..., min_length=1, description="Song title to search for")


class LyricsResponse(BaseModel):
    query: str
    fragments: List[str]


class WebSocketSink:
    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def update(self, text: str) -> None:
        await self._ws.send_text(text)


# -----------------------
# App + Lifespan
# -----------------------

app = FastAPI(title="lyrics-stream-server")

# shared singletons
_settings: LyricsSettings = LyricsSettings()
_http_client: httpx.AsyncClient | None = None
_pipeline: LyricsPipeline | None = None


@app.on_event("startup")
async def startup() -> None:
    global _settings, _http_client, _pipeline

    _settings = LyricsSettings.from_env()
    getLogger("lyrics_stream").setLevel(_settings.log_level)

    _http_client = httpx.AsyncClient(timeout=None)
    _pipeline = LyricsPipeline(
        site=_settings.site,
        fetcher=HttpxFetcher(_http_client, policy=_settings.fetch),
    )


@app.on_event("shutdown")
async def shutdown() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


@app.post("/lyrics", response_model=LyricsResponse)
async def lyrics(req: LyricsRequest) -> LyricsResponse:
    """
    POST /lyrics
    body: { "q": "..." }
    debounceなしで1回だけ実行する。エラーは握りつぶさずHTTPステータスにする。
    """
    assert _pipeline is not None

    try:
        async with aclosing(_pipeline.run(req.q)) as fragments:
            out = [f async for f in fragments]
    except NoMatchError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (TransportError, ParseError) as e:
        logger.error(e)
        raise HTTPException(status_code=502, detail=str(e))

    return LyricsResponse(query=req.q, fragments=out)


@app.websocket("/ws/lyrics")
async def lyrics_ws(ws: WebSocket) -> None:
    """
    受信したテキスト = 入力欄の現在値。歌詞の断片をテキストフレームで返す。
    切断されたらセッションごと止める（実行中の通信もキャンセル）。
    """
    assert _pipeline is not None

    await ws.accept()
    events: asyncio.Queue[str] = asyncio.Queue()
    async with LyricsSession(
        iter_queue(events), WebSocketSink(ws), _settings, pipeline=_pipeline
    ):
        try:
            while True:
                events.put_nowait(await ws.receive_text())
        except WebSocketDisconnect:
            logger.info("websocket disconnected")
