import asyncio
import logging

import pytest

from lyrics_stream.errors import NoMatchError, ParseError, TransportError
from lyrics_stream.pipeline import LatestRunSupervisor, LyricsPipeline
from lyrics_stream.streams import iter_queue

from fakes import (
    SEARCH_URL,
    SITE,
    FakeFetcher,
    ListSink,
    lyrics_page,
    search_page,
    wait_for,
)

IMAGINE_PAGES = {
    f"{SEARCH_URL}?q=imagine": search_page("https://x/imagine", "https://x/other"),
    "https://x/imagine": lyrics_page(sixth=" Imagine there's no heaven \n"),
}


async def collect(stream):
    return [x async for x in stream]


@pytest.mark.asyncio
async def test_imagine_scenario():
    fetcher = FakeFetcher(IMAGINE_PAGES)
    p = LyricsPipeline(site=SITE, fetcher=fetcher)

    assert await collect(p.run("imagine")) == ["Imagine there's no heaven"]
    # 先頭の結果だけ取りに行く
    assert fetcher.calls == [f"{SEARCH_URL}?q=imagine", "https://x/imagine"]


@pytest.mark.asyncio
async def test_all_fragments_forwarded_in_order():
    fetcher = FakeFetcher(
        {
            f"{SEARCH_URL}?q=long song": search_page("https://x/long"),
            "https://x/long": lyrics_page("verse one", "verse two", "verse three"),
        }
    )
    p = LyricsPipeline(site=SITE, fetcher=fetcher)
    assert await collect(p.run("long song")) == ["verse one", "verse two", "verse three"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "pages, error",
    [
        ({f"{SEARCH_URL}?q=nothing": search_page()}, NoMatchError),
        ({}, TransportError),
        ({f"{SEARCH_URL}?q=nothing": "not html at all"}, ParseError),
        (
            {
                f"{SEARCH_URL}?q=nothing": search_page("https://x/broken"),
                "https://x/broken": "",
            },
            ParseError,
        ),
    ],
)
async def test_run_propagates_stage_errors(pages, error):
    p = LyricsPipeline(site=SITE, fetcher=FakeFetcher(pages))
    with pytest.raises(error):
        await collect(p.run("nothing"))


@pytest.mark.asyncio
async def test_contained_stream_logs_and_goes_silent(caplog):
    p = LyricsPipeline(site=SITE, fetcher=FakeFetcher({f"{SEARCH_URL}?q=nothing": search_page()}))
    out = []

    async def consume():
        async for fragment in p.stream("nothing"):
            out.append(fragment)

    with caplog.at_level(logging.ERROR, logger="lyrics_stream"):
        t = asyncio.create_task(consume())
        await wait_for(lambda: "NoMatchError" in caplog.text)
        await asyncio.sleep(0.05)
        # 完了もエラーもしない
        assert not t.done()
        t.cancel()
        with pytest.raises(asyncio.CancelledError):
            await t
    assert out == []


@pytest.mark.asyncio
async def test_failed_query_does_not_stop_next_query(caplog):
    pages = dict(IMAGINE_PAGES)
    pages[f"{SEARCH_URL}?q=nothing"] = search_page()
    fetcher = FakeFetcher(pages)
    sink = ListSink()
    queries: asyncio.Queue = asyncio.Queue()
    supervisor = LatestRunSupervisor(LyricsPipeline(site=SITE, fetcher=fetcher), sink)

    with caplog.at_level(logging.ERROR, logger="lyrics_stream"):
        drive = asyncio.create_task(supervisor.drive(iter_queue(queries)))
        queries.put_nowait("nothing")
        await wait_for(lambda: "NoMatchError" in caplog.text)
        queries.put_nowait("imagine")
        await wait_for(lambda: sink.items)

    assert sink.items == ["Imagine there's no heaven"]
    assert not drive.done()
    drive.cancel()
    with pytest.raises(asyncio.CancelledError):
        await drive


@pytest.mark.asyncio
async def test_new_query_cancels_inflight_lyrics_fetch():
    slow = asyncio.Event()
    pages = dict(IMAGINE_PAGES)
    pages[f"{SEARCH_URL}?q=slow song"] = search_page("https://x/slow")
    pages["https://x/slow"] = slow
    pages["https://x/slow#after"] = lyrics_page(sixth="stale words")
    fetcher = FakeFetcher(pages)
    sink = ListSink()
    queries: asyncio.Queue = asyncio.Queue()
    supervisor = LatestRunSupervisor(LyricsPipeline(site=SITE, fetcher=fetcher), sink)

    drive = asyncio.create_task(supervisor.drive(iter_queue(queries)))
    queries.put_nowait("slow song")
    await wait_for(lambda: "https://x/slow" in fetcher.started)
    queries.put_nowait("imagine")
    await wait_for(lambda: sink.items)

    # 古い実行が後から書き込まないこと
    slow.set()
    await asyncio.sleep(0.05)

    assert fetcher.cancelled == ["https://x/slow"]
    assert sink.items == ["Imagine there's no heaven"]

    drive.cancel()
    with pytest.raises(asyncio.CancelledError):
        await drive


@pytest.mark.asyncio
async def test_finite_input_waits_for_last_run():
    fetcher = FakeFetcher(IMAGINE_PAGES)
    sink = ListSink()

    async def queries():
        yield "imagine"

    supervisor = LatestRunSupervisor(LyricsPipeline(site=SITE, fetcher=fetcher), sink)
    await asyncio.wait_for(supervisor.drive(queries()), 2)
    assert sink.items == ["Imagine there's no heaven"]
