import asyncio
import sys
import threading

from lyrics_stream.config import LyricsSettings
from lyrics_stream.session import LyricsSession

from logging import getLogger, basicConfig, WARNING

basicConfig(level=WARNING, format="[%(levelname)s](%(name)s): %(message)s", force=True)
logger = getLogger("lyrics_stream.main")


class StdoutSink:
    async def update(self, text: str) -> None:
        print(text, flush=True)
        print("-" * 40, flush=True)


async def stdin_lines(stream=sys.stdin):
    # 1行 = テキストフィールドの現在値、として扱う。
    # readline はdaemonスレッドで回す。終了時にjoinされないこと
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _reader() -> None:
        for line in iter(stream.readline, ""):
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    threading.Thread(target=_reader, name="stdin-reader", daemon=True).start()
    while True:
        line = await queue.get()
        if line is None:
            return
        yield line.rstrip("\n")


async def main():
    settings = LyricsSettings.from_env()
    getLogger("lyrics_stream").setLevel(settings.log_level)

    async with LyricsSession(stdin_lines(), StdoutSink(), settings) as session:
        # 入力が終わっても最後の検索が失敗して沈黙中なら Ctrl-C まで待つ
        await session.wait()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
