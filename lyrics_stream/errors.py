from __future__ import annotations


class LyricsError(RuntimeError):
    pass


class TransportError(LyricsError):
    """ネットワーク/DNS/タイムアウト、または2xx以外のレスポンス"""


class ParseError(LyricsError):
    """HTMLとして解釈できない（空文字列・要素が1つもない等）"""


class NoMatchError(LyricsError):
    """“先頭1件が必須”の抽出でマッチが0件だった"""
