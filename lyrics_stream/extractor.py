from __future__ import annotations
from typing import AsyncIterator, Union

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from .errors import ParseError
from .models import NodeExtractor, QueryDescriptor


def attribute(name: str) -> NodeExtractor:
    """属性値を取り出すextractor。属性がなければ空文字列（=スキップ）"""

    def _extract(node: Tag) -> str:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value or ""

    return _extract


def trimmed_text(node: Tag) -> str:
    return node.get_text().strip()


class DocumentExtractor:
    """
    HTML -> セレクタでノード列 -> extractorで文字列列。
    - パースできない場合は何も流さずに ParseError
    - マッチ0件は正常終了（エラーではない）
    - extractorが空文字列を返したノードは流さない
    遅延評価なので、先頭だけ取って閉じれば残りのノードには触らない。
    """

    def __init__(self, parser: str = "html.parser") -> None:
        self._parser = parser

    def parse(self, content: Union[str, bytes]) -> BeautifulSoup:
        if not content or not content.strip():
            raise ParseError("no parseable content: empty document")
        try:
            soup = BeautifulSoup(content, self._parser)
        except ParserRejectedMarkup as e:
            raise ParseError(f"no parseable content: {e}") from e
        # テキストだけで要素が1つもないものはHTMLとして扱わない
        if soup.find() is None:
            raise ParseError("no parseable content: no elements")
        return soup

    async def extract(
        self, content: Union[str, bytes], descriptor: QueryDescriptor
    ) -> AsyncIterator[str]:
        soup = self.parse(content)
        for node in soup.select(descriptor.selector):
            text = descriptor.extractor(node)
            if text:
                yield text
