from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

from bs4 import Tag

# ノード -> 文字列。空文字列を返すと抽出結果から除外される
NodeExtractor = Callable[[Tag], str]


@dataclass(frozen=True)
class QueryDescriptor:
    selector: str
    extractor: NodeExtractor


@dataclass(frozen=True)
class SiteAdapter:
    name: str
    search_endpoint: str
    result_link_query: str
    lyrics_query: str
    extract_link_from_node: NodeExtractor
    extract_text_from_node: NodeExtractor

    @property
    def search_results(self) -> QueryDescriptor:
        return QueryDescriptor(self.result_link_query, self.extract_link_from_node)

    @property
    def lyrics(self) -> QueryDescriptor:
        return QueryDescriptor(self.lyrics_query, self.extract_text_from_node)
