from __future__ import annotations

from .extractor import attribute, trimmed_text
from .models import SiteAdapter

# AZLyrics のHTML構造が変わったらここだけ直す。
# 検索結果: <td class="text-left visitedlyr"><a href="...">
# 歌詞: <div class="col-xs-12 col-lg-8 text-center"> 直下の6番目のdiv
AZLYRICS = SiteAdapter(
    name="azlyrics",
    search_endpoint="https://search.azlyrics.com/search.php",
    result_link_query='td[class="text-left visitedlyr"] > a',
    lyrics_query='div[class="col-xs-12 col-lg-8 text-center"] > div:nth-of-type(6)',
    extract_link_from_node=attribute("href"),
    extract_text_from_node=trimmed_text,
)
