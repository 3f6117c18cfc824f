from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Optional

from .azlyrics import AZLYRICS
from .debounce import DebounceConfig
from .fetchers import FetchPolicy
from .models import SiteAdapter


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


@dataclass(frozen=True)
class LyricsSettings:
    site: SiteAdapter = AZLYRICS
    fetch: FetchPolicy = FetchPolicy()
    debounce: DebounceConfig = DebounceConfig()
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LyricsSettings":
        site = AZLYRICS
        endpoint = os.getenv("LYRICS_SEARCH_ENDPOINT")
        if endpoint:
            site = replace(site, search_endpoint=endpoint)

        return cls(
            site=site,
            fetch=FetchPolicy(timeout_s=_env_float("FETCH_TIMEOUT_S", None)),
            debounce=DebounceConfig(
                max_ignored_chars=_env_int("LYRICS_MIN_QUERY_CHARS", 4),
                quiet_s=_env_float("LYRICS_DEBOUNCE_S", 0.4) or 0.4,
            ),
            log_level=os.getenv("LYRICS_LOG_LEVEL", "INFO").upper(),
        )
