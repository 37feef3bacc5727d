"""
Static lookup tables: the surah list, the sparse surah -> Mushaf page map and
the seed sermons. All read-only after load.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Sequence

from minbar import config
from minbar.models import PageRange, SermonDocument, Surah
from minbar.utils import load_json, warn

SECTION_HALVES = ("الجزء الأول", "الجزء الثاني")


def load_surahs(path: Path = config.SURAHS_PATH) -> List[Surah]:
    rows = load_json(path, [])
    return [Surah.from_dict(r) for r in rows if isinstance(r, dict) and "number" in r]


def load_page_map(path: Path = config.PAGES_PATH) -> Dict[int, PageRange]:
    raw = load_json(path, {})
    out: Dict[int, PageRange] = {}
    for key, span in raw.items():
        try:
            out[int(key)] = PageRange(start=int(span["start"]), end=int(span["end"]))
        except (KeyError, TypeError, ValueError):
            warn(f"skipping bad page range for surah {key!r}: {span!r}")
    return out


def load_seed_sermons(path: Path = config.SERMONS_PATH) -> List[SermonDocument]:
    return [SermonDocument.from_dict(r) for r in load_json(path, [])]


def surah_name(surahs: Sequence[Surah], number: int) -> str:
    """Display name, or "" for an unknown surah."""
    for s in surahs:
        if s.number == number:
            return s.name
    return ""


def sections_for(number: int, page_map: Dict[int, PageRange]) -> List[str]:
    """Two selectable halves per page; surahs without a page range have none."""
    span = page_map.get(number)
    if span is None:
        return []
    return [f"صفحة {page} - {half}" for page in span.pages() for half in SECTION_HALVES]
