from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from minbar.metadata import surah_name
from minbar.models import SermonDocument, Surah


@dataclass(frozen=True)
class SermonFilter:
    surah_number: Optional[int] = None
    search: str = ""


def matches(sermon: SermonDocument, flt: SermonFilter, surahs: Sequence[Surah]) -> bool:
    if flt.surah_number is not None and sermon.surah_number != flt.surah_number:
        return False
    if not flt.search:
        return True
    needle = flt.search.lower()
    haystack = (
        sermon.title,
        sermon.verses,
        sermon.khutbah1.tafsir,
        sermon.khutbah2.hadith.text,
        surah_name(surahs, sermon.surah_number),
    )
    return any(needle in field.lower() for field in haystack)


class CatalogStore:
    """
    Ordered, append-only sermon list for the running session.

    Ids come from a counter owned by the store (never reused), not from the
    list length.
    """

    def __init__(self, seed: Iterable[SermonDocument] = (), surahs: Sequence[Surah] = ()):
        self._sermons: List[SermonDocument] = []
        self._next_id = 1
        self.surahs = tuple(surahs)
        for sermon in seed:
            self.append(sermon)

    def __len__(self) -> int:
        return len(self._sermons)

    @property
    def next_id(self) -> int:
        return self._next_id

    def list(self, flt: SermonFilter = SermonFilter()) -> Tuple[SermonDocument, ...]:
        return tuple(s for s in self._sermons if matches(s, flt, self.surahs))

    def find(self, sermon_id: int) -> Optional[SermonDocument]:
        return next((s for s in self._sermons if s.id == sermon_id), None)

    def append(self, sermon: SermonDocument) -> None:
        if self.find(sermon.id) is not None:
            raise ValueError(f"sermon id {sermon.id} already in catalog")
        self._sermons.append(sermon)
        self._next_id = max(self._next_id, sermon.id + 1)
