from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Tuple

REVELATION_LABELS = {"Meccan": "مكية", "Medinan": "مدنية"}


def _s(x: object) -> str:
    return x if isinstance(x, str) else ("" if x is None else str(x))


@dataclass(frozen=True)
class Surah:
    number: int
    name: str
    english_name: str
    revelation_type: str

    @property
    def revelation_label(self) -> str:
        return REVELATION_LABELS.get(self.revelation_type, "")

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Surah":
        return cls(
            number=int(row["number"]),
            name=_s(row.get("name")),
            english_name=_s(row.get("englishName")),
            revelation_type=_s(row.get("revelationType")),
        )


@dataclass(frozen=True)
class PageRange:
    start: int
    end: int

    def pages(self) -> range:
        return range(self.start, self.end + 1)


@dataclass(frozen=True)
class Message:
    message: str
    explanation: str


@dataclass(frozen=True)
class Hadith:
    text: str
    authenticity: str


@dataclass(frozen=True)
class FirstKhutbah:
    title: str
    verses: str
    tafsir: str
    reflections: str
    messages: Tuple[Message, ...]
    repentance: str


@dataclass(frozen=True)
class SecondKhutbah:
    hadith: Hadith
    hadith_reflection: str
    dua: str


@dataclass(frozen=True)
class SermonDocument:
    """
    One sermon. Generated sermons carry page_number 0 (no Mushaf page).
    JSON form uses the camelCase keys of the data files.
    """
    id: int
    surah_number: int
    title: str
    page_number: int
    verses: str
    khutbah1: FirstKhutbah
    khutbah2: SecondKhutbah

    @classmethod
    def from_content(cls, content: Dict[str, Any], *, id: int, surah_number: int,
                     page_number: int = 0) -> "SermonDocument":
        """Build from the generated shape (no id/surahNumber/pageNumber)."""
        k1 = content["khutbah1"]
        k2 = content["khutbah2"]
        return cls(
            id=id,
            surah_number=surah_number,
            title=content["title"],
            page_number=page_number,
            verses=content["verses"],
            khutbah1=FirstKhutbah(
                title=k1["title"],
                verses=k1["verses"],
                tafsir=k1["tafsir"],
                reflections=k1["reflections"],
                messages=tuple(
                    Message(message=m["message"], explanation=m["explanation"])
                    for m in k1["messages"]
                ),
                repentance=k1["repentance"],
            ),
            khutbah2=SecondKhutbah(
                hadith=Hadith(
                    text=k2["hadith"]["text"],
                    authenticity=k2["hadith"]["authenticity"],
                ),
                hadith_reflection=k2["hadithReflection"],
                dua=k2["dua"],
            ),
        )

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "SermonDocument":
        return cls.from_content(
            row,
            id=int(row["id"]),
            surah_number=int(row["surahNumber"]),
            page_number=int(row.get("pageNumber") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "surahNumber": self.surah_number,
            "title": self.title,
            "pageNumber": self.page_number,
            "verses": self.verses,
            "khutbah1": {
                "title": self.khutbah1.title,
                "verses": self.khutbah1.verses,
                "tafsir": self.khutbah1.tafsir,
                "reflections": self.khutbah1.reflections,
                "messages": [
                    {"message": m.message, "explanation": m.explanation}
                    for m in self.khutbah1.messages
                ],
                "repentance": self.khutbah1.repentance,
            },
            "khutbah2": {
                "hadith": {
                    "text": self.khutbah2.hadith.text,
                    "authenticity": self.khutbah2.hadith.authenticity,
                },
                "hadithReflection": self.khutbah2.hadith_reflection,
                "dua": self.khutbah2.dua,
            },
        }
