import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from minbar.metadata import (
    load_page_map,
    load_seed_sermons,
    load_surahs,
    sections_for,
    surah_name,
)
from minbar.models import PageRange
from minbar.validator import validate_content


class TestMetadata(unittest.TestCase):
    def test_surah_table_is_complete(self) -> None:
        surahs = load_surahs()

        self.assertEqual([s.number for s in surahs], list(range(1, 115)))
        self.assertEqual({s.revelation_type for s in surahs}, {"Meccan", "Medinan"})

    def test_revelation_label(self) -> None:
        surahs = {s.number: s for s in load_surahs()}

        self.assertEqual(surahs[1].revelation_label, "مكية")
        self.assertEqual(surahs[2].revelation_label, "مدنية")

    def test_surah_name_unknown_is_empty(self) -> None:
        surahs = load_surahs()

        self.assertEqual(surah_name(surahs, 36), "يس")
        self.assertEqual(surah_name(surahs, 0), "")

    def test_sections_two_per_page(self) -> None:
        page_map = {5: PageRange(start=106, end=107)}

        self.assertEqual(
            sections_for(5, page_map),
            [
                "صفحة 106 - الجزء الأول",
                "صفحة 106 - الجزء الثاني",
                "صفحة 107 - الجزء الأول",
                "صفحة 107 - الجزء الثاني",
            ],
        )

    def test_sections_for_unmapped_surah_is_empty(self) -> None:
        self.assertEqual(sections_for(50, load_page_map()), [])

    def test_page_map_single_page_surah(self) -> None:
        page_map = load_page_map()

        self.assertEqual(page_map[108], PageRange(start=602, end=602))
        self.assertEqual(len(sections_for(108, page_map)), 2)

    def test_bad_page_range_is_skipped(self) -> None:
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "pages.json"
            path.write_text(json.dumps({"1": {"start": 1, "end": 1}, "2": {"start": 2}}), encoding="utf-8")

            with patch("minbar.metadata.warn") as warn:
                page_map = load_page_map(path)

        self.assertEqual(list(page_map), [1])
        warn.assert_called_once()

    def test_seed_sermons_match_generation_schema(self) -> None:
        for sermon in load_seed_sermons():
            with self.subTest(sermon=sermon.id):
                data = sermon.to_dict()
                for key in ("id", "surahNumber", "pageNumber"):
                    data.pop(key)
                self.assertIsNone(validate_content(data))


if __name__ == "__main__":
    unittest.main()
