import asyncio
import json
import unittest
from tempfile import TemporaryDirectory
from unittest.mock import patch

from minbar.errors import FORMAT_MESSAGE, NETWORK_MESSAGE, TransportError
from minbar.metadata import load_surahs
from minbar.state import (
    ALL_SERMONS,
    PREVIEW_FAILED,
    AppState,
    back_to_list,
    can_submit,
    choose_draft_surah,
    current_filter,
    heading,
    open_generator,
    open_sermon,
    select_surah,
    set_search,
)
from tests.fixtures import FakeClient, make_session, minimal_content


class TestTransitions(unittest.TestCase):
    def test_select_surah_clears_open_sermon(self) -> None:
        state = open_sermon(AppState(), 3)

        state = select_surah(state, 112)

        self.assertEqual(state.selected_surah, 112)
        self.assertIsNone(state.selected_sermon_id)

    def test_transitions_return_new_values(self) -> None:
        state = AppState()

        changed = set_search(state, "rahma")

        self.assertEqual(state.search_term, "")
        self.assertEqual(current_filter(changed).search, "rahma")

    def test_back_to_list(self) -> None:
        self.assertIsNone(back_to_list(open_sermon(AppState(), 1)).selected_sermon_id)

    def test_open_generator_clears_previous_error(self) -> None:
        state = AppState(generation_error="old")

        self.assertIsNone(open_generator(state).generation_error)

    def test_choose_draft_surah_resets_topic_and_preview(self) -> None:
        state = AppState(draft_surah=1, draft_topic="x", preview_verses="v", preview_error="e")

        state = choose_draft_surah(state, 2)

        self.assertEqual((state.draft_surah, state.draft_topic), (2, ""))
        self.assertEqual(state.preview_verses, "")
        self.assertIsNone(state.preview_error)

    def test_can_submit(self) -> None:
        self.assertFalse(can_submit(AppState()))
        self.assertTrue(can_submit(AppState(draft_surah=1)))
        self.assertFalse(can_submit(AppState(draft_surah=1, is_generating=True)))

    def test_heading(self) -> None:
        surahs = load_surahs()

        self.assertEqual(heading(AppState(), surahs), ALL_SERMONS)
        self.assertEqual(heading(AppState(selected_surah=67), surahs), "الملك")


class TestSessionGeneration(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.client = FakeClient()
        self.session = make_session(self._tmp.name, self.client)
        self.session.state = open_generator(self.session.state)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_success_appends_and_returns_to_list(self) -> None:
        size = len(self.session.catalog)
        next_id = self.session.catalog.next_id
        self.session.choose_surah(112)
        self.session.state = open_sermon(self.session.state, 1)

        accepted = await self.session.submit_generation()

        self.assertTrue(accepted)
        self.assertEqual(len(self.session.catalog), size + 1)
        added = self.session.catalog.find(next_id)
        self.assertEqual(added.surah_number, 112)
        self.assertEqual(added.page_number, 0)
        state = self.session.state
        self.assertFalse(state.is_generating)
        self.assertFalse(state.generator_open)
        self.assertIsNone(state.selected_sermon_id)
        self.assertIsNone(state.generation_error)
        self.assertIsNone(state.draft_surah)

    async def test_request_carries_topic_and_contract(self) -> None:
        await self.session.submit_generation(67, "صفحة 562 - الجزء الأول")

        request, contract = self.client.generate_calls[0]
        self.assertIn("الملك", request)
        self.assertIn("صفحة 562 - الجزء الأول", request)
        self.assertIn("JSON", contract)

    async def test_transport_failure_leaves_catalog_unchanged(self) -> None:
        self.client.result = TransportError("offline")
        size = len(self.session.catalog)

        with patch("minbar.state.error"):
            accepted = await self.session.submit_generation(1, "")

        self.assertTrue(accepted)
        self.assertEqual(len(self.session.catalog), size)
        self.assertEqual(self.session.state.generation_error, NETWORK_MESSAGE)
        self.assertFalse(self.session.state.is_generating)
        self.assertTrue(self.session.state.generator_open)

    async def test_schema_failure_message_includes_diagnostic(self) -> None:
        content = minimal_content()
        del content["khutbah2"]["hadith"]["authenticity"]
        self.client.result = json.dumps(content)
        size = len(self.session.catalog)

        with patch("minbar.state.error"):
            await self.session.submit_generation(1, "")

        message = self.session.state.generation_error
        self.assertEqual(len(self.session.catalog), size)
        self.assertTrue(message.startswith(FORMAT_MESSAGE.split("{detail}")[0]))
        self.assertIn("khutbah2/hadith/authenticity", message)

    async def test_parse_failure_message_includes_diagnostic(self) -> None:
        self.client.result = '{"title": "T", '

        with patch("minbar.state.error"):
            await self.session.submit_generation(1, "")

        self.assertIn("JSON decode error", self.session.state.generation_error)

    async def test_deeply_nested_reply_reports_format_error(self) -> None:
        self.client.result = "[" * 100000 + "]" * 100000
        size = len(self.session.catalog)

        with patch("minbar.state.error"):
            accepted = await self.session.submit_generation(1, "")

        self.assertTrue(accepted)
        self.assertEqual(len(self.session.catalog), size)
        self.assertIn("nesting too deep", self.session.state.generation_error)
        self.assertFalse(self.session.state.is_generating)

    async def test_second_submission_refused_while_pending(self) -> None:
        self.client.generate_gate = asyncio.Event()
        first = asyncio.create_task(self.session.submit_generation(1, ""))
        await asyncio.sleep(0)
        self.assertTrue(self.session.state.is_generating)
        self.assertFalse(can_submit(self.session.state))

        with patch("minbar.state.warn"):
            second = await self.session.submit_generation(2, "")

        self.client.generate_gate.set()
        self.assertTrue(await first)
        self.assertFalse(second)
        self.assertEqual(len(self.client.generate_calls), 1)
        self.assertFalse(self.session.state.is_generating)

    async def test_retry_after_failure_is_allowed(self) -> None:
        self.client.result = TransportError("offline")
        with patch("minbar.state.error"):
            await self.session.submit_generation(1, "")
        self.client.result = json.dumps(minimal_content())
        size = len(self.session.catalog)

        await self.session.submit_generation(1, "")

        self.assertEqual(len(self.session.catalog), size + 1)
        self.assertIsNone(self.session.state.generation_error)

    async def test_refused_without_surah(self) -> None:
        with patch("minbar.state.warn"):
            self.assertFalse(await self.session.submit_generation())
        self.assertEqual(self.client.generate_calls, [])


class TestSessionPreview(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.client = FakeClient()
        self.session = make_session(self._tmp.name, self.client)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_sections_follow_page_map(self) -> None:
        self.assertEqual(len(self.session.choose_surah(67)), 6)
        self.assertEqual(self.session.choose_surah(21), [])

    async def test_preview_result_is_rendered(self) -> None:
        sections = self.session.choose_surah(112)
        task = asyncio.create_task(self.session.choose_topic(sections[0]))
        await asyncio.sleep(0)
        self.assertTrue(self.session.state.preview_loading)

        self.client.preview_gates[0].set()
        await task

        self.assertFalse(self.session.state.preview_loading)
        self.assertEqual(self.session.state.preview_verses, "verses 0")
        self.assertIn("الإخلاص", self.client.preview_calls[0])

    async def test_latest_preview_supersedes_older(self) -> None:
        sections = self.session.choose_surah(1)
        first = asyncio.create_task(self.session.choose_topic(sections[0]))
        await asyncio.sleep(0)
        second = asyncio.create_task(self.session.choose_topic(sections[1]))
        await asyncio.sleep(0)

        self.client.preview_gates[1].set()
        await second
        with patch("minbar.state.log"):
            self.client.preview_gates[0].set()
            await first

        self.assertEqual(self.session.state.draft_topic, sections[1])
        self.assertEqual(self.session.state.preview_verses, "verses 1")

    async def test_result_for_abandoned_surah_is_discarded(self) -> None:
        sections = self.session.choose_surah(1)
        task = asyncio.create_task(self.session.choose_topic(sections[0]))
        await asyncio.sleep(0)

        self.session.choose_surah(2)
        with patch("minbar.state.log"):
            self.client.preview_gates[0].set()
            await task

        self.assertEqual(self.session.state.draft_surah, 2)
        self.assertEqual(self.session.state.preview_verses, "")

    async def test_preview_failure_sets_error(self) -> None:
        self.client.preview_error = TransportError("offline")
        sections = self.session.choose_surah(1)
        task = asyncio.create_task(self.session.choose_topic(sections[0]))
        await asyncio.sleep(0)

        with patch("minbar.state.error"):
            self.client.preview_gates[0].set()
            await task

        self.assertEqual(self.session.state.preview_error, PREVIEW_FAILED)
        self.assertFalse(self.session.state.preview_loading)

    async def test_clearing_topic_clears_preview(self) -> None:
        self.session.choose_surah(1)

        await self.session.choose_topic("")

        self.assertEqual(self.session.state.preview_verses, "")
        self.assertEqual(self.client.preview_calls, [])


class TestSessionBrowsing(unittest.TestCase):
    def test_visible_and_selected_follow_state(self) -> None:
        with TemporaryDirectory() as tmpdir:
            session = make_session(tmpdir)
            session.state = select_surah(session.state, 112)

            visible = session.visible()
            session.state = open_sermon(session.state, visible[0].id)

            self.assertTrue(all(s.surah_number == 112 for s in visible))
            self.assertEqual(session.selected().id, visible[0].id)

    def test_toggle_complete_updates_ratio(self) -> None:
        with TemporaryDirectory() as tmpdir:
            session = make_session(tmpdir)
            total = len(session.catalog)

            session.toggle_complete(1)

            self.assertAlmostEqual(session.tracker.ratio(), 100.0 / total)


if __name__ == "__main__":
    unittest.main()
