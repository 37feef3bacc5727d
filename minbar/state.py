"""
Explicit application state plus the session that drives generation.

AppState is immutable; every transition returns a new value, so filtering and
generation can be exercised without any rendering. SermonSession owns the
catalog, the completion tracker and the generation client, and is the only
place state changes while a remote call is pending.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from minbar.catalog import CatalogStore, SermonFilter
from minbar.errors import MinbarError, TransportError, ValidationError, user_message
from minbar.generation import GenerationClient
from minbar.metadata import sections_for, surah_name
from minbar.models import PageRange, SermonDocument, Surah
from minbar.progress import CompletionTracker
from minbar.prompts import build_generation_prompt, build_preview_prompt
from minbar.utils import error, log, warn
from minbar.validator import normalize

ALL_SERMONS = "كل الخطب"
PREVIEW_NO_NAME = "لم يتم العثور على اسم السورة."
PREVIEW_FAILED = "فشل في جلب معاينة الآيات. يرجى المحاولة مرة أخرى."


@dataclass(frozen=True)
class AppState:
    selected_surah: Optional[int] = None
    search_term: str = ""
    selected_sermon_id: Optional[int] = None
    # generator dialog
    generator_open: bool = False
    is_generating: bool = False
    generation_error: Optional[str] = None
    draft_surah: Optional[int] = None
    draft_topic: str = ""
    preview_verses: str = ""
    preview_loading: bool = False
    preview_error: Optional[str] = None


# ===== Transitions =====
def select_surah(state: AppState, number: Optional[int]) -> AppState:
    return replace(state, selected_surah=number, selected_sermon_id=None)

def set_search(state: AppState, term: str) -> AppState:
    return replace(state, search_term=term or "")

def open_sermon(state: AppState, sermon_id: int) -> AppState:
    return replace(state, selected_sermon_id=sermon_id)

def back_to_list(state: AppState) -> AppState:
    return replace(state, selected_sermon_id=None)

def open_generator(state: AppState) -> AppState:
    return replace(state, generator_open=True, generation_error=None)

def close_generator(state: AppState) -> AppState:
    return replace(state, generator_open=False)

def choose_draft_surah(state: AppState, number: Optional[int]) -> AppState:
    """A new surah resets the topic and any preview."""
    return replace(
        state,
        draft_surah=number,
        draft_topic="",
        preview_verses="",
        preview_loading=False,
        preview_error=None,
    )

def can_submit(state: AppState) -> bool:
    return state.draft_surah is not None and not state.is_generating

def current_filter(state: AppState) -> SermonFilter:
    return SermonFilter(surah_number=state.selected_surah, search=state.search_term)

def heading(state: AppState, surahs: Sequence[Surah]) -> str:
    if state.selected_surah is None:
        return ALL_SERMONS
    return surah_name(surahs, state.selected_surah)


# ===== Session =====
class SermonSession:
    def __init__(
        self,
        catalog: CatalogStore,
        tracker: CompletionTracker,
        client: GenerationClient,
        page_map: Dict[int, PageRange],
        schema: Optional[Dict[str, Any]] = None,
        state: AppState = AppState(),
    ):
        self.catalog = catalog
        self.tracker = tracker
        self.client = client
        self.page_map = page_map
        self.schema = schema
        self.state = state
        self._preview_seq = 0

    @property
    def surahs(self) -> Tuple[Surah, ...]:
        return self.catalog.surahs

    # --- browsing ---
    def visible(self) -> Tuple[SermonDocument, ...]:
        return self.catalog.list(current_filter(self.state))

    def selected(self) -> Optional[SermonDocument]:
        if self.state.selected_sermon_id is None:
            return None
        return self.catalog.find(self.state.selected_sermon_id)

    def sections(self) -> List[str]:
        if self.state.draft_surah is None:
            return []
        return sections_for(self.state.draft_surah, self.page_map)

    def toggle_complete(self, sermon_id: int) -> bool:
        return self.tracker.toggle(sermon_id)

    # --- generation ---
    async def submit_generation(self, surah_number: Optional[int] = None,
                                topic: Optional[str] = None) -> bool:
        """
        Run one generation. Returns False (and does nothing) when another
        generation is still pending or no surah is chosen.
        """
        if surah_number is None:
            surah_number = self.state.draft_surah
        if topic is None:
            topic = self.state.draft_topic
        if self.state.is_generating:
            warn("generation already in progress; request refused")
            return False
        if surah_number is None:
            warn("no surah selected; request refused")
            return False

        self.state = replace(self.state, is_generating=True, generation_error=None)
        try:
            await self._generate(surah_number, topic)
        finally:
            self.state = replace(self.state, is_generating=False)
        return True

    async def _generate(self, surah_number: int, topic: str) -> None:
        prompt = build_generation_prompt(surah_number, topic, self.surahs, self.schema)
        try:
            raw = await self.client.generate(prompt.request, prompt.contract)
        except TransportError as e:
            self._generation_failed(e)
            return
        result = normalize(raw, surah_number, self.catalog.next_id)
        if isinstance(result, ValidationError):
            self._generation_failed(result)
            return
        self.catalog.append(result)
        log(f"added sermon id={result.id} surah={surah_number} title={result.title!r}")
        self.state = replace(
            choose_draft_surah(self.state, None),
            generator_open=False,
            selected_sermon_id=None,
        )

    def _generation_failed(self, exc: MinbarError) -> None:
        error(f"failed to generate sermon: {exc}")
        self.state = replace(self.state, generation_error=user_message(exc))

    # --- verse preview ---
    def choose_surah(self, number: Optional[int]) -> List[str]:
        self.state = choose_draft_surah(self.state, number)
        return self.sections()

    async def choose_topic(self, topic: str) -> None:
        """
        Set the draft topic and fetch its verses. Only the latest request is
        rendered; results that arrive for an older selection are dropped.
        """
        topic = topic or ""
        self._preview_seq += 1
        token = self._preview_seq
        self.state = replace(self.state, draft_topic=topic)
        surah = self.state.draft_surah
        if not topic or surah is None:
            self.state = replace(self.state, preview_verses="", preview_loading=False, preview_error=None)
            return
        name = surah_name(self.surahs, surah)
        if not name:
            self.state = replace(self.state, preview_error=PREVIEW_NO_NAME)
            return

        self.state = replace(self.state, preview_loading=True, preview_error=None, preview_verses="")
        verses, problem = "", None
        try:
            verses = await self.client.complete(build_preview_prompt(name, topic))
        except TransportError as e:
            problem = e

        current = (self.state.draft_surah, self.state.draft_topic)
        if token != self._preview_seq or current != (surah, topic):
            log(f"discarding stale preview for surah={surah} topic={topic!r}")
            return
        if problem is not None:
            error(f"failed to fetch preview verses: {problem}")
        self.state = replace(
            self.state,
            preview_loading=False,
            preview_verses="" if problem else verses.strip(),
            preview_error=PREVIEW_FAILED if problem else None,
        )
