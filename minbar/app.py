#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Interactive sermon browser.

Usage:
  minbar                          # uses MINBAR_STORAGE / GEN_MODEL from the environment
  minbar --storage ./progress.json --model gpt-5-mini --native-schema

Generation and verse previews run on a background event loop so the prompt
stays usable while a request is pending. All session changes are executed on
that loop, one at a time.
"""

from __future__ import annotations
import argparse, asyncio, cmd, sys, threading
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Optional

from minbar import config
from minbar.catalog import CatalogStore
from minbar.generation import GenerationClient
from minbar.metadata import load_page_map, load_seed_sermons, load_surahs, surah_name
from minbar.models import SermonDocument
from minbar.progress import CompletionTracker
from minbar.prompts import load_schema
from minbar.state import (
    SermonSession, back_to_list, can_submit, close_generator, heading,
    open_generator, open_sermon, select_surah, set_search,
)
from minbar.storage import LocalStorage
from minbar.utils import error


# ===== Event loop thread =====
class LoopThread:
    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, name="minbar-loop", daemon=True)

    def start(self) -> "LoopThread":
        self.thread.start()
        return self

    def submit(self, coro) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, fn: Callable[..., Any], *args) -> Any:
        async def _run():
            return fn(*args)
        return self.submit(_run()).result()

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout=5)


# ===== Rendering =====
def render_card(sermon: SermonDocument, name: str, done: bool) -> str:
    mark = "✓" if done else " "
    return f"[{mark}] {sermon.id:>3}  {sermon.title}  (سورة {name} - {sermon.verses})"


def render_sermon(sermon: SermonDocument, name: str, done: bool) -> str:
    k1, k2 = sermon.khutbah1, sermon.khutbah2
    lines = [
        sermon.title,
        f"سورة {name} - {sermon.verses}" + (f" - صفحة {sermon.page_number}" if sermon.page_number else ""),
        "تمت القراءة" if done else "",
        "",
        f"== الخطبة الأولى: {k1.title}",
        k1.verses,
        "",
        "-- التفسير", k1.tafsir,
        "",
        "-- تأملات", k1.reflections,
        "",
        "-- رسائل إيمانية",
    ]
    for i, m in enumerate(k1.messages, 1):
        lines.append(f"{i}. {m.message}: {m.explanation}")
    lines += [
        "",
        "-- دعوة للتوبة", k1.repentance,
        "",
        "== الخطبة الثانية",
        k2.hadith.text,
        f"({k2.hadith.authenticity})",
        "",
        k2.hadith_reflection,
        "",
        "-- الدعاء", k2.dua,
    ]
    return "\n".join(lines)


# ===== Shell =====
class MinbarShell(cmd.Cmd):
    intro = "منبر الجمعة. اكتب help لعرض الأوامر."
    prompt = "minbar> "

    def __init__(self, session: SermonSession, runner: LoopThread, stdout=None):
        super().__init__(stdout=stdout)
        self.session = session
        self.runner = runner

    def _say(self, *lines: str) -> None:
        for line in lines:
            self.stdout.write(f"{line}\n")

    def _apply(self, transition: Callable, *args) -> None:
        def _do():
            self.session.state = transition(self.session.state, *args)
        self.runner.call(_do)

    def _name(self, number: int) -> str:
        return surah_name(self.session.surahs, number)

    def emptyline(self) -> bool:
        return False

    # --- browsing ---
    def do_list(self, arg: str) -> None:
        """list: show sermons matching the current surah and search filters"""
        sermons = self.runner.call(self.session.visible)
        state = self.session.state
        self._say(f"عرض خطب: {heading(state, self.session.surahs)}", f"{len(sermons)} خطبة متاحة")
        if not sermons:
            self._say("لم يتم العثور على نتائج.", "حاول تغيير فلتر السورة أو مصطلح البحث.")
        for s in sermons:
            self._say(render_card(s, self._name(s.surah_number), self.session.tracker.is_done(s.id)))

    def do_surahs(self, arg: str) -> None:
        """surahs: list the surah index"""
        for s in self.session.surahs:
            self._say(f"{s.number:>3}. {s.name}  {s.revelation_label}")

    def do_surah(self, arg: str) -> None:
        """surah N | surah all: filter by surah"""
        arg = arg.strip()
        if arg in ("", "all"):
            self._apply(select_surah, None)
        elif arg.isdigit():
            self._apply(select_surah, int(arg))
        else:
            self._say("usage: surah N | surah all")
            return
        self.do_list("")

    def do_search(self, arg: str) -> None:
        """search TERM: case-insensitive search (empty clears)"""
        self._apply(set_search, arg.strip())
        self.do_list("")

    def do_show(self, arg: str) -> None:
        """show ID: open a sermon"""
        if not arg.strip().isdigit():
            self._say("usage: show ID")
            return
        self._apply(open_sermon, int(arg))
        sermon = self.runner.call(self.session.selected)
        if sermon is None:
            self._say(f"no sermon with id {arg.strip()}")
            self._apply(back_to_list)
            return
        done = self.session.tracker.is_done(sermon.id)
        self._say(render_sermon(sermon, self._name(sermon.surah_number), done))

    def do_back(self, arg: str) -> None:
        """back: return to the list"""
        self._apply(back_to_list)
        self.do_list("")

    def do_done(self, arg: str) -> None:
        """done [ID]: toggle completion of a sermon (default: the open one)"""
        target = arg.strip()
        sermon_id = int(target) if target.isdigit() else self.session.state.selected_sermon_id
        if sermon_id is None:
            self._say("usage: done ID")
            return
        now_done = self.runner.call(self.session.toggle_complete, sermon_id)
        self._say(f"sermon {sermon_id}: {'تمت القراءة' if now_done else 'لم تكتمل'}")

    def do_progress(self, arg: str) -> None:
        """progress: completed / total"""
        tracker = self.session.tracker
        self._say(f"تقدمك: {tracker.completed_count} / {len(self.session.catalog)} ({tracker.ratio():.0f}%)")

    # --- generation ---
    def do_new(self, arg: str) -> None:
        """new N: start a new sermon for surah N and list its sections"""
        if not arg.strip().isdigit():
            self._say("usage: new N")
            return
        self._apply(open_generator)
        self.runner.call(self.session.choose_surah, int(arg))
        self.do_sections("")

    def do_sections(self, arg: str) -> None:
        """sections: list the selectable sections of the draft surah"""
        surah = self.session.state.draft_surah
        if surah is None:
            self._say("no surah chosen: use `new N` first")
            return
        sections = self.runner.call(self.session.sections)
        self._say(f"سورة {self._name(surah)}: {len(sections)} مقطع")
        for i, option in enumerate(sections, 1):
            self._say(f"  {i}. {option}")

    def do_topic(self, arg: str) -> None:
        """topic INDEX|TEXT: pick a section (fetches a verse preview in the background)"""
        arg = arg.strip()
        sections = self.runner.call(self.session.sections)
        if arg.isdigit() and 1 <= int(arg) <= len(sections):
            arg = sections[int(arg) - 1]
        self.runner.submit(self.session.choose_topic(arg)).add_done_callback(self._report_failure)
        self._say(f"topic: {arg or '(none)'}")

    def do_generate(self, arg: str) -> None:
        """generate: submit the current draft (refused while a generation is pending)"""
        if not self.runner.call(can_submit, self.session.state):
            self._say("generation unavailable: pick a surah with `new N` or wait for the pending one")
            return
        future = self.runner.submit(self.session.submit_generation())
        future.add_done_callback(self._generation_done)
        self._say("جاري توليد الخطبة... (status)")

    def _report_failure(self, future: Future) -> None:
        if not future.cancelled() and future.exception() is not None:
            error(f"background task failed: {future.exception()}")

    def _generation_done(self, future: Future) -> None:
        state = self.session.state
        if future.cancelled():
            return
        if future.exception() is not None:
            self._say(f"[error] {future.exception()}")
        elif state.generation_error:
            self._say("حدث خطأ", state.generation_error)
        elif future.result():
            self._say(f"تمت إضافة خطبة جديدة ({len(self.session.catalog)} خطبة)")

    def do_status(self, arg: str) -> None:
        """status: generator and preview state"""
        state = self.session.state
        self._say(
            f"generating: {state.is_generating}",
            f"draft: surah={state.draft_surah} topic={state.draft_topic or '-'}",
        )
        if state.generation_error:
            self._say("حدث خطأ", state.generation_error)
        if state.preview_loading:
            self._say("جاري جلب الآيات...")
        elif state.preview_error:
            self._say(state.preview_error)
        elif state.preview_verses:
            self._say("معاينة الآيات للمقطع المحدد:", state.preview_verses)

    def do_cancel(self, arg: str) -> None:
        """cancel: close the generator (a pending request still completes)"""
        self._apply(close_generator)

    def do_quit(self, arg: str) -> bool:
        """quit: exit"""
        return True

    do_EOF = do_quit


# ===== Wiring =====
def build_session(storage_path: Path, model: str, native_schema: bool,
                  client: Optional[GenerationClient] = None) -> SermonSession:
    surahs = load_surahs()
    catalog = CatalogStore(load_seed_sermons(), surahs=surahs)
    tracker = CompletionTracker(LocalStorage(storage_path), total=lambda: len(catalog))
    schema = load_schema()
    if client is None:
        client = GenerationClient(model=model, native_schema=schema if native_schema else None)
    return SermonSession(catalog, tracker, client, load_page_map(), schema=schema)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Browse, track and generate Friday sermons")
    p.add_argument("--storage", type=Path, default=config.STORAGE_PATH, help="progress store (JSON file)")
    p.add_argument("--model", default=config.GEN_MODEL, help="generation model")
    p.add_argument("--native-schema", action="store_true", default=config.GEN_NATIVE_SCHEMA,
                   help="send the sermon schema as a native json_schema response format")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    session = build_session(args.storage, args.model, args.native_schema)
    runner = LoopThread().start()
    try:
        MinbarShell(session, runner).cmdloop()
    except KeyboardInterrupt:
        print(file=sys.stderr)
    finally:
        runner.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
