import asyncio
import copy
import json
from pathlib import Path

from minbar.catalog import CatalogStore
from minbar.metadata import load_page_map, load_seed_sermons, load_surahs
from minbar.progress import CompletionTracker
from minbar.state import SermonSession
from minbar.storage import LocalStorage

MINIMAL = {
    "title": "T",
    "verses": "V",
    "khutbah1": {
        "title": "t1",
        "verses": "v1",
        "tafsir": "x",
        "reflections": "y",
        "messages": [{"message": "m", "explanation": "e"}],
        "repentance": "r",
    },
    "khutbah2": {
        "hadith": {"text": "h", "authenticity": "a"},
        "hadithReflection": "hr",
        "dua": "d",
    },
}


def minimal_content(**overrides) -> dict:
    content = copy.deepcopy(MINIMAL)
    content.update(overrides)
    return content


def minimal_raw() -> str:
    return json.dumps(MINIMAL)


class FakeClient:
    """Stands in for GenerationClient; calls can be held open with gates."""

    def __init__(self, result=None):
        self.result = minimal_raw() if result is None else result
        self.generate_calls = []
        self.preview_calls = []
        self.generate_gate = None
        self.preview_gates = []
        self.preview_error = None

    async def generate(self, request_text, contract_text):
        self.generate_calls.append((request_text, contract_text))
        if self.generate_gate is not None:
            await self.generate_gate.wait()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def complete(self, prompt):
        index = len(self.preview_calls)
        self.preview_calls.append(prompt)
        gate = asyncio.Event()
        self.preview_gates.append(gate)
        await gate.wait()
        if self.preview_error is not None:
            raise self.preview_error
        return f"  verses {index}  "


def make_session(storage_dir: Path, client=None) -> SermonSession:
    surahs = load_surahs()
    catalog = CatalogStore(load_seed_sermons(), surahs=surahs)
    storage = LocalStorage(Path(storage_dir) / "storage.json")
    tracker = CompletionTracker(storage, total=lambda: len(catalog))
    return SermonSession(catalog, tracker, client or FakeClient(), load_page_map())
