from __future__ import annotations
import json
from typing import Callable, List, Set

from minbar.errors import StorageError
from minbar.storage import LocalStorage
from minbar.utils import warn

PROGRESS_KEY = "sermon_progress"


def _decode(raw: str) -> List[int]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageError(f"{PROGRESS_KEY} is not JSON: {e.msg}") from e
    if not isinstance(data, list) or not all(
        isinstance(x, int) and not isinstance(x, bool) for x in data
    ):
        raise StorageError(f"{PROGRESS_KEY} must be a JSON array of integers")
    return data


class CompletionTracker:
    """
    Completed sermon ids, persisted in full on every toggle. Corrupt stored
    progress is dropped (and the entry removed) instead of being reported.
    """

    def __init__(self, storage: LocalStorage, total: Callable[[], int]):
        self.storage = storage
        self.total = total
        self._done: Set[int] = set(self._load())
        self._save()

    def _load(self) -> List[int]:
        raw = self.storage.get_item(PROGRESS_KEY)
        if raw is None:
            return []
        try:
            return _decode(raw)
        except StorageError as e:
            warn(f"failed to load progress, resetting: {e}")
            self.storage.remove_item(PROGRESS_KEY)
            return []

    def _save(self) -> None:
        self.storage.set_item(PROGRESS_KEY, json.dumps(sorted(self._done)))

    @property
    def completed_count(self) -> int:
        return len(self._done)

    def is_done(self, sermon_id: int) -> bool:
        return sermon_id in self._done

    def toggle(self, sermon_id: int) -> bool:
        """Flip membership; returns the new state."""
        if sermon_id in self._done:
            self._done.discard(sermon_id)
        else:
            self._done.add(sermon_id)
        self._save()
        return sermon_id in self._done

    def ratio(self) -> float:
        total = self.total()
        if total <= 0:
            return 0.0
        return min(100.0, 100.0 * len(self._done) / total)
