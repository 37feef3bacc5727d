from __future__ import annotations
import json
from pathlib import Path
from typing import Dict, Optional

from minbar.utils import atomic_write_json, warn


class LocalStorage:
    """
    String key/value store kept as one JSON object on disk, localStorage style.
    Every write rewrites the whole file atomically.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._items = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            warn(f"storage file {self.path} unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            warn(f"storage file {self.path} is not a JSON object, starting empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        atomic_write_json(self.path, self._items)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()
