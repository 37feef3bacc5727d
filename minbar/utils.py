from __future__ import annotations
import json, os, sys, tempfile
from pathlib import Path
from typing import Any

from minbar import config

# ===== Logging =====
def log(*a):
    if config.VERBOSE:
        print("[info]", *a, file=sys.stderr, flush=True)

def warn(*a): print("[warn]", *a, file=sys.stderr, flush=True)
def error(*a): print("[error]", *a, file=sys.stderr, flush=True)

# ===== JSON I/O =====
def load_json(path: Path, default: Any) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default
    except (OSError, json.JSONDecodeError) as e:
        warn(f"cannot read {path}: {e}")
        return default

def atomic_write_json(path: Path, obj) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name, dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)
