"""
Runtime settings, read once from the environment (and an optional .env file).

  GEN_MODEL          model used for sermon generation and verse previews
  GEN_TEMP           sampling temperature; unset = let the service decide
  GEN_NATIVE_SCHEMA  "1" = send the sermon schema as a native json_schema format
  OPENAI_PROJECT     optional OpenAI project id (the API key stays in OPENAI_API_KEY)
  MINBAR_STORAGE     path of the local key-value store holding progress
  VERBOSE            "0" silences [info] lines
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# ===== Config =====
GEN_MODEL          = os.getenv("GEN_MODEL", "gpt-5-mini")
GEN_NATIVE_SCHEMA  = os.getenv("GEN_NATIVE_SCHEMA", "0") == "1"
OPENAI_PROJECT     = os.getenv("OPENAI_PROJECT") or None
VERBOSE            = os.getenv("VERBOSE", "1") != "0"

STORAGE_PATH = Path(
    os.getenv("MINBAR_STORAGE", str(Path.home() / ".minbar" / "storage.json"))
).expanduser()


def _float_or_none(raw: Optional[str]) -> Optional[float]:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


GEN_TEMP = _float_or_none(os.getenv("GEN_TEMP"))

# ===== Paths =====
PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = PACKAGE_DIR / "data"
SCHEMA_PATH = PACKAGE_DIR / "schemas" / "sermon.schema.json"

SURAHS_PATH = DATA_DIR / "surahs.json"
PAGES_PATH = DATA_DIR / "pages.json"
SERMONS_PATH = DATA_DIR / "sermons.json"
