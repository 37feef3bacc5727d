"""
Turn raw model output into a SermonDocument.

normalize() never raises for bad input: it returns either a SermonDocument or
a ValidationError (ParseError / SchemaError) so nothing malformed can reach
the catalog.
"""

from __future__ import annotations
import json, re
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft202012Validator

from minbar.errors import ParseError, SchemaError, ValidationError
from minbar.models import SermonDocument
from minbar.prompts import load_schema

# ```json ... ```  /  ``` ... ```  (language tag optional)
FENCE_RE = re.compile(r"^```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n?(?P<body>.*?)\r?\n?```$", re.S)

_validator: Optional[Draft202012Validator] = None


def sermon_validator() -> Draft202012Validator:
    global _validator
    if _validator is None:
        _validator = Draft202012Validator(load_schema())
    return _validator


def strip_fences(text: str) -> str:
    text = (text or "").strip()
    m = FENCE_RE.match(text)
    if m:
        return m.group("body").strip()
    return text


def parse_content(text: str) -> Union[Dict[str, Any], ParseError]:
    try:
        obj = json.loads(strip_fences(text))
    except json.JSONDecodeError as e:
        return ParseError(f"JSON decode error at pos {e.pos} (line {e.lineno} col {e.colno}): {e.msg}")
    except RecursionError:
        return ParseError("JSON decode error: nesting too deep")
    if not isinstance(obj, dict):
        return ParseError(f"expected a JSON object, got {type(obj).__name__}")
    return obj


def _error_path(err) -> List[str]:
    loc = [str(p) for p in err.absolute_path]
    if err.validator == "required" and isinstance(err.instance, dict):
        missing = [k for k in err.validator_value if k not in err.instance]
        if missing:
            loc.append(missing[0])
    return loc


def validate_content(obj: Any, validator: Optional[Draft202012Validator] = None) -> Optional[SchemaError]:
    """First schema violation (shallowest path first), or None."""
    validator = validator or sermon_validator()
    errors = sorted(validator.iter_errors(obj), key=lambda e: (len(e.absolute_path), _error_path(e)))
    if not errors:
        return None
    err = errors[0]
    return SchemaError("/".join(_error_path(err)) or "(root)", err.message)


def normalize(raw_text: str, surah_number: int, identifier: int) -> Union[SermonDocument, ValidationError]:
    content = parse_content(raw_text)
    if isinstance(content, ParseError):
        return content
    try:
        problem = validate_content(content)
    except RecursionError:
        problem = SchemaError("(root)", "nesting too deep to validate")
    if problem is not None:
        return problem
    return SermonDocument.from_content(content, id=identifier, surah_number=surah_number, page_number=0)
