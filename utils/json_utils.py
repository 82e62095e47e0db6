"""Shared JSON parsing helpers for model and endpoint output.

Usage note:
    Import `safe_parse_json` / `strip_code_fences` from this module so JSON
    handling stays centralized.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Optional

_OPEN_FENCE_RE = re.compile(r"^```(?:json)?[ \t]*\n?", flags=re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"\n?```$")


def strip_code_fences(text_str: str) -> str:
    """Remove the leading ``` / ```json and trailing ``` the model sometimes wraps its JSON in.

    Backticks inside the payload are left alone.
    """
    s = (text_str or "").strip()
    s = _OPEN_FENCE_RE.sub("", s, count=1)
    s = _CLOSE_FENCE_RE.sub("", s, count=1)
    return s.strip()


def _looks_like_worksheet(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    if isinstance(obj.get("worksheet"), dict):
        return True
    return isinstance(obj.get("sections"), list)


def _prefer(obj_list: Iterable[Any]) -> Optional[Any]:
    """Prefer objects shaped like a worksheet (or a wrapper around one); else first dict."""
    objs = list(obj_list)
    for o in objs:
        if _looks_like_worksheet(o):
            return o
    for o in objs:
        if isinstance(o, dict):
            return o
    return None


def _balanced_objects(s: str) -> List[str]:
    """Collect every top-level {...} span, skipping braces inside strings."""
    spans: List[str] = []
    depth = 0
    in_str = False
    esc = False
    start = None
    for i, ch in enumerate(s):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                spans.append(s[start : i + 1])
                start = None
    return spans


def safe_parse_json(text_str: str) -> Optional[Any]:
    """Best-effort extractor for a JSON object from an LLM or endpoint response."""
    s = (text_str or "").strip()
    if not s:
        return None

    try:
        return json.loads(s)
    except ValueError:
        pass

    try:
        return json.loads(strip_code_fences(s))
    except ValueError:
        pass

    parsed = []
    for cand in _balanced_objects(s):
        try:
            parsed.append(json.loads(cand))
        except ValueError:
            continue
    return _prefer(parsed)
