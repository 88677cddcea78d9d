"""
Best-effort recovery of a human readable title from an opaque attraction id.

Some providers hand us ids that are hex or base64 packed titles. Each
strategy below turns the raw id into candidate text (or None); the first
strategy whose text contains a clean printable segment wins.
"""

import base64
import binascii
import re
import unicodedata
from typing import Callable, List, Optional

FALLBACK_TITLE = "Attraction"

MIN_TITLE_LENGTH = 4
PRINTABLE_RATIO = 0.6

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_B64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_B64_URLSAFE_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")
_WHITESPACE_RE = re.compile(r"\s+")

# Characters that break a run outright
_BREAKING_CATEGORIES = {"Cc", "Cf", "Cs", "Co", "Cn", "Zl", "Zp"}


def _bytes_to_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _from_hex(raw_id: str) -> Optional[str]:
    if len(raw_id) % 2 != 0 or not _HEX_RE.match(raw_id):
        return None
    try:
        return _bytes_to_text(bytes.fromhex(raw_id))
    except ValueError:
        return None


def _from_base64(raw_id: str) -> Optional[str]:
    if len(raw_id) % 4 != 0 or not _B64_RE.match(raw_id):
        return None
    try:
        return _bytes_to_text(base64.b64decode(raw_id, validate=True))
    except (binascii.Error, ValueError):
        return None


def _from_urlsafe_base64(raw_id: str) -> Optional[str]:
    if len(raw_id) % 4 != 0 or not _B64_URLSAFE_RE.match(raw_id):
        return None
    if "-" not in raw_id and "_" not in raw_id:
        # plain alphabet already handled by _from_base64
        return None
    try:
        return _bytes_to_text(base64.urlsafe_b64decode(raw_id))
    except (binascii.Error, ValueError):
        return None


def _as_is(raw_id: str) -> Optional[str]:
    return raw_id


STRATEGIES: List[Callable[[str], Optional[str]]] = [
    _from_hex,
    _from_base64,
    _from_urlsafe_base64,
    _as_is,
]


def _is_printable(ch: str) -> bool:
    category = unicodedata.category(ch)
    return category[0] in ("L", "N", "P") or category == "Zs"


def _is_breaking(ch: str) -> bool:
    return ch == "\ufffd" or unicodedata.category(ch) in _BREAKING_CATEGORIES


def _visible_runs(text: str) -> List[str]:
    runs: List[str] = []
    current: List[str] = []
    for ch in text:
        if _is_breaking(ch):
            if current:
                runs.append("".join(current))
                current = []
        else:
            current.append(ch)
    if current:
        runs.append("".join(current))
    return runs


def sanitize(segment: str) -> str:
    """Collapse whitespace and trim non-alphanumeric edges."""
    cleaned = _WHITESPACE_RE.sub(" ", segment).strip()
    start, end = 0, len(cleaned)
    while start < end and not cleaned[start].isalnum():
        start += 1
    while end > start and not cleaned[end - 1].isalnum():
        end -= 1
    return cleaned[start:end]


def extract_segment(text: str) -> Optional[str]:
    """Longest mostly-printable run of `text`, sanitized, or None.

    Runs are judged after sanitizing, so a long run of punctuation that trims
    to nothing does not hide a shorter readable one.
    """
    best = None
    for run in _visible_runs(text):
        printable = sum(1 for ch in run if _is_printable(ch))
        if printable <= PRINTABLE_RATIO * len(run):
            continue
        title = sanitize(run)
        if len(title) < MIN_TITLE_LENGTH:
            continue
        if best is None or len(title) > len(best):
            best = title
    return best


def decode_title(raw_id) -> str:
    """Return a readable title hidden in `raw_id`, or "" when there is none."""
    if not raw_id or not isinstance(raw_id, str):
        return ""
    raw_id = raw_id.strip()
    for strategy in STRATEGIES:
        text = strategy(raw_id)
        if text is None:
            continue
        title = extract_segment(text)
        if title:
            return title
    return ""


def title_or_fallback(raw_id) -> str:
    return decode_title(raw_id) or FALLBACK_TITLE
