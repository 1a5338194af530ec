"""
Natural Date Resolver

Turns what people say ("ieri", "il 7 luglio", "yesterday") into a strict
YYYY-MM-DD string, anchored to a supplied "now".

The resolver never raises. If it cannot resolve a token it hands the
token back unchanged and the caller applies its fallback policy.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from voiceledger.config.settings import KeywordMatching
from voiceledger.normalization.tables import MONTH_NAMES, RELATIVE_DAY_OFFSETS
from voiceledger.normalization.text import contains_keyword, normalize_text


STRICT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# "7 luglio", "7 of july", "il 7 di luglio 2024", "1° marzo"
_DAY_MONTH_NAME_RE = re.compile(
    r"(?<!\d)(\d{1,2})(?:st|nd|rd|th|°|º)?\s+"
    r"(?:(?:of|di|del|de)\s+)?"
    r"([a-z]+)\.?"
    r"(?:,?\s+(?:del\s+)?(\d{4}))?"
)

# "12/06", "12/06/2024", "12.06.24", "12-06-2024"
_NUMERIC_DMY_RE = re.compile(
    r"(?<![\d/.\-])(\d{1,2})([/.\-])(\d{1,2})(?:\2(\d{4}|\d{2}))?(?![\d/.\-])"
)

_RELATIVE_KEYWORDS = sorted(RELATIVE_DAY_OFFSETS, key=len, reverse=True)

AnchorType = Union[datetime, date]


def _anchor_date(now: AnchorType) -> date:
    return now.date() if isinstance(now, datetime) else now


def is_strict_date(value: object) -> bool:
    """True for a YYYY-MM-DD string naming a real calendar day."""
    if not isinstance(value, str) or not STRICT_DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _resolve_relative(text: str, anchor: date, matching: KeywordMatching) -> Optional[date]:
    for keyword in _RELATIVE_KEYWORDS:
        if contains_keyword(text, keyword, matching):
            return anchor + timedelta(days=RELATIVE_DAY_OFFSETS[keyword])
    return None


def _resolve_positional(text: str, anchor: date) -> Optional[date]:
    text = re.sub(r"\bprimo\b", "1", text)

    for match in _DAY_MONTH_NAME_RE.finditer(text):
        month = MONTH_NAMES.get(match.group(2))
        if month is None:
            continue
        year = int(match.group(3)) if match.group(3) else anchor.year
        return _safe_date(year, month, int(match.group(1)))

    match = _NUMERIC_DMY_RE.search(text)
    if match:
        day, month, year_text = int(match.group(1)), int(match.group(3)), match.group(4)
        if year_text is None:
            year = anchor.year
        elif len(year_text) == 2:
            year = 2000 + int(year_text)
        else:
            year = int(year_text)
        return _safe_date(year, month, day)

    return None


def resolve_date(
    token: object,
    now: AnchorType,
    matching: KeywordMatching = KeywordMatching.WORD,
) -> str:
    """
    Resolve a natural-language date token against `now`.

    Order: relative-day keywords, then day/month patterns (year defaults
    to the anchor's year), then strict pass-through. Anything else comes
    back unchanged.
    """
    if token is None:
        return ""
    original = token if isinstance(token, str) else str(token)
    text = normalize_text(original)
    if not text:
        return original

    anchor = _anchor_date(now)

    resolved = _resolve_relative(text, anchor, matching)
    if resolved is None:
        resolved = _resolve_positional(text, anchor)
    if resolved is not None:
        return resolved.isoformat()

    if is_strict_date(text):
        return text
    return original
