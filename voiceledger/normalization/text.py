"""Keyword matching shared by the date resolver and the classifier."""

import re
from functools import lru_cache

from voiceledger.config.settings import KeywordMatching


def normalize_text(value: object) -> str:
    """Lowercase, unify apostrophes and collapse whitespace."""
    if value is None:
        return ""
    text = str(value).replace("’", "'").replace("`", "'")
    return " ".join(text.lower().split())


@lru_cache(maxsize=512)
def _word_pattern(keyword: str) -> re.Pattern:
    # Apostrophes count as word characters: "today's" is not "today".
    return re.compile(r"(?<![\w'])" + re.escape(keyword) + r"(?![\w'])")


def count_keyword(text: str, keyword: str, matching: KeywordMatching) -> int:
    if matching == KeywordMatching.SUBSTRING:
        return text.count(keyword)
    return len(_word_pattern(keyword).findall(text))


def contains_keyword(text: str, keyword: str, matching: KeywordMatching) -> bool:
    return count_keyword(text, keyword, matching) > 0


def strip_keyword(text: str, keyword: str, matching: KeywordMatching) -> str:
    """Blank out every match so shorter keywords cannot match inside it again."""
    if matching == KeywordMatching.SUBSTRING:
        return text.replace(keyword, " ")
    return _word_pattern(keyword).sub(" ", text)


def count_keywords(
    text: str,
    keywords: tuple[str, ...],
    matching: KeywordMatching,
) -> tuple[int, str]:
    """
    Count keyword hits, longest keywords first, consuming each match.

    Returns (hits, remaining_text).
    """
    hits = 0
    for keyword in sorted(keywords, key=len, reverse=True):
        found = count_keyword(text, keyword, matching)
        if found:
            hits += found
            text = strip_keyword(text, keyword, matching)
    return hits, text
