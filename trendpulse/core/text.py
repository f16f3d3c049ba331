"""Text cleaning helpers for titles and snippets coming from noisy sources.

Headlines from aggregators arrive with publisher suffixes (``"... - 연합뉴스"``),
bracketed tags (``[속보]``, ``(종합)``), HTML entities and stray markup. These
helpers turn them into display titles and into the grouping keys used by the
deterministic merge.
"""

import html
import re
import unicodedata
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from trendpulse.core.logging import get_logger

logger = get_logger(__name__)

MERGE_KEY_LENGTH = 15
TITLE_SNIPPET_LENGTH = 50

_BRACKETED = re.compile(r"\[.*?\]")
_PARENTHESIZED = re.compile(r"\(.*?\)")
_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w가-힣]")
_QUOTED = re.compile(r"['\"“”‘’]([^'\"“”‘’]+)['\"“”‘’]")
_ELLIPSIS_LEAD = re.compile(r"[\"']?([^…]+)…")
_CLAUSE_SPLIT = re.compile(r"[,.…·|]")


def strip_markup(text: str) -> str:
    """Remove HTML tags, script/style bodies and entities; collapse whitespace."""
    if not text:
        return ""

    if "<" in text:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
            soup = BeautifulSoup(text, "html.parser")
        for element in soup(["script", "style"]):
            element.decompose()
        text = soup.get_text(" ")

    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


def _clean_title_once(title: str) -> str:
    text = strip_markup(unicodedata.normalize("NFC", title))
    text = _BRACKETED.sub("", text)
    text = _PARENTHESIZED.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    # Aggregator headlines end with " - <publisher>"
    text = text.split(" - ")[0]
    return text.strip()


def clean_title(title: Optional[str]) -> str:
    """
    Clean a raw headline into a display title.

    Drops markup and entities, bracketed/parenthesized tags and the trailing
    publisher suffix. Applied until stable, so cleaning a cleaned title is a
    no-op.

    Args:
        title: Raw headline text

    Returns:
        Cleaned title (possibly empty)
    """
    if not title:
        return ""

    text = title
    while True:
        cleaned = _clean_title_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def clean_snippet(snippet: Optional[str], max_length: int = 100) -> str:
    """Strip markup from a feed snippet and cut it to ``max_length`` chars."""
    if not snippet:
        return ""
    return strip_markup(snippet)[:max_length].strip()


def merge_key(title: str, length: int = MERGE_KEY_LENGTH) -> str:
    """
    Grouping key for the deterministic merge.

    Whitespace and every char that is neither a word char nor Hangul are
    removed, the rest is lowercased and cut to ``length`` chars.
    """
    key = _WHITESPACE.sub("", title or "")
    key = _NON_WORD.sub("", key)
    return key.lower()[:length]


def dedup_key(title: str) -> str:
    """Prefix key used to de-duplicate heuristic picks; never empty for a non-empty title."""
    return merge_key(title) or (title or "").strip().lower()[:MERGE_KEY_LENGTH]


def extract_core_topic(title: str) -> str:
    """
    Pull the core topic out of a headline.

    Preference order: a quoted phrase, the lead before an ellipsis, the first
    clause when it is of reasonable length, else the first 25 chars.
    """
    quoted = _QUOTED.search(title)
    if quoted:
        return quoted.group(1).strip()

    ellipsis = _ELLIPSIS_LEAD.search(title)
    if ellipsis and len(ellipsis.group(1)) > 5:
        return ellipsis.group(1).strip()

    first_part = _CLAUSE_SPLIT.split(title)[0].strip()
    if 3 < len(first_part) < 30:
        return first_part

    return title[:25].strip()


def extract_product_name(title: str) -> str:
    """Product name from a shopping headline: a quoted name, else the first clause."""
    quoted = _QUOTED.search(title)
    if quoted:
        return quoted.group(1).strip()

    cleaned = _BRACKETED.sub("", title)
    cleaned = _PARENTHESIZED.sub("", cleaned)
    cleaned = _CLAUSE_SPLIT.split(cleaned)[0].strip()
    return cleaned[:30].strip()


def strip_enclosing_quotes(text: str) -> str:
    """Remove one leading and one trailing quote character."""
    return re.sub(r"^[\"'“”‘’]|[\"'“”‘’]$", "", text.strip()).strip()
