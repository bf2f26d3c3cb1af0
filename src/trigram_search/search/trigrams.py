"""Trigram decomposition shared by indexing and querying.

The same source must be used on both paths: a record only matches a pattern
when both strings decompose into overlapping trigram sets.

Normalization:
- Unicode NFKD, accents and other non-ASCII characters dropped
- Lowercased; every character outside a-z becomes a word separator
- Word boundaries are marked with ``*`` and the value is padded as ``**value*``
  so leading characters weigh more than trailing ones
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable
import unicodedata

from trigram_search.domain.model import TRIGRAM_LENGTH


_NON_LETTERS = re.compile(r"[^a-z]")
_WHITESPACE = re.compile(r"\s+")
BOUNDARY = "*"


@runtime_checkable
class TrigramSource(Protocol):
    """Turns a string into a trigram -> score mapping.

    Implementations must be deterministic and must accept the empty string.
    Every key must be exactly ``TRIGRAM_LENGTH`` characters long; rows with
    other token lengths fail validation when they are stored.
    """

    def decompose(self, text: str) -> dict[str, float]: ...


def normalize(text: str) -> str:
    """Normalize text into the padded, boundary-marked form trigrams are cut from.

    Examples:
        >>> normalize("Anderson")
        '**anderson*'
        >>> normalize("Van Dyke")
        '**van*dyke*'
    """
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    letters = _NON_LETTERS.sub(" ", ascii_text.lower())
    return BOUNDARY * 2 + _WHITESPACE.sub(BOUNDARY, letters) + BOUNDARY


def trigrams(text: str) -> list[str]:
    """Return the distinct trigrams of ``text`` in order of first appearance.

    Windows made only of boundary markers carry no information and are dropped,
    so the empty string has no trigrams.
    """
    normalized = normalize(text or "")
    seen: dict[str, None] = {}
    for index in range(len(normalized) - TRIGRAM_LENGTH + 1):
        window = normalized[index : index + TRIGRAM_LENGTH]
        if window.strip(BOUNDARY):
            seen.setdefault(window, None)
    return list(seen)


class ScoredTrigramSource:
    """Default trigram source: every trigram is scored with the source length.

    Lower scores rank first among owners sharing the same number of trigrams,
    which favours the shortest indexed value.
    """

    def decompose(self, text: str) -> dict[str, float]:
        text = text or ""
        score = float(len(text))
        return {trigram: score for trigram in trigrams(text)}
