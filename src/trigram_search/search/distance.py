"""Normalized string similarity used to refine fuzzy search results."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from rapidfuzz.distance import JaroWinkler, Levenshtein


@runtime_checkable
class DistanceMetric(Protocol):
    """Returns a similarity in [0, 1] where 1 means identical."""

    def similarity(self, a: str, b: str) -> float: ...


class JaroWinklerMetric:
    """Jaro-Winkler similarity; rewards shared prefixes, suited to names.

    Examples:
        >>> JaroWinklerMetric().similarity("Andersson", "Andersson")
        1.0
    """

    def __init__(self, *, prefix_weight: float = 0.1, case_sensitive: bool = True) -> None:
        self.prefix_weight = prefix_weight
        self.case_sensitive = case_sensitive

    def similarity(self, a: str, b: str) -> float:
        a, b = a or "", b or ""
        if not self.case_sensitive:
            a, b = a.lower(), b.lower()
        return JaroWinkler.similarity(a, b, prefix_weight=self.prefix_weight)


class LevenshteinMetric:
    """Edit distance normalized by the longer string's length."""

    def __init__(self, *, case_sensitive: bool = True) -> None:
        self.case_sensitive = case_sensitive

    def similarity(self, a: str, b: str) -> float:
        a, b = a or "", b or ""
        if not self.case_sensitive:
            a, b = a.lower(), b.lower()
        return Levenshtein.normalized_similarity(a, b)
