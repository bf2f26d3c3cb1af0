"""Fuzzy query execution.

Pipeline: decompose the pattern, look up matching owners in the trigram
index, resolve owner ids to records, apply the optional distance filter and
the hybrid limit policy, and return records in trigram-match order.
"""

from __future__ import annotations

import logging
from typing import Any

from trigram_search.adapters.owner_repository import AbstractOwnerRepository
from trigram_search.adapters.trigram_index import AbstractTrigramIndex
from trigram_search.domain.model import FuzzySearchConfig, OwnerId, TrigramMatch, read_attribute
from trigram_search.domain.search import DistanceRule, FuzzyQueryOptions
from trigram_search.observability.metrics import QUERY_COUNT, QUERY_LATENCY, track_latency
from trigram_search.observability.tracing import create_span
from trigram_search.search.distance import DistanceMetric
from trigram_search.search.trigrams import TrigramSource


logger = logging.getLogger(__name__)


class FuzzyQueryEngine:
    """Answers fuzzy queries against the owners of one repository."""

    def __init__(
        self,
        owners: AbstractOwnerRepository,
        trigram_source: TrigramSource,
        distance_metric: DistanceMetric,
    ) -> None:
        self.owners = owners
        self.trigram_source = trigram_source
        self.distance_metric = distance_metric

    def find_by_fuzzy(
        self,
        index: AbstractTrigramIndex,
        config: FuzzySearchConfig,
        pattern: str,
        options: FuzzyQueryOptions | None = None,
    ) -> list[Any]:
        """Return owner records whose ``config.field`` resembles ``pattern``.

        Args:
            index: Trigram index holding the field's rows
            config: Registration of the searched field
            pattern: Text to look for
            options: Limit, offset and distance filter; defaults come from ``config``

        Returns:
            Records ordered by trigram overlap, without duplicates. Empty when
            nothing matches.
        """
        if options is None:
            options = FuzzyQueryOptions(limit=config.default_limit, offset=config.default_offset)

        owner_type = self.owners.owner_type
        labels = {"owner_type": owner_type, "field": config.field}
        attributes = {
            "owner.type": owner_type,
            "fuzzy.field": config.field,
            "query.limit": options.limit,
            "query.offset": options.offset,
            "query.distance_rules": len(options.distance_filter),
        }
        with create_span("trigram.find_by_fuzzy", attributes=attributes) as span, track_latency(
            QUERY_LATENCY, **labels
        ):
            try:
                trigrams = list(self.trigram_source.decompose(pattern or ""))
                matches = index.query(owner_type, config.field, trigrams, offset=options.offset)
                # Stable: ties keep the store's order
                matches.sort(key=TrigramMatch.sort_key)
                records = self._load_for_ids([match.owner_id for match in matches], options)
            except Exception:
                QUERY_COUNT.labels(**labels, status="error").inc()
                raise

            results: list[Any] = []
            seen: set[OwnerId] = set()
            for match in matches:
                if match.owner_id in seen or match.owner_id not in records:
                    continue
                seen.add(match.owner_id)
                results.append(records[match.owner_id])

            span.set_attribute("query.candidates", len(matches))
            span.set_attribute("query.results", len(results))

        QUERY_COUNT.labels(**labels, status="ok").inc()
        logger.debug(
            "Fuzzy query on %s.%s: %d trigrams, %d candidates, %d results",
            owner_type,
            config.field,
            len(trigrams),
            len(matches),
            len(results),
        )
        return results

    def _load_for_ids(self, owner_ids: list[OwnerId], options: FuzzyQueryOptions) -> dict[OwnerId, Any]:
        """Resolve ids once each, applying the distance filter and the limit policy.

        With ``limit_on_distance`` off, resolution stops after ``limit`` accepted
        records. With it on, every record passing the distance filter is kept.
        """
        records: dict[OwnerId, Any] = {}
        visited: set[OwnerId] = set()
        remaining = options.limit

        for owner_id in owner_ids:
            if owner_id in visited:
                continue
            visited.add(owner_id)

            record = self.owners.get(owner_id)
            if record is None:
                logger.debug("Skipping %s#%s: trigram rows outlived their owner", self.owners.owner_type, owner_id)
                continue

            if options.distance_filter and not self._passes_distance_filter(record, options.distance_filter):
                continue

            records[owner_id] = record
            remaining -= 1
            if options.caps_accepted_count and remaining == 0:
                break

        return records

    def _passes_distance_filter(self, record: Any, rules: tuple[DistanceRule, ...]) -> bool:
        for rule in rules:
            value = read_attribute(record, rule.attribute)
            candidate = "" if value is None else str(value)
            if self.distance_metric.similarity(candidate, rule.reference) < rule.min_similarity:
                return False
        return True
