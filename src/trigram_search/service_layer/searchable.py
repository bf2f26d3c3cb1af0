"""Registration table for fuzzily searchable fields.

``FuzzySearchable`` maps field names to their ``FuzzySearchConfig`` and
dispatches queries, bulk reindexing and single-record reindexing through it.
Reindexing after a change is an explicit call (``reindex`` or ``save``), not
a persistence hook.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
from typing import Any

from trigram_search.adapters.owner_repository import AbstractOwnerRepository
from trigram_search.adapters.trigram_index import AbstractTrigramIndex
from trigram_search.config import Settings
from trigram_search.domain.errors import UnknownFuzzyFieldError
from trigram_search.domain.model import BulkReindexResult, FuzzySearchConfig, OwnerId, owner_id_of, read_attribute
from trigram_search.domain.search import DistanceRule, FuzzyQueryOptions
from trigram_search.search.distance import DistanceMetric, JaroWinklerMetric
from trigram_search.search.trigrams import ScoredTrigramSource, TrigramSource
from trigram_search.service_layer.indexer import TrigramIndexer
from trigram_search.service_layer.query_engine import FuzzyQueryEngine


logger = logging.getLogger(__name__)

DistanceFilterInput = Iterable[DistanceRule | tuple[str, str, float]]


class FuzzySearchable:
    """Fuzzy search entry points for the owners of one repository.

    Usage::

        people = InMemoryOwnerRepository("Person", records)
        searchable = FuzzySearchable(people, SqliteTrigramIndex("people.db"))
        searchable.register("lastname")
        searchable.bulk_update_fuzzy("lastname")
        searchable.find_by_fuzzy("lastname", "Andersson", limit=5)
    """

    def __init__(
        self,
        owners: AbstractOwnerRepository,
        index: AbstractTrigramIndex,
        *,
        trigram_source: TrigramSource | None = None,
        distance_metric: DistanceMetric | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.owners = owners
        self.default_index = index
        self.settings = Settings() if settings is None else settings
        self.trigram_source = ScoredTrigramSource() if trigram_source is None else trigram_source
        if distance_metric is None:
            distance_metric = JaroWinklerMetric()
        self.engine = FuzzyQueryEngine(owners, self.trigram_source, distance_metric)
        self._configs: dict[str, FuzzySearchConfig] = {}
        self._indexes: dict[str, AbstractTrigramIndex] = {index.table: index}
        self._indexers: dict[str, TrigramIndexer] = {}

    @property
    def owner_type(self) -> str:
        return self.owners.owner_type

    @property
    def fields(self) -> list[str]:
        """Registered field names in registration order."""
        return list(self._configs)

    def register(
        self,
        *fields: str,
        index: AbstractTrigramIndex | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[FuzzySearchConfig]:
        """Declare fields as fuzzily searchable.

        Registering an already registered field returns its existing config unchanged.
        """
        if not fields:
            raise ValueError("At least one field name is required")

        target = self.default_index if index is None else index
        known = self._indexes.setdefault(target.table, target)
        if known is not target:
            raise ValueError(f"Another index is already registered for table '{target.table}'")

        configs = []
        for field in fields:
            existing = self._configs.get(field)
            if existing is not None:
                configs.append(existing)
                continue
            config = FuzzySearchConfig(
                field=field,
                trigram_table=target.table,
                default_limit=self.settings.default_limit if limit is None else limit,
                default_offset=self.settings.default_offset if offset is None else offset,
            )
            self._configs[field] = config
            logger.debug("Registered %s.%s for fuzzy search on %s", self.owner_type, field, target.table)
            configs.append(config)
        return configs

    def config_for(self, field: str) -> FuzzySearchConfig:
        try:
            return self._configs[field]
        except KeyError:
            raise UnknownFuzzyFieldError(field) from None

    def index_for(self, field: str) -> AbstractTrigramIndex:
        return self._indexes[self.config_for(field).trigram_table]

    def indexer_for(self, field: str) -> TrigramIndexer:
        """Indexer writing ``field`` rows into the field's index."""
        table = self.config_for(field).trigram_table
        indexer = self._indexers.get(table)
        if indexer is None:
            indexer = TrigramIndexer(
                self.owners,
                self._indexes[table],
                self.trigram_source,
                batch_size=self.settings.batch_size,
                multi_row_insert=self.settings.multi_row_insert,
            )
            self._indexers[table] = indexer
        return indexer

    def find_by_fuzzy(
        self,
        field: str,
        pattern: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        distance_filter: DistanceFilterInput = (),
        limit_on_distance: bool = False,
    ) -> list[Any]:
        """Return owners whose ``field`` resembles ``pattern``, best matches first."""
        config = self.config_for(field)
        options = FuzzyQueryOptions(
            limit=config.default_limit if limit is None else limit,
            offset=config.default_offset if offset is None else offset,
            distance_filter=distance_filter,
            limit_on_distance=limit_on_distance,
        )
        return self.engine.find_by_fuzzy(self.index_for(field), config, pattern, options)

    def bulk_update_fuzzy(self, field: str) -> BulkReindexResult:
        """Rebuild ``field`` trigrams for the whole owner collection."""
        return self.indexer_for(field).bulk_reindex(field)

    def reindex(self, record: Any, field: str | None = None) -> int:
        """Reindex one field of a record, or every registered field when ``field`` is None."""
        fields: Sequence[str] = [field] if field is not None else self.fields
        written = 0
        for name in fields:
            self.config_for(name)
            written += self.indexer_for(name).reindex_field(record, name)
        return written

    def save(self, record: Any) -> list[str]:
        """Store a record and reindex the registered fields whose value changed.

        Returns:
            Names of the fields that were reindexed.
        """
        previous = self.owners.get(owner_id_of(record))
        self.owners.add(record)

        changed = [
            field
            for field in self.fields
            if previous is None or read_attribute(previous, field) != read_attribute(record, field)
        ]
        for field in changed:
            self.indexer_for(field).reindex_field(record, field)
        return changed

    def delete(self, record_or_id: Any) -> bool:
        """Delete an owner and every trigram row it has in any registered index."""
        owner_id: OwnerId = (
            record_or_id if isinstance(record_or_id, (int, str)) else owner_id_of(record_or_id)
        )
        deleted = self.owners.delete(owner_id)
        removed = 0
        for index in self._indexes.values():
            removed += index.delete_owner(self.owner_type, owner_id)
        logger.debug("Deleted %s#%s and %d trigram rows", self.owner_type, owner_id, removed)
        return deleted
