"""Unit tests for the fuzzy search registration table."""

import pytest

from tests.fixtures.records import Person
from trigram_search.adapters import FakeTrigramIndex, InMemoryOwnerRepository
from trigram_search.config import Settings
from trigram_search.domain import UnknownFuzzyFieldError
from trigram_search.search.distance import LevenshteinMetric
from trigram_search.service_layer import FuzzySearchable


pytestmark = pytest.mark.unit


def ids(records):
    return [record.id for record in records]


class TestRegister:
    """Test field registration."""

    def test_fields_in_registration_order(self, searchable):
        """Test that fields are listed in registration order."""
        assert searchable.fields == ["lastname", "firstname"]
        assert searchable.owner_type == "Person"

    def test_register_is_idempotent(self, searchable):
        """Test that re-registering returns the existing config unchanged."""
        original = searchable.config_for("lastname")
        [again] = searchable.register("lastname", limit=1)
        assert again is original
        assert searchable.config_for("lastname").default_limit == 10

    def test_requires_a_field(self, searchable):
        """Test that register needs at least one field."""
        with pytest.raises(ValueError):
            searchable.register()

    def test_defaults_come_from_settings(self, people, fake_index, monkeypatch):
        """Test that registration defaults follow the settings."""
        monkeypatch.setenv("TRIGRAM_SEARCH_DEFAULT_LIMIT", "2")
        searchable = FuzzySearchable(people, fake_index, settings=Settings())
        [config] = searchable.register("lastname")
        assert config.default_limit == 2
        assert config.trigram_table == "trigrams"

    def test_per_field_overrides(self, searchable):
        """Test per-field limit and offset."""
        [config] = searchable.register("fullname", limit=1, offset=2)
        assert (config.default_limit, config.default_offset) == (1, 2)

    def test_empty_separate_index_is_used(self, searchable):
        """Test that a field registered on a new, empty index stays on it."""
        fullnames = FakeTrigramIndex("fullnames")
        assert len(fullnames) == 0

        [config] = searchable.register("fullname", index=fullnames)

        assert config.trigram_table == "fullnames"
        assert searchable.index_for("fullname") is fullnames
        assert searchable.index_for("lastname") is not fullnames

    def test_rejects_second_index_with_same_table(self, searchable):
        """Test that two index objects cannot share a table name."""
        with pytest.raises(ValueError, match="trigrams"):
            searchable.register("fullname", index=FakeTrigramIndex("trigrams"))

    def test_unknown_field(self, searchable):
        """Test that unregistered fields are rejected everywhere."""
        with pytest.raises(UnknownFuzzyFieldError):
            searchable.find_by_fuzzy("nickname", "Bob")
        with pytest.raises(KeyError):
            searchable.bulk_update_fuzzy("nickname")
        with pytest.raises(UnknownFuzzyFieldError):
            searchable.reindex(Person(id=1), "nickname")


class TestFindByFuzzy:
    """Test queries through the registration table."""

    def test_best_match_first(self, searchable):
        """Test ordering by trigram overlap."""
        assert ids(searchable.find_by_fuzzy("lastname", "Andersson")) == [1, 2, 3]

    def test_distance_filter_and_limit(self, searchable):
        """Test a distance filter combined with a limit."""
        results = searchable.find_by_fuzzy(
            "lastname",
            "Andersson",
            limit=5,
            distance_filter=[("lastname", "Andersson", 0.9)],
        )
        assert ids(results) == [1, 2]

    def test_limit_and_offset(self, searchable):
        """Test explicit limit and offset."""
        assert ids(searchable.find_by_fuzzy("lastname", "Andersson", limit=1)) == [1]
        assert ids(searchable.find_by_fuzzy("lastname", "Andersson", offset=2)) == [3]

    def test_fields_are_isolated(self, searchable):
        """Test that a field only matches its own rows."""
        assert searchable.find_by_fuzzy("firstname", "Andersson") == []
        assert ids(searchable.find_by_fuzzy("firstname", "Bob", limit=2)) == [1, 2]

    def test_custom_distance_metric(self, people, fake_index, settings):
        """Test plugging in another distance metric."""
        searchable = FuzzySearchable(people, fake_index, distance_metric=LevenshteinMetric(), settings=settings)
        searchable.register("lastname")
        searchable.bulk_update_fuzzy("lastname")
        results = searchable.find_by_fuzzy("lastname", "Andersson", distance_filter=[("lastname", "Andersson", 0.85)])
        assert ids(results) == [1, 2]

    def test_separate_index_per_field(self, searchable):
        """Test that a field on its own index writes and reads there only."""
        fullnames = FakeTrigramIndex("fullnames")
        searchable.register("fullname", index=fullnames)
        result = searchable.bulk_update_fuzzy("fullname")

        assert result.records == 3
        assert result.rows > 0
        assert len(fullnames) == result.rows
        assert searchable.index_for("lastname").rows_for("Person", 1, "fullname") == []
        assert ids(searchable.find_by_fuzzy("fullname", "Bob Johansson"))[0] == 3


class TestSaveAndReindex:
    """Test explicit reindex triggers."""

    def test_save_new_record_indexes_every_field(self, searchable):
        """Test that a new record is indexed on every field."""
        changed = searchable.save(Person(id=4, firstname="Alice", lastname="Andersen"))
        assert changed == ["lastname", "firstname"]
        assert 4 in ids(searchable.find_by_fuzzy("lastname", "Andersen"))
        assert ids(searchable.find_by_fuzzy("firstname", "Alice")) == [4]

    def test_save_reindexes_only_changed_fields(self, searchable, people):
        """Test that unchanged fields keep their rows."""
        index = searchable.index_for("firstname")
        firstname_rows = index.rows_for("Person", 1, "firstname")

        changed = searchable.save(people.get(1).model_copy(update={"lastname": "Berg"}))

        assert changed == ["lastname"]
        assert index.rows_for("Person", 1, "firstname") == firstname_rows
        assert ids(searchable.find_by_fuzzy("lastname", "Berg")) == [1]
        assert 1 not in ids(searchable.find_by_fuzzy("lastname", "Andersson"))

    def test_save_unchanged_record(self, searchable, people):
        """Test that saving an identical record reindexes nothing."""
        assert searchable.save(people.get(2).model_copy()) == []

    def test_reindex_every_field(self, searchable, people):
        """Test reindexing all registered fields of one record."""
        person = Person(id=1, firstname="Eve", lastname="Lind")
        people.add(person)
        assert searchable.reindex(person) == 5 + 4
        assert ids(searchable.find_by_fuzzy("firstname", "Eve")) == [1]

    def test_reindex_single_field(self, searchable, people):
        """Test reindexing one field leaves the other stale."""
        person = Person(id=2, firstname="Eve", lastname="Lind")
        people.add(person)
        assert searchable.reindex(person, "lastname") == 5
        assert ids(searchable.find_by_fuzzy("firstname", "Eve")) == []


class TestDelete:
    """Test owner deletion with cascading cleanup."""

    def test_delete_cascades_to_every_field(self, searchable):
        """Test that deleting an owner removes all of its rows."""
        index = searchable.index_for("lastname")
        assert searchable.delete(1) is True
        assert index.rows_for("Person", 1) == []
        assert ids(searchable.find_by_fuzzy("lastname", "Andersson")) == [2, 3]

    def test_delete_by_record(self, searchable, people):
        """Test deleting by record instead of id."""
        assert searchable.delete(people.get(3)) is True
        assert searchable.delete(3) is False

    def test_delete_cascades_to_separate_indexes(self, searchable):
        """Test that cleanup reaches indexes of other fields."""
        fullnames = FakeTrigramIndex("fullnames")
        searchable.register("fullname", index=fullnames)
        searchable.bulk_update_fuzzy("fullname")

        searchable.delete(2)
        assert fullnames.rows_for("Person", 2) == []
        assert fullnames.rows_for("Person", 1)

    def test_other_owner_types_are_untouched(self, searchable, index, settings):
        """Test that deleting a person keeps rows of other owner types."""
        companies = InMemoryOwnerRepository("Company", [{"id": 1, "name": "Andersson AB"}])
        company_search = FuzzySearchable(companies, index, settings=settings)
        company_search.register("name")
        company_search.bulk_update_fuzzy("name")

        searchable.delete(1)
        assert [record["id"] for record in company_search.find_by_fuzzy("name", "Andersson")] == [1]
