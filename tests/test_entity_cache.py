"""
Unit tests for the page-scoped entity cache and reference lookups.
"""

import threading
from unittest.mock import Mock

import pytest

from fhir_paging.application.entity_cache import (
    EntityCache,
    ReferenceLookup,
    display_name,
    split_reference,
)
from fhir_paging.domain.errors import ContractError, RemoteUnavailable
from fhir_paging.domain.models import INCLUDE, Entry


@pytest.mark.unit
class TestEntityCache:
    """Test resolve and prefetch semantics."""

    def test_resolve_fetches_once_per_key(self):
        """Test that repeated resolves of one key call the fetch once."""
        cache = EntityCache()
        fetch = Mock(return_value="Dr. Who")

        first = cache.resolve("p1", "Practitioner", fetch)
        second = cache.resolve("p1", "Practitioner", fetch)

        assert first == second == "Dr. Who"
        fetch.assert_called_once_with()
        assert ("Practitioner", "p1") in cache
        assert len(cache) == 1

    def test_keys_are_scoped_by_kind(self):
        """Test that equal ids of different kinds are separate entries."""
        cache = EntityCache()
        cache.resolve("1", "Practitioner", lambda: "person")
        assert cache.resolve("1", "Organization", lambda: "org") == "org"
        assert len(cache) == 2

    def test_prefetch_deduplicates_and_skips_cached(self):
        """Test that prefetch fetches each missing key exactly once."""
        cache = EntityCache()
        cache.resolve("a", "Location", lambda: "cached")
        fetch = Mock(side_effect=lambda kind, rid: f"{kind}:{rid}")

        cache.prefetch([("Location", "a"), ("Location", "b"), ("Location", "b"), ("Location", "c")], fetch, max_workers=4)

        assert fetch.call_count == 2
        assert cache.resolve("b", "Location", Mock()) == "Location:b"
        assert cache.resolve("a", "Location", Mock()) == "cached"

    def test_prefetch_runs_on_worker_threads(self):
        """Test that several missing keys are fetched off the calling thread."""
        cache = EntityCache()
        seen = set()

        def fetch(kind, rid):
            seen.add(threading.get_ident())
            return rid

        cache.prefetch([("Location", str(i)) for i in range(6)], fetch, max_workers=3)

        assert threading.get_ident() not in seen
        assert len(cache) == 6

    def test_prefetch_failure_propagates(self):
        """Test that a failing lookup re-raises from prefetch."""
        cache = EntityCache()

        def fetch(kind, rid):
            if rid == "bad":
                raise RemoteUnavailable("timeout")
            return rid

        with pytest.raises(RemoteUnavailable):
            cache.prefetch([("Location", "ok"), ("Location", "bad")], fetch, max_workers=2)


@pytest.mark.unit
class TestReferenceHelpers:
    """Test reference splitting and display names."""

    @pytest.mark.parametrize(
        "reference,expected",
        [
            ("Practitioner/123", ("Practitioner", "123")),
            ("http://fhir.test/fhir/Organization/9", ("Organization", "9")),
            ("Location/7/_history/2", ("Location", "7")),
        ],
    )
    def test_split_reference(self, reference, expected):
        assert split_reference(reference) == expected

    def test_split_reference_rejects_bare_id(self):
        with pytest.raises(ContractError):
            split_reference("123")

    def test_display_name_variants(self):
        """Test names for organizations, HumanName text and given/family."""
        assert display_name({"name": "Main Clinic"}) == "Main Clinic"
        assert display_name({"name": [{"text": "Jane Roe"}]}) == "Jane Roe"
        assert display_name({"name": [{"given": ["John", "Q"], "family": "Public"}]}) == "John Q Public"
        assert display_name({"id": "x"}) is None


@pytest.mark.unit
class TestReferenceLookup:
    """Test the included -> display hint -> remote read resolution order."""

    def test_included_entity_wins(self):
        reader = Mock()
        included = [Entry("Location", "l1", {"resourceType": "Location", "id": "l1", "name": "Annex"}, INCLUDE)]
        lookup = ReferenceLookup(EntityCache(), included, reader)

        assert lookup.display({"reference": "Location/l1", "display": "Old name"}) == "Annex"
        reader.read.assert_not_called()

    def test_display_hint_avoids_remote_read(self):
        reader = Mock()
        lookup = ReferenceLookup(EntityCache(), (), reader)

        assert lookup.display({"reference": "Practitioner/p1", "display": "Dr. Smith"}) == "Dr. Smith"
        reader.read.assert_not_called()

    def test_remote_read_happens_once(self):
        reader = Mock()
        reader.read.return_value = {"resourceType": "Organization", "id": "o1", "name": "Acme Care"}
        lookup = ReferenceLookup(EntityCache(), (), reader)

        assert lookup.display("Organization/o1") == "Acme Care"
        assert lookup.display({"reference": "Organization/o1"}) == "Acme Care"
        reader.read.assert_called_once_with("Organization", "o1")

    def test_prefetch_warms_cache(self):
        reader = Mock()
        reader.read.side_effect = lambda kind, rid: {"resourceType": kind, "id": rid, "name": f"{kind} {rid}"}
        lookup = ReferenceLookup(EntityCache(), (), reader, max_workers=2)

        lookup.prefetch([{"reference": "Location/1"}, {"reference": "Location/2"}, None, {"reference": "Location/1"}])
        assert reader.read.call_count == 2

        assert lookup.display("Location/2") == "Location 2"
        assert reader.read.call_count == 2

    def test_no_reader_yields_none(self):
        lookup = ReferenceLookup(EntityCache())
        assert lookup.display("Practitioner/p9") is None
        assert lookup.display(None) is None
