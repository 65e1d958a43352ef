"""
Unit tests for page assembly and in-memory paging.
"""

from unittest.mock import Mock

import pytest

from fhir_paging.application.entity_cache import EntityCache
from fhir_paging.application.use_cases.assemble_page import PageAggregator, paginate_items
from fhir_paging.domain.errors import PageOutOfRange
from fhir_paging.domain.models import PageEnvelope, total_pages


def _ids(entry, lookup):
    return entry.resource_id


@pytest.mark.unit
class TestTotalPages:
    """Test page count arithmetic."""

    @pytest.mark.parametrize(
        "total,size,expected",
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 10, 3), (30, 10, 3)],
    )
    def test_total_pages(self, total, size, expected):
        assert total_pages(total, size) == expected


@pytest.mark.unit
class TestPageAggregator:
    """Test conversion of a resolved bundle into a page."""

    def test_empty_bundle_gives_empty_page(self, make_envelope):
        """Test the empty page convention (current page 1, zero pages)."""
        page = PageAggregator().assemble(make_envelope("Task", [], total=0), 10, 4, _ids, EntityCache())

        assert page == PageEnvelope.empty(10)
        assert page.current_page == 1
        assert page.total_number_of_pages == 0
        assert page.has_next_page is False
        assert page.has_previous_page is False

    def test_only_primary_entries_are_converted(self, make_envelope):
        """Test that included entries feed lookups but never become elements."""
        envelope = make_envelope(
            "Task",
            ["t1", "t2"],
            total=2,
            included=[{"resourceType": "EpisodeOfCare", "id": "e1"}],
        )

        page = PageAggregator().assemble(envelope, 10, 1, _ids, EntityCache())

        assert page.elements == ["t1", "t2"]
        assert page.current_page_size == 2
        assert page.total_elements == 2

    def test_third_page_metadata(self, make_envelope):
        """Test total 25, size 10, page 3 yields five elements on the last page."""
        envelope = make_envelope("Task", [str(i) for i in range(20, 25)], total=25)

        page = PageAggregator().assemble(envelope, 10, 3, _ids, EntityCache())

        assert page.elements == ["20", "21", "22", "23", "24"]
        assert page.total_number_of_pages == 3
        assert page.current_page == 3
        assert page.current_page_size == 5
        assert page.has_previous_page is True
        assert page.has_next_page is False
        assert page.last_page is True

    def test_references_are_prefetched_before_conversion(self, make_envelope):
        """Test that every referenced entity is read once, whatever the entry count."""
        resources = {
            rid: {"resourceType": "Task", "id": rid, "owner": {"reference": "Practitioner/p1"}}
            for rid in ("t1", "t2", "t3")
        }
        envelope = make_envelope("Task", ["t1", "t2", "t3"], resources=resources)
        reader = Mock()
        reader.read.return_value = {"resourceType": "Practitioner", "id": "p1", "name": [{"text": "Ann Lee"}]}

        page = PageAggregator(lookup_workers=2).assemble(
            envelope,
            10,
            1,
            lambda entry, lookup: lookup.display(entry.resource["owner"]),
            EntityCache(),
            reader=reader,
            references=lambda entry: [entry.resource.get("owner")],
        )

        assert page.elements == ["Ann Lee"] * 3
        reader.read.assert_called_once_with("Practitioner", "p1")

    def test_to_dict_uses_camel_case(self, make_envelope):
        page = PageAggregator().assemble(make_envelope("Task", ["t1"], total=1), 10, 1, _ids, EntityCache())

        assert page.to_dict() == {
            "elements": ["t1"],
            "size": 10,
            "totalNumberOfPages": 1,
            "currentPage": 1,
            "currentPageSize": 1,
            "hasNextPage": False,
            "hasPreviousPage": False,
            "firstPage": True,
            "lastPage": True,
            "totalElements": 1,
        }


@pytest.mark.unit
class TestPaginateItems:
    """Test in-memory paging of already gathered items."""

    def test_second_page(self):
        page = paginate_items(list(range(7)), 3, 2)
        assert page.elements == [3, 4, 5]
        assert page.total_number_of_pages == 3
        assert page.current_page == 2

    def test_empty_list(self):
        assert paginate_items([], 5, 3) == PageEnvelope.empty(5)

    def test_past_the_end_raises(self):
        with pytest.raises(PageOutOfRange):
            paginate_items([1, 2, 3], 3, 2)
