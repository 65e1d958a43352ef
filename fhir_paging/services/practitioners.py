from __future__ import annotations

from typing import Optional

from ..application.entity_cache import ReferenceLookup, display_name
from ..domain.errors import ContractError
from ..domain.models import Entry, PageEnvelope, SearchQuery
from .common import ResourceService, identifiers, telecoms
from .dto import PractitionerDto

SEARCH_TYPES = ("name", "identifier")


def convert_practitioner(entry: Entry, lookup: ReferenceLookup) -> PractitionerDto:
    practitioner = entry.resource
    return PractitionerDto(
        logical_id=entry.resource_id,
        name=display_name(practitioner),
        active=practitioner.get("active"),
        identifiers=identifiers(practitioner),
        telecoms=telecoms(practitioner),
    )


class PractitionerService(ResourceService):
    resource_kind = "Practitioner"

    def get_all_practitioners(
        self,
        show_inactive: Optional[bool] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._active_only(self._query(), show_inactive)
        return self._page(query, page_number, page_size, convert_practitioner)

    def search_practitioners(
        self,
        search_type: str,
        search_value: str,
        show_inactive: Optional[bool] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        kind = (search_type or "").strip().lower()
        if kind not in SEARCH_TYPES:
            raise ContractError(f"Unidentified search type: {search_type}")
        if not search_value or not search_value.strip():
            raise ContractError(f"No search value found for the search type {search_type}")
        query = self._query().where(kind, search_value.strip())
        query = self._active_only(query, show_inactive)
        return self._page(query, page_number, page_size, convert_practitioner)

    @staticmethod
    def _active_only(query: SearchQuery, show_inactive: Optional[bool]) -> SearchQuery:
        return query if show_inactive else query.where("active", "true")
