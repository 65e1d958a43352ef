from __future__ import annotations

from functools import partial
from typing import Any, Dict, List, Optional

from ..application.entity_cache import ReferenceLookup, split_reference
from ..domain.models import Entry, PageEnvelope, SearchQuery
from ..infrastructure.logging import get_logger
from .common import ResourceService, coding_value_set, require_search_value, telecoms
from .dto import HealthcareServiceDto, NameLogicalIdDto

logger = get_logger("fhir_paging.services.healthcare_services")

SEARCH_KEYS = ("NAME", "LOGICALID", "IDENTIFIERVALUE")


def active_filter(status_list: Optional[List[str]]) -> Optional[str]:
    """Map a status list to the ``active`` search value; None means both."""
    if not status_list or len(status_list) != 1:
        return None
    status = status_list[0].strip().lower()
    if status in ("active", "true"):
        return "true"
    if status in ("inactive", "false"):
        return "false"
    return None


def location_references(entry: Entry) -> List[Optional[Dict[str, Any]]]:
    return list(entry.resource.get("location") or [])


def convert_healthcare_service(
    entry: Entry,
    lookup: ReferenceLookup,
    organization_id: Optional[str] = None,
    assigned_to_location_id: Optional[str] = None,
    current_location_id: Optional[str] = None,
) -> HealthcareServiceDto:
    service = entry.resource
    locations: List[NameLogicalIdDto] = []
    for ref in service.get("location") or []:
        if not ref.get("reference"):
            continue
        _, location_id = split_reference(ref["reference"])
        locations.append(NameLogicalIdDto(logical_id=location_id, name=lookup.display(ref)))
    location_ids = {loc.logical_id for loc in locations}

    provided_by = (service.get("providedBy") or {}).get("reference")
    if provided_by:
        organization_id = split_reference(provided_by)[1]

    current = next((loc for loc in locations if loc.logical_id == current_location_id), None)
    return HealthcareServiceDto(
        logical_id=entry.resource_id,
        name=service.get("name"),
        program_name=list(service.get("programName") or []),
        active=service.get("active"),
        organization_id=organization_id,
        category=coding_value_set(service.get("category")),
        type=[v for v in (coding_value_set(t) for t in service.get("type") or []) if v is not None],
        telecom=telecoms(service),
        location=locations,
        location_id=current.logical_id if current else None,
        location_name=current.name if current else None,
        assigned_to_current_location=(assigned_to_location_id in location_ids) if assigned_to_location_id else None,
    )


class HealthcareServiceService(ResourceService):
    resource_kind = "HealthcareService"

    def get_all_healthcare_services(
        self,
        status_list: Optional[List[str]] = None,
        search_key: Optional[str] = None,
        search_value: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._filtered(self._query(), status_list, search_key, search_value)
        return self._page(query, page_number, page_size, convert_healthcare_service, location_references)

    def get_all_healthcare_services_by_organization(
        self,
        organization_id: str,
        assigned_to_location_id: Optional[str] = None,
        status_list: Optional[List[str]] = None,
        search_key: Optional[str] = None,
        search_value: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._query().where("organization", organization_id.strip())
        query = self._filtered(query, status_list, search_key, search_value)
        convert = partial(
            convert_healthcare_service,
            organization_id=organization_id.strip(),
            assigned_to_location_id=assigned_to_location_id,
        )
        return self._page(query, page_number, page_size, convert, location_references)

    def get_all_healthcare_services_by_location(
        self,
        organization_id: str,
        location_id: str,
        status_list: Optional[List[str]] = None,
        search_key: Optional[str] = None,
        search_value: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = (
            self._query()
            .where("organization", organization_id.strip())
            .where("location", location_id.strip())
            .include("HealthcareService:location")
        )
        query = self._filtered(query, status_list, search_key, search_value)
        convert = partial(
            convert_healthcare_service,
            organization_id=organization_id.strip(),
            current_location_id=location_id.strip(),
        )
        return self._page(query, page_number, page_size, convert, location_references)

    def get_healthcare_service(self, healthcare_service_id: str) -> HealthcareServiceDto:
        query = self._query().include("HealthcareService:location")
        return self._one(query, healthcare_service_id.strip(), convert_healthcare_service)

    @staticmethod
    def _filtered(
        query: SearchQuery,
        status_list: Optional[List[str]],
        search_key: Optional[str],
        search_value: Optional[str],
    ) -> SearchQuery:
        active = active_filter(status_list)
        if active is not None:
            query = query.where("active", active)

        key = require_search_value(search_key, search_value, SEARCH_KEYS)
        value = (search_value or "").strip()
        if key == "NAME":
            query = query.where("name", value)
        elif key == "LOGICALID":
            query = query.where("_id", value)
        elif key == "IDENTIFIERVALUE":
            query = query.where("identifier", value)
        if key:
            logger.debug("HealthcareService search %s=%s", key, value)
        return query
