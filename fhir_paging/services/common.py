from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from ..application.dto import GetPageRequest
from ..application.entity_cache import EntityCache, ReferenceLookup
from ..application.use_cases.assemble_page import References
from ..application.use_cases.get_page import GetPageUseCase
from ..domain.errors import ContractError, ResourceNotFound
from ..domain.models import Entry, PageEnvelope, SearchQuery
from .dto import IdentifierDto, ReferenceDto, TelecomDto, ValueSetDto

T = TypeVar("T")


class ResourceService:
    """Base for the per-resource adapters: each supplies filters and a converter."""

    resource_kind = ""

    def __init__(self, pages: GetPageUseCase) -> None:
        self._pages = pages

    def _query(self) -> SearchQuery:
        return SearchQuery(self.resource_kind)

    def _page(
        self,
        query: SearchQuery,
        page_number: Optional[int],
        page_size: Optional[int],
        convert: Callable[[Entry, ReferenceLookup], T],
        references: Optional[References] = None,
    ) -> PageEnvelope:
        return self._pages.execute(GetPageRequest(query, page_size, page_number), convert, references)

    def _page_size(self, page_size: Optional[int], resource_kind: Optional[str] = None) -> int:
        return self._pages.policy.resolve(page_size, resource_kind or self.resource_kind)

    def _one(self, query: SearchQuery, resource_id: str, convert: Callable[[Entry, ReferenceLookup], T]) -> T:
        executor = self._pages.executor
        envelope = executor.execute_first_page(query.where("_id", resource_id), 1)
        primary = envelope.primary_entries()
        if not primary:
            raise ResourceNotFound(f"No {query.resource_kind} was found for the given ID: {resource_id}")
        lookup = ReferenceLookup(EntityCache(), envelope.included_entries(), executor)
        return convert(primary[0], lookup)


def require_search_value(search_key: Optional[str], search_value: Optional[str], allowed: Sequence[str]) -> Optional[str]:
    """Validate a search key/value pair; returns the canonical key or None when no key was given."""
    if not search_key or not search_key.strip():
        return None
    key = search_key.strip()
    canonical = next((a for a in allowed if a.lower() == key.lower()), None)
    if canonical is None:
        raise ContractError(f"Unidentified search key: {key}")
    if search_value is None or not search_value.strip():
        raise ContractError(f"No search value found for the search key {key}")
    return canonical


def reference_dto(reference: Optional[Dict[str, Any]], lookup: Optional[ReferenceLookup] = None) -> Optional[ReferenceDto]:
    if not reference:
        return None
    ref = (reference.get("reference") or "").strip() or None
    display = (reference.get("display") or "").strip() or None
    if ref and lookup is not None:
        display = lookup.display(reference) or display
    if ref is None and display is None:
        return None
    return ReferenceDto(reference=ref, display=display)


def coding_value_set(concept: Optional[Dict[str, Any]]) -> Optional[ValueSetDto]:
    """First coding of a CodeableConcept, falling back to its text."""
    if not concept:
        return None
    for coding in concept.get("coding") or []:
        if coding.get("code") or coding.get("display"):
            return ValueSetDto(code=coding.get("code"), display=coding.get("display"), system=coding.get("system"))
    if concept.get("text"):
        return ValueSetDto(display=concept["text"])
    return None


def first_value_set(concepts: Optional[List[Dict[str, Any]]]) -> Optional[ValueSetDto]:
    for concept in concepts or []:
        value = coding_value_set(concept)
        if value is not None:
            return value
    return None


def code_value_set(code: Optional[str]) -> Optional[ValueSetDto]:
    if not code:
        return None
    return ValueSetDto(code=code, display=code.replace("-", " ").capitalize())


def identifiers(resource: Dict[str, Any]) -> List[IdentifierDto]:
    return [IdentifierDto(system=i.get("system"), value=i.get("value")) for i in resource.get("identifier") or []]


def telecoms(resource: Dict[str, Any]) -> List[TelecomDto]:
    return [TelecomDto(system=t.get("system"), value=t.get("value"), use=t.get("use")) for t in resource.get("telecom") or []]


def first_note(resource: Dict[str, Any]) -> Optional[str]:
    notes = resource.get("note") or []
    return notes[0].get("text") if notes else None


def last_updated(resource: Dict[str, Any]) -> Optional[str]:
    return (resource.get("meta") or {}).get("lastUpdated")
