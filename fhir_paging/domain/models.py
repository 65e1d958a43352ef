from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

MATCH = "match"
INCLUDE = "include"

LAST_UPDATED = "_lastUpdated"


@dataclass(frozen=True)
class SearchFilter:
    """One search predicate.

    Fields:
        field: Search parameter name (e.g., ``status``, ``patient``, ``_id``).
        values: One or more values; several values form an OR list.
        modifier: Optional FHIR modifier (``exact``, ``contains``, ``missing``...).
    """
    field: str
    values: Tuple[str, ...]
    modifier: Optional[str] = None

    def to_param(self) -> Tuple[str, str]:
        key = f"{self.field}:{self.modifier}" if self.modifier else self.field
        return key, ",".join(self.values)


@dataclass(frozen=True)
class SortDirective:
    field: str
    descending: bool = False

    def to_param(self) -> str:
        return f"-{self.field}" if self.descending else self.field


DEFAULT_SORT = SortDirective(LAST_UPDATED, descending=True)


@dataclass(frozen=True)
class SearchQuery:
    """Immutable description of one directory search.

    Fields:
        resource_kind: FHIR resource type searched for (e.g., ``Task``).
        filters: Ordered predicates.
        sort: Optional sort directive; offset paging needs a stable one.
        includes: ``_include`` targets embedded next to the primary hits.
        offset: Entities to skip; set only on derived queries.
        count: Page size bound; set only on derived queries.
        no_cache: Ask the server to bypass its search cache.
    """
    resource_kind: str
    filters: Tuple[SearchFilter, ...] = ()
    sort: Optional[SortDirective] = None
    includes: Tuple[str, ...] = ()
    offset: Optional[int] = None
    count: Optional[int] = None
    no_cache: bool = False

    def where(self, field_name: str, *values: str, modifier: Optional[str] = None) -> "SearchQuery":
        flt = SearchFilter(field=field_name, values=tuple(str(v) for v in values), modifier=modifier)
        return replace(self, filters=self.filters + (flt,))

    def include(self, target: str) -> "SearchQuery":
        if target in self.includes:
            return self
        return replace(self, includes=self.includes + (target,))

    def sorted_by(self, field_name: str, descending: bool = False) -> "SearchQuery":
        return replace(self, sort=SortDirective(field_name, descending))

    def with_default_sort(self) -> "SearchQuery":
        """Return this query, sorted by last update (newest first) unless a sort is already set."""
        if self.sort is not None:
            return self
        return replace(self, sort=DEFAULT_SORT)

    def fresh(self) -> "SearchQuery":
        return replace(self, no_cache=True)

    def window(self, offset: Optional[int], count: Optional[int]) -> "SearchQuery":
        return replace(self, offset=offset, count=count)

    def to_params(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = [f.to_param() for f in self.filters]
        params.extend(("_include", target) for target in self.includes)
        if self.sort is not None:
            params.append(("_sort", self.sort.to_param()))
        if self.count is not None:
            params.append(("_count", str(self.count)))
        if self.offset:
            params.append(("_offset", str(self.offset)))
        return params

    def describe(self) -> str:
        rendered = "&".join(f"{k}={v}" for k, v in self.to_params())
        return f"{self.resource_kind}?{rendered}" if rendered else self.resource_kind


@dataclass(frozen=True)
class Entry:
    """One decoded bundle entry.

    Fields:
        resource_type: FHIR type of the wrapped resource.
        resource_id: Logical id of the resource.
        resource: Decoded resource JSON.
        mode: ``match`` for primary search hits, ``include`` for embedded entities.
    """
    resource_type: str
    resource_id: str
    resource: Dict[str, Any]
    mode: str = MATCH

    @property
    def is_primary(self) -> bool:
        return self.mode == MATCH


@dataclass(frozen=True)
class ResultEnvelope:
    """A decoded search bundle.

    Fields:
        entries: Primary and included entries in server order.
        total: Server-side count of matching entities, independent of page size.
        continuation: Next-page link; only good for the page right after this one.
        bundle_id: Bundle id (HAPI uses it as the paging session id).
        resource_kind: Primary resource type the bundle answers for.
        no_cache: Follow-up pages must bypass the server cache too.
    """
    entries: Tuple[Entry, ...] = ()
    total: int = 0
    continuation: Optional[str] = None
    bundle_id: Optional[str] = None
    resource_kind: Optional[str] = None
    no_cache: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def has_continuation(self) -> bool:
        return bool(self.continuation)

    def primary_entries(self) -> List[Entry]:
        return [e for e in self.entries if e.is_primary]

    def included_entries(self) -> List[Entry]:
        return [e for e in self.entries if not e.is_primary]


@dataclass(frozen=True)
class PageSizeConfig:
    default_size: int
    max_size: int


@dataclass(frozen=True)
class PageEnvelope:
    """The page returned to callers.

    Fields:
        elements: Converted DTOs on this page.
        size: Effective page size.
        total_number_of_pages: ``ceil(total_elements / size)``; 0 when nothing matched.
        current_page: 1-based page number.
        current_page_size: Number of elements actually on this page.
        total_elements: Server-side match count.
    """
    elements: List[Any] = field(default_factory=list)
    size: int = 0
    total_number_of_pages: int = 0
    current_page: int = 1
    current_page_size: int = 0
    total_elements: int = 0

    @classmethod
    def empty(cls, size: int) -> "PageEnvelope":
        return cls(elements=[], size=size, total_number_of_pages=0, current_page=1, current_page_size=0, total_elements=0)

    @classmethod
    def build(cls, elements: List[Any], size: int, current_page: int, total: int) -> "PageEnvelope":
        return cls(
            elements=list(elements),
            size=size,
            total_number_of_pages=total_pages(total, size),
            current_page=current_page,
            current_page_size=len(elements),
            total_elements=total,
        )

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_number_of_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1 and self.total_number_of_pages > 0

    @property
    def first_page(self) -> bool:
        return self.current_page == 1

    @property
    def last_page(self) -> bool:
        return self.current_page >= self.total_number_of_pages

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elements": [_as_plain(e) for e in self.elements],
            "size": self.size,
            "totalNumberOfPages": self.total_number_of_pages,
            "currentPage": self.current_page,
            "currentPageSize": self.current_page_size,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
            "firstPage": self.first_page,
            "lastPage": self.last_page,
            "totalElements": self.total_elements,
        }


def total_pages(total: int, size: int) -> int:
    if total <= 0 or size <= 0:
        return 0
    return math.ceil(total / size)


def _as_plain(element: Any) -> Any:
    to_dict = getattr(element, "to_dict", None)
    return to_dict() if callable(to_dict) else element
