from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Sequence

from ..entity_cache import EntityCache, ReferenceLike, ReferenceLookup
from ...domain.errors import PageOutOfRange
from ...domain.interfaces import SearchExecutor
from ...domain.models import Entry, PageEnvelope, ResultEnvelope

Converter = Callable[[Entry, ReferenceLookup], Any]
References = Callable[[Entry], Iterable[Optional[ReferenceLike]]]


class PageAggregator:
    """Use-case: convert the primary entries of a bundle into a PageEnvelope."""

    def __init__(self, lookup_workers: int = 4) -> None:
        self._lookup_workers = lookup_workers

    def assemble(
        self,
        envelope: ResultEnvelope,
        size: int,
        current_page: int,
        convert: Converter,
        cache: EntityCache,
        reader: Optional[SearchExecutor] = None,
        references: Optional[References] = None,
    ) -> PageEnvelope:
        """
        Build the page for ``envelope``.

        Included entries are never converted; they only feed reference lookups. When
        ``references`` is given, every reference it yields is resolved up front on a
        bounded worker pool so ``convert`` hits the cache.

        Args:
            envelope: Bundle of the resolved page.
            size: Effective page size.
            current_page: 1-based page number reported to the caller.
            convert: Maps one primary entry to a DTO; may resolve names through the lookup.
            cache: Fresh cache owned by this assembly.
            reader: Executor used for lookups that the page cannot answer.
            references: Yields the references an entry will need resolved.

        Returns:
            PageEnvelope: Empty page (current page 1) when the bundle has no entries.
        """
        if envelope.is_empty:
            return PageEnvelope.empty(size)

        lookup = ReferenceLookup(cache, envelope.included_entries(), reader, self._lookup_workers)
        primary = envelope.primary_entries()
        if references is not None:
            lookup.prefetch(ref for entry in primary for ref in references(entry))
        elements = [convert(entry, lookup) for entry in primary]
        return PageEnvelope.build(elements, size, max(current_page, 1), envelope.total)


def paginate_items(items: Sequence[Any], size: int, page_number: Optional[int]) -> PageEnvelope:
    """Page an in-memory list with the same envelope rules as remote searches."""
    total = len(items)
    if total == 0:
        return PageEnvelope.empty(size)
    page = page_number if page_number is not None and page_number > 1 else 1
    offset = (page - 1) * size
    if offset >= total:
        raise PageOutOfRange(page, size, total)
    elements: List[Any] = list(items[offset:offset + size])
    return PageEnvelope.build(elements, size, page, total)
