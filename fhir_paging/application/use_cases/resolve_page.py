from __future__ import annotations

from typing import Optional

from ..dto import ResolvedPage
from ...domain.errors import PageOutOfRange
from ...domain.interfaces import SearchExecutor
from ...domain.models import ResultEnvelope, SearchQuery
from ...infrastructure.logging import get_logger

logger = get_logger("fhir_paging.application.resolve_page")


class PageResolver:
    """Use-case: turn a first-page bundle into the bundle for the requested page."""

    def __init__(self, executor: SearchExecutor) -> None:
        self._executor = executor

    def resolve(
        self,
        first_page: ResultEnvelope,
        query: SearchQuery,
        size: int,
        requested_page_number: Optional[int],
    ) -> ResolvedPage:
        """
        Resolve the page ``requested_page_number`` of ``query``.

        Page 1 (or no page) returns ``first_page`` untouched. Page 2 follows the continuation
        reference, which points exactly one page forward. Later pages are fetched directly at
        ``(page - 1) * size`` because the continuation cannot jump.

        Raises:
            PageOutOfRange: The page would start at or beyond ``first_page.total``.
            RemoteUnavailable, DecodeError: Propagated from the executor.
        """
        if requested_page_number is None or requested_page_number <= 1:
            return ResolvedPage(first_page, True, 1)

        offset = (requested_page_number - 1) * size
        if offset >= first_page.total:
            raise PageOutOfRange(requested_page_number, size, first_page.total)

        if not first_page.has_continuation:
            return ResolvedPage(first_page, True, 1)

        if requested_page_number == 2:
            logger.info("Loading page 2 of %s through the next link", query.resource_kind)
            page = self._executor.execute_next_page(first_page)
        else:
            logger.info("Loading page %d of %s at offset %d", requested_page_number, query.resource_kind, offset)
            page = self._executor.execute_offset_page(
                query.with_default_sort().window(offset, size),
                continuation=first_page.continuation,
            )
        return ResolvedPage(page, False, requested_page_number)
