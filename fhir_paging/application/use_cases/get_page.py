from __future__ import annotations

from typing import Optional

from ..dto import GetPageRequest
from ..entity_cache import EntityCache
from ..page_size import PageSizePolicy
from .assemble_page import Converter, PageAggregator, References
from .resolve_page import PageResolver
from ...domain.interfaces import SearchExecutor
from ...domain.models import PageEnvelope
from ...infrastructure.logging import get_logger

logger = get_logger("fhir_paging.application.get_page")


class GetPageUseCase:
    """Use-case: size, search, resolve and assemble one page of a directory search."""

    def __init__(
        self,
        executor: SearchExecutor,
        policy: PageSizePolicy,
        aggregator: Optional[PageAggregator] = None,
    ) -> None:
        self._executor = executor
        self._policy = policy
        self._resolver = PageResolver(executor)
        self._aggregator = aggregator or PageAggregator()

    @property
    def executor(self) -> SearchExecutor:
        return self._executor

    @property
    def policy(self) -> PageSizePolicy:
        return self._policy

    def execute(self, req: GetPageRequest, convert: Converter, references: Optional[References] = None) -> PageEnvelope:
        """
        Return the requested page of ``req.query`` as a PageEnvelope.

        A search with no matches yields the empty page whatever page number was asked for;
        a page past the end of a non-empty result raises PageOutOfRange.
        """
        kind = req.query.resource_kind
        size = self._policy.resolve(req.page_size, kind)
        query = req.query.with_default_sort()

        first_page = self._executor.execute_first_page(query, size)
        if first_page.is_empty:
            logger.info("No %s resources were found for the given criteria", kind)
            return PageEnvelope.empty(size)

        envelope, _, page_number = self._resolver.resolve(first_page, query, size, req.page_number)
        return self._aggregator.assemble(
            envelope,
            size,
            page_number,
            convert,
            EntityCache(),
            reader=self._executor,
            references=references,
        )
