from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from .models import SearchQuery, ResultEnvelope


class SearchExecutor(ABC):
    """Port for the remote resource directory (e.g., a HAPI FHIR server)."""

    @abstractmethod
    def execute_first_page(self, query: SearchQuery, size: int) -> ResultEnvelope:
        """Run ``query`` bounded to ``size`` entries and return page 1.

        Raises:
            RemoteUnavailable: Transport failure, timeout or 5xx.
            DecodeError: Payload is not a search bundle.
        """
        raise NotImplementedError

    @abstractmethod
    def execute_next_page(self, envelope: ResultEnvelope) -> ResultEnvelope:
        """Follow the continuation reference of ``envelope`` one page forward."""
        raise NotImplementedError

    @abstractmethod
    def execute_offset_page(self, query: SearchQuery, continuation: Optional[str] = None) -> ResultEnvelope:
        """Fetch the page starting at ``query.offset`` holding ``query.count`` entries.

        ``continuation`` is the first page's next link; adapters may reuse the paging
        session it names instead of re-running the search.
        """
        raise NotImplementedError

    @abstractmethod
    def read(self, resource_kind: str, resource_id: str) -> Dict[str, Any]:
        """Read a single resource by id.

        Raises:
            ResourceNotFound: The directory has no such resource.
        """
        raise NotImplementedError
