from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional
from ..domain.models import ResultEnvelope, SearchQuery


@dataclass(frozen=True)
class GetPageRequest:
    query: SearchQuery
    page_size: Optional[int] = None
    page_number: Optional[int] = None


class ResolvedPage(NamedTuple):
    envelope: ResultEnvelope
    is_first_page: bool
    page_number: int
