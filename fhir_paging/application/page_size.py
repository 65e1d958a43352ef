from __future__ import annotations

from typing import Dict, Mapping, Optional

from ..domain.models import PageSizeConfig

FALLBACK_PAGE_SIZE = PageSizeConfig(default_size=20, max_size=50)


class PageSizePolicy:
    """Resolve the effective page size for a resource kind.

    Out-of-range requests are replaced by the kind's default rather than rejected,
    so every input yields a size in ``(0, max]``.
    """

    def __init__(self, config: Mapping[str, PageSizeConfig], fallback: Optional[PageSizeConfig] = None) -> None:
        self._config: Dict[str, PageSizeConfig] = dict(config)
        self._fallback = fallback or FALLBACK_PAGE_SIZE

    def config_for(self, resource_kind: str) -> PageSizeConfig:
        return self._config.get(resource_kind, self._fallback)

    def resolve(self, requested_size: Optional[int], resource_kind: str) -> int:
        cfg = self.config_for(resource_kind)
        max_size = max(cfg.max_size, 1)
        default = min(max(cfg.default_size, 1), max_size)
        if requested_size is None:
            return default
        if 0 < requested_size <= max_size:
            return requested_size
        return default
