from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple, Union

from ..domain.errors import ContractError
from ..domain.interfaces import SearchExecutor
from ..domain.models import Entry

Key = Tuple[str, str]
ReferenceLike = Union[str, Dict[str, Any]]


class EntityCache:
    """Page-scoped map from ``(kind, id)`` to a resolved value.

    Built fresh for every page assembly and dropped with it; never shared between requests.
    """

    def __init__(self) -> None:
        self._values: Dict[Hashable, Any] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def resolve(self, entity_id: str, kind: str, fallback_fetch: Callable[[], Any]) -> Any:
        key = (kind, entity_id)
        if key not in self._values:
            self._values[key] = fallback_fetch()
        return self._values[key]

    def prefetch(self, keys: Iterable[Key], fetch: Callable[[str, str], Any], max_workers: int = 4) -> None:
        """
        Resolve every missing key, running ``fetch(kind, id)`` on a bounded thread pool.

        Values are stored by key once all lookups finish, so completion order does not matter.
        The first failing lookup re-raises here.
        """
        missing = [k for k in dict.fromkeys(keys) if k not in self._values]
        if not missing:
            return
        if max_workers <= 1 or len(missing) == 1:
            for kind, entity_id in missing:
                self._values[(kind, entity_id)] = fetch(kind, entity_id)
            return
        with ThreadPoolExecutor(max_workers=min(max_workers, len(missing))) as pool:
            futures = {key: pool.submit(fetch, key[0], key[1]) for key in missing}
            for key, fut in futures.items():
                self._values[key] = fut.result()


def split_reference(reference: str) -> Key:
    """Split ``Kind/id`` (relative, absolute or versioned) into ``(kind, id)``."""
    parts = [p for p in str(reference).strip().split("/") if p]
    if "_history" in parts:
        parts = parts[: parts.index("_history")]
    if len(parts) < 2:
        raise ContractError(f"Malformed reference: {reference!r}")
    return parts[-2], parts[-1]


def display_name(resource: Dict[str, Any]) -> Optional[str]:
    """Human-readable name of a resource (HumanName for people, ``name`` for everything else)."""
    name = resource.get("name")
    if isinstance(name, str):
        return name.strip() or None
    if isinstance(name, list):
        for human in name:
            if not isinstance(human, dict):
                continue
            text = (human.get("text") or "").strip()
            if text:
                return text
            given = " ".join(str(g).strip() for g in (human.get("given") or []) if str(g).strip())
            family = str(human.get("family") or "").strip()
            full = " ".join(p for p in (given, family) if p)
            if full:
                return full
    return None


class ReferenceLookup:
    """Resolve references found on one page to display names through an EntityCache.

    Order: entities included in the page, then the reference's own ``display``,
    then a single remote read.
    """

    def __init__(
        self,
        cache: EntityCache,
        included: Iterable[Entry] = (),
        reader: Optional[SearchExecutor] = None,
        max_workers: int = 4,
    ) -> None:
        self._cache = cache
        self._included = {(e.resource_type, e.resource_id): e.resource for e in included}
        self._reader = reader
        self._max_workers = max_workers

    @property
    def cache(self) -> EntityCache:
        return self._cache

    def included(self, kind: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self._included.get((kind, entity_id))

    def display(self, reference: Optional[ReferenceLike]) -> Optional[str]:
        ref, hint = _unpack(reference)
        if not ref:
            return hint
        kind, entity_id = split_reference(ref)
        return self._cache.resolve(entity_id, kind, lambda: self._local(kind, entity_id, hint) or self._remote(kind, entity_id))

    def prefetch(self, references: Iterable[Optional[ReferenceLike]]) -> None:
        """Warm the cache for ``references``; local answers first, remote reads in parallel."""
        remote: List[Key] = []
        for reference in references:
            ref, hint = _unpack(reference)
            if not ref:
                continue
            key = split_reference(ref)
            if key in self._cache:
                continue
            local = self._local(key[0], key[1], hint)
            if local is not None:
                self._cache.resolve(key[1], key[0], lambda value=local: value)
            else:
                remote.append(key)
        if remote:
            self._cache.prefetch(remote, self._remote, self._max_workers)

    def _local(self, kind: str, entity_id: str, hint: Optional[str]) -> Optional[str]:
        resource = self._included.get((kind, entity_id))
        if resource is not None:
            name = display_name(resource)
            if name:
                return name
        return hint

    def _remote(self, kind: str, entity_id: str) -> Optional[str]:
        if self._reader is None:
            return None
        return display_name(self._reader.read(kind, entity_id))


def _unpack(reference: Optional[ReferenceLike]) -> Tuple[Optional[str], Optional[str]]:
    if reference is None:
        return None, None
    if isinstance(reference, str):
        return reference.strip() or None, None
    ref = (reference.get("reference") or "").strip() or None
    hint = (reference.get("display") or "").strip() or None
    return ref, hint
