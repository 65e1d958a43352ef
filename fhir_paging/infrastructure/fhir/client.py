from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from ...domain.errors import ContractError, DecodeError, RemoteUnavailable, ResourceNotFound
from ...domain.interfaces import SearchExecutor
from ...domain.models import INCLUDE, MATCH, Entry, ResultEnvelope, SearchQuery
from ..config import fhir_server_url
from ..logging import get_logger
from ..timeouts import operation_timeout

logger = get_logger("fhir_paging.infrastructure.fhir")

Params = Optional[Sequence[Tuple[str, str]]]


def _headers(no_cache: bool = False) -> Dict[str, str]:
    headers = {"Accept": "application/fhir+json"}
    if no_cache:
        headers["Cache-Control"] = "no-cache"
    return headers


def _next_link(bundle: Dict[str, Any]) -> Optional[str]:
    for link in bundle.get("link") or []:
        if isinstance(link, dict) and link.get("relation") == "next":
            url = link.get("url")
            return str(url) if url else None
    return None


def _paging_session(continuation: Optional[str]) -> Optional[str]:
    """Return the HAPI ``_getpages`` session id carried by a next link, if any."""
    if not continuation:
        return None
    values = parse_qs(urlparse(continuation).query).get("_getpages") or []
    return values[0] if values and values[0] else None


def _decode_entry(raw: Any, resource_kind: Optional[str]) -> Entry:
    if not isinstance(raw, dict) or not isinstance(raw.get("resource"), dict):
        raise DecodeError("Bundle entry without a resource")
    resource = raw["resource"]
    rtype = resource.get("resourceType")
    if not rtype:
        raise DecodeError("Bundle entry resource has no resourceType")
    mode = (raw.get("search") or {}).get("mode")
    if mode not in (MATCH, INCLUDE):
        # Servers that omit search.mode: anything that is not the searched kind was included.
        mode = MATCH if resource_kind is None or rtype == resource_kind else INCLUDE
    return Entry(resource_type=str(rtype), resource_id=str(resource.get("id", "")), resource=resource, mode=mode)


def decode_bundle(data: Any, resource_kind: Optional[str] = None) -> ResultEnvelope:
    """
    Decode a FHIR searchset bundle into a ResultEnvelope.

    Args:
        data: Parsed JSON payload.
        resource_kind: Type searched for; used to classify entries lacking ``search.mode``.

    Raises:
        DecodeError: The payload is not a bundle or has a malformed total/entry.
    """
    if not isinstance(data, dict) or data.get("resourceType") != "Bundle":
        raise DecodeError("Response is not a FHIR Bundle")
    entries = tuple(_decode_entry(raw, resource_kind) for raw in (data.get("entry") or []))
    primary = sum(1 for e in entries if e.is_primary)
    raw_total = data.get("total")
    if raw_total is None:
        total = primary
    else:
        try:
            total = int(raw_total)
        except (TypeError, ValueError) as ex:
            raise DecodeError(f"Bundle total is not a number: {raw_total!r}") from ex
    # A total below the entries on hand would report elements on an empty result.
    total = max(total, primary)
    return ResultEnvelope(
        entries=entries,
        total=total,
        continuation=_next_link(data),
        bundle_id=data.get("id"),
        resource_kind=resource_kind,
    )


class FhirSearchExecutor(SearchExecutor):
    """Search executor adapter for a FHIR REST server."""

    def __init__(self, base_url: Optional[str] = None) -> None:
        self._base = (base_url or fhir_server_url()).rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base

    def execute_first_page(self, query: SearchQuery, size: int) -> ResultEnvelope:
        bounded = query.window(None, size)
        envelope = self._search(
            f"{self._base}/{query.resource_kind}", bounded.to_params(), bounded.describe(), query.resource_kind, query.no_cache
        )
        logger.info(
            "FHIR %s bundle retrieved %d %s(s) from FHIR server successfully",
            query.resource_kind,
            envelope.total,
            query.resource_kind,
        )
        return envelope

    def execute_next_page(self, envelope: ResultEnvelope) -> ResultEnvelope:
        if not envelope.continuation:
            raise ContractError("Bundle has no next link to follow")
        return self._search(envelope.continuation, None, "next page", envelope.resource_kind, envelope.no_cache)

    def execute_offset_page(self, query: SearchQuery, continuation: Optional[str] = None) -> ResultEnvelope:
        session = _paging_session(continuation)
        if session:
            params: List[Tuple[str, str]] = [
                ("_getpages", session),
                ("_getpagesoffset", str(query.offset or 0)),
                ("_count", str(query.count)),
                ("_bundletype", "searchset"),
            ]
            return self._search(self._base, params, query.describe(), query.resource_kind, query.no_cache)
        return self._search(
            f"{self._base}/{query.resource_kind}", query.to_params(), query.describe(), query.resource_kind, query.no_cache
        )

    def read(self, resource_kind: str, resource_id: str) -> Dict[str, Any]:
        url = f"{self._base}/{resource_kind}/{resource_id}"
        with operation_timeout(f"Read {resource_kind}/{resource_id}") as timeout:
            r = requests.get(url, headers=_headers(), timeout=timeout)
        if r.status_code in (404, 410):
            raise ResourceNotFound(f"No {resource_kind} was found for the given ID: {resource_id}")
        self._check_status(r, f"Read {resource_kind}/{resource_id}")
        try:
            data = r.json()
        except ValueError as ex:
            logger.error("Malformed %s read response for id=%s", resource_kind, resource_id)
            raise DecodeError(f"Malformed {resource_kind} payload for id {resource_id}") from ex
        if not isinstance(data, dict) or data.get("resourceType") != resource_kind:
            raise DecodeError(f"Expected a {resource_kind} resource for id {resource_id}")
        return data

    def _search(
        self,
        url: str,
        params: Params,
        described: str,
        resource_kind: Optional[str],
        no_cache: bool = False,
    ) -> ResultEnvelope:
        logger.debug("FHIR GET %s params=%s", url, list(params or []))
        with operation_timeout(f"Search {described}") as timeout:
            r = requests.get(url, params=params, headers=_headers(no_cache), timeout=timeout)
        self._check_status(r, f"Search {described}")
        try:
            data = r.json()
        except ValueError as ex:
            logger.error("Unable to parse FHIR response for query %s", described)
            raise DecodeError(f"Malformed bundle for query {described}") from ex
        try:
            envelope = decode_bundle(data, resource_kind)
        except DecodeError as ex:
            logger.error("Unable to decode FHIR bundle for query %s: %s", described, ex)
            raise
        return replace(envelope, no_cache=True) if no_cache else envelope

    @staticmethod
    def _check_status(r: requests.Response, operation: str) -> None:
        if r.status_code >= 500:
            raise RemoteUnavailable(f"{operation} failed with HTTP {r.status_code}")
        if r.status_code >= 400:
            raise ContractError(f"{operation} was rejected with HTTP {r.status_code}: {r.text[:200]}")
