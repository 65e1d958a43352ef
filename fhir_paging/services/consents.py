from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..application.entity_cache import ReferenceLookup, display_name
from ..application.use_cases.assemble_page import paginate_items
from ..domain.errors import ContractError, ResourceNotFound
from ..domain.models import LAST_UPDATED, Entry, PageEnvelope, SearchQuery
from ..infrastructure.logging import get_logger
from .common import ResourceService, coding_value_set, reference_dto
from .dto import ActorDto, ConsentDto, ReferenceDto, ValueSetDto

logger = get_logger("fhir_paging.services.consents")

PSEUDO_ORGANIZATION_NAME = "Omnibus Care Plan (SAMHSA)"
FROM_ROLE = "INF"
TO_ROLE = "IRCP"

ACTOR_KINDS = {
    "Practitioner": "practitioner",
    "Organization": "organization",
    "RelatedPerson": "relatedPerson",
}


def _role_code(actor: Dict[str, Any]) -> Optional[str]:
    value = coding_value_set(actor.get("role"))
    return value.code if value else None


def _actors(consent: Dict[str, Any], role: str, lookup: ReferenceLookup) -> List[ReferenceDto]:
    out: List[ReferenceDto] = []
    for actor in consent.get("actor") or []:
        if _role_code(actor) != role:
            continue
        ref = reference_dto(actor.get("reference"), lookup)
        if ref is not None:
            out.append(ref)
    return out


def consent_references(entry: Entry) -> List[Optional[Dict[str, Any]]]:
    consent = entry.resource
    refs: List[Optional[Dict[str, Any]]] = [consent.get("patient")]
    refs.extend(actor.get("reference") for actor in consent.get("actor") or [])
    return refs


def convert_consent(entry: Entry, lookup: ReferenceLookup) -> ConsentDto:
    consent = entry.resource
    period = consent.get("period") or {}
    from_actor = _actors(consent, FROM_ROLE, lookup)
    purpose = [
        ValueSetDto(code=c.get("code"), display=c.get("display"), system=c.get("system"))
        for c in consent.get("purpose") or []
    ]
    return ConsentDto(
        logical_id=entry.resource_id,
        status=consent.get("status"),
        patient=reference_dto(consent.get("patient"), lookup),
        from_actor=from_actor,
        to_actor=_actors(consent, TO_ROLE, lookup),
        general_designation=any(
            (a.display or "").lower() == PSEUDO_ORGANIZATION_NAME.lower() for a in from_actor
        ),
        period_start=period.get("start"),
        period_end=period.get("end"),
        date_time=consent.get("dateTime"),
        category=[v for v in (coding_value_set(c) for c in consent.get("category") or []) if v is not None],
        purpose=purpose,
    )


class ConsentService(ResourceService):
    """Consent reads and the in-memory actor picker used when drafting consents."""

    resource_kind = "Consent"

    def get_consents(
        self,
        patient: Optional[str] = None,
        practitioner: Optional[str] = None,
        status: Optional[str] = None,
        general_designation: Optional[bool] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._query().sorted_by(LAST_UPDATED, descending=True)
        if status:
            query = query.where("status", status.strip().lower())
        else:
            if not patient and not practitioner:
                raise ContractError("Practitioner or Patient is required to find Consents")
            if practitioner:
                query = query.where("actor", *self._care_team_references(practitioner.strip()))
            if patient:
                query = query.where("patient", patient.strip())
            if general_designation:
                query = query.where("actor", f"Organization/{self._pseudo_organization_id()}")

        return self._page(query, page_number, page_size, convert_consent, consent_references)

    def _query(self) -> SearchQuery:
        # Consent searches and reads always bypass the server cache.
        return super()._query().fresh()

    def get_consent(self, consent_id: str) -> ConsentDto:
        logger.info("Searching for consentId: %s", consent_id)
        return self._one(self._query(), consent_id.strip(), convert_consent)

    def get_actors(
        self,
        patient_id: Optional[str] = None,
        name: Optional[str] = None,
        actor_type: Optional[str] = None,
        actors_already_assigned: Optional[Sequence[str]] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        """
        Candidate consent actors (practitioners, organizations and the patient's related
        persons), optionally narrowed by name and type, paged in memory.
        """
        actors: List[ActorDto] = []
        for kind, care_team_type in ACTOR_KINDS.items():
            if actor_type and care_team_type.lower() != actor_type.strip().lower():
                continue
            query = SearchQuery(kind)
            if name and name.strip():
                query = query.where("name", name.strip())
            if kind == "Practitioner":
                query = query.where("active", "true")
            if kind == "RelatedPerson":
                if not patient_id:
                    continue
                query = query.where("patient", patient_id.strip())
            for entry in self._collect(query):
                actors.append(ActorDto(id=entry.resource_id, display=display_name(entry.resource), care_team_type=care_team_type))

        if actors_already_assigned:
            assigned = set(actors_already_assigned)
            actors = [a for a in actors if a.id not in assigned]

        logger.info("Found %d consent actor(s)", len(actors))
        return paginate_items(actors, self._page_size(page_size), page_number)

    def _collect(self, query: SearchQuery) -> List[Entry]:
        executor = self._pages.executor
        envelope = executor.execute_first_page(query, self._page_size(None, query.resource_kind))
        entries = list(envelope.primary_entries())
        while envelope.has_continuation:
            envelope = executor.execute_next_page(envelope)
            entries.extend(envelope.primary_entries())
        return entries

    def _care_team_references(self, practitioner: str) -> List[str]:
        query = SearchQuery("CareTeam").where("participant", f"Practitioner/{practitioner}")
        refs = [f"CareTeam/{entry.resource_id}" for entry in self._collect(query)]
        if not refs:
            raise ResourceNotFound("Care Team Member cannot be found for the practitioner")
        return refs

    def _pseudo_organization_id(self) -> str:
        query = SearchQuery("Organization").where("name", PSEUDO_ORGANIZATION_NAME)
        primary = self._pages.executor.execute_first_page(query, 1).primary_entries()
        if not primary:
            raise ResourceNotFound(f"No Organization named {PSEUDO_ORGANIZATION_NAME} was found")
        return primary[0].resource_id
