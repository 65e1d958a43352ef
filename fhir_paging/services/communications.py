from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..application.entity_cache import ReferenceLookup
from ..domain.models import LAST_UPDATED, Entry, PageEnvelope
from ..infrastructure.logging import get_logger
from .common import (
    ResourceService,
    coding_value_set,
    first_note,
    first_value_set,
    last_updated,
    reference_dto,
    require_search_value,
)
from .dto import CommunicationDto

logger = get_logger("fhir_paging.services.communications")

RECIPIENT_KINDS = ("Practitioner", "Patient", "RelatedPerson", "Organization")


def communication_references(entry: Entry) -> List[Optional[Dict[str, Any]]]:
    communication = entry.resource
    refs: List[Optional[Dict[str, Any]]] = [communication.get("sender"), communication.get("subject")]
    refs.extend(communication.get("recipient") or [])
    return refs


def convert_communication(entry: Entry, lookup: ReferenceLookup) -> CommunicationDto:
    communication = entry.resource
    payload = (communication.get("payload") or [{}])[0]
    recipients = [reference_dto(r, lookup) for r in communication.get("recipient") or []]
    return CommunicationDto(
        logical_id=entry.resource_id,
        status_code=communication.get("status"),
        not_done=bool(communication.get("notDone", False)),
        not_done_reason=coding_value_set(communication.get("notDoneReason")),
        category=first_value_set(communication.get("category")),
        medium=first_value_set(communication.get("medium")),
        sender=reference_dto(communication.get("sender"), lookup),
        recipient=[r for r in recipients if r is not None],
        subject=reference_dto(communication.get("subject"), lookup),
        topic=reference_dto((communication.get("topic") or [None])[0]),
        definition=reference_dto((communication.get("definition") or [None])[0]),
        context=reference_dto(communication.get("context")),
        note=first_note(communication),
        payload_content=payload.get("contentString"),
        sent=communication.get("sent"),
        received=communication.get("received"),
        last_updated=last_updated(communication),
    )


class CommunicationService(ResourceService):
    resource_kind = "Communication"
    SEARCH_KEYS = ("patientId", "communicationId")

    def get_communications(
        self,
        status_list: Optional[List[str]] = None,
        search_key: Optional[str] = None,
        search_value: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._query().sorted_by(LAST_UPDATED, descending=True).include("Communication:recipient")
        key = require_search_value(search_key, search_value, self.SEARCH_KEYS)
        value = (search_value or "").strip()
        if key == "patientId":
            query = query.where("patient", value)
        elif key == "communicationId":
            query = query.where("_id", value)

        if status_list:
            query = query.where("status", *status_list)

        return self._page(query, page_number, page_size, convert_communication, communication_references)

    def get_recipients_by_communication_id(self, patient: str, communication_id: str) -> List[str]:
        """Logical ids of the people and organizations a communication was sent to."""
        query = (
            self._query()
            .where("patient", patient)
            .where("_id", communication_id)
            .include("Communication:recipient")
        )
        envelope = self._pages.executor.execute_first_page(query, self._page_size(None))
        ids = [e.resource_id for e in envelope.included_entries() if e.resource_type in RECIPIENT_KINDS]
        logger.info("Communication %s has %d recipient(s)", communication_id, len(ids))
        return ids
