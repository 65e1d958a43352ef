from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..application.entity_cache import ReferenceLookup
from ..domain.models import Entry, PageEnvelope
from ..infrastructure.logging import get_logger
from .common import (
    ResourceService,
    code_value_set,
    first_note,
    first_value_set,
    reference_dto,
    require_search_value,
)
from .dto import TaskDto

logger = get_logger("fhir_paging.services.tasks")


def task_references(entry: Entry) -> List[Optional[Dict[str, Any]]]:
    task = entry.resource
    return [task.get("for"), (task.get("requester") or {}).get("agent"), task.get("owner")]


def convert_task(entry: Entry, lookup: ReferenceLookup) -> TaskDto:
    task = entry.resource
    period = task.get("executionPeriod") or {}
    part_of = (task.get("partOf") or [None])[0]
    return TaskDto(
        logical_id=entry.resource_id,
        description=task.get("description"),
        note=first_note(task),
        status=code_value_set(task.get("status")),
        intent=code_value_set(task.get("intent")),
        priority=code_value_set(task.get("priority")),
        performer_type=first_value_set(task.get("performerType")),
        part_of=reference_dto(part_of),
        beneficiary=reference_dto(task.get("for"), lookup),
        agent=reference_dto((task.get("requester") or {}).get("agent"), lookup),
        owner=reference_dto(task.get("owner"), lookup),
        context=reference_dto(task.get("context")),
        authored_on=task.get("authoredOn"),
        last_modified=task.get("lastModified"),
        execution_period_start=period.get("start"),
        execution_period_end=period.get("end"),
    )


class TaskService(ResourceService):
    """Task reads: paged search by patient, organization or id, plus single lookup."""

    resource_kind = "Task"
    SEARCH_KEYS = ("patientId", "organizationId", "taskId")

    def get_tasks(
        self,
        status_list: Optional[List[str]] = None,
        search_key: Optional[str] = None,
        search_value: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> PageEnvelope:
        query = self._query().include("Task:context")
        key = require_search_value(search_key, search_value, self.SEARCH_KEYS)
        value = (search_value or "").strip()
        if key == "patientId":
            query = query.where("patient", f"Patient/{value}")
        elif key == "organizationId":
            query = query.where("organization", f"Organization/{value}")
        elif key == "taskId":
            query = query.where("_id", value)

        if status_list:
            query = query.where("status", *status_list)

        logger.info("Searching tasks | key=%s | statuses=%s", key, status_list or "ALL")
        return self._page(query, page_number, page_size, convert_task, task_references)

    def get_task(self, task_id: str) -> TaskDto:
        return self._one(self._query().include("Task:context"), task_id.strip(), convert_task)
