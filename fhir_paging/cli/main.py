from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence

from ..application.page_size import PageSizePolicy
from ..application.use_cases.assemble_page import PageAggregator
from ..application.use_cases.get_page import GetPageUseCase
from ..domain.errors import ContractError, DecodeError, PageOutOfRange, RemoteUnavailable, ResourceNotFound
from ..infrastructure.config import default_page_size_config, lookup_workers, page_size_config
from ..infrastructure.fhir.client import FhirSearchExecutor
from ..infrastructure.logging import get_logger
from ..services.communications import CommunicationService
from ..services.consents import ConsentService
from ..services.healthcare_services import HealthcareServiceService
from ..services.practitioners import PractitionerService
from ..services.tasks import TaskService
from .parsers import build_parser

logger = get_logger("fhir_paging.cli")


def _build_use_case() -> GetPageUseCase:
    policy = PageSizePolicy(page_size_config(), default_page_size_config())
    return GetPageUseCase(FhirSearchExecutor(), policy, PageAggregator(lookup_workers()))


def build_services(pages: Optional[GetPageUseCase] = None) -> Dict[str, Any]:
    pages = pages or _build_use_case()
    return {
        "consents": ConsentService(pages),
        "tasks": TaskService(pages),
        "communications": CommunicationService(pages),
        "healthcare-services": HealthcareServiceService(pages),
        "practitioners": PractitionerService(pages),
    }


def run(argv: Optional[Sequence[str]] = None, services: Optional[Dict[str, Any]] = None) -> int:
    ap = build_parser()
    ns = ap.parse_args(list(argv or []))

    try:
        return dispatch_commands(ns, services or build_services())
    except (PageOutOfRange, ResourceNotFound, ContractError) as ex:
        print(json.dumps({"status": "error", "error": f"{type(ex).__name__}: {ex}"}))
        return 2
    except (RemoteUnavailable, DecodeError) as ex:
        logger.error("FHIR server request failed: %s", ex)
        print(json.dumps({"status": "error", "error": f"{type(ex).__name__}: {ex}"}))
        return 3
    except Exception as ex:  # keep CLI concise and user-friendly
        print(json.dumps({"status": "error", "error": f"{type(ex).__name__}: {ex}"}))
        return 3


def dispatch_commands(ns, services):
    """
    Dispatches CLI commands to the matching resource service.

    Commands:
    - consents, consent-actors: consent pages, one consent by id, candidate actors
    - tasks, communications, practitioners: paged searches with their filters
    - healthcare-services: all, by organization, or by organization and location
    - communication-recipients: ids of the recipients of one communication
    """
    if ns.cmd == "consents":
        return _consents(ns, services["consents"])
    if ns.cmd == "consent-actors":
        page = services["consents"].get_actors(ns.patient, ns.name, ns.actor_type, ns.assigned, ns.page, ns.size)
        return _emit(page.to_dict())
    if ns.cmd == "tasks":
        return _tasks(ns, services["tasks"])
    if ns.cmd == "communications":
        page = services["communications"].get_communications(
            ns.status, ns.search_key, ns.search_value, ns.page, ns.size
        )
        return _emit(page.to_dict())
    if ns.cmd == "communication-recipients":
        return _emit(services["communications"].get_recipients_by_communication_id(ns.patient, ns.id))
    if ns.cmd == "healthcare-services":
        return _healthcare_services(ns, services["healthcare-services"])
    if ns.cmd == "practitioners":
        return _practitioners(ns, services["practitioners"])

    print(json.dumps({"status": "error", "error": f"Unknown command: {ns.cmd}"}))
    return 2


def _emit(result: Any) -> int:
    print(json.dumps({"status": "ok", "result": result}, indent=2))
    return 0


def _consents(ns, service: ConsentService) -> int:
    if ns.id:
        return _emit(service.get_consent(ns.id).to_dict())
    page = service.get_consents(
        patient=ns.patient,
        practitioner=ns.practitioner,
        status=ns.status,
        general_designation=ns.general_designation,
        page_number=ns.page,
        page_size=ns.size,
    )
    return _emit(page.to_dict())


def _tasks(ns, service: TaskService) -> int:
    if ns.id:
        return _emit(service.get_task(ns.id).to_dict())
    page = service.get_tasks(ns.status, ns.search_key, ns.search_value, ns.page, ns.size)
    return _emit(page.to_dict())


def _healthcare_services(ns, service: HealthcareServiceService) -> int:
    """
    Runs the healthcare-services command.

    ``--id`` wins over everything else; ``--location`` narrows an ``--organization``
    search; without an organization every service in the directory is searched.
    """
    if ns.id:
        return _emit(service.get_healthcare_service(ns.id).to_dict())
    if ns.location and not ns.organization:
        raise ContractError("--location requires --organization")
    filters = dict(
        status_list=ns.status,
        search_key=ns.search_key,
        search_value=ns.search_value,
        page_number=ns.page,
        page_size=ns.size,
    )
    if ns.location:
        page = service.get_all_healthcare_services_by_location(ns.organization, ns.location, **filters)
    elif ns.organization:
        page = service.get_all_healthcare_services_by_organization(
            ns.organization, ns.assigned_to_location, **filters
        )
    else:
        page = service.get_all_healthcare_services(**filters)
    return _emit(page.to_dict())


def _practitioners(ns, service: PractitionerService) -> int:
    if ns.search_type or ns.search_value:
        page = service.search_practitioners(ns.search_type, ns.search_value, ns.show_inactive, ns.page, ns.size)
    else:
        page = service.get_all_practitioners(ns.show_inactive, ns.page, ns.size)
    return _emit(page.to_dict())


def main() -> int:
    import sys
    return run(sys.argv[1:])
