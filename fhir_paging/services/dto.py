from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ReferenceDto(_Serializable):
    reference: Optional[str] = None
    display: Optional[str] = None


@dataclass(frozen=True)
class ValueSetDto(_Serializable):
    code: Optional[str] = None
    display: Optional[str] = None
    system: Optional[str] = None


@dataclass(frozen=True)
class IdentifierDto(_Serializable):
    system: Optional[str] = None
    value: Optional[str] = None


@dataclass(frozen=True)
class TelecomDto(_Serializable):
    system: Optional[str] = None
    value: Optional[str] = None
    use: Optional[str] = None


@dataclass(frozen=True)
class NameLogicalIdDto(_Serializable):
    logical_id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class ConsentDto(_Serializable):
    logical_id: str
    status: Optional[str] = None
    patient: Optional[ReferenceDto] = None
    from_actor: List[ReferenceDto] = field(default_factory=list)
    to_actor: List[ReferenceDto] = field(default_factory=list)
    general_designation: bool = False
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    date_time: Optional[str] = None
    category: List[ValueSetDto] = field(default_factory=list)
    purpose: List[ValueSetDto] = field(default_factory=list)


@dataclass(frozen=True)
class ActorDto(_Serializable):
    id: str
    display: Optional[str]
    care_team_type: str


@dataclass(frozen=True)
class TaskDto(_Serializable):
    logical_id: str
    description: Optional[str] = None
    note: Optional[str] = None
    status: Optional[ValueSetDto] = None
    intent: Optional[ValueSetDto] = None
    priority: Optional[ValueSetDto] = None
    performer_type: Optional[ValueSetDto] = None
    part_of: Optional[ReferenceDto] = None
    beneficiary: Optional[ReferenceDto] = None
    agent: Optional[ReferenceDto] = None
    owner: Optional[ReferenceDto] = None
    context: Optional[ReferenceDto] = None
    authored_on: Optional[str] = None
    last_modified: Optional[str] = None
    execution_period_start: Optional[str] = None
    execution_period_end: Optional[str] = None


@dataclass(frozen=True)
class CommunicationDto(_Serializable):
    logical_id: str
    status_code: Optional[str] = None
    not_done: bool = False
    not_done_reason: Optional[ValueSetDto] = None
    category: Optional[ValueSetDto] = None
    medium: Optional[ValueSetDto] = None
    sender: Optional[ReferenceDto] = None
    recipient: List[ReferenceDto] = field(default_factory=list)
    subject: Optional[ReferenceDto] = None
    topic: Optional[ReferenceDto] = None
    definition: Optional[ReferenceDto] = None
    context: Optional[ReferenceDto] = None
    note: Optional[str] = None
    payload_content: Optional[str] = None
    sent: Optional[str] = None
    received: Optional[str] = None
    last_updated: Optional[str] = None


@dataclass(frozen=True)
class HealthcareServiceDto(_Serializable):
    logical_id: str
    name: Optional[str] = None
    program_name: List[str] = field(default_factory=list)
    active: Optional[bool] = None
    organization_id: Optional[str] = None
    category: Optional[ValueSetDto] = None
    type: List[ValueSetDto] = field(default_factory=list)
    telecom: List[TelecomDto] = field(default_factory=list)
    location: List[NameLogicalIdDto] = field(default_factory=list)
    location_id: Optional[str] = None
    location_name: Optional[str] = None
    assigned_to_current_location: Optional[bool] = None


@dataclass(frozen=True)
class PractitionerDto(_Serializable):
    logical_id: str
    name: Optional[str] = None
    active: Optional[bool] = None
    identifiers: List[IdentifierDto] = field(default_factory=list)
    telecoms: List[TelecomDto] = field(default_factory=list)
