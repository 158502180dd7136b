"""
PoliceDeskVN – Domain records (pydantic)

Records are exchanged and stored with the camelCase keys of the application
JSON document ("estimatedDamageVND", "firstTimeCount", ...). Dates are kept as
YYYY-MM-DD strings because remote spreadsheets hand back whatever they hold.
"""
from __future__ import annotations
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from database.models import (
    VehicleType, AlcoholLevel, UnitType, TaskCategory,
    VerificationStatus, AdvisoryDocType,
)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Record(WireModel):
    id: str = ""


# ── Entities ──────────────────────────────────────────────────────────────
class TrafficAccident(Record):
    date:                 str = ""
    time:                 str = ""
    location:             str = ""
    content:              str = ""
    consequences:         str = ""
    deaths:               int = 0
    injuries:             int = 0
    estimated_damage_vnd: int = Field(0, alias="estimatedDamageVND")
    alcohol_level:        AlcoholLevel = AlcoholLevel.UNKNOWN
    handling_unit:        str = ""
    processing_result:    str = ""

class VehicleRegistration(Record):
    date:             str = ""
    vehicle_type:     VehicleType = VehicleType.CAR
    first_time_count: int = 0
    transfer_count:   int = 0
    recall_count:     int = 0
    renewal_count:    int = 0

    @property
    def total(self) -> int:
        return (self.first_time_count + self.transfer_count
                + self.recall_count + self.renewal_count)

class EventTargetResult(WireModel):
    date:   str
    result: float = 0.0

class EventTarget(Record):
    name:    str = ""
    goal:    float = 0.0
    unit:    UnitType = UnitType.QUANTITY
    results: List[EventTargetResult] = Field(default_factory=list)

class Event(Record):
    name:      str = ""
    from_date: str = ""
    to_date:   str = ""
    content:   str = ""
    targets:   List[EventTarget] = Field(default_factory=list)

class DailyTask(Record):
    date:        str = ""
    category:    TaskCategory = TaskCategory.OTHER
    description: str = ""
    result:      str = ""

class VerificationRequest(Record):
    doc_number:          str = ""
    doc_date:            str = ""
    offender_name:       str = ""
    citizen_id:          str = ""
    date_of_birth:       str = ""
    address:             str = ""
    violation_behavior:  str = ""
    verification_result: VerificationStatus = VerificationStatus.NOT_STARTED
    end_date:            str = ""
    result_content:      str = ""

class AdvisoryDocument(Record):
    doc_number:     str = ""
    doc_date:       str = ""
    doc_type:       AdvisoryDocType = AdvisoryDocType.OFFICIAL_LETTER
    content:        str = ""
    recipient_unit: str = ""
    release_date:   str = ""

class DocumentTemplate(Record):
    name:    str = ""
    content: str = ""


class AppData(WireModel):
    traffic_accidents:            List[TrafficAccident] = Field(default_factory=list)
    vehicle_registrations:        List[VehicleRegistration] = Field(default_factory=list)
    events:                       List[Event] = Field(default_factory=list)
    daily_tasks:                  List[DailyTask] = Field(default_factory=list)
    verification_requests:        List[VerificationRequest] = Field(default_factory=list)
    response_document_templates:  List[DocumentTemplate] = Field(default_factory=list)
    selected_document_template_id: str = "template1"
    advisory_documents:           List[AdvisoryDocument] = Field(default_factory=list)


# Entity lists of AppData: attribute name -> (wire / collection name, model)
COLLECTIONS: Dict[str, tuple] = {
    "traffic_accidents":     ("trafficAccidents",     TrafficAccident),
    "vehicle_registrations": ("vehicleRegistrations", VehicleRegistration),
    "events":                ("events",               Event),
    "daily_tasks":           ("dailyTasks",           DailyTask),
    "verification_requests": ("verificationRequests", VerificationRequest),
    "advisory_documents":    ("advisoryDocuments",    AdvisoryDocument),
}


def initial_data() -> AppData:
    from core.templates import DEFAULT_TEMPLATES
    return AppData(
        response_document_templates=[t.model_copy() for t in DEFAULT_TEMPLATES],
        selected_document_template_id="template1",
    )


# ── Settings ──────────────────────────────────────────────────────────────
class GoogleSheetsConfig(WireModel):
    script_url: str = ""
    auto_sync:  bool = False

class FirebaseConfig(WireModel):
    api_key:             str = ""
    auth_domain:         str = ""
    project_id:          str = ""
    storage_bucket:      str = ""
    messaging_sender_id: str = ""
    app_id:              str = ""
    measurement_id:      Optional[str] = None
    enabled:             bool = False
    credentials_path:    str = ""   # service-account JSON used server-side


class SyncStatus(WireModel):
    status:  str = "idle"   # idle | syncing | success | error
    message: str = ""
    backend: str = "local"  # local | sheets | firebase


class VerificationDraft(WireModel):
    """Fields read off a scanned verification request."""
    doc_number:         str = ""
    doc_date:           str = ""
    offender_name:      str = ""
    citizen_id:         str = ""
    date_of_birth:      str = ""
    address:            str = ""
    violation_behavior: str = ""
