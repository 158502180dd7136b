"""
PoliceDeskVN – Permissive parsing of spreadsheet rows

Rows read back from the Apps Script come in whatever shape the sheet holds:
header rows repeated as data, keys in any case, "1.000.000" amounts, ISO
timestamps where a date was typed, "undefined" cells. Everything here
coerces instead of failing.
"""
from __future__ import annotations
import json
import re
from typing import Any, List, Optional, Type

from loguru import logger

from core.schemas import (
    TrafficAccident, VehicleRegistration, Event, EventTarget, EventTargetResult,
    DailyTask, VerificationRequest, AdvisoryDocument, DocumentTemplate, COLLECTIONS,
)
from database.crud import new_id
from database.models import (
    VehicleType, AlcoholLevel, UnitType, TaskCategory,
    VerificationStatus, AdvisoryDocType,
)

_ISO_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T")


# ── Scalars ───────────────────────────────────────────────────────────────
def find_key(obj: Any, key: str) -> Any:
    """Value of `key` in a dict, ignoring key case."""
    if not isinstance(obj, dict):
        return None
    wanted = key.lower()
    for k, v in obj.items():
        if str(k).lower() == wanted:
            return v
    return None


def safe_int(value: Any) -> int:
    """Integer counts and VND amounts; every separator is dropped ("1.000.000" -> 1000000)."""
    if value is None or value == "" or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value // 1)
    m = re.match(r"-?\d+", re.sub(r"[^0-9-]", "", str(value).strip()))
    return int(m.group(0)) if m else 0


def safe_num(value: Any) -> float:
    """Decimal goals/results; understands both 1.000,50 and 1,000.50."""
    if value is None or value == "" or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip()
    if "." in s and "," in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    m = re.match(r"[+-]?(\d+(\.\d*)?|\.\d+)", s)
    return float(m.group(0)) if m else 0.0


def safe_str(value: Any) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if s.lower() in ("undefined", "null"):
        return ""
    if _ISO_TIMESTAMP.match(s):
        return s[:10]
    return s


def safe_enum(enum_cls: Type, value: Any, default):
    try:
        return enum_cls(safe_str(value))
    except ValueError:
        return default


def is_header_row(item: Any, key: str) -> bool:
    val = find_key(item, key)
    return isinstance(val, str) and val.strip().lower() == key.lower()


def _rows(raw: Any, header_key: str) -> List[dict]:
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, dict) and not is_header_row(r, header_key)]


def _row_id(row: dict) -> str:
    return safe_str(find_key(row, "id")) or new_id()


# ── Entities ──────────────────────────────────────────────────────────────
def map_traffic_accidents(raw: Any) -> List[TrafficAccident]:
    return [
        TrafficAccident(
            id=_row_id(r),
            date=safe_str(find_key(r, "date")),
            time=safe_str(find_key(r, "time")),
            location=safe_str(find_key(r, "location")),
            content=safe_str(find_key(r, "content")),
            consequences=safe_str(find_key(r, "consequences")),
            deaths=safe_int(find_key(r, "deaths")),
            injuries=safe_int(find_key(r, "injuries")),
            estimated_damage_vnd=safe_int(find_key(r, "estimatedDamageVND")),
            alcohol_level=safe_enum(AlcoholLevel, find_key(r, "alcoholLevel"), AlcoholLevel.UNKNOWN),
            handling_unit=safe_str(find_key(r, "handlingUnit")),
            processing_result=safe_str(find_key(r, "processingResult")),
        )
        for r in _rows(raw, "id")
    ]


def vehicle_type(value: Any) -> VehicleType:
    return VehicleType.MOTORBIKE if "máy" in safe_str(value).lower() else VehicleType.CAR


def map_vehicle_registrations(raw: Any) -> List[VehicleRegistration]:
    return [
        VehicleRegistration(
            id=_row_id(r),
            date=safe_str(find_key(r, "date")),
            vehicle_type=vehicle_type(find_key(r, "vehicleType")),
            first_time_count=safe_int(find_key(r, "firstTimeCount")),
            transfer_count=safe_int(find_key(r, "transferCount")),
            recall_count=safe_int(find_key(r, "recallCount")),
            renewal_count=safe_int(find_key(r, "renewalCount")),
        )
        for r in _rows(raw, "vehicleType")
    ]


def _targets(raw: Any) -> List[EventTarget]:
    if isinstance(raw, str) and raw.strip().startswith("["):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Unreadable event targets cell, ignored")
            raw = []
    if not isinstance(raw, list):
        return []
    out = []
    for t in raw:
        if not isinstance(t, dict):
            continue
        results = [
            EventTargetResult(date=safe_str(find_key(x, "date")), result=safe_num(find_key(x, "result")))
            for x in (find_key(t, "results") or []) if isinstance(x, dict)
        ]
        out.append(EventTarget(
            id=_row_id(t),
            name=safe_str(find_key(t, "name")),
            goal=safe_num(find_key(t, "goal")),
            unit=safe_enum(UnitType, find_key(t, "unit"), UnitType.QUANTITY),
            results=results,
        ))
    return out


def map_events(raw: Any) -> List[Event]:
    return [
        Event(
            id=_row_id(r),
            name=safe_str(find_key(r, "name")),
            from_date=safe_str(find_key(r, "fromDate")),
            to_date=safe_str(find_key(r, "toDate")),
            content=safe_str(find_key(r, "content")),
            targets=_targets(find_key(r, "targets")),
        )
        for r in _rows(raw, "id")
    ]


def map_daily_tasks(raw: Any) -> List[DailyTask]:
    return [
        DailyTask(
            id=_row_id(r),
            date=safe_str(find_key(r, "date")),
            category=safe_enum(TaskCategory, find_key(r, "category"), TaskCategory.OTHER),
            description=safe_str(find_key(r, "description")),
            result=safe_str(find_key(r, "result")),
        )
        for r in _rows(raw, "category")
    ]


def verification_status(value: Any) -> VerificationStatus:
    if not safe_str(value):
        return VerificationStatus.NOT_STARTED
    return safe_enum(VerificationStatus, value, VerificationStatus.UNDETERMINED)


def map_verification_requests(raw: Any) -> List[VerificationRequest]:
    return [
        VerificationRequest(
            id=_row_id(r),
            doc_number=safe_str(find_key(r, "docNumber")),
            doc_date=safe_str(find_key(r, "docDate")),
            offender_name=safe_str(find_key(r, "offenderName")),
            citizen_id=safe_str(find_key(r, "citizenId")),
            date_of_birth=safe_str(find_key(r, "dateOfBirth")),
            address=safe_str(find_key(r, "address")),
            violation_behavior=safe_str(find_key(r, "violationBehavior")),
            verification_result=verification_status(find_key(r, "verificationResult")),
            end_date=safe_str(find_key(r, "endDate")),
            result_content=safe_str(find_key(r, "resultContent")),
        )
        for r in _rows(raw, "docNumber")
    ]


def map_advisory_documents(raw: Any) -> List[AdvisoryDocument]:
    return [
        AdvisoryDocument(
            id=_row_id(r),
            doc_number=safe_str(find_key(r, "docNumber")),
            doc_date=safe_str(find_key(r, "docDate")),
            doc_type=safe_enum(AdvisoryDocType, find_key(r, "docType"), AdvisoryDocType.OTHER),
            content=safe_str(find_key(r, "content")),
            recipient_unit=safe_str(find_key(r, "recipientUnit")),
            release_date=safe_str(find_key(r, "releaseDate")),
        )
        for r in _rows(raw, "docNumber")
    ]


MAPPERS = {
    "traffic_accidents":     map_traffic_accidents,
    "vehicle_registrations": map_vehicle_registrations,
    "events":                map_events,
    "daily_tasks":           map_daily_tasks,
    "verification_requests": map_verification_requests,
    "advisory_documents":    map_advisory_documents,
}


def map_templates(raw: Any) -> List[DocumentTemplate]:
    return [
        DocumentTemplate(
            id=_row_id(r),
            name=safe_str(find_key(r, "name")),
            content=safe_str(find_key(r, "content")),
        )
        for r in _rows(raw, "id")
    ]


def clean_app_data(raw: dict) -> dict:
    """
    Partial AppData (snake_case attribute -> records) holding only the
    collections present in `raw`.
    """
    cleaned: dict = {}
    for attr, (wire, _model) in COLLECTIONS.items():
        value = find_key(raw, wire)
        if value or isinstance(value, list):
            cleaned[attr] = MAPPERS[attr](value)

    templates = find_key(raw, "responseDocumentTemplates")
    mapped = map_templates(templates)
    if mapped:
        cleaned["response_document_templates"] = mapped
    selected: Optional[str] = find_key(raw, "selectedDocumentTemplateId")
    if selected:
        cleaned["selected_document_template_id"] = safe_str(selected)

    logger.debug(f"Cleaned remote data: {sorted(cleaned)}")
    return cleaned
