"""
PoliceDeskVN – FastAPI routes
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from loguru import logger
from pydantic import ValidationError

from core.assistant import ReportAssistant, AssistantError
from core.periods import Period, PeriodKind, PERIOD_LABELS, period_range, in_period, overlaps
from core.schemas import (
    WireModel, EventTarget, DocumentTemplate, GoogleSheetsConfig, FirebaseConfig, COLLECTIONS,
)
from core.sheets import SyncError
from core.state import AppStore, UnknownCollection
from core.stats import dashboard_overview, build_report_summary, accident_details
from core.templates import (
    DOC_PLACEHOLDERS, render_verification_reply, wrap_document, wrap_word_document,
    html_to_text, report_filename, reply_filename,
)
from database.storage import LocalStorage

router = APIRouter()

# Singletons (initialised at startup)
_store:     Optional[AppStore]        = None
_assistant: Optional[ReportAssistant] = None


def get_store() -> AppStore:
    global _store
    if _store is None:
        _store = AppStore(LocalStorage(), executor=ThreadPoolExecutor(max_workers=2, thread_name_prefix="sheets"))
    return _store

def get_assistant() -> ReportAssistant:
    global _assistant
    if _assistant is None:
        _assistant = ReportAssistant()
    return _assistant


# Field each collection is filtered on by reporting period
DATE_FIELD = {
    "traffic_accidents":     "date",
    "vehicle_registrations": "date",
    "daily_tasks":           "date",
    "verification_requests": "doc_date",
    "advisory_documents":    "doc_date",
}


# ── Schemas ───────────────────────────────────────────────────────────────
class TargetResultIn(WireModel):
    date:   str
    result: float

class SelectTemplateIn(WireModel):
    template_id: str

class ReplyIn(WireModel):
    template_id:         Optional[str] = None
    doc_date:            Optional[str] = None
    requesting_unit:     str = "Phòng CSGT - Công an TP Hà Nội"
    response_doc_number: str = ""

class ReportIn(WireModel):
    kind:      str = PeriodKind.MONTHLY.value
    reference: Optional[str] = None
    date_from: Optional[str] = None
    date_to:   Optional[str] = None

    def period(self) -> Period:
        return period_range(self.kind, self.reference, self.date_from, self.date_to)

class ReportDownloadIn(ReportIn):
    html:   str
    format: str = "html"   # html | txt


def period_params(
    kind:      str = PeriodKind.MONTHLY.value,
    reference: Optional[str] = None,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to:   Optional[str] = Query(None, alias="to"),
) -> Period:
    return period_range(kind, reference, date_from, date_to)


def _attr(store: AppStore, collection: str) -> str:
    try:
        return store.attr_for(collection)
    except UnknownCollection:
        raise HTTPException(404, f"Unknown collection: {collection}")

def _parse(model, payload: dict):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(400, e.errors(include_url=False, include_context=False, include_input=False))

def _sync_http_error(e: SyncError) -> HTTPException:
    return HTTPException(400 if e.code == "CONFIG_ERROR" else 502, str(e))

def _attachment(content: str, filename: str, media_type: str) -> Response:
    return Response(
        content=content.encode("utf-8"),
        media_type=f"{media_type}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Health ────────────────────────────────────────────────────────────────
@router.get("/health")
def health(store: AppStore = Depends(get_store)):
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": store.status.backend,
        "records": {wire: len(getattr(store.data, attr)) for attr, (wire, _) in COLLECTIONS.items()},
    }

@router.get("/data")
def app_data(store: AppStore = Depends(get_store)):
    return store.data.to_wire()

@router.get("/dashboard")
def dashboard(store: AppStore = Depends(get_store)):
    return dashboard_overview(store.data).to_wire()


# ── Records ───────────────────────────────────────────────────────────────
@router.get("/records/{collection}")
def list_records(
    collection: str,
    filtered: bool = False,
    period: Period = Depends(period_params),
    store: AppStore = Depends(get_store),
):
    attr = _attr(store, collection)
    items = store.records(attr)
    if filtered:
        if attr == "events":
            items = [e for e in items if overlaps(e.from_date, e.to_date, period)]
        else:
            items = [x for x in items if in_period(getattr(x, DATE_FIELD[attr]), period)]
    return [x.to_wire() for x in items]

@router.get("/records/{collection}/{record_id}")
def get_record(collection: str, record_id: str, store: AppStore = Depends(get_store)):
    item = store.get(_attr(store, collection), record_id)
    if item is None:
        raise HTTPException(404, "Record not found")
    return item.to_wire()

@router.post("/records/{collection}")
def create_record(collection: str, payload: dict, store: AppStore = Depends(get_store)):
    attr = _attr(store, collection)
    item = _parse(COLLECTIONS[attr][1], payload)
    return store.create(attr, item).to_wire()

@router.put("/records/{collection}/{record_id}")
def update_record(collection: str, record_id: str, payload: dict,
                  store: AppStore = Depends(get_store)):
    attr = _attr(store, collection)
    if store.get(attr, record_id) is None:
        raise HTTPException(404, "Record not found")
    item = _parse(COLLECTIONS[attr][1], {**payload, "id": record_id})
    return store.update(attr, item).to_wire()

@router.delete("/records/{collection}/{record_id}")
def delete_record(collection: str, record_id: str, store: AppStore = Depends(get_store)):
    attr = _attr(store, collection)
    if store.get(attr, record_id) is None:
        raise HTTPException(404, "Record not found")
    store.delete(attr, record_id)
    return {"deleted": record_id}


# ── Event targets ─────────────────────────────────────────────────────────
@router.post("/events/{event_id}/targets")
def add_target(event_id: str, payload: dict, store: AppStore = Depends(get_store)):
    if store.get("events", event_id) is None:
        raise HTTPException(404, "Event not found")
    target = _parse(EventTarget, payload)
    return store.add_event_target(event_id, target).to_wire()

@router.put("/events/{event_id}/targets/{target_id}/results")
def set_target_result(event_id: str, target_id: str, payload: TargetResultIn,
                      store: AppStore = Depends(get_store)):
    event = store.get("events", event_id)
    if event is None or not any(str(t.id) == target_id for t in event.targets):
        raise HTTPException(404, "Event target not found")
    return store.set_target_result(event_id, target_id, payload.date, payload.result).to_wire()


# ── Templates ─────────────────────────────────────────────────────────────
@router.get("/templates")
def templates(store: AppStore = Depends(get_store)):
    return {
        "templates":  [t.to_wire() for t in store.data.response_document_templates],
        "selectedId": store.data.selected_document_template_id,
    }

@router.get("/templates/placeholders")
def placeholders():
    return [{"key": key, "description": desc} for key, desc in DOC_PLACEHOLDERS]

@router.post("/templates")
def create_template(payload: dict, store: AppStore = Depends(get_store)):
    template = _parse(DocumentTemplate, {**payload, "id": ""})
    return store.save_template(template).to_wire()

@router.put("/templates/{template_id}")
def update_template(template_id: str, payload: dict, store: AppStore = Depends(get_store)):
    if not any(str(t.id) == template_id for t in store.data.response_document_templates):
        raise HTTPException(404, "Template not found")
    template = _parse(DocumentTemplate, {**payload, "id": template_id})
    return store.save_template(template).to_wire()

@router.post("/templates/select")
def select_template(payload: SelectTemplateIn, store: AppStore = Depends(get_store)):
    if not store.select_template(payload.template_id):
        raise HTTPException(404, "Template not found")
    return {"selectedId": payload.template_id}


# ── Verification requests ─────────────────────────────────────────────────
def _reply(store: AppStore, request_id: str, payload: ReplyIn):
    request = store.get("verification_requests", request_id)
    if request is None:
        raise HTTPException(404, "Verification request not found")
    if payload.template_id:
        template = next((t for t in store.data.response_document_templates
                         if str(t.id) == payload.template_id), None)
    else:
        template = store.selected_template()
    if template is None:
        raise HTTPException(404, "Template not found")
    html = render_verification_reply(template, request, payload.doc_date,
                                     payload.requesting_unit, payload.response_doc_number)
    return request, html

@router.post("/verifications/{request_id}/reply")
def reply_letter(request_id: str, payload: ReplyIn, store: AppStore = Depends(get_store)):
    request, html = _reply(store, request_id, payload)
    created = payload.doc_date or datetime.now().date().isoformat()
    return {
        "html":     html,
        "document": wrap_document(html, "Công văn trả lời xác minh"),
        "filename": reply_filename(request.doc_number, created, "html"),
    }

@router.post("/verifications/{request_id}/reply/download")
def download_reply(request_id: str, payload: ReplyIn, fmt: str = Query("doc", alias="format"),
                   store: AppStore = Depends(get_store)):
    request, html = _reply(store, request_id, payload)
    created = payload.doc_date or datetime.now().date().isoformat()
    if fmt == "doc":
        return _attachment(wrap_word_document(html), reply_filename(request.doc_number, created, "doc"),
                           "application/msword")
    return _attachment(wrap_document(html, "Công văn trả lời xác minh"),
                       reply_filename(request.doc_number, created, "html"), "text/html")

@router.post("/verifications/extract")
async def extract_verification(
    file: UploadFile = File(...),
    assistant: ReportAssistant = Depends(get_assistant),
):
    data = await file.read()
    if not data:
        raise HTTPException(400, "Empty image")
    try:
        draft = assistant.extract_verification(data, file.content_type or "image/jpeg")
    except AssistantError as e:
        raise HTTPException(502, str(e))
    return draft.to_wire()


# ── Reports ───────────────────────────────────────────────────────────────
@router.get("/reports/period")
def report_period(kind: str = PeriodKind.MONTHLY.value, period: Period = Depends(period_params)):
    try:
        label = PERIOD_LABELS[PeriodKind(kind)]
    except ValueError:
        label = PERIOD_LABELS[PeriodKind.ALL]
    return {**period.as_dict(), "label": label}

@router.get("/reports/summary")
def report_summary(period: Period = Depends(period_params), store: AppStore = Depends(get_store)):
    return build_report_summary(store.data, period).to_wire()

@router.get("/reports/accidents")
def report_accidents(detail: str = "total", period: Period = Depends(period_params),
                     store: AppStore = Depends(get_store)):
    return [a.to_wire() for a in accident_details(store.data, period, detail)]

@router.post("/reports/generate")
def generate_report(payload: ReportIn,
                    store: AppStore = Depends(get_store),
                    assistant: ReportAssistant = Depends(get_assistant)):
    period = payload.period()
    if not period.bounded:
        raise HTTPException(400, "Vui lòng chọn khoảng thời gian hoặc nhập đầy đủ ngày tùy chọn.")
    summary = build_report_summary(store.data, period)
    try:
        html = assistant.generate_report(summary)
    except AssistantError as e:
        raise HTTPException(502, str(e))
    return {"html": html, "summary": summary.to_wire()}

@router.post("/reports/download")
def download_report(payload: ReportDownloadIn):
    period = payload.period()
    if payload.format == "txt":
        return _attachment(html_to_text(payload.html),
                           report_filename(payload.kind, period.start, period.end, "txt"), "text/plain")
    return _attachment(wrap_document(payload.html, "Báo cáo"),
                       report_filename(payload.kind, period.start, period.end, "html"), "text/html")


# ── Sync ──────────────────────────────────────────────────────────────────
@router.get("/sync/status")
def sync_status(store: AppStore = Depends(get_store)):
    return store.status.to_wire()

@router.post("/sync/start")
def sync_start(background_tasks: BackgroundTasks, store: AppStore = Depends(get_store)):
    background_tasks.add_task(store.background_sync)
    return {"status": "syncing"}

@router.post("/sync/sheets/pull")
def sheets_pull(store: AppStore = Depends(get_store)):
    try:
        partial = store.pull_from_sheets()
    except SyncError as e:
        raise _sync_http_error(e)
    return {"imported": {COLLECTIONS[k][0]: len(v) for k, v in partial.items() if k in COLLECTIONS}}

@router.post("/sync/sheets/push")
def sheets_push(store: AppStore = Depends(get_store)):
    try:
        store.push_to_sheets()
    except SyncError as e:
        raise _sync_http_error(e)
    return {"status": "sent"}

@router.post("/sync/firebase/push")
def firebase_push(store: AppStore = Depends(get_store)):
    try:
        written = store.push_to_firebase()
    except SyncError as e:
        raise _sync_http_error(e)
    except Exception as e:
        logger.error(f"Firebase push failed: {e}")
        raise HTTPException(502, f"Firebase push failed: {e}")
    return {"written": written}


# ── Settings ──────────────────────────────────────────────────────────────
@router.get("/settings/google")
def google_settings(store: AppStore = Depends(get_store)):
    return store.google_config.to_wire()

@router.put("/settings/google")
def save_google_settings(payload: GoogleSheetsConfig, store: AppStore = Depends(get_store)):
    if payload.script_url and "/exec" not in payload.script_url:
        raise HTTPException(400, "URL Google Script phải là link Web App kết thúc bằng /exec")
    store.set_google_config(payload)
    return payload.to_wire()

@router.get("/settings/firebase")
def firebase_settings(store: AppStore = Depends(get_store)):
    return store.firebase_config.to_wire()

@router.put("/settings/firebase")
def save_firebase_settings(payload: FirebaseConfig, store: AppStore = Depends(get_store)):
    store.set_firebase_config(payload)
    return payload.to_wire()
