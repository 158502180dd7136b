"""
PoliceDeskVN – Local storage

Key/value access over the `storage` table, plus the application-level
helpers that read and write the whole state document under a fixed key.
"""
from __future__ import annotations
import json
import os
import threading
from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from database.models import SessionLocal, StorageEntry
from core.normalize import clean_app_data
from core.schemas import AppData, GoogleSheetsConfig, FirebaseConfig, initial_data

STORAGE_KEY         = os.getenv("STORAGE_KEY", "policeManagementAppData_Production")
GOOGLE_CONFIG_KEY   = "policeApp_GoogleConfig_Script"
FIREBASE_CONFIG_KEY = "policeApp_FirebaseConfig"
BACKUP_SUFFIX       = "_backup"
SAVE_DEBOUNCE       = float(os.getenv("SAVE_DEBOUNCE_SECONDS", "1.0"))


class LocalStorage:
    """getItem / setItem / removeItem over SQLAlchemy sessions."""

    def __init__(self, session_factory: Callable = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            row = db.query(StorageEntry).filter(StorageEntry.key == key).first()
            return row.value if row else None
        finally:
            db.close()

    def set(self, key: str, value: str):
        db = self.session_factory()
        try:
            row = db.query(StorageEntry).filter(StorageEntry.key == key).first()
            if row:
                row.value = value
                row.updated_at = datetime.utcnow()
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove(self, key: str):
        db = self.session_factory()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            db.commit()
        finally:
            db.close()


# ── Application state ─────────────────────────────────────────────────────
def save_data(storage: LocalStorage, data: AppData, key: str = STORAGE_KEY) -> bool:
    try:
        storage.set(key, json.dumps(data.to_wire(), ensure_ascii=False))
        return True
    except Exception as e:
        logger.error(f"Error saving data to local storage: {e}")
        return False


def upgrade_legacy(raw: dict) -> dict:
    """Fill in what older saved documents lack."""
    defaults = initial_data()
    doc = dict(raw)
    for name in ("trafficAccidents", "vehicleRegistrations", "events",
                 "dailyTasks", "advisoryDocuments"):
        doc[name] = doc.get(name) or []
    doc["verificationRequests"] = [
        {**req, "resultContent": req.get("resultContent") or ""}
        for req in (doc.get("verificationRequests") or []) if isinstance(req, dict)
    ]

    legacy = doc.pop("responseDocumentTemplate", None)
    if isinstance(legacy, str):
        doc["responseDocumentTemplates"] = [
            {"id": "template1", "name": "Mẫu Công văn 1", "content": legacy},
        ]
        doc["selectedDocumentTemplateId"] = "template1"
    elif doc.get("responseDocumentTemplates"):
        doc["selectedDocumentTemplateId"] = (doc.get("selectedDocumentTemplateId")
                                             or defaults.selected_document_template_id)
    else:
        doc["responseDocumentTemplates"] = [t.to_wire() for t in defaults.response_document_templates]
        doc["selectedDocumentTemplateId"] = defaults.selected_document_template_id
    return doc


def load_data(storage: LocalStorage, key: str = STORAGE_KEY) -> Optional[AppData]:
    """
    The saved state, or None when nothing usable is stored. Records that no
    longer validate are coerced like sheet rows. Whenever the stored text
    cannot be used as is, it is copied to `<key>_backup` first.
    """
    raw = storage.get(key)
    if not raw:
        return None
    try:
        doc = json.loads(raw)
    except ValueError as e:
        doc = None
        logger.error(f"Error loading data from local storage: {e}")
    if not isinstance(doc, dict):
        storage.set(key + BACKUP_SUFFIX, raw)
        logger.warning(f"Unreadable state kept under {key + BACKUP_SUFFIX}")
        return None

    doc = upgrade_legacy(doc)
    try:
        return AppData.model_validate(doc)
    except ValidationError as e:
        storage.set(key + BACKUP_SUFFIX, raw)
        logger.warning(f"Stored state has {e.error_count()} invalid value(s), coercing record by record")
    return AppData(**clean_app_data(doc))


# ── Settings ──────────────────────────────────────────────────────────────
def load_google_config(storage: LocalStorage) -> GoogleSheetsConfig:
    raw = storage.get(GOOGLE_CONFIG_KEY)
    if raw:
        try:
            return GoogleSheetsConfig.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring stored Google Sheets config: {e}")
    return GoogleSheetsConfig(script_url=os.getenv("GOOGLE_SCRIPT_URL", ""))


def save_google_config(storage: LocalStorage, config: GoogleSheetsConfig):
    storage.set(GOOGLE_CONFIG_KEY, config.model_dump_json(by_alias=True))


def load_firebase_config(storage: LocalStorage) -> FirebaseConfig:
    raw = storage.get(FIREBASE_CONFIG_KEY)
    if raw:
        try:
            return FirebaseConfig.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring stored Firebase config: {e}")
    return FirebaseConfig(credentials_path=os.getenv("FIREBASE_CREDENTIALS", ""))


def save_firebase_config(storage: LocalStorage, config: FirebaseConfig):
    storage.set(FIREBASE_CONFIG_KEY, config.model_dump_json(by_alias=True))


# ── Debounced writer ──────────────────────────────────────────────────────
class DebouncedSaver:
    """
    Writes the state `delay` seconds after the last schedule() call.
    Each schedule() restarts the countdown; only the latest snapshot lands.
    """

    def __init__(self, storage: LocalStorage, delay: float = SAVE_DEBOUNCE,
                 key: str = STORAGE_KEY):
        self.storage = storage
        self.delay   = delay
        self.key     = key
        self._lock    = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[AppData] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, data: AppData):
        with self._lock:
            if self._timer:
                self._timer.cancel()
            self._pending = data
            self._timer = threading.Timer(self.delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            data, self._pending = self._pending, None
        if data is None:
            return False
        return save_data(self.storage, data, self.key)

    def cancel(self):
        with self._lock:
            if self._timer:
                self._timer.cancel()
                self._timer = None
            self._pending = None
