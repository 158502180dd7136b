"""
PoliceDeskVN – Application state

AppStore owns the in-memory AppData and routes every change:
  Firebase mode : write to Firestore only, the listeners bring the change back
  otherwise     : apply locally, mirror to the Sheets script when one is set
Every local change schedules a debounced save to local storage.
"""
from __future__ import annotations
import threading
from concurrent.futures import Executor
from typing import Callable, Dict, List, Optional

from loguru import logger

from core.firebase import FirestoreSync
from core.normalize import MAPPERS
from core.schemas import (
    AppData, Record, Event, EventTarget, DocumentTemplate,
    GoogleSheetsConfig, FirebaseConfig, SyncStatus, COLLECTIONS, initial_data,
)
from core.sheets import SheetsClient, SyncError
from database import crud
from database.storage import (
    LocalStorage, DebouncedSaver, load_data,
    load_google_config, save_google_config, load_firebase_config, save_firebase_config,
)

# wire / collection name -> AppData attribute
ATTR_BY_COLLECTION = {wire: attr for attr, (wire, _) in COLLECTIONS.items()}


class UnknownCollection(KeyError):
    pass


class AppStore:
    def __init__(self, storage: LocalStorage,
                 saver: Optional[DebouncedSaver] = None,
                 firebase: Optional[FirestoreSync] = None,
                 sheets_factory: Callable[..., SheetsClient] = SheetsClient,
                 executor: Optional[Executor] = None):
        self.storage        = storage
        self.saver          = saver or DebouncedSaver(storage)
        self.firebase       = firebase or FirestoreSync()
        self.sheets_factory = sheets_factory
        self.executor       = executor

        self._lock = threading.RLock()
        self._unsubscribers: List[Callable[[], None]] = []
        self.using_firebase = False
        self.status = SyncStatus()

        self.data = load_data(storage) or initial_data()
        self.google_config   = load_google_config(storage)
        self.firebase_config = load_firebase_config(storage)

    # ── Internals ─────────────────────────────────────────────────────────
    def _commit(self, immediate: bool = False, **changes):
        with self._lock:
            self.data = self.data.model_copy(update=changes)
            self.saver.schedule(self.data)
        if immediate:
            self.saver.flush()

    def _set_status(self, status: str, message: str = "", backend: Optional[str] = None):
        self.status = SyncStatus(status=status, message=message,
                                 backend=backend or self.status.backend)
        log = logger.error if status == "error" else logger.info
        log(f"Sync [{status}] {message}")

    def sheets(self) -> Optional[SheetsClient]:
        if not self.google_config.script_url:
            return None
        return self.sheets_factory(self.google_config.script_url, executor=self.executor)

    @staticmethod
    def attr_for(collection: str) -> str:
        if collection in COLLECTIONS:
            return collection
        try:
            return ATTR_BY_COLLECTION[collection]
        except KeyError:
            raise UnknownCollection(collection)

    # ── Records ───────────────────────────────────────────────────────────
    def records(self, collection: str) -> List[Record]:
        return list(getattr(self.data, self.attr_for(collection)))

    def get(self, collection: str, record_id):
        return crud.find(getattr(self.data, self.attr_for(collection)), record_id)

    def create(self, collection: str, item: Record) -> Record:
        attr = self.attr_for(collection)
        wire = COLLECTIONS[attr][0]
        with self._lock:
            created = crud.create(getattr(self.data, attr), item)
            new_item = created[-1]
            if self.using_firebase:
                self.firebase.add_item(wire, new_item.to_wire())
                return new_item
            self._commit(**{attr: created})

        sheets = self.sheets()
        if sheets:
            sheets.append_row(wire, new_item.to_wire())
        return new_item

    def update(self, collection: str, item: Record) -> Record:
        attr = self.attr_for(collection)
        wire = COLLECTIONS[attr][0]
        if self.using_firebase:
            self.firebase.update_item(wire, item.to_wire())
            return item
        with self._lock:
            updated = crud.update(getattr(self.data, attr), item)
            self._commit(**{attr: updated})
        self._mirror_list(wire, updated)
        return item

    def delete(self, collection: str, record_id):
        attr = self.attr_for(collection)
        wire = COLLECTIONS[attr][0]
        if self.using_firebase:
            self.firebase.delete_item(wire, str(record_id))
            return
        with self._lock:
            remaining = crud.delete(getattr(self.data, attr), record_id)
            self._commit(**{attr: remaining})
        self._mirror_list(wire, remaining)

    def _mirror_list(self, wire: str, items: List[Record]):
        sheets = self.sheets()
        if sheets:
            sheets.update_sheet(wire, [x.to_wire() for x in items])

    # ── Event targets ─────────────────────────────────────────────────────
    def _change_event(self, event_id, change: Callable[[List[Event]], List[Event]]) -> Optional[Event]:
        with self._lock:
            if self.using_firebase:
                event = crud.find(self.data.events, event_id)
                if event is None:
                    return None
                updated = change([event])[0]
                self.firebase.update_item("events", updated.to_wire())
                return updated
            events = change(self.data.events)
            self._commit(events=events)
        self._mirror_list("events", events)
        return crud.find(events, event_id)

    def add_event_target(self, event_id, target: EventTarget) -> Optional[Event]:
        return self._change_event(event_id, lambda evs: crud.add_event_target(evs, event_id, target))

    def set_target_result(self, event_id, target_id, result_date: str, result: float) -> Optional[Event]:
        return self._change_event(
            event_id,
            lambda evs: crud.update_event_target_result(evs, event_id, target_id, result_date, result),
        )

    # ── Templates ─────────────────────────────────────────────────────────
    def selected_template(self) -> Optional[DocumentTemplate]:
        templates = self.data.response_document_templates
        return crud.find(templates, self.data.selected_document_template_id) or (templates[0] if templates else None)

    def save_template(self, template: DocumentTemplate) -> DocumentTemplate:
        with self._lock:
            templates = self.data.response_document_templates
            if template.id and crud.find(templates, template.id) is not None:
                templates = crud.update(templates, template)
            else:
                templates = crud.create(templates, template)
                template = templates[-1]
            self._commit(response_document_templates=templates)
        return template

    def select_template(self, template_id: str) -> bool:
        if crud.find(self.data.response_document_templates, template_id) is None:
            return False
        self._commit(selected_document_template_id=str(template_id))
        return True

    # ── Remote data ───────────────────────────────────────────────────────
    def apply_remote(self, partial: Dict[str, list]):
        """Overwrite the collections present in `partial` and save at once."""
        changes = {k: v for k, v in partial.items() if v is not None and k in AppData.model_fields}
        if changes:
            self._commit(immediate=True, **changes)

    def _on_snapshot(self, attr: str, items: List[dict]):
        records = MAPPERS[attr](items)
        logger.debug(f"Firebase snapshot: {attr} ({len(records)} records)")
        self._commit(**{attr: records})

    def _start_firebase(self) -> bool:
        if not self.firebase.init(self.firebase_config):
            return False
        self._stop_listeners()
        for attr, (wire, _) in COLLECTIONS.items():
            self._unsubscribers.append(
                self.firebase.subscribe(wire, lambda items, a=attr: self._on_snapshot(a, items))
            )
        self.using_firebase = True
        return True

    def _stop_listeners(self):
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"Listener unsubscribe failed: {e}")
        self._unsubscribers = []

    def background_sync(self) -> SyncStatus:
        self._set_status("syncing", "Đang kết nối và đồng bộ dữ liệu...")

        if self.firebase_config.enabled:
            if self._start_firebase():
                self._set_status("success", "Đã kết nối Firebase thành công!", backend="firebase")
                return self.status
            self._set_status("syncing", "Kết nối Firebase thất bại. Thử Google Sheets...")

        sheets = self.sheets()
        if sheets is None:
            self._set_status("idle", "", backend="local")
            return self.status
        try:
            self._set_status("syncing", "Đang tải dữ liệu từ Google Sheets...")
            self.apply_remote(sheets.import_all())
            self._set_status("success", "Đồng bộ Google Sheets hoàn tất!", backend="sheets")
        except SyncError as e:
            self._set_status("error", f"Lỗi đồng bộ: {e}")
        return self.status

    def pull_from_sheets(self) -> Dict[str, list]:
        sheets = self.sheets()
        if sheets is None:
            raise SyncError("CONFIG_ERROR", "Chưa cấu hình URL (Link) của Google Script.")
        partial = sheets.import_all()
        self.apply_remote(partial)
        return partial

    def push_to_sheets(self):
        sheets = self.sheets()
        if sheets is None:
            raise SyncError("CONFIG_ERROR", "Chưa cấu hình URL (Link) của Google Script.")
        return sheets.export_all(self.data)

    def push_to_firebase(self) -> int:
        if not self.firebase.ready and not self.firebase.init(self.firebase_config):
            raise SyncError("CONFIG_ERROR", "Firebase chưa được bật hoặc cấu hình chưa hợp lệ.")
        return self.firebase.push_all(self.data)

    # ── Settings ──────────────────────────────────────────────────────────
    def set_google_config(self, config: GoogleSheetsConfig):
        save_google_config(self.storage, config)
        self.google_config = config

    def set_firebase_config(self, config: FirebaseConfig):
        save_firebase_config(self.storage, config)
        self.firebase_config = config
        if not config.enabled and self.using_firebase:
            self._stop_listeners()
            self.using_firebase = False
            self._set_status("idle", "", backend="local")

    def close(self):
        self._stop_listeners()
        self.saver.flush()
