"""
PoliceDeskVN – Firestore sync

One Firestore collection per entity list, document id = record id, plus
settings/templates holding the reply-letter templates. Listeners deliver
the whole collection on every change. Writes log their failures.
"""
from __future__ import annotations
from typing import Callable, List, Optional

from google.cloud import firestore
from google.oauth2 import service_account
from loguru import logger

from core.schemas import AppData, FirebaseConfig, COLLECTIONS

SETTINGS_COLLECTION = "settings"
TEMPLATES_DOC       = "templates"
COLLECTION_NAMES    = [wire for wire, _ in COLLECTIONS.values()] + [SETTINGS_COLLECTION]


def default_client(config: FirebaseConfig):
    if config.credentials_path:
        creds = service_account.Credentials.from_service_account_file(config.credentials_path)
        return firestore.Client(project=config.project_id or creds.project_id, credentials=creds)
    # application default credentials
    return firestore.Client(project=config.project_id or None)


class FirestoreSync:
    def __init__(self, client_factory: Callable = default_client):
        self.client_factory = client_factory
        self.db = None

    @property
    def ready(self) -> bool:
        return self.db is not None

    def init(self, config: FirebaseConfig) -> bool:
        if not config.enabled or not (config.project_id or config.credentials_path):
            self.db = None
            return False
        try:
            self.db = self.client_factory(config)
            logger.info(f"Firebase initialized (project={config.project_id or 'default'})")
            return True
        except Exception as e:
            logger.error(f"Error initializing Firebase: {e}")
            self.db = None
            return False

    # ── Listeners ─────────────────────────────────────────────────────────
    def subscribe(self, collection: str, callback: Callable[[List[dict]], None]) -> Callable[[], None]:
        """Call `callback(items)` with the full collection on every change."""
        if self.db is None:
            return lambda: None

        def on_snapshot(col_snapshot, changes, read_time):
            try:
                callback([{**doc.to_dict(), "id": doc.id} for doc in col_snapshot])
            except Exception as e:
                logger.error(f"Error handling {collection} snapshot: {e}")

        watch = self.db.collection(collection).on_snapshot(on_snapshot)
        return watch.unsubscribe

    # ── CRUD ──────────────────────────────────────────────────────────────
    def add_item(self, collection: str, item: dict):
        if self.db is None:
            return
        try:
            if item.get("id"):
                self.db.collection(collection).document(str(item["id"])).set(item)
            else:
                self.db.collection(collection).add(item)
        except Exception as e:
            logger.error(f"Error adding to {collection}: {e}")

    def update_item(self, collection: str, item: dict):
        if self.db is None or not item.get("id"):
            return
        try:
            self.db.collection(collection).document(str(item["id"])).set(item, merge=True)
        except Exception as e:
            logger.error(f"Error updating in {collection}: {e}")

    def delete_item(self, collection: str, record_id: str):
        if self.db is None:
            return
        try:
            self.db.collection(collection).document(str(record_id)).delete()
        except Exception as e:
            logger.error(f"Error deleting from {collection}: {e}")

    # ── Migration ─────────────────────────────────────────────────────────
    def push_all(self, data: AppData) -> int:
        """One-time copy of the local state into Firestore. Returns the records written."""
        if self.db is None:
            raise RuntimeError("Firebase not initialized")
        written = 0
        for attr, (wire, _model) in COLLECTIONS.items():
            for item in getattr(data, attr):
                self.add_item(wire, item.to_wire())
                written += 1
        if data.response_document_templates:
            self.db.collection(SETTINGS_COLLECTION).document(TEMPLATES_DOC).set({
                "list":       [t.to_wire() for t in data.response_document_templates],
                "selectedId": data.selected_document_template_id,
            })
        logger.info(f"Pushed {written} records to Firebase")
        return written
