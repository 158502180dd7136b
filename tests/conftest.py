"""
Pytest fixtures for PoliceDeskVN.

Every test gets its own in-memory SQLite storage; remote backends (Apps
Script, Firestore, Groq) are replaced by MagicMock fakes.
"""
import os

# Keep the app off the developer's database and credentials (dotenv never overrides these)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GROQ_API_KEY"] = ""
os.environ["GOOGLE_SCRIPT_URL"] = ""
os.environ["FIREBASE_CREDENTIALS"] = ""
os.environ["SYNC_ON_STARTUP"] = "false"

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.firebase import FirestoreSync
from core.schemas import (
    AppData, TrafficAccident, VehicleRegistration, Event, EventTarget, EventTargetResult,
    DailyTask, VerificationRequest, AdvisoryDocument, initial_data,
)
from core.state import AppStore
from database.models import (
    Base, VehicleType, AlcoholLevel, UnitType, TaskCategory, VerificationStatus, AdvisoryDocType,
)
from database.storage import LocalStorage, DebouncedSaver


# ── Storage ───────────────────────────────────────────────────────────────────

@pytest.fixture
def storage():
    """LocalStorage over a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield LocalStorage(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()


# ── Remote fakes ──────────────────────────────────────────────────────────────

@pytest.fixture
def firestore_db():
    return MagicMock(name="firestore.Client")


@pytest.fixture
def firebase(firestore_db):
    return FirestoreSync(client_factory=lambda config: firestore_db)


@pytest.fixture
def sheets():
    """The SheetsClient instance handed out by the store's factory."""
    return MagicMock(name="SheetsClient")


@pytest.fixture
def store(storage, firebase, sheets):
    """AppStore whose debounce never fires on its own; tests flush explicitly."""
    s = AppStore(
        storage,
        saver=DebouncedSaver(storage, delay=60),
        firebase=firebase,
        sheets_factory=MagicMock(return_value=sheets),
    )
    yield s
    s.saver.cancel()


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def sample_data():
    """A small, fixed AppData spread over May 2024."""
    base = initial_data()
    return base.model_copy(update={
        "traffic_accidents": [
            TrafficAccident(id="a1", date="2024-05-02", location="Ngã ba Kiều Phú", deaths=1, injuries=0,
                            estimated_damage_vnd=10_000_000, alcohol_level=AlcoholLevel.YES),
            TrafficAccident(id="a2", date="2024-05-10", location="QL21A", deaths=0, injuries=2,
                            estimated_damage_vnd=5_000_000, alcohol_level=AlcoholLevel.NO),
            TrafficAccident(id="a3", date="2024-07-01", location="Cấn Hữu", deaths=0, injuries=0,
                            estimated_damage_vnd=1_000_000),
        ],
        "vehicle_registrations": [
            VehicleRegistration(id="r1", date="2024-05-03", vehicle_type=VehicleType.CAR,
                                first_time_count=2, transfer_count=1, recall_count=0, renewal_count=1),
            VehicleRegistration(id="r2", date="2024-05-04", vehicle_type=VehicleType.MOTORBIKE,
                                first_time_count=5, transfer_count=0, recall_count=1, renewal_count=0),
        ],
        "events": [
            Event(id="e1", name="Cao điểm nồng độ cồn", from_date="2024-04-20", to_date="2024-05-20",
                  targets=[EventTarget(id="t1", name="Xử lý vi phạm", goal=20, unit=UnitType.CASES,
                                       results=[EventTargetResult(date="2024-05-01", result=4),
                                                EventTargetResult(date="2024-04-25", result=1)])]),
        ],
        "daily_tasks": [
            DailyTask(id="d1", date="2024-05-05", category=TaskCategory.PATROL, description="Tuần tra"),
            DailyTask(id="d2", date="2024-05-06", category=TaskCategory.PATROL, description="Tuần tra đêm"),
            DailyTask(id="d3", date="2024-05-07", category=TaskCategory.OUTREACH, description="Tuyên truyền"),
        ],
        "verification_requests": [
            VerificationRequest(id="v1", doc_number="123/CSGT", doc_date="2024-05-08",
                                offender_name="Nguyễn Văn An", date_of_birth="1990-05-12",
                                verification_result=VerificationStatus.VERIFIED),
            VerificationRequest(id="v2", doc_number="124/CSGT", doc_date="2024-05-09",
                                offender_name="Trần Thị Bình"),
        ],
        "advisory_documents": [
            AdvisoryDocument(id="p1", doc_number="12/KH", doc_date="2024-05-11",
                             doc_type=AdvisoryDocType.PLAN, content="Kế hoạch"),
        ],
    })


@pytest.fixture
def seeded_store(store, sample_data):
    store.data = sample_data
    return store
