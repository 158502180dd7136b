"""
PoliceDeskVN – Database Models (SQLAlchemy)

The application state is a single JSON document; this table plays the part
of browser local storage (one row per storage key).
"""
from __future__ import annotations
from datetime import datetime
from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import enum, os
from dotenv import load_dotenv

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./policedesk.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class VehicleType(str, enum.Enum):
    CAR       = "Ô tô"
    MOTORBIKE = "Xe máy"

class AlcoholLevel(str, enum.Enum):
    YES     = "Yes"
    NO      = "No"
    UNKNOWN = "Unknown"

class UnitType(str, enum.Enum):
    VND      = "VNĐ"
    CASES    = "Trường hợp"
    QUANTITY = "Số lượng"
    HOURS    = "Giờ"
    TURNS    = "Lượt"

class TaskCategory(str, enum.Enum):
    PATROL      = "Tuần tra xử lý"
    OUTREACH    = "Tuyên truyền"
    ADVISORY    = "Tham mưu"
    SUMMARY     = "Tổng hợp"
    PROTECTION  = "Bảo vệ kỳ cuộc"
    ENFORCEMENT = "Cưỡng chế"
    COORDINATION = "Phối hợp"
    OTHER       = "Khác"

class VerificationStatus(str, enum.Enum):
    NOT_STARTED = "Chưa xác minh"
    IN_PROGRESS = "Đang xác minh"
    VERIFIED    = "Đã xác minh"
    UNDETERMINED = "Không xác định"

class AdvisoryDocType(str, enum.Enum):
    OFFICIAL_LETTER = "Công văn"
    PROPOSAL        = "Kiến nghị"
    PROGRAM         = "Chương trình"
    PLAN            = "Kế hoạch"
    SCHEME          = "Phương án"
    REPORT          = "Báo cáo"
    OTHER           = "Khác"


class StorageEntry(Base):
    __tablename__ = "storage"
    key        = Column(String(100), primary_key=True, index=True)
    value      = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db():
    Base.metadata.create_all(bind=engine)
