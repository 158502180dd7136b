# Seed demo records for Công an xã Kiều Phú into local storage.
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date, timedelta

from database.models import init_db, VehicleType, AlcoholLevel, UnitType, TaskCategory, VerificationStatus, AdvisoryDocType
from database.storage import LocalStorage, load_data, save_data
from database import crud
from core.schemas import (
    TrafficAccident, VehicleRegistration, Event, EventTarget, DailyTask,
    VerificationRequest, AdvisoryDocument, initial_data,
)


def _day(offset: int) -> str:
    return (date.today() - timedelta(days=offset)).isoformat()


def seed():
    init_db()
    storage = LocalStorage()
    data = load_data(storage) or initial_data()

    accidents = [
        ("Ngã ba Kiều Phú",      "Va chạm giữa xe máy và ô tô", 0, 2, 15_000_000, AlcoholLevel.YES),
        ("QL21A, thôn Phú Mỹ",   "Xe máy tự ngã",               0, 1,  3_000_000, AlcoholLevel.NO),
        ("Đường liên xã Cấn Hữu", "Va chạm giữa hai xe máy",     1, 1, 25_000_000, AlcoholLevel.UNKNOWN),
    ]
    items = data.traffic_accidents
    for i, (loc, content, deaths, injuries, damage, alcohol) in enumerate(accidents):
        items = crud.create(items, TrafficAccident(
            date=_day(5 + 20 * i), time="19:30", location=loc, content=content,
            consequences=f"{deaths} người chết, {injuries} người bị thương",
            deaths=deaths, injuries=injuries, estimated_damage_vnd=damage, alcohol_level=alcohol,
            handling_unit="Công an xã Kiều Phú", processing_result="Đã lập biên bản",
        ))
        print(f"  ✓  TNGT  {loc}")
    data = data.model_copy(update={"traffic_accidents": items})

    regs = data.vehicle_registrations
    for i in range(6):
        vtype = VehicleType.MOTORBIKE if i % 2 else VehicleType.CAR
        regs = crud.create(regs, VehicleRegistration(
            date=_day(i * 3), vehicle_type=vtype,
            first_time_count=3 + i, transfer_count=i % 3, recall_count=i % 2, renewal_count=1,
        ))
    print(f"  ✓  {len(regs)} lượt đăng ký xe")
    data = data.model_copy(update={"vehicle_registrations": regs})

    events = crud.create(data.events, Event(
        name="Cao điểm TTKS nồng độ cồn", from_date=_day(10), to_date=_day(-20),
        content="Tổ chức tuần tra kiểm soát, xử lý vi phạm nồng độ cồn",
    ))
    event_id = events[-1].id
    events = crud.add_event_target(events, event_id, EventTarget(name="Xử lý vi phạm", goal=50, unit=UnitType.CASES))
    events = crud.add_event_target(events, event_id, EventTarget(name="Thu nộp phạt", goal=100_000_000, unit=UnitType.VND))
    target_id = crud.find(events, event_id).targets[0].id
    for offset in (1, 2, 3):
        events = crud.update_event_target_result(events, event_id, target_id, _day(offset), 4)
    print(f"  ✓  Sự kiện {events[-1].name}")
    data = data.model_copy(update={"events": events})

    tasks = data.daily_tasks
    for i, cat in enumerate([TaskCategory.PATROL, TaskCategory.OUTREACH, TaskCategory.COORDINATION]):
        tasks = crud.create(tasks, DailyTask(date=_day(i), category=cat,
                                             description=f"{cat.value} trên địa bàn xã", result="Hoàn thành"))
    data = data.model_copy(update={"daily_tasks": tasks})

    reqs = data.verification_requests
    for no, name, status in [("123/CSGT-ĐTXLVP", "Nguyễn Văn An", VerificationStatus.NOT_STARTED),
                             ("456/CSGT-ĐTXLVP", "Trần Thị Bình", VerificationStatus.VERIFIED)]:
        reqs = crud.create(reqs, VerificationRequest(
            doc_number=no, doc_date=_day(7), offender_name=name, citizen_id="001090012345",
            date_of_birth="1990-05-12", address="Thôn Phú Mỹ, xã Kiều Phú, TP Hà Nội",
            violation_behavior="Điều khiển xe mô tô vượt đèn đỏ", verification_result=status,
        ))
        print(f"  ✓  Xác minh {no}  {name}")
    data = data.model_copy(update={"verification_requests": reqs})

    docs = crud.create(data.advisory_documents, AdvisoryDocument(
        doc_number="12/KH-CAX", doc_date=_day(14), doc_type=AdvisoryDocType.PLAN,
        content="Kế hoạch bảo đảm TTATGT dịp lễ", recipient_unit="UBND xã", release_date=_day(13),
    ))
    data = data.model_copy(update={"advisory_documents": docs})

    save_data(storage, data)
    print("\nSeeding complete! 🚓")

if __name__ == "__main__":
    seed()
