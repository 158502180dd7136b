"""Permissive parsing of rows read back from the spreadsheet."""
import pytest

from core.normalize import (
    find_key, safe_int, safe_num, safe_str, clean_app_data,
    map_traffic_accidents, map_vehicle_registrations, map_events, map_daily_tasks,
    map_verification_requests, map_advisory_documents,
)
from database.models import (
    VehicleType, AlcoholLevel, UnitType, TaskCategory, VerificationStatus, AdvisoryDocType,
)


class TestScalars:
    def test_find_key_ignores_case(self):
        assert find_key({"DocNumber": "1"}, "docNumber") == "1"
        assert find_key({"a": 1}, "b") is None
        assert find_key(["a"], "a") is None

    @pytest.mark.parametrize("raw, expected", [
        ("1.000.000", 1_000_000),
        ("1,000,000 đ", 1_000_000),
        (12.9, 12),
        (7, 7),
        ("", 0),
        (None, 0),
        ("abc", 0),
        ("-5", -5),
        (True, 0),
    ])
    def test_safe_int(self, raw, expected):
        assert safe_int(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("1.000,5", 1000.5),
        ("1,000.5", 1000.5),
        ("2,5", 2.5),
        ("12", 12.0),
        (3, 3.0),
        ("x", 0.0),
    ])
    def test_safe_num(self, raw, expected):
        assert safe_num(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("undefined", ""),
        ("NULL", ""),
        (None, ""),
        ("2024-05-01T17:00:00.000Z", "2024-05-01"),
        ("  Kiều Phú ", "Kiều Phú"),
        (123, "123"),
    ])
    def test_safe_str(self, raw, expected):
        assert safe_str(raw) == expected


class TestMappers:
    def test_accident_header_row_skipped_and_values_coerced(self):
        rows = [
            {"id": "id", "date": "date"},
            {"ID": "a1", "Date": "2024-05-01T17:00:00.000Z", "deaths": "1", "injuries": "",
             "estimatedDamageVND": "15.000.000", "alcoholLevel": "Yes"},
            {"id": "", "alcoholLevel": "Có"},
        ]
        out = map_traffic_accidents(rows)
        assert len(out) == 2
        assert out[0].id == "a1"
        assert out[0].date == "2024-05-01"
        assert out[0].deaths == 1 and out[0].injuries == 0
        assert out[0].estimated_damage_vnd == 15_000_000
        assert out[0].alcohol_level == AlcoholLevel.YES
        assert out[1].id
        assert out[1].alcohol_level == AlcoholLevel.UNKNOWN

    def test_non_list_input(self):
        assert map_traffic_accidents({"id": "a"}) == []
        assert map_daily_tasks(None) == []

    def test_vehicle_type_from_free_text(self):
        rows = [{"vehicleType": "vehicleType"},
                {"id": "r1", "vehicleType": "Xe máy", "firstTimeCount": "3"},
                {"id": "r2", "vehicleType": "oto"}]
        out = map_vehicle_registrations(rows)
        assert [r.vehicle_type for r in out] == [VehicleType.MOTORBIKE, VehicleType.CAR]
        assert out[0].first_time_count == 3

    def test_event_targets_from_json_cell(self):
        rows = [{"id": "e1", "name": "Cao điểm", "fromDate": "2024-05-01", "toDate": "2024-05-31",
                 "targets": '[{"id": "t1", "name": "Xử lý", "goal": "20", "unit": "Trường hợp",'
                            ' "results": [{"date": "2024-05-02", "result": "3"}]}]'}]
        ev = map_events(rows)[0]
        target = ev.targets[0]
        assert target.goal == 20.0
        assert target.unit == UnitType.CASES
        assert target.results[0].result == 3.0

    def test_event_targets_unreadable_cell(self):
        ev = map_events([{"id": "e1", "targets": "[broken"}])[0]
        assert ev.targets == []

    def test_daily_task_unknown_category(self):
        out = map_daily_tasks([{"category": "category"}, {"id": "d1", "category": "Họp"}])
        assert out[0].category == TaskCategory.OTHER

    def test_verification_status_defaults(self):
        rows = [{"docNumber": "docNumber"},
                {"id": "v1", "docNumber": "1", "verificationResult": ""},
                {"id": "v2", "docNumber": "2", "verificationResult": "Đã xác minh"},
                {"id": "v3", "docNumber": "3", "verificationResult": "??"}]
        out = map_verification_requests(rows)
        assert [v.verification_result for v in out] == [
            VerificationStatus.NOT_STARTED, VerificationStatus.VERIFIED, VerificationStatus.UNDETERMINED]

    def test_advisory_doc_type(self):
        out = map_advisory_documents([{"id": "p1", "docNumber": "1", "docType": "Kế hoạch"},
                                      {"id": "p2", "docNumber": "2", "docType": "Thông báo"}])
        assert [d.doc_type for d in out] == [AdvisoryDocType.PLAN, AdvisoryDocType.OTHER]


class TestCleanAppData:
    def test_only_present_collections_are_returned(self):
        cleaned = clean_app_data({"TrafficAccidents": [{"id": "a1"}], "dailyTasks": []})
        assert set(cleaned) == {"traffic_accidents", "daily_tasks"}
        assert cleaned["daily_tasks"] == []

    def test_templates_pass_through(self):
        cleaned = clean_app_data({
            "responseDocumentTemplates": [{"id": "t9", "name": "Mẫu", "content": "<<docNumber>>"}],
            "selectedDocumentTemplateId": "t9",
        })
        assert cleaned["response_document_templates"][0].content == "<<docNumber>>"
        assert cleaned["selected_document_template_id"] == "t9"

    def test_template_cells_are_coerced(self):
        cleaned = clean_app_data({"responseDocumentTemplates": [
            {"id": "id", "name": "name", "content": "content"},
            {"ID": "template1", "name": 1, "content": None},
        ]})
        [tpl] = cleaned["response_document_templates"]
        assert (tpl.id, tpl.name, tpl.content) == ("template1", "1", "")

    def test_unusable_templates_are_left_out(self):
        assert "response_document_templates" not in clean_app_data({"responseDocumentTemplates": ["x"]})
