"""
API endpoint tests.

FastAPI TestClient against the app with the store and the assistant swapped
for test doubles through dependency overrides. Startup hooks are not run.
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.routes import get_store, get_assistant
from core.assistant import AssistantError
from core.schemas import VerificationDraft
from core.sheets import SyncError
from main import app

MAY = {"kind": "custom", "from": "2024-05-01", "to": "2024-05-31"}


@pytest.fixture
def assistant():
    return MagicMock(name="ReportAssistant")


@pytest.fixture
def client(seeded_store, assistant):
    app.dependency_overrides[get_store] = lambda: seeded_store
    app.dependency_overrides[get_assistant] = lambda: assistant
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── Health ────────────────────────────────────────────────────────────────────

class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["api"] == "/api/v1"

    def test_health_ok(self, client):
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert body["records"]["trafficAccidents"] == 3

    def test_dashboard(self, client):
        body = client.get("/api/v1/dashboard").json()
        assert body["totalAccidents"] == 3
        assert len(body["registrationStats"]) == 3

    def test_data_uses_wire_keys(self, client):
        body = client.get("/api/v1/data").json()
        assert body["selectedDocumentTemplateId"] == "template1"
        assert "estimatedDamageVND" in body["trafficAccidents"][0]


# ── Records ───────────────────────────────────────────────────────────────────

class TestRecords:
    def test_list(self, client):
        resp = client.get("/api/v1/records/dailyTasks")
        assert resp.status_code == 200
        assert len(resp.json()) == 3

    def test_unknown_collection_returns_404(self, client):
        assert client.get("/api/v1/records/parkingLots").status_code == 404

    def test_period_filter(self, client):
        resp = client.get("/api/v1/records/trafficAccidents", params={**MAY, "filtered": True})
        assert [a["id"] for a in resp.json()] == ["a1", "a2"]

    def test_events_filtered_by_overlap(self, client):
        params = {"kind": "custom", "from": "2024-05-15", "to": "2024-06-15", "filtered": True}
        assert len(client.get("/api/v1/records/events", params=params).json()) == 1
        params.update({"from": "2024-06-01"})
        assert client.get("/api/v1/records/events", params=params).json() == []

    def test_create(self, client, seeded_store):
        resp = client.post("/api/v1/records/advisoryDocuments",
                           json={"docNumber": "15/CV", "docDate": "2024-05-20", "docType": "Công văn"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] and body["docType"] == "Công văn"
        assert len(seeded_store.records("advisoryDocuments")) == 2

    def test_create_invalid_payload_returns_400(self, client):
        resp = client.post("/api/v1/records/trafficAccidents", json={"deaths": "nhiều"})
        assert resp.status_code == 400

    def test_get_update_delete(self, client):
        assert client.get("/api/v1/records/dailyTasks/d1").json()["description"] == "Tuần tra"
        resp = client.put("/api/v1/records/dailyTasks/d1",
                          json={"date": "2024-05-05", "category": "Tham mưu", "description": "Họp"})
        assert resp.json()["category"] == "Tham mưu"
        assert client.delete("/api/v1/records/dailyTasks/d1").json() == {"deleted": "d1"}
        assert client.get("/api/v1/records/dailyTasks/d1").status_code == 404

    def test_update_missing_returns_404(self, client):
        assert client.put("/api/v1/records/dailyTasks/zzz", json={}).status_code == 404
        assert client.delete("/api/v1/records/dailyTasks/zzz").status_code == 404


# ── Event targets ─────────────────────────────────────────────────────────────

class TestEventTargets:
    def test_add_target(self, client):
        resp = client.post("/api/v1/events/e1/targets", json={"name": "Tuyên truyền", "goal": 5, "unit": "Lượt"})
        assert resp.status_code == 200
        assert [t["name"] for t in resp.json()["targets"]] == ["Xử lý vi phạm", "Tuyên truyền"]

    def test_add_target_unknown_event(self, client):
        assert client.post("/api/v1/events/zzz/targets", json={"name": "x"}).status_code == 404

    def test_set_result(self, client):
        resp = client.put("/api/v1/events/e1/targets/t1/results", json={"date": "2024-05-01", "result": 6})
        results = resp.json()["targets"][0]["results"]
        assert {"date": "2024-05-01", "result": 6.0} in results
        assert len(results) == 2

    def test_set_result_unknown_target(self, client):
        resp = client.put("/api/v1/events/e1/targets/nope/results", json={"date": "2024-05-01", "result": 1})
        assert resp.status_code == 404


# ── Templates and reply letters ───────────────────────────────────────────────

class TestTemplates:
    def test_list(self, client):
        body = client.get("/api/v1/templates").json()
        assert body["selectedId"] == "template1"
        assert len(body["templates"]) == 2

    def test_placeholders(self, client):
        keys = [p["key"] for p in client.get("/api/v1/templates/placeholders").json()]
        assert "offenderName" in keys

    def test_create_update_select(self, client):
        created = client.post("/api/v1/templates", json={"name": "Mẫu 3", "content": "<<docNumber>>"}).json()
        resp = client.put(f"/api/v1/templates/{created['id']}", json={"name": "Mẫu 3", "content": "Số <<docNumber>>"})
        assert resp.json()["content"] == "Số <<docNumber>>"
        assert client.post("/api/v1/templates/select", json={"templateId": created["id"]}).status_code == 200
        assert client.get("/api/v1/templates").json()["selectedId"] == created["id"]

    def test_unknown_template(self, client):
        assert client.put("/api/v1/templates/zzz", json={"name": "x"}).status_code == 404
        assert client.post("/api/v1/templates/select", json={"templateId": "zzz"}).status_code == 404


class TestReplyLetter:
    BODY = {"docDate": "2024-06-01", "responseDocNumber": "7/CAX", "requestingUnit": "Phòng CSGT"}

    def test_render(self, client):
        body = client.post("/api/v1/verifications/v1/reply", json=self.BODY).json()
        assert "Nguyễn Văn An" in body["html"]
        assert "7/CAX" in body["html"]
        assert body["document"].startswith("<!DOCTYPE html>")
        assert body["filename"] == "CongVanTraLoi_123-CSGT_20240601.html"

    def test_specific_template(self, client):
        body = client.post("/api/v1/verifications/v1/reply", json={**self.BODY, "templateId": "template2"}).json()
        assert "Nguyễn Văn An" in body["html"]

    def test_download_doc(self, client):
        resp = client.post("/api/v1/verifications/v1/reply/download", json=self.BODY, params={"format": "doc"})
        assert resp.headers["content-type"].startswith("application/msword")
        assert 'filename="CongVanTraLoi_123-CSGT_20240601.doc"' in resp.headers["content-disposition"]

    def test_unknown_request(self, client):
        assert client.post("/api/v1/verifications/zzz/reply", json=self.BODY).status_code == 404


class TestExtraction:
    def test_extract(self, client, assistant):
        assistant.extract_verification.return_value = VerificationDraft(doc_number="9/CSGT", offender_name="An")
        resp = client.post("/api/v1/verifications/extract",
                           files={"file": ("scan.png", b"\x89PNG", "image/png")})
        assert resp.status_code == 200
        assert resp.json()["docNumber"] == "9/CSGT"
        assistant.extract_verification.assert_called_once_with(b"\x89PNG", "image/png")

    def test_empty_upload(self, client):
        resp = client.post("/api/v1/verifications/extract", files={"file": ("scan.png", b"", "image/png")})
        assert resp.status_code == 400

    def test_ai_failure_returns_502(self, client, assistant):
        assistant.extract_verification.side_effect = AssistantError("Không thể trích xuất")
        resp = client.post("/api/v1/verifications/extract", files={"file": ("scan.png", b"x", "image/png")})
        assert resp.status_code == 502


# ── Reports ───────────────────────────────────────────────────────────────────

class TestReports:
    def test_period(self, client):
        body = client.get("/api/v1/reports/period", params={"kind": "monthly", "reference": "2024-05-10"}).json()
        assert body == {"from": "2024-04-16", "to": "2024-05-15", "label": "Hàng Tháng"}

    def test_summary(self, client):
        body = client.get("/api/v1/reports/summary", params=MAY).json()
        assert body["totalAccidents"] == 2
        assert body["eventGoalPercentage"] == "20.0%"

    def test_accident_details(self, client):
        rows = client.get("/api/v1/reports/accidents", params={**MAY, "detail": "injuries"}).json()
        assert [r["id"] for r in rows] == ["a2"]

    def test_generate(self, client, assistant):
        assistant.generate_report.return_value = "<div>BÁO CÁO</div>"
        resp = client.post("/api/v1/reports/generate",
                           json={"kind": "custom", "dateFrom": "2024-05-01", "dateTo": "2024-05-31"})
        assert resp.status_code == 200
        assert resp.json()["html"] == "<div>BÁO CÁO</div>"
        summary = assistant.generate_report.call_args[0][0]
        assert summary.total_accidents == 2

    def test_generate_needs_bounds(self, client, assistant):
        resp = client.post("/api/v1/reports/generate", json={"kind": "custom", "dateFrom": "2024-05-01"})
        assert resp.status_code == 400
        assistant.generate_report.assert_not_called()

    def test_generate_ai_failure(self, client, assistant):
        assistant.generate_report.side_effect = AssistantError("Không thể tạo báo cáo")
        resp = client.post("/api/v1/reports/generate", json={"kind": "monthly", "reference": "2024-05-10"})
        assert resp.status_code == 502

    def test_download_txt(self, client):
        resp = client.post("/api/v1/reports/download", json={
            "kind": "monthly", "reference": "2024-05-10", "html": "<h1>BÁO CÁO</h1><p>Nội dung</p>",
            "format": "txt"})
        assert "Nội dung" in resp.text and "<" not in resp.text
        assert "BaoCao_monthly_16042024-15052024.txt" in resp.headers["content-disposition"]

    def test_download_html(self, client):
        resp = client.post("/api/v1/reports/download", json={"kind": "yearly", "reference": "2024-05-10",
                                                             "html": "<p>x</p>"})
        assert resp.text.startswith("<!DOCTYPE html>")


# ── Sync and settings ─────────────────────────────────────────────────────────

class TestSync:
    def test_status(self, client):
        assert client.get("/api/v1/sync/status").json()["status"] == "idle"

    def test_start_runs_in_background(self, client):
        assert client.post("/api/v1/sync/start").json() == {"status": "syncing"}
        assert client.get("/api/v1/sync/status").json()["backend"] == "local"

    def test_unconfigured_sheets(self, client):
        assert client.post("/api/v1/sync/sheets/pull").status_code == 400
        assert client.post("/api/v1/sync/sheets/push").status_code == 400

    def test_remote_failure_returns_502(self, client, seeded_store, sheets):
        seeded_store.set_google_config(seeded_store.google_config.model_copy(
            update={"script_url": "https://script.google.com/x"}))
        sheets.import_all.side_effect = SyncError("NETWORK_ERROR", "down")
        assert client.post("/api/v1/sync/sheets/pull").status_code == 502

    def test_firebase_push_unconfigured(self, client):
        assert client.post("/api/v1/sync/firebase/push").status_code == 400


class TestSettings:
    def test_google(self, client):
        resp = client.put("/api/v1/settings/google", json={"scriptUrl": "https://script.google.com/macros/s/x/exec",
                                                           "autoSync": True})
        assert resp.status_code == 200
        assert client.get("/api/v1/settings/google").json() == {
            "scriptUrl": "https://script.google.com/macros/s/x/exec", "autoSync": True}

    def test_google_rejects_url_without_exec(self, client):
        resp = client.put("/api/v1/settings/google", json={
            "scriptUrl": "https://script.google.com/macros/s/x/edit", "autoSync": False})
        assert resp.status_code == 400
        assert client.get("/api/v1/settings/google").json()["scriptUrl"] == ""

    def test_google_url_can_be_cleared(self, client):
        assert client.put("/api/v1/settings/google", json={"scriptUrl": ""}).status_code == 200

    def test_firebase(self, client):
        client.put("/api/v1/settings/firebase", json={"projectId": "demo", "enabled": False})
        body = client.get("/api/v1/settings/firebase").json()
        assert body["projectId"] == "demo" and body["enabled"] is False
