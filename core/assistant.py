"""
PoliceDeskVN – AI Assistant
Groq chat completions for:
  - the periodic activity report (HTML, administrative format of Decree 30/2020/NĐ-CP)
  - reading a scanned verification request into form fields (vision model)

Get a free Groq API key: https://console.groq.com/keys
"""
from __future__ import annotations
import base64
import json
import os
import re
from datetime import date
from typing import Optional

from dotenv import load_dotenv
from groq import Groq
from loguru import logger

from core.schemas import VerificationDraft
from core.stats import ReportSummary
from core.templates import format_date

load_dotenv()

_GROQ_KEY          = os.getenv("GROQ_API_KEY", "")
_GROQ_MODEL        = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
_GROQ_VISION_MODEL = os.getenv("GROQ_VISION_MODEL", "meta-llama/llama-4-scout-17b-16e-instruct")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_FENCE    = re.compile(r"^```(?:html)?\s*(.*?)\s*```$", re.DOTALL)

REPORT_ERROR  = "Không thể tạo báo cáo bằng AI. Vui lòng thử lại hoặc kiểm tra kết nối."
EXTRACT_ERROR = "Không thể trích xuất thông tin từ ảnh. Vui lòng thử lại hoặc nhập thủ công."

EXTRACT_PROMPT = """Bạn là một trợ lý thông minh chuyên trích xuất thông tin từ các công văn yêu cầu xác minh.
Hãy đọc tài liệu hình ảnh được cung cấp và trả về MỘT đối tượng JSON với các khóa sau:
- "docNumber": Số công văn yêu cầu xác minh
- "docDate": Ngày công văn yêu cầu, định dạng YYYY-MM-DD
- "offenderName": Họ tên người vi phạm
- "citizenId": Số căn cước công dân
- "dateOfBirth": Ngày sinh của đối tượng, định dạng YYYY-MM-DD
- "address": Nơi cư trú hoặc địa chỉ hiện tại
- "violationBehavior": Mô tả hành vi vi phạm cần xác minh

Nếu một trường thông tin không tìm thấy trong tài liệu, hãy để giá trị là một chuỗi rỗng ("").
Đảm bảo định dạng ngày tháng là YYYY-MM-DD."""


class AssistantError(Exception):
    pass


# ── Prompt building ───────────────────────────────────────────────────────
def format_vnd(amount: int) -> str:
    return f"{amount:,}".replace(",", ".") + " ₫"


def _table(rows, columns) -> str:
    if not rows:
        return "Không có dữ liệu."
    lines = ["\t".join(columns)]
    for row in rows:
        lines.append("\t".join(str(row.get(c, "")) for c in columns))
    return "\n".join(lines)


def build_report_prompt(summary: ReportSummary, today: Optional[date] = None) -> str:
    today = today or date.today()
    d_from, d_to = format_date(summary.date_from), format_date(summary.date_to)
    signed = f"ngày {today.day} tháng {today.month} năm {today.year}"

    regs = _table([r.model_dump() for r in summary.registration_stats],
                  ["type", "first", "transfer", "recall", "renewal", "total"])
    tasks = _table([{"category": c.label, "count": c.count} for c in summary.daily_task_categories],
                   ["category", "count"])
    docs = _table([{"type": c.label, "count": c.count} for c in summary.advisory_doc_types],
                  ["type", "count"])
    vr = summary.verification_results

    return f"""
Bạn là một trợ lý chuyên nghiệp có khả năng tạo báo cáo hành chính theo chuẩn Nghị định số 30/2020/NĐ-CP ngày 05 tháng 3 năm 2020 của Chính phủ.
Hãy tạo một báo cáo tổng hợp công tác cho lực lượng cảnh sát trật tự, sử dụng các DỮ LIỆU TÓM TẮT cung cấp dưới đây trong khoảng thời gian từ {d_from} đến {d_to}.
Báo cáo phải được định dạng hoàn chỉnh bằng HTML, tuân thủ nghiêm ngặt các quy định về thể thức văn bản hành chính:

1. Cấu trúc chung:
   - Font 'Times New Roman', cỡ chữ 12pt (tiêu đề chính 14pt, tiêu đề phụ và quốc hiệu 13pt), giãn dòng 1.35.
   - Lề: trên 2cm, dưới 2cm, trái 3cm, phải 2cm.
   - Đoạn văn có text-align: justify; và text-indent: 40px; (trừ tiêu đề và danh sách).
   - Tiêu đề chính (h1) in hoa, in đậm, căn giữa. Dùng thẻ <strong> cho chữ in đậm.

2. Quốc hiệu và tiêu ngữ:
   - Bên trái trên cùng: CÔNG AN TP HÀ NỘI<br>CÔNG AN XÃ KIỀU PHÚ
   - Bên phải trên cùng: CỘNG HÒA XÃ HỘI CHỦ NGHĨA VIỆT NAM<br>Độc lập - Tự do - Hạnh phúc
   - Ngày tháng báo cáo ở góc phải: "Kiều Phú, {signed}"

3. Nội dung: chia thành các mục lớn (I, II, III, IV, V, VI) tương ứng với các mảng công tác dưới đây.
   Báo cáo phải có tính tường thuật, phân tích, không chỉ kể lại dữ liệu.

   TIÊU ĐỀ CHÍNH: BÁO CÁO TỔNG HỢP CÔNG TÁC<br>Từ ngày {d_from} đến ngày {d_to}

DỮ LIỆU TÓM TẮT (CHỈ DỰA VÀO ĐÂY, KHÔNG TỰ TẠO THÊM SỐ LIỆU):

1. Quản lý vụ việc tai nạn giao thông:
   - Tổng số vụ: {summary.total_accidents}
   - Tổng số người chết: {summary.total_deaths}
   - Tổng số người bị thương: {summary.total_injuries}
   - Tổng số vụ có nồng độ cồn: {summary.total_alcohol_accidents}
   - Tổng thiệt hại ước tính: {format_vnd(summary.total_damage)}

2. Kết quả đăng ký xe:
   - Tổng số lượt đăng ký: {summary.total_vehicle_registrations}
   - Thống kê theo loại xe:
{regs}

3. Sự kiện (đợt công tác/cao điểm):
   - Tổng số sự kiện trong kỳ: {summary.total_events}
   - Tổng tiến độ mục tiêu đạt được: {summary.event_goal_percentage}

4. Công tác thường xuyên và theo giai đoạn:
   - Tổng số công tác đã ghi nhận: {summary.total_daily_tasks}
   - Phân loại theo danh mục:
{tasks}

5. Phối hợp xác minh:
   - Tổng số yêu cầu xác minh: {summary.total_verification_requests}
   - Đã xác minh: {vr.get('Đã xác minh', 0)}
   - Đang xác minh: {vr.get('Đang xác minh', 0)}
   - Chưa xác minh: {vr.get('Chưa xác minh', 0)}
   - Không xác định: {vr.get('Không xác định', 0)}

6. Công tác tham mưu:
   - Tổng số công văn/kế hoạch tham mưu: {summary.total_advisory_documents}
   - Phân loại theo loại văn bản:
{docs}

Cuối báo cáo:
   - Ghi "{signed}" ở góc phải.
   - Chức danh "NGƯỜI LẬP BÁO CÁO" (in đậm, cỡ 13pt), dòng "(Ký, ghi rõ họ tên)" (cỡ 12pt),
     dòng tên người lập báo cáo (cỡ 13pt, in đậm, cách 2cm).

Hãy tạo toàn bộ nội dung HTML cho báo cáo, bao gồm thẻ <div> chính với style cho font, cỡ chữ, giãn dòng và padding.
"""


def strip_code_fence(text: str) -> str:
    text = text.strip()
    m = _FENCE.match(text)
    return m.group(1).strip() if m else text


def parse_extraction(raw: str) -> VerificationDraft:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")

    def text(key):
        v = data.get(key)
        return str(v).strip() if v else ""

    def iso(key):
        v = text(key)
        return v if _ISO_DATE.match(v) else ""

    return VerificationDraft(
        doc_number=text("docNumber"),
        doc_date=iso("docDate"),
        offender_name=text("offenderName"),
        citizen_id=text("citizenId"),
        date_of_birth=iso("dateOfBirth"),
        address=text("address"),
        violation_behavior=text("violationBehavior"),
    )


class ReportAssistant:
    def __init__(self, client=None, model: str = _GROQ_MODEL, vision_model: str = _GROQ_VISION_MODEL):
        self.model        = model
        self.vision_model = vision_model
        self._groq_client = client
        if client is None:
            self._init_groq()

    def _init_groq(self):
        if not _GROQ_KEY or _GROQ_KEY.startswith("gsk_XXX"):
            logger.warning("No valid GROQ_API_KEY – AI features disabled")
            return
        try:
            self._groq_client = Groq(api_key=_GROQ_KEY)
            logger.info(f"Groq client ready (model: {self.model})")
        except Exception as e:
            logger.error(f"Groq init failed: {e}")

    @property
    def online(self) -> bool:
        return self._groq_client is not None

    # ── Report ────────────────────────────────────────────────────────────
    def generate_report(self, summary: ReportSummary) -> str:
        if not self._groq_client:
            raise AssistantError(f"{REPORT_ERROR} Chi tiết: chưa cấu hình GROQ_API_KEY.")
        try:
            resp = self._groq_client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_report_prompt(summary)}],
                temperature=0.7,
                max_tokens=8192,
            )
            text = resp.choices[0].message.content
        except Exception as e:
            logger.error(f"Groq report error: {e}")
            raise AssistantError(f"{REPORT_ERROR} Chi tiết: {e}") from e
        if not text:
            raise AssistantError(f"{REPORT_ERROR} Chi tiết: AI không trả về nội dung.")
        return strip_code_fence(text)

    # ── Image extraction ──────────────────────────────────────────────────
    def extract_verification(self, image: bytes, mime_type: str = "image/jpeg") -> VerificationDraft:
        if not self._groq_client:
            raise AssistantError(f"{EXTRACT_ERROR} Chi tiết: chưa cấu hình GROQ_API_KEY.")
        data_url = f"data:{mime_type or 'image/jpeg'};base64,{base64.b64encode(image).decode()}"
        try:
            resp = self._groq_client.chat.completions.create(
                model=self.vision_model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": EXTRACT_PROMPT},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }],
                temperature=0,
                response_format={"type": "json_object"},
            )
            raw = (resp.choices[0].message.content or "").strip()
            if not raw:
                raise ValueError("AI không trả về nội dung")
            return parse_extraction(strip_code_fence(raw))
        except Exception as e:
            logger.error(f"Groq extraction error: {e}")
            raise AssistantError(f"{EXTRACT_ERROR} Chi tiết: {e}") from e
