"""
PoliceDeskVN – Document templates

Reply letters are HTML templates carrying placeholders:
  <<field>>           literal value of `field`
  <<field:FORMAT>>    value formatted as a date (DD, MM, YYYY tokens)
Date fields are formatted DD/MM/YYYY even without an explicit format.
Unknown placeholders are left as they are. Values are inserted verbatim.
"""
from __future__ import annotations
import re
from datetime import date, datetime
from typing import Mapping, Optional, Union

from core.periods import parse_date
from core.schemas import DocumentTemplate, VerificationRequest

DEFAULT_REQUESTING_UNIT = "Phòng CSGT - Công an TP Hà Nội"
DEFAULT_RESULT_CONTENT  = "Chưa có nội dung kết quả xác minh chi tiết."
DATE_FIELDS = ("docDate", "dateOfBirth", "endDate", "currentDate")

REPORT_BASE_FONT_FAMILY = "Times New Roman, serif"
REPORT_BASE_FONT_SIZE   = "12pt"
REPORT_LINE_HEIGHT      = 1.35

_PLACEHOLDER = re.compile(r"<<(\w+)(?::(.*?))?>>")
_TAG = re.compile(r"<[^>]*>")

DOC_PLACEHOLDERS = [
    ("docNumber",          "Số công văn yêu cầu xác minh."),
    ("docDate",            "Ngày công văn yêu cầu. Ví dụ: <<docDate:DD/MM/YYYY>>"),
    ("offenderName",       "Họ tên người vi phạm."),
    ("citizenId",          "Số căn cước công dân."),
    ("dateOfBirth",        "Ngày sinh của đối tượng. Ví dụ: <<dateOfBirth:DD/MM/YYYY>>"),
    ("address",            "Nơi cư trú/Địa chỉ hiện tại."),
    ("violationBehavior",  "Mô tả hành vi vi phạm cần xác minh."),
    ("verificationResult", "Kết quả xác minh (ví dụ: \"Đã xác minh\")."),
    ("endDate",            "Ngày hoàn thành xác minh. Ví dụ: <<endDate:DD/MM/YYYY>>"),
    ("resultContent",      "Nội dung chi tiết kết quả xác minh."),
    ("responseDocNumber",  "Số công văn của văn bản trả lời."),
    ("requestingUnitName", f"Tên đơn vị yêu cầu xác minh. Mặc định: {DEFAULT_REQUESTING_UNIT}"),
    ("currentDay",         "Ngày tạo công văn (2 chữ số)."),
    ("currentMonth",       "Tháng tạo công văn (2 chữ số)."),
    ("currentYear",        "Năm tạo công văn (4 chữ số)."),
    ("currentDate",        "Ngày tạo công văn. Ví dụ: <<currentDate:DD/MM/YYYY>>"),
    ("currentTime",        "Thời gian hiện tại (HH:MM)."),
]


# ── Substitution ──────────────────────────────────────────────────────────
def format_date(value, fmt: str = "DD/MM/YYYY") -> str:
    if value is None or value == "":
        return ""
    d = parse_date(value)
    if d is None:
        return str(value)
    return (fmt.replace("DD", f"{d.day:02d}", 1)
               .replace("MM", f"{d.month:02d}", 1)
               .replace("YYYY", f"{d.year:04d}", 1))


def render_template(template: str, data: Mapping[str, object],
                    date_fields=DATE_FIELDS) -> str:
    def _sub(m: re.Match) -> str:
        key, fmt = m.group(1), m.group(2)
        if key not in data:
            return m.group(0)
        value = data[key]
        if fmt is not None or key in date_fields:
            return format_date(value, fmt or "DD/MM/YYYY")
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_sub, template)


def verification_context(
    request: VerificationRequest,
    doc_date: Union[date, datetime, str, None] = None,
    requesting_unit: str = DEFAULT_REQUESTING_UNIT,
    response_doc_number: str = "",
) -> dict:
    """Placeholder values of a reply letter for one verification request."""
    now = datetime.now()
    if isinstance(doc_date, datetime):
        created = doc_date
    else:
        d = parse_date(doc_date) or now.date()
        created = datetime(d.year, d.month, d.day, now.hour, now.minute)

    ctx = request.to_wire()
    ctx["verificationResult"] = request.verification_result.value
    ctx["resultContent"] = request.result_content or DEFAULT_RESULT_CONTENT
    ctx.update({
        "requestingUnitName": requesting_unit or DEFAULT_REQUESTING_UNIT,
        "responseDocNumber":  response_doc_number,
        "currentDay":         f"{created.day:02d}",
        "currentMonth":       f"{created.month:02d}",
        "currentYear":        f"{created.year:04d}",
        "currentDate":        created.date().isoformat(),
        "currentTime":        f"{created.hour:02d}:{created.minute:02d}",
    })
    return ctx


def render_verification_reply(template: DocumentTemplate, request: VerificationRequest,
                              doc_date=None, requesting_unit: str = DEFAULT_REQUESTING_UNIT,
                              response_doc_number: str = "") -> str:
    ctx = verification_context(request, doc_date, requesting_unit, response_doc_number)
    return render_template(template.content, ctx)


# ── Output wrappers ───────────────────────────────────────────────────────
_DOC_CSS = f"""
  @page {{ size: A4; margin: 2cm 2cm 2cm 3cm; }}
  body {{ font-family: {REPORT_BASE_FONT_FAMILY}; font-size: {REPORT_BASE_FONT_SIZE};
         line-height: {REPORT_LINE_HEIGHT}; color: #333; margin: 0; padding: 0; }}
  h1 {{ font-size: 14pt; text-align: center; font-weight: bold; text-transform: uppercase; }}
  h2 {{ font-size: 12pt; text-align: center; font-weight: bold; }}
  p {{ margin-bottom: 0.6em; }}
  table {{ width: 100%; border-collapse: collapse; }}
  th, td {{ border: 1px solid #000; padding: 8px; text-align: left; vertical-align: top; }}
  .doc-header-table td {{ border: none !important; padding: 0 !important; }}
  .signature-title, .signature-text, .signature-name {{ text-align: center !important; }}
"""


def wrap_document(body: str, title: str = "Báo cáo") -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{title}</title>\n<style>{_DOC_CSS}</style>\n</head>\n"
        f"<body>\n{body}\n</body>\n</html>\n"
    )


def wrap_word_document(body: str, title: str = "Công văn trả lời xác minh") -> str:
    """HTML that Microsoft Word opens as a .doc file."""
    return (
        "<html xmlns:o=\"urn:schemas-microsoft-com:office:office\" "
        "xmlns:w=\"urn:schemas-microsoft-com:office:word\" "
        "xmlns=\"http://www.w3.org/TR/REC-html40\">\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{title}</title>\n<style>{_DOC_CSS}</style>\n</head>\n"
        f"<body>\n{body}\n</body>\n</html>\n"
    )


def html_to_text(html: str) -> str:
    text = _TAG.sub("", html).replace("&nbsp;", " ")
    return re.sub(r"\s{2,}", " ", text).strip()


def report_filename(kind: str, start: Optional[date], end: Optional[date], ext: str) -> str:
    return f"BaoCao_{kind}_{format_date(start)}-{format_date(end)}.{ext}".replace("/", "")


def reply_filename(doc_number: str, created, ext: str) -> str:
    safe = (doc_number or "XacMinh").replace("/", "-")
    return f"CongVanTraLoi_{safe}_{format_date(created, 'YYYYMMDD')}.{ext}"


# ── Built-in templates ────────────────────────────────────────────────────
_LETTER_HEAD = """
<div style="font-family: 'Times New Roman', serif; font-size: 12pt; line-height: 1.35; padding: 2cm 2cm 2cm 3cm; width: 21cm; margin: 0 auto; box-sizing: border-box;">
  <table class="doc-header-table" style="width: 100%; border-collapse: collapse; margin-bottom: 0.5cm;">
    <tr>
      <td style="width: 50%; text-align: center;">
        <p style="font-size: 13pt; font-weight: bold; margin: 0; white-space: nowrap;">CÔNG AN TP HÀ NỘI</p>
        <p style="font-size: 13pt; font-weight: bold; margin: 0; text-decoration: underline; white-space: nowrap;">CÔNG AN XÃ KIỀU PHÚ</p>
      </td>
      <td style="width: 50%; text-align: center;">
        <p style="font-size: 13pt; font-weight: bold; margin: 0; white-space: nowrap;">CỘNG HÒA XÃ HỘI CHỦ NGHĨA VIỆT NAM</p>
        <p style="font-size: 13pt; font-weight: bold; margin: 0; text-decoration: underline;">Độc lập - Tự do - Hạnh phúc</p>
      </td>
    </tr>
    <tr>
      <td style="width: 50%; text-align: center;">
        <p style="margin-top: 0.2cm; font-size: 12pt;">Số: <<responseDocNumber>>/CV-CAXKP</p>
      </td>
      <td style="width: 50%; text-align: center;">
        <p style="margin-top: 0.2cm; font-size: 12pt; text-align: right;">Kiều Phú, ngày <<currentDay>> tháng <<currentMonth>> năm <<currentYear>></p>
      </td>
    </tr>
  </table>
"""

_LETTER_FOOT = """
  <table style="width: 100%; border-collapse: collapse; margin-top: 1cm;">
    <tr>
      <td style="width: 50%; border: none !important;">
        <p style="font-size: 12pt; font-weight: bold; text-align: left;">Nơi nhận:</p>
        <ul style="list-style-type: none; margin: 0; padding-left: 20px;">
          <li>- <<requestingUnitName>>;</li>
          <li>- Lưu: VT.</li>
        </ul>
      </td>
      <td style="width: 50%; border: none !important; text-align: center;">
        <p style="font-size: 13pt; font-weight: bold;" class="signature-title">{signature}</p>
        <p style="font-size: 12pt;" class="signature-text">(Ký tên, đóng dấu)</p>
        <p style="font-size: 13pt; font-weight: bold; margin-top: 1.5cm;" class="signature-name">[HỌ TÊN]</p>
      </td>
    </tr>
  </table>
</div>
"""

_P = '<p style="text-align: justify; text-indent: 40px; margin-bottom: 0.6em;">{}</p>'

_LETTER_1 = _LETTER_HEAD + f"""
  <h1 style="text-align: center; font-size: 14pt; font-weight: bold; text-transform: uppercase; margin-top: 1cm;">CÔNG VĂN TRẢ LỜI YÊU CẦU XÁC MINH</h1>
  <h2 style="text-align: center; font-size: 12pt; font-weight: bold; margin-bottom: 1cm;">V/v: Xác minh thông tin đối tượng vi phạm</h2>
  <p><strong>Kính gửi:</strong> <<requestingUnitName>></p>
  {_P.format("Công an xã Kiều Phú nhận được công văn số <<docNumber>> ngày <<docDate:DD/MM/YYYY>> của <<requestingUnitName>> về việc yêu cầu xác minh thông tin đối tượng:")}
  <ul style="list-style-type: none; margin-left: 40px; padding-left: 0;">
    <li><span style="display: inline-block; width: 100px; font-weight: bold;">Họ và tên:</span> <<offenderName>></li>
    <li><span style="display: inline-block; width: 100px; font-weight: bold;">CCCD:</span> <<citizenId>></li>
    <li><span style="display: inline-block; width: 100px; font-weight: bold;">Ngày sinh:</span> <<dateOfBirth:DD/MM/YYYY>></li>
    <li><span style="display: inline-block; width: 100px; font-weight: bold;">Địa chỉ:</span> <<address>></li>
    <li><span style="display: inline-block; width: 100px; font-weight: bold;">Hành vi:</span> <<violationBehavior>></li>
  </ul>
  {_P.format("Sau khi tiến hành xác minh, Công an xã Kiều Phú xin thông báo kết quả như sau:")}
  {_P.format("<<resultContent>>")}
  {_P.format("(Kết quả xác minh: <<verificationResult>>. Ngày hoàn thành: <<endDate:DD/MM/YYYY>>)")}
  {_P.format("Công an xã Kiều Phú thông báo để <<requestingUnitName>> được biết và giải quyết theo quy định.")}
""" + _LETTER_FOOT.format(signature="THỦ TRƯỞNG ĐƠN VỊ")

_LETTER_2 = _LETTER_HEAD + f"""
  <h1 style="text-align: center; font-size: 14pt; font-weight: bold; text-transform: uppercase; margin-top: 1cm;">VĂN BẢN PHÚC ĐÁP YÊU CẦU XÁC MINH</h1>
  <h2 style="text-align: center; font-size: 12pt; font-weight: bold; margin-bottom: 1cm;">V/v: Thông báo kết quả xác minh đối tượng</h2>
  <p><strong>Kính gửi:</strong> <<requestingUnitName>></p>
  {_P.format("Công an xã Kiều Phú đã nhận được văn bản số <<docNumber>> ngày <<docDate:DD/MM/YYYY>> của <<requestingUnitName>> đề nghị xác minh đối tượng <<offenderName>> (CCCD: <<citizenId>>, Ngày sinh: <<dateOfBirth:DD/MM/YYYY>>, Địa chỉ: <<address>>) với hành vi vi phạm: <<violationBehavior>>.")}
  {_P.format("Căn cứ kết quả điều tra, xác minh, Công an xã Kiều Phú xin phúc đáp như sau:")}
  {_P.format("<<resultContent>>")}
  {_P.format("(Tình trạng xác minh: <<verificationResult>>. Ngày hoàn tất: <<endDate:DD/MM/YYYY>>)")}
  {_P.format("Công an xã Kiều Phú trân trọng thông báo kết quả xác minh để <<requestingUnitName>> tiện theo dõi và xử lý theo quy định pháp luật.")}
""" + _LETTER_FOOT.format(signature="TM. ỦY BAN NHÂN DÂN<br>TRƯỞNG CÔNG AN XÃ")

DEFAULT_TEMPLATES = [
    DocumentTemplate(id="template1", name="Mẫu Công văn 1", content=_LETTER_1),
    DocumentTemplate(id="template2", name="Mẫu Công văn 2 (Biến thể)", content=_LETTER_2),
]
