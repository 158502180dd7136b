"""
PoliceDeskVN – Streamlit Dashboard
Run: streamlit run ui/dashboard.py
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import streamlit as st
import streamlit.components.v1 as components
import requests
import pandas as pd
import plotly.express as px
from datetime import date, datetime
from dotenv import load_dotenv

load_dotenv()

API_BASE = f"http://localhost:{os.getenv('API_PORT', 8000)}/api/v1"

VEHICLE_TYPES   = ["Ô tô", "Xe máy"]
ALCOHOL_LEVELS  = {"Yes": "Có", "No": "Không", "Unknown": "Không rõ"}
UNITS           = ["VNĐ", "Trường hợp", "Số lượng", "Giờ", "Lượt"]
TASK_CATEGORIES = ["Tuần tra xử lý", "Tuyên truyền", "Tham mưu", "Tổng hợp",
                   "Bảo vệ kỳ cuộc", "Cưỡng chế", "Phối hợp", "Khác"]
VERIFY_STATUSES = ["Chưa xác minh", "Đang xác minh", "Đã xác minh", "Không xác định"]
DOC_TYPES       = ["Công văn", "Kiến nghị", "Chương trình", "Kế hoạch", "Phương án", "Báo cáo", "Khác"]
PERIODS = {
    "weekly": "Hàng Tuần", "monthly": "Hàng Tháng", "quarterly": "Hàng Quý",
    "halfYearly": "6 Tháng", "yearly": "Hàng Năm", "custom": "Tùy Chọn",
}

st.set_page_config(
    page_title="PoliceDeskVN",
    page_icon="🚓",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Custom CSS ─────────────────────────────────────────────────────────
st.markdown("""
<style>
.sync-bar { padding: 0.3rem 1rem; border-radius: 6px; color: white;
            font-weight: bold; text-align: center; font-size: 0.8rem; }
.sync-syncing { background: #2563eb; }
.sync-success { background: #16a34a; }
.sync-error   { background: #dc2626; }
</style>
""", unsafe_allow_html=True)

# ── Helpers ────────────────────────────────────────────────────────────
def api_get(path, default=None, params=None):
    try:
        r = requests.get(f"{API_BASE}{path}", params=params, timeout=10)
        r.raise_for_status()
        return r.json()
    except Exception:
        return default

def _call(method, path, data=None, files=None, params=None, timeout=15):
    try:
        if files:
            r = requests.request(method, f"{API_BASE}{path}", files=files, params=params, timeout=timeout)
        else:
            r = requests.request(method, f"{API_BASE}{path}", json=data, params=params, timeout=timeout)
        if not r.ok:
            try:
                return {"error": r.json().get("detail", r.text)}
            except ValueError:
                return {"error": r.text}
        return r.json()
    except Exception as e:
        return {"error": str(e)}

def api_post(path, data=None, files=None, params=None, timeout=15):
    return _call("POST", path, data, files, params, timeout)

def api_put(path, data=None):
    return _call("PUT", path, data)

def api_delete(path):
    return _call("DELETE", path)

def api_file(path, data=None, params=None):
    try:
        r = requests.post(f"{API_BASE}{path}", json=data, params=params, timeout=15)
        r.raise_for_status()
        return r.content
    except Exception:
        return None

def show_result(r, ok_msg):
    if isinstance(r, dict) and "error" in r:
        st.error(str(r["error"]))
        return False
    st.success(ok_msg)
    return True

def fmt_date(value):
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").strftime("%d/%m/%Y")
    except ValueError:
        return value or ""

def to_date(value, default=None):
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return default

def records(collection, **params):
    return api_get(f"/records/{collection}", [], params=params or None)

def frame(items, columns):
    """DataFrame with Vietnamese headers: columns = {wireKey: header}."""
    if not items:
        return pd.DataFrame(columns=list(columns.values()))
    df = pd.DataFrame(items)
    for key in columns:
        if key not in df.columns:
            df[key] = ""
    return df[list(columns)].rename(columns=columns)

def delete_picker(collection, items, label, key):
    if not items:
        return
    with st.expander("🗑️ Xóa bản ghi"):
        options = {label(x): x["id"] for x in items}
        choice = st.selectbox("Chọn bản ghi", list(options), key=f"del_{key}")
        if st.button("Xóa", key=f"del_btn_{key}"):
            r = api_delete(f"/records/{collection}/{options[choice]}")
            if show_result(r, "Đã xóa ✓"):
                st.rerun()

def period_picker(key, allow_all=False):
    options = dict(PERIODS)
    if allow_all:
        options = {"all": "Toàn bộ", **options}
    c1, c2, c3, c4 = st.columns(4)
    kind = c1.selectbox("Kỳ báo cáo", list(options), format_func=options.get, key=f"{key}_kind")
    params = {"kind": kind}
    if kind == "custom":
        params["from"] = c2.date_input("Từ ngày", key=f"{key}_from").isoformat()
        params["to"]   = c3.date_input("Đến ngày", key=f"{key}_to").isoformat()
    elif kind != "all":
        params["reference"] = c2.date_input("Ngày tham chiếu", key=f"{key}_ref").isoformat()
    bounds = api_get("/reports/period", {}, params=params)
    if bounds.get("from"):
        c4.markdown(f"**{fmt_date(bounds['from'])} → {fmt_date(bounds['to'])}**")
    return params, bounds

# ── Sidebar ────────────────────────────────────────────────────────────
st.sidebar.title("🚓 PoliceDeskVN")
st.sidebar.markdown("Công an xã Kiều Phú")
page = st.sidebar.radio("Điều hướng", [
    "📊 Tổng quan",
    "🚑 Tai nạn giao thông",
    "🚗 Đăng ký xe",
    "🎯 Sự kiện",
    "📝 Công tác hằng ngày",
    "🔍 Phối hợp xác minh",
    "📂 Công tác tham mưu",
    "📑 Báo cáo",
    "⚙️ Cài đặt",
])

# ── Check API ──────────────────────────────────────────────────────────
health = api_get("/health")
api_ok = health is not None and "ok" in str(health.get("status", ""))
st.sidebar.markdown(
    "🟢 **API đã kết nối**" if api_ok else "🔴 **API ngoại tuyến**\n\n`uvicorn main:app`"
)

sync = api_get("/sync/status", {}) if api_ok else {}
if sync.get("status") in ("syncing", "success", "error"):
    st.markdown(f"<div class='sync-bar sync-{sync['status']}'>{sync.get('message', '')}</div>",
                unsafe_allow_html=True)

# ─────────────────────────────────────────────────────────────────────
if "📊" in page:
    st.title("📊 Tổng quan")
    ov = api_get("/dashboard", {})

    col1, col2, col3 = st.columns(3)
    col1.metric("🚑 Tổng số vụ TNGT", ov.get("totalAccidents", 0))
    col2.metric("⚰️ Số người chết", ov.get("totalDeaths", 0))
    col3.metric("🤕 Số người bị thương", ov.get("totalInjuries", 0))
    col4, col5, col6 = st.columns(3)
    col4.metric("🚗 Đăng ký xe hôm nay", ov.get("registrationsToday", 0))
    col5.metric("🎯 Sự kiện đang diễn ra", ov.get("activeEvents", 0))
    col6.metric("📝 Công tác hôm nay", ov.get("tasksToday", 0))

    c1, c2 = st.columns(2)
    with c1:
        trend = ov.get("accidentTrend", [])
        if trend:
            fig = px.line(pd.DataFrame(trend), x="label", y="count", markers=True,
                          title="Xu hướng vụ TNGT theo tháng")
            fig.update_layout(xaxis_title="Tháng", yaxis_title="Số vụ")
            st.plotly_chart(fig, use_container_width=True)
        else:
            st.info("Chưa có dữ liệu tai nạn giao thông.")
    with c2:
        progress = ov.get("eventProgress", [])
        if progress:
            fig2 = px.bar(pd.DataFrame(progress), x="name", y="progress",
                          title="Tiến độ sự kiện (%)", color_discrete_sequence=["#1e88e5"])
            fig2.update_layout(xaxis_title="Sự kiện", yaxis_title="%")
            st.plotly_chart(fig2, use_container_width=True)
        else:
            st.info("Chưa có sự kiện.")

    st.subheader("Thống kê đăng ký xe")
    st.dataframe(frame(ov.get("registrationStats", []), {
        "type": "Loại phương tiện", "first": "Đăng ký mới", "transfer": "Sang tên",
        "recall": "Thu hồi", "renewal": "Cấp đổi", "total": "Tổng cộng",
    }), use_container_width=True, hide_index=True)

# ─────────────────────────────────────────────────────────────────────
elif "🚑" in page:
    st.title("🚑 Quản lý vụ việc tai nạn giao thông")
    accidents = records("trafficAccidents")
    tab1, tab2, tab3 = st.tabs(["Danh sách", "Thêm mới", "Chỉnh sửa"])

    with tab1:
        st.dataframe(frame(accidents, {
            "date": "Ngày", "time": "Giờ", "location": "Địa điểm", "content": "Nội dung",
            "deaths": "Chết", "injuries": "Bị thương", "estimatedDamageVND": "Thiệt hại (VNĐ)",
            "alcoholLevel": "Nồng độ cồn", "handlingUnit": "Đơn vị xử lý",
            "processingResult": "Kết quả xử lý",
        }), use_container_width=True, hide_index=True)
        delete_picker("trafficAccidents", accidents,
                      lambda a: f"{fmt_date(a['date'])} – {a['location']} ({a['id'][:8]})", "acc")

    def accident_form(key, current=None):
        current = current or {}
        with st.form(key):
            c1, c2 = st.columns(2)
            d   = c1.date_input("Ngày", to_date(current.get("date"), date.today()))
            t   = c2.text_input("Giờ (HH:MM)", current.get("time", ""))
            loc = st.text_input("Địa điểm", current.get("location", ""))
            content = st.text_area("Nội dung vụ việc", current.get("content", ""))
            cons    = st.text_area("Hậu quả", current.get("consequences", ""))
            c3, c4, c5 = st.columns(3)
            deaths   = c3.number_input("Số người chết", 0, step=1, value=int(current.get("deaths", 0)))
            injuries = c4.number_input("Số người bị thương", 0, step=1, value=int(current.get("injuries", 0)))
            damage   = c5.number_input("Thiệt hại ước tính (VNĐ)", 0, step=100000,
                                       value=int(current.get("estimatedDamageVND", 0)))
            levels = list(ALCOHOL_LEVELS)
            alcohol = st.selectbox("Nồng độ cồn", levels, format_func=ALCOHOL_LEVELS.get,
                                   index=levels.index(current.get("alcoholLevel", "Unknown")))
            unit   = st.text_input("Đơn vị xử lý", current.get("handlingUnit", ""))
            result = st.text_area("Kết quả xử lý", current.get("processingResult", ""))
            if st.form_submit_button("Lưu"):
                return {
                    "date": d.isoformat(), "time": t, "location": loc, "content": content,
                    "consequences": cons, "deaths": deaths, "injuries": injuries,
                    "estimatedDamageVND": damage, "alcoholLevel": alcohol,
                    "handlingUnit": unit, "processingResult": result,
                }
        return None

    with tab2:
        payload = accident_form("add_accident")
        if payload and show_result(api_post("/records/trafficAccidents", payload), "Đã thêm vụ việc ✓"):
            st.rerun()

    with tab3:
        if accidents:
            options = {f"{fmt_date(a['date'])} – {a['location']} ({a['id'][:8]})": a for a in accidents}
            chosen = options[st.selectbox("Chọn vụ việc", list(options))]
            payload = accident_form(f"edit_accident_{chosen['id']}", chosen)
            if payload and show_result(api_put(f"/records/trafficAccidents/{chosen['id']}", payload),
                                       "Đã cập nhật ✓"):
                st.rerun()
        else:
            st.info("Chưa có vụ việc nào.")

# ─────────────────────────────────────────────────────────────────────
elif "🚗" in page:
    st.title("🚗 Theo dõi kết quả đăng ký xe")
    params, _ = period_picker("reg", allow_all=True)
    regs = records("vehicleRegistrations", filtered=True, **params)

    rows = [{**r, "total": r["firstTimeCount"] + r["transferCount"] + r["recallCount"] + r["renewalCount"]}
            for r in regs]
    st.dataframe(frame(rows, {
        "date": "Ngày", "vehicleType": "Loại xe", "firstTimeCount": "Đăng ký mới",
        "transferCount": "Sang tên", "recallCount": "Thu hồi", "renewalCount": "Cấp đổi",
        "total": "Tổng",
    }), use_container_width=True, hide_index=True)
    delete_picker("vehicleRegistrations", regs,
                  lambda r: f"{fmt_date(r['date'])} – {r['vehicleType']} ({r['id'][:8]})", "reg")

    st.subheader("Thêm kết quả đăng ký")
    with st.form("add_registration"):
        c1, c2 = st.columns(2)
        d     = c1.date_input("Ngày", date.today())
        vtype = c2.selectbox("Loại xe", VEHICLE_TYPES)
        c3, c4, c5, c6 = st.columns(4)
        first    = c3.number_input("Đăng ký mới", 0, step=1)
        transfer = c4.number_input("Sang tên", 0, step=1)
        recall   = c5.number_input("Thu hồi", 0, step=1)
        renewal  = c6.number_input("Cấp đổi", 0, step=1)
        if st.form_submit_button("Lưu"):
            r = api_post("/records/vehicleRegistrations", {
                "date": d.isoformat(), "vehicleType": vtype, "firstTimeCount": first,
                "transferCount": transfer, "recallCount": recall, "renewalCount": renewal,
            })
            if show_result(r, "Đã lưu ✓"):
                st.rerun()

# ─────────────────────────────────────────────────────────────────────
elif "🎯" in page:
    st.title("🎯 Sự kiện (đợt công tác / cao điểm)")
    events = records("events")
    tab1, tab2 = st.tabs(["Theo dõi sự kiện", "Tạo sự kiện"])

    with tab1:
        if not events:
            st.info("Chưa có sự kiện nào.")
        else:
            options = {f"{e['name']} ({fmt_date(e['fromDate'])} – {fmt_date(e['toDate'])})": e for e in events}
            ev = options[st.selectbox("Chọn sự kiện", list(options))]
            st.write(ev.get("content", ""))

            targets = ev.get("targets", [])
            if targets:
                rows = []
                for tg in targets:
                    done = sum(r["result"] for r in tg.get("results", []))
                    pct = round(done / tg["goal"] * 100, 2) if tg["goal"] else 0
                    rows.append({"name": tg["name"], "goal": tg["goal"], "unit": tg["unit"],
                                 "done": done, "pct": pct})
                st.dataframe(frame(rows, {"name": "Chỉ tiêu", "goal": "Mục tiêu", "unit": "Đơn vị",
                                          "done": "Đã đạt", "pct": "Tiến độ (%)"}),
                             use_container_width=True, hide_index=True)

                st.subheader("Cập nhật kết quả theo ngày")
                with st.form("target_result"):
                    tmap = {t["name"]: t["id"] for t in targets}
                    c1, c2, c3 = st.columns(3)
                    tname = c1.selectbox("Chỉ tiêu", list(tmap))
                    rdate = c2.date_input("Ngày", date.today())
                    value = c3.number_input("Kết quả", 0.0, step=1.0)
                    if st.form_submit_button("Lưu kết quả"):
                        r = api_put(f"/events/{ev['id']}/targets/{tmap[tname]}/results",
                                    {"date": rdate.isoformat(), "result": value})
                        if show_result(r, "Đã cập nhật kết quả ✓"):
                            st.rerun()

            st.subheader("Thêm chỉ tiêu")
            with st.form("add_target"):
                c1, c2, c3 = st.columns(3)
                name = c1.text_input("Tên chỉ tiêu")
                goal = c2.number_input("Mục tiêu", 0.0, step=1.0)
                unit = c3.selectbox("Đơn vị", UNITS)
                if st.form_submit_button("Thêm chỉ tiêu"):
                    r = api_post(f"/events/{ev['id']}/targets", {"name": name, "goal": goal, "unit": unit})
                    if show_result(r, "Đã thêm chỉ tiêu ✓"):
                        st.rerun()

            delete_picker("events", events, lambda e: f"{e['name']} ({e['id'][:8]})", "event")

    with tab2:
        with st.form("add_event"):
            name = st.text_input("Tên sự kiện")
            c1, c2 = st.columns(2)
            d_from = c1.date_input("Từ ngày", date.today())
            d_to   = c2.date_input("Đến ngày", date.today())
            content = st.text_area("Nội dung")
            if st.form_submit_button("Tạo sự kiện"):
                r = api_post("/records/events", {"name": name, "fromDate": d_from.isoformat(),
                                                 "toDate": d_to.isoformat(), "content": content})
                if show_result(r, "Đã tạo sự kiện ✓"):
                    st.rerun()

# ─────────────────────────────────────────────────────────────────────
elif "📝" in page:
    st.title("📝 Công tác thường xuyên & theo giai đoạn")
    tasks = records("dailyTasks")
    cat_f = st.selectbox("Lọc theo danh mục", ["Tất cả"] + TASK_CATEGORIES)
    shown = [t for t in tasks if cat_f == "Tất cả" or t["category"] == cat_f]
    st.dataframe(frame(sorted(shown, key=lambda t: t["date"], reverse=True), {
        "date": "Ngày", "category": "Danh mục", "description": "Nội dung", "result": "Kết quả",
    }), use_container_width=True, hide_index=True)
    delete_picker("dailyTasks", tasks,
                  lambda t: f"{fmt_date(t['date'])} – {t['category']} ({t['id'][:8]})", "task")

    st.subheader("Ghi nhận công tác")
    with st.form("add_task"):
        c1, c2 = st.columns(2)
        d   = c1.date_input("Ngày", date.today())
        cat = c2.selectbox("Danh mục", TASK_CATEGORIES)
        desc   = st.text_area("Nội dung công tác")
        result = st.text_area("Kết quả")
        if st.form_submit_button("Lưu"):
            r = api_post("/records/dailyTasks", {"date": d.isoformat(), "category": cat,
                                                 "description": desc, "result": result})
            if show_result(r, "Đã lưu ✓"):
                st.rerun()

# ─────────────────────────────────────────────────────────────────────
elif "🔍" in page:
    st.title("🔍 Quản lý phối hợp xác minh")
    requests_ = records("verificationRequests")
    tab1, tab2, tab3, tab4 = st.tabs(["Danh sách", "Thêm yêu cầu", "Công văn trả lời", "Mẫu công văn"])

    with tab1:
        st_f = st.selectbox("Lọc theo kết quả", ["Tất cả"] + VERIFY_STATUSES)
        shown = [r for r in requests_ if st_f == "Tất cả" or r["verificationResult"] == st_f]
        st.dataframe(frame(shown, {
            "docNumber": "Số CV", "docDate": "Ngày CV", "offenderName": "Họ tên VP",
            "citizenId": "CCCD", "dateOfBirth": "Ngày sinh", "address": "Địa chỉ",
            "violationBehavior": "Hành vi vi phạm", "verificationResult": "Kết quả",
            "endDate": "Ngày kết thúc",
        }), use_container_width=True, hide_index=True)

        if requests_:
            st.subheader("Cập nhật kết quả xác minh")
            options = {f"{r['docNumber']} – {r['offenderName']} ({r['id'][:8]})": r for r in requests_}
            req = options[st.selectbox("Chọn yêu cầu", list(options), key="upd_req")]
            with st.form(f"update_result_{req['id']}"):
                c1, c2 = st.columns(2)
                status = c1.selectbox("Kết quả xác minh", VERIFY_STATUSES,
                                      index=VERIFY_STATUSES.index(req["verificationResult"]))
                end = c2.date_input("Ngày kết thúc", to_date(req.get("endDate"), date.today()))
                content = st.text_area("Nội dung kết quả xác minh", req.get("resultContent", ""))
                if st.form_submit_button("Cập nhật"):
                    r = api_put(f"/records/verificationRequests/{req['id']}", {
                        **req, "verificationResult": status, "endDate": end.isoformat(),
                        "resultContent": content,
                    })
                    if show_result(r, "Đã cập nhật ✓"):
                        st.rerun()
        delete_picker("verificationRequests", requests_,
                      lambda r: f"{r['docNumber']} – {r['offenderName']} ({r['id'][:8]})", "verify")

    with tab2:
        st.caption("Tải ảnh công văn để AI tự điền thông tin (có thể chỉnh sửa trước khi lưu).")
        image = st.file_uploader("Ảnh công văn yêu cầu xác minh", type=["jpg", "jpeg", "png", "webp"])
        if image and st.button("🤖 Trích xuất bằng AI"):
            with st.spinner("Đang đọc công văn…"):
                r = api_post("/verifications/extract",
                             files={"file": (image.name, image.getvalue(), image.type or "image/jpeg")},
                             timeout=60)
            if show_result(r, "Đã trích xuất thông tin ✓"):
                st.session_state.draft = r
        draft = st.session_state.get("draft", {})

        with st.form("add_verification"):
            c1, c2 = st.columns(2)
            doc_no   = c1.text_input("Số CV", draft.get("docNumber", ""))
            doc_date = c2.date_input("Ngày CV", to_date(draft.get("docDate"), date.today()))
            name     = c1.text_input("Họ tên VP", draft.get("offenderName", ""))
            cid      = c2.text_input("CCCD", draft.get("citizenId", ""))
            dob      = c1.date_input("Ngày sinh", to_date(draft.get("dateOfBirth"), date(1990, 1, 1)),
                                     min_value=date(1900, 1, 1))
            address  = c2.text_input("Địa chỉ", draft.get("address", ""))
            behavior = st.text_area("Hành vi vi phạm", draft.get("violationBehavior", ""))
            status   = st.selectbox("Kết quả xác minh", VERIFY_STATUSES)
            if st.form_submit_button("Lưu yêu cầu"):
                r = api_post("/records/verificationRequests", {
                    "docNumber": doc_no, "docDate": doc_date.isoformat(), "offenderName": name,
                    "citizenId": cid, "dateOfBirth": dob.isoformat(), "address": address,
                    "violationBehavior": behavior, "verificationResult": status,
                })
                if show_result(r, "Đã lưu yêu cầu ✓"):
                    st.session_state.pop("draft", None)
                    st.rerun()

    with tab3:
        if not requests_:
            st.info("Chưa có yêu cầu xác minh.")
        else:
            tpl = api_get("/templates", {"templates": [], "selectedId": ""})
            tmap = {t["name"]: t["id"] for t in tpl["templates"]}
            options = {f"{r['docNumber']} – {r['offenderName']} ({r['id'][:8]})": r for r in requests_}
            req = options[st.selectbox("Yêu cầu xác minh", list(options), key="reply_req")]
            ids = list(tmap.values())
            c1, c2 = st.columns(2)
            tname = c1.selectbox("Mẫu công văn", list(tmap),
                                 index=ids.index(tpl["selectedId"]) if tpl["selectedId"] in ids else 0)
            doc_date = c2.date_input("Ngày công văn trả lời", date.today())
            unit     = c1.text_input("Đơn vị yêu cầu", "Phòng CSGT - Công an TP Hà Nội")
            resp_no  = c2.text_input("Số công văn trả lời", "")
            body = {"templateId": tmap.get(tname), "docDate": doc_date.isoformat(),
                    "requestingUnit": unit, "responseDocNumber": resp_no}
            reply = api_post(f"/verifications/{req['id']}/reply", body)
            if "error" in reply:
                st.error(str(reply["error"]))
            else:
                components.html(reply["document"], height=700, scrolling=True)
                d1, d2 = st.columns(2)
                d1.download_button("⬇ Tải HTML", reply["document"].encode("utf-8"),
                                   reply["filename"], "text/html")
                doc = api_file(f"/verifications/{req['id']}/reply/download", body, params={"format": "doc"})
                if doc:
                    d2.download_button("⬇ Tải Word (.doc)", doc,
                                       reply["filename"].rsplit(".", 1)[0] + ".doc", "application/msword")

    with tab4:
        tpl = api_get("/templates", {"templates": [], "selectedId": ""})
        if tpl["templates"]:
            tmap = {t["name"]: t for t in tpl["templates"]}
            chosen = tmap[st.selectbox("Mẫu", list(tmap), key="tpl_edit")]
            if chosen["id"] == tpl["selectedId"]:
                st.caption("✅ Mẫu đang được sử dụng mặc định")
            elif st.button("Đặt làm mẫu mặc định"):
                if show_result(api_post("/templates/select", {"templateId": chosen["id"]}), "Đã chọn ✓"):
                    st.rerun()
            with st.form(f"edit_tpl_{chosen['id']}"):
                tname = st.text_input("Tên mẫu", chosen["name"])
                content = st.text_area("Nội dung (HTML)", chosen["content"], height=400)
                if st.form_submit_button("Lưu mẫu"):
                    r = api_put(f"/templates/{chosen['id']}", {"name": tname, "content": content})
                    if show_result(r, "Đã lưu mẫu ✓"):
                        st.rerun()
        with st.expander("➕ Tạo mẫu mới"):
            with st.form("new_tpl"):
                tname = st.text_input("Tên mẫu")
                content = st.text_area("Nội dung (HTML)", height=250)
                if st.form_submit_button("Tạo mẫu"):
                    if show_result(api_post("/templates", {"name": tname, "content": content}), "Đã tạo ✓"):
                        st.rerun()
        st.subheader("Các trường có thể dùng")
        st.dataframe(frame(
            [{"key": f"<<{p['key']}>>", "description": p["description"]}
             for p in api_get("/templates/placeholders", [])],
            {"key": "Trường", "description": "Ý nghĩa"},
        ), use_container_width=True, hide_index=True)

# ─────────────────────────────────────────────────────────────────────
elif "📂" in page:
    st.title("📂 Quản lý công tác tham mưu")
    docs = records("advisoryDocuments")
    type_f = st.selectbox("Lọc theo loại", ["Tất cả"] + DOC_TYPES)
    shown = [d for d in docs if type_f == "Tất cả" or d["docType"] == type_f]
    st.dataframe(frame(shown, {
        "docNumber": "Số văn bản", "docDate": "Ngày văn bản", "docType": "Loại",
        "content": "Trích yếu", "recipientUnit": "Nơi nhận", "releaseDate": "Ngày ban hành",
    }), use_container_width=True, hide_index=True)
    delete_picker("advisoryDocuments", docs,
                  lambda d: f"{d['docNumber']} – {d['docType']} ({d['id'][:8]})", "adv")

    st.subheader("Thêm văn bản tham mưu")
    with st.form("add_advisory"):
        c1, c2, c3 = st.columns(3)
        no      = c1.text_input("Số văn bản")
        d       = c2.date_input("Ngày văn bản", date.today())
        dtype   = c3.selectbox("Loại", DOC_TYPES)
        content = st.text_area("Trích yếu nội dung")
        c4, c5 = st.columns(2)
        unit    = c4.text_input("Nơi nhận")
        release = c5.date_input("Ngày ban hành", date.today())
        if st.form_submit_button("Lưu"):
            r = api_post("/records/advisoryDocuments", {
                "docNumber": no, "docDate": d.isoformat(), "docType": dtype, "content": content,
                "recipientUnit": unit, "releaseDate": release.isoformat(),
            })
            if show_result(r, "Đã lưu ✓"):
                st.rerun()

# ─────────────────────────────────────────────────────────────────────
elif "📑" in page:
    st.title("📑 Tạo báo cáo tự động")
    params, bounds = period_picker("report")
    s = api_get("/reports/summary", {}, params=params)

    st.subheader("Tóm tắt số liệu")
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Vụ TNGT", s.get("totalAccidents", 0))
    c2.metric("Người chết", s.get("totalDeaths", 0))
    c3.metric("Người bị thương", s.get("totalInjuries", 0))
    c4.metric("Vụ có nồng độ cồn", s.get("totalAlcoholAccidents", 0))
    c5.metric("Thiệt hại (VNĐ)", f"{s.get('totalDamage', 0):,}".replace(",", "."))

    with st.expander("Chi tiết vụ việc TNGT"):
        detail = st.radio("Hiển thị", ["total", "alcohol", "deaths", "injuries", "damage"], horizontal=True,
                          format_func={"total": "Tất cả", "alcohol": "Có nồng độ cồn", "deaths": "Có người chết",
                                       "injuries": "Có người bị thương", "damage": "Thiệt hại"}.get)
        st.dataframe(frame(api_get("/reports/accidents", [], params={**params, "detail": detail}), {
            "date": "Ngày", "location": "Địa điểm", "content": "Nội dung", "deaths": "Chết",
            "injuries": "Bị thương", "estimatedDamageVND": "Thiệt hại",
        }), use_container_width=True, hide_index=True)

    c1, c2 = st.columns(2)
    with c1:
        st.markdown(f"**Đăng ký xe:** {s.get('totalVehicleRegistrations', 0)} lượt")
        st.dataframe(frame(s.get("registrationStats", []), {
            "type": "Loại", "first": "Mới", "transfer": "Sang tên",
            "recall": "Thu hồi", "renewal": "Cấp đổi", "total": "Tổng",
        }), use_container_width=True, hide_index=True)
        st.markdown(f"**Sự kiện:** {s.get('totalEvents', 0)} – tiến độ {s.get('eventGoalPercentage', '0%')}")
    with c2:
        st.markdown(f"**Công tác:** {s.get('totalDailyTasks', 0)}")
        st.dataframe(frame(s.get("dailyTaskCategories", []), {"label": "Danh mục", "count": "Số lượng"}),
                     use_container_width=True, hide_index=True)
        st.markdown(f"**Xác minh:** {s.get('totalVerificationRequests', 0)}")
        st.json(s.get("verificationResults", {}))
        st.markdown(f"**Tham mưu:** {s.get('totalAdvisoryDocuments', 0)}")
        st.dataframe(frame(s.get("advisoryDocTypes", []), {"label": "Loại", "count": "Số lượng"}),
                     use_container_width=True, hide_index=True)

    st.divider()
    body = {"kind": params["kind"], "reference": params.get("reference"),
            "dateFrom": params.get("from"), "dateTo": params.get("to")}
    if st.button("🤖 Tạo báo cáo bằng AI"):
        with st.spinner("AI đang soạn báo cáo…"):
            r = api_post("/reports/generate", body, timeout=120)
        if show_result(r, "Đã tạo báo cáo ✓"):
            st.session_state.report_html = r["html"]
        else:
            st.session_state.report_html = "<p>Không thể tạo báo cáo. Vui lòng thử lại.</p>"

    if st.session_state.get("report_html"):
        html = st.text_area("Nội dung báo cáo (HTML, có thể chỉnh sửa)",
                            st.session_state.report_html, height=300)
        st.session_state.report_html = html
        components.html(html, height=600, scrolling=True)
        d1, d2 = st.columns(2)
        for col, fmt, mime in ((d1, "html", "text/html"), (d2, "txt", "text/plain")):
            data = api_file("/reports/download", {**body, "html": html, "format": fmt})
            if data:
                name = (f"BaoCao_{params['kind']}_{fmt_date(bounds.get('from')).replace('/', '')}"
                        f"-{fmt_date(bounds.get('to')).replace('/', '')}.{fmt}")
                col.download_button(f"⬇ Tải .{fmt}", data, name, mime)

# ─────────────────────────────────────────────────────────────────────
elif "⚙️" in page:
    st.title("⚙️ Cài đặt")
    tab1, tab2, tab3 = st.tabs(["Google Sheets", "Firebase", "Đồng bộ"])

    with tab1:
        cfg = api_get("/settings/google", {})
        with st.form("google_cfg"):
            url = st.text_input("URL Google Apps Script (Web App)", cfg.get("scriptUrl", ""))
            auto = st.checkbox("Tự động đồng bộ", cfg.get("autoSync", False))
            if st.form_submit_button("Lưu cấu hình"):
                show_result(api_put("/settings/google", {"scriptUrl": url, "autoSync": auto}), "Đã lưu ✓")
        c1, c2 = st.columns(2)
        if c1.button("⬇ Tải dữ liệu từ Google Sheets"):
            with st.spinner("Đang tải…"):
                r = api_post("/sync/sheets/pull", timeout=30)
            if show_result(r, "Đã tải dữ liệu từ Cloud ✓"):
                st.json(r.get("imported", {}))
        if c2.button("⬆ Đẩy toàn bộ dữ liệu lên Google Sheets"):
            show_result(api_post("/sync/sheets/push", timeout=30), "Đã gửi dữ liệu ✓")

    with tab2:
        fb = api_get("/settings/firebase", {})
        with st.form("firebase_cfg"):
            enabled = st.checkbox("Bật Firebase (thay cho Google Sheets)", fb.get("enabled", False))
            c1, c2 = st.columns(2)
            project = c1.text_input("Project ID", fb.get("projectId", ""))
            creds   = c2.text_input("Đường dẫn service account JSON", fb.get("credentialsPath", ""))
            api_key = c1.text_input("API Key", fb.get("apiKey", ""))
            domain  = c2.text_input("Auth Domain", fb.get("authDomain", ""))
            bucket  = c1.text_input("Storage Bucket", fb.get("storageBucket", ""))
            sender  = c2.text_input("Messaging Sender ID", fb.get("messagingSenderId", ""))
            app_id  = c1.text_input("App ID", fb.get("appId", ""))
            measure = c2.text_input("Measurement ID", fb.get("measurementId") or "")
            if st.form_submit_button("Lưu cấu hình"):
                show_result(api_put("/settings/firebase", {
                    "enabled": enabled, "projectId": project, "credentialsPath": creds,
                    "apiKey": api_key, "authDomain": domain, "storageBucket": bucket,
                    "messagingSenderId": sender, "appId": app_id, "measurementId": measure or None,
                }), "Đã lưu ✓")
        if st.button("⬆ Chuyển toàn bộ dữ liệu lên Firebase"):
            with st.spinner("Đang chuyển dữ liệu…"):
                r = api_post("/sync/firebase/push", timeout=120)
            show_result(r, f"Đã ghi {r.get('written', 0)} bản ghi ✓")

    with tab3:
        st.write(f"Chế độ lưu trữ hiện tại: **{sync.get('backend', 'local')}**")
        if st.button("🔄 Đồng bộ dữ liệu mới nhất từ Cloud"):
            api_post("/sync/start")
            st.rerun()
        st.subheader("Trạng thái API")
        st.code(f"API_BASE = {API_BASE}", language="text")
        st.json(health or {"status": "offline"})
