"""
PoliceDeskVN – Google Sheets sync (Apps Script web app)

The script is deployed as a web app answering:
  GET  ?action=read            → {"status": "success", "data": {sheetName: [rows]}}
  POST {"action": "append",      "sheetName", "data": row}
  POST {"action": "update_sheet", "sheetName", "data": [rows]}
  POST {"action": "full_sync",   "data": AppData, ...AppData}
Writes are fire-and-forget: failures are logged, never raised.
"""
from __future__ import annotations
import json
import os
import time
from concurrent.futures import Executor
from typing import Any, Optional

import requests
from loguru import logger

from core.normalize import clean_app_data
from core.schemas import AppData

SHEETS_TIMEOUT = float(os.getenv("SHEETS_TIMEOUT", "15"))


class SyncError(Exception):
    """Remote read failure; `code` is the machine-readable prefix of the message."""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}" if code else message)
        self.code = code


class SheetsClient:
    def __init__(self, script_url: str, timeout: float = SHEETS_TIMEOUT,
                 session: Optional[requests.Session] = None,
                 executor: Optional[Executor] = None):
        self.script_url = (script_url or "").strip()
        self.timeout    = timeout
        self.session    = session or requests.Session()
        self.executor   = executor

    @property
    def configured(self) -> bool:
        return bool(self.script_url)

    # ── Writes ─────────────────────────────────────────────────────────────
    def _post(self, payload: dict) -> Optional[Any]:
        if not self.script_url:
            return None
        try:
            resp = self.session.post(
                self.script_url,
                data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Sheets sync error ({payload.get('action')}): {e}")
            return None
        try:
            result = resp.json()
        except ValueError:
            logger.warning(f"Sheets {payload.get('action')}: response is not JSON, the write may still have landed")
            return None

        if isinstance(result, dict) and result.get("status") == "error":
            logger.error(f"Apps Script error: {result.get('message')}")
            return None
        return result

    def _send(self, payload: dict):
        if self.executor is not None:
            return self.executor.submit(self._post, payload)
        return self._post(payload)

    def append_row(self, sheet_name: str, item: dict):
        return self._send({"action": "append", "sheetName": sheet_name, "data": item})

    def update_sheet(self, sheet_name: str, rows: list):
        return self._send({"action": "update_sheet", "sheetName": sheet_name, "data": rows})

    def export_all(self, data: AppData):
        wire = data.to_wire()
        # older script versions read the collections at the top level
        return self._send({**wire, "action": "full_sync", "data": wire})

    # ── Read ──────────────────────────────────────────────────────────────
    def import_all(self) -> dict:
        """Read every sheet and return a cleaned partial AppData (attr -> records)."""
        if not self.script_url:
            raise SyncError("CONFIG_ERROR", "Chưa cấu hình URL (Link) của Google Script.")
        if not self.script_url.startswith("http"):
            raise SyncError("CONFIG_ERROR", "URL Google Script không hợp lệ.")

        try:
            resp = self.session.get(
                self.script_url,
                params={"t": str(int(time.time() * 1000)), "action": "read"},
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.Timeout:
            raise SyncError("TIMEOUT_ERROR", f"Quá thời gian chờ ({self.timeout:g}s). Kiểm tra mạng.")
        except requests.RequestException as e:
            logger.error(f"Sheets import failed: {e}")
            raise SyncError("NETWORK_ERROR", "Mất mạng hoặc Script từ chối kết nối. Kiểm tra Internet và quyền Script.")

        if not resp.ok:
            raise SyncError("HTTP_ERROR", f"Lỗi Server Google ({resp.status_code} - {resp.reason}).")

        text = resp.text
        if text.strip().startswith("<"):
            raise SyncError("AUTH_ERROR", "Link đúng nhưng chưa cấp quyền 'Anyone' hoặc URL sai.")
        try:
            body = json.loads(text)
        except ValueError:
            logger.error(f"Raw response: {text[:500]}")
            raise SyncError("JSON_ERROR", "Dữ liệu trả về không đúng định dạng JSON.")

        if isinstance(body, dict) and body.get("status") == "error":
            raise SyncError("SCRIPT_ERROR", body.get("message") or "Script trả về lỗi.")

        raw = (body.get("data") or body) if isinstance(body, dict) else body
        if not raw or not isinstance(raw, dict):
            raise SyncError("EMPTY_ERROR", "Server trả về dữ liệu rỗng.")

        try:
            return clean_app_data(raw)
        except (ValueError, TypeError) as e:
            logger.error(f"Unusable sheet data: {e}")
            raise SyncError("JSON_ERROR", "Dữ liệu trả về không đúng định dạng JSON.")
