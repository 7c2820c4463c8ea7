"""
Optional push of registry writes to a spreadsheet web-app bridge.

Behavior:
    - Without `SSK_SHEETS_WEBHOOK_URL` every push is logged at debug level and
      skipped (dev mode).
    - With a URL, POSTs `{"sheetName", "data", "timestamp"}` as JSON.
    - Failures are logged and swallowed: the registry write already succeeded
      and the spreadsheet is a secondary copy.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

import requests

_log = logging.getLogger("ssk.registry")


class SheetType(str, Enum):
    MEMBERS = "Member Databases"
    VOLUNTEERS = "Volunteer Databases"
    ORGANISATIONS = "Organisation Databases"


class SheetsSync:
    def __init__(self, webhook_url: Optional[str] = None, *, timeout: float = 5.0, session: Any = None) -> None:
        self.webhook_url = (webhook_url or "").strip() or None
        self._timeout = timeout
        self._session = session or requests

    @classmethod
    def from_env(cls) -> "SheetsSync":
        return cls(os.getenv("SSK_SHEETS_WEBHOOK_URL"))

    @property
    def enabled(self) -> bool:
        return self.webhook_url is not None

    def push(self, sheet: SheetType, data: Mapping[str, Any]) -> bool:
        """Send one record; returns True when the bridge accepted it."""
        if not self.enabled:
            _log.debug("sheets sync disabled; skipped %s", sheet.value)
            return False
        payload = {
            "sheetName": sheet.value,
            "data": dict(data),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            resp = self._session.post(self.webhook_url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            _log.warning("sheets sync failed for %s: error=%s", sheet.value, type(exc).__name__)
            return False
        if resp.status_code >= 400:
            _log.warning("sheets sync rejected for %s: status=%s", sheet.value, resp.status_code)
            return False
        return True


__all__ = ["SheetType", "SheetsSync"]
