"""Spreadsheet bridge tests with a stubbed requests session."""
import logging

import requests

from registry.sheets_sync import SheetsSync, SheetType


class _Resp:
    def __init__(self, status_code):
        self.status_code = status_code


class StubSession:
    def __init__(self, status=200, exc=None):
        self.status = status
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.exc is not None:
            raise self.exc
        return _Resp(self.status)


def test_disabled_without_url():
    session = StubSession()
    sync = SheetsSync("  ", session=session)
    assert not sync.enabled
    assert sync.push(SheetType.MEMBERS, {"id": "m1"}) is False
    assert session.calls == []


def test_push_posts_sheet_name_data_and_timestamp():
    session = StubSession()
    sync = SheetsSync("https://script.example.test/exec", session=session, timeout=2.0)
    assert sync.push(SheetType.VOLUNTEERS, {"id": "v1"}) is True
    url, payload, timeout = session.calls[0]
    assert url == "https://script.example.test/exec"
    assert payload["sheetName"] == "Volunteer Databases"
    assert payload["data"] == {"id": "v1"}
    assert payload["timestamp"]
    assert timeout == 2.0


def test_failures_are_logged_and_swallowed(caplog):
    with caplog.at_level(logging.WARNING, logger="ssk.registry"):
        assert SheetsSync("https://x.test", session=StubSession(exc=requests.ConnectionError("down"))).push(SheetType.MEMBERS, {}) is False
        assert SheetsSync("https://x.test", session=StubSession(status=500)).push(SheetType.ORGANISATIONS, {}) is False
    messages = [r.getMessage() for r in caplog.records]
    assert any("ConnectionError" in m for m in messages)
    assert any("status=500" in m for m in messages)


def test_from_env(monkeypatch):
    monkeypatch.setenv("SSK_SHEETS_WEBHOOK_URL", "https://hook.example.test")
    assert SheetsSync.from_env().enabled
