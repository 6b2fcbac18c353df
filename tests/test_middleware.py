"""
Notebox Backend — Middleware Tests
====================================

What:  Request ID acceptance and log injection, and the access log line.
How:   Helper functions directly; the middleware through the full app with
       httpx and pytest's caplog on the `notebox.access` logger.
"""

import logging
import re

import pytest

from notebox.middleware.logging import level_for_status
from notebox.middleware.request_id import (
    RequestIDLogFilter,
    accept_client_id,
    new_request_id,
    request_id_var,
)


def _access_records(caplog):
    return [r for r in caplog.records if r.name == "notebox.access"]


class TestRequestIDHelpers:

    @pytest.mark.parametrize("value", ["abc12345", "trace-7.B_x", "a" * 64])
    def test_safe_client_ids_are_kept(self, value):
        assert accept_client_id(value) == value

    @pytest.mark.parametrize("value", [None, "", "a" * 65, "two words", "x\r\nfake log line", "id;drop"])
    def test_unsafe_client_ids_are_rejected(self, value):
        assert accept_client_id(value) is None

    def test_generated_ids_are_short_hex(self):
        rid = new_request_id()
        assert re.fullmatch(r"[0-9a-f]{12}", rid)
        assert rid != new_request_id()

    def test_log_filter_adds_current_request_id(self):
        record = logging.LogRecord("notebox", logging.INFO, __file__, 1, "msg", None, None)
        token = request_id_var.set("feedface")
        try:
            assert RequestIDLogFilter().filter(record) is True
        finally:
            request_id_var.reset(token)
        assert record.request_id == "feedface"

    def test_log_filter_outside_a_request(self):
        record = logging.LogRecord("notebox", logging.INFO, __file__, 1, "msg", None, None)
        token = request_id_var.set("")
        try:
            RequestIDLogFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert record.request_id == "-"


class TestRequestIDMiddleware:

    @pytest.mark.asyncio
    async def test_oversized_client_id_is_replaced(self, test_client):
        response = await test_client.get("/notes", headers={"X-Request-ID": "a" * 200})
        rid = response.headers["X-Request-ID"]
        assert re.fullmatch(r"[0-9a-f]{12}", rid)

    @pytest.mark.asyncio
    async def test_error_body_carries_the_header_id(self, test_client):
        response = await test_client.get("/notes/999", headers={"X-Request-ID": "not a safe id"})
        assert response.status_code == 404
        assert response.json()["request_id"] == response.headers["X-Request-ID"]
        assert response.headers["X-Request-ID"] != "not a safe id"


class TestAccessLog:

    def test_level_follows_status_class(self):
        assert level_for_status(200) == logging.INFO
        assert level_for_status(302) == logging.INFO
        assert level_for_status(404) == logging.WARNING
        assert level_for_status(504) == logging.ERROR

    @pytest.mark.asyncio
    async def test_logs_route_template_and_note_id(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="notebox.access")

        await test_client.get("/notes/999", headers={"X-Request-ID": "log-test-1"})

        (record,) = _access_records(caplog)
        assert record.levelno == logging.WARNING
        assert record.route == "/notes/{note_id}"
        assert record.note_id == "999"
        assert record.status == 404
        assert record.request_id == "log-test-1"
        assert "GET /notes/{note_id} 404" in record.getMessage()

    @pytest.mark.asyncio
    async def test_reports_response_size(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="notebox.access")

        response = await test_client.get("/notes")

        (record,) = _access_records(caplog)
        assert record.levelno == logging.INFO
        assert record.response_bytes == response.headers["content-length"]
        assert not hasattr(record, "note_id")

    @pytest.mark.asyncio
    async def test_retrieval_signature_is_not_logged(self, test_client, local_store, caplog):
        caplog.set_level(logging.INFO, logger="notebox.access")
        await local_store.put("notes-files", "3-a.txt", b"a")
        url = await local_store.presigned_url("notes-files", "3-a.txt")

        response = await test_client.get(url)
        assert response.status_code == 200

        (record,) = _access_records(caplog)
        assert record.route == "/files/{bucket}/{key:path}"
        assert "signature" not in record.getMessage()
        assert "3-a.txt" not in record.getMessage()

    @pytest.mark.asyncio
    async def test_health_is_not_logged(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="notebox.access")
        await test_client.get("/health")
        assert _access_records(caplog) == []
