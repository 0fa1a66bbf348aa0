"""Tests for the Flask debug log sink."""

import json
import os
import sys
import threading

import pytest

from log_relay.config import SinkConfig
from log_relay.sink import build_record_fields, create_app, install_crash_hooks, parse_lines
from log_relay.store import LogStore


def _stored(store) -> list[dict]:
    with open(store.path) as f:
        return [json.loads(line) for line in f if line.strip()]


class TestReceiveLog:
    def test_defaults_applied(self, client, store):
        resp = client.post("/debug/log", json={"message": "x"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["success"] is True
        assert data["timestamp"].endswith("Z")

        record = _stored(store)[0]
        assert record["message"] == "x"
        assert record["level"] == "info"
        assert record["source"] == "unknown"
        assert record["timestamp"].endswith("Z")

        resp = client.get("/debug/logs?lines=1")
        assert resp.get_json() == {"logs": [record], "total": 1}

    def test_error_narrowed(self, client, store):
        client.post("/debug/log", json={
            "level": "error",
            "message": "boom",
            "error": {"name": "TypeError", "message": "bad", "stack": "at x", "extra": 1},
        })
        record = _stored(store)[0]
        assert record["error"] == {"name": "TypeError", "message": "bad", "stack": "at x"}

    def test_producer_fields_kept(self, client, store):
        client.post("/debug/log", json={
            "level": "warn",
            "message": "hi",
            "data": {"k": [1, 2]},
            "source": "popup",
            "timestamp": "2024-01-15T08:23:45.000Z",
            "url": "popup",
            "userAgent": "agent/1.0",
            "version": "1.2.0",
        })
        record = _stored(store)[0]
        assert record["data"] == {"k": [1, 2]}
        assert record["source"] == "popup"
        assert record["clientTimestamp"] == "2024-01-15T08:23:45.000Z"
        assert record["timestamp"] != "2024-01-15T08:23:45.000Z"
        assert record["userAgent"] == "agent/1.0"
        assert record["version"] == "1.2.0"

    def test_non_object_rejected(self, client, store):
        resp = client.post("/debug/log", data="not json", content_type="application/json")
        assert resp.status_code == 400
        resp = client.post("/debug/log", json=[1, 2, 3])
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False
        assert _stored(store) == []

    def test_append_failure_returns_500(self, tmp_path):
        store = LogStore(str(tmp_path / "debug.log"))
        app = create_app(SinkConfig(), store)
        app.config["TESTING"] = True
        (tmp_path / "debug.log").unlink()
        (tmp_path / "debug.log").mkdir()

        resp = app.test_client().post("/debug/log", json={"message": "x"})
        assert resp.status_code == 500
        assert resp.get_json()["success"] is False


class TestBuildRecordFields:
    def test_absent_optional_fields_omitted(self):
        level, fields = build_record_fields({"message": "x"})
        assert level == "info"
        assert fields == {"message": "x", "source": "unknown"}

    def test_null_level_defaults(self):
        level, _ = build_record_fields({"message": "x", "level": None})
        assert level == "info"


class TestRecentLogs:
    def test_default_line_count(self, client, store):
        for i in range(120):
            store.append({"seq": i})
        data = client.get("/debug/logs").get_json()
        assert len(data["logs"]) == 100
        assert data["logs"][0]["seq"] == 20
        assert data["total"] == 120

    def test_invalid_lines_falls_back(self, client, store):
        store.append({"seq": 0})
        for query in ("lines=abc", "lines=0", "lines=-3"):
            data = client.get(f"/debug/logs?{query}").get_json()
            assert data["total"] == 1
            assert len(data["logs"]) == 1

    def test_leading_integer_used(self, client, store):
        for i in range(3):
            store.append({"seq": i})
        for query, expected in (("lines=1.5", [2]), ("lines=2abc", [1, 2]), ("lines=%202", [1, 2])):
            data = client.get(f"/debug/logs?{query}").get_json()
            assert [r["seq"] for r in data["logs"]] == expected

    def test_parse_lines(self):
        assert parse_lines(None) == 100
        assert parse_lines("") == 100
        assert parse_lines("abc") == 100
        assert parse_lines("-3") == 100
        assert parse_lines("1.5") == 1
        assert parse_lines("25") == 25

    def test_malformed_line_returned_raw(self, client, store):
        store.append({"seq": 0})
        with open(store.path, "a") as f:
            f.write("garbage line\n")
        data = client.get("/debug/logs").get_json()
        assert data["logs"][-1] == {"raw": "garbage line"}

    def test_read_failure_returns_500(self, client, store):
        os.remove(store.path)
        resp = client.get("/debug/logs")
        assert resp.status_code == 500
        assert "error" in resp.get_json()


class TestClearAndHealth:
    def test_clear_then_health(self, client, store):
        client.post("/debug/log", json={"message": "x"})
        resp = client.delete("/debug/logs")
        assert resp.get_json() == {"success": True, "message": "Logs cleared"}

        health = client.get("/debug/health").get_json()
        assert health["status"] == "ok"
        assert health["logFileExists"] is True
        assert health["logFile"] == store.path

        assert client.get("/debug/logs").get_json() == {"logs": [], "total": 0}

    def test_health_reports_missing_file(self, client, store):
        os.remove(store.path)
        assert client.get("/debug/health").get_json()["logFileExists"] is False


class TestCors:
    def test_headers_present(self, client):
        resp = client.get("/debug/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]

    def test_preflight(self, client):
        resp = client.options("/debug/log")
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    def test_configured_origin(self, store):
        app = create_app(SinkConfig(cors_origin="chrome-extension://abc"), store)
        resp = app.test_client().get("/debug/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "chrome-extension://abc"


class TestSelfObservability:
    def test_request_exception_recorded(self, store):
        app = create_app(SinkConfig(), store)

        @app.route("/debug/explode")
        def explode():
            raise RuntimeError("handler blew up")

        resp = app.test_client().get("/debug/explode")
        assert resp.status_code == 500
        record = _stored(store)[-1]
        assert record["level"] == "error"
        assert record["message"] == "Unhandled request exception"
        assert record["error"]["message"] == "handler blew up"

    def test_request_exception_recorded_in_debug_mode(self, store):
        app = create_app(SinkConfig(debug=True), store)
        app.config["PROPAGATE_EXCEPTIONS"] = True

        @app.route("/debug/explode")
        def explode():
            raise RuntimeError("propagated")

        with pytest.raises(RuntimeError):
            app.test_client().get("/debug/explode")

        records = [r for r in _stored(store) if r["message"] == "Unhandled request exception"]
        assert len(records) == 1
        assert records[0]["path"] == "/debug/explode"
        assert records[0]["error"]["message"] == "propagated"

    def test_crash_hooks_write_records(self, store, monkeypatch):
        store.ensure_exists()
        monkeypatch.setattr(sys, "excepthook", lambda *args: None)
        monkeypatch.setattr(threading, "excepthook", lambda args: None)
        install_crash_hooks(store)

        sys.excepthook(ValueError, ValueError("main thread"), None)

        def boom():
            raise RuntimeError("worker thread")

        t = threading.Thread(target=boom)
        t.start()
        t.join()

        messages = [(r["message"], r["error"]["message"]) for r in _stored(store)]
        assert ("Uncaught exception", "main thread") in messages
        assert ("Unhandled thread exception", "worker thread") in messages
