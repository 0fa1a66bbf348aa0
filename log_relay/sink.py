"""Flask debug log sink: receives, persists and serves log events."""

import logging
import re
import sys
import threading

import jsonschema
from flask import Flask, got_request_exception, jsonify, request
from werkzeug.exceptions import InternalServerError

from log_relay.config import SinkConfig
from log_relay.models import project_error, utc_timestamp
from log_relay.store import LogStore

logger = logging.getLogger(__name__)

DEFAULT_LINES = 100
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

LOG_EVENT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "level": {"type": ["string", "null"]},
        "source": {"type": ["string", "null"]},
    },
}

# Producer-side context kept verbatim on the stored record
_PASSTHROUGH_FIELDS = ("url", "userAgent", "version")


def build_record_fields(body: dict) -> tuple[str, dict]:
    """Split a request body into (level, fields to store)."""
    level = body.get("level") or "info"
    fields = {
        "message": body.get("message"),
        "source": body.get("source") or "unknown",
    }
    if "data" in body:
        fields["data"] = body["data"]
    if body.get("error"):
        fields["error"] = project_error(body["error"])
    for key in _PASSTHROUGH_FIELDS:
        if key in body:
            fields[key] = body[key]
    if "timestamp" in body:
        fields["clientTimestamp"] = body["timestamp"]
    return level, fields


def parse_lines(raw: str | None) -> int:
    """Leading integer of ``raw`` ("1.5" -> 1, "20abc" -> 20); DEFAULT_LINES if none or not positive."""
    match = _LEADING_INT.match(raw or "")
    if not match:
        return DEFAULT_LINES
    lines = int(match.group(1))
    return lines if lines > 0 else DEFAULT_LINES


def create_app(config: SinkConfig | None = None, store: LogStore | None = None) -> Flask:
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = SinkConfig()
    if store is None:
        store = LogStore(config.log_file)
    store.ensure_exists()

    validator = jsonschema.Draft202012Validator(LOG_EVENT_SCHEMA)

    # Store components on app for access in tests
    app.config["components"] = {"config": config, "store": store}

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = config.cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Credentials"] = "true"
        return response

    # Fires for every unhandled handler exception, including when Flask
    # re-raises them in debug or testing mode
    def record_request_exception(sender, exception, **extra):
        try:
            store.write_record("error", {
                "message": "Unhandled request exception",
                "path": request.path,
                "error": project_error(exception),
            })
        except OSError:
            logger.exception("Failed to record request exception")

    got_request_exception.connect(record_request_exception, app, weak=False)

    @app.errorhandler(InternalServerError)
    def internal_error(e):
        original = getattr(e, "original_exception", None) or e
        return jsonify({"error": str(original)}), 500

    # --- Routes ---

    @app.route("/debug/log", methods=["POST"])
    def receive_log():
        body = request.get_json(silent=True)
        if body is None:
            return jsonify({"success": False, "errors": ["Request body must be JSON"]}), 400

        errors = [error.message for error in validator.iter_errors(body)]
        if errors:
            return jsonify({"success": False, "errors": errors}), 400

        level, fields = build_record_fields(body)
        try:
            store.write_record(level, fields)
        except OSError as e:
            logger.error("Failed to write to log file: %s", e)
            return jsonify({"success": False, "error": str(e)}), 500

        return jsonify({"success": True, "timestamp": utc_timestamp()})

    @app.route("/debug/logs", methods=["GET"])
    def recent_logs():
        lines = parse_lines(request.args.get("lines"))
        try:
            logs, total = store.tail(lines)
        except OSError as e:
            return jsonify({"error": str(e)}), 500
        return jsonify({"logs": logs, "total": total})

    @app.route("/debug/logs", methods=["DELETE"])
    def clear_logs():
        try:
            store.clear()
        except OSError as e:
            return jsonify({"error": str(e)}), 500
        return jsonify({"success": True, "message": "Logs cleared"})

    @app.route("/debug/health")
    def health():
        return jsonify({
            "status": "ok",
            "timestamp": utc_timestamp(),
            "logFile": store.path,
            "logFileExists": store.exists(),
        })

    return app


def install_crash_hooks(store: LogStore):
    """Write uncaught exceptions to the store as error records, then defer to the previous hooks."""
    previous_excepthook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def _record(message: str, error):
        try:
            store.write_record("error", {"message": message, "error": project_error(error)})
        except OSError:
            logger.exception("Failed to record %s", message.lower())

    def excepthook(exc_type, exc_value, exc_tb):
        _record("Uncaught exception", exc_value)
        previous_excepthook(exc_type, exc_value, exc_tb)

    def thread_excepthook(args):
        _record("Unhandled thread exception", args.exc_value)
        previous_thread_hook(args)

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook
