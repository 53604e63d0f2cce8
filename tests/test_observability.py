import json
import logging

from ocr_relay.observability import JsonLogFormatter, record_fields


def _record(**extra) -> logging.LogRecord:
    record = logging.makeLogRecord(
        {"name": "ocr_relay.relay", "levelname": "WARNING", "levelno": logging.WARNING, "msg": "relay_failed"}
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_record_fields_only_returns_extras() -> None:
    record = _record(upload_filename="slip.png", outcome="Timeout", error=None)

    assert record_fields(record) == {"upload_filename": "slip.png", "outcome": "Timeout"}


def test_json_formatter_emits_event_and_extras() -> None:
    line = json.loads(JsonLogFormatter().format(_record(upload_filename="slip.png", size_bytes=42)))

    assert line["event"] == "relay_failed"
    assert line["level"] == "WARNING"
    assert line["logger"] == "ocr_relay.relay"
    assert line["upload_filename"] == "slip.png"
    assert line["size_bytes"] == 42
    assert "msg" not in line
