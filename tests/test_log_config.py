import json
import logging

from app.log_config import JsonFormatter


def _record(**extra):
    record = logging.LogRecord("app.main", logging.INFO, __file__, 1, "Imported %d record(s)", (2,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_import_context():
    line = JsonFormatter().format(_record(records=2, parsed=3, upload="roster.csv"))
    payload = json.loads(line)

    assert payload["message"] == "Imported 2 record(s)"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "app.main"
    assert payload["records"] == 2
    assert payload["parsed"] == 3
    assert payload["upload"] == "roster.csv"
    assert "time" in payload


def test_json_formatter_omits_absent_context():
    payload = json.loads(JsonFormatter().format(_record()))
    assert "records" not in payload
    assert "upload" not in payload
    assert "exc_info" not in payload
