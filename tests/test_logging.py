import json
import logging

import numpy as np
import pytest
from PIL import Image

from zqr.codec import decode, encode
from zqr.errors import InvalidOrientation
from zqr.logging import AUDIT, ConsoleFormatter, JsonFormatter, audit, get_logger, setup_logging, trace


def test_audit_level_registered():
    assert logging.getLevelName(AUDIT) == "AUDIT"


def test_get_logger_namespace():
    assert get_logger("codec").name == "zqr.codec"


def test_audit_event(caplog):
    caplog.set_level(logging.DEBUG, logger="zqr")
    encode("Log")
    events = [getattr(r, "event", None) for r in caplog.records]
    assert "code.encoded" in events
    record = next(r for r in caplog.records if getattr(r, "event", None) == "code.encoded")
    assert record.levelno == AUDIT
    assert record.ctx["message"] == "Log%%%%"


def test_trace_logs_entry_and_exit(caplog):
    caplog.set_level(logging.DEBUG, logger="zqr")
    grid = encode("Hi")
    decode(grid)
    events = [getattr(r, "event", None) for r in caplog.records]
    assert "decode.enter" in events
    assert "decode.done" in events
    enter = next(r for r in caplog.records if getattr(r, "event", None) == "decode.enter")
    assert enter.ctx["args"] == ["grid[7x7]"]


def test_trace_logs_errors(caplog):
    caplog.set_level(logging.DEBUG, logger="zqr")
    with pytest.raises(InvalidOrientation):
        decode([[True] * 7 for _ in range(7)])
    errors = [r for r in caplog.records if getattr(r, "event", None) == "decode.error"]
    assert errors and errors[0].levelno == logging.ERROR
    assert errors[0].exc_info is not None


def test_trace_summarises_images(caplog):
    @trace(logger_name="test")
    def passthrough(img, arr):
        return arr

    caplog.set_level(logging.DEBUG, logger="zqr")
    passthrough(Image.new("L", (3, 2)), np.zeros((4, 5)))
    enter = next(r for r in caplog.records if getattr(r, "event", None) == "passthrough.enter")
    assert enter.ctx["args"] == ["<Image 3x2>", "<ndarray 4x5>"]
    done = next(r for r in caplog.records if getattr(r, "event", None) == "passthrough.done")
    assert done.ctx["result"] == "<ndarray 4x5>"


def _record(**extra):
    record = logging.LogRecord("zqr.test", AUDIT, "", 0, "", (), None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_json_formatter():
    line = JsonFormatter().format(_record(event="code.decoded", ctx={"text": "HI"}, duration_ms=1.234))
    entry = json.loads(line)
    assert entry["level"] == "AUDIT"
    assert entry["event"] == "code.decoded"
    assert entry["ctx"] == {"text": "HI"}
    assert entry["duration_ms"] == 1.23


def test_console_formatter_without_color():
    line = ConsoleFormatter(use_color=False).format(_record(event="scan.completed", ctx={"success": True}))
    assert "AUDIT" in line
    assert "[zqr.test]" in line
    assert "scan.completed success=True" in line
    assert "\033[" not in line


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "zqr.log"
    setup_logging(level="DEBUG", log_file=str(log_file))
    audit("test.event", logger=get_logger("test"), value=3)
    for handler in logging.getLogger("zqr").handlers:
        handler.flush()
    entries = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert any(e.get("event") == "test.event" and e["ctx"] == {"value": 3} for e in entries)


def test_setup_logging_replaces_handlers():
    setup_logging(level="INFO")
    setup_logging(level="WARNING")
    root = logging.getLogger("zqr")
    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
