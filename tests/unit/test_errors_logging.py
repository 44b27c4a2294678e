from __future__ import annotations

import io
import json
import logging


from tracker import logging as tlog
from tracker.errors import (ConfigError, DatabaseError, RecordDecodeError,
                            RecordNotFound, Severity, TrackerError,
                            TrackerErrorCode, wrap)


def test_error_hierarchy_and_codes():
    err = RecordDecodeError("bad record", field="hash")
    assert isinstance(err, TrackerError)
    assert err.code == TrackerErrorCode.RECORD_DECODE
    assert err.data == {"field": "hash"}

    nf = RecordNotFound(7)
    assert isinstance(nf, DatabaseError)
    assert nf.data["sequence_id"] == 7


def test_add_context_and_to_dict():
    err = ConfigError("bad port").add_context(value=b"\x01\x02", where="env")
    d = err.to_dict()
    assert d["code"] == TrackerErrorCode.CONFIG.value
    assert d["message"] == "bad port"
    assert d["data"]["where"] == "env"
    assert isinstance(d["data"]["value"], str)
    assert d["severity"] == int(Severity.ERROR)
    json.dumps(d)


def test_wrap_keeps_cause():
    try:
        raise OSError("disk full")
    except OSError as e:
        err = wrap(e, as_=DatabaseError, op="append")
    assert isinstance(err, DatabaseError)
    assert err.cause is not None
    assert err.data["op"] == "append"
    assert "cause" in err.to_dict(include_cause=True)


def test_json_formatter_includes_context_and_extras(restore_root_logging):
    buf = io.StringIO()
    tlog.configure(json=True, level="DEBUG", stream=buf)
    log = logging.getLogger("tracker.test")
    with tlog.trace_scope(trace_id="abc", component="collector", block=100):
        log.info("contract state logged", extra={"sequence_id": 3, "script": b"\x01"})
    line = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "contract state logged"
    assert line["trace_id"] == "abc"
    assert line["component"] == "collector"
    assert line["block"] == 100
    assert line["sequence_id"] == 3
    assert tlog.context() == {}


def test_text_formatter_one_line(restore_root_logging):
    buf = io.StringIO()
    tlog.configure(json=False, level="INFO", stream=buf)
    tlog.bind(component="replay")
    try:
        logging.getLogger("tracker.test").info("contract log replayed", extra={"records": 2})
    finally:
        tlog.clear_context()
    out = buf.getvalue()
    assert "component=replay" in out
    assert "records=2" in out
    assert out.rstrip().endswith("contract log replayed")


def test_format_from_env(restore_root_logging, monkeypatch):
    monkeypatch.setenv("TRACKER_LOG_FORMAT", "json")
    buf = io.StringIO()
    tlog.configure(level="INFO", stream=buf)
    logging.getLogger("tracker.test").warning("hello")
    assert json.loads(buf.getvalue())["level"] == "WARNING"


def test_bind_unbind_and_default_logger():
    tlog.bind(component="collector", block=3)
    try:
        tlog.unbind("block", "missing")
        assert tlog.context() == {"component": "collector"}
    finally:
        tlog.clear_context()
    assert tlog.get_logger().name == "tracker"
    assert tlog.get_logger("tracker.index").name == "tracker.index"
