import json
import logging

from app.logging_config import CloudJSONFormatter


def _record(**extra):
    record = logging.LogRecord("app.services", logging.INFO, __file__, 10, "Added review %s", ("r1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_cloud_logging_fields():
    entry = json.loads(CloudJSONFormatter().format(_record()))
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Added review r1"
    assert entry["logger"] == "app.services"
    assert "game_id" not in entry


def test_promotes_game_id_extra():
    entry = json.loads(CloudJSONFormatter().format(_record(game_id="g1", user_id="u1")))
    assert entry["game_id"] == "g1"
    assert entry["user_id"] == "u1"


def test_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys
        record = logging.LogRecord("app", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(CloudJSONFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]
