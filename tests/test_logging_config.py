import io
import json
import logging

import structlog

from tinybus.config import BusSettings
from tinybus.logging_config import configure_from_settings, configure_logging, get_logger


def teardown_function(function):
    structlog.reset_defaults()
    logging.basicConfig(level=logging.WARNING, force=True)


def test_configure_logging_sets_root_level():
    configure_logging(level="DEBUG", colors=False, stream=io.StringIO())
    assert logging.getLogger().level == logging.DEBUG


def test_json_output_renders_structured_event():
    stream = io.StringIO()
    configure_logging(level="INFO", json_output=True, stream=stream)

    get_logger("tinybus.test").info("event_emitted", event_name="user.created")

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["event"] == "event_emitted"
    assert record["event_name"] == "user.created"
    assert record["level"] == "info"
    assert record["logger"] == "tinybus.test"


def test_configure_from_settings():
    configure_from_settings(BusSettings(log_level="warning", json_logs=True))
    assert logging.getLogger().level == logging.WARNING
