import json
import logging

from app.core.logging import LogContext, StructuredFormatter, _ContextFilter, get_logger


class Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []
        self.addFilter(_ContextFilter())

    def emit(self, record):
        self.records.append(record)


def capture(name):
    logger = get_logger(name)
    handler = Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger, handler


def test_context_fields_are_attached():
    logger, handler = capture("test.context")

    with LogContext(uid="u1", command="agenda"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = handler.records
    assert (inside.uid, inside.command) == ("u1", "agenda")
    assert not hasattr(outside, "uid")


def test_explicit_extra_wins_over_context():
    logger, handler = capture("test.extra")

    with LogContext(uid="u1", state="ask_name"):
        logger.info("saved", extra={"uid": "u1", "state": "ask_email"})

    assert handler.records[0].state == "ask_email"


def test_nested_contexts_merge():
    logger, handler = capture("test.nested")

    with LogContext(uid="u1"):
        with LogContext(state="ask_phone"):
            logger.info("deep")
        logger.info("shallow")

    deep, shallow = handler.records
    assert (deep.uid, deep.state) == ("u1", "ask_phone")
    assert not hasattr(shallow, "state")


def test_structured_formatter_renders_context():
    logger, handler = capture("test.json")

    with LogContext(uid="u1"):
        logger.info("hello")

    payload = json.loads(StructuredFormatter().format(handler.records[0]))
    assert payload["message"] == "hello"
    assert payload["uid"] == "u1"
    assert payload["logger"] == "assistant.test.json"
