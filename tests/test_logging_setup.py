import json
import logging
import sys

import pytest

from boom_booking.core.logging_setup import JsonFormatter, mask_secrets
from boom_booking.core.request_context import clear_request_context, set_request_context


@pytest.fixture(autouse=True)
def _reset_context():
    clear_request_context()
    yield
    clear_request_context()


def _record(msg, args=(), *, exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord("boom_booking.test", logging.ERROR, __file__, 10, msg, args, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_interpolated_args_and_context():
    set_request_context(request_id="req-1", tenant_id=7, user_id=42)

    output = JsonFormatter("%(message)s").format(_record("booking %s created", (15,), booking_id=15))
    payload = json.loads(output)

    assert payload["message"] == "booking 15 created"
    assert payload["level"] == "ERROR"
    assert payload["module"] == "boom_booking.test"
    assert payload["request_id"] == "req-1"
    assert payload["tenant_id"] == "7"
    assert payload["user_id"] == "42"
    assert payload["booking_id"] == 15


def test_formatter_masks_secrets_in_message_and_traceback():
    try:
        raise RuntimeError("connect failed token=abc.def.ghi")
    except RuntimeError:
        exc_info = sys.exc_info()

    output = JsonFormatter("%(message)s").format(
        _record(
            "database error password=%s Authorization: Bearer %s",
            ("hunter2", "eyJhbGciOi.payload.sig"),
            exc_info=exc_info,
        )
    )
    payload = json.loads(output)

    assert "hunter2" not in output
    assert "eyJhbGciOi" not in output
    assert "abc.def.ghi" not in output
    assert "password=***" in payload["message"]
    assert "Bearer ***" in payload["message"]
    assert "token=***" in payload["exception"]
    assert "RuntimeError" in payload["exception"]


def test_logger_call_through_configured_handler_writes_json(capsys):
    logger = logging.getLogger("boom_booking.logging_test")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    try:
        logger.warning("login failed password=%s", "s3cret")
    finally:
        logger.removeHandler(handler)
        logger.propagate = True

    err = capsys.readouterr().err
    assert "Logging error" not in err
    assert json.loads(err.strip().splitlines()[-1])["message"] == "login failed password=***"


def test_mask_secrets_leaves_plain_text_alone():
    assert mask_secrets("room 3 booked") == "room 3 booked"
