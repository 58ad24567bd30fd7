from __future__ import annotations

import json
import logging
import sys

import pytest

from cpd_service.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level=logging.INFO, msg="hello", args=(), exc_info=None, **extra):
    record = logging.LogRecord(
        name="cpd_service.services.issuance",
        level=level,
        pathname="issuance.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.parametrize(
    ("name", "expected"),
    [("debug", logging.DEBUG), ("error", logging.ERROR), ("nonsense", logging.INFO)],
)
def test_setup_logging_sets_root_level(name, expected) -> None:
    setup_logging(name)
    assert logging.getLogger().level == expected


def test_third_party_loggers_stay_quiet() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("httpx").level == logging.WARNING
    setup_logging("error")
    assert logging.getLogger("uvicorn.access").level == logging.ERROR


def test_json_mode_installs_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_container_format_adds_location_from_warning_up() -> None:
    fmt = _ContainerFormatter()
    info = fmt.format(_record(msg="issued"))
    warning = fmt.format(_record(level=logging.WARNING, msg="collision"))
    assert "issued" in info and "[issuance.py:" not in info
    assert "[issuance.py:42]" in warning


def test_json_lines_carry_engine_context() -> None:
    output = _JsonFormatter().format(
        _record(
            msg="Issued certificate via %s",
            args=("quiz_pass",),
            request_id="req-1",
            user_id="test-user",
            cpd_record_id="c0ffee",
            certificate_code="CERT-2026-abcdefgh",
            unrelated="dropped",
        )
    )
    parsed = json.loads(output)
    assert parsed["message"] == "Issued certificate via quiz_pass"
    assert parsed["level"] == "INFO"
    assert parsed["request_id"] == "req-1"
    assert parsed["user_id"] == "test-user"
    assert parsed["cpd_record_id"] == "c0ffee"
    assert parsed["certificate_code"] == "CERT-2026-abcdefgh"
    assert "unrelated" not in parsed


def test_json_lines_include_exceptions() -> None:
    try:
        raise ValueError("bad rule config")
    except ValueError:
        output = _JsonFormatter().format(
            _record(level=logging.ERROR, msg="failed", exc_info=sys.exc_info())
        )
    assert "ValueError: bad rule config" in json.loads(output)["exception"]


def test_container_format_is_not_json() -> None:
    output = _ContainerFormatter().format(_record(msg="server started"))
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)
