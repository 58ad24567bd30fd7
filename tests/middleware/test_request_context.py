from __future__ import annotations

import logging
import uuid

from fastapi.testclient import TestClient

from cpd_service.middleware.request_context import request_id_var
from tests.conftest import auth, seed_record


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_provider_request_id_is_echoed(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "acme-delivery-42"})
    assert resp.headers["x-request-id"] == "acme-delivery-42"


def test_request_id_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/progress")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_service_logs_carry_request_id(client: TestClient, token: str, caplog) -> None:
    record = seed_record()
    with caplog.at_level(logging.INFO):
        client.post(
            "/v1/completion",
            json={"cpdRecordId": str(record.id)},
            headers={**auth(token), "X-Request-ID": "trace-me"},
        )
    issued = [r for r in caplog.records if r.getMessage().startswith("Issued certificate")]
    assert issued
    assert issued[0].request_id == "trace-me"

    summary = [r for r in caplog.records if getattr(r, "path", None) == "/v1/completion"]
    assert summary[0].status_code == 201


def test_request_id_default_outside_requests() -> None:
    assert request_id_var.get() == "-"
