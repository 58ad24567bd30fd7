from __future__ import annotations

from fastapi.testclient import TestClient

from cpd_service.repos.store import store
from tests.conftest import auth, mint_token


def _create(client, token, **overrides):
    body = {"title": "Estate planning update", "hours": 1.5, "date": "2026-02-10"}
    body.update(overrides)
    return client.post("/v1/cpd-records", json=body, headers=auth(token))


def test_create_record(client: TestClient, token: str) -> None:
    resp = _create(client, token, category="Ethics", activityType="verifiable")
    assert resp.status_code == 201
    data = resp.json()
    assert data["category"] == "ethics"
    assert data["activityType"] == "verifiable"
    assert data["source"] == "manual"
    assert data["evidenceStrength"] == "manual_only"


def test_create_record_rejects_bad_hours(client: TestClient, token: str) -> None:
    assert _create(client, token, hours=0).status_code == 400
    assert _create(client, token, hours=1000).status_code == 400


def test_evidence_upgrades_strength(client: TestClient, token: str) -> None:
    record_id = _create(client, token).json()["id"]

    resp = client.post(
        f"/v1/cpd-records/{record_id}/evidence",
        json={"fileName": "certificate.pdf", "fileType": "application/pdf", "kind": "certificate"},
        headers=auth(token),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["evidenceStrength"] == "certificate_attached"
    assert data["evidence"]["status"] == "assigned"

    deleted = client.delete(f"/v1/evidence/{data['evidence']['id']}", headers=auth(token))
    assert deleted.status_code == 200
    assert deleted.json()["status"] == "deleted"


def test_delete_record(client: TestClient, token: str) -> None:
    record_id = _create(client, token).json()["id"]
    resp = client.delete(f"/v1/cpd-records/{record_id}", headers=auth(token))
    assert resp.status_code == 204
    assert store.records.list_by_user("test-user") == []

    again = client.delete(f"/v1/cpd-records/{record_id}", headers=auth(token))
    assert again.status_code == 404


def test_records_are_owner_scoped(client: TestClient, token: str) -> None:
    record_id = _create(client, token).json()["id"]
    intruder = auth(mint_token(username="intruder"))
    assert client.delete(f"/v1/cpd-records/{record_id}", headers=intruder).status_code == 404
    assert client.delete(f"/v1/cpd-records/{record_id}", headers=auth(token)).status_code == 204


def test_records_require_token(client: TestClient) -> None:
    resp = client.post(
        "/v1/cpd-records", json={"title": "x", "hours": 1, "date": "2026-01-01"}
    )
    assert resp.status_code == 401


def _post_raw(client, token, raw: str):
    headers = {**auth(token), "Content-Type": "application/json"}
    return client.post("/v1/cpd-records", content=raw, headers=headers)


def test_create_record_rejects_non_finite_hours(client: TestClient, token: str) -> None:
    for literal in ("NaN", "Infinity"):
        raw = f'{{"title": "Webinar", "hours": {literal}, "date": "2026-02-10"}}'
        assert _post_raw(client, token, raw).status_code == 422
    assert store.records.list_by_user("test-user") == []


def test_get_record(client: TestClient, token: str) -> None:
    record_id = _create(client, token, notes='{"watchPercent": 40}').json()["id"]
    resp = client.get(f"/v1/cpd-records/{record_id}", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json()["notes"] == '{"watchPercent": 40}'

    intruder = auth(mint_token(username="intruder"))
    assert client.get(f"/v1/cpd-records/{record_id}", headers=intruder).status_code == 404


def test_patch_completes_a_planned_record(client: TestClient, token: str) -> None:
    record_id = _create(client, token, status="planned").json()["id"]

    resp = client.patch(
        f"/v1/cpd-records/{record_id}",
        json={"status": "completed", "notes": '{"attendanceConfirmed": true}'},
        headers=auth(token),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "completed"
    assert data["notes"] == '{"attendanceConfirmed": true}'
    assert data["title"] == "Estate planning update"


def test_patch_validates_fields(client: TestClient, token: str) -> None:
    record_id = _create(client, token).json()["id"]
    url = f"/v1/cpd-records/{record_id}"

    assert client.patch(url, json={}, headers=auth(token)).status_code == 400
    assert client.patch(url, json={"status": "done"}, headers=auth(token)).status_code == 400
    assert client.patch(url, json={"hours": 0}, headers=auth(token)).status_code == 400
    assert client.patch(url, json={"notes": "not json"}, headers=auth(token)).status_code == 400

    raw_headers = {**auth(token), "Content-Type": "application/json"}
    assert client.patch(url, content='{"hours": NaN}', headers=raw_headers).status_code == 422


def test_patch_is_owner_scoped(client: TestClient, token: str) -> None:
    record_id = _create(client, token).json()["id"]
    intruder = auth(mint_token(username="intruder"))
    resp = client.patch(f"/v1/cpd-records/{record_id}", json={"hours": 2}, headers=intruder)
    assert resp.status_code == 404
    assert store.records.get(store.records.list_by_user("test-user")[0].id).hours == 1.5
