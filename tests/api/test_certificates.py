from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token, seed_credential, seed_holding, seed_record


def _issue(client, token):
    seed_holding(seed_credential(name="CFP"), is_primary=True)
    record = seed_record(hours=2, category="ethics", title="Ethics for planners")
    resp = client.post(
        "/v1/completion", json={"cpdRecordId": str(record.id)}, headers=auth(token)
    )
    return resp.json()["certificate"]


def test_verify_is_public(client: TestClient, token: str) -> None:
    cert = _issue(client, token)
    resp = client.get(f"/v1/certificates/verify/{cert['certificateCode']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert data["hours"] == 2
    assert data["credentialName"] == "CFP"
    assert "id" not in data


def test_verify_malformed_and_unknown(client: TestClient) -> None:
    assert client.get("/v1/certificates/verify/hello").status_code == 400
    assert client.get("/v1/certificates/verify/CERT-2026-zzzzzzzz").status_code == 404


def test_revoke_marks_invalid(client: TestClient, token: str) -> None:
    cert = _issue(client, token)
    resp = client.post(
        f"/v1/certificates/{cert['id']}/revoke",
        json={"reason": "duplicate"},
        headers=auth(token),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "revoked"
    assert resp.json()["metadata"]["revocation_reason"] == "duplicate"

    verify = client.get(f"/v1/certificates/verify/{cert['certificateCode']}").json()
    assert verify["valid"] is False
    assert verify["status"] == "revoked"


def test_revoke_without_body(client: TestClient, token: str) -> None:
    cert = _issue(client, token)
    resp = client.post(f"/v1/certificates/{cert['id']}/revoke", headers=auth(token))
    assert resp.status_code == 200


def test_only_owner_revokes(client: TestClient, token: str) -> None:
    cert = _issue(client, token)
    intruder = auth(mint_token(username="intruder"))
    resp = client.post(f"/v1/certificates/{cert['id']}/revoke", headers=intruder)
    assert resp.status_code == 404
