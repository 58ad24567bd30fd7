from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_credential


def _publish(client, admin_token, credential, effective_from, **rules):
    return client.post(
        "/v1/rule-packs",
        json={
            "credentialId": str(credential.id),
            "name": f"{credential.name} from {effective_from}",
            "rules": rules,
            "effectiveFrom": effective_from,
        },
        headers=auth(admin_token),
    )


def test_resolve_without_packs_uses_credential_defaults(client: TestClient, token: str) -> None:
    cfp = seed_credential(hours_required=30, ethics_hours=2)
    resp = client.get(
        "/v1/rule-packs/resolve",
        params={"credentialId": str(cfp.id), "asOf": "2026-05-01"},
        headers=auth(token),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["source"] == "credential_defaults"
    assert data["version"] == 0
    assert data["rules"]["hoursRequired"] == 30
    assert data["rules"]["ethicsHours"] == 2


def test_publish_closes_previous_pack(client: TestClient, token: str, admin_token: str) -> None:
    cfp = seed_credential()
    first = _publish(client, admin_token, cfp, "2025-01-01", hours_required=30)
    second = _publish(client, admin_token, cfp, "2026-01-01", hours_required=40)
    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["version"] == 2

    packs = client.get(
        "/v1/rule-packs", params={"credentialId": str(cfp.id)}, headers=auth(token)
    ).json()
    by_version = {p["version"]: p for p in packs}
    assert by_version[1]["effectiveTo"] == "2025-12-31"
    assert by_version[2]["effectiveTo"] is None

    def resolve(as_of):
        return client.get(
            "/v1/rule-packs/resolve",
            params={"credentialId": str(cfp.id), "asOf": as_of},
            headers=auth(token),
        ).json()

    assert resolve("2025-12-31")["version"] == 1
    assert resolve("2026-01-01")["version"] == 2
    assert resolve("2026-01-01")["rules"]["hoursRequired"] == 40
    assert resolve("2024-06-01")["source"] == "credential_defaults"


def test_publish_requires_admin(client: TestClient, token: str) -> None:
    cfp = seed_credential()
    resp = _publish(client, token, cfp, "2026-01-01", hours_required=40)
    assert resp.status_code == 403


def test_publish_out_of_order_is_rejected(client: TestClient, admin_token: str) -> None:
    cfp = seed_credential()
    _publish(client, admin_token, cfp, "2026-01-01")
    resp = _publish(client, admin_token, cfp, "2025-06-01")
    assert resp.status_code == 400


def test_unknown_credential_is_404(client: TestClient, token: str) -> None:
    resp = client.get(
        "/v1/rule-packs/resolve",
        params={"credentialId": "00000000-0000-0000-0000-000000000000"},
        headers=auth(token),
    )
    assert resp.status_code == 404


def test_rule_packs_require_token(client: TestClient) -> None:
    assert client.get("/v1/rule-packs").status_code == 401
