from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_activity, seed_credential, seed_holding


def _add_mapping(client, admin_token, activity, **body):
    return client.post(
        f"/v1/admin/activities/{activity.id}/credit-mappings",
        json=body,
        headers=auth(admin_token),
    )


def test_credit_views_per_held_credential(
    client: TestClient, token: str, admin_token: str
) -> None:
    seed_holding(seed_credential(name="CFP", region="US"), jurisdiction="CA", is_primary=True)
    seed_holding(seed_credential(name="CII", region="GB"))
    activity = seed_activity()

    assert _add_mapping(client, admin_token, activity, country="US", creditAmount=1.5).status_code == 201
    assert _add_mapping(
        client, admin_token, activity, country="US", creditAmount=9, stateProvince='["NY"]'
    ).status_code == 201
    assert _add_mapping(client, admin_token, activity, country="INTL", creditAmount=1).status_code == 201

    resp = client.get(f"/v1/activities/{activity.id}/credits", headers=auth(token))
    assert resp.status_code == 200
    views = resp.json()
    assert [v["credentialName"] for v in views] == ["CFP", "CII"]

    cfp, cii = views
    assert cfp["eligible"] is True
    assert cfp["totalCredits"] == 2.5
    assert sorted(c["country"] for c in cfp["credits"]) == ["INTL", "US"]
    assert cii["totalCredits"] == 1
    assert cii["credits"][0]["country"] == "INTL"


def test_unknown_activity_is_404(client: TestClient, token: str) -> None:
    resp = client.get(
        "/v1/activities/00000000-0000-0000-0000-000000000000/credits",
        headers=auth(token),
    )
    assert resp.status_code == 404


def test_malformed_state_list_is_refused(client: TestClient, admin_token: str) -> None:
    activity = seed_activity()
    resp = _add_mapping(
        client, admin_token, activity, country="US", creditAmount=1, stateProvince="[NY"
    )
    assert resp.status_code == 400


def test_mapping_admin_requires_role(client: TestClient, token: str) -> None:
    activity = seed_activity()
    resp = _add_mapping(client, token, activity, country="US", creditAmount=1)
    assert resp.status_code == 403
