from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token, seed_credential, seed_holding, seed_record


def test_progress_for_cfp(client: TestClient, token: str) -> None:
    holding = seed_holding(seed_credential(hours_required=30, ethics_hours=2), hours_completed=10)
    seed_record(hours=2, category="ethics")
    seed_record(hours=12)

    resp = client.get(f"/v1/progress/{holding.id}", headers=auth(token))
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalHoursCompleted"] == 24
    assert data["ethicsHoursCompleted"] == 2
    assert data["progressPercent"] == 80
    assert data["totalGap"] == 6
    assert data["ethicsGap"] == 0
    assert data["isPrimary"] is True
    assert data["daysUntilDeadline"] is None


def test_progress_lists_primary_first(client: TestClient, token: str) -> None:
    seed_holding(seed_credential(name="CFA"))
    seed_holding(seed_credential(name="CFP"), is_primary=True)

    data = client.get("/v1/progress", headers=auth(token)).json()
    assert [p["credentialName"] for p in data] == ["CFP", "CFA"]


def test_other_users_holding_is_404(client: TestClient) -> None:
    holding = seed_holding(seed_credential())
    intruder = auth(mint_token(username="intruder"))
    assert client.get(f"/v1/progress/{holding.id}", headers=intruder).status_code == 404


def test_progress_requires_token(client: TestClient) -> None:
    assert client.get("/v1/progress").status_code == 401
