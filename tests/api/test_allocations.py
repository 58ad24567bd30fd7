from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, seed_credential, seed_holding, seed_record


def _put(client, token, record, allocations):
    return client.put(
        "/v1/allocations",
        json={
            "cpdRecordId": str(record.id),
            "allocations": [
                {"userCredentialId": str(uc.id), "hours": hours} for uc, hours in allocations
            ],
        },
        headers=auth(token),
    )


def test_split_record_between_credentials(client: TestClient, token: str) -> None:
    cfp = seed_holding(seed_credential(name="CFP"), is_primary=True)
    cfa = seed_holding(seed_credential(name="CFA"))
    record = seed_record(hours=3)

    resp = _put(client, token, record, [(cfp, 1.0), (cfa, 1.5)])
    assert resp.status_code == 200
    data = resp.json()
    assert data["recordHours"] == 3
    assert data["totalAllocated"] == 2.5
    assert data["unallocated"] == 0.5
    assert len(data["allocations"]) == 2

    rows = client.get(
        "/v1/allocations", params={"recordId": str(record.id)}, headers=auth(token)
    ).json()
    assert {r["userCredentialId"]: r["hours"] for r in rows} == {
        str(cfp.id): 1.0,
        str(cfa.id): 1.5,
    }

    by_credential = client.get(
        "/v1/allocations", params={"userCredentialId": str(cfa.id)}, headers=auth(token)
    ).json()
    assert [r["cpdRecordId"] for r in by_credential] == [str(record.id)]


def test_over_allocation_is_rejected_and_rows_kept(client: TestClient, token: str) -> None:
    cfp = seed_holding(seed_credential(name="CFP"))
    cfa = seed_holding(seed_credential(name="CFA"))
    record = seed_record(hours=3)
    _put(client, token, record, [(cfp, 3.0)])

    resp = _put(client, token, record, [(cfp, 2.0), (cfa, 2.0)])
    assert resp.status_code == 400
    assert "exceeds" in resp.json()["detail"]

    rows = client.get(
        "/v1/allocations", params={"recordId": str(record.id)}, headers=auth(token)
    ).json()
    assert [(r["userCredentialId"], r["hours"]) for r in rows] == [(str(cfp.id), 3.0)]


def test_foreign_record_is_404(client: TestClient, token: str) -> None:
    cfp = seed_holding(seed_credential())
    record = seed_record(user_id="someone-else")
    assert _put(client, token, record, [(cfp, 1.0)]).status_code == 404


def test_list_needs_exactly_one_filter(client: TestClient, token: str) -> None:
    assert client.get("/v1/allocations", headers=auth(token)).status_code == 400
    record = seed_record()
    uc = seed_holding(seed_credential())
    resp = client.get(
        "/v1/allocations",
        params={"recordId": str(record.id), "userCredentialId": str(uc.id)},
        headers=auth(token),
    )
    assert resp.status_code == 400


def test_non_finite_hours_are_rejected(client: TestClient, token: str) -> None:
    cfp = seed_holding(seed_credential(name="CFP"))
    record = seed_record(hours=3)
    raw = (
        f'{{"cpdRecordId": "{record.id}", '
        f'"allocations": [{{"userCredentialId": "{cfp.id}", "hours": NaN}}]}}'
    )
    resp = client.put(
        "/v1/allocations",
        content=raw,
        headers={**auth(token), "Content-Type": "application/json"},
    )
    assert resp.status_code == 422

    rows = client.get(
        "/v1/allocations", params={"recordId": str(record.id)}, headers=auth(token)
    ).json()
    assert rows == []
