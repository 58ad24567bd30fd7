from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from cpd_service.core.errors import NotFoundError, ValidationError
from cpd_service.repos.store import store
from cpd_service.services.allocation_ledger import AllocationInput, AllocationLedger
from cpd_service.services.cpd_records import CpdRecordService
from tests.conftest import seed_credential, seed_holding, seed_record


def _writes(result: str) -> float:
    value = REGISTRY.get_sample_value("allocation_writes_total", {"result": result})
    return value or 0.0


@pytest.fixture
def ledger() -> AllocationLedger:
    return AllocationLedger(store)


@pytest.fixture
def two_holdings():
    cred_a = seed_holding(seed_credential("CFP"))
    cred_b = seed_holding(seed_credential("CPA"))
    return cred_a, cred_b


def test_over_allocation_rejected_then_exact_split_accepted(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    record = seed_record(hours=3)

    with pytest.raises(ValidationError, match="exceeds record hours"):
        ledger.set_allocations(
            "test-user",
            record.id,
            [AllocationInput(cred_a.id, 2), AllocationInput(cred_b.id, 2)],
        )
    assert store.allocations.list_by_record(record.id) == []

    result = ledger.set_allocations(
        "test-user",
        record.id,
        [AllocationInput(cred_a.id, 2), AllocationInput(cred_b.id, 1)],
    )
    assert result.total_allocated == 3
    assert result.unallocated == 0
    assert len(store.allocations.list_by_record(record.id)) == 2


def test_rejected_write_keeps_prior_rows(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    record = seed_record(hours=3)
    ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 1.5)])

    with pytest.raises(ValidationError):
        ledger.set_allocations(
            "test-user",
            record.id,
            [AllocationInput(cred_a.id, 3), AllocationInput(cred_b.id, 0.5)],
        )
    (row,) = store.allocations.list_by_record(record.id)
    assert row.user_credential_id == cred_a.id
    assert row.hours == 1.5


def test_replace_is_full_replacement(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    record = seed_record(hours=4)
    ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 4)])
    ledger.set_allocations("test-user", record.id, [AllocationInput(cred_b.id, 1)])
    rows = store.allocations.list_by_record(record.id)
    assert [(r.user_credential_id, r.hours) for r in rows] == [(cred_b.id, 1)]


def test_empty_list_clears_allocations(ledger, two_holdings) -> None:
    cred_a, _ = two_holdings
    record = seed_record(hours=2)
    ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 2)])
    result = ledger.set_allocations("test-user", record.id, [])
    assert result.allocations == []
    assert result.unallocated == 2


def test_decimal_hours_sum_within_tolerance(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    record = seed_record(hours=3.3)
    result = ledger.set_allocations(
        "test-user",
        record.id,
        [AllocationInput(cred_a.id, 1.1), AllocationInput(cred_b.id, 2.2)],
    )
    assert result.unallocated == pytest.approx(0)


@pytest.mark.parametrize("hours", [0, -1, float("nan"), float("inf")])
def test_non_positive_or_non_finite_hours_rejected(ledger, two_holdings, hours) -> None:
    cred_a, _ = two_holdings
    record = seed_record(hours=3)
    with pytest.raises(ValidationError):
        ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, hours)])
    assert store.allocations.list_by_record(record.id) == []


def test_duplicate_credential_rejected(ledger, two_holdings) -> None:
    cred_a, _ = two_holdings
    record = seed_record(hours=3)
    with pytest.raises(ValidationError, match="duplicate"):
        ledger.set_allocations(
            "test-user",
            record.id,
            [AllocationInput(cred_a.id, 1), AllocationInput(cred_a.id, 1)],
        )


def test_other_users_record_is_not_found(ledger, two_holdings) -> None:
    cred_a, _ = two_holdings
    record = seed_record(user_id="someone-else", hours=3)
    with pytest.raises(NotFoundError):
        ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 1)])


def test_other_users_credential_is_not_found(ledger) -> None:
    foreign = seed_holding(seed_credential("CFP"), user_id="someone-else")
    record = seed_record(hours=3)
    with pytest.raises(NotFoundError):
        ledger.set_allocations("test-user", record.id, [AllocationInput(foreign.id, 1)])
    with pytest.raises(NotFoundError):
        ledger.set_allocations("test-user", record.id, [AllocationInput(uuid4(), 1)])


def test_write_metrics(ledger, two_holdings) -> None:
    cred_a, _ = two_holdings
    record = seed_record(hours=1)
    applied, rejected = _writes("applied"), _writes("rejected")

    ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 1)])
    with pytest.raises(ValidationError):
        ledger.set_allocations("test-user", record.id, [AllocationInput(cred_a.id, 5)])

    assert _writes("applied") - applied == 1
    assert _writes("rejected") - rejected == 1


def test_list_by_credential(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    r1, r2 = seed_record(hours=2), seed_record(hours=2)
    ledger.set_allocations("test-user", r1.id, [AllocationInput(cred_a.id, 1)])
    ledger.set_allocations("test-user", r2.id, [AllocationInput(cred_a.id, 2)])
    rows = ledger.list_by_credential("test-user", cred_a.id)
    assert sorted(r.hours for r in rows) == [1, 2]
    assert ledger.list_by_credential("test-user", cred_b.id) == []


def test_concurrent_writers_never_exceed_record_hours(ledger, two_holdings) -> None:
    cred_a, cred_b = two_holdings
    record = seed_record(hours=3)
    records = CpdRecordService(store)
    payloads = [
        [AllocationInput(cred_a.id, 2), AllocationInput(cred_b.id, 1)],
        [AllocationInput(cred_a.id, 3)],
        [AllocationInput(cred_b.id, 0.5)],
        [AllocationInput(cred_a.id, 2.5), AllocationInput(cred_b.id, 1)],
    ]
    workers = 16
    barrier = threading.Barrier(workers)

    def write(i: int) -> None:
        barrier.wait()
        try:
            if i % 5 == 4:
                # shrinking the record races the allocation writes
                records.update_record("test-user", record.id, hours=1)
            else:
                ledger.set_allocations("test-user", record.id, payloads[i % 4])
        except ValidationError:
            pass

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(write, range(workers)))

    final = store.records.get(record.id)
    rows = store.allocations.list_by_record(record.id)
    assert sum(a.hours for a in rows) <= final.hours
    written = {(a.user_credential_id, a.hours) for a in rows}
    assert written in [set()] + [
        {(p.user_credential_id, p.hours) for p in payload} for payload in payloads
    ]
