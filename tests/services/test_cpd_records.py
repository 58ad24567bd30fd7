from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from cpd_service.core.errors import ConflictError, NotFoundError, ValidationError
from cpd_service.models.completion import CompletionRule
from cpd_service.models.cpd_record import EvidenceStrength
from cpd_service.repos.store import store
from cpd_service.services.allocation_ledger import AllocationInput, AllocationLedger
from cpd_service.services.completion_rules import CompletionRuleEvaluator
from cpd_service.services.cpd_records import CpdRecordService
from tests.conftest import seed_credential, seed_record


@pytest.fixture
def records() -> CpdRecordService:
    return CpdRecordService(store)


def test_create_record_normalises_fields(records) -> None:
    record = records.create_record(
        "test-user",
        title="  Retirement Planning  ",
        hours=1.5,
        date=date(2026, 2, 3),
        category=" Ethics ",
    )
    assert record.title == "Retirement Planning"
    assert record.category == "ethics"
    assert record.evidence_strength == EvidenceStrength.MANUAL_ONLY
    assert store.records.get(record.id) == record


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": " "},
        {"hours": 0},
        {"hours": -1},
        {"hours": 500},
        {"hours": float("nan")},
        {"hours": float("inf")},
        {"activity_type": "osmosis"},
        {"status": "abandoned"},
        {"source": "rumour"},
        {"notes": "{not json"},
    ],
)
def test_create_record_rejects_bad_input(records, overrides) -> None:
    fields = {"title": "Course", "hours": 1.0, "date": date(2026, 2, 3)}
    fields.update(overrides)
    with pytest.raises(ValidationError):
        records.create_record("test-user", **fields)
    assert store.records.list_by_user("test-user") == []


def test_delete_record_cascades(records) -> None:
    holding = records.add_user_credential("test-user", seed_credential().id)
    record = seed_record(hours=2)
    AllocationLedger(store).set_allocations(
        "test-user", record.id, [AllocationInput(holding.id, 2.0)]
    )
    store.completion_rules.add(
        CompletionRule.new(cpd_record_id=record.id, name="a", rule_type="attendance")
    )
    evidence, _ = records.attach_evidence(
        "test-user", record.id, file_name="cert.pdf", file_type="application/pdf"
    )

    records.delete_record("test-user", record.id)

    assert store.records.get(record.id) is None
    assert store.allocations.list_by_record(record.id) == []
    assert store.completion_rules.list_by_record(record.id) == []
    orphan = store.evidence.get(evidence.id)
    assert orphan.cpd_record_id is None
    assert orphan.status == "inbox"


def test_platform_records_cannot_be_deleted(records) -> None:
    record = seed_record(source="platform")
    with pytest.raises(ValidationError):
        records.delete_record("test-user", record.id)
    assert store.records.get(record.id) is not None


def test_delete_other_users_record_is_not_found(records) -> None:
    record = seed_record(user_id="someone-else")
    with pytest.raises(NotFoundError):
        records.delete_record("test-user", record.id)


def test_evidence_strength_only_moves_up(records) -> None:
    record = seed_record()
    _, upgraded = records.attach_evidence(
        "test-user", record.id, file_name="cert.pdf", file_type="application/pdf", kind="certificate"
    )
    assert upgraded.evidence_strength == EvidenceStrength.CERTIFICATE_ATTACHED

    _, same = records.attach_evidence(
        "test-user", record.id, file_name="agenda.png", file_type="image/png", kind="agenda"
    )
    assert same.evidence_strength == EvidenceStrength.CERTIFICATE_ATTACHED

    lowered = records.upgrade_evidence_strength(
        "test-user", record.id, EvidenceStrength.URL_ONLY
    )
    assert lowered.evidence_strength == EvidenceStrength.CERTIFICATE_ATTACHED


def test_removing_evidence_keeps_strength(records) -> None:
    record = seed_record()
    evidence, _ = records.attach_evidence(
        "test-user", record.id, file_name="cert.pdf", file_type="application/pdf", kind="certificate"
    )
    deleted = records.remove_evidence("test-user", evidence.id)
    assert deleted.status == "deleted"
    assert store.records.get(record.id).evidence_strength == EvidenceStrength.CERTIFICATE_ATTACHED


def test_attach_evidence_validates(records) -> None:
    record = seed_record()
    with pytest.raises(ValidationError):
        records.attach_evidence(
            "test-user", record.id, file_name="x", file_type="text/plain", kind="selfie"
        )
    with pytest.raises(ValidationError):
        records.attach_evidence("test-user", record.id, file_name=" ", file_type="text/plain")
    evidence, _ = records.attach_evidence(
        "test-user", record.id, file_name="notes.txt", file_type="text/plain"
    )
    with pytest.raises(NotFoundError):
        records.remove_evidence("someone-else", evidence.id)


def test_evidence_strength_labels() -> None:
    assert EvidenceStrength.PROVIDER_VERIFIED.label == "provider_verified"
    assert EvidenceStrength.from_label("url_only") is EvidenceStrength.URL_ONLY
    with pytest.raises(ValueError):
        EvidenceStrength.from_label("notarised")


def test_holdings(records) -> None:
    credential = seed_credential()
    holding = records.add_user_credential(
        "test-user", credential.id, jurisdiction="ca", hours_completed=4
    )
    assert holding.jurisdiction == "CA"

    with pytest.raises(ConflictError):
        records.add_user_credential("test-user", credential.id)
    with pytest.raises(ValidationError):
        records.add_user_credential("other", credential.id, hours_completed=-1)
    with pytest.raises(ValidationError):
        records.add_user_credential("other", credential.id, hours_completed=float("nan"))
    with pytest.raises(NotFoundError):
        records.add_user_credential("test-user", uuid4())


def test_removing_holding_drops_its_allocations(records) -> None:
    cfp = records.add_user_credential("test-user", seed_credential(name="CFP").id)
    cfa = records.add_user_credential("test-user", seed_credential(name="CFA").id)
    record = seed_record(hours=3)
    AllocationLedger(store).set_allocations(
        "test-user",
        record.id,
        [AllocationInput(cfp.id, 1.0), AllocationInput(cfa.id, 2.0)],
    )

    with pytest.raises(NotFoundError):
        records.remove_user_credential("someone-else", cfa.id)
    records.remove_user_credential("test-user", cfa.id)

    remaining = store.allocations.list_by_record(record.id)
    assert [a.user_credential_id for a in remaining] == [cfp.id]


# ---- updates ----


def test_update_record_applies_partial_changes(records) -> None:
    record = seed_record(hours=1.0, status="planned")

    updated = records.update_record(
        "test-user", record.id, status="completed", category=" Ethics ", title=" Ethics day "
    )

    assert updated.status == "completed"
    assert updated.category == "ethics"
    assert updated.title == "Ethics day"
    assert updated.hours == 1.0
    assert store.records.get(record.id) == updated


def test_updated_notes_feed_completion_rules(records) -> None:
    record = seed_record(notes='{"watchPercent": 50}')
    store.completion_rules.add(
        CompletionRule.new(
            cpd_record_id=record.id,
            name="watch",
            rule_type="watch_time",
            config='{"minWatchPercent": 90}',
        )
    )
    evaluator = CompletionRuleEvaluator(store)
    assert evaluator.evaluate("test-user", record.id).all_passed is False

    records.update_record("test-user", record.id, notes='{"watchPercent": 95}')

    assert evaluator.evaluate("test-user", record.id).all_passed is True


def test_hours_cannot_drop_below_allocated_total(records) -> None:
    cfp = records.add_user_credential("test-user", seed_credential(name="CFP").id)
    cfa = records.add_user_credential("test-user", seed_credential(name="CFA").id)
    record = seed_record(hours=3)
    AllocationLedger(store).set_allocations(
        "test-user",
        record.id,
        [AllocationInput(cfp.id, 2.0), AllocationInput(cfa.id, 1.0)],
    )

    with pytest.raises(ValidationError, match="already allocated"):
        records.update_record("test-user", record.id, hours=2.5, title="Shorter")
    assert store.records.get(record.id) == record

    assert records.update_record("test-user", record.id, hours=4).hours == 4


@pytest.mark.parametrize(
    "changes",
    [
        {},
        {"source": "manual"},
        {"title": "  "},
        {"title": None},
        {"hours": float("nan")},
        {"hours": -2},
        {"status": "abandoned"},
        {"activity_type": None},
        {"notes": "{broken"},
    ],
)
def test_update_record_rejects_bad_changes(records, changes) -> None:
    record = seed_record()
    with pytest.raises(ValidationError):
        records.update_record("test-user", record.id, **changes)
    assert store.records.get(record.id) == record


def test_platform_records_cannot_be_edited(records) -> None:
    record = seed_record(source="platform")
    with pytest.raises(ValidationError):
        records.update_record("test-user", record.id, hours=5)


def test_update_other_users_record_is_not_found(records) -> None:
    record = seed_record(user_id="someone-else")
    with pytest.raises(NotFoundError):
        records.update_record("test-user", record.id, status="completed")
    with pytest.raises(NotFoundError):
        records.get_record("test-user", record.id)
