from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Repo root on sys.path so `import cpd_service` works under pytest
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cpd_service.api.ratelimit import _rate_limiter  # noqa: E402
from cpd_service.main import app  # noqa: E402
from cpd_service.models.activity import Activity  # noqa: E402
from cpd_service.models.cpd_record import CpdRecord  # noqa: E402
from cpd_service.models.credential import Credential, UserCredential  # noqa: E402
from cpd_service.repos.store import store  # noqa: E402
from cpd_service.services import token_service  # noqa: E402
from cpd_service.services.task_queue import task_queue  # noqa: E402


@pytest.fixture(autouse=True)
def reset_store() -> None:
    store.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="test-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Seed helpers: write straight into the in-memory store
# ---------------------------------------------------------------------------


def seed_credential(
    name: str = "CFP",
    region: str = "US",
    hours_required: float = 30,
    ethics_hours: float = 2,
    structured_hours: float = 0,
    cycle_length_years: int = 2,
) -> Credential:
    credential = Credential.new(
        name=name,
        body=f"{name} Board",
        region=region,
        hours_required=hours_required,
        ethics_hours=ethics_hours,
        structured_hours=structured_hours,
        cycle_length_years=cycle_length_years,
    )
    store.credentials.add(credential)
    return credential


def seed_holding(
    credential: Credential,
    user_id: str = "test-user",
    **kwargs,
) -> UserCredential:
    uc = UserCredential.new(user_id=user_id, credential_id=credential.id, **kwargs)
    store.user_credentials.add(uc)
    return uc


def seed_record(
    user_id: str = "test-user",
    hours: float = 1.0,
    category: str = "general",
    **kwargs,
) -> CpdRecord:
    kwargs.setdefault("title", f"{category} course")
    kwargs.setdefault("date", date(2026, 3, 1))
    record = CpdRecord.new(user_id=user_id, hours=hours, category=category, **kwargs)
    store.records.add(record)
    return record


def seed_activity(title: str = "Ethics in Practice") -> Activity:
    activity = Activity.new(title=title, publish_status="published")
    store.activities.add(activity)
    return activity
