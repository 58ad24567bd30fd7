from __future__ import annotations

import logging
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from cpd_service.core.errors import ValidationError
from cpd_service.models.certificate import ProviderTenant
from cpd_service.repos.certificate_repo import ProviderRepo

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()


def hash_api_key(api_key: str) -> str:
    if not api_key:
        raise ValueError("api key must be non-empty")
    return _ph.hash(api_key)


# verify_api_key() must catch Argon2 exceptions and return False
def verify_api_key(api_key: str, api_key_hash: str) -> bool:
    if not api_key or not api_key_hash:
        return False
    try:
        return _ph.verify(api_key_hash, api_key)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def register_provider(repo: ProviderRepo, name: str) -> tuple[ProviderTenant, str]:
    """Create a provider tenant; returns it with the plaintext key (shown once)."""
    if not name.strip():
        raise ValidationError("provider name must be non-empty")
    api_key = f"pk_{secrets.token_urlsafe(32)}"
    provider = ProviderTenant.new(name=name.strip(), api_key_hash=hash_api_key(api_key))
    repo.add(provider)
    logger.info("Registered provider %s id=%s", name, provider.id)
    return provider, api_key


def authenticate_provider(repo: ProviderRepo, api_key: str) -> ProviderTenant | None:
    for provider in repo.list_active():
        if verify_api_key(api_key, provider.api_key_hash):
            return provider
    return None
