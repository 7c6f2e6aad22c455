"""
Shared fixtures: signing keys, configuration and token factories.
"""

import time
import uuid

import pytest

from tests.support import AUDIENCE, ISSUER_URL, SigningKey
from token_validator import CredentialCache, TokenValidator, ValidatorConfig, ValidatorSettings


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    return SigningKey()


@pytest.fixture(scope="session")
def other_key() -> SigningKey:
    """A key the issuer never advertises."""
    return SigningKey()


@pytest.fixture
def settings() -> ValidatorSettings:
    return ValidatorSettings(
        issuer_url=ISSUER_URL,
        audience=AUDIENCE,
        client_id="client-id",
        client_secret="client-secret",
        requested_scope="idp:api",
        http_timeout=5.0,
    )


@pytest.fixture
def config(settings) -> ValidatorConfig:
    return ValidatorConfig(settings)


@pytest.fixture
def credentials(config) -> CredentialCache:
    return CredentialCache(config)


@pytest.fixture
def validator(config, credentials) -> TokenValidator:
    return TokenValidator(config, credentials)


@pytest.fixture
def make_token(signing_key):
    """
    Build a signed access token.

    Keyword args override payload claims; `delete_keys` removes claims and
    `key` signs with a different SigningKey.
    """

    def factory(delete_keys: tuple[str, ...] = (), key: SigningKey | None = None, **overrides):
        signer = key or signing_key
        now = int(time.time())
        payload = {
            "sub": uuid.uuid4().hex,
            "iat": now,
            "exp": now + 30 * 60,
            "jti": str(uuid.uuid4()),
            "kid": signing_key.kid,
            "iss": ISSUER_URL,
            "aud": [AUDIENCE],
            "partner_guid": f"p_{uuid.uuid4().hex[:16]}",
            "scopes": ["test:api"],
        }
        payload.update(overrides)
        for name in delete_keys:
            payload.pop(name, None)
        return signer.sign(payload)

    return factory
