"""
token-validator: Bearer access token validation against an OAuth identity provider.

This library provides:
- JWT validation in a fixed check order (format, issuer, key, signature,
  audience, subject, scope, validity window)
- A credential cache for the issuer's JWKS and an outbound client-credentials
  token, with refresh-on-unknown-kid
- FastAPI dependency factories for scope-based access control

Quick start:
    from token_validator import TokenValidator, ValidatorConfig, require_scopes

    config = ValidatorConfig()
    config.configure(issuer_url="https://idp.example.com", audience="https://api.example.com")
    validator = TokenValidator(config)

    @app.get("/api/orders")
    async def list_orders(claims: TokenClaims = Depends(require_scopes(validator, ["orders:read"]))):
        return {"user_id": claims.sub}
"""

from token_validator.cache import CacheStore, InMemoryStore, NullStore
from token_validator.claims import TokenClaims
from token_validator.config import ValidatorConfig, ValidatorSettings
from token_validator.core import TokenValidator, ValidationResult
from token_validator.credentials import CachedAccessToken, CredentialCache, SigningKeySet
from token_validator.errors import (
    ExpiredJwtError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidScopeError,
    InvalidSignatureError,
    InvalidSignatureKeyError,
    JwtFormatError,
    MissingAccessTokenFieldError,
    ReplayedJwtError,
    TokenValidationError,
)
from token_validator.fastapi import optional_claims, require_scopes

__version__ = "0.1.0"

__all__ = [
    # Config
    "ValidatorConfig",
    "ValidatorSettings",
    # Claims
    "TokenClaims",
    # Core
    "TokenValidator",
    "ValidationResult",
    # Credentials
    "CredentialCache",
    "SigningKeySet",
    "CachedAccessToken",
    # Cache stores
    "CacheStore",
    "InMemoryStore",
    "NullStore",
    # Errors
    "TokenValidationError",
    "JwtFormatError",
    "InvalidIssuerError",
    "InvalidSignatureError",
    "InvalidSignatureKeyError",
    "InvalidAudienceError",
    "ExpiredJwtError",
    "MissingAccessTokenFieldError",
    "ReplayedJwtError",
    "InvalidScopeError",
    # FastAPI dependencies
    "require_scopes",
    "optional_claims",
]
