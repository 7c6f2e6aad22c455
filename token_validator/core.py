"""
Core access token validation.
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTError

from token_validator.claims import TokenClaims, extract_audience, extract_scopes
from token_validator.config import ValidatorConfig, ValidatorSettings
from token_validator.credentials import CredentialCache
from token_validator.errors import (
    ExpiredJwtError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidScopeError,
    InvalidSignatureError,
    InvalidSignatureKeyError,
    JwtFormatError,
    MissingAccessTokenFieldError,
    TokenValidationError,
)

logger = logging.getLogger(__name__)

# One lookup against the cached key set, one after invalidating it
MAX_KEY_LOOKUPS = 2


@dataclass(frozen=True)
class CheckContext:
    """Inputs shared by the claim checks of one validation call."""

    settings: ValidatorSettings
    expected_scopes: tuple[str, ...]
    now: float


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one access token.

    Attributes:
        valid: True only if every check passed
        claims: Decoded (unverified) payload, or None if the token could not be decoded
        error: The first failing check, or None when valid
    """

    valid: bool
    claims: dict[str, Any] | None
    error: TokenValidationError | None = None

    @property
    def token_claims(self) -> TokenClaims | None:
        """Typed claims for a valid token."""
        if not self.valid or self.claims is None:
            return None
        return TokenClaims.from_payload(self.claims)

    def raise_for_error(self) -> None:
        """Raise the recorded error, if any."""
        if self.error is not None:
            raise self.error


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_valid_issuer_url(url: Any, production: bool) -> bool:
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    schemes = ("https",) if production else ("https", "http")
    return parsed.scheme in schemes and bool(parsed.hostname)


def check_issuer(claims: dict[str, Any], ctx: CheckContext) -> TokenValidationError | None:
    if "iss" not in claims:
        return InvalidIssuerError("No issuer present")

    issuer = claims["iss"]
    if not _is_valid_issuer_url(issuer, ctx.settings.production):
        return InvalidIssuerError("Issuer must be a valid url")
    if issuer != ctx.settings.issuer_url:
        return InvalidIssuerError("Invalid issuer")
    return None


def check_signature(
    token: str, claims: dict[str, Any], jwk: dict[str, Any], ctx: CheckContext
) -> TokenValidationError | None:
    """
    Verify the signature and let jose assert exp and nbf.

    Issuer and audience are compared by check_issuer and check_audience, so
    jose is told to skip them. Time claims must be numbers before jose sees
    them; anything else it raises, key construction errors included, is a
    signature failure.
    """
    for name in ("iat", "exp", "nbf"):
        if name in claims and not _is_timestamp(claims[name]):
            return MissingAccessTokenFieldError(f"Invalid {name}")

    try:
        jwt.decode(
            token,
            jwk,
            algorithms=list(ctx.settings.algorithms),
            options={"verify_aud": False, "verify_iss": False, "verify_at_hash": False},
        )
    except ExpiredSignatureError:
        return ExpiredJwtError("Access token is expired")
    except JOSEError as e:
        return InvalidSignatureError(f"Invalid signature: {e}")
    return None


def check_audience(claims: dict[str, Any], ctx: CheckContext) -> TokenValidationError | None:
    if ctx.settings.audience not in extract_audience(claims):
        return InvalidAudienceError("Invalid audience")
    return None


def check_subject(claims: dict[str, Any], ctx: CheckContext) -> TokenValidationError | None:
    if "sub" not in claims:
        return MissingAccessTokenFieldError("Missing subject")
    return None


def check_scope(claims: dict[str, Any], ctx: CheckContext) -> TokenValidationError | None:
    """Any-of match; an empty expected set accepts any token that carries a scope claim."""
    scopes = extract_scopes(claims)
    if scopes is None:
        return InvalidScopeError("Missing scopes")
    if not ctx.expected_scopes:
        return None
    if not set(ctx.expected_scopes).intersection(scopes):
        return InvalidScopeError(
            f"Missing scope: require at least one of {list(ctx.expected_scopes)}"
        )
    return None


def check_validity_window(
    claims: dict[str, Any], ctx: CheckContext
) -> TokenValidationError | None:
    """Reject tokens used before 'iat' or after 'exp'. No clock skew allowance."""
    iat = claims.get("iat")
    exp = claims.get("exp")
    if not _is_timestamp(iat) or not _is_timestamp(exp):
        return MissingAccessTokenFieldError("Missing or invalid iat/exp")
    if ctx.now < iat or ctx.now > exp:
        return ExpiredJwtError("Access token is expired")
    return None


# Run in this order once the signature has been verified
POST_SIGNATURE_CHECKS: tuple[
    Callable[[dict[str, Any], CheckContext], TokenValidationError | None], ...
] = (
    check_audience,
    check_subject,
    check_scope,
    check_validity_window,
)


class TokenValidator:
    """
    Validates bearer access tokens issued by the configured identity provider.

    Checks run in a fixed order and the first failure decides the error:
    format, issuer, signing key, signature, audience, subject, scope,
    validity window.

    Example:
        validator = TokenValidator(config)

        result = await validator.validate(token, ["orders:read"])
        if result.valid:
            print(result.claims["sub"])
    """

    def __init__(
        self,
        config: ValidatorConfig,
        credentials: CredentialCache | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self.credentials = credentials if credentials is not None else CredentialCache(config)
        self._clock = clock or time.time

    @staticmethod
    def decode_unverified(token: str) -> dict[str, Any] | None:
        """
        Decode the token payload without verifying anything.

        Returns:
            The payload, or None if the token is not a well-formed JWT
        """
        if not isinstance(token, str) or not token:
            return None
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    async def find_signing_key(self, kid: str | None) -> dict[str, Any] | None:
        """
        Find the JWK for kid, re-downloading the key set at most once.

        Returns:
            The matching key, or None if it is still unknown after the refresh
        """
        if not kid:
            return None

        for attempt in range(MAX_KEY_LOOKUPS):
            if attempt > 0:
                logger.info(f"Key {kid} not in cached JWKS, refreshing")
                await self.credentials.invalidate_signing_key_set()

            key_set = await self.credentials.signing_key_set()
            jwk = key_set.find(kid)
            if jwk is not None:
                return jwk

        return None

    def _reject(
        self, claims: dict[str, Any] | None, error: TokenValidationError
    ) -> ValidationResult:
        if isinstance(error, JwtFormatError):
            self.config.logger.error(f"Invalid JWT format: {error.message}")
        else:
            self.config.logger.error(f"Invalid access token: {error.message}")
        return ValidationResult(valid=False, claims=claims, error=error)

    async def validate(
        self, token: str, expected_scopes: Sequence[str] | None = None
    ) -> ValidationResult:
        """
        Validate an access token.

        Args:
            token: Compact JWT string
            expected_scopes: Scopes acceptable for the endpoint; the token must
                grant at least one. Empty means no scope is required.

        Returns:
            ValidationResult with the verdict, the decoded claims and the first error
        """
        if not isinstance(token, str) or not token:
            return self._reject(None, JwtFormatError("Token is empty"))

        try:
            header = jwt.get_unverified_header(token)
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            return self._reject(None, JwtFormatError(str(e)))

        ctx = CheckContext(
            settings=self.config.config(),
            expected_scopes=tuple(expected_scopes or ()),
            now=self._clock(),
        )

        error = check_issuer(claims, ctx)
        if error is not None:
            return self._reject(claims, error)

        kid = claims.get("kid") or header.get("kid")
        jwk = await self.find_signing_key(kid)
        if jwk is None:
            return self._reject(
                claims,
                InvalidSignatureKeyError("Could not match token's kid with jwks from issuer"),
            )

        error = check_signature(token, claims, jwk, ctx)
        if error is not None:
            return self._reject(claims, error)

        for check in POST_SIGNATURE_CHECKS:
            error = check(claims, ctx)
            if error is not None:
                return self._reject(claims, error)

        logger.debug(f"Access token valid for subject {claims.get('sub')}")
        return ValidationResult(valid=True, claims=claims)

    async def valid_access_token(
        self, token: str, expected_scopes: Sequence[str] | None = None
    ) -> bool:
        """Validate an access token and return only the verdict."""
        result = await self.validate(token, expected_scopes)
        return result.valid

    async def refresh(self, token: str) -> None:
        """Reserved for refresh-token flows. Does nothing."""
        return None

    async def clear(self) -> None:
        """Clear cached credentials."""
        await self.credentials.clear()
