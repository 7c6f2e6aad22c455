"""
FastAPI dependency factories for bearer token authentication.

Usage:
    from token_validator import TokenValidator, ValidatorConfig, require_scopes

    config = ValidatorConfig()
    config.configure(issuer_url="https://idp.example.com", audience="https://api.example.com")
    validator = TokenValidator(config)

    @app.get("/api/orders")
    async def list_orders(claims: TokenClaims = Depends(require_scopes(validator, ["orders:read"]))):
        return {"user_id": claims.sub}
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Annotated, Any

from fastapi import Header, HTTPException, Request, status

from token_validator.claims import TokenClaims, public_claims
from token_validator.core import TokenValidator

logger = logging.getLogger(__name__)

DEFAULT_REALM = "token_validator"
UNREADABLE_TOKEN_INFO = "Unable to read"

# Post-validation policy: receives the decoded claims, returns whether to admit
AuthenticatorFunc = Callable[[dict[str, Any]], bool | Awaitable[bool]]


def _credentials_exception(
    realm: str, detail: str = "Could not validate credentials"
) -> HTTPException:
    """Create a 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": f'Bearer realm="{realm}"'},
    )


def _bad_request_exception(detail: str) -> HTTPException:
    """Create a 400 Bad Request exception."""
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def parse_bearer_token(authorization: str | None, realm: str = DEFAULT_REALM) -> str:
    """
    Parse the token from an Authorization header.

    Raises:
        HTTPException: 401 if the header is missing, 400 if the scheme is not Bearer
    """
    if not authorization or not authorization.strip():
        raise _credentials_exception(realm, "Missing authorization header")

    parts = authorization.strip().split(None, 1)
    scheme = parts[0]

    if scheme.lower() != "bearer":
        raise _bad_request_exception(f"Invalid authentication scheme: {scheme}, expected Bearer")

    # "Bearer" with nothing after it is still a bearer request; let validation reject it
    return parts[1].strip() if len(parts) == 2 else ""


def token_info(claims: dict[str, Any] | None) -> dict[str, Any] | str:
    """Claims exposed to request handlers, without the reserved JWT claims."""
    if claims is None:
        return UNREADABLE_TOKEN_INFO
    return public_claims(claims)


async def _admitted(authenticator: AuthenticatorFunc, claims: dict[str, Any]) -> bool:
    outcome = authenticator(claims)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return bool(outcome)


def require_scopes(
    validator: TokenValidator,
    scopes: Sequence[str] = (),
    authenticator: AuthenticatorFunc | None = None,
    realm: str = DEFAULT_REALM,
) -> Callable[..., Awaitable[TokenClaims]]:
    """
    Create a FastAPI dependency that requires a valid bearer token.

    Returns TokenClaims if the token is valid, grants at least one of the
    scopes (if any are given) and passes the optional authenticator.
    Raises 401 for missing/invalid tokens or a rejecting authenticator,
    400 for a non-Bearer authorization scheme.

    The decoded claims (minus reserved claims) are stored on
    request.state.token_info, even when validation fails.

    Args:
        validator: Token validator shared by the application
        scopes: Scopes acceptable for the endpoint
        authenticator: Optional policy callback (sync or async) run on valid tokens
        realm: Realm reported in the WWW-Authenticate challenge

    Returns:
        FastAPI dependency function

    Example:
        @app.get("/api/partners")
        async def partners(
            claims: TokenClaims = Depends(
                require_scopes(validator, ["partners:read"], lambda c: "partner_guid" in c)
            )
        ):
            return {"partner": claims.get_claim("partner_guid")}
    """
    required = tuple(scopes)

    async def dependency(
        request: Request,
        authorization: Annotated[str | None, Header()] = None,
    ) -> TokenClaims:
        token = parse_bearer_token(authorization, realm)

        result = await validator.validate(token, required)
        request.state.token_info = token_info(result.claims)

        if not result.valid or result.claims is None:
            detail = result.error.message if result.error else "Could not validate credentials"
            logger.warning(f"Authentication failed: {detail}")
            raise _credentials_exception(realm, detail)

        if authenticator is not None and not await _admitted(authenticator, result.claims):
            logger.warning(f"Subject {result.claims.get('sub')} rejected by authenticator")
            raise _credentials_exception(realm)

        return TokenClaims.from_payload(result.claims)

    return dependency


def optional_claims(
    validator: TokenValidator,
    scopes: Sequence[str] = (),
) -> Callable[..., Awaitable[TokenClaims | None]]:
    """
    Create a FastAPI dependency that optionally validates a bearer token.

    Returns TokenClaims if a valid token is provided, None otherwise.
    Does NOT raise exceptions for missing/invalid tokens.

    Example:
        @app.get("/api/public")
        async def public(claims: TokenClaims | None = Depends(optional_claims(validator))):
            return {"authenticated": claims is not None}
    """
    required = tuple(scopes)

    async def dependency(
        authorization: Annotated[str | None, Header()] = None,
    ) -> TokenClaims | None:
        if not authorization:
            return None

        parts = authorization.strip().split(None, 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None

        result = await validator.validate(parts[1].strip(), required)
        return result.token_claims

    return dependency
