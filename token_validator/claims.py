"""
Token claims model.
"""

from dataclasses import dataclass
from typing import Any, Sequence

# Claims stripped from the payload before it is handed to request handlers
RESERVED_CLAIMS = frozenset({"iss", "kid", "aud", "iat", "exp", "jti", "scopes"})


def extract_scopes(payload: dict[str, Any]) -> list[str] | None:
    """
    Read the scope collection from a decoded payload.

    Prefers 'scopes' and falls back to the legacy 'scope' claim. String values
    are split on whitespace (RFC 8693 style).

    Returns:
        List of scope strings, or None if neither claim is present
    """
    if "scopes" in payload:
        raw = payload["scopes"]
    elif "scope" in payload:
        raw = payload["scope"]
    else:
        return None

    if raw is None:
        return []
    if isinstance(raw, str):
        return raw.split()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return [str(s) for s in raw]
    return [str(raw)]


def public_claims(payload: dict[str, Any]) -> dict[str, Any]:
    """Payload without the registered/reserved claims."""
    return {k: v for k, v in payload.items() if k not in RESERVED_CLAIMS}


def extract_audience(payload: dict[str, Any]) -> list[str]:
    """Read 'aud' as a list, accepting the single-string form."""
    raw = payload.get("aud")
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, (list, tuple)):
        return [str(a) for a in raw]
    return []


@dataclass(frozen=True)
class TokenClaims:
    """
    Typed view over a validated JWT payload.

    Attributes:
        sub: Subject (user or client ID)
        iss: Issuer URL
        aud: Audiences the token was issued for
        scopes: Scopes granted to the token
        iat: Issued-at timestamp (Unix epoch)
        exp: Expiration timestamp (Unix epoch)
        raw_payload: Full decoded JWT payload for accessing custom claims

    Example:
        claims = TokenClaims.from_payload(result.claims)

        if claims.has_scope("orders:write"):
            # write logic
    """

    sub: str
    iss: str
    aud: list[str]
    scopes: list[str]
    iat: int
    exp: int
    raw_payload: dict[str, Any]

    def has_scope(self, scope: str) -> bool:
        """Check if the token grants a specific scope."""
        return scope in self.scopes

    def has_any_scope(self, scopes: Sequence[str]) -> bool:
        """Check if the token grants any of the specified scopes."""
        return bool(set(self.scopes).intersection(scopes))

    def has_all_scopes(self, scopes: Sequence[str]) -> bool:
        """Check if the token grants all of the specified scopes."""
        return all(scope in self.scopes for scope in scopes)

    @property
    def token_info(self) -> dict[str, Any]:
        """Payload without the registered/reserved claims."""
        return public_claims(self.raw_payload)

    def get_claim(self, key: str, default: Any = None) -> Any:
        """Get a custom claim from the raw payload."""
        return self.raw_payload.get(key, default)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        """
        Create TokenClaims from a decoded JWT payload.

        Args:
            payload: Decoded JWT payload dictionary

        Returns:
            TokenClaims instance

        Raises:
            ValueError: If required claims are missing
        """
        # An empty subject is still a subject
        sub = payload.get("sub")
        if sub is None:
            raise ValueError("Token missing required 'sub' claim")

        exp = payload.get("exp")
        if exp is None:
            raise ValueError("Token missing required 'exp' claim")

        return cls(
            sub=str(sub),
            iss=str(payload.get("iss", "")),
            aud=extract_audience(payload),
            scopes=extract_scopes(payload) or [],
            iat=int(payload.get("iat", 0)),
            exp=int(exp),
            raw_payload=payload,
        )
