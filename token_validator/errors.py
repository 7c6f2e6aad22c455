"""
Token validation error taxonomy.

Every validation rule reports its failure as one of these types. The
validator returns them inside a ValidationResult instead of raising, so
callers only see them if they ask for it via raise_for_error().
"""


class TokenValidationError(Exception):
    """
    Access token is not valid.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
    """

    code = "token_invalid"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class JwtFormatError(TokenValidationError):
    """Token is not a well-formed compact JWT."""

    code = "jwt_format"


class InvalidIssuerError(TokenValidationError):
    """The 'iss' claim is missing, malformed or not the configured issuer."""

    code = "invalid_issuer"


class InvalidSignatureError(TokenValidationError):
    """Signature does not verify against the issuer's key."""

    code = "invalid_signature"


class InvalidSignatureKeyError(TokenValidationError):
    """No key in the issuer's key set matches the token's kid."""

    code = "invalid_signature_key"


class InvalidAudienceError(TokenValidationError):
    """The 'aud' claim does not contain the configured audience."""

    code = "invalid_audience"


class ExpiredJwtError(TokenValidationError):
    """Current time is outside the token's validity window."""

    code = "expired"


class MissingAccessTokenFieldError(TokenValidationError):
    """A required claim is absent."""

    code = "missing_field"


class ReplayedJwtError(TokenValidationError):
    """Token was already presented. Reserved; nothing raises it yet."""

    code = "replayed"


class InvalidScopeError(TokenValidationError):
    """Scope claim is missing or grants none of the expected scopes."""

    code = "invalid_scope"
