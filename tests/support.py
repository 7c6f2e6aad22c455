"""
Test helpers: RSA signing keys and identity provider URLs.
"""

import base64
import uuid

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

ISSUER_URL = "https://localhost:3002"
AUDIENCE = "https://localhost:3000"
JWKS_URL = f"{ISSUER_URL}/oauth/discovery/keys"
TOKEN_URL = f"{ISSUER_URL}/oauth/token"
TOKEN_INFO_URL = f"{ISSUER_URL}/oauth/token/info"
DISCOVERY_URL = f"{ISSUER_URL}/.well-known/openid-configuration"


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class SigningKey:
    """RSA key pair with a kid, able to sign tokens and publish its JWK."""

    def __init__(self, kid: str | None = None) -> None:
        self.kid = kid or str(uuid.uuid4())
        self._private = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = self._private.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    @property
    def public_jwk(self) -> dict:
        numbers = self._private.public_key().public_numbers()
        return {
            "kty": "RSA",
            "kid": self.kid,
            "use": "sig",
            "n": _b64url_uint(numbers.n),
            "e": _b64url_uint(numbers.e),
        }

    def jwks(self) -> dict:
        return {"keys": [self.public_jwk]}

    def sign(self, payload: dict, algorithm: str = "RS512", headers: dict | None = None) -> str:
        return jwt.encode(payload, self.private_pem, algorithm=algorithm, headers=headers)
