"""
Credential cache for the identity provider's signing keys and outbound access tokens.
"""

import asyncio
import base64
import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from token_validator.cache import CacheStore, InMemoryStore
from token_validator.config import ValidatorConfig

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "oauth_token_service"
ISSUER_JWKS_KEY = "issuer-jwks"
ACCESS_TOKEN_KEY = "access-token"
DISCOVERY_KEY = "openid-configuration"

# Outbound tokens are renewed this many seconds before they really expire
ACCESS_TOKEN_EXPIRY_BUFFER = 180


class CredentialFetchError(Exception):
    """Error talking to the identity provider. Never escapes CredentialCache."""

    pass


@dataclass(frozen=True)
class SigningKeySet:
    """Immutable set of public JWKs published by the identity provider."""

    keys: tuple[dict[str, Any], ...] = ()

    @classmethod
    def from_jwks(cls, document: Any) -> "SigningKeySet":
        """
        Build a key set from a JWKS document.

        Raises:
            CredentialFetchError: If the document has no 'keys' array
        """
        if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
            raise CredentialFetchError("Invalid JWKS response: missing 'keys' field")
        return cls(keys=tuple(dict(key) for key in document["keys"] if isinstance(key, dict)))

    def find(self, kid: str | None) -> dict[str, Any] | None:
        """Return a copy of the key with the given kid, or None."""
        if kid is None:
            return None
        for key in self.keys:
            if key.get("kid") == kid:
                return dict(key)
        return None

    @property
    def kids(self) -> list[str]:
        return [key["kid"] for key in self.keys if "kid" in key]

    def __len__(self) -> int:
        return len(self.keys)

    def __bool__(self) -> bool:
        return bool(self.keys)


@dataclass(frozen=True)
class CachedAccessToken:
    """
    Access token obtained through the client-credentials grant.

    Attributes:
        token: The bearer token string
        expires_at: Absolute expiry (Unix epoch seconds)
        expires_in: Lifetime reported by the identity provider, in seconds
    """

    token: str
    expires_at: float
    expires_in: int

    def is_expired(self, now: float, buffer: float = ACCESS_TOKEN_EXPIRY_BUFFER) -> bool:
        """True once the token is within `buffer` seconds of its expiry."""
        return now >= self.expires_at - buffer


class CredentialCache:
    """
    Cache of the identity provider's signing keys and of an outbound access token.

    Features:
    - Caches the JWKS for `cache_ttl_seconds`; invalidate_signing_key_set() drops it early
    - Optional OpenID discovery of the JWKS and token endpoints
    - Client-credentials token cached until 3 minutes before it expires
    - Concurrent misses share one in-flight request per cached value
    - IdP failures are logged and surface as an empty key set or None, never raised

    Entries live in a CacheStore under a namespace derived from the host
    application's name. Without an explicit store an InMemoryStore is used;
    pass a NullStore to go to the network on every call.

    Example:
        cache = CredentialCache(config)
        key_set = await cache.signing_key_set()
        headers = await cache.bearer_auth_header()
    """

    def __init__(
        self,
        config: ValidatorConfig,
        store: CacheStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self._clock = clock or time.time
        self.store = store if store is not None else InMemoryStore(clock=self._clock)
        self._http_client = http_client
        self._key_set_lock = asyncio.Lock()
        self._token_lock = asyncio.Lock()
        self._discovery_lock = asyncio.Lock()

    @property
    def namespace(self) -> str:
        app_name = self.config.config().app_name.lower()
        return f"{hashlib.sha256(app_name.encode()).hexdigest()}_{CACHE_NAMESPACE}"

    def _cache_key(self, name: str) -> str:
        return f"{self.namespace}:{name}"

    def oauth_path(self, action: str) -> str:
        """URL of an endpoint under the issuer's /oauth/ prefix."""
        return f"{self.config.config().issuer_url.rstrip('/')}/oauth/{action}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        timeout = self.config.config().http_timeout
        if self._http_client is not None:
            return await self._http_client.request(method, url, timeout=timeout, **kwargs)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _fetch_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Perform a request and decode its JSON body.

        Raises:
            CredentialFetchError: On network error, non-2xx status or invalid JSON
        """
        try:
            response = await self._request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise CredentialFetchError(f"HTTP error calling {url}: {e}") from e

        if not response.is_success:
            raise CredentialFetchError(f"HTTP {response.status_code} from {url}")

        try:
            return response.json()
        except ValueError as e:
            raise CredentialFetchError(f"Invalid JSON from {url}: {e}") from e

    async def discovery_document(self) -> dict[str, Any]:
        """
        Get the issuer's OpenID discovery document, cached without TTL.

        Raises:
            CredentialFetchError: If the document cannot be fetched or lacks 'jwks_uri'
        """
        key = self._cache_key(DISCOVERY_KEY)
        document = await self.store.get(key)
        if document is not None:
            return document

        async with self._discovery_lock:
            document = await self.store.get(key)
            if document is not None:
                return document

            issuer = self.config.config().issuer_url.rstrip("/")
            document = await self._fetch_json("GET", f"{issuer}/.well-known/openid-configuration")
            if not isinstance(document, dict) or "jwks_uri" not in document:
                raise CredentialFetchError("Invalid discovery document: missing 'jwks_uri'")

            await self.store.set(key, document)
            return document

    async def _jwks_uri(self) -> str:
        if self.config.config().use_discovery:
            document = await self.discovery_document()
            return document["jwks_uri"]
        return self.oauth_path("discovery/keys")

    async def _token_endpoint(self) -> str:
        if self.config.config().use_discovery:
            document = await self.discovery_document()
            return document.get("token_endpoint") or self.oauth_path("token")
        return self.oauth_path("token")

    async def _download_signing_key_set(self) -> SigningKeySet:
        url = await self._jwks_uri()
        key_set = SigningKeySet.from_jwks(await self._fetch_json("GET", url))
        logger.debug(f"Fetched JWKS with {len(key_set)} keys from {url}")
        return key_set

    async def signing_key_set(self) -> SigningKeySet:
        """
        Get the issuer's signing key set, downloading it on a cache miss.

        Returns:
            The cached or freshly downloaded key set; an empty set if the
            download failed
        """
        key = self._cache_key(ISSUER_JWKS_KEY)
        key_set = await self.store.get(key)
        if key_set is not None:
            return key_set

        async with self._key_set_lock:
            # Another caller may have refreshed while we waited
            key_set = await self.store.get(key)
            if key_set is not None:
                return key_set

            try:
                key_set = await self._download_signing_key_set()
            except CredentialFetchError as e:
                logger.warning(f"Signing key download failed: {e}")
                return SigningKeySet()

            ttl = self.config.config().cache_ttl_seconds
            await self.store.set(key, key_set, ttl=ttl)
            logger.info(f"JWKS cache updated, expires in {ttl}s")
            return key_set

    async def invalidate_signing_key_set(self) -> None:
        """Drop the cached key set; the next signing_key_set() call re-downloads."""
        await self.store.delete(self._cache_key(ISSUER_JWKS_KEY))
        logger.debug("JWKS cache invalidated")

    async def _request_access_token(self) -> CachedAccessToken:
        settings = self.config.config()
        url = await self._token_endpoint()
        body = await self._fetch_json(
            "POST",
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": settings.client_id,
                "client_secret": settings.client_secret,
                "scope": settings.requested_scope,
            },
        )

        if not isinstance(body, dict) or not body.get("access_token"):
            raise CredentialFetchError("Invalid token response: missing 'access_token'")

        try:
            expires_in = int(body.get("expires_in", 0))
        except (TypeError, ValueError) as e:
            raise CredentialFetchError(f"Invalid token response: bad 'expires_in': {e}") from e

        return CachedAccessToken(
            token=str(body["access_token"]),
            expires_at=self._clock() + expires_in,
            expires_in=expires_in,
        )

    async def _cached_access_token(self, key: str) -> CachedAccessToken | None:
        token = await self.store.get(key)
        if token is None or token.is_expired(self._clock()):
            return None
        return token

    async def client_credentials_token(self) -> CachedAccessToken | None:
        """
        Get an access token for outbound calls via the client-credentials grant.

        Returns:
            The cached token until 3 minutes before its expiry, then a fresh one;
            None if the identity provider could not issue one
        """
        key = self._cache_key(ACCESS_TOKEN_KEY)
        token = await self._cached_access_token(key)
        if token is not None:
            return token

        async with self._token_lock:
            token = await self._cached_access_token(key)
            if token is not None:
                return token

            try:
                token = await self._request_access_token()
            except CredentialFetchError as e:
                logger.warning(f"Client credentials grant failed: {e}")
                return None

            ttl = token.expires_in - ACCESS_TOKEN_EXPIRY_BUFFER
            if ttl > 0:
                await self.store.set(key, token, ttl=ttl)
            logger.info(f"Access token obtained, expires in {token.expires_in}s")
            return token

    async def basic_auth_header(self) -> dict[str, str]:
        """Authorization header using the access token as a Basic username."""
        token = await self.client_credentials_token()
        if token is None:
            return {}
        encoded = base64.b64encode(f"{token.token}:".encode()).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}

    async def bearer_auth_header(self) -> dict[str, str]:
        """Authorization header carrying the access token as a Bearer token."""
        token = await self.client_credentials_token()
        if token is None:
            return {}
        return {"Authorization": f"Bearer {token.token}"}

    async def token_info(self, token: str | None) -> dict[str, Any] | None:
        """
        Ask the identity provider to describe a token.

        Returns:
            The parsed token info, or None for an empty token or any failure
        """
        if not token:
            return None

        try:
            body = await self._fetch_json(
                "GET",
                self.oauth_path("token/info"),
                headers={"Authorization": f"Bearer {token}"},
            )
        except CredentialFetchError as e:
            logger.warning(f"Token info request failed: {e}")
            return None

        return body if isinstance(body, dict) else None

    async def clear(self) -> None:
        """Evict every entry in this cache's namespace."""
        await self.store.clear(f"{self.namespace}:")
        logger.debug("Credential cache cleared")
