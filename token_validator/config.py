"""
Validator configuration.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

LOGGER_NAME = "token_validator"


@dataclass(frozen=True)
class ValidatorSettings:
    """
    Snapshot of the token validator configuration.

    Attributes:
        issuer_url: Base URL of the identity provider (must match the 'iss' claim)
        audience: Audience this service expects in the 'aud' claim
        client_id: Client ID used for the client-credentials grant
        client_secret: Client secret used for the client-credentials grant
        requested_scope: Scope requested for outbound access tokens
        production: Deployment mode; plain-HTTP issuers are only accepted when False
        use_discovery: Resolve JWKS/token endpoints from the OpenID discovery document
        cache_ttl_seconds: How long to cache the signing key set (default: 300 = 5 minutes)
        http_timeout: Timeout for every request to the identity provider (default: 10.0 seconds)
        algorithms: Accepted signature algorithms (default: ("RS256", "RS512"))
        app_name: Host application name, used to namespace cache entries

    Example:
        settings = ValidatorSettings(
            issuer_url="https://idp.example.com",
            audience="https://api.example.com",
            production=False,
        )
    """

    issuer_url: str = ""
    audience: str = ""
    client_id: str = ""
    client_secret: str = ""
    requested_scope: str = ""
    production: bool = True
    use_discovery: bool = False
    cache_ttl_seconds: int = 300
    http_timeout: float = 10.0
    algorithms: tuple[str, ...] = ("RS256", "RS512")
    app_name: str = "token_validator"

    def __post_init__(self) -> None:
        """Validate tuning values."""
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must be non-negative")
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")
        if not self.algorithms:
            raise ValueError("at least one algorithm is required")
        if not self.app_name:
            raise ValueError("app_name is required")


class ValidatorConfig:
    """
    Holder for the current ValidatorSettings.

    Only the keys in ALLOWED_KEYS can be changed after construction, through
    configure(). Every update publishes a new frozen snapshot, so readers see
    either the old or the new settings and never a mix of both.

    Example:
        config = ValidatorConfig()
        config.configure({"issuer_url": "https://idp.example.com", "foo": "ignored"})
        config.config().issuer_url  # "https://idp.example.com"
    """

    ALLOWED_KEYS = frozenset(
        {"issuer_url", "client_id", "client_secret", "requested_scope", "audience"}
    )

    def __init__(
        self,
        settings: ValidatorSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings if settings is not None else ValidatorSettings()
        self._logger = logger

    def configure(
        self, options: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> ValidatorSettings:
        """
        Overwrite allow-listed settings; unknown keys are dropped silently.

        Args:
            options: Mapping of setting name to value
            **kwargs: Additional settings, applied after options

        Returns:
            The newly published settings snapshot
        """
        merged = {**(options or {}), **kwargs}
        changes = {
            str(key): value
            for key, value in merged.items()
            if str(key) in self.ALLOWED_KEYS
        }
        if changes:
            self._settings = replace(self._settings, **changes)
        return self._settings

    def config(self) -> ValidatorSettings:
        """Return the current settings snapshot."""
        return self._settings

    @property
    def logger(self) -> logging.Logger:
        """Logger used to report rejected tokens, created on first use."""
        if self._logger is None:
            self._logger = logging.getLogger(LOGGER_NAME)
        return self._logger

    @logger.setter
    def logger(self, value: logging.Logger) -> None:
        self._logger = value
