# src/social_desk/services/identity.py
"""Identity provider boundary: ID token verification and custom token minting.

Callers authenticate with ID tokens issued by the identity provider. Those
are RS256 JWTs signed with rotating keys published as X.509 certificates.
The exchange endpoint turns a verified ID token into a custom token signed
with the service-account key, which the browser uses to open its session.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import httpx
from jose import JWTError, jwt
from jose.exceptions import JOSEError

from social_desk.core.settings import Settings, settings

logger = logging.getLogger(__name__)

ID_TOKEN_ALGORITHM = "RS256"
MAX_UID_LENGTH = 128
_MAX_AGE = re.compile(r"max-age=(\d+)")


class IdentityError(RuntimeError):
    """Base exception raised for identity provider failures."""


class InvalidAssertionError(IdentityError):
    """Raised when an ID token cannot be verified."""


class TokenGenerationError(IdentityError):
    """Raised when a custom token cannot be minted."""


class IdentityConfigurationError(IdentityError):
    """Raised when the service lacks the configuration needed for identity work."""


class KeySource(Protocol):
    """Supplies public keys (PEM keys or certificates) by key id."""

    async def get_key(self, kid: str) -> str | None: ...


class StaticKeySource:
    """Key source backed by a fixed mapping."""

    def __init__(self, keys: Mapping[str, str]) -> None:
        self._keys = dict(keys)

    async def get_key(self, kid: str) -> str | None:
        return self._keys.get(kid)


class CertificateKeySource:
    """Fetch the provider's signing certificates and cache them.

    The cache lifetime follows the response's `Cache-Control: max-age` and
    falls back to `default_ttl`. An unknown key id forces a refresh so a
    freshly rotated key is picked up without waiting for expiry, but at most
    once per `min_refresh_interval` seconds.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        default_ttl: int = 3600,
        min_refresh_interval: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.default_ttl = default_ttl
        self.min_refresh_interval = min_refresh_interval
        self._client = client
        self._keys: dict[str, str] = {}
        self._expires_at = 0.0
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()

    async def _fetch(self) -> None:
        try:
            if self._client is not None:
                response = await self._client.get(self.url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.url)
            response.raise_for_status()
            keys = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise InvalidAssertionError(f"Unable to fetch signing certificates: {exc}") from exc

        if not isinstance(keys, dict):
            raise InvalidAssertionError("Unexpected signing certificate payload")

        match = _MAX_AGE.search(response.headers.get("cache-control", ""))
        ttl = int(match.group(1)) if match else self.default_ttl
        self._keys = {str(kid): str(pem) for kid, pem in keys.items()}
        self._fetched_at = time.monotonic()
        self._expires_at = self._fetched_at + ttl
        logger.debug("Loaded %d signing certificates (ttl %ss)", len(self._keys), ttl)

    def _may_force_refresh(self, now: float) -> bool:
        return self._fetched_at is None or now - self._fetched_at >= self.min_refresh_interval

    async def get_key(self, kid: str) -> str | None:
        async with self._lock:
            now = time.monotonic()
            if now >= self._expires_at or (
                kid not in self._keys and self._may_force_refresh(now)
            ):
                await self._fetch()
            return self._keys.get(kid)


class IdentityVerifier:
    """Verify provider ID tokens and return their claims."""

    def __init__(
        self,
        project_id: str | None,
        key_source: KeySource,
        *,
        issuer_prefix: str = settings.id_token_issuer_prefix,
    ) -> None:
        self.project_id = project_id
        self.key_source = key_source
        self.issuer_prefix = issuer_prefix

    async def verify(self, id_token: str) -> dict[str, Any]:
        """Verify an ID token.

        Returns:
            The decoded claims with `uid` set to the token subject.

        Raises:
            IdentityConfigurationError: No project id is configured.
            InvalidAssertionError: Signature, audience, issuer, expiry or
                subject checks failed.
        """
        if not self.project_id:
            raise IdentityConfigurationError("Identity project id is not configured")
        if not id_token or not isinstance(id_token, str):
            raise InvalidAssertionError("ID token must be a non-empty string")

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as exc:
            raise InvalidAssertionError("Malformed ID token") from exc

        if header.get("alg") != ID_TOKEN_ALGORITHM:
            raise InvalidAssertionError("ID token has an unexpected algorithm")
        kid = header.get("kid")
        if not kid:
            raise InvalidAssertionError("ID token has no key id")

        key = await self.key_source.get_key(kid)
        if key is None:
            raise InvalidAssertionError("ID token was signed with an unknown key")

        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=[ID_TOKEN_ALGORITHM],
                audience=self.project_id,
                issuer=f"{self.issuer_prefix}{self.project_id}",
            )
        except JWTError as exc:
            raise InvalidAssertionError(f"Invalid ID token: {exc}") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject or len(subject) > MAX_UID_LENGTH:
            raise InvalidAssertionError("ID token has an invalid subject")

        claims["uid"] = subject
        return claims


@dataclass(frozen=True)
class ServiceAccount:
    """The parts of a service-account key file needed to sign custom tokens."""

    client_email: str
    private_key: str
    private_key_id: str | None = None
    project_id: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ServiceAccount:
        try:
            return cls(
                client_email=data["client_email"],
                private_key=data["private_key"],
                private_key_id=data.get("private_key_id"),
                project_id=data.get("project_id"),
            )
        except KeyError as exc:
            raise IdentityConfigurationError(
                f"Service account is missing {exc.args[0]!r}"
            ) from exc


def load_service_account(config: Settings = settings) -> ServiceAccount | None:
    """Load the service-account credential.

    The key file named by `FIREBASE_SERVICE_ACCOUNT_FILE` wins; otherwise the
    JSON held in `FIREBASE_SERVICE_ACCOUNT` is used. Returns None when
    neither yields a usable credential, so token minting fails per request
    instead of at startup.
    """
    if config.service_account_file is not None:
        path = Path(config.service_account_file)
        try:
            account = ServiceAccount.from_mapping(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, IdentityConfigurationError) as exc:
            logger.warning("Could not load service account file %s: %s", path, exc)
        else:
            logger.info("Loaded service account for project %s", account.project_id)
            return account

    if config.service_account_json:
        try:
            account = ServiceAccount.from_mapping(json.loads(config.service_account_json))
        except (ValueError, IdentityConfigurationError) as exc:
            logger.error("Failed to parse FIREBASE_SERVICE_ACCOUNT: %s", exc)
            return None
        logger.info("Loaded service account from environment")
        return account

    logger.warning("No service account configured; custom tokens are unavailable")
    return None


class TokenExchangeService:
    """Verify an ID token and mint a custom token for the same user."""

    def __init__(
        self,
        verifier: IdentityVerifier,
        service_account: ServiceAccount | None,
        *,
        audience: str = settings.custom_token_audience,
        ttl_seconds: int = settings.custom_token_ttl_seconds,
    ) -> None:
        self.verifier = verifier
        self.service_account = service_account
        self.audience = audience
        # The provider rejects custom tokens living longer than one hour.
        self.ttl_seconds = min(ttl_seconds, 3600)

    def create_custom_token(self, uid: str) -> str:
        """Mint a custom token for `uid`.

        Raises:
            TokenGenerationError: No credential is configured, signing failed,
                or the result is not a three-segment JWT.
        """
        account = self.service_account
        if account is None:
            raise TokenGenerationError("Service account credentials are not configured")

        now = int(time.time())
        payload = {
            "iss": account.client_email,
            "sub": account.client_email,
            "aud": self.audience,
            "iat": now,
            "exp": now + self.ttl_seconds,
            "uid": uid,
        }
        headers = {"kid": account.private_key_id} if account.private_key_id else None
        try:
            token = jwt.encode(
                payload,
                account.private_key,
                algorithm=ID_TOKEN_ALGORITHM,
                headers=headers,
            )
        except JOSEError as exc:
            raise TokenGenerationError(f"Failed to sign custom token: {exc}") from exc

        if not isinstance(token, str) or len(token.split(".")) != 3:
            raise TokenGenerationError("Generated token is not a valid JWT")
        if any(char.isspace() for char in token):
            logger.warning("Generated custom token for %s contains whitespace", uid)

        logger.info("Custom token created for user %s", uid)
        return token

    async def exchange(self, id_token: str) -> str:
        """Verify `id_token` and return a custom token for its subject."""
        claims = await self.verifier.verify(id_token)
        logger.info("ID token verified for user %s", claims["uid"])
        return self.create_custom_token(claims["uid"])


@lru_cache
def get_identity_verifier() -> IdentityVerifier:
    """Return the process-wide verifier (certificate cache included)."""
    account = load_service_account(settings)
    project_id = settings.identity_project_id or (account.project_id if account else None)
    key_source = CertificateKeySource(
        settings.id_token_certs_url,
        timeout=settings.identity_http_timeout_seconds,
        default_ttl=settings.identity_certs_cache_seconds,
        min_refresh_interval=settings.identity_certs_min_refresh_seconds,
    )
    return IdentityVerifier(project_id, key_source)


@lru_cache
def get_token_exchange_service() -> TokenExchangeService:
    """Return the process-wide token exchange service."""
    return TokenExchangeService(get_identity_verifier(), load_service_account(settings))
