"""
Configuration handed to the embedded OpenID Connect engine.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from loguru import logger
from pydantic import BaseModel
from idp_gateway.account import SCOPE_CLAIMS, Account
from idp_gateway.adapter import adapter_factory
from idp_gateway.config import Settings
from idp_gateway.constants import (
    ACCESS_TOKEN_TTL_SECONDS,
    AUTHORIZATION_CODE_TTL_SECONDS,
    CLIENT_CREDENTIALS_TTL_SECONDS,
    DEVICE_CODE_TTL_SECONDS,
    ID_TOKEN_TTL_SECONDS,
    INTERACTION_TTL_SECONDS,
    REFRESH_TOKEN_TTL_SECONDS,
    SESSION_TTL_SECONDS,
)

FEATURES = {
    "claimsParameter": True,
    "discovery": True,
    "encryption": True,
    "introspection": True,
    "registration": True,
    "request": True,
    "revocation": True,
    "sessionManagement": True,
}

# Demo client, kept static so the adapter can be exercised end to end.
STATIC_CLIENTS = [
    {
        "client_id": "foo",
        "redirect_uris": [
            "https://peaceful-yonath-ac1071.netlify.com",
            "https://openidconnect.net/callback",
        ],
        "response_types": ["id_token token"],
        "grant_types": ["implicit"],
        "token_endpoint_auth_method": "none",
    },
]

TTL = {
    "AccessToken": ACCESS_TOKEN_TTL_SECONDS,
    "AuthorizationCode": AUTHORIZATION_CODE_TTL_SECONDS,
    "ClientCredentials": CLIENT_CREDENTIALS_TTL_SECONDS,
    "DeviceCode": DEVICE_CODE_TTL_SECONDS,
    "IdToken": ID_TOKEN_TTL_SECONDS,
    "Interaction": INTERACTION_TTL_SECONDS,
    "RefreshToken": REFRESH_TOKEN_TTL_SECONDS,
    "Session": SESSION_TTL_SECONDS,
}


def interaction_url(uid: str) -> str:
    """Nested per-interaction path, so parallel interactions don't clash."""
    return f"/interaction/{uid}"


class ProviderConfiguration(BaseModel):
    issuer: str
    cookie_keys: List[str]
    cookies: Dict[str, Dict[str, Any]] = {
        "short": {"secure": True},
        "long": {"secure": True},
    }
    claims: Dict[str, List[str]] = SCOPE_CLAIMS
    formats: Dict[str, str] = {"AccessToken": "jwt"}
    features: Dict[str, bool] = FEATURES
    clients: List[Dict[str, Any]] = STATIC_CLIENTS
    ttl: Dict[str, int] = TTL
    proxy: bool = True
    http_timeout_ms: Optional[int] = None
    keystore: Optional[Dict[str, Any]] = None
    find_account: Callable[..., Any] = Account.find_by_id
    adapter: Callable[[str], Any] = adapter_factory
    interaction_url: Callable[[str], str] = interaction_url


def load_keystore(path: str) -> Dict[str, Any]:
    """
    Load a JWKS document ({"keys": [...]}) used for signing and encryption.
    """
    try:
        keystore = json.loads(Path(path).read_text())
    except (OSError, ValueError) as exc:
        raise ValueError(f"Unable to load keystore from {path}: {exc}") from exc
    if not isinstance(keystore, dict) or not isinstance(keystore.get("keys"), list):
        raise ValueError(f"Keystore {path} is not a JWKS document")
    return keystore


def build_provider_configuration(settings: Settings) -> ProviderConfiguration:
    keystore = None
    if settings.keystore_path:
        keystore = load_keystore(settings.keystore_path)
        logger.info(f"Loaded {len(keystore['keys'])} key(s) from {settings.keystore_path}")
    return ProviderConfiguration(
        issuer=settings.issuer,
        cookie_keys=settings.cookie_keys,
        proxy=settings.trust_proxy,
        http_timeout_ms=settings.timeout,
        keystore=keystore,
    )
