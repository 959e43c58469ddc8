"""
Model kinds, key layout and payload encoding for persisted OIDC artifacts.

Key layout:
-----------
- "{prefix}:{Kind}:{id}" - primary record, a hash with a "payload" field (JSON)
  and, once used, a "consumed" field (unix seconds)
- "{prefix}:grant:{grant_id}" - set of primary keys issued under one grant,
  plus the userCode/uid keys pointing at them
- "{prefix}:userCode:{Kind}:{user_code}" - user code -> id
- "{prefix}:uid:{Kind}:{uid}" - uid -> id

Kinds are fixed names, so a primary id can never produce a key that collides
with the grant or secondary-index namespaces.
"""

import json
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel
from idp_gateway.exceptions import MalformedPayload

# Reserved payload fields.
GRANT_ID_FIELD = "grantId"
USER_CODE_FIELD = "userCode"
UID_FIELD = "uid"
CONSUMED_FIELD = "consumed"

# Hash fields of a primary record.
PAYLOAD_HASH_FIELD = "payload"
CONSUMED_HASH_FIELD = "consumed"


class ModelKind(str, Enum):
    AUTHORIZATION_CODE = "AuthorizationCode"
    ACCESS_TOKEN = "AccessToken"
    REFRESH_TOKEN = "RefreshToken"
    CLIENT_CREDENTIALS = "ClientCredentials"
    DEVICE_CODE = "DeviceCode"
    SESSION = "Session"
    INTERACTION = "Interaction"
    CLIENT = "Client"
    INITIAL_ACCESS_TOKEN = "InitialAccessToken"
    REGISTRATION_ACCESS_TOKEN = "RegistrationAccessToken"
    GRANT = "Grant"
    PUSHED_AUTHORIZATION_REQUEST = "PushedAuthorizationRequest"
    BACKCHANNEL_AUTHENTICATION_REQUEST = "BackchannelAuthenticationRequest"
    REPLAY_DETECTION = "ReplayDetection"

    @classmethod
    def parse(cls, name: "str | ModelKind") -> "ModelKind":
        """Resolve a kind name as passed by the protocol engine."""
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown model kind: {name!r}")


class ArtifactKeys(BaseModel):
    """Key builder for one model kind under a namespace prefix."""

    prefix: str
    kind: ModelKind

    def primary(self, artifact_id: str) -> str:
        return f"{self.prefix}:{self.kind.value}:{artifact_id}"

    def grant(self, grant_id: str) -> str:
        return f"{self.prefix}:grant:{grant_id}"

    def user_code(self, user_code: str) -> str:
        return f"{self.prefix}:userCode:{self.kind.value}:{user_code}"

    def uid(self, uid: str) -> str:
        return f"{self.prefix}:uid:{self.kind.value}:{uid}"

    def is_index(self, key: str) -> bool:
        """True for userCode/uid keys, of any kind."""
        return key.startswith((f"{self.prefix}:userCode:", f"{self.prefix}:uid:"))

    def secondary(self, payload: Mapping[str, Any]) -> Dict[str, str]:
        """
        Secondary-index keys a payload should be reachable through, keyed by field name.
        """
        keys = {}
        user_code = payload.get(USER_CODE_FIELD)
        if isinstance(user_code, str) and user_code:
            keys[USER_CODE_FIELD] = self.user_code(user_code)
        uid = payload.get(UID_FIELD)
        if isinstance(uid, str) and uid:
            keys[UID_FIELD] = self.uid(uid)
        return keys


def grant_id_of(payload: Mapping[str, Any]) -> Optional[str]:
    grant_id = payload.get(GRANT_ID_FIELD)
    if isinstance(grant_id, str) and grant_id:
        return grant_id
    return None


def encode_payload(key: str, payload: Any) -> str:
    """
    Serialize a payload to JSON for storage.
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayload(key, f"expected a mapping, got {type(payload).__name__}")
    try:
        return json.dumps(dict(payload), separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(key, str(exc)) from exc


def decode_record(key: str, record: Mapping[Any, Any]) -> Optional[Dict[str, Any]]:
    """
    Rebuild the caller-facing payload from a stored hash, or None when the
    hash holds no payload.
    """
    record = {as_text(k): as_text(v) for k, v in record.items()}
    raw = record.get(PAYLOAD_HASH_FIELD)
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise MalformedPayload(key, str(exc)) from exc
    if not isinstance(payload, dict):
        raise MalformedPayload(key, f"stored payload is a {type(payload).__name__}")
    consumed = record.get(CONSUMED_HASH_FIELD)
    if consumed is not None:
        try:
            payload[CONSUMED_FIELD] = int(consumed)
        except ValueError as exc:
            raise MalformedPayload(key, f"invalid consumed marker {consumed!r}") from exc
    return payload


def as_text(value: Any) -> Any:
    return value.decode() if isinstance(value, bytes) else value
