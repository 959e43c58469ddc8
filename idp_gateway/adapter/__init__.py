"""
Persistence adapter for the OpenID Connect engine.

Stores authorization codes, tokens, sessions, interactions and client
registrations in redis, with expiry, userCode/uid lookups, single-use
consumption and cascading revocation by grant id.
"""

from idp_gateway.adapter.schemas import ModelKind
from idp_gateway.adapter.store import RedisAdapter, adapter_factory

__all__ = ["ModelKind", "RedisAdapter", "adapter_factory"]
