"""
Process configuration, read from the environment (and .env) at startup.
"""

from functools import cached_property
from typing import List, Optional
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from idp_gateway.constants import DEFAULT_KEY_PREFIX, DEFAULT_REDIS_TIMEOUT_SECONDS
from idp_gateway.safe_redis import SafeRedis


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    redis_url: str
    issuer: str = "https://localhost:3000"
    port: int = 3000
    environment: str = Field(
        "development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
    )
    secure_key: Optional[str] = None

    # Outbound HTTP timeout for the protocol engine, milliseconds.
    timeout: Optional[int] = None

    redis_timeout: float = DEFAULT_REDIS_TIMEOUT_SECONDS
    key_prefix: str = DEFAULT_KEY_PREFIX
    trust_proxy: bool = True

    tls_key_path: str = "server.key"
    tls_cert_path: str = "server.crt"
    keystore_path: Optional[str] = None

    # "package.module:factory", called with the provider configuration and
    # returning the engine's ASGI app.
    engine_factory: Optional[str] = None

    @property
    def production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_keys(self) -> List[str]:
        if not self.secure_key:
            return []
        return self.secure_key.split(",")

    @model_validator(mode="after")
    def _check_secure_key(self):
        if self.production:
            if not self.secure_key:
                raise ValueError("SECURE_KEY missing, it is required in production")
            if len(self.secure_key.split(",")) != 2:
                raise ValueError("SECURE_KEY format invalid, expected two comma-separated keys")
        return self

    @cached_property
    def redis_client(self) -> SafeRedis:
        return SafeRedis.from_url(self.redis_url, timeout=self.redis_timeout)


settings = Settings()
