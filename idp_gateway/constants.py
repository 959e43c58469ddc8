"""
Default lifetimes (seconds) handed to the protocol engine per artifact kind.
"""

ACCESS_TOKEN_TTL_SECONDS = 60 * 60
AUTHORIZATION_CODE_TTL_SECONDS = 10 * 60
CLIENT_CREDENTIALS_TTL_SECONDS = 10 * 60
DEVICE_CODE_TTL_SECONDS = 10 * 60
ID_TOKEN_TTL_SECONDS = 60 * 60
INTERACTION_TTL_SECONDS = 60 * 60
REFRESH_TOKEN_TTL_SECONDS = 14 * 24 * 60 * 60
SESSION_TTL_SECONDS = 14 * 24 * 60 * 60

# Startup connectivity check.
REDIS_CONNECT_INTERVAL_SECONDS = 3
REDIS_CONNECT_MAX_TRIES = 7

DEFAULT_KEY_PREFIX = "oidc"
DEFAULT_REDIS_TIMEOUT_SECONDS = 2.5
