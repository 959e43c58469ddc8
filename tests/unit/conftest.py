"""
Unit test fixtures - an isolated in-memory redis per test.
"""

import fakeredis
import pytest


@pytest.fixture
def raw_redis():
    """Direct handle on the fake redis, for inspecting keys and TTLs."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_client(raw_redis):
    from idp_gateway.safe_redis import SafeRedis

    return SafeRedis(raw_redis, timeout=2.5)


@pytest.fixture
def make_adapter(redis_client):
    def _make(kind, client=None):
        from idp_gateway.adapter import RedisAdapter

        return RedisAdapter(kind, client=client or redis_client, prefix="oidc")

    return _make
