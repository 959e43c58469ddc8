import asyncio
import socket
import traceback
import concurrent.futures
from typing import Any, Callable
from loguru import logger
import redis.asyncio as redis
from redis import exceptions as redis_exceptions
from idp_gateway.exceptions import BackendUnavailable
from idp_gateway.metrics.adapter import backend_failures


UNAVAILABLE_EXCEPTIONS = (
    redis_exceptions.ConnectionError,
    redis_exceptions.TimeoutError,
    ConnectionError,
    TimeoutError,
    socket.timeout,
    socket.error,
    socket.gaierror,
    OSError,
    asyncio.TimeoutError,
    concurrent.futures.TimeoutError,
    BrokenPipeError,
    ConnectionResetError,
)


def _describe(exc: BaseException) -> str:
    error_detail = str(exc)
    if not error_detail.strip():
        error_detail = traceback.format_exc()
    return error_detail


class _Guarded:
    """
    Shared call guard: bound every awaited call by a timeout and raise
    BackendUnavailable when the backend is unreachable.
    """

    def __init__(self, target: Any, timeout: float):
        self._target = target
        self.timeout = timeout

    def _wrap(self, name: str, attr: Callable[..., Any]) -> Callable[..., Any]:
        async def guarded_call(*args, **kwargs):
            try:
                result = attr(*args, **kwargs)
                if asyncio.iscoroutine(result):
                    return await asyncio.wait_for(result, self.timeout)
                return result
            except UNAVAILABLE_EXCEPTIONS as exc:
                error_detail = _describe(exc)
                logger.error(f"SafeRedis: backend unavailable on {name}: {error_detail}")
                backend_failures.labels(operation=name).inc()
                raise BackendUnavailable(name, error_detail) from exc

        return guarded_call


class SafePipeline(_Guarded):
    """
    Pipeline proxy; commands queue synchronously, only execute() talks to redis.
    """

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if name == "execute":
            return self._wrap("pipeline.execute", attr)
        return attr

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._target.reset()


class SafeRedis(_Guarded):
    """
    Fail-closed wrapper for redis.asyncio.Redis.
    """

    def __init__(self, client: redis.Redis, *, timeout: float = 2.5):
        super().__init__(client, timeout)

    @classmethod
    def from_url(cls, url: str, *, timeout: float = 2.5) -> "SafeRedis":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, timeout=timeout)

    @property
    def client(self) -> redis.Redis:
        return self._target

    def pipeline(self, transaction: bool = True) -> SafePipeline:
        return SafePipeline(self._target.pipeline(transaction=transaction), self.timeout)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        attr = getattr(self._target, name)
        if not callable(attr):
            return attr
        return self._wrap(name, attr)

    async def close(self):
        try:
            await self._target.aclose()
        except UNAVAILABLE_EXCEPTIONS as exc:
            logger.warning(f"SafeRedis: close() failed: {_describe(exc)}")
