"""Key/value session storage used for client-side persisted state."""

from abc import ABC, abstractmethod

import redis.asyncio as redis

from sunsano.checkout.exceptions import StorageError


class SessionStorage(ABC):
    """Get/set string values by key."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass


class MemorySessionStorage(SessionStorage):
    """Process-local storage, lost when the process exits."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value


class RedisSessionStorage(SessionStorage):
    """Redis-backed storage scoped to one browser/checkout session.

    Keys are namespaced and expire after ``ttl_seconds`` so abandoned
    sessions do not accumulate.
    """

    def __init__(
        self,
        client: redis.Redis,
        namespace: str = "sunsano:session",
        ttl_seconds: int | None = 24 * 60 * 60,
    ) -> None:
        self._client = client
        self._namespace = namespace
        self._ttl = ttl_seconds

    @classmethod
    def from_url(cls, url: str, session_id: str, **kwargs) -> "RedisSessionStorage":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, namespace=f"sunsano:session:{session_id}", **kwargs)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis read failed: {e}") from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(self._key(key), value, ex=self._ttl)
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
