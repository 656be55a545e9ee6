"""Tests for the capped payment event log."""

import json
import logging

import pytest
from fakeredis import aioredis

from sunsano.checkout import MemorySessionStorage, PaymentLogger, RedisSessionStorage, SessionStorage, StorageError
from sunsano.checkout.logger import PAYMENT_LOG_KEY


class BrokenStorage(SessionStorage):
    async def get(self, key):
        raise StorageError("storage unavailable")

    async def set(self, key, value):
        raise StorageError("storage unavailable")


class TestPaymentLogger:

    @pytest.mark.asyncio
    async def test_entry_shape(self):
        logger = PaymentLogger(MemorySessionStorage())
        await logger.log("order_initiated", order_id="SUN123456", amount="10.30")

        [entry] = await logger.entries()
        assert entry["event"] == "order_initiated"
        assert entry["order_id"] == "SUN123456"
        assert entry["amount"] == "10.30"
        assert "timestamp" in entry

    @pytest.mark.asyncio
    async def test_capacity_evicts_oldest(self):
        logger = PaymentLogger(MemorySessionStorage(), capacity=3)
        for n in range(5):
            await logger.log("webhook_failure", order_id="SUN123456", retry_count=n)

        entries = await logger.entries()
        assert [e["retry_count"] for e in entries] == [2, 3, 4]

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, capacity):
        with pytest.raises(ValueError, match="at least 1"):
            PaymentLogger(MemorySessionStorage(), capacity=capacity)

    @pytest.mark.asyncio
    async def test_capacity_of_one_keeps_latest(self):
        logger = PaymentLogger(MemorySessionStorage(), capacity=1)
        await logger.log("order_initiated", order_id="SUN123456")
        await logger.log("order_failed", order_id="SUN123456")

        assert [e["event"] for e in await logger.entries()] == ["order_failed"]

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_raised(self, caplog):
        logger = PaymentLogger(BrokenStorage())
        with caplog.at_level(logging.INFO):
            await logger.log("payment_success", order_id="SUN123456")

        assert await logger.entries() == []
        assert "payment_success" in caplog.text

    @pytest.mark.asyncio
    async def test_corrupt_log_is_discarded(self):
        storage = MemorySessionStorage()
        await storage.set(PAYMENT_LOG_KEY, "{not json")
        logger = PaymentLogger(storage)

        await logger.log("payment_failed", order_id="SUN123456")

        entries = await logger.entries()
        assert [e["event"] for e in entries] == ["payment_failed"]


class TestRedisSessionStorage:

    @pytest.mark.asyncio
    async def test_logger_persists_to_redis(self):
        client = aioredis.FakeRedis(decode_responses=True)
        storage = RedisSessionStorage(client, namespace="sunsano:session:test")
        logger = PaymentLogger(storage)

        await logger.log("stripe_session_created", order_id="SUN123456", session_id="cs_1")

        raw = await client.get("sunsano:session:test:payment-logs")
        assert json.loads(raw)[0]["session_id"] == "cs_1"
        assert await client.ttl("sunsano:session:test:payment-logs") > 0
        assert (await logger.entries())[0]["event"] == "stripe_session_created"
