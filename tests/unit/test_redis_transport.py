import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from fieldflow.contracts import AutomationMessage, TransitionEvent
from fieldflow.transports.redis import RedisTransport


def _message(**kwargs) -> AutomationMessage:
    event = TransitionEvent(
        tenant_id="t1", work_order_id="wo-1", old_status="Scheduled", new_status="Completed"
    )
    return AutomationMessage(kind="transition", transition=event, **kwargs)


async def _connected_transport(**kwargs) -> RedisTransport:
    transport = RedisTransport(
        host=os.getenv("TEST_REDIS_HOST", "localhost"),
        prefix=f"fieldflow-test-{uuid.uuid4().hex}",
        **kwargs,
    )
    try:
        await transport.connect()
    except Exception:
        pytest.skip("Redis server not available")
    return transport


async def _cleanup(transport: RedisTransport, topic: str) -> None:
    await transport._redis.delete(
        transport._key(topic),
        transport._key(topic, "delayed"),
        transport._key(topic, "processing"),
        transport._key(topic, "inflight"),
    )
    await transport.disconnect()


@pytest.mark.asyncio
async def test_redis_delivers_and_acks():
    transport = await _connected_transport()
    message = _message()
    await transport.publish("topic", message)

    received = []
    async for raw, msg in transport.subscribe("topic", lifespan=1.5):
        assert await transport._redis.llen(transport._key("topic", "processing")) == 1
        await transport.ack(raw)
        received.append(msg.message_id)
        break

    assert received == [message.message_id]
    assert await transport._redis.llen(transport._key("topic", "processing")) == 0
    assert await transport._redis.zcard(transport._key("topic", "inflight")) == 0
    await _cleanup(transport, "topic")


@pytest.mark.asyncio
async def test_redis_holds_delayed_messages():
    transport = await _connected_transport()
    later = datetime.now(timezone.utc) + timedelta(hours=1)
    await transport.publish("topic", _message(not_before=later))

    received = [m async for _, m in transport.subscribe("topic", lifespan=1.2)]

    assert received == []
    assert await transport._redis.zcard(transport._key("topic", "delayed")) == 1
    await _cleanup(transport, "topic")


@pytest.mark.asyncio
async def test_redis_recovers_unacked_messages():
    transport = await _connected_transport(visibility_timeout=0)
    message = _message()
    await transport.publish("topic", message)

    async for _raw, _msg in transport.subscribe("topic", lifespan=1.5):
        break  # worker dies before acking

    processing = transport._key("topic", "processing")
    assert await transport._redis.llen(processing) == 1

    assert await transport.recover("topic") == 1
    assert await transport._redis.llen(processing) == 0

    redelivered = []
    async for raw, msg in transport.subscribe("topic", lifespan=1.5):
        await transport.ack(raw)
        redelivered.append(msg.message_id)
        break
    assert redelivered == [message.message_id]
    await _cleanup(transport, "topic")


@pytest.mark.asyncio
async def test_redis_recover_leaves_recent_deliveries():
    transport = await _connected_transport(visibility_timeout=300)
    await transport.publish("topic", _message())

    async for _raw, _msg in transport.subscribe("topic", lifespan=1.5):
        break

    assert await transport.recover("topic") == 0
    assert await transport._redis.llen(transport._key("topic", "processing")) == 1
    await _cleanup(transport, "topic")
