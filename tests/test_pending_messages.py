import asyncio

import pytest

from tonshard.pending_messages import (
    NO_EXPIRATION,
    MessageAlreadyExistsError,
    MessageStatus,
    PendingMessagesQueue,
)
from tonshard.shard import SHARD_FULL, ShardIdent

MASTERCHAIN = ShardIdent.masterchain()


def make_hash(value):
    return bytes([value]) + bytes(31)


def make_queue():
    queue = PendingMessagesQueue(10)
    assert queue.min_expire_at == NO_EXPIRATION
    return queue


async def status_of(future):
    return await asyncio.wait_for(asyncio.wrap_future(future), timeout=1)


@pytest.mark.asyncio
async def test_normal_message_flow():
    queue = make_queue()
    rx = queue.add_message(make_hash(0), make_hash(0), 10)

    with pytest.raises(MessageAlreadyExistsError):
        queue.add_message(make_hash(0), make_hash(0), 20)
    assert queue.min_expire_at == 10
    assert len(queue) == 1

    queue.deliver_message(make_hash(0), make_hash(0))
    assert queue.min_expire_at == NO_EXPIRATION
    assert len(queue) == 0
    assert await status_of(rx) == MessageStatus.DELIVERED


@pytest.mark.asyncio
async def test_expired_message_flow():
    queue = make_queue()
    rx = queue.add_message(make_hash(0), make_hash(0), 10)

    queue.update(MASTERCHAIN, 5)
    assert queue.min_expire_at == 10
    assert not rx.done()

    queue.update(MASTERCHAIN, 15)
    assert queue.min_expire_at == NO_EXPIRATION
    assert await status_of(rx) == MessageStatus.EXPIRED


@pytest.mark.asyncio
async def test_multiple_messages_expiration_flow():
    queue = make_queue()
    rx2 = queue.add_message(make_hash(1), make_hash(1), 20)
    rx1 = queue.add_message(make_hash(0), make_hash(0), 10)

    queue.update(MASTERCHAIN, 5)
    assert queue.min_expire_at == 10

    queue.update(MASTERCHAIN, 10)
    assert queue.min_expire_at == 10

    queue.update(MASTERCHAIN, 15)
    assert queue.min_expire_at == 20

    queue.update(MASTERCHAIN, 25)
    assert queue.min_expire_at == NO_EXPIRATION

    assert await status_of(rx1) == MessageStatus.EXPIRED
    assert await status_of(rx2) == MessageStatus.EXPIRED


@pytest.mark.asyncio
async def test_multiple_messages_delivery_flow():
    queue = make_queue()
    rx2 = queue.add_message(make_hash(1), make_hash(1), 20)
    rx1 = queue.add_message(make_hash(0), make_hash(0), 10)

    queue.update(MASTERCHAIN, 5)
    assert queue.min_expire_at == 10

    queue.deliver_message(make_hash(1), make_hash(1))
    assert queue.min_expire_at == 10

    queue.update(MASTERCHAIN, 15)
    assert queue.min_expire_at == NO_EXPIRATION

    assert await status_of(rx1) == MessageStatus.EXPIRED
    assert await status_of(rx2) == MessageStatus.DELIVERED

    rx1 = queue.add_message(make_hash(0), make_hash(0), 10)
    rx2 = queue.add_message(make_hash(1), make_hash(1), 20)

    queue.deliver_message(make_hash(0), make_hash(0))
    assert queue.min_expire_at == 20

    queue.deliver_message(make_hash(1), make_hash(1))
    assert queue.min_expire_at == NO_EXPIRATION

    assert await status_of(rx1) == MessageStatus.DELIVERED
    assert await status_of(rx2) == MessageStatus.DELIVERED


def test_deliver_unknown_message_is_ignored():
    queue = make_queue()
    queue.add_message(make_hash(0), make_hash(0), 10)
    queue.deliver_message(make_hash(5), make_hash(5))
    assert len(queue) == 1
    assert queue.min_expire_at == 10


def test_update_keeps_messages_of_other_shards():
    queue = make_queue()
    left, right = ShardIdent.with_tagged_prefix(0, SHARD_FULL).split()
    left_account = make_hash(0x10)
    right_account = make_hash(0x90)
    left_rx = queue.add_message(left_account, make_hash(1), 10)
    right_rx = queue.add_message(right_account, make_hash(2), 12)

    queue.update(left, 20)
    assert len(queue) == 1
    assert queue.min_expire_at == 12
    assert left_rx.result(timeout=0) == MessageStatus.EXPIRED
    assert not right_rx.done()

    queue.update(right, 20)
    assert len(queue) == 0
    assert right_rx.result(timeout=0) == MessageStatus.EXPIRED


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        PendingMessagesQueue(-1)