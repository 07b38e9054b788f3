"""Tests for the identifier allocator, pending table and retry scheduler."""

import asyncio
import random

import pytest

from snmpclient.client.allocator import MAX_REQUEST_ID, RequestIdAllocator
from snmpclient.client.pending import PendingRequest, PendingRequestTable
from snmpclient.client.scheduler import RetryScheduler
from snmpclient.core.errors import RequestTimeoutError, ResourceExhaustedError
from snmpclient.core.models import Message, Pdu, PduType, SnmpVersion


DEST = ("192.0.2.10", 161)


class SequenceRandom:
    """RNG stand-in that replays a fixed list of draws."""

    def __init__(self, values):
        self.values = list(values)

    def randint(self, a, b):
        return self.values.pop(0)


def make_request(loop, request_id=1, retries=0, timeout=0.01, payload=b"payload"):
    return PendingRequest(
        request_id=request_id,
        destination=DEST,
        payload=payload,
        retries=retries,
        timeout=timeout,
        future=loop.create_future(),
    )


def make_message(request_id):
    return Message(SnmpVersion.V2C, Pdu(PduType.RESPONSE, request_id), community="public")


# ── Allocator ───────────────────────────────────────────────────

@pytest.mark.parametrize("bits", [16, 32])
def test_allocated_ids_fit_the_width(bits):
    allocator = RequestIdAllocator(rng=random.Random(1234))

    ids = [allocator.allocate(set(), bits=bits) for _ in range(200)]

    assert all(0 <= i <= MAX_REQUEST_ID[bits] for i in ids)


def test_allocator_skips_pending_ids():
    allocator = RequestIdAllocator(rng=SequenceRandom([5, 5, 9]))

    assert allocator.allocate({5}) == 9


def test_allocator_gives_up_after_bounded_attempts():
    allocator = RequestIdAllocator(max_attempts=4, rng=SequenceRandom([5] * 10))

    with pytest.raises(ResourceExhaustedError):
        allocator.allocate({5})


def test_allocator_rejects_unknown_width():
    with pytest.raises(ValueError):
        RequestIdAllocator().allocate(set(), bits=24)


# ── Pending table ───────────────────────────────────────────────

async def test_complete_resolves_and_removes():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    request = make_request(loop, request_id=7)
    table.register(request)

    assert 7 in table
    assert table.complete(7, make_message(7))
    assert 7 not in table
    assert (await request.future).request_id == 7
    assert not table.complete(7, make_message(7))


async def test_register_rejects_duplicate_id():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    table.register(make_request(loop, request_id=3))

    with pytest.raises(ValueError):
        table.register(make_request(loop, request_id=3))


async def test_remove_is_idempotent_and_cancels_timer():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    request = make_request(loop, request_id=4)
    request.timer = loop.call_later(10, lambda: None)
    timer = request.timer
    table.register(request)

    assert table.remove(4) is request
    assert table.remove(4) is None
    assert timer.cancelled()
    assert len(table) == 0


async def test_fail_all_fails_each_request_once():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    requests = [make_request(loop, request_id=i) for i in range(3)]
    for request in requests:
        table.register(request)
    requests[0].resolve(make_message(0))

    failed = table.fail_all(RuntimeError("closed"))

    assert failed == 3
    assert len(table) == 0
    assert (await requests[0].future).request_id == 0
    for request in requests[1:]:
        with pytest.raises(RuntimeError):
            await request.future


async def test_completion_fires_at_most_once():
    loop = asyncio.get_running_loop()
    request = make_request(loop)

    assert request.resolve(make_message(1))
    assert not request.fail(RuntimeError("late"))
    assert not request.resolve(make_message(1))


# ── Scheduler ───────────────────────────────────────────────────

async def test_scheduler_resends_then_times_out():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    sent = []
    scheduler = RetryScheduler(table, lambda payload, dest: sent.append((payload, dest)))

    request = make_request(loop, retries=2, timeout=0.01)
    table.register(request)
    scheduler.start(request)

    with pytest.raises(RequestTimeoutError):
        await request.future

    assert sent == [(b"payload", DEST)] * 3
    assert request.retries == 0
    assert request.transmissions == 3
    assert request.request_id not in table


async def test_scheduler_timer_is_noop_after_completion():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    sent = []
    scheduler = RetryScheduler(table, lambda payload, dest: sent.append(payload))

    request = make_request(loop, retries=5, timeout=0.01)
    table.register(request)
    scheduler.start(request)
    table.complete(request.request_id, make_message(request.request_id))

    await asyncio.sleep(0.05)
    assert sent == [b"payload"]
    assert request.future.result().request_id == request.request_id


async def test_stale_timer_ignores_reused_id():
    loop = asyncio.get_running_loop()
    table = PendingRequestTable()
    sent = []
    scheduler = RetryScheduler(table, lambda payload, dest: sent.append(payload))

    old = make_request(loop, request_id=11, retries=0, timeout=10, payload=b"old")
    table.register(old)
    scheduler.start(old)
    table.complete(11, make_message(11))

    new = make_request(loop, request_id=11, retries=0, timeout=10, payload=b"new")
    table.register(new)

    # Fire the old request's timeout by hand
    scheduler._on_timeout(old)

    assert table.get(11) is new
    assert not new.future.done()
    assert sent == [b"old"]
    table.remove(11)
