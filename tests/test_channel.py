"""Tests for the mock incremental update channel."""

from __future__ import annotations

import asyncio
import random

import pytest

from odds_board.api.schemas import OddsQuote
from odds_board.stream.channel import MockUpdateChannel


def _quote(event_id: int, odds_a: float = 2.0) -> OddsQuote:
    return OddsQuote(event_id=event_id, odds_a=odds_a, odds_b=1.9)


async def _next(iterator, timeout: float = 1.0):
    return await asyncio.wait_for(iterator.__anext__(), timeout)


@pytest.mark.asyncio
async def test_publish_scoped_to_subscription():
    channel = MockUpdateChannel(interval_seconds=0)
    stream = channel.stream()
    channel.connect([1, 2, 3])

    queued = channel.publish([_quote(2), _quote(99)])
    batch = await _next(stream)

    assert queued == 1
    assert [q.event_id for q in batch] == [2]


@pytest.mark.asyncio
async def test_same_id_delivered_in_send_order():
    channel = MockUpdateChannel(interval_seconds=0)
    stream = channel.stream()
    channel.connect([1])

    channel.publish([_quote(1, 1.5)])
    channel.publish([_quote(1, 3.5)])

    first = await _next(stream)
    second = await _next(stream)
    assert first[0].odds_a == 1.5
    assert second[0].odds_a == 3.5


@pytest.mark.asyncio
async def test_reconnect_drops_batches_from_superseded_subscription():
    channel = MockUpdateChannel(interval_seconds=0)
    stream = channel.stream()
    channel.connect([1, 2])
    channel.publish([_quote(1, 1.5)])

    channel.connect([1, 2])
    channel.publish([_quote(2, 4.5)])

    batch = await _next(stream)
    assert [(q.event_id, q.odds_a) for q in batch] == [(2, 4.5)]
    assert channel.subscribed_ids == frozenset({1, 2})


@pytest.mark.asyncio
async def test_disconnect_is_idempotent_and_stops_delivery():
    channel = MockUpdateChannel(interval_seconds=0)
    stream = channel.stream()
    channel.connect([1])
    channel.publish([_quote(1)])

    channel.disconnect()
    channel.disconnect()

    assert not channel.connected
    assert channel.publish([_quote(1)]) == 0
    with pytest.raises(asyncio.TimeoutError):
        await _next(stream, timeout=0.05)


def test_disconnect_when_never_connected():
    channel = MockUpdateChannel(interval_seconds=0)
    channel.disconnect()
    assert not channel.connected


def test_stream_is_not_restartable():
    channel = MockUpdateChannel(interval_seconds=0)
    channel.stream()
    with pytest.raises(RuntimeError):
        channel.stream()


@pytest.mark.asyncio
async def test_broadcaster_sends_random_batches_for_subscribed_ids():
    channel = MockUpdateChannel(interval_seconds=0.01, max_batch=3, rng=random.Random(1))
    stream = channel.stream()
    channel.connect([10, 11, 12, 13])

    batch = await _next(stream)
    channel.disconnect()

    assert 1 <= len(batch) <= 3
    assert {q.event_id for q in batch} <= {10, 11, 12, 13}
    assert all(1.10 <= q.odds_a <= 5.00 for q in batch)
