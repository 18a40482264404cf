import asyncio
import logging
from contextlib import aclosing

import pytest


def test_multicast(source):
    first, second = [], []
    sub_1 = source.subscribe(first.append)
    sub_2 = source.subscribe(second.append)
    source.push(1, 2)
    assert first == second == [1, 2]
    assert source.starts == 1
    sub_1.cancel()
    assert source.stops == 0
    source.push(3)
    sub_2.cancel()
    assert source.stops == 1
    assert first == [1, 2]
    assert second == [1, 2, 3]


def test_restart(source):
    source.subscribe(print).cancel()
    with source.subscribe(print):
        assert source.active
    assert not source.active
    assert source.starts == 2
    assert source.stops == 2


def test_replay(make_source):
    source = make_source(replay=True)
    source.subscribe(lambda _: None)
    late = []
    source.subscribe(late.append)
    assert late == []
    source.push(1)
    source.push(2)
    source.subscribe(late.append)
    assert late == [1, 2, 2]


def test_no_replay(source):
    source.subscribe(lambda _: None)
    source.push(1)
    late = []
    source.subscribe(late.append)
    assert late == []


def test_replay_reset_when_stopped(make_source):
    source = make_source(replay=True)
    with source.subscribe(lambda _: None):
        source.push(1)
    received = []
    source.subscribe(lambda _: None)
    source.subscribe(received.append)
    assert received == []


def test_errors_are_not_terminal(source):
    values, errors = [], []
    source.subscribe(values.append, errors.append)
    exc = RuntimeError("boom")
    source.push(1)
    source.error(exc)
    source.push(2)
    assert values == [1, 2]
    assert errors == [exc]


def test_unhandled_error(source, caplog):
    source.subscribe(lambda _: None)
    with caplog.at_level(logging.WARNING):
        source.error(RuntimeError("boom"))
    assert "unhandled error in source" in caplog.text


def test_complete(source, mocker):
    on_complete = mocker.Mock()
    source.subscribe(lambda _: None, on_complete=on_complete)
    source.complete()
    on_complete.assert_called_once_with()
    assert not source.active
    assert source.stops == 1
    late_complete = mocker.Mock()
    source.subscribe(lambda _: None, on_complete=late_complete)
    late_complete.assert_called_once_with()
    assert source.starts == 1


def test_close(source):
    received = []
    source.subscribe(received.append)
    source.subscribe(received.append)
    source.close()
    source.push(1)
    assert received == []
    assert source.stops == 1


def test_unsubscribe_while_notified(source):
    received = []
    subscription = source.subscribe(lambda v: subscription.cancel())
    source.subscribe(received.append)
    source.push(1, 2)
    assert received == [1, 2]


async def test_iterate(source):
    async def _collect():
        return [value async for value in source]

    task = asyncio.create_task(_collect())
    await asyncio.sleep(0)
    source.push(1, 2)
    source.complete()
    assert await task == [1, 2]


async def test_iterate_error(source):
    async def _collect():
        async for _ in source:
            pass

    task = asyncio.create_task(_collect())
    await asyncio.sleep(0)
    source.error(RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        await task
    assert not source.active


async def test_iterate_break(source):
    async def _first():
        async with aclosing(aiter(source)) as values:
            async for value in values:
                return value

    task = asyncio.create_task(_first())
    await asyncio.sleep(0)
    source.push(1)
    assert await task == 1
    assert not source.active
