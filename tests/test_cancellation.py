"""Tests for CancellationToken."""

from __future__ import annotations

import asyncio

import pytest

from codexbridge.cancellation import CancellationToken


def test_listeners_fire_once_in_order() -> None:
    token = CancellationToken()
    calls: list[str] = []
    token.add_listener(lambda: calls.append("a"))
    token.add_listener(lambda: calls.append("b"))

    token.cancel()
    token.cancel()

    assert calls == ["a", "b"]
    assert token.cancelled
    assert token.listener_count == 0


def test_removed_listener_not_called() -> None:
    token = CancellationToken()
    calls: list[str] = []
    remove = token.add_listener(lambda: calls.append("x"))
    remove()
    remove()
    token.cancel()
    assert calls == []


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    token = CancellationToken()
    calls: list[str] = []

    def _boom() -> None:
        raise RuntimeError("boom")

    token.add_listener(_boom)
    token.add_listener(lambda: calls.append("after"))
    token.cancel()

    assert calls == ["after"]
    assert "cancellation listener" in caplog.text


async def test_wait_returns_after_cancel() -> None:
    token = CancellationToken()
    waiter = asyncio.create_task(token.wait())
    await asyncio.sleep(0)
    assert not waiter.done()
    token.cancel()
    await asyncio.wait_for(waiter, timeout=1.0)


async def test_wait_already_cancelled() -> None:
    token = CancellationToken()
    token.cancel()
    await asyncio.wait_for(token.wait(), timeout=1.0)
