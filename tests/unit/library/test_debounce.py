"""Tests for the asyncio Debouncer."""

from __future__ import annotations

import asyncio

import pytest

from lookr.library.debounce import Debouncer


@pytest.mark.asyncio
async def test_burst_of_triggers_runs_once() -> None:
    calls: list[int] = []
    debouncer = Debouncer(0.05, lambda: calls.append(1))

    for _ in range(5):
        debouncer.trigger()
        await asyncio.sleep(0.01)

    assert calls == []
    await asyncio.sleep(0.15)
    assert calls == [1]
    assert not debouncer.pending


@pytest.mark.asyncio
async def test_trigger_restarts_timer() -> None:
    calls: list[int] = []
    debouncer = Debouncer(0.08, lambda: calls.append(1))

    debouncer.trigger()
    await asyncio.sleep(0.05)
    debouncer.trigger()
    await asyncio.sleep(0.05)
    assert calls == []  # 0.1 s after the first trigger, but only 0.05 s after the last

    await asyncio.sleep(0.1)
    assert calls == [1]


@pytest.mark.asyncio
async def test_flush_runs_pending_action_now() -> None:
    calls: list[int] = []
    debouncer = Debouncer(10, lambda: calls.append(1))

    debouncer.trigger()
    debouncer.flush()
    assert calls == [1]

    await asyncio.sleep(0.01)
    debouncer.flush()
    assert calls == [1]


@pytest.mark.asyncio
async def test_cancel_keeps_pending() -> None:
    calls: list[int] = []
    debouncer = Debouncer(0.01, lambda: calls.append(1))

    debouncer.trigger()
    debouncer.cancel()
    await asyncio.sleep(0.05)
    assert calls == []
    assert debouncer.pending


def test_without_loop_trigger_only_marks_pending() -> None:
    calls: list[int] = []
    debouncer = Debouncer(0.01, lambda: calls.append(1))

    debouncer.trigger()
    debouncer.trigger()
    assert debouncer.pending
    assert calls == []

    debouncer.flush()
    assert calls == [1]
    assert not debouncer.pending


def test_flush_without_trigger_does_nothing() -> None:
    calls: list[int] = []
    Debouncer(0.01, lambda: calls.append(1)).flush()
    assert calls == []
