from __future__ import annotations

import logging

import pytest

from flicctl.core.emitter import EventEmitter


def test_listeners_run_in_registration_order() -> None:
    emitter = EventEmitter()
    calls: list[tuple[str, int]] = []
    emitter.on("tick", lambda value: calls.append(("a", value)))
    emitter.on("tick", lambda value: calls.append(("b", value)))

    assert emitter.emit("tick", 1) is True
    assert calls == [("a", 1), ("b", 1)]


def test_emit_without_listeners_returns_false() -> None:
    assert EventEmitter().emit("nothing") is False


def test_unsubscribe_callable() -> None:
    emitter = EventEmitter()
    calls: list[int] = []
    unsubscribe = emitter.on("tick", calls.append)

    assert unsubscribe() is True
    assert unsubscribe() is False
    emitter.emit("tick", 1)
    assert calls == []


def test_once_fires_a_single_time() -> None:
    emitter = EventEmitter()
    calls: list[int] = []
    emitter.once("tick", calls.append)

    emitter.emit("tick", 1)
    emitter.emit("tick", 2)
    assert calls == [1]
    assert emitter.listener_count("tick") == 0


def test_failing_listener_is_logged_and_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    emitter = EventEmitter()
    calls: list[int] = []

    def boom(value: int) -> None:
        raise RuntimeError("listener failed")

    emitter.on("tick", boom)
    emitter.on("tick", calls.append)

    with caplog.at_level(logging.ERROR, logger="flicctl.core.emitter"):
        emitter.emit("tick", 3)

    assert calls == [3]
    assert "listener failed" in caplog.text


def test_listener_removed_during_emit_still_sees_current_emission() -> None:
    emitter = EventEmitter()
    calls: list[str] = []
    unsubscribe_second = None

    def first() -> None:
        calls.append("first")
        assert unsubscribe_second is not None
        unsubscribe_second()

    emitter.on("tick", first)
    unsubscribe_second = emitter.on("tick", lambda: calls.append("second"))

    emitter.emit("tick")
    emitter.emit("tick")
    assert calls == ["first", "second", "first"]


def test_remove_all_listeners() -> None:
    emitter = EventEmitter()
    emitter.on("a", lambda: None)
    emitter.on("b", lambda: None)

    emitter.remove_all_listeners("a")
    assert emitter.listener_count("a") == 0
    assert emitter.listener_count("b") == 1

    emitter.remove_all_listeners()
    assert emitter.listener_count("b") == 0
