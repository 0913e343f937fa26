import gc
from typing import List

from lspcore.core.event import event


class Sender:
    @event
    def changed(sender, value: int) -> int: ...


def test_event_calls_listeners_and_collects_results() -> None:
    sender = Sender()
    received: List[int] = []

    def listener(s: Sender, value: int) -> int:
        received.append(value)
        return value * 2

    sender.changed.add(listener)

    assert listener in sender.changed
    assert sender.changed(sender, 21) == [42]
    assert received == [21]


def test_event_is_per_instance() -> None:
    first = Sender()
    second = Sender()

    def listener(s: Sender, value: int) -> int:
        return value

    first.changed.add(listener)

    assert len(first.changed) == 1
    assert len(second.changed) == 0
    assert not second.changed


def test_listener_exceptions_are_returned() -> None:
    sender = Sender()

    def listener(s: Sender, value: int) -> int:
        raise ValueError("boom")

    sender.changed.add(listener)

    result = sender.changed(sender, 1)

    assert len(result) == 1
    assert isinstance(result[0], ValueError)


def test_listeners_are_weakly_referenced() -> None:
    sender = Sender()

    class Listener:
        def on_changed(self, s: Sender, value: int) -> int:
            return value

    listener = Listener()
    sender.changed.add(listener.on_changed)
    assert len(sender.changed) == 1

    del listener
    gc.collect()

    assert len(sender.changed) == 0


def test_remove_listener() -> None:
    sender = Sender()

    def listener(s: Sender, value: int) -> int:
        return value

    sender.changed.add(listener)
    sender.changed.remove(listener)

    assert sender.changed(sender, 1) == []
