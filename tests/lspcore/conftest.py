from collections import deque
from typing import Any, Callable, Deque, List, Optional, Union

import pytest

from lspcore.core.types import JsonValue
from lspcore.jsonrpc2.transport import Transport, TransportClosedError
from lspcore.language_server.engine import LanguageEngine
from lspcore.language_server.protocol import LanguageServerProtocol


class MemoryTransport(Transport):
    """Hands out queued messages and records everything that is sent.

    A queued exception is raised by `receive` instead of returning a message. An
    empty queue behaves like a closed connection.
    """

    def __init__(self) -> None:
        self.incoming: Deque[Union[JsonValue, BaseException]] = deque()
        self.sent: List[JsonValue] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, *messages: Union[JsonValue, BaseException]) -> None:
        self.incoming.extend(messages)

    def receive(self) -> JsonValue:
        if not self.incoming:
            self._closed = True
            raise TransportClosedError("No more messages.")

        message = self.incoming.popleft()
        if isinstance(message, BaseException):
            raise message
        return message

    def send(self, data: JsonValue) -> None:
        self.sent.append(data)

    def responses(self) -> List[Any]:
        return [m for m in self.sent if isinstance(m, dict) and "id" in m and "method" not in m]

    def notifications(self, method: Optional[str] = None) -> List[Any]:
        return [
            m
            for m in self.sent
            if isinstance(m, dict) and "method" in m and "id" not in m and (method is None or m["method"] == method)
        ]


@pytest.fixture
def transport() -> MemoryTransport:
    return MemoryTransport()


@pytest.fixture
def make_server(transport: MemoryTransport) -> Callable[..., LanguageServerProtocol]:
    def _make(engine: Optional[LanguageEngine] = None, **kwargs: Any) -> LanguageServerProtocol:
        return LanguageServerProtocol(transport, engine, **kwargs)

    return _make
