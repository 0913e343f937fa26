import json
import re
import sys
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Final, Optional

from lspcore.core.types import JsonValue

__all__ = [
    "TransportError",
    "TransportClosedError",
    "Transport",
    "StdioTransport",
]


class TransportError(Exception):
    """A message could not be read or written. The connection may still be usable."""


class TransportClosedError(TransportError):
    """The other side closed the connection."""


class Transport(ABC):
    """Moves whole JSON values between the client and the server.

    How messages are framed and encoded is up to the implementation.
    """

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    def receive(self) -> JsonValue:
        """Blocks until the next message was read.

        Raises `TransportClosedError` at the end of the stream and `TransportError`
        for a message that can't be read.
        """

    @abstractmethod
    def send(self, data: JsonValue) -> None: ...

    def close(self) -> None:
        pass


class StdioTransport(Transport):
    """The LSP base protocol: a `Content-Length` header, an empty line and a JSON body."""

    CHARSET: Final = "utf-8"
    CONTENT_TYPE: Final = "application/vscode-jsonrpc"

    _CHARSET_PATTERN: Final = re.compile(r";\s*charset=(?P<charset>[^\s;]+)", re.IGNORECASE)

    def __init__(self, input: Optional[BinaryIO] = None, output: Optional[BinaryIO] = None) -> None:
        self._input = input if input is not None else sys.stdin.buffer
        self._output = output if output is not None else sys.stdout.buffer
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _read_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}

        while True:
            line = self._input.readline()
            if not line:
                self._closed = True
                raise TransportClosedError("End of input stream.")

            line = line.rstrip(b"\r\n")
            if not line:
                if not headers:
                    # tolerate empty lines between messages
                    continue
                return headers

            name, sep, value = line.decode("ascii", errors="replace").partition(":")
            if not sep:
                raise TransportError(f"Invalid header line {line!r}.")

            headers[name.strip().lower()] = value.strip()

    def receive(self) -> JsonValue:
        if self._closed:
            raise TransportClosedError("Transport is closed.")

        headers = self._read_headers()

        if "content-length" not in headers:
            raise TransportError("Missing Content-Length header.")
        try:
            length = int(headers["content-length"])
        except ValueError as e:
            raise TransportError(f"Invalid Content-Length header {headers['content-length']!r}.") from e
        if length < 0:
            raise TransportError(f"Invalid Content-Length header {headers['content-length']!r}.")

        charset = self.CHARSET
        if "content-type" in headers:
            found = self._CHARSET_PATTERN.search(headers["content-type"])
            if found is not None:
                charset = found.group("charset").strip('"')

        body = self._input.read(length)
        if len(body) < length:
            self._closed = True
            raise TransportClosedError(f"End of input stream, expected {length} bytes but got {len(body)}.")

        try:
            return json.loads(body.decode(charset))
        except (LookupError, ValueError) as e:
            raise TransportError(f"Can't decode message body: {type(e).__name__}: {e}") from e

    def send(self, data: JsonValue) -> None:
        if self._closed:
            raise TransportClosedError("Transport is closed.")

        body = json.dumps(data, separators=(",", ":")).encode(self.CHARSET)

        header = (
            f"Content-Length: {len(body)}\r\nContent-Type: {self.CONTENT_TYPE}; charset={self.CHARSET}\r\n\r\n"
        ).encode("ascii")

        try:
            self._output.write(header + body)
            self._output.flush()
        except (OSError, ValueError) as e:
            self._closed = True
            raise TransportClosedError(f"Can't write to output stream: {e}") from e
