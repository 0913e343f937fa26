import io
import json
from typing import Any

import pytest

from lspcore.jsonrpc2.transport import StdioTransport, TransportClosedError, TransportError


def _frame(data: Any, content_type: str = "") -> bytes:
    body = json.dumps(data).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n"
    if content_type:
        header += f"Content-Type: {content_type}\r\n"
    return (header + "\r\n").encode("ascii") + body


def test_receive_reads_framed_messages() -> None:
    first = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}
    second = {"jsonrpc": "2.0", "method": "initialized", "params": {}}
    transport = StdioTransport(io.BytesIO(_frame(first) + _frame(second)), io.BytesIO())

    assert transport.receive() == first
    assert transport.receive() == second

    with pytest.raises(TransportClosedError):
        transport.receive()
    assert transport.closed


def test_receive_respects_charset() -> None:
    data = {"jsonrpc": "2.0", "method": "x", "params": {"text": "äöü"}}
    body = json.dumps(data, ensure_ascii=False).encode("latin-1")
    stream = io.BytesIO(
        f"Content-Length: {len(body)}\r\nContent-Type: application/vscode-jsonrpc; charset=latin-1\r\n\r\n".encode(
            "ascii"
        )
        + body
    )
    transport = StdioTransport(stream, io.BytesIO())

    assert transport.receive() == data


def test_receive_counts_bytes_not_characters() -> None:
    data = {"jsonrpc": "2.0", "method": "x", "params": {"text": "😀 emoji"}}
    body = json.dumps(data, ensure_ascii=False).encode("utf-8")
    stream = io.BytesIO(f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body + _frame({"next": True}))
    transport = StdioTransport(stream, io.BytesIO())

    assert transport.receive() == data
    assert transport.receive() == {"next": True}


def test_missing_content_length_is_an_error() -> None:
    transport = StdioTransport(io.BytesIO(b"Content-Type: application/json\r\n\r\n{}"), io.BytesIO())

    with pytest.raises(TransportError) as e:
        transport.receive()

    assert not isinstance(e.value, TransportClosedError)
    assert not transport.closed


@pytest.mark.parametrize("length", [b"-1", b"-100", b"abc"])
def test_invalid_content_length_keeps_the_next_message(length: bytes) -> None:
    stream = io.BytesIO(b"Content-Length: " + length + b"\r\n\r\n" + _frame({"ok": 1}))
    transport = StdioTransport(stream, io.BytesIO())

    with pytest.raises(TransportError) as e:
        transport.receive()

    assert not isinstance(e.value, TransportClosedError)
    assert not transport.closed
    assert transport.receive() == {"ok": 1}


def test_invalid_json_is_an_error_and_the_stream_continues() -> None:
    stream = io.BytesIO(b"Content-Length: 5\r\n\r\n{abc}" + _frame({"ok": 1}))
    transport = StdioTransport(stream, io.BytesIO())

    with pytest.raises(TransportError):
        transport.receive()

    assert transport.receive() == {"ok": 1}


def test_truncated_body_closes_transport() -> None:
    transport = StdioTransport(io.BytesIO(b"Content-Length: 100\r\n\r\n{}"), io.BytesIO())

    with pytest.raises(TransportClosedError):
        transport.receive()

    assert transport.closed


def test_send_writes_header_and_compact_body() -> None:
    output = io.BytesIO()
    transport = StdioTransport(io.BytesIO(), output)

    transport.send({"jsonrpc": "2.0", "id": 1, "result": None})

    body = b'{"jsonrpc":"2.0","id":1,"result":null}'
    assert output.getvalue() == (
        f"Content-Length: {len(body)}\r\nContent-Type: application/vscode-jsonrpc; charset=utf-8\r\n\r\n".encode(
            "ascii"
        )
        + body
    )


def test_send_to_closed_stream_closes_transport() -> None:
    output = io.BytesIO()
    output.close()
    transport = StdioTransport(io.BytesIO(), output)

    with pytest.raises(TransportClosedError):
        transport.send({"jsonrpc": "2.0", "method": "x"})

    assert transport.closed
