from typing import Any, Callable, List, Optional

import pytest

from lspcore.core.lsp.types import (
    DocumentHighlight,
    DocumentHighlightKind,
    Location,
    Position,
    Range,
    TraceValues,
)
from lspcore.jsonrpc2.protocol import JsonRPCErrors
from lspcore.language_server.engine import DocumentPosition, EngineNotAttachedError, LanguageEngine
from lspcore.language_server.protocol import LanguageServerException, LanguageServerProtocol

URI = "file:///a.sol"
TEXT = "uint x;\nx = x + 1;\n"


def _range(line: int, start: int, end: int) -> Range:
    return Range(start=Position(line=line, character=start), end=Position(line=line, character=end))


class SymbolEngine(LanguageEngine):
    """Knows a single variable `x`, declared at line 0."""

    DECLARATION = _range(0, 5, 6)
    USAGES = [_range(1, 0, 1), _range(1, 4, 5)]

    def __init__(self) -> None:
        super().__init__()
        self.positions: List[DocumentPosition] = []

    def _is_x(self, position: DocumentPosition) -> bool:
        self.positions.append(position)
        document = self.document(position.uri)
        if document is None:
            return False
        return any(r.start <= position.position <= r.end for r in [self.DECLARATION, *self.USAGES])

    def goto_definition(self, position: DocumentPosition) -> List[Location]:
        if not self._is_x(position):
            return []
        return [Location(uri=position.uri, range=self.DECLARATION)]

    def semantic_highlight(self, position: DocumentPosition) -> List[DocumentHighlight]:
        if not self._is_x(position):
            return []
        return [DocumentHighlight(range=self.DECLARATION, kind=DocumentHighlightKind.WRITE)] + [
            DocumentHighlight(range=r) for r in self.USAGES
        ]

    def references(self, position: DocumentPosition) -> List[Location]:
        if not self._is_x(position):
            return []
        return [Location(uri=position.uri, range=r) for r in self.USAGES]


def _request(id: Any, method: str, params: Optional[Any] = None) -> Any:
    result = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        result["params"] = params
    return result


def _position_params(line: int, character: int, **kwargs: Any) -> Any:
    return {"textDocument": {"uri": URI}, "position": {"line": line, "character": character}, **kwargs}


def _initialized(trace: Optional[str] = None) -> List[Any]:
    params: Any = {"capabilities": {}}
    if trace is not None:
        params["trace"] = trace
    return [
        _request(1, "initialize", params),
        {"jsonrpc": "2.0", "method": "initialized", "params": {}},
        {
            "jsonrpc": "2.0",
            "method": "textDocument/didOpen",
            "params": {"textDocument": {"uri": URI, "languageId": "solidity", "version": 1, "text": TEXT}},
        },
    ]


def _range_dict(line: int, start: int, end: int) -> Any:
    return {"start": {"line": line, "character": start}, "end": {"line": line, "character": end}}


def test_capabilities_follow_the_engine(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    transport.push(_request(1, "initialize", {"capabilities": {}}))
    make_server(SymbolEngine()).run()

    assert transport.sent[0]["result"]["capabilities"] == {
        "textDocumentSync": {"openClose": True, "change": 2},
        "definitionProvider": True,
        "documentHighlightProvider": True,
        "referencesProvider": True,
    }


def test_plain_engine_advertises_only_sync(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    transport.push(_request(1, "initialize", {"capabilities": {}}))
    make_server().run()

    assert transport.sent[0]["result"] == {
        "capabilities": {"textDocumentSync": {"openClose": True, "change": 2}},
        "serverInfo": {"name": "lspcore", "version": LanguageEngine.version},
    }


def test_definition(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    engine = SymbolEngine()
    transport.push(
        *_initialized(),
        _request(2, "textDocument/definition", _position_params(1, 4)),
        _request(3, "textDocument/definition", _position_params(1, 2)),
    )
    make_server(engine).run()

    assert transport.sent[1] == {"jsonrpc": "2.0", "id": 2, "result": [{"uri": URI, "range": _range_dict(0, 5, 6)}]}
    assert transport.sent[2] == {"jsonrpc": "2.0", "id": 3, "result": []}
    assert engine.positions[0] == DocumentPosition(uri=URI, position=Position(line=1, character=4))


def test_document_highlight(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    transport.push(*_initialized(), _request(2, "textDocument/documentHighlight", _position_params(0, 5)))
    make_server(SymbolEngine()).run()

    assert transport.sent[1]["result"] == [
        {"range": _range_dict(0, 5, 6), "kind": 3},
        {"range": _range_dict(1, 0, 1)},
        {"range": _range_dict(1, 4, 5)},
    ]


@pytest.mark.parametrize("include_declaration", [True, False])
def test_references_ignore_include_declaration(
    transport: Any, make_server: Callable[..., LanguageServerProtocol], include_declaration: bool
) -> None:
    transport.push(
        *_initialized(),
        _request(
            2,
            "textDocument/references",
            _position_params(1, 0, context={"includeDeclaration": include_declaration}),
        ),
    )
    make_server(SymbolEngine()).run()

    assert transport.sent[1]["result"] == [
        {"uri": URI, "range": _range_dict(1, 0, 1)},
        {"uri": URI, "range": _range_dict(1, 4, 5)},
    ]


def test_references_without_context(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    transport.push(*_initialized(), _request(2, "textDocument/references", _position_params(1, 0)))
    make_server(SymbolEngine()).run()

    assert len(transport.sent[1]["result"]) == 2


def test_navigation_on_plain_engine_returns_empty_results(
    transport: Any, make_server: Callable[..., LanguageServerProtocol]
) -> None:
    transport.push(
        *_initialized(),
        _request(2, "textDocument/definition", _position_params(0, 0)),
        _request(3, "textDocument/documentHighlight", _position_params(0, 0)),
        _request(4, "textDocument/references", _position_params(0, 0)),
    )
    make_server().run()

    assert [r["result"] for r in transport.sent[1:]] == [[], [], []]


def test_invalid_position_params(transport: Any, make_server: Callable[..., LanguageServerProtocol]) -> None:
    engine = SymbolEngine()
    transport.push(*_initialized(), _request(2, "textDocument/definition", {"textDocument": {"uri": URI}}))
    make_server(engine).run()

    assert transport.sent[1]["id"] == 2
    assert transport.sent[1]["error"]["code"] == JsonRPCErrors.INVALID_PARAMS
    assert engine.positions == []


def test_unknown_method_leaves_documents_untouched(
    transport: Any, make_server: Callable[..., LanguageServerProtocol]
) -> None:
    transport.push(*_initialized(), _request(7, "foo/bar", {"textDocument": {"uri": URI}}))
    server = make_server(SymbolEngine())
    server.run()

    assert transport.sent[1] == {
        "jsonrpc": "2.0",
        "id": 7,
        "error": {"code": JsonRPCErrors.METHOD_NOT_FOUND, "message": "Unknown method: foo/bar"},
    }
    document = server.documents_manager.get(URI)
    assert document is not None
    assert document.text() == TEXT
    assert document.version == 1


class RejectingEngine(LanguageEngine):
    def goto_definition(self, position: DocumentPosition) -> List[Location]:
        request = self.server.current_request
        assert request is not None
        self.error(request.id, -32099, "no definition here")
        return [Location(uri=position.uri, range=_range(0, 0, 0))]


def test_engine_error_replaces_the_response(
    transport: Any, make_server: Callable[..., LanguageServerProtocol]
) -> None:
    transport.push(
        *_initialized(),
        _request(2, "textDocument/definition", _position_params(0, 0)),
        _request(3, "shutdown"),
    )
    make_server(RejectingEngine()).run()

    assert transport.sent[1:] == [
        {"jsonrpc": "2.0", "id": 2, "error": {"code": -32099, "message": "no definition here"}},
        {"jsonrpc": "2.0", "id": 3, "result": None},
    ]


def test_error_outside_of_a_request_fails(make_server: Callable[..., LanguageServerProtocol]) -> None:
    server = make_server()

    with pytest.raises(LanguageServerException):
        server.error(1, -32099, "nothing to answer")


def test_engine_must_be_attached() -> None:
    with pytest.raises(EngineNotAttachedError):
        LanguageEngine().document(URI)


class LoggingEngine(LanguageEngine):
    def goto_definition(self, position: DocumentPosition) -> List[Location]:
        self.log("looking for a definition")
        self.trace("details of the lookup")
        return []


@pytest.mark.parametrize(
    ("trace", "expected"),
    [
        ("off", []),
        ("messages", ["looking for a definition"]),
        ("verbose", ["looking for a definition", "details of the lookup"]),
    ],
)
def test_log_and_trace_follow_trace_value(
    transport: Any, make_server: Callable[..., LanguageServerProtocol], trace: str, expected: List[str]
) -> None:
    transport.push(*_initialized(trace), _request(2, "textDocument/definition", _position_params(0, 0)))
    make_server(LoggingEngine()).run()

    assert [n["params"]["message"] for n in transport.notifications("$/logTrace")] == expected
    assert transport.sent[-1] == {"jsonrpc": "2.0", "id": 2, "result": []}


def test_log_returns_whether_it_was_sent(make_server: Callable[..., LanguageServerProtocol]) -> None:
    server = make_server()

    assert server.log("hidden") is False

    server.trace_value = TraceValues.MESSAGES
    assert server.log("shown") is True
    assert server.trace("hidden") is False
