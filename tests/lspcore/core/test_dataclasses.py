from typing import List, Optional, Union

import pytest

from lspcore.core.dataclasses import as_dict, as_json, from_dict, from_json, to_camel_case, to_snake_case
from lspcore.core.lsp.types import (
    Diagnostic,
    DiagnosticSeverity,
    DiagnosticTag,
    DidChangeTextDocumentParams,
    DocumentHighlight,
    DocumentHighlightKind,
    InitializeParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentContentChangeEventType1,
    TextDocumentContentChangeEventType2,
    TraceValues,
)


@pytest.mark.parametrize(
    ("snake", "camel"),
    [
        ("text_document", "textDocument"),
        ("related_information", "relatedInformation"),
        ("uri", "uri"),
        ("initialization_options", "initializationOptions"),
    ],
)
def test_case_conversion(snake: str, camel: str) -> None:
    assert to_camel_case(snake) == camel
    assert to_snake_case(camel) == snake


def test_as_dict_omits_optional_members() -> None:
    diagnostic = Diagnostic(range=Range.zero(), message="unused variable")

    assert as_dict(diagnostic) == {
        "range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 0}},
        "message": "unused variable",
    }


def test_as_dict_writes_enums_as_values_and_camel_case_names() -> None:
    diagnostic = Diagnostic(
        range=Range.zero(),
        message="deprecated",
        severity=DiagnosticSeverity.HINT,
        code=1234,
        source="solc",
        tags=[DiagnosticTag.DEPRECATED],
        related_information=[],
    )

    assert as_dict(diagnostic) == {
        "range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 0}},
        "message": "deprecated",
        "severity": 4,
        "code": 1234,
        "source": "solc",
        "tags": [2],
        "relatedInformation": [],
    }


def test_unspecified_highlight_kind_is_omitted() -> None:
    assert "kind" not in as_dict(DocumentHighlight(range=Range.zero()))
    assert as_dict(DocumentHighlight(range=Range.zero(), kind=DocumentHighlightKind.WRITE))["kind"] == 3


def test_publish_diagnostics_without_version() -> None:
    assert as_json(PublishDiagnosticsParams(uri="file:///a.sol", diagnostics=[]), compact=True) == (
        '{"uri":"file:///a.sol","diagnostics":[]}'
    )


def test_from_dict_converts_nested_dataclasses() -> None:
    params = from_dict(
        {
            "textDocument": {"uri": "file:///a.sol", "version": 2},
            "contentChanges": [
                {"range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 1}}, "text": "ab"},
                {"text": "full"},
            ],
        },
        DidChangeTextDocumentParams,
    )

    assert params.text_document.uri == "file:///a.sol"
    assert params.text_document.version == 2
    assert params.content_changes == [
        TextDocumentContentChangeEventType1(
            range=Range(start=Position(line=0, character=0), end=Position(line=0, character=1)), text="ab"
        ),
        TextDocumentContentChangeEventType2(text="full"),
    ]


def test_from_dict_ignores_unknown_members() -> None:
    params = from_dict(
        {"processId": None, "rootUri": "file:///w", "capabilities": {}, "trace": "verbose", "workDoneToken": 1},
        InitializeParams,
    )

    assert params.root_uri == "file:///w"
    assert params.trace == TraceValues.VERBOSE
    assert params.capabilities == {}


def test_from_dict_rejects_wrong_types() -> None:
    with pytest.raises(TypeError):
        from_dict({"line": "0", "character": 0}, Position)

    with pytest.raises(TypeError):
        from_dict({"line": True, "character": 0}, Position)

    with pytest.raises(TypeError):
        from_dict({"character": 0}, Position)


def test_from_dict_with_union_and_optional() -> None:
    assert from_dict(None, Optional[int]) is None
    assert from_dict(3, Optional[int]) == 3
    assert from_dict("x", Union[int, str]) == "x"
    assert from_dict([1, 2], List[int]) == [1, 2]


def test_from_json() -> None:
    assert from_json('{"line": 1, "character": 2}', Position) == Position(line=1, character=2)
