from __future__ import annotations

import enum
import functools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from lspcore.core.dataclasses import CamelSnakeMixin

DocumentUri = str
URI = str


class ErrorCodes(enum.IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_NOT_INITIALIZED = -32002
    """A request arrived before `initialize`."""
    UNKNOWN_ERROR_CODE = -32001
    INVALID_RANGE = -32010
    """An edit refers to a range outside of the current document text."""


class LSPErrorCodes(enum.IntEnum):
    REQUEST_FAILED = -32803
    """The request was well formed but could not be carried out."""
    SERVER_CANCELLED = -32802
    CONTENT_MODIFIED = -32801
    REQUEST_CANCELLED = -32800


@enum.unique
class TraceValues(str, enum.Enum):
    OFF = "off"
    MESSAGES = "messages"
    VERBOSE = "verbose"

    @property
    def level(self) -> int:
        return _TRACE_LEVELS[self]


_TRACE_LEVELS = {TraceValues.OFF: 0, TraceValues.MESSAGES: 1, TraceValues.VERBOSE: 2}


class DiagnosticSeverity(enum.IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class DiagnosticTag(enum.IntEnum):
    UNNECESSARY = 1
    """Shown faded out by most clients."""
    DEPRECATED = 2
    """Shown struck through by most clients."""


class DocumentHighlightKind(enum.IntEnum):
    """How a highlighted occurrence uses the symbol.

    A highlight without a kind is unspecified; clients treat it as `TEXT`.
    """

    TEXT = 1
    READ = 2
    WRITE = 3


class TextDocumentSyncKind(enum.IntEnum):
    NONE_ = 0
    FULL = 1
    INCREMENTAL = 2
    """The full text is sent on open, afterwards only the changed ranges."""


@dataclass
@functools.total_ordering
class Position(CamelSnakeMixin):
    """A zero-based line and column.

    The column counts UTF-16 code units, so a character outside the basic
    multilingual plane takes two columns.
    """

    line: int
    character: int

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Position):
            return NotImplemented
        return (self.line, self.character) == (o.line, o.character)

    def __gt__(self, o: object) -> bool:
        if not isinstance(o, Position):
            return NotImplemented
        return (self.line, self.character) > (o.line, o.character)

    def __iter__(self) -> Iterator[int]:
        return iter((self.line, self.character))

    def __hash__(self) -> int:
        return hash((self.line, self.character))


@dataclass
class Range(CamelSnakeMixin):
    """The text between `start` and `end`, `end` exclusive.

    A range that covers a whole line including its line break ends at the start
    of the next line.
    """

    start: Position
    end: Position

    def __iter__(self) -> Iterator[Position]:
        return iter((self.start, self.end))

    @staticmethod
    def zero() -> Range:
        return Range(start=Position(line=0, character=0), end=Position(line=0, character=0))

    def __hash__(self) -> int:
        return hash((self.start, self.end))


@dataclass
class Location(CamelSnakeMixin):
    uri: DocumentUri
    range: Range


@dataclass
class DocumentHighlight(CamelSnakeMixin):
    range: Range
    kind: Optional[DocumentHighlightKind] = None


@dataclass
class DiagnosticRelatedInformation(CamelSnakeMixin):
    location: Location
    message: str


@dataclass
class Diagnostic(CamelSnakeMixin):
    """A problem found in one version of a document."""

    range: Range
    message: str
    severity: Optional[DiagnosticSeverity] = None
    code: Union[int, str, None] = None
    source: Optional[str] = None
    """Name of the tool that reported the diagnostic, shown by the client."""
    tags: Optional[List[DiagnosticTag]] = None
    related_information: Optional[List[DiagnosticRelatedInformation]] = None


@dataclass
class WorkspaceFolder(CamelSnakeMixin):
    uri: URI
    name: str


@dataclass
class ClientInfo(CamelSnakeMixin):
    name: str
    version: Optional[str] = None


@dataclass
class ServerInfo(CamelSnakeMixin):
    """Name and version of the server, sent back in the `initialize` result."""

    name: str
    version: Optional[str] = None


@dataclass
class InitializeParams(CamelSnakeMixin):
    process_id: Optional[int] = None
    client_info: Optional[ClientInfo] = None
    locale: Optional[str] = None
    root_path: Optional[str] = None
    """Deprecated in favour of `root_uri`."""
    root_uri: Optional[DocumentUri] = None
    capabilities: Dict[str, Any] = field(default_factory=dict)
    """Kept as plain JSON; this server does not look at client capabilities."""
    initialization_options: Optional[Any] = None
    trace: Optional[TraceValues] = None
    workspace_folders: Optional[List[WorkspaceFolder]] = None


@dataclass
class TextDocumentSyncOptions(CamelSnakeMixin):
    open_close: Optional[bool] = None
    change: Optional[TextDocumentSyncKind] = None


@dataclass
class ServerCapabilities(CamelSnakeMixin):
    text_document_sync: Optional[TextDocumentSyncOptions] = None
    definition_provider: Optional[bool] = None
    document_highlight_provider: Optional[bool] = None
    references_provider: Optional[bool] = None


@dataclass
class InitializeResult(CamelSnakeMixin):
    capabilities: ServerCapabilities
    server_info: Optional[ServerInfo] = None


@dataclass
class InitializedParams(CamelSnakeMixin):
    pass


@dataclass
class DidChangeConfigurationParams(CamelSnakeMixin):
    settings: Any


@dataclass
class TextDocumentItem(CamelSnakeMixin):
    uri: DocumentUri
    language_id: str
    version: int
    text: str


@dataclass
class TextDocumentIdentifier(CamelSnakeMixin):
    uri: DocumentUri


@dataclass
class VersionedTextDocumentIdentifier(CamelSnakeMixin):
    uri: DocumentUri
    version: Optional[int] = None


@dataclass
class TextDocumentContentChangeEventType1(CamelSnakeMixin):
    """Replaces the text inside `range`."""

    range: Range
    text: str
    range_length: Optional[int] = None
    """Deprecated and ignored, `range` alone defines the replaced text."""


@dataclass
class TextDocumentContentChangeEventType2(CamelSnakeMixin):
    """Replaces the whole text."""

    text: str


TextDocumentContentChangeEvent = Union[TextDocumentContentChangeEventType1, TextDocumentContentChangeEventType2]


@dataclass
class DidOpenTextDocumentParams(CamelSnakeMixin):
    text_document: TextDocumentItem


@dataclass
class DidChangeTextDocumentParams(CamelSnakeMixin):
    text_document: VersionedTextDocumentIdentifier
    content_changes: List[TextDocumentContentChangeEvent]


@dataclass
class DidCloseTextDocumentParams(CamelSnakeMixin):
    text_document: TextDocumentIdentifier


@dataclass
class TextDocumentPositionParams(CamelSnakeMixin):
    text_document: TextDocumentIdentifier
    position: Position


@dataclass
class DefinitionParams(TextDocumentPositionParams):
    pass


@dataclass
class DocumentHighlightParams(TextDocumentPositionParams):
    pass


@dataclass
class ReferenceContext(CamelSnakeMixin):
    include_declaration: bool


@dataclass
class ReferenceParams(CamelSnakeMixin):
    text_document: TextDocumentIdentifier
    position: Position
    context: Optional[ReferenceContext] = None


@dataclass
class PublishDiagnosticsParams(CamelSnakeMixin):
    """All diagnostics of a document; the client drops the ones it showed before."""

    uri: DocumentUri
    diagnostics: List[Diagnostic]
    version: Optional[int] = None


@dataclass
class LogTraceParams(CamelSnakeMixin):
    message: str
    verbose: Optional[str] = None


@dataclass
class SetTraceParams(CamelSnakeMixin):
    value: TraceValues


@dataclass
class CancelParams(CamelSnakeMixin):
    id: Union[int, str]
