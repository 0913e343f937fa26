from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional

from lspcore.__version__ import __version__
from lspcore.core.lsp.types import (
    Diagnostic,
    DocumentHighlight,
    DocumentUri,
    Location,
    Position,
    Range,
    ServerInfo,
    WorkspaceFolder,
)
from lspcore.core.text_document import TextDocument

if TYPE_CHECKING:
    from .protocol import LanguageServerProtocol


@dataclass
class DocumentPosition:
    """A position inside a document, the argument of the navigation hooks."""

    uri: DocumentUri
    position: Position


class EngineNotAttachedError(RuntimeError):
    pass


class LanguageEngine:
    """The language specific part of a server.

    Subclasses override the hooks they support. Every hook has a default that
    does nothing or returns an empty result, so a plain `LanguageEngine` is a
    working server without any language features.

    Hooks are called by the server while a message is handled. They can read the
    open documents with `document` and talk back to the client with
    `push_diagnostics`, `error`, `log` and `trace`.
    """

    name = "lspcore"
    version: Optional[str] = __version__

    def __init__(self) -> None:
        self._server: Optional[LanguageServerProtocol] = None

    def attach(self, server: LanguageServerProtocol) -> None:
        self._server = server

    @property
    def server(self) -> LanguageServerProtocol:
        if self._server is None:
            raise EngineNotAttachedError(f"{type(self).__name__} is not attached to a server.")
        return self._server

    def overrides(self, hook: str) -> bool:
        return getattr(type(self), hook) is not getattr(LanguageEngine, hook)

    # hooks

    def initialize(self, root_uri: Optional[DocumentUri], workspace_folders: List[WorkspaceFolder]) -> ServerInfo:
        return ServerInfo(name=self.name, version=self.version)

    def initialized(self) -> None:
        pass

    def change_configuration(self, settings: Any) -> None:
        pass

    def document_opened(self, uri: DocumentUri, language_id: str, version: Optional[int], text: str) -> None:
        pass

    def document_content_replaced(self, uri: DocumentUri, version: Optional[int], text: str) -> None:
        self.document_content_updated(uri)

    def document_range_updated(self, uri: DocumentUri, version: Optional[int], range: Range, text: str) -> None:
        self.document_content_updated(uri)

    def document_content_updated(self, uri: DocumentUri) -> None:
        pass

    def document_closed(self, uri: DocumentUri) -> None:
        pass

    def goto_definition(self, position: DocumentPosition) -> List[Location]:
        return []

    def semantic_highlight(self, position: DocumentPosition) -> List[DocumentHighlight]:
        return []

    def references(self, position: DocumentPosition) -> List[Location]:
        return []

    # access to the server

    def document(self, uri: DocumentUri) -> Optional[TextDocument]:
        return self.server.documents_manager.get(uri)

    def push_diagnostics(self, uri: DocumentUri, version: Optional[int], diagnostics: List[Diagnostic]) -> bool:
        return self.server.push_diagnostics(uri, version, diagnostics)

    def error(self, id: Any, code: int, message: str) -> None:
        self.server.error(id, code, message)

    def log(self, message: str) -> None:
        self.server.log(message)

    def trace(self, message: str) -> None:
        self.server.trace(message)
