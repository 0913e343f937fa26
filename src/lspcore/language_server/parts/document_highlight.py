from typing import TYPE_CHECKING, Any, List

from lspcore.core.lsp.types import (
    DocumentHighlight,
    DocumentHighlightParams,
    Position,
    ServerCapabilities,
    TextDocumentIdentifier,
)
from lspcore.jsonrpc2.protocol import rpc_method
from lspcore.language_server.engine import DocumentPosition

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class DocumentHighlightProtocolPart(LanguageServerProtocolPart):
    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def extend_capabilities(self, capabilities: ServerCapabilities) -> None:
        if self.parent.engine.overrides("semantic_highlight"):
            capabilities.document_highlight_provider = True

    @rpc_method(name="textDocument/documentHighlight", param_type=DocumentHighlightParams)
    def _text_document_document_highlight(
        self,
        text_document: TextDocumentIdentifier,
        position: Position,
        *args: Any,
        **kwargs: Any,
    ) -> List[DocumentHighlight]:
        return self.parent.engine.semantic_highlight(DocumentPosition(uri=text_document.uri, position=position))
