from typing import TYPE_CHECKING, Any, List, Optional

from lspcore.core.lsp.types import (
    Location,
    Position,
    ReferenceContext,
    ReferenceParams,
    ServerCapabilities,
    TextDocumentIdentifier,
)
from lspcore.jsonrpc2.protocol import rpc_method
from lspcore.language_server.engine import DocumentPosition

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class ReferencesProtocolPart(LanguageServerProtocolPart):
    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def extend_capabilities(self, capabilities: ServerCapabilities) -> None:
        if self.parent.engine.overrides("references"):
            capabilities.references_provider = True

    @rpc_method(name="textDocument/references", param_type=ReferenceParams)
    def _text_document_references(
        self,
        text_document: TextDocumentIdentifier,
        position: Position,
        context: Optional[ReferenceContext] = None,
        *args: Any,
        **kwargs: Any,
    ) -> List[Location]:
        # the engine decides whether the declaration is a reference, `context` is not passed on
        return self.parent.engine.references(DocumentPosition(uri=text_document.uri, position=position))
