from typing import TYPE_CHECKING, Any, List

from lspcore.core.lsp.types import (
    DefinitionParams,
    Location,
    Position,
    ServerCapabilities,
    TextDocumentIdentifier,
)
from lspcore.jsonrpc2.protocol import rpc_method
from lspcore.language_server.engine import DocumentPosition

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class DefinitionProtocolPart(LanguageServerProtocolPart):
    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def extend_capabilities(self, capabilities: ServerCapabilities) -> None:
        if self.parent.engine.overrides("goto_definition"):
            capabilities.definition_provider = True

    @rpc_method(name="textDocument/definition", param_type=DefinitionParams)
    def _text_document_definition(
        self,
        text_document: TextDocumentIdentifier,
        position: Position,
        *args: Any,
        **kwargs: Any,
    ) -> List[Location]:
        return self.parent.engine.goto_definition(DocumentPosition(uri=text_document.uri, position=position))
