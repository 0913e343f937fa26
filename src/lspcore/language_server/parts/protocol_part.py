from typing import TYPE_CHECKING

from lspcore.core.lsp.types import ServerCapabilities
from lspcore.jsonrpc2.protocol import GenericJsonRPCProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class LanguageServerProtocolPart(GenericJsonRPCProtocolPart["LanguageServerProtocol"]):
    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def extend_capabilities(self, capabilities: ServerCapabilities) -> None:
        pass
