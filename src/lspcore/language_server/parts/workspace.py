from typing import TYPE_CHECKING, Any, Final, List, Optional

from lspcore.core.lsp.types import DidChangeConfigurationParams, WorkspaceFolder
from lspcore.core.utils.logging import LoggingDescriptor
from lspcore.jsonrpc2.protocol import rpc_method

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class WorkspaceProtocolPart(LanguageServerProtocolPart):
    _logger: Final = LoggingDescriptor()

    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)
        self.root_uri: Optional[str] = None
        self.workspace_folders: List[WorkspaceFolder] = []
        self.settings: Any = None

    @rpc_method(name="workspace/didChangeConfiguration", param_type=DidChangeConfigurationParams)
    @_logger.call
    def _workspace_did_change_configuration(self, settings: Any, *args: Any, **kwargs: Any) -> None:
        self.settings = settings

        self.parent.engine.change_configuration(settings)
