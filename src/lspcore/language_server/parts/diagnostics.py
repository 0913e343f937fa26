from typing import TYPE_CHECKING, Final, List, Optional

from lspcore.core.lsp.types import Diagnostic, DocumentUri, PublishDiagnosticsParams
from lspcore.core.utils.logging import LoggingDescriptor

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class DiagnosticsProtocolPart(LanguageServerProtocolPart):
    """Sends diagnostics to the client.

    Every notification replaces all diagnostics the client shows for the
    document, so callers always send the complete list. Diagnostics for a
    version older than the current version of the document are dropped.
    """

    _logger: Final = LoggingDescriptor()

    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def is_stale(self, uri: DocumentUri, version: Optional[int]) -> bool:
        document = self.parent.documents_manager.get(uri)
        return (
            version is not None
            and document is not None
            and document.version is not None
            and version < document.version
        )

    @_logger.call
    def publish_diagnostics(self, uri: DocumentUri, version: Optional[int], diagnostics: List[Diagnostic]) -> bool:
        if self.is_stale(uri, version):
            self._logger.debug(lambda: f"Drop diagnostics for {uri!r} version {version}, document has a newer version.")
            return False

        self.parent.send_notification(
            "textDocument/publishDiagnostics",
            PublishDiagnosticsParams(uri=uri, version=version, diagnostics=diagnostics),
        )
        return True
