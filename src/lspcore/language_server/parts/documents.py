from typing import TYPE_CHECKING, Any, Final, List

from lspcore.core.documents_manager import DocumentError, InvalidRangeError, UnknownDocumentError
from lspcore.core.lsp.types import (
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    ErrorCodes,
    LSPErrorCodes,
    ServerCapabilities,
    TextDocumentContentChangeEvent,
    TextDocumentContentChangeEventType1,
    TextDocumentIdentifier,
    TextDocumentItem,
    TextDocumentSyncKind,
    TextDocumentSyncOptions,
    VersionedTextDocumentIdentifier,
)
from lspcore.core.utils.logging import LoggingDescriptor
from lspcore.jsonrpc2.protocol import JsonRPCErrorException, rpc_method

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


def document_error_to_rpc_error(error: DocumentError) -> JsonRPCErrorException:
    if isinstance(error, InvalidRangeError):
        return JsonRPCErrorException(ErrorCodes.INVALID_RANGE, str(error), {"uri": error.uri})
    if isinstance(error, UnknownDocumentError):
        return JsonRPCErrorException(LSPErrorCodes.REQUEST_FAILED, str(error), {"uri": error.uri})
    return JsonRPCErrorException(LSPErrorCodes.REQUEST_FAILED, f"{type(error).__name__}: {error}")


class TextDocumentProtocolPart(LanguageServerProtocolPart):
    """Keeps the documents manager in sync with the client and tells the engine about it."""

    _logger: Final = LoggingDescriptor()

    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def extend_capabilities(self, capabilities: ServerCapabilities) -> None:
        capabilities.text_document_sync = TextDocumentSyncOptions(
            open_close=True,
            change=TextDocumentSyncKind.INCREMENTAL,
        )

    @rpc_method(name="textDocument/didOpen", param_type=DidOpenTextDocumentParams)
    @_logger.call
    def _text_document_did_open(self, text_document: TextDocumentItem, *args: Any, **kwargs: Any) -> None:
        self.parent.documents_manager.open(
            text_document.uri,
            text_document.language_id,
            text_document.version,
            text_document.text,
        )

        self.parent.engine.document_opened(
            text_document.uri,
            text_document.language_id,
            text_document.version,
            text_document.text,
        )

    @rpc_method(name="textDocument/didChange", param_type=DidChangeTextDocumentParams)
    @_logger.call
    def _text_document_did_change(
        self,
        text_document: VersionedTextDocumentIdentifier,
        content_changes: List[TextDocumentContentChangeEvent],
        *args: Any,
        **kwargs: Any,
    ) -> None:
        try:
            self.parent.documents_manager.apply_changes(text_document.uri, text_document.version, content_changes)
        except DocumentError as e:
            raise document_error_to_rpc_error(e) from e

        engine = self.parent.engine
        for change in content_changes:
            if isinstance(change, TextDocumentContentChangeEventType1):
                engine.document_range_updated(text_document.uri, text_document.version, change.range, change.text)
            else:
                engine.document_content_replaced(text_document.uri, text_document.version, change.text)

    @rpc_method(name="textDocument/didClose", param_type=DidCloseTextDocumentParams)
    @_logger.call
    def _text_document_did_close(self, text_document: TextDocumentIdentifier, *args: Any, **kwargs: Any) -> None:
        try:
            self.parent.documents_manager.close(text_document.uri)
        except DocumentError as e:
            raise document_error_to_rpc_error(e) from e

        self.parent.engine.document_closed(text_document.uri)
