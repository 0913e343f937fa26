import enum
from typing import Any, Dict, Final, List, Optional, Union

from lspcore.core.documents_manager import DocumentsManager
from lspcore.core.event import event
from lspcore.core.lsp.types import (
    CancelParams,
    ClientInfo,
    Diagnostic,
    DocumentUri,
    ErrorCodes,
    InitializedParams,
    InitializeParams,
    InitializeResult,
    ServerCapabilities,
    SetTraceParams,
    TraceValues,
    WorkspaceFolder,
)
from lspcore.core.types import MessageId
from lspcore.core.utils.logging import LoggingDescriptor
from lspcore.jsonrpc2.protocol import (
    JsonRPCErrorException,
    JsonRPCErrors,
    JsonRPCException,
    JsonRPCNotification,
    JsonRPCProtocol,
    JsonRPCRequest,
    ProtocolPartDescriptor,
    rpc_method,
)
from lspcore.jsonrpc2.transport import Transport

from .engine import LanguageEngine
from .parts.definition import DefinitionProtocolPart
from .parts.diagnostics import DiagnosticsProtocolPart
from .parts.document_highlight import DocumentHighlightProtocolPart
from .parts.documents import TextDocumentProtocolPart
from .parts.protocol_part import LanguageServerProtocolPart
from .parts.references import ReferencesProtocolPart
from .parts.window import WindowProtocolPart
from .parts.workspace import WorkspaceProtocolPart

__all__ = ["LanguageServerException", "LanguageServerProtocol", "ServerState"]


class LanguageServerException(JsonRPCException):
    pass


class ServerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    """`initialize` is answered, waiting for the `initialized` notification."""
    INITIALIZED = "initialized"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    EXITED = "exited"


class LanguageServerProtocol(JsonRPCProtocol):
    """A language server for one client.

    Enforces the lifecycle of the connection (`initialize` first, `exit` after
    `shutdown`), keeps the documents of the client and calls the hooks of the
    `LanguageEngine`.
    """

    __logger = LoggingDescriptor()

    window: Final = ProtocolPartDescriptor(WindowProtocolPart)
    workspace: Final = ProtocolPartDescriptor(WorkspaceProtocolPart)
    documents: Final = ProtocolPartDescriptor(TextDocumentProtocolPart)
    diagnostics: Final = ProtocolPartDescriptor(DiagnosticsProtocolPart)
    definition: Final = ProtocolPartDescriptor(DefinitionProtocolPart)
    document_highlight: Final = ProtocolPartDescriptor(DocumentHighlightProtocolPart)
    references: Final = ProtocolPartDescriptor(ReferencesProtocolPart)

    def __init__(
        self,
        transport: Transport,
        engine: Optional[LanguageEngine] = None,
        max_consecutive_failures: Optional[int] = None,
    ) -> None:
        super().__init__(transport, max_consecutive_failures)

        self.engine = engine if engine is not None else LanguageEngine()
        self.documents_manager = DocumentsManager()

        self.state = ServerState.UNINITIALIZED
        self.initialize_received = False
        self.shutdown_received = False

        self.parent_process_id: Optional[int] = None
        self.client_info: Optional[ClientInfo] = None
        self.client_capabilities: Dict[str, Any] = {}
        self.initialization_options: Any = None
        self._trace_value = TraceValues.OFF
        self._capabilities: Optional[ServerCapabilities] = None

        self.engine.attach(self)

        self.registry.initialize_parts()

    @event
    def on_initialize(sender, initialization_options: Optional[Any] = None) -> None:  # pragma: no cover
        ...

    @event
    def on_initialized(sender) -> None:  # pragma: no cover
        ...

    @event
    def on_shutdown(sender) -> None:  # pragma: no cover
        ...

    @event
    def on_exit(sender) -> None:  # pragma: no cover
        ...

    @property
    def trace_value(self) -> TraceValues:
        return self._trace_value

    @trace_value.setter
    def trace_value(self, value: TraceValues) -> None:
        self._trace_value = value

    @property
    def capabilities(self) -> ServerCapabilities:
        if self._capabilities is None:
            self._capabilities = self._collect_capabilities()
        return self._capabilities

    def _collect_capabilities(self) -> ServerCapabilities:
        capabilities = ServerCapabilities()

        for p in self.registry.parts:
            if isinstance(p, LanguageServerProtocolPart):
                p.extend_capabilities(capabilities)

        return capabilities

    def _check_request(self, message: JsonRPCRequest) -> None:
        if message.method == "exit":
            return

        if message.method == "initialize":
            if self.initialize_received:
                raise JsonRPCErrorException(JsonRPCErrors.INVALID_REQUEST, "Server is already initialized.")
            self.initialize_received = True
            return

        if self.state == ServerState.UNINITIALIZED:
            raise JsonRPCErrorException(ErrorCodes.SERVER_NOT_INITIALIZED, "Server not initialized.")

        if self.state in (ServerState.SHUTDOWN_REQUESTED, ServerState.EXITED):
            raise JsonRPCErrorException(JsonRPCErrors.INVALID_REQUEST, "Server is shutting down.")

    def _check_notification(self, message: JsonRPCNotification) -> bool:
        if message.method == "exit":
            return True

        return self.state in (ServerState.INITIALIZING, ServerState.INITIALIZED)

    @rpc_method(name="initialize", param_type=InitializeParams)
    @__logger.call
    def _initialize(
        self,
        capabilities: Optional[Dict[str, Any]] = None,
        root_path: Optional[str] = None,
        root_uri: Optional[str] = None,
        initialization_options: Optional[Any] = None,
        trace: Optional[TraceValues] = None,
        client_info: Optional[ClientInfo] = None,
        workspace_folders: Optional[List[WorkspaceFolder]] = None,
        process_id: Optional[int] = None,
        *args: Any,
        **kwargs: Any,
    ) -> InitializeResult:
        self.parent_process_id = process_id
        self.trace_value = trace or TraceValues.OFF
        self.client_info = client_info
        self.client_capabilities = capabilities or {}
        self.initialization_options = initialization_options

        self.workspace.root_uri = root_uri
        self.workspace.workspace_folders = list(workspace_folders or [])

        server_info = self.engine.initialize(root_uri, self.workspace.workspace_folders)

        self.on_initialize(self, initialization_options)

        self.state = ServerState.INITIALIZING

        return InitializeResult(capabilities=self.capabilities, server_info=server_info)

    @rpc_method(name="initialized", param_type=InitializedParams)
    @__logger.call
    def _initialized(self, *args: Any, **kwargs: Any) -> None:
        if self.state != ServerState.INITIALIZING:
            self.__logger.warning(lambda: f"Ignore 'initialized' notification in state {self.state.name}.")
            return

        self.state = ServerState.INITIALIZED

        self.engine.initialized()

        self.on_initialized(self)

    @rpc_method(name="shutdown")
    @__logger.call
    def _shutdown(self, *args: Any, **kwargs: Any) -> None:
        self.shutdown_received = True
        self.state = ServerState.SHUTDOWN_REQUESTED

        self.on_shutdown(self)

    @rpc_method(name="exit")
    @__logger.call
    def _exit(self, *args: Any, **kwargs: Any) -> None:
        self.state = ServerState.EXITED

        self.on_exit(self)

        self.stop(normal=self.shutdown_received)

    @rpc_method(name="$/setTrace", param_type=SetTraceParams)
    @__logger.call
    def _set_trace(self, value: TraceValues, *args: Any, **kwargs: Any) -> None:
        self.trace_value = value

    @rpc_method(name="$/cancelRequest", param_type=CancelParams)
    @__logger.call
    def _cancel_request(self, id: Union[int, str], **kwargs: Any) -> None:
        # requests are answered one after another, so there is never anything to cancel
        self.__logger.debug(lambda: f"Ignore cancel request for {id!r}.")

    # operations for the engine

    def push_diagnostics(self, uri: DocumentUri, version: Optional[int], diagnostics: List[Diagnostic]) -> bool:
        return self.diagnostics.publish_diagnostics(uri, version, diagnostics)

    def error(self, id: MessageId, code: int, message: str) -> None:
        """Answers the request that is currently handled with an error instead of its result."""
        current = self.current_request
        if current is None or id is None or current.id != id:
            raise LanguageServerException(f"Request {id!r} is not the request currently answered.")

        self.send_error(code, message, id=id)

    def log(self, message: str) -> bool:
        return self.window.log(message)

    def trace(self, message: str) -> bool:
        return self.window.trace(message)
