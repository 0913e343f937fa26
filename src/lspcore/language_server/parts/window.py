from typing import TYPE_CHECKING, Final, Optional

from lspcore.core.lsp.types import LogTraceParams, TraceValues
from lspcore.core.utils.logging import LoggingDescriptor

from .protocol_part import LanguageServerProtocolPart

if TYPE_CHECKING:
    from lspcore.language_server.protocol import LanguageServerProtocol


class WindowProtocolPart(LanguageServerProtocolPart):
    """The `$/logTrace` side channel to the client, filtered by the trace level."""

    _logger: Final = LoggingDescriptor()

    def __init__(self, parent: "LanguageServerProtocol") -> None:
        super().__init__(parent)

    def log_trace(self, message: str, verbose: Optional[str] = None) -> None:
        self.parent.send_notification("$/logTrace", LogTraceParams(message=message, verbose=verbose))

    def log(self, message: str) -> bool:
        self._logger.debug(lambda: f"log: {message}")

        if self.parent.trace_value.level < TraceValues.MESSAGES.level:
            return False

        self.log_trace(message)
        return True

    def trace(self, message: str) -> bool:
        self._logger.trace(lambda: f"trace: {message}")

        if self.parent.trace_value.level < TraceValues.VERBOSE.level:
            return False

        self.log_trace(message)
        return True
