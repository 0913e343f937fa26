from typing import Dict, Final, Iterator, List, Optional, Sequence, Union

from .event import event
from .lsp.types import (
    DocumentUri,
    Range,
    TextDocumentContentChangeEventType1,
    TextDocumentContentChangeEventType2,
)
from .text_document import DocumentError, InvalidRangeError, TextDocument
from .utils.logging import LoggingDescriptor

__all__ = [
    "DocumentError",
    "UnknownDocumentError",
    "InvalidRangeError",
    "DocumentsManager",
]


class UnknownDocumentError(DocumentError):
    def __init__(self, uri: DocumentUri) -> None:
        super().__init__(uri, f"Document {uri!r} is not open.")


class DocumentsManager:
    """The text of all documents the client has opened.

    Documents are only changed through this class. A closed document keeps its
    last content but can't be edited until it is opened again.
    """

    _logger: Final = LoggingDescriptor()

    def __init__(self) -> None:
        self._documents: Dict[DocumentUri, TextDocument] = {}

    @property
    def documents(self) -> List[TextDocument]:
        return list(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[DocumentUri]:
        return iter(self._documents)

    def __contains__(self, uri: object) -> bool:
        return uri in self._documents

    @event
    def did_open(sender, document: TextDocument) -> None: ...

    @event
    def did_change(sender, document: TextDocument) -> None: ...

    @event
    def did_close(sender, document: TextDocument) -> None: ...

    def get(self, uri: DocumentUri) -> Optional[TextDocument]:
        return self._documents.get(uri, None)

    def _get_opened(self, uri: DocumentUri) -> TextDocument:
        document = self._documents.get(uri, None)
        if document is None or not document.opened_in_editor:
            raise UnknownDocumentError(uri)
        return document

    def _check_version(self, document: TextDocument, version: Optional[int]) -> None:
        if version is not None and document.version is not None and version < document.version:
            self._logger.warning(
                lambda: f"Version of {document.document_uri!r} goes back from {document.version} to {version}."
            )

    @_logger.call
    def open(self, uri: DocumentUri, language_id: str, version: Optional[int], text: str) -> TextDocument:
        document = self._documents.get(uri, None)

        if document is None:
            document = TextDocument(document_uri=uri, text=text, language_id=language_id, version=version)
            self._documents[uri] = document
        else:
            self._logger.debug(lambda: f"Reopen document {uri!r}, replacing version {document.version}.")
            document.language_id = language_id
            document.apply_full_change(None, text)
            document.version = version

        document.opened_in_editor = True

        self.did_open(self, document)

        return document

    @_logger.call
    def apply_full(self, uri: DocumentUri, version: Optional[int], text: str) -> TextDocument:
        document = self._get_opened(uri)
        self._check_version(document, version)

        document.apply_full_change(version, text)

        self.did_change(self, document)
        return document

    @_logger.call
    def apply_range(self, uri: DocumentUri, version: Optional[int], range: Range, text: str) -> TextDocument:
        document = self._get_opened(uri)
        self._check_version(document, version)

        document.apply_incremental_change(version, range, text)

        self.did_change(self, document)
        return document

    @_logger.call
    def apply_changes(
        self,
        uri: DocumentUri,
        version: Optional[int],
        changes: Sequence[Union[TextDocumentContentChangeEventType1, TextDocumentContentChangeEventType2]],
    ) -> TextDocument:
        """Applies the content changes of one `didChange` notification in order.

        If one of the changes fails, the document is restored to the text and
        version it had before and the error is raised.
        """
        document = self._get_opened(uri)
        self._check_version(document, version)

        old_text = document.text()
        old_version = document.version

        try:
            for change in changes:
                if isinstance(change, TextDocumentContentChangeEventType1):
                    document.apply_incremental_change(None, change.range, change.text)
                else:
                    document.apply_full_change(None, change.text)
        except DocumentError:
            document.apply_full_change(None, old_text)
            document.version = old_version
            raise

        if version is not None:
            document.version = version

        self.did_change(self, document)
        return document

    @_logger.call
    def close(self, uri: DocumentUri) -> TextDocument:
        document = self._get_opened(uri)
        document.opened_in_editor = False

        self.did_close(self, document)
        return document
