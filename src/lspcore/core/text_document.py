from __future__ import annotations

import re
from typing import Final, List, Optional

from .lsp.types import DocumentUri, Position, Range
from .utils.logging import LoggingDescriptor

__all__ = [
    "DocumentError",
    "InvalidRangeError",
    "TextDocument",
    "split_lines",
    "utf16_length",
    "index_from_utf16",
]


class DocumentError(Exception):
    def __init__(self, uri: DocumentUri, message: str) -> None:
        super().__init__(message)
        self.uri = uri


class InvalidRangeError(DocumentError):
    pass


_LINE_BREAK: Final = re.compile(r"\r\n|\r|\n")


def is_multibyte_char(char: str) -> bool:
    return ord(char) > 0xFFFF


def utf16_length(s: str) -> int:
    return sum(2 if is_multibyte_char(c) else 1 for c in s)


def index_from_utf16(line: str, character: int) -> Optional[int]:
    """Converts a UTF-16 column of `line` to a string index.

    Returns `None` if the column is behind the end of the line or points into the
    middle of a surrogate pair.
    """
    utf16_counter = 0

    for i, c in enumerate(line):
        if utf16_counter == character:
            return i
        if utf16_counter > character:
            return None

        utf16_counter += 2 if is_multibyte_char(c) else 1

    return len(line) if utf16_counter == character else None


def split_lines(text: str) -> List[str]:
    """Splits `text` into lines including their line terminators.

    `\\r\\n`, `\\r` and `\\n` end a line. The last line has no terminator, so a
    text ending with a line break has an empty last line.
    """
    result = []
    start = 0
    for m in _LINE_BREAK.finditer(text):
        result.append(text[start : m.end()])
        start = m.end()
    result.append(text[start:])
    return result


class TextDocument:
    _logger: Final = LoggingDescriptor()

    def __init__(
        self,
        document_uri: DocumentUri,
        text: str,
        language_id: Optional[str] = None,
        version: Optional[int] = None,
    ) -> None:
        self.document_uri = document_uri
        self.language_id = language_id
        self._version = version
        self._text = text
        self._lines: Optional[List[str]] = None
        self.opened_in_editor = False

    @property
    def version(self) -> Optional[int]:
        return self._version

    @version.setter
    def version(self, value: Optional[int]) -> None:
        self._version = value

    def __str__(self) -> str:  # pragma: no cover
        return self.__repr__()

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"TextDocument(document_uri={self.document_uri!r}, language_id={self.language_id!r}, "
            f"version={self._version!r}, opened_in_editor={self.opened_in_editor!r})"
        )

    def text(self) -> str:
        return self._text

    def get_lines(self) -> List[str]:
        if self._lines is None:
            self._lines = split_lines(self._text)

        return self._lines

    def offset_at(self, position: Position) -> int:
        """Returns the index into `text()` for a position, or raises `InvalidRangeError`."""
        lines = self.get_lines()

        if position.line < 0 or position.character < 0:
            raise InvalidRangeError(self.document_uri, f"Position {position} is negative.")

        if position.line >= len(lines):
            raise InvalidRangeError(
                self.document_uri,
                f"Line {position.line} is out of range, the document has {len(lines)} line(s).",
            )

        line = lines[position.line]
        content = line.rstrip("\r\n")
        column = index_from_utf16(content, position.character)
        if column is None:
            raise InvalidRangeError(
                self.document_uri,
                f"Character {position.character} is not a valid position in line {position.line} "
                f"with a length of {utf16_length(content)}.",
            )

        return sum(len(e) for e in lines[: position.line]) + column

    @_logger.call
    def apply_full_change(self, version: Optional[int], text: Optional[str]) -> None:
        if version is not None:
            self._version = version
        if text is not None:
            self._text = text
            self._lines = None

    @_logger.call
    def apply_incremental_change(self, version: Optional[int], range: Range, text: str) -> None:
        """Replaces the text inside `range`.

        The range is checked before anything is modified, so on `InvalidRangeError`
        neither the text nor the version have changed.
        """
        if range.start > range.end:
            raise InvalidRangeError(self.document_uri, f"Start position is greater then end position {range}.")

        start = self.offset_at(range.start)
        end = self.offset_at(range.end)

        self._text = self._text[:start] + text + self._text[end:]
        self._lines = None

        if version is not None:
            self._version = version
