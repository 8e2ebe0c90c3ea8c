"""Text document snapshots and the document store interface.

Offsets reported by ESLint are UTF-16 code unit offsets into the document,
which is also the unit LSP positions use by default.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from lsprotocol.types import Position
from pygls import uris


# Only these end a line in LSP positions; str.splitlines knows many more.
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def uri_to_path(uri: str) -> str:
    """Convert a document URI to a file system path.

    Non-file URIs are returned unchanged.
    """
    path = uris.to_fs_path(uri)
    return path if path is not None else uri


def path_to_uri(path: str) -> str | None:
    """Convert a file system path to a ``file:`` URI."""
    return uris.from_fs_path(path)


@dataclass
class TextDocument:
    """Snapshot of an open document at a given version.

    The line table is computed on first use and cached; the text must not
    be changed afterwards.

    Attributes:
        uri: Document URI.
        language_id: Language identifier sent by the client.
        version: Version number of the content.
        text: Full document content.
    """

    uri: str
    language_id: str
    version: int
    text: str
    _line_starts: list[int] | None = field(default=None, init=False, repr=False, compare=False)
    _line_lengths: list[int] = field(default_factory=list, init=False, repr=False, compare=False)

    @property
    def file_path(self) -> str:
        return uri_to_path(self.uri)

    @property
    def is_file(self) -> bool:
        return self.uri.startswith("file:")

    def _line_table(self) -> list[int]:
        """Return the UTF-16 start offset of every line, filling the line lengths."""
        if self._line_starts is None:
            starts: list[int] = []
            lengths: list[int] = []
            total = 0
            position = 0
            for match in _LINE_BREAK.finditer(self.text):
                length = _utf16_len(self.text[position:match.start()])
                starts.append(total)
                lengths.append(length)
                total += length + len(match.group())
                position = match.end()
            starts.append(total)
            lengths.append(_utf16_len(self.text[position:]))
            self._line_lengths = lengths
            self._line_starts = starts
        return self._line_starts

    def position_at(self, offset: int) -> Position:
        """Convert a UTF-16 offset into a line/character position.

        Offsets are clamped to the document bounds. An offset inside a
        line break maps to the end of its line.
        """
        starts = self._line_table()
        offset = max(0, offset)
        line = bisect_right(starts, offset) - 1
        character = min(offset - starts[line], self._line_lengths[line])
        return Position(line=line, character=character)


class DocumentStore(Protocol):
    """Read access to the documents currently open in the editor."""

    def get(self, uri: str) -> TextDocument | None:
        """Return the open document for a URI, or None."""
        ...

    def all(self) -> Iterable[TextDocument]:
        """Return every open document."""
        ...


class InMemoryDocuments:
    """Document store backed by a dict, used by the CLI and in tests."""

    def __init__(self, documents: Iterable[TextDocument] = ()) -> None:
        self._documents: dict[str, TextDocument] = {doc.uri: doc for doc in documents}

    def open(self, document: TextDocument) -> None:
        self._documents[document.uri] = document

    def close(self, uri: str) -> None:
        self._documents.pop(uri, None)

    def get(self, uri: str) -> TextDocument | None:
        return self._documents.get(uri)

    def all(self) -> list[TextDocument]:
        return list(self._documents.values())
