# SPDX-License-Identifier: BSD-3-Clause

"""
Loads the document under test from disk.

L{load_fixture} reads a file once and returns a L{Fixture}, which holds
the raw bytes and the decoded text and can produce parsed documents.
If the file cannot be used, L{FixtureUnavailable} is raised; there is
no point in running any check on a document that could not be read.
"""

from __future__ import annotations

from enum import Enum, auto
from logging import getLogger
from os import PathLike
from pathlib import Path
from typing import Union

from pagecheck.document import Document

_LOG = getLogger(__name__)

StrPath = Union[str, "PathLike[str]"]


class Unavailable(Enum):
    """The reasons a fixture can be unavailable."""

    NOT_FOUND = auto()
    """There is no file at the given path."""

    NOT_READABLE = auto()
    """The file exists, but could not be read or decoded."""


class FixtureUnavailable(Exception):
    """Raised when the document under test cannot be loaded."""

    def __init__(self, path: Path, reason: Unavailable, detail: str):
        super().__init__(path, reason, detail)
        self.path = path
        """Path of the document that could not be loaded."""
        self.reason = reason
        """Why the document could not be loaded."""
        self.detail = detail
        """Human readable description of the problem."""

    def __str__(self) -> str:
        if self.reason is Unavailable.NOT_FOUND:
            return f"Document not found at {self.path}: {self.detail}"
        else:
            return f"Document at {self.path} is not readable: {self.detail}"


class Fixture:
    """
    An HTML document loaded from disk.

    The contents are fixed when the fixture is created; use L{parse}
    to get a document tree.
    """

    def __init__(self, path: Path, data: bytes, text: str):
        self._path = path
        self._data = data
        self._text = text

    @property
    def path(self) -> Path:
        """The path the document was loaded from."""
        return self._path

    @property
    def data(self) -> bytes:
        """The raw contents of the document."""
        return self._data

    @property
    def text(self) -> str:
        """The contents of the document, decoded as UTF-8.

        A byte order mark, if present, is kept as the first character.
        """
        return self._text

    @property
    def size(self) -> int:
        """The size of the document in bytes."""
        return len(self._data)

    def parse(self) -> Document:
        """Return a new document tree for this fixture.

        Every call parses the text again, so callers can never observe
        each other's changes to a tree.
        """
        return Document.parse(self._text, url=self._path.resolve().as_uri())


def load_fixture(path: StrPath) -> Fixture:
    """
    Read the document at C{path}.

    @raise FixtureUnavailable:
        If there is no file at C{path}, if it cannot be read or if its
        contents are not valid UTF-8.
    """

    path = Path(path)
    _LOG.debug("Loading fixture: %s", path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as ex:
        raise FixtureUnavailable(path, Unavailable.NOT_FOUND, ex.strerror) from ex
    except IsADirectoryError as ex:
        raise FixtureUnavailable(path, Unavailable.NOT_FOUND, ex.strerror) from ex
    except OSError as ex:
        raise FixtureUnavailable(
            path, Unavailable.NOT_READABLE, ex.strerror or str(ex)
        ) from ex

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as ex:
        raise FixtureUnavailable(
            path, Unavailable.NOT_READABLE, f"not valid UTF-8: {ex.reason}"
        ) from ex

    _LOG.info("Loaded %s (%d bytes)", path, len(data))
    return Fixture(path, data, text)
