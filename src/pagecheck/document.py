# SPDX-License-Identifier: BSD-3-Clause

"""
The document model that checks query.

A L{Document} wraps an lxml element tree produced by the html5lib
HTML5 parser, so elements like C{<main>} end up where a browser would
put them. Element and attribute names in the tree are lower case and
not namespaced.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from lxml import etree
from lxml.html import html5parser

Element = etree._Element  # pylint: disable=protected-access

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

_RE_WHITESPACE = re.compile(r"[ \t\n\f\r]+")

_PARSER = html5parser.HTMLParser(namespaceHTMLElements=False)


def collapse_whitespace(text: str) -> str:
    """Strip and collapse ASCII whitespace, like the DOM does for titles."""
    return _RE_WHITESPACE.sub(" ", text).strip(" ")


def text_content(element: Element) -> str:
    """Return all text inside C{element}, like the DOM C{textContent}.

    Comment contents are skipped, but text following a comment is not.
    """
    parts = [element.text or ""]
    for child in element:
        if isinstance(child.tag, str):
            parts.append(text_content(child))
        parts.append(child.tail or "")
    return "".join(parts)


def describe(element: Element) -> str:
    """Return a short selector-like description of C{element}."""
    desc = str(element.tag)
    ident = element.get("id")
    if ident:
        desc += f"#{ident}"
    return desc


class Document:
    """A parsed HTML document."""

    @classmethod
    def parse(cls, source: str, url: str | None = None) -> "Document":
        """Parse the HTML C{source} text into a new document.

        The HTML5 parsing algorithm never rejects input, so this cannot fail;
        whether the source was well formed is for the markup validator
        to decide.
        """
        root = html5parser.document_fromstring(source, parser=_PARSER)
        return cls(source, root, url)

    def __init__(self, source: str, root: Element, url: str | None = None):
        self.source = source
        """The text this document was parsed from."""

        self.root = root
        """The C{<html>} element."""

        self.url = url
        """Where the document was loaded from, if known."""

    @property
    def head(self) -> Element | None:
        return self.root.find("head")

    @property
    def body(self) -> Element | None:
        return self.root.find("body")

    @property
    def lang(self) -> str | None:
        """The C{lang} attribute of the root element, if any."""
        return self.root.get("lang")

    @property
    def title(self) -> str:
        """The document title, with whitespace collapsed.

        This is the empty string if there is no C{<title>} element.
        """
        title = self.find("title")
        return "" if title is None else collapse_whitespace(text_content(title))

    def iter(self, *tags: str) -> Iterator[Element]:
        """Iterate through the elements with the given tag names
        in document order.

        Without tag names, all elements are returned; comments and
        processing instructions never are.
        """
        for element in self.root.iter(*tags):
            if isinstance(element.tag, str):
                yield element

    def find(self, tag: str) -> Element | None:
        """Return the first element with the given tag, or C{None}."""
        return next(self.iter(tag), None)

    def find_all(self, *tags: str) -> list[Element]:
        return list(self.iter(*tags))

    def headings(self) -> list[Element]:
        """Return all C{h1}-C{h6} elements in document order."""
        return self.find_all(*HEADING_TAGS)

    def meta_charset(self) -> str | None:
        """Return the value of the first C{<meta charset>}, if any."""
        for meta in self.iter("meta"):
            charset = meta.get("charset")
            if charset is not None:
                return charset
        return None

    def meta_named(self, name: str) -> Element | None:
        """Return the first C{<meta>} with the given C{name} attribute.

        Names are compared case-insensitively.
        """
        name = name.lower()
        for meta in self.iter("meta"):
            if meta.get("name", "").lower() == name:
                return meta
        return None

    def meta_http_equiv(self, header: str) -> Element | None:
        """Return the first C{<meta>} whose C{http-equiv} names C{header}.

        Header names are compared case-insensitively, as in HTTP.
        """
        header = header.lower()
        for meta in self.iter("meta"):
            if meta.get("http-equiv", "").lower() == header:
                return meta
        return None

    def by_id(self) -> dict[str, list[Element]]:
        """Map each C{id} in the document to the elements carrying it."""
        ids: dict[str, list[Element]] = {}
        for element in self.iter():
            ident = element.get("id")
            if ident:
                ids.setdefault(ident, []).append(element)
        return ids

    @staticmethod
    def contains(ancestor: Element, element: Element) -> bool:
        """Return C{True} iff C{element} is C{ancestor} or inside it,
        like the DOM C{Node.contains()}.
        """
        if element is ancestor:
            return True
        return any(node is ancestor for node in element.iterancestors())
