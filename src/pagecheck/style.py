# SPDX-License-Identifier: BSD-3-Clause

"""
Computed styles of document elements.

This resolves the CSS cascade for the style sheets embedded in a
document: C{<style>} elements and C{style} attributes. External style
sheets are not loaded and there is no layout, so only declared
(or default) values can be computed, not used values such as widths
in pixels.

Style sheets are parsed by tinycss2 and selectors are matched by
cssselect2.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Iterable, NamedTuple

import cssselect2
import tinycss2

from pagecheck.document import Document, Element

_LOG = getLogger(__name__)

INITIAL_VALUES = {
    "display": "inline",
    "visibility": "visible",
    "justify-content": "normal",
    "align-items": "normal",
    "flex-direction": "row",
    "color": "canvastext",
    "font-family": "serif",
    "font-size": "medium",
    "font-weight": "normal",
    "text-align": "start",
}
"""Values used for properties that are not declared and not inherited."""

INHERITED = frozenset(
    ("visibility", "color", "font-family", "font-size", "font-weight", "text-align")
)

_BLOCK_ELEMENTS = frozenset(
    """
    address article aside blockquote body center details dialog dd div dl dt
    fieldset figcaption figure footer form h1 h2 h3 h4 h5 h6 header hgroup hr
    html legend main menu nav ol p pre search section summary ul
    """.split()
)
_HIDDEN_ELEMENTS = frozenset(
    "area base datalist head link meta noscript param script style template title".split()
)
_USER_AGENT_DISPLAY = {
    "li": "list-item",
    "table": "table",
    "tr": "table-row",
    "td": "table-cell",
    "th": "table-cell",
    "thead": "table-header-group",
    "tbody": "table-row-group",
    "tfoot": "table-footer-group",
    "caption": "table-caption",
    "img": "inline",
    "button": "inline-block",
    "input": "inline-block",
    "select": "inline-block",
    "textarea": "inline-block",
}


def user_agent_display(element: Element) -> str:
    """Return the C{display} value a browser style sheet gives C{element}."""
    if element.get("hidden") is not None:
        return "none"
    tag = element.tag
    if tag in _HIDDEN_ELEMENTS:
        return "none"
    if tag in _BLOCK_ELEMENTS:
        return "block"
    return _USER_AGENT_DISPLAY.get(tag, "inline")


class _Declared(NamedTuple):
    """A declaration together with its position in the cascade."""

    important: bool
    inline: bool
    specificity: tuple[int, int, int]
    order: tuple[int, int]
    name: str
    value: str


def _serialize_value(tokens: Iterable[Any]) -> str:
    """Serialize a declaration value with keywords in lower case,
    since CSS keywords are case-insensitive.
    """
    return "".join(
        token.lower_value if token.type == "ident" else tinycss2.serialize([token])
        for token in tokens
    )


def _declarations(tokens: Iterable[object] | str) -> Iterable[tuple[str, str, bool]]:
    """Yield C{(name, value, important)} for every valid declaration."""
    for item in tinycss2.parse_declaration_list(
        tokens, skip_comments=True, skip_whitespace=True
    ):
        if item.type == "declaration":
            value = " ".join(_serialize_value(item.value).split())
            yield item.lower_name, value, item.important
        elif item.type == "error":
            _LOG.debug("Ignoring invalid declaration: %s", item.message)


class StyleSheets:
    """The style rules embedded in one document, ready for matching."""

    def __init__(self, document: Document):
        self.document = document
        self._matcher = cssselect2.Matcher()
        for style in document.iter("style"):
            if style.get("type", "text/css").lower() != "text/css":
                continue
            self._add_sheet(style.text or "")
        self._root = cssselect2.ElementWrapper.from_html_root(document.root)

    def _add_sheet(self, css: str) -> None:
        for rule in tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True):
            if rule.type != "qualified-rule":
                # At-rules (@media, @font-face etc.) are not evaluated.
                continue
            try:
                selectors = cssselect2.compile_selector_list(rule.prelude)
            except cssselect2.SelectorError as ex:
                _LOG.debug("Ignoring rule with invalid selector: %s", ex)
                continue
            declarations = list(_declarations(rule.content))
            for selector in selectors:
                self._matcher.add_selector(selector, declarations)

    def query(self, selector: str) -> cssselect2.ElementWrapper | None:
        """Return the first element matching the CSS C{selector}, or C{None}."""
        return self._root.query(selector)

    def declared(self, wrapper: cssselect2.ElementWrapper) -> dict[str, str]:
        """Return the cascaded values declared for one element."""
        cascade = []
        for specificity, order, pseudo_type, declarations in self._matcher.match(wrapper):
            if pseudo_type is not None:
                continue
            for index, (name, value, important) in enumerate(declarations):
                cascade.append(
                    _Declared(important, False, specificity, (order, index), name, value)
                )
        inline = wrapper.etree_element.get("style")
        if inline:
            for index, (name, value, important) in enumerate(_declarations(inline)):
                cascade.append(
                    _Declared(important, True, (0, 0, 0), (0, index), name, value)
                )
        cascade.sort()
        return {decl.name: decl.value for decl in cascade}

    def compute(self, wrapper: cssselect2.ElementWrapper) -> "ComputedStyle":
        """Return the computed style of one element."""
        parent = wrapper.parent
        parent_style = None if parent is None else self.compute(parent)
        declared = self.declared(wrapper)
        element = wrapper.etree_element
        values = {}
        for name in set(INITIAL_VALUES) | set(declared):
            value = declared.get(name)
            if value == "initial":
                value = INITIAL_VALUES.get(name, "")
            elif value == "inherit" or (value is None and name in INHERITED):
                value = None if parent_style is None else parent_style.get(name)
            if value is None:
                if name == "display":
                    value = user_agent_display(element)
                else:
                    value = INITIAL_VALUES.get(name, "")
            values[name] = value
        return ComputedStyle(element, values)


class ComputedStyle:
    """The computed values of CSS properties for one element.

    Properties are looked up by their CSS names, for example
    C{style["justify-content"]}. Unknown properties that were never
    declared compute to the empty string.
    """

    def __init__(self, element: Element, values: dict[str, str]):
        self.element = element
        self._values = values

    def __getitem__(self, name: str) -> str:
        return self._values.get(name.lower(), "")

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._values.get(name.lower(), default)

    @property
    def display(self) -> str:
        return self["display"]

    @property
    def visibility(self) -> str:
        return self["visibility"]

    def __repr__(self) -> str:
        return f"ComputedStyle({self.element.tag!r}, {self._values!r})"


def compute_style(document: Document, selector: str) -> ComputedStyle:
    """
    Return the computed style of the first element matching C{selector}.

    @raise LookupError:
        If no element in C{document} matches C{selector}.
    """
    sheets = StyleSheets(document)
    wrapper = sheets.query(selector)
    if wrapper is None:
        raise LookupError(f'No element matches "{selector}"')
    return sheets.compute(wrapper)
