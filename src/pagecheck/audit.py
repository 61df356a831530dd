# SPDX-License-Identifier: BSD-3-Clause

"""
Accessibility auditing against WCAG conformance levels.

The auditor runs a set of rules over a document. Each rule belongs to
a conformance level (A or AA) and checks one success criterion that
can be decided from the markup alone; criteria that need a rendered
page, such as color contrast, are out of reach.

Rule identifiers follow the names used by axe-core, so results can be
compared with browser based audits.
"""

from __future__ import annotations

import re
from logging import getLogger
from typing import Callable, Iterator, NamedTuple

from pagecheck.document import Document, Element, describe, text_content
from pagecheck.validator import (
    AccessibilityResult,
    ValidationResult,
    Validator,
    ValidatorOptions,
    Violation,
)

_LOG = getLogger(__name__)

_RE_WCAG_LEVEL = re.compile(r"^(?:wcag\s*)?(2\.[012])\s*(a{1,3})$", re.IGNORECASE)
_RE_LANG = re.compile(r"^[a-z]{2,8}(-[a-z0-9]{1,8})*$", re.IGNORECASE)
_RE_REFRESH = re.compile(r"^\s*(\d+(?:\.\d*)?)")

# WCAG allows time limits of more than 20 hours.
_REFRESH_LIMIT = 72000

RuleFunc = Callable[[Document], Iterator[Violation]]


class Rule(NamedTuple):
    """An accessibility rule and the conformance level it belongs to."""

    name: str
    level: int
    """Number of A's in the level: 1 for A, 2 for AA."""
    criterion: str
    func: RuleFunc
    until: tuple[int, int] | None = None
    """Last WCAG version that contains the criterion, if it was removed."""


RULES: list[Rule] = []


def rule(
    name: str, level: str, criterion: str, until: tuple[int, int] | None = None
) -> Callable[[RuleFunc], RuleFunc]:
    """Register the decorated function as an accessibility rule."""

    def register(func: RuleFunc) -> RuleFunc:
        RULES.append(Rule(name, len(level), criterion, func, until))
        return func

    return register


def parse_wcag_level(spec: str) -> tuple[tuple[int, int], int]:
    """
    Parse a WCAG target such as C{"2.1 A"} or C{"2.0 AA"}.

    @return: C{(version, level)}
        The WCAG version as a C{(major, minor)} pair and the number
        of A's in the level.
    @raise ValueError:
        If C{spec} is not a WCAG target this auditor knows.
    """
    match = _RE_WCAG_LEVEL.match(spec.strip())
    if match is None:
        raise ValueError(f'Unknown WCAG level "{spec}", expected for example "2.1 A"')
    version, level = match.groups()
    major, minor = version.split(".")
    return (int(major), int(minor)), len(level)


def rules_for(spec: str) -> list[Rule]:
    """Return the rules that apply at the given WCAG target."""
    version, level = parse_wcag_level(spec)
    return [
        rule_
        for rule_ in RULES
        if rule_.level <= level and (rule_.until is None or version <= rule_.until)
    ]


def _attr(element: Element, name: str) -> str:
    return (element.get(name) or "").strip()


def _labelled_by(element: Element, ids: dict[str, list[Element]]) -> str:
    texts = []
    for ident in _attr(element, "aria-labelledby").split():
        for target in ids.get(ident, ()):
            texts.append(text_content(target).strip())
    return " ".join(text for text in texts if text)


def accessible_name(element: Element, document: Document) -> str:
    """Approximate the accessible name computation for C{element}.

    Considers C{aria-labelledby}, C{aria-label}, the element's text,
    C{alt} text of contained images and finally C{title}.
    """
    name = _labelled_by(element, document.by_id())
    if name:
        return name
    name = _attr(element, "aria-label")
    if name:
        return name
    name = text_content(element).strip()
    if name:
        return name
    for image in element.iter("img"):
        name = _attr(image, "alt")
        if name:
            return name
    return _attr(element, "title")


def _is_hidden(element: Element) -> bool:
    for node in (element, *element.iterancestors()):
        if node.get("hidden") is not None or node.get("aria-hidden") == "true":
            return True
    return False


@rule("html-has-lang", "A", "3.1.1")
def _html_has_lang(document: Document) -> Iterator[Violation]:
    if not (document.lang or "").strip():
        yield Violation(
            "html-has-lang", "<html> element must have a lang attribute", "serious"
        )


@rule("html-lang-valid", "A", "3.1.1")
def _html_lang_valid(document: Document) -> Iterator[Violation]:
    lang = (document.lang or "").strip()
    if lang and _RE_LANG.match(lang) is None:
        yield Violation(
            "html-lang-valid",
            f'<html> element must have a valid lang attribute, not "{lang}"',
            "serious",
        )


@rule("document-title", "A", "2.4.2")
def _document_title(document: Document) -> Iterator[Violation]:
    if not document.title:
        yield Violation(
            "document-title", "Document must have a non-empty <title>", "serious"
        )


@rule("image-alt", "A", "1.1.1")
def _image_alt(document: Document) -> Iterator[Violation]:
    for image in document.iter("img"):
        if image.get("alt") is not None:
            # An empty alt marks a decorative image.
            continue
        if image.get("role") in ("presentation", "none"):
            continue
        if _attr(image, "aria-label") or _attr(image, "title"):
            continue
        if _labelled_by(image, document.by_id()):
            continue
        yield Violation(
            "image-alt", "Images must have alternate text", "critical", target=describe(image)
        )


@rule("input-image-alt", "A", "1.1.1")
def _input_image_alt(document: Document) -> Iterator[Violation]:
    for control in document.iter("input"):
        if control.get("type", "").lower() != "image":
            continue
        if _attr(control, "alt") or _attr(control, "aria-label") or _attr(control, "title"):
            continue
        yield Violation(
            "input-image-alt",
            "Image buttons must have alternate text",
            "critical",
            target=describe(control),
        )


@rule("link-name", "A", "2.4.4")
def _link_name(document: Document) -> Iterator[Violation]:
    for link in document.iter("a"):
        if link.get("href") is None or _is_hidden(link):
            continue
        if not accessible_name(link, document):
            yield Violation(
                "link-name",
                "Links must have discernible text",
                "serious",
                target=describe(link),
            )


@rule("button-name", "A", "4.1.2")
def _button_name(document: Document) -> Iterator[Violation]:
    for button in document.iter("button", "input"):
        if button.tag == "input":
            kind = button.get("type", "").lower()
            if kind in ("submit", "reset"):
                # These get a default label from the browser.
                continue
            if kind != "button":
                continue
            named = bool(_attr(button, "value")) or bool(accessible_name(button, document))
        else:
            named = bool(accessible_name(button, document))
        if not named and not _is_hidden(button):
            yield Violation(
                "button-name",
                "Buttons must have discernible text",
                "critical",
                target=describe(button),
            )


_UNLABELLED_INPUT_TYPES = ("hidden", "submit", "reset", "button", "image")


@rule("label", "A", "1.3.1")
def _label(document: Document) -> Iterator[Violation]:
    labelled_ids = {
        label.get("for") for label in document.iter("label") if label.get("for")
    }
    for control in document.iter("input", "select", "textarea"):
        if control.tag == "input":
            if control.get("type", "text").lower() in _UNLABELLED_INPUT_TYPES:
                continue
        if _is_hidden(control):
            continue
        if control.get("id") in labelled_ids:
            continue
        if any(node.tag == "label" for node in control.iterancestors()):
            continue
        if _attr(control, "aria-label") or _attr(control, "title"):
            continue
        if _labelled_by(control, document.by_id()):
            continue
        yield Violation(
            "label",
            "Form elements must have labels",
            "critical",
            target=describe(control),
        )


@rule("duplicate-id", "A", "4.1.1", until=(2, 1))
def _duplicate_id(document: Document) -> Iterator[Violation]:
    for ident, elements in document.by_id().items():
        if len(elements) > 1:
            yield Violation(
                "duplicate-id",
                f'ID "{ident}" is used by {len(elements):d} elements',
                "minor",
                target=describe(elements[1]),
            )


@rule("frame-title", "A", "4.1.2")
def _frame_title(document: Document) -> Iterator[Violation]:
    for frame in document.iter("iframe", "frame"):
        if not (_attr(frame, "title") or _attr(frame, "aria-label")):
            yield Violation(
                "frame-title",
                "Frames must have an accessible name",
                "serious",
                target=describe(frame),
            )


@rule("meta-refresh", "A", "2.2.1")
def _meta_refresh(document: Document) -> Iterator[Violation]:
    meta = document.meta_http_equiv("refresh")
    if meta is None:
        return
    match = _RE_REFRESH.match(meta.get("content", ""))
    if match is not None and 0 < float(match.group(1)) <= _REFRESH_LIMIT:
        yield Violation(
            "meta-refresh",
            "Timed refresh must not be used",
            "critical",
            target=describe(meta),
        )


@rule("blink", "A", "2.2.2")
def _blink(document: Document) -> Iterator[Violation]:
    for element in document.iter("blink"):
        yield Violation(
            "blink", "<blink> elements are deprecated and must not be used", "serious",
            target=describe(element),
        )


@rule("marquee", "A", "2.2.2")
def _marquee(document: Document) -> Iterator[Violation]:
    for element in document.iter("marquee"):
        yield Violation(
            "marquee", "<marquee> elements are deprecated and must not be used", "serious",
            target=describe(element),
        )


@rule("meta-viewport", "AA", "1.4.4")
def _meta_viewport(document: Document) -> Iterator[Violation]:
    meta = document.meta_named("viewport")
    if meta is None:
        return
    settings = {}
    for part in re.split(r"[,;]", meta.get("content", "")):
        key, sep_, value = part.partition("=")
        settings[key.strip().lower()] = value.strip().lower()
    if settings.get("user-scalable") in ("no", "0"):
        yield Violation(
            "meta-viewport",
            "Zooming and scaling must not be disabled (user-scalable)",
            "critical",
            target=describe(meta),
        )
    try:
        maximum = float(settings["maximum-scale"])
    except (KeyError, ValueError):
        return
    if maximum < 2:
        yield Violation(
            "meta-viewport",
            f"Zooming must allow at least 200%, maximum-scale is {maximum:g}",
            "critical",
            target=describe(meta),
        )


@rule("empty-heading", "AA", "2.4.6")
def _empty_heading(document: Document) -> Iterator[Violation]:
    for heading in document.headings():
        if not _is_hidden(heading) and not accessible_name(heading, document):
            yield Violation(
                "empty-heading",
                "Headings must not be empty",
                "minor",
                target=describe(heading),
            )


@rule("valid-lang", "AA", "3.1.2")
def _valid_lang(document: Document) -> Iterator[Violation]:
    for element in document.iter():
        if element is document.root:
            continue
        lang = element.get("lang")
        if lang is not None and lang.strip() and _RE_LANG.match(lang.strip()) is None:
            yield Violation(
                "valid-lang",
                f'lang attribute must have a valid value, not "{lang}"',
                "serious",
                target=describe(element),
            )


def audit(document: Document, level: str) -> list[Violation]:
    """Run all rules for WCAG target C{level} and return the violations."""
    violations = []
    for rule_ in rules_for(level):
        found = list(rule_.func(document))
        _LOG.debug(
            "Rule %s (WCAG %s): %d violations", rule_.name, rule_.criterion, len(found)
        )
        violations += found
    return violations


class AccessibilityAuditor(Validator):
    """Validator that audits accessibility at the level in the options.

    The returned result has no markup errors, only an accessibility part.
    """

    def validate(self, document: Document, options: ValidatorOptions) -> ValidationResult:
        level = options.wcag
        if level is None:
            raise ValueError("No WCAG level requested")
        violations = audit(document, level)
        if options.debug:
            for violation in violations:
                _LOG.debug("WCAG %s: %s", level, violation)
        if not options.quiet:
            _LOG.info(
                "Accessibility audit (WCAG %s) of %s: %d violations",
                level,
                document.url or "document",
                len(violations),
            )
        return ValidationResult((), AccessibilityResult(level, violations))
