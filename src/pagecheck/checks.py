# SPDX-License-Identifier: BSD-3-Clause

"""
The checks run against the document under test.

Every check is a function that looks at a L{CheckContext} and logs
what it finds on a L{Report}; logging a warning or an error fails the
check. Checks are independent: each one gets its own freshly parsed
document and none depends on the outcome of another.

L{Suite} runs all checks on a fixture and hands the reports to
a L{Scribe}.
"""

from __future__ import annotations

import re
from enum import Enum
from logging import getLogger
from time import perf_counter
from typing import Callable, Iterator, Mapping

from pagecheck.decode import encoding_from_bom, report_declared_encoding
from pagecheck.document import Document, text_content
from pagecheck.fixture import Fixture
from pagecheck.report import Report, Scribe
from pagecheck.style import compute_style
from pagecheck.validate import PageValidator
from pagecheck.validator import ExternalValidatorFailure, Validator, ValidatorOptions

_LOG = getLogger(__name__)

_RE_DOCTYPE = re.compile(r"^\s*<!DOCTYPE html>", re.IGNORECASE)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000",
    "Referrer-Policy": "no-referrer",
}
"""Security policies that must be declared using C{<meta http-equiv>},
with their exact expected content.
"""

BODY_LAYOUT = {
    "display": "flex",
    "justify-content": "center",
    "align-items": "center",
}
"""Computed style of C{<body>} that centers the page content."""


class Expectations:
    """The values the checks compare the document against."""

    def __init__(
        self,
        title: str = "Hello World",
        heading: str = "Hello World",
        lang: str = "en",
        charset: str = "UTF-8",
        viewport: str = "width=device-width, initial-scale=1.0",
        exact_viewport: bool = True,
        max_size: int = 1024,
        max_content_size: int = 10 * 1024,
        security_headers: Mapping[str, str] = SECURITY_HEADERS,
        body_layout: Mapping[str, str] = BODY_LAYOUT,
        wcag: str = "2.1 A",
    ):
        self.title = title
        self.heading = heading
        self.lang = lang
        self.charset = charset
        self.viewport = viewport
        self.exact_viewport = exact_viewport
        """If C{False}, each comma separated part of L{viewport} must occur
        in the viewport content, in any order and formatting.
        """
        self.max_size = max_size
        """Maximum file size in bytes."""
        self.max_content_size = max_content_size
        """Size in bytes that the file must stay below."""
        self.security_headers = dict(security_headers)
        self.body_layout = dict(body_layout)
        self.wcag = wcag


class Group(Enum):
    """The kinds of checks."""

    STRUCTURE = "structure"
    SECURITY = "security"
    PERFORMANCE = "performance"
    STYLE = "style"
    MARKUP = "markup"
    ACCESSIBILITY = "accessibility"


class CheckContext:
    """What a check gets to look at.

    The document is parsed anew for every context, so checks never share
    a document tree.
    """

    def __init__(
        self,
        fixture: Fixture,
        expect: Expectations,
        validator: Validator,
        options: ValidatorOptions,
    ):
        self.fixture = fixture
        self.document = fixture.parse()
        self.expect = expect
        self.validator = validator
        self.options = options


CheckFunc = Callable[[CheckContext, Report], None]


class Check:
    """A named check function."""

    def __init__(self, name: str, group: Group, func: CheckFunc):
        self.name = name
        self.group = group
        self.func = func

    def __repr__(self) -> str:
        return f"Check({self.name!r}, {self.group})"

    def run(
        self,
        fixture: Fixture,
        expect: Expectations,
        validator: Validator,
        options: ValidatorOptions,
    ) -> Report:
        """Run this check on C{fixture} and return its report.

        An exception escaping from the check function fails this check,
        but is not propagated.
        """
        report = Report(self.name, self.group.value)
        start = perf_counter()
        try:
            self.func(CheckContext(fixture, expect, validator, options), report)
        except Exception as ex:  # pylint: disable=broad-except
            report.exception("Check could not be completed: %s", ex)
        report.duration = perf_counter() - start
        _LOG.debug("Check %s: %s", self.name, "pass" if report.ok else "fail")
        return report


CHECKS: list[Check] = []
"""The checks that do not depend on expectations, in registration order."""


def check(name: str, group: Group) -> Callable[[CheckFunc], CheckFunc]:
    """Register the decorated function as a check."""

    def register(func: CheckFunc) -> CheckFunc:
        CHECKS.append(Check(name, group, func))
        return func

    return register


# Structure


@check("doctype", Group.STRUCTURE)
def check_doctype(ctx: CheckContext, report: Report) -> None:
    if _RE_DOCTYPE.match(ctx.fixture.text) is None:
        report.error("Document does not start with <!DOCTYPE html>")


@check("lang", Group.STRUCTURE)
def check_lang(ctx: CheckContext, report: Report) -> None:
    lang = ctx.document.lang
    if lang is None:
        report.error("<html> element has no lang attribute")
    elif lang != ctx.expect.lang:
        report.error('<html> lang is "%s", expected "%s"', lang, ctx.expect.lang)


@check("charset", Group.STRUCTURE)
def check_charset(ctx: CheckContext, report: Report) -> None:
    charset = ctx.document.meta_charset()
    if charset is None:
        report.error("No <meta charset> declaration")
    elif charset.lower() != ctx.expect.charset.lower():
        report.error(
            '<meta charset> is "%s", expected "%s"', charset, ctx.expect.charset
        )


@check("viewport", Group.STRUCTURE)
def check_viewport(ctx: CheckContext, report: Report) -> None:
    expected = ctx.expect.viewport
    meta = ctx.document.meta_named("viewport")
    if meta is None:
        report.error('No <meta name="viewport"> declaration')
        return
    content = meta.get("content", "")
    if ctx.expect.exact_viewport:
        if content != expected:
            report.error('Viewport content is "%s", expected "%s"', content, expected)
    else:
        for part in expected.split(","):
            if part.strip() not in content:
                report.error('Viewport content "%s" lacks "%s"', content, part.strip())


@check("title", Group.STRUCTURE)
def check_title(ctx: CheckContext, report: Report) -> None:
    title = ctx.document.title
    if title != ctx.expect.title:
        report.error('Document title is "%s", expected "%s"', title, ctx.expect.title)


@check("heading", Group.STRUCTURE)
def check_heading(ctx: CheckContext, report: Report) -> None:
    headings = ctx.document.find_all("h1")
    if len(headings) != 1:
        report.error("Expected exactly one <h1>, found %d", len(headings))
    if headings:
        text = text_content(headings[0])
        if text != ctx.expect.heading:
            report.error('<h1> text is "%s", expected "%s"', text, ctx.expect.heading)


@check("landmarks", Group.STRUCTURE)
def check_landmarks(ctx: CheckContext, report: Report) -> None:
    document = ctx.document
    main = document.find("main")
    if main is None:
        report.error("No <main> element")
        return
    heading = document.find("h1")
    if heading is not None and not Document.contains(main, heading):
        report.error("<h1> is not inside <main>")


@check("heading_order", Group.STRUCTURE)
def check_heading_order(ctx: CheckContext, report: Report) -> None:
    headings = ctx.document.headings()
    if not headings:
        report.error("Document has no headings")
    elif headings[0].tag != "h1":
        report.error("First heading is <%s>, expected <h1>", headings[0].tag)


@check("bom", Group.STRUCTURE)
def check_bom(ctx: CheckContext, report: Report) -> None:
    encoding = encoding_from_bom(ctx.fixture.data)
    if encoding is not None:
        report.error("Document starts with a byte order mark (%s)", encoding)


@check("charset_consistency", Group.STRUCTURE)
def check_charset_consistency(ctx: CheckContext, report: Report) -> None:
    # The fixture loader only accepts UTF-8.
    used_encoding = "utf-8"
    bom_encoding = encoding_from_bom(ctx.fixture.data)
    if bom_encoding is not None:
        report_declared_encoding(bom_encoding, "Byte Order Mark", used_encoding, report)
    charset = ctx.document.meta_charset()
    if charset is not None:
        report_declared_encoding(charset, "<meta charset>", used_encoding, report)
    else:
        report.info("No encoding declared in the document")


# Performance


@check("size", Group.PERFORMANCE)
def check_size(ctx: CheckContext, report: Report) -> None:
    size = ctx.fixture.size
    if size > ctx.expect.max_size:
        report.error(
            "Document is %d bytes, should be at most %d", size, ctx.expect.max_size
        )


@check("content_size", Group.PERFORMANCE)
def check_content_size(ctx: CheckContext, report: Report) -> None:
    size = len(ctx.document.source.encode("utf-8"))
    if size >= ctx.expect.max_content_size:
        report.error(
            "Document content is %d bytes, should be below %d",
            size,
            ctx.expect.max_content_size,
        )


@check("blocking_scripts", Group.PERFORMANCE)
def check_blocking_scripts(ctx: CheckContext, report: Report) -> None:
    for script in ctx.document.iter("script"):
        if script.get("async") is None and script.get("defer") is None:
            report.error(
                "Render-blocking script: %s", script.get("src") or "(inline script)"
            )


@check("inline_style", Group.PERFORMANCE)
def check_inline_style(ctx: CheckContext, report: Report) -> None:
    if ctx.document.find("style") is None:
        report.error("No <style> element with critical CSS")


# Computed styles


@check("h1_visible", Group.STYLE)
def check_h1_visible(ctx: CheckContext, report: Report) -> None:
    try:
        style = compute_style(ctx.document, "h1")
    except LookupError:
        report.error("No <h1> element to style")
        return
    if style.display == "none":
        report.error("<h1> has display: none")
    if style.visibility == "hidden":
        report.error("<h1> has visibility: hidden")


@check("body_layout", Group.STYLE)
def check_body_layout(ctx: CheckContext, report: Report) -> None:
    try:
        style = compute_style(ctx.document, "body")
    except LookupError:
        report.error("No <body> element to style")
        return
    for name, expected in ctx.expect.body_layout.items():
        value = style[name]
        if value != expected:
            report.error(
                'Computed %s of <body> is "%s", expected "%s"', name, value, expected
            )


@check("standard_css", Group.STYLE)
def check_standard_css(ctx: CheckContext, report: Report) -> None:
    css = "\n".join(style.text or "" for style in ctx.document.iter("style"))
    for name, value in ctx.expect.body_layout.items():
        declaration = f"{name}: {value}"
        if declaration not in css:
            report.error('Style sheet does not contain "%s"', declaration)


# Delegated validators


@check("markup", Group.MARKUP)
def check_markup(ctx: CheckContext, report: Report) -> None:
    options = ctx.options.replace(wcag=None)
    try:
        result = ctx.validator.validate(ctx.document, options)
    except ExternalValidatorFailure as ex:
        report.exception("Markup validator failed: %s", ex)
        return
    report.add_violations("markup", result.errors)


@check("accessibility", Group.ACCESSIBILITY)
def check_accessibility(ctx: CheckContext, report: Report) -> None:
    level = ctx.options.wcag or ctx.expect.wcag
    options = ctx.options.replace(wcag=level)
    try:
        result = ctx.validator.validate(ctx.document, options)
    except ExternalValidatorFailure as ex:
        report.exception("Accessibility validator failed: %s", ex)
        return
    accessibility = result.accessibility
    if accessibility is None:
        report.error("Validator returned no accessibility result for WCAG %s", level)
    else:
        report.add_violations(f"WCAG {level}", accessibility.violations)
    if result.errors:
        report.error(
            "Validation at WCAG %s did not succeed: %d markup errors",
            level,
            len(result.errors),
        )


# Security


def _security_header_check(header: str, expected: str) -> Check:
    def check_security_header(ctx: CheckContext, report: Report) -> None:
        meta = ctx.document.meta_http_equiv(header)
        if meta is None:
            report.error('No <meta http-equiv="%s"> declaration', header)
            return
        content = meta.get("content")
        if content != expected:
            report.error('%s is "%s", expected "%s"', header, content, expected)

    return Check(f"security_header[{header}]", Group.SECURITY, check_security_header)


def iter_checks(expect: Expectations) -> Iterator[Check]:
    """Yield every check to run for the given expectations."""
    yield from CHECKS
    for header, expected in expect.security_headers.items():
        yield _security_header_check(header, expected)


class Suite:
    """Runs all checks on a fixture."""

    def __init__(
        self,
        expect: Expectations | None = None,
        options: ValidatorOptions | None = None,
        validator: Validator | None = None,
    ):
        """
        Initialize a suite.

        @param expect:
            Values to check the document against; the defaults describe
            the Hello World page.
        @param options:
            Settings for the delegated validators; the default validates
            offline and audits at the WCAG level of C{expect}.
        @param validator:
            Validator for the markup and accessibility checks.
            The suite closes it when the suite is closed.
        """
        self.expect = expect or Expectations()
        self.options = options or ValidatorOptions(wcag=self.expect.wcag, quiet=True)
        self.validator = validator or PageValidator()
        self.checks = tuple(iter_checks(self.expect))

    def __enter__(self) -> "Suite":
        return self

    def __exit__(self, exc_type: object, exc_value: object, traceback: object) -> None:
        self.close()

    def run_check(self, check_: Check, fixture: Fixture) -> Report:
        return check_.run(fixture, self.expect, self.validator, self.options)

    def run(self, fixture: Fixture, scribe: Scribe) -> None:
        """Run every check on C{fixture} and add the reports to C{scribe}."""
        _LOG.info("Running %d checks on %s", len(self.checks), fixture.path)
        for check_ in self.checks:
            scribe.add_report(self.run_check(check_, fixture))

    def close(self) -> None:
        self.validator.close()
