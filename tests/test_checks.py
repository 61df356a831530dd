"""
Unit tests for `pagecheck.checks`, using broken variants of the page.
"""

from logging import ERROR
from pathlib import Path

from pytest import fixture, mark

from pagecheck.checks import (
    CHECKS,
    SECURITY_HEADERS,
    Check,
    Expectations,
    Group,
    Suite,
    iter_checks,
)
from pagecheck.fixture import Fixture
from pagecheck.plugin import PluginCollection
from pagecheck.report import Scribe
from pagecheck.validator import (
    ExternalValidatorFailure,
    ValidationResult,
    Validator,
    ValidatorOptions,
)

from utils import INDEX_PATH, page

HELLO = INDEX_PATH.read_text(encoding="utf-8")


def make_fixture(text, data=None):
    if data is None:
        data = text.encode("utf-8")
    return Fixture(Path("test.html"), data, text)


@fixture
def suite():
    with Suite(options=ValidatorOptions(wcag="2.1 A", quiet=True)) as check_suite:
        yield check_suite


def run(suite, name, text, data=None):
    """Run the check named C{name} on the given page text."""
    for check_ in suite.checks:
        if check_.name == name:
            return suite.run_check(check_, make_fixture(text, data))
    raise KeyError(name)


def test_registry():
    """Test that every check has a unique name and all groups are used."""
    names = [check_.name for check_ in iter_checks(Expectations())]
    assert len(names) == len(set(names))
    assert {check_.group for check_ in iter_checks(Expectations())} == set(Group)
    assert len(names) == len(CHECKS) + len(SECURITY_HEADERS)


@mark.parametrize(
    "name, text",
    (
        ("doctype", HELLO.replace("<!DOCTYPE html>\n", "")),
        ("lang", HELLO.replace(' lang="en"', "")),
        ("lang", HELLO.replace(' lang="en"', ' lang="nl"')),
        ("charset", HELLO.replace('<meta charset="UTF-8">\n', "")),
        ("charset", HELLO.replace('charset="UTF-8"', 'charset="ISO-8859-1"')),
        ("viewport", HELLO.replace("width=device-width, ", "")),
        ("viewport", HELLO.replace("initial-scale=1.0", "initial-scale=1")),
        ("title", HELLO.replace("<title>Hello World</title>", "<title>Hi</title>")),
        ("title", HELLO.replace("<title>Hello World</title>\n", "")),
        ("heading", HELLO.replace("<h1>Hello World</h1>", "<h1>Hello</h1>")),
        ("heading", HELLO.replace("</h1>", "</h1><h1>Again</h1>")),
        ("heading", HELLO.replace("<h1>Hello World</h1>", "<p>Hello World</p>")),
        ("landmarks", HELLO.replace("<main>", "<div>").replace("</main>", "</div>")),
        ("landmarks", HELLO.replace("<main>\n<h1>Hello World</h1>", "<h1>Hello World</h1><main>")),
        ("heading_order", HELLO.replace("<h1>", "<h2>Intro</h2><h1>")),
        ("content_size", HELLO.replace("</main>", "<p>" + "x" * 10240 + "</p></main>")),
        ("size", HELLO.replace("</main>", "<p>" + "x" * 400 + "</p></main>")),
        ("blocking_scripts", HELLO.replace("</head>", '<script src="a.js"></script></head>')),
        ("inline_style", HELLO.replace("<style>", "<noscript>").replace("</style>", "</noscript>")),
        ("h1_visible", HELLO.replace("<h1>", '<h1 style="display: none">')),
        ("h1_visible", HELLO.replace("</style>", "main { visibility: hidden }</style>")),
        ("body_layout", HELLO.replace("display: flex;", "display: block;")),
        ("body_layout", HELLO.replace("</style>", "body { align-items: start }</style>")),
        ("standard_css", HELLO.replace("justify-content: center", "justify-content:center")),
        ("markup", HELLO.replace("</main>", "</div></main>")),
        ("accessibility", HELLO.replace("</main>", '<img src="a.png"></main>')),
        ("security_header[X-Frame-Options]", HELLO.replace('"DENY"', '"SAMEORIGIN"')),
        (
            "security_header[Referrer-Policy]",
            HELLO.replace('<meta http-equiv="Referrer-Policy" content="no-referrer">\n', ""),
        ),
    ),
)
def test_check_fails(suite, name, text):
    """Test that a check fails on a page that breaks its rule."""
    report = run(suite, name, text)
    assert not report.ok
    assert report.errors


def test_checks_are_independent(suite):
    """Test that breaking one header fails that header check only."""
    text = HELLO.replace("nosniff", "sniff")
    scribe = Scribe("test.html", PluginCollection())
    suite.run(make_fixture(text), scribe)
    assert [report.check_name for report in scribe.get_failed_reports()] == [
        "security_header[X-Content-Type-Options]"
    ]


def test_security_header_name_case(suite):
    """Test that the http-equiv name is matched case-insensitively."""
    text = HELLO.replace("X-Frame-Options", "x-frame-options")
    assert run(suite, "security_header[X-Frame-Options]", text).ok


def test_security_header_content_exact(suite):
    """Test that the content must match exactly, including case."""
    text = HELLO.replace('"DENY"', '"deny"')
    report = run(suite, "security_header[X-Frame-Options]", text)
    assert not report.ok
    assert report.errors == ['X-Frame-Options is "deny", expected "DENY"']


def test_doctype_case_insensitive(suite):
    assert run(suite, "doctype", HELLO.replace("<!DOCTYPE html>", "<!doctype html>")).ok


def test_charset_value_case(suite):
    assert run(suite, "charset", HELLO.replace('"UTF-8"', '"utf-8"')).ok


def test_bom(suite):
    """Test that a byte order mark fails the BOM check."""
    report = run(suite, "bom", "\ufeff" + HELLO, b"\xef\xbb\xbf" + HELLO.encode())
    assert not report.ok


def test_charset_consistency_nonstandard(suite):
    """Test that a non-standard charset name is noted but does not fail."""
    report = run(suite, "charset_consistency", HELLO.replace('"UTF-8"', '"utf8"'))
    assert report.ok
    assert report.messages


def test_charset_consistency_mismatch(suite):
    """Test that declaring another encoding fails the check."""
    report = run(suite, "charset_consistency", HELLO.replace('"UTF-8"', '"windows-1252"'))
    assert not report.ok


def test_size_ceilings(suite):
    """Test the boundaries of both size ceilings."""
    expect = Expectations(max_size=len(HELLO), max_content_size=len(HELLO) + 1)
    with Suite(expect) as sized:
        assert run(sized, "size", HELLO).ok
        assert run(sized, "content_size", HELLO).ok
    expect = Expectations(max_size=len(HELLO) - 1, max_content_size=len(HELLO))
    with Suite(expect) as sized:
        assert not run(sized, "size", HELLO).ok
        assert not run(sized, "content_size", HELLO).ok


def test_viewport_loose():
    """Test that loose viewport matching accepts reordered settings."""
    text = HELLO.replace(
        "width=device-width, initial-scale=1.0", "initial-scale=1.0,width=device-width"
    )
    with Suite() as strict:
        assert not run(strict, "viewport", text).ok
    with Suite(Expectations(exact_viewport=False)) as loose:
        assert run(loose, "viewport", text).ok
        assert not run(loose, "viewport", HELLO.replace("initial-scale=1.0", "")).ok


def test_async_script_allowed(suite):
    text = HELLO.replace("</head>", '<script src="a.js" defer></script></head>')
    assert run(suite, "blocking_scripts", text).ok


def test_exception_fails_check_only():
    """Test that an exception inside a check fails just that check."""

    def broken(ctx, report):
        raise RuntimeError("boom")

    check_ = Check("broken", Group.STRUCTURE, broken)
    with Suite() as suite:
        report = suite.run_check(check_, make_fixture(HELLO))
    assert not report.ok
    assert report.messages[0][0] == ERROR
    assert "boom" in report.messages[0][1]


class FailingValidator(Validator):
    """Validator that cannot reach its service."""

    def __init__(self):
        self.closed = False

    def validate(self, document, options):
        raise ExternalValidatorFailure("service unreachable")

    def close(self):
        self.closed = True


@mark.parametrize("name", ("markup", "accessibility"))
def test_validator_failure_fails_check(name):
    """Test that a validator failure is a failed check, not a pass."""
    validator = FailingValidator()
    with Suite(validator=validator) as suite:
        report = run(suite, name, HELLO)
    assert not report.ok
    assert "service unreachable" in report.errors[0]
    assert validator.closed


class CountingValidator(Validator):
    """Validator that reports one markup error."""

    def validate(self, document, options):
        return ValidationResult(errors=["bad markup"])


def test_markup_errors_are_violations():
    """Test that each markup error becomes a violation on the report."""
    with Suite(validator=CountingValidator()) as suite:
        report = run(suite, "markup", HELLO)
    assert not report.ok
    assert report.violations == ["bad markup"]


def test_full_run_on_broken_page(suite):
    """Test a run on a page that fails several checks."""
    scribe = Scribe("test.html", PluginCollection())
    suite.run(make_fixture(page(lang=None)), scribe)
    failed = {report.check_name for report in scribe.get_failed_reports()}
    assert {"lang", "accessibility", "inline_style"} <= failed
    assert "title" not in failed
    assert not scribe.ok


def test_suite_passes_hello_world(suite):
    """Test a full run of the suite on the Hello World page."""
    scribe = Scribe("index.html", PluginCollection())
    suite.run(make_fixture(HELLO), scribe)
    reports = scribe.get_reports()
    assert len(reports) == len(CHECKS) + len(SECURITY_HEADERS)
    assert [report.check_name for report in scribe.get_failed_reports()] == []
    assert scribe.ok


def test_layout_keywords_ignore_case(suite):
    """Test that upper case keywords still compute to the expected layout."""
    text = HELLO.replace("display: flex;", "display: FLEX;")
    assert run(suite, "body_layout", text).ok


class AuditlessValidator(Validator):
    """Validator that never returns an accessibility result."""

    def validate(self, document, options):
        return ValidationResult()


def test_accessibility_result_missing():
    """Test that a validator without an audit result fails the check."""
    with Suite(validator=AuditlessValidator()) as suite:
        report = run(suite, "accessibility", HELLO)
    assert report.errors == ["Validator returned no accessibility result for WCAG 2.1 A"]
