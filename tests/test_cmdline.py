"""
Unit tests for `pagecheck.cmdline`.
"""

import sys

from pytest import raises

from pagecheck.checks import Suite
from pagecheck.cmdline import EXIT_FAILED, EXIT_OK, EXIT_UNAVAILABLE, main, run
from pagecheck.plugin import PluginCollection
from pagecheck.plugin.properties import PropertiesPlugin

from utils import INDEX_PATH, page


def test_run_pass(capsys):
    """Test a run on the Hello World page."""
    assert run(str(INDEX_PATH), Suite(), PluginCollection()) == EXIT_OK
    out = capsys.readouterr().out
    assert "FAIL" not in out
    assert " 0 failed" in out.splitlines()[-1]


def test_run_fail(tmp_path, capsys):
    """Test that failed checks are listed and give exit status 1."""
    path = tmp_path / "page.html"
    path.write_text(page(lang=None), encoding="utf-8")
    result_path = tmp_path / "result.properties"
    plugins = PluginCollection([PropertiesPlugin(str(result_path))])
    assert run(str(path), Suite(), plugins) == EXIT_FAILED
    out = capsys.readouterr().out
    assert "FAIL lang\n     <html> element has no lang attribute\n" in out
    assert "result=error" in result_path.read_text(encoding="utf-8")


def test_run_missing(tmp_path, capsys):
    """Test that an unavailable document gives exit status 2."""
    path = tmp_path / "missing.html"
    assert run(str(path), Suite(), PluginCollection()) == EXIT_UNAVAILABLE
    assert "Document not found" in capsys.readouterr().out


def test_main(monkeypatch, tmp_path):
    """Test the entry point with plugin arguments."""
    junit_path = tmp_path / "results.xml"
    monkeypatch.setattr(
        sys, "argv", ["pagecheck", str(INDEX_PATH), "--junit", str(junit_path)]
    )
    assert main() == EXIT_OK
    assert junit_path.is_file()


def test_main_size_option(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["pagecheck", str(INDEX_PATH), "--max-size", "100"])
    assert main() == EXIT_FAILED


def test_main_invalid_wcag(monkeypatch):
    """Test that an unknown WCAG level is a usage error."""
    monkeypatch.setattr(sys, "argv", ["pagecheck", str(INDEX_PATH), "--wcag", "AAA"])
    with raises(SystemExit) as excinfo:
        main()
    assert excinfo.value.code == 2


def test_main_junit_control_character(monkeypatch, tmp_path):
    """Test that a control character in a markup error is written to JUnit."""
    path = tmp_path / "page.html"
    path.write_text(page(body="<p>x</p\x01>"), encoding="utf-8")
    junit_path = tmp_path / "results.xml"
    monkeypatch.setattr(
        sys, "argv", ["pagecheck", str(path), "--junit", str(junit_path)]
    )
    assert main() == EXIT_FAILED
    assert "\ufffd" in junit_path.read_text(encoding="utf-8")
