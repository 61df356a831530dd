"""
Unit tests for `pagecheck.report`.
"""

from logging import ERROR, INFO, WARNING

from pagecheck.plugin import Plugin, PluginCollection
from pagecheck.report import Report, Scribe
from pagecheck.validator import Violation


def test_report_info_keeps_ok(caplog):
    """Test that informational messages do not fail a check."""
    report = Report("title", "structure")
    with caplog.at_level(INFO, logger="pagecheck.report"):
        report.info("Title is %s", "fine")
    assert report.ok
    assert report.messages == [(INFO, "Title is fine")]
    assert report.problems == []
    assert caplog.record_tuples == [("pagecheck.report", INFO, "[title] Title is fine")]


def test_report_warning_fails():
    report = Report("charset_consistency")
    report.warning("Mismatch")
    assert not report.ok
    assert report.problems == ["Mismatch"]
    assert report.errors == []


def test_report_violations():
    """Test that each violation is stored and logged as an error."""
    report = Report("accessibility", "accessibility")
    violations = [Violation("image-alt", "Images must have alternate text", target="img")]
    report.add_violations("WCAG 2.1 A", violations)
    assert not report.ok
    assert report.violations == violations
    assert report.messages == [
        (ERROR, "WCAG 2.1 A: img: Images must have alternate text [image-alt]")
    ]


class RecordingPlugin(Plugin):
    def __init__(self):
        self.added = []
        self.postprocessed = None

    def report_added(self, report):
        self.added.append(report.check_name)

    def postprocess(self, scribe):
        self.postprocessed = scribe


def test_scribe():
    """Test collecting reports and summarizing them."""
    plugin = RecordingPlugin()
    scribe = Scribe("index.html", PluginCollection([plugin]))
    passed = Report("title")
    failed = Report("lang")
    failed.log(WARNING, "No lang")
    scribe.add_report(passed)
    scribe.add_report(failed)
    assert plugin.added == ["title", "lang"]
    assert list(scribe.get_reports()) == [passed, failed]
    assert list(scribe.get_failed_reports()) == [failed]
    assert scribe["lang"] is failed
    assert not scribe.ok
    assert scribe.get_summary() == "2 checks run, 1 passed, 1 failed"
    assert scribe.end_time is None
    scribe.postprocess()
    assert plugin.postprocessed is scribe
    assert scribe.end_time >= scribe.start_time


def test_scribe_empty():
    scribe = Scribe("index.html", PluginCollection())
    assert scribe.ok
    assert scribe.get_summary() == "0 checks run, 0 passed, 0 failed"


def test_report_check_name(caplog):
    """Test that a report keeps its check name apart from its logger name."""
    report = Report("doctype", "structure")
    assert report.check_name == "doctype"
    assert report.group == "structure"
    assert report.logger.name == "pagecheck.report"
    with caplog.at_level(ERROR, logger="pagecheck.report"):
        report.error("No doctype")
    assert caplog.records[0].check == "doctype"
