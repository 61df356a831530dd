# SPDX-License-Identifier: BSD-3-Clause

"""Plugin that writes the check results as a JUnit XML file.

Most CI systems can display test results in this format. Every check
becomes a C{<testcase>}, with the check group as its class name.
"""

from __future__ import annotations

import re
from argparse import ArgumentParser, Namespace
from typing import Iterator

from lxml import etree

from pagecheck.plugin import Plugin
from pagecheck.report import Report, Scribe


# Characters that XML 1.0 does not allow, not even as character references.
_RE_XML_INVALID = re.compile(
    "[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def xml_safe(text: str) -> str:
    """Replace characters that cannot occur in XML by U+FFFD."""
    return _RE_XML_INVALID.sub("\ufffd", text)


def plugin_arguments(parser: ArgumentParser) -> None:
    parser.add_argument("--junit", metavar="FILE", help="JUnit XML file to write results to")


def plugin_create(args: Namespace) -> Iterator[Plugin]:
    if args.junit is not None:
        yield JUnitPlugin(args.junit)


def _testcase(parent: etree._Element, report: Report) -> None:
    case = etree.SubElement(
        parent,
        "testcase",
        classname=xml_safe(report.group) or "pagecheck",
        name=xml_safe(report.check_name),
        time=f"{report.duration:.3f}",
    )
    problems = report.problems
    if problems:
        failure = etree.SubElement(case, "failure", message=xml_safe(problems[0]))
        failure.text = xml_safe("\n".join(problems))


def build_junit_tree(scribe: Scribe) -> etree._ElementTree:
    """Return a JUnit XML document describing the reports in C{scribe}."""
    reports = scribe.get_reports()
    total = len(reports)
    failures = len(scribe.get_failed_reports())
    duration = f"{sum(report.duration for report in reports):.3f}"

    root = etree.Element(
        "testsuites",
        name="pagecheck",
        tests=str(total),
        failures=str(failures),
        time=duration,
    )
    suite = etree.SubElement(
        root,
        "testsuite",
        name=xml_safe(scribe.subject),
        tests=str(total),
        failures=str(failures),
        errors="0",
        skipped="0",
        time=duration,
        timestamp=scribe.start_time.isoformat(timespec="seconds"),
    )
    for report in reports:
        _testcase(suite, report)
    return etree.ElementTree(root)


class JUnitPlugin(Plugin):
    """Plugin that writes a JUnit XML results file."""

    def __init__(self, path: str):
        """Initialize the plugin to write C{path}."""
        self.path = path

    def postprocess(self, scribe: Scribe) -> None:
        print(f'Writing JUnit results to "{self.path}"...')
        build_junit_tree(scribe).write(
            self.path, encoding="utf-8", xml_declaration=True, pretty_print=True
        )
