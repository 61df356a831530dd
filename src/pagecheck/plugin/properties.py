# SPDX-License-Identifier: BSD-3-Clause

"""Plugin that creates a properties file summarizing the check results.

The format is that of a Java C{.properties} file: one key-value pair
per line, with C{=} as the separator. Shell scripts and CI jobs can pick
up the verdict without parsing XML.
"""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
from typing import Iterator

from pagecheck.plugin import Plugin
from pagecheck.report import Scribe


def plugin_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        "--result", metavar="FILE", help="properties file to write a summary to"
    )


def plugin_create(args: Namespace) -> Iterator[Plugin]:
    if args.result is not None:
        yield PropertiesPlugin(args.result)


def summary_properties(scribe: Scribe) -> dict[str, object]:
    """Return the summary of a check run as key-value pairs."""
    total = len(scribe.get_reports())
    failed = [report.check_name for report in scribe.get_failed_reports()]
    return {
        "result": "ok" if not failed else "error",
        "summary": scribe.get_summary(),
        "data.checks_total": total,
        "data.checks_pass": total - len(failed),
        "data.checks_fail": len(failed),
        "data.failed": ",".join(failed),
    }


class PropertiesPlugin(Plugin):
    """Plugin that writes a summary properties file."""

    def __init__(self, properties_file: str):
        """Initialize the plugin to write C{properties_file}."""
        self.properties_file = properties_file

    def postprocess(self, scribe: Scribe) -> None:
        data = summary_properties(scribe)
        path = self.properties_file
        print(f'Writing summary to "{path}"...')
        with open(path, "w", encoding="utf-8") as out:
            for key in sorted(data.keys()):
                print(f"{key}={data[key]}", file=out)
