# SPDX-License-Identifier: BSD-3-Clause

"""Command line interface."""

from __future__ import annotations

import logging
from argparse import ArgumentParser

from pagecheck.audit import parse_wcag_level
from pagecheck.checks import Expectations, Suite
from pagecheck.fixture import FixtureUnavailable, load_fixture
from pagecheck.plugin import (
    Plugin,
    PluginCollection,
    add_plugin_arguments,
    create_plugins,
    load_plugins,
)
from pagecheck.report import Scribe
from pagecheck.validator import ValidatorOptions
from pagecheck.version import VERSION_STRING

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2


def run(path: str, suite: Suite, plugins: PluginCollection) -> int:
    """
    Run all checks of C{suite} on the document at C{path}.

    @return:
        0 if all checks passed, 1 if any check failed,
        2 if the document could not be loaded.
    """

    try:
        try:
            fixture = load_fixture(path)
        except FixtureUnavailable as ex:
            print(ex)
            return EXIT_UNAVAILABLE

        scribe = Scribe(str(fixture.path), plugins)
        print(f'Checking "{fixture.path}"...')
        suite.run(fixture, scribe)
        for report in scribe.get_failed_reports():
            print(f"FAIL {report.check_name}")
            for problem in report.problems:
                print(f"     {problem}")
        print(scribe.get_summary())

        scribe.postprocess()
        return EXIT_OK if scribe.ok else EXIT_FAILED
    finally:
        suite.close()
        plugins.close()


def main() -> int:
    """
    Parse command line arguments and call L{run} with the results.

    This is the entry point that gets called by the wrapper script.
    """

    defaults = Expectations()

    # Register core arguments.
    parser = ArgumentParser(
        description="Check a static HTML page for structure, security, "
        "style and accessibility problems"
    )
    parser.add_argument("path", metavar="PATH", help="HTML document to check")
    parser.add_argument(
        "--check",
        metavar="PORT|URL|launch",
        help="validate markup using v.Nu web service at PORT (localhost) or "
        "URL (remote), or launch a new instance; "
        "without this, markup is validated offline",
    )
    parser.add_argument(
        "--wcag",
        default=defaults.wcag,
        help=f'WCAG level to audit accessibility against (default: "{defaults.wcag}")',
    )
    parser.add_argument(
        "--loose-viewport",
        action="store_true",
        help="accept any viewport content that contains the expected settings",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=defaults.max_size,
        metavar="BYTES",
        help=f"maximum document size (default: {defaults.max_size:d})",
    )
    parser.add_argument(
        "--max-content-size",
        type=int,
        default=defaults.max_content_size,
        metavar="BYTES",
        help="size the document content must stay below "
        f"(default: {defaults.max_content_size:d})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase amount of logging, can be passed multiple times",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"pagecheck {VERSION_STRING}"
    )

    # Let plugins register their arguments.
    plugin_modules = tuple(load_plugins())
    for module in plugin_modules:
        add_plugin_arguments(module, parser)

    args = parser.parse_args()
    try:
        parse_wcag_level(args.wcag)
    except ValueError as ex:
        parser.error(str(ex))

    level_map = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}
    level = level_map.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    # Instantiate plugins.
    plugin_list: list[Plugin] = []
    for module in plugin_modules:
        try:
            plugin_list += create_plugins(module, args)
        except Exception:  # pylint: disable=broad-except
            return EXIT_FAILED

    expect = Expectations(
        exact_viewport=not args.loose_viewport,
        max_size=args.max_size,
        max_content_size=args.max_content_size,
        wcag=args.wcag,
    )
    options = ValidatorOptions(
        local_only=args.check is None,
        debug=args.verbose >= 2,
        quiet=args.verbose == 0,
        wcag=args.wcag,
        service=args.check,
    )
    return run(args.path, Suite(expect, options), PluginCollection(plugin_list))
