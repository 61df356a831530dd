# SPDX-License-Identifier: BSD-3-Clause

"""Gathers check results.

The outcome of running one check is stored in a L{Report} instance.
Reports are L{logging.LoggerAdapter} implementations, so you can call
the usual L{info<logging.Logger.info>}, L{warning<logging.Logger.warning>}
and L{error<logging.Logger.error>} logging methods on them to store
check results. Anything logged above C{INFO} fails the check.

L{Scribe} collects the reports of a check run and summarizes them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from logging import ERROR, INFO, LoggerAdapter, getLogger
from typing import TYPE_CHECKING, Any, Collection, Iterable, MutableMapping

from pagecheck.plugin import PluginCollection

if TYPE_CHECKING:
    # pylint: disable=cyclic-import
    from pagecheck.validator import Violation


_LOG = getLogger(__name__)


class Report(LoggerAdapter):
    """Gathers the results of running one check."""

    def __init__(self, name: str, group: str = ""):
        """Start an empty report for the check named C{name}."""
        super().__init__(_LOG, dict(check=name))

        self.check_name = name
        """Name of the check this report applies to."""

        self.group = group
        """Name of the group the check belongs to."""

        self.ok = True  # pylint: disable=invalid-name
        """Whether the check passed.

        Starts out C{True}; the first message logged above C{INFO}
        turns it to C{False} for good.
        """

        self.messages: list[tuple[int, str]] = []
        """C{(level, message)*}
        Everything that was logged on this report, in order.
        """

        self.violations: list[Violation] = []
        """Problems reported by a delegated validator."""

        self.duration = 0.0
        """Time it took to run the check, in seconds."""

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if level > INFO:
            self.ok = False
        self.messages.append((level, str(msg) % args if args else str(msg)))
        super().log(level, msg, *args, **kwargs)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Prefix the check name to the message and add it to the record
        as the C{check} attribute.
        """

        extra = kwargs.get("extra")
        if extra is None:
            extra = self.extra
        else:
            extra.update(self.extra)
        kwargs["extra"] = extra

        return f"[{self.check_name}] {msg}", kwargs

    def add_violations(self, kind: str, violations: Iterable[Violation]) -> None:
        """Store violations found by a validator and log each as an error."""
        for violation in violations:
            self.violations.append(violation)
            self.error("%s: %s", kind, violation)

    @property
    def errors(self) -> list[str]:
        """The messages that were logged at C{ERROR} level or above."""
        return [message for level, message in self.messages if level >= ERROR]

    @property
    def problems(self) -> list[str]:
        """The messages that made this check fail."""
        return [message for level, message in self.messages if level > INFO]


def now_local() -> datetime:
    """@return: The current time, in the local time zone."""
    return datetime.now(timezone.utc).astimezone()


class Scribe:
    """Collects the reports of one check run."""

    def __init__(self, subject: str, plugins: PluginCollection):
        """Create a scribe for one check run.

        @param subject:
            Name of the document that is being checked.
        @param plugins:
            Receive each report as it is added and the scribe itself
            when the run is post-processed.
        """

        self.subject = subject
        self._plugins = plugins
        self._reports: dict[str, Report] = {}
        self._start_time = now_local()
        self._end_time: datetime | None = None

    @property
    def start_time(self) -> datetime:
        """The local time at which this check run started."""
        return self._start_time

    @property
    def end_time(self) -> datetime | None:
        """The local time at which this check run ended,
        or None if it did not end yet.
        """
        return self._end_time

    def add_report(self, report: Report) -> None:
        """Store the finished report of one check and pass it on to
        the plugins. A check name can only be added once.
        """
        assert report.check_name not in self._reports, report.check_name
        self._reports[report.check_name] = report
        self._plugins.report_added(report)

    def get_reports(self) -> Collection[Report]:
        """Return the reports added to this scribe, in the order
        they were added.
        """
        return list(self._reports.values())

    def get_failed_reports(self) -> Collection[Report]:
        """Like L{get_reports}, but only reports of failed checks."""
        return [report for report in self._reports.values() if not report.ok]

    def __getitem__(self, name: str) -> Report:
        return self._reports[name]

    @property
    def ok(self) -> bool:  # pylint: disable=invalid-name
        """C{True} iff every check passed."""
        return all(report.ok for report in self._reports.values())

    def get_summary(self) -> str:
        """Return a one-line summary, such as
        C{"17 checks run, 16 passed, 1 failed"}.
        """
        total = len(self._reports)
        num_failed = len(self.get_failed_reports())
        return (
            f"{total:d} checks run, "
            f"{total - num_failed:d} passed, "
            f"{num_failed:d} failed"
        )

    def postprocess(self) -> None:
        """Mark the end of the run and let the plugins write their output."""
        self._end_time = now_local()
        self._plugins.postprocess(self)
