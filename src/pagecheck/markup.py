# SPDX-License-Identifier: BSD-3-Clause

"""
Offline markup validation using the html5lib parser.

html5lib implements the HTML5 parsing algorithm, including its error
reporting. Every parse error it reports, such as a missing doctype or
a stray end tag, is a markup violation. It does not know about content
models or attribute values; use the Nu Html Checker (L{pagecheck.vnu})
for a full conformance check.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Mapping

import html5lib
from html5lib.constants import E as ERROR_MESSAGES

from pagecheck.document import Document
from pagecheck.validator import ValidationResult, Validator, ValidatorOptions, Violation

_LOG = getLogger(__name__)


def _format_error(code: str, datavars: Mapping[str, Any] | None) -> str:
    template = ERROR_MESSAGES.get(code)
    if template is None:
        return code
    try:
        return template % (datavars or {})
    except (KeyError, TypeError, ValueError):
        return template


def parse_errors(source: str) -> list[Violation]:
    """Parse C{source} and return the parse errors as violations."""
    parser = html5lib.HTMLParser()
    parser.parse(source)
    violations = []
    for position, code, datavars in parser.errors:
        line, col_ = position
        violations.append(
            Violation(code, _format_error(code, datavars), "serious", line)
        )
    return violations


class LocalMarkupValidator(Validator):
    """Validates markup with html5lib, without network access."""

    def validate(self, document: Document, options: ValidatorOptions) -> ValidationResult:
        errors = parse_errors(document.source)
        if options.debug:
            for error in errors:
                _LOG.debug("html5lib: %s", error)
        if not options.quiet:
            _LOG.info(
                "Offline markup check of %s: %d errors",
                document.url or "document",
                len(errors),
            )
        return ValidationResult(errors)
