# SPDX-License-Identifier: BSD-3-Clause

"""
Markup and accessibility validation in one call.

L{validate_html} accepts a path, HTML text, a fixture or a parsed
document, validates its markup (offline with html5lib, or with the Nu Html
Checker) and, if a WCAG level is requested, audits its accessibility.
"""

from __future__ import annotations

from logging import getLogger
from os import PathLike
from typing import Union

from pagecheck.audit import AccessibilityAuditor
from pagecheck.document import Document
from pagecheck.fixture import Fixture, load_fixture
from pagecheck.markup import LocalMarkupValidator
from pagecheck.validator import ValidationResult, Validator, ValidatorOptions
from pagecheck.vnu import VNUValidator

_LOG = getLogger(__name__)

Source = Union[str, "PathLike[str]", Fixture, Document]


def as_document(source: Source) -> Document:
    """
    Return a parsed document for C{source}.

    A string that contains a C{<} is taken to be HTML text,
    any other string is a path.

    @raise FixtureUnavailable:
        If C{source} is a path that cannot be loaded.
    """
    if isinstance(source, Document):
        return source
    if isinstance(source, Fixture):
        return source.parse()
    if isinstance(source, str) and "<" in source:
        return Document.parse(source)
    return load_fixture(source).parse()


class PageValidator(Validator):
    """
    Validator that combines markup validation and accessibility auditing.

    Which markup validator is used depends on the options of each call.
    A v.Nu service, once connected or launched, is kept until this
    validator is closed or a different service is requested.
    """

    def __init__(self) -> None:
        self._local = LocalMarkupValidator()
        self._auditor = AccessibilityAuditor()
        self._remote: VNUValidator | None = None
        self._remote_service: str | None = None

    def _markup_validator(self, options: ValidatorOptions) -> Validator:
        if options.local_only:
            return self._local
        if self._remote is None or self._remote_service != options.service:
            self.close()
            self._remote = VNUValidator.from_service(options.service)
            self._remote_service = options.service
        return self._remote

    def validate(self, document: Document, options: ValidatorOptions) -> ValidationResult:
        result = self._markup_validator(options).validate(document, options)
        if options.wcag is not None:
            audited = self._auditor.validate(document, options)
            result = ValidationResult(result.errors, audited.accessibility)
        return result

    def close(self) -> None:
        if self._remote is not None:
            _LOG.debug("Closing v.Nu validator for %s", self._remote.service_url)
            self._remote.close()
            self._remote = None
            self._remote_service = None


def validate_html(
    source: Source, options: ValidatorOptions | None = None
) -> ValidationResult:
    """
    Validate a single document.

    @param source:
        Path, HTML text, fixture or document to validate.
    @param options:
        Validator settings; the default validates markup offline
        without an accessibility audit.
    @raise FixtureUnavailable:
        If C{source} is a path that cannot be loaded.
    @raise ExternalValidatorFailure:
        If a validator could not check the document.
    """
    document = as_document(source)
    with PageValidator() as validator:
        return validator.validate(document, options or ValidatorOptions())
