# SPDX-License-Identifier: BSD-3-Clause

"""
The interface to delegated validators.

A L{Validator} takes a document and a L{ValidatorOptions} record and
returns a L{ValidationResult}: a success flag, the markup errors and,
if an accessibility level was requested, the accessibility violations.

A validator that cannot do its work, for example because a web service
is unreachable, raises L{ExternalValidatorFailure} instead of returning
a result; a problem in the validator must never look like a clean
document.
"""

from __future__ import annotations

from typing import Any, Sequence

from pagecheck.document import Document


class ExternalValidatorFailure(Exception):
    """Raised when a validator fails to produce a verdict."""


class Violation:
    """A single problem reported by a validator."""

    def __init__(
        self,
        rule: str,
        message: str,
        impact: str = "serious",
        line: int | None = None,
        target: str | None = None,
    ):
        self.rule = rule
        """Identifier of the rule that was violated."""

        self.message = message
        """Human readable description of the problem."""

        self.impact = impact
        """How badly this affects users: C{minor}, C{moderate},
        C{serious} or C{critical}.
        """

        self.line = line
        """Line in the document source, if known."""

        self.target = target
        """Description of the offending element, if known."""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Violation):
            return self.__key() == other.__key()
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.__key())

    def __key(self) -> tuple[Any, ...]:
        return (self.rule, self.message, self.impact, self.line, self.target)

    def __repr__(self) -> str:
        return (
            f"Violation({self.rule!r}, {self.message!r}, {self.impact!r}, "
            f"{self.line!r}, {self.target!r})"
        )

    def __str__(self) -> str:
        text = f"{self.message} [{self.rule}]"
        if self.target:
            text = f"{self.target}: {text}"
        if self.line is not None:
            text = f"line {self.line:d}: {text}"
        return text


class AccessibilityResult:
    """Outcome of an accessibility audit."""

    def __init__(self, level: str, violations: Sequence[Violation]):
        self.level = level
        """The WCAG level that was audited against, for example C{"2.1 A"}."""

        self.violations = list(violations)


class ValidationResult:
    """Outcome of running a validator on a document."""

    def __init__(
        self,
        errors: Sequence[Violation] = (),
        accessibility: AccessibilityResult | None = None,
    ):
        self.errors = list(errors)
        """Markup conformance errors."""

        self.accessibility = accessibility
        """Accessibility audit outcome, or C{None} if no audit was requested."""

    @property
    def success(self) -> bool:
        """C{True} iff no errors and no accessibility violations were found."""
        if self.errors:
            return False
        return self.accessibility is None or not self.accessibility.violations


class ValidatorOptions:
    """Settings that influence how validators run."""

    def __init__(
        self,
        local_only: bool = True,
        debug: bool = False,
        quiet: bool = False,
        wcag: str | None = None,
        service: str | None = None,
    ):
        self.local_only = local_only
        """Validate offline instead of using a checker web service."""

        self.debug = debug
        """Log every message received from a validator."""

        self.quiet = quiet
        """Do not log a summary of each validation."""

        self.wcag = wcag
        """WCAG level to audit against, such as C{"2.1 A"},
        or C{None} to skip the accessibility audit.
        """

        self.service = service
        """The v.Nu web service to use when not validating offline:
        a port number on localhost, a URL, or C{"launch"} to start
        a service from C{vnu.jar}.
        """

    def replace(self, **changes: Any) -> "ValidatorOptions":
        """Return a copy of these options with some values changed."""
        values = dict(vars(self))
        for name in changes:
            if name not in values:
                raise TypeError(f'Unknown validator option "{name}"')
        values.update(changes)
        return ValidatorOptions(**values)

    def __repr__(self) -> str:
        args = ", ".join(f"{name}={value!r}" for name, value in vars(self).items())
        return f"ValidatorOptions({args})"


class Validator:
    """
    Validator interface: concrete validators inherit this and override
    L{validate}.

    Validators that hold resources (processes, connections) release them
    in L{close}; validators can be used as context managers to make sure
    that happens.
    """

    def validate(self, document: Document, options: ValidatorOptions) -> ValidationResult:
        """
        Check C{document} and return what was found.

        @raise ExternalValidatorFailure:
            If the validator could not check the document.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release resources. The default implementation does nothing."""

    def __enter__(self) -> "Validator":
        return self

    def __exit__(self, exc_type: object, exc_value: object, traceback: object) -> None:
        self.close()
