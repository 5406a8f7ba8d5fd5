"""Structural checks for outgoing and incoming envelopes.

:class:`StructureValidator` accumulates errors instead of raising. Each
``validate_*`` call:

1. clears the accumulator,
2. parses the XML once (a parse failure is recorded as a single error),
3. runs every check for that section, appending one message per missing
   element (no fail-fast),
4. returns ``(ok, errors)``.

The accumulator stays inspectable afterwards through :meth:`has_errors`,
:meth:`get_errors` and friends, and :meth:`throw_if_errors` converts it into a
single :class:`~tcu_api.exceptions.ValidationError` for fail-fast callers.

Concurrency contract:
    An instance holds mutable state between calls, so it must not be shared
    by concurrent validations. Use one instance per call (or per thread), or
    guard the clear/validate/read sequence with an external lock.

Example:
    >>> validator = StructureValidator()
    >>> validator.validate_envelope("<Envelope><Header/></Envelope>")
    (False, ['Missing SOAP Body element'])
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Set, Tuple

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError

from .exceptions import ValidationError
from .field_validation import validate_applicant_data, validate_programme_data
from .response_parser import local_name

ValidationOutcome = Tuple[bool, List[str]]

ENVELOPE_CHECKS: Sequence[Tuple[str, str]] = (
    ("Envelope", "Missing SOAP Envelope element"),
    ("Header", "Missing SOAP Header element"),
    ("Body", "Missing SOAP Body element"),
)
AUTH_CHECKS: Sequence[Tuple[str, str]] = (
    ("Security", "Missing Security element in header"),
    ("UsernameToken", "Missing UsernameToken element"),
    ("Username", "Missing Username element"),
    ("SessionToken", "Missing SessionToken element"),
)
PARAMETER_CHECKS: Sequence[Tuple[str, str]] = (
    ("RequestParameters", "Missing RequestParameters element"),
)


class StructureValidator:
    """Accumulating validator for envelope structure and record fields."""

    def __init__(self) -> None:
        self._errors: List[str] = []

    # ---------------- Envelope sections ---------------- #

    def validate_envelope(self, xml: str) -> ValidationOutcome:
        """Envelope, Header and Body sections must all exist."""
        return self._run_checks(xml, ENVELOPE_CHECKS, "Invalid XML format")

    def validate_auth_section(self, xml: str) -> ValidationOutcome:
        """Security / UsernameToken / Username / SessionToken must all exist."""
        return self._run_checks(xml, AUTH_CHECKS, "Authentication validation failed")

    def validate_parameter_section(self, xml: str) -> ValidationOutcome:
        return self._run_checks(
            xml, PARAMETER_CHECKS, "Request parameter validation failed"
        )

    def validate_response_section(self, xml: str) -> ValidationOutcome:
        """Either a ResponseParameters container or a StatusCode element."""
        self.clear_errors()
        names = self._element_names(xml, "Response validation failed")
        if names is not None and not (
            "ResponseParameters" in names or "StatusCode" in names
        ):
            self._add_error("Missing response structure elements")
        return self._outcome()

    def validate_request(self, xml: str) -> ValidationOutcome:
        """Envelope, auth and parameter checks in one pass."""
        return self._run_checks(
            xml,
            (*ENVELOPE_CHECKS, *AUTH_CHECKS, *PARAMETER_CHECKS),
            "Invalid XML format",
        )

    # ---------------- Record fields ---------------- #

    def validate_applicant_data(self, data: Mapping[str, Any]) -> ValidationOutcome:
        self.clear_errors()
        for error in validate_applicant_data(data):
            self._add_error(error)
        return self._outcome()

    def validate_programme_data(self, data: Mapping[str, Any]) -> ValidationOutcome:
        self.clear_errors()
        for error in validate_programme_data(data):
            self._add_error(error)
        return self._outcome()

    # ---------------- Accumulator ---------------- #

    def has_errors(self) -> bool:
        return bool(self._errors)

    def get_errors(self) -> List[str]:
        return list(self._errors)

    def last_error(self) -> Optional[str]:
        return self._errors[-1] if self._errors else None

    def errors_as_string(self) -> str:
        return "; ".join(self._errors)

    def clear_errors(self) -> None:
        self._errors = []

    def throw_if_errors(self) -> None:
        """Raise :class:`ValidationError` carrying every accumulated message."""
        if self._errors:
            raise ValidationError("Validation failed", self.get_errors())

    # ---------------- Internal helpers ---------------- #

    def _add_error(self, error: str) -> None:
        self._errors.append(error)

    def _outcome(self) -> ValidationOutcome:
        return not self._errors, self.get_errors()

    def _element_names(self, xml: str, failure_prefix: str) -> Optional[Set[str]]:
        """Parse once and collect local element names; record parse failures."""
        if not xml or not xml.strip():
            self._add_error(f"{failure_prefix}: empty document")
            return None
        try:
            root = SafeET.fromstring(xml)
        except (SafeParseError, DefusedXmlException) as exc:
            self._add_error(f"{failure_prefix}: {exc}")
            return None
        return {local_name(element.tag) for element in root.iter()}

    def _run_checks(
        self, xml: str, checks: Sequence[Tuple[str, str]], failure_prefix: str
    ) -> ValidationOutcome:
        self.clear_errors()
        names = self._element_names(xml, failure_prefix)
        if names is not None:
            for element, error in checks:
                if element not in names:
                    self._add_error(error)
        return self._outcome()
