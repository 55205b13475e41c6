"""Default phone-number validator.

Accepts international numbers with a country code and normalises them to
E.164 (``+`` followed by up to 15 digits, no leading zero). Spaces, dots,
dashes and parentheses are ignored; a leading ``00`` is read as ``+``.
Applications needing carrier-grade validation plug in their own
:class:`~mfa_enrollment.ports.IPhoneNumberValidator`.
"""

from __future__ import annotations

import re

from .ports import IPhoneNumberValidator, PhoneValidationResult

_SEPARATORS = re.compile(r"[\s().\-]")
_E164 = re.compile(r"^\+[1-9]\d{7,14}$")


class E164PhoneNumberValidator(IPhoneNumberValidator):
    """Validate numbers that carry an explicit country code."""

    def validate(self, raw: str) -> PhoneValidationResult:
        candidate = _SEPARATORS.sub("", raw.strip())
        if candidate.startswith("00"):
            candidate = "+" + candidate[2:]
        if not _E164.match(candidate):
            return PhoneValidationResult(is_valid=False)
        return PhoneValidationResult(is_valid=True, phone_number=candidate)


__all__: list[str] = ["E164PhoneNumberValidator"]
