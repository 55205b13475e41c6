"""Enrollment wizard configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EnrollmentConfig:
    """Wizard configuration.

    Attributes:
        app_name: Product name used in user-facing copy.
        code_length: Number of digits in a verification code.
        resend_cooldown_seconds: Minimum seconds between SMS/email sends.
        recovery_code_columns: Columns in the printable recovery code grid.
        recovery_codes_filename: File name offered when downloading codes.
        recovery_codes_print_title: Heading of the printable document.
    """

    app_name: str = "Notesnook"
    code_length: int = 6
    resend_cooldown_seconds: int = 60
    recovery_code_columns: int = 4
    recovery_codes_filename: str = "notesnook-recovery-codes.txt"
    recovery_codes_print_title: str = "Notesnook 2FA Recovery Codes"


__all__: list[str] = ["EnrollmentConfig"]
