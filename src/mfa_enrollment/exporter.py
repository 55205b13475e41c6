"""Recovery code formatting for copy, download and print.

Pure functions over a list of codes; the clipboard, file dialog and PDF
printer belong to the UI layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import EnrollmentConfig

if TYPE_CHECKING:
    from collections.abc import Sequence


class RecoveryCodeExporter:
    """Format recovery codes as plain UTF-8 text.

    Example:
        ```python
        exporter = RecoveryCodeExporter()
        exporter.to_text(["ABCD-EFGH", "JKLM-NPQR"])
        # 'ABCD-EFGH\\nJKLM-NPQR'
        filename, payload = exporter.to_download(codes)
        ```
    """

    def __init__(self, config: EnrollmentConfig | None = None) -> None:
        self.config = config or EnrollmentConfig()

    def to_text(self, codes: Sequence[str]) -> str:
        """One code per line, as copied to the clipboard."""
        return "\n".join(codes)

    def to_download(self, codes: Sequence[str]) -> tuple[str, bytes]:
        """File name and UTF-8 payload for saving the codes."""
        return self.config.recovery_codes_filename, self.to_text(codes).encode("utf-8")

    def to_grid(
        self, codes: Sequence[str], columns: int | None = None
    ) -> list[list[str]]:
        """Split codes into rows of ``columns`` cells, filling row by row."""
        width = (
            columns if columns is not None else self.config.recovery_code_columns
        )
        if width < 1:
            raise ValueError("columns must be at least 1")
        return [list(codes[i : i + width]) for i in range(0, len(codes), width)]

    def to_print(self, codes: Sequence[str]) -> str:
        """Printable document: title, blank line, then the code grid."""
        rows = self.to_grid(codes)
        cell = max((len(code) for code in codes), default=0)
        lines = [self.config.recovery_codes_print_title, ""]
        lines.extend(
            "  ".join(code.ljust(cell) for code in row).rstrip() for row in rows
        )
        return "\n".join(lines)


__all__: list[str] = ["RecoveryCodeExporter"]
