"""Export generation module."""

from .generate_reports import (
    ExportService,
    CSV_HEADINGS,
    EXPORT_FILENAME,
    transaction_to_row,
    export_to_csv,
    save_csv,
)

__all__ = [
    "ExportService",
    "CSV_HEADINGS",
    "EXPORT_FILENAME",
    "transaction_to_row",
    "export_to_csv",
    "save_csv",
]
