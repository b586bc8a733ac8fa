"""Lead export writers."""

from __future__ import annotations

from .csv_writer import CsvLeadWriter
from .json_writer import JsonLeadWriter
from .projection import LIST_SEPARATOR, export_filename, to_cell, to_json_value

__all__ = [
    "LIST_SEPARATOR",
    "CsvLeadWriter",
    "JsonLeadWriter",
    "export_filename",
    "to_cell",
    "to_json_value",
]
