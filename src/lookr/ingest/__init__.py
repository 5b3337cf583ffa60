"""Lookr import pipeline: spreadsheet workbooks to snippet candidates."""

from lookr.ingest.excel import (
    CellLimitError,
    ExcelSnippetImporter,
    FileTooLargeError,
    MissingHeadersError,
    RowLimitError,
    SpreadsheetImportError,
    WorkbookStructureError,
)

__all__ = [
    "CellLimitError",
    "ExcelSnippetImporter",
    "FileTooLargeError",
    "MissingHeadersError",
    "RowLimitError",
    "SpreadsheetImportError",
    "WorkbookStructureError",
]
