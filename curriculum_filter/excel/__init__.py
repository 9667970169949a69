from .reader import MalformedInputError, SheetData, Workbook, read_workbook
from .writer import ExportWriteError, workbook_to_excel_bytes, write_workbook

__all__ = [
    "MalformedInputError",
    "SheetData",
    "Workbook",
    "read_workbook",
    "ExportWriteError",
    "workbook_to_excel_bytes",
    "write_workbook",
]
