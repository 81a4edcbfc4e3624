"""Export-Modul: Excel (openpyxl) und Terminal-Tabellen für den Stundenplan."""

from export.excel_export import ExcelExporter

__all__ = ["ExcelExporter"]
