"""Export-Modul: Excel (openpyxl) für die gebildeten Klassen."""

from export.excel_export import ExcelExporter

__all__ = ["ExcelExporter"]
