"""
Export: record formatting, CSV/workbook writers, templates and statistics.
"""

from .csv_writer import CSV_CONTENT_TYPE, write_csv
from .exporter import Exporter, filter_records
from .formatter import RecordFormatter, ReferenceNames, format_amount, format_date
from .template import SAMPLE_RECORDS, template_filename
from .workbook_writer import XLSX_CONTENT_TYPE, WorkbookWriter

__all__ = [
    "CSV_CONTENT_TYPE",
    "XLSX_CONTENT_TYPE",
    "write_csv",
    "Exporter",
    "filter_records",
    "RecordFormatter",
    "ReferenceNames",
    "format_amount",
    "format_date",
    "SAMPLE_RECORDS",
    "template_filename",
    "WorkbookWriter",
]
