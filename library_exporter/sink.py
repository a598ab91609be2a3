"""
Excel worksheet output for exported rows.
"""

import logging
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from .exceptions import OutputError
from .models import OUTPUT_COLUMNS, OutputRow

logger = logging.getLogger(__name__)

SHEET_NAME = "Files"
DATE_FORMAT = "yyyy-mm-dd hh:mm:ss"
DATE_COLUMNS = ("CreatedDate", "ModifiedDate")


class ExcelSink:
    """Single-sheet .xlsx file written header first, then appended batch by batch"""

    def __init__(self, path, sheet_name: str = SHEET_NAME):
        self.path = Path(path)
        self.sheet_name = sheet_name

    def initialize(self):
        """
        Create or overwrite the workbook with the header row only

        Raises:
            OutputError: If the file cannot be written
        """
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self.sheet_name
        sheet.append(list(OUTPUT_COLUMNS))
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        sheet.freeze_panes = "A2"

        self._save(workbook)
        logger.debug(f"Initialized output file {self.path}")

    def append(self, rows: Iterable[OutputRow]) -> int:
        """
        Append rows below the existing content, preserving their order

        Args:
            rows: Rows of one batch

        Returns:
            int: Number of rows written

        Raises:
            OutputError: If the workbook cannot be read or written
        """
        rows = list(rows)
        if not rows:
            return 0

        try:
            workbook = load_workbook(self.path)
        except Exception as e:
            raise OutputError(f"Cannot open output file {self.path}: {str(e)}") from e

        if self.sheet_name not in workbook.sheetnames:
            raise OutputError(f"Output file {self.path} has no sheet named '{self.sheet_name}'")

        sheet = workbook[self.sheet_name]
        date_indexes = [OUTPUT_COLUMNS.index(name) for name in DATE_COLUMNS]
        for row in rows:
            sheet.append(row.as_row())
            for index in date_indexes:
                sheet.cell(row=sheet.max_row, column=index + 1).number_format = DATE_FORMAT

        self._save(workbook)
        return len(rows)

    def _save(self, workbook):
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            workbook.save(self.path)
        except Exception as e:
            raise OutputError(f"Cannot write output file {self.path}: {str(e)}") from e
