"""Spreadsheet codec using openpyxl.

Reads workbooks into row dicts keyed by mapping field, and writes lists of
rows (header first) as a single-sheet workbook.
"""

import logging
import zipfile
from typing import Any, Dict, List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from ..exceptions import SourceReadError, StorageError
from ..interfaces import SpreadsheetCodecInterface
from ..models import Mapping
from ..utils import StringUtils

logger = logging.getLogger(__name__)


class SpreadsheetCodec(SpreadsheetCodecInterface):
    """
    openpyxl-backed workbook reader and writer.

    The first row of every sheet is its header. A mapping reads the column
    given by its `col`; mappings without `col` read the column whose header
    matches their title, or their key when no title matches.
    """

    def __init__(self, sheet_title: str = "Sheet1"):
        self.sheet_title = sheet_title

    def parse(self, path: str, mappings: List[Mapping]) -> List[List[Dict[str, Any]]]:
        logger.info(f"Parsing workbook: {path}")
        try:
            workbook = load_workbook(path, read_only=True, data_only=True)
        except (OSError, KeyError, ValueError, zipfile.BadZipFile, InvalidFileException) as e:
            raise SourceReadError(f"Failed to open workbook {path}: {e}")

        try:
            return [self._parse_sheet(workbook[name], mappings) for name in workbook.sheetnames]
        finally:
            workbook.close()

    def _parse_sheet(self, sheet: Worksheet, mappings: List[Mapping]) -> List[Dict[str, Any]]:
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []

        columns = self.locate_columns(list(header), mappings)
        if not columns:
            logger.warning(f"Sheet '{sheet.title}' has no column matching the mappings")
            return []

        parsed = []
        for values in rows:
            row = {}
            for field_name, index in columns.items():
                row[field_name] = values[index] if index < len(values) else None
            if any(StringUtils.safe_string_check(v) for v in row.values()):
                parsed.append(row)

        logger.debug(f"Sheet '{sheet.title}': {len(parsed)} rows")
        return parsed

    @staticmethod
    def locate_columns(header: List[Any], mappings: List[Mapping]) -> Dict[str, int]:
        """0-based column index per mapping field; unmatched mappings are left out."""
        titles = {}
        for index, text in enumerate(header):
            if text is not None:
                titles.setdefault(str(text).strip(), index)

        columns = {}
        for mapping in mappings:
            index: Optional[int] = None
            if mapping.col is not None:
                index = mapping.col - 1
            elif mapping.title is not None and mapping.title in titles:
                index = titles[mapping.title]
            elif mapping.key in titles:
                index = titles[mapping.key]
            if index is not None:
                columns[mapping.field] = index
        return columns

    def dump(self, path: str, rows: List[List[Any]]) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = self.sheet_title
        try:
            for number, values in enumerate(rows, start=1):
                try:
                    sheet.append(list(values))
                except (TypeError, ValueError) as e:
                    raise StorageError(f"Cannot write row {number} of {path}: {e}", row=number)
            workbook.save(path)
        except OSError as e:
            raise StorageError(f"Failed to write workbook {path}: {e}")
        finally:
            workbook.close()
        logger.debug(f"Wrote {len(rows)} rows to {path}")
