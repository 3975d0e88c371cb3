"""Shared fixtures for datamigrate tests."""

import pytest
from openpyxl import Workbook, load_workbook

from datamigrate.config.config_manager import reset_config_manager
from datamigrate.database.memory_store import MemoryDatabase


@pytest.fixture
def database():
    """Fresh in-memory database per test."""
    return MemoryDatabase("test")


@pytest.fixture
def write_workbook(tmp_path):
    """Write sheets (lists of rows, header first) to an .xlsx file and return its path."""
    def _write(*sheets, name="source.xlsx"):
        workbook = Workbook()
        workbook.remove(workbook.active)
        for index, rows in enumerate(sheets, 1):
            sheet = workbook.create_sheet(f"Sheet{index}")
            for row in rows:
                sheet.append(list(row))
        path = tmp_path / name
        workbook.save(path)
        return str(path)
    return _write


@pytest.fixture
def read_workbook():
    """Read the first sheet of an .xlsx file as a list of value tuples."""
    def _read(path):
        workbook = load_workbook(path)
        try:
            return [tuple(row) for row in workbook.active.iter_rows(values_only=True)]
        finally:
            workbook.close()
    return _read


@pytest.fixture(autouse=True)
def clean_config_manager():
    reset_config_manager()
    yield
    reset_config_manager()
