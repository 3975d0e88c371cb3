"""
Processing module for import and export jobs.

- Importer: initialize, extract, transform, load and end stages
- Exporter: transform and load stages writing a workbook
- StagePipeline: sequential stage driver with timing
"""

from .exporter import Exporter, build_sheet, export_columns
from .importer import Importer
from .pipeline import StagePipeline

__all__ = [
    'Exporter',
    'Importer',
    'StagePipeline',
    'build_sheet',
    'export_columns',
]
