from .spreadsheet_codec import SpreadsheetCodec

__all__ = ['SpreadsheetCodec']
