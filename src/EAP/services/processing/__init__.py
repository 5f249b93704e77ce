"""Spreadsheet parsing and chart building."""
from .spreadsheet_parser import SheetData, parse_workbook
from .chart_builder import build_chart_config, build_chart_data

__all__ = ['SheetData', 'parse_workbook', 'build_chart_config', 'build_chart_data']
