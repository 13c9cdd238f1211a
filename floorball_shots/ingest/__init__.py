"""
Ingest Module

CSV parsing and row-to-shot mapping for tracking exports.
"""

from floorball_shots.ingest.csv_parser import (
    COLUMNS,
    ColumnBinding,
    ResultSummary,
    game_name_from_filename,
    map_row_to_shot,
    parse_csv,
    read_csv_file,
    summarize_results,
)

__all__ = [
    "COLUMNS",
    "ColumnBinding",
    "ResultSummary",
    "game_name_from_filename",
    "map_row_to_shot",
    "parse_csv",
    "read_csv_file",
    "summarize_results",
]
