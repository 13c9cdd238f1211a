"""
Floorball Shot Import

Imports per-event shot exports (CSV) into a SQLite shot database,
skipping shots that are already stored for the same game.
"""

__version__ = "0.1.0"
__author__ = "Floorball Analytics Team"
