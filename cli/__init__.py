"""
CLI Module for Floorball Shot Import

Command-line interface for importing shot exports and inspecting the
shot database.

Usage:
    python -m cli.main import TeamA_TeamB.csv --date 2024-01-01
"""
