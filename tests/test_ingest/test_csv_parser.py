"""
Tests for CSV Parser

Tests for line parsing, header binding and row-to-shot mapping.
"""

import pytest

from floorball_shots.errors import ParseError
from floorball_shots.ingest.csv_parser import (
    COLUMNS,
    ColumnBinding,
    game_name_from_filename,
    is_blank_row,
    map_row_to_shot,
    parse_csv,
    read_csv_file,
    summarize_results,
)
from floorball_shots.models.shot import ShotRecord


class TestParseCsv:
    """Tests for parse_csv."""

    def test_quoted_comma_stays_in_cell(self):
        """Test that a quoted comma does not split the cell."""
        assert parse_csv('a,"b,c",d') == [["a", "b,c", "d"]]

    def test_doubled_quotes_unescape(self):
        """Test that doubled quotes inside a quoted cell become one quote."""
        rows = parse_csv('"say ""hi""",x')
        assert rows == [['say "hi"', "x"]]

    def test_row_count_matches_line_count(self):
        """Test that every line becomes exactly one row."""
        text = "h1,h2\n1,2\n3,4\n5,6"
        assert len(parse_csv(text)) == 4

    def test_blank_line_kept_as_empty_row(self):
        """Test that an interior blank line is an empty row."""
        rows = parse_csv("h\n\n1")
        assert rows == [["h"], [], ["1"]]

    def test_cells_are_trimmed(self):
        """Test that surrounding whitespace is removed from cells."""
        assert parse_csv(" a ,  b,c  ") == [["a", "b", "c"]]

    def test_crlf_line_endings(self):
        """Test Windows line endings."""
        assert parse_csv("a,b\r\n1,2\r\n") == [["a", "b"], ["1", "2"]]

    def test_byte_order_mark_removed(self):
        """Test that a leading BOM does not end up in the first header."""
        rows = parse_csv("\ufeffDate,Time\n2024-01-01,05:30")
        assert rows[0][0] == "Date"

    def test_column_count_not_checked(self):
        """Test that ragged rows are returned as-is."""
        rows = parse_csv("a,b,c\n1\n1,2,3,4")
        assert [len(r) for r in rows] == [3, 1, 4]

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", "\ufeff"])
    def test_empty_input_rejected(self, text):
        """Test that empty input raises ParseError."""
        with pytest.raises(ParseError):
            parse_csv(text)

    def test_unbalanced_quote_rejected(self):
        """Test that an unterminated quote reports its line."""
        with pytest.raises(ParseError) as exc_info:
            parse_csv('h1,h2\n1,2\na,"b,c')

        assert exc_info.value.line_number == 3
        assert str(exc_info.value).startswith("line 3:")


class TestMapRowToShot:
    """Tests for map_row_to_shot."""

    def test_full_row_maps_all_fields(self, csv_row):
        """Test that a full row fills all 31 fields."""
        row = parse_csv(csv_row())[0]
        shot = map_row_to_shot(row)

        assert isinstance(shot, ShotRecord)
        assert len(shot.model_dump()) == 31
        assert shot.date == "2024-01-01"
        assert shot.time == "05:30"
        assert shot.shooter == "#10 Virtanen"
        assert shot.result == "Goal"
        assert shot.distance == 8.5
        assert shot.angle == 30.0
        assert shot.player_team1 == 5

    def test_bad_numbers_become_zero(self):
        """Test that malformed numeric cells become 0."""
        row = ["2024-01-01", "A", "B", "01:00", "A", "Saved", "Direct", "abc", "", "#9"]
        row += [""] * 15 + ["x", "1.5", "far", "NaN", "", "inf"]
        shot = map_row_to_shot(row)

        assert shot.xg == 0.0
        assert shot.xgot == 0.0
        assert shot.pp == 0
        assert shot.sh == 1
        assert shot.distance == 0.0
        assert shot.angle == 0.0
        assert shot.player_team1 == 0
        assert shot.player_team2 == 0

    def test_short_row_gets_defaults(self):
        """Test that missing trailing columns default to empty values."""
        shot = map_row_to_shot(["2024-01-01", "A", "B", "01:00"])

        assert shot.time == "01:00"
        assert shot.shooter == ""
        assert shot.distance == 0.0
        assert len(shot.model_dump()) == 31

    def test_header_binding_handles_reordered_columns(self):
        """Test that columns are found by header name."""
        headers = [header for _, header in COLUMNS]
        reordered = list(reversed(headers))
        binding = ColumnBinding.from_header(reordered)

        values = {header: f"v{i}" for i, header in enumerate(headers)}
        values["Distance"] = "12.5"
        row = [values[h] for h in reordered]
        shot = map_row_to_shot(row, binding)

        assert shot.date == "v0"
        assert shot.time == "v3"
        assert shot.distance == 12.5

    def test_header_matching_ignores_case_and_spaces(self):
        """Test lenient header matching."""
        headers = [header.upper().replace(" ", "") for _, header in COLUMNS]
        binding = ColumnBinding.from_header(headers)
        assert binding.indices["shooting_team"] == 4

    def test_missing_required_header_rejected(self):
        """Test that a header without required columns raises ParseError."""
        headers = [header for _, header in COLUMNS if header not in ("Time", "Angle")]
        with pytest.raises(ParseError) as exc_info:
            ColumnBinding.from_header(headers)

        assert exc_info.value.line_number == 1
        assert "Time" in str(exc_info.value)
        assert "Angle" in str(exc_info.value)

    def test_optional_columns_may_be_missing(self):
        """Test that only required headers are needed."""
        headers = ["Date", "Team 1", "Team 2", "Time", "Shooting Team",
                   "Result", "Type", "xG", "xGOT", "Distance", "Angle"]
        binding = ColumnBinding.from_header(headers)
        shot = map_row_to_shot(
            ["2024-01-01", "A", "B", "02:00", "A", "Missed", "Rebound", "0.1", "0", "7", "45"],
            binding,
        )
        assert shot.shooter == ""
        assert shot.angle == 45.0


class TestHelpers:
    """Tests for summaries and file helpers."""

    def test_is_blank_row(self):
        """Test blank row detection."""
        assert is_blank_row([])
        assert is_blank_row(["", "", ""])
        assert not is_blank_row(["", "x"])

    def test_summarize_results(self):
        """Test result counting."""
        shots = [
            ShotRecord(result="Goal"),
            ShotRecord(result="goal"),
            ShotRecord(result="Saved"),
            ShotRecord(result="Blocked"),
            ShotRecord(result="Missed"),
            ShotRecord(result="Saved", shot_type="Turnover | Direct"),
            ShotRecord(result="Post"),
        ]
        summary = summarize_results(shots)

        assert summary.total == 7
        assert summary.goals == 2
        assert summary.saves == 1
        assert summary.blocked == 1
        assert summary.missed == 1
        assert summary.turnovers == 1
        assert summary.other == ["Post"]

    def test_game_name_from_filename(self):
        """Test game name derivation from export filenames."""
        assert game_name_from_filename("exports/Oilers_Flames.csv") == "Oilers - Flames"
        assert game_name_from_filename("Oilers_Flames_2024.csv") == "Oilers - Flames"
        assert game_name_from_filename("shots.csv") is None

    def test_read_csv_file_strips_bom(self, tmp_path, csv_header):
        """Test reading an export written with a BOM."""
        path = tmp_path / "A_B.csv"
        path.write_bytes(("\ufeff" + csv_header + "\n").encode("utf-8"))

        text = read_csv_file(path)
        assert text.startswith("Date,")
