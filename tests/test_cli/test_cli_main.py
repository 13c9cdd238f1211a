"""
Tests for the CLI

Tests for the import, save, status and games commands.
"""

import pytest
import yaml

from cli import main as cli_main
from floorball_shots.database import Database


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring the global logger."""
    monkeypatch.setattr(cli_main, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "import_config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "database": {"snapshot_path": str(tmp_path / "data" / "floorball_data.sqlite")},
                "save": {"mode": "file"},
            }
        )
    )
    return path


@pytest.fixture
def export_file(tmp_path, sample_csv):
    path = tmp_path / "TeamA_TeamB.csv"
    path.write_text(sample_csv)
    return path


def run(config_path, *args) -> int:
    return cli_main.main(["--config", str(config_path), *args])


class TestImportCommand:
    """Tests for the import command."""

    def test_import_new_game(self, config_path, export_file, tmp_path, capsys):
        """Test importing an export into a new game."""
        assert run(config_path, "import", str(export_file)) == 0

        out = capsys.readouterr().out
        assert "Game: TeamA - TeamB (2024-01-01)" in out
        assert "Inserted: 10" in out

        db = Database.from_snapshot_file(tmp_path / "data" / "floorball_data.sqlite")
        assert db.game_exists("TeamA - TeamB", "2024-01-01") is not None
        db.close()

    def test_reimport_cancelled(self, config_path, export_file, monkeypatch, capsys):
        """Test declining the duplicate confirmation."""
        run(config_path, "import", str(export_file))
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        assert run(config_path, "import", str(export_file)) == 0
        out = capsys.readouterr().out
        assert "10 of 10 shots (100%) already exist" in out
        assert "Cancelled." in out

    def test_reimport_confirmed_with_yes(self, config_path, export_file, capsys):
        """Test that --yes skips the prompt."""
        run(config_path, "import", str(export_file))

        assert run(config_path, "import", str(export_file), "--yes") == 0
        out = capsys.readouterr().out
        assert "Inserted: 0" in out
        assert "Duplicates skipped: 10" in out

    def test_explicit_game_name_and_date(self, config_path, export_file, capsys):
        """Test overriding the derived game name and date."""
        args = ["import", str(export_file), "--game-name", "Cup Final", "--date", "2024-02-02"]
        assert run(config_path, *args) == 0

        assert "Game: Cup Final (2024-02-02)" in capsys.readouterr().out

    def test_missing_file(self, config_path, tmp_path, capsys):
        """Test a path that does not exist."""
        assert run(config_path, "import", str(tmp_path / "nope.csv")) == 1
        assert "File not found" in capsys.readouterr().out

    def test_unparseable_file(self, config_path, tmp_path, capsys):
        """Test that parse errors exit with failure."""
        path = tmp_path / "A_B.csv"
        path.write_text("not,a,shot,export\n1,2,3,4\n")

        assert run(config_path, "import", str(path)) == 1
        assert "Missing required columns" in capsys.readouterr().out


class TestOtherCommands:
    """Tests for save, status and games."""

    def test_status_and_games(self, config_path, export_file, capsys):
        """Test summaries after an import."""
        run(config_path, "import", str(export_file))
        capsys.readouterr()

        assert run(config_path, "status") == 0
        assert "Shots: 10" in capsys.readouterr().out

        assert run(config_path, "games") == 0
        assert "TeamA - TeamB" in capsys.readouterr().out

    def test_games_empty(self, config_path, capsys):
        """Test listing games of an empty database."""
        assert run(config_path, "games") == 0
        assert "No games stored." in capsys.readouterr().out

    def test_save(self, config_path, tmp_path, capsys):
        """Test re-saving the snapshot."""
        assert run(config_path, "save") == 0
        assert (tmp_path / "data" / "floorball_data.sqlite").exists()

    def test_missing_config(self, tmp_path, capsys):
        """Test an explicit config path that does not exist."""
        assert run(tmp_path / "missing.yaml", "status") == 1
        assert "Config file not found" in capsys.readouterr().out
