"""
Tests for the command-line interface
"""

import pytest
from click.testing import CliRunner

from focus_todo.cli import main
from focus_todo.server.auth import decode_access_token


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    """Test the non-server commands"""

    def test_token(self, runner, test_config):
        result = runner.invoke(main, ["token", "alice", "--minutes", "5"])
        assert result.exit_code == 0
        assert decode_access_token(result.output.strip())["sub"] == "alice"

    def test_preview(self, runner, test_config):
        result = runner.invoke(main, ["preview", "FREQ=WEEKLY;BYDAY=MO,WE;COUNT=4", "--start", "2024-01-01"])
        assert result.exit_code == 0
        for day in ("2024-01-01", "2024-01-03", "2024-01-08", "2024-01-10"):
            assert day in result.output
        assert "parent" in result.output

    def test_preview_limit(self, runner, test_config):
        result = runner.invoke(main, ["preview", "daily", "--start", "2024-01-01", "--limit", "3"])
        assert result.exit_code == 0
        assert "2024-01-03" in result.output
        assert "2024-01-04" not in result.output
        assert "more occurrence" in result.output

    def test_preview_unknown_pattern(self, runner, test_config):
        result = runner.invoke(main, ["preview", "now and then"])
        assert result.exit_code == 1
        assert "Unrecognized" in result.output

    def test_preview_bad_start(self, runner, test_config):
        result = runner.invoke(main, ["preview", "daily", "--start", "01/01/2024"])
        assert result.exit_code != 0

    def test_init_db(self, runner, test_config, db):
        result = runner.invoke(main, ["init-db"])
        assert result.exit_code == 0
        assert "Database ready" in result.output

    def test_init_config(self, runner, test_config, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        monkeypatch.setenv("FOCUS_TODO_CONFIG", str(path))

        result = runner.invoke(main, ["init-config"])
        assert result.exit_code == 0
        assert path.exists()

        again = runner.invoke(main, ["init-config"])
        assert "already exists" in again.output
