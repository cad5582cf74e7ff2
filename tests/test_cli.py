"""Tests for the command-line interface."""

import json

from click.testing import CliRunner

from taskphrase.cli import cli


NOW = "2025-06-11T10:30:00+00:00"


class TestParseCommand:
    """Test the parse command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_json_output(self):
        result = self.runner.invoke(
            cli, ["parse", "Take medicine every day at 8am", "--now", NOW, "--tz", "UTC", "--json"], obj={})
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["cleaned_title"] == "Take medicine"
        assert data["due_date"] == "2025-06-12T08:00:00.000+00:00"
        assert data["recurrence_pattern"] == "daily"
        assert data["suggestions"] == []

    def test_json_suggestions(self):
        result = self.runner.invoke(
            cli, ["parse", "Water plants evry Monday", "--now", NOW, "--tz", "UTC", "--json"], obj={})
        assert result.exit_code == 0, result.output
        assert any("every" in s for s in json.loads(result.output)["suggestions"])

    def test_table_output(self):
        result = self.runner.invoke(
            cli, ["parse", "Pay credit card bill monthly on the 5th", "--now", NOW, "--tz", "UTC"], obj={})
        assert result.exit_code == 0, result.output
        assert "Pay credit card bill" in result.output
        assert "2025-07-05" in result.output
        assert "monthly" in result.output

    def test_bad_timezone(self):
        result = self.runner.invoke(cli, ["parse", "Buy milk", "--tz", "Mars/Olympus_Mons"], obj={})
        assert result.exit_code == 2

    def test_bad_now(self):
        result = self.runner.invoke(cli, ["parse", "Buy milk", "--now", "yesterday-ish"], obj={})
        assert result.exit_code == 2

    def test_config_option(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("default_due_hour: 14\n")
        result = self.runner.invoke(
            cli, ["--config", str(path), "parse", "Buy milk", "--now", NOW, "--tz", "UTC", "--json"], obj={})
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["due_date"] == "2025-06-12T14:00:00.000+00:00"


class TestOccurrencesCommand:
    """Test the occurrences command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_stops_at_end_boundary(self):
        result = self.runner.invoke(
            cli, ["occurrences", "Backup files every Friday until Jun 27th", "--now", NOW, "--tz", "UTC"], obj={})
        assert result.exit_code == 0, result.output
        assert "2025-06-13" in result.output
        assert "2025-06-20" in result.output
        assert "2025-06-27" in result.output
        assert "2025-07-04" not in result.output

    def test_window(self):
        result = self.runner.invoke(
            cli, ["occurrences", "Stretch every 3 days", "--days", "7", "--now", NOW, "--tz", "UTC"], obj={})
        assert result.exit_code == 0, result.output
        assert "2025-06-12" in result.output
        assert "2025-06-15" in result.output
        assert "2025-06-18" in result.output
        assert "2025-06-21" not in result.output

    def test_one_off_task(self):
        result = self.runner.invoke(
            cli, ["occurrences", "Buy milk", "--now", NOW, "--tz", "UTC"], obj={})
        assert result.exit_code == 0, result.output
        assert "2025-06-12" in result.output
