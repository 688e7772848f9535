"""Tests for the seedprobe command line."""

import json

import pytest
from typer.testing import CliRunner

from seedprobe.cli import app

runner = CliRunner()


@pytest.fixture
def workspace(isolated_config, monkeypatch):
    """Isolated config plus a cache directory inside tmp_path."""
    monkeypatch.setenv("SEEDPROBE_CACHE_CACHE_DIR", str(isolated_config / "cache"))
    monkeypatch.setenv("SEEDPROBE_CACHE_MIN_CONFIDENCE_TO_CACHE", "0.0")
    return isolated_config


def write_snapshot(path, snapshot):
    path.write_text(json.dumps(snapshot.to_dict()))
    return path


class TestDetect:
    def test_json_output(self, workspace, team_snapshot):
        path = write_snapshot(workspace / "schema.json", team_snapshot)
        result = runner.invoke(app, ["detect", str(path), "--format", "json", "--no-cache", "-q"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["architecture"] == "team"
        assert data["from_cache"] is False
        assert data["schema_hash"] == team_snapshot.schema_hash()
        assert set(data["architecture_scores"]) == {"individual", "team", "hybrid"}
        assert data["reasoning"][0] == "Architecture analysis based on 5 pieces of evidence:"

    def test_second_run_uses_cache(self, workspace, hybrid_snapshot):
        path = write_snapshot(workspace / "schema.json", hybrid_snapshot)
        args = ["detect", str(path), "--format", "json", "-q", "--database-url", "postgres://db/app"]

        first = runner.invoke(app, args)
        second = runner.invoke(app, args)

        assert first.exit_code == 0, first.output
        assert json.loads(first.stdout)["from_cache"] is False
        assert json.loads(second.stdout)["from_cache"] is True
        assert (workspace / "cache").is_dir()

    def test_rich_output(self, workspace, individual_snapshot):
        path = write_snapshot(workspace / "schema.json", individual_snapshot)
        result = runner.invoke(app, ["detect", str(path), "--no-cache", "-q"])
        assert result.exit_code == 0, result.output
        assert "Architecture: individual" in result.stdout
        assert "Architecture Scores" in result.stdout
        assert "Low confidence in architecture detection" in result.stdout

    def test_empty_snapshot(self, workspace):
        path = workspace / "schema.json"
        path.write_text("{}")
        result = runner.invoke(app, ["detect", str(path), "--format", "json", "--no-cache", "-q"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["architecture"] is None
        assert data["overall_confidence"] == 0.0

    def test_invalid_json_exits_1(self, workspace):
        path = workspace / "schema.json"
        path.write_text("{not json")
        result = runner.invoke(app, ["detect", str(path), "--no-cache", "-q"])
        assert result.exit_code == 1
        assert "Cannot load schema snapshot" in result.stdout

    def test_invalid_json_reported_as_json(self, workspace):
        path = workspace / "schema.json"
        path.write_text("{not json")
        result = runner.invoke(
            app, ["detect", str(path), "--format", "json", "--no-cache", "-q"]
        )
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["error"] == "SnapshotError"
        assert data["details"]["source"] == str(path)

    def test_invalid_config_exits_1(self, workspace, team_snapshot):
        path = write_snapshot(workspace / "schema.json", team_snapshot)
        config = workspace / "bad.toml"
        config.write_text("[rules.no_such_rule]\nweight = 0.5\n")
        result = runner.invoke(app, ["detect", str(path), "-c", str(config), "--no-cache", "-q"])
        assert result.exit_code == 1

    def test_unknown_format(self, workspace, team_snapshot):
        path = write_snapshot(workspace / "schema.json", team_snapshot)
        result = runner.invoke(app, ["detect", str(path), "--format", "xml", "-q"])
        assert result.exit_code == 2


class TestCacheCommands:
    def test_info_clear_prune(self, workspace, hybrid_snapshot):
        path = write_snapshot(workspace / "schema.json", hybrid_snapshot)
        runner.invoke(app, ["detect", str(path), "--format", "json", "-q"])

        info = runner.invoke(app, ["cache-info"])
        assert info.exit_code == 0, info.output
        assert "Entries:         1" in info.stdout

        prune = runner.invoke(app, ["cache-prune"])
        assert prune.exit_code == 0, prune.output
        assert "0 expired, 0 evicted" in prune.stdout

        clear = runner.invoke(app, ["cache-clear"])
        assert clear.exit_code == 0, clear.output
        assert "Cache cleared successfully" in clear.stdout
        assert "(1 entries)" in clear.stdout

    def test_disabled_cache(self, workspace, monkeypatch):
        monkeypatch.setenv("SEEDPROBE_CACHE_ENABLED", "false")
        result = runner.invoke(app, ["cache-info"])
        assert result.exit_code == 0
        assert "Cache is disabled" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "seedprobe" in result.stdout
