"""Tests for plughost.cli module."""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

import plughost.css
from plughost.cli import main
from plughost.config import CONFIG_FILENAME
from plughost.registry import plugin_module_name


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("PLUGHOST_APP_PATH", raising=False)
    monkeypatch.delenv("PLUGHOST_PLUGIN_DIR", raising=False)
    monkeypatch.delenv("PLUGHOST_LOG_LEVEL", raising=False)


@pytest.fixture
def api_module(tmp_path, monkeypatch):
    lib = tmp_path / "lib"
    lib.mkdir()
    (lib / "cli_api.py").write_text(
        textwrap.dedent("""
        from abc import ABC, abstractmethod

        class Exporter(ABC):
            @abstractmethod
            def export(self, text): ...

        NOT_A_CLASS = 1
        """)
    )
    monkeypatch.syspath_prepend(str(lib))
    return "cli_api"


class TestVersion:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "plughost" in result.output


class TestWhere:
    """Tests for the where command."""

    def test_lists_candidates(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("target/plugins").mkdir(parents=True)
            result = runner.invoke(main, ["where"])

            assert result.exit_code == 0
            assert "[x] build-flat" in result.output
            assert "[ ] relocatable-image" in result.output
            assert "(build-flat)" in result.output

    def test_json(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["where", "--json"])

            assert result.exit_code == 0
            data = json.loads(result.output)
            assert data["source"] == "fallback"
            assert data["selected"] == data["default"]
            labels = [c["label"] for c in data["candidates"]]
            assert labels[:3] == ["relocatable-image", "build-nested", "build-flat"]

    def test_named_override_selected(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("PLUGHOST_PLUGIN_DIR", str(tmp_path / "custom"))
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["where", "--json"])

            data = json.loads(result.output)
            assert data["source"] == "PLUGHOST_PLUGIN_DIR"
            assert data["selected"] == str(tmp_path / "custom")

    def test_config_directory_selected(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text('plugins:\n  directory: "mine"\n')
            result = runner.invoke(main, ["where", "--json"])

            data = json.loads(result.output)
            assert data["source"] == "config"
            assert data["selected"] == str(Path.cwd() / "mine")


class TestInit:
    """Tests for the init command."""

    def test_explicit_directory(self, runner, tmp_path):
        target = tmp_path / "a" / "plugins"
        result = runner.invoke(main, ["init", "-d", str(target)])

        assert result.exit_code == 0
        assert f"Plugin directory: {target}" in result.output
        assert target.is_dir()

    def test_named_override(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("PLUGHOST_PLUGIN_DIR", str(tmp_path / "env-plugins"))
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["init"])

        assert result.exit_code == 0
        assert (tmp_path / "env-plugins").is_dir()

    def test_creation_failure(self, runner, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        result = runner.invoke(main, ["init", "-d", str(blocker / "plugins")])

        assert result.exit_code == 1
        assert "Failed to create plugin directory" in result.output


class TestServices:
    """Tests for the services command."""

    def test_lists_providers(self, runner, tmp_path, api_module):
        plugins = tmp_path / "plugins"
        plugins.mkdir()
        (plugins / "shout.py").write_text(
            textwrap.dedent("""
            from cli_api import Exporter

            class Shout(Exporter):
                def export(self, text):
                    return text.upper()
            """)
        )
        result = runner.invoke(
            main, ["services", f"{api_module}:Exporter", "-d", str(plugins)]
        )

        assert result.exit_code == 0
        module_name = plugin_module_name(plugins / "shout.py")
        assert f"{module_name}:Shout" in result.output

    def test_no_providers(self, runner, tmp_path, api_module):
        result = runner.invoke(
            main, ["services", f"{api_module}:Exporter", "-d", str(tmp_path / "p")]
        )
        assert result.exit_code == 0
        assert "No providers of Exporter" in result.output

    @pytest.mark.parametrize(
        "capability",
        ["cli_api", "cli_api:Missing", "cli_api:NOT_A_CLASS", "no_such_mod:X"],
    )
    def test_bad_capability(self, runner, tmp_path, api_module, capability):
        result = runner.invoke(main, ["services", capability, "-d", str(tmp_path)])
        assert result.exit_code == 2


class TestResources:
    """Tests for the resources command."""

    def test_packaged(self, runner, tmp_path):
        result = runner.invoke(
            main, ["resources", "theme.css", "--root", str(tmp_path)]
        )

        assert result.exit_code == 0
        packaged = Path(plughost.css.__file__).parent / "theme.css"
        assert "packaged:absolute" in result.output
        assert packaged.absolute().as_uri() in result.output

    def test_local_override(self, runner, tmp_path):
        local = tmp_path / "css" / "theme.css"
        local.parent.mkdir()
        local.write_text(".root {}")
        result = runner.invoke(
            main, ["resources", "theme", "plugins.css", "--root", str(tmp_path)]
        )

        assert result.exit_code == 0
        assert "filesystem" in result.output
        assert local.absolute().as_uri() in result.output

    def test_unknown_name(self, runner, tmp_path):
        result = runner.invoke(main, ["resources", "nope.css", "--root", str(tmp_path)])
        assert result.exit_code == 2
        assert "Unknown stylesheet" in result.output


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_init_creates_file(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["config", "init"])

            assert result.exit_code == 0
            assert "Created:" in result.output
            assert Path(CONFIG_FILENAME).exists()

    def test_init_existing_fails(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("log_level: INFO")
            result = runner.invoke(main, ["config", "init"])

            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_show(self, runner, tmp_path):
        config_path = tmp_path / CONFIG_FILENAME
        config_path.write_text("log_level: INFO\n")
        result = runner.invoke(main, ["config", "show", "-c", str(config_path)])

        assert result.exit_code == 0
        assert "log_level: INFO" in result.output
        assert "override_key: PLUGHOST_PLUGIN_DIR" in result.output

    def test_where_found(self, runner, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("")
        result = runner.invoke(main, ["config", "where", "-d", str(tmp_path)])
        assert "Config file:" in result.output

    def test_where_missing(self, runner, tmp_path):
        result = runner.invoke(main, ["config", "where", "-d", str(tmp_path)])
        assert f"No {CONFIG_FILENAME} found" in result.output

    def test_invalid_config_reported(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("log_level: LOUD\n")
            result = runner.invoke(main, ["where"])

            assert result.exit_code == 1
            assert "Invalid log_level" in result.output
