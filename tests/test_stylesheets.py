"""Tests for plughost.stylesheets module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

import plughost.css
from plughost.config import PlughostConfig, ResourcesConfig, resource_options_for
from plughost.resources import Origin
from plughost.stylesheets import Stylesheet, add_stylesheets
from plughost.watch import PollingWatcher

PACKAGED_CSS = Path(plughost.css.__file__).parent


def packaged_uri(file_name):
    return (PACKAGED_CSS / file_name).absolute().as_uri()


class TestStylesheet:
    """Tests for the Stylesheet catalog."""

    def test_descriptor(self):
        descriptor = Stylesheet.THEME.descriptor
        assert descriptor.name == "theme.css"
        assert descriptor.fragment == "css/theme.css"
        assert descriptor.resource_path == "plughost/css/theme.css"
        assert descriptor.module == "plughost.css"

    @pytest.mark.parametrize("name", ["theme.css", "THEME", "theme"])
    def test_from_name(self, name):
        assert Stylesheet.from_name(name) is Stylesheet.THEME

    def test_from_name_unknown(self):
        with pytest.raises(ValueError, match="Unknown stylesheet"):
            Stylesheet.from_name("nope.css")

    @pytest.mark.parametrize("sheet", list(Stylesheet))
    def test_every_sheet_is_packaged(self, sheet, tmp_path):
        """Each catalog entry resolves to the packaged file on disk."""
        sheets = []
        report = add_stylesheets(sheets, sheet, root=tmp_path)
        result = report.results[0]
        assert result.origin is Origin.PACKAGED
        assert result.scope == "absolute"
        assert sheets == [packaged_uri(sheet.file_name)]
        assert result.read_text() == (PACKAGED_CSS / sheet.file_name).read_text()


class TestAddStylesheets:
    """Tests for add_stylesheets."""

    def test_no_sheets(self, caplog):
        sheets = ["existing"]
        report = add_stylesheets(sheets)
        assert sheets == ["existing"]
        assert report.results == []
        assert "No stylesheets provided" in caplog.text

    def test_appends_in_order(self, tmp_path):
        local = tmp_path / "css" / "plugins.css"
        local.parent.mkdir()
        local.write_text(".plugin-title {}")

        sheets = ["app.css"]
        report = add_stylesheets(
            sheets, Stylesheet.THEME, Stylesheet.PLUGINS, root=tmp_path
        )
        assert sheets == [
            "app.css",
            packaged_uri("theme.css"),
            local.absolute().as_uri(),
        ]
        assert [r.origin for r in report.results] == [
            Origin.PACKAGED,
            Origin.FILESYSTEM,
        ]

    def test_local_override_watched(self, tmp_path):
        local = tmp_path / "css" / "theme.css"
        local.parent.mkdir()
        local.write_text(".root {}")
        watcher = MagicMock()

        report = add_stylesheets(
            [], Stylesheet.THEME, Stylesheet.PLUGINS, root=tmp_path, watcher=watcher
        )
        assert report.watched is True
        watcher.watch.assert_called_once_with([local.absolute().as_uri()])


class TestConfiguredStylesheets:
    """add_stylesheets driven by the resources config section."""

    @pytest.fixture
    def local_theme(self, tmp_path):
        local = tmp_path / "css" / "theme.css"
        local.parent.mkdir()
        local.write_text(".root {}")
        return local

    @pytest.fixture
    def created(self, monkeypatch):
        watchers = []

        class RecordingWatcher(PollingWatcher):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                watchers.append(self)

            def start(self):
                pass

        monkeypatch.setattr("plughost.resources.PollingWatcher", RecordingWatcher)
        return watchers

    def test_watch_and_interval_applied(self, tmp_path, local_theme, created):
        config = PlughostConfig(
            resources=ResourcesConfig(root=tmp_path, watch=True, poll_interval=3.0)
        )
        sheets = []
        report = add_stylesheets(
            sheets, Stylesheet.THEME, **resource_options_for(config)
        )

        assert sheets == [local_theme.absolute().as_uri()]
        assert report.watched is True
        assert len(created) == 1
        assert created[0].interval == 3.0

    def test_watch_disabled(self, tmp_path, local_theme, created):
        config = PlughostConfig(resources=ResourcesConfig(root=tmp_path, watch=False))
        report = add_stylesheets([], Stylesheet.THEME, **resource_options_for(config))

        assert report.results[0].origin is Origin.FILESYSTEM
        assert report.watched is False
        assert created == []
