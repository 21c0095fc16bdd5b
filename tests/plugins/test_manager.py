"""Tests for PluginManager: registration, entry-point loading, hook relay."""

from __future__ import annotations

import pluggy
import pytest

from timewsync.domain.state import CommandError
from timewsync.domain.types import ErrorKind
from timewsync.plugins.manager import ENTRY_POINT_GROUP, PluginManager

hookimpl = pluggy.HookimplMarker("timewsync")

ERROR = CommandError(kind=ErrorKind.NOT_ACTIVE, message="no timer is running")


class _RecordingPlugin:
    def __init__(self) -> None:
        self.errors: list[CommandError] = []

    @hookimpl
    def on_command_failed(self, error: CommandError) -> None:
        self.errors.append(error)


class _ClassRegisteredPlugin:
    received: list[CommandError] = []

    @hookimpl
    def on_command_failed(self, error: CommandError) -> None:
        type(self).received.append(error)


class _BrokenConstructorPlugin:
    def __init__(self) -> None:
        msg = "cannot construct"
        raise RuntimeError(msg)

    @hookimpl
    def on_command_failed(self, error: CommandError) -> None:
        pass


def _fake_entry_points(
    monkeypatch: pytest.MonkeyPatch, pm: PluginManager, *plugins: object
) -> list[str]:
    """Load *plugins* as if they came from installed entry points."""
    groups: list[str] = []

    def _load(group: str, name: str | None = None) -> int:
        groups.append(group)
        for plugin in plugins:
            label = plugin.__name__ if isinstance(plugin, type) else type(plugin).__name__
            pm._pm.register(plugin, name=label)
        return len(plugins)

    monkeypatch.setattr(pm._pm, "load_setuptools_entrypoints", _load)
    names = pm.discover_and_load()
    assert groups == [ENTRY_POINT_GROUP]
    return names


class TestRegistration:
    @pytest.mark.parametrize(
        "hook_name",
        ["on_state_changed", "on_tags_history_updated", "on_command_failed"],
    )
    def test_hookspecs_registered(self, hook_name: str) -> None:
        assert hasattr(PluginManager().hook, hook_name)

    def test_register_plugin_by_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin(), name="recorder")
        assert pm.plugin_names() == ["recorder"]

    def test_default_name_is_class_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin())
        assert pm.plugin_names() == ["_RecordingPlugin"]

    def test_hook_reaches_plugin(self) -> None:
        pm = PluginManager()
        plugin = _RecordingPlugin()
        pm.register_plugin(plugin)
        pm.hook.on_command_failed(error=ERROR)
        assert plugin.errors == [ERROR]


class TestDiscovery:
    def test_returns_builtins_and_entry_points(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin(), name="logging")
        names = _fake_entry_points(monkeypatch, pm, _RecordingPlugin())
        assert sorted(names) == ["_RecordingPlugin", "logging"]

    def test_classes_are_instantiated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pm = PluginManager()
        _ClassRegisteredPlugin.received = []

        names = _fake_entry_points(monkeypatch, pm, _ClassRegisteredPlugin)
        pm.hook.on_command_failed(error=ERROR)

        assert names == ["_ClassRegisteredPlugin"]
        assert _ClassRegisteredPlugin.received == [ERROR]

    def test_broken_constructor_is_skipped(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        pm = PluginManager()
        with caplog.at_level("WARNING"):
            names = _fake_entry_points(monkeypatch, pm, _BrokenConstructorPlugin)

        assert names == []
        assert "Skipping plugin _BrokenConstructorPlugin" in caplog.text

    def test_no_installed_plugins(self) -> None:
        assert PluginManager().discover_and_load() == []
