"""Tests for PluginManager — registration and hook dispatch."""

from __future__ import annotations

import pluggy
import pytest

from expandctl.plugins.manager import PluginManager

hookimpl = pluggy.HookimplMarker("expandctl")


class _DummyPlugin:
    """Minimal plugin for registration tests."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []

    @hookimpl
    def post_stage(self, run_id: str, stage: str, ok: bool, duration_ms: float) -> None:
        self.calls.append((stage, ok))


class _FailingPlugin:
    @hookimpl
    def post_run(self, run_id: str, policy: str, state: str, failures: list[dict]) -> None:
        raise ValueError("boom")


class _EntryPointClass:
    @hookimpl
    def post_run(self, run_id: str, policy: str, state: str, failures: list[dict]) -> None:
        pass


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "post_stage")
        assert hasattr(pm.hook, "post_run")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_DummyPlugin(), name="dummy")
        assert "dummy" in pm.list_plugin_names()

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_DummyPlugin())
        assert "_DummyPlugin" in pm.list_plugin_names()

    def test_unregister_plugin(self) -> None:
        pm = PluginManager()
        plugin = _DummyPlugin()
        pm.register_plugin(plugin, name="dummy")
        pm.unregister(plugin)
        assert "dummy" not in pm.list_plugin_names()

    def test_discover_and_load(self) -> None:
        pm = PluginManager()
        assert pm.is_loaded is False
        pm.discover_and_load()
        assert pm.is_loaded is True

    def test_class_plugins_are_instantiated(self) -> None:
        pm = PluginManager()
        pm._pm.register(_EntryPointClass, name="entry")
        pm._normalize_plugin_instances()
        plugin = pm._pm.get_plugin("entry")
        assert isinstance(plugin, _EntryPointClass)


class TestDispatch:
    def test_dispatch_calls_hook(self) -> None:
        pm = PluginManager()
        plugin = _DummyPlugin()
        pm.register_plugin(plugin)
        pm.dispatch(
            "post_stage",
            {"run_id": "1-a", "stage": "compiling", "ok": False, "duration_ms": 3.0},
        )
        assert plugin.calls == [("compiling", False)]

    def test_dispatch_without_plugins(self) -> None:
        PluginManager().dispatch(
            "post_run", {"run_id": "1-a", "policy": "strict", "state": "done", "failures": []}
        )

    def test_dispatch_propagates_plugin_errors(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_FailingPlugin())
        with pytest.raises(ValueError, match="boom"):
            pm.dispatch(
                "post_run",
                {"run_id": "1-a", "policy": "strict", "state": "done", "failures": []},
            )
