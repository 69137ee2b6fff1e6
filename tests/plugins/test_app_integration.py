"""App-level tests for inventory wiring and plugin loading."""

from __future__ import annotations

import importlib.metadata as metadata
from pathlib import Path

import pytest

from examples.plugins.dsn_echo import DsnEchoPlugin
from odbcui.app import OdbcuiApp, _build_store
from odbcui.config import AppConfig
from odbcui.models import Scope
from odbcui.plugins import InventoryHookCapability
from odbcui.providers import DsnSelectProvider, InventoryReloadProvider
from odbcui.store import DEMO_SNAPSHOT, MemoryStore, RegistryStore, StoreAccessError, write_snapshot

ENTRY_POINT = metadata.EntryPoint(
    name="dsn-echo",
    value="examples.plugins.dsn_echo:DsnEchoPlugin",
    group="odbcui.plugins",
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def fake_entry_points(monkeypatch: pytest.MonkeyPatch) -> None:
    def _entry_points() -> metadata.EntryPoints:
        return metadata.EntryPoints((ENTRY_POINT,))

    monkeypatch.setattr(metadata, "entry_points", _entry_points)


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.toml"
    monkeypatch.setattr("odbcui.config.CONFIG_FILE", path)
    return path


@pytest.fixture
def memory_store(monkeypatch: pytest.MonkeyPatch) -> MemoryStore:
    store = MemoryStore(DEMO_SNAPSHOT)
    monkeypatch.setattr("odbcui.app._build_store", lambda config: (store, "Memory"))
    return store


def _use_config(monkeypatch: pytest.MonkeyPatch, config: AppConfig) -> None:
    monkeypatch.setattr("odbcui.app._load_app_config", lambda: config)


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: OdbcuiApp) -> None:
        self.app = app
        self.focused = None


@pytest.mark.anyio
async def test_app_reads_configured_store(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    _use_config(monkeypatch, AppConfig(active_dsn="Warehouse"))

    app = OdbcuiApp()

    try:
        state = app.inventory.state
        assert state is not None
        assert state.source_label == "Memory"
        assert not state.using_fallback
        assert app.inventory.selected is not None
        assert app.inventory.selected.name == "Warehouse"
        assert memory_store.open_handles == 0
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_app_registers_plugin_translators(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    _use_config(monkeypatch, AppConfig(plugins={DsnEchoPlugin.name: True}))

    app = OdbcuiApp()

    try:
        assert app.plugin_loader.loaded
        assert app.translators.drivers() == ("SQL Anywhere 12", "PostgreSQL Unicode")
        scratch = app.inventory.select("Scratch")
        preview = app.inventory.preview_connection(scratch)
        assert preview.ok
        assert preview.text == "DSN=Scratch"
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_app_respects_disabled_plugins(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    _use_config(monkeypatch, AppConfig(plugins={DsnEchoPlugin.name: False}))

    app = OdbcuiApp()

    try:
        assert not app.plugin_loader.loaded
        assert app.translators.drivers() == ("SQL Anywhere 12",)
        scratch = app.inventory.select("Scratch")
        assert app.inventory.preview_connection(scratch).status == "unsupported"
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_inventory_hooks_receive_updates(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    hook_entry = metadata.EntryPoint(
        name="hook-plugin",
        value="tests.plugins.test_app_integration:_HookPlugin",
        group="odbcui.plugins",
    )
    monkeypatch.setattr(metadata, "entry_points", lambda: metadata.EntryPoints((hook_entry,)))
    _use_config(monkeypatch, AppConfig(plugins={"hook-plugin": True}))

    app = OdbcuiApp()

    try:
        app.inventory.reload()
        descriptor = app.plugin_loader.loaded[0].descriptor
        assert len(descriptor.events) == 2
        assert descriptor.events[-1].dsns == app.inventory.dsns
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_failing_hook_does_not_break_reload(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    _use_config(monkeypatch, AppConfig(plugins={DsnEchoPlugin.name: False}))

    app = OdbcuiApp()

    def _boom(state: object) -> None:
        raise RuntimeError("hook failed")

    try:
        app._inventory_hooks.append(InventoryHookCapability(name="boom", handler=_boom))  # type: ignore[attr-defined]
        assert app.inventory.reload().dsns
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_select_dsn_persists_active_dsn(
    monkeypatch: pytest.MonkeyPatch,
    memory_store: MemoryStore,
    config_path: Path,
) -> None:
    _use_config(monkeypatch, AppConfig())

    app = OdbcuiApp()

    try:
        app.select_dsn("Reporting")
        assert app.inventory.selected is not None
        assert app.inventory.selected.name == "Reporting"
        assert 'active_dsn = "Reporting"' in config_path.read_text()
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_dsn_select_provider_selects(
    monkeypatch: pytest.MonkeyPatch,
    memory_store: MemoryStore,
    config_path: Path,
) -> None:
    _use_config(monkeypatch, AppConfig())

    app = OdbcuiApp()

    try:
        provider = DsnSelectProvider(_DummyScreen(app))  # type: ignore[arg-type]
        hits = [hit async for hit in provider.discover()]
        assert len(hits) == len(app.inventory.dsns)
        target = next(hit for hit in hits if "Scratch" in (hit.display or ""))
        await target.command()
        assert app.inventory.selected is not None
        assert app.inventory.selected.scope is Scope.USER
        assert app.inventory.selected.name == "Scratch"
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_reload_provider_triggers_reload(monkeypatch: pytest.MonkeyPatch, memory_store: MemoryStore) -> None:
    _use_config(monkeypatch, AppConfig())

    app = OdbcuiApp()

    try:
        called = False
        original = app.inventory.reload

        def _fake_reload():  # type: ignore[no-untyped-def]
            nonlocal called
            called = True
            return original()

        app.inventory.reload = _fake_reload  # type: ignore[method-assign]
        provider = InventoryReloadProvider(_DummyScreen(app))  # type: ignore[arg-type]
        hits = [hit async for hit in provider.discover()]
        assert hits
        await hits[0].command()
        assert called
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_fallback_triggers_notification(monkeypatch: pytest.MonkeyPatch) -> None:
    failing = MemoryStore(DEMO_SNAPSHOT, unavailable_scopes=[Scope.SYSTEM])
    monkeypatch.setattr("odbcui.app._build_store", lambda config: (failing, "Registry"))
    _use_config(monkeypatch, AppConfig())

    app = OdbcuiApp()

    try:
        state = app.inventory.state
        assert state is not None and state.using_fallback is True
        assert state.source_label == "Demo snapshot"
        assert app._pending_notifications  # type: ignore[attr-defined]
        message, severity = app._pending_notifications[0]  # type: ignore[attr-defined]
        assert severity == "warning"
        assert "demo snapshot" in message
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_unbuildable_store_falls_back_to_demo(monkeypatch: pytest.MonkeyPatch) -> None:
    _use_config(monkeypatch, AppConfig(store="snapshot"))

    app = OdbcuiApp()

    try:
        state = app.inventory.state
        assert state is not None
        assert state.source_label == "Demo snapshot"
        message, severity = app._pending_notifications[0]  # type: ignore[attr-defined]
        assert severity == "warning"
        assert "snapshot_path" in message
    finally:
        await app.plugin_loader.shutdown()


@pytest.mark.anyio
async def test_copy_connection_reports_unsupported_driver(
    monkeypatch: pytest.MonkeyPatch,
    memory_store: MemoryStore,
) -> None:
    _use_config(monkeypatch, AppConfig(plugins={DsnEchoPlugin.name: False}))

    app = OdbcuiApp()

    try:
        app.inventory.select("Scratch")
        app._pending_notifications.clear()  # type: ignore[attr-defined]
        app.action_copy_connection()
        message, severity = app._pending_notifications[-1]  # type: ignore[attr-defined]
        assert severity == "warning"
        assert "PostgreSQL Unicode" in message
    finally:
        await app.plugin_loader.shutdown()


def test_build_store_reads_snapshot_file(tmp_path: Path) -> None:
    snapshot = tmp_path / "odbc.toml"
    write_snapshot(DEMO_SNAPSHOT, snapshot)

    store, label = _build_store(AppConfig(store="snapshot", snapshot_path=str(snapshot)))

    assert isinstance(store, MemoryStore)
    assert str(snapshot) in label


def test_build_store_rejects_missing_snapshot(tmp_path: Path) -> None:
    with pytest.raises(StoreAccessError):
        _build_store(AppConfig(store="snapshot", snapshot_path=str(tmp_path / "absent.toml")))


def test_build_store_labels_registry_view() -> None:
    store, label = _build_store(AppConfig(registry_view="32"))

    assert isinstance(store, RegistryStore)
    assert label == "Registry (32-bit view)"


class _HookPlugin:
    """Test plugin recording inventory hook events."""

    name = "hook-plugin"
    version = "0.0.1"
    min_core = "0.1.0"

    def __init__(self) -> None:
        self.events: list[object] = []

    def register(self, ctx):  # type: ignore[no-untyped-def]
        def _handle(state):  # type: ignore[no-untyped-def]
            self.events.append(state)

        return [InventoryHookCapability(name="hook-plugin.inventory", handler=_handle)]

    async def on_shutdown(self) -> None:  # pragma: no cover - nothing to clean
        return None
