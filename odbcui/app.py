"""Textual application entry point for odbcui."""

from __future__ import annotations

import asyncio
import inspect
import logging
import tomllib
from typing import Callable

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Footer, Header

from .catalog import OdbcCatalog
from .config import AppConfig, load_config, save_config
from .inventory import InventoryManager, InventoryState
from .plugins import InventoryHookCapability, PluginContext, PluginLoader
from .providers import DsnSelectProvider, InventoryReloadProvider
from .store import DEMO_SNAPSHOT, ConfigurationStore, MemoryStore, RegistryStore, StoreAccessError
from .translators import TranslatorRegistry, default_registry
from .widgets import DetailPane, NavigationSidebar, StatusBar

try:
    from examples.plugins.dsn_echo import DsnEchoPlugin
except ImportError:  # pragma: no cover - optional dev helper
    DsnEchoPlugin = None


LOG = logging.getLogger(__name__)

DEMO_LABEL = "Demo snapshot"


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def _build_store(config: AppConfig) -> tuple[ConfigurationStore, str]:
    """Create the configured store and a label describing it."""

    if config.store == "snapshot":
        if not config.snapshot_path:
            raise StoreAccessError("store = 'snapshot' requires snapshot_path")
        try:
            return MemoryStore.from_snapshot(config.snapshot_path), f"Snapshot {config.snapshot_path}"
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise StoreAccessError(f"Cannot read snapshot '{config.snapshot_path}': {exc}") from exc
    store = RegistryStore(config.registry_view)
    if config.registry_view == "default":
        return store, "Registry"
    return store, f"Registry ({config.registry_view}-bit view)"


class OdbcuiApp(App[None]):
    """Browser for ODBC drivers and data sources."""

    COMMANDS = App.COMMANDS | {DsnSelectProvider, InventoryReloadProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "reload", "Reload"),
        ("ctrl+y", "copy_connection", "Copy connection string"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._config = _load_app_config()
        self._pending_notifications: list[tuple[str, str]] = []
        self._translators: TranslatorRegistry = default_registry()
        self._inventory = self._create_inventory()
        self._inventory_unsubscribe: Callable[[], None] | None = None
        self._last_state: InventoryState | None = None
        self._inventory_hooks: list[InventoryHookCapability] = []
        self._plugin_loader = self._create_plugin_loader()
        self._plugin_loader.load()
        self._register_plugin_translators()
        self._inventory_hooks = self._collect_inventory_hooks()
        self._install_inventory_listener()

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        main_column = Container(DetailPane(self._inventory), id="main-column")
        yield Horizontal(NavigationSidebar(self._inventory), main_column, id="content")
        yield StatusBar(self._inventory)
        yield Footer()

    async def on_mount(self) -> None:
        self._flush_pending_notifications()

    @property
    def plugin_loader(self) -> PluginLoader:
        """Expose the plugin loader for tests and future wiring."""

        return self._plugin_loader

    @property
    def inventory(self) -> InventoryManager:
        return self._inventory

    @property
    def translators(self) -> TranslatorRegistry:
        return self._translators

    def action_reload(self) -> None:
        try:
            self._inventory.reload()
        except StoreAccessError as exc:
            self._safe_notify(f"Reload failed: {exc}", severity="error")

    def action_copy_connection(self) -> None:
        dsn = self._inventory.selected
        if dsn is None:
            return
        preview = self._inventory.preview_connection(dsn)
        if not preview.ok:
            self._safe_notify(preview.text, severity="warning")
            return
        self.copy_to_clipboard(preview.text)
        self._safe_notify(f"Copied connection string for {dsn.name}.")

    def select_dsn(self, name: str) -> None:
        """Show the requested DSN and remember the choice."""

        try:
            dsn = self._inventory.select(name)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        if self._config.active_dsn == dsn.name:
            return
        self._config = self._config.with_active_dsn(dsn.name)
        save_config(self._config)

    def _create_inventory(self) -> InventoryManager:
        fallback = OdbcCatalog(MemoryStore(DEMO_SNAPSHOT))
        try:
            store, label = _build_store(self._config)
        except StoreAccessError as exc:
            LOG.warning("Configured store unavailable", extra={"store": self._config.store, "error": str(exc)})
            self._pending_notifications.append((f"{exc}. Showing the demo snapshot.", "warning"))
            return InventoryManager(
                fallback,
                translators=self._translators,
                source_label=DEMO_LABEL,
                active_dsn=self._config.active_dsn,
            )
        return InventoryManager(
            OdbcCatalog(store),
            translators=self._translators,
            fallback_catalog=fallback,
            source_label=label,
            fallback_label=DEMO_LABEL,
            active_dsn=self._config.active_dsn,
        )

    def _create_plugin_loader(self) -> PluginLoader:
        ctx = PluginContext(
            app=self,
            catalog=self._inventory.catalog,
            translators=self._translators,
            config=self._config,
        )
        allowlist, disabled = self._config.plugin_filters()
        builtin_plugins = [DsnEchoPlugin] if DsnEchoPlugin is not None else None
        return PluginLoader(
            ctx,
            enabled_plugins=allowlist,
            disabled_plugins=disabled,
            builtin_plugins=builtin_plugins,
        )

    async def _shutdown(self) -> None:
        if self._inventory_unsubscribe:
            self._inventory_unsubscribe()
            self._inventory_unsubscribe = None
        await self._plugin_loader.shutdown()
        await super()._shutdown()

    def _register_plugin_translators(self) -> None:
        for plugin in self._plugin_loader.loaded:
            for capability in plugin.translators():
                self._translators.register(capability.translator)

    def _collect_inventory_hooks(self) -> list[InventoryHookCapability]:
        hooks: list[InventoryHookCapability] = []
        for plugin in self._plugin_loader.loaded:
            hooks.extend(plugin.inventory_hooks())
        return hooks

    def _install_inventory_listener(self) -> None:
        if self._inventory_unsubscribe:
            self._inventory_unsubscribe()
        self._inventory_unsubscribe = self._inventory.subscribe(self._handle_inventory_state)

    def _handle_inventory_state(self, state: InventoryState) -> None:
        self._dispatch_inventory_hooks(state)
        self._maybe_notify_state_change(state)
        self._last_state = state

    def _dispatch_inventory_hooks(self, state: InventoryState) -> None:
        for capability in self._inventory_hooks:
            try:
                result = capability.handler(state)
            except Exception:
                LOG.exception("Inventory hook failed", extra={"hook": capability.name})
                continue
            self._maybe_schedule_hook(result)

    def _maybe_schedule_hook(self, result: object) -> None:
        if result is None:
            return
        if inspect.isawaitable(result):
            try:
                asyncio.ensure_future(result)  # type: ignore[arg-type]
            except RuntimeError:
                asyncio.run(result)  # type: ignore[arg-type]

    def _maybe_notify_state_change(self, state: InventoryState) -> None:
        previous = self._last_state
        if state.using_fallback and (not previous or not previous.using_fallback):
            reason = ""
            if state.last_error:
                reason = f" ({state.last_error.splitlines()[0][:120]})"
            self._safe_notify(
                f"Configuration store unavailable, showing the demo snapshot{reason}.",
                severity="warning",
            )
        elif previous and previous.using_fallback and not state.using_fallback:
            self._safe_notify(f"Reading from {state.source_label} again.", severity="information")

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display notification", extra={"notice": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)  # type: ignore[arg-type]
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"notice": message})


def main() -> None:
    """Invoke the Textual application."""

    OdbcuiApp().run()


if __name__ == "__main__":
    main()
