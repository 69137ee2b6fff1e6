"""Sidebar widget listing merged DSNs and installed drivers."""

from __future__ import annotations

from typing import Callable

from textual import on
from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import Label, ListItem, ListView, Static

from odbcui.inventory import InventoryManager, InventoryState
from odbcui.models import DsnRecord


class NavigationSidebar(Container):
    """Displays DSNs (user overrides tagged) and drivers from the inventory."""

    DEFAULT_CSS = """
    NavigationSidebar {
        width: 32;
        min-width: 24;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    NavigationSidebar .sidebar-heading {
        text-style: bold;
        margin-bottom: 1;
    }

    NavigationSidebar .sidebar-section {
        margin-bottom: 2;
    }

    #dsn-list {
        height: 1fr;
        min-height: 6;
        border: round $primary 30%;
        margin-bottom: 2;
    }

    #dsn-list .active {
        text-style: bold;
    }

    #driver-list {
        color: $text-muted;
        min-height: 3;
    }
    """

    def __init__(self, inventory: InventoryManager) -> None:
        super().__init__(id="nav-sidebar")
        self._inventory = inventory
        self._dsn_list: ListView | None = None
        self._dsn_items: dict[str, _DsnListItem] = {}
        self._drivers: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Data sources", classes="sidebar-heading")
        items = [_DsnListItem(dsn) for dsn in self._inventory.dsns]
        self._dsn_items = {item.dsn_name: item for item in items}
        self._dsn_list = ListView(*items, id="dsn-list")
        yield self._dsn_list
        yield Static("Drivers", classes="sidebar-heading")
        self._drivers = Static("No drivers installed.", id="driver-list", classes="sidebar-section")
        yield self._drivers

    async def on_mount(self) -> None:
        self._unsubscribe = self._inventory.subscribe(self._handle_inventory_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_inventory_update(self, state: InventoryState) -> None:
        self._render_dsns(state)
        self._render_drivers(state)

    def _render_dsns(self, state: InventoryState) -> None:
        if not self._dsn_list:
            return
        names = [dsn.name for dsn in state.dsns]
        current = [item.dsn_name for item in self._dsn_items.values()]
        if names != current or any(
            self._dsn_items[dsn.name].scope_tag != _scope_tag(dsn) for dsn in state.dsns
        ):
            items = [_DsnListItem(dsn) for dsn in state.dsns]
            self._dsn_items = {item.dsn_name: item for item in items}
            self._dsn_list.clear()
            self._dsn_list.extend(items)
        selected = state.selected.name if state.selected else None
        for index, name in enumerate(names):
            item = self._dsn_items[name]
            item.set_class(name == selected, "active")
            if name == selected and self._dsn_list.index != index:
                self._dsn_list.index = index

    def _render_drivers(self, state: InventoryState) -> None:
        if not self._drivers:
            return
        if not state.drivers:
            self._drivers.update("No drivers installed.")
            return
        translatable = set(self._inventory.translators.drivers())
        lines = [
            f"{driver.name}{' *' if driver.name in translatable else ''}"
            for driver in state.drivers
        ]
        self._drivers.update("\n".join(lines))

    @on(ListView.Selected, "#dsn-list")
    def _handle_dsn_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, _DsnListItem):
            self._request_select(item.dsn_name)
            event.stop()

    def _request_select(self, name: str) -> None:
        selector = getattr(self.app, "select_dsn", None)
        if selector is None:
            return
        selector(name)


def _scope_tag(dsn: DsnRecord) -> str:
    return "user" if dsn.is_user else "system"


class _DsnListItem(ListItem):
    """List item storing a DSN name for selection callbacks."""

    def __init__(self, dsn: DsnRecord) -> None:
        self.dsn_name = dsn.name
        self.scope_tag = _scope_tag(dsn)
        super().__init__(Label(f"{dsn.name} [{self.scope_tag}]", markup=False))


__all__ = ["NavigationSidebar"]
