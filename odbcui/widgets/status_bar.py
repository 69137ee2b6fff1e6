"""Status bar widget that mirrors inventory information."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from odbcui.inventory import InventoryManager, InventoryState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, inventory: InventoryManager) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._inventory = inventory
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._inventory.subscribe(self._handle_inventory_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_inventory_update(self, state: InventoryState) -> None:
        self.update(status_line(state))


def status_line(state: InventoryState) -> str:
    user = sum(1 for dsn in state.dsns if dsn.is_user)
    refreshed = state.refreshed_at.astimezone().strftime("%H:%M:%S")
    parts = [
        f"Source: {state.source_label}",
        f"DSNs: {len(state.dsns)} ({user} user)",
        f"Drivers: {len(state.drivers)}",
        f"Refreshed: {refreshed}",
    ]
    if state.last_error:
        parts.append(f"Error: {state.last_error.splitlines()[0][:80]}")
    return " | ".join(parts)


__all__ = ["StatusBar", "status_line"]
