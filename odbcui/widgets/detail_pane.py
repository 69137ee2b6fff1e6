"""Detail pane showing the selected DSN, its driver and connection string."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Static

from odbcui.inventory import InventoryManager, InventoryState
from odbcui.models import DriverRecord, DsnRecord

_DSN_LABELS: tuple[tuple[str, str], ...] = (
    ("Description", "description"),
    ("Driver", "driver_name"),
    ("Driver path", "driver_path"),
    ("Server", "server_name"),
    ("Database", "database_name"),
    ("User ID", "user_id"),
    ("Host", "host"),
    ("CommLinks", "comm_links"),
)

_DRIVER_LABELS: tuple[tuple[str, str], ...] = (
    ("Driver DLL", "driver_dll"),
    ("Setup", "setup"),
    ("API level", "api_level"),
    ("SQL level", "sql_level"),
    ("ODBC version", "driver_odbc_ver"),
    ("Connect functions", "connect_functions"),
    ("File usage", "file_usage"),
    ("File extensions", "file_extensions"),
    ("Usage count", "usage_count"),
    ("CP timeout", "cp_timeout"),
)


class DetailPane(VerticalScroll):
    """Read-only view of one DSN."""

    DEFAULT_CSS = """
    DetailPane {
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    DetailPane .panel-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #dsn-attributes, #driver-attributes {
        margin-bottom: 1;
    }

    #connection-string {
        border-top: solid $surface-darken-2;
        padding-top: 1;
    }

    #connection-string.unsupported {
        color: $text-muted;
    }

    #connection-string.error {
        color: $error;
    }
    """

    def __init__(self, inventory: InventoryManager) -> None:
        super().__init__(id="detail-pane")
        self._inventory = inventory
        self._title = Static("", classes="panel-title", markup=False)
        self._dsn_attributes = Static("", id="dsn-attributes", markup=False)
        self._driver_attributes = Static("", id="driver-attributes", markup=False)
        self._connection = Static("", id="connection-string", markup=False)
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield self._title
        yield self._dsn_attributes
        yield Static("Driver", classes="panel-title")
        yield self._driver_attributes
        yield Static("Connection string", classes="panel-title")
        yield self._connection

    async def on_mount(self) -> None:
        self._unsubscribe = self._inventory.subscribe(self._handle_inventory_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_inventory_update(self, state: InventoryState) -> None:
        dsn = state.selected
        if dsn is None:
            self._title.update("No data sources configured.")
            self._dsn_attributes.update("")
            self._driver_attributes.update("")
            self._connection.update("")
            return
        scope = "User DSN" if dsn.is_user else "System DSN"
        self._title.update(f"{dsn.name} ({scope})")
        self._dsn_attributes.update(describe_dsn(dsn))
        self._driver_attributes.update(describe_driver(self._inventory.driver_for(dsn), dsn))
        preview = self._inventory.preview_connection(dsn)
        self._connection.set_class(preview.status == "unsupported", "unsupported")
        self._connection.set_class(preview.status == "error", "error")
        self._connection.update(preview.text)


def describe_dsn(dsn: DsnRecord) -> str:
    """Render the populated DSN fields, one per line; passwords are masked."""

    lines = [f"{label}: {getattr(dsn, attr)}" for label, attr in _DSN_LABELS if getattr(dsn, attr)]
    if dsn.password:
        lines.append("Password: ********")
    return "\n".join(lines) or "No attributes."


def describe_driver(driver: DriverRecord | None, dsn: DsnRecord) -> str:
    if driver is None:
        name = dsn.driver_name or "(none)"
        return f"{name} is not installed."
    lines = [f"Name: {driver.name}"]
    lines.extend(f"{label}: {getattr(driver, attr)}" for label, attr in _DRIVER_LABELS if getattr(driver, attr))
    return "\n".join(lines)


__all__ = ["DetailPane", "describe_driver", "describe_dsn"]
