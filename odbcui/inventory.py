"""Inventory manager wiring catalog snapshots into the UI."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Literal

from .catalog import OdbcCatalog
from .models import DriverRecord, DsnRecord
from .store import StoreAccessError
from .translators import TranslationError, TranslatorRegistry, default_registry

LOG = logging.getLogger(__name__)

InventoryListener = Callable[["InventoryState"], None]
PreviewStatus = Literal["ok", "unsupported", "error"]


@dataclass(frozen=True, slots=True)
class InventoryState:
    """Drivers and merged DSNs read in one reload."""

    drivers: tuple[DriverRecord, ...]
    dsns: tuple[DsnRecord, ...]
    refreshed_at: datetime
    selected: DsnRecord | None = None
    source_label: str = "Registry"
    using_fallback: bool = False
    last_error: str | None = None

    def dsn(self, name: str) -> DsnRecord | None:
        for dsn in self.dsns:
            if dsn.name == name:
                return dsn
        return None

    def driver(self, name: str | None) -> DriverRecord | None:
        for driver in self.drivers:
            if driver.name == name:
                return driver
        return None


@dataclass(frozen=True, slots=True)
class ConnectionPreview:
    """Outcome of translating a DSN.

    ``unsupported`` means no translator is registered for the driver, ``error``
    means the translator rejected the DSN's configuration.
    """

    status: PreviewStatus
    text: str

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class InventoryManager:
    """Reloads the catalog, tracks the selected DSN and notifies listeners."""

    def __init__(
        self,
        catalog: OdbcCatalog,
        *,
        translators: TranslatorRegistry | None = None,
        fallback_catalog: OdbcCatalog | None = None,
        source_label: str = "Registry",
        fallback_label: str = "Demo snapshot",
        active_dsn: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._fallback_catalog = fallback_catalog
        self._translators = translators if translators is not None else default_registry()
        self._source_label = source_label
        self._fallback_label = fallback_label
        self._listeners: set[InventoryListener] = set()
        self._state: InventoryState | None = None
        self._pending_selection = active_dsn
        self.reload()

    @property
    def state(self) -> InventoryState | None:
        return self._state

    @property
    def catalog(self) -> OdbcCatalog:
        """Catalog backing the current state (the fallback while degraded)."""

        if self._state and self._state.using_fallback and self._fallback_catalog is not None:
            return self._fallback_catalog
        return self._catalog

    @property
    def translators(self) -> TranslatorRegistry:
        return self._translators

    @property
    def dsns(self) -> tuple[DsnRecord, ...]:
        return self._state.dsns if self._state else ()

    @property
    def drivers(self) -> tuple[DriverRecord, ...]:
        return self._state.drivers if self._state else ()

    @property
    def selected(self) -> DsnRecord | None:
        return self._state.selected if self._state else None

    def reload(self) -> InventoryState:
        """Re-read drivers and DSNs, falling back when the store is unavailable."""

        selected_name = self._pending_selection
        if self._state and self._state.selected:
            selected_name = self._state.selected.name
        try:
            drivers, dsns = self._read(self._catalog)
        except StoreAccessError as exc:
            if self._fallback_catalog is None:
                raise
            LOG.warning(
                "Configuration store unavailable, using fallback",
                extra={"error": str(exc), "fallback": self._fallback_label},
            )
            drivers, dsns = self._read(self._fallback_catalog)
            state = self._build_state(drivers, dsns, selected_name, fallback=True, error=str(exc))
        else:
            state = self._build_state(drivers, dsns, selected_name, fallback=False, error=None)
        self._pending_selection = None
        self._state = state
        self._notify()
        return state

    def select(self, name: str) -> DsnRecord:
        """Mark the named DSN as selected."""

        if not self._state:
            raise ValueError("Inventory has not been loaded.")
        dsn = self._state.dsn(name)
        if dsn is None:
            raise ValueError(f"DSN '{name}' not found.")
        self._state = replace(self._state, selected=dsn)
        self._notify()
        return dsn

    def driver_for(self, dsn: DsnRecord) -> DriverRecord | None:
        """Driver record of ``dsn`` from the current snapshot, ``None`` if dangling."""

        if not self._state:
            return None
        return self._state.driver(dsn.driver_name)

    def preview_connection(self, dsn: DsnRecord) -> ConnectionPreview:
        """Translate ``dsn``, separating unsupported drivers from broken configuration."""

        try:
            connection_string = self._translators.connection_string(dsn)
        except TranslationError as exc:
            return ConnectionPreview("error", f"Invalid configuration: {exc}")
        if connection_string is None:
            driver = dsn.driver_name or "unknown driver"
            return ConnectionPreview("unsupported", f"No connection string translator for {driver}.")
        return ConnectionPreview("ok", connection_string)

    def subscribe(self, listener: InventoryListener) -> Callable[[], None]:
        """Subscribe to inventory updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        if self._state:
            listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    @staticmethod
    def _read(catalog: OdbcCatalog) -> tuple[tuple[DriverRecord, ...], tuple[DsnRecord, ...]]:
        return catalog.list_drivers(), catalog.list_all_dsns()

    def _build_state(
        self,
        drivers: tuple[DriverRecord, ...],
        dsns: tuple[DsnRecord, ...],
        selected_name: str | None,
        *,
        fallback: bool,
        error: str | None,
    ) -> InventoryState:
        selected = None
        if selected_name:
            selected = next((dsn for dsn in dsns if dsn.name == selected_name), None)
        if selected is None and dsns:
            selected = dsns[0]
        return InventoryState(
            drivers=drivers,
            dsns=dsns,
            refreshed_at=datetime.now(tz=timezone.utc),
            selected=selected,
            source_label=self._fallback_label if fallback else self._source_label,
            using_fallback=fallback,
            last_error=error,
        )

    def _notify(self) -> None:
        if not self._state:
            return
        for listener in tuple(self._listeners):
            listener(self._state)


__all__ = [
    "ConnectionPreview",
    "InventoryListener",
    "InventoryManager",
    "InventoryState",
]
