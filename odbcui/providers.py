"""Command palette providers for core app features."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .inventory import InventoryManager


class DsnSelectProvider(Provider):
    """Expose data sources to the command palette."""

    async def search(self, query: str) -> Hits:
        inventory = self._inventory
        if inventory is None:
            return
        matcher = self.matcher(query)
        for dsn in inventory.dsns:
            match = matcher.match(dsn.name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Show DSN: {matcher.highlight(dsn.name)}",
                    command=self._build_callback(dsn.name),
                    help=f"{dsn.driver_name or 'Unknown driver'} ({dsn.scope.value})",
                )

    async def discover(self) -> Hits:
        inventory = self._inventory
        if inventory is None:
            return
        for dsn in inventory.dsns:
            yield DiscoveryHit(
                display=f"Show DSN: {dsn.name}",
                command=self._build_callback(dsn.name),
                help=f"{dsn.driver_name or 'Unknown driver'} ({dsn.scope.value})",
            )

    @property
    def _inventory(self) -> InventoryManager | None:
        inventory = getattr(self.app, "inventory", None)
        if isinstance(inventory, InventoryManager):
            return inventory
        return None

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            selector = getattr(self.app, "select_dsn", None)
            if selector is None:
                return
            selector(name)

        return _run


class InventoryReloadProvider(Provider):
    """Expose a reload action for the ODBC configuration."""

    _LABEL = "Reload ODBC configuration"

    async def search(self, query: str) -> Hits:
        if self._reloader is None:
            return
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help="Re-read drivers and DSNs (Ctrl+R).",
            )

    async def discover(self) -> Hits:
        if self._reloader is None:
            return
        yield DiscoveryHit(
            display=self._LABEL,
            command=self._build_callback(),
            help="Re-read drivers and DSNs (Ctrl+R).",
        )

    @property
    def _reloader(self):  # type: ignore[no-untyped-def]
        return getattr(self.app, "action_reload", None)

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            reloader = self._reloader
            if reloader is None:
                return
            reloader()

        return _run


__all__ = ["DsnSelectProvider", "InventoryReloadProvider"]
