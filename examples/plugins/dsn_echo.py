"""Sample plugin implementing the contract for manual and automated tests."""

from __future__ import annotations

from typing import Sequence

from odbcui.models import DsnRecord
from odbcui.plugins import (
    CapabilitySpec,
    InventoryHookCapability,
    PluginContext,
    PluginDescriptor,
    TranslatorCapability,
)
from odbcui.translators import ConnectionStringBuilder


class DsnEchoTranslator:
    """Points an ODBC connection string back at the DSN itself."""

    def __init__(self, driver_name: str = "PostgreSQL Unicode") -> None:
        self.driver_name = driver_name

    def translate(self, dsn: DsnRecord) -> ConnectionStringBuilder:
        builder = ConnectionStringBuilder()
        builder["DSN"] = dsn.name
        builder["UID"] = dsn.user_id
        return builder


class DsnEchoPlugin(PluginDescriptor):
    """Minimal descriptor used to validate the loader pipeline."""

    name = "dsn-echo"
    version = "0.0.1"
    min_core = "0.1.0"

    def __init__(self) -> None:
        self.shutdown_called = False
        self.registration_count = 0
        self.last_context: PluginContext | None = None
        self.updates = 0

    def register(self, ctx: PluginContext) -> Sequence[CapabilitySpec]:
        self.registration_count += 1
        self.last_context = ctx

        def _count(_state: object) -> None:
            self.updates += 1

        return [
            TranslatorCapability(name="dsn-echo.postgres", translator=DsnEchoTranslator()),
            InventoryHookCapability(name="dsn-echo.count", handler=_count),
        ]

    async def on_shutdown(self) -> None:
        self.shutdown_called = True
