"""Plugin contract primitives shared between loaders and extensions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, NamedTuple, Protocol, Sequence

from odbcui.catalog import OdbcCatalog
from odbcui.config import AppConfig
from odbcui.translators import ConnectionStringTranslator, TranslatorRegistry

InventoryHandler = Callable[..., Awaitable[None] | None]


class CapabilityType(str, Enum):
    """Enumeration of supported plugin capability categories."""

    TRANSLATOR = "translator"
    INVENTORY_HOOK = "inventory_hook"


class PluginContext(NamedTuple):
    """Runtime dependencies exposed to plugins."""

    app: Any | None = None
    catalog: OdbcCatalog | None = None
    translators: TranslatorRegistry | None = None
    config: AppConfig | None = None


@dataclass(frozen=True, slots=True)
class TranslatorCapability:
    """Connection-string translator for one more driver family."""

    kind: ClassVar[CapabilityType] = CapabilityType.TRANSLATOR

    name: str
    translator: ConnectionStringTranslator

    @property
    def driver_name(self) -> str:
        return self.translator.driver_name


@dataclass(frozen=True, slots=True)
class InventoryHookCapability:
    """Callback receiving every reloaded inventory snapshot."""

    kind: ClassVar[CapabilityType] = CapabilityType.INVENTORY_HOOK

    name: str
    handler: InventoryHandler


CapabilitySpec = TranslatorCapability | InventoryHookCapability


class PluginDescriptor(Protocol):
    """Contract implemented by third-party plugins."""

    name: str
    version: str
    min_core: str

    def register(self, ctx: PluginContext) -> Sequence[CapabilitySpec]: ...

    async def on_shutdown(self) -> None: ...


class PluginError(RuntimeError):
    """Base error for plugin loader failures."""


class PluginCompatibilityError(PluginError):
    """Raised when a plugin does not satisfy the minimum core version."""
