"""Discover plugins through entry points and collect their capabilities."""

from __future__ import annotations

import importlib.metadata as metadata
import inspect
import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from odbcui import __version__ as CORE_VERSION

from .types import (
    CapabilitySpec,
    CapabilityType,
    InventoryHookCapability,
    PluginCompatibilityError,
    PluginContext,
    PluginDescriptor,
    PluginError,
    TranslatorCapability,
)

LOG = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "odbcui.plugins"

PluginSource = PluginDescriptor | type[PluginDescriptor]


def _version_key(value: str) -> tuple[int, int, int]:
    """``"1.2"`` -> ``(1, 2, 0)``; non-numeric parts count as zero."""

    numbers = [int(chunk) if chunk.isdigit() else 0 for chunk in value.split(".")[:3]]
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def _instantiate(source: object) -> PluginDescriptor:
    return source() if inspect.isclass(source) else source  # type: ignore[return-value]


@dataclass(slots=True, frozen=True)
class DiscoveredPlugin:
    """A plugin found in the entry-point group or among the built-ins."""

    name: str
    version: str
    min_core: str
    entry_point: metadata.EntryPoint
    descriptor: PluginDescriptor


@dataclass(slots=True, frozen=True)
class LoadedPlugin(DiscoveredPlugin):
    """A registered plugin with the capabilities it returned."""

    capabilities: Sequence[CapabilitySpec] = field(default_factory=tuple)

    def of_kind(self, kind: CapabilityType) -> tuple[CapabilitySpec, ...]:
        return tuple(cap for cap in self.capabilities if cap.kind is kind)

    def translators(self) -> tuple[TranslatorCapability, ...]:
        return self.of_kind(CapabilityType.TRANSLATOR)  # type: ignore[return-value]

    def inventory_hooks(self) -> tuple[InventoryHookCapability, ...]:
        return self.of_kind(CapabilityType.INVENTORY_HOOK)  # type: ignore[return-value]


def _describe(descriptor: PluginDescriptor, entry_point: metadata.EntryPoint) -> DiscoveredPlugin:
    return DiscoveredPlugin(
        name=descriptor.name,
        version=descriptor.version,
        min_core=getattr(descriptor, "min_core", "0.0.0"),
        entry_point=entry_point,
        descriptor=descriptor,
    )


class PluginLoader:
    """Finds plugins, filters them by config and core version, and registers them.

    ``enabled_plugins`` is an allowlist; when it is ``None`` every plugin not
    named in ``disabled_plugins`` loads. Entry points shadow built-in plugins
    of the same name.
    """

    def __init__(
        self,
        ctx: PluginContext,
        *,
        core_version: str = CORE_VERSION,
        entry_point_group: str = ENTRY_POINT_GROUP,
        enabled_plugins: Iterable[str] | None = None,
        disabled_plugins: Iterable[str] = (),
        builtin_plugins: Iterable[PluginSource] | None = None,
    ) -> None:
        self._ctx = ctx
        self._core_version = core_version
        self._group = entry_point_group
        self._allowed = None if enabled_plugins is None else frozenset(enabled_plugins)
        self._blocked = frozenset(disabled_plugins)
        self._builtins = tuple(builtin_plugins or ())
        self._discovered: list[DiscoveredPlugin] = []
        self._loaded: dict[str, LoadedPlugin] = {}

    @property
    def discovered(self) -> Sequence[DiscoveredPlugin]:
        return tuple(self._discovered)

    @property
    def loaded(self) -> Sequence[LoadedPlugin]:
        return tuple(self._loaded.values())

    def discover(self) -> list[DiscoveredPlugin]:
        found: dict[str, DiscoveredPlugin] = {}
        for plugin in self._from_entry_points():
            found[plugin.name] = plugin
        for plugin in self._from_builtins():
            found.setdefault(plugin.name, plugin)
        self._discovered = list(found.values())
        return self._discovered

    def load(self) -> list[LoadedPlugin]:
        """Register every discovered plugin that is enabled and compatible.

        Raises :class:`PluginError` when a plugin's ``register`` fails.
        """

        if not self._discovered:
            self.discover()
        loaded: list[LoadedPlugin] = []
        for plugin in self._discovered:
            if not self._is_enabled(plugin.name):
                LOG.debug("Skipping disabled plugin", extra={"plugin": plugin.name})
                continue
            try:
                self._check_core_version(plugin)
            except PluginCompatibilityError as exc:
                LOG.warning(
                    "Skipping plugin that needs a newer core",
                    extra={"plugin": plugin.name, "min_core": plugin.min_core, "error": str(exc)},
                )
                continue
            registered = self._register(plugin)
            self._loaded[plugin.name] = registered
            loaded.append(registered)
        return loaded

    async def shutdown(self) -> None:
        for plugin in self._loaded.values():
            try:
                await plugin.descriptor.on_shutdown()
            except Exception:  # pragma: no cover - shutdown is best effort
                LOG.exception("Plugin shutdown failed", extra={"plugin": plugin.name})

    def _register(self, plugin: DiscoveredPlugin) -> LoadedPlugin:
        try:
            capabilities = tuple(plugin.descriptor.register(self._ctx))
        except Exception as exc:
            LOG.exception("Plugin registration failed", extra={"plugin": plugin.name})
            raise PluginError(f"Failed to register plugin '{plugin.name}'") from exc
        LOG.debug(
            "Loaded plugin",
            extra={"plugin": plugin.name, "capabilities": [cap.kind.value for cap in capabilities]},
        )
        return LoadedPlugin(
            name=plugin.name,
            version=plugin.version,
            min_core=plugin.min_core,
            entry_point=plugin.entry_point,
            descriptor=plugin.descriptor,
            capabilities=capabilities,
        )

    def _is_enabled(self, name: str) -> bool:
        if self._allowed is not None:
            return name in self._allowed
        return name not in self._blocked

    def _check_core_version(self, plugin: DiscoveredPlugin) -> None:
        if _version_key(self._core_version) < _version_key(plugin.min_core):
            raise PluginCompatibilityError(
                f"Plugin '{plugin.name}' requires core>={plugin.min_core}, found {self._core_version}"
            )

    def _from_entry_points(self) -> Iterator[DiscoveredPlugin]:
        group = metadata.entry_points().select(group=self._group)
        for entry_point in sorted(group, key=lambda ep: ep.name):
            yield _describe(_instantiate(entry_point.load()), entry_point)

    def _from_builtins(self) -> Iterator[DiscoveredPlugin]:
        for source in self._builtins:
            descriptor = _instantiate(source)
            cls = type(descriptor)
            entry_point = metadata.EntryPoint(
                name=descriptor.name,
                value=f"{cls.__module__}:{cls.__qualname__}",
                group=self._group,
            )
            yield _describe(descriptor, entry_point)
