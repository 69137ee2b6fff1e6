"""Plugin loader exports."""

from .loader import DiscoveredPlugin, LoadedPlugin, PluginLoader
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

__all__ = [
    "CapabilitySpec",
    "CapabilityType",
    "DiscoveredPlugin",
    "InventoryHookCapability",
    "LoadedPlugin",
    "PluginCompatibilityError",
    "PluginContext",
    "PluginDescriptor",
    "PluginError",
    "PluginLoader",
    "TranslatorCapability",
]
