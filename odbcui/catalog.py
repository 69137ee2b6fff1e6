"""Resolve ODBC drivers and DSNs across the system and user scopes."""

from __future__ import annotations

import logging

from .models import DriverRecord, DsnRecord, Scope
from .store import ConfigurationStore, StoreHandle

LOG = logging.getLogger(__name__)

ODBC_ROOT = "SOFTWARE\\ODBC"
ODBC_INI = ODBC_ROOT + "\\ODBC.INI"
DSN_INDEX = ODBC_INI + "\\ODBC Data Sources"
ODBCINST_INI = ODBC_ROOT + "\\ODBCINST.INI"
DRIVER_INDEX = ODBCINST_INI + "\\ODBC Drivers"


def driver_key_path(name: str) -> str:
    """Location of a driver's detail key."""

    return f"{ODBCINST_INI}\\{name}"


def dsn_key_path(name: str) -> str:
    """Location of a DSN's detail key."""

    return f"{ODBC_INI}\\{name}"


def _read_values(handle: StoreHandle) -> dict[str, str]:
    values: dict[str, str] = {}
    for name in handle.value_names():
        value = handle.get_value(name)
        if value is not None:
            values[name] = value
    return values


class OdbcCatalog:
    """Read-only view of the ODBC configuration held by a store.

    Every call reads a fresh snapshot; nothing is cached between calls.
    Missing locations yield ``None`` or an empty tuple, store faults propagate.
    """

    def __init__(self, store: ConfigurationStore) -> None:
        self._store = store

    @property
    def store(self) -> ConfigurationStore:
        return self._store

    def list_driver_names(self, scope: Scope = Scope.SYSTEM) -> tuple[str, ...]:
        """Names registered under ``ODBC Drivers``."""

        with self._store.open_scope(scope) as root:
            index = root.open(DRIVER_INDEX)
            if index is None:
                return ()
            with index:
                return index.value_names()

    def get_driver(self, name: str, scope: Scope = Scope.SYSTEM) -> DriverRecord | None:
        with self._store.open_scope(scope) as root:
            values = self._read_location(root, driver_key_path(name))
        if values is None:
            return None
        return DriverRecord.parse(name, values)

    def list_drivers(self, scope: Scope = Scope.SYSTEM) -> tuple[DriverRecord, ...]:
        drivers: list[DriverRecord] = []
        for name in self.list_driver_names(scope):
            driver = self.get_driver(name, scope)
            if driver is None:
                LOG.debug("Skipping driver without a detail key", extra={"driver": name, "scope": scope.value})
                continue
            drivers.append(driver)
        return tuple(drivers)

    def driver_for(self, dsn: DsnRecord) -> DriverRecord | None:
        """Resolve the driver a DSN is registered against, if it is installed.

        Reads the system scope only, whatever the DSN's own scope; a user
        DSN resolves against the machine-wide driver list.
        """

        if not dsn.driver_name:
            return None
        return self.get_driver(dsn.driver_name)

    def list_dsn_names(self, scope: Scope) -> tuple[str, ...]:
        """Names registered under ``ODBC Data Sources``."""

        with self._store.open_scope(scope) as root:
            index = root.open(DSN_INDEX)
            if index is None:
                return ()
            with index:
                return index.value_names()

    def get_dsn(self, name: str, scope: Scope) -> DsnRecord | None:
        """Read one DSN from ``scope``.

        The driver name comes from the ``ODBC Data Sources`` index entry; a
        ``Driver`` value inside the DSN key is kept separately as the driver
        path.
        """

        with self._store.open_scope(scope) as root:
            index = root.open(DSN_INDEX)
            if index is None:
                return None
            with index:
                driver_name = index.get_value(name)
            values = self._read_location(root, dsn_key_path(name))
        if values is None:
            return None
        return DsnRecord.parse(name, values, driver_name=driver_name, scope=scope)

    def list_dsns(self, scope: Scope) -> tuple[DsnRecord, ...]:
        dsns: list[DsnRecord] = []
        for name in self.list_dsn_names(scope):
            dsn = self.get_dsn(name, scope)
            if dsn is None:
                LOG.debug("Skipping DSN without a detail key", extra={"dsn": name, "scope": scope.value})
                continue
            dsns.append(dsn)
        return tuple(dsns)

    def get_system_dsn(self, name: str) -> DsnRecord | None:
        return self.get_dsn(name, Scope.SYSTEM)

    def get_user_dsn(self, name: str) -> DsnRecord | None:
        return self.get_dsn(name, Scope.USER)

    def list_system_dsns(self) -> tuple[DsnRecord, ...]:
        return self.list_dsns(Scope.SYSTEM)

    def list_user_dsns(self) -> tuple[DsnRecord, ...]:
        return self.list_dsns(Scope.USER)

    def get_dsn_prefer_user(self, name: str) -> DsnRecord | None:
        """Return the user DSN if one exists, else the system DSN."""

        dsn = self.get_user_dsn(name)
        if dsn is None:
            dsn = self.get_system_dsn(name)
        return dsn

    def list_all_dsns(self) -> tuple[DsnRecord, ...]:
        """System DSNs with user DSNs of the same name replacing them in place.

        User-only DSNs are appended after the system ones.
        """

        merged = list(self.list_system_dsns())
        positions = {dsn.name: index for index, dsn in enumerate(merged)}
        for dsn in self.list_user_dsns():
            index = positions.get(dsn.name)
            if index is None:
                positions[dsn.name] = len(merged)
                merged.append(dsn)
            else:
                merged[index] = dsn
        return tuple(merged)

    def export_snapshot(self) -> dict[str, dict[str, dict[str, str]]]:
        """Copy every well-known location of both scopes into plain mappings."""

        data: dict[str, dict[str, dict[str, str]]] = {}
        for scope in Scope:
            locations: dict[str, dict[str, str]] = {}
            with self._store.open_scope(scope) as root:
                drivers = self._read_location(root, DRIVER_INDEX)
                if drivers is not None:
                    locations[DRIVER_INDEX] = drivers
                    for name in drivers:
                        values = self._read_location(root, driver_key_path(name))
                        if values is not None:
                            locations[driver_key_path(name)] = values
                dsns = self._read_location(root, DSN_INDEX)
                if dsns is not None:
                    locations[DSN_INDEX] = dsns
                    for name in dsns:
                        values = self._read_location(root, dsn_key_path(name))
                        if values is not None:
                            locations[dsn_key_path(name)] = values
            if locations:
                data[scope.value] = locations
        return data

    @staticmethod
    def _read_location(root: StoreHandle, path: str) -> dict[str, str] | None:
        handle = root.open(path)
        if handle is None:
            return None
        with handle:
            return _read_values(handle)


__all__ = [
    "DRIVER_INDEX",
    "DSN_INDEX",
    "ODBCINST_INI",
    "ODBC_INI",
    "OdbcCatalog",
    "driver_key_path",
    "dsn_key_path",
]
