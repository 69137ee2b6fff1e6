"""Hierarchical key/value stores holding ODBC configuration."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any, Iterable, Mapping, Protocol, Sequence, runtime_checkable

import tomllib

from .models import Scope

SnapshotData = Mapping[str, Mapping[str, Mapping[str, Any]]]


class StoreAccessError(RuntimeError):
    """Raised when the store is unreachable or denies access."""


class ScopeUnavailableError(StoreAccessError):
    """Raised when the root of a scope cannot be opened."""


@runtime_checkable
class StoreHandle(Protocol):
    """An open location in the store; close it (or use ``with``) when done."""

    def open(self, path: str) -> "StoreHandle | None":
        """Open a sub-location relative to this one, ``None`` if it is missing."""

    def value_names(self) -> tuple[str, ...]:
        """Names of the values stored directly at this location."""

    def get_value(self, name: str) -> str | None:
        """Return a value as text, ``None`` if it is missing."""

    def close(self) -> None: ...

    def __enter__(self) -> "StoreHandle": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


@runtime_checkable
class ConfigurationStore(Protocol):
    """Protocol implemented by configuration stores."""

    def open_scope(self, scope: Scope) -> StoreHandle:
        """Open the root location of ``scope``."""


def _split(path: str) -> tuple[str, ...]:
    return tuple(part for part in path.split("\\") if part)


def _fold(parts: Iterable[str]) -> tuple[str, ...]:
    return tuple(part.lower() for part in parts)


class RegistryView(str, Enum):
    """Which registry view to read on 64-bit Windows."""

    DEFAULT = "default"
    BIT32 = "32"
    BIT64 = "64"


def _winreg():  # type: ignore[no-untyped-def]
    try:
        import winreg
    except ImportError as exc:
        raise ScopeUnavailableError("The Windows registry is not available on this platform") from exc
    return winreg


def _stringify(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (list, tuple)):
        return ";".join(str(item) for item in value)
    return str(value)


class RegistryHandle:
    """Read-only wrapper around an open ``winreg`` key."""

    def __init__(self, winreg: Any, key: Any, path: str, access: int) -> None:
        self._winreg = winreg
        self._key = key
        self._path = path
        self._access = access

    @property
    def path(self) -> str:
        return self._path

    def open(self, path: str) -> RegistryHandle | None:
        try:
            key = self._winreg.OpenKey(self._key, path, 0, self._access)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreAccessError(f"Cannot open registry key '{path}': {exc}") from exc
        child = "\\".join(part for part in (self._path, path) if part)
        return RegistryHandle(self._winreg, key, child, self._access)

    def value_names(self) -> tuple[str, ...]:
        try:
            _, count, _ = self._winreg.QueryInfoKey(self._key)
            return tuple(self._winreg.EnumValue(self._key, index)[0] for index in range(count))
        except OSError as exc:
            raise StoreAccessError(f"Cannot enumerate values of '{self._path}': {exc}") from exc

    def get_value(self, name: str) -> str | None:
        try:
            value, _ = self._winreg.QueryValueEx(self._key, name)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreAccessError(f"Cannot read '{name}' from '{self._path}': {exc}") from exc
        return _stringify(value)

    def close(self) -> None:
        self._key.Close()

    def __enter__(self) -> RegistryHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()


class RegistryStore:
    """Store backed by the Windows registry (HKLM for system, HKCU for user)."""

    def __init__(self, view: RegistryView | str = RegistryView.DEFAULT) -> None:
        self._view = RegistryView(view)

    @property
    def view(self) -> RegistryView:
        return self._view

    def open_scope(self, scope: Scope) -> RegistryHandle:
        winreg = _winreg()
        hive = winreg.HKEY_LOCAL_MACHINE if scope is Scope.SYSTEM else winreg.HKEY_CURRENT_USER
        try:
            key = winreg.ConnectRegistry(None, hive)
        except OSError as exc:
            raise ScopeUnavailableError(f"Cannot open the {scope.value} registry hive: {exc}") from exc
        return RegistryHandle(winreg, key, "", self._access_mask(winreg))

    def _access_mask(self, winreg: Any) -> int:
        access = winreg.KEY_READ
        if self._view is RegistryView.BIT32:
            access |= winreg.KEY_WOW64_32KEY
        elif self._view is RegistryView.BIT64:
            access |= winreg.KEY_WOW64_64KEY
        return access


class MemoryHandle:
    """Handle onto a location of a :class:`MemoryStore`."""

    def __init__(self, store: MemoryStore, scope: Scope, parts: tuple[str, ...]) -> None:
        self._store = store
        self._scope = scope
        self._parts = parts
        self._closed = False
        store._opened += 1

    @property
    def path(self) -> str:
        return "\\".join(self._parts)

    def open(self, path: str) -> MemoryHandle | None:
        self._ensure_open()
        parts = self._parts + _split(path)
        return self._store._open(self._scope, parts)

    def value_names(self) -> tuple[str, ...]:
        self._ensure_open()
        return tuple(self._store._values(self._scope, self._parts))

    def get_value(self, name: str) -> str | None:
        self._ensure_open()
        values = self._store._values(self._scope, self._parts)
        wanted = name.lower()
        for key, value in values.items():
            if key.lower() == wanted:
                return _stringify(value)
        return None

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._store._opened -= 1

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreAccessError(f"Handle for '{self.path}' is closed")

    def __enter__(self) -> MemoryHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()


class MemoryStore:
    """In-memory store keyed by scope, then backslash path, then value name.

    Paths and value names compare case-insensitively like the registry does.
    Parent locations of any stored path exist implicitly. ``denied_paths``
    raise :class:`StoreAccessError` when opened.
    """

    def __init__(
        self,
        data: SnapshotData | None = None,
        *,
        denied_paths: Iterable[str] = (),
        unavailable_scopes: Iterable[Scope] = (),
    ) -> None:
        self._keys: dict[Scope, dict[tuple[str, ...], dict[str, Any]]] = {scope: {} for scope in Scope}
        for scope_name, locations in (data or {}).items():
            scope = Scope(scope_name)
            for path, values in locations.items():
                self._keys[scope][_fold(_split(path))] = dict(values)
        self._denied = {_fold(_split(path)) for path in denied_paths}
        self._unavailable = set(unavailable_scopes)
        self._opened = 0

    @classmethod
    def from_snapshot(cls, path: str | Path) -> MemoryStore:
        """Load a store from a TOML snapshot written by :func:`write_snapshot`."""

        with Path(path).expanduser().open("rb") as handle:
            raw = tomllib.load(handle)
        data: dict[str, dict[str, dict[str, str]]] = {}
        for scope in Scope:
            locations = raw.get(scope.value)
            if not isinstance(locations, dict):
                continue
            data[scope.value] = {
                str(location): {str(name): str(value) for name, value in values.items()}
                for location, values in locations.items()
                if isinstance(values, dict)
            }
        return cls(data)

    @property
    def open_handles(self) -> int:
        """Number of handles currently open (testing helper)."""

        return self._opened

    def open_scope(self, scope: Scope) -> MemoryHandle:
        if scope in self._unavailable:
            raise ScopeUnavailableError(f"Scope '{scope.value}' is unavailable")
        return MemoryHandle(self, scope, ())

    def _open(self, scope: Scope, parts: tuple[str, ...]) -> MemoryHandle | None:
        folded = _fold(parts)
        if folded in self._denied:
            location = "\\".join(parts)
            raise StoreAccessError(f"Access denied to '{location}'")
        keys = self._keys[scope]
        if folded in keys or any(key[: len(folded)] == folded for key in keys):
            return MemoryHandle(self, scope, parts)
        return None

    def _values(self, scope: Scope, parts: tuple[str, ...]) -> dict[str, Any]:
        return self._keys[scope].get(_fold(parts), {})


def write_snapshot(data: SnapshotData, path: str | Path) -> None:
    """Persist snapshot data as TOML, one table per scope and location."""

    lines: list[str] = []
    for scope in Scope:
        locations = data.get(scope.value) or {}
        for location in locations:
            lines.append(f"[{scope.value}.{toml_string(location)}]")
            for name, value in locations[location].items():
                lines.append(f"{toml_string(name)} = {toml_string(str(value))}")
            lines.append("")
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text("\n".join(lines))


def toml_string(text: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes.
    return json.dumps(text, ensure_ascii=False)


DEMO_SNAPSHOT: SnapshotData = {
    "system": {
        "SOFTWARE\\ODBC\\ODBCINST.INI\\ODBC Drivers": {
            "SQL Anywhere 12": "Installed",
            "SQL Server": "Installed",
            "PostgreSQL Unicode": "Installed",
        },
        "SOFTWARE\\ODBC\\ODBCINST.INI\\SQL Anywhere 12": {
            "Driver": "C:\\Program Files\\SQL Anywhere 12\\Bin64\\dbodbc12.dll",
            "Setup": "C:\\Program Files\\SQL Anywhere 12\\Bin64\\dbodbc12.dll",
            "UsageCount": "1",
        },
        "SOFTWARE\\ODBC\\ODBCINST.INI\\SQL Server": {
            "APILevel": "2",
            "ConnectFunctions": "YYY",
            "Driver": "C:\\Windows\\system32\\SQLSRV32.dll",
            "DriverODBCVer": "03.50",
            "FileUsage": "0",
            "Setup": "C:\\Windows\\system32\\sqlsrv32.dll",
            "SQLLevel": "1",
            "UsageCount": "1",
            "CPTimeout": "60",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\ODBC Data Sources": {
            "Sales": "SQL Anywhere 12",
            "Warehouse": "SQL Anywhere 12",
            "Reporting": "SQL Server",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\Sales": {
            "Driver": "C:\\Program Files\\SQL Anywhere 12\\Bin64\\dbodbc12.dll",
            "Description": "Machine-wide sales database",
            "ServerName": "sales_srv",
            "DatabaseName": "sales",
            "UID": "reader",
            "CommLinks": "TCPIP{IP=sales-db;ServerPort=2638}",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\Warehouse": {
            "Driver": "C:\\Program Files\\SQL Anywhere 12\\Bin64\\dbodbc12.dll",
            "ServerName": "warehouse",
            "DatabaseName": "stock",
            "UID": "dba",
            "PWD": "sql",
            "CommLinks": "TCPIP{IP=PC-2015;DoBroad=No;ServerPort=8888}",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\Reporting": {
            "Driver": "C:\\Windows\\system32\\SQLSRV32.dll",
            "Server": "reports.example.local",
            "Database": "reporting",
            "Trusted_Connection": "Yes",
        },
    },
    "user": {
        "SOFTWARE\\ODBC\\ODBC.INI\\ODBC Data Sources": {
            "Sales": "SQL Anywhere 12",
            "Scratch": "PostgreSQL Unicode",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\Sales": {
            "Driver": "C:\\Program Files\\SQL Anywhere 12\\Bin64\\dbodbc12.dll",
            "Description": "Personal override of the sales DSN",
            "ServerName": "db1",
            "DatabaseName": "prod",
            "UID": "app",
            "Host": "10.0.0.5",
        },
        "SOFTWARE\\ODBC\\ODBC.INI\\Scratch": {
            "Servername": "localhost",
            "Database": "scratch",
            "Username": "postgres",
            "Port": "5432",
        },
    },
}


__all__ = [
    "ConfigurationStore",
    "DEMO_SNAPSHOT",
    "MemoryHandle",
    "MemoryStore",
    "RegistryHandle",
    "RegistryStore",
    "RegistryView",
    "ScopeUnavailableError",
    "SnapshotData",
    "StoreAccessError",
    "StoreHandle",
    "toml_string",
    "write_snapshot",
]
