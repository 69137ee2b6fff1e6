"""Typed records parsed from raw ODBC registry attribute sets."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

RawAttributes = Mapping[str, Any]


class Scope(str, Enum):
    """Configuration partition a record was read from."""

    SYSTEM = "system"
    USER = "user"


# Field name -> recognized keys, earliest key wins when several are present.
_DRIVER_FIELDS: Mapping[str, tuple[str, ...]] = {
    "api_level": ("apilevel",),
    "connect_functions": ("connectfunctions",),
    "driver_dll": ("driver",),
    "driver_odbc_ver": ("driverodbcver",),
    "file_extensions": ("fileextns",),
    "file_usage": ("fileusage",),
    "setup": ("setup",),
    "sql_level": ("sqllevel",),
    "usage_count": ("usagecount",),
    "cp_timeout": ("cptimeout",),
    "pdx_uninstall": ("pdxuninstall",),
}

_DSN_FIELDS: Mapping[str, tuple[str, ...]] = {
    "description": ("description",),
    "server_name": ("server", "servername"),
    "driver_path": ("driver",),
    "user_id": ("uid", "userid"),
    "password": ("pwd", "password"),
    "database_name": ("databasename", "dbn", "database"),
    "comm_links": ("commlinks", "links"),
    "host": ("host",),
}


def _extract(data: RawAttributes, fields: Mapping[str, tuple[str, ...]]) -> dict[str, str]:
    folded = {str(key).lower(): value for key, value in data.items()}
    values: dict[str, str] = {}
    for field_name, keys in fields.items():
        for key in keys:
            if key in folded and folded[key] is not None:
                values[field_name] = str(folded[key])
                break
    return values


@dataclass(frozen=True, slots=True)
class DriverRecord:
    """Metadata describing an installed ODBC driver."""

    name: str
    api_level: str | None = None
    connect_functions: str | None = None
    driver_dll: str | None = None
    driver_odbc_ver: str | None = None
    file_extensions: str | None = None
    file_usage: str | None = None
    setup: str | None = None
    sql_level: str | None = None
    usage_count: str | None = None
    # Driver-family extras, e.g. Oracle's CPTimeout or Paradox's PdxUninstall.
    cp_timeout: str | None = None
    pdx_uninstall: str | None = None

    @classmethod
    def parse(cls, name: str, data: RawAttributes) -> DriverRecord:
        """Build a record from the values of a driver's ODBCINST.INI key.

        Keys are matched case-insensitively; anything unrecognized is dropped.
        """

        return cls(name=name, **_extract(data, _DRIVER_FIELDS))

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class DsnRecord:
    """A named, driver-bound connection configuration.

    ``driver_name`` comes from the ``ODBC Data Sources`` index and identifies
    the owning driver. ``driver_path`` is the ``Driver`` value inside the DSN's
    own key, usually a DLL path. The two are read from different locations and
    may disagree.
    """

    name: str
    scope: Scope = Scope.SYSTEM
    driver_name: str | None = None
    driver_path: str | None = None
    description: str | None = None
    server_name: str | None = None
    database_name: str | None = None
    user_id: str | None = None
    password: str | None = None
    comm_links: str | None = None
    host: str | None = None

    @classmethod
    def parse(
        cls,
        name: str,
        data: RawAttributes,
        *,
        driver_name: str | None = None,
        scope: Scope = Scope.SYSTEM,
    ) -> DsnRecord:
        """Build a record from the values of a DSN's ODBC.INI key."""

        return cls(name=name, scope=scope, driver_name=driver_name, **_extract(data, _DSN_FIELDS))

    @property
    def is_user(self) -> bool:
        return self.scope is Scope.USER

    def __str__(self) -> str:
        return self.name


__all__ = ["DriverRecord", "DsnRecord", "RawAttributes", "Scope"]
