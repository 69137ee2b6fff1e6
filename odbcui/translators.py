"""Translate DSN records into provider connection strings."""

from __future__ import annotations

import logging
from typing import Iterator, Mapping, Protocol, runtime_checkable

from .models import DsnRecord

LOG = logging.getLogger(__name__)


class TranslationError(ValueError):
    """Raised when a DSN's configuration cannot be translated."""


class MissingSubAttributeError(TranslationError):
    """Raised when a composite field lacks a required sub-attribute."""

    def __init__(self, attribute: str, field: str, value: str) -> None:
        super().__init__(f"'{field}' value {value!r} does not define required '{attribute}'")
        self.attribute = attribute
        self.field = field
        self.value = value


class ConnectionStringBuilder:
    """Ordered ``key=value`` pairs serialized in OLE DB connection-string syntax.

    Assigning ``None`` or an empty string removes the key.
    """

    def __init__(self, pairs: Mapping[str, str] | None = None) -> None:
        self._pairs: dict[str, str] = {}
        for key, value in (pairs or {}).items():
            self[key] = value

    def __setitem__(self, key: str, value: str | None) -> None:
        if value is None or value == "":
            self._pairs.pop(key, None)
            return
        self._pairs[key] = value

    def __getitem__(self, key: str) -> str:
        return self._pairs[key]

    def __contains__(self, key: object) -> bool:
        return key in self._pairs

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._pairs.get(key, default)

    def as_dict(self) -> dict[str, str]:
        return dict(self._pairs)

    @property
    def connection_string(self) -> str:
        return ";".join(f"{_escape_key(key)}={_quote_value(value)}" for key, value in self._pairs.items())

    def __str__(self) -> str:
        return self.connection_string


def _escape_key(key: str) -> str:
    return key.replace("=", "==")


def _quote_value(value: str) -> str:
    needs_quotes = (
        ";" in value
        or value != value.strip()
        or value.startswith(("'", '"'))
        or ('"' in value and "'" in value)
    )
    if not needs_quotes:
        return value
    if '"' in value and "'" not in value:
        return f"'{value}'"
    escaped = value.replace('"', '""')
    return f'"{escaped}"'


@runtime_checkable
class ConnectionStringTranslator(Protocol):
    """Strategy turning a DSN of one driver family into a connection string."""

    driver_name: str

    def translate(self, dsn: DsnRecord) -> ConnectionStringBuilder:
        """Build the provider connection descriptor for ``dsn``."""


def parse_sub_attributes(text: str) -> dict[str, str]:
    """Split ``key=value;key=value`` into a mapping.

    Only the first ``=`` of a segment separates key from value. Empty segments
    are skipped, a segment without ``=`` maps to an empty value, and a repeated
    key keeps its last value.
    """

    pairs: dict[str, str] = {}
    for segment in text.split(";"):
        if not segment.strip():
            continue
        key, _, value = segment.partition("=")
        pairs[key.strip()] = value
    return pairs


TCPIP_PREFIX = "TCPIP"


def parse_comm_links(value: str, *, prefix: str = TCPIP_PREFIX) -> str | None:
    """Derive a ``host[:port]`` location from a ``CommLinks`` value.

    ``TCPIP{IP=PC-2015;DoBroad=No;ServerPort=8888}`` gives ``PC-2015:8888`` and
    a bare ``TCPIP`` gives ``localhost``. Values using another protocol give
    ``None``. Raises :class:`MissingSubAttributeError` when the bracketed list
    has no ``IP`` entry or leaves it empty.
    """

    if value[: len(prefix)].upper() != prefix.upper():
        return None
    remainder = value[len(prefix):]
    if len(remainder) <= 3:
        return "localhost"
    pairs = {key.lower(): item for key, item in parse_sub_attributes(remainder[1:-1]).items()}
    if not pairs.get("ip"):
        raise MissingSubAttributeError("IP", "CommLinks", value)
    location = pairs["ip"]
    port = pairs.get("serverport")
    if port is not None:
        location = f"{location}:{port}"
    return location


class SqlAnywhereTranslator:
    """SQL Anywhere 12 DSNs to the ``SAOLEDB.12`` OLE DB provider."""

    driver_name = "SQL Anywhere 12"
    provider = "SAOLEDB.12"

    def translate(self, dsn: DsnRecord) -> ConnectionStringBuilder:
        builder = ConnectionStringBuilder()
        builder["Provider"] = self.provider
        builder["Data Source"] = dsn.server_name
        builder["Initial Catalog"] = dsn.database_name
        builder["User ID"] = dsn.user_id
        if dsn.password:
            builder["Password"] = dsn.password
            builder["Persist Security Info"] = "True"
        builder["Location"] = self._location(dsn)
        return builder

    @staticmethod
    def _location(dsn: DsnRecord) -> str | None:
        # Host is written by the 32-bit ODBC administrator, CommLinks by the 64-bit one.
        if dsn.host:
            return dsn.host
        if dsn.comm_links:
            return parse_comm_links(dsn.comm_links)
        return None


class TranslatorRegistry:
    """Maps exact driver names to connection-string translators."""

    def __init__(self, translators: tuple[ConnectionStringTranslator, ...] = ()) -> None:
        self._translators: dict[str, ConnectionStringTranslator] = {}
        for translator in translators:
            self.register(translator)

    def register(self, translator: ConnectionStringTranslator) -> None:
        """Register a translator, replacing any previous one for its driver."""

        name = getattr(translator, "driver_name", None)
        if not name:
            raise ValueError(f"Translator {translator!r} does not declare a driver_name")
        if name in self._translators:
            LOG.debug("Replacing connection string translator", extra={"driver": name})
        self._translators[name] = translator

    def unregister(self, driver_name: str) -> None:
        self._translators.pop(driver_name, None)

    def get(self, driver_name: str | None) -> ConnectionStringTranslator | None:
        if driver_name is None:
            return None
        return self._translators.get(driver_name)

    def drivers(self) -> tuple[str, ...]:
        """Driver names with a registered translator."""

        return tuple(self._translators)

    def supports(self, dsn: DsnRecord) -> bool:
        return self.get(dsn.driver_name) is not None

    def builder_for(self, dsn: DsnRecord) -> ConnectionStringBuilder | None:
        """Return the connection descriptor, ``None`` if no translator applies."""

        translator = self.get(dsn.driver_name)
        if translator is None:
            return None
        return translator.translate(dsn)

    def connection_string(self, dsn: DsnRecord) -> str | None:
        builder = self.builder_for(dsn)
        if builder is None:
            return None
        return builder.connection_string


def default_registry() -> TranslatorRegistry:
    """Registry holding the built-in translators."""

    return TranslatorRegistry((SqlAnywhereTranslator(),))


__all__ = [
    "ConnectionStringBuilder",
    "ConnectionStringTranslator",
    "MissingSubAttributeError",
    "SqlAnywhereTranslator",
    "TCPIP_PREFIX",
    "TranslationError",
    "TranslatorRegistry",
    "default_registry",
    "parse_comm_links",
    "parse_sub_attributes",
]
