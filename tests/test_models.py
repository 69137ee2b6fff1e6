"""Tests for parsing raw attribute sets into records."""

from __future__ import annotations

from dataclasses import FrozenInstanceError, fields

import pytest

from odbcui.models import DriverRecord, DsnRecord, Scope


def _populated(record: object) -> dict[str, object]:
    return {f.name: getattr(record, f.name) for f in fields(record) if getattr(record, f.name) is not None}


def test_driver_round_trip_populates_known_fields_only() -> None:
    driver = DriverRecord.parse("X Driver", {"apilevel": "2", "driver": "x.dll", "fileusage": "1"})

    assert driver.api_level == "2"
    assert driver.driver_dll == "x.dll"
    assert driver.file_usage == "1"
    assert _populated(driver) == {"name": "X Driver", "api_level": "2", "driver_dll": "x.dll", "file_usage": "1"}


def test_driver_keys_match_case_insensitively() -> None:
    driver = DriverRecord.parse(
        "SQL Server",
        {
            "APILevel": "2",
            "ConnectFunctions": "YYY",
            "DriverODBCVer": "03.50",
            "FileExtns": "*.dbf",
            "Setup": "setup.dll",
            "SQLLevel": "1",
            "UsageCount": "3",
            "CPTimeout": "60",
            "PdxUninstall": "1",
        },
    )

    assert driver.api_level == "2"
    assert driver.connect_functions == "YYY"
    assert driver.driver_odbc_ver == "03.50"
    assert driver.file_extensions == "*.dbf"
    assert driver.setup == "setup.dll"
    assert driver.sql_level == "1"
    assert driver.usage_count == "3"
    assert driver.cp_timeout == "60"
    assert driver.pdx_uninstall == "1"
    assert str(driver) == "SQL Server"


def test_unknown_keys_are_dropped() -> None:
    driver = DriverRecord.parse("d", {"Vendor": "acme", "Driver": "d.dll"})
    dsn = DsnRecord.parse("s", {"Trusted_Connection": "Yes", "Port": "5432"})

    assert _populated(driver) == {"name": "d", "driver_dll": "d.dll"}
    assert _populated(dsn) == {"name": "s", "scope": Scope.SYSTEM}


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"": ""},
        {"DRIVER": None},
        {"weird key \x00": "value", "uid": 42},
        {"server": "", "host": "   "},
    ],
)
def test_parsing_is_total(data: dict[str, object]) -> None:
    DriverRecord.parse("name", data)
    DsnRecord.parse("name", data)


def test_non_string_values_are_converted() -> None:
    dsn = DsnRecord.parse("s", {"UID": 42})

    assert dsn.user_id == "42"


def test_dsn_fields_and_driver_identity() -> None:
    dsn = DsnRecord.parse(
        "Sales",
        {
            "Description": "Sales data",
            "ServerName": "db1",
            "Driver": "C:\\sa\\dbodbc12.dll",
            "UID": "app",
            "PWD": "secret",
            "DatabaseName": "prod",
            "CommLinks": "TCPIP{IP=db1}",
            "Host": "10.0.0.5",
        },
        driver_name="SQL Anywhere 12",
        scope=Scope.USER,
    )

    assert dsn.description == "Sales data"
    assert dsn.server_name == "db1"
    assert dsn.driver_name == "SQL Anywhere 12"
    assert dsn.driver_path == "C:\\sa\\dbodbc12.dll"
    assert dsn.user_id == "app"
    assert dsn.password == "secret"
    assert dsn.database_name == "prod"
    assert dsn.comm_links == "TCPIP{IP=db1}"
    assert dsn.host == "10.0.0.5"
    assert dsn.is_user
    assert str(dsn) == "Sales"


def test_driver_key_in_dsn_is_a_path_not_a_name() -> None:
    dsn = DsnRecord.parse("Sales", {"Driver": "SQL Anywhere 12"})

    assert dsn.driver_name is None
    assert dsn.driver_path == "SQL Anywhere 12"


@pytest.mark.parametrize(
    "data",
    [
        {"server": "primary", "servername": "secondary"},
        {"servername": "secondary", "server": "primary"},
        {"ServerName": "secondary", "SERVER": "primary"},
    ],
)
def test_server_takes_precedence_over_servername(data: dict[str, str]) -> None:
    dsn = DsnRecord.parse("s", data)

    assert dsn.server_name == "primary"


def test_servername_synonym_populates_server_field() -> None:
    assert DsnRecord.parse("s", {"ServerName": "only"}).server_name == "only"


def test_long_form_synonyms() -> None:
    dsn = DsnRecord.parse("s", {"UserID": "u", "Password": "p", "DBN": "db", "Links": "tcpip"})

    assert dsn.user_id == "u"
    assert dsn.password == "p"
    assert dsn.database_name == "db"
    assert dsn.comm_links == "tcpip"


def test_scope_defaults_to_system() -> None:
    dsn = DsnRecord.parse("s", {})

    assert dsn.scope is Scope.SYSTEM
    assert not dsn.is_user


def test_records_are_immutable() -> None:
    dsn = DsnRecord.parse("s", {})

    with pytest.raises(FrozenInstanceError):
        dsn.name = "other"  # type: ignore[misc]
