"""Browse ODBC drivers and data sources from the platform registry."""

__version__ = "0.1.0"
