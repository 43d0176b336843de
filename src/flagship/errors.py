"""Exception hierarchy raised by the flagship client and stores."""

from __future__ import annotations


class FlagshipError(Exception):
    """Base class for every error raised by this package."""


class StoreError(FlagshipError):
    """The backing document store could not produce a document."""


class RecordNotFoundError(StoreError):
    """The addressed record has no stored attributes."""

    def __init__(self, table_name: str, record_name: str) -> None:
        super().__init__(f"record {record_name!r} not found in {table_name!r}")
        self.table_name = table_name
        self.record_name = record_name


class DocumentDecodeError(StoreError):
    """The stored record does not decode into features and throttles."""


class StoreTimeoutError(StoreError):
    """A store load did not finish within the configured deadline."""


class ConstructionError(FlagshipError):
    """The initial snapshot could not be fetched, so no client was built."""


class RefreshError(FlagshipError):
    """A snapshot refresh failed; the previous snapshot is still held."""
