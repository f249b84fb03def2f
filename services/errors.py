"""Exceptions shared between the data store, services and HTTP layer."""

from __future__ import annotations


class DataStoreError(RuntimeError):
    """The backing data store could not be read or written."""


class NoDataError(LookupError):
    """A query succeeded but returned nothing to chart."""
