"""Device store exceptions."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for device store failures."""


class StoreUnavailableError(StoreError):
    """The backing store could not be reached."""


class InvalidCursorError(StoreError):
    """A pagination cursor could not be decoded."""
