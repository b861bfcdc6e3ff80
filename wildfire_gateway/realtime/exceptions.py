"""Realtime hub exceptions."""

from __future__ import annotations


class HubError(Exception):
    """Base exception for realtime hub errors."""


class UnknownConnectionError(HubError):
    """The connection id is not (or no longer) registered with the hub."""


class FrameError(HubError):
    """A client frame could not be decoded."""
