"""Ingress-specific exceptions."""

from __future__ import annotations


class IngressError(Exception):
    """Base exception for webhook ingress errors."""


class EnvelopeParseError(IngressError):
    """The delivery body is not a JSON object."""
