"""Integration modules for external systems."""

from __future__ import annotations

from collybrix.integrations.identity import DirectoryUser, IdentityClient

__all__ = [
    "DirectoryUser",
    "IdentityClient",
]
