"""Advertisement matching for device discovery."""

from __future__ import annotations


def name_matches_prefix(name: str | None, prefix: str) -> bool:
    if not name:
        return False
    return name.startswith(prefix)


def advertised_name(device_name: str | None, local_name: str | None) -> str | None:
    """Prefer the name from the advertisement payload, falling back to the cached device name."""
    return local_name or device_name
