"""Version of the cadence package (PEP 440)."""

from __future__ import annotations

__version__ = "0.3.0"

PACKAGE_NAME = "cadence"
VERSION_INFO: tuple[int, int, int] = tuple(  # type: ignore[assignment]
    int(part) for part in __version__.split(".")[:3]
)


def get_version() -> str:
    return __version__


def get_version_tuple() -> tuple[int, int, int]:
    """(major, minor, patch); pre-release suffixes are not part of the tuple."""
    return VERSION_INFO


__all__ = ["__version__", "PACKAGE_NAME", "VERSION_INFO", "get_version", "get_version_tuple"]
