"""PCI ID database.

Resolves PCI vendor, device, subsystem and class codes into names using the
pci.ids file shipped by most distributions. The default database is
lazy-initialized on first access.

Example usage:
    >>> from pcinames.idsdb import lookup_vendor_name, lookup_class_name
    >>> lookup_vendor_name("0x8086")
    'Intel Corporation'
    >>> lookup_class_name("0x020000")
    'Ethernet controller'
    >>> lookup_vendor_name("0xffff0")  # unknown IDs come back normalized
    'ffff0'
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from pcinames.idsdb._parser import iter_entries, normalize_id, parse_line
from pcinames.idsdb._registry import DEFAULT_PCI_IDS_PATHS, PciIdDatabase
from pcinames.idsdb.models import DatabaseStats, EntryKind, IdEntry, ParserState

__all__ = [
    # Models
    "DatabaseStats",
    "EntryKind",
    "IdEntry",
    "ParserState",
    # Database
    "DEFAULT_PCI_IDS_PATHS",
    "PciIdDatabase",
    "iter_entries",
    "normalize_id",
    "parse_line",
    # Lookup functions
    "get_db",
    "load_database",
    "lookup_vendor_name",
    "lookup_device_name",
    "lookup_subsystem_name",
    "lookup_class_name",
]

# Lazy-initialized default database
_db: PciIdDatabase | None = None


def load_database(
    paths: Sequence[str | Path] = DEFAULT_PCI_IDS_PATHS,
    override_path: str | Path | None = None,
) -> PciIdDatabase:
    """Build a new database.

    Args:
        paths: Candidate pci.ids locations, tried in order.
        override_path: Explicit pci.ids location; replaces ``paths`` when set.

    Returns:
        The loaded database. It is empty if no file could be opened.
    """
    return PciIdDatabase(paths, override_path)


def get_db() -> PciIdDatabase:
    """Get the default database, loaded from the conventional paths.

    The database is lazy-initialized on first call.
    """
    global _db
    if _db is None:
        _db = load_database()
    return _db


def lookup_vendor_name(vendor_id: str) -> str:
    """Look up a vendor name in the default database.

    Example:
        >>> lookup_vendor_name("10DE")
        'NVIDIA Corporation'
    """
    return get_db().vendor_name(vendor_id)


def lookup_device_name(vendor_id: str, device_id: str) -> str:
    """Look up a device name in the default database."""
    return get_db().device_name(vendor_id, device_id)


def lookup_subsystem_name(
    vendor_id: str,
    device_id: str,
    subsys_vendor_id: str,
    subsys_device_id: str,
) -> str:
    """Look up a subsystem name in the default database."""
    return get_db().subsystem_name(vendor_id, device_id, subsys_vendor_id, subsys_device_id)


def lookup_class_name(class_id: str) -> str:
    """Look up the most specific class name in the default database."""
    return get_db().class_name(class_id)
