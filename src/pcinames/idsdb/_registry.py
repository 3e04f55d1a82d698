"""PCI ID database with name lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TextIO

from pcinames.idsdb._parser import iter_entries, normalize_id
from pcinames.idsdb.models import DatabaseStats, EntryKind, IdEntry

logger = logging.getLogger(__name__)

# Conventional locations of pci.ids, tried in order
DEFAULT_PCI_IDS_PATHS: tuple[str, ...] = (
    "/usr/share/misc/pci.ids",
    "/usr/share/hwdata/pci.ids",
)


class PciIdDatabase:
    """Name lookups backed by a parsed pci.ids file.

    The file is parsed once at construction time. Afterwards the tables are
    only read, so one instance can be shared between threads.

    Lookups never raise. A miss returns the normalized identifier that was
    asked for, except for class codes, which return an "Unknown class" label.
    """

    def __init__(
        self,
        paths: Sequence[str | Path] = DEFAULT_PCI_IDS_PATHS,
        override_path: str | Path | None = None,
    ) -> None:
        """Load the database from the first readable file.

        Args:
            paths: Candidate pci.ids locations, tried in order.
            override_path: Explicit pci.ids location. When set, it is the
                only file tried and ``paths`` is ignored.
        """
        self._vendors: dict[str, str] = {}
        self._devices: dict[str, dict[str, str]] = {}
        self._subsystems: dict[str, dict[str, str]] = {}
        self._classes: dict[str, str] = {}
        self._subclasses: dict[str, str] = {}
        self._prog_ifs: dict[str, str] = {}
        self._source: Path | None = None

        self._load(paths, override_path)

    def _open(
        self,
        paths: Sequence[str | Path],
        override_path: str | Path | None,
    ) -> tuple[Path, TextIO] | None:
        """Open the pci.ids file to load, or return None if none opens."""
        if override_path:
            path = Path(override_path)
            try:
                f = path.open(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug("Failed to open PCI IDs file %s: %s", path, e)
                return None
            logger.debug("Loading PCI IDs from %s", path)
            return path, f

        error: OSError | None = None
        for candidate in paths:
            path = Path(candidate)
            try:
                f = path.open(encoding="utf-8", errors="replace")
            except OSError as e:
                error = e
                continue
            logger.debug("Loading PCI IDs from default path %s", path)
            return path, f

        logger.debug("Failed to open any default PCI IDs file: %s", error)
        return None

    def _load(
        self,
        paths: Sequence[str | Path],
        override_path: str | Path | None,
    ) -> None:
        opened = self._open(paths, override_path)
        if opened is None:
            return

        path, f = opened
        try:
            with f:
                self._add_entries(iter_entries(f))
        except OSError as e:
            # A read error mid-file keeps whatever was parsed up to that point
            logger.debug("Error reading PCI IDs file %s: %s", path, e)
        self._source = path

        stats = self.stats
        logger.debug(
            "Loaded PCI device data: vendors=%d devices=%d subsystems=%d "
            "classes=%d subclasses=%d prog_ifs=%d",
            stats.vendors,
            stats.devices,
            stats.subsystems,
            stats.classes,
            stats.subclasses,
            stats.prog_ifs,
        )

    def _add_entries(self, entries: Iterable[IdEntry]) -> None:
        for entry in entries:
            if entry.kind is EntryKind.VENDOR:
                self._vendors[entry.key] = entry.name
            elif entry.kind is EntryKind.DEVICE and entry.parent is not None:
                self._devices.setdefault(entry.parent, {})[entry.key] = entry.name
            elif entry.kind is EntryKind.SUBSYSTEM and entry.parent is not None:
                self._subsystems.setdefault(entry.parent, {})[entry.key] = entry.name
            elif entry.kind is EntryKind.CLASS:
                self._classes[entry.key] = entry.name
            elif entry.kind is EntryKind.SUBCLASS:
                self._subclasses[entry.key] = entry.name
            elif entry.kind is EntryKind.PROG_IF:
                self._prog_ifs[entry.key] = entry.name

    def vendor_name(self, vendor_id: str) -> str:
        """Look up a vendor name.

        Args:
            vendor_id: Vendor ID, with or without "0x" (e.g. "0x8086").

        Returns:
            Vendor name, or the normalized vendor ID if unknown.
        """
        vendor_id = normalize_id(vendor_id)
        return self._vendors.get(vendor_id, vendor_id)

    def device_name(self, vendor_id: str, device_id: str) -> str:
        """Look up a device name within its vendor.

        Returns:
            Device name, or the normalized device ID if either the vendor or
            the device is unknown.
        """
        vendor_id = normalize_id(vendor_id)
        device_id = normalize_id(device_id)
        return self._devices.get(vendor_id, {}).get(device_id, device_id)

    def subsystem_name(
        self,
        vendor_id: str,
        device_id: str,
        subsys_vendor_id: str,
        subsys_device_id: str,
    ) -> str:
        """Look up a subsystem name within its vendor and device.

        Returns:
            Subsystem name, or the normalized subsystem device ID if unknown.
        """
        key = f"{normalize_id(vendor_id)}:{normalize_id(device_id)}"
        subsys_device_id = normalize_id(subsys_device_id)
        subsys_key = f"{normalize_id(subsys_vendor_id)}:{subsys_device_id}"
        return self._subsystems.get(key, {}).get(subsys_key, subsys_device_id)

    def class_name(self, class_id: str) -> str:
        """Look up the most specific name for a class code.

        The code is tried as a programming interface (6 digits), then as a
        subclass (4 digits), then as a base class (2 digits).

        Args:
            class_id: Class code such as "0x020000", "0200" or "02".

        Returns:
            The most specific name found, or "Unknown class (<code>)".
        """
        class_id = normalize_id(class_id)

        if len(class_id) >= 6:
            name = self._prog_ifs.get(class_id[:6])
            if name is not None:
                return name

        if len(class_id) >= 4:
            name = self._subclasses.get(class_id[:4])
            if name is not None:
                return name

        if len(class_id) >= 2:
            name = self._classes.get(class_id[:2])
            if name is not None:
                return name

        return f"Unknown class ({class_id})"

    @property
    def source(self) -> Path | None:
        """Path of the loaded pci.ids file, or None if nothing was loaded."""
        return self._source

    @property
    def stats(self) -> DatabaseStats:
        """Return entry counts for each table."""
        return DatabaseStats(
            vendors=len(self._vendors),
            devices=sum(len(d) for d in self._devices.values()),
            subsystems=sum(len(s) for s in self._subsystems.values()),
            classes=len(self._classes),
            subclasses=len(self._subclasses),
            prog_ifs=len(self._prog_ifs),
        )

    def _tables(self) -> tuple[object, ...]:
        return (
            self._vendors,
            self._devices,
            self._subsystems,
            self._classes,
            self._subclasses,
            self._prog_ifs,
        )

    def __eq__(self, other: object) -> bool:
        """Two databases are equal when their tables hold the same entries."""
        if not isinstance(other, PciIdDatabase):
            return NotImplemented
        return self._tables() == other._tables()

    __hash__ = None  # type: ignore[assignment]
