"""Data models for the PCI ID database parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EntryKind(Enum):
    """Kind of record a pci.ids line describes."""

    VENDOR = "vendor"
    DEVICE = "device"
    SUBSYSTEM = "subsystem"
    CLASS = "class"
    SUBCLASS = "subclass"
    PROG_IF = "prog_if"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IdEntry:
    """A single named record parsed from a pci.ids line.

    ``key`` is the lookup key within its table. Scoped records (devices and
    subsystems) also carry ``parent``, the key of the table they belong to:
    the vendor ID for devices and ``"vendor:device"`` for subsystems.
    """

    kind: EntryKind
    key: str
    name: str
    parent: str | None = None


@dataclass(frozen=True)
class ParserState:
    """Context carried from one pci.ids line to the next.

    The format is line-order dependent: devices belong to the last vendor
    seen, subsystems to the last device, and so on.
    """

    vendor: str = ""
    device: str = ""
    base_class: str = ""
    subclass: str = ""
    in_class: bool = False


@dataclass(frozen=True)
class DatabaseStats:
    """Entry counts of a loaded database."""

    vendors: int = 0
    devices: int = 0
    subsystems: int = 0
    classes: int = 0
    subclasses: int = 0
    prog_ifs: int = 0

    def as_dict(self) -> dict[str, int]:
        """Return counts keyed by table name."""
        return {
            "vendors": self.vendors,
            "devices": self.devices,
            "subsystems": self.subsystems,
            "classes": self.classes,
            "subclasses": self.subclasses,
            "prog_ifs": self.prog_ifs,
        }
