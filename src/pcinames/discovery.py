"""Discovery of PCI devices through sysfs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pcinames.idsdb import PciIdDatabase

logger = logging.getLogger(__name__)

SYSFS_PCI_PATH = Path("/sys/bus/pci/devices")

# domain:bus:device.function, e.g. 0000:03:00.0
_BDF_PATTERN = re.compile(r"^[0-9a-fA-F]{4}:[0-9a-fA-F]{2}:[0-9a-fA-F]{2}\.[0-7]$")

# Location labels used when a device sits directly on a root bus
NO_PARENT_LOCATION = ("*", "*", "*", "*")

# Values the kernel reports in the power_state attribute
POWER_STATES = ("D0", "D1", "D2", "D3hot", "D3cold", "unknown", "error")


def validate_bdf(bdf: str) -> None:
    """Validate a PCI address.

    Raises:
        ValueError: If ``bdf`` is not in domain:bus:device.function form.
    """
    if not _BDF_PATTERN.match(bdf):
        raise ValueError(f"Invalid BDF format: {bdf!r} (expected e.g. 0000:03:00.0)")


def _split_location(bdf: str) -> tuple[str, str, str, str]:
    """Split a BDF into (segment, bus, device, function) hex strings."""
    domain, bus, dev_func = bdf.lower().split(":")
    dev, func = dev_func.split(".")
    return domain, bus, dev, func


@dataclass
class PciDevice:
    """Information about a PCI device found in sysfs."""

    bdf: str
    vendor_id: int
    device_id: int
    subsys_vendor: int
    subsys_device: int
    revision: int
    class_code: int
    parent_bdf: str | None = None

    # Optional sysfs attributes, None when the kernel does not expose them.
    # Link speeds are in GT/s.
    max_link_speed: float | None = None
    max_link_width: int | None = None
    current_link_speed: float | None = None
    current_link_width: int | None = None
    power_state: str | None = None
    d3cold_allowed: bool | None = None
    sriov_drivers_autoprobe: bool | None = None
    sriov_numvfs: int | None = None
    sriov_totalvfs: int | None = None
    sriov_vf_total_msix: int | None = None
    numa_node: int | None = None

    @property
    def domain(self) -> int:
        """PCI domain number from BDF."""
        return int(self.bdf.split(":")[0], 16)

    @property
    def bus(self) -> int:
        """PCI bus number from BDF."""
        return int(self.bdf.split(":")[1], 16)

    @property
    def device_func(self) -> tuple[int, int]:
        """PCI device and function numbers from BDF."""
        dev_func = self.bdf.split(":")[2]
        dev, func = dev_func.split(".")
        return int(dev, 16), int(func, 16)

    @property
    def location(self) -> tuple[str, str, str, str]:
        """Segment, bus, device and function as hex strings."""
        return _split_location(self.bdf)

    @property
    def parent_location(self) -> tuple[str, str, str, str]:
        """Location of the upstream bridge, or "*" fields if there is none."""
        if self.parent_bdf is None:
            return NO_PARENT_LOCATION
        return _split_location(self.parent_bdf)

    @property
    def is_display_controller(self) -> bool:
        """Check if this is a display controller (base class 0x03)."""
        return (self.class_code >> 16) == 0x03

    @property
    def vendor_id_str(self) -> str:
        return f"0x{self.vendor_id:04x}"

    @property
    def device_id_str(self) -> str:
        return f"0x{self.device_id:04x}"

    @property
    def subsys_vendor_str(self) -> str:
        return f"0x{self.subsys_vendor:04x}"

    @property
    def subsys_device_str(self) -> str:
        return f"0x{self.subsys_device:04x}"

    @property
    def class_code_str(self) -> str:
        return f"0x{self.class_code:06x}"

    @property
    def revision_str(self) -> str:
        return f"0x{self.revision:02x}"

    def metrics(self) -> dict[str, float]:
        """Return the numeric device attributes.

        Missing link speeds and widths are reported as -1, missing flags and
        SR-IOV counters as 0. Link speeds are converted to transfers per
        second. ``numa_node`` is only present when the device has one.
        """
        values: dict[str, float] = {
            "max_link_transfers_per_second": _transfers_per_second(self.max_link_speed),
            "max_link_width": _or_default(self.max_link_width, -1),
            "current_link_transfers_per_second": _transfers_per_second(
                self.current_link_speed
            ),
            "current_link_width": _or_default(self.current_link_width, -1),
            "d3cold_allowed": _or_default(self.d3cold_allowed, 0),
            "sriov_drivers_autoprobe": _or_default(self.sriov_drivers_autoprobe, 0),
            "sriov_numvfs": _or_default(self.sriov_numvfs, 0),
            "sriov_totalvfs": _or_default(self.sriov_totalvfs, 0),
            "sriov_vf_total_msix": _or_default(self.sriov_vf_total_msix, 0),
        }
        if self.numa_node is not None and self.numa_node != -1:
            values["numa_node"] = float(self.numa_node)
        return values

    def power_state_values(self) -> dict[str, float]:
        """One-hot encoding of the power state over POWER_STATES.

        Empty when the kernel does not report a power state.
        """
        if self.power_state is None:
            return {}
        return {state: float(state == self.power_state) for state in POWER_STATES}


def _or_default(value: int | bool | None, default: float) -> float:
    if value is None:
        return default
    return float(value)


def _transfers_per_second(speed: float | None) -> float:
    if speed is None:
        return -1
    return speed * 1e9


def _read_sysfs_text(path: Path) -> str | None:
    """Read a stripped sysfs attribute, or None if it cannot be read."""
    try:
        return path.read_text().strip()
    except OSError:
        return None


def _read_sysfs_hex(path: Path) -> int | None:
    """Read a hex value from a sysfs file."""
    try:
        return int(path.read_text().strip(), 16)
    except (ValueError, OSError):
        return None


def _read_sysfs_int(path: Path) -> int | None:
    """Read a decimal value from a sysfs file."""
    text = _read_sysfs_text(path)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _read_sysfs_bool(path: Path) -> bool | None:
    value = _read_sysfs_int(path)
    if value is None:
        return None
    return value != 0


def _read_link_speed(path: Path) -> float | None:
    """Read a link speed such as "8.0 GT/s PCIe" as GT/s.

    Devices without a PCIe link report "Unknown", which gives None.
    """
    text = _read_sysfs_text(path)
    if not text:
        return None
    try:
        return float(text.split()[0])
    except ValueError:
        return None


def _parent_bdf(device_dir: Path) -> str | None:
    """Find the BDF of the bridge a device sits behind.

    sysfs entries are symlinks into /sys/devices, where each device directory
    is nested under the directory of its upstream bridge.
    """
    try:
        parent = device_dir.resolve().parent.name
    except OSError:
        return None
    if _BDF_PATTERN.match(parent):
        return parent
    return None


def _read_device(device_dir: Path) -> PciDevice | None:
    vendor_id = _read_sysfs_hex(device_dir / "vendor")
    device_id = _read_sysfs_hex(device_dir / "device")
    if vendor_id is None or device_id is None:
        logger.debug("Skipping %s: missing vendor or device ID", device_dir.name)
        return None

    subsys_vendor = _read_sysfs_hex(device_dir / "subsystem_vendor")
    subsys_device = _read_sysfs_hex(device_dir / "subsystem_device")
    revision = _read_sysfs_hex(device_dir / "revision")
    class_code = _read_sysfs_hex(device_dir / "class")

    return PciDevice(
        bdf=device_dir.name,
        vendor_id=vendor_id,
        device_id=device_id,
        subsys_vendor=subsys_vendor or 0,
        subsys_device=subsys_device or 0,
        revision=revision or 0,
        class_code=class_code or 0,
        parent_bdf=_parent_bdf(device_dir),
        max_link_speed=_read_link_speed(device_dir / "max_link_speed"),
        max_link_width=_read_sysfs_int(device_dir / "max_link_width"),
        current_link_speed=_read_link_speed(device_dir / "current_link_speed"),
        current_link_width=_read_sysfs_int(device_dir / "current_link_width"),
        power_state=_read_sysfs_text(device_dir / "power_state") or None,
        d3cold_allowed=_read_sysfs_bool(device_dir / "d3cold_allowed"),
        sriov_drivers_autoprobe=_read_sysfs_bool(device_dir / "sriov_drivers_autoprobe"),
        sriov_numvfs=_read_sysfs_int(device_dir / "sriov_numvfs"),
        sriov_totalvfs=_read_sysfs_int(device_dir / "sriov_totalvfs"),
        sriov_vf_total_msix=_read_sysfs_int(device_dir / "sriov_vf_total_msix"),
        numa_node=_read_sysfs_int(device_dir / "numa_node"),
    )


def discover_pci_devices(sysfs_path: Path | None = None) -> list[PciDevice]:
    """Discover all PCI devices in the system.

    Args:
        sysfs_path: Directory holding one entry per device. Defaults to
            /sys/bus/pci/devices.

    Returns:
        List of PciDevice objects sorted by BDF. Empty if the directory does
        not exist.

    Raises:
        OSError: If the directory exists but cannot be listed.
    """
    if sysfs_path is None:
        sysfs_path = SYSFS_PCI_PATH

    devices: list[PciDevice] = []

    if not sysfs_path.exists():
        logger.debug("PCI device directory %s not found, skipping", sysfs_path)
        return devices

    for device_dir in sysfs_path.iterdir():
        if not _BDF_PATTERN.match(device_dir.name):
            continue
        device = _read_device(device_dir)
        if device is not None:
            devices.append(device)

    return sorted(devices, key=lambda d: d.bdf)


def read_pci_device(bdf: str, sysfs_path: Path | None = None) -> PciDevice:
    """Read a single PCI device.

    Args:
        bdf: PCI address (e.g., "0000:03:00.0").
        sysfs_path: Directory holding one entry per device.

    Raises:
        ValueError: If ``bdf`` is malformed.
        FileNotFoundError: If the device does not exist or has no IDs.
    """
    validate_bdf(bdf)
    if sysfs_path is None:
        sysfs_path = SYSFS_PCI_PATH

    device_dir = sysfs_path / bdf
    if not device_dir.exists():
        raise FileNotFoundError(f"PCI device not found: {bdf}")

    device = _read_device(device_dir)
    if device is None:
        raise FileNotFoundError(f"PCI device has no vendor/device ID: {bdf}")
    return device


def device_info_labels(device: PciDevice, db: PciIdDatabase | None = None) -> dict[str, str]:
    """Build the descriptive labels for a device.

    Names are only included when a database is given. Every lookup falls
    back to an identifier, so the labels are always complete.

    Args:
        device: Device to describe.
        db: Optional database for name resolution.

    Returns:
        Mapping of label name to value.
    """
    segment, bus, dev, func = device.location
    parent_segment, parent_bus, parent_dev, parent_func = device.parent_location

    labels = {
        "segment": segment,
        "bus": bus,
        "device": dev,
        "function": func,
        "parent_segment": parent_segment,
        "parent_bus": parent_bus,
        "parent_device": parent_dev,
        "parent_function": parent_func,
        "class_id": device.class_code_str,
        "vendor_id": device.vendor_id_str,
        "device_id": device.device_id_str,
        "subsystem_vendor_id": device.subsys_vendor_str,
        "subsystem_device_id": device.subsys_device_str,
        "revision": device.revision_str,
    }

    if db is not None:
        labels["vendor_name"] = db.vendor_name(device.vendor_id_str)
        labels["device_name"] = db.device_name(device.vendor_id_str, device.device_id_str)
        labels["subsystem_vendor_name"] = db.vendor_name(device.subsys_vendor_str)
        labels["subsystem_device_name"] = db.subsystem_name(
            device.vendor_id_str,
            device.device_id_str,
            device.subsys_vendor_str,
            device.subsys_device_str,
        )
        labels["class_name"] = db.class_name(device.class_code_str)

    return labels
