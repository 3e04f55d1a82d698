"""Identification of GPUs among discovered PCI devices."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pcinames.discovery import PciDevice
    from pcinames.idsdb import PciIdDatabase

logger = logging.getLogger(__name__)

# Known GPU vendors, with the names used when pci.ids has no entry
NVIDIA_VENDOR_ID = 0x10DE
AMD_VENDOR_ID = 0x1002
INTEL_VENDOR_ID = 0x8086

DEFAULT_GPU_VENDORS: Mapping[int, str] = MappingProxyType(
    {
        NVIDIA_VENDOR_ID: "NVIDIA Corporation",
        AMD_VENDOR_ID: "AMD/ATI",
        INTEL_VENDOR_ID: "Intel Corporation",
    }
)

# Server management controllers that expose a display controller
ASPEED_VENDOR_ID = 0x1A03
MATROX_VENDOR_ID = 0x102B

DEFAULT_BMC_VENDORS: frozenset[int] = frozenset({ASPEED_VENDOR_ID, MATROX_VENDOR_ID})


@dataclass(frozen=True)
class GpuFilter:
    """Vendor lists deciding which display controllers count as GPUs.

    A display controller is a GPU if its vendor is in ``vendors`` and not in
    ``bmc_vendors``. Both lists are copied into read-only containers, so a
    filter never changes after construction.
    """

    vendors: Mapping[int, str] = field(default_factory=lambda: DEFAULT_GPU_VENDORS)
    bmc_vendors: frozenset[int] = DEFAULT_BMC_VENDORS

    def __post_init__(self) -> None:
        object.__setattr__(self, "vendors", MappingProxyType(dict(self.vendors)))
        object.__setattr__(self, "bmc_vendors", frozenset(self.bmc_vendors))

    def accepts(self, vendor_id: int) -> bool:
        """Check if a display controller from this vendor is a GPU."""
        return vendor_id in self.vendors and vendor_id not in self.bmc_vendors


DEFAULT_GPU_FILTER = GpuFilter()


@dataclass(frozen=True)
class GpuInfo:
    """A GPU with resolved vendor and model names."""

    gpu_id: str  # BDF
    vendor: str
    model: str
    vendor_id: str
    device_id: str

    def labels(self) -> dict[str, str]:
        """Return the GPU description as a label mapping."""
        return {
            "gpu_id": self.gpu_id,
            "vendor": self.vendor,
            "model": self.model,
            "vendor_id": self.vendor_id,
            "device_id": self.device_id,
        }


def _resolve_names(
    device: PciDevice,
    db: PciIdDatabase | None,
    gpu_filter: GpuFilter,
) -> tuple[str, str]:
    """Resolve (vendor, model) names for a GPU."""
    vendor_id = device.vendor_id_str
    device_id = device.device_id_str

    vendor_name = ""
    device_name = ""
    if db is not None:
        vendor_name = db.vendor_name(vendor_id)
        device_name = db.device_name(vendor_id, device_id)

    # The database hands back the bare ID when it has no entry
    if not vendor_name or vendor_name == vendor_id[2:]:
        vendor_name = gpu_filter.vendors.get(device.vendor_id, vendor_id)
    if not device_name or device_name == device_id[2:]:
        device_name = device_id

    return vendor_name, device_name


def identify_gpus(
    devices: Iterable[PciDevice],
    db: PciIdDatabase | None = None,
    gpu_filter: GpuFilter = DEFAULT_GPU_FILTER,
) -> list[GpuInfo]:
    """Pick the GPUs out of a list of PCI devices.

    Args:
        devices: Discovered PCI devices.
        db: Optional database for name resolution.
        gpu_filter: Vendor allow-list and BMC deny-list.

    Returns:
        GpuInfo objects in the order the devices were given.
    """
    gpus: list[GpuInfo] = []

    for device in devices:
        if not device.is_display_controller:
            continue

        if device.vendor_id in gpu_filter.bmc_vendors:
            logger.debug(
                "Skipping BMC graphics device %s (vendor=%s device=%s)",
                device.bdf,
                device.vendor_id_str,
                device.device_id_str,
            )
            continue

        if not gpu_filter.accepts(device.vendor_id):
            logger.debug(
                "Skipping unknown display controller %s (vendor=%s device=%s)",
                device.bdf,
                device.vendor_id_str,
                device.device_id_str,
            )
            continue

        vendor_name, device_name = _resolve_names(device, db, gpu_filter)
        logger.debug("Found GPU %s: %s %s", device.bdf, vendor_name, device_name)

        gpus.append(
            GpuInfo(
                gpu_id=device.bdf,
                vendor=vendor_name,
                model=device_name,
                vendor_id=device.vendor_id_str,
                device_id=device.device_id_str,
            )
        )

    return gpus
