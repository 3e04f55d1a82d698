"""Load pcinames settings from YAML files."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from pcinames.discovery import SYSFS_PCI_PATH
from pcinames.gpu import DEFAULT_BMC_VENDORS, DEFAULT_GPU_VENDORS, GpuFilter
from pcinames.idsdb import DEFAULT_PCI_IDS_PATHS


@dataclass
class Config:
    """Runtime settings for name resolution and discovery."""

    ids_file: str | None = None
    ids_paths: tuple[str, ...] = DEFAULT_PCI_IDS_PATHS
    sysfs_path: Path = SYSFS_PCI_PATH
    gpu_filter: GpuFilter = field(default_factory=GpuFilter)


def _parse_hex_id(value: Any) -> int:
    """Parse a PCI ID given as an int or a hex string ("10de", "0x10de")."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid PCI ID: {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value, 16)
        except ValueError:
            raise ValueError(f"Invalid PCI ID: {value!r}") from None
    else:
        raise ValueError(f"Invalid PCI ID: {value!r}")
    if not 0 <= result <= 0xFFFF:
        raise ValueError(f"PCI ID out of range: {value!r}")
    return result


def _parse_gpu_filter(data: dict[str, Any]) -> GpuFilter:
    """Parse the gpu section."""
    vendors_data = data.get("vendors")
    if vendors_data is None:
        vendors: Mapping[int, str] = DEFAULT_GPU_VENDORS
    elif isinstance(vendors_data, dict):
        vendors = MappingProxyType(
            {_parse_hex_id(k): str(v) for k, v in vendors_data.items()}
        )
    else:
        raise ValueError("gpu.vendors must be a mapping of vendor ID to name")

    bmc_data = data.get("bmc_vendors")
    if bmc_data is None:
        bmc_vendors = DEFAULT_BMC_VENDORS
    elif isinstance(bmc_data, list):
        bmc_vendors = frozenset(_parse_hex_id(v) for v in bmc_data)
    else:
        raise ValueError("gpu.bmc_vendors must be a list of vendor IDs")

    return GpuFilter(vendors=vendors, bmc_vendors=bmc_vendors)


def parse_config(data: dict[str, Any]) -> Config:
    """Build a Config from already-loaded YAML data.

    Raises:
        ValueError: If a setting has the wrong type or value.
    """
    config = Config()

    ids_file = data.get("ids_file")
    if ids_file is not None:
        config.ids_file = str(ids_file)

    ids_paths = data.get("ids_paths")
    if ids_paths is not None:
        if not isinstance(ids_paths, list):
            raise ValueError("ids_paths must be a list of paths")
        config.ids_paths = tuple(str(p) for p in ids_paths)

    sysfs_path = data.get("sysfs_path")
    if sysfs_path is not None:
        config.sysfs_path = Path(sysfs_path)

    gpu_data = data.get("gpu")
    if gpu_data is not None:
        if not isinstance(gpu_data, dict):
            raise ValueError("gpu must be a mapping")
        config.gpu_filter = _parse_gpu_filter(gpu_data)

    return config


def load_config(path: Path) -> Config:
    """Load settings from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed Config. An empty file gives the defaults.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If a setting is invalid.
        OSError: If the file cannot be read.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    return parse_config(data)
