"""Shared fixtures for pcinames tests."""

from pathlib import Path

import pytest

SAMPLE_PCI_IDS = """\
#
#\tList of PCI ID's
#
# Vendors, devices and subsystems.
8086  Intel Corporation
\t1533  I210 Gigabit Network Connection
\t\t8086 0001  Ethernet Server Adapter I210-T1
\t\t103c 0003  Ethernet I210-T1 GbE NIC
\t3e92  CoffeeLake-S GT2 [UHD Graphics 630]
10de  NVIDIA Corporation
\t2204  GA102 [GeForce RTX 3090]
\t\t10de 1454  RTX 3090 Founders Edition
1a03  ASPEED Technology, Inc.
\t2000  ASPEED Graphics Family

# List of known device classes, subclasses and programming interfaces
C 02  Network controller
\t00  Ethernet controller
\t80  Network controller
C 03  Display controller
\t00  VGA compatible controller
\t\t00  VGA controller
\t\t01  8514 controller
\t02  3D controller
C 0c  Serial bus controller
\t03  USB controller
\t\t30  XHCI
"""


@pytest.fixture
def pci_ids_file(tmp_path: Path) -> Path:
    """Write a small pci.ids file and return its path."""
    path = tmp_path / "pci.ids"
    path.write_text(SAMPLE_PCI_IDS)
    return path
