"""pcinames - resolve PCI IDs into names using the pci.ids database."""

__version__ = "0.1.0"
