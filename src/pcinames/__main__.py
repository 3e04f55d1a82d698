"""Allow running as ``python -m pcinames``."""

from pcinames.cli import main

main()
