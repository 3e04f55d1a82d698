"""Line parser for the pci.ids file format.

The format is hierarchical, with depth encoded by leading tabs::

    # comment
    8086  Intel Corporation                     vendor
    <tab>1533  I210 Gigabit Network Connection  device
    <tab><tab>8086 0001  I210 Gigabit ...        subsystem (subvendor subdevice)
    C 02  Network controller                    class
    <tab>00  Ethernet controller                subclass
    <tab><tab>00  ...                            programming interface

The identifier and the name are separated by the first run of two spaces.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import replace

from pcinames.idsdb.models import EntryKind, IdEntry, ParserState

CLASS_MARKER = "C "
FIELD_SEPARATOR = "  "


def normalize_id(value: str) -> str:
    """Normalize a hex identifier for table lookups.

    Lowercases the value and strips surrounding whitespace and an optional
    ``0x`` prefix, so "0x8086", "8086" and "0X8086" all become "8086".
    """
    value = value.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    return value


def _split_fields(body: str) -> tuple[str, str] | None:
    """Split a line body into (identifier, name), or None if malformed."""
    ident, sep, name = body.partition(FIELD_SEPARATOR)
    if not sep:
        return None
    ident = ident.strip()
    if not ident:
        return None
    return ident, name.strip()


def _indent_depth(line: str) -> int:
    return len(line) - len(line.lstrip("\t"))


def parse_line(line: str, state: ParserState) -> tuple[ParserState, IdEntry | None]:
    """Classify a single pci.ids line.

    Args:
        line: Raw line, with or without its trailing newline.
        state: Context left behind by the previous line.

    Returns:
        Tuple of (new state, parsed entry). The entry is None for comments,
        blank lines and lines that are malformed or lack the context they
        depend on; such lines leave the state unchanged.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return state, None

    if line.startswith(CLASS_MARKER):
        fields = _split_fields(line[1:])
        if fields is None:
            return state, None
        code = normalize_id(fields[0])
        new_state = replace(state, base_class=code, subclass="", in_class=True)
        return new_state, IdEntry(EntryKind.CLASS, code, fields[1])

    depth = _indent_depth(line)
    if depth > 2:
        return state, None

    fields = _split_fields(line[depth:])
    if fields is None:
        return state, None
    ident, name = fields

    if state.in_class and depth == 1:
        if not state.base_class:
            return state, None
        key = state.base_class + normalize_id(ident)
        return replace(state, subclass=key), IdEntry(EntryKind.SUBCLASS, key, name)

    if state.in_class and depth == 2:
        if not state.subclass:
            return state, None
        key = state.subclass + normalize_id(ident)
        return state, IdEntry(EntryKind.PROG_IF, key, name)

    if depth == 0:
        vendor = normalize_id(ident)
        new_state = replace(state, vendor=vendor, device="", in_class=False)
        return new_state, IdEntry(EntryKind.VENDOR, vendor, name)

    if depth == 1:
        if not state.vendor:
            return state, None
        device = normalize_id(ident)
        new_state = replace(state, device=device)
        return new_state, IdEntry(EntryKind.DEVICE, device, name, parent=state.vendor)

    # Subsystem lines carry "subvendor subdevice" as their identifier.
    if not state.vendor or not state.device:
        return state, None
    tokens = ident.split()
    if len(tokens) != 2:
        return state, None
    key = f"{normalize_id(tokens[0])}:{normalize_id(tokens[1])}"
    parent = f"{state.vendor}:{state.device}"
    return state, IdEntry(EntryKind.SUBSYSTEM, key, name, parent=parent)


def iter_entries(
    lines: Iterable[str],
    state: ParserState | None = None,
) -> Iterator[IdEntry]:
    """Parse an iterable of pci.ids lines.

    Args:
        lines: Lines of a pci.ids file (e.g. an open text file).
        state: Optional starting context. Defaults to an empty state.

    Yields:
        Every entry the lines describe, in file order.
    """
    if state is None:
        state = ParserState()
    for line in lines:
        state, entry = parse_line(line, state)
        if entry is not None:
            yield entry
