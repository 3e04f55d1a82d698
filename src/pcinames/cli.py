"""Command-line interface for pcinames."""

import json
import logging
import sys
from pathlib import Path

import click
import yaml

from pcinames import __version__
from pcinames.config import Config, load_config
from pcinames.discovery import PciDevice, device_info_labels, discover_pci_devices
from pcinames.idsdb import PciIdDatabase, load_database


def _get_config(ctx: click.Context) -> Config:
    config: Config = ctx.obj["config"]
    return config


def _get_database(ctx: click.Context) -> PciIdDatabase:
    """Load the database once per invocation."""
    if ctx.obj.get("db") is None:
        config = _get_config(ctx)
        ctx.obj["db"] = load_database(config.ids_paths, config.ids_file)
    db: PciIdDatabase = ctx.obj["db"]
    return db


def _discover(ctx: click.Context) -> list[PciDevice]:
    try:
        return discover_pci_devices(_get_config(ctx).sysfs_path)
    except OSError as e:
        click.echo(f"Error: cannot read PCI devices: {e}", err=True)
        sys.exit(1)


def _describe(labels: dict[str, str], name_key: str, id_key: str) -> str:
    """Format "name [id]", or just the ID when names were not resolved."""
    if name_key in labels:
        return f"{labels[name_key]} [{labels[id_key]}]"
    return labels[id_key]


def _format_link(speed: float | None, width: int | None) -> str:
    if speed is None and width is None:
        return "unknown"
    speed_str = f"{speed:g} GT/s" if speed is not None else "unknown speed"
    width_str = f"x{width}" if width is not None else "unknown width"
    return f"{speed_str} {width_str}"


def _format_flag(value: bool | None) -> str:
    if value is None:
        return "unknown"
    return "yes" if value else "no"


names_option = click.option(
    "--names/--no-names",
    default=True,
    show_default=True,
    help="Resolve names through pci.ids",
)


@click.group()
@click.version_option(version=__version__)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option(
    "--ids-file",
    type=click.Path(dir_okay=False),
    help="Path to pci.ids file to use instead of the default locations",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML settings file",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    json_output: bool,
    ids_file: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Resolve PCI vendor, device and class IDs into names.

    Names come from the pci.ids database.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = Config()
    if config_path:
        try:
            config = load_config(Path(config_path))
        except (yaml.YAMLError, ValueError, OSError) as e:
            click.echo(f"Error: invalid config {config_path}: {e}", err=True)
            sys.exit(1)
    if ids_file:
        config.ids_file = ids_file

    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["config"] = config


@main.command("list")
@click.option("--gpu", "gpus_only", is_flag=True, help="Show only GPUs")
@names_option
@click.pass_context
def list_devices(ctx: click.Context, gpus_only: bool, names: bool) -> None:
    """List PCI devices in the system with their names."""
    from pcinames.gpu import identify_gpus

    db = _get_database(ctx) if names else None
    devices = _discover(ctx)

    if gpus_only:
        gpus = identify_gpus(devices, db, _get_config(ctx).gpu_filter)
        if ctx.obj["json"]:
            click.echo(json.dumps([g.labels() for g in gpus], indent=2))
            return
        if not gpus:
            click.echo("No GPUs found.")
            return
        click.echo(f"Found {len(gpus)} GPU(s):")
        click.echo()
        for gpu in gpus:
            click.echo(f"  {gpu.gpu_id}: {gpu.vendor} {gpu.model}")
        return

    if ctx.obj["json"]:
        output = []
        for d in devices:
            entry = {"bdf": d.bdf}
            entry.update(device_info_labels(d, db))
            output.append(entry)
        click.echo(json.dumps(output, indent=2))
        return

    if not devices:
        click.echo("No PCI devices found.")
        return

    click.echo(f"Found {len(devices)} PCI device(s):")
    click.echo()
    for device in devices:
        labels = device_info_labels(device, db)
        click.echo(
            f"  {device.bdf} {labels.get('class_name', labels['class_id'])}: "
            f"{labels.get('vendor_name', labels['vendor_id'])} "
            f"{labels.get('device_name', labels['device_id'])}"
        )


@main.command("info")
@click.argument("bdf")
@names_option
@click.pass_context
def device_info(ctx: click.Context, bdf: str, names: bool) -> None:
    """Show detailed information about a PCI device.

    BDF is the PCI address (e.g., 0000:03:00.0).
    """
    from pcinames.discovery import read_pci_device

    try:
        device = read_pci_device(bdf, _get_config(ctx).sysfs_path)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except FileNotFoundError:
        click.echo(f"Error: Device {bdf} not found", err=True)
        sys.exit(1)

    labels = device_info_labels(device, _get_database(ctx) if names else None)

    if ctx.obj["json"]:
        result: dict[str, object] = {"bdf": device.bdf}
        result.update(labels)
        result["power_state"] = device.power_state
        result["metrics"] = device.metrics()
        click.echo(json.dumps(result, indent=2))
        return

    click.echo(f"Address: {device.bdf}")
    if device.parent_bdf is not None:
        click.echo(f"Parent: {device.parent_bdf}")
    click.echo(f"Class: {_describe(labels, 'class_name', 'class_id')}")
    click.echo(f"Vendor: {_describe(labels, 'vendor_name', 'vendor_id')}")
    click.echo(f"Device: {_describe(labels, 'device_name', 'device_id')}")
    click.echo(
        f"Subsystem Vendor: "
        f"{_describe(labels, 'subsystem_vendor_name', 'subsystem_vendor_id')}"
    )
    click.echo(
        f"Subsystem: {_describe(labels, 'subsystem_device_name', 'subsystem_device_id')}"
    )
    click.echo(f"Revision: {labels['revision']}")
    click.echo(f"Max Link: {_format_link(device.max_link_speed, device.max_link_width)}")
    click.echo(
        f"Current Link: "
        f"{_format_link(device.current_link_speed, device.current_link_width)}"
    )
    click.echo(f"Power State: {device.power_state or 'unknown'}")
    click.echo(f"D3cold Allowed: {_format_flag(device.d3cold_allowed)}")
    if device.numa_node is not None and device.numa_node != -1:
        click.echo(f"NUMA Node: {device.numa_node}")
    if device.sriov_totalvfs is not None:
        click.echo(f"SR-IOV VFs: {device.sriov_numvfs or 0}/{device.sriov_totalvfs}")
        click.echo(
            f"SR-IOV Drivers Autoprobe: {_format_flag(device.sriov_drivers_autoprobe)}"
        )
        if device.sriov_vf_total_msix is not None:
            click.echo(f"SR-IOV VF Total MSI-X: {device.sriov_vf_total_msix}")


@main.group()
def lookup() -> None:
    """Look up names by ID."""
    pass


def _echo_name(ctx: click.Context, query: dict[str, str], name: str) -> None:
    if ctx.obj["json"]:
        result = dict(query)
        result["name"] = name
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(name)


@lookup.command("vendor")
@click.argument("vendor_id")
@click.pass_context
def lookup_vendor(ctx: click.Context, vendor_id: str) -> None:
    """Look up a vendor name (e.g., 0x8086)."""
    name = _get_database(ctx).vendor_name(vendor_id)
    _echo_name(ctx, {"vendor_id": vendor_id}, name)


@lookup.command("device")
@click.argument("vendor_id")
@click.argument("device_id")
@click.pass_context
def lookup_device(ctx: click.Context, vendor_id: str, device_id: str) -> None:
    """Look up a device name (e.g., 0x8086 0x1533)."""
    name = _get_database(ctx).device_name(vendor_id, device_id)
    _echo_name(ctx, {"vendor_id": vendor_id, "device_id": device_id}, name)


@lookup.command("subsystem")
@click.argument("vendor_id")
@click.argument("device_id")
@click.argument("subsys_vendor_id")
@click.argument("subsys_device_id")
@click.pass_context
def lookup_subsystem(
    ctx: click.Context,
    vendor_id: str,
    device_id: str,
    subsys_vendor_id: str,
    subsys_device_id: str,
) -> None:
    """Look up a subsystem name."""
    name = _get_database(ctx).subsystem_name(
        vendor_id, device_id, subsys_vendor_id, subsys_device_id
    )
    query = {
        "vendor_id": vendor_id,
        "device_id": device_id,
        "subsystem_vendor_id": subsys_vendor_id,
        "subsystem_device_id": subsys_device_id,
    }
    _echo_name(ctx, query, name)


@lookup.command("class")
@click.argument("class_id")
@click.pass_context
def lookup_class(ctx: click.Context, class_id: str) -> None:
    """Look up a class name (e.g., 0x020000, 0200 or 02)."""
    name = _get_database(ctx).class_name(class_id)
    _echo_name(ctx, {"class_id": class_id}, name)


@main.group()
def db() -> None:
    """PCI ID database operations."""
    pass


@db.command("stats")
@click.pass_context
def db_stats(ctx: click.Context) -> None:
    """Show where the database was loaded from and how many entries it has."""
    database = _get_database(ctx)
    stats = database.stats
    source = str(database.source) if database.source is not None else None

    if ctx.obj["json"]:
        result: dict[str, str | int | None] = {"source": source}
        result.update(stats.as_dict())
        click.echo(json.dumps(result, indent=2))
        return

    if source is None:
        click.echo("No pci.ids file loaded.")
        return

    click.echo(f"Source: {source}")
    click.echo(f"Vendors: {stats.vendors}")
    click.echo(f"Devices: {stats.devices}")
    click.echo(f"Subsystems: {stats.subsystems}")
    click.echo(f"Classes: {stats.classes}")
    click.echo(f"Subclasses: {stats.subclasses}")
    click.echo(f"Programming interfaces: {stats.prog_ifs}")


if __name__ == "__main__":
    main()
