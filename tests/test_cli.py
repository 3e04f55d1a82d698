"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pcinames import __version__
from pcinames.cli import main


@pytest.fixture
def sysfs(tmp_path: Path) -> Path:
    """Fake /sys/bus/pci/devices with a NIC, a GPU and a BMC."""
    root = tmp_path / "sys"
    for bdf, vendor, device, class_code in [
        ("0000:03:00.0", "0x8086", "0x1533", "0x020000"),
        ("0000:01:00.0", "0x10de", "0x2204", "0x030000"),
        ("0000:02:00.0", "0x1a03", "0x2000", "0x030000"),
    ]:
        device_dir = root / bdf
        device_dir.mkdir(parents=True)
        (device_dir / "vendor").write_text(f"{vendor}\n")
        (device_dir / "device").write_text(f"{device}\n")
        (device_dir / "class").write_text(f"{class_code}\n")
        (device_dir / "subsystem_vendor").write_text("0x0000\n")
        (device_dir / "subsystem_device").write_text("0x0000\n")
    nic = root / "0000:03:00.0"
    for name, value in [
        ("max_link_speed", "5.0 GT/s PCIe"),
        ("max_link_width", "1"),
        ("current_link_speed", "2.5 GT/s PCIe"),
        ("current_link_width", "1"),
        ("power_state", "D0"),
        ("d3cold_allowed", "1"),
        ("numa_node", "0"),
        ("sriov_totalvfs", "7"),
        ("sriov_numvfs", "2"),
        ("sriov_drivers_autoprobe", "1"),
    ]:
        (nic / name).write_text(f"{value}\n")
    return root


@pytest.fixture
def config_file(tmp_path: Path, sysfs: Path, pci_ids_file: Path) -> Path:
    path = tmp_path / "pcinames.yaml"
    path.write_text(f"ids_file: {pci_ids_file}\nsysfs_path: {sysfs}\n")
    return path


class TestMain:
    """Tests for top-level options."""

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        """A broken config file is reported as an error."""
        path = tmp_path / "bad.yaml"
        path.write_text("gpu: [unclosed\n")
        result = CliRunner().invoke(main, ["--config", str(path), "db", "stats"])
        assert result.exit_code == 1
        assert "Error: invalid config" in result.output


class TestLookup:
    """Tests for the lookup commands."""

    def test_vendor(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["--ids-file", str(pci_ids_file), "lookup", "vendor", "0x8086"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "Intel Corporation"

    def test_device(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            ["--ids-file", str(pci_ids_file), "lookup", "device", "0x10de", "0x2204"],
        )
        assert result.exit_code == 0
        assert result.output.strip() == "GA102 [GeForce RTX 3090]"

    def test_subsystem(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(
            main,
            [
                "--ids-file",
                str(pci_ids_file),
                "lookup",
                "subsystem",
                "8086",
                "1533",
                "8086",
                "0001",
            ],
        )
        assert result.exit_code == 0
        assert result.output.strip() == "Ethernet Server Adapter I210-T1"

    def test_class_json(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["--json", "--ids-file", str(pci_ids_file), "lookup", "class", "0x0c0330"]
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == {"class_id": "0x0c0330", "name": "XHCI"}

    def test_missing_ids_file(self, tmp_path: Path) -> None:
        """Lookups still succeed without a database."""
        result = CliRunner().invoke(
            main, ["--ids-file", str(tmp_path / "missing.ids"), "lookup", "class", "0x0200"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "Unknown class (0200)"


class TestList:
    """Tests for the list command."""

    def test_list(self, config_file: Path) -> None:
        result = CliRunner().invoke(main, ["--config", str(config_file), "list"])
        assert result.exit_code == 0
        assert "Found 3 PCI device(s):" in result.output
        assert (
            "0000:03:00.0 Ethernet controller: Intel Corporation "
            "I210 Gigabit Network Connection" in result.output
        )

    def test_list_json(self, config_file: Path) -> None:
        result = CliRunner().invoke(main, ["--json", "--config", str(config_file), "list"])
        assert result.exit_code == 0
        output = json.loads(result.output)
        assert [d["bdf"] for d in output] == ["0000:01:00.0", "0000:02:00.0", "0000:03:00.0"]
        assert output[0]["class_name"] == "VGA controller"
        assert output[0]["parent_bus"] == "*"

    def test_list_gpus(self, config_file: Path) -> None:
        """BMC graphics are not listed as GPUs."""
        result = CliRunner().invoke(main, ["--config", str(config_file), "list", "--gpu"])
        assert result.exit_code == 0
        assert "Found 1 GPU(s):" in result.output
        assert "0000:01:00.0: NVIDIA Corporation GA102 [GeForce RTX 3090]" in result.output
        assert "0000:02:00.0" not in result.output

    def test_list_empty(self, tmp_path: Path, pci_ids_file: Path) -> None:
        path = tmp_path / "pcinames.yaml"
        path.write_text(f"sysfs_path: {tmp_path / 'nonexistent'}\n")
        result = CliRunner().invoke(
            main, ["--config", str(path), "--ids-file", str(pci_ids_file), "list"]
        )
        assert result.exit_code == 0
        assert "No PCI devices found." in result.output

    def test_list_without_names(self, config_file: Path) -> None:
        """--no-names prints raw IDs and never loads pci.ids."""
        with patch("pcinames.cli.load_database") as loader:
            result = CliRunner().invoke(
                main, ["--config", str(config_file), "list", "--no-names"]
            )
        assert result.exit_code == 0
        assert "0000:03:00.0 0x020000: 0x8086 0x1533" in result.output
        assert "Intel Corporation" not in result.output
        loader.assert_not_called()

    def test_list_gpus_without_names(self, config_file: Path) -> None:
        """GPU names fall back to the allow-list without a database."""
        result = CliRunner().invoke(
            main, ["--config", str(config_file), "list", "--gpu", "--no-names"]
        )
        assert result.exit_code == 0
        assert "0000:01:00.0: NVIDIA Corporation 0x2204" in result.output


class TestInfo:
    """Tests for the info command."""

    def test_info(self, config_file: Path) -> None:
        result = CliRunner().invoke(main, ["--config", str(config_file), "info", "0000:03:00.0"])
        assert result.exit_code == 0
        assert "Vendor: Intel Corporation [0x8086]" in result.output
        assert "Class: Ethernet controller [0x020000]" in result.output

    def test_info_attributes(self, config_file: Path) -> None:
        """Link, power, NUMA and SR-IOV attributes are shown."""
        result = CliRunner().invoke(main, ["--config", str(config_file), "info", "0000:03:00.0"])
        assert result.exit_code == 0
        assert "Max Link: 5 GT/s x1" in result.output
        assert "Current Link: 2.5 GT/s x1" in result.output
        assert "Power State: D0" in result.output
        assert "D3cold Allowed: yes" in result.output
        assert "NUMA Node: 0" in result.output
        assert "SR-IOV VFs: 2/7" in result.output
        assert "SR-IOV Drivers Autoprobe: yes" in result.output

    def test_info_missing_attributes(self, config_file: Path) -> None:
        """Devices without the optional attributes show them as unknown."""
        result = CliRunner().invoke(main, ["--config", str(config_file), "info", "0000:01:00.0"])
        assert result.exit_code == 0
        assert "Max Link: unknown" in result.output
        assert "Power State: unknown" in result.output
        assert "NUMA Node" not in result.output
        assert "SR-IOV" not in result.output

    def test_info_json_metrics(self, config_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["--json", "--config", str(config_file), "info", "0000:03:00.0"]
        )
        assert result.exit_code == 0
        output = json.loads(result.output)
        assert output["power_state"] == "D0"
        assert output["metrics"]["max_link_transfers_per_second"] == 5e9
        assert output["metrics"]["sriov_totalvfs"] == 7
        assert output["metrics"]["numa_node"] == 0

    def test_info_without_names(self, config_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["--config", str(config_file), "info", "0000:03:00.0", "--no-names"]
        )
        assert result.exit_code == 0
        assert "Vendor: 0x8086" in result.output
        assert "Class: 0x020000" in result.output
        assert "Intel Corporation" not in result.output

    def test_info_not_found(self, config_file: Path) -> None:
        result = CliRunner().invoke(main, ["--config", str(config_file), "info", "0000:99:00.0"])
        assert result.exit_code == 1
        assert "Error: Device 0000:99:00.0 not found" in result.output

    def test_info_invalid_bdf(self, config_file: Path) -> None:
        result = CliRunner().invoke(main, ["--config", str(config_file), "info", "../etc"])
        assert result.exit_code == 1
        assert "Invalid BDF format" in result.output


class TestDbStats:
    """Tests for the db stats command."""

    def test_stats(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(main, ["--ids-file", str(pci_ids_file), "db", "stats"])
        assert result.exit_code == 0
        assert "Vendors: 3" in result.output
        assert "Programming interfaces: 3" in result.output

    def test_stats_json(self, pci_ids_file: Path) -> None:
        result = CliRunner().invoke(
            main, ["--json", "--ids-file", str(pci_ids_file), "db", "stats"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["source"] == str(pci_ids_file)
        assert data["subsystems"] == 3

    def test_stats_no_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(
            main, ["--ids-file", str(tmp_path / "missing.ids"), "db", "stats"]
        )
        assert result.exit_code == 0
        assert "No pci.ids file loaded." in result.output
