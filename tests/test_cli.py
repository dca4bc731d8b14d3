"""Tests for aumai_imagecompose CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, get_type_hints

import pytest
from click.testing import CliRunner

from aumai_imagecompose.cli import _fail, main

_TOML_BLUEPRINT = """\
name = "web"
description = "web server"

[[packages]]
name = "nginx"

[[groups]]
name = "development"

[[customizations.filesystem]]
mountpoint = "/var/log"
minsize = "1 GiB"
"""


def _rhel(*args: str) -> list[str]:
    return [*args[:1], "--distro", "rhel-8.10", "--arch", "x86_64", *args[1:]]


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


class TestVersionFlag:
    def test_version_exits_zero(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# Listing commands
# ---------------------------------------------------------------------------


class TestListCommands:
    def test_distros(self) -> None:
        result = CliRunner().invoke(main, ["distros"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["centos-8", "rhel-8.10"]

    def test_arches(self) -> None:
        result = CliRunner().invoke(main, ["arches", "--distro", "rhel-810"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["aarch64", "ppc64le", "s390x", "x86_64"]

    def test_arches_from_environment(self) -> None:
        result = CliRunner().invoke(main, ["arches"], env={"IMAGECOMPOSE_DISTRO": "centos-8"})
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["aarch64", "ppc64le", "x86_64"]

    def test_arches_unknown_distro(self) -> None:
        result = CliRunner().invoke(main, ["arches", "--distro", "rhel-8"])
        assert result.exit_code == 1
        assert "invalid distribution: rhel-8" in result.output

    def test_arches_requires_distro(self) -> None:
        result = CliRunner().invoke(main, ["arches"], env={"IMAGECOMPOSE_DISTRO": None})
        assert result.exit_code != 0

    def test_types(self) -> None:
        result = CliRunner().invoke(main, _rhel("types"))
        assert result.exit_code == 0, result.output
        names = result.output.splitlines()
        assert "qcow2" in names
        assert "edge-commit" in names
        assert "rhel-edge-commit" not in names

    def test_types_unknown_arch(self) -> None:
        result = CliRunner().invoke(
            main, ["types", "--distro", "rhel-8.10", "--arch", "riscv64"]
        )
        assert result.exit_code == 1
        assert "invalid architecture: riscv64" in result.output


# ---------------------------------------------------------------------------
# describe command
# ---------------------------------------------------------------------------


class TestDescribeCommand:
    def test_describe_qcow2(self) -> None:
        result = CliRunner().invoke(main, _rhel("describe", "--type", "qcow2"))
        assert result.exit_code == 0, result.output
        assert "Filename      : disk.qcow2" in result.output
        assert "Default size  : 10 GiB" in result.output
        assert "Boot mode     : hybrid" in result.output
        assert "Customizations: filesystem, disk, kernel" in result.output

    def test_describe_alias(self) -> None:
        result = CliRunner().invoke(main, _rhel("describe", "--type", "rhel-edge-commit"))
        assert result.exit_code == 0, result.output
        assert "Name          : edge-commit" in result.output
        assert "Customizations: -" in result.output

    def test_describe_url_requirement(self) -> None:
        result = CliRunner().invoke(main, _rhel("describe", "--type", "edge-installer"))
        assert result.exit_code == 0, result.output
        assert "--ostree-url" in result.output

    def test_describe_unknown_type(self) -> None:
        result = CliRunner().invoke(main, _rhel("describe", "--type", "iso"))
        assert result.exit_code == 1
        assert "invalid image type: iso" in result.output


# ---------------------------------------------------------------------------
# manifest command
# ---------------------------------------------------------------------------


class TestManifestCommand:
    def test_default_manifest(self) -> None:
        result = CliRunner().invoke(main, _rhel("manifest", "--type", "qcow2"))
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["image_type"] == "qcow2"
        assert data["output"]["filename"] == "disk.qcow2"
        assert list(data["package_set_chains"]) == ["build", "payload"]

    def test_toml_blueprint(self, tmp_path: Path) -> None:
        blueprint = tmp_path / "web.toml"
        blueprint.write_text(_TOML_BLUEPRINT, encoding="utf-8")
        result = CliRunner().invoke(
            main,
            _rhel("manifest", "--type", "qcow2", "--blueprint", str(blueprint), "--size", "20 GiB"),
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["size"] == 20 * 1024**3
        payload = data["package_set_chains"]["payload"][0]["include"]
        assert "nginx" in payload
        assert "@development" in payload
        mountpoints = [p["mountpoint"] for p in data["partition_table"]["partitions"]]
        assert mountpoints == [None, "/boot/efi", "/", "/var/log"]

    def test_json_blueprint(self, tmp_path: Path) -> None:
        blueprint = tmp_path / "bp.json"
        blueprint.write_text(
            json.dumps({"customizations": {"kernel": {"append": "debug"}}}),
            encoding="utf-8",
        )
        result = CliRunner().invoke(
            main, _rhel("manifest", "--type", "qcow2", "--blueprint", str(blueprint))
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["kernel_options"].endswith(" debug")

    def test_forbidden_mountpoint(self, tmp_path: Path) -> None:
        blueprint = tmp_path / "bad.toml"
        blueprint.write_text(
            '[[customizations.filesystem]]\nmountpoint = "/etc"\nminsize = 1024\n',
            encoding="utf-8",
        )
        result = CliRunner().invoke(
            main, _rhel("manifest", "--type", "qcow2", "--blueprint", str(blueprint))
        )
        assert result.exit_code == 1
        assert "The following errors occurred while setting up custom mountpoints:" in result.output
        assert 'path "/etc" is not allowed' in result.output

    def test_missing_ostree_url(self) -> None:
        result = CliRunner().invoke(main, _rhel("manifest", "--type", "edge-installer"))
        assert result.exit_code == 1
        assert "requires specifying a URL" in result.output

    def test_ostree_options(self) -> None:
        result = CliRunner().invoke(
            main,
            _rhel(
                "manifest",
                "--type",
                "edge-installer",
                "--ostree-url",
                "http://ostree.example.com/repo",
            ),
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["ostree"]["url"] == "http://ostree.example.com/repo"
        assert data["ostree"]["ref"] == "rhel/8/x86_64/edge"

    def test_invalid_size(self) -> None:
        result = CliRunner().invoke(
            main, _rhel("manifest", "--type", "qcow2", "--size", "lots")
        )
        assert result.exit_code == 1

    def test_invalid_partitioning_mode(self) -> None:
        result = CliRunner().invoke(
            main, _rhel("manifest", "--type", "qcow2", "--partitioning-mode", "zfs")
        )
        assert result.exit_code != 0

    def test_malformed_toml(self, tmp_path: Path) -> None:
        blueprint = tmp_path / "broken.toml"
        blueprint.write_text("name = \n", encoding="utf-8")
        result = CliRunner().invoke(
            main, _rhel("manifest", "--type", "qcow2", "--blueprint", str(blueprint))
        )
        assert result.exit_code == 1

    def test_output_file(self, tmp_path: Path) -> None:
        out = tmp_path / "manifest.json"
        result = CliRunner().invoke(
            main,
            _rhel("manifest", "--type", "tar", "--output", str(out)),
        )
        assert result.exit_code == 0, result.output
        assert "Manifest written" in result.output
        assert "root.tar.xz" in result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["partition_table"] is None


# ---------------------------------------------------------------------------
# Error exit
# ---------------------------------------------------------------------------


class TestFailHelper:
    def test_declared_never_returning(self) -> None:
        assert get_type_hints(_fail)["return"] is NoReturn

    def test_exits_with_status_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as excinfo:
            _fail(ValueError("bad input"))
        assert excinfo.value.code == 1
        assert "Error: bad input" in capsys.readouterr().err
