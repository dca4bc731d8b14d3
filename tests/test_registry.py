"""Tests for aumai_imagecompose.registry and the RHEL 8 tables."""

from __future__ import annotations

import pytest

from aumai_imagecompose.datasizes import GiB, MiB
from aumai_imagecompose.distros import REGISTRY, distro_factory
from aumai_imagecompose.errors import NotFoundError
from aumai_imagecompose.registry import (
    Architecture,
    BootMode,
    Customization,
    Distribution,
    ImageCategory,
    ImageKind,
    Registry,
    normalize_distro_id,
)

RHEL_X86_64_TYPES = [
    "ami",
    "azure-eap7-rhui",
    "azure-rhui",
    "azure-sap-rhui",
    "ec2",
    "ec2-ha",
    "ec2-sap",
    "edge-commit",
    "edge-container",
    "edge-installer",
    "edge-raw-image",
    "edge-simplified-installer",
    "gce",
    "gce-rhui",
    "image-installer",
    "minimal-raw",
    "oci",
    "openstack",
    "ova",
    "qcow2",
    "tar",
    "vhd",
    "vmdk",
    "wsl",
]

RHEL_AARCH64_TYPES = [
    "ami",
    "azure-rhui",
    "ec2",
    "edge-commit",
    "edge-container",
    "edge-installer",
    "edge-raw-image",
    "edge-simplified-installer",
    "image-installer",
    "minimal-raw",
    "openstack",
    "qcow2",
    "tar",
    "vhd",
    "wsl",
]

X86_64_OUTPUTS = {
    "qcow2": ("disk.qcow2", "application/x-qemu-disk"),
    "openstack": ("disk.qcow2", "application/x-qemu-disk"),
    "vhd": ("disk.vhd", "application/x-vhd"),
    "azure-rhui": ("disk.vhd.xz", "application/xz"),
    "vmdk": ("disk.vmdk", "application/x-vmdk"),
    "ova": ("image.ova", "application/ovf"),
    "ami": ("image.raw", "application/octet-stream"),
    "ec2": ("image.raw.xz", "application/xz"),
    "gce": ("image.tar.gz", "application/gzip"),
    "edge-commit": ("commit.tar", "application/x-tar"),
    "edge-container": ("container.tar", "application/x-tar"),
    "edge-installer": ("installer.iso", "application/x-iso9660-image"),
    "edge-raw-image": ("image.raw.xz", "application/xz"),
    "edge-simplified-installer": (
        "simplified-installer.iso",
        "application/x-iso9660-image",
    ),
    "image-installer": ("installer.iso", "application/x-iso9660-image"),
    "tar": ("root.tar.xz", "application/x-tar"),
    "minimal-raw": ("disk.raw.xz", "application/xz"),
}


def _all_kinds() -> list[ImageKind]:
    kinds = []
    for distro_name in REGISTRY.list_distributions():
        distro = REGISTRY.get_distribution(distro_name)
        for arch_name in distro.list_architectures():
            arch = distro.get_architecture(arch_name)
            kinds.extend(arch.get_image_kind(name) for name in arch.list_image_kinds())
    return kinds


# ---------------------------------------------------------------------------
# normalize_distro_id / distro_factory
# ---------------------------------------------------------------------------


class TestDistroLookup:
    @pytest.mark.parametrize(
        ("distro_id", "expected"),
        [
            ("rhel-810", "rhel-8.10"),
            ("rhel-8.10", "rhel-8.10"),
            ("centos-8", "centos-8"),
            ("rhel-8", "rhel-8"),
            ("rhel-8.4.1", "rhel-8.4.1"),
            ("fedora", "fedora"),
        ],
    )
    def test_normalize(self, distro_id: str, expected: str) -> None:
        assert normalize_distro_id(distro_id) == expected

    def test_factory_accepts_canonical_name(self) -> None:
        distro = distro_factory("rhel-8.10")
        assert distro is not None
        assert distro.name == "rhel-8.10"

    def test_factory_accepts_dotless_version(self) -> None:
        distro = distro_factory("rhel-810")
        assert distro is not None
        assert distro.name == "rhel-8.10"

    @pytest.mark.parametrize("distro_id", ["rhel-8", "rhel-8.4.1", "fedora-40", ""])
    def test_factory_returns_none_for_unknown(self, distro_id: str) -> None:
        assert distro_factory(distro_id) is None

    def test_get_distribution_raises_not_found(self) -> None:
        with pytest.raises(NotFoundError, match="invalid distribution: rhel-8"):
            REGISTRY.get_distribution("rhel-8")

    def test_name_round_trips(self) -> None:
        for name in REGISTRY.list_distributions():
            assert REGISTRY.get_distribution(name).name == name

    def test_list_distributions(self) -> None:
        assert REGISTRY.list_distributions() == ["centos-8", "rhel-8.10"]

    def test_duplicate_distribution_rejected(self, rhel8: Distribution) -> None:
        with pytest.raises(ValueError, match="duplicate distribution"):
            Registry([rhel8, rhel8])


# ---------------------------------------------------------------------------
# Distribution
# ---------------------------------------------------------------------------


class TestDistribution:
    def test_module_platform_id(self, rhel8: Distribution) -> None:
        assert rhel8.module_platform_id == "platform:el8"

    def test_release_details(self, rhel8: Distribution) -> None:
        assert rhel8.os_version == "8.10"
        assert rhel8.releasever == "8"
        assert rhel8.product == "Red Hat Enterprise Linux"

    def test_list_architectures_sorted(self, rhel8: Distribution) -> None:
        assert rhel8.list_architectures() == ["aarch64", "ppc64le", "s390x", "x86_64"]

    def test_centos_architectures(self) -> None:
        centos = REGISTRY.get_distribution("centos-8")
        assert centos.list_architectures() == ["aarch64", "ppc64le", "x86_64"]
        assert centos.module_platform_id == "platform:el8"

    def test_unknown_architecture(self, rhel8: Distribution) -> None:
        with pytest.raises(NotFoundError) as excinfo:
            rhel8.get_architecture("foo-arch")
        assert excinfo.value.message == "invalid architecture: foo-arch"

    def test_architecture_name(self, rhel8: Distribution) -> None:
        for name in rhel8.list_architectures():
            assert rhel8.get_architecture(name).name == name


# ---------------------------------------------------------------------------
# Architecture
# ---------------------------------------------------------------------------


class TestArchitecture:
    def test_x86_64_image_types(self, x86_64: Architecture) -> None:
        assert x86_64.list_image_kinds() == RHEL_X86_64_TYPES

    def test_aarch64_image_types(self, aarch64: Architecture) -> None:
        assert aarch64.list_image_kinds() == RHEL_AARCH64_TYPES

    @pytest.mark.parametrize("arch_name", ["ppc64le", "s390x"])
    def test_minor_arches(self, rhel8: Distribution, arch_name: str) -> None:
        assert rhel8.get_architecture(arch_name).list_image_kinds() == ["qcow2", "tar"]

    def test_centos_has_no_edge_commit(self) -> None:
        arch = REGISTRY.get_distribution("centos-8").get_architecture("x86_64")
        assert "edge-commit" not in arch.list_image_kinds()
        assert "edge-container" in arch.list_image_kinds()

    def test_aliases_are_not_listed(self, x86_64: Architecture) -> None:
        names = x86_64.list_image_kinds()
        assert "rhel-edge-commit" not in names
        assert "rhel-edge-installer" not in names

    @pytest.mark.parametrize(
        ("alias", "canonical"),
        [
            ("rhel-edge-commit", "edge-commit"),
            ("rhel-edge-container", "edge-container"),
            ("rhel-edge-installer", "edge-installer"),
        ],
    )
    def test_alias_resolves(self, x86_64: Architecture, alias: str, canonical: str) -> None:
        assert x86_64.get_image_kind(alias).name == canonical

    def test_every_alias_resolves_to_its_kind(self) -> None:
        for kind in _all_kinds():
            arch = (
                REGISTRY.get_distribution(kind.distro_name).get_architecture(kind.arch_name)
            )
            for alias in kind.aliases:
                assert arch.get_image_kind(alias).name == kind.name

    def test_unknown_image_type(self, x86_64: Architecture) -> None:
        with pytest.raises(NotFoundError, match="invalid image type: foo"):
            x86_64.get_image_kind("foo")

    def test_duplicate_kind_rejected(self, qcow2: ImageKind) -> None:
        with pytest.raises(ValueError, match="duplicate image type"):
            Architecture("x86_64", [qcow2, qcow2])

    def test_alias_shadowing_a_name_rejected(self, qcow2: ImageKind) -> None:
        other = ImageKind(
            name="other",
            filename="other.img",
            mime_type="application/octet-stream",
            category=ImageCategory.DISK,
            aliases=("qcow2",),
        )
        with pytest.raises(ValueError, match="ambiguous"):
            Architecture("x86_64", [qcow2, other])


# ---------------------------------------------------------------------------
# ImageKind
# ---------------------------------------------------------------------------


class TestImageKind:
    @pytest.mark.parametrize(("name", "expected"), sorted(X86_64_OUTPUTS.items()))
    def test_output_descriptor(
        self, x86_64: Architecture, name: str, expected: tuple[str, str]
    ) -> None:
        output = x86_64.get_image_kind(name).output
        assert (output.filename, output.mime_type) == expected

    def test_every_kind_has_output(self) -> None:
        for kind in _all_kinds():
            assert kind.filename
            assert kind.mime_type

    def test_kinds_carry_their_platform(self) -> None:
        for kind in _all_kinds():
            assert kind.distro_name in REGISTRY.list_distributions()
            assert kind.module_platform_id == "platform:el8"

    def test_default_size(self, qcow2: ImageKind) -> None:
        assert qcow2.size(0) == 10 * GiB
        assert qcow2.size(20 * GiB) == 20 * GiB

    def test_size_alignment(self, x86_64: Architecture) -> None:
        vhd = x86_64.get_image_kind("vhd")
        assert vhd.size(4 * GiB + 1) == 4 * GiB + MiB
        assert vhd.size(0) == 4 * GiB

    def test_customization_flags(self, x86_64: Architecture) -> None:
        assert x86_64.get_image_kind("qcow2").customizations == Customization.ALL
        assert x86_64.get_image_kind("edge-commit").customizations == Customization.NONE
        eap = x86_64.get_image_kind("azure-eap7-rhui")
        assert eap.supports(Customization.FILESYSTEM)
        assert not eap.supports(Customization.DISK)
        assert x86_64.get_image_kind("edge-installer").supports(Customization.KERNEL)

    def test_boot_modes(self, rhel8: Distribution) -> None:
        assert rhel8.get_architecture("x86_64").get_image_kind("qcow2").boot_mode is BootMode.HYBRID
        assert rhel8.get_architecture("aarch64").get_image_kind("qcow2").boot_mode is BootMode.UEFI
        assert rhel8.get_architecture("s390x").get_image_kind("qcow2").boot_mode is BootMode.LEGACY
        assert rhel8.get_architecture("x86_64").get_image_kind("tar").boot_mode is BootMode.NONE

    def test_swap_support(self, x86_64: Architecture, aarch64: Architecture) -> None:
        assert x86_64.get_image_kind("qcow2").swap_supported
        assert not aarch64.get_image_kind("qcow2").swap_supported

    def test_ostree_refs(self, x86_64: Architecture) -> None:
        assert x86_64.get_image_kind("edge-commit").ostree_ref == "rhel/8/x86_64/edge"
        assert x86_64.get_image_kind("edge-installer").ostree_ref == "rhel/8/x86_64/edge"
        assert x86_64.get_image_kind("qcow2").ostree_ref == ""

    def test_ostree_categories(self, x86_64: Architecture) -> None:
        assert x86_64.get_image_kind("edge-commit").category.is_ostree
        assert x86_64.get_image_kind("edge-container").category.is_ostree
        assert not x86_64.get_image_kind("edge-installer").category.is_ostree

    def test_kinds_are_immutable(self, qcow2: ImageKind) -> None:
        with pytest.raises(AttributeError):
            qcow2.name = "changed"  # type: ignore[misc]
