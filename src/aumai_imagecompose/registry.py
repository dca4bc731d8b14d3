"""
Platform registry types.

A ``Registry`` owns ``Distribution`` objects, each distribution owns its
``Architecture`` objects and each architecture owns the ``ImageKind``
records it can build.  All of them are created once, before any manifest
is built, and are never mutated afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, Flag
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from .datasizes import round_up
from .errors import NotFoundError
from .models import OutputDescriptor, Partition
from .pathpolicy import MOUNTPOINT_POLICIES, PathPolicies

if TYPE_CHECKING:
    from .models import Blueprint, ImageOptions, Manifest

__all__ = [
    "Architecture",
    "BootMode",
    "Customization",
    "Distribution",
    "ImageCategory",
    "ImageKind",
    "Registry",
    "normalize_distro_id",
]

logger = logging.getLogger(__name__)


class ImageCategory(str, Enum):
    OSTREE_COMMIT = "ostree-commit"
    OSTREE_CONTAINER = "ostree-container"
    ISO_INSTALLER = "iso-installer"
    DISK = "disk"
    ARCHIVE = "archive"

    @property
    def is_ostree(self) -> bool:
        return self in (ImageCategory.OSTREE_COMMIT, ImageCategory.OSTREE_CONTAINER)


class Customization(Flag):
    """Customization categories an image kind accepts."""

    NONE = 0
    FILESYSTEM = 1
    DISK = 2
    KERNEL = 4
    ALL = 7


class BootMode(str, Enum):
    NONE = "none"
    LEGACY = "legacy"
    UEFI = "uefi"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ImageKind:
    """
    Static capability record for one buildable image type.

    The first block of fields describes the kind itself; the second block is
    filled in per architecture when the registry is assembled.
    """

    name: str
    filename: str
    mime_type: str
    category: ImageCategory
    aliases: tuple[str, ...] = ()
    customizations: Customization = Customization.ALL
    default_size: int = 0
    size_alignment: int = 0
    payload_packages: tuple[str, ...] = ()
    exclude_packages: tuple[str, ...] = ()
    installer_packages: tuple[str, ...] = ()
    kernel_options: str = ""
    partitioned: bool = False
    installs_payload: bool = True
    requires_ostree_url: bool = False
    requires_installation_device: bool = False

    distro_name: str = ""
    arch_name: str = ""
    module_platform_id: str = ""
    build_packages: tuple[str, ...] = ()
    boot_packages: tuple[str, ...] = ()
    boot_mode: BootMode = BootMode.NONE
    swap_supported: bool = True
    partition_table_type: str = "gpt"
    firmware_partitions: tuple[Partition, ...] = ()
    default_fs_type: str = "xfs"
    ostree_ref: str = ""
    mountpoint_policies: PathPolicies = field(default=MOUNTPOINT_POLICIES, compare=False)
    required_sizes: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({}), compare=False
    )

    @property
    def output(self) -> OutputDescriptor:
        return OutputDescriptor(filename=self.filename, mime_type=self.mime_type)

    def size(self, size: int) -> int:
        """Return the image size to use for a requested *size* (0 means default)."""
        if self.size_alignment and size % self.size_alignment != 0:
            size = round_up(size, self.size_alignment)
        if size == 0:
            size = self.default_size
        return size

    def supports(self, customization: Customization) -> bool:
        return customization in self.customizations

    def manifest(
        self,
        blueprint: Blueprint,
        options: Optional[ImageOptions] = None,
    ) -> Manifest:
        """Validate *blueprint* against this kind and assemble its manifest."""
        from .core import ManifestBuilder

        return ManifestBuilder().build(self, blueprint, options)


class Architecture:
    """The image kinds one distribution can build for one CPU architecture."""

    def __init__(self, name: str, image_kinds: Iterable[ImageKind]) -> None:
        self._name = name
        self._kinds: dict[str, ImageKind] = {}
        self._aliases: dict[str, str] = {}
        for kind in image_kinds:
            if kind.name in self._kinds:
                raise ValueError(f"duplicate image type {kind.name!r} for {name}")
            self._kinds[kind.name] = kind
        for kind in self._kinds.values():
            for alias in kind.aliases:
                if alias in self._kinds or alias in self._aliases:
                    raise ValueError(f"image type alias {alias!r} is ambiguous for {name}")
                self._aliases[alias] = kind.name

    @property
    def name(self) -> str:
        return self._name

    def list_image_kinds(self) -> list[str]:
        """Canonical image kind names, sorted; aliases are not listed."""
        return sorted(self._kinds)

    def get_image_kind(self, name: str) -> ImageKind:
        canonical = self._aliases.get(name, name)
        try:
            return self._kinds[canonical]
        except KeyError:
            raise NotFoundError(f"invalid image type: {name}") from None

    def __repr__(self) -> str:
        return f"Architecture({self._name!r})"


class Distribution:
    """A released operating system version and the architectures it supports."""

    def __init__(
        self,
        name: str,
        product: str,
        os_version: str,
        releasever: str,
        module_platform_id: str,
        architectures: Iterable[Architecture],
    ) -> None:
        self._name = name
        self.product = product
        self.os_version = os_version
        self.releasever = releasever
        self._module_platform_id = module_platform_id
        self._arches = {arch.name: arch for arch in architectures}

    @property
    def name(self) -> str:
        return self._name

    @property
    def module_platform_id(self) -> str:
        return self._module_platform_id

    def list_architectures(self) -> list[str]:
        return sorted(self._arches)

    def get_architecture(self, name: str) -> Architecture:
        try:
            return self._arches[name]
        except KeyError:
            raise NotFoundError(f"invalid architecture: {name}") from None

    def __repr__(self) -> str:
        return f"Distribution({self._name!r})"


def normalize_distro_id(distro_id: str) -> str:
    """
    Return the canonical spelling of *distro_id*.

    A dot-less version of more than one digit is split after its first digit
    (``rhel-810`` becomes ``rhel-8.10``).  Anything else is returned as is.
    """
    name, sep, version = distro_id.rpartition("-")
    if not sep or not name:
        return distro_id
    if version.isdigit() and len(version) > 1:
        version = f"{version[0]}.{version[1:]}"
    return f"{name}-{version}"


class Registry:
    """Read-only lookup table of every known distribution."""

    def __init__(self, distributions: Iterable[Distribution]) -> None:
        self._distros: dict[str, Distribution] = {}
        for distro in distributions:
            if distro.name in self._distros:
                raise ValueError(f"duplicate distribution {distro.name!r}")
            self._distros[distro.name] = distro

    def list_distributions(self) -> list[str]:
        return sorted(self._distros)

    def get_distribution(self, distro_id: str) -> Distribution:
        normalized = normalize_distro_id(distro_id)
        distro = self._distros.get(normalized)
        if distro is None:
            raise NotFoundError(f"invalid distribution: {distro_id}")
        logger.debug("resolved distribution %s as %s", distro_id, distro.name)
        return distro
