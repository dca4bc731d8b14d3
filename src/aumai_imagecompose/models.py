"""Pydantic models for aumai-imagecompose."""

from __future__ import annotations

from types import MappingProxyType
from typing import Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from .datasizes import parse_size

__all__ = [
    "Blueprint",
    "Customizations",
    "DiskCustomization",
    "FilesystemCustomization",
    "Group",
    "ImageOptions",
    "KernelCustomization",
    "LogicalVolume",
    "LVCustomization",
    "Manifest",
    "OSTreeImageOptions",
    "OSTreeSource",
    "OutputDescriptor",
    "Package",
    "PackageSet",
    "Partition",
    "PartitionCustomization",
    "PartitionTable",
    "VolumeGroup",
]


def _size(value: Union[int, str, None]) -> int:
    if value is None:
        return 0
    return parse_size(value)


# ---------------------------------------------------------------------------
# Blueprint (caller-owned input)
# ---------------------------------------------------------------------------


class Package(BaseModel):
    name: str
    version: Optional[str] = None


class Group(BaseModel):
    name: str


class FilesystemCustomization(BaseModel):
    """A legacy mount point request: path plus minimum size."""

    mountpoint: str
    minsize: int = Field(default=0, validation_alias=AliasChoices("minsize", "size"))

    @field_validator("minsize", mode="before")
    @classmethod
    def parse_minsize(cls, value: Union[int, str, None]) -> int:
        return _size(value)


class LVCustomization(BaseModel):
    """A logical volume inside an ``lvm`` partition customization."""

    name: Optional[str] = None
    minsize: int = 0
    mountpoint: Optional[str] = None
    label: Optional[str] = None
    fs_type: Optional[str] = None

    @field_validator("minsize", mode="before")
    @classmethod
    def parse_minsize(cls, value: Union[int, str, None]) -> int:
        return _size(value)


class PartitionCustomization(BaseModel):
    """
    One node of the disk customization tree.

    ``plain`` nodes carry a filesystem directly; ``lvm`` nodes are volume
    groups that own ``logical_volumes``.
    """

    type: Literal["plain", "lvm"] = "plain"
    minsize: int = 0
    mountpoint: Optional[str] = None
    label: Optional[str] = None
    fs_type: Optional[str] = None
    name: Optional[str] = None
    logical_volumes: list[LVCustomization] = Field(default_factory=list)

    @field_validator("minsize", mode="before")
    @classmethod
    def parse_minsize(cls, value: Union[int, str, None]) -> int:
        return _size(value)


class DiskCustomization(BaseModel):
    minsize: int = 0
    partitions: list[PartitionCustomization] = Field(default_factory=list)

    @field_validator("minsize", mode="before")
    @classmethod
    def parse_minsize(cls, value: Union[int, str, None]) -> int:
        return _size(value)


class KernelCustomization(BaseModel):
    name: Optional[str] = None
    append: str = ""

    def is_empty(self) -> bool:
        return not self.name and not self.append


class Customizations(BaseModel):
    filesystem: Optional[list[FilesystemCustomization]] = None
    disk: Optional[DiskCustomization] = None
    kernel: Optional[KernelCustomization] = None
    installation_device: Optional[str] = None

    def has_filesystem(self) -> bool:
        return bool(self.filesystem)

    def has_disk(self) -> bool:
        return self.disk is not None and (
            bool(self.disk.partitions) or self.disk.minsize > 0
        )

    def has_kernel(self) -> bool:
        return self.kernel is not None and not self.kernel.is_empty()


class Blueprint(BaseModel):
    """User-supplied description of the desired image."""

    name: str = ""
    description: str = ""
    version: str = ""
    packages: list[Package] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    customizations: Optional[Customizations] = None


class OSTreeImageOptions(BaseModel):
    image_ref: str = ""
    parent_ref: str = ""
    url: str = ""
    content_url: str = ""


class ImageOptions(BaseModel):
    """Per-request options that are not part of the blueprint."""

    size: int = 0
    ostree: Optional[OSTreeImageOptions] = None
    partitioning_mode: Literal["raw", "lvm", "auto-lvm"] = "raw"

    @field_validator("size", mode="before")
    @classmethod
    def parse_image_size(cls, value: Union[int, str, None]) -> int:
        return _size(value)


# ---------------------------------------------------------------------------
# Manifest (frozen output)
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class OutputDescriptor(_Frozen):
    filename: str
    mime_type: str


class LogicalVolume(_Frozen):
    name: str
    fs_type: str
    mountpoint: Optional[str] = None
    label: Optional[str] = None
    size: int


class VolumeGroup(_Frozen):
    name: str
    logical_volumes: tuple[LogicalVolume, ...] = ()


class Partition(_Frozen):
    """
    A resolved partition.

    ``kind`` is ``plain`` for a filesystem partition, ``lvm`` for a physical
    volume holding ``volume_group``, and ``bios-boot``/``prep`` for firmware
    partitions without a filesystem.
    """

    kind: Literal["plain", "lvm", "bios-boot", "prep"] = "plain"
    fs_type: Optional[str] = None
    mountpoint: Optional[str] = None
    label: Optional[str] = None
    size: int
    volume_group: Optional[VolumeGroup] = None


class PartitionTable(_Frozen):
    type: Literal["gpt", "dos"] = "gpt"
    size: int
    partitions: tuple[Partition, ...] = ()

    def mountpoints(self) -> list[str]:
        """Return every mount point in layout order, logical volumes included."""
        result: list[str] = []
        for partition in self.partitions:
            if partition.mountpoint:
                result.append(partition.mountpoint)
            if partition.volume_group is not None:
                result.extend(
                    lv.mountpoint
                    for lv in partition.volume_group.logical_volumes
                    if lv.mountpoint
                )
        return result

    def find(self, mountpoint: str) -> Union[Partition, LogicalVolume, None]:
        for partition in self.partitions:
            if partition.mountpoint == mountpoint:
                return partition
            if partition.volume_group is not None:
                for lv in partition.volume_group.logical_volumes:
                    if lv.mountpoint == mountpoint:
                        return lv
        return None


class PackageSet(_Frozen):
    include: tuple[str, ...]
    exclude: tuple[str, ...] = ()


class OSTreeSource(_Frozen):
    ref: str
    parent_ref: Optional[str] = None
    url: Optional[str] = None
    content_url: Optional[str] = None


class Manifest(_Frozen):
    """Fully resolved build description handed to the build engine."""

    distro: str
    arch: str
    image_type: str
    module_platform_id: str
    output: OutputDescriptor
    size: int
    boot_mode: str
    kernel_options: Optional[str] = None
    partition_table: Optional[PartitionTable] = None
    package_set_chains: Mapping[str, tuple[PackageSet, ...]]
    ostree: Optional[OSTreeSource] = None
    installation_device: Optional[str] = None

    @field_validator("package_set_chains")
    @classmethod
    def freeze_chains(
        cls, value: Mapping[str, tuple[PackageSet, ...]]
    ) -> Mapping[str, tuple[PackageSet, ...]]:
        return MappingProxyType(dict(value))

    @field_serializer("package_set_chains")
    def dump_chains(
        self, value: Mapping[str, tuple[PackageSet, ...]]
    ) -> dict[str, tuple[PackageSet, ...]]:
        return dict(value)
