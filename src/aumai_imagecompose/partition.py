"""Partition table construction from filesystem and disk customizations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Collection, Iterator, Optional

from .datasizes import GiB, format_size, round_up
from .errors import FeatureUnsupportedError, SizeError, StructuralError
from .models import (
    Customizations,
    DiskCustomization,
    FilesystemCustomization,
    LogicalVolume,
    Partition,
    PartitionTable,
    VolumeGroup,
)
from .registry import ImageKind

__all__ = [
    "DEFAULT_PARTITION_SIZE",
    "ROOT_VG_NAME",
    "SUPPORTED_FS_TYPES",
    "PartitionTableBuilder",
    "check_disk_layout",
    "lv_name_for",
    "unique_lv_name",
]

logger = logging.getLogger(__name__)

SUPPORTED_FS_TYPES = ("ext4", "xfs", "vfat", "swap")
DEFAULT_PARTITION_SIZE = 1 * GiB
ROOT_VG_NAME = "rootvg"


def lv_name_for(mountpoint: Optional[str], fs_type: Optional[str] = None) -> str:
    """Default logical volume name: ``/var/log`` becomes ``var_loglv``."""
    if fs_type == "swap" or not mountpoint:
        return "swaplv"
    if mountpoint == "/":
        return "rootlv"
    return mountpoint.strip("/").replace("/", "_") + "lv"


def unique_lv_name(base: str, taken: Collection[str]) -> str:
    """Return *base*, or *base* with the first free two-digit suffix in *taken*."""
    candidate = base
    index = 0
    while candidate in taken:
        candidate = f"{base}{index:02d}"
        index += 1
    return candidate


def _vg_name(name: Optional[str], index: int) -> str:
    return name or f"vg{index:02d}"


# ---------------------------------------------------------------------------
# Layout checks
# ---------------------------------------------------------------------------


@dataclass
class _Node:
    """A filesystem-bearing leaf of the disk tree (plain partition or LV)."""

    fs_type: str
    mountpoint: Optional[str]
    minsize: int


def _iter_nodes(kind: ImageKind, disk: DiskCustomization) -> Iterator[_Node]:
    for partition in disk.partitions:
        if partition.type == "plain":
            yield _Node(
                partition.fs_type or kind.default_fs_type,
                partition.mountpoint or None,
                partition.minsize,
            )
        else:
            for lv in partition.logical_volumes:
                yield _Node(lv.fs_type or kind.default_fs_type, lv.mountpoint or None, lv.minsize)


def check_disk_layout(kind: ImageKind, customizations: Customizations) -> None:
    """
    Reject structurally invalid layouts, unsupported features and undersized
    reserved mount points.

    Runs for every image kind that accepts customizations, whether or not
    the kind produces a partition table.
    """
    if customizations.filesystem:
        _check_filesystems(customizations.filesystem)
    if customizations.disk is None:
        return
    _check_disk_structure(kind, customizations.disk)
    nodes = list(_iter_nodes(kind, customizations.disk))
    if not kind.swap_supported and any(node.fs_type == "swap" for node in nodes):
        raise FeatureUnsupportedError(
            f"swap partition creation is not supported on {kind.distro_name} {kind.arch_name}"
        )
    for node in nodes:
        if not node.mountpoint or not node.minsize:
            continue
        required = kind.required_sizes.get(node.mountpoint, 0)
        if node.minsize < required:
            raise SizeError(
                f'mountpoint "{node.mountpoint}" requires at least {format_size(required)} '
                f"on {kind.distro_name}, got {format_size(node.minsize)}"
            )


def _check_filesystems(filesystems: list[FilesystemCustomization]) -> None:
    seen: set[str] = set()
    for fs in filesystems:
        if fs.mountpoint in seen:
            raise StructuralError(
                f'duplicate mountpoint "{fs.mountpoint}" in filesystem customizations'
            )
        seen.add(fs.mountpoint)


def _check_disk_structure(kind: ImageKind, disk: DiskCustomization) -> None:
    mountpoints: set[str] = set()
    vg_names: set[str] = set()

    def check_leaf(fs_type: Optional[str], mountpoint: Optional[str]) -> None:
        fs_type = fs_type or kind.default_fs_type
        if fs_type not in SUPPORTED_FS_TYPES:
            raise StructuralError(
                f'unsupported filesystem type "{fs_type}" for mountpoint "{mountpoint or ""}"'
            )
        if fs_type == "swap":
            if mountpoint:
                raise StructuralError(
                    f'mountpoint for swap partition must be empty (got "{mountpoint}")'
                )
            return
        if not mountpoint:
            raise StructuralError(f'mountpoint is required for filesystem type "{fs_type}"')
        if mountpoint in mountpoints:
            raise StructuralError(
                f'duplicate mountpoint "{mountpoint}" in partitioning customizations'
            )
        mountpoints.add(mountpoint)

    for index, partition in enumerate(disk.partitions):
        if partition.type == "plain":
            if partition.logical_volumes:
                raise StructuralError("plain partitions cannot contain logical volumes")
            check_leaf(partition.fs_type, partition.mountpoint)
            continue

        name = _vg_name(partition.name, index)
        if partition.mountpoint or partition.fs_type or partition.label:
            raise StructuralError(
                f'volume group "{name}" cannot have a filesystem, label or mountpoint'
            )
        if name in vg_names:
            raise StructuralError(f'duplicate volume group name "{name}"')
        vg_names.add(name)
        if not partition.logical_volumes:
            raise StructuralError(f'volume group "{name}" has no logical volumes')

        lv_names: set[str] = set()
        for lv in partition.logical_volumes:
            check_leaf(lv.fs_type, lv.mountpoint)
            if lv.mountpoint == "/boot":
                raise StructuralError('invalid mountpoint "/boot" for logical volume')
            # unnamed volumes get a unique default name when the table is built
            if not lv.name:
                continue
            if lv.name in lv_names:
                raise StructuralError(
                    f'duplicate logical volume name "{lv.name}" in volume group "{name}"'
                )
            lv_names.add(lv.name)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@dataclass
class _Volume:
    name: str
    fs_type: str
    mountpoint: Optional[str]
    label: Optional[str]
    size: int


@dataclass
class _Slot:
    kind: str
    size: int
    fs_type: Optional[str] = None
    mountpoint: Optional[str] = None
    label: Optional[str] = None
    vg_name: Optional[str] = None
    volumes: list[_Volume] = field(default_factory=list)

    def freeze(self) -> Partition:
        volume_group = None
        if self.kind == "lvm":
            volume_group = VolumeGroup(
                name=self.vg_name,
                logical_volumes=tuple(
                    LogicalVolume(
                        name=v.name,
                        fs_type=v.fs_type,
                        mountpoint=v.mountpoint,
                        label=v.label,
                        size=v.size,
                    )
                    for v in self.volumes
                ),
            )
        return Partition(
            kind=self.kind,
            fs_type=self.fs_type,
            mountpoint=self.mountpoint,
            label=self.label,
            size=self.size,
            volume_group=volume_group,
        )


class PartitionTableBuilder:
    """
    Lays out the partition table of one image kind.

    Firmware partitions of the architecture come first, then the root
    filesystem (synthesized when the customizations omit it), then the
    customized entries in declaration order.  The root grows so the table
    fills the requested image size.
    """

    def __init__(self, kind: ImageKind) -> None:
        self.kind = kind

    def build(
        self,
        customizations: Optional[Customizations],
        size: int,
        mode: str = "raw",
    ) -> PartitionTable:
        customizations = customizations or Customizations()
        disk = customizations.disk
        if disk is not None and disk.partitions:
            slots = self._from_disk(disk)
        else:
            slots = self._from_filesystems(customizations.filesystem or [], mode)
        target = max(size, disk.minsize if disk is not None else 0)
        table = self._finish(slots, round_up(target))
        logger.debug(
            "partition table for %s/%s: %s",
            self.kind.arch_name,
            self.kind.name,
            ", ".join(table.mountpoints()),
        )
        return table

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _size(self, mountpoint: Optional[str], minsize: int) -> int:
        required = self.kind.required_sizes.get(mountpoint, 0) if mountpoint else 0
        if minsize == 0:
            return round_up(max(required, DEFAULT_PARTITION_SIZE))
        return round_up(max(minsize, required))

    def _root_volume(self, taken: Collection[str] = ()) -> _Volume:
        return _Volume(
            name=unique_lv_name(lv_name_for("/"), taken),
            fs_type=self.kind.default_fs_type,
            mountpoint="/",
            label="root",
            size=self._size("/", 0),
        )

    def _from_filesystems(
        self, filesystems: list[FilesystemCustomization], mode: str
    ) -> list[_Slot]:
        volumes = [
            _Volume(
                name=lv_name_for(fs.mountpoint),
                fs_type=self.kind.default_fs_type,
                mountpoint=fs.mountpoint,
                label="root" if fs.mountpoint == "/" else None,
                size=self._size(fs.mountpoint, fs.minsize),
            )
            for fs in filesystems
        ]
        if not any(v.mountpoint == "/" for v in volumes):
            volumes.insert(0, self._root_volume())

        use_lvm = mode == "lvm" or (
            mode == "auto-lvm" and any(v.mountpoint not in ("/", "/boot") for v in volumes)
        )
        if not use_lvm:
            return [self._plain(v) for v in volumes]

        slots = [self._plain(v) for v in volumes if v.mountpoint == "/boot"]
        lvs = [v for v in volumes if v.mountpoint != "/boot"]
        taken: set[str] = set()
        for volume in lvs:
            volume.name = unique_lv_name(volume.name, taken)
            taken.add(volume.name)
        slots.append(
            _Slot(
                kind="lvm",
                size=sum(v.size for v in lvs),
                vg_name=ROOT_VG_NAME,
                volumes=lvs,
            )
        )
        return slots

    def _from_disk(self, disk: DiskCustomization) -> list[_Slot]:
        slots: list[_Slot] = []
        for index, partition in enumerate(disk.partitions):
            if partition.type == "plain":
                slots.append(
                    _Slot(
                        kind="plain",
                        fs_type=partition.fs_type or self.kind.default_fs_type,
                        mountpoint=partition.mountpoint or None,
                        label=partition.label,
                        size=self._size(partition.mountpoint, partition.minsize),
                    )
                )
                continue
            # explicit names win; defaults take a suffix when already in use
            taken = {lv.name for lv in partition.logical_volumes if lv.name}
            volumes = []
            for lv in partition.logical_volumes:
                name = lv.name or unique_lv_name(lv_name_for(lv.mountpoint, lv.fs_type), taken)
                taken.add(name)
                volumes.append(
                    _Volume(
                        name=name,
                        fs_type=lv.fs_type or self.kind.default_fs_type,
                        mountpoint=lv.mountpoint or None,
                        label=lv.label,
                        size=self._size(lv.mountpoint, lv.minsize),
                    )
                )
            slots.append(
                _Slot(
                    kind="lvm",
                    size=round_up(max(partition.minsize, sum(v.size for v in volumes))),
                    vg_name=_vg_name(partition.name, index),
                    volumes=volumes,
                )
            )

        has_root = any(
            slot.mountpoint == "/" or any(v.mountpoint == "/" for v in slot.volumes)
            for slot in slots
        )
        if not has_root:
            vg = next((slot for slot in slots if slot.kind == "lvm"), None)
            if vg is not None:
                root = self._root_volume([v.name for v in vg.volumes])
                vg.volumes.insert(0, root)
                vg.size = max(vg.size, sum(v.size for v in vg.volumes))
            else:
                slots.insert(0, self._plain(self._root_volume()))
        return slots

    @staticmethod
    def _plain(volume: _Volume) -> _Slot:
        return _Slot(
            kind="plain",
            fs_type=volume.fs_type,
            mountpoint=volume.mountpoint,
            label=volume.label,
            size=volume.size,
        )

    def _finish(self, slots: list[_Slot], target: int) -> PartitionTable:
        firmware = self.kind.firmware_partitions
        total = sum(p.size for p in firmware) + sum(slot.size for slot in slots)
        if target > total:
            self._grow_root(slots, target - total)
            total = target
        return PartitionTable(
            type=self.kind.partition_table_type,
            size=total,
            partitions=firmware + tuple(slot.freeze() for slot in slots),
        )

    @staticmethod
    def _grow_root(slots: list[_Slot], extra: int) -> None:
        for slot in slots:
            if slot.mountpoint == "/":
                slot.size += extra
                return
            for volume in slot.volumes:
                if volume.mountpoint == "/":
                    volume.size += extra
                    slot.size += extra
                    return
