"""Core logic for aumai-imagecompose: manifest assembly."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .distros import REGISTRY
from .models import (
    Blueprint,
    Customizations,
    ImageOptions,
    Manifest,
    OSTreeImageOptions,
    OSTreeSource,
    PackageSet,
)
from .partition import PartitionTableBuilder, check_disk_layout
from .registry import ImageKind
from .validator import validate_customizations

__all__ = [
    "BUILD_CHAIN",
    "INSTALLER_CHAIN",
    "PAYLOAD_CHAIN",
    "ManifestBuilder",
    "build_manifest",
]

logger = logging.getLogger(__name__)

BUILD_CHAIN = "build"
INSTALLER_CHAIN = "installer"
PAYLOAD_CHAIN = "payload"


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    """Drop repeated names, keeping first occurrences in order."""
    return tuple(dict.fromkeys(names))


class ManifestBuilder:
    """
    Turns an image kind plus a blueprint into a ``Manifest``.

    Validation, layout and package-set resolution all run before the
    manifest is constructed, so a failure anywhere raises and leaves nothing
    behind.
    """

    def build(
        self,
        kind: ImageKind,
        blueprint: Blueprint,
        options: Optional[ImageOptions] = None,
    ) -> Manifest:
        options = options or ImageOptions()
        customizations = blueprint.customizations or Customizations()
        logger.debug(
            "building manifest for %s/%s/%s", kind.distro_name, kind.arch_name, kind.name
        )

        validate_customizations(kind, blueprint, options)
        check_disk_layout(kind, customizations)

        size = kind.size(options.size)
        partition_table = None
        if kind.partitioned:
            partition_table = PartitionTableBuilder(kind).build(
                customizations, size, options.partitioning_mode
            )
            size = partition_table.size

        return Manifest(
            distro=kind.distro_name,
            arch=kind.arch_name,
            image_type=kind.name,
            module_platform_id=kind.module_platform_id,
            output=kind.output,
            size=size,
            boot_mode=kind.boot_mode.value,
            kernel_options=self.kernel_options(kind, customizations),
            partition_table=partition_table,
            package_set_chains=self.package_set_chains(kind, blueprint),
            ostree=self.ostree_source(kind, options),
            installation_device=customizations.installation_device,
        )

    def package_set_chains(
        self, kind: ImageKind, blueprint: Blueprint
    ) -> dict[str, tuple[PackageSet, ...]]:
        """
        Return the ordered package-set chains for *kind*.

        ``build`` is always present and holds exactly one package set.
        ``installer`` is added for kinds that boot an installer and
        ``payload`` for kinds that install packages into the image.
        """
        chains = {BUILD_CHAIN: (PackageSet(include=_unique(kind.build_packages)),)}
        if kind.installer_packages:
            chains[INSTALLER_CHAIN] = (
                PackageSet(include=_unique(kind.installer_packages)),
            )
        if kind.installs_payload:
            chains[PAYLOAD_CHAIN] = (self._payload(kind, blueprint),)
        return chains

    def kernel_options(
        self, kind: ImageKind, customizations: Customizations
    ) -> Optional[str]:
        parts = [kind.kernel_options]
        if customizations.kernel is not None:
            parts.append(customizations.kernel.append)
        joined = " ".join(part for part in parts if part)
        return joined or None

    def ostree_source(
        self, kind: ImageKind, options: ImageOptions
    ) -> Optional[OSTreeSource]:
        if not kind.ostree_ref:
            return None
        ostree = options.ostree or OSTreeImageOptions()
        return OSTreeSource(
            ref=ostree.image_ref or kind.ostree_ref,
            parent_ref=ostree.parent_ref or None,
            url=ostree.url or None,
            content_url=ostree.content_url or None,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _payload(self, kind: ImageKind, blueprint: Blueprint) -> PackageSet:
        include = list(kind.payload_packages) + list(kind.boot_packages)

        customizations = blueprint.customizations or Customizations()
        kernel = customizations.kernel.name if customizations.kernel else None
        if kernel:
            include = [kernel if name == "kernel" else name for name in include]
            include.append(kernel)

        include.extend(package.name for package in blueprint.packages)
        include.extend(f"@{group.name}" for group in blueprint.groups)
        return PackageSet(
            include=_unique(include),
            exclude=_unique(kind.exclude_packages),
        )


def build_manifest(
    distro: str,
    arch: str,
    image_type: str,
    blueprint: Optional[Blueprint] = None,
    options: Optional[ImageOptions] = None,
) -> Manifest:
    """Resolve the selector triple against the registry and build its manifest."""
    kind = (
        REGISTRY.get_distribution(distro)
        .get_architecture(arch)
        .get_image_kind(image_type)
    )
    return ManifestBuilder().build(kind, blueprint or Blueprint(), options)
