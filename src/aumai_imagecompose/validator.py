"""
Blueprint customization checks.

Fatal rules (OSTree restrictions, missing inputs, unsupported categories)
stop at the first violation.  Mount-point problems are collected for every
path and reported together in one ``PathValidationError``.
"""

from __future__ import annotations

import logging
import re

from .errors import (
    InvalidImageOptionsError,
    MissingRequiredInputError,
    PathValidationError,
    StructuralError,
    UnsupportedCustomizationError,
)
from .models import Blueprint, Customizations, ImageOptions, OSTreeImageOptions
from .pathpolicy import PathPolicies
from .registry import Customization, ImageCategory, ImageKind

__all__ = [
    "check_mountpoints",
    "customization_mountpoints",
    "validate_customizations",
]

logger = logging.getLogger(__name__)

_OSTREE_REF_RE = re.compile(r"^(?:[\w\d][-._\w\d]*/)*[\w\d][-._\w\d]*$")


def validate_customizations(
    kind: ImageKind, blueprint: Blueprint, options: ImageOptions
) -> None:
    """Raise the first fatal violation, or the aggregated path violations."""
    customizations = blueprint.customizations or Customizations()
    _check_ostree_kind(kind, customizations)
    _check_required_inputs(kind, customizations, options)
    _check_capabilities(kind, customizations)
    check_mountpoints(kind.mountpoint_policies, customization_mountpoints(customizations))
    logger.debug("customizations accepted for %s", kind.name)


def customization_mountpoints(customizations: Customizations) -> list[str]:
    """Every requested mount point, in the order the blueprint declares them."""
    if customizations.filesystem:
        return [fs.mountpoint for fs in customizations.filesystem]
    mountpoints: list[str] = []
    if customizations.disk is not None:
        for partition in customizations.disk.partitions:
            if partition.mountpoint:
                mountpoints.append(partition.mountpoint)
            mountpoints.extend(
                lv.mountpoint for lv in partition.logical_volumes if lv.mountpoint
            )
    return mountpoints


def check_mountpoints(policies: PathPolicies, mountpoints: list[str]) -> None:
    violations = []
    for mountpoint in mountpoints:
        violation = policies.violation(mountpoint)
        if violation is not None:
            violations.append(violation)
    if violations:
        raise PathValidationError(violations)


def _check_ostree_kind(kind: ImageKind, customizations: Customizations) -> None:
    if not kind.category.is_ostree:
        return
    if customizations.has_kernel():
        raise UnsupportedCustomizationError(
            "kernel boot parameter customizations are not supported for ostree types"
        )
    if customizations.has_filesystem() or customizations.has_disk():
        raise UnsupportedCustomizationError(
            "Custom mountpoints and partitioning are not supported for ostree types"
        )


def _check_required_inputs(
    kind: ImageKind, customizations: Customizations, options: ImageOptions
) -> None:
    ostree = options.ostree or OSTreeImageOptions()
    if kind.requires_ostree_url and not ostree.url:
        if kind.category is ImageCategory.ISO_INSTALLER:
            raise MissingRequiredInputError(
                f'boot ISO image type "{kind.name}" requires specifying a URL '
                "from which to retrieve the OSTree commit"
            )
        raise MissingRequiredInputError(
            f'"{kind.name}" images require specifying a URL from which to '
            "retrieve the OSTree commit"
        )
    if kind.requires_installation_device and not customizations.installation_device:
        raise MissingRequiredInputError(
            f'boot ISO image type "{kind.name}" requires specifying an '
            "installation device to install to"
        )
    if not kind.ostree_ref:
        return
    if ostree.parent_ref and not ostree.url:
        raise MissingRequiredInputError(
            "ostree parent ref specified, but no URL to retrieve it"
        )
    for ref in (ostree.image_ref, ostree.parent_ref):
        if ref and _OSTREE_REF_RE.match(ref) is None:
            raise InvalidImageOptionsError(f'invalid ostree ref "{ref}"')


def _check_capabilities(kind: ImageKind, customizations: Customizations) -> None:
    wants_filesystem = customizations.has_filesystem()
    wants_disk = customizations.has_disk()
    filesystem_ok = kind.supports(Customization.FILESYSTEM)
    disk_ok = kind.supports(Customization.DISK)

    if (wants_filesystem and not filesystem_ok) or (wants_disk and not disk_ok):
        if not filesystem_ok and not disk_ok:
            message = (
                "Custom mountpoints and partitioning are not supported for "
                f'image type "{kind.name}"'
            )
        elif wants_disk and not disk_ok:
            message = f'partitioning customizations are not supported for image type "{kind.name}"'
        else:
            message = f'custom mountpoints are not supported for image type "{kind.name}"'
        raise UnsupportedCustomizationError(message)

    if customizations.has_kernel() and not kind.supports(Customization.KERNEL):
        raise UnsupportedCustomizationError(
            f'kernel boot parameter customizations are not supported for image type "{kind.name}"'
        )
    if wants_filesystem and wants_disk:
        raise StructuralError(
            "partitioning customizations cannot be used with custom filesystems"
        )
