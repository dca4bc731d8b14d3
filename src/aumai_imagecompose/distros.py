"""The process-wide registry of supported distributions."""

from __future__ import annotations

from typing import Optional

from . import rhel8
from .errors import NotFoundError
from .registry import Distribution, Registry

__all__ = ["REGISTRY", "distro_factory"]

REGISTRY = Registry(
    [
        rhel8.new_distribution("rhel-8.10"),
        rhel8.new_distribution("centos-8"),
    ]
)


def distro_factory(distro_id: str) -> Optional[Distribution]:
    """Return the distribution named *distro_id*, or None when it is unknown."""
    try:
        return REGISTRY.get_distribution(distro_id)
    except NotFoundError:
        return None
