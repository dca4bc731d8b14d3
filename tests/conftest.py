"""Shared test fixtures for aumai-imagecompose."""

from __future__ import annotations

from typing import Any

import pytest

from aumai_imagecompose.distros import REGISTRY
from aumai_imagecompose.models import Blueprint, ImageOptions, OSTreeImageOptions
from aumai_imagecompose.registry import Architecture, Distribution, ImageKind

OSTREE_URL = "http://ostree.example.com/repo"


# ---------------------------------------------------------------------------
# Registry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def rhel8() -> Distribution:
    return REGISTRY.get_distribution("rhel-8.10")


@pytest.fixture()
def x86_64(rhel8: Distribution) -> Architecture:
    return rhel8.get_architecture("x86_64")


@pytest.fixture()
def aarch64(rhel8: Distribution) -> Architecture:
    return rhel8.get_architecture("aarch64")


@pytest.fixture()
def qcow2(x86_64: Architecture) -> ImageKind:
    return x86_64.get_image_kind("qcow2")


# ---------------------------------------------------------------------------
# Blueprint builders
# ---------------------------------------------------------------------------


def make_blueprint(**customizations: Any) -> Blueprint:
    """Blueprint whose customizations section holds *customizations*."""
    return Blueprint.model_validate({"name": "test", "customizations": customizations})


def filesystem_blueprint(*mountpoints: str, minsize: int = 1024) -> Blueprint:
    return make_blueprint(
        filesystem=[{"mountpoint": mp, "minsize": minsize} for mp in mountpoints]
    )


def disk_blueprint(*partitions: dict[str, Any], minsize: int = 0) -> Blueprint:
    return make_blueprint(disk={"minsize": minsize, "partitions": list(partitions)})


def ostree_options(url: str = OSTREE_URL, **kwargs: Any) -> ImageOptions:
    return ImageOptions(ostree=OSTreeImageOptions(url=url, **kwargs))


@pytest.fixture()
def empty_blueprint() -> Blueprint:
    return Blueprint(name="empty")
