"""CLI entry point for aumai-imagecompose."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
import toml
from pydantic import ValidationError

from .core import ManifestBuilder
from .datasizes import format_size
from .distros import REGISTRY
from .errors import ImageComposeError
from .models import Blueprint, ImageOptions, OSTreeImageOptions
from .registry import Customization, ImageKind

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_distro_option = click.option(
    "--distro",
    required=True,
    envvar="IMAGECOMPOSE_DISTRO",
    help="Distribution, e.g. rhel-8.10.",
)
_arch_option = click.option(
    "--arch",
    required=True,
    envvar="IMAGECOMPOSE_ARCH",
    help="Architecture, e.g. x86_64.",
)
_type_option = click.option(
    "--type", "image_type", required=True, help="Image type name or alias."
)


def _load_blueprint(path: Optional[str]) -> Blueprint:
    """Parse a TOML or JSON blueprint file; no path means an empty blueprint."""
    if path is None:
        return Blueprint()
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".toml"):
        data = toml.loads(text)
    else:
        data = json.loads(text)
    return Blueprint.model_validate(data)


def _resolve(distro: str, arch: str, image_type: str) -> ImageKind:
    return (
        REGISTRY.get_distribution(distro)
        .get_architecture(arch)
        .get_image_kind(image_type)
    )


def _fail(exc: Exception) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="aumai-imagecompose")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """AumAI ImageCompose — resolve blueprints into image build manifests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=_LOG_FORMAT
    )


@main.command("distros")
def distros_command() -> None:
    """List supported distributions."""
    for name in REGISTRY.list_distributions():
        click.echo(name)


@main.command("arches")
@_distro_option
def arches_command(distro: str) -> None:
    """List the architectures of a distribution."""
    try:
        architectures = REGISTRY.get_distribution(distro).list_architectures()
    except ImageComposeError as exc:
        _fail(exc)
    for name in architectures:
        click.echo(name)


@main.command("types")
@_distro_option
@_arch_option
def types_command(distro: str, arch: str) -> None:
    """List the image types buildable for an architecture."""
    try:
        image_types = (
            REGISTRY.get_distribution(distro).get_architecture(arch).list_image_kinds()
        )
    except ImageComposeError as exc:
        _fail(exc)
    for name in image_types:
        click.echo(name)


@main.command("describe")
@_distro_option
@_arch_option
@_type_option
def describe_command(distro: str, arch: str, image_type: str) -> None:
    """Show the capabilities of one image type."""
    try:
        kind = _resolve(distro, arch, image_type)
    except ImageComposeError as exc:
        _fail(exc)

    accepted = [
        flag.name.lower()
        for flag in (Customization.FILESYSTEM, Customization.DISK, Customization.KERNEL)
        if kind.supports(flag)
    ]
    click.echo(f"Name          : {kind.name}")
    click.echo(f"Aliases       : {', '.join(kind.aliases) or '-'}")
    click.echo(f"Filename      : {kind.filename}")
    click.echo(f"MIME type     : {kind.mime_type}")
    click.echo(f"Category      : {kind.category.value}")
    click.echo(f"Default size  : {format_size(kind.default_size)}")
    click.echo(f"Boot mode     : {kind.boot_mode.value}")
    click.echo(f"Customizations: {', '.join(accepted) or '-'}")
    if kind.requires_ostree_url:
        click.echo("Requires      : --ostree-url")


@main.command("manifest")
@_distro_option
@_arch_option
@_type_option
@click.option(
    "--blueprint",
    "blueprint_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Blueprint file (.toml or .json).",
)
@click.option("--size", default="0", show_default=True, help="Image size, e.g. '20 GiB'.")
@click.option("--ostree-url", default="", help="URL of the OSTree repository.")
@click.option("--ostree-ref", default="", help="OSTree ref to build or fetch.")
@click.option("--ostree-parent", default="", help="Parent OSTree ref.")
@click.option(
    "--partitioning-mode",
    type=click.Choice(["raw", "lvm", "auto-lvm"]),
    default="raw",
    show_default=True,
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False),
    help="Write the manifest here instead of stdout.",
)
def manifest_command(
    distro: str,
    arch: str,
    image_type: str,
    blueprint_path: Optional[str],
    size: str,
    ostree_url: str,
    ostree_ref: str,
    ostree_parent: str,
    partitioning_mode: str,
    output_path: Optional[str],
) -> None:
    """Validate a blueprint and print the resulting build manifest as JSON."""
    try:
        blueprint = _load_blueprint(blueprint_path)
        options = ImageOptions(
            size=size,
            ostree=OSTreeImageOptions(
                url=ostree_url, image_ref=ostree_ref, parent_ref=ostree_parent
            ),
            partitioning_mode=partitioning_mode,
        )
    except (ValidationError, ValueError, toml.TomlDecodeError) as exc:
        _fail(exc)

    try:
        kind = _resolve(distro, arch, image_type)
        manifest = ManifestBuilder().build(kind, blueprint, options)
    except ImageComposeError as exc:
        _fail(exc)

    manifest_json = manifest.model_dump_json(indent=2)
    if output_path:
        Path(output_path).write_text(manifest_json, encoding="utf-8")
        click.echo(f"Manifest written: {output_path}")
        click.echo(f"  Image type : {manifest.image_type}")
        click.echo(f"  Output     : {manifest.output.filename}")
        click.echo(f"  Size       : {format_size(manifest.size)}")
    else:
        click.echo(manifest_json)


if __name__ == "__main__":
    main()
