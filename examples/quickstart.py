"""
aumai-imagecompose quickstart — resolve image types and build manifests.

Run directly:

    python examples/quickstart.py

Nothing is written to disk; every demo prints its results.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Demo 1: Walk the registry
# ---------------------------------------------------------------------------

def demo_registry() -> None:
    """List every distribution, architecture and image type."""
    print("\n=== Demo 1: Registry ===")

    from aumai_imagecompose.distros import REGISTRY

    for distro_name in REGISTRY.list_distributions():
        distro = REGISTRY.get_distribution(distro_name)
        print(f"  {distro.name} ({distro.module_platform_id})")
        for arch_name in distro.list_architectures():
            kinds = distro.get_architecture(arch_name).list_image_kinds()
            print(f"    {arch_name:<8} {len(kinds)} image types")


# ---------------------------------------------------------------------------
# Demo 2: Build a qcow2 manifest with custom mount points
# ---------------------------------------------------------------------------

def demo_manifest() -> None:
    """Build a qcow2 manifest with /var/log and /var/log/audit partitions."""
    print("\n=== Demo 2: qcow2 manifest ===")

    from aumai_imagecompose.core import build_manifest
    from aumai_imagecompose.models import Blueprint

    blueprint = Blueprint.model_validate(
        {
            "name": "webserver",
            "packages": [{"name": "nginx"}],
            "customizations": {
                "filesystem": [
                    {"mountpoint": "/var/log", "minsize": "2 GiB"},
                    {"mountpoint": "/var/log/audit", "minsize": "1 GiB"},
                ],
                "kernel": {"append": "debug"},
            },
        }
    )
    manifest = build_manifest("rhel-8.10", "x86_64", "qcow2", blueprint)
    print(f"  Output      : {manifest.output.filename} ({manifest.output.mime_type})")
    print(f"  Kernel opts : {manifest.kernel_options}")
    for partition in manifest.partition_table.partitions:
        print(f"  {partition.kind:<10} {partition.mountpoint or '-':<16} {partition.size:>12,}")
    print(f"  Chains      : {list(manifest.package_set_chains)}")


# ---------------------------------------------------------------------------
# Demo 3: Error reporting
# ---------------------------------------------------------------------------

def demo_errors() -> None:
    """Show the aggregated mount point error and the swap feature gate."""
    print("\n=== Demo 3: Errors ===")

    from aumai_imagecompose.core import build_manifest
    from aumai_imagecompose.errors import ImageComposeError
    from aumai_imagecompose.models import Blueprint

    dirty = Blueprint.model_validate(
        {
            "customizations": {
                "filesystem": [
                    {"mountpoint": "/var//", "minsize": 1024},
                    {"mountpoint": "/etc", "minsize": 1024},
                ]
            }
        }
    )
    swap = Blueprint.model_validate(
        {
            "customizations": {
                "disk": {
                    "partitions": [
                        {"type": "plain", "mountpoint": "/", "fs_type": "ext4"},
                        {"type": "plain", "fs_type": "swap"},
                    ]
                }
            }
        }
    )
    for arch, blueprint in (("x86_64", dirty), ("aarch64", swap)):
        try:
            build_manifest("rhel-8.10", arch, "qcow2", blueprint)
        except ImageComposeError as exc:
            print(f"  {type(exc).__name__}:")
            for line in exc.message.splitlines():
                print(f"    {line}")


if __name__ == "__main__":
    demo_registry()
    demo_manifest()
    demo_errors()
