"""Capability tables for the RHEL 8 family (RHEL 8.10 and CentOS Stream 8)."""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Iterator

from .datasizes import GiB, MiB
from .models import Partition
from .registry import (
    Architecture,
    BootMode,
    Customization,
    Distribution,
    ImageCategory,
    ImageKind,
)

__all__ = ["new_distribution"]

_MODULE_PLATFORM_ID = "platform:el8"
REQUIRED_SIZES = MappingProxyType({"/": 1 * GiB, "/usr": 2 * GiB})

# ---------------------------------------------------------------------------
# Package lists
# ---------------------------------------------------------------------------

_CLOUD_EXCLUDES = (
    "aic94xx-firmware",
    "alsa-firmware",
    "alsa-lib",
    "alsa-tools-firmware",
    "biosdevname",
    "dracut-config-rescue",
    "ivtv-firmware",
    "libertas-sd8686-firmware",
    "libertas-sd8787-firmware",
    "libertas-usb8388-firmware",
    "plymouth",
    "rng-tools",
)

_QCOW2_PACKAGES = (
    "@core",
    "chrony",
    "cloud-init",
    "cloud-utils-growpart",
    "dnf",
    "dnf-utils",
    "dosfstools",
    "dracut-norescue",
    "kernel",
    "nfs-utils",
    "oddjob",
    "oddjob-mkhomedir",
    "python3-jsonschema",
    "qemu-guest-agent",
    "redhat-release",
    "rsync",
    "selinux-policy-targeted",
    "tar",
    "tcpdump",
    "yum",
)

_OPENSTACK_PACKAGES = (
    "@core",
    "cloud-init",
    "kernel",
    "langpacks-en",
    "qemu-guest-agent",
    "redhat-release",
    "selinux-policy-targeted",
    "spice-vdagent",
)

_AZURE_PACKAGES = (
    "@core",
    "NetworkManager",
    "WALinuxAgent",
    "cloud-init",
    "cloud-utils-growpart",
    "gdisk",
    "hyperv-daemons",
    "kernel",
    "langpacks-en",
    "redhat-release",
    "selinux-policy-targeted",
    "yum-utils",
)

_AZURE_RHUI_PACKAGES = _AZURE_PACKAGES + ("rhui-azure-rhel8",)

_SAP_PACKAGES = (
    "@Server",
    "compat-sap-c++-9",
    "compat-sap-c++-10",
    "libaio",
    "libatomic",
    "libtool-ltdl",
    "nfs-utils",
    "tuned-profiles-sap",
    "tuned-profiles-sap-hana",
    "uuidd",
)

_VMWARE_PACKAGES = (
    "@core",
    "chrony",
    "cloud-init",
    "firewalld",
    "kernel",
    "langpacks-en",
    "open-vm-tools",
    "redhat-release",
    "selinux-policy-targeted",
)

_EC2_PACKAGES = (
    "@core",
    "NetworkManager",
    "chrony",
    "cloud-init",
    "cloud-utils-growpart",
    "dhcp-client",
    "kernel",
    "langpacks-en",
    "redhat-release",
    "redhat-release-eula",
    "rsync",
    "selinux-policy-targeted",
    "yum-utils",
)

_GCE_PACKAGES = (
    "@core",
    "acpid",
    "dhcp-client",
    "dnf-automatic",
    "google-compute-engine",
    "google-osconfig-agent",
    "kernel",
    "langpacks-en",
    "net-tools",
    "python3",
    "redhat-release",
    "rng-tools",
    "selinux-policy-targeted",
    "tar",
    "vim",
)

_EDGE_COMMIT_PACKAGES = (
    "NetworkManager",
    "attr",
    "audit",
    "basesystem",
    "bash",
    "chrony",
    "clevis",
    "clevis-dracut",
    "container-selinux",
    "coreutils",
    "cryptsetup",
    "dracut-config-generic",
    "dracut-network",
    "e2fsprogs",
    "firewalld",
    "glibc",
    "greenboot",
    "greenboot-default-health-checks",
    "kernel",
    "lvm2",
    "openssh-server",
    "podman",
    "policycoreutils",
    "redhat-release",
    "rpm",
    "rpm-ostree",
    "selinux-policy-targeted",
    "sudo",
    "systemd",
    "util-linux",
    "xz",
)

_EDGE_CONTAINER_PACKAGES = _EDGE_COMMIT_PACKAGES + ("nginx",)

_ANACONDA_PACKAGES = (
    "anaconda",
    "anaconda-dracut",
    "anaconda-install-env-deps",
    "anaconda-widgets",
    "curl",
    "dracut-config-generic",
    "dracut-network",
    "grub2-tools",
    "grub2-tools-minimal",
    "isomd5sum",
    "kernel",
    "kexec-tools",
    "lorax-templates-generic",
    "lorax-templates-rhel",
    "xorg-x11-server-Xorg",
)

_SIMPLIFIED_INSTALLER_PACKAGES = (
    "coreos-installer",
    "coreos-installer-dracut",
    "dracut-network",
    "fdo-init",
    "kernel",
    "lvm2",
    "rpm-ostree",
    "xfsprogs",
)

_WSL_PACKAGES = (
    "alternatives",
    "audit-libs",
    "basesystem",
    "bash",
    "ca-certificates",
    "coreutils-single",
    "dnf",
    "filesystem",
    "findutils",
    "glibc-minimal-langpack",
    "hostname",
    "langpacks-en",
    "passwd",
    "procps-ng",
    "python3",
    "rootfiles",
    "rpm",
    "setup",
    "shadow-utils",
    "systemd",
    "tar",
    "tzdata",
    "util-linux",
    "vim-minimal",
    "yum",
)

_WSL_EXCLUDES = (
    "gawk-all-langpacks",
    "glibc-gconv-extra",
    "glibc-langpack-en",
    "openssl-pkcs11",
    "python-unversioned-command",
    "redhat-release-eula",
    "rpm-plugin-systemd-inhibit",
)

_MINIMAL_PACKAGES = (
    "@core",
    "NetworkManager-wifi",
    "initial-setup",
    "iwl3160-firmware",
    "iwl7260-firmware",
    "kernel",
    "libxkbcommon",
)

# ---------------------------------------------------------------------------
# Kernel command lines
# ---------------------------------------------------------------------------

_QCOW2_KERNEL_OPTIONS = (
    "console=tty0 console=ttyS0,115200n8 no_timer_check net.ifnames=0 crashkernel=auto"
)
_AZURE_KERNEL_OPTIONS = (
    "ro crashkernel=auto console=tty1 console=ttyS0 earlyprintk=ttyS0 "
    "rootdelay=300 scsi_mod.use_blk_mq=y"
)
_EC2_KERNEL_OPTIONS = (
    "console=ttyS0,115200n8 console=tty0 net.ifnames=0 rd.blacklist=nouveau "
    "nvme_core.io_timeout=4294967295 crashkernel=auto"
)
_GCE_KERNEL_OPTIONS = (
    "net.ifnames=0 biosdevname=0 scsi_mod.use_blk_mq=Y crashkernel=auto "
    "console=ttyS0,38400n8d"
)

# ---------------------------------------------------------------------------
# Image kinds, before architecture facts are applied
# ---------------------------------------------------------------------------


def _disk(name: str, filename: str, mime_type: str, **kwargs) -> ImageKind:
    return ImageKind(
        name=name,
        filename=filename,
        mime_type=mime_type,
        category=ImageCategory.DISK,
        partitioned=True,
        **kwargs,
    )


_IMAGE_KINDS: dict[str, ImageKind] = {
    kind.name: kind
    for kind in (
        _disk(
            "qcow2",
            "disk.qcow2",
            "application/x-qemu-disk",
            default_size=10 * GiB,
            payload_packages=_QCOW2_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_QCOW2_KERNEL_OPTIONS,
        ),
        _disk(
            "openstack",
            "disk.qcow2",
            "application/x-qemu-disk",
            default_size=4 * GiB,
            payload_packages=_OPENSTACK_PACKAGES,
            kernel_options="ro net.ifnames=0",
        ),
        _disk(
            "vhd",
            "disk.vhd",
            "application/x-vhd",
            default_size=4 * GiB,
            size_alignment=MiB,
            payload_packages=_AZURE_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_AZURE_KERNEL_OPTIONS,
        ),
        _disk(
            "azure-rhui",
            "disk.vhd.xz",
            "application/xz",
            default_size=64 * GiB,
            size_alignment=MiB,
            payload_packages=_AZURE_RHUI_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_AZURE_KERNEL_OPTIONS,
        ),
        _disk(
            "azure-sap-rhui",
            "disk.vhd.xz",
            "application/xz",
            default_size=64 * GiB,
            size_alignment=MiB,
            payload_packages=_AZURE_RHUI_PACKAGES + _SAP_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_AZURE_KERNEL_OPTIONS,
        ),
        # the EAP image ships a fixed volume layout
        _disk(
            "azure-eap7-rhui",
            "disk.vhd.xz",
            "application/xz",
            customizations=Customization.FILESYSTEM | Customization.KERNEL,
            default_size=64 * GiB,
            size_alignment=MiB,
            payload_packages=_AZURE_RHUI_PACKAGES
            + ("eap7-wildfly", "java-1.8.0-openjdk-headless"),
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_AZURE_KERNEL_OPTIONS,
        ),
        _disk(
            "vmdk",
            "disk.vmdk",
            "application/x-vmdk",
            default_size=4 * GiB,
            payload_packages=_VMWARE_PACKAGES,
            kernel_options="ro net.ifnames=0",
        ),
        _disk(
            "ova",
            "image.ova",
            "application/ovf",
            default_size=4 * GiB,
            payload_packages=_VMWARE_PACKAGES,
            kernel_options="ro net.ifnames=0",
        ),
        _disk(
            "ami",
            "image.raw",
            "application/octet-stream",
            default_size=10 * GiB,
            payload_packages=_EC2_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_EC2_KERNEL_OPTIONS,
        ),
        _disk(
            "ec2",
            "image.raw.xz",
            "application/xz",
            default_size=10 * GiB,
            payload_packages=_EC2_PACKAGES + ("rh-amazon-rhui-client",),
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_EC2_KERNEL_OPTIONS,
        ),
        _disk(
            "ec2-ha",
            "image.raw.xz",
            "application/xz",
            default_size=10 * GiB,
            payload_packages=_EC2_PACKAGES
            + (
                "fence-agents-all",
                "pacemaker",
                "pcs",
                "resource-agents",
                "rh-amazon-rhui-client-ha",
            ),
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_EC2_KERNEL_OPTIONS,
        ),
        _disk(
            "ec2-sap",
            "image.raw.xz",
            "application/xz",
            default_size=10 * GiB,
            payload_packages=_EC2_PACKAGES
            + _SAP_PACKAGES
            + ("rh-amazon-rhui-client-sap-bundle-e4s",),
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_EC2_KERNEL_OPTIONS,
        ),
        _disk(
            "gce",
            "image.tar.gz",
            "application/gzip",
            default_size=20 * GiB,
            payload_packages=_GCE_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_GCE_KERNEL_OPTIONS,
        ),
        _disk(
            "gce-rhui",
            "image.tar.gz",
            "application/gzip",
            default_size=20 * GiB,
            payload_packages=_GCE_PACKAGES + ("google-rhui-client-rhel8",),
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_GCE_KERNEL_OPTIONS,
        ),
        _disk(
            "oci",
            "disk.qcow2",
            "application/x-qemu-disk",
            default_size=10 * GiB,
            payload_packages=_QCOW2_PACKAGES,
            exclude_packages=_CLOUD_EXCLUDES,
            kernel_options=_QCOW2_KERNEL_OPTIONS,
        ),
        _disk(
            "minimal-raw",
            "disk.raw.xz",
            "application/xz",
            default_size=2 * GiB,
            payload_packages=_MINIMAL_PACKAGES,
            kernel_options="ro",
        ),
        _disk(
            "edge-raw-image",
            "image.raw.xz",
            "application/xz",
            customizations=Customization.KERNEL,
            default_size=10 * GiB,
            kernel_options="modprobe.blacklist=vc4",
            installs_payload=False,
            requires_ostree_url=True,
        ),
        ImageKind(
            name="edge-commit",
            aliases=("rhel-edge-commit",),
            filename="commit.tar",
            mime_type="application/x-tar",
            category=ImageCategory.OSTREE_COMMIT,
            customizations=Customization.NONE,
            payload_packages=_EDGE_COMMIT_PACKAGES,
        ),
        ImageKind(
            name="edge-container",
            aliases=("rhel-edge-container",),
            filename="container.tar",
            mime_type="application/x-tar",
            category=ImageCategory.OSTREE_CONTAINER,
            customizations=Customization.NONE,
            payload_packages=_EDGE_CONTAINER_PACKAGES,
        ),
        ImageKind(
            name="edge-installer",
            aliases=("rhel-edge-installer",),
            filename="installer.iso",
            mime_type="application/x-iso9660-image",
            category=ImageCategory.ISO_INSTALLER,
            customizations=Customization.KERNEL,
            installer_packages=_ANACONDA_PACKAGES + ("ostree", "rpm-ostree"),
            installs_payload=False,
            requires_ostree_url=True,
        ),
        ImageKind(
            name="edge-simplified-installer",
            filename="simplified-installer.iso",
            mime_type="application/x-iso9660-image",
            category=ImageCategory.ISO_INSTALLER,
            customizations=Customization.KERNEL,
            default_size=10 * GiB,
            installer_packages=_SIMPLIFIED_INSTALLER_PACKAGES,
            kernel_options="modprobe.blacklist=vc4",
            partitioned=True,
            installs_payload=False,
            requires_ostree_url=True,
            requires_installation_device=True,
        ),
        ImageKind(
            name="image-installer",
            filename="installer.iso",
            mime_type="application/x-iso9660-image",
            category=ImageCategory.ISO_INSTALLER,
            default_size=10 * GiB,
            payload_packages=("@core", "kernel", "redhat-release", "selinux-policy-targeted"),
            installer_packages=_ANACONDA_PACKAGES,
            partitioned=True,
        ),
        ImageKind(
            name="tar",
            filename="root.tar.xz",
            mime_type="application/x-tar",
            category=ImageCategory.ARCHIVE,
            payload_packages=("policycoreutils", "selinux-policy-targeted"),
            exclude_packages=("rng-tools",),
        ),
        ImageKind(
            name="wsl",
            filename="disk.tar.gz",
            mime_type="application/x-tar",
            category=ImageCategory.ARCHIVE,
            payload_packages=_WSL_PACKAGES,
            exclude_packages=_WSL_EXCLUDES,
        ),
    )
}

# ---------------------------------------------------------------------------
# Architecture facts
# ---------------------------------------------------------------------------

_EFI_PARTITION = Partition(
    fs_type="vfat",
    mountpoint="/boot/efi",
    label="EFI-SYSTEM",
    size=100 * MiB,
)


@dataclass(frozen=True)
class _ArchFacts:
    build_packages: tuple[str, ...]
    boot_packages: tuple[str, ...]
    boot_mode: BootMode
    partition_table_type: str
    firmware_partitions: tuple[Partition, ...]
    swap_supported: bool = True


_ARCH_FACTS = {
    "x86_64": _ArchFacts(
        build_packages=(
            "dnf",
            "dosfstools",
            "e2fsprogs",
            "grub2-efi-x64",
            "grub2-pc",
            "policycoreutils",
            "shim-x64",
            "systemd",
            "tar",
            "qemu-img",
            "xz",
        ),
        boot_packages=("dracut-config-generic", "efibootmgr", "grub2-efi-x64", "grub2-pc", "shim-x64"),
        boot_mode=BootMode.HYBRID,
        partition_table_type="gpt",
        firmware_partitions=(Partition(kind="bios-boot", size=1 * MiB), _EFI_PARTITION),
    ),
    "aarch64": _ArchFacts(
        build_packages=(
            "dnf",
            "dosfstools",
            "e2fsprogs",
            "policycoreutils",
            "qemu-img",
            "systemd",
            "tar",
            "xz",
        ),
        boot_packages=("dracut-config-generic", "efibootmgr", "grub2-efi-aa64", "shim-aa64"),
        boot_mode=BootMode.UEFI,
        partition_table_type="gpt",
        firmware_partitions=(_EFI_PARTITION,),
        swap_supported=False,
    ),
    "ppc64le": _ArchFacts(
        build_packages=(
            "dnf",
            "dosfstools",
            "e2fsprogs",
            "grub2-ppc64le",
            "grub2-ppc64le-modules",
            "policycoreutils",
            "qemu-img",
            "systemd",
            "tar",
            "xz",
        ),
        boot_packages=("grub2-ppc64le", "grub2-ppc64le-modules", "powerpc-utils"),
        boot_mode=BootMode.LEGACY,
        partition_table_type="dos",
        firmware_partitions=(Partition(kind="prep", size=4 * MiB),),
    ),
    "s390x": _ArchFacts(
        build_packages=(
            "dnf",
            "dosfstools",
            "e2fsprogs",
            "policycoreutils",
            "qemu-img",
            "s390utils-base",
            "systemd",
            "tar",
            "xz",
        ),
        boot_packages=("s390utils-base",),
        boot_mode=BootMode.LEGACY,
        partition_table_type="dos",
        firmware_partitions=(),
    ),
}

# ---------------------------------------------------------------------------
# Distribution variants
# ---------------------------------------------------------------------------

_RHEL_X86_64 = (
    "qcow2",
    "openstack",
    "vhd",
    "azure-rhui",
    "azure-sap-rhui",
    "azure-eap7-rhui",
    "vmdk",
    "ova",
    "ami",
    "ec2",
    "ec2-ha",
    "ec2-sap",
    "gce",
    "gce-rhui",
    "edge-commit",
    "edge-container",
    "edge-installer",
    "edge-raw-image",
    "edge-simplified-installer",
    "tar",
    "image-installer",
    "oci",
    "wsl",
    "minimal-raw",
)

_RHEL_AARCH64 = (
    "qcow2",
    "openstack",
    "vhd",
    "azure-rhui",
    "ami",
    "ec2",
    "edge-commit",
    "edge-container",
    "edge-installer",
    "edge-simplified-installer",
    "edge-raw-image",
    "tar",
    "image-installer",
    "wsl",
    "minimal-raw",
)

_CENTOS_X86_64 = (
    "qcow2",
    "openstack",
    "vhd",
    "vmdk",
    "ova",
    "ami",
    "edge-container",
    "edge-installer",
    "edge-raw-image",
    "edge-simplified-installer",
    "tar",
    "image-installer",
    "oci",
    "wsl",
    "minimal-raw",
)

_CENTOS_AARCH64 = (
    "qcow2",
    "openstack",
    "vhd",
    "ami",
    "edge-container",
    "edge-installer",
    "edge-simplified-installer",
    "edge-raw-image",
    "tar",
    "image-installer",
    "wsl",
    "minimal-raw",
)


@dataclass(frozen=True)
class _Variant:
    product: str
    os_version: str
    ostree_ref: str
    arches: dict[str, tuple[str, ...]]


_VARIANTS = {
    "rhel-8.10": _Variant(
        product="Red Hat Enterprise Linux",
        os_version="8.10",
        ostree_ref="rhel/8/{arch}/edge",
        arches={
            "x86_64": _RHEL_X86_64,
            "aarch64": _RHEL_AARCH64,
            "ppc64le": ("qcow2", "tar"),
            "s390x": ("qcow2", "tar"),
        },
    ),
    "centos-8": _Variant(
        product="CentOS Stream",
        os_version="8",
        ostree_ref="centos/8/{arch}/edge",
        arches={
            "x86_64": _CENTOS_X86_64,
            "aarch64": _CENTOS_AARCH64,
            "ppc64le": ("qcow2", "tar"),
        },
    ),
}


def _image_kinds(
    distro_name: str, variant: _Variant, arch_name: str
) -> Iterator[ImageKind]:
    facts = _ARCH_FACTS[arch_name]
    for name in variant.arches[arch_name]:
        template = _IMAGE_KINDS[name]
        boots = template.partitioned or template.category is ImageCategory.ISO_INSTALLER
        uses_ostree = template.category.is_ostree or template.requires_ostree_url
        yield replace(
            template,
            distro_name=distro_name,
            arch_name=arch_name,
            module_platform_id=_MODULE_PLATFORM_ID,
            build_packages=facts.build_packages,
            boot_packages=facts.boot_packages if template.partitioned else (),
            boot_mode=facts.boot_mode if boots else BootMode.NONE,
            swap_supported=facts.swap_supported,
            partition_table_type=facts.partition_table_type,
            firmware_partitions=facts.firmware_partitions,
            ostree_ref=variant.ostree_ref.format(arch=arch_name) if uses_ostree else "",
            required_sizes=REQUIRED_SIZES,
        )


def new_distribution(name: str) -> Distribution:
    """Build the ``Distribution`` for one RHEL 8 family release."""
    variant = _VARIANTS.get(name)
    if variant is None:
        raise ValueError(f"unknown RHEL 8 family release {name!r}")
    arches = [
        Architecture(arch_name, _image_kinds(name, variant, arch_name))
        for arch_name in variant.arches
    ]
    return Distribution(
        name=name,
        product=variant.product,
        os_version=variant.os_version,
        releasever="8",
        module_platform_id=_MODULE_PLATFORM_ID,
        architectures=arches,
    )
