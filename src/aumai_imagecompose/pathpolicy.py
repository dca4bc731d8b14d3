"""Mount-point canonicalization and per-platform path policies."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Mapping, Optional

__all__ = [
    "MOUNTPOINT_POLICIES",
    "PathPolicies",
    "PathPolicy",
    "canonicalize",
]

_REPEATED_SEPARATORS = re.compile(r"/{2,}")


def canonicalize(path: str) -> str:
    """
    Return the canonical spelling of an absolute *path*.

    Repeated separators collapse to one, ``.`` and ``..`` components are
    resolved and a trailing separator is dropped unless the path is ``/``.
    """
    # normpath keeps a leading "//" on POSIX, so collapse separators first.
    return posixpath.normpath(_REPEATED_SEPARATORS.sub("/", path))


@dataclass(frozen=True)
class PathPolicy:
    """Rule attached to a path prefix.

    ``deny`` rejects the prefix and everything below it; ``exact`` accepts
    the prefix itself but nothing below it.
    """

    deny: bool = False
    exact: bool = False


class PathPolicies:
    """Longest-prefix lookup over a table of ``PathPolicy`` rules."""

    def __init__(self, policies: Mapping[str, PathPolicy]) -> None:
        for prefix in policies:
            if canonicalize(prefix) != prefix or not prefix.startswith("/"):
                raise ValueError(f"policy path {prefix!r} must be absolute and canonical")
        self._policies = dict(policies)

    def lookup(self, path: str) -> tuple[Optional[str], PathPolicy]:
        """Return the most specific prefix of *path* with a rule, and that rule."""
        candidate = path
        while True:
            policy = self._policies.get(candidate)
            if policy is not None:
                return candidate, policy
            if candidate == "/":
                return None, PathPolicy()
            candidate = posixpath.dirname(candidate)

    def violation(self, path: str) -> Optional[str]:
        """Return a one-line description of why *path* is rejected, or None."""
        if not path.startswith("/"):
            return f'path "{path}" must be absolute'
        if canonicalize(path) != path:
            return f'path "{path}" must be canonical'
        prefix, policy = self.lookup(path)
        if policy.deny or (policy.exact and path != prefix):
            return f'path "{path}" is not allowed'
        return None

    def __contains__(self, path: str) -> bool:
        return path in self._policies


MOUNTPOINT_POLICIES = PathPolicies(
    {
        "/": PathPolicy(),
        # must live on the root filesystem
        "/etc": PathPolicy(deny=True),
        # systemd's fstab generator cannot mount below /usr before switch-root
        "/usr": PathPolicy(exact=True),
        # API filesystems
        "/sys": PathPolicy(deny=True),
        "/proc": PathPolicy(deny=True),
        "/dev": PathPolicy(deny=True),
        "/run": PathPolicy(deny=True),
        # merged /usr
        "/bin": PathPolicy(deny=True),
        "/sbin": PathPolicy(deny=True),
        "/lib": PathPolicy(deny=True),
        "/lib64": PathPolicy(deny=True),
        "/lost+found": PathPolicy(deny=True),
        # owned by the firmware partition
        "/boot/efi": PathPolicy(deny=True),
        "/sysroot": PathPolicy(deny=True),
        "/var/run": PathPolicy(deny=True),
        "/var/lock": PathPolicy(deny=True),
    }
)
