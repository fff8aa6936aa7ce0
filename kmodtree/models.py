"""
Data models for kernel modules.

This module contains the core data structures used to represent
kernel modules found in a module directory.
"""

import os
from typing import List, Optional, Tuple

# Ordered (key, value) pairs read from a module's .modinfo section
ModuleInfo = List[Tuple[str, str]]


def normalize_module_name(name: str) -> str:
    """Module names treat '-' and '_' alike; the canonical form uses '_'."""
    return name.replace("-", "_")


def module_name_from_path(path: str) -> str:
    """
    Derive the module name from a module file path.

    Args:
        path: Path such as ``kernel/fs/ext4/ext4.ko.zst``

    Returns:
        str: Normalized module name such as ``ext4``
    """
    basename = os.path.basename(path)
    name = basename.split(".", 1)[0]
    return normalize_module_name(name)


class KernelModule:
    """Represents a kernel module known to the module database."""

    def __init__(self, name: str, path: Optional[str] = None, builtin: bool = False):
        """
        Initialize a KernelModule instance.

        Args:
            name: Module name
            path: Absolute path to the module file, None for builtin modules
            builtin: True if the module is compiled into the kernel
        """
        self.name = name
        self.path = path
        self.builtin = builtin

    def __repr__(self) -> str:
        return f"KernelModule(name='{self.name}', path={self.path!r}, builtin={self.builtin})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, KernelModule):
            return NotImplemented
        return (self.name, self.path, self.builtin) == (other.name, other.path, other.builtin)

    def __hash__(self) -> int:
        return hash((self.name, self.path, self.builtin))


def is_module_filename(name: str) -> bool:
    """
    Check whether a command line argument names a module file.

    The file must exist and contain ".ko" either at the end of the name
    or followed by another extension (e.g. ".ko.xz").

    Args:
        name: Command line argument

    Returns:
        bool: True if ``name`` is a regular module file
    """
    if not os.path.isfile(name):
        return False
    basename = os.path.basename(name)
    pos = basename.find('.ko')
    if pos < 0:
        return False
    rest = basename[pos + 3:]
    return rest == '' or rest.startswith('.')
