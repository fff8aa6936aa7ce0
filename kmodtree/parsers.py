"""
Parsers for kernel module information.

This module contains classes for parsing the index files depmod writes
into a module directory (modules.dep, modules.alias, modules.symbols,
modules.builtin, modules.builtin.modinfo) and the .modinfo section of
module files.
"""

import gzip
import io
import lzma
import os
import zlib
from typing import Dict, List, Set, Tuple

import zstandard as zstd
from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from .errors import ModuleDatabaseError, ModuleInfoError, warn
from .models import ModuleInfo, module_name_from_path, normalize_module_name


def normalize_alias(alias: str) -> str:
    """
    Normalize an alias or alias pattern the way depmod indexes them.

    Dashes become underscores, except inside ``[...]`` character classes
    where they denote ranges.
    """
    out = []
    in_class = False
    for ch in alias:
        if ch == '[':
            in_class = True
        elif ch == ']':
            in_class = False
        elif ch == '-' and not in_class:
            ch = '_'
        out.append(ch)
    return "".join(out)


class ModinfoParser:
    """Parser for the .modinfo section of kernel module files."""

    @staticmethod
    def parse_modinfo_data(data: bytes) -> ModuleInfo:
        """
        Split raw .modinfo contents into key/value pairs.

        Args:
            data: NUL separated ``key=value`` strings

        Returns:
            ModuleInfo: Pairs in the order they appear
        """
        info = []
        for entry in data.split(b'\x00'):
            if b'=' not in entry:
                continue
            key, value = entry.split(b'=', 1)
            info.append((key.decode('utf-8', errors='ignore'),
                         value.decode('utf-8', errors='ignore')))
        return info

    @staticmethod
    def read_module_image(file_path: str) -> bytes:
        """
        Read a module file, decompressing it if needed.

        Args:
            file_path: Path to a .ko, .ko.gz, .ko.xz or .ko.zst file

        Returns:
            bytes: Uncompressed ELF image
        """
        if file_path.endswith('.zst'):
            with open(file_path, 'rb') as compressed_file:
                dctx = zstd.ZstdDecompressor()
                with dctx.stream_reader(compressed_file) as reader:
                    return reader.read()
        if file_path.endswith('.xz'):
            with lzma.open(file_path, 'rb') as f:
                return f.read()
        if file_path.endswith('.gz'):
            with gzip.open(file_path, 'rb') as f:
                return f.read()
        with open(file_path, 'rb') as f:
            return f.read()

    @staticmethod
    def extract_modinfo(file_path: str) -> ModuleInfo:
        """
        Extract the info map from a module file.

        Args:
            file_path: Path to the kernel module file

        Returns:
            ModuleInfo: Key/value pairs of the .modinfo section

        Raises:
            ModuleInfoError: If the file cannot be read, is not an ELF
                object or has no .modinfo section
        """
        try:
            image = ModinfoParser.read_module_image(file_path)
            elf = ELFFile(io.BytesIO(image))
            modinfo_section = elf.get_section_by_name('.modinfo')
            if modinfo_section is None:
                raise ModuleInfoError(f"{file_path}: no .modinfo section")
            return ModinfoParser.parse_modinfo_data(modinfo_section.data())
        except (OSError, EOFError, ValueError, ELFError, zstd.ZstdError, lzma.LZMAError,
                zlib.error) as e:
            raise ModuleInfoError(f"{file_path}: {e}") from e


class ModuleIndexParser:
    """Parser for the index files of a module directory."""

    @staticmethod
    def _read_lines(file_path: str) -> List[str]:
        try:
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                return [line.strip() for line in f]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise ModuleDatabaseError(f"Error reading {file_path}: {e}") from e

    @staticmethod
    def parse_modules_dep(file_path: str) -> Dict[str, str]:
        """
        Parse modules.dep.

        Each line has the form ``kernel/fs/ext4/ext4.ko: kernel/lib/crc16.ko``;
        only the module file on the left is used, its dependencies come
        from the module's own info map.

        Args:
            file_path: Path to modules.dep

        Returns:
            Dict[str, str]: Module name to path relative to the module directory
        """
        modules = {}
        for line in ModuleIndexParser._read_lines(file_path):
            if not line or line.startswith('#') or ':' not in line:
                continue
            module_path = line.split(':', 1)[0].strip()
            modules.setdefault(module_name_from_path(module_path), module_path)
        return modules

    @staticmethod
    def parse_modules_alias(file_path: str) -> List[Tuple[str, str]]:
        """
        Parse modules.alias (or modules.symbols).

        Args:
            file_path: Path to the alias file

        Returns:
            List[Tuple[str, str]]: (normalized alias pattern, module name)
                in file order
        """
        aliases = []
        for line in ModuleIndexParser._read_lines(file_path):
            if not line or line.startswith('#'):
                continue
            parts = line.split()
            if len(parts) != 3 or parts[0] != 'alias':
                warn(f"ignoring malformed line in {file_path}: {line}")
                continue
            aliases.append((normalize_alias(parts[1]), normalize_module_name(parts[2])))
        return aliases

    @staticmethod
    def parse_modules_builtin(file_path: str) -> Set[str]:
        """
        Extract builtin module names from modules.builtin.

        Args:
            file_path: Path to modules.builtin

        Returns:
            Set[str]: Names of modules compiled into the kernel
        """
        builtin_modules = set()
        for line in ModuleIndexParser._read_lines(file_path):
            if line:
                # Extract module name from path like "kernel/fs/ext4/ext4.ko"
                builtin_modules.add(module_name_from_path(line))
        return builtin_modules

    @staticmethod
    def parse_modules_builtin_modinfo(file_path: str) -> Dict[str, ModuleInfo]:
        """
        Parse modules.builtin.modinfo.

        The file holds NUL separated ``module.key=value`` strings.

        Args:
            file_path: Path to modules.builtin.modinfo

        Returns:
            Dict[str, ModuleInfo]: Info map of every builtin module
        """
        try:
            with open(file_path, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise ModuleDatabaseError(f"Error reading {file_path}: {e}") from e

        module_metadata: Dict[str, ModuleInfo] = {}
        for key, value in ModinfoParser.parse_modinfo_data(data):
            if '.' not in key:
                continue
            module_name, field_name = key.split('.', 1)
            module_metadata.setdefault(normalize_module_name(module_name), []).append(
                (field_name, value))
        return module_metadata

    @staticmethod
    def module_directory(kernel_version: str, root: str = '/') -> str:
        """Return the module directory of a kernel version below ``root``."""
        return os.path.join(root, 'lib', 'modules', kernel_version)
