"""
Module database.

Resolves aliases and module files against the index files of one module
directory (usually /lib/modules/$(uname -r)) and reads module info maps.
"""

import fnmatch
import os
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .errors import ModuleDatabaseError, ModuleInfoError, ModuleLookupError
from .models import KernelModule, ModuleInfo, module_name_from_path, normalize_module_name
from .parsers import ModinfoParser, ModuleIndexParser, normalize_alias


class ModuleDatabase:
    """Read-only view of a module directory."""

    def __init__(self, dirname: str,
                 dependencies: Dict[str, str],
                 aliases: List[Tuple[str, str]],
                 symbols: List[Tuple[str, str]],
                 builtin: Set[str],
                 builtin_info: Dict[str, ModuleInfo]):
        """
        Initialize a ModuleDatabase instance.

        Args:
            dirname: Module directory the index files were read from
            dependencies: Module name to path relative to ``dirname``
            aliases: (alias pattern, module name) pairs
            symbols: (symbol alias, module name) pairs
            builtin: Names of builtin modules
            builtin_info: Info maps of builtin modules
        """
        self.dirname = dirname
        self.dependencies = dependencies
        self.aliases = aliases
        self.symbols = symbols
        self.builtin = builtin
        self.builtin_info = builtin_info
        self.closed = False

    @classmethod
    def open(cls, dirname: str) -> "ModuleDatabase":
        """
        Load the index files of a module directory.

        Args:
            dirname: Module directory such as /lib/modules/6.1.0

        Returns:
            ModuleDatabase: Database over the directory

        Raises:
            ModuleDatabaseError: If the directory does not exist or an
                index file cannot be read
        """
        if not os.path.isdir(dirname):
            raise ModuleDatabaseError(f"{dirname}: module directory not found")

        def index(name: str) -> str:
            return os.path.join(dirname, name)

        return cls(
            dirname,
            dependencies=ModuleIndexParser.parse_modules_dep(index('modules.dep')),
            aliases=ModuleIndexParser.parse_modules_alias(index('modules.alias')),
            symbols=ModuleIndexParser.parse_modules_alias(index('modules.symbols')),
            builtin=ModuleIndexParser.parse_modules_builtin(index('modules.builtin')),
            builtin_info=ModuleIndexParser.parse_modules_builtin_modinfo(
                index('modules.builtin.modinfo')),
        )

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "ModuleDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _module_by_name(self, name: str) -> Optional[KernelModule]:
        relative_path = self.dependencies.get(name)
        if relative_path is None:
            return None
        return KernelModule(name, os.path.join(self.dirname, relative_path))

    def _modules_by_names(self, names: Iterable[str]) -> List[KernelModule]:
        modules = []
        seen = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            module = self._module_by_name(name)
            if module is None and name in self.builtin:
                module = KernelModule(name, builtin=True)
            if module is not None:
                modules.append(module)
        return modules

    def lookup_alias(self, name: str) -> List[KernelModule]:
        """
        Resolve a module name or alias.

        Sources are tried in order and the first one with a match wins:
        module names from modules.dep, ``symbol:`` aliases from
        modules.symbols, alias patterns from modules.alias, and finally
        modules.builtin.

        Args:
            name: Module name, alias or ``symbol:`` alias

        Returns:
            List[KernelModule]: Matching modules, empty if none
        """
        module = self._module_by_name(normalize_module_name(name))
        if module is not None:
            return [module]

        alias = normalize_alias(name)
        if alias.startswith('symbol:'):
            matches = [module_name for symbol, module_name in self.symbols if symbol == alias]
            if matches:
                return self._modules_by_names(matches)

        matches = [module_name for pattern, module_name in self.aliases
                   if fnmatch.fnmatchcase(alias, pattern)]
        if matches:
            return self._modules_by_names(matches)

        builtin_name = normalize_module_name(name)
        if builtin_name in self.builtin:
            return [KernelModule(builtin_name, builtin=True)]
        return []

    def load_from_path(self, path: str) -> KernelModule:
        """
        Create a module reference for a module file.

        Raises:
            ModuleLookupError: If ``path`` is not an existing file
        """
        if not os.path.isfile(path):
            raise ModuleLookupError(f"Module file {path} not found")
        return KernelModule(module_name_from_path(path), os.path.abspath(path))

    def get_info(self, module: KernelModule) -> ModuleInfo:
        """
        Return the info map of a module.

        Builtin modules are answered from modules.builtin.modinfo, other
        modules from the .modinfo section of their file.

        Raises:
            ModuleInfoError: If the info map cannot be read
        """
        if module.builtin:
            return list(self.builtin_info.get(module.name, []))
        if not module.path:
            raise ModuleInfoError(f"{module.name}: module has no file")
        return ModinfoParser.extract_modinfo(module.path)

    def apply_builtin_filter(self, modules: Iterable[KernelModule]) -> List[KernelModule]:
        """Drop modules that are compiled into the kernel."""
        return [m for m in modules if not m.builtin and m.name not in self.builtin]
