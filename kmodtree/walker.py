"""
Dependency tree walker.

Turns the flat ``depends`` entry of each module's info map into parent
and child rows of a TreeTable.
"""

from typing import List, Optional, Sequence, Tuple

from .columns import ColumnId
from .errors import ModuleInfoError, ModuleLookupError, warn
from .formatters import TableRow, TreeTable
from .models import KernelModule


class DependencyWalker:
    """
    Recursively adds a module and its dependencies to a table.

    ``database`` is anything providing ``lookup_alias``, ``load_from_path``,
    ``get_info`` and ``apply_builtin_filter``, normally a ModuleDatabase.
    """

    def __init__(self, database, table: TreeTable, columns: Sequence[ColumnId]):
        self.database = database
        self.table = table
        self.columns = tuple(columns)

    def get_data(self, module: KernelModule, column_id: ColumnId) -> Optional[str]:
        if column_id == ColumnId.NAME:
            return module.name
        if column_id == ColumnId.PATH:
            return module.path
        return None

    def add_row(self, module: KernelModule, parent: Optional[TableRow]) -> TableRow:
        row = self.table.add_row(parent)
        for index, column_id in enumerate(self.columns):
            self.table.set_cell(row, index, self.get_data(module, column_id))
        return row

    @staticmethod
    def dependency_names(info: List[Tuple[str, str]]) -> Optional[List[str]]:
        """
        Return the names listed by the first ``depends`` entry.

        Returns:
            Optional[List[str]]: Dependency names, None if there is no
                ``depends`` entry
        """
        for key, value in info:
            if key == 'depends':
                return [name for name in value.split(',') if name]
        return None

    def walk(self, module: KernelModule, parent: Optional[TableRow] = None,
             chain: Tuple[str, ...] = ()) -> bool:
        """
        Add ``module`` below ``parent`` and expand its dependencies.

        Dependencies that cannot be looked up are reported and skipped. A
        dependency already present on the path from the root to this
        module is reported as a cycle and not expanded again.

        Args:
            module: Module to add
            parent: Parent row, None for a root
            chain: Module names from the root down to ``parent``

        Returns:
            bool: False if the info map of any module in the subtree could
                not be read
        """
        row = self.add_row(module, parent)
        chain = chain + (module.name,)

        try:
            info = self.database.get_info(module)
        except ModuleInfoError as e:
            warn(f"failed to get info for {module.name}: {e}")
            return False

        names = self.dependency_names(info)
        if names is None:
            return True

        ok = True
        for name in names:
            try:
                dependencies = self.database.lookup_alias(name)
            except ModuleLookupError as e:
                warn(f"failed to lookup {name}: {e}")
                continue
            if not dependencies:
                warn(f"failed to lookup {name}")
                continue

            for dependency in dependencies:
                if dependency.name in chain:
                    warn("dependency cycle: " + " -> ".join(chain + (dependency.name,)))
                    self.add_row(dependency, row)
                    continue
                if not self.walk(dependency, row, chain):
                    ok = False
        return ok

    def walk_alias(self, alias: str) -> bool:
        """
        Walk every non-builtin module matching ``alias`` as a root.

        Raises:
            ModuleLookupError: If no loadable module matches
        """
        modules = self.database.apply_builtin_filter(self.database.lookup_alias(alias))
        if not modules:
            raise ModuleLookupError(f"Module {alias} not found.")

        ok = True
        for module in modules:
            if not self.walk(module):
                ok = False
        return ok

    def walk_path(self, path: str) -> bool:
        """
        Walk the module stored in file ``path`` as a root.

        Raises:
            ModuleLookupError: If the file cannot be loaded
        """
        return self.walk(self.database.load_from_path(path))
