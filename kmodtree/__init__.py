"""
Kernel Module Tree Package

Displays the dependency tree of kernel modules. Provides a module
database over the depmod index files, a recursive dependency walker and
a table/tree formatter.
"""

from .models import KernelModule
from .parsers import ModinfoParser, ModuleIndexParser
from .database import ModuleDatabase
from .columns import COLUMNS, ColumnFlag, ColumnId, parse_column_list
from .formatters import OutputOptions, TreeTable
from .walker import DependencyWalker

__version__ = "1.0.0"
__author__ = "Kernel Module Tree"

__all__ = [
    "KernelModule",
    "ModinfoParser",
    "ModuleIndexParser",
    "ModuleDatabase",
    "COLUMNS",
    "ColumnFlag",
    "ColumnId",
    "parse_column_list",
    "OutputOptions",
    "TreeTable",
    "DependencyWalker"
]
