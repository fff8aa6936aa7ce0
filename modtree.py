#!/usr/bin/env python3
"""
Kernel Module Tree

This script shows the dependency tree of kernel modules. Each argument is
a module name, an alias or a module file; the modules it depends on are
read from the module's .modinfo section and expanded recursively.
"""

import argparse
import os
import shutil
import sys
from typing import List, Optional

from kmodtree import __version__
from kmodtree.columns import (COLUMNS, column_help, default_columns, disable_truncation,
                              get_column_info, parse_column_list)
from kmodtree.database import ModuleDatabase
from kmodtree.errors import ColumnSpecError, ModuleDatabaseError, ModuleLookupError, warn
from kmodtree.formatters import OutputOptions, TreeTable
from kmodtree.models import is_module_filename
from kmodtree.parsers import ModuleIndexParser
from kmodtree.walker import DependencyWalker


def column_list(value: str):
    """argparse type for the --output column list."""
    try:
        return parse_column_list(value)
    except ColumnSpecError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def stdout_supports_unicode() -> bool:
    encoding = getattr(sys.stdout, 'encoding', None) or ''
    return encoding.lower().replace('-', '').replace('_', '') == 'utf8'


def terminal_width() -> Optional[int]:
    """Return the terminal width, or None when stdout is not a terminal."""
    if not sys.stdout.isatty():
        return None
    return shutil.get_terminal_size((80, 24)).columns


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='modtree',
        usage='%(prog)s [options] modules...',
        description="Show the dependency tree of kernel modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=column_help() + """

Examples:
  modtree ext4                        # Dependency tree of the ext4 module
  modtree -l -o name ext4 xfs         # Flat list of module names
  modtree -r pci:v00008086d00001533*  # Raw output for a PCI alias
  modtree ./drivers/foo/foo.ko.zst    # Dependencies of a module file
  modtree -k 6.1.0-18-amd64 btrfs     # Use another kernel's modules
        """
    )

    parser.add_argument('modules', nargs='*', metavar='module',
                        help='module name, alias or module file')
    parser.add_argument('--ascii', '-a', action='store_true',
                        help='use ASCII characters for tree format')
    parser.add_argument('--kernel', '-k', metavar='VERSION',
                        help='specify kernel version instead of $(uname -r)')
    parser.add_argument('--dirname', '-d', metavar='DIR', default='/',
                        help='use DIR as filesystem root for /lib/modules')
    parser.add_argument('--list', '-l', action='store_true',
                        help='use list format output')
    parser.add_argument('--noheadings', '-n', action='store_true',
                        help="don't print column headings")
    parser.add_argument('--notruncate', '-u', action='store_true',
                        help="don't truncate text in columns")
    parser.add_argument('--output', '-o', type=column_list, metavar='LIST',
                        help='the output columns to be shown')
    parser.add_argument('--raw', '-r', action='store_true',
                        help='use unformatted output')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='print a traceback for unexpected errors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}',
                        help='show version information')
    return parser


def build_table(args: argparse.Namespace, columns) -> TreeTable:
    """Create the output table with the selected columns defined."""
    registry = disable_truncation() if args.notruncate else COLUMNS
    options = OutputOptions(
        tree=not (args.list or args.raw),
        ascii=args.ascii or not stdout_supports_unicode(),
        raw=args.raw,
        noheadings=args.noheadings,
        width=terminal_width(),
    )
    table = TreeTable(options)
    for column_id in columns:
        info = get_column_info(column_id, registry)
        table.define_column(info.name, info.width_hint, info.flags)
    return table


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the module tree display."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.modules:
        parser.error("missing module name")

    columns = args.output or default_columns()
    kernel_version = args.kernel or os.uname().release
    dirname = ModuleIndexParser.module_directory(kernel_version, args.dirname)

    try:
        with ModuleDatabase.open(dirname) as database:
            table = build_table(args, columns)
            walker = DependencyWalker(database, table, columns)

            ok = True
            for name in args.modules:
                try:
                    if is_module_filename(name):
                        result = walker.walk_path(name)
                    else:
                        result = walker.walk_alias(name)
                except ModuleLookupError as e:
                    warn(str(e))
                    result = False
                if not result:
                    ok = False

            sys.stdout.write(table.render())
    except ModuleDatabaseError as e:
        warn(str(e))
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 1
    except Exception as e:
        warn(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
