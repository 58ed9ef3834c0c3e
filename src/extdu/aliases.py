import argparse

from extdu.core.models import ColumnField, SortField
from extdu.core.sorter import SortKey

SORT_FIELD_ALIASES = {
    "ext": SortField.KEY,
    "extension": SortField.KEY,
    "key": SortField.KEY,
    "count": SortField.COUNT,
    "size": SortField.FILE_SIZE,
    "disk": SortField.DISK_SIZE,
    "links": SortField.HARDLINKS,
    "hardlinks": SortField.HARDLINKS,
}

SORT_FIELD_CHOICES = list(SORT_FIELD_ALIASES.keys())

SORT_HELP_TEXT = (
    "Sort rows by FIELD, ascending (repeatable, first option is the primary key):\n"
    "  ext    : classification key (extension or pick result)\n"
    "  count  : number of files\n"
    "  size   : sum of file sizes\n"
    "  disk   : sum of allocated disk sizes\n"
    "  links  : number of hardlinked files\n"
    "Example  : %(prog)s ~/src --sort disk --reverse count\n"
)

REVERSE_HELP_TEXT = "Same as --sort but descending"

TABLE_ALIASES = {
    "count": SortField.COUNT,
    "size": SortField.FILE_SIZE,
    "disk": SortField.DISK_SIZE,
    "links": SortField.HARDLINKS,
}

TABLE_CHOICES = list(TABLE_ALIASES.keys())

TABLE_HELP_TEXT = (
    "Print a table with one column per path and one row per extension:\n"
    "  count | size | disk | links : value shown in each cell\n"
)

COLUMN_ALIASES = {column.value: column for column in ColumnField}

COLUMN_CHOICES = list(COLUMN_ALIASES.keys())

COLUMN_HELP_TEXT = (
    "Compare files directly under each path side by side (implies --depth 1):\n"
    "  size | links             : lstat size or link count of PATH/NAME\n"
    "  access | modify | create : lstat time stamp of PATH/NAME\n"
    "  A name missing under a path is shown as --\n"
)

PICK_HELP_TEXT = (
    "Classify by rule instead of extension (repeatable, first match wins):\n"
    "  'regex;template'  the regex must match the whole file name,\n"
    "  $1..$9 / ${n} are groups, $& is the whole name, $$ is a dollar sign\n"
    "Example  : %(prog)s ~/src --pick '.*_test\\.py;pytest' --pick '.*\\.py;python'\n"
)


def _sort_key(value: str, ascending: bool) -> SortKey:
    sort_field = SORT_FIELD_ALIASES.get(value.strip().lower())
    if sort_field is None:
        raise argparse.ArgumentTypeError(
            f"invalid sort field: '{value}' (choose from {', '.join(SORT_FIELD_CHOICES)})"
        )
    return SortKey(sort_field, ascending)


def ascending_sort_key(value: str) -> SortKey:
    return _sort_key(value, True)


def descending_sort_key(value: str) -> SortKey:
    return _sort_key(value, False)


EPILOG_TEXT = """
Examples:
  Disk usage per extension of the current directory
  %(prog)s scan .

  Only source files, no .git directories, biggest first
  %(prog)s scan ~/src -i *.py -i *.c -e .git --reverse disk

  One summary line per top-level directory, human-readable sizes
  %(prog)s scan ~/Downloads --scope-top --summary --human

  Compare extension counts of two trees side by side
  %(prog)s scan ~/a ~/b --table count

  Compare the sizes of same-named files in two directories
  %(prog)s scan ~/a ~/b --column size

  Read roots from stdin
  find / -maxdepth 1 -type d | %(prog)s scan -

  Replace duplicates of a master file with hardlinks (preview first)
  %(prog)s link master.iso copy1.iso copy2.iso --dry-run
  %(prog)s link master.iso copy1.iso copy2.iso
"""
