"""Read lines, drop blanks and duplicates, and print them sorted."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable


def sort_lines(lines: Iterable[str]) -> list[str]:
    """Return the distinct non-empty lines in sorted order."""
    unique = set()
    for line in lines:
        if line.endswith("\n"):
            line = line[:-1]
        if line:
            unique.add(line)
    return sorted(unique)


def main(argv=None) -> int:
    """Sort standard input into standard output, removing duplicates."""
    parser = argparse.ArgumentParser(
        description="Print the distinct non-empty lines of standard input, sorted."
    )
    parser.parse_args(argv)
    for line in sort_lines(sys.stdin):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())