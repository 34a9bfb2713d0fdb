from __future__ import annotations

import sys
from typing import TextIO


def echo_lines(stdin: TextIO, stdout: TextIO) -> int:
    """Copy every input line to the output unchanged, one flush per line."""
    count = 0
    for raw_line in stdin:
        stdout.write(raw_line if raw_line.endswith("\n") else raw_line + "\n")
        stdout.flush()
        count += 1
    return count


def app() -> None:
    echo_lines(sys.stdin, sys.stdout)
    raise SystemExit(0)


if __name__ == "__main__":
    app()
