"""Records where generated functions live, for external profilers."""

from __future__ import annotations

import enum
import os
import sys
from typing import IO

__all__ = ["Profiler", "ProfilerMode"]

# perf ignores symbol names shorter than this, so they are padded with '_'.
_MIN_NAME_LENGTH = 3


class ProfilerMode(enum.IntEnum):
    """Which profiler receives the symbol records."""

    NONE = 0
    PERF = 1
    VTUNE = 2


class Profiler:
    """Writes ``<start> <size> <name>`` records to a perf map file.

    Perf mode appends to ``perf-<pid>.map`` inside ``map_dir``. VTune mode
    needs the vendor's JIT profiling runtime, which is not available here,
    so selecting it leaves the profiler inactive.
    """

    def __init__(self, map_dir: str | os.PathLike[str] = "/tmp") -> None:
        self._map_dir = os.fspath(map_dir)
        self._mode = ProfilerMode.NONE
        self._suffix = ""
        self._start_addr = 0
        self._file: IO[str] | None = None

    @property
    def mode(self) -> ProfilerMode:
        """The mode in effect after the last call to init()."""
        return self._mode

    @property
    def map_path(self) -> str:
        """Path of the perf map file for this process."""
        return os.path.join(self._map_dir, f"perf-{os.getpid()}.map")

    def set_name_suffix(self, suffix: str) -> None:
        """Set a suffix appended to every recorded function name."""
        self._suffix = suffix

    def set_start_addr(self, start_addr: int) -> None:
        """Set the start address used by set_continuous()."""
        self._start_addr = start_addr

    def init(self, mode: int) -> None:
        """Select a profiler; unknown or unavailable modes leave it inactive."""
        self._mode = ProfilerMode.NONE
        try:
            selected = ProfilerMode(mode)
        except ValueError:
            return
        if selected is not ProfilerMode.PERF:
            return
        self.close()
        path = self.map_path
        try:
            self._file = open(path, "a+", encoding="utf-8")
        except OSError:
            print(f"can't open {path}", file=sys.stderr)
            return
        self._mode = ProfilerMode.PERF

    def close(self) -> None:
        """Close the map file if one is open."""
        if self._file is None:
            return
        self._file.close()
        self._file = None

    def set(self, func_name: str, start_addr: int, func_size: int) -> None:
        """Record a function occupying ``func_size`` bytes from ``start_addr``."""
        if self._mode is not ProfilerMode.PERF or self._file is None:
            return
        name = f"{func_name}{self._suffix}"
        padding = "_" * max(0, _MIN_NAME_LENGTH - len(name))
        self._file.write(f"{start_addr:x} {func_size:x} {name}{padding}\n")
        self._file.flush()

    def set_continuous(self, func_name: str, end_addr: int) -> None:
        """Record a function ending at ``end_addr`` right after the previous one."""
        self.set(func_name, self._start_addr, end_addr - self._start_addr)
        self._start_addr = end_addr

    def __enter__(self) -> Profiler:
        return self

    def __exit__(self, *args) -> None:
        self.close()