"""Filesystem drivers used for torrent data and metadata storage."""

from __future__ import annotations

import abc
import glob as _glob
import os
import shutil
from typing import BinaryIO, List, Tuple

from xdtorrent import util


class Driver(abc.ABC):
    """A filesystem that torrent storage can read and write through."""

    def __enter__(self) -> "Driver":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abc.abstractmethod
    def open(self) -> None:
        """Open any underlying connections."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release any underlying connections."""

    @abc.abstractmethod
    def open_read(self, path: str):
        """Open a file read only."""

    @abc.abstractmethod
    def open_write(self, path: str):
        """Open a file for writing, creating it if missing."""

    @abc.abstractmethod
    def file_exists(self, path: str) -> bool:
        """Return True if the path exists."""

    @abc.abstractmethod
    def ensure_dir(self, path: str) -> None:
        """Create a directory and its parents if missing."""

    @abc.abstractmethod
    def ensure_file(self, path: str, size: int) -> None:
        """Ensure a file exists, zero filled to ``size`` when created."""

    @abc.abstractmethod
    def glob(self, pattern: str) -> List[str]:
        """Paths matching a shell pattern, sorted."""

    @abc.abstractmethod
    def remove(self, path: str) -> None:
        """Remove a single file or empty directory."""

    @abc.abstractmethod
    def remove_all(self, path: str) -> None:
        """Remove a path and everything below it."""

    @abc.abstractmethod
    def join(self, *args: str) -> str:
        """Join path elements."""

    @abc.abstractmethod
    def move(self, old_path: str, new_path: str) -> None:
        """Move a file, creating the destination directory."""

    @abc.abstractmethod
    def split(self, path: str) -> Tuple[str, str]:
        """Split a path into directory (with trailing separator) and name."""

    @abc.abstractmethod
    def stat(self, path: str):
        """Stat a path; the result has ``st_mode`` and ``st_size``."""


class StdFS(Driver):
    """The local filesystem."""

    def open(self) -> None:
        return None

    def close(self) -> None:
        return None

    def open_read(self, path: str) -> BinaryIO:
        return open(path, "rb")

    def open_write(self, path: str) -> BinaryIO:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o755)
        return os.fdopen(fd, "wb")

    def file_exists(self, path: str) -> bool:
        return util.check_file(path)

    def ensure_dir(self, path: str) -> None:
        util.ensure_dir(path)

    def ensure_file(self, path: str, size: int) -> None:
        util.ensure_file(path, size)

    def glob(self, pattern: str) -> List[str]:
        return sorted(_glob.glob(pattern))

    def remove(self, path: str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            os.rmdir(path)
        else:
            os.remove(path)

    def remove_all(self, path: str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        elif os.path.lexists(path):
            os.remove(path)

    def join(self, *args: str) -> str:
        parts = [p for p in args if p]
        if not parts:
            return ""
        return os.path.normpath(os.path.join(*parts))

    def move(self, old_path: str, new_path: str) -> None:
        directory, _ = self.split(new_path)
        if directory:
            self.ensure_dir(directory)
        os.rename(old_path, new_path)

    def split(self, path: str) -> Tuple[str, str]:
        seps = os.sep + (os.altsep or "")
        idx = max(path.rfind(s) for s in seps)
        return path[: idx + 1], path[idx + 1 :]

    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)


STD = StdFS()