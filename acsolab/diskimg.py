"""Sector-level access to a disk image file."""

from __future__ import annotations

import os
from types import TracebackType

SECTOR_SIZE = 512


class DiskImageError(Exception):
    """Raised when a disk image cannot be opened, read or written."""


class DiskImage:
    """A disk image file read and written one sector at a time."""

    def __init__(self, path: str | os.PathLike[str], read_only: bool = True) -> None:
        self.path = os.fspath(path)
        self.read_only = read_only
        mode = "rb" if read_only else "r+b"
        try:
            self._file = open(self.path, mode, buffering=0)
        except OSError as exc:
            raise DiskImageError(f"can't open disk image {self.path}: {exc}") from exc

    def _require_open(self) -> None:
        if self._file.closed:
            raise DiskImageError(f"disk image {self.path} is closed")

    def _seek_sector(self, sector: int) -> None:
        self._require_open()
        if sector < 0:
            raise DiskImageError(f"invalid sector number {sector}")
        try:
            self._file.seek(sector * SECTOR_SIZE)
        except OSError as exc:
            raise DiskImageError(f"can't seek to sector {sector}: {exc}") from exc

    def size(self) -> int:
        """Return the size of the image in bytes."""
        self._require_open()
        try:
            return self._file.seek(0, os.SEEK_END)
        except OSError as exc:
            raise DiskImageError(f"can't get size of {self.path}: {exc}") from exc

    def read_sector(self, sector: int) -> bytes:
        """Read one sector; the result is shorter than a sector near the end of the image."""
        self._seek_sector(sector)
        try:
            return self._file.read(SECTOR_SIZE) or b""
        except OSError as exc:
            raise DiskImageError(f"can't read sector {sector}: {exc}") from exc

    def write_sector(self, sector: int, data: bytes) -> int:
        """Write one full sector and return the number of bytes written."""
        if len(data) != SECTOR_SIZE:
            raise ValueError(f"sector data must be {SECTOR_SIZE} bytes, got {len(data)}")
        if self.read_only:
            raise DiskImageError(f"disk image {self.path} is opened read-only")
        self._seek_sector(sector)
        try:
            written = self._file.write(bytes(data))
        except OSError as exc:
            raise DiskImageError(f"can't write sector {sector}: {exc}") from exc
        return written if written is not None else 0

    def close(self) -> None:
        """Close the image file."""
        try:
            self._file.close()
        except OSError as exc:
            raise DiskImageError(f"error closing {self.path}: {exc}") from exc

    def __enter__(self) -> DiskImage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()