"""Read access to a Version 6 Unix file system on a disk image."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from itertools import islice

from .diskimg import SECTOR_SIZE, DiskImage, DiskImageError
from .layout import (
    BOOTBLOCK_MAGIC_NUM,
    BOOTBLOCK_SECTOR,
    DIR_NAME_SIZE,
    DIRENT_SIZE,
    INODE_SIZE,
    INODE_START_SECTOR,
    INODES_PER_SECTOR,
    ROOT_INUMBER,
    SUPERBLOCK_SECTOR,
    DirEntry,
    Inode,
    Superblock,
    parse_dir_entries,
)

_ADDRS_PER_BLOCK = SECTOR_SIZE // 2
_SINGLE_INDIRECT_LIMIT = 7 * _ADDRS_PER_BLOCK
_DOUBLE_INDIRECT_LIMIT = _SINGLE_INDIRECT_LIMIT + _ADDRS_PER_BLOCK * _ADDRS_PER_BLOCK
_ADDR_BLOCK = struct.Struct(f"<{_ADDRS_PER_BLOCK}H")


class FilesystemError(Exception):
    """Raised when the file system cannot satisfy a request."""


def _name_key(raw: bytes) -> bytes:
    return raw[:DIR_NAME_SIZE].split(b"\0", 1)[0]


def _components(pathname: str) -> Iterator[str]:
    """Path components; a component longer than a directory name is split into chunks."""
    for part in pathname.split("/"):
        for start in range(0, len(part), DIR_NAME_SIZE):
            yield part[start:start + DIR_NAME_SIZE]


def _block_count(size: int) -> int:
    return (size + SECTOR_SIZE - 1) // SECTOR_SIZE


class UnixFilesystem:
    """A Version 6 file system read through a disk image."""

    def __init__(self, disk: DiskImage) -> None:
        self.disk = disk
        boot = self._read_full(BOOTBLOCK_SECTOR, "bootblock")
        (magic,) = struct.unpack_from("<H", boot)
        if magic != BOOTBLOCK_MAGIC_NUM:
            raise FilesystemError(f"Bad magic number on disk(0x{magic:x})")
        self.superblock = Superblock.from_bytes(self._read_full(SUPERBLOCK_SECTOR, "superblock"))

    def _read(self, sector: int) -> bytes:
        try:
            return self.disk.read_sector(sector)
        except DiskImageError as exc:
            raise FilesystemError(f"error reading sector {sector}") from exc

    def _read_full(self, sector: int, what: str) -> bytes:
        data = self._read(sector)
        if len(data) != SECTOR_SIZE:
            raise FilesystemError(f"Error reading {what} (sector {sector})")
        return data

    def _read_addresses(self, sector: int) -> tuple[int, ...]:
        return _ADDR_BLOCK.unpack(self._read_full(sector, "indirect block"))

    @staticmethod
    def _allocated(sector: int, block_index: int) -> int:
        if sector == 0:
            raise FilesystemError(f"file block {block_index} is not allocated")
        return sector

    def iget(self, inumber: int) -> Inode:
        """Fetch inode number inumber (numbered from 1)."""
        if inumber < 1:
            raise FilesystemError(f"invalid inode number {inumber}")
        sector = INODE_START_SECTOR + (inumber - 1) // INODES_PER_SECTOR
        offset = (inumber - 1) % INODES_PER_SECTOR * INODE_SIZE
        data = self._read_full(sector, f"inode {inumber}")
        return Inode.from_bytes(data[offset:offset + INODE_SIZE])

    def index_lookup(self, inode: Inode, block_index: int) -> int:
        """Return the disk sector holding the given block of the file."""
        if block_index < 0:
            raise FilesystemError(f"invalid file block {block_index}")

        if not inode.is_large():
            if block_index >= len(inode.addr):
                raise FilesystemError(f"file block {block_index} beyond a small file")
            return self._allocated(inode.addr[block_index], block_index)

        if block_index < _SINGLE_INDIRECT_LIMIT:
            indirect = self._allocated(inode.addr[block_index // _ADDRS_PER_BLOCK], block_index)
            addresses = self._read_addresses(indirect)
            return self._allocated(addresses[block_index % _ADDRS_PER_BLOCK], block_index)

        if block_index < _DOUBLE_INDIRECT_LIMIT:
            relative = block_index - _SINGLE_INDIRECT_LIMIT
            first = self._allocated(inode.addr[7], block_index)
            second = self._allocated(
                self._read_addresses(first)[relative // _ADDRS_PER_BLOCK], block_index
            )
            return self._allocated(
                self._read_addresses(second)[relative % _ADDRS_PER_BLOCK], block_index
            )

        raise FilesystemError(f"file block {block_index} beyond the largest file")

    def get_block(self, inumber: int, block_num: int) -> bytes:
        """Return the valid bytes of one block of a file."""
        inode = self.iget(inumber)
        sector = self.index_lookup(inode, block_num)
        data = self._read(sector)
        offset = block_num * SECTOR_SIZE
        size = inode.size()
        if offset >= size:
            return b""
        return data[:min(size - offset, SECTOR_SIZE)]

    def _iter_entries(self, inumber: int, size: int) -> Iterator[DirEntry]:
        for block_num in range(_block_count(size)):
            yield from parse_dir_entries(self.get_block(inumber, block_num))

    def find_name(self, name: str, dir_inumber: int) -> DirEntry:
        """Find the entry called name in the directory dir_inumber."""
        directory = self.iget(dir_inumber)
        if not directory.is_directory():
            raise FilesystemError(f"inode {dir_inumber} is not a directory")
        wanted = _name_key(name.encode("utf-8"))
        for entry in self._iter_entries(dir_inumber, directory.size()):
            if _name_key(entry.raw_name) == wanted:
                return entry
        raise FilesystemError(f"{name!r} not found in directory {dir_inumber}")

    def lookup(self, pathname: str) -> int:
        """Return the inode number of an absolute path."""
        if not pathname.startswith("/"):
            raise FilesystemError(f"path must be absolute: {pathname!r}")
        inumber = ROOT_INUMBER
        for component in _components(pathname):
            inumber = self.find_name(component, inumber).inumber
        return inumber

    def dir_entries(self, inumber: int, max_entries: int = 10000) -> list[DirEntry]:
        """Return at most max_entries entries of an allocated directory."""
        inode = self.iget(inumber)
        if not inode.is_allocated() or not inode.is_directory():
            raise FilesystemError(f"inode {inumber} is not an allocated directory")
        if max_entries < 1:
            raise FilesystemError("max_entries must be at least 1")
        size = inode.size()
        if size % DIRENT_SIZE:
            raise FilesystemError(f"directory {inumber} has a size of {size} bytes")
        return list(islice(self._iter_entries(inumber, size), max_entries))