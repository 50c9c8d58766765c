"""On-disk structures of a Version 6 Unix file system."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .diskimg import SECTOR_SIZE

BOOTBLOCK_SECTOR = 0
SUPERBLOCK_SECTOR = 1
INODE_START_SECTOR = 2
ROOT_INUMBER = 1
BOOTBLOCK_MAGIC_NUM = 0o407
DIR_NAME_SIZE = 14

# Inode mode bits.
IALLOC = 0o100000
IFMT = 0o60000
IFDIR = 0o40000
IFCHR = 0o20000
IFBLK = 0o60000
ILARG = 0o10000
ISUID = 0o4000
ISGID = 0o2000
ISVTX = 0o1000
IREAD = 0o400
IWRITE = 0o200
IEXEC = 0o100

_SUPERBLOCK = struct.Struct("<3H100HH100H4B2H48H")
_INODE = struct.Struct("<H4BH8H2H2H")
_DIRENT = struct.Struct(f"<H{DIR_NAME_SIZE}s")

SUPERBLOCK_SIZE = _SUPERBLOCK.size
INODE_SIZE = _INODE.size
DIRENT_SIZE = _DIRENT.size
INODES_PER_SECTOR = SECTOR_SIZE // INODE_SIZE


def _check_length(kind: str, data: bytes, expected: int) -> None:
    if len(data) != expected:
        raise ValueError(f"{kind} needs {expected} bytes, got {len(data)}")


@dataclass(frozen=True)
class Superblock:
    """The file system superblock stored in sector 1."""

    isize: int
    fsize: int
    nfree: int
    free: tuple[int, ...]
    ninode: int
    inode: tuple[int, ...]
    flock: int
    ilock: int
    fmod: int
    ronly: int
    time: tuple[int, int]

    @classmethod
    def from_bytes(cls, data: bytes) -> Superblock:
        _check_length("superblock", data, SUPERBLOCK_SIZE)
        v = _SUPERBLOCK.unpack(data)
        return cls(
            isize=v[0],
            fsize=v[1],
            nfree=v[2],
            free=tuple(v[3:103]),
            ninode=v[103],
            inode=tuple(v[104:204]),
            flock=v[204],
            ilock=v[205],
            fmod=v[206],
            ronly=v[207],
            time=(v[208], v[209]),
        )


@dataclass(frozen=True)
class Inode:
    """An on-disk inode."""

    mode: int
    nlink: int
    uid: int
    gid: int
    size0: int
    size1: int
    addr: tuple[int, ...]
    atime: tuple[int, int]
    mtime: tuple[int, int]

    @classmethod
    def from_bytes(cls, data: bytes) -> Inode:
        _check_length("inode", data, INODE_SIZE)
        v = _INODE.unpack(data)
        return cls(
            mode=v[0],
            nlink=v[1],
            uid=v[2],
            gid=v[3],
            size0=v[4],
            size1=v[5],
            addr=tuple(v[6:14]),
            atime=(v[14], v[15]),
            mtime=(v[16], v[17]),
        )

    def size(self) -> int:
        """File size in bytes, stored as a three-byte number."""
        return (self.size0 << 16) | self.size1

    def is_allocated(self) -> bool:
        return bool(self.mode & IALLOC)

    def is_directory(self) -> bool:
        return (self.mode & IFMT) == IFDIR

    def is_large(self) -> bool:
        """True when the addresses point at indirect blocks."""
        return bool(self.mode & ILARG)


@dataclass(frozen=True)
class DirEntry:
    """A directory entry: an inode number and a name of up to 14 bytes."""

    inumber: int
    raw_name: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> DirEntry:
        _check_length("directory entry", data, DIRENT_SIZE)
        inumber, raw_name = _DIRENT.unpack(data)
        return cls(inumber=inumber, raw_name=raw_name)

    def name(self) -> str:
        """The entry's name, up to the first NUL byte."""
        return self.raw_name.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def parse_dir_entries(data: bytes) -> list[DirEntry]:
    """Split a block of directory data into entries, ignoring a trailing partial one."""
    whole = len(data) - len(data) % DIRENT_SIZE
    return [DirEntry(inumber, raw_name) for inumber, raw_name in _DIRENT.iter_unpack(data[:whole])]