"""SHA-1 checksums of files stored on a Version 6 file system."""

from __future__ import annotations

import hashlib

from .diskimg import SECTOR_SIZE
from .unixfs import FilesystemError, UnixFilesystem

CHKSUM_SIZE = 20


def checksum_inumber(fs: UnixFilesystem, inumber: int) -> bytes:
    """Return the SHA-1 digest of the contents of an allocated inode."""
    inode = fs.iget(inumber)
    if not inode.is_allocated():
        raise FilesystemError(f"inode {inumber} is not allocated")
    sha = hashlib.sha1()
    for offset in range(0, inode.size(), SECTOR_SIZE):
        sha.update(fs.get_block(inumber, offset // SECTOR_SIZE))
    return sha.digest()


def checksum_path(fs: UnixFilesystem, pathname: str) -> bytes:
    """Return the SHA-1 digest of the file at an absolute path."""
    return checksum_inumber(fs, fs.lookup(pathname))


def _check_digest(digest: bytes) -> None:
    if len(digest) < CHKSUM_SIZE:
        raise ValueError(f"checksum needs {CHKSUM_SIZE} bytes, got {len(digest)}")


def to_hex(digest: bytes) -> str:
    """Render a checksum as lower-case hexadecimal."""
    _check_digest(digest)
    return bytes(digest[:CHKSUM_SIZE]).hex()


def checksums_equal(first: bytes, second: bytes) -> bool:
    """True when two checksums agree in their checksum-sized prefix."""
    _check_digest(first)
    _check_digest(second)
    return first[:CHKSUM_SIZE] == second[:CHKSUM_SIZE]