"""Command that prints checksums of the inodes and paths of a disk image."""

from __future__ import annotations

import getopt
import sys
from typing import TextIO

from .chksum import checksum_inumber, checksum_path, checksums_equal, to_hex
from .diskimg import DiskImage, DiskImageError
from .layout import ROOT_INUMBER
from .unixfs import FilesystemError, UnixFilesystem

PROG = "diskimageaccess"
MAX_PATH = 1024
MAX_DIR_ENTRIES = 10000
INODES_PER_BLOCK = 16


def dump_inode_checksums(fs: UnixFilesystem, out: TextIO, err: TextIO) -> None:
    """Write the checksum of every allocated inode."""
    for inumber in range(1, fs.superblock.isize * INODES_PER_BLOCK):
        try:
            inode = fs.iget(inumber)
        except FilesystemError:
            err.write(f"Can't read inode {inumber} \n")
            return
        if not inode.is_allocated():
            continue
        try:
            digest = checksum_inumber(fs, inumber)
        except FilesystemError:
            err.write(f"Inode {inumber} can't compute chksum\n")
            continue
        out.write(
            f"Inode {inumber} mode 0x{inode.mode:x} size {inode.size()} "
            f"checksum {to_hex(digest)}\n"
        )


def _dump_path_and_children(
    fs: UnixFilesystem, pathname: str, inumber: int, out: TextIO, err: TextIO
) -> None:
    try:
        inode = fs.iget(inumber)
    except FilesystemError:
        err.write(f"Can't read inode {inumber} \n")
        return
    if not inode.is_allocated():
        raise FilesystemError(f"path {pathname} refers to unallocated inode {inumber}")

    try:
        by_inumber = checksum_inumber(fs, inumber)
        by_path = checksum_path(fs, pathname)
    except FilesystemError:
        err.write(f"Can't checksum inode {inumber} path {pathname}\n")
        return

    if not checksums_equal(by_inumber, by_path):
        err.write(f"Pathname checksum of {pathname} differs from inode {inumber}\n")
        return

    out.write(
        f"Path {pathname} {inumber} mode 0x{inode.mode:x} size {inode.size()} "
        f"checksum {to_hex(by_path)}\n"
    )

    if not inode.is_directory():
        return

    prefix = "" if pathname == "/" else pathname
    if len(prefix) > MAX_PATH - 16:
        err.write(f"Too deep of directories {prefix}\n")

    try:
        entries = fs.dir_entries(inumber, MAX_DIR_ENTRIES)
    except FilesystemError:
        return
    for entry in entries:
        name = entry.name()
        if name in (".", ".."):
            continue
        _dump_path_and_children(fs, f"{prefix}/{name}", entry.inumber, out, err)


def dump_pathname_checksums(fs: UnixFilesystem, out: TextIO, err: TextIO) -> None:
    """Write the checksum of every path reachable from the root directory."""
    _dump_path_and_children(fs, "/", ROOT_INUMBER, out, err)


def print_directory(fs: UnixFilesystem, pathname: str, out: TextIO, err: TextIO) -> None:
    """Write every entry of the directory at pathname."""
    try:
        inumber = fs.lookup(pathname)
    except FilesystemError:
        err.write(f"Can't find {pathname}\n")
        return
    try:
        entries = fs.dir_entries(inumber, MAX_DIR_ENTRIES)
    except FilesystemError:
        err.write(f"Can't read entries from {pathname}\n")
        return
    for entry in entries:
        out.write(f"Direntry {pathname} Name {entry.name()} Inumber {entry.inumber}\n")


def _usage(err: TextIO) -> int:
    err.write(f"Usage: {PROG} <options> diskimagePath\n")
    err.write("where <options> can be:\n")
    err.write("-q     don't print extra info\n")
    err.write("-i     print all inode checksums\n")
    err.write("-p     print all pathname checksums\n")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run the command and return its exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    out, err = sys.stdout, sys.stderr

    try:
        options, rest = getopt.gnu_getopt(args, "iqp")
    except getopt.GetoptError:
        return _usage(err)
    if len(rest) != 1:
        return _usage(err)
    flags = {flag for flag, _ in options}
    diskpath = rest[0]

    try:
        disk = DiskImage(diskpath, read_only=True)
    except DiskImageError:
        err.write(f"Can't open diskimagePath {diskpath}\n")
        return 1

    status = 0
    try:
        try:
            fs = UnixFilesystem(disk)
        except FilesystemError as exc:
            err.write(f"{exc}\n")
            err.write("Failed to initialize unix filesystem\n")
            return 1

        if "-q" not in flags:
            try:
                disksize = disk.size()
            except DiskImageError:
                err.write(f"Error getting the size of {diskpath}\n")
                return 1
            sb = fs.superblock
            out.write(f"Disk {diskpath} is {disksize} bytes ({disksize // 1024} KB)\n")
            out.write(f"Superblock s_isize {sb.isize}\n")
            out.write(f"Superblock s_fsize {sb.fsize}\n")
            out.write(f"Superblock s_nfree {sb.nfree}\n")
            out.write(f"Superblock s_ninode {sb.ninode}\n")

        if "-i" in flags:
            dump_inode_checksums(fs, out, err)
        if "-p" in flags:
            dump_pathname_checksums(fs, out, err)
    finally:
        try:
            disk.close()
        except DiskImageError:
            err.write(f"Error closing {diskpath}\n")
    return status


if __name__ == "__main__":
    raise SystemExit(main())