import hashlib
import io
import struct

import pytest

from acsolab.diskimageaccess import (
    dump_inode_checksums,
    dump_pathname_checksums,
    main,
    print_directory,
)
from acsolab.diskimg import DiskImage
from acsolab.layout import IALLOC, IFDIR
from acsolab.unixfs import UnixFilesystem

SUPER = struct.Struct("<3H100HH100H4B2H48H")
INODE = struct.Struct("<H4BH8H2H2H")
DIR_MODE = IALLOC | IFDIR | 0o755
FILE_MODE = IALLOC | 0o644
HELLO = b"hello world\n"
BIG = bytes(i % 251 for i in range(700))


def dirent(inumber, name):
    return struct.pack("<H14s", inumber, name.encode())


ROOT_DATA = b"".join(
    [dirent(1, "."), dirent(1, ".."), dirent(2, "hello.txt"), dirent(3, "sub"), dirent(6, "empty")]
)
SUB_DATA = b"".join([dirent(3, "."), dirent(1, ".."), dirent(4, "big")])

CONTENTS = {1: ROOT_DATA, 2: HELLO, 3: SUB_DATA, 4: BIG, 6: b""}
MODES = {1: DIR_MODE, 2: FILE_MODE, 3: DIR_MODE, 4: FILE_MODE, 6: FILE_MODE}


def make_inode(mode, size, addrs):
    addr = list(addrs) + [0] * (8 - len(addrs))
    return INODE.pack(mode, 1, 0, 0, size >> 16, size & 0xFFFF, *addr, 0, 0, 0, 0)


def pad(data):
    return data.ljust(512, b"\0")


def build_image(path):
    boot = pad(struct.pack("<H", 0o407))
    superblock = SUPER.pack(1, 15, 0, *([0] * 100), 0, *([0] * 100), 0, 0, 0, 0, 0, 0, *([0] * 48))
    inodes = pad(
        b"".join(
            [
                make_inode(DIR_MODE, len(ROOT_DATA), [10]),
                make_inode(FILE_MODE, len(HELLO), [11]),
                make_inode(DIR_MODE, len(SUB_DATA), [12]),
                make_inode(FILE_MODE, len(BIG), [13, 14]),
                bytes(32),
                make_inode(FILE_MODE, 0, []),
            ]
        )
    )
    data = (
        boot
        + superblock
        + inodes
        + bytes(512 * 7)
        + pad(ROOT_DATA)
        + pad(HELLO)
        + pad(SUB_DATA)
        + pad(BIG[:512])
        + pad(BIG[512:])
    )
    path.write_bytes(data)


def digest_hex(inumber):
    return hashlib.sha1(CONTENTS[inumber]).hexdigest()


def path_line(path, inumber):
    return (
        f"Path {path} {inumber} mode 0x{MODES[inumber]:x} "
        f"size {len(CONTENTS[inumber])} checksum {digest_hex(inumber)}"
    )


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "disk.img"
    build_image(path)
    return path


@pytest.fixture
def fs(image_path):
    with DiskImage(image_path) as disk:
        yield UnixFilesystem(disk)


def test_dump_inode_checksums(fs):
    out, err = io.StringIO(), io.StringIO()
    dump_inode_checksums(fs, out, err)
    expected = [
        f"Inode {n} mode 0x{MODES[n]:x} size {len(CONTENTS[n])} checksum {digest_hex(n)}"
        for n in (1, 2, 3, 4, 6)
    ]
    assert out.getvalue().splitlines() == expected
    assert err.getvalue() == ""


def test_dump_pathname_checksums(fs):
    out, err = io.StringIO(), io.StringIO()
    dump_pathname_checksums(fs, out, err)
    expected = [
        path_line("/", 1),
        path_line("/hello.txt", 2),
        path_line("/sub", 3),
        path_line("/sub/big", 4),
        path_line("/empty", 6),
    ]
    assert out.getvalue().splitlines() == expected
    assert err.getvalue() == ""


def test_print_directory(fs):
    out, err = io.StringIO(), io.StringIO()
    print_directory(fs, "/sub", out, err)
    assert out.getvalue().splitlines() == [
        "Direntry /sub Name . Inumber 3",
        "Direntry /sub Name .. Inumber 1",
        "Direntry /sub Name big Inumber 4",
    ]
    assert err.getvalue() == ""


def test_print_directory_missing(fs):
    out, err = io.StringIO(), io.StringIO()
    print_directory(fs, "/nope", out, err)
    assert out.getvalue() == ""
    assert err.getvalue() == "Can't find /nope\n"


def test_print_directory_on_file(fs):
    out, err = io.StringIO(), io.StringIO()
    print_directory(fs, "/hello.txt", out, err)
    assert out.getvalue() == ""
    assert err.getvalue() == "Can't read entries from /hello.txt\n"


def test_main_quiet_inode_dump(image_path, capsys):
    assert main(["-q", "-i", str(image_path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 5
    assert lines[1].startswith("Inode 2 ")
    assert lines[1].endswith(digest_hex(2))


def test_main_options_after_path(image_path, capsys):
    assert main([str(image_path), "-q", "-p"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == path_line("/", 1)
    assert len(lines) == 5


def test_main_prints_superblock(image_path, capsys):
    assert main([str(image_path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"Disk {image_path} is {15 * 512} bytes ({15 * 512 // 1024} KB)"
    assert lines[1:] == [
        "Superblock s_isize 1",
        "Superblock s_fsize 15",
        "Superblock s_nfree 0",
        "Superblock s_ninode 0",
    ]


def test_main_without_path_shows_usage(capsys):
    assert main([]) == 1
    assert "Usage:" in capsys.readouterr().err


def test_main_unknown_option(image_path, capsys):
    assert main(["-x", str(image_path)]) == 1
    assert "-p     print all pathname checksums" in capsys.readouterr().err


def test_main_missing_image(tmp_path, capsys):
    missing = tmp_path / "absent.img"
    assert main([str(missing)]) == 1
    assert capsys.readouterr().err == f"Can't open diskimagePath {missing}\n"


def test_main_bad_magic(tmp_path, capsys):
    path = tmp_path / "bad.img"
    path.write_bytes(bytes(512 * 4))
    assert main(["-q", str(path)]) == 1
    assert "Failed to initialize unix filesystem" in capsys.readouterr().err