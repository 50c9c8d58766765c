import struct

import pytest

from acsolab.diskimg import SECTOR_SIZE, DiskImage
from acsolab.layout import BOOTBLOCK_MAGIC_NUM, IALLOC, IFDIR, ILARG, Inode
from acsolab.unixfs import FilesystemError, UnixFilesystem

INODE_FORMAT = "<H4BH8H2H2H"
SUPERBLOCK_FORMAT = "<3H100HH100H4B2H48H"

DIR_MODE = IALLOC | IFDIR | 0o755
REG_MODE = IALLOC | 0o644

HELLO = b"Hello, world!\n"
INNER = bytes(range(256)) * 2 + b"x" * 188
BIG = bytes((i * 7) % 251 for i in range(1024))
TOTAL_SECTORS = 13


def _inode(mode, size, addr=()):
    addrs = list(addr) + [0] * (8 - len(addr))
    return struct.pack(INODE_FORMAT, mode, 1, 0, 0, size >> 16, size & 0xFFFF, *addrs, 0, 0, 0, 0)


def _dirents(*entries):
    return b"".join(struct.pack("<H14s", inum, name.encode()) for inum, name in entries)


def _words(*values):
    return struct.pack(f"<{len(values)}H", *values)


def _sector(data):
    assert len(data) <= SECTOR_SIZE
    return data.ljust(SECTOR_SIZE, b"\0")


ROOT_ENTRIES = [(1, "."), (1, ".."), (2, "hello.txt"), (3, "sub"), (5, "big.bin"), (2, "fourteen_chars")]
SUB_ENTRIES = [(3, "."), (1, ".."), (4, "inner")]


def _image_bytes(magic=BOOTBLOCK_MAGIC_NUM):
    superblock = struct.pack(
        SUPERBLOCK_FORMAT, 1, TOTAL_SECTORS, 0, *([0] * 100), 0, *([0] * 100), 0, 0, 0, 0, 0, 0, *([0] * 48)
    )
    inodes = b"".join(
        [
            _inode(DIR_MODE, 16 * len(ROOT_ENTRIES), [3]),
            _inode(REG_MODE, len(HELLO), [4]),
            _inode(DIR_MODE, 16 * len(SUB_ENTRIES), [5]),
            _inode(REG_MODE, len(INNER), [6, 7]),
            _inode(REG_MODE | ILARG, len(BIG), [8]),
        ]
    )
    sectors = [
        _words(magic),
        superblock,
        inodes,
        _dirents(*ROOT_ENTRIES),
        HELLO,
        _dirents(*SUB_ENTRIES),
        INNER[:SECTOR_SIZE],
        INNER[SECTOR_SIZE:],
        _words(9, 10),
        BIG[:SECTOR_SIZE],
        BIG[SECTOR_SIZE:],
        _words(12),
        _words(0, 0, 0, 9),
    ]
    assert len(sectors) == TOTAL_SECTORS
    return b"".join(_sector(s) for s in sectors)


@pytest.fixture
def fs(tmp_path):
    path = tmp_path / "v6.img"
    path.write_bytes(_image_bytes())
    with DiskImage(path) as disk:
        yield UnixFilesystem(disk)


def test_superblock_is_read(fs):
    assert fs.superblock.isize == 1
    assert fs.superblock.fsize == TOTAL_SECTORS


def test_bad_magic_is_rejected(tmp_path):
    path = tmp_path / "bad.img"
    path.write_bytes(_image_bytes(magic=0))
    with DiskImage(path) as disk:
        with pytest.raises(FilesystemError, match="magic"):
            UnixFilesystem(disk)


def test_truncated_image_is_rejected(tmp_path):
    path = tmp_path / "short.img"
    path.write_bytes(_words(BOOTBLOCK_MAGIC_NUM))
    with DiskImage(path) as disk:
        with pytest.raises(FilesystemError):
            UnixFilesystem(disk)


def test_iget_reads_root(fs):
    root = fs.iget(1)
    assert root.is_allocated()
    assert root.is_directory()
    assert root.size() == 16 * len(ROOT_ENTRIES)


def test_iget_unallocated_inode(fs):
    assert not fs.iget(6).is_allocated()


def test_iget_rejects_zero(fs):
    with pytest.raises(FilesystemError):
        fs.iget(0)


def test_index_lookup_small_file(fs):
    inner = fs.iget(4)
    assert [fs.index_lookup(inner, b) for b in range(2)] == [6, 7]


def test_index_lookup_small_file_limits(fs):
    inner = fs.iget(4)
    with pytest.raises(FilesystemError):
        fs.index_lookup(inner, 8)
    with pytest.raises(FilesystemError):
        fs.index_lookup(inner, 2)
    with pytest.raises(FilesystemError):
        fs.index_lookup(inner, -1)


def test_index_lookup_single_indirect(fs):
    big = fs.iget(5)
    assert fs.index_lookup(big, 0) == 9
    assert fs.index_lookup(big, 1) == 10
    with pytest.raises(FilesystemError):
        fs.index_lookup(big, 2)


def test_index_lookup_double_indirect(fs):
    inode = Inode.from_bytes(_inode(REG_MODE | ILARG, 0, [0] * 7 + [11]))
    assert fs.index_lookup(inode, 7 * 256 + 3) == 9
    with pytest.raises(FilesystemError):
        fs.index_lookup(inode, 7 * 256)
    with pytest.raises(FilesystemError):
        fs.index_lookup(inode, 7 * 256 + 256 * 256)


def test_get_block_trims_to_file_size(fs):
    assert fs.get_block(2, 0) == HELLO
    assert fs.get_block(4, 1) == INNER[SECTOR_SIZE:]


def test_get_block_reassembles_large_file(fs):
    assert b"".join(fs.get_block(5, b) for b in range(2)) == BIG


def test_get_block_unallocated_block(fs):
    with pytest.raises(FilesystemError):
        fs.get_block(2, 1)


def test_find_name(fs):
    entry = fs.find_name("inner", 3)
    assert entry.inumber == 4
    assert entry.name() == "inner"


def test_find_name_missing_and_not_directory(fs):
    with pytest.raises(FilesystemError):
        fs.find_name("nope", 1)
    with pytest.raises(FilesystemError):
        fs.find_name("x", 2)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", 1),
        ("/hello.txt", 2),
        ("/sub", 3),
        ("/sub/inner", 4),
        ("//sub///inner/", 4),
        ("/sub/..", 1),
        ("/big.bin", 5),
        ("/fourteen_chars", 2),
    ],
)
def test_lookup(fs, path, expected):
    assert fs.lookup(path) == expected


@pytest.mark.parametrize("path", ["hello.txt", "", "/missing", "/sub/missing", "/fourteen_charsXYZ"])
def test_lookup_errors(fs, path):
    with pytest.raises(FilesystemError):
        fs.lookup(path)


def test_dir_entries_lists_all(fs):
    entries = fs.dir_entries(1)
    assert [(e.inumber, e.name()) for e in entries] == ROOT_ENTRIES


def test_dir_entries_respects_maximum(fs):
    entries = fs.dir_entries(3, 2)
    assert [(e.inumber, e.name()) for e in entries] == SUB_ENTRIES[:2]


def test_dir_entries_errors(fs):
    with pytest.raises(FilesystemError):
        fs.dir_entries(2)
    with pytest.raises(FilesystemError):
        fs.dir_entries(6)
    with pytest.raises(FilesystemError):
        fs.dir_entries(1, 0)