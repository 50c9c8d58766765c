# acsolab

Small tools from a computer architecture and operating systems course,
written in plain Python with no third-party dependencies.

## What is inside

- **Unix V6 file system reader**
  - `acsolab.diskimg`: `DiskImage` reads and writes a disk image one
    512-byte sector at a time (`size`, `read_sector`, `write_sector`,
    `close`; usable as a context manager). Errors raise `DiskImageError`.
  - `acsolab.layout`: the on-disk structures `Superblock`, `Inode` and
    `DirEntry`, plus `parse_dir_entries`.
  - `acsolab.unixfs`: `UnixFilesystem` checks the boot block magic number,
    reads the superblock and offers `iget`, `index_lookup` (small files,
    large files with indirect blocks and the doubly indirect block),
    `get_block`, `find_name`, `lookup` (absolute paths only) and
    `dir_entries`. Errors raise `FilesystemError`.
  - `acsolab.chksum`: `checksum_inumber`, `checksum_path` (SHA-1 of a
    file's contents), `to_hex` and `checksums_equal`.
  - `acsolab.diskimageaccess`: the `diskimageaccess` command, and the
    functions `dump_inode_checksums`, `dump_pathname_checksums` and
    `print_directory`.
- **ARM instruction simulator**: `acsolab.machine` (`Memory`, `CpuState`,
  `Machine`), `acsolab.cpu` (`process_instruction`, `sign_extend`) and
  `acsolab.armshell` (`Simulator` and the `armsim` command).
- **Typed string list**: `acsolab.strlist.StringProcList`, an ordered list
  of `(kind, text)` nodes that can concatenate the texts of one kind.

## Installation

    pip install .

## Inspecting a disk image

    diskimageaccess [-q] [-i] [-p] path/to/disk.img

- without `-q` it prints the disk size and the superblock's `s_isize`,
  `s_fsize`, `s_nfree` and `s_ninode`
- `-i` prints the mode, size and checksum of every allocated inode
- `-p` walks the directory tree from `/` and prints the inode number, mode,
  size and checksum of every path

From Python:

```python
from acsolab.diskimg import DiskImage
from acsolab.unixfs import UnixFilesystem
from acsolab.chksum import checksum_path, to_hex

with DiskImage("disk.img", True) as disk:
    fs = UnixFilesystem(disk)
    inumber = fs.lookup("/usr/include/stdio.h")
    print(inumber, to_hex(checksum_path(fs, "/usr/include/stdio.h")))
```

## Running the ARM simulator

    armsim program.x [more.x ...]

A program file holds whitespace-separated hexadecimal instruction words;
each file is loaded starting at `0x00400000`. At the `ARM-SIM>` prompt:

    go                      run until the machine halts
    run n                   execute up to n instructions
    mdump low high          dump memory words from low to high
    rdump                   dump instruction count, PC, registers and flags
    input reg_no reg_value  set a register (reg_value in hexadecimal)
    ?                       help
    quit                    exit

`mdump` bounds and `input`'s register number accept decimal, `0x` hex or
leading-`0` octal. Memory and register dumps are also written to a file
named `dumpsim` in the current directory.

The decoder executes HLT, ADDS, ADDS (immediate), SUBS, SUBS (immediate),
ANDS, EOR, ORR, LSL, LSR, MOVZ, STUR, STURB, STURH, LDUR, LDURB, LDURH and
B.cond (EQ, NE, GT, LT, GE, LE, with the overflow flag taken as clear).
Each instruction traces its decoding to the output. An unrecognised
instruction halts the machine.

## String list

```python
from acsolab.strlist import StringProcList

items = StringProcList()
items.add_node(0, "hola")
items.add_node(1, "x")
items.add_node(0, "todos")
print(items.concat(0, "hash:"))   # hash:holatodos
```

`print_to(file)` writes the list's length and every node.

## What it does not do

- The file system reader only reads: there is no creating, writing or
  deleting of files or directories, and no triply indirect blocks.
- The simulator decodes B and BR but always continues at the next word, so
  they do not transfer control; CBZ, CBNZ, ADD and MUL are not recognised.

## Tests

    pip install .[test]
    pytest