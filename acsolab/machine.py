"""Memory and processor state of the instruction-level ARM simulator."""

from __future__ import annotations

from dataclasses import dataclass, field

ARM_REGS = 32

MEM_DATA_START = 0x10000000
MEM_DATA_SIZE = 0x00100000
MEM_TEXT_START = 0x00400000
MEM_TEXT_SIZE = 0x00100000
MEM_STACK_START = 0xFFFFFFFC
MEM_STACK_SIZE = 0x00100000

_ADDRESS_MASK = (1 << 64) - 1
_WORD_MASK = 0xFFFFFFFF


@dataclass
class MemoryRegion:
    """A contiguous, zero-initialised block of simulated memory."""

    start: int
    size: int
    # Three spare bytes keep a word access at the last byte of the region in bounds.
    data: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.data = bytearray(self.size + 3)

    def __contains__(self, address: int) -> bool:
        return self.start <= address < self.start + self.size


class Memory:
    """The text, data and stack regions; words are stored little-endian."""

    def __init__(self) -> None:
        self.regions = (
            MemoryRegion(MEM_TEXT_START, MEM_TEXT_SIZE),
            MemoryRegion(MEM_DATA_START, MEM_DATA_SIZE),
            MemoryRegion(MEM_STACK_START, MEM_STACK_SIZE),
        )

    def _locate(self, address: int) -> tuple[MemoryRegion, int] | None:
        address &= _ADDRESS_MASK
        for region in self.regions:
            if address in region:
                return region, address - region.start
        return None

    def read_32(self, address: int) -> int:
        """Read a 32-bit word; addresses outside every region read as 0."""
        found = self._locate(address)
        if found is None:
            return 0
        region, offset = found
        return int.from_bytes(region.data[offset:offset + 4], "little")

    def write_32(self, address: int, value: int) -> None:
        """Write a 32-bit word; writes outside every region are ignored."""
        found = self._locate(address)
        if found is None:
            return
        region, offset = found
        region.data[offset:offset + 4] = (value & _WORD_MASK).to_bytes(4, "little")


@dataclass
class CpuState:
    """Program counter, register file and condition flags."""

    pc: int = 0
    regs: list[int] = field(default_factory=lambda: [0] * ARM_REGS)
    flag_n: int = 0
    flag_z: int = 0

    def copy(self) -> CpuState:
        """Return an independent copy of this state."""
        return CpuState(pc=self.pc, regs=list(self.regs), flag_n=self.flag_n, flag_z=self.flag_z)


class Machine:
    """The whole simulated machine: memory, current and next state, run flag."""

    def __init__(self) -> None:
        self.memory = Memory()
        self.current = CpuState()
        self.next = self.current.copy()
        self.running = True
        self.instruction_count = 0