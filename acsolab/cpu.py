"""Decoding and execution of one instruction of the simulated ARM machine."""

from __future__ import annotations

import operator
import sys
from collections.abc import Callable
from enum import IntEnum
from typing import TextIO

from .machine import CpuState, Machine

_MASK64 = (1 << 64) - 1
_ZERO_REGISTER = 31

Handler = Callable[[Machine, int, TextIO], None]


class Opcode(IntEnum):
    """Opcodes recognised by the decoder, keyed by the width they are matched at."""

    HLT = 0x6A2
    ADDS = 0x558
    ADDIS_0 = 0x588
    ADDIS_1 = 0x58A
    SUBS = 0x758
    SUBIS_0 = 0x788
    SUBIS_1 = 0x78A
    ANDS = 0x750
    EOR = 0x650
    ORR = 0x550
    B = 0x5
    BR = 0x6B0
    BCOND = 0x54
    LSL = 0x69B
    LSR = 0x69A
    STUR = 0x7C0
    STURB = 0x1C0
    STURH = 0x3C0
    LDUR = 0x7C2
    LDURB = 0x1C2
    LDURH = 0x3C2
    MOVZ = 0x694
    CBZ = 0xB4
    CBNZ = 0xB5


def _to_int64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >> 63 else value


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value >> 31 else value


def sign_extend(value: int, bits: int) -> int:
    """Sign-extend the low bits of a 32-bit value whose sign bit is bit bits-1."""
    mask = 1 << (bits - 1)
    return (_to_int32(value) ^ mask) - mask


def _rd(instruction: int) -> int:
    return instruction & 0x1F


def _rn(instruction: int) -> int:
    return (instruction >> 5) & 0x1F


def _rm(instruction: int) -> int:
    return (instruction >> 16) & 0x1F


def _read(state: CpuState, register: int) -> int:
    return 0 if register == _ZERO_REGISTER else state.regs[register]


def _advance(machine: Machine) -> None:
    machine.next.pc = (machine.current.pc + 4) & _MASK64


def _branch(machine: Machine, offset: int) -> None:
    machine.next.pc = (machine.current.pc + offset) & _MASK64


def _store_result(machine: Machine, rd: int, result: int, set_flags: bool) -> None:
    result = _to_int64(result)
    if set_flags:
        machine.next.flag_n = int(result < 0)
        machine.next.flag_z = int(result == 0)
    if rd != _ZERO_REGISTER:
        machine.next.regs[rd] = result
    _advance(machine)


def _register_op(op: Callable[[int, int], int], set_flags: bool = True) -> Handler:
    def handler(machine: Machine, instruction: int, out: TextIO) -> None:
        state = machine.current
        result = op(_read(state, _rn(instruction)), _read(state, _rm(instruction)))
        _store_result(machine, _rd(instruction), result, set_flags)

    return handler


def _immediate_op(op: Callable[[int, int], int], shift: int) -> Handler:
    def handler(machine: Machine, instruction: int, out: TextIO) -> None:
        imm = (instruction >> 10) & 0xFFF
        result = op(_read(machine.current, _rn(instruction)), imm << shift)
        _store_result(machine, _rd(instruction), result, True)

    return handler


def _hlt(machine: Machine, instruction: int, out: TextIO) -> None:
    machine.running = False
    _advance(machine)


def _lsl(machine: Machine, instruction: int, out: TextIO) -> None:
    imms = (instruction >> 10) & 0x3F
    value = _read(machine.current, _rn(instruction))
    _store_result(machine, _rd(instruction), value << (63 - imms), True)


def _lsr(machine: Machine, instruction: int, out: TextIO) -> None:
    immr = (instruction >> 16) & 0x3F
    value = _read(machine.current, _rn(instruction))
    _store_result(machine, _rd(instruction), value >> immr, True)


def _movz(machine: Machine, instruction: int, out: TextIO) -> None:
    rd = _rd(instruction)
    if rd != _ZERO_REGISTER:
        machine.next.regs[rd] = (instruction >> 5) & 0xFFFF
    _advance(machine)


def _b(machine: Machine, instruction: int, out: TextIO) -> None:
    # The target offset is decoded, but execution always continues at the next word.
    sign_extend((instruction & 0x3FFFFFF) << 2, 28)
    _advance(machine)


def _br(machine: Machine, instruction: int, out: TextIO) -> None:
    # The target register is decoded, but execution always continues at the next word.
    _advance(machine)


_CONDITIONS: dict[int, tuple[str, Callable[[CpuState], bool]]] = {
    0x0: ("BEQ", lambda s: bool(s.flag_z)),
    0x1: ("BNE", lambda s: not s.flag_z),
    0xC: ("BGT", lambda s: not s.flag_z and not s.flag_n),
    0xB: ("BLT", lambda s: bool(s.flag_n)),
    0xA: ("BGE", lambda s: not s.flag_n),
    0xD: ("BLE", lambda s: not (not s.flag_z and not s.flag_n)),
}


def _b_cond(machine: Machine, instruction: int, out: TextIO) -> None:
    cond = instruction & 0xF
    offset = sign_extend(((instruction >> 5) & 0x7FFFF) << 2, 21)
    found = _CONDITIONS.get(cond)
    if found is None:
        out.write("No cumple ninguna condición\n")
        _advance(machine)
        return
    name, holds = found
    if holds(machine.current):
        out.write(f"Cond: {name}\n")
        _branch(machine, offset)


def _compare_branch(branch_if_zero: bool) -> Handler:
    def handler(machine: Machine, instruction: int, out: TextIO) -> None:
        offset = sign_extend((instruction >> 5) & 0x7FFFF, 19) << 2
        is_zero = machine.current.regs[_rd(instruction)] == 0
        if is_zero == branch_if_zero:
            _branch(machine, offset)
        else:
            _advance(machine)

    return handler


def _address(machine: Machine, instruction: int) -> int:
    imm9 = sign_extend((instruction >> 12) & 0x1FF, 9)
    return (machine.current.regs[_rn(instruction)] + imm9) & _MASK64


def _stur(machine: Machine, instruction: int, out: TextIO) -> None:
    address = _address(machine, instruction)
    value = machine.current.regs[_rd(instruction)]
    machine.memory.write_32(address, value & 0xFFFFFFFF)
    machine.memory.write_32(address + 4, (value >> 32) & 0xFFFFFFFF)
    _advance(machine)


def _sturb(machine: Machine, instruction: int, out: TextIO) -> None:
    address = _address(machine, instruction)
    machine.memory.write_32(address, machine.current.regs[_rd(instruction)] & 0xFF)
    _advance(machine)


def _sturh(machine: Machine, instruction: int, out: TextIO) -> None:
    address = _address(machine, instruction)
    half = machine.current.regs[_rd(instruction)] & 0xFFFF
    word = machine.memory.read_32(address)
    machine.memory.write_32(address, (word & 0xFFFF0000) | half)
    _advance(machine)


def _ldur(machine: Machine, instruction: int, out: TextIO) -> None:
    address = _address(machine, instruction)
    low = machine.memory.read_32(address)
    high = machine.memory.read_32(address + 4)
    machine.next.regs[_rd(instruction)] = _to_int64((high << 32) | low)
    _advance(machine)


def _load_part(mask: int) -> Handler:
    def handler(machine: Machine, instruction: int, out: TextIO) -> None:
        address = _address(machine, instruction)
        word = machine.memory.read_32(address & ~0x3)
        machine.next.regs[_rd(instruction)] = (word >> ((address & 0x3) * 8)) & mask
        _advance(machine)

    return handler


_BY_OPCODE_11: dict[int, tuple[str, Handler]] = {
    Opcode.HLT: ("HLT", _hlt),
    Opcode.ADDS: ("ADDS", _register_op(operator.add)),
    Opcode.ADDIS_0: ("ADDIS (SHIFT=000)", _immediate_op(operator.add, 0)),
    Opcode.ADDIS_1: ("ADDIS (SHIFT=010)", _immediate_op(operator.add, 12)),
    Opcode.SUBS: ("SUBS", _register_op(operator.sub)),
    Opcode.SUBIS_0: ("SUBIS (SHIFT=000)", _immediate_op(operator.sub, 0)),
    Opcode.SUBIS_1: ("SUBIS (SHIFT=010)", _immediate_op(operator.sub, 12)),
    Opcode.ANDS: ("ANDS", _register_op(operator.and_)),
    Opcode.EOR: ("EOR", _register_op(operator.xor, set_flags=False)),
    Opcode.ORR: ("ORR", _register_op(operator.or_)),
    Opcode.LSL: ("LSL", _lsl),
    Opcode.LSR: ("LSR", _lsr),
    Opcode.MOVZ: ("MOVZ", _movz),
    Opcode.BR: ("BR", _br),
    Opcode.STUR: ("STUR", _stur),
    Opcode.STURB: ("STURB", _sturb),
    Opcode.STURH: ("STURH", _sturh),
    Opcode.LDUR: ("LDUR", _ldur),
    Opcode.LDURB: ("LDURB", _load_part(0xFF)),
    Opcode.LDURH: ("LDURH", _load_part(0xFFFF)),
}

_BY_OPCODE_6: dict[int, tuple[str, Handler]] = {
    Opcode.B: ("B", _b),
}

# The 8-bit opcode is taken from a 7-bit field, so only B.COND can match here.
_BY_OPCODE_8: dict[int, tuple[str, Handler]] = {
    Opcode.CBZ: ("CBZ", _compare_branch(True)),
    Opcode.CBNZ: ("CBNZ", _compare_branch(False)),
    Opcode.BCOND: ("B.COND", _b_cond),
}


def process_instruction(machine: Machine, out: TextIO | None = None) -> None:
    """Execute the instruction at the current PC, updating the machine's next state."""
    out = sys.stdout if out is None else out
    instruction = machine.memory.read_32(machine.current.pc)
    out.write(f"Instrucción: 0x{instruction:x}\n")

    opcode_11 = (instruction >> 21) & 0x7FF
    opcode_6 = (instruction >> 26) & 0x3F
    opcode_8 = (instruction >> 24) & 0x7F
    out.write(f"Opcode 11 bits: 0x{opcode_11:x}\n")
    out.write(f"Opcode 6 bits: 0x{opcode_6:x}\n")
    out.write(f"Opcode 8 bits: 0x{opcode_8:x}\n")

    found = (
        _BY_OPCODE_11.get(opcode_11)
        or _BY_OPCODE_6.get(opcode_6)
        or _BY_OPCODE_8.get(opcode_8)
    )
    if found is None:
        out.write(f"Instrucción 0x{instruction:x} no reconocida\n")
        machine.running = False
        return
    name, handler = found
    out.write(f"{name}\n")
    handler(machine, instruction, out)