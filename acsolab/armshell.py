"""Interactive shell that drives the instruction-level ARM simulator."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import TextIO

from .cpu import process_instruction
from .machine import ARM_REGS, MEM_TEXT_START, Machine

PROG = "sim"
DUMP_FILE = "dumpsim"

_MASK32 = 0xFFFFFFFF
_MASK64 = (1 << 64) - 1

_HEX_WORD = re.compile(r"[+-]?(?:0[xX])?[0-9a-fA-F]+")
_DECIMAL = re.compile(r"[+-]?[0-9]+")
_C_INTEGER = re.compile(r"([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")

_HELP = (
    "----------------ARM ISIM Help-----------------------\n"
    "go               -  run program to completion         \n"
    "run n            -  execute program for n instructions\n"
    "mdump low high   -  dump memory from low to high      \n"
    "rdump            -  dump the register & bus values    \n"
    "input reg_no reg_value - set GPR reg_no to reg_value  \n"
    "?                -  display this help menu            \n"
    "quit             -  exit the program                  \n\n"
)


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value >> 31 else value


def _to_int64(value: int) -> int:
    value &= _MASK64
    return value - (1 << 64) if value >> 63 else value


def _scan_c_int(token: str) -> int | None:
    """Parse an integer the way %i does: 0x for hex, leading 0 for octal."""
    match = _C_INTEGER.fullmatch(token)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2].lower() == "0x":
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits, 10)
    return _to_int32(-value if sign == "-" else value)


def _scan_decimal(token: str) -> int | None:
    return _to_int32(int(token, 10)) if _DECIMAL.fullmatch(token) else None


def _scan_hex(token: str) -> int | None:
    return int(token, 16) if _HEX_WORD.fullmatch(token) else None


def _arity(name: str) -> int:
    """Number of arguments that follow a command word."""
    first = name[:1].lower()
    if first in ("m", "i"):
        return 2
    if first == "r" and name[1:2].lower() != "d":
        return 1
    return 0


def _tokens(stream: Iterable[str]) -> Iterator[str]:
    for line in stream:
        yield from line.split()


class Simulator:
    """A simulated machine together with the commands that inspect and run it."""

    def __init__(self, out: TextIO | None = None, dump: TextIO | None = None) -> None:
        self.machine = Machine()
        self.out = sys.stdout if out is None else out
        self.dump = dump

    def _emit(self, text: str, to_dump: bool = False) -> None:
        self.out.write(text)
        if to_dump and self.dump is not None:
            self.dump.write(text)

    def cycle(self) -> None:
        """Execute one instruction and latch the next state."""
        machine = self.machine
        process_instruction(machine, self.out)
        machine.current = machine.next.copy()
        machine.instruction_count += 1

    def run(self, num_cycles: int) -> None:
        """Execute up to num_cycles instructions, stopping if the machine halts."""
        if not self.machine.running:
            self._emit("Can't simulate, Simulator is halted\n\n")
            return
        self._emit(f"Simulating for {num_cycles} cycles...\n\n")
        for _ in range(num_cycles):
            if not self.machine.running:
                self._emit("Simulator halted\n\n")
                break
            self.cycle()

    def go(self) -> None:
        """Execute instructions until the machine halts."""
        if not self.machine.running:
            self._emit("Can't simulate, Simulator is halted\n\n")
            return
        self._emit("Simulating...\n\n")
        while self.machine.running:
            self.cycle()
        self._emit("Simulator halted\n\n")

    def mdump(self, start: int, stop: int) -> None:
        """Dump the words from start to stop to the output and the dump file."""
        lines = [
            f"\nMemory content [0x{start & _MASK32:08x}..0x{stop & _MASK32:08x}] :\n",
            "-------------------------------------\n",
        ]
        for address in range(start, stop + 1, 4):
            word = self.machine.memory.read_32(address)
            lines.append(f"  0x{address & _MASK32:08x} ({_to_int32(address)}) : 0x{word:x}\n")
        lines.append("\n")
        self._emit("".join(lines), to_dump=True)

    def rdump(self) -> None:
        """Dump the instruction count, PC, registers and flags."""
        state = self.machine.current
        lines = [
            "\nCurrent register/bus values :\n",
            "-------------------------------------\n",
            f"Instruction Count : {self.machine.instruction_count & _MASK32}\n",
            f"PC                : 0x{state.pc & _MASK64:x}\n",
            "Registers:\n",
        ]
        lines.extend(f"X{k}: 0x{value & _MASK64:x}\n" for k, value in enumerate(state.regs))
        lines.append(f"FLAG_N: {state.flag_n}\n")
        lines.append(f"FLAG_Z: {state.flag_z}\n")
        lines.append("\n")
        self._emit("".join(lines), to_dump=True)

    def help(self) -> None:
        """Print the list of commands."""
        self._emit(_HELP)

    def load_program(self, path: str | Path) -> int:
        """Load hexadecimal words into the text segment and return how many were read."""
        text = Path(path).read_text()
        memory = self.machine.memory
        count = 0
        for token in text.split():
            word = _scan_hex(token)
            if word is None:
                raise ValueError(f"Malformed program file {path}")
            memory.write_32(MEM_TEXT_START + 4 * count, word & _MASK32)
            count += 1
        self.machine.current.pc = MEM_TEXT_START
        self.machine.next = self.machine.current.copy()
        self._emit(f"Read {count} words from program into memory.\n\n")
        return count

    def _set_register(self, args: Sequence[str]) -> None:
        if len(args) < 2:
            return
        register = _scan_c_int(args[0])
        value = _scan_hex(args[1])
        if register is None or value is None or not 0 <= register < ARM_REGS:
            return
        value = _to_int64(value)
        self.machine.current.regs[register] = value
        self.machine.next.regs[register] = value

    def command(self, words: Sequence[str]) -> bool:
        """Execute one command; return False when the shell should exit."""
        if not words:
            return True
        name, args = words[0], list(words[1:])
        first = name[0].lower()
        if first == "g":
            self.go()
        elif first == "m":
            bounds = [_scan_c_int(arg) for arg in args[:2]]
            if len(bounds) == 2 and None not in bounds:
                self.mdump(bounds[0], bounds[1])
        elif first == "?":
            self.help()
        elif first == "q":
            self._emit("Bye.\n")
            return False
        elif first == "r":
            if name[1:2].lower() == "d":
                self.rdump()
            else:
                cycles = _scan_decimal(args[0]) if args else None
                if cycles is not None:
                    self.run(cycles)
        elif first == "i":
            self._set_register(args)
        else:
            self._emit("Invalid Command\n")
        return True

    def repl(self, stream: Iterable[str]) -> None:
        """Read and execute commands from stream until quit or end of input."""
        tokens = _tokens(stream)
        while True:
            self._emit("ARM-SIM> ")
            name = next(tokens, None)
            if name is None:
                return
            self._emit("\n")
            words = [name]
            for _ in range(_arity(name)):
                arg = next(tokens, None)
                if arg is None:
                    break
                words.append(arg)
            if not self.command(words):
                return


def main(argv: list[str] | None = None) -> int:
    """Load the given programs and run the interactive shell; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout
    if not args:
        out.write(f"Error: usage: {PROG} <program_file_1> <program_file_2> ...\n")
        return 1

    out.write("ARM Simulator\n\n")
    sim = Simulator(out)
    for path in args:
        try:
            sim.load_program(path)
        except OSError:
            out.write(f"Error: Can't open program file {path}\n")
            return 255
        except ValueError:
            out.write(f"Error: Malformed program file {path}\n")
            return 255
    sim.machine.running = True

    try:
        dump = open(DUMP_FILE, "w")
    except OSError:
        out.write("Error: Can't open dumpsim file\n")
        return 255
    with dump:
        sim.dump = dump
        sim.repl(sys.stdin)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())