"""ISA: opcodes, parameter modes, instruction decoding and helpers."""

from enum import IntEnum
from typing import NamedTuple


class OpCode(IntEnum):
    """Keeps opcodes from all operations."""

    ADD = 1  # MEM[p3] = p1 + p2
    MUL = 2  # MEM[p3] = p1 * p2

    READ = 3  # MEM[p1] = next input line
    PRINT = 4  # output p1

    JUMP_NZ = 5  # if p1 != 0: IP = p2
    JUMP_Z = 6  # if p1 == 0: IP = p2
    LESS_THAN = 7  # MEM[p3] = p1 < p2
    EQUALS = 8  # MEM[p3] = p1 == p2

    HALT = 99


class ParamMode(IntEnum):
    """Parameter addressing modes."""

    POSITIONAL = 0  # parameter is an address
    IMMEDIATE = 1  # parameter is the value


# Number of parameters per opcode (the opcode cell itself not included).
PARAM_COUNT: dict[OpCode, int] = {
    OpCode.ADD: 3,
    OpCode.MUL: 3,
    OpCode.READ: 1,
    OpCode.PRINT: 1,
    OpCode.JUMP_NZ: 2,
    OpCode.JUMP_Z: 2,
    OpCode.LESS_THAN: 3,
    OpCode.EQUALS: 3,
    OpCode.HALT: 0,
}

# 1-based parameter slot that receives a value, if any.
WRITE_SLOT: dict[OpCode, int] = {
    OpCode.ADD: 3,
    OpCode.MUL: 3,
    OpCode.READ: 1,
    OpCode.LESS_THAN: 3,
    OpCode.EQUALS: 3,
}

MODE_SLOTS = 3


class IntcodeError(Exception):
    """Base class for machine faults. Carries the instruction pointer."""

    def __init__(self, message: str, ip: int) -> None:
        super().__init__(f"{message} (ip={ip})")
        self.message = message
        self.ip = ip


class InvalidOpcodeError(IntcodeError):
    """Low two digits of the instruction word name no instruction."""


class InvalidModeError(IntcodeError):
    """A parameter mode digit is neither 0 nor 1."""


class WriteModeError(IntcodeError):
    """A write-target parameter was given immediate mode."""


class MemoryAccessError(IntcodeError):
    """An address outside the tape was fetched, read or written."""


class InputError(IntcodeError):
    """An input line was missing or could not be parsed."""


class Instruction(NamedTuple):
    opcode: OpCode
    modes: tuple[ParamMode, ParamMode, ParamMode]


def instr_length(opcode: OpCode) -> int:
    """Cells occupied by an instruction, opcode cell included."""
    return 1 + PARAM_COUNT[opcode]


def decode_instr(word: int, ip: int = 0) -> Instruction:
    """Decode the instruction word found at `ip`.

    Opcode is the low two decimal digits, modes are the next three digits
    read least-significant first. All three mode digits are validated, even
    for instructions that take fewer parameters.

    Raises InvalidOpcodeError, InvalidModeError or WriteModeError.
    """
    if word < 0:
        err = f"invalid opcode {word}"
        raise InvalidOpcodeError(err, ip)
    try:
        opcode = OpCode(word % 100)
    except ValueError as e:
        err = f"invalid opcode {word % 100} in instruction {word}"
        raise InvalidOpcodeError(err, ip) from e

    modes: list[ParamMode] = []
    for i in range(MODE_SLOTS):
        digit = (word // 10 ** (i + 2)) % 10
        try:
            modes.append(ParamMode(digit))
        except ValueError as e:
            err = f"invalid parameter mode {digit} for parameter {i + 1} in instruction {word}"
            raise InvalidModeError(err, ip) from e

    slot = WRITE_SLOT.get(opcode)
    if slot is not None and modes[slot - 1] == ParamMode.IMMEDIATE:
        err = f"got immediate parameter mode for store address in {opcode.name}"
        raise WriteModeError(err, ip)

    return Instruction(opcode, (modes[0], modes[1], modes[2]))


def format_param(mode: ParamMode, raw: int) -> str:
    if mode == ParamMode.POSITIONAL:
        return f"[{raw}]"
    return str(raw)


def mnemonic(instr: Instruction, params: list[int]) -> str:
    """Get operation mnemonic, e.g. ``ADD [9] 10 [3]``."""
    if not params:
        return instr.opcode.name
    args = " ".join(format_param(mode, raw) for mode, raw in zip(instr.modes, params))
    return f"{instr.opcode.name} {args}"


def disassemble(tape: list[int]) -> list[str]:
    """Linear-sweep listing of `tape`, one line per instruction.

    Line format: ``<addr> - <cells> - <mnemonic>``. Cells that do not decode,
    or whose parameters would run past the end of the tape, are listed one
    per line as ``DATA <value>``.
    """
    lines: list[str] = []
    addr = 0
    size = len(tape)
    while addr < size:
        word = tape[addr]
        try:
            instr = decode_instr(word, addr)
        except IntcodeError:
            instr = None
        if instr is None or addr + instr_length(instr.opcode) > size:
            lines.append(f"{addr} - {word} - DATA {word}")
            addr += 1
            continue
        length = instr_length(instr.opcode)
        cells = tape[addr : addr + length]
        raw = ",".join(str(c) for c in cells)
        lines.append(f"{addr} - {raw} - {mnemonic(instr, cells[1:])}")
        addr += length
    return lines
