"""Processor (Datapath + ControlUnit) and CLI wrapper.

Provides Intcode execution over an injected line-oriented input source and
output sink, logging initialization, and a command-line runner wiring
process stdin/stdout as the I/O backend.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from config import ConfigError, load_config
from isa import (
    InputError,
    Instruction,
    IntcodeError,
    MemoryAccessError,
    OpCode,
    ParamMode,
    decode_instr,
    disassemble,
    instr_length,
    mnemonic,
)
from parser import ProgramError, is_int_token, load_program, parse_program

LOGFILE = "processor.log"


def init_logging(logfile: str = LOGFILE, debug: bool = False, console: bool = False) -> None:
    """Configure root logger to write to `logfile`.

    If debug=True set DEBUG level. If console=True also echo logs to stdout.

    In debug mode a compact format without timestamp is used and every
    record after the first one is indented, so a trace reads like:
        DEBUG root:processor.py:301 Datapath: 12 cells, word_bits=32
            DEBUG root:processor.py:260 TICK:    0 IP:     0 INSTR: ADD [9] [10] [3]
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    lvl = logging.DEBUG if debug else logging.CRITICAL
    root.setLevel(lvl)

    if debug:
        file_fmt = "%(levelname)s %(name)s:%(filename)s:%(lineno)d %(message)s"
    else:
        file_fmt = "%(levelname)-5s %(message)s"

    class _IndentOnceFormatter(logging.Formatter):
        def __init__(self, fmt: str | None = None):
            super().__init__(fmt)
            self._seen_first = False

        def format(self, record: logging.LogRecord) -> str:
            s = super().format(record)
            if not self._seen_first:
                self._seen_first = True
                return s
            return "    " + s

    fh = logging.FileHandler(logfile, mode="w", encoding="utf-8")
    fh.setLevel(lvl)
    if debug:
        fh.setFormatter(_IndentOnceFormatter(file_fmt))
    else:
        fh.setFormatter(logging.Formatter(file_fmt))
    root.addHandler(fh)

    if debug and console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(lvl)
        ch.setFormatter(logging.Formatter("%(levelname)5s %(message)s"))
        root.addHandler(ch)


def to_signed(value: int, bits: int | None) -> int:
    """Wrap `value` to a signed two's-complement word of `bits` bits."""
    if bits is None:
        return value
    mask = (1 << bits) - 1
    v = value & mask
    if v & (1 << (bits - 1)):
        v -= 1 << bits
    return v


def fits_word(value: int, bits: int | None) -> bool:
    if bits is None:
        return True
    return -(1 << (bits - 1)) <= value < (1 << (bits - 1))


class Datapath:
    """Datapath (tape + instruction pointer + I/O ports) for the VM."""

    tape: list[int]
    ip: int
    tick: int

    word_bits: int | None
    lenient_log: bool

    input: TextIO
    output: TextIO

    def __init__(
        self,
        program: list[int],
        input_source: TextIO,
        output_sink: TextIO,
        word_bits: int | None = 32,
        mem_cells: int | None = None,
        lenient_log: bool = False,
    ) -> None:
        """Load `program` into a fresh tape and attach the I/O ports."""
        self.word_bits = word_bits
        self.lenient_log = bool(lenient_log)

        for addr, cell in enumerate(program):
            if not fits_word(cell, word_bits):
                err = f"Program cell {addr} value {cell} doesn't fit into a {word_bits}-bit word"
                raise ProgramError(err)

        self.tape = list(program)
        if mem_cells is not None:
            if mem_cells < len(self.tape):
                err = f"Program of {len(self.tape)} cells doesn't fit into mem_cells={mem_cells}"
                raise ConfigError(err)
            self.tape.extend([0] * (mem_cells - len(self.tape)))

        self.ip = 0
        self.tick = 0

        self.input = input_source
        self.output = output_sink
        logging.debug("Datapath: %d cells, word_bits=%s", len(self.tape), self.word_bits)

    def _check_addr(self, addr: int, what: str) -> None:
        if addr < 0 or addr >= len(self.tape):
            err = f"{what} out of memory: address {addr} (tape has {len(self.tape)} cells)"
            raise MemoryAccessError(err, self.ip)

    def read_word(self, addr: int) -> int:
        """Read the cell at `addr`. Raises MemoryAccessError when out of range."""
        self._check_addr(addr, "read")
        return self.tape[addr]

    def write_word(self, addr: int, value: int) -> None:
        """Write `value` (wrapped to the word size) to the cell at `addr`.

        Raises MemoryAccessError for out-of-range writes.
        """
        self._check_addr(addr, "write")
        self.tape[addr] = to_signed(value, self.word_bits)

    def param(self, i: int) -> int:
        """Raw parameter `i` (1-based) of the current instruction."""
        return self.read_word(self.ip + i)

    def read_line(self) -> int:
        """Consume one input line and parse it as a signed integer."""
        line = self.input.readline()
        if line == "":
            err = "no input line available"
            raise InputError(err, self.ip)
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        if not is_int_token(line):
            err = f"malformed input line {line!r}"
            raise InputError(err, self.ip)
        value = int(line)
        if not fits_word(value, self.word_bits):
            err = f"input {value} doesn't fit into a {self.word_bits}-bit word"
            raise InputError(err, self.ip)
        logging.debug("[IN] read %d", value)
        return value

    def write_line(self, value: int) -> None:
        """Emit `value` as one decimal line on the output sink."""
        self.output.write(f"{value}\n")
        flush = getattr(self.output, "flush", None)
        if flush is not None:
            flush()
        logging.debug("[OUT] wrote %d", value)


class ControlUnit:
    """Control unit implementing the FETCH-DECODE-EXEC loop for the Datapath."""

    dp: Datapath

    def __init__(self, dp: Datapath) -> None:
        """Create a ControlUnit bound to `dp`."""
        self.dp = dp

    def _log_step(self, instr: Instruction) -> None:
        # skip verbose per-step logs in lenient mode to reduce log size
        if self.dp.lenient_log or not logging.getLogger().isEnabledFor(logging.DEBUG):
            return
        dp = self.dp
        params = dp.tape[dp.ip + 1 : dp.ip + instr_length(instr.opcode)]
        logging.debug("TICK: %4d IP: %5d INSTR: %s", dp.tick, dp.ip, mnemonic(instr, params))

    def fetch(self) -> Instruction:
        """Decode the instruction at the current instruction pointer."""
        dp = self.dp
        return decode_instr(dp.read_word(dp.ip), dp.ip)

    def operand(self, i: int, mode: ParamMode) -> int:
        """Resolve parameter `i` of the current instruction according to `mode`."""
        raw = self.dp.param(i)
        if mode == ParamMode.IMMEDIATE:
            return raw
        return self.dp.read_word(raw)

    def step(self) -> bool:
        """Execute one instruction. Return True when HALT was executed."""
        instr = self.fetch()
        self._log_step(instr)
        self.exec(instr)
        self.dp.tick += 1
        if instr.opcode == OpCode.HALT:
            logging.debug("HALT encountered at ip %d", self.dp.ip)
            return True
        return False

    def run(self) -> None:
        """Execute instructions until HALT; machine faults propagate."""
        try:
            while not self.step():
                pass
        except IntcodeError as e:
            logging.debug("%s at tick %d: %s", type(e).__name__, self.dp.tick, e)
            raise

    def exec(self, instr: Instruction) -> None:  # noqa: C901
        """Execute a single decoded instruction (hardwired control unit)."""
        dp = self.dp
        opcode = instr.opcode
        m1, m2, _ = instr.modes

        if opcode == OpCode.HALT:
            return

        if opcode == OpCode.ADD:
            a = self.operand(1, m1)
            b = self.operand(2, m2)
            dp.write_word(dp.param(3), a + b)
            dp.ip += 4
            return
        if opcode == OpCode.MUL:
            a = self.operand(1, m1)
            b = self.operand(2, m2)
            dp.write_word(dp.param(3), a * b)
            dp.ip += 4
            return

        if opcode == OpCode.READ:
            addr = dp.param(1)
            dp.write_word(addr, dp.read_line())
            dp.ip += 2
            return
        if opcode == OpCode.PRINT:
            dp.write_line(self.operand(1, m1))
            dp.ip += 2
            return

        if opcode == OpCode.JUMP_NZ:
            cond = self.operand(1, m1)
            target = self.operand(2, m2)
            if cond != 0:
                dp.ip = target
            else:
                dp.ip += 3
            return
        if opcode == OpCode.JUMP_Z:
            cond = self.operand(1, m1)
            target = self.operand(2, m2)
            if cond == 0:
                dp.ip = target
            else:
                dp.ip += 3
            return

        if opcode == OpCode.LESS_THAN:
            a = self.operand(1, m1)
            b = self.operand(2, m2)
            dp.write_word(dp.param(3), 1 if a < b else 0)
            dp.ip += 4
            return
        if opcode == OpCode.EQUALS:
            a = self.operand(1, m1)
            b = self.operand(2, m2)
            dp.write_word(dp.param(3), 1 if a == b else 0)
            dp.ip += 4
            return


class Processor:
    """A Datapath with its ControlUnit."""

    dp: Datapath
    cu: ControlUnit

    def __init__(self, dp: Datapath) -> None:
        self.dp = dp
        self.cu = ControlUnit(dp)

    @classmethod
    def initialize(
        cls,
        program: list[int],
        input_source: TextIO,
        output_sink: TextIO,
        config: dict[str, Any] | None = None,
    ) -> Processor:
        """Build a processor for `program` bound to the given I/O ports."""
        cfg = load_config(config)
        dp = Datapath(
            program,
            input_source,
            output_sink,
            word_bits=cfg["word_bits"],
            mem_cells=cfg["mem_cells"],
            lenient_log=cfg["lenient_log"],
        )
        return cls(dp)

    @property
    def memory(self) -> list[int]:
        return self.dp.tape

    @property
    def ip(self) -> int:
        return self.dp.ip

    def run(self) -> None:
        self.cu.run()


def run_program(
    program: list[int],
    input_source: TextIO,
    output_sink: TextIO,
    config: dict[str, Any] | None = None,
) -> Datapath:
    """Run `program` to completion and return its Datapath for inspection."""
    proc = Processor.initialize(program, input_source, output_sink, config)
    proc.run()
    return proc.dp


def _run_cli(program: list[int], input_source: TextIO, cfg: dict[str, Any], dump: str | None) -> int:
    try:
        dp = run_program(program, input_source, sys.stdout, cfg)
    except ConfigError as e:
        print("Bad config:", e, file=sys.stderr)
        return 2
    except ProgramError as e:
        print("Bad program:", e, file=sys.stderr)
        return 2
    except IntcodeError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    if dump:
        Path(dump).write_text(",".join(str(c) for c in dp.tape) + "\n", encoding="utf-8")
        logging.debug("CLI: final memory written to %s", dump)
    return 0


# ---------- CLI ----------
def main(argv: list[str] | None = None) -> int:
    """Command-line entry point. Returns the process exit code."""
    ap = argparse.ArgumentParser(
        description="Intcode VM runner. Reads the program from a file (or the first stdin line "
        "when PROGRAM is '-'); input lines come from --input or stdin."
    )
    ap.add_argument("program", help="program file with comma-separated integers, or '-'")
    ap.add_argument("--input", help="file with one input integer per line", default=None)
    ap.add_argument("--config", help="path to yaml config", default=None)

    help_debug = "enable debug logging to logfile (per-step trace)."
    help_logfile = "path to processor log"
    help_console = "also echo logs to console (only when --debug)"
    ap.add_argument("--debug", action="store_true", help=help_debug)
    ap.add_argument("--logfile", default=LOGFILE, help=help_logfile)
    ap.add_argument("--console", action="store_true", help=help_console)
    ap.add_argument("--dump", default=None, help="write final memory to this file")
    ap.add_argument("--disasm", action="store_true", help="print a listing of the program and exit")
    args = ap.parse_args(argv)

    init_logging(logfile=args.logfile, debug=args.debug, console=args.console)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print("Bad config:", e, file=sys.stderr)
        return 2

    try:
        if args.program == "-":
            program = parse_program(sys.stdin.readline())
        else:
            program = load_program(args.program)
    except ProgramError as e:
        print("Bad program:", e, file=sys.stderr)
        return 2
    logging.debug("CLI: loaded %d cells from %s", len(program), args.program)

    if args.disasm:
        for line in disassemble(program):
            sys.stdout.write(line + "\n")
        return 0

    if args.input:
        in_path = Path(args.input)
        if not in_path.exists():
            print("Input file not found:", args.input, file=sys.stderr)
            return 2
        with in_path.open("r", encoding="utf-8") as f:
            return _run_cli(program, f, cfg, args.dump)
    return _run_cli(program, sys.stdin, cfg, args.dump)


if __name__ == "__main__":
    sys.exit(main())
